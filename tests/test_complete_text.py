"""Tests for the Claude client helpers."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from memory_lane.llm.client import complete_text, extract_json_object, response_text


def _mock_client(*texts: str) -> MagicMock:
    mock_response = MagicMock()
    mock_response.content = [MagicMock(type="text", text=t) for t in texts]
    mock_client = MagicMock()
    mock_client.messages.create = AsyncMock(return_value=mock_response)
    return mock_client


async def test_complete_text_basic() -> None:
    mock_client = _mock_client("hello world")

    with patch("memory_lane.llm.client._get_client", return_value=mock_client):
        result = await complete_text([{"role": "user", "content": "hi"}])

    assert result == "hello world"
    mock_client.messages.create.assert_awaited_once()
    call_kwargs = mock_client.messages.create.call_args.kwargs
    assert call_kwargs["messages"] == [{"role": "user", "content": "hi"}]
    assert call_kwargs["model"] == "claude-sonnet-4-20250514"
    assert call_kwargs["max_tokens"] == 1000


async def test_complete_text_with_system_and_temperature() -> None:
    mock_client = _mock_client("response")

    with patch("memory_lane.llm.client._get_client", return_value=mock_client):
        await complete_text(
            [{"role": "user", "content": "hi"}],
            system="Reply with one word.",
            model="claude-3-5-haiku-20241022",
            max_tokens=10,
            temperature=0,
        )

    call_kwargs = mock_client.messages.create.call_args.kwargs
    assert call_kwargs["system"] == "Reply with one word."
    assert call_kwargs["model"] == "claude-3-5-haiku-20241022"
    assert call_kwargs["max_tokens"] == 10
    assert call_kwargs["temperature"] == 0


async def test_complete_text_omits_optional_kwargs() -> None:
    mock_client = _mock_client("response")

    with patch("memory_lane.llm.client._get_client", return_value=mock_client):
        await complete_text([{"role": "user", "content": "hi"}])

    call_kwargs = mock_client.messages.create.call_args.kwargs
    assert "system" not in call_kwargs
    assert "temperature" not in call_kwargs


async def test_complete_text_joins_text_blocks() -> None:
    mock_client = _mock_client("first", "second")

    with patch("memory_lane.llm.client._get_client", return_value=mock_client):
        result = await complete_text([{"role": "user", "content": "hi"}])

    assert result == "first\nsecond"


async def test_complete_text_propagates_errors() -> None:
    mock_client = MagicMock()
    mock_client.messages.create = AsyncMock(side_effect=RuntimeError("timeout"))

    with (
        patch("memory_lane.llm.client._get_client", return_value=mock_client),
        pytest.raises(RuntimeError),
    ):
        await complete_text([{"role": "user", "content": "hi"}])


# -- response_text -----------------------------------------------------------


def test_response_text_skips_non_text_blocks() -> None:
    response = MagicMock()
    response.content = [
        MagicMock(type="tool_use", text="ignored"),
        MagicMock(type="text", text=" answer "),
    ]
    assert response_text(response) == "answer"


def test_response_text_without_content() -> None:
    response = MagicMock()
    response.content = None
    assert response_text(response) == ""


# -- extract_json_object -----------------------------------------------------


def test_extract_json_object_from_fenced_reply() -> None:
    text = 'Sure!\n```json\n{"ideas": [], "followUps": ["a"]}\n```'
    assert extract_json_object(text) == {"ideas": [], "followUps": ["a"]}


def test_extract_json_object_no_object() -> None:
    with pytest.raises(ValueError, match="No JSON object"):
        extract_json_object("no braces here")


def test_extract_json_object_invalid_json() -> None:
    with pytest.raises(ValueError):
        extract_json_object("{not: valid}")
