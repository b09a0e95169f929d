"""Tests for the gateway HTTP client."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from conftest import make_record

from memory_lane.errors import EmbeddingError, GatewayError
from memory_lane.gateway import GatewayClient
from memory_lane.gifts import GiftCandidate
from memory_lane.memory.models import ChatMessage

BASE = "http://gateway.test"


def _response(path: str, status: int = 200, json_body=None, text: str | None = None) -> httpx.Response:
    request = httpx.Request("POST", f"{BASE}{path}")
    if json_body is not None:
        return httpx.Response(status, json=json_body, request=request)
    return httpx.Response(status, text=text or "", request=request)


def _mock_httpx_client(mock_client_cls: MagicMock, response=None, error=None) -> AsyncMock:
    """Wire up an AsyncClient context-manager mock."""
    mock_client = AsyncMock()
    if error is not None:
        mock_client.post.side_effect = error
    else:
        mock_client.post.return_value = response
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client_cls.return_value = mock_client
    return mock_client


# -- chat --------------------------------------------------------------------


async def test_chat_posts_request_and_returns_reply() -> None:
    with patch("memory_lane.gateway.httpx.AsyncClient") as mock_cls:
        client = _mock_httpx_client(mock_cls, _response("/api/chat", json_body={"response": "hi!"}))
        reply = await GatewayClient(BASE, timeout=5).chat(
            "hello",
            [make_record("1", "a")],
            [ChatMessage(role="user", content="earlier")],
        )

    assert reply == "hi!"
    url = client.post.call_args.args[0]
    payload = client.post.call_args.kwargs["json"]
    assert url == f"{BASE}/api/chat"
    assert payload["message"] == "hello"
    assert payload["memories"][0]["id"] == "1"
    assert payload["chatHistory"] == [{"role": "user", "content": "earlier"}]
    assert payload["semantic"] is False
    mock_cls.assert_called_once_with(timeout=5)


async def test_chat_error_status_raises() -> None:
    with patch("memory_lane.gateway.httpx.AsyncClient") as mock_cls:
        _mock_httpx_client(mock_cls, _response("/api/chat", 500, json_body={"error": "x"}))
        with pytest.raises(GatewayError) as excinfo:
            await GatewayClient(BASE).chat("hello", [], [])
    assert excinfo.value.status == 500


async def test_chat_timeout_raises_gateway_error() -> None:
    with patch("memory_lane.gateway.httpx.AsyncClient") as mock_cls:
        _mock_httpx_client(mock_cls, error=httpx.ReadTimeout("slow"))
        with pytest.raises(GatewayError, match="Timeout"):
            await GatewayClient(BASE).chat("hello", [], [])


async def test_chat_missing_reply_raises() -> None:
    with patch("memory_lane.gateway.httpx.AsyncClient") as mock_cls:
        _mock_httpx_client(mock_cls, _response("/api/chat", json_body={"oops": 1}))
        with pytest.raises(GatewayError):
            await GatewayClient(BASE).chat("hello", [], [])


# -- embed -------------------------------------------------------------------


async def test_embed_validates_and_returns_batch() -> None:
    body = {"vectors": [[0.5] * 128, [0.25] * 128], "model": "claude-semantic-v1"}
    with patch("memory_lane.gateway.httpx.AsyncClient") as mock_cls:
        _mock_httpx_client(mock_cls, _response("/api/embed", json_body=body))
        batch = await GatewayClient(BASE).embed(["a", "b"])
    assert batch.model == "claude-semantic-v1"
    assert len(batch.vectors) == 2


async def test_embed_arity_mismatch_raises() -> None:
    body = {"vectors": [[0.5] * 128], "model": "m"}
    with patch("memory_lane.gateway.httpx.AsyncClient") as mock_cls:
        _mock_httpx_client(mock_cls, _response("/api/embed", json_body=body))
        with pytest.raises(EmbeddingError):
            await GatewayClient(BASE).embed(["a", "b"])


async def test_embed_transport_error_is_embedding_error() -> None:
    with patch("memory_lane.gateway.httpx.AsyncClient") as mock_cls:
        _mock_httpx_client(mock_cls, error=httpx.ConnectError("refused"))
        with pytest.raises(EmbeddingError):
            await GatewayClient(BASE).embed(["a"])


# -- gift ideas --------------------------------------------------------------


async def test_gift_ideas_parses_response() -> None:
    body = {
        "ideas": [{"title": "Scarf", "why": "cold", "priceRange": "$30", "effort": "low",
                   "relatedMemories": ["1"]}],
        "followUps": ["Favorite color?"],
    }
    with patch("memory_lane.gateway.httpx.AsyncClient") as mock_cls:
        client = _mock_httpx_client(mock_cls, _response("/api/gift-ideas", json_body=body))
        ideas = await GatewayClient(BASE).gift_ideas(
            "q", [GiftCandidate(id="1", category="gifts", text="scarf", created_at="2024")]
        )

    assert ideas.ideas[0].title == "Scarf"
    assert ideas.follow_ups == ["Favorite color?"]
    sent = client.post.call_args.kwargs["json"]
    assert sent["memories"][0]["createdAt"] == "2024"
