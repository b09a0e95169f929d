"""Tests for latest-wins query execution."""

import asyncio

import pytest

from memory_lane.concurrency import LatestOnly


async def test_single_run_returns_result() -> None:
    async def work():
        return 42

    assert await LatestOnly().run(work()) == 42


async def test_newer_run_supersedes_older() -> None:
    runner: LatestOnly[str] = LatestOnly()
    gate = asyncio.Event()
    started = asyncio.Event()

    async def slow():
        started.set()
        await gate.wait()
        return "old"

    async def fast():
        return "new"

    first = asyncio.create_task(runner.run(slow()))
    await started.wait()

    assert await runner.run(fast()) == "new"
    assert await first is None


async def test_outer_cancellation_propagates() -> None:
    runner: LatestOnly[None] = LatestOnly()

    async def forever():
        await asyncio.Event().wait()

    task = asyncio.create_task(runner.run(forever()))
    await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


async def test_errors_propagate() -> None:
    async def boom():
        raise ValueError("bad")

    with pytest.raises(ValueError, match="bad"):
        await LatestOnly().run(boom())
