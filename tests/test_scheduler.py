"""Tests for the delayed-action scheduler and bounded recovery."""

from __future__ import annotations

import asyncio

import pytest

from schnapsenai.app.recovery import ErrorRecovery
from schnapsenai.app.scheduler import ActionScheduler


def _recorder(log: list[str], name: str):
    async def action() -> None:
        log.append(name)

    return action


def test_scheduled_action_runs_after_delay() -> None:
    """Scheduled actions run once the scheduler is awaited."""
    log: list[str] = []

    async def scenario() -> None:
        scheduler = ActionScheduler()
        scheduler.schedule("play", 0.0, _recorder(log, "play"))
        assert scheduler.pending_slots() == ("play",)
        await scheduler.idle()
        assert scheduler.pending_slots() == ()

    asyncio.run(scenario())
    assert log == ["play"]


def test_same_slot_supersedes_pending_action() -> None:
    """Only the latest action in a slot runs."""
    log: list[str] = []

    async def scenario() -> None:
        scheduler = ActionScheduler()
        scheduler.schedule("play", 0.01, _recorder(log, "first"))
        scheduler.schedule("play", 0.01, _recorder(log, "second"))
        scheduler.schedule("draw", 0.0, _recorder(log, "draw"))
        await scheduler.idle()

    asyncio.run(scenario())
    assert sorted(log) == ["draw", "second"]


def test_cancel_all_prevents_pending_actions_and_closes() -> None:
    """Nothing runs after cancel_all, including later requests."""
    log: list[str] = []

    async def scenario() -> None:
        scheduler = ActionScheduler()
        scheduler.schedule("play", 0.01, _recorder(log, "play"))
        scheduler.schedule("swap", 0.01, _recorder(log, "swap"))
        assert scheduler.cancel_all() == 2
        assert scheduler.closed
        assert scheduler.schedule("draw", 0.0, _recorder(log, "draw")) is None
        await asyncio.sleep(0.02)
        await scheduler.idle()

    asyncio.run(scenario())
    assert log == []


def test_cancel_single_slot() -> None:
    """Cancelling one slot leaves the others alone."""
    log: list[str] = []

    async def scenario() -> None:
        scheduler = ActionScheduler()
        scheduler.schedule("play", 0.01, _recorder(log, "play"))
        scheduler.schedule("draw", 0.01, _recorder(log, "draw"))
        assert scheduler.cancel("play")
        assert not scheduler.cancel("play")
        await scheduler.idle()

    asyncio.run(scenario())
    assert log == ["draw"]


def test_failing_action_is_contained() -> None:
    """An action that raises does not break the scheduler."""
    log: list[str] = []

    async def broken() -> None:
        raise RuntimeError("boom")

    async def scenario() -> None:
        scheduler = ActionScheduler()
        scheduler.schedule("play", 0.0, broken)
        await scheduler.idle()
        scheduler.schedule("play", 0.0, _recorder(log, "after"))
        await scheduler.idle()

    asyncio.run(scenario())
    assert log == ["after"]


def test_injected_sleep_receives_delay() -> None:
    """The scheduler waits through the injected sleep function."""
    delays: list[float] = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    async def scenario() -> None:
        scheduler = ActionScheduler(sleep=fake_sleep)
        scheduler.schedule("draw", 0.5, _recorder([], "draw"))
        await scheduler.idle()

    asyncio.run(scenario())
    assert delays == [0.5]


def test_recovery_allows_one_attempt_until_reset() -> None:
    """The default cap permits one corrective action per reset."""
    recovery = ErrorRecovery()
    assert recovery.acquire()
    assert recovery.retry_used
    assert not recovery.acquire()
    assert recovery.errors_seen == 2
    recovery.reset()
    assert not recovery.retry_used
    assert recovery.acquire()


def test_recovery_cap_is_configurable() -> None:
    """A zero cap never permits recovery; negative caps are rejected."""
    assert not ErrorRecovery(replay_cap=0).acquire()
    with pytest.raises(ValueError):
        ErrorRecovery(replay_cap=-1)
