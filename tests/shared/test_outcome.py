"""Tests for the one-shot task outcome cell."""

import anyio
import pytest

from tasker.shared.outcome import TaskOutcome


@pytest.mark.anyio
async def test_outcome_resolves_once():
    outcome = TaskOutcome[str]()
    assert not outcome.done

    assert outcome.set_result("first") is True
    assert outcome.set_result("second") is False
    assert outcome.set_error(RuntimeError("late")) is False

    assert outcome.done
    assert outcome.error is None
    assert await outcome == "first"
    assert await outcome.result() == "first"


@pytest.mark.anyio
async def test_outcome_rejects_once():
    error = ValueError("boom")
    outcome = TaskOutcome[str]()

    assert outcome.set_error(error) is True
    assert outcome.set_result("ignored") is False

    assert outcome.error is error
    with pytest.raises(ValueError, match="boom"):
        await outcome
    # Awaiting again raises the same error.
    with pytest.raises(ValueError, match="boom"):
        await outcome


@pytest.mark.anyio
async def test_outcome_wakes_every_waiter():
    outcome = TaskOutcome[int]()
    results: list[int] = []

    async def wait() -> None:
        results.append(await outcome)

    with anyio.fail_after(1):
        async with anyio.create_task_group() as tg:
            tg.start_soon(wait)
            tg.start_soon(wait)
            await anyio.wait_all_tasks_blocked()
            assert results == []
            outcome.set_result(7)

    assert results == [7, 7]


@pytest.mark.anyio
async def test_resolved_none_is_not_an_error():
    outcome = TaskOutcome[None]()
    outcome.set_result(None)

    assert await outcome is None
