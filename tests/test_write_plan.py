from __future__ import annotations

import logging

import pytest

from taskboard.errors import StorageError
from taskboard.services.plan import WritePlan

pytestmark = pytest.mark.asyncio


async def test_plan_runs_steps_in_order_and_collects_results() -> None:
    calls: list[str] = []

    def _step(label: str):
        async def _action() -> str:
            calls.append(label)
            return label.upper()

        return _action

    plan = WritePlan("example").add("first", _step("a")).add("second", _step("b"))

    assert len(plan) == 2
    assert plan.descriptions == ["first", "second"]
    assert await plan.execute() == ["A", "B"]
    assert calls == ["a", "b"]
    assert plan.completed == ["first", "second"]


async def test_plan_stops_at_failing_step_and_reraises(caplog: pytest.LogCaptureFixture) -> None:
    calls: list[str] = []

    async def _ok() -> None:
        calls.append("ok")

    async def _fail() -> None:
        raise StorageError("disk full")

    async def _never() -> None:  # pragma: no cover - must not run
        calls.append("never")

    plan = WritePlan("partial").add("write task", _ok).add("write user", _fail).add("bulk update", _never)

    with caplog.at_level(logging.WARNING, logger="taskboard.services.plan"):
        with pytest.raises(StorageError, match="disk full"):
            await plan.execute()

    assert calls == ["ok"]
    assert plan.completed == ["write task"]
    record = next(r for r in caplog.records if r.getMessage() == "Write plan aborted")
    assert record.failed_step == "write user"
    assert record.completed_steps == ["write task"]
    assert record.skipped_steps == ["bulk update"]


async def test_empty_plan_is_a_no_op() -> None:
    assert await WritePlan("empty").execute() == []
