"""Ordered write sequences for operations spanning several documents.

The store commits one document at a time, so an operation that touches a task
and one or more users is a list of independent writes. A :class:`WritePlan`
runs them in a fixed order and, when a step fails, records which writes landed
before re-raising the failure. Whatever drift is left behind is repaired by the
reconcile paths of the services on the next access.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

StepAction = Callable[[], Awaitable[Any]]


@dataclass(slots=True)
class PlanStep:
    """A single document write within a plan."""

    description: str
    action: StepAction


@dataclass(slots=True)
class WritePlan:
    """An ordered, non-atomic list of document writes."""

    name: str
    steps: list[PlanStep] = field(default_factory=list)
    completed: list[str] = field(default_factory=list)

    def add(self, description: str, action: StepAction) -> "WritePlan":
        self.steps.append(PlanStep(description=description, action=action))
        return self

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def descriptions(self) -> list[str]:
        return [step.description for step in self.steps]

    async def execute(self) -> list[Any]:
        """Run every step in order and return their results.

        The first failing step stops the plan; its exception propagates
        unchanged. No step is retried or rolled back.
        """
        results: list[Any] = []
        self.completed = []
        for index, step in enumerate(self.steps):
            try:
                results.append(await step.action())
            except Exception:
                logger.warning(
                    "Write plan aborted",
                    extra={
                        "plan": self.name,
                        "failed_step": step.description,
                        "completed_steps": list(self.completed),
                        "skipped_steps": [s.description for s in self.steps[index + 1 :]],
                    },
                )
                raise
            self.completed.append(step.description)
        logger.debug("Write plan finished", extra={"plan": self.name, "steps": self.completed})
        return results


__all__ = ["PlanStep", "StepAction", "WritePlan"]
