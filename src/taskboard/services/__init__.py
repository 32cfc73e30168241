"""Consistency engine: task and user operations over the two document stores."""

from __future__ import annotations

from .plan import PlanStep, WritePlan
from .references import UNSET
from .tasks import TaskService
from .users import UserService

__all__ = ["PlanStep", "TaskService", "UNSET", "UserService", "WritePlan"]
