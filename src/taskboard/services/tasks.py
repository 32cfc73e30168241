"""Task-side operations of the assignment consistency engine."""

from __future__ import annotations

import logging
from datetime import datetime
from functools import partial

from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.config import Settings, get_settings
from ..core.context import operation_scope
from ..errors import ImmutableError, InvalidReferenceError, NotFoundError, ValidationError
from ..models import UNASSIGNED, Task, User
from ..repositories import TaskRepository, UserRepository
from ..repositories.base import Filters, SortSpec
from .plan import WritePlan
from .references import (
    UNSET,
    Maybe,
    add_pending_task,
    check_unassigned_name,
    detach_from_user,
    is_set,
    remove_pending_task,
    require_text,
    resolve_assignee_name,
)

logger = logging.getLogger(__name__)


class TaskService:
    """Create, update and delete tasks while keeping assignee pending sets coherent."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._repository = TaskRepository(session)
        self._user_repository = UserRepository(session)

    @property
    def repository(self) -> TaskRepository:
        """Expose the underlying repository for advanced scenarios."""
        return self._repository

    async def _require_task(self, task_id: str) -> Task:
        task = await self._repository.get(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found.", details={"taskId": task_id})
        return task

    async def _resolve_assignee(self, user_id: str) -> User:
        user = await self._user_repository.get(user_id)
        if user is None:
            raise InvalidReferenceError(
                "Assigned user not found.",
                details={"assignedUser": user_id},
            )
        return user

    async def reconcile_task(self, task: Task) -> Task:
        """Bring the assignee's pending set and the task's display name in line with ``task``.

        ``task.assigned_user`` is authoritative. Open tasks must be listed by
        their assignee, completed ones must not be. A reference to a user
        that no longer exists is cleared on open tasks.
        """
        if not task.assigned_user:
            return task
        user = await self._user_repository.get(task.assigned_user)
        if user is None:
            if task.completed:
                return task
            logger.warning(
                "Task references a missing user; unassigning",
                extra={"task_id": task.id, "assigned_user": task.assigned_user},
            )
            task.assigned_user = ""
            task.assigned_user_name = UNASSIGNED
            return await self._repository.replace(task)
        if task.completed:
            await remove_pending_task(self._user_repository, user, task.id)
            return task
        if task.assigned_user_name != user.name:
            logger.warning(
                "Repairing stale assignee name",
                extra={"task_id": task.id, "stored": task.assigned_user_name, "actual": user.name},
            )
            task.assigned_user_name = user.name
            task = await self._repository.replace(task)
        if task.id not in user.pending_tasks:
            logger.info(
                "Adding task to assignee pending list",
                extra={"task_id": task.id, "user_id": user.id},
            )
        await add_pending_task(self._user_repository, user, task.id)
        return task

    async def create_task(
        self,
        *,
        name: str | None,
        deadline: datetime | None,
        description: str | None = None,
        completed: bool | None = False,
        assigned_user: str | None = None,
        assigned_user_name: str | None = None,
    ) -> Task:
        """Create a task, optionally pre-assigned, and list it under its assignee."""
        with operation_scope("task.create"):
            name = require_text(name, "name")
            if deadline is None:
                raise ValidationError("Missing required field: deadline.", details={"field": "deadline"})

            assignee_id = (assigned_user or "").strip()
            if assignee_id:
                user = await self._resolve_assignee(assignee_id)
                display_name = resolve_assignee_name(user, assigned_user_name)
            else:
                display_name = check_unassigned_name(assigned_user_name)

            task = Task(
                name=name,
                description=description,
                deadline=deadline,
                completed=bool(completed),
                assigned_user=assignee_id,
                assigned_user_name=display_name,
            )

            plan = WritePlan("task.create")
            plan.add("insert task", partial(self._repository.insert, task))
            if task.is_open:
                plan.add(f"list task under user {assignee_id}", lambda: self.reconcile_task(task))
            results = await plan.execute()
            created: Task = results[-1]

            logger.info(
                "Task created",
                extra={"task_id": created.id, "assigned_user": created.assigned_user},
            )
            return created

    async def get_task(self, task_id: str) -> Task:
        """Return a task, repairing assignment drift when healing reads are enabled."""
        task = await self._require_task(task_id)
        if self._settings.heal_on_read:
            with operation_scope("task.read"):
                task = await self.reconcile_task(task)
        return task

    async def list_tasks(
        self,
        filters: Filters | None = None,
        *,
        sort: SortSpec = (),
        skip: int = 0,
        limit: int | None = None,
    ) -> list[Task]:
        return await self._repository.find(filters, sort=sort, skip=skip, limit=limit)

    async def count_tasks(self, filters: Filters | None = None) -> int:
        return await self._repository.count(filters)

    async def update_task(
        self,
        task_id: str,
        *,
        id: Maybe[str | None] = UNSET,
        name: Maybe[str | None] = UNSET,
        description: Maybe[str | None] = UNSET,
        deadline: Maybe[datetime | None] = UNSET,
        completed: Maybe[bool | None] = UNSET,
        assigned_user: Maybe[str | None] = UNSET,
        assigned_user_name: Maybe[str | None] = UNSET,
    ) -> Task:
        """Apply a partial update to an open task.

        Arguments left as ``UNSET`` are untouched. An explicit empty
        ``assigned_user`` unassigns the task.
        """
        with operation_scope("task.update"):
            task = await self._require_task(task_id)
            if task.completed:
                raise ImmutableError(
                    f"Task {task_id} is completed and can no longer be modified.",
                    details={"taskId": task_id},
                )
            if is_set(id) and id is not None and id != task.id:
                raise ValidationError("Task id cannot be changed.", details={"field": "id"})

            if is_set(name):
                task.name = require_text(name, "name")  # type: ignore[arg-type]
            if is_set(description):
                task.description = description  # type: ignore[assignment]
            if is_set(deadline):
                if deadline is None:
                    raise ValidationError("Missing required field: deadline.", details={"field": "deadline"})
                task.deadline = deadline  # type: ignore[assignment]
            if is_set(completed):
                task.completed = bool(completed)

            hint = assigned_user_name if is_set(assigned_user_name) else None
            previous_assignee = task.assigned_user
            new_assignee = previous_assignee
            if is_set(assigned_user):
                new_assignee = (assigned_user or "").strip()  # type: ignore[union-attr]
            reassigned = new_assignee != previous_assignee

            if new_assignee and (reassigned or hint):
                user = await self._resolve_assignee(new_assignee)
                task.assigned_user_name = resolve_assignee_name(user, hint)  # type: ignore[arg-type]
            elif not new_assignee:
                task.assigned_user_name = check_unassigned_name(hint)  # type: ignore[arg-type]
            task.assigned_user = new_assignee

            plan = WritePlan("task.update")
            if reassigned and previous_assignee:
                plan.add(
                    f"drop task from user {previous_assignee}",
                    partial(detach_from_user, self._user_repository, previous_assignee, task.id),
                )
            plan.add("replace task", partial(self._repository.replace, task))
            plan.add("reconcile assignee pending list", lambda: self.reconcile_task(task))
            results = await plan.execute()
            updated: Task = results[-1]

            logger.info(
                "Task updated",
                extra={
                    "task_id": updated.id,
                    "reassigned": reassigned,
                    "assigned_user": updated.assigned_user,
                    "completed": updated.completed,
                },
            )
            return updated

    async def delete_task(self, task_id: str) -> Task:
        """Delete a task and remove it from its assignee's pending set."""
        with operation_scope("task.delete"):
            task = await self._require_task(task_id)

            plan = WritePlan("task.delete")
            if task.assigned_user:
                plan.add(
                    f"drop task from user {task.assigned_user}",
                    partial(detach_from_user, self._user_repository, task.assigned_user, task.id),
                )
            plan.add("delete task", partial(self._repository.delete, task.id))
            results = await plan.execute()
            if results[-1] is None:
                raise NotFoundError(f"Task {task_id} not found.", details={"taskId": task_id})

            logger.info("Task deleted", extra={"task_id": task.id, "assigned_user": task.assigned_user})
            return task


__all__ = ["TaskService"]
