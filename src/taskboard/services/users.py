"""User-side operations of the assignment consistency engine."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from functools import partial

from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.config import Settings, get_settings
from ..core.context import operation_scope
from ..errors import ConflictError, ImmutableError, InvalidReferenceError, NotFoundError, ValidationError
from ..models import UNASSIGNED, Task, User
from ..repositories import TaskRepository, UserRepository
from ..repositories.base import Filters, SortSpec
from .plan import WritePlan
from .references import UNSET, Maybe, dedupe_ids, detach_from_user, is_set, require_text

logger = logging.getLogger(__name__)

_UNASSIGN_PATCH = {"assigned_user": "", "assigned_user_name": UNASSIGNED}


class UserService:
    """Create, update and delete users while keeping their tasks pointing back at them."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._repository = UserRepository(session)
        self._task_repository = TaskRepository(session)

    @property
    def repository(self) -> UserRepository:
        """Expose the underlying repository for advanced scenarios."""
        return self._repository

    async def _require_user(self, user_id: str) -> User:
        user = await self._repository.get(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found.", details={"userId": user_id})
        return user

    async def _ensure_email_available(self, email: str, *, owner_id: str | None = None) -> None:
        existing = await self._repository.get_by_email(email)
        if existing is not None and existing.id != owner_id:
            raise ConflictError(
                "Email already exists. Please use a different email.",
                details={"field": "email"},
            )

    async def _load_assignable_tasks(self, task_ids: Sequence[str]) -> list[Task]:
        """Fetch every task in ``task_ids``; each must exist and still be open."""
        tasks: list[Task] = []
        for task_id in task_ids:
            task = await self._task_repository.get(task_id)
            if task is None:
                raise InvalidReferenceError(
                    f"Task {task_id} does not exist.",
                    details={"taskId": task_id},
                )
            if task.completed:
                raise ImmutableError(
                    f"Task {task_id} is completed and cannot be assigned.",
                    details={"taskId": task_id},
                )
            tasks.append(task)
        return tasks

    def _plan_detachments(self, plan: WritePlan, tasks: Sequence[Task], user_id: str) -> None:
        for task in tasks:
            if task.assigned_user and task.assigned_user != user_id:
                plan.add(
                    f"drop task {task.id} from user {task.assigned_user}",
                    partial(detach_from_user, self._repository, task.assigned_user, task.id),
                )

    async def create_user(
        self,
        *,
        name: str | None,
        email: str | None,
        pending_tasks: Sequence[str] | None = None,
    ) -> User:
        """Create a user, taking ownership of the open tasks listed in ``pending_tasks``."""
        with operation_scope("user.create"):
            name = require_text(name, "name")
            email = require_text(email, "email")
            await self._ensure_email_available(email)

            task_ids = dedupe_ids(pending_tasks or [])
            tasks = await self._load_assignable_tasks(task_ids)
            user = User(name=name, email=email, pending_tasks=task_ids)

            plan = WritePlan("user.create")
            self._plan_detachments(plan, tasks, user.id)
            plan.add("insert user", partial(self._repository.insert, user))
            if task_ids:
                plan.add(
                    "point tasks at user",
                    lambda: self._task_repository.update_many(
                        {"id": task_ids},
                        {"assigned_user": user.id, "assigned_user_name": user.name},
                    ),
                )
            await plan.execute()

            logger.info("User created", extra={"user_id": user.id, "pending_tasks": len(task_ids)})
            return user

    async def get_user(self, user_id: str) -> User:
        """Return a user, rebuilding a drifted pending set when healing reads are enabled."""
        user = await self._require_user(user_id)
        if self._settings.heal_on_read:
            with operation_scope("user.read"):
                user = await self.reconcile_user(user)
        return user

    async def reconcile_user(self, user: User) -> User:
        """Recompute ``pending_tasks`` from the tasks that reference ``user``.

        Ids of missing, completed or reassigned tasks are dropped; open tasks
        pointing at the user but absent from the set are appended.
        """
        referencing = await self._task_repository.list_assigned_to(user.id)
        open_ids = [task.id for task in referencing if not task.completed]
        kept = [task_id for task_id in dedupe_ids(user.pending_tasks) if task_id in open_ids]
        healed = kept + [task_id for task_id in open_ids if task_id not in kept]
        if healed == list(user.pending_tasks):
            return user
        logger.warning(
            "Repairing drifted pending task list",
            extra={"user_id": user.id, "stored": list(user.pending_tasks), "healed": healed},
        )
        user.pending_tasks = healed
        return await self._repository.replace(user)

    async def list_users(
        self,
        filters: Filters | None = None,
        *,
        sort: SortSpec = (),
        skip: int = 0,
        limit: int | None = None,
    ) -> list[User]:
        return await self._repository.find(filters, sort=sort, skip=skip, limit=limit)

    async def count_users(self, filters: Filters | None = None) -> int:
        return await self._repository.count(filters)

    async def update_user(
        self,
        user_id: str,
        *,
        id: Maybe[str | None] = UNSET,
        name: Maybe[str | None] = UNSET,
        email: Maybe[str | None] = UNSET,
        pending_tasks: Maybe[Sequence[str] | None] = UNSET,
    ) -> User:
        """Apply a partial update to a user.

        A ``pending_tasks`` list is the full desired set: listed tasks are
        assigned to the user, and tasks the user held before but that are no
        longer listed are unassigned.
        """
        with operation_scope("user.update"):
            user = await self._require_user(user_id)
            if is_set(id) and id is not None and id != user.id:
                raise ValidationError("User id cannot be changed.", details={"field": "id"})

            previous_name = user.name
            if is_set(name):
                user.name = require_text(name, "name")  # type: ignore[arg-type]
            if is_set(email):
                new_email = require_text(email, "email")  # type: ignore[arg-type]
                if new_email != user.email:
                    await self._ensure_email_available(new_email, owner_id=user.id)
                    user.email = new_email

            plan = WritePlan("user.update")
            desired: list[str] = []
            released: list[str] = []
            replacing_pending = is_set(pending_tasks) and pending_tasks is not None
            if replacing_pending:
                desired = dedupe_ids(pending_tasks)  # type: ignore[arg-type]
                tasks = await self._load_assignable_tasks(desired)
                held = await self._task_repository.list_assigned_to(user.id)
                candidates = dedupe_ids(
                    [*user.pending_tasks, *(task.id for task in held if not task.completed)]
                )
                released = [task_id for task_id in candidates if task_id not in desired]
                user.pending_tasks = desired
                self._plan_detachments(plan, tasks, user.id)

            replace_step = len(plan)
            plan.add("replace user", partial(self._repository.replace, user))
            if desired:
                plan.add(
                    "point desired tasks at user",
                    lambda: self._task_repository.update_many(
                        {"id": desired},
                        {"assigned_user": user.id, "assigned_user_name": user.name},
                    ),
                )
            if released:
                plan.add(
                    "unassign released tasks",
                    lambda: self._task_repository.update_many(
                        {"id": released, "assigned_user": user.id, "completed": False},
                        _UNASSIGN_PATCH,
                    ),
                )
            if user.name != previous_name:
                plan.add(
                    "propagate renamed user to tasks",
                    lambda: self._task_repository.update_many(
                        {"assigned_user": user.id},
                        {"assigned_user_name": user.name},
                    ),
                )
            results = await plan.execute()
            updated: User = results[replace_step]

            logger.info(
                "User updated",
                extra={
                    "user_id": updated.id,
                    "renamed": updated.name != previous_name,
                    "pending_replaced": replacing_pending,
                    "released": len(released),
                },
            )
            return updated

    async def delete_user(self, user_id: str) -> User:
        """Delete a user and unassign every task that referenced them."""
        with operation_scope("user.delete"):
            user = await self._require_user(user_id)

            plan = WritePlan("user.delete")
            plan.add("delete user", partial(self._repository.delete, user.id))
            plan.add(
                "unassign tasks of deleted user",
                partial(self._task_repository.update_many, {"assigned_user": user.id}, _UNASSIGN_PATCH),
            )
            results = await plan.execute()
            if results[0] is None:
                raise NotFoundError(f"User {user_id} not found.", details={"userId": user_id})

            logger.info("User deleted", extra={"user_id": user.id, "unassigned_tasks": results[1]})
            return user


__all__ = ["UserService"]
