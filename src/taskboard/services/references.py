"""Helpers shared by the task and user sides of the assignment engine."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Final, TypeVar, Union

from ..errors import NotFoundError, ValidationError
from ..models import UNASSIGNED, User
from ..repositories import UserRepository

T = TypeVar("T")


class _Unset:
    """Marker for a field the caller did not send."""

    _instance: "_Unset | None" = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Final = _Unset()

Maybe = Union[T, _Unset]


def is_set(value: object) -> bool:
    return value is not UNSET


def dedupe_ids(ids: Iterable[str]) -> list[str]:
    """Drop duplicate and blank ids, keeping first-seen order."""
    seen: dict[str, None] = {}
    for item in ids:
        key = str(item).strip()
        if key and key not in seen:
            seen[key] = None
    return list(seen)


def with_task_id(pending: Iterable[str], task_id: str) -> list[str]:
    """Return ``pending`` with ``task_id`` present exactly once."""
    ids = dedupe_ids(pending)
    if task_id not in ids:
        ids.append(task_id)
    return ids


def without_task_id(pending: Iterable[str], task_id: str) -> list[str]:
    """Return ``pending`` with every occurrence of ``task_id`` removed."""
    return [item for item in dedupe_ids(pending) if item != task_id]


def require_text(value: str | None, field: str) -> str:
    """Return ``value`` stripped, or fail when it is missing or blank."""
    if value is None or not str(value).strip():
        raise ValidationError(f"Missing required field: {field}.", details={"field": field})
    return str(value).strip()


def resolve_assignee_name(user: User, hint: str | None) -> str:
    """Return the display name to denormalize onto a task assigned to ``user``.

    An empty hint counts as not supplied. A non-empty hint must equal the
    user's current name.
    """
    if hint and hint != user.name:
        raise ValidationError(
            "assignedUserName does not match the assigned user's name.",
            details={"assignedUserName": hint, "expected": user.name},
        )
    return user.name


def check_unassigned_name(hint: str | None) -> str:
    """Validate the display-name hint of a task that has no assignee."""
    if hint and hint != UNASSIGNED:
        raise ValidationError(
            "assignedUserName requires an assignedUser.",
            details={"assignedUserName": hint},
        )
    return UNASSIGNED


async def add_pending_task(users: UserRepository, user: User, task_id: str) -> User:
    """Ensure ``task_id`` is in the user's pending set, writing only on change."""
    pending = with_task_id(user.pending_tasks, task_id)
    if pending == list(user.pending_tasks):
        return user
    user.pending_tasks = pending
    return await users.replace(user)


async def remove_pending_task(users: UserRepository, user: User, task_id: str) -> User:
    """Ensure ``task_id`` is absent from the user's pending set."""
    pending = without_task_id(user.pending_tasks, task_id)
    if pending == list(user.pending_tasks):
        return user
    user.pending_tasks = pending
    return await users.replace(user)


async def detach_from_user(users: UserRepository, user_id: str, task_id: str) -> User | None:
    """Drop ``task_id`` from the pending set of ``user_id`` if that user exists."""
    if not user_id:
        return None
    user = await users.get(user_id)
    if user is None:
        return None
    try:
        return await remove_pending_task(users, user, task_id)
    except NotFoundError:
        # deleted between the read and the write
        return None


__all__ = [
    "Maybe",
    "UNSET",
    "add_pending_task",
    "check_unassigned_name",
    "dedupe_ids",
    "detach_from_user",
    "is_set",
    "remove_pending_task",
    "require_text",
    "resolve_assignee_name",
    "with_task_id",
    "without_task_id",
]
