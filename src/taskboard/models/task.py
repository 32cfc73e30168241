"""Task documents built with SQLModel."""

from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .common import UNASSIGNED, new_document_id, utcnow


class TaskBase(SQLModel, table=False):
    """Shared attributes for task models."""

    name: str = Field(
        max_length=255,
        sa_column=sa.Column(sa.String(length=255), nullable=False),
    )
    description: str | None = Field(
        default=None,
        sa_column=sa.Column(sa.Text(), nullable=True),
    )
    deadline: datetime = Field(
        sa_column=sa.Column(sa.DateTime(timezone=True), nullable=False),
    )
    completed: bool = Field(
        default=False,
        sa_column=sa.Column(sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    # Plain string reference; the users table is a separate document collection.
    assigned_user: str = Field(
        default="",
        sa_column=sa.Column(sa.String(length=64), nullable=False, server_default=""),
    )
    assigned_user_name: str = Field(
        default=UNASSIGNED,
        sa_column=sa.Column(sa.String(length=255), nullable=False, server_default=UNASSIGNED),
    )


class Task(TaskBase, table=True):
    """Persistent task document."""

    __tablename__ = "tasks"
    __table_args__ = (
        sa.CheckConstraint("length(name) > 0", name="ck_tasks_name_length"),
        sa.Index("ix_tasks_assigned_user", "assigned_user"),
    )

    id: str = Field(default_factory=new_document_id, primary_key=True, max_length=64)
    date_created: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )

    @property
    def is_assigned(self) -> bool:
        return bool(self.assigned_user)

    @property
    def is_open(self) -> bool:
        """Whether the task should be listed in its assignee's pending set."""
        return self.is_assigned and not self.completed


__all__ = ["Task", "TaskBase"]
