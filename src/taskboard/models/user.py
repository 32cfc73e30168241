"""User documents built with SQLModel."""

from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .common import new_document_id, utcnow


class UserBase(SQLModel, table=False):
    """Shared attributes for user models."""

    name: str = Field(
        max_length=255,
        sa_column=sa.Column(sa.String(length=255), nullable=False),
    )
    email: str = Field(
        max_length=320,
        sa_column=sa.Column(sa.String(length=320), nullable=False, unique=True),
    )
    # Derived index of open task ids; the tasks table holds the authoritative reference.
    pending_tasks: list[str] = Field(
        default_factory=list,
        sa_column=sa.Column(sa.JSON(), nullable=False),
    )


class User(UserBase, table=True):
    """Persistent user document."""

    __tablename__ = "users"
    __table_args__ = (sa.CheckConstraint("length(name) > 0", name="ck_users_name_length"),)

    id: str = Field(default_factory=new_document_id, primary_key=True, max_length=64)
    date_created: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )


__all__ = ["User", "UserBase"]
