"""User Store: persistence primitives for user documents."""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from ..errors import ApplicationError, ConflictError
from ..models import User
from .base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Concrete repository for CRUD operations on ``User`` documents."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, User)

    def _translate_error(self, exc: SQLAlchemyError, action: str) -> ApplicationError:
        # email is the only unique column besides the primary key
        if isinstance(exc, IntegrityError):
            return ConflictError(
                "Email already exists. Please use a different email.",
                details={"field": "email"},
            )
        return super()._translate_error(exc, action)

    async def get_by_email(self, email: str) -> User | None:
        """Return a user matching the supplied email if it exists."""
        matches = await self.find({"email": email}, limit=1)
        return matches[0] if matches else None
