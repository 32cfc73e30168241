"""Single-document store primitives on top of an async SQLModel session.

Every write commits on its own: there is no transaction spanning two
documents, so callers that touch several documents must order their writes
and tolerate the gaps between them.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import asynccontextmanager
from typing import Any, Generic, TypeVar

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..errors import ApplicationError, NotFoundError, StorageError, ValidationError

ModelType = TypeVar("ModelType", bound=SQLModel)

Filters = Mapping[str, Any]
SortSpec = Sequence[tuple[str, bool]]

logger = logging.getLogger(__name__)


class BaseRepository(Generic[ModelType]):
    """Document-style CRUD for one table.

    Instances handed out are detached from the session, so in-memory edits
    only reach the database through an explicit :meth:`replace`.
    """

    def __init__(self, session: AsyncSession, model_type: type[ModelType]) -> None:
        self._session = session
        self._model_type = model_type

    @property
    def session(self) -> AsyncSession:
        """Return the session associated with the repository."""
        return self._session

    @property
    def collection(self) -> str:
        return str(self._model_type.__tablename__)

    def _translate_error(self, exc: SQLAlchemyError, action: str) -> ApplicationError:
        return StorageError(f"Could not {action} {self.collection} document.")

    @asynccontextmanager
    async def _guard(self, action: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error(
                "Store operation failed",
                extra={"collection": self.collection, "action": action},
                exc_info=exc,
            )
            raise self._translate_error(exc, action) from exc

    def _column(self, field: str) -> Any:
        columns = self._model_type.__table__.columns  # type: ignore[attr-defined]
        if field not in columns:
            raise ValidationError(
                f"Unknown field '{field}' for {self.collection}.",
                details={"field": field},
            )
        return getattr(self._model_type, field)

    def _criteria(self, filters: Filters | None) -> list[Any]:
        criteria: list[Any] = []
        for field, value in (filters or {}).items():
            column = self._column(field)
            if isinstance(value, (list, tuple, set, frozenset)):
                criteria.append(column.in_(list(value)))
            else:
                criteria.append(column == value)
        return criteria

    async def get(self, entity_id: str) -> ModelType | None:
        """Return a detached snapshot of the document, or ``None``."""
        async with self._guard("load"):
            instance = await self._session.get(self._model_type, entity_id)
            if instance is not None:
                self._session.expunge(instance)
        return instance

    async def insert(self, instance: ModelType) -> ModelType:
        """Persist a new document and return its stored state."""
        async with self._guard("insert"):
            self._session.add(instance)
            await self._session.commit()
            await self._session.refresh(instance)
            self._session.expunge(instance)
        return instance

    async def replace(self, instance: ModelType) -> ModelType:
        """Overwrite the stored document with ``instance`` (last writer wins).

        The document must still exist; a deleted one is never recreated.
        """
        entity_id = instance.id  # type: ignore[attr-defined]
        async with self._guard("replace"):
            current = await self._session.get(self._model_type, entity_id)
            if current is None:
                await self._session.rollback()
                raise NotFoundError(
                    f"Cannot replace missing {self.collection} document {entity_id}.",
                    details={"collection": self.collection, "id": entity_id},
                )
            merged = await self._session.merge(instance)
            await self._session.commit()
            await self._session.refresh(merged)
            self._session.expunge(merged)
        return merged

    async def delete(self, entity_id: str) -> ModelType | None:
        """Remove the document, returning its prior state or ``None``."""
        async with self._guard("delete"):
            instance = await self._session.get(self._model_type, entity_id)
            if instance is None:
                return None
            await self._session.delete(instance)
            await self._session.commit()
        return instance

    async def update_many(self, filters: Filters, patch: Mapping[str, Any]) -> int:
        """Apply ``patch`` to every document matching ``filters``.

        A list, tuple or set filter value matches by membership.
        """
        for field in patch:
            self._column(field)
        statement = (
            sa.update(self._model_type)
            .where(*self._criteria(filters))
            .values(**dict(patch))
            .execution_options(synchronize_session=False)
        )
        async with self._guard("update"):
            result = await self._session.execute(statement)
            await self._session.commit()
        return int(result.rowcount or 0)

    async def find(
        self,
        filters: Filters | None = None,
        *,
        sort: SortSpec = (),
        skip: int = 0,
        limit: int | None = None,
    ) -> list[ModelType]:
        """Return detached documents matching ``filters``."""
        query = select(self._model_type).where(*self._criteria(filters))
        for field, descending in sort:
            column = self._column(field)
            query = query.order_by(column.desc() if descending else column.asc())
        if skip:
            query = query.offset(skip)
        if limit:
            query = query.limit(limit)
        async with self._guard("query"):
            result = await self._session.execute(query)
            instances = list(result.scalars().all())
            for instance in instances:
                self._session.expunge(instance)
        return instances

    async def count(self, filters: Filters | None = None) -> int:
        query = select(sa.func.count()).select_from(self._model_type).where(*self._criteria(filters))
        async with self._guard("count"):
            result = await self._session.execute(query)
        return int(result.scalar_one())


__all__ = ["BaseRepository", "Filters", "SortSpec"]
