"""
Record Store

Thin document-style facade over an async SQLAlchemy session, one instance
per table:

    store = RecordStore(db, MenuItem)
    item = await store.insert({"name": "Pizza", ...})
    item = await store.find_by_id(item_id)
    item = await store.update_by_id(item_id, {"price": 10.5})
    item = await store.delete_by_id(item_id)
    ok = await store.exists(category_id)

Every write is committed on its own; there is no transaction spanning
several calls. Database failures roll the session back and surface as
RecordStoreError. Malformed identifiers are answered as "absent" without
issuing a query.
"""

import logging
from typing import Any, Generic, Optional, TypeVar

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import RecordStoreError
from app.core.identifiers import is_valid_object_id
from app.database import Base

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class RecordStore(Generic[ModelT]):

    def __init__(self, session: AsyncSession, model: type[ModelT]):
        self._session = session
        self._model = model
        self._name = model.__tablename__

    async def _fail(self, action: str, exc: Exception) -> RecordStoreError:
        logger.error(f"Record store {action} on '{self._name}' failed: {exc}")
        await self._session.rollback()
        return RecordStoreError(f"Record store {action} failed")

    async def insert(self, doc: dict[str, Any]) -> ModelT:
        """Persist a new record and return it with its generated id."""
        record = self._model(**doc)
        try:
            self._session.add(record)
            await self._session.commit()
            await self._session.refresh(record)
        except SQLAlchemyError as e:
            raise await self._fail("insert", e)
        logger.debug(f"Inserted {self._name} {record.id}")
        return record

    async def find_by_id(self, record_id: Any) -> Optional[ModelT]:
        if not is_valid_object_id(record_id):
            return None
        try:
            return await self._session.get(self._model, record_id)
        except SQLAlchemyError as e:
            raise await self._fail("lookup", e)

    async def find_many(self, record_ids: list[str]) -> dict[str, ModelT]:
        """Fetch several records at once, keyed by id. Unknown ids are omitted."""
        ids = {i for i in record_ids if is_valid_object_id(i)}
        if not ids:
            return {}
        try:
            result = await self._session.execute(
                select(self._model).where(self._model.id.in_(ids))
            )
        except SQLAlchemyError as e:
            raise await self._fail("lookup", e)
        return {record.id: record for record in result.scalars().all()}

    async def update_by_id(self, record_id: Any, patch: dict[str, Any]) -> Optional[ModelT]:
        """Apply patch to an existing record. Returns None if it does not exist."""
        record = await self.find_by_id(record_id)
        if record is None:
            return None
        try:
            for key, value in patch.items():
                setattr(record, key, value)
            await self._session.commit()
            await self._session.refresh(record)
        except SQLAlchemyError as e:
            raise await self._fail("update", e)
        logger.debug(f"Updated {self._name} {record_id}: {sorted(patch)}")
        return record

    async def delete_by_id(self, record_id: Any) -> Optional[ModelT]:
        """Delete a record and return it, or None if it did not exist."""
        record = await self.find_by_id(record_id)
        if record is None:
            return None
        try:
            await self._session.delete(record)
            await self._session.commit()
        except SQLAlchemyError as e:
            raise await self._fail("delete", e)
        logger.debug(f"Deleted {self._name} {record_id}")
        return record

    async def exists(self, record_id: Any) -> bool:
        if not is_valid_object_id(record_id):
            return False
        try:
            result = await self._session.execute(
                select(self._model.id).where(self._model.id == record_id)
            )
        except SQLAlchemyError as e:
            raise await self._fail("existence check", e)
        return result.scalar_one_or_none() is not None

    async def list_all(
        self,
        offset: int = 0,
        limit: Optional[int] = None,
        newest_first: bool = False,
        **filters: Any,
    ) -> list[ModelT]:
        query = select(self._model).filter_by(**filters)
        if newest_first:
            query = query.order_by(self._model.created_at.desc())
        else:
            query = query.order_by(self._model.created_at)
        query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        try:
            result = await self._session.execute(query)
        except SQLAlchemyError as e:
            raise await self._fail("list", e)
        return list(result.scalars().all())

    async def count(self, **filters: Any) -> int:
        query = select(func.count(self._model.id)).filter_by(**filters)
        try:
            result = await self._session.execute(query)
        except SQLAlchemyError as e:
            raise await self._fail("count", e)
        return result.scalar() or 0
