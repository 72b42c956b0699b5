from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Dict, List, Optional, Sequence, TypeVar

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from core.config import settings
from core.exceptions import StoreUnavailable


logger = logging.getLogger(__name__)

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseRepository:
    """Thin async wrapper over a Motor database.

    Every call is bounded by ``timeout`` seconds. Driver failures and timeouts
    are re-raised as ``StoreUnavailable`` so nothing above this layer sees a
    pymongo type, except ``DuplicateKeyError`` which callers use as a
    uniqueness signal.
    """

    def __init__(self, db: AsyncIOMotorDatabase, *, timeout: Optional[float] = None) -> None:
        self.db = db
        self.timeout = timeout if timeout is not None else settings.store_timeout_seconds

    @staticmethod
    def _ensure_object_id(value: Any) -> Any:
        if isinstance(value, ObjectId):
            return value
        try:
            return ObjectId(str(value))
        except (InvalidId, TypeError):
            # Seed-style string keys are stored as-is
            return str(value)

    async def _run(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except DuplicateKeyError:
            raise
        except (PyMongoError, asyncio.TimeoutError) as exc:
            logger.error(
                "store.unavailable",
                extra={"operation": operation, "error": repr(exc)},
            )
            raise StoreUnavailable(operation) from exc

    async def find_many(
        self,
        collection: str,
        query: Dict[str, Any] | None = None,
        *,
        sort: Optional[Sequence[tuple[str, int]]] = None,
    ) -> List[Dict[str, Any]]:
        cursor = self.db[collection].find(query or {})
        if sort:
            cursor = cursor.sort(list(sort))
        return await self._run(f"{collection}.find", cursor.to_list(length=None))

    async def find_one(self, collection: str, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return await self._run(f"{collection}.find_one", self.db[collection].find_one(query))

    async def insert_one(self, collection: str, doc: Dict[str, Any], *, with_timestamps: bool = True) -> Any:
        # Never persist a null _id; the driver generates one
        if doc.get("_id", "__absent__") is None:
            doc = {k: v for k, v in doc.items() if k != "_id"}

        if with_timestamps:
            now = utcnow()
            if doc.get("created_at") is None:
                doc["created_at"] = now
            if doc.get("updated_at") is None:
                doc["updated_at"] = now
        result = await self._run(f"{collection}.insert", self.db[collection].insert_one(doc))
        return result.inserted_id

    async def update_one(
        self,
        collection: str,
        filter_query: Dict[str, Any],
        update: Dict[str, Any],
        *,
        touch_updated_at: bool = True,
    ) -> Optional[Dict[str, Any]]:
        """Apply ``update`` and return the document as it is afterwards."""
        if touch_updated_at:
            update = {**update}
            set_part = update.get("$set", {})
            set_part = {**set_part, "updated_at": utcnow()}
            update["$set"] = set_part
        return await self._run(
            f"{collection}.update",
            self.db[collection].find_one_and_update(
                filter_query, update, return_document=ReturnDocument.AFTER
            ),
        )

    async def delete_one(self, collection: str, query: Dict[str, Any]) -> int:
        result = await self._run(f"{collection}.delete", self.db[collection].delete_one(query))
        return result.deleted_count
