from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

from core.config import settings
from models.appointment import Appointment, AppointmentStatus
from .base import BaseRepository, utcnow


logger = logging.getLogger(__name__)


def slot_key(date: str, time: str) -> str:
    return f"{date}|{time}"


def sort_appointments(items: List[Appointment]) -> List[Appointment]:
    """Order by creation time; documents without one fall back to "date time"."""
    stamped = [a for a in items if a.created_at is not None]
    unstamped = [a for a in items if a.created_at is None]
    stamped.sort(key=lambda a: a.created_at)
    unstamped.sort(key=lambda a: f"{a.date} {a.time}")
    return stamped + unstamped


class AppointmentRepository(BaseRepository):
    """Store adapter for the appointments collection and its slot locks.

    A slot lock is a document in the slots collection keyed by
    ``"date|time"``. The unique ``_id`` makes the store reject a second
    confirmed appointment in the same slot even when two writers pass the
    conflict query at the same time.
    """

    def __init__(self, db: AsyncIOMotorDatabase, *, timeout: Optional[float] = None) -> None:
        super().__init__(db, timeout=timeout)
        self.collection = settings.appointments_collection
        self.slots_collection = settings.slots_collection

    async def ensure_indexes(self) -> None:
        coll = self.db[self.collection]
        await self._run(
            "appointments.create_index",
            coll.create_index(
                [("date", ASCENDING), ("time", ASCENDING), ("status", ASCENDING)],
                name="slot_status",
            ),
        )
        await self._run(
            "appointments.create_index",
            coll.create_index([("owner_id", ASCENDING)], name="owner"),
        )

    def new_id(self) -> str:
        return str(ObjectId())

    async def create(self, doc: Dict[str, Any]) -> Appointment:
        doc = {**doc, "_id": self._ensure_object_id(doc["_id"])}
        await self.insert_one(self.collection, doc)
        return Appointment(**doc)

    async def get(self, appointment_id: str) -> Optional[Appointment]:
        doc = await self.find_one(self.collection, {"_id": self._ensure_object_id(appointment_id)})
        return Appointment(**doc) if doc else None

    async def update_fields(self, appointment_id: str, fields: Dict[str, Any]) -> Optional[Appointment]:
        doc = await self.update_one(
            self.collection,
            {"_id": self._ensure_object_id(appointment_id)},
            {"$set": fields},
        )
        return Appointment(**doc) if doc else None

    async def find_confirmed_in_slot(self, date: str, time: str) -> List[Appointment]:
        docs = await self.find_many(
            self.collection,
            {"date": date, "time": time, "status": AppointmentStatus.confirmed.value},
        )
        return [Appointment(**d) for d in docs]

    async def list_all(self) -> List[Appointment]:
        docs = await self.find_many(self.collection, {})
        return sort_appointments([Appointment(**d) for d in docs])

    async def list_by_owner(self, owner_id: str) -> List[Appointment]:
        docs = await self.find_many(self.collection, {"owner_id": owner_id})
        return sort_appointments([Appointment(**d) for d in docs])

    async def claim_slot(self, date: str, time: str, appointment_id: str) -> bool:
        """Create the lock for ``(date, time)``; False when another holder exists."""
        lock = {
            "_id": slot_key(date, time),
            "appointment_id": appointment_id,
            "created_at": utcnow(),
        }
        try:
            await self.insert_one(self.slots_collection, lock, with_timestamps=False)
        except DuplicateKeyError:
            existing = await self.get_slot_lock(date, time)
            if existing and existing.get("appointment_id") == appointment_id:
                return True
            logger.info(
                "appointments.slot_lock_held",
                extra={"date": date, "time": time, "holder": (existing or {}).get("appointment_id")},
            )
            return False
        return True

    async def get_slot_lock(self, date: str, time: str) -> Optional[Dict[str, Any]]:
        return await self.find_one(self.slots_collection, {"_id": slot_key(date, time)})

    async def release_slot(self, date: str, time: str, appointment_id: str) -> None:
        # Only the holder may release; a stale release must not free someone else's slot
        await self.delete_one(
            self.slots_collection,
            {"_id": slot_key(date, time), "appointment_id": appointment_id},
        )
