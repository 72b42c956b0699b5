from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from core.exceptions import SlotTaken, StoreUnavailable
from repositories.appointments import AppointmentRepository


logger = logging.getLogger(__name__)


def _as_utc(value: Any) -> Optional[datetime]:
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ConflictChecker:
    def __init__(self, repository: AppointmentRepository) -> None:
        self.repository = repository

    async def has_conflict(self, date: str, time: str, exclude_id: Optional[str] = None) -> bool:
        """True when a confirmed appointment other than ``exclude_id`` holds the slot."""
        occupants = await self.repository.find_confirmed_in_slot(date, time)
        conflict = any(a.id != exclude_id for a in occupants)
        if conflict:
            logger.info(
                "appointments.conflict_detected",
                extra={"date": date, "time": time, "exclude_id": exclude_id},
            )
        return conflict


class SlotGuard:
    """Claims and releases the per-slot lock records.

    The conflict query gives the user a readable answer early; the lock is
    what actually keeps two concurrent writers out of one slot. A lock whose
    holder is gone, cancelled or moved is stale once it is older than
    ``stale_after`` and gets taken over.
    """

    def __init__(self, repository: AppointmentRepository, *, stale_after: Optional[timedelta] = None) -> None:
        self.repository = repository
        self.stale_after = stale_after or timedelta(seconds=max(repository.timeout, 1.0) * 3)

    async def claim(self, date: str, time: str, appointment_id: str) -> None:
        if await self.repository.claim_slot(date, time, appointment_id):
            return
        if await self._is_stale(date, time, appointment_id):
            if await self.repository.claim_slot(date, time, appointment_id):
                return
        logger.info("appointments.slot_taken", extra={"date": date, "time": time})
        raise SlotTaken(date, time)

    async def release(self, date: str, time: str, appointment_id: str) -> None:
        await self.repository.release_slot(date, time, appointment_id)

    async def release_quietly(self, date: str, time: str, appointment_id: str) -> bool:
        """Release without failing the caller; a lock left behind ages out as stale."""
        try:
            await self.release(date, time, appointment_id)
        except StoreUnavailable:
            logger.warning(
                "appointments.slot_release_failed",
                extra={"date": date, "time": time, "appointment_id": appointment_id},
            )
            return False
        return True

    async def _is_stale(self, date: str, time: str, appointment_id: str) -> bool:
        lock = await self.repository.get_slot_lock(date, time)
        if not lock:
            return True
        holder = lock.get("appointment_id")
        if holder == appointment_id:
            return True
        created = _as_utc(lock.get("created_at"))
        if created and datetime.now(timezone.utc) - created < self.stale_after:
            # Holder may still be between claim and insert
            return False
        current = await self.repository.get(holder) if holder else None
        if current is not None and current.is_confirmed and (current.date, current.time) == (date, time):
            return False
        logger.warning(
            "appointments.stale_slot_lock",
            extra={"date": date, "time": time, "holder": holder},
        )
        await self.repository.release_slot(date, time, holder)
        return True
