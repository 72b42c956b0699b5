import asyncio
import itertools
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from models.appointment import Appointment, AppointmentStatus
from models.caller import Caller
from models.service import Service
from repositories.appointments import slot_key, sort_appointments
from services.booking import BookingEngine
from services.catalog import ServiceCatalog
from services.feed import AppointmentFeed
from services.lifecycle import LifecycleManager


PIX_KEY = "studio@example.com"


class InMemoryAppointmentRepository:
    """Stand-in for AppointmentRepository.

    Each call yields to the event loop first, so concurrent callers interleave
    the same way they would against a real store.
    """

    def __init__(self) -> None:
        self.timeout = 0.05
        self.docs: Dict[str, Dict[str, Any]] = {}
        self.slots: Dict[str, Dict[str, Any]] = {}
        self._ids = itertools.count(1)

    def new_id(self) -> str:
        return f"appt-{next(self._ids)}"

    async def create(self, doc: Dict[str, Any]) -> Appointment:
        await asyncio.sleep(0)
        stored = {**doc, "updated_at": datetime.now(timezone.utc)}
        self.docs[str(doc["_id"])] = stored
        return Appointment(**stored)

    async def get(self, appointment_id: str) -> Optional[Appointment]:
        await asyncio.sleep(0)
        doc = self.docs.get(appointment_id)
        return Appointment(**doc) if doc else None

    async def update_fields(self, appointment_id: str, fields: Dict[str, Any]) -> Optional[Appointment]:
        await asyncio.sleep(0)
        doc = self.docs.get(appointment_id)
        if doc is None:
            return None
        doc.update(fields)
        doc["updated_at"] = datetime.now(timezone.utc)
        return Appointment(**doc)

    async def find_confirmed_in_slot(self, date: str, time: str) -> List[Appointment]:
        await asyncio.sleep(0)
        return [
            Appointment(**d)
            for d in self.docs.values()
            if d["date"] == date and d["time"] == time and d["status"] == AppointmentStatus.confirmed.value
        ]

    async def list_all(self) -> List[Appointment]:
        await asyncio.sleep(0)
        return sort_appointments([Appointment(**d) for d in self.docs.values()])

    async def list_by_owner(self, owner_id: str) -> List[Appointment]:
        await asyncio.sleep(0)
        return sort_appointments([Appointment(**d) for d in self.docs.values() if d.get("owner_id") == owner_id])

    async def claim_slot(self, date: str, time: str, appointment_id: str) -> bool:
        await asyncio.sleep(0)
        key = slot_key(date, time)
        existing = self.slots.get(key)
        if existing is not None:
            return existing["appointment_id"] == appointment_id
        self.slots[key] = {"_id": key, "appointment_id": appointment_id, "created_at": datetime.now(timezone.utc)}
        return True

    async def get_slot_lock(self, date: str, time: str) -> Optional[Dict[str, Any]]:
        await asyncio.sleep(0)
        return self.slots.get(slot_key(date, time))

    async def release_slot(self, date: str, time: str, appointment_id: str) -> None:
        await asyncio.sleep(0)
        key = slot_key(date, time)
        if self.slots.get(key, {}).get("appointment_id") == appointment_id:
            del self.slots[key]


class InMemoryServiceRepository:
    def __init__(self, services: Optional[List[Service]] = None) -> None:
        self.services: List[Service] = list(services or [])
        self._ids = itertools.count(1)

    async def list_all(self) -> List[Service]:
        await asyncio.sleep(0)
        return list(self.services)

    async def create(self, name: str, price: float, description: str) -> Service:
        await asyncio.sleep(0)
        service = Service(
            id=f"srv-{next(self._ids)}",
            name=name,
            price=price,
            description=description,
            timestamp=datetime.now(timezone.utc),
        )
        self.services.append(service)
        return service


@pytest.fixture
def appointment_repo():
    return InMemoryAppointmentRepository()


@pytest.fixture
def service_repo():
    return InMemoryServiceRepository()


@pytest.fixture
def catalog(service_repo):
    return ServiceCatalog(service_repo)


@pytest.fixture
def feed(appointment_repo):
    return AppointmentFeed(appointment_repo)


@pytest.fixture
def engine(appointment_repo, catalog, feed):
    return BookingEngine(appointment_repo, catalog, pix_key=PIX_KEY, feed=feed)


@pytest.fixture
def manager(appointment_repo, catalog, feed):
    return LifecycleManager(appointment_repo, catalog, pix_key=PIX_KEY, feed=feed, business_contact="WhatsApp")


@pytest.fixture
def ana():
    return Caller(id="client-ana")


@pytest.fixture
def bia():
    return Caller(id="client-bia")


@pytest.fixture
def admin():
    return Caller(id="admin-1", is_admin=True, email="admin@example.com")


@pytest.fixture
def pix_key():
    return PIX_KEY


@pytest.fixture
def make_service_repo():
    return InMemoryServiceRepository
