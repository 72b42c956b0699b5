from __future__ import annotations

from fastapi import Depends
from starlette.requests import HTTPConnection

from core.config import settings
from db.database import get_database
from repositories.appointments import AppointmentRepository
from repositories.services import ServiceRepository
from services.booking import BookingEngine
from services.catalog import ServiceCatalog
from services.feed import AppointmentFeed
from services.lifecycle import LifecycleManager


async def get_appointment_repository() -> AppointmentRepository:
    db = await get_database()
    return AppointmentRepository(db)


async def get_service_repository() -> ServiceRepository:
    db = await get_database()
    return ServiceRepository(db)


def get_feed(conn: HTTPConnection) -> AppointmentFeed:
    return conn.app.state.feed


async def get_catalog(repo: ServiceRepository = Depends(get_service_repository)) -> ServiceCatalog:
    return ServiceCatalog(repo)


async def get_booking_engine(
    repo: AppointmentRepository = Depends(get_appointment_repository),
    catalog: ServiceCatalog = Depends(get_catalog),
    feed: AppointmentFeed = Depends(get_feed),
) -> BookingEngine:
    return BookingEngine(repo, catalog, pix_key=settings.pix_key, feed=feed)


async def get_lifecycle_manager(
    repo: AppointmentRepository = Depends(get_appointment_repository),
    catalog: ServiceCatalog = Depends(get_catalog),
    feed: AppointmentFeed = Depends(get_feed),
) -> LifecycleManager:
    return LifecycleManager(repo, catalog, pix_key=settings.pix_key, feed=feed)
