from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, status

from api.v1.deps import get_booking_engine, get_catalog, get_lifecycle_manager
from core.config import settings
from models.caller import Caller
from schemas.public import (
    AppointmentBookingRequest,
    AppointmentBookingResponse,
    AppointmentDisplay,
    MessageResponse,
    PaymentReferenceResponse,
    ServiceDisplay,
)
from services.booking import BookingEngine
from services.catalog import ServiceCatalog
from services.lifecycle import LifecycleManager
from services.security import get_caller


router = APIRouter(tags=["public"])
logger = logging.getLogger(__name__)


@router.get("/services", response_model=List[ServiceDisplay])
async def list_services(catalog: ServiceCatalog = Depends(get_catalog)) -> List[ServiceDisplay]:
    await catalog.refresh()
    return [ServiceDisplay.from_model(s) for s in catalog.list_available()]


@router.get("/payment/reference", response_model=PaymentReferenceResponse)
async def payment_reference() -> PaymentReferenceResponse:
    return PaymentReferenceResponse(reference=settings.pix_key, configured=bool(settings.pix_key))


@router.post(
    "/appointments",
    response_model=AppointmentBookingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def book_appointment(
    payload: AppointmentBookingRequest,
    caller: Caller = Depends(get_caller),
    engine: BookingEngine = Depends(get_booking_engine),
) -> AppointmentBookingResponse:
    appointment = await engine.book(
        client_name=payload.client_name,
        service_ids=payload.service_ids,
        date=payload.date,
        time=payload.time,
        payment_method=payload.payment_method,
        caller=caller,
    )
    return AppointmentBookingResponse(
        message="Agendamento realizado com sucesso!",
        appointment=AppointmentDisplay.from_model(appointment),
    )


@router.get("/appointments/mine", response_model=List[AppointmentDisplay])
async def my_appointments(
    caller: Caller = Depends(get_caller),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
) -> List[AppointmentDisplay]:
    mine = await manager.list_mine(caller)
    return [AppointmentDisplay.from_model(a) for a in mine]


@router.post("/appointments/{appointment_id}/cancel", response_model=AppointmentDisplay)
async def cancel_appointment(
    appointment_id: str,
    caller: Caller = Depends(get_caller),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
) -> AppointmentDisplay:
    appointment = await manager.cancel(appointment_id, caller)
    return AppointmentDisplay.from_model(appointment)


@router.get("/appointments/{appointment_id}/reschedule", response_model=MessageResponse)
async def request_reschedule(
    appointment_id: str,
    caller: Caller = Depends(get_caller),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
) -> MessageResponse:
    return MessageResponse(message=await manager.request_reschedule(appointment_id, caller))
