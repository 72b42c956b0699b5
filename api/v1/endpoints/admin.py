from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, Query, status

from api.v1.deps import get_catalog, get_lifecycle_manager
from models.caller import Caller
from schemas.admin import AdminAppointmentEdit, ClientHistoryDisplay, ServiceCreate
from schemas.public import AppointmentDisplay, ServiceDisplay
from services.catalog import ServiceCatalog
from services.history import aggregate
from services.lifecycle import LifecycleManager
from services.security import get_current_admin


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(get_current_admin)])


@router.post("/services", response_model=ServiceDisplay, status_code=status.HTTP_201_CREATED)
async def add_service(payload: ServiceCreate, catalog: ServiceCatalog = Depends(get_catalog)) -> ServiceDisplay:
    service = await catalog.add_service(payload.name, payload.price, payload.description)
    return ServiceDisplay.from_model(service)


@router.get("/appointments", response_model=List[AppointmentDisplay])
async def list_appointments(
    admin: Caller = Depends(get_current_admin),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
) -> List[AppointmentDisplay]:
    return [AppointmentDisplay.from_model(a) for a in await manager.list_all(admin)]


@router.put("/appointments/{appointment_id}", response_model=AppointmentDisplay)
async def edit_appointment(
    appointment_id: str,
    payload: AdminAppointmentEdit,
    admin: Caller = Depends(get_current_admin),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
) -> AppointmentDisplay:
    appointment = await manager.edit(
        appointment_id,
        client_name=payload.client_name,
        service_ids=payload.service_ids,
        date=payload.date,
        time=payload.time,
        payment_method=payload.payment_method,
        caller=admin,
    )
    return AppointmentDisplay.from_model(appointment)


@router.post("/appointments/{appointment_id}/cancel", response_model=AppointmentDisplay)
async def cancel_appointment(
    appointment_id: str,
    admin: Caller = Depends(get_current_admin),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
) -> AppointmentDisplay:
    return AppointmentDisplay.from_model(await manager.cancel(appointment_id, admin))


@router.get("/clients/history", response_model=List[ClientHistoryDisplay])
async def client_history(
    include_cancelled: bool = Query(True),
    admin: Caller = Depends(get_current_admin),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
) -> List[ClientHistoryDisplay]:
    history = aggregate(await manager.list_all(admin), include_cancelled=include_cancelled)
    return [
        ClientHistoryDisplay(
            client_name=name,
            total_spent=entry.total_spent,
            appointments=[AppointmentDisplay.from_model(a) for a in entry.appointments],
        )
        for name, entry in history.items()
    ]
