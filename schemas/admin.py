from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, Field

from schemas.public import AppointmentDisplay


class ServiceCreate(BaseModel):
    name: Optional[str] = None
    # Free-form so "60,00" and friends reach the catalog's own price check
    price: Optional[Union[float, str]] = None
    description: Optional[str] = None


class AdminAppointmentEdit(BaseModel):
    client_name: Optional[str] = None
    service_ids: List[str] = Field(default_factory=list)
    date: Optional[str] = None
    time: Optional[str] = None
    payment_method: Optional[str] = None


class ClientHistoryDisplay(BaseModel):
    client_name: str
    total_spent: float
    appointments: List[AppointmentDisplay]
