from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from models.appointment import Appointment, ServiceSnapshot
from models.service import Service


class AppointmentBookingRequest(BaseModel):
    # Presence is checked by the booking engine so the caller gets its messages
    client_name: Optional[str] = None
    service_ids: List[str] = Field(default_factory=list)
    date: Optional[str] = None
    time: Optional[str] = None
    payment_method: Optional[str] = None


class AppointmentDisplay(BaseModel):
    id: str
    client_name: str
    services: List[ServiceSnapshot]
    total_price: float
    date: str
    time: str
    payment_method: Optional[str] = None
    payment_reference: str = ""
    owner_id: Optional[str] = None
    created_at: Optional[datetime] = None
    status: str

    @classmethod
    def from_model(cls, appointment: Appointment) -> "AppointmentDisplay":
        return cls(
            id=appointment.id,
            client_name=appointment.client_name,
            services=appointment.services,
            total_price=appointment.amount,
            date=appointment.date,
            time=appointment.time,
            payment_method=appointment.payment_method.value if appointment.payment_method else None,
            payment_reference=appointment.payment_reference,
            owner_id=appointment.owner_id,
            created_at=appointment.created_at,
            status=appointment.status.value,
        )


class AppointmentBookingResponse(BaseModel):
    message: str
    appointment: AppointmentDisplay


class ServiceDisplay(BaseModel):
    id: str
    name: str
    price: float
    description: str

    @classmethod
    def from_model(cls, service: Service) -> "ServiceDisplay":
        return cls(id=service.id, name=service.name, price=service.price, description=service.description)


class PaymentReferenceResponse(BaseModel):
    method: str = "Pix"
    reference: str
    configured: bool


class MessageResponse(BaseModel):
    message: str
