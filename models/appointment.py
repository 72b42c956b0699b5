from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .base import MongoModel, PyObjectId


class AppointmentStatus(str, Enum):
    confirmed = "confirmed"
    cancelled = "cancelled"


class PaymentMethod(str, Enum):
    PIX = "Pix"
    DEBIT_OR_CREDIT = "DebitOrCredit"
    CASH = "Cash"


class ServiceSnapshot(BaseModel):
    # Copied at booking time; later catalog changes do not touch it
    id: str
    name: str
    price: float


class Appointment(MongoModel):
    id: PyObjectId = Field(alias="_id")
    client_name: str
    services: List[ServiceSnapshot] = Field(default_factory=list)
    total_price: Optional[float] = None
    # Legacy single-service documents only carry this
    price: Optional[float] = None
    date: str
    time: str
    payment_method: Optional[PaymentMethod] = None
    payment_reference: str = ""
    owner_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    status: AppointmentStatus = AppointmentStatus.confirmed

    @property
    def amount(self) -> float:
        if self.total_price is not None:
            return self.total_price
        return self.price or 0.0

    @property
    def is_confirmed(self) -> bool:
        return self.status == AppointmentStatus.confirmed
