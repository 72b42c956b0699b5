from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from core.exceptions import BookingError, MissingField, PaymentConfigError, SlotTaken, UnknownService
from models.appointment import Appointment, AppointmentStatus, PaymentMethod, ServiceSnapshot
from models.caller import Caller
from repositories.appointments import AppointmentRepository
from repositories.base import utcnow
from services.catalog import ServiceCatalog
from services.conflicts import ConflictChecker, SlotGuard
from services.feed import AppointmentFeed


logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"^\d{2}/\d{2}/\d{4}$")
TIME_PATTERN = re.compile(r"^\d{2}:\d{2}$")

PAYMENT_ALIASES = {
    "pix": PaymentMethod.PIX,
    "debitorcredit": PaymentMethod.DEBIT_OR_CREDIT,
    "débito/crédito": PaymentMethod.DEBIT_OR_CREDIT,
    "debito/credito": PaymentMethod.DEBIT_OR_CREDIT,
    "cash": PaymentMethod.CASH,
    "dinheiro": PaymentMethod.CASH,
}


@dataclass
class PreparedBooking:
    client_name: str
    services: List[ServiceSnapshot]
    total_price: float
    date: str
    time: str
    payment_method: PaymentMethod
    payment_reference: str

    def as_fields(self) -> dict[str, Any]:
        return {
            "client_name": self.client_name,
            "services": [s.model_dump() for s in self.services],
            "total_price": self.total_price,
            "date": self.date,
            "time": self.time,
            "payment_method": self.payment_method.value,
            "payment_reference": self.payment_reference,
        }


def _clean(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _unique(ids: Iterable[Any]) -> List[str]:
    seen: List[str] = []
    for raw in ids:
        service_id = _clean(raw)
        if service_id and service_id not in seen:
            seen.append(service_id)
    return seen


def parse_payment_method(value: Any) -> Optional[PaymentMethod]:
    if isinstance(value, PaymentMethod):
        return value
    return PAYMENT_ALIASES.get(_clean(value).lower())


async def prepare_booking(
    catalog: ServiceCatalog,
    pix_key: str,
    *,
    client_name: Any,
    service_ids: Optional[Iterable[Any]],
    date: Any,
    time: Any,
    payment_method: Any,
) -> PreparedBooking:
    """Validate a booking or edit request and derive its price.

    Checks run in the order the user can act on them: missing fields, then
    unknown services, then payment configuration.
    """
    name = _clean(client_name)
    ids = _unique(service_ids or [])
    date_str = _clean(date)
    time_str = _clean(time)
    if not name:
        raise MissingField("client_name")
    if not ids:
        raise MissingField("service_ids", "Selecione ao menos um serviço.")
    if not date_str or not DATE_PATTERN.match(date_str):
        raise MissingField("date", "Informe a data no formato DD/MM/AAAA.")
    if not time_str or not TIME_PATTERN.match(time_str):
        raise MissingField("time", "Informe a hora no formato HH:MM.")
    method = parse_payment_method(payment_method)
    if method is None:
        raise MissingField("payment_method", "Selecione o método de pagamento.")

    await catalog.refresh()
    snapshots: List[ServiceSnapshot] = []
    for service_id in ids:
        service = catalog.resolve(service_id)
        if service is None:
            raise UnknownService(service_id)
        snapshots.append(ServiceSnapshot(id=service.id, name=service.name, price=service.price))

    if method == PaymentMethod.PIX and not pix_key:
        raise PaymentConfigError()

    total = round(sum(s.price for s in snapshots), 2)
    return PreparedBooking(
        client_name=name,
        services=snapshots,
        total_price=total,
        date=date_str,
        time=time_str,
        payment_method=method,
        payment_reference=pix_key if method == PaymentMethod.PIX else "",
    )


class BookingEngine:
    def __init__(
        self,
        repository: AppointmentRepository,
        catalog: ServiceCatalog,
        *,
        pix_key: str,
        feed: Optional[AppointmentFeed] = None,
    ) -> None:
        self.repository = repository
        self.catalog = catalog
        self.pix_key = pix_key
        self.feed = feed
        self.conflicts = ConflictChecker(repository)
        self.slots = SlotGuard(repository)

    async def book(
        self,
        *,
        client_name: Any,
        service_ids: Optional[Iterable[Any]],
        date: Any,
        time: Any,
        payment_method: Any,
        caller: Caller,
    ) -> Appointment:
        prepared = await prepare_booking(
            self.catalog,
            self.pix_key,
            client_name=client_name,
            service_ids=service_ids,
            date=date,
            time=time,
            payment_method=payment_method,
        )

        if await self.conflicts.has_conflict(prepared.date, prepared.time):
            logger.info("appointments.slot_taken", extra={"date": prepared.date, "time": prepared.time})
            raise SlotTaken(prepared.date, prepared.time)

        appointment_id = self.repository.new_id()
        await self.slots.claim(prepared.date, prepared.time, appointment_id)
        doc = {
            "_id": appointment_id,
            **prepared.as_fields(),
            "owner_id": caller.id,
            "created_at": utcnow(),
            "status": AppointmentStatus.confirmed.value,
        }
        try:
            appointment = await self.repository.create(doc)
        except BookingError:
            await self.slots.release_quietly(prepared.date, prepared.time, appointment_id)
            raise

        logger.info(
            "appointments.booked",
            extra={
                "appointment_id": appointment.id,
                "date": appointment.date,
                "time": appointment.time,
                "total_price": appointment.total_price,
                "owner_id": caller.id,
            },
        )
        if self.feed is not None:
            await self.feed.notify()
        return appointment
