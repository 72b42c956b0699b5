from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional

from core.config import settings
from core.exceptions import AppointmentNotFound, BookingError, SlotTaken, Unauthorized
from models.appointment import Appointment, AppointmentStatus
from models.caller import Caller
from repositories.appointments import AppointmentRepository
from services.booking import prepare_booking
from services.catalog import ServiceCatalog
from services.conflicts import ConflictChecker, SlotGuard
from services.feed import AppointmentFeed


logger = logging.getLogger(__name__)


class LifecycleManager:
    """Cancellation, admin edits and visibility for existing appointments.

    Status only moves confirmed -> cancelled. Cancelling an appointment that is
    already cancelled succeeds without writing anything and returns the stored
    appointment unchanged.
    """

    def __init__(
        self,
        repository: AppointmentRepository,
        catalog: ServiceCatalog,
        *,
        pix_key: str,
        feed: Optional[AppointmentFeed] = None,
        business_contact: Optional[str] = None,
    ) -> None:
        self.repository = repository
        self.catalog = catalog
        self.pix_key = pix_key
        self.feed = feed
        self.business_contact = business_contact or settings.business_contact
        self.conflicts = ConflictChecker(repository)
        self.slots = SlotGuard(repository)

    async def _load(self, appointment_id: str) -> Appointment:
        appointment = await self.repository.get(appointment_id)
        if appointment is None:
            raise AppointmentNotFound(appointment_id)
        return appointment

    @staticmethod
    def _may_manage(appointment: Appointment, caller: Caller) -> bool:
        return caller.is_admin or (appointment.owner_id is not None and appointment.owner_id == caller.id)

    async def _notify(self) -> None:
        if self.feed is not None:
            await self.feed.notify()

    async def cancel(self, appointment_id: str, caller: Caller) -> Appointment:
        appointment = await self._load(appointment_id)
        if not self._may_manage(appointment, caller):
            logger.warning(
                "appointments.cancel_denied",
                extra={"appointment_id": appointment_id, "caller_id": caller.id},
            )
            raise Unauthorized("cancelar")

        if appointment.status == AppointmentStatus.cancelled:
            logger.info("appointments.cancel_noop", extra={"appointment_id": appointment_id})
            return appointment

        updated = await self.repository.update_fields(
            appointment_id, {"status": AppointmentStatus.cancelled.value}
        )
        if updated is None:
            raise AppointmentNotFound(appointment_id)
        await self.slots.release_quietly(appointment.date, appointment.time, appointment.id)

        logger.info(
            "appointments.cancelled",
            extra={"appointment_id": appointment_id, "caller_id": caller.id, "by_admin": caller.is_admin},
        )
        await self._notify()
        return updated

    async def edit(
        self,
        appointment_id: str,
        *,
        client_name: Any,
        service_ids: Optional[Iterable[Any]],
        date: Any,
        time: Any,
        payment_method: Any,
        caller: Caller,
    ) -> Appointment:
        if not caller.is_admin:
            raise Unauthorized("editar")
        current = await self._load(appointment_id)

        prepared = await prepare_booking(
            self.catalog,
            self.pix_key,
            client_name=client_name,
            service_ids=service_ids,
            date=date,
            time=time,
            payment_method=payment_method,
        )

        occupies_slot = current.is_confirmed
        moved = (prepared.date, prepared.time) != (current.date, current.time)
        if occupies_slot:
            if await self.conflicts.has_conflict(prepared.date, prepared.time, exclude_id=current.id):
                logger.info(
                    "appointments.edit_slot_taken",
                    extra={"appointment_id": appointment_id, "date": prepared.date, "time": prepared.time},
                )
                raise SlotTaken(prepared.date, prepared.time)
            if moved:
                await self.slots.claim(prepared.date, prepared.time, current.id)

        try:
            updated = await self.repository.update_fields(appointment_id, prepared.as_fields())
            if updated is None:
                raise AppointmentNotFound(appointment_id)
        except BookingError:
            if occupies_slot and moved:
                await self.slots.release_quietly(prepared.date, prepared.time, current.id)
            raise

        if occupies_slot and moved:
            await self.slots.release_quietly(current.date, current.time, current.id)

        logger.info(
            "appointments.edited",
            extra={
                "appointment_id": appointment_id,
                "date": updated.date,
                "time": updated.time,
                "total_price": updated.total_price,
            },
        )
        await self._notify()
        return updated

    async def request_reschedule(self, appointment_id: str, caller: Caller) -> str:
        """Tell the client how to reschedule; nothing is written."""
        appointment = await self._load(appointment_id)
        if not self._may_manage(appointment, caller):
            raise Unauthorized("reagendar")
        names = ", ".join(s.name for s in appointment.services)
        return (
            f"Para reagendar o serviço de {names} em {appointment.date} às {appointment.time}, "
            f"por favor, entre em contato pelo {self.business_contact}."
        )

    async def list_for(self, caller: Caller) -> List[Appointment]:
        if caller.is_admin:
            return await self.repository.list_all()
        return await self.repository.list_by_owner(caller.id)

    async def list_all(self, caller: Caller) -> List[Appointment]:
        if not caller.is_admin:
            raise Unauthorized("listar")
        return await self.repository.list_all()

    async def list_mine(self, caller: Caller) -> List[Appointment]:
        return await self.repository.list_by_owner(caller.id)
