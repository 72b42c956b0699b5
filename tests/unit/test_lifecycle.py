import pytest

from core.exceptions import AppointmentNotFound, MissingField, SlotTaken, StoreUnavailable, Unauthorized, UnknownService
from models.appointment import AppointmentStatus, PaymentMethod


def _request(**overrides):
    request = {
        "client_name": "Ana",
        "service_ids": ["henna"],
        "date": "01/07/2025",
        "time": "14:30",
        "payment_method": "Cash",
    }
    request.update(overrides)
    return request


# -----------------------------
# cancel
# -----------------------------
@pytest.mark.asyncio
async def test_owner_cancels_and_slot_is_freed(engine, manager, appointment_repo, ana, bia):
    booked = await engine.book(**_request(), caller=ana)

    cancelled = await manager.cancel(booked.id, ana)

    assert cancelled.status == AppointmentStatus.cancelled
    assert cancelled.id == booked.id
    assert appointment_repo.slots == {}

    rebooked = await engine.book(**_request(client_name="Bia"), caller=bia)
    assert rebooked.status == AppointmentStatus.confirmed
    assert rebooked.id != booked.id


@pytest.mark.asyncio
async def test_admin_cancels_any_appointment(engine, manager, ana, admin):
    booked = await engine.book(**_request(), caller=ana)

    cancelled = await manager.cancel(booked.id, admin)

    assert cancelled.status == AppointmentStatus.cancelled
    assert cancelled.owner_id == "client-ana"


@pytest.mark.asyncio
async def test_stranger_cannot_cancel(engine, manager, appointment_repo, ana, bia):
    booked = await engine.book(**_request(), caller=ana)

    with pytest.raises(Unauthorized):
        await manager.cancel(booked.id, bia)

    assert appointment_repo.docs[booked.id]["status"] == "confirmed"


@pytest.mark.asyncio
async def test_cancel_already_cancelled_is_a_noop(engine, manager, appointment_repo, ana):
    booked = await engine.book(**_request(), caller=ana)
    first = await manager.cancel(booked.id, ana)
    stamp = appointment_repo.docs[booked.id]["updated_at"]

    second = await manager.cancel(booked.id, ana)

    assert second.status == AppointmentStatus.cancelled
    assert second.id == first.id
    assert appointment_repo.docs[booked.id]["updated_at"] == stamp


@pytest.mark.asyncio
async def test_cancel_noop_does_not_free_a_rebooked_slot(engine, manager, appointment_repo, ana, bia):
    booked = await engine.book(**_request(), caller=ana)
    await manager.cancel(booked.id, ana)
    rebooked = await engine.book(**_request(client_name="Bia"), caller=bia)

    await manager.cancel(booked.id, ana)

    assert appointment_repo.slots["01/07/2025|14:30"]["appointment_id"] == rebooked.id


@pytest.mark.asyncio
async def test_cancel_unknown_appointment(manager, ana):
    with pytest.raises(AppointmentNotFound):
        await manager.cancel("missing", ana)


# -----------------------------
# edit
# -----------------------------
@pytest.mark.asyncio
async def test_edit_keeping_same_slot_does_not_conflict_with_itself(engine, manager, ana, admin):
    booked = await engine.book(**_request(), caller=ana)

    edited = await manager.edit(booked.id, **_request(service_ids=["henna", "tintura"]), caller=admin)

    assert edited.date == booked.date and edited.time == booked.time
    assert edited.total_price == 130.00


@pytest.mark.asyncio
async def test_edit_into_occupied_slot_is_rejected(engine, manager, appointment_repo, ana, bia, admin):
    await engine.book(**_request(), caller=ana)
    other = await engine.book(**_request(client_name="Bia", date="02/07/2025", time="10:00"), caller=bia)

    with pytest.raises(SlotTaken):
        await manager.edit(other.id, **_request(client_name="Bia"), caller=admin)

    assert appointment_repo.docs[other.id]["date"] == "02/07/2025"
    assert appointment_repo.slots["02/07/2025|10:00"]["appointment_id"] == other.id


@pytest.mark.asyncio
async def test_edit_moves_slot_lock(engine, manager, appointment_repo, ana, bia, admin):
    booked = await engine.book(**_request(), caller=ana)

    await manager.edit(booked.id, **_request(time="16:00"), caller=admin)

    assert "01/07/2025|14:30" not in appointment_repo.slots
    assert appointment_repo.slots["01/07/2025|16:00"]["appointment_id"] == booked.id
    # Old slot is bookable again
    await engine.book(**_request(client_name="Bia"), caller=bia)


@pytest.mark.asyncio
async def test_edit_recomputes_price_and_payment_reference(engine, manager, ana, admin, pix_key):
    booked = await engine.book(**_request(payment_method="Pix"), caller=ana)
    assert booked.payment_reference == pix_key

    edited = await manager.edit(
        booked.id,
        **_request(service_ids=["brow-lamination"], payment_method="DebitOrCredit", client_name="Ana Souza"),
        caller=admin,
    )

    assert edited.total_price == 150.00
    assert edited.payment_method == PaymentMethod.DEBIT_OR_CREDIT
    assert edited.payment_reference == ""
    assert edited.client_name == "Ana Souza"
    assert edited.status == AppointmentStatus.confirmed
    assert edited.owner_id == "client-ana"
    assert edited.created_at == booked.created_at


@pytest.mark.asyncio
async def test_edit_is_admin_only(engine, manager, ana):
    booked = await engine.book(**_request(), caller=ana)

    with pytest.raises(Unauthorized):
        await manager.edit(booked.id, **_request(time="16:00"), caller=ana)


@pytest.mark.asyncio
async def test_edit_validates_like_booking(engine, manager, ana, admin):
    booked = await engine.book(**_request(), caller=ana)

    with pytest.raises(MissingField):
        await manager.edit(booked.id, **_request(service_ids=[]), caller=admin)
    with pytest.raises(UnknownService):
        await manager.edit(booked.id, **_request(service_ids=["massagem"]), caller=admin)


@pytest.mark.asyncio
async def test_edit_cancelled_appointment_claims_no_slot(engine, manager, appointment_repo, ana, bia, admin):
    booked = await engine.book(**_request(), caller=ana)
    await manager.cancel(booked.id, ana)
    await engine.book(**_request(client_name="Bia"), caller=bia)

    edited = await manager.edit(booked.id, **_request(service_ids=["tintura"]), caller=admin)

    assert edited.status == AppointmentStatus.cancelled
    assert edited.total_price == 70.00


@pytest.mark.asyncio
async def test_failed_edit_releases_new_claim(engine, manager, appointment_repo, ana, admin, monkeypatch):
    booked = await engine.book(**_request(), caller=ana)

    async def broken_update(appointment_id, fields):
        raise StoreUnavailable("appointments.update")

    monkeypatch.setattr(appointment_repo, "update_fields", broken_update)

    with pytest.raises(StoreUnavailable):
        await manager.edit(booked.id, **_request(time="18:00"), caller=admin)

    assert "01/07/2025|18:00" not in appointment_repo.slots
    assert appointment_repo.slots["01/07/2025|14:30"]["appointment_id"] == booked.id


async def _release_down(date, time, appointment_id):
    raise StoreUnavailable("appointment_slots.delete")


@pytest.mark.asyncio
async def test_cancel_succeeds_when_slot_release_fails(engine, manager, feed, appointment_repo, ana, monkeypatch):
    booked = await engine.book(**_request(), caller=ana)
    snapshots = []
    feed.subscribe(snapshots.append)
    monkeypatch.setattr(appointment_repo, "release_slot", _release_down)

    cancelled = await manager.cancel(booked.id, ana)

    assert cancelled.status == AppointmentStatus.cancelled
    assert appointment_repo.docs[booked.id]["status"] == "cancelled"
    assert len(snapshots) == 1
    assert snapshots[0][0].status == AppointmentStatus.cancelled
    # Lock stays behind until it ages out
    assert appointment_repo.slots["01/07/2025|14:30"]["appointment_id"] == booked.id


@pytest.mark.asyncio
async def test_edit_succeeds_when_old_slot_release_fails(engine, manager, feed, appointment_repo, ana, admin, monkeypatch):
    booked = await engine.book(**_request(), caller=ana)
    snapshots = []
    feed.subscribe(snapshots.append)
    monkeypatch.setattr(appointment_repo, "release_slot", _release_down)

    edited = await manager.edit(booked.id, **_request(time="16:00"), caller=admin)

    assert edited.time == "16:00"
    assert appointment_repo.docs[booked.id]["time"] == "16:00"
    assert appointment_repo.slots["01/07/2025|16:00"]["appointment_id"] == booked.id
    assert len(snapshots) == 1


# -----------------------------
# reschedule request and visibility
# -----------------------------
@pytest.mark.asyncio
async def test_request_reschedule_is_informational(engine, manager, appointment_repo, ana):
    booked = await engine.book(**_request(service_ids=["henna", "tintura"]), caller=ana)
    before = dict(appointment_repo.docs[booked.id])

    message = await manager.request_reschedule(booked.id, ana)

    assert "Henna, Tintura" in message
    assert "01/07/2025" in message and "14:30" in message
    assert "WhatsApp" in message
    assert appointment_repo.docs[booked.id] == before


@pytest.mark.asyncio
async def test_visibility_by_owner(engine, manager, ana, bia, admin):
    mine = await engine.book(**_request(), caller=ana)
    await engine.book(**_request(client_name="Bia", time="15:00"), caller=bia)

    assert [a.id for a in await manager.list_mine(ana)] == [mine.id]
    assert len(await manager.list_for(admin)) == 2
    assert len(await manager.list_all(admin)) == 2
    with pytest.raises(Unauthorized):
        await manager.list_all(ana)
