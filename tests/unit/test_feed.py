import pytest

from core.exceptions import StoreUnavailable


@pytest.mark.asyncio
async def test_subscribers_receive_full_snapshot(engine, feed, ana, bia):
    first, second = [], []
    feed.subscribe(first.append)
    feed.subscribe(second.append)

    await engine.book(client_name="Ana", service_ids=["henna"], date="01/07/2025", time="10:00",
                      payment_method="Cash", caller=ana)
    await engine.book(client_name="Bia", service_ids=["tintura"], date="01/07/2025", time="11:00",
                      payment_method="Cash", caller=bia)

    assert [len(s) for s in first] == [1, 2]
    assert [a.client_name for a in first[-1]] == ["Ana", "Bia"]
    assert [[a.id for a in s] for s in second] == [[a.id for a in s] for s in first]


@pytest.mark.asyncio
async def test_unsubscribe_stops_delivery(feed, appointment_repo):
    received = []
    unsubscribe = feed.subscribe(received.append)

    await feed.notify()
    unsubscribe()
    await feed.notify()

    assert len(received) == 1
    assert feed.subscriber_count == 0


@pytest.mark.asyncio
async def test_async_subscriber_is_awaited(feed):
    received = []

    async def on_change(snapshot):
        received.append(snapshot)

    feed.subscribe(on_change)
    await feed.notify()

    assert received == [[]]


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_block_others(feed):
    received = []

    def broken(snapshot):
        raise RuntimeError("boom")

    feed.subscribe(broken)
    feed.subscribe(received.append)
    await feed.notify()

    assert received == [[]]


@pytest.mark.asyncio
async def test_snapshot_failure_is_not_raised(feed, appointment_repo, monkeypatch):
    received = []
    feed.subscribe(received.append)

    async def broken_list_all():
        raise StoreUnavailable("appointments.find")

    monkeypatch.setattr(appointment_repo, "list_all", broken_list_all)

    await feed.notify()

    assert received == []
