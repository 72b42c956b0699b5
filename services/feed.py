from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
from typing import Any, Callable, Dict, List

from pymongo.errors import PyMongoError

from core.exceptions import StoreUnavailable
from models.appointment import Appointment
from repositories.appointments import AppointmentRepository


logger = logging.getLogger(__name__)

Subscriber = Callable[[List[Appointment]], Any]


class AppointmentFeed:
    """Publish/subscribe channel for the appointments collection.

    Every subscriber gets the full, ordered appointment list after each
    change. Callbacks may be plain functions or coroutines.
    """

    def __init__(self, repository: AppointmentRepository) -> None:
        self.repository = repository
        self._subscribers: Dict[int, Subscriber] = {}
        self._ids = itertools.count()

    def subscribe(self, on_change: Subscriber) -> Callable[[], None]:
        token = next(self._ids)
        self._subscribers[token] = on_change

        def unsubscribe() -> None:
            self._subscribers.pop(token, None)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def notify(self) -> None:
        if not self._subscribers:
            return
        try:
            snapshot = await self.repository.list_all()
        except StoreUnavailable:
            # The write already happened; the next change will carry it
            logger.warning("feed.snapshot_unavailable")
            return
        await self.publish(snapshot)

    async def publish(self, snapshot: List[Appointment]) -> None:
        for token, callback in list(self._subscribers.items()):
            try:
                result = callback(list(snapshot))
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("feed.subscriber_failed", extra={"subscriber": token})

    async def watch(self) -> None:
        """Follow the store's change stream and fan out on every change.

        Only replica sets expose change streams; on a standalone server the
        watcher logs once and returns.
        """
        collection = self.repository.db[self.repository.collection]
        try:
            async with collection.watch(full_document="updateLookup") as stream:
                logger.info("feed.watch_started")
                async for change in stream:
                    logger.debug("feed.change", extra={"operation": change.get("operationType")})
                    await self.notify()
        except asyncio.CancelledError:
            logger.info("feed.watch_stopped")
            raise
        except PyMongoError as exc:
            logger.warning("feed.watch_unavailable", extra={"error": repr(exc)})
