from __future__ import annotations

from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from core.config import settings
from models.service import Service
from .base import BaseRepository, utcnow


class ServiceRepository(BaseRepository):
    def __init__(self, db: AsyncIOMotorDatabase, *, timeout: Optional[float] = None) -> None:
        super().__init__(db, timeout=timeout)
        self.collection = settings.services_collection

    async def list_all(self) -> List[Service]:
        # Store order is insertion order
        docs = await self.find_many(self.collection, {}, sort=[("timestamp", 1)])
        return [Service(**d) for d in docs]

    async def create(self, name: str, price: float, description: str) -> Service:
        doc = {"name": name, "price": price, "description": description, "timestamp": utcnow()}
        inserted_id = await self.insert_one(self.collection, doc, with_timestamps=False)
        doc["_id"] = inserted_id
        return Service(**doc)
