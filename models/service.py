from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from .base import MongoModel, PyObjectId


class Service(MongoModel):
    id: PyObjectId = Field(alias="_id")
    name: str
    price: float = Field(ge=0)
    description: str = ""
    timestamp: Optional[datetime] = None
