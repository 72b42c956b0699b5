from __future__ import annotations

from typing import Optional

from pydantic import Field

from .base import MongoModel, PyObjectId


class Role(MongoModel):
    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    name: str
    email: str
    role: str
    hashed_password: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
