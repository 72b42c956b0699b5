from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class Caller(BaseModel):
    """Identity handed over by the identity provider; trusted as-is."""

    id: str
    is_admin: bool = False
    email: Optional[str] = None
