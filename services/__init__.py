from __future__ import annotations

# Re-export key service classes for convenient imports
from .booking import BookingEngine
from .catalog import ServiceCatalog
from .conflicts import ConflictChecker, SlotGuard
from .feed import AppointmentFeed
from .history import aggregate
from .lifecycle import LifecycleManager

__all__ = [
    "BookingEngine",
    "ServiceCatalog",
    "ConflictChecker",
    "SlotGuard",
    "AppointmentFeed",
    "aggregate",
    "LifecycleManager",
]
