from .service import Service
from .appointment import Appointment, AppointmentStatus, PaymentMethod, ServiceSnapshot
from .caller import Caller
from .role import Role

__all__ = [
    "Service",
    "Appointment",
    "AppointmentStatus",
    "PaymentMethod",
    "ServiceSnapshot",
    "Caller",
    "Role",
]
