from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from models.appointment import Appointment


@dataclass
class ClientHistory:
    total_spent: float = 0.0
    appointments: List[Appointment] = field(default_factory=list)


def aggregate(
    appointments: Iterable[Appointment], *, include_cancelled: bool = True
) -> Dict[str, ClientHistory]:
    """Group appointments by client name and sum what each client spent.

    Cancelled bookings count toward the total unless ``include_cancelled`` is
    False; either way input order is preserved per client.
    """
    history: Dict[str, ClientHistory] = {}
    for appointment in appointments:
        if not include_cancelled and not appointment.is_confirmed:
            continue
        entry = history.setdefault(appointment.client_name, ClientHistory())
        entry.total_spent = round(entry.total_spent + appointment.amount, 2)
        entry.appointments.append(appointment)
    return history
