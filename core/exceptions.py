from __future__ import annotations

from typing import Any, Dict, Optional


class BookingError(Exception):
    """Base class for every rejection the booking core can produce.

    ``retryable`` separates "try again later" failures (store outages) from
    "fix your input" rejections, which only succeed after the caller changes
    the request.
    """

    code: str = "booking_error"
    retryable: bool = False

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "detail": self.message,
            "retry": "try_later" if self.retryable else "fix_input",
        }


class MissingField(BookingError):
    code = "missing_field"

    def __init__(self, field: str, message: Optional[str] = None) -> None:
        super().__init__(
            message or f"Campo obrigatório ausente ou inválido: {field}.",
            field=field,
        )
        self.field = field


class UnknownService(BookingError):
    code = "unknown_service"

    def __init__(self, service_id: str) -> None:
        super().__init__(
            f"O serviço '{service_id}' não está disponível.", service_id=service_id
        )
        self.service_id = service_id


class InvalidPrice(BookingError):
    code = "invalid_price"

    def __init__(self, value: Any) -> None:
        super().__init__("Preço deve ser um número válido e não negativo.", value=value)


class SlotTaken(BookingError):
    code = "slot_taken"

    def __init__(self, date: str, time: str) -> None:
        super().__init__(
            "Este horário já está preenchido. Por favor, escolha outro.",
            date=date,
            time=time,
        )
        self.date = date
        self.time = time


class PaymentConfigError(BookingError):
    code = "payment_config_error"

    def __init__(self) -> None:
        super().__init__("Erro: Chave Pix não configurada. Por favor, contate o estúdio.")


class Unauthorized(BookingError):
    code = "unauthorized"

    def __init__(self, action: str) -> None:
        super().__init__(f"Você não tem permissão para {action} este agendamento.", action=action)


class AppointmentNotFound(BookingError):
    code = "appointment_not_found"

    def __init__(self, appointment_id: str) -> None:
        super().__init__("Agendamento não encontrado.", appointment_id=appointment_id)


class StoreUnavailable(BookingError):
    code = "store_unavailable"
    retryable = True

    def __init__(self, operation: str) -> None:
        super().__init__(
            "Banco de dados indisponível. Por favor, tente novamente.", operation=operation
        )
        self.operation = operation
