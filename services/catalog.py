from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional

from core.exceptions import InvalidPrice, MissingField
from models.service import Service
from repositories.services import ServiceRepository


logger = logging.getLogger(__name__)


# Built-in services; never persisted and always win over stored ids
SEED_SERVICES: List[Service] = [
    Service(id="design-personalizado", name="Design Personalizado", price=80.00,
            description="Design de sobrancelhas adaptado ao seu rosto."),
    Service(id="henna", name="Henna", price=60.00,
            description="Aplicação de henna para preenchimento e definição."),
    Service(id="reaplicacao-henna", name="Reaplicação de Henna", price=50.00,
            description="Retoque de henna."),
    Service(id="tintura", name="Tintura", price=70.00,
            description="Tintura de sobrancelhas para maior intensidade."),
    Service(id="brow-lamination", name="Brow Lamination", price=150.00,
            description="Técnica para alinhar e fixar os fios da sobrancelha."),
    Service(id="epilacao-buco", name="Epilação de Buço", price=30.00,
            description="Remoção de pelos do buço."),
    Service(id="epilacao-buco-completa", name="Epilação de Buço - Completa", price=40.00,
            description="Remoção completa de pelos do buço."),
]


def parse_price(value: Any) -> float:
    if isinstance(value, bool):
        raise InvalidPrice(value)
    try:
        price = float(str(value).strip().replace(",", "."))
    except (TypeError, ValueError):
        raise InvalidPrice(value)
    if not math.isfinite(price) or price < 0:
        raise InvalidPrice(value)
    return round(price, 2)


class ServiceCatalog:
    """Seed services merged with administrator-created ones."""

    def __init__(self, repository: ServiceRepository, seed: Optional[List[Service]] = None) -> None:
        self.repository = repository
        self.seed: List[Service] = list(SEED_SERVICES if seed is None else seed)
        self._persisted: List[Service] = []

    async def refresh(self) -> None:
        self._persisted = await self.repository.list_all()
        seed_ids = {s.id for s in self.seed}
        for service in self._persisted:
            if service.id in seed_ids:
                logger.warning("catalog.duplicate_id_ignored", extra={"service_id": service.id})

    def _merged(self) -> Dict[str, Service]:
        merged: Dict[str, Service] = {s.id: s for s in self.seed}
        for service in self._persisted:
            merged.setdefault(service.id, service)
        return merged

    def resolve(self, service_id: str) -> Optional[Service]:
        return self._merged().get(service_id)

    def list_available(self) -> List[Service]:
        return list(self._merged().values())

    async def add_service(self, name: Any, price: Any, description: Any) -> Service:
        name = (name or "").strip() if isinstance(name, str) else name
        description = (description or "").strip() if isinstance(description, str) else description
        if not name:
            raise MissingField("name", "Por favor, preencha todos os campos do serviço.")
        if price is None or (isinstance(price, str) and not price.strip()):
            raise MissingField("price", "Por favor, preencha todos os campos do serviço.")
        if not description:
            raise MissingField("description", "Por favor, preencha todos os campos do serviço.")
        parsed = parse_price(price)

        service = await self.repository.create(name, parsed, description)
        self._persisted.append(service)
        logger.info("catalog.service_added", extra={"service_id": service.id, "service_name": name, "price": parsed})
        return service
