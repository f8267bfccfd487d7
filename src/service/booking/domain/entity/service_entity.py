from decimal import Decimal
from typing import Optional

import attrs


@attrs.define(frozen=True)
class Service:
    id: int
    tenant_id: int
    name: str
    base_price: Decimal
    capacity_per_slot: int = 1
    discounted_price: Optional[Decimal] = None
    child_price: Optional[Decimal] = None
    is_active: bool = True

    @property
    def effective_price(self) -> Decimal:
        """Base price after the service-level discount, if any"""
        if self.discounted_price is not None:
            return self.discounted_price
        return self.base_price


@attrs.define(frozen=True)
class ServiceOffer:
    id: int
    tenant_id: int
    service_id: int
    name: str
    price: Decimal
    is_active: bool = True
