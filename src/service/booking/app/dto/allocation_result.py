"""Allocation preview DTO."""

from typing import Optional

import attrs

from src.service.booking.domain.entity.service_entity import Service, ServiceOffer
from src.service.booking.domain.multi_unit_allocator import AllocationRequest
from src.service.booking.domain.value_object.assignment import Assignment
from src.service.booking.domain.value_object.entitlement import Entitlement
from src.service.booking.domain.value_object.quote import Quote


@attrs.define(frozen=True)
class AllocationResult:
    """Where every unit goes and what it costs; nothing is reserved yet"""

    request: AllocationRequest
    service: Service
    assignments: tuple[Assignment, ...]
    quote: Quote
    entitlement: Entitlement
    offer: Optional[ServiceOffer] = None
    customer_id: Optional[int] = None
