from collections import Counter
from datetime import datetime, timedelta
from decimal import Decimal
import math
from typing import Optional
from uuid import UUID

import attrs

from src.platform.exception.exceptions import DomainError
from src.service.booking.domain.enum.lock_state import LockState
from src.service.booking.domain.enum.ticket_kind import TicketKind
from src.service.booking.domain.value_object.quote import Quote, QuoteLine


@attrs.define(frozen=True)
class LockUnit:
    unit_index: int
    slot_id: int
    resource_id: Optional[int]
    ticket_kind: TicketKind
    list_price: Decimal
    unit_price: Decimal
    package_subscription_id: Optional[int] = None
    is_extension: bool = False

    @classmethod
    def from_quote_line(cls, line: QuoteLine) -> 'LockUnit':
        return cls(
            unit_index=line.unit_index,
            slot_id=line.slot_id,
            resource_id=line.resource_id,
            ticket_kind=line.ticket_kind,
            list_price=line.list_price,
            unit_price=line.unit_price,
            package_subscription_id=line.package_subscription_id,
            is_extension=line.is_extension,
        )


@attrs.define
class BookingLock:
    """
    Provisional capacity reservation between allocation and commit

    LOCKED -> COMMITTED | RELEASED | EXPIRED. Only LOCKED holds capacity.
    """

    id: UUID
    tenant_id: int
    session_id: str
    service_id: int
    units: tuple[LockUnit, ...]
    expires_at: datetime
    state: LockState = LockState.LOCKED
    offer_id: Optional[int] = None
    customer_id: Optional[int] = None  # whose package units the quote claimed
    created_at: Optional[datetime] = None

    @classmethod
    def create(
        cls,
        *,
        id: UUID,
        tenant_id: int,
        session_id: str,
        service_id: int,
        offer_id: Optional[int],
        customer_id: Optional[int],
        quote: Quote,
        now: datetime,
        ttl_seconds: int,
    ) -> 'BookingLock':
        if not quote.lines:
            raise DomainError('Cannot lock an empty allocation')
        return cls(
            id=id,
            tenant_id=tenant_id,
            session_id=session_id,
            service_id=service_id,
            offer_id=offer_id,
            customer_id=customer_id,
            units=tuple(LockUnit.from_quote_line(line) for line in quote.lines),
            expires_at=now + timedelta(seconds=ttl_seconds),
            state=LockState.LOCKED,
            created_at=now,
        )

    @property
    def total_units(self) -> int:
        return len(self.units)

    @property
    def total_price(self) -> Decimal:
        return sum((unit.unit_price for unit in self.units), Decimal('0'))

    def is_active(self, now: datetime) -> bool:
        return self.state == LockState.LOCKED and self.expires_at > now

    def seconds_remaining(self, now: datetime) -> int:
        if not self.is_active(now):
            return 0
        return math.ceil((self.expires_at - now).total_seconds())

    def slot_quantities(self) -> list[tuple[int, int]]:
        """Units per slot in ascending slot id, the order every writer touches slot rows"""
        return sorted(Counter(unit.slot_id for unit in self.units).items())

    def subscription_quantities(self) -> list[tuple[int, int]]:
        return sorted(
            Counter(
                unit.package_subscription_id
                for unit in self.units
                if unit.package_subscription_id is not None
            ).items()
        )

    def to_quote(self) -> Quote:
        return Quote(
            lines=tuple(
                QuoteLine(
                    unit_index=unit.unit_index,
                    slot_id=unit.slot_id,
                    resource_id=unit.resource_id,
                    ticket_kind=unit.ticket_kind,
                    list_price=unit.list_price,
                    unit_price=unit.unit_price,
                    package_subscription_id=unit.package_subscription_id,
                    is_extension=unit.is_extension,
                )
                for unit in self.units
            )
        )
