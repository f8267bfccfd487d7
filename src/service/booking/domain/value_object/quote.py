from decimal import Decimal
from typing import Optional

import attrs

from src.service.booking.domain.enum.ticket_kind import TicketKind


@attrs.define(frozen=True)
class QuoteLine:
    unit_index: int
    slot_id: int
    resource_id: Optional[int]
    ticket_kind: TicketKind
    list_price: Decimal
    unit_price: Decimal
    package_subscription_id: Optional[int] = None
    is_extension: bool = False

    @property
    def is_covered(self) -> bool:
        return self.package_subscription_id is not None


@attrs.define(frozen=True)
class Quote:
    """
    Itemized price of an allocation.

    The total is derived from the lines, so the displayed sum and the charged total
    cannot diverge.
    """

    lines: tuple[QuoteLine, ...]
    entitlement_exhausted: bool = False

    @property
    def total(self) -> Decimal:
        return sum((line.unit_price for line in self.lines), Decimal('0'))

    @property
    def covered_units(self) -> int:
        return sum(1 for line in self.lines if line.is_covered)

    @property
    def paid_units(self) -> int:
        return len(self.lines) - self.covered_units
