from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

import attrs


if TYPE_CHECKING:
    from src.service.booking.domain.entity.booking_entity import Booking


@attrs.define(frozen=True)
class BookingGroup:
    """All per-unit bookings created by one checkout"""

    id: UUID
    bookings: tuple['Booking', ...]

    @property
    def total_price(self) -> Decimal:
        return sum((booking.unit_price for booking in self.bookings), Decimal('0'))

    @property
    def ticket_count(self) -> int:
        return len(self.bookings)
