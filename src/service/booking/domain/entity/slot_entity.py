from datetime import date
from typing import Iterable, Optional

import attrs

from src.service.booking.domain.value_object.time_window import BookingWindow


def _weekday(value: int) -> int:
    if not 0 <= value <= 6:
        raise ValueError(f'weekday must be 0 (Sunday) to 6 (Saturday), got {value}')
    return value


def _weekdays(values: Optional[Iterable[int]]) -> frozenset[int]:
    return frozenset(_weekday(int(v)) for v in (values or ()))


@attrs.define(frozen=True)
class Shift:
    """Weekly template a slot was materialized from; weekdays use 0 = Sunday"""

    id: int
    tenant_id: int
    service_id: int
    days_of_week: frozenset[int] = attrs.field(converter=_weekdays, factory=frozenset)
    is_active: bool = True


@attrs.define(frozen=True)
class Slot:
    id: int
    tenant_id: int
    shift_id: int
    service_id: int
    slot_date: date
    start_time: Optional[str]
    end_time: Optional[str]
    original_capacity: int
    available_capacity: int
    locked_capacity: int = 0
    booked_count: int = 0
    resource_id: Optional[int] = None
    is_available: bool = True
    is_past: bool = False

    @property
    def free_capacity(self) -> int:
        """Capacity neither committed nor held by an active lock"""
        return max(self.available_capacity - self.locked_capacity, 0)

    @property
    def window(self) -> BookingWindow:
        return BookingWindow(
            slot_date=self.slot_date, start_time=self.start_time, end_time=self.end_time
        )
