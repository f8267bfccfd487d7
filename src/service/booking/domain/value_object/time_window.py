from datetime import date
from typing import Optional

import attrs


@attrs.define(frozen=True, order=True)
class BookingWindow:
    """The (date, start, end) a customer picked; parallel slots share it exactly"""

    slot_date: date
    start_time: Optional[str]
    end_time: Optional[str]


@attrs.define(frozen=True)
class TimeWindow:
    """Slots sharing one window, aggregated for date/time pickers"""

    window: BookingWindow
    free_capacity: int
    slot_ids: tuple[int, ...]

    @property
    def slot_count(self) -> int:
        return len(self.slot_ids)
