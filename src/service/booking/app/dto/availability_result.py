"""Availability query result DTO."""

from datetime import date

import attrs

from src.service.booking.domain.entity.slot_entity import Slot
from src.service.booking.domain.value_object.time_window import TimeWindow


@attrs.define(frozen=True)
class AvailabilityResult:
    """
    Bookable slots for a service over a date range.

    `counts_by_date` only counts slots a customer can still book, so a date picker can grey out
    days with zero even when `slots` holds past or exhausted slots for display.
    """

    tenant_id: int
    service_id: int
    start_date: date
    end_date: date
    slots: tuple[Slot, ...]
    counts_by_date: dict[date, int]
    time_windows: tuple[TimeWindow, ...]
