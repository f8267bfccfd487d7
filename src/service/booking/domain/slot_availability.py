"""
Slot availability filtering

Pure functions over already-fetched rows. The resolver is a generator so callers that only
need the first few slots (or a count per date) never materialize the whole window, and every
call recomputes from scratch.
"""

from collections import defaultdict
from datetime import date, datetime
from typing import Iterable, Iterator, Optional
from zoneinfo import ZoneInfo

import attrs

from src.platform.logging.loguru_io import Logger
from src.service.booking.domain.entity.slot_entity import Shift, Slot
from src.service.booking.domain.value_object.time_window import BookingWindow, TimeWindow


@attrs.define(frozen=True)
class AvailabilityClock:
    """'Now' as seen in the tenant's time zone"""

    today: date
    now_minutes: int  # minutes since local midnight

    @classmethod
    def at(cls, now: datetime, time_zone: str) -> 'AvailabilityClock':
        local = now.astimezone(ZoneInfo(time_zone))
        return cls(today=local.date(), now_minutes=local.hour * 60 + local.minute)


@attrs.define(frozen=True)
class AvailabilityOptions:
    include_past: bool = False  # mark instead of drop
    include_zero_capacity: bool = False  # keep exhausted slots for display


def weekday_sunday_first(value: date) -> int:
    """0 = Sunday ... 6 = Saturday"""
    return (value.weekday() + 1) % 7


def parse_minutes(value: Optional[str]) -> Optional[int]:
    """'HH:MM' or 'HH:MM:SS' to minutes since midnight, None when unparseable"""
    if not value:
        return None
    parts = value.strip().split(':')
    if len(parts) < 2:
        return None
    try:
        hours, minutes = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        return None
    return hours * 60 + minutes


def has_started(slot: Slot, clock: AvailabilityClock) -> bool:
    """
    True when the slot is today and its start time is not after now.

    Slots whose start time is missing or malformed are never considered started.
    """
    if slot.slot_date != clock.today:
        return slot.slot_date < clock.today
    start = parse_minutes(slot.start_time)
    if start is None:
        return False
    return start <= clock.now_minutes


@Logger.io
def iter_available_slots(
    *,
    shifts: Iterable[Shift],
    slots: Iterable[Slot],
    clock: AvailabilityClock,
    options: AvailabilityOptions = AvailabilityOptions(),
) -> Iterator[Slot]:
    shifts_by_id = {shift.id: shift for shift in shifts if shift.is_active}
    if not shifts_by_id:
        return

    for slot in slots:
        shift = shifts_by_id.get(slot.shift_id)
        # Orphaned slot or one left behind after its shift's weekdays changed
        if shift is None or shift.tenant_id != slot.tenant_id:
            continue
        if weekday_sunday_first(slot.slot_date) not in shift.days_of_week:
            continue
        if not slot.is_available:
            continue
        if slot.free_capacity <= 0 and not options.include_zero_capacity:
            continue

        if has_started(slot, clock):
            if not options.include_past:
                continue
            slot = attrs.evolve(slot, is_past=True)

        yield slot


def count_by_date(slots: Iterable[Slot]) -> dict[date, int]:
    """Bookable slots per date for date pickers; past and exhausted slots do not count"""
    counts: dict[date, int] = defaultdict(int)
    for slot in slots:
        if slot.is_past or slot.free_capacity <= 0:
            continue
        counts[slot.slot_date] += 1
    return dict(sorted(counts.items()))


def _window_sort_key(window: BookingWindow) -> tuple[date, int, str]:
    start = parse_minutes(window.start_time)
    return window.slot_date, -1 if start is None else start, window.start_time or ''


def group_time_windows(slots: Iterable[Slot]) -> list[TimeWindow]:
    grouped: dict[BookingWindow, list[Slot]] = defaultdict(list)
    for slot in slots:
        grouped[slot.window].append(slot)

    return [
        TimeWindow(
            window=window,
            free_capacity=sum(slot.free_capacity for slot in grouped[window] if not slot.is_past),
            slot_ids=tuple(sorted(slot.id for slot in grouped[window])),
        )
        for window in sorted(grouped, key=_window_sort_key)
    ]
