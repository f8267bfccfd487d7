"""
Multi-unit allocation

Places N ticket units (adults then children) onto concrete slots. Three shapes are supported:

- single slot: one slot at the chosen window has room for every unit
- parallel: one unit on each of N distinct resources sharing the window
- consecutive: the customer picked N slots of a single resource

When the window has fewer parallel resources than units, the customer's selection supplies the
remainder as extension slots on one resource (parallel + extension).

The allocator is pure: it validates and assigns, capacity is only reserved by the lock.
"""

from collections import Counter
from typing import Mapping, Optional, Sequence

import attrs

from src.platform.exception.exceptions import DomainError
from src.platform.logging.loguru_io import Logger
from src.service.booking.domain.booking_exceptions import (
    InsufficientCapacityError,
    InvalidSlotSelectionError,
    MixedResourceSelectionError,
    NoSlotSelectedError,
)
from src.service.booking.domain.entity.slot_entity import Slot
from src.service.booking.domain.enum.allocation_strategy import AllocationStrategy
from src.service.booking.domain.enum.ticket_kind import TicketKind
from src.service.booking.domain.slot_availability import parse_minutes
from src.service.booking.domain.value_object.assignment import Assignment
from src.service.booking.domain.value_object.time_window import BookingWindow


@attrs.define(frozen=True)
class AllocationRequest:
    tenant_id: int
    service_id: int
    adult_count: int
    child_count: int
    strategy: AllocationStrategy
    window: BookingWindow
    selected_slot_ids: tuple[int, ...] = attrs.field(converter=tuple, factory=tuple)

    @property
    def ticket_count(self) -> int:
        return self.adult_count + self.child_count

    def ticket_kind(self, unit_index: int) -> TicketKind:
        return TicketKind.ADULT if unit_index < self.adult_count else TicketKind.CHILD


def _is_open(slot: Slot, request: AllocationRequest) -> bool:
    return (
        slot.tenant_id == request.tenant_id
        and slot.service_id == request.service_id
        and slot.is_available
        and not slot.is_past
        and slot.free_capacity > 0
    )


def _chronological(slot: Slot) -> tuple:
    start = parse_minutes(slot.start_time)
    return slot.slot_date, -1 if start is None else start, slot.id


def _single_slot(candidates: Sequence[Slot], count: int) -> Optional[Slot]:
    fitting = [slot for slot in candidates if slot.free_capacity >= count]
    if not fitting:
        return None
    return min(fitting, key=lambda slot: (slot.booked_count, slot.id))


def _parallel_slots(candidates: Sequence[Slot]) -> list[Slot]:
    """Least-booked first, at most one slot per resource"""
    ordered = sorted(
        candidates,
        key=lambda slot: (slot.booked_count, slot.resource_id or 0, slot.id),
    )
    seen: set[int] = set()
    result: list[Slot] = []
    for slot in ordered:
        if slot.resource_id is not None:
            if slot.resource_id in seen:
                continue
            seen.add(slot.resource_id)
        result.append(slot)
    return result


def _validated_selection(
    *,
    request: AllocationRequest,
    selected_slot_ids: Sequence[int],
    selected_slots: Mapping[int, Slot],
    required: int,
    excluded_ids: frozenset[int] = frozenset(),
) -> list[Slot]:
    if not selected_slot_ids:
        raise NoSlotSelectedError(required=required)

    duplicates = [slot_id for slot_id, n in Counter(selected_slot_ids).items() if n > 1]
    if duplicates:
        raise InvalidSlotSelectionError(f'Slot {duplicates[0]} was selected more than once')

    if overlap := sorted(set(selected_slot_ids) & excluded_ids):
        raise InvalidSlotSelectionError(f'Slot {overlap[0]} is already allocated in parallel')

    if len(selected_slot_ids) < required:
        raise InvalidSlotSelectionError(
            f'{required - len(selected_slot_ids)} more slot(s) required'
        )
    if len(selected_slot_ids) > required:
        raise InvalidSlotSelectionError(
            f'Too many slots selected: {len(selected_slot_ids)} selected, {required} required'
        )

    slots: list[Slot] = []
    for slot_id in selected_slot_ids:
        slot = selected_slots.get(slot_id)
        if (
            slot is None
            or slot.tenant_id != request.tenant_id
            or slot.service_id != request.service_id
        ):
            raise InvalidSlotSelectionError(f'Slot {slot_id} is not available')
        slots.append(slot)

    resource_ids = {slot.resource_id for slot in slots}
    if len(resource_ids) > 1:
        raise MixedResourceSelectionError(resource_ids)

    for slot in slots:
        if not _is_open(slot, request):
            raise InsufficientCapacityError(
                available=0 if slot.is_past else slot.free_capacity,
                requested=1,
                message=(
                    f'Slot {slot.id} is no longer available. '
                    f'Only {0 if slot.is_past else slot.free_capacity} available, but 1 requested.'
                ),
            )

    return sorted(slots, key=_chronological)


def _assign(
    request: AllocationRequest, slots: Sequence[Slot], *, start: int = 0, extension: bool = False
) -> list[Assignment]:
    return [
        Assignment(
            unit_index=start + offset,
            slot_id=slot.id,
            resource_id=slot.resource_id,
            ticket_kind=request.ticket_kind(start + offset),
            is_extension=extension,
        )
        for offset, slot in enumerate(slots)
    ]


@Logger.io
def allocate(
    *,
    request: AllocationRequest,
    window_slots: Sequence[Slot],
    selected_slots: Optional[Mapping[int, Slot]] = None,
) -> list[Assignment]:
    """
    Returns exactly `request.ticket_count` assignments, deterministic for identical input.

    Raises:
        DomainError: no tickets requested
        NoSlotSelectedError: consecutive strategy without a selection
        InvalidSlotSelectionError: wrong number of slots, duplicates, unknown slots
        MixedResourceSelectionError: selection spans several resources
        InsufficientCapacityError: not enough room, with the concrete numbers
    """
    count = request.ticket_count
    if request.adult_count < 0 or request.child_count < 0 or count < 1:
        raise DomainError('At least one ticket is required')

    selected_slots = selected_slots or {}
    candidates = [
        slot for slot in window_slots if slot.window == request.window and _is_open(slot, request)
    ]

    if request.strategy == AllocationStrategy.CONSECUTIVE and request.selected_slot_ids:
        slots = _validated_selection(
            request=request,
            selected_slot_ids=request.selected_slot_ids,
            selected_slots=selected_slots,
            required=count,
        )
        return _assign(request, slots)

    if single := _single_slot(candidates, count):
        return [
            Assignment(
                unit_index=index,
                slot_id=single.id,
                resource_id=single.resource_id,
                ticket_kind=request.ticket_kind(index),
            )
            for index in range(count)
        ]

    if request.strategy == AllocationStrategy.CONSECUTIVE:
        raise NoSlotSelectedError(required=count)

    parallel = _parallel_slots(candidates)
    if len(parallel) >= count:
        return _assign(request, parallel[:count])

    if not request.selected_slot_ids:
        raise InsufficientCapacityError(available=len(parallel), requested=count)

    extension = _validated_selection(
        request=request,
        selected_slot_ids=request.selected_slot_ids,
        selected_slots=selected_slots,
        required=count - len(parallel),
        excluded_ids=frozenset(slot.id for slot in parallel),
    )
    Logger.base.info(
        f'🧩 [ALLOCATE] {len(parallel)} parallel + {len(extension)} extension units '
        f'for window {request.window.slot_date} {request.window.start_time}'
    )
    return _assign(request, parallel) + _assign(
        request, extension, start=len(parallel), extension=True
    )
