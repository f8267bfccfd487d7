from abc import ABC, abstractmethod
from datetime import date
from typing import Iterable, Sequence

from src.service.booking.domain.entity.slot_entity import Shift, Slot
from src.service.booking.domain.value_object.time_window import BookingWindow


class ISlotQueryRepo(ABC):
    @abstractmethod
    async def list_active_shifts(self, *, tenant_id: int, service_id: int) -> list[Shift]:
        pass

    @abstractmethod
    async def list_slots(
        self,
        *,
        tenant_id: int,
        shift_ids: Sequence[int],
        start_date: date,
        end_date: date,
        include_zero_capacity: bool = False,
    ) -> list[Slot]:
        """
        Slots of the given shifts dated within [start_date, end_date]

        Only `is_available` slots are returned; exhausted slots (no free capacity) are left
        out unless `include_zero_capacity` is set. Ordered by date, start time, id.
        """
        pass

    @abstractmethod
    async def list_window_slots(
        self, *, tenant_id: int, service_id: int, window: BookingWindow
    ) -> list[Slot]:
        """Every slot of the service sharing exactly this (date, start, end)"""
        pass

    @abstractmethod
    async def get_slots_by_ids(self, *, tenant_id: int, slot_ids: Iterable[int]) -> dict[int, Slot]:
        """Slots keyed by id; ids outside the tenant are silently missing"""
        pass
