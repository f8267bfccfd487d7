from datetime import date
from typing import Any, AsyncContextManager, Callable, Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.logging.loguru_io import Logger
from src.service.booking.app.interface.i_slot_query_repo import ISlotQueryRepo
from src.service.booking.domain.entity.slot_entity import Shift, Slot
from src.service.booking.domain.value_object.time_window import BookingWindow
from src.service.booking.driven_adapter.model.slot_model import ShiftModel, SlotModel


def _equals_or_null(column: Any, value: Optional[str]) -> Any:
    return column.is_(None) if value is None else column == value


class SlotQueryRepoImpl(ISlotQueryRepo):
    def __init__(self, session_factory: Callable[..., AsyncContextManager[AsyncSession]]):
        self.session_factory = session_factory

    @staticmethod
    def _to_slot(model: SlotModel) -> Slot:
        return Slot(
            id=model.id,
            tenant_id=model.tenant_id,
            shift_id=model.shift_id,
            service_id=model.service_id,
            resource_id=model.resource_id,
            slot_date=model.slot_date,
            start_time=model.start_time,
            end_time=model.end_time,
            original_capacity=model.original_capacity,
            available_capacity=model.available_capacity,
            locked_capacity=model.locked_capacity,
            booked_count=model.booked_count,
            is_available=model.is_available,
        )

    @Logger.io
    async def list_active_shifts(self, *, tenant_id: int, service_id: int) -> list[Shift]:
        async with self.session_factory() as session:
            models = await session.scalars(
                select(ShiftModel)
                .where(
                    ShiftModel.tenant_id == tenant_id,
                    ShiftModel.service_id == service_id,
                    ShiftModel.is_active.is_(True),
                )
                .order_by(ShiftModel.id)
            )
            return [
                Shift(
                    id=model.id,
                    tenant_id=model.tenant_id,
                    service_id=model.service_id,
                    days_of_week=model.days_of_week,
                    is_active=model.is_active,
                )
                for model in models
            ]

    @Logger.io
    async def list_slots(
        self,
        *,
        tenant_id: int,
        shift_ids: Sequence[int],
        start_date: date,
        end_date: date,
        include_zero_capacity: bool = False,
    ) -> list[Slot]:
        if not shift_ids:
            return []

        stmt = select(SlotModel).where(
            SlotModel.tenant_id == tenant_id,
            SlotModel.shift_id.in_(shift_ids),
            SlotModel.slot_date >= start_date,
            SlotModel.slot_date <= end_date,
            SlotModel.is_available.is_(True),
        )
        if not include_zero_capacity:
            stmt = stmt.where(SlotModel.available_capacity - SlotModel.locked_capacity > 0)

        async with self.session_factory() as session:
            models = await session.scalars(
                stmt.order_by(SlotModel.slot_date, SlotModel.start_time, SlotModel.id)
            )
            return [self._to_slot(model) for model in models]

    @Logger.io
    async def list_window_slots(
        self, *, tenant_id: int, service_id: int, window: BookingWindow
    ) -> list[Slot]:
        async with self.session_factory() as session:
            models = await session.scalars(
                select(SlotModel)
                .where(
                    SlotModel.tenant_id == tenant_id,
                    SlotModel.service_id == service_id,
                    SlotModel.slot_date == window.slot_date,
                    _equals_or_null(SlotModel.start_time, window.start_time),
                    _equals_or_null(SlotModel.end_time, window.end_time),
                )
                .order_by(SlotModel.id)
            )
            return [self._to_slot(model) for model in models]

    @Logger.io
    async def get_slots_by_ids(
        self, *, tenant_id: int, slot_ids: Iterable[int]
    ) -> dict[int, Slot]:
        ids = sorted(set(slot_ids))
        if not ids:
            return {}
        async with self.session_factory() as session:
            models = await session.scalars(
                select(SlotModel).where(SlotModel.tenant_id == tenant_id, SlotModel.id.in_(ids))
            )
            return {model.id: self._to_slot(model) for model in models}
