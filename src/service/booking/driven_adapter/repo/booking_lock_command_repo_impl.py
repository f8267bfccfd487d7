"""
Booking Lock Command Repository Implementation

Capacity changes are conditional UPDATEs checked through `rowcount`: a statement that matched
no row means another transaction won the race, and the whole transaction is abandoned.
Slot rows are always touched in ascending id order so concurrent multi-slot locks cannot
deadlock each other.
"""

from datetime import datetime
from typing import AsyncContextManager, Callable, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.database.orm_db_setting import dialect_insert
from src.platform.logging.loguru_io import Logger
from src.service.booking.app.interface.i_booking_lock_command_repo import IBookingLockCommandRepo
from src.service.booking.domain.booking_exceptions import (
    CommitPartialFailureError,
    EntitlementExhaustedError,
    InsufficientCapacityError,
    LockExpiredError,
)
from src.service.booking.domain.clock import ensure_utc
from src.service.booking.domain.entity.booking_entity import Booking
from src.service.booking.domain.entity.booking_lock_entity import BookingLock, LockUnit
from src.service.booking.domain.entity.package_entity import SubscriptionStatus
from src.service.booking.domain.enum.lock_state import LockState
from src.service.booking.domain.enum.ticket_kind import TicketKind
from src.service.booking.driven_adapter.model.booking_lock_model import (
    BookingLockModel,
    BookingLockUnitModel,
)
from src.service.booking.driven_adapter.model.booking_model import BookingModel
from src.service.booking.driven_adapter.model.package_model import (
    PackageExhaustionNoticeModel,
    PackageSubscriptionModel,
    PackageUsageModel,
)
from src.service.booking.driven_adapter.model.slot_model import SlotModel


def booking_to_model(booking: Booking) -> BookingModel:
    return BookingModel(
        id=booking.id,
        tenant_id=booking.tenant_id,
        booking_group_id=booking.booking_group_id,
        service_id=booking.service_id,
        slot_id=booking.slot_id,
        resource_id=booking.resource_id,
        customer_id=booking.customer.customer_id,
        customer_name=booking.customer.name,
        customer_phone=booking.customer.phone,
        customer_email=booking.customer.email,
        adult_count=booking.adult_count,
        child_count=booking.child_count,
        visitor_count=1,
        unit_price=booking.unit_price,
        total_price=booking.unit_price,
        status=booking.status.value,
        payment_status=booking.payment_status.value,
        payment_method=booking.payment_method.value if booking.payment_method else None,
        transaction_reference=booking.transaction_reference,
        package_subscription_id=booking.package_subscription_id,
        offer_id=booking.offer_id,
        created_at=booking.created_at,
        updated_at=booking.updated_at,
    )


class BookingLockCommandRepoImpl(IBookingLockCommandRepo):
    def __init__(self, session_factory: Callable[..., AsyncContextManager[AsyncSession]]):
        self.session_factory = session_factory

    @staticmethod
    def _to_entity(model: BookingLockModel, units: Sequence[BookingLockUnitModel]) -> BookingLock:
        return BookingLock(
            id=model.id,
            tenant_id=model.tenant_id,
            session_id=model.session_id,
            service_id=model.service_id,
            offer_id=model.offer_id,
            customer_id=model.customer_id,
            state=LockState(model.state),
            expires_at=ensure_utc(model.expires_at),  # type: ignore[arg-type]
            created_at=ensure_utc(model.created_at),
            units=tuple(
                LockUnit(
                    unit_index=unit.unit_index,
                    slot_id=unit.slot_id,
                    resource_id=unit.resource_id,
                    ticket_kind=TicketKind(unit.ticket_kind),
                    list_price=unit.list_price,
                    unit_price=unit.unit_price,
                    package_subscription_id=unit.package_subscription_id,
                    is_extension=unit.is_extension,
                )
                for unit in units
            ),
        )

    @staticmethod
    async def _free_capacity(session: AsyncSession, *, slot_id: int) -> int:
        free = await session.scalar(
            select(SlotModel.available_capacity - SlotModel.locked_capacity).where(
                SlotModel.id == slot_id, SlotModel.is_available.is_(True)
            )
        )
        return max(free or 0, 0)

    @staticmethod
    async def _transition_and_unreserve(
        session: AsyncSession, *, lock_id: UUID, target: LockState
    ) -> bool:
        """Guarded LOCKED -> target; only the winner of the transition returns the capacity"""
        result = await session.execute(
            update(BookingLockModel)
            .where(BookingLockModel.id == lock_id, BookingLockModel.state == LockState.LOCKED)
            .values(state=target.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False

        quantities = await session.execute(
            select(BookingLockUnitModel.slot_id, func.count())
            .where(BookingLockUnitModel.lock_id == lock_id)
            .group_by(BookingLockUnitModel.slot_id)
            .order_by(BookingLockUnitModel.slot_id)
        )
        for slot_id, quantity in quantities.tuples():
            restored = await session.execute(
                update(SlotModel)
                .where(SlotModel.id == slot_id, SlotModel.locked_capacity >= quantity)
                .values(locked_capacity=SlotModel.locked_capacity - quantity)
                .execution_options(synchronize_session=False)
            )
            if restored.rowcount != 1:
                Logger.base.warning(
                    f'⚠️ [LOCK] Slot {slot_id} held less than {quantity} locked unit(s) '
                    f'while releasing lock {lock_id}'
                )
        return True

    @Logger.io
    async def purge_expired_locks(self, *, now: datetime) -> int:
        async with self.session_factory() as session:
            async with session.begin():
                lock_ids = (
                    await session.scalars(
                        select(BookingLockModel.id)
                        .where(
                            BookingLockModel.state == LockState.LOCKED,
                            BookingLockModel.expires_at <= now,
                        )
                        .order_by(BookingLockModel.id)
                    )
                ).all()

                expired = 0
                for lock_id in lock_ids:
                    if await self._transition_and_unreserve(
                        session, lock_id=lock_id, target=LockState.EXPIRED
                    ):
                        expired += 1
                return expired

    @Logger.io
    async def release_session_locks(
        self, *, tenant_id: int, session_id: str, now: datetime
    ) -> int:
        async with self.session_factory() as session:
            async with session.begin():
                lock_ids = (
                    await session.scalars(
                        select(BookingLockModel.id)
                        .where(
                            BookingLockModel.tenant_id == tenant_id,
                            BookingLockModel.session_id == session_id,
                            BookingLockModel.state == LockState.LOCKED,
                        )
                        .order_by(BookingLockModel.id)
                    )
                ).all()

                released = 0
                for lock_id in lock_ids:
                    if await self._transition_and_unreserve(
                        session, lock_id=lock_id, target=LockState.RELEASED
                    ):
                        released += 1
                if released:
                    Logger.base.info(
                        f'🔓 [LOCK] Released {released} previous lock(s) of session {session_id}'
                    )
                return released

    @Logger.io
    async def acquire_lock(self, *, lock: BookingLock) -> BookingLock:
        async with self.session_factory() as session:
            async with session.begin():
                for slot_id, quantity in lock.slot_quantities():
                    result = await session.execute(
                        update(SlotModel)
                        .where(
                            SlotModel.id == slot_id,
                            SlotModel.tenant_id == lock.tenant_id,
                            SlotModel.is_available.is_(True),
                            SlotModel.available_capacity - SlotModel.locked_capacity >= quantity,
                        )
                        .values(locked_capacity=SlotModel.locked_capacity + quantity)
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount != 1:
                        # Raising inside begin() rolls back the slots already reserved
                        raise InsufficientCapacityError(
                            available=await self._free_capacity(session, slot_id=slot_id),
                            requested=quantity,
                        )

                session.add(
                    BookingLockModel(
                        id=lock.id,
                        tenant_id=lock.tenant_id,
                        session_id=lock.session_id,
                        service_id=lock.service_id,
                        offer_id=lock.offer_id,
                        customer_id=lock.customer_id,
                        state=lock.state.value,
                        total_units=lock.total_units,
                        expires_at=lock.expires_at,
                        created_at=lock.created_at,
                    )
                )
                # Parent row first so the unit foreign keys resolve
                await session.flush()
                session.add_all(
                    [
                        BookingLockUnitModel(
                            lock_id=lock.id,
                            unit_index=unit.unit_index,
                            slot_id=unit.slot_id,
                            resource_id=unit.resource_id,
                            ticket_kind=unit.ticket_kind.value,
                            list_price=unit.list_price,
                            unit_price=unit.unit_price,
                            package_subscription_id=unit.package_subscription_id,
                            is_extension=unit.is_extension,
                        )
                        for unit in lock.units
                    ]
                )
        return lock

    @Logger.io
    async def get_lock(self, *, tenant_id: int, lock_id: UUID) -> Optional[BookingLock]:
        async with self.session_factory() as session:
            model = await session.scalar(
                select(BookingLockModel).where(
                    BookingLockModel.id == lock_id, BookingLockModel.tenant_id == tenant_id
                )
            )
            if model is None:
                return None
            units = (
                await session.scalars(
                    select(BookingLockUnitModel)
                    .where(BookingLockUnitModel.lock_id == lock_id)
                    .order_by(BookingLockUnitModel.unit_index)
                )
            ).all()
            return self._to_entity(model, units)

    @Logger.io
    async def release_lock(self, *, lock_id: UUID) -> bool:
        async with self.session_factory() as session:
            async with session.begin():
                return await self._transition_and_unreserve(
                    session, lock_id=lock_id, target=LockState.RELEASED
                )

    @Logger.io
    async def commit_lock(
        self, *, lock: BookingLock, bookings: Sequence[Booking], now: datetime
    ) -> list[Booking]:
        async with self.session_factory() as session:
            async with session.begin():
                claimed = await session.execute(
                    update(BookingLockModel)
                    .where(
                        BookingLockModel.id == lock.id,
                        BookingLockModel.tenant_id == lock.tenant_id,
                        BookingLockModel.session_id == lock.session_id,
                        BookingLockModel.state == LockState.LOCKED,
                        BookingLockModel.expires_at > now,
                    )
                    .values(state=LockState.COMMITTED.value)
                    .execution_options(synchronize_session=False)
                )
                if claimed.rowcount != 1:
                    raise LockExpiredError(lock.id)

                session.add_all([booking_to_model(booking) for booking in bookings])
                await session.flush()

                for slot_id, quantity in lock.slot_quantities():
                    result = await session.execute(
                        update(SlotModel)
                        .where(
                            SlotModel.id == slot_id,
                            SlotModel.tenant_id == lock.tenant_id,
                            SlotModel.available_capacity >= quantity,
                            SlotModel.locked_capacity >= quantity,
                        )
                        .values(
                            available_capacity=SlotModel.available_capacity - quantity,
                            locked_capacity=SlotModel.locked_capacity - quantity,
                            booked_count=SlotModel.booked_count + quantity,
                        )
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount != 1:
                        raise CommitPartialFailureError(
                            InsufficientCapacityError(
                                available=await self._free_capacity(session, slot_id=slot_id),
                                requested=quantity,
                            )
                        )

                for subscription_id, quantity in lock.subscription_quantities():
                    await self._consume_entitlement(
                        session,
                        subscription_id=subscription_id,
                        service_id=lock.service_id,
                        quantity=quantity,
                        now=now,
                    )

        Logger.base.info(
            f'💾 [COMMIT] Lock {lock.id} committed as {len(bookings)} booking row(s)'
        )
        return list(bookings)

    @staticmethod
    async def _consume_entitlement(
        session: AsyncSession, *, subscription_id: int, service_id: int, quantity: int, now: datetime
    ) -> None:
        active_subscription = select(PackageSubscriptionModel.id).where(
            PackageSubscriptionModel.id == subscription_id,
            PackageSubscriptionModel.status == SubscriptionStatus.ACTIVE.value,
            or_(
                PackageSubscriptionModel.expires_at.is_(None),
                PackageSubscriptionModel.expires_at > now,
            ),
        )
        usage_row = (
            PackageUsageModel.subscription_id == subscription_id,
            PackageUsageModel.service_id == service_id,
        )
        result = await session.execute(
            update(PackageUsageModel)
            .where(
                *usage_row,
                PackageUsageModel.subscription_id.in_(active_subscription),
                PackageUsageModel.remaining_quantity >= quantity,
            )
            .values(
                remaining_quantity=PackageUsageModel.remaining_quantity - quantity,
                used_quantity=PackageUsageModel.used_quantity + quantity,
            )
            .execution_options(synchronize_session=False)
        )

        remaining = await session.scalar(
            select(PackageUsageModel.remaining_quantity).where(*usage_row)
        )
        if result.rowcount != 1:
            still_active = await session.scalar(active_subscription) is not None
            raise CommitPartialFailureError(
                EntitlementExhaustedError(
                    available=(remaining or 0) if still_active else 0, requested=quantity
                )
            )

        if remaining == 0:
            await session.execute(
                dialect_insert(session, PackageExhaustionNoticeModel)
                .values(subscription_id=subscription_id, service_id=service_id, created_at=now)
                .on_conflict_do_nothing(index_elements=['subscription_id', 'service_id'])
            )
            Logger.base.info(
                f'📦 [PACKAGE] Subscription {subscription_id} exhausted for service {service_id}'
            )
