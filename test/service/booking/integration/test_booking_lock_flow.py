"""
Integration tests for the lock and commit protocol

Real repositories over the sqlite test database; the clock is frozen so TTLs are exact.
"""

import asyncio
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional
import uuid

import attrs
import pytest
from sqlalchemy import func, select, update

from src.platform.config.core_setting import Settings
from src.platform.database.orm_db_setting import Database, get_session_maker
from src.platform.exception.exceptions import NotFoundError
from src.service.booking.app.command.cancel_booking_group_use_case import (
    CancelBookingGroupUseCase,
)
from src.service.booking.app.command.commit_booking_use_case import CommitBookingUseCase
from src.service.booking.app.command.guest_verification_gate import GuestVerificationGate
from src.service.booking.app.command.lock_booking_use_case import LockBookingUseCase
from src.service.booking.app.query.allocate_booking_use_case import AllocateBookingUseCase
from src.service.booking.domain.booking_exceptions import (
    EntitlementExhaustedError,
    InsufficientCapacityError,
    LockExpiredError,
)
from src.service.booking.domain.entity.booking_lock_entity import BookingLock
from src.service.booking.domain.enum.allocation_strategy import AllocationStrategy
from src.service.booking.domain.enum.payment_status import PaymentStatus
from src.service.booking.domain.enum.ticket_kind import TicketKind
from src.service.booking.domain.enum.user_role import UserRole
from src.service.booking.domain.value_object.principal import Principal
from src.service.booking.domain.value_object.quote import Quote, QuoteLine
from src.service.booking.driven_adapter.model.booking_lock_model import BookingLockModel
from src.service.booking.driven_adapter.model.booking_model import BookingModel
from src.service.booking.driven_adapter.model.package_model import PackageUsageModel
from src.service.booking.driven_adapter.notification.logging_booking_notifier import (
    LoggingBookingNotifier,
)
from src.service.booking.driven_adapter.repo.booking_command_repo_impl import (
    BookingCommandRepoImpl,
)
from src.service.booking.driven_adapter.repo.booking_lock_command_repo_impl import (
    BookingLockCommandRepoImpl,
)
from src.service.booking.driven_adapter.repo.catalog_query_repo_impl import CatalogQueryRepoImpl
from src.service.booking.driven_adapter.repo.otp_session_repo_impl import OtpSessionRepoImpl
from src.service.booking.driven_adapter.repo.package_query_repo_impl import PackageQueryRepoImpl
from src.service.booking.driven_adapter.repo.slot_query_repo_impl import SlotQueryRepoImpl
from test.service.booking.builders import MORNING, NOW, SERVICE_ID, TENANT_ID
from test.service.booking.integration.seed import (
    get_slot,
    get_usage,
    seed_catalog,
    seed_package,
    seed_slot,
)


TTL_SECONDS = 120


@attrs.define
class FrozenClock:
    now: datetime = NOW

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@attrs.define
class BookingFlow:
    """The use cases wired the way the container wires them"""

    lock: LockBookingUseCase
    commit: CommitBookingUseCase
    cancel: CancelBookingGroupUseCase
    lock_repo: BookingLockCommandRepoImpl
    clock: FrozenClock


def customer(user_id: int, customer_id: Optional[int] = None) -> Principal:
    return Principal(
        user_id=user_id, tenant_id=TENANT_ID, role=UserRole.CUSTOMER, customer_id=customer_id
    )


async def count_rows(model: type) -> int:
    async with get_session_maker()() as session:
        return await session.scalar(select(func.count()).select_from(model)) or 0


@pytest.fixture
def booking() -> BookingFlow:
    database = Database()
    clock = FrozenClock()
    config = Settings(BOOKING_LOCK_TTL_SECONDS=TTL_SECONDS)
    lock_repo = BookingLockCommandRepoImpl(session_factory=database.session)
    gate = GuestVerificationGate(
        otp_session_repo=OtpSessionRepoImpl(session_factory=database.session), clock=clock
    )
    allocate = AllocateBookingUseCase(
        catalog_query_repo=CatalogQueryRepoImpl(session_factory=database.session),
        slot_query_repo=SlotQueryRepoImpl(session_factory=database.session),
        package_query_repo=PackageQueryRepoImpl(session_factory=database.session),
        config=config,
        clock=clock,
    )
    return BookingFlow(
        lock=LockBookingUseCase(
            guest_gate=gate,
            allocate_use_case=allocate,
            booking_lock_command_repo=lock_repo,
            config=config,
            clock=clock,
        ),
        commit=CommitBookingUseCase(
            guest_gate=gate,
            booking_lock_command_repo=lock_repo,
            booking_notifier=LoggingBookingNotifier(),
            clock=clock,
        ),
        cancel=CancelBookingGroupUseCase(
            booking_command_repo=BookingCommandRepoImpl(session_factory=database.session),
            clock=clock,
        ),
        lock_repo=lock_repo,
        clock=clock,
    )


@pytest.mark.integration
class TestLockAndCommit:
    @pytest.mark.asyncio
    async def test_lock_then_commit_moves_capacity(self, booking: BookingFlow) -> None:
        # Given: two resources sharing the morning window, a customer with one package unit
        await seed_catalog()
        await seed_slot(1)
        await seed_slot(2)
        await seed_package(subscription_id=9, customer_id=55, remaining=1)
        principal = customer(7, customer_id=55)

        # When: locking two adults
        token = await booking.lock.execute(
            tenant_id=TENANT_ID,
            principal=principal,
            service_id=SERVICE_ID,
            adult_count=2,
            window=MORNING,
        )

        # Then: both slots are held, nothing is booked yet
        assert token.seconds_remaining == TTL_SECONDS
        assert token.quote.total == Decimal('150.00')
        for slot_id in (1, 2):
            slot = await get_slot(slot_id)
            assert (slot.available_capacity, slot.locked_capacity, slot.booked_count) == (1, 1, 0)

        # When: committing within the TTL
        booking.clock.advance(30)
        group = await booking.commit.execute(
            tenant_id=TENANT_ID,
            principal=principal,
            lock_id=token.lock_id,
            customer_name='Sara',
            customer_phone='+966501234567',
        )

        # Then: one row per unit, capacity consumed, package unit spent
        assert group.ticket_count == 2
        assert sorted(b.payment_status for b in group.bookings) == [
            PaymentStatus.PAID,
            PaymentStatus.UNPAID,
        ]
        for slot_id in (1, 2):
            slot = await get_slot(slot_id)
            assert (slot.available_capacity, slot.locked_capacity, slot.booked_count) == (0, 0, 1)
        usage = await get_usage(9)
        assert (usage.remaining_quantity, usage.used_quantity) == (0, 10)
        assert await count_rows(BookingModel) == 2

    @pytest.mark.asyncio
    async def test_concurrent_locks_never_oversell(self, booking: BookingFlow) -> None:
        # Given: one slot with room for three
        await seed_catalog()
        await seed_slot(1, capacity=3)

        # When: six sessions race for one unit each
        results = await asyncio.gather(
            *(
                booking.lock.execute(
                    tenant_id=TENANT_ID,
                    principal=customer(100 + n),
                    service_id=SERVICE_ID,
                    adult_count=1,
                    window=MORNING,
                )
                for n in range(6)
            ),
            return_exceptions=True,
        )

        # Then: exactly three win, the rest see a capacity error
        won = [r for r in results if not isinstance(r, BaseException)]
        lost = [r for r in results if isinstance(r, BaseException)]
        assert len(won) == 3
        assert len(lost) == 3
        assert all(isinstance(e, InsufficientCapacityError) for e in lost)
        slot = await get_slot(1)
        assert slot.locked_capacity == 3
        assert slot.available_capacity == 3

    @pytest.mark.asyncio
    async def test_failed_multi_slot_lock_reserves_nothing(self, booking: BookingFlow) -> None:
        # Given: a consecutive selection where the second slot is taken in the meantime
        await seed_catalog()
        await seed_slot(1, resource_id=5)
        await seed_slot(2, resource_id=5, start_time='10:00', end_time='11:00')
        await booking.lock.execute(
            tenant_id=TENANT_ID,
            principal=customer(8),
            service_id=SERVICE_ID,
            adult_count=1,
            strategy=AllocationStrategy.CONSECUTIVE,
            window=MORNING,
            selected_slot_ids=[2],
        )

        # When
        with pytest.raises(InsufficientCapacityError):
            await booking.lock.execute(
                tenant_id=TENANT_ID,
                principal=customer(7),
                service_id=SERVICE_ID,
                adult_count=2,
                strategy=AllocationStrategy.CONSECUTIVE,
                window=MORNING,
                selected_slot_ids=[1, 2],
            )

        # Then: slot 1 was not left half-reserved
        assert (await get_slot(1)).locked_capacity == 0
        assert (await get_slot(2)).locked_capacity == 1

    @pytest.mark.asyncio
    async def test_acquire_rolls_back_earlier_slots(self, booking: BookingFlow) -> None:
        # Given: a lock spanning a free slot and a full one, as if another writer won slot 2
        await seed_catalog()
        await seed_slot(1)
        await seed_slot(2, capacity=0)
        lock = BookingLock.create(
            id=uuid.uuid4(),
            tenant_id=TENANT_ID,
            session_id='user:7',
            service_id=SERVICE_ID,
            offer_id=None,
            customer_id=None,
            quote=Quote(
                lines=tuple(
                    QuoteLine(
                        unit_index=index,
                        slot_id=slot_id,
                        resource_id=slot_id,
                        ticket_kind=TicketKind.ADULT,
                        list_price=Decimal('150.00'),
                        unit_price=Decimal('150.00'),
                    )
                    for index, slot_id in enumerate((1, 2))
                )
            ),
            now=NOW,
            ttl_seconds=TTL_SECONDS,
        )

        # When
        with pytest.raises(InsufficientCapacityError) as exc_info:
            await booking.lock_repo.acquire_lock(lock=lock)

        # Then
        assert exc_info.value.available == 0
        assert (await get_slot(1)).locked_capacity == 0
        assert await count_rows(BookingLockModel) == 0

    @pytest.mark.asyncio
    async def test_relock_releases_previous_hold(self, booking: BookingFlow) -> None:
        await seed_catalog()
        await seed_slot(1)
        principal = customer(7)

        first = await booking.lock.execute(
            tenant_id=TENANT_ID,
            principal=principal,
            service_id=SERVICE_ID,
            adult_count=1,
            window=MORNING,
        )
        second = await booking.lock.execute(
            tenant_id=TENANT_ID,
            principal=principal,
            service_id=SERVICE_ID,
            adult_count=1,
            window=MORNING,
        )

        assert first.lock_id != second.lock_id
        assert (await get_slot(1)).locked_capacity == 1
        with pytest.raises(LockExpiredError):
            await booking.commit.execute(
                tenant_id=TENANT_ID,
                principal=principal,
                lock_id=first.lock_id,
                customer_name='Sara',
                customer_phone='+966501234567',
            )


@pytest.mark.integration
class TestLockExpiry:
    @pytest.mark.asyncio
    async def test_expired_lock_returns_capacity(self, booking: BookingFlow) -> None:
        # Given
        await seed_catalog()
        await seed_slot(1)
        principal = customer(7)
        token = await booking.lock.execute(
            tenant_id=TENANT_ID,
            principal=principal,
            service_id=SERVICE_ID,
            adult_count=1,
            window=MORNING,
        )

        # When: the TTL passes and the sweep runs
        booking.clock.advance(TTL_SECONDS)
        expired = await booking.lock_repo.purge_expired_locks(now=booking.clock())

        # Then
        assert expired == 1
        assert (await get_slot(1)).locked_capacity == 0
        with pytest.raises(LockExpiredError):
            await booking.commit.execute(
                tenant_id=TENANT_ID,
                principal=principal,
                lock_id=token.lock_id,
                customer_name='Sara',
                customer_phone='+966501234567',
            )
        assert await count_rows(BookingModel) == 0

    @pytest.mark.asyncio
    async def test_sweep_is_idempotent(self, booking: BookingFlow) -> None:
        await seed_catalog()
        await seed_slot(1, capacity=2)
        await booking.lock.execute(
            tenant_id=TENANT_ID,
            principal=customer(7),
            service_id=SERVICE_ID,
            adult_count=2,
            window=MORNING,
        )
        booking.clock.advance(TTL_SECONDS + 1)

        assert await booking.lock_repo.purge_expired_locks(now=booking.clock()) == 1
        assert await booking.lock_repo.purge_expired_locks(now=booking.clock()) == 0
        assert (await get_slot(1)).locked_capacity == 0


@pytest.mark.integration
class TestCommitRollback:
    @pytest.mark.asyncio
    async def test_package_spent_elsewhere_rolls_back_whole_group(
        self, booking: BookingFlow
    ) -> None:
        # Given: a lock priced with one covered unit
        await seed_catalog()
        await seed_slot(1)
        await seed_slot(2)
        await seed_package(subscription_id=9, customer_id=55, remaining=1)
        principal = customer(7, customer_id=55)
        token = await booking.lock.execute(
            tenant_id=TENANT_ID,
            principal=principal,
            service_id=SERVICE_ID,
            adult_count=2,
            window=MORNING,
        )
        assert token.quote.covered_units == 1

        # And: the last package unit is consumed by another booking first
        async with get_session_maker()() as session:
            async with session.begin():
                await session.execute(
                    update(PackageUsageModel)
                    .where(PackageUsageModel.subscription_id == 9)
                    .values(remaining_quantity=0, used_quantity=10)
                )

        # When
        with pytest.raises(EntitlementExhaustedError):
            await booking.commit.execute(
                tenant_id=TENANT_ID,
                principal=principal,
                lock_id=token.lock_id,
                customer_name='Sara',
                customer_phone='+966501234567',
            )

        # Then: no booking rows, slots untouched by the commit, lock released
        assert await count_rows(BookingModel) == 0
        for slot_id in (1, 2):
            slot = await get_slot(slot_id)
            assert (slot.available_capacity, slot.locked_capacity, slot.booked_count) == (1, 0, 0)
        async with get_session_maker()() as session:
            lock = await session.get(BookingLockModel, token.lock_id)
            assert lock is not None
            assert lock.state == 'released'


@pytest.mark.integration
class TestCancel:
    @pytest.mark.asyncio
    async def test_cancel_restores_slots_and_package(self, booking: BookingFlow) -> None:
        await seed_catalog()
        await seed_slot(1, capacity=2)
        await seed_package(subscription_id=9, customer_id=55, remaining=5)
        principal = customer(7, customer_id=55)
        token = await booking.lock.execute(
            tenant_id=TENANT_ID,
            principal=principal,
            service_id=SERVICE_ID,
            adult_count=2,
            window=MORNING,
        )
        group = await booking.commit.execute(
            tenant_id=TENANT_ID,
            principal=principal,
            lock_id=token.lock_id,
            customer_name='Sara',
            customer_phone='+966501234567',
        )
        assert (await get_usage(9)).remaining_quantity == 3

        await booking.cancel.execute(
            tenant_id=TENANT_ID, principal=principal, booking_group_id=group.id
        )

        slot = await get_slot(1)
        assert (slot.available_capacity, slot.locked_capacity, slot.booked_count) == (2, 0, 0)
        usage = await get_usage(9)
        assert (usage.remaining_quantity, usage.used_quantity) == (5, 5)

    @pytest.mark.asyncio
    async def test_other_tenant_cannot_see_lock(self, booking: BookingFlow) -> None:
        await seed_catalog()
        await seed_slot(1)
        token = await booking.lock.execute(
            tenant_id=TENANT_ID,
            principal=customer(7),
            service_id=SERVICE_ID,
            adult_count=1,
            window=MORNING,
        )

        other_tenant = await booking.lock_repo.get_lock(
            tenant_id=TENANT_ID + 1, lock_id=token.lock_id
        )
        assert other_tenant is None
        with pytest.raises(NotFoundError):
            await booking.commit.execute(
                tenant_id=TENANT_ID,
                principal=customer(8),
                lock_id=token.lock_id,
                customer_name='Sara',
                customer_phone='+966501234567',
            )
