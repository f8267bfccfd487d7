from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, Mock
import uuid

import pytest

from src.platform.exception.exceptions import NotFoundError
from src.service.booking.app.command.commit_booking_use_case import CommitBookingUseCase
from src.service.booking.domain.booking_exceptions import (
    CommitPartialFailureError,
    EntitlementExhaustedError,
    LockExpiredError,
)
from src.service.booking.domain.entity.booking_entity import Booking
from src.service.booking.domain.entity.booking_lock_entity import BookingLock
from src.service.booking.domain.enum.payment_status import PaymentStatus
from src.service.booking.domain.enum.ticket_kind import TicketKind
from src.service.booking.domain.value_object.guest_identity import GuestIdentity
from src.service.booking.domain.value_object.quote import Quote, QuoteLine
from test.service.booking.builders import NOW, SERVICE_ID, TENANT_ID


def _lock(*, session_id: str = 'user:7', now=NOW) -> BookingLock:
    return BookingLock.create(
        id=uuid.uuid4(),
        tenant_id=TENANT_ID,
        session_id=session_id,
        service_id=SERVICE_ID,
        offer_id=None,
        customer_id=55,
        quote=Quote(
            lines=(
                QuoteLine(
                    unit_index=0,
                    slot_id=1,
                    resource_id=1,
                    ticket_kind=TicketKind.ADULT,
                    list_price=Decimal('150.00'),
                    unit_price=Decimal('0'),
                    package_subscription_id=9,
                ),
                QuoteLine(
                    unit_index=1,
                    slot_id=2,
                    resource_id=2,
                    ticket_kind=TicketKind.CHILD,
                    list_price=Decimal('100.00'),
                    unit_price=Decimal('100.00'),
                ),
            )
        ),
        now=now,
        ttl_seconds=120,
    )


@pytest.fixture
def guest_gate() -> Mock:
    gate = AsyncMock()
    gate.ensure_verified = AsyncMock(return_value='user:7')
    return gate


@pytest.fixture
def booking_lock_command_repo() -> Mock:
    repo = AsyncMock()

    async def _commit_lock(*, lock: BookingLock, bookings: list[Booking], now) -> list[Booking]:
        return bookings

    repo.get_lock = AsyncMock(return_value=_lock())
    repo.commit_lock = AsyncMock(side_effect=_commit_lock)
    repo.release_lock = AsyncMock(return_value=True)
    repo.purge_expired_locks = AsyncMock(return_value=1)
    return repo


@pytest.fixture
def booking_notifier() -> Mock:
    notifier = AsyncMock()
    notifier.booking_committed = AsyncMock()
    return notifier


@pytest.fixture
def use_case(
    guest_gate: Mock, booking_lock_command_repo: Mock, booking_notifier: Mock
) -> CommitBookingUseCase:
    return CommitBookingUseCase(
        guest_gate=guest_gate,
        booking_lock_command_repo=booking_lock_command_repo,
        booking_notifier=booking_notifier,
        clock=lambda: NOW + timedelta(seconds=30),
    )


async def _commit(use_case: CommitBookingUseCase, **overrides):
    kwargs = {
        'tenant_id': TENANT_ID,
        'principal': Mock(),
        'lock_id': uuid.uuid4(),
        'customer_name': 'Sara',
        'customer_phone': '+966501234567',
    }
    kwargs.update(overrides)
    return await use_case.execute(**kwargs)


@pytest.mark.unit
class TestCommitBookingUseCase:
    @pytest.mark.asyncio
    async def test_commit_creates_one_booking_per_unit(
        self, use_case: CommitBookingUseCase, booking_notifier: Mock
    ) -> None:
        group = await _commit(use_case)

        assert group.ticket_count == 2
        assert group.total_price == Decimal('100.00')
        assert {b.booking_group_id for b in group.bookings} == {group.id}
        covered, paid = sorted(group.bookings, key=lambda b: b.slot_id)
        assert covered.payment_status == PaymentStatus.PAID
        assert covered.package_subscription_id == 9
        assert paid.payment_status == PaymentStatus.UNPAID
        assert paid.ticket_kind == TicketKind.CHILD
        assert covered.customer.customer_id == 55
        booking_notifier.booking_committed.assert_awaited_once_with(
            tenant_id=TENANT_ID, group=group
        )

    @pytest.mark.asyncio
    async def test_lock_of_other_session_is_not_found(
        self, use_case: CommitBookingUseCase, booking_lock_command_repo: Mock
    ) -> None:
        booking_lock_command_repo.get_lock.return_value = _lock(session_id='user:8')

        with pytest.raises(NotFoundError):
            await _commit(use_case)

        booking_lock_command_repo.commit_lock.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_lock(
        self, use_case: CommitBookingUseCase, booking_lock_command_repo: Mock
    ) -> None:
        booking_lock_command_repo.get_lock.return_value = None

        with pytest.raises(NotFoundError):
            await _commit(use_case)

    @pytest.mark.asyncio
    async def test_expired_lock_purged_and_rejected(
        self, use_case: CommitBookingUseCase, booking_lock_command_repo: Mock
    ) -> None:
        booking_lock_command_repo.get_lock.return_value = _lock(now=NOW - timedelta(minutes=5))

        with pytest.raises(LockExpiredError):
            await _commit(use_case)

        booking_lock_command_repo.purge_expired_locks.assert_awaited_once()
        booking_lock_command_repo.commit_lock.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_partial_failure_releases_lock_and_surfaces_cause(
        self, use_case: CommitBookingUseCase, booking_lock_command_repo: Mock
    ) -> None:
        cause = EntitlementExhaustedError(available=0, requested=1)
        booking_lock_command_repo.commit_lock.side_effect = CommitPartialFailureError(cause)

        with pytest.raises(EntitlementExhaustedError) as exc_info:
            await _commit(use_case)

        assert exc_info.value is cause
        booking_lock_command_repo.release_lock.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_notifier_failure_keeps_booking(
        self, use_case: CommitBookingUseCase, booking_notifier: Mock
    ) -> None:
        booking_notifier.booking_committed.side_effect = RuntimeError('smtp down')

        group = await _commit(use_case)

        assert group.ticket_count == 2

    @pytest.mark.asyncio
    async def test_guest_contact_is_verified_phone(
        self,
        use_case: CommitBookingUseCase,
        guest_gate: Mock,
        booking_lock_command_repo: Mock,
    ) -> None:
        guest_gate.ensure_verified.return_value = 'guest:+966501234567'
        booking_lock_command_repo.get_lock.return_value = _lock(session_id='guest:+966501234567')

        group = await _commit(
            use_case,
            principal=None,
            guest=GuestIdentity(tenant_id=TENANT_ID, phone='+966501234567', verified=True),
            customer_phone='+966555555555',
        )

        assert {b.customer.phone for b in group.bookings} == {'+966501234567'}
