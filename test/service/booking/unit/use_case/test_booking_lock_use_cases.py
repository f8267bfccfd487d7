from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, Mock
import uuid

import pytest

from src.platform.exception.exceptions import NotFoundError
from src.service.booking.app.command.expire_booking_locks_use_case import (
    ExpireBookingLocksUseCase,
)
from src.service.booking.app.command.release_booking_lock_use_case import (
    ReleaseBookingLockUseCase,
)
from src.service.booking.app.query.get_booking_lock_use_case import GetBookingLockUseCase
from src.service.booking.domain.booking_exceptions import (
    LockExpiredError,
    VerificationRequiredError,
)
from src.service.booking.domain.entity.booking_lock_entity import BookingLock
from src.service.booking.domain.enum.ticket_kind import TicketKind
from src.service.booking.domain.enum.user_role import UserRole
from src.service.booking.domain.value_object.guest_identity import GuestIdentity
from src.service.booking.domain.value_object.principal import Principal
from src.service.booking.domain.value_object.quote import Quote, QuoteLine
from test.service.booking.builders import NOW, SERVICE_ID, TENANT_ID


GUEST_PHONE = '+966501234567'
GUEST = GuestIdentity(tenant_id=TENANT_ID, phone=GUEST_PHONE, verified=True)


def _lock(session_id: str) -> BookingLock:
    return BookingLock.create(
        id=uuid.uuid4(),
        tenant_id=TENANT_ID,
        session_id=session_id,
        service_id=SERVICE_ID,
        offer_id=None,
        customer_id=None,
        quote=Quote(
            lines=(
                QuoteLine(
                    unit_index=0,
                    slot_id=1,
                    resource_id=1,
                    ticket_kind=TicketKind.ADULT,
                    list_price=Decimal('150.00'),
                    unit_price=Decimal('150.00'),
                ),
            )
        ),
        now=NOW,
        ttl_seconds=120,
    )


@pytest.fixture
def booking_lock_command_repo() -> Mock:
    repo = AsyncMock()
    repo.get_lock = AsyncMock(return_value=_lock(f'guest:{GUEST_PHONE}'))
    repo.release_lock = AsyncMock(return_value=True)
    repo.purge_expired_locks = AsyncMock(return_value=3)
    return repo


@pytest.mark.unit
class TestReleaseBookingLockUseCase:
    @pytest.mark.asyncio
    async def test_guest_releases_own_lock(self, booking_lock_command_repo: Mock) -> None:
        use_case = ReleaseBookingLockUseCase(booking_lock_command_repo=booking_lock_command_repo)
        lock = booking_lock_command_repo.get_lock.return_value

        released = await use_case.execute(
            tenant_id=TENANT_ID, principal=None, guest=GUEST, lock_id=lock.id
        )

        assert released is True
        booking_lock_command_repo.release_lock.assert_awaited_once_with(lock_id=lock.id)

    @pytest.mark.asyncio
    async def test_other_session_cannot_release(self, booking_lock_command_repo: Mock) -> None:
        use_case = ReleaseBookingLockUseCase(booking_lock_command_repo=booking_lock_command_repo)
        principal = Principal(user_id=7, tenant_id=TENANT_ID, role=UserRole.CUSTOMER)

        with pytest.raises(NotFoundError):
            await use_case.execute(
                tenant_id=TENANT_ID, principal=principal, lock_id=uuid.uuid4()
            )

        booking_lock_command_repo.release_lock.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_anonymous_without_token(self, booking_lock_command_repo: Mock) -> None:
        use_case = ReleaseBookingLockUseCase(booking_lock_command_repo=booking_lock_command_repo)

        with pytest.raises(VerificationRequiredError):
            await use_case.execute(tenant_id=TENANT_ID, principal=None, lock_id=uuid.uuid4())


@pytest.mark.unit
class TestGetBookingLockUseCase:
    @pytest.mark.asyncio
    async def test_countdown(self, booking_lock_command_repo: Mock) -> None:
        use_case = GetBookingLockUseCase(
            booking_lock_command_repo=booking_lock_command_repo,
            clock=lambda: NOW + timedelta(seconds=45),
        )
        lock = booking_lock_command_repo.get_lock.return_value

        token = await use_case.execute(
            tenant_id=TENANT_ID, principal=None, guest=GUEST, lock_id=lock.id
        )

        assert token.seconds_remaining == 75
        assert token.quote.total == Decimal('150.00')

    @pytest.mark.asyncio
    async def test_other_session_sees_not_found(self, booking_lock_command_repo: Mock) -> None:
        use_case = GetBookingLockUseCase(
            booking_lock_command_repo=booking_lock_command_repo, clock=lambda: NOW
        )
        lock = booking_lock_command_repo.get_lock.return_value
        stranger = Principal(user_id=8, tenant_id=TENANT_ID, role=UserRole.CUSTOMER)

        with pytest.raises(NotFoundError):
            await use_case.execute(tenant_id=TENANT_ID, principal=stranger, lock_id=lock.id)

    @pytest.mark.asyncio
    async def test_anonymous_without_token(self, booking_lock_command_repo: Mock) -> None:
        use_case = GetBookingLockUseCase(booking_lock_command_repo=booking_lock_command_repo)

        with pytest.raises(VerificationRequiredError):
            await use_case.execute(tenant_id=TENANT_ID, principal=None, lock_id=uuid.uuid4())

        booking_lock_command_repo.get_lock.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expired(self, booking_lock_command_repo: Mock) -> None:
        use_case = GetBookingLockUseCase(
            booking_lock_command_repo=booking_lock_command_repo,
            clock=lambda: NOW + timedelta(seconds=120),
        )

        with pytest.raises(LockExpiredError):
            await use_case.execute(
                tenant_id=TENANT_ID, principal=None, guest=GUEST, lock_id=uuid.uuid4()
            )

    @pytest.mark.asyncio
    async def test_missing(self, booking_lock_command_repo: Mock) -> None:
        booking_lock_command_repo.get_lock.return_value = None
        use_case = GetBookingLockUseCase(booking_lock_command_repo=booking_lock_command_repo)

        with pytest.raises(NotFoundError):
            await use_case.execute(
                tenant_id=TENANT_ID, principal=None, guest=GUEST, lock_id=uuid.uuid4()
            )


@pytest.mark.unit
class TestExpireBookingLocksUseCase:
    @pytest.mark.asyncio
    async def test_sweep_uses_clock(self, booking_lock_command_repo: Mock) -> None:
        use_case = ExpireBookingLocksUseCase(
            booking_lock_command_repo=booking_lock_command_repo, clock=lambda: NOW
        )

        assert await use_case.execute() == 3
        booking_lock_command_repo.purge_expired_locks.assert_awaited_once_with(now=NOW)
