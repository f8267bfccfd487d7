from typing import Optional, Self
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.booking.app.command.guest_verification_gate import GuestVerificationGate
from src.service.booking.app.interface.i_booking_lock_command_repo import IBookingLockCommandRepo
from src.service.booking.domain.booking_exceptions import LockExpiredError
from src.service.booking.domain.clock import Clock, utc_now
from src.service.booking.domain.value_object.guest_identity import GuestIdentity
from src.service.booking.domain.value_object.lock_token import LockToken
from src.service.booking.domain.value_object.principal import Principal


class GetBookingLockUseCase:
    """Checkout countdown: seconds left on a lock held by the caller's own session"""

    def __init__(
        self, *, booking_lock_command_repo: IBookingLockCommandRepo, clock: Clock = utc_now
    ) -> None:
        self.booking_lock_command_repo = booking_lock_command_repo
        self.clock = clock

    @classmethod
    @inject
    def depends(
        cls,
        booking_lock_command_repo: IBookingLockCommandRepo = Depends(
            Provide[Container.booking_lock_command_repo]
        ),
    ) -> Self:
        return cls(booking_lock_command_repo=booking_lock_command_repo)

    @Logger.io
    async def execute(
        self,
        *,
        tenant_id: int,
        principal: Optional[Principal],
        guest: Optional[GuestIdentity] = None,
        lock_id: UUID,
    ) -> LockToken:
        session_id = GuestVerificationGate.session_id(principal=principal, guest=guest)
        lock = await self.booking_lock_command_repo.get_lock(tenant_id=tenant_id, lock_id=lock_id)
        if lock is None or lock.session_id != session_id:
            raise NotFoundError('Booking lock not found')

        now = self.clock()
        if not lock.is_active(now):
            raise LockExpiredError(lock.id)

        return LockToken(
            lock_id=lock.id,
            expires_at=lock.expires_at,
            seconds_remaining=lock.seconds_remaining(now),
            quote=lock.to_quote(),
        )
