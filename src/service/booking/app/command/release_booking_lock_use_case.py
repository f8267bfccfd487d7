from typing import Optional, Self
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.booking.app.command.guest_verification_gate import GuestVerificationGate
from src.service.booking.app.interface.i_booking_lock_command_repo import IBookingLockCommandRepo
from src.service.booking.domain.value_object.guest_identity import GuestIdentity
from src.service.booking.domain.value_object.principal import Principal


class ReleaseBookingLockUseCase:
    """Customer abandoned checkout: give the held capacity back now instead of at TTL"""

    def __init__(self, *, booking_lock_command_repo: IBookingLockCommandRepo) -> None:
        self.booking_lock_command_repo = booking_lock_command_repo

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
    ) -> bool:
        session_id = GuestVerificationGate.session_id(principal=principal, guest=guest)
        lock = await self.booking_lock_command_repo.get_lock(tenant_id=tenant_id, lock_id=lock_id)
        if lock is None or lock.session_id != session_id:
            raise NotFoundError('Booking lock not found')

        released = await self.booking_lock_command_repo.release_lock(lock_id=lock_id)
        if released:
            Logger.base.info(f'🔓 [RELEASE] {lock_id} tenant={tenant_id}')
        return released
