from typing import Optional, Self
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.exception.exceptions import ForbiddenError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.booking.app.interface.i_booking_command_repo import IBookingCommandRepo
from src.service.booking.domain.clock import Clock, utc_now
from src.service.booking.domain.enum.payment_status import PaymentMethod, PaymentStatus
from src.service.booking.domain.value_object.booking_group import BookingGroup
from src.service.booking.domain.value_object.principal import Principal


class UpdatePaymentStatusUseCase:
    """
    Staff record a payment decision for a whole booking group.

    Payment processing itself happens elsewhere; this only moves the recorded status along the
    allowed transitions.
    """

    def __init__(self, *, booking_command_repo: IBookingCommandRepo, clock: Clock = utc_now) -> None:
        self.booking_command_repo = booking_command_repo
        self.clock = clock

    @classmethod
    @inject
    def depends(
        cls,
        booking_command_repo: IBookingCommandRepo = Depends(
            Provide[Container.booking_command_repo]
        ),
    ) -> Self:
        return cls(booking_command_repo=booking_command_repo)

    @Logger.io
    async def execute(
        self,
        *,
        tenant_id: int,
        principal: Optional[Principal],
        booking_group_id: UUID,
        payment_status: PaymentStatus,
        payment_method: Optional[PaymentMethod] = None,
        transaction_reference: Optional[str] = None,
    ) -> BookingGroup:
        if principal is None or not principal.acts_for_others:
            raise ForbiddenError('Only staff can change payment status')

        bookings = await self.booking_command_repo.get_group(
            tenant_id=tenant_id, booking_group_id=booking_group_id
        )
        if not bookings:
            raise NotFoundError('Booking group not found')

        now = self.clock()
        updated = [
            booking.change_payment_status(
                payment_status=payment_status,
                payment_method=payment_method,
                transaction_reference=transaction_reference,
                now=now,
            )
            for booking in bookings
        ]
        saved = await self.booking_command_repo.save_payment_status(bookings=updated)

        Logger.base.info(
            f'💳 [PAYMENT] group={booking_group_id} -> {payment_status} by user {principal.user_id}'
        )
        return BookingGroup(id=booking_group_id, bookings=tuple(saved))
