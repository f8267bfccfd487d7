from typing import Optional, Self
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.di import Container
from src.platform.exception.exceptions import ForbiddenError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.booking.app.interface.i_booking_command_repo import IBookingCommandRepo
from src.service.booking.domain.clock import Clock, utc_now
from src.service.booking.domain.value_object.booking_group import BookingGroup
from src.service.booking.domain.value_object.principal import Principal


class CancelBookingGroupUseCase:
    """
    Cancel every booking of a group and give back slot capacity and package units.

    Allowed for staff, and for the customer the group was booked for.
    """

    def __init__(self, *, booking_command_repo: IBookingCommandRepo, clock: Clock = utc_now) -> None:
        self.booking_command_repo = booking_command_repo
        self.clock = clock
        self.tracer = trace.get_tracer(__name__)

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
        self, *, tenant_id: int, principal: Optional[Principal], booking_group_id: UUID
    ) -> BookingGroup:
        with self.tracer.start_as_current_span(
            'use_case.cancel_booking_group',
            attributes={'tenant.id': tenant_id, 'booking.group_id': str(booking_group_id)},
        ):
            if principal is None:
                raise ForbiddenError('Sign in to cancel a booking')

            bookings = await self.booking_command_repo.get_group(
                tenant_id=tenant_id, booking_group_id=booking_group_id
            )
            if not bookings:
                raise NotFoundError('Booking group not found')

            if not principal.acts_for_others and any(
                booking.customer.customer_id is None
                or booking.customer.customer_id != principal.customer_id
                for booking in bookings
            ):
                raise ForbiddenError('Only the customer or staff can cancel this booking')

            now = self.clock()
            cancelled = [booking.cancel(now=now) for booking in bookings]
            saved = await self.booking_command_repo.cancel_group(bookings=cancelled, now=now)

            Logger.base.info(
                f'🗑️ [CANCEL] group={booking_group_id} units={len(saved)} tenant={tenant_id}'
            )
            return BookingGroup(id=booking_group_id, bookings=tuple(saved))
