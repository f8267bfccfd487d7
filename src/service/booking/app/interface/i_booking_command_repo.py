from abc import ABC, abstractmethod
from datetime import datetime
from typing import Sequence
from uuid import UUID

from src.service.booking.domain.entity.booking_entity import Booking


class IBookingCommandRepo(ABC):
    @abstractmethod
    async def get_group(self, *, tenant_id: int, booking_group_id: UUID) -> list[Booking]:
        """Bookings of one group ordered by creation; empty when the group does not exist"""
        pass

    @abstractmethod
    async def save_payment_status(self, *, bookings: Sequence[Booking]) -> list[Booking]:
        pass

    @abstractmethod
    async def cancel_group(self, *, bookings: Sequence[Booking], now: datetime) -> list[Booking]:
        """
        Persist cancelled bookings and give their capacity and package units back

        Raises:
            DomainError: a booking of the group was cancelled concurrently
        """
        pass
