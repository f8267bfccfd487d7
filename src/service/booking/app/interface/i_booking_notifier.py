from abc import ABC, abstractmethod

from src.service.booking.domain.value_object.booking_group import BookingGroup


class IBookingNotifier(ABC):
    """
    Told about committed booking groups (confirmation messages, staff dashboards)

    Called after the commit transaction; a failure here never undoes the booking.
    """

    @abstractmethod
    async def booking_committed(self, *, tenant_id: int, group: BookingGroup) -> None:
        pass
