from src.platform.logging.loguru_io import Logger
from src.service.booking.app.interface.i_booking_notifier import IBookingNotifier
from src.service.booking.domain.value_object.booking_group import BookingGroup


class LoggingBookingNotifier(IBookingNotifier):
    """Writes confirmations to the log; swap for an SMS / e-mail gateway in deployment"""

    async def booking_committed(self, *, tenant_id: int, group: BookingGroup) -> None:
        first = group.bookings[0] if group.bookings else None
        Logger.base.info(
            f'📨 [NOTIFY] tenant={tenant_id} group={group.id} tickets={group.ticket_count} '
            f'total={group.total_price} customer={first.customer.name if first else "-"}'
        )
