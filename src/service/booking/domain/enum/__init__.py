"""Booking Domain Enums"""

from src.service.booking.domain.enum.allocation_strategy import AllocationStrategy
from src.service.booking.domain.enum.booking_status import BookingStatus
from src.service.booking.domain.enum.lock_state import LockState
from src.service.booking.domain.enum.otp_state import OtpState
from src.service.booking.domain.enum.payment_status import PaymentMethod, PaymentStatus
from src.service.booking.domain.enum.ticket_kind import TicketKind
from src.service.booking.domain.enum.user_role import UserRole

__all__ = [
    'AllocationStrategy',
    'BookingStatus',
    'LockState',
    'OtpState',
    'PaymentMethod',
    'PaymentStatus',
    'TicketKind',
    'UserRole',
]
