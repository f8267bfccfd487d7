"""Booking Domain Value Objects"""

from src.service.booking.domain.value_object.assignment import Assignment
from src.service.booking.domain.value_object.booking_group import BookingGroup
from src.service.booking.domain.value_object.customer_info import CustomerInfo
from src.service.booking.domain.value_object.entitlement import Entitlement, SubscriptionBalance
from src.service.booking.domain.value_object.lock_token import LockToken
from src.service.booking.domain.value_object.principal import Principal
from src.service.booking.domain.value_object.quote import Quote, QuoteLine
from src.service.booking.domain.value_object.time_window import BookingWindow, TimeWindow

__all__ = [
    'Assignment',
    'BookingGroup',
    'BookingWindow',
    'CustomerInfo',
    'Entitlement',
    'LockToken',
    'Principal',
    'Quote',
    'QuoteLine',
    'SubscriptionBalance',
    'TimeWindow',
]
