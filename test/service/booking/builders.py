"""Entity builders shared by booking tests"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, Optional

from src.service.booking.domain.entity.package_entity import (
    PackageSubscription,
    PackageUsage,
    SubscriptionStatus,
)
from src.service.booking.domain.entity.service_entity import Service, ServiceOffer
from src.service.booking.domain.entity.slot_entity import Shift, Slot
from src.service.booking.domain.enum.ticket_kind import TicketKind
from src.service.booking.domain.value_object.assignment import Assignment
from src.service.booking.domain.value_object.time_window import BookingWindow


TENANT_ID = 1
SERVICE_ID = 10
SHIFT_ID = 100
SUNDAY = date(2026, 3, 1)
MONDAY = date(2026, 3, 2)
NOW = datetime(2026, 3, 1, 5, 0, tzinfo=timezone.utc)  # 08:00 in Asia/Riyadh

MORNING = BookingWindow(slot_date=SUNDAY, start_time='09:00', end_time='10:00')


def make_shift(*, days: Iterable[int] = range(7), **overrides: Any) -> Shift:
    fields: dict[str, Any] = {
        'id': SHIFT_ID,
        'tenant_id': TENANT_ID,
        'service_id': SERVICE_ID,
        'days_of_week': days,
    }
    fields.update(overrides)
    return Shift(**fields)


def make_slot(slot_id: int, **overrides: Any) -> Slot:
    fields: dict[str, Any] = {
        'id': slot_id,
        'tenant_id': TENANT_ID,
        'shift_id': SHIFT_ID,
        'service_id': SERVICE_ID,
        'slot_date': SUNDAY,
        'start_time': '09:00',
        'end_time': '10:00',
        'original_capacity': 1,
        'available_capacity': 1,
        'resource_id': slot_id,
    }
    fields.update(overrides)
    return Slot(**fields)


def make_service(**overrides: Any) -> Service:
    fields: dict[str, Any] = {
        'id': SERVICE_ID,
        'tenant_id': TENANT_ID,
        'name': 'Desert tour',
        'base_price': Decimal('150.00'),
    }
    fields.update(overrides)
    return Service(**fields)


def make_offer(price: str = '120.00') -> ServiceOffer:
    return ServiceOffer(
        id=7,
        tenant_id=TENANT_ID,
        service_id=SERVICE_ID,
        name='Early bird',
        price=Decimal(price),
    )


def make_usage(
    *,
    subscription_id: int,
    remaining: int,
    original: int = 10,
    expires_at: Optional[datetime] = None,
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
) -> tuple[PackageSubscription, PackageUsage]:
    return (
        PackageSubscription(
            id=subscription_id,
            tenant_id=TENANT_ID,
            customer_id=55,
            package_id=1,
            status=status,
            expires_at=expires_at,
        ),
        PackageUsage(
            subscription_id=subscription_id,
            service_id=SERVICE_ID,
            original_quantity=original,
            remaining_quantity=remaining,
        ),
    )


def make_assignments(count: int, *, children: int = 0) -> list[Assignment]:
    return [
        Assignment(
            unit_index=index,
            slot_id=index + 1,
            resource_id=index + 1,
            ticket_kind=TicketKind.ADULT if index < count - children else TicketKind.CHILD,
        )
        for index in range(count)
    ]
