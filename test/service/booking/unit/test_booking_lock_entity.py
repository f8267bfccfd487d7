from datetime import timedelta
from decimal import Decimal
import uuid

import pytest

from src.platform.exception.exceptions import DomainError
from src.service.booking.domain.entity.booking_lock_entity import BookingLock
from src.service.booking.domain.enum.lock_state import LockState
from src.service.booking.domain.enum.ticket_kind import TicketKind
from src.service.booking.domain.value_object.quote import Quote, QuoteLine
from test.service.booking.builders import NOW, SERVICE_ID, TENANT_ID


def _line(unit_index: int, slot_id: int, subscription_id=None) -> QuoteLine:
    price = Decimal('0') if subscription_id else Decimal('100.00')
    return QuoteLine(
        unit_index=unit_index,
        slot_id=slot_id,
        resource_id=slot_id,
        ticket_kind=TicketKind.ADULT,
        list_price=Decimal('100.00'),
        unit_price=price,
        package_subscription_id=subscription_id,
    )


def _lock(*lines: QuoteLine, ttl: int = 120) -> BookingLock:
    return BookingLock.create(
        id=uuid.uuid4(),
        tenant_id=TENANT_ID,
        session_id='user:1',
        service_id=SERVICE_ID,
        offer_id=None,
        customer_id=55,
        quote=Quote(lines=lines),
        now=NOW,
        ttl_seconds=ttl,
    )


@pytest.mark.unit
class TestBookingLock:
    def test_create_holds_units_until_ttl(self) -> None:
        lock = _lock(_line(0, 2), _line(1, 1, subscription_id=9), _line(2, 2))

        assert lock.state == LockState.LOCKED
        assert lock.expires_at == NOW + timedelta(seconds=120)
        assert lock.total_units == 3
        assert lock.total_price == Decimal('200.00')
        assert lock.seconds_remaining(NOW) == 120

    def test_slot_quantities_in_ascending_slot_order(self) -> None:
        lock = _lock(_line(0, 5), _line(1, 2), _line(2, 5))
        assert lock.slot_quantities() == [(2, 1), (5, 2)]

    def test_subscription_quantities(self) -> None:
        lock = _lock(_line(0, 1, 9), _line(1, 2, 9), _line(2, 3))
        assert lock.subscription_quantities() == [(9, 2)]

    def test_inactive_at_expiry(self) -> None:
        lock = _lock(_line(0, 1))

        assert lock.is_active(NOW + timedelta(seconds=119))
        assert not lock.is_active(NOW + timedelta(seconds=120))
        assert lock.seconds_remaining(NOW + timedelta(seconds=500)) == 0

    def test_round_trips_its_quote(self) -> None:
        lines = (_line(0, 1, 9), _line(1, 2))
        assert _lock(*lines).to_quote() == Quote(lines=lines)

    def test_empty_allocation_rejected(self) -> None:
        with pytest.raises(DomainError):
            _lock()
