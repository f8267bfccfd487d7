from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import attrs

from src.platform.exception.exceptions import DomainError
from src.platform.logging.loguru_io import Logger
from src.service.booking.domain.enum.booking_status import BookingStatus
from src.service.booking.domain.enum.payment_status import PaymentMethod, PaymentStatus
from src.service.booking.domain.enum.ticket_kind import TicketKind
from src.service.booking.domain.value_object.customer_info import CustomerInfo


PAYMENT_STATUS_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.UNPAID: frozenset(
        {
            PaymentStatus.PAID,
            PaymentStatus.PAID_MANUAL,
            PaymentStatus.AWAITING_PAYMENT,
            PaymentStatus.REFUNDED,
        }
    ),
    PaymentStatus.AWAITING_PAYMENT: frozenset(
        {
            PaymentStatus.PAID,
            PaymentStatus.PAID_MANUAL,
            PaymentStatus.UNPAID,
            PaymentStatus.REFUNDED,
        }
    ),
    PaymentStatus.PAID: frozenset(
        {PaymentStatus.REFUNDED, PaymentStatus.UNPAID, PaymentStatus.AWAITING_PAYMENT}
    ),
    PaymentStatus.PAID_MANUAL: frozenset(
        {PaymentStatus.REFUNDED, PaymentStatus.UNPAID, PaymentStatus.AWAITING_PAYMENT}
    ),
    PaymentStatus.REFUNDED: frozenset({PaymentStatus.UNPAID, PaymentStatus.AWAITING_PAYMENT}),
}


@attrs.define
class Booking:
    """One committed ticket unit; sibling units share `booking_group_id`"""

    id: UUID
    tenant_id: int
    booking_group_id: UUID
    service_id: int
    slot_id: int
    customer: CustomerInfo
    ticket_kind: TicketKind
    unit_price: Decimal
    resource_id: Optional[int] = None
    status: BookingStatus = BookingStatus.CONFIRMED
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    payment_method: Optional[PaymentMethod] = None
    transaction_reference: Optional[str] = None
    package_subscription_id: Optional[int] = None
    offer_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def adult_count(self) -> int:
        return 1 if self.ticket_kind == TicketKind.ADULT else 0

    @property
    def child_count(self) -> int:
        return 1 if self.ticket_kind == TicketKind.CHILD else 0

    @classmethod
    def create_for_unit(
        cls,
        *,
        id: UUID,
        tenant_id: int,
        booking_group_id: UUID,
        service_id: int,
        slot_id: int,
        resource_id: Optional[int],
        customer: CustomerInfo,
        ticket_kind: TicketKind,
        unit_price: Decimal,
        package_subscription_id: Optional[int],
        offer_id: Optional[int],
        now: datetime,
    ) -> 'Booking':
        if unit_price < 0:
            raise DomainError('unit_price must not be negative')
        if package_subscription_id is not None and unit_price != 0:
            raise DomainError('Package-covered tickets must be priced at 0')

        # Fully covered units owe nothing
        payment_status = (
            PaymentStatus.PAID if package_subscription_id is not None else PaymentStatus.UNPAID
        )
        return cls(
            id=id,
            tenant_id=tenant_id,
            booking_group_id=booking_group_id,
            service_id=service_id,
            slot_id=slot_id,
            resource_id=resource_id,
            customer=customer,
            ticket_kind=ticket_kind,
            unit_price=unit_price,
            status=BookingStatus.CONFIRMED,
            payment_status=payment_status,
            package_subscription_id=package_subscription_id,
            offer_id=offer_id,
            created_at=now,
            updated_at=now,
        )

    @Logger.io
    def change_payment_status(
        self,
        *,
        payment_status: PaymentStatus,
        payment_method: Optional[PaymentMethod],
        transaction_reference: Optional[str],
        now: datetime,
    ) -> 'Booking':
        """
        Record an externally decided payment status

        Raises:
            DomainError: cancelled booking, disallowed transition, or a transfer payment
                without a transaction reference
        """
        if self.status == BookingStatus.CANCELLED:
            raise DomainError('Cannot change payment status of a cancelled booking')
        if payment_status != self.payment_status and payment_status not in (
            PAYMENT_STATUS_TRANSITIONS[self.payment_status]
        ):
            raise DomainError(
                f'Cannot change payment status from {self.payment_status} to {payment_status}'
            )

        reference = (transaction_reference or '').strip() or None
        if payment_method == PaymentMethod.TRANSFER and not reference:
            raise DomainError('Transaction reference is required for transfer payments')

        return attrs.evolve(
            self,
            payment_status=payment_status,
            payment_method=payment_method,
            transaction_reference=reference,
            updated_at=now,
        )

    @Logger.io
    def cancel(self, *, now: datetime) -> 'Booking':
        if self.status == BookingStatus.CANCELLED:
            raise DomainError('Booking already cancelled')
        return attrs.evolve(self, status=BookingStatus.CANCELLED, updated_at=now)
