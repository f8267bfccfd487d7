from collections import Counter
from datetime import datetime
from typing import AsyncContextManager, Callable, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.exception.exceptions import ConflictError, DomainError
from src.platform.logging.loguru_io import Logger
from src.service.booking.app.interface.i_booking_command_repo import IBookingCommandRepo
from src.service.booking.domain.clock import ensure_utc
from src.service.booking.domain.entity.booking_entity import Booking
from src.service.booking.domain.enum.booking_status import BookingStatus
from src.service.booking.domain.enum.payment_status import PaymentMethod, PaymentStatus
from src.service.booking.domain.enum.ticket_kind import TicketKind
from src.service.booking.domain.value_object.customer_info import CustomerInfo
from src.service.booking.driven_adapter.model.booking_model import BookingModel
from src.service.booking.driven_adapter.model.package_model import PackageUsageModel
from src.service.booking.driven_adapter.model.slot_model import SlotModel


class BookingCommandRepoImpl(IBookingCommandRepo):
    def __init__(self, session_factory: Callable[..., AsyncContextManager[AsyncSession]]):
        self.session_factory = session_factory

    @staticmethod
    def _to_entity(model: BookingModel) -> Booking:
        return Booking(
            id=model.id,
            tenant_id=model.tenant_id,
            booking_group_id=model.booking_group_id,
            service_id=model.service_id,
            slot_id=model.slot_id,
            resource_id=model.resource_id,
            customer=CustomerInfo(
                name=model.customer_name,
                phone=model.customer_phone,
                email=model.customer_email,
                customer_id=model.customer_id,
            ),
            ticket_kind=TicketKind.ADULT if model.adult_count else TicketKind.CHILD,
            unit_price=model.unit_price,
            status=BookingStatus(model.status),
            payment_status=PaymentStatus(model.payment_status),
            payment_method=PaymentMethod(model.payment_method) if model.payment_method else None,
            transaction_reference=model.transaction_reference,
            package_subscription_id=model.package_subscription_id,
            offer_id=model.offer_id,
            created_at=ensure_utc(model.created_at),
            updated_at=ensure_utc(model.updated_at),
        )

    @Logger.io
    async def get_group(self, *, tenant_id: int, booking_group_id: UUID) -> list[Booking]:
        async with self.session_factory() as session:
            models = await session.scalars(
                select(BookingModel)
                .where(
                    BookingModel.tenant_id == tenant_id,
                    BookingModel.booking_group_id == booking_group_id,
                )
                .order_by(BookingModel.created_at, BookingModel.id)
            )
            return [self._to_entity(model) for model in models]

    @Logger.io
    async def save_payment_status(self, *, bookings: Sequence[Booking]) -> list[Booking]:
        async with self.session_factory() as session:
            async with session.begin():
                for booking in bookings:
                    result = await session.execute(
                        update(BookingModel)
                        .where(
                            BookingModel.id == booking.id,
                            BookingModel.status != BookingStatus.CANCELLED.value,
                        )
                        .values(
                            payment_status=booking.payment_status.value,
                            payment_method=(
                                booking.payment_method.value if booking.payment_method else None
                            ),
                            transaction_reference=booking.transaction_reference,
                            updated_at=booking.updated_at,
                        )
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount != 1:
                        raise DomainError('Cannot change payment status of a cancelled booking')
        return list(bookings)

    @Logger.io
    async def cancel_group(self, *, bookings: Sequence[Booking], now: datetime) -> list[Booking]:
        async with self.session_factory() as session:
            async with session.begin():
                for booking in bookings:
                    result = await session.execute(
                        update(BookingModel)
                        .where(
                            BookingModel.id == booking.id,
                            BookingModel.status != BookingStatus.CANCELLED.value,
                        )
                        .values(status=BookingStatus.CANCELLED.value, updated_at=now)
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount != 1:
                        raise DomainError('Booking already cancelled')

                slot_quantities = Counter(booking.slot_id for booking in bookings)
                for slot_id, quantity in sorted(slot_quantities.items()):
                    result = await session.execute(
                        update(SlotModel)
                        .where(
                            SlotModel.id == slot_id,
                            SlotModel.available_capacity + quantity
                            <= SlotModel.original_capacity,
                            SlotModel.booked_count >= quantity,
                        )
                        .values(
                            available_capacity=SlotModel.available_capacity + quantity,
                            booked_count=SlotModel.booked_count - quantity,
                        )
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount != 1:
                        raise ConflictError(f'Slot {slot_id} capacity cannot be restored')

                usage_quantities = Counter(
                    (booking.package_subscription_id, booking.service_id)
                    for booking in bookings
                    if booking.package_subscription_id is not None
                )
                for (subscription_id, service_id), quantity in sorted(usage_quantities.items()):
                    result = await session.execute(
                        update(PackageUsageModel)
                        .where(
                            PackageUsageModel.subscription_id == subscription_id,
                            PackageUsageModel.service_id == service_id,
                            PackageUsageModel.used_quantity >= quantity,
                        )
                        .values(
                            remaining_quantity=PackageUsageModel.remaining_quantity + quantity,
                            used_quantity=PackageUsageModel.used_quantity - quantity,
                        )
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount != 1:
                        raise ConflictError(
                            f'Package {subscription_id} entitlement cannot be restored'
                        )

        Logger.base.info(
            f'♻️ [CANCEL] Restored {len(bookings)} unit(s) across {len(slot_quantities)} slot(s)'
        )
        return list(bookings)
