from typing import Optional, Self
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.booking_metrics import metrics
from src.service.booking.app.command.guest_verification_gate import GuestVerificationGate
from src.service.booking.app.interface.i_booking_lock_command_repo import IBookingLockCommandRepo
from src.service.booking.app.interface.i_booking_notifier import IBookingNotifier
from src.service.booking.domain.booking_exceptions import (
    CommitPartialFailureError,
    LockExpiredError,
)
from src.service.booking.domain.clock import Clock, new_id, utc_now
from src.service.booking.domain.entity.booking_entity import Booking
from src.service.booking.domain.value_object.booking_group import BookingGroup
from src.service.booking.domain.value_object.customer_info import CustomerInfo
from src.service.booking.domain.value_object.guest_identity import GuestIdentity
from src.service.booking.domain.value_object.principal import Principal


class CommitBookingUseCase:
    """
    Turn a held lock into one booking row per unit, all sharing a booking group id.

    The commit is all-or-nothing: if any slot or package decrement fails the transaction is
    rolled back, the lock is released and the caller gets the concrete capacity or
    entitlement error. A booking group is never partially committed.
    """

    def __init__(
        self,
        *,
        guest_gate: GuestVerificationGate,
        booking_lock_command_repo: IBookingLockCommandRepo,
        booking_notifier: IBookingNotifier,
        clock: Clock = utc_now,
    ) -> None:
        self.guest_gate = guest_gate
        self.booking_lock_command_repo = booking_lock_command_repo
        self.booking_notifier = booking_notifier
        self.clock = clock
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        guest_gate: GuestVerificationGate = Depends(GuestVerificationGate.depends),
        booking_lock_command_repo: IBookingLockCommandRepo = Depends(
            Provide[Container.booking_lock_command_repo]
        ),
        booking_notifier: IBookingNotifier = Depends(Provide[Container.booking_notifier]),
    ) -> Self:
        return cls(
            guest_gate=guest_gate,
            booking_lock_command_repo=booking_lock_command_repo,
            booking_notifier=booking_notifier,
        )

    @Logger.io
    async def execute(
        self,
        *,
        tenant_id: int,
        principal: Optional[Principal],
        guest: Optional[GuestIdentity] = None,
        lock_id: UUID,
        customer_name: str,
        customer_phone: Optional[str] = None,
        customer_email: Optional[str] = None,
    ) -> BookingGroup:
        with self.tracer.start_as_current_span(
            'use_case.commit_booking',
            attributes={'tenant.id': tenant_id, 'booking.lock_id': str(lock_id)},
        ):
            session_id = await self.guest_gate.ensure_verified(
                tenant_id=tenant_id, principal=principal, guest=guest
            )

            lock = await self.booking_lock_command_repo.get_lock(
                tenant_id=tenant_id, lock_id=lock_id
            )
            if lock is None or lock.session_id != session_id:
                raise NotFoundError('Booking lock not found')

            now = self.clock()
            if not lock.is_active(now):
                expired = await self.booking_lock_command_repo.purge_expired_locks(now=now)
                metrics.record_expired_locks(count=expired)
                metrics.record_commit(tenant_id=tenant_id, result='lock_expired')
                raise LockExpiredError(lock.id)

            # A guest's verified phone is the contact number on record
            phone = (
                guest.phone
                if principal is None and guest is not None
                else (customer_phone or '')
            )
            customer = CustomerInfo(
                name=customer_name,
                phone=phone,
                email=customer_email,
                customer_id=lock.customer_id,
            )

            group_id = new_id()
            bookings = [
                Booking.create_for_unit(
                    id=new_id(),
                    tenant_id=tenant_id,
                    booking_group_id=group_id,
                    service_id=lock.service_id,
                    slot_id=unit.slot_id,
                    resource_id=unit.resource_id,
                    customer=customer,
                    ticket_kind=unit.ticket_kind,
                    unit_price=unit.unit_price,
                    package_subscription_id=unit.package_subscription_id,
                    offer_id=lock.offer_id,
                    now=now,
                )
                for unit in lock.units
            ]

            try:
                committed = await self.booking_lock_command_repo.commit_lock(
                    lock=lock, bookings=bookings, now=now
                )
            except LockExpiredError:
                metrics.record_commit(tenant_id=tenant_id, result='lock_expired')
                raise
            except CommitPartialFailureError as e:
                released = await self.booking_lock_command_repo.release_lock(lock_id=lock.id)
                metrics.record_commit(tenant_id=tenant_id, result='rolled_back')
                Logger.base.warning(
                    f'↩️ [COMMIT] {lock.id} rolled back ({e.cause.message}), '
                    f'lock released={released}'
                )
                raise e.cause from e

            group = BookingGroup(id=group_id, bookings=tuple(committed))
            metrics.record_commit(
                tenant_id=tenant_id,
                result='committed',
                covered_units=sum(1 for b in committed if b.package_subscription_id is not None),
                paid_units=sum(1 for b in committed if b.package_subscription_id is None),
            )
            Logger.base.info(
                f'✅ [COMMIT] group={group_id} lock={lock.id} units={group.ticket_count} '
                f'total={group.total_price}'
            )

            await self._notify(tenant_id=tenant_id, group=group)
            return group

    async def _notify(self, *, tenant_id: int, group: BookingGroup) -> None:
        # The booking stands whatever the notifier does
        try:
            await self.booking_notifier.booking_committed(tenant_id=tenant_id, group=group)
        except Exception as e:
            Logger.base.error(f'📭 [COMMIT] Notification for group {group.id} failed: {e}')
