import time
from typing import Optional, Self, Sequence

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.core_setting import Settings
from src.platform.config.di import Container
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.booking_metrics import metrics
from src.service.booking.app.command.guest_verification_gate import GuestVerificationGate
from src.service.booking.app.interface.i_booking_lock_command_repo import IBookingLockCommandRepo
from src.service.booking.app.query.allocate_booking_use_case import AllocateBookingUseCase
from src.service.booking.domain.booking_exceptions import InsufficientCapacityError
from src.service.booking.domain.clock import Clock, new_id, utc_now
from src.service.booking.domain.entity.booking_lock_entity import BookingLock
from src.service.booking.domain.enum.allocation_strategy import AllocationStrategy
from src.service.booking.domain.value_object.guest_identity import GuestIdentity
from src.service.booking.domain.value_object.lock_token import LockToken
from src.service.booking.domain.value_object.principal import Principal
from src.service.booking.domain.value_object.time_window import BookingWindow


class LockBookingUseCase:
    """
    Reserve capacity for an allocation for a short TTL.

    Flow:
    1. Guest gate (before anything else)
    2. Drop the session's previous lock and any expired locks, so a re-lock sees that
       capacity as free
    3. Allocate and price
    4. Conditionally reserve every slot in one transaction
    """

    def __init__(
        self,
        *,
        guest_gate: GuestVerificationGate,
        allocate_use_case: AllocateBookingUseCase,
        booking_lock_command_repo: IBookingLockCommandRepo,
        config: Settings,
        clock: Clock = utc_now,
    ) -> None:
        self.guest_gate = guest_gate
        self.allocate_use_case = allocate_use_case
        self.booking_lock_command_repo = booking_lock_command_repo
        self.config = config
        self.clock = clock
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        guest_gate: GuestVerificationGate = Depends(GuestVerificationGate.depends),
        allocate_use_case: AllocateBookingUseCase = Depends(AllocateBookingUseCase.depends),
        booking_lock_command_repo: IBookingLockCommandRepo = Depends(
            Provide[Container.booking_lock_command_repo]
        ),
        config: Settings = Depends(Provide[Container.config_service]),
    ) -> Self:
        return cls(
            guest_gate=guest_gate,
            allocate_use_case=allocate_use_case,
            booking_lock_command_repo=booking_lock_command_repo,
            config=config,
        )

    @Logger.io
    async def execute(
        self,
        *,
        tenant_id: int,
        principal: Optional[Principal],
        guest: Optional[GuestIdentity] = None,
        service_id: int,
        adult_count: int,
        child_count: int = 0,
        strategy: AllocationStrategy = AllocationStrategy.PARALLEL,
        window: BookingWindow,
        selected_slot_ids: Sequence[int] = (),
        offer_id: Optional[int] = None,
        customer_id: Optional[int] = None,
    ) -> LockToken:
        with self.tracer.start_as_current_span(
            'use_case.lock_booking',
            attributes={
                'tenant.id': tenant_id,
                'service.id': service_id,
                'booking.ticket_count': adult_count + child_count,
            },
        ):
            session_id = await self.guest_gate.ensure_verified(
                tenant_id=tenant_id, principal=principal, guest=guest
            )
            booking_customer_id = (
                principal.booking_customer_id(customer_id) if principal is not None else None
            )

            now = self.clock()
            await self.booking_lock_command_repo.release_session_locks(
                tenant_id=tenant_id, session_id=session_id, now=now
            )
            expired = await self.booking_lock_command_repo.purge_expired_locks(now=now)
            metrics.record_expired_locks(count=expired)

            allocation = await self.allocate_use_case.execute(
                tenant_id=tenant_id,
                service_id=service_id,
                adult_count=adult_count,
                child_count=child_count,
                strategy=strategy,
                window=window,
                selected_slot_ids=selected_slot_ids,
                offer_id=offer_id,
                customer_id=booking_customer_id,
            )

            lock = BookingLock.create(
                id=new_id(),
                tenant_id=tenant_id,
                session_id=session_id,
                service_id=service_id,
                offer_id=offer_id,
                customer_id=booking_customer_id,
                quote=allocation.quote,
                now=now,
                ttl_seconds=self.config.BOOKING_LOCK_TTL_SECONDS,
            )

            started = time.perf_counter()
            try:
                lock = await self.booking_lock_command_repo.acquire_lock(lock=lock)
            except InsufficientCapacityError:
                metrics.record_lock_attempt(
                    tenant_id=tenant_id,
                    strategy=str(strategy),
                    result='insufficient_capacity',
                    duration=time.perf_counter() - started,
                )
                raise
            metrics.record_lock_attempt(
                tenant_id=tenant_id,
                strategy=str(strategy),
                result='locked',
                duration=time.perf_counter() - started,
            )

            Logger.base.info(
                f'🔒 [LOCK] {lock.id} tenant={tenant_id} session={session_id} '
                f'units={lock.total_units} expires_at={lock.expires_at.isoformat()}'
            )
            return LockToken(
                lock_id=lock.id,
                expires_at=lock.expires_at,
                seconds_remaining=lock.seconds_remaining(now),
                quote=allocation.quote,
            )
