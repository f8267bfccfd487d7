from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from opentelemetry import trace

from src.platform.logging.loguru_io import Logger
from src.service.booking.app.command.cancel_booking_group_use_case import (
    CancelBookingGroupUseCase,
)
from src.service.booking.app.command.commit_booking_use_case import CommitBookingUseCase
from src.service.booking.app.command.lock_booking_use_case import LockBookingUseCase
from src.service.booking.app.command.release_booking_lock_use_case import (
    ReleaseBookingLockUseCase,
)
from src.service.booking.app.command.update_payment_status_use_case import (
    UpdatePaymentStatusUseCase,
)
from src.service.booking.app.query.allocate_booking_use_case import AllocateBookingUseCase
from src.service.booking.app.query.get_booking_lock_use_case import GetBookingLockUseCase
from src.service.booking.domain.enum.allocation_strategy import AllocationStrategy
from src.service.booking.domain.enum.payment_status import PaymentMethod, PaymentStatus
from src.service.booking.domain.value_object.booking_group import BookingGroup
from src.service.booking.domain.value_object.guest_identity import GuestIdentity
from src.service.booking.domain.value_object.lock_token import LockToken
from src.service.booking.domain.value_object.principal import Principal
from src.service.booking.domain.value_object.quote import Quote
from src.service.booking.domain.value_object.time_window import BookingWindow
from src.service.booking.driving_adapter.http_controller.auth.role_auth import (
    get_optional_guest,
    get_optional_principal,
)
from src.service.booking.driving_adapter.http_controller.schema.availability_schema import (
    QuoteLineResponse,
)
from src.service.booking.driving_adapter.http_controller.schema.booking_schema import (
    AllocateRequest,
    AllocationResponse,
    BookingGroupResponse,
    BookingResponse,
    CommitRequest,
    LockRequest,
    LockResponse,
    PaymentStatusUpdateRequest,
    QuoteResponse,
    ReleaseLockResponse,
)


router = APIRouter()
tracer = trace.get_tracer(__name__)


def _quote_response(quote: Quote) -> QuoteResponse:
    return QuoteResponse(
        lines=[
            QuoteLineResponse(
                unit_index=line.unit_index,
                slot_id=line.slot_id,
                resource_id=line.resource_id,
                ticket_kind=line.ticket_kind.value,
                list_price=line.list_price,
                unit_price=line.unit_price,
                covered_by_package=line.is_covered,
                package_subscription_id=line.package_subscription_id,
                is_extension=line.is_extension,
            )
            for line in quote.lines
        ],
        total=quote.total,
        covered_units=quote.covered_units,
        paid_units=quote.paid_units,
        entitlement_exhausted=quote.entitlement_exhausted,
    )


def _lock_response(token: LockToken) -> LockResponse:
    return LockResponse(
        lock_id=token.lock_id,
        expires_at=token.expires_at,
        seconds_remaining=token.seconds_remaining,
        quote=_quote_response(token.quote),
    )


def _group_response(group: BookingGroup) -> BookingGroupResponse:
    return BookingGroupResponse(
        booking_group_id=group.id,
        ticket_count=group.ticket_count,
        total_price=group.total_price,
        bookings=[
            BookingResponse(
                id=booking.id,
                slot_id=booking.slot_id,
                resource_id=booking.resource_id,
                ticket_kind=booking.ticket_kind.value,
                unit_price=booking.unit_price,
                status=booking.status.value,
                payment_status=booking.payment_status.value,
                payment_method=booking.payment_method.value if booking.payment_method else None,
                package_subscription_id=booking.package_subscription_id,
            )
            for booking in group.bookings
        ],
    )


def _window(request: AllocateRequest) -> BookingWindow:
    return BookingWindow(
        slot_date=request.slot_date, start_time=request.start_time, end_time=request.end_time
    )


@router.post('/bookings/allocate')
@Logger.io
async def allocate_booking(
    tenant_id: int,
    request: AllocateRequest,
    principal: Optional[Principal] = Depends(get_optional_principal),
    use_case: AllocateBookingUseCase = Depends(AllocateBookingUseCase.depends),
) -> AllocationResponse:
    result = await use_case.execute(
        tenant_id=tenant_id,
        service_id=request.service_id,
        adult_count=request.adult_count,
        child_count=request.child_count,
        strategy=AllocationStrategy(request.strategy),
        window=_window(request),
        selected_slot_ids=request.selected_slot_ids,
        offer_id=request.offer_id,
        customer_id=principal.booking_customer_id(request.customer_id) if principal else None,
    )
    return AllocationResponse(
        service_id=result.service.id,
        ticket_count=result.request.ticket_count,
        quote=_quote_response(result.quote),
        entitlement_remaining=result.entitlement.remaining,
    )


@router.post('/bookings/lock', status_code=status.HTTP_201_CREATED)
@Logger.io
async def lock_booking(
    tenant_id: int,
    request: LockRequest,
    principal: Optional[Principal] = Depends(get_optional_principal),
    guest: Optional[GuestIdentity] = Depends(get_optional_guest),
    use_case: LockBookingUseCase = Depends(LockBookingUseCase.depends),
) -> LockResponse:
    with tracer.start_as_current_span('controller.lock_booking') as span:
        span.set_attribute('tenant.id', tenant_id)
        span.set_attribute('service.id', request.service_id)
        span.set_attribute('caller.guest', principal is None)

        token = await use_case.execute(
            tenant_id=tenant_id,
            principal=principal,
            guest=guest,
            service_id=request.service_id,
            adult_count=request.adult_count,
            child_count=request.child_count,
            strategy=AllocationStrategy(request.strategy),
            window=_window(request),
            selected_slot_ids=request.selected_slot_ids,
            offer_id=request.offer_id,
            customer_id=request.customer_id,
        )
        span.set_attribute('booking.lock_id', str(token.lock_id))
        return _lock_response(token)


@router.get('/bookings/lock/{lock_id}')
@Logger.io
async def get_booking_lock(
    tenant_id: int,
    lock_id: UUID,
    principal: Optional[Principal] = Depends(get_optional_principal),
    guest: Optional[GuestIdentity] = Depends(get_optional_guest),
    use_case: GetBookingLockUseCase = Depends(GetBookingLockUseCase.depends),
) -> LockResponse:
    token = await use_case.execute(
        tenant_id=tenant_id, principal=principal, guest=guest, lock_id=lock_id
    )
    return _lock_response(token)


@router.post('/bookings/lock/{lock_id}/release')
@Logger.io
async def release_booking_lock(
    tenant_id: int,
    lock_id: UUID,
    principal: Optional[Principal] = Depends(get_optional_principal),
    guest: Optional[GuestIdentity] = Depends(get_optional_guest),
    use_case: ReleaseBookingLockUseCase = Depends(ReleaseBookingLockUseCase.depends),
) -> ReleaseLockResponse:
    released = await use_case.execute(
        tenant_id=tenant_id,
        principal=principal,
        guest=guest,
        lock_id=lock_id,
    )
    return ReleaseLockResponse(lock_id=lock_id, released=released)


@router.post('/bookings/commit', status_code=status.HTTP_201_CREATED)
@Logger.io
async def commit_booking(
    tenant_id: int,
    request: CommitRequest,
    principal: Optional[Principal] = Depends(get_optional_principal),
    guest: Optional[GuestIdentity] = Depends(get_optional_guest),
    use_case: CommitBookingUseCase = Depends(CommitBookingUseCase.depends),
) -> BookingGroupResponse:
    with tracer.start_as_current_span('controller.commit_booking') as span:
        span.set_attribute('tenant.id', tenant_id)
        span.set_attribute('booking.lock_id', str(request.lock_id))

        group = await use_case.execute(
            tenant_id=tenant_id,
            principal=principal,
            guest=guest,
            lock_id=request.lock_id,
            customer_name=request.customer_name,
            customer_phone=request.customer_phone,
            customer_email=request.customer_email,
        )
        span.set_attribute('booking.group_id', str(group.id))
        return _group_response(group)


@router.patch('/bookings/groups/{group_id}/payment-status')
@Logger.io
async def update_payment_status(
    tenant_id: int,
    group_id: UUID,
    request: PaymentStatusUpdateRequest,
    principal: Optional[Principal] = Depends(get_optional_principal),
    use_case: UpdatePaymentStatusUseCase = Depends(UpdatePaymentStatusUseCase.depends),
) -> BookingGroupResponse:
    group = await use_case.execute(
        tenant_id=tenant_id,
        principal=principal,
        booking_group_id=group_id,
        payment_status=PaymentStatus(request.payment_status),
        payment_method=PaymentMethod(request.payment_method) if request.payment_method else None,
        transaction_reference=request.transaction_reference,
    )
    return _group_response(group)


@router.post('/bookings/groups/{group_id}/cancel')
@Logger.io
async def cancel_booking_group(
    tenant_id: int,
    group_id: UUID,
    principal: Optional[Principal] = Depends(get_optional_principal),
    use_case: CancelBookingGroupUseCase = Depends(CancelBookingGroupUseCase.depends),
) -> BookingGroupResponse:
    group = await use_case.execute(
        tenant_id=tenant_id, principal=principal, booking_group_id=group_id
    )
    return _group_response(group)
