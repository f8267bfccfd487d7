from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends

from src.platform.logging.loguru_io import Logger
from src.service.booking.app.query.resolve_availability_use_case import ResolveAvailabilityUseCase
from src.service.booking.app.query.resolve_entitlement_use_case import ResolveEntitlementUseCase
from src.service.booking.domain.value_object.principal import Principal
from src.service.booking.driving_adapter.http_controller.auth.role_auth import (
    get_optional_principal,
)
from src.service.booking.driving_adapter.http_controller.schema.availability_schema import (
    AvailabilityResponse,
    EntitlementResponse,
    SlotResponse,
    SubscriptionBalanceResponse,
    TimeWindowResponse,
)


router = APIRouter()


@router.get('/services/{service_id}/availability')
@Logger.io
async def get_availability(
    tenant_id: int,
    service_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    include_past: bool = False,
    include_zero_capacity: bool = False,
    use_case: ResolveAvailabilityUseCase = Depends(ResolveAvailabilityUseCase.depends),
) -> AvailabilityResponse:
    result = await use_case.execute(
        tenant_id=tenant_id,
        service_id=service_id,
        start_date=start_date,
        end_date=end_date,
        include_past=include_past,
        include_zero_capacity=include_zero_capacity,
    )
    return AvailabilityResponse(
        service_id=result.service_id,
        start_date=result.start_date,
        end_date=result.end_date,
        counts_by_date=result.counts_by_date,
        slots=[
            SlotResponse(
                id=slot.id,
                shift_id=slot.shift_id,
                resource_id=slot.resource_id,
                slot_date=slot.slot_date,
                start_time=slot.start_time,
                end_time=slot.end_time,
                free_capacity=slot.free_capacity,
                booked_count=slot.booked_count,
                is_past=slot.is_past,
            )
            for slot in result.slots
        ],
        time_windows=[
            TimeWindowResponse(
                slot_date=window.window.slot_date,
                start_time=window.window.start_time,
                end_time=window.window.end_time,
                free_capacity=window.free_capacity,
                slot_ids=list(window.slot_ids),
            )
            for window in result.time_windows
        ],
    )


@router.get('/services/{service_id}/entitlement')
@Logger.io
async def get_entitlement(
    tenant_id: int,
    service_id: int,
    customer_id: Optional[int] = None,
    principal: Optional[Principal] = Depends(get_optional_principal),
    use_case: ResolveEntitlementUseCase = Depends(ResolveEntitlementUseCase.depends),
) -> EntitlementResponse:
    resolved_customer_id = principal.booking_customer_id(customer_id) if principal else None
    if resolved_customer_id is None:
        return EntitlementResponse(available=False, remaining=0, balances=[])

    entitlement = await use_case.execute(
        tenant_id=tenant_id, customer_id=resolved_customer_id, service_id=service_id
    )
    return EntitlementResponse(
        available=entitlement.available,
        remaining=entitlement.remaining,
        balances=[
            SubscriptionBalanceResponse(
                subscription_id=balance.subscription_id,
                original=balance.original,
                remaining=balance.remaining,
                used=balance.used,
                expires_at=balance.expires_at.isoformat() if balance.expires_at else None,
            )
            for balance in entitlement.balances
        ],
    )
