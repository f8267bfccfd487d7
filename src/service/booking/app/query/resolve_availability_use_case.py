from datetime import date, timedelta
from typing import Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.core_setting import Settings
from src.platform.config.di import Container
from src.platform.exception.exceptions import DomainError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.booking.app.dto.availability_result import AvailabilityResult
from src.service.booking.app.interface.i_catalog_query_repo import ICatalogQueryRepo
from src.service.booking.app.interface.i_slot_query_repo import ISlotQueryRepo
from src.service.booking.domain.clock import Clock, utc_now
from src.service.booking.domain.slot_availability import (
    AvailabilityClock,
    AvailabilityOptions,
    count_by_date,
    group_time_windows,
    iter_available_slots,
)


class ResolveAvailabilityUseCase:
    """
    Bookable slots of a service for a date range

    Nothing is cached: every call reads the current capacity, so two calls with no bookings in
    between return the same slots.
    """

    def __init__(
        self,
        *,
        catalog_query_repo: ICatalogQueryRepo,
        slot_query_repo: ISlotQueryRepo,
        config: Settings,
        clock: Clock = utc_now,
    ) -> None:
        self.catalog_query_repo = catalog_query_repo
        self.slot_query_repo = slot_query_repo
        self.config = config
        self.clock = clock
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        catalog_query_repo: ICatalogQueryRepo = Depends(Provide[Container.catalog_query_repo]),
        slot_query_repo: ISlotQueryRepo = Depends(Provide[Container.slot_query_repo]),
        config: Settings = Depends(Provide[Container.config_service]),
    ) -> Self:
        return cls(
            catalog_query_repo=catalog_query_repo,
            slot_query_repo=slot_query_repo,
            config=config,
        )

    async def tenant_clock(self, *, tenant_id: int) -> AvailabilityClock:
        time_zone = await self.catalog_query_repo.get_tenant_time_zone(tenant_id=tenant_id)
        if time_zone is None:
            raise NotFoundError('Tenant not found')
        return AvailabilityClock.at(self.clock(), time_zone or self.config.DEFAULT_TIME_ZONE)

    @Logger.io
    async def execute(
        self,
        *,
        tenant_id: int,
        service_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        include_past: bool = False,
        include_zero_capacity: bool = False,
    ) -> AvailabilityResult:
        with self.tracer.start_as_current_span(
            'use_case.resolve_availability',
            attributes={'tenant.id': tenant_id, 'service.id': service_id},
        ):
            service = await self.catalog_query_repo.get_service(
                tenant_id=tenant_id, service_id=service_id
            )
            if service is None or not service.is_active:
                raise NotFoundError('Service not found')

            clock = await self.tenant_clock(tenant_id=tenant_id)
            start = start_date or clock.today
            end = end_date or start + timedelta(days=self.config.AVAILABILITY_WINDOW_DAYS)
            if end < start:
                raise DomainError('end_date must not be before start_date')

            empty = AvailabilityResult(
                tenant_id=tenant_id,
                service_id=service_id,
                start_date=start,
                end_date=end,
                slots=(),
                counts_by_date={},
                time_windows=(),
            )

            shifts = await self.slot_query_repo.list_active_shifts(
                tenant_id=tenant_id, service_id=service_id
            )
            if not shifts:
                return empty

            slots = await self.slot_query_repo.list_slots(
                tenant_id=tenant_id,
                shift_ids=[shift.id for shift in shifts],
                start_date=start,
                end_date=end,
                include_zero_capacity=include_zero_capacity,
            )
            available = tuple(
                iter_available_slots(
                    shifts=shifts,
                    slots=slots,
                    clock=clock,
                    options=AvailabilityOptions(
                        include_past=include_past,
                        include_zero_capacity=include_zero_capacity,
                    ),
                )
            )

            return AvailabilityResult(
                tenant_id=tenant_id,
                service_id=service_id,
                start_date=start,
                end_date=end,
                slots=available,
                counts_by_date=count_by_date(available),
                time_windows=tuple(group_time_windows(available)),
            )
