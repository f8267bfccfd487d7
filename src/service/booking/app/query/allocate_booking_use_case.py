from typing import Optional, Self, Sequence

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.config.core_setting import Settings
from src.platform.config.di import Container
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.booking.app.dto.allocation_result import AllocationResult
from src.service.booking.app.interface.i_catalog_query_repo import ICatalogQueryRepo
from src.service.booking.app.interface.i_package_query_repo import IPackageQueryRepo
from src.service.booking.app.interface.i_slot_query_repo import ISlotQueryRepo
from src.service.booking.domain.clock import Clock, utc_now
from src.service.booking.domain.entitlement_ledger import EntitlementLedger, resolve_entitlement
from src.service.booking.domain.entity.slot_entity import Slot
from src.service.booking.domain.enum.allocation_strategy import AllocationStrategy
from src.service.booking.domain.multi_unit_allocator import AllocationRequest, allocate
from src.service.booking.domain.pricing_calculator import quote
from src.service.booking.domain.slot_availability import (
    AvailabilityClock,
    AvailabilityOptions,
    iter_available_slots,
)
from src.service.booking.domain.value_object.entitlement import Entitlement
from src.service.booking.domain.value_object.time_window import BookingWindow


class AllocateBookingUseCase:
    """
    Allocation preview: which slot every unit goes on and what it costs.

    Validation errors surface here, before any capacity is reserved. Locking repeats the same
    computation and then reserves.
    """

    def __init__(
        self,
        *,
        catalog_query_repo: ICatalogQueryRepo,
        slot_query_repo: ISlotQueryRepo,
        package_query_repo: IPackageQueryRepo,
        config: Settings,
        clock: Clock = utc_now,
    ) -> None:
        self.catalog_query_repo = catalog_query_repo
        self.slot_query_repo = slot_query_repo
        self.package_query_repo = package_query_repo
        self.config = config
        self.clock = clock
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        catalog_query_repo: ICatalogQueryRepo = Depends(Provide[Container.catalog_query_repo]),
        slot_query_repo: ISlotQueryRepo = Depends(Provide[Container.slot_query_repo]),
        package_query_repo: IPackageQueryRepo = Depends(Provide[Container.package_query_repo]),
        config: Settings = Depends(Provide[Container.config_service]),
    ) -> Self:
        return cls(
            catalog_query_repo=catalog_query_repo,
            slot_query_repo=slot_query_repo,
            package_query_repo=package_query_repo,
            config=config,
        )

    async def _entitlement(
        self, *, tenant_id: int, customer_id: Optional[int], service_id: int
    ) -> Entitlement:
        # Guests hold no packages
        if customer_id is None:
            return Entitlement(remaining=0)
        usages = await self.package_query_repo.list_usages(
            tenant_id=tenant_id, customer_id=customer_id, service_id=service_id
        )
        return resolve_entitlement(usages=usages, now=self.clock())

    async def _bookable(
        self, *, tenant_id: int, service_id: int, slots: Sequence[Slot], clock: AvailabilityClock
    ) -> list[Slot]:
        """Same shift and time rules as availability; started slots come back marked past"""
        if not slots:
            return []
        shifts = await self.slot_query_repo.list_active_shifts(
            tenant_id=tenant_id, service_id=service_id
        )
        return list(
            iter_available_slots(
                shifts=shifts,
                slots=slots,
                clock=clock,
                options=AvailabilityOptions(include_past=True, include_zero_capacity=True),
            )
        )

    @Logger.io
    async def execute(
        self,
        *,
        tenant_id: int,
        service_id: int,
        adult_count: int,
        child_count: int = 0,
        strategy: AllocationStrategy = AllocationStrategy.PARALLEL,
        window: BookingWindow,
        selected_slot_ids: Sequence[int] = (),
        offer_id: Optional[int] = None,
        customer_id: Optional[int] = None,
    ) -> AllocationResult:
        with self.tracer.start_as_current_span(
            'use_case.allocate_booking',
            attributes={
                'tenant.id': tenant_id,
                'service.id': service_id,
                'booking.ticket_count': adult_count + child_count,
                'booking.strategy': str(strategy),
            },
        ):
            service = await self.catalog_query_repo.get_service(
                tenant_id=tenant_id, service_id=service_id
            )
            if service is None or not service.is_active:
                raise NotFoundError('Service not found')

            offer = None
            if offer_id is not None:
                offer = await self.catalog_query_repo.get_offer(
                    tenant_id=tenant_id, service_id=service_id, offer_id=offer_id
                )
                if offer is None or not offer.is_active:
                    raise NotFoundError('Offer not found')

            time_zone = await self.catalog_query_repo.get_tenant_time_zone(tenant_id=tenant_id)
            if time_zone is None:
                raise NotFoundError('Tenant not found')
            clock = AvailabilityClock.at(self.clock(), time_zone or self.config.DEFAULT_TIME_ZONE)

            request = AllocationRequest(
                tenant_id=tenant_id,
                service_id=service_id,
                adult_count=adult_count,
                child_count=child_count,
                strategy=strategy,
                window=window,
                selected_slot_ids=tuple(selected_slot_ids),
            )

            window_slots = await self._bookable(
                tenant_id=tenant_id,
                service_id=service_id,
                slots=await self.slot_query_repo.list_window_slots(
                    tenant_id=tenant_id, service_id=service_id, window=window
                ),
                clock=clock,
            )
            selected_rows: dict[int, Slot] = {}
            if request.selected_slot_ids:
                selected_rows = await self.slot_query_repo.get_slots_by_ids(
                    tenant_id=tenant_id, slot_ids=request.selected_slot_ids
                )
            selected = await self._bookable(
                tenant_id=tenant_id,
                service_id=service_id,
                slots=list(selected_rows.values()),
                clock=clock,
            )

            assignments = allocate(
                request=request,
                window_slots=window_slots,
                selected_slots={slot.id: slot for slot in selected},
            )

            entitlement = await self._entitlement(
                tenant_id=tenant_id, customer_id=customer_id, service_id=service_id
            )
            priced = quote(
                service=service,
                offer=offer,
                assignments=assignments,
                ledger=EntitlementLedger(entitlement),
            )

            Logger.base.info(
                f'🧮 [ALLOCATE] tenant={tenant_id} service={service_id} '
                f'units={len(assignments)} covered={priced.covered_units} total={priced.total}'
            )
            return AllocationResult(
                request=request,
                service=service,
                offer=offer,
                customer_id=customer_id,
                assignments=tuple(assignments),
                quote=priced,
                entitlement=entitlement,
            )
