from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import pytest

from src.platform.config.core_setting import Settings
from src.platform.exception.exceptions import NotFoundError
from src.service.booking.app.query.allocate_booking_use_case import AllocateBookingUseCase
from src.service.booking.domain.booking_exceptions import InsufficientCapacityError
from src.service.booking.domain.enum.allocation_strategy import AllocationStrategy
from test.service.booking.builders import (
    MORNING,
    NOW,
    SERVICE_ID,
    TENANT_ID,
    make_offer,
    make_service,
    make_shift,
    make_slot,
    make_usage,
)


@pytest.fixture
def catalog_query_repo() -> Mock:
    repo = AsyncMock()
    repo.get_service = AsyncMock(return_value=make_service())
    repo.get_offer = AsyncMock(return_value=make_offer())
    repo.get_tenant_time_zone = AsyncMock(return_value='Asia/Riyadh')
    return repo


@pytest.fixture
def slot_query_repo() -> Mock:
    repo = AsyncMock()
    repo.list_active_shifts = AsyncMock(return_value=[make_shift()])
    repo.list_window_slots = AsyncMock(return_value=[make_slot(1), make_slot(2), make_slot(3)])
    repo.get_slots_by_ids = AsyncMock(return_value={})
    return repo


@pytest.fixture
def package_query_repo() -> Mock:
    repo = AsyncMock()
    repo.list_usages = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def use_case(
    catalog_query_repo: Mock, slot_query_repo: Mock, package_query_repo: Mock
) -> AllocateBookingUseCase:
    return AllocateBookingUseCase(
        catalog_query_repo=catalog_query_repo,
        slot_query_repo=slot_query_repo,
        package_query_repo=package_query_repo,
        config=Settings(),
        clock=lambda: NOW,
    )


@pytest.mark.unit
class TestAllocateBookingUseCase:
    @pytest.mark.asyncio
    async def test_parallel_allocation_priced_at_list(
        self, use_case: AllocateBookingUseCase, package_query_repo: Mock
    ) -> None:
        result = await use_case.execute(
            tenant_id=TENANT_ID, service_id=SERVICE_ID, adult_count=3, window=MORNING
        )

        assert sorted(a.slot_id for a in result.assignments) == [1, 2, 3]
        assert result.quote.total == Decimal('450.00')
        assert result.entitlement.remaining == 0
        # Guest / anonymous preview never reads packages
        package_query_repo.list_usages.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_offer_price_and_package_coverage(
        self, use_case: AllocateBookingUseCase, package_query_repo: Mock
    ) -> None:
        package_query_repo.list_usages.return_value = [make_usage(subscription_id=9, remaining=1)]

        result = await use_case.execute(
            tenant_id=TENANT_ID,
            service_id=SERVICE_ID,
            adult_count=2,
            window=MORNING,
            offer_id=7,
            customer_id=55,
        )

        assert result.quote.covered_units == 1
        assert result.quote.total == Decimal('120.00')
        assert result.quote.entitlement_exhausted is True
        assert result.offer is not None

    @pytest.mark.asyncio
    async def test_not_enough_resources(self, use_case: AllocateBookingUseCase) -> None:
        with pytest.raises(InsufficientCapacityError) as exc_info:
            await use_case.execute(
                tenant_id=TENANT_ID, service_id=SERVICE_ID, adult_count=4, window=MORNING
            )

        assert exc_info.value.available == 3
        assert exc_info.value.requested == 4

    @pytest.mark.asyncio
    async def test_inactive_service(
        self, use_case: AllocateBookingUseCase, catalog_query_repo: Mock
    ) -> None:
        catalog_query_repo.get_service.return_value = make_service(is_active=False)

        with pytest.raises(NotFoundError):
            await use_case.execute(
                tenant_id=TENANT_ID, service_id=SERVICE_ID, adult_count=1, window=MORNING
            )

    @pytest.mark.asyncio
    async def test_unknown_offer(
        self, use_case: AllocateBookingUseCase, catalog_query_repo: Mock
    ) -> None:
        catalog_query_repo.get_offer.return_value = None

        with pytest.raises(NotFoundError):
            await use_case.execute(
                tenant_id=TENANT_ID,
                service_id=SERVICE_ID,
                adult_count=1,
                window=MORNING,
                offer_id=99,
            )

    @pytest.mark.asyncio
    async def test_consecutive_selection_loaded_by_id(
        self, use_case: AllocateBookingUseCase, slot_query_repo: Mock
    ) -> None:
        selected = {
            11: make_slot(11, resource_id=5, start_time='10:00', end_time='11:00'),
            12: make_slot(12, resource_id=5, start_time='11:00', end_time='12:00'),
        }
        slot_query_repo.get_slots_by_ids.return_value = selected

        result = await use_case.execute(
            tenant_id=TENANT_ID,
            service_id=SERVICE_ID,
            adult_count=2,
            strategy=AllocationStrategy.CONSECUTIVE,
            window=MORNING,
            selected_slot_ids=[12, 11],
        )

        assert [a.slot_id for a in result.assignments] == [11, 12]
        slot_query_repo.get_slots_by_ids.assert_awaited_once_with(
            tenant_id=TENANT_ID, slot_ids=(12, 11)
        )
