from datetime import timedelta
from unittest.mock import AsyncMock, Mock

import pytest

from src.platform.config.core_setting import Settings
from src.platform.exception.exceptions import DomainError, NotFoundError
from src.service.booking.app.query.resolve_availability_use_case import (
    ResolveAvailabilityUseCase,
)
from src.service.booking.app.query.resolve_entitlement_use_case import ResolveEntitlementUseCase
from test.service.booking.builders import (
    MONDAY,
    NOW,
    SERVICE_ID,
    SUNDAY,
    TENANT_ID,
    make_service,
    make_shift,
    make_slot,
    make_usage,
)


@pytest.fixture
def catalog_query_repo() -> Mock:
    repo = AsyncMock()
    repo.get_service = AsyncMock(return_value=make_service())
    repo.get_tenant_time_zone = AsyncMock(return_value='Asia/Riyadh')
    return repo


@pytest.fixture
def slot_query_repo() -> Mock:
    repo = AsyncMock()
    repo.list_active_shifts = AsyncMock(return_value=[make_shift()])
    repo.list_slots = AsyncMock(
        return_value=[
            make_slot(1, start_time='07:00', end_time='08:00'),
            make_slot(2),
            make_slot(3, slot_date=MONDAY),
        ]
    )
    return repo


@pytest.fixture
def use_case(catalog_query_repo: Mock, slot_query_repo: Mock) -> ResolveAvailabilityUseCase:
    return ResolveAvailabilityUseCase(
        catalog_query_repo=catalog_query_repo,
        slot_query_repo=slot_query_repo,
        config=Settings(AVAILABILITY_WINDOW_DAYS=30),
        clock=lambda: NOW,
    )


@pytest.mark.unit
class TestResolveAvailabilityUseCase:
    @pytest.mark.asyncio
    async def test_defaults_to_tenant_today_and_window(
        self, use_case: ResolveAvailabilityUseCase, slot_query_repo: Mock
    ) -> None:
        result = await use_case.execute(tenant_id=TENANT_ID, service_id=SERVICE_ID)

        assert result.start_date == SUNDAY
        assert result.end_date == SUNDAY + timedelta(days=30)
        # 07:00 already started at 08:00 local
        assert [slot.id for slot in result.slots] == [2, 3]
        assert result.counts_by_date == {SUNDAY: 1, MONDAY: 1}
        slot_query_repo.list_slots.assert_awaited_once_with(
            tenant_id=TENANT_ID,
            shift_ids=[100],
            start_date=SUNDAY,
            end_date=SUNDAY + timedelta(days=30),
            include_zero_capacity=False,
        )

    @pytest.mark.asyncio
    async def test_include_past_marks_started_slots(
        self, use_case: ResolveAvailabilityUseCase
    ) -> None:
        result = await use_case.execute(
            tenant_id=TENANT_ID, service_id=SERVICE_ID, include_past=True
        )

        past = {slot.id for slot in result.slots if slot.is_past}
        assert past == {1}
        assert result.counts_by_date == {SUNDAY: 1, MONDAY: 1}

    @pytest.mark.asyncio
    async def test_no_active_shifts_is_empty(
        self, use_case: ResolveAvailabilityUseCase, slot_query_repo: Mock
    ) -> None:
        slot_query_repo.list_active_shifts.return_value = []

        result = await use_case.execute(tenant_id=TENANT_ID, service_id=SERVICE_ID)

        assert result.slots == ()
        assert result.time_windows == ()
        slot_query_repo.list_slots.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reversed_range(self, use_case: ResolveAvailabilityUseCase) -> None:
        with pytest.raises(DomainError):
            await use_case.execute(
                tenant_id=TENANT_ID,
                service_id=SERVICE_ID,
                start_date=MONDAY,
                end_date=SUNDAY,
            )

    @pytest.mark.asyncio
    async def test_missing_service(
        self, use_case: ResolveAvailabilityUseCase, catalog_query_repo: Mock
    ) -> None:
        catalog_query_repo.get_service.return_value = None

        with pytest.raises(NotFoundError):
            await use_case.execute(tenant_id=TENANT_ID, service_id=SERVICE_ID)

    @pytest.mark.asyncio
    async def test_unknown_tenant(
        self, use_case: ResolveAvailabilityUseCase, catalog_query_repo: Mock
    ) -> None:
        catalog_query_repo.get_tenant_time_zone.return_value = None

        with pytest.raises(NotFoundError):
            await use_case.execute(tenant_id=TENANT_ID, service_id=SERVICE_ID)

    @pytest.mark.asyncio
    async def test_blank_time_zone_uses_default(
        self, use_case: ResolveAvailabilityUseCase, catalog_query_repo: Mock
    ) -> None:
        catalog_query_repo.get_tenant_time_zone.return_value = ''

        result = await use_case.execute(tenant_id=TENANT_ID, service_id=SERVICE_ID)

        assert result.start_date == SUNDAY


@pytest.mark.unit
class TestResolveEntitlementUseCase:
    @pytest.mark.asyncio
    async def test_sums_active_subscriptions(self) -> None:
        package_query_repo = AsyncMock()
        package_query_repo.list_usages = AsyncMock(
            return_value=[
                make_usage(subscription_id=1, remaining=2),
                make_usage(subscription_id=2, remaining=3, expires_at=NOW - timedelta(days=1)),
                make_usage(subscription_id=3, remaining=1, expires_at=NOW + timedelta(days=5)),
            ]
        )
        use_case = ResolveEntitlementUseCase(
            package_query_repo=package_query_repo, clock=lambda: NOW
        )

        entitlement = await use_case.execute(
            tenant_id=TENANT_ID, customer_id=55, service_id=SERVICE_ID
        )

        assert entitlement.remaining == 3
        # Soonest expiry consumed first
        assert [b.subscription_id for b in entitlement.balances] == [3, 1]
