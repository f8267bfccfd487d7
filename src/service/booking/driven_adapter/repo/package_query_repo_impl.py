from typing import AsyncContextManager, Callable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.logging.loguru_io import Logger
from src.service.booking.app.interface.i_package_query_repo import IPackageQueryRepo
from src.service.booking.domain.clock import ensure_utc
from src.service.booking.domain.entity.package_entity import (
    PackageSubscription,
    PackageUsage,
    SubscriptionStatus,
)
from src.service.booking.driven_adapter.model.package_model import (
    PackageSubscriptionModel,
    PackageUsageModel,
)


class PackageQueryRepoImpl(IPackageQueryRepo):
    def __init__(self, session_factory: Callable[..., AsyncContextManager[AsyncSession]]):
        self.session_factory = session_factory

    @Logger.io
    async def list_usages(
        self, *, tenant_id: int, customer_id: int, service_id: int
    ) -> list[tuple[PackageSubscription, PackageUsage]]:
        async with self.session_factory() as session:
            rows = await session.execute(
                select(PackageSubscriptionModel, PackageUsageModel)
                .join(
                    PackageUsageModel,
                    PackageUsageModel.subscription_id == PackageSubscriptionModel.id,
                )
                .where(
                    PackageSubscriptionModel.tenant_id == tenant_id,
                    PackageSubscriptionModel.customer_id == customer_id,
                    PackageUsageModel.service_id == service_id,
                )
                .order_by(PackageSubscriptionModel.id)
            )
            return [
                (
                    PackageSubscription(
                        id=subscription.id,
                        tenant_id=subscription.tenant_id,
                        customer_id=subscription.customer_id,
                        package_id=subscription.package_id,
                        status=SubscriptionStatus(subscription.status),
                        expires_at=ensure_utc(subscription.expires_at),
                    ),
                    PackageUsage(
                        subscription_id=usage.subscription_id,
                        service_id=usage.service_id,
                        original_quantity=usage.original_quantity,
                        remaining_quantity=usage.remaining_quantity,
                    ),
                )
                for subscription, usage in rows.tuples()
            ]
