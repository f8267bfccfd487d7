from typing import AsyncContextManager, Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.logging.loguru_io import Logger
from src.service.booking.app.interface.i_catalog_query_repo import ICatalogQueryRepo
from src.service.booking.domain.entity.service_entity import Service, ServiceOffer
from src.service.booking.driven_adapter.model.service_model import ServiceModel, ServiceOfferModel
from src.service.booking.driven_adapter.model.tenant_model import TenantModel


class CatalogQueryRepoImpl(ICatalogQueryRepo):
    def __init__(self, session_factory: Callable[..., AsyncContextManager[AsyncSession]]):
        self.session_factory = session_factory

    @Logger.io
    async def get_service(self, *, tenant_id: int, service_id: int) -> Optional[Service]:
        async with self.session_factory() as session:
            model = await session.scalar(
                select(ServiceModel).where(
                    ServiceModel.id == service_id, ServiceModel.tenant_id == tenant_id
                )
            )
            if model is None:
                return None
            return Service(
                id=model.id,
                tenant_id=model.tenant_id,
                name=model.name,
                base_price=model.base_price,
                discounted_price=model.discounted_price,
                child_price=model.child_price,
                capacity_per_slot=model.capacity_per_slot,
                is_active=model.is_active,
            )

    @Logger.io
    async def get_offer(
        self, *, tenant_id: int, service_id: int, offer_id: int
    ) -> Optional[ServiceOffer]:
        async with self.session_factory() as session:
            model = await session.scalar(
                select(ServiceOfferModel).where(
                    ServiceOfferModel.id == offer_id,
                    ServiceOfferModel.tenant_id == tenant_id,
                    ServiceOfferModel.service_id == service_id,
                )
            )
            if model is None:
                return None
            return ServiceOffer(
                id=model.id,
                tenant_id=model.tenant_id,
                service_id=model.service_id,
                name=model.name,
                price=model.price,
                is_active=model.is_active,
            )

    @Logger.io
    async def get_tenant_time_zone(self, *, tenant_id: int) -> Optional[str]:
        async with self.session_factory() as session:
            return await session.scalar(
                select(TenantModel.time_zone).where(TenantModel.id == tenant_id)
            )
