from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.logging.loguru_io import Logger
from src.service.booking.app.interface.i_package_query_repo import IPackageQueryRepo
from src.service.booking.domain.clock import Clock, utc_now
from src.service.booking.domain.entitlement_ledger import resolve_entitlement
from src.service.booking.domain.value_object.entitlement import Entitlement


class ResolveEntitlementUseCase:
    def __init__(self, *, package_query_repo: IPackageQueryRepo, clock: Clock = utc_now) -> None:
        self.package_query_repo = package_query_repo
        self.clock = clock

    @classmethod
    @inject
    def depends(
        cls,
        package_query_repo: IPackageQueryRepo = Depends(Provide[Container.package_query_repo]),
    ) -> Self:
        return cls(package_query_repo=package_query_repo)

    @Logger.io
    async def execute(self, *, tenant_id: int, customer_id: int, service_id: int) -> Entitlement:
        usages = await self.package_query_repo.list_usages(
            tenant_id=tenant_id, customer_id=customer_id, service_id=service_id
        )
        return resolve_entitlement(usages=usages, now=self.clock())
