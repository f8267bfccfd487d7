from abc import ABC, abstractmethod

from src.service.booking.domain.entity.package_entity import PackageSubscription, PackageUsage


class IPackageQueryRepo(ABC):
    @abstractmethod
    async def list_usages(
        self, *, tenant_id: int, customer_id: int, service_id: int
    ) -> list[tuple[PackageSubscription, PackageUsage]]:
        """
        Usage rows of every subscription the customer holds for the service

        Expired and cancelled subscriptions are included; filtering on "active at now" is a
        domain decision.
        """
        pass
