from abc import ABC, abstractmethod
from typing import Optional

from src.service.booking.domain.entity.service_entity import Service, ServiceOffer


class ICatalogQueryRepo(ABC):
    """Tenant-scoped reads of the service catalog (read-only during a booking)"""

    @abstractmethod
    async def get_service(self, *, tenant_id: int, service_id: int) -> Optional[Service]:
        pass

    @abstractmethod
    async def get_offer(
        self, *, tenant_id: int, service_id: int, offer_id: int
    ) -> Optional[ServiceOffer]:
        pass

    @abstractmethod
    async def get_tenant_time_zone(self, *, tenant_id: int) -> Optional[str]:
        """
        IANA time zone the tenant operates in

        Returns:
            Zone name, or None when the tenant does not exist
        """
        pass
