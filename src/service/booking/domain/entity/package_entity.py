from datetime import datetime
from enum import StrEnum
from typing import Optional

import attrs

from src.service.booking.domain.value_object.entitlement import SubscriptionBalance


class SubscriptionStatus(StrEnum):
    ACTIVE = 'active'
    EXPIRED = 'expired'
    CANCELLED = 'cancelled'


@attrs.define(frozen=True)
class PackageSubscription:
    id: int
    tenant_id: int
    customer_id: int
    package_id: int
    status: SubscriptionStatus
    expires_at: Optional[datetime] = None

    def is_active_at(self, now: datetime) -> bool:
        if self.status != SubscriptionStatus.ACTIVE:
            return False
        return self.expires_at is None or self.expires_at > now


@attrs.define(frozen=True)
class PackageUsage:
    subscription_id: int
    service_id: int
    original_quantity: int
    remaining_quantity: int

    def __attrs_post_init__(self) -> None:
        if not 0 <= self.remaining_quantity <= self.original_quantity:
            raise ValueError(
                f'remaining_quantity {self.remaining_quantity} outside 0..{self.original_quantity}'
            )

    @property
    def used_quantity(self) -> int:
        return self.original_quantity - self.remaining_quantity

    def to_balance(self, subscription: PackageSubscription) -> SubscriptionBalance:
        return SubscriptionBalance(
            subscription_id=self.subscription_id,
            original=self.original_quantity,
            remaining=self.remaining_quantity,
            expires_at=subscription.expires_at,
        )
