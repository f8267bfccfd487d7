from datetime import datetime
from typing import Optional

import attrs


@attrs.define(frozen=True)
class SubscriptionBalance:
    subscription_id: int
    original: int
    remaining: int
    expires_at: Optional[datetime] = None

    @property
    def used(self) -> int:
        return self.original - self.remaining


@attrs.define(frozen=True)
class Entitlement:
    """Remaining pre-paid quota for one (customer, service) across active subscriptions"""

    remaining: int
    balances: tuple[SubscriptionBalance, ...] = ()

    @property
    def available(self) -> bool:
        return self.remaining > 0
