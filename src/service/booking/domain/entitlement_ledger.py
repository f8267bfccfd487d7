from datetime import datetime
from typing import Iterable, Optional

from src.service.booking.domain.entity.package_entity import PackageSubscription, PackageUsage
from src.service.booking.domain.value_object.entitlement import Entitlement, SubscriptionBalance


def _consumption_order(balance: SubscriptionBalance) -> tuple[bool, datetime, int]:
    # Soonest-expiring first, never-expiring last
    return (
        balance.expires_at is None,
        balance.expires_at or datetime.max,
        balance.subscription_id,
    )


def resolve_entitlement(
    *,
    usages: Iterable[tuple[PackageSubscription, PackageUsage]],
    now: datetime,
) -> Entitlement:
    """Sum remaining quota over subscriptions that are active and unexpired at `now`"""
    balances = sorted(
        (
            usage.to_balance(subscription)
            for subscription, usage in usages
            if subscription.is_active_at(now) and usage.remaining_quantity > 0
        ),
        key=_consumption_order,
    )
    return Entitlement(
        remaining=sum(balance.remaining for balance in balances),
        balances=tuple(balances),
    )


class EntitlementLedger:
    """
    In-memory view of one customer's quota while pricing a single booking.

    Every claim decrements the ledger, so a multi-unit booking can never cover more units than
    the quota it started with. The database decrement at commit is the authoritative check.
    """

    def __init__(self, entitlement: Optional[Entitlement] = None) -> None:
        self._balances = list((entitlement or Entitlement(remaining=0)).balances)
        self._claimed: dict[int, int] = {}

    @classmethod
    def empty(cls) -> 'EntitlementLedger':
        return cls()

    @property
    def remaining(self) -> int:
        return sum(balance.remaining for balance in self._balances) - sum(self._claimed.values())

    def claim(self) -> Optional[int]:
        """Take one unit; returns the subscription charged, or None when nothing is left"""
        for balance in self._balances:
            claimed = self._claimed.get(balance.subscription_id, 0)
            if balance.remaining - claimed > 0:
                self._claimed[balance.subscription_id] = claimed + 1
                return balance.subscription_id
        return None

    def claimed(self) -> dict[int, int]:
        return dict(self._claimed)
