from decimal import Decimal
from typing import Optional, Sequence

from src.platform.logging.loguru_io import Logger
from src.service.booking.domain.entitlement_ledger import EntitlementLedger
from src.service.booking.domain.entity.service_entity import Service, ServiceOffer
from src.service.booking.domain.enum.ticket_kind import TicketKind
from src.service.booking.domain.value_object.assignment import Assignment
from src.service.booking.domain.value_object.quote import Quote, QuoteLine


ZERO = Decimal('0')


def adult_price(*, service: Service, offer: Optional[ServiceOffer] = None) -> Decimal:
    """Offer price, else the discounted price, else the base price"""
    if offer is not None:
        return offer.price
    return service.effective_price


def child_price(*, service: Service, offer: Optional[ServiceOffer] = None) -> Decimal:
    if service.child_price is not None:
        return service.child_price
    return adult_price(service=service, offer=offer)


def list_price(
    *, service: Service, offer: Optional[ServiceOffer], ticket_kind: TicketKind
) -> Decimal:
    if ticket_kind == TicketKind.CHILD:
        return child_price(service=service, offer=offer)
    return adult_price(service=service, offer=offer)


@Logger.io
def quote(
    *,
    service: Service,
    offer: Optional[ServiceOffer],
    assignments: Sequence[Assignment],
    ledger: Optional[EntitlementLedger] = None,
) -> Quote:
    """
    Price every allocated unit.

    Units are covered by the package ledger in assignment order until it runs dry; the rest
    pay list price. Coverage is all-or-nothing per unit.
    """
    ledger = ledger or EntitlementLedger.empty()
    wants_coverage = ledger.remaining > 0
    lines: list[QuoteLine] = []
    for assignment in sorted(assignments, key=lambda a: a.unit_index):
        price = list_price(service=service, offer=offer, ticket_kind=assignment.ticket_kind)
        subscription_id = ledger.claim()
        lines.append(
            QuoteLine(
                unit_index=assignment.unit_index,
                slot_id=assignment.slot_id,
                resource_id=assignment.resource_id,
                ticket_kind=assignment.ticket_kind,
                list_price=price,
                unit_price=ZERO if subscription_id is not None else price,
                package_subscription_id=subscription_id,
                is_extension=assignment.is_extension,
            )
        )

    result = Quote(lines=tuple(lines))
    if wants_coverage and result.paid_units > 0:
        Logger.base.info(
            f'📦 [PRICING] Entitlement covers {result.covered_units}/{len(lines)} units, '
            f'rest at list price'
        )
        result = Quote(lines=result.lines, entitlement_exhausted=True)
    return result
