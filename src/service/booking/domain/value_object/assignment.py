from typing import Optional

import attrs

from src.service.booking.domain.enum.ticket_kind import TicketKind


@attrs.define(frozen=True)
class Assignment:
    """One allocated ticket unit: a single ticket placed on a (slot, resource) pair"""

    unit_index: int
    slot_id: int
    resource_id: Optional[int]
    ticket_kind: TicketKind
    is_extension: bool = False
