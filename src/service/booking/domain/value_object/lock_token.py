from datetime import datetime
from uuid import UUID

import attrs

from src.service.booking.domain.value_object.quote import Quote


@attrs.define(frozen=True)
class LockToken:
    lock_id: UUID
    expires_at: datetime
    seconds_remaining: int
    quote: Quote
