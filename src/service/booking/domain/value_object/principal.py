from typing import Optional

import attrs

from src.service.booking.domain.enum.user_role import UserRole


@attrs.define(frozen=True)
class Principal:
    """Authenticated caller resolved from a bearer token"""

    user_id: int
    tenant_id: int
    role: UserRole
    customer_id: Optional[int] = None

    @property
    def lock_session_id(self) -> str:
        return f'user:{self.user_id}'

    @property
    def acts_for_others(self) -> bool:
        return self.role in (UserRole.STAFF, UserRole.TENANT_ADMIN)

    def booking_customer_id(self, requested: Optional[int] = None) -> Optional[int]:
        """Staff book on behalf of any customer; customers always book for themselves"""
        if self.acts_for_others:
            return requested
        return self.customer_id
