import attrs


@attrs.define(frozen=True)
class GuestIdentity:
    """Unauthenticated caller resolved from a signed guest token bound to one phone"""

    tenant_id: int
    phone: str
    verified: bool = False

    @property
    def lock_session_id(self) -> str:
        return f'guest:{self.phone}'
