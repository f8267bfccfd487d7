from typing import Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.logging.loguru_io import Logger
from src.service.booking.app.interface.i_otp_session_repo import IOtpSessionRepo
from src.service.booking.domain.booking_exceptions import VerificationRequiredError
from src.service.booking.domain.clock import Clock, utc_now
from src.service.booking.domain.value_object.guest_identity import GuestIdentity
from src.service.booking.domain.value_object.principal import Principal


class GuestVerificationGate:
    """
    Decides which checkout session a caller acts as.

    Authenticated callers are `user:<id>`. Unauthenticated callers are `guest:<phone>`, known only
    through the signed guest token handed out after a successful OTP verify, and may only lock
    or commit while that phone still holds a verified, unexpired OTP session.
    """

    def __init__(self, *, otp_session_repo: IOtpSessionRepo, clock: Clock = utc_now) -> None:
        self.otp_session_repo = otp_session_repo
        self.clock = clock

    @classmethod
    @inject
    def depends(
        cls,
        otp_session_repo: IOtpSessionRepo = Depends(Provide[Container.otp_session_repo]),
    ) -> Self:
        return cls(otp_session_repo=otp_session_repo)

    @staticmethod
    def session_id(*, principal: Optional[Principal], guest: Optional[GuestIdentity]) -> str:
        """Session identity from a principal or a verified guest token"""
        if principal is not None:
            return principal.lock_session_id
        if guest is None or not guest.verified:
            raise VerificationRequiredError()
        return guest.lock_session_id

    @Logger.io
    async def ensure_verified(
        self, *, tenant_id: int, principal: Optional[Principal], guest: Optional[GuestIdentity]
    ) -> str:
        """
        Returns:
            Lock session id of the caller

        Raises:
            VerificationRequiredError: guest without a verified token, or whose OTP session
                has lapsed or been reset since the token was issued
        """
        session_id = self.session_id(principal=principal, guest=guest)
        if principal is not None or guest is None:
            return session_id

        session = await self.otp_session_repo.get(tenant_id=tenant_id, phone=guest.phone)
        if session is None or not session.is_verified(self.clock()):
            Logger.base.info(f'🚫 [GUEST-GATE] tenant={tenant_id} unverified guest blocked')
            raise VerificationRequiredError()
        return session_id
