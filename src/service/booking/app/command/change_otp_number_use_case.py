from typing import Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.exception.exceptions import AuthenticationError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.booking_metrics import metrics
from src.service.booking.app.interface.i_otp_session_repo import IOtpSessionRepo
from src.service.booking.domain.entity.otp_session_entity import OtpSession
from src.service.booking.domain.value_object.guest_identity import GuestIdentity


class ChangeOtpNumberUseCase:
    """
    Guest typed the wrong number: drop the pending code so they can start over.

    Only the holder of the guest token issued by send/resend may reset that phone's flow.
    """

    def __init__(self, *, otp_session_repo: IOtpSessionRepo) -> None:
        self.otp_session_repo = otp_session_repo

    @classmethod
    @inject
    def depends(
        cls,
        otp_session_repo: IOtpSessionRepo = Depends(Provide[Container.otp_session_repo]),
    ) -> Self:
        return cls(otp_session_repo=otp_session_repo)

    @Logger.io
    async def execute(self, *, tenant_id: int, guest: Optional[GuestIdentity]) -> OtpSession:
        if guest is None:
            raise AuthenticationError('Guest token required')

        session = await self.otp_session_repo.get(tenant_id=tenant_id, phone=guest.phone)
        if session is None:
            return OtpSession.start(tenant_id=tenant_id, phone=guest.phone)

        session = await self.otp_session_repo.save(session=session.change_number())
        metrics.record_otp_event(tenant_id=tenant_id, event='changed')
        return session
