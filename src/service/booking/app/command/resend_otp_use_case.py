from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.core_setting import Settings
from src.platform.config.di import Container
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.booking_metrics import metrics
from src.service.booking.app.interface.i_otp_sender import IOtpSender
from src.service.booking.app.interface.i_otp_session_repo import IOtpSessionRepo
from src.service.booking.domain.clock import Clock, utc_now
from src.service.booking.domain.entity.otp_session_entity import OtpSession, generate_otp_code
from src.service.booking.domain.phone_number import validate_phone


class ResendOtpUseCase:
    def __init__(
        self,
        *,
        otp_session_repo: IOtpSessionRepo,
        otp_sender: IOtpSender,
        config: Settings,
        clock: Clock = utc_now,
    ) -> None:
        self.otp_session_repo = otp_session_repo
        self.otp_sender = otp_sender
        self.config = config
        self.clock = clock

    @classmethod
    @inject
    def depends(
        cls,
        otp_session_repo: IOtpSessionRepo = Depends(Provide[Container.otp_session_repo]),
        otp_sender: IOtpSender = Depends(Provide[Container.otp_sender]),
        config: Settings = Depends(Provide[Container.config_service]),
    ) -> Self:
        return cls(otp_session_repo=otp_session_repo, otp_sender=otp_sender, config=config)

    @Logger.io
    async def execute(self, *, tenant_id: int, phone: str) -> OtpSession:
        """
        Raises:
            OtpResendCooldownError: cooldown still running (carries the seconds left)
            DomainError: no code is pending for this phone
        """
        normalized = validate_phone(phone)
        session = await self.otp_session_repo.get(
            tenant_id=tenant_id, phone=normalized
        ) or OtpSession.start(tenant_id=tenant_id, phone=normalized)

        code = generate_otp_code()
        session = session.resend_code(
            code=code,
            now=self.clock(),
            code_ttl_seconds=self.config.OTP_CODE_TTL_SECONDS,
            cooldown_seconds=self.config.OTP_RESEND_COOLDOWN_SECONDS,
        )
        session = await self.otp_session_repo.save(session=session)
        await self.otp_sender.send(tenant_id=tenant_id, phone=normalized, code=code)

        metrics.record_otp_event(tenant_id=tenant_id, event='resent')
        return session
