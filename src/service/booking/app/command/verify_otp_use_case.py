from typing import Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.core_setting import Settings
from src.platform.config.di import Container
from src.platform.exception.exceptions import DomainError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.booking_metrics import metrics
from src.service.booking.app.dto.guest_verification_result import GuestVerificationResult
from src.service.booking.app.interface.i_otp_session_repo import IOtpSessionRepo
from src.service.booking.domain.booking_exceptions import (
    OtpAttemptsExceededError,
    OtpExpiredError,
    OtpMismatchError,
)
from src.service.booking.domain.clock import Clock, utc_now
from src.service.booking.domain.phone_number import validate_phone


class VerifyOtpUseCase:
    """
    Match the guest's code. Only a call that moves the session to VERIFIED reports
    `newly_verified`; re-verifying an already verified phone proves nothing about the caller.
    """

    def __init__(
        self, *, otp_session_repo: IOtpSessionRepo, config: Settings, clock: Clock = utc_now
    ) -> None:
        self.otp_session_repo = otp_session_repo
        self.config = config
        self.clock = clock

    @classmethod
    @inject
    def depends(
        cls,
        otp_session_repo: IOtpSessionRepo = Depends(Provide[Container.otp_session_repo]),
        config: Settings = Depends(Provide[Container.config_service]),
    ) -> Self:
        return cls(otp_session_repo=otp_session_repo, config=config)

    @Logger.io
    async def execute(self, *, tenant_id: int, phone: str, code: str) -> GuestVerificationResult:
        normalized = validate_phone(phone)
        session = await self.otp_session_repo.get(tenant_id=tenant_id, phone=normalized)
        if session is None:
            raise DomainError('No verification code has been sent to this number')

        now = self.clock()
        was_verified = session.is_verified(now)
        try:
            verified = session.verify(
                code=code,
                now=now,
                verified_ttl_seconds=self.config.VERIFIED_SESSION_TTL_SECONDS,
                max_attempts=self.config.OTP_MAX_ATTEMPTS,
            )
        except OtpMismatchError:
            await self.otp_session_repo.save(
                session=session.record_failed_attempt(max_attempts=self.config.OTP_MAX_ATTEMPTS)
            )
            metrics.record_otp_event(tenant_id=tenant_id, event='mismatch')
            raise
        except OtpExpiredError:
            metrics.record_otp_event(tenant_id=tenant_id, event='expired')
            raise
        except OtpAttemptsExceededError:
            metrics.record_otp_event(tenant_id=tenant_id, event='locked_out')
            Logger.base.warning(f'🚫 [OTP] tenant={tenant_id} too many wrong codes')
            raise

        if was_verified:
            return GuestVerificationResult(session=verified)

        verified = await self.otp_session_repo.save(session=verified)
        metrics.record_otp_event(tenant_id=tenant_id, event='verified')
        Logger.base.info(f'📱 [OTP] tenant={tenant_id} guest phone verified')
        return GuestVerificationResult(session=verified, newly_verified=True)
