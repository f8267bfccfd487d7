from datetime import datetime, timedelta
import hashlib
import hmac
import math
import secrets
from typing import Optional

import attrs

from src.platform.exception.exceptions import DomainError
from src.platform.logging.loguru_io import Logger
from src.service.booking.domain.booking_exceptions import (
    OtpAttemptsExceededError,
    OtpExpiredError,
    OtpMismatchError,
    OtpResendCooldownError,
)
from src.service.booking.domain.enum.otp_state import OtpState


DEFAULT_MAX_ATTEMPTS = 5


def generate_otp_code() -> str:
    """Six digits, never starting with 0"""
    return str(100000 + secrets.randbelow(900000))


def hash_otp_code(*, phone: str, code: str) -> str:
    return hashlib.sha256(f'{phone}:{code}'.encode()).hexdigest()


@attrs.define
class OtpSession:
    """
    Guest phone verification, one per (tenant, phone)

    PHONE -> OTP_SENT (send) -> OTP_SENT (resend after cooldown) -> VERIFIED (correct code)
    OTP_SENT -> PHONE (change number). VERIFIED stays valid until `session_expires_at`.
    """

    tenant_id: int
    phone: str
    state: OtpState = OtpState.PHONE
    code_hash: Optional[str] = None
    code_expires_at: Optional[datetime] = None
    resend_available_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    session_expires_at: Optional[datetime] = None
    attempts: int = 0  # wrong codes entered against the current code
    id: Optional[int] = None

    @classmethod
    def start(cls, *, tenant_id: int, phone: str) -> 'OtpSession':
        return cls(tenant_id=tenant_id, phone=phone, state=OtpState.PHONE)

    def is_verified(self, now: datetime) -> bool:
        return (
            self.state == OtpState.VERIFIED
            and self.session_expires_at is not None
            and self.session_expires_at > now
        )

    def cooldown_remaining(self, now: datetime) -> int:
        if self.resend_available_at is None or self.resend_available_at <= now:
            return 0
        return math.ceil((self.resend_available_at - now).total_seconds())

    def _issue_code(
        self, *, code: str, now: datetime, code_ttl_seconds: int, cooldown_seconds: int
    ) -> 'OtpSession':
        return attrs.evolve(
            self,
            state=OtpState.OTP_SENT,
            code_hash=hash_otp_code(phone=self.phone, code=code),
            code_expires_at=now + timedelta(seconds=code_ttl_seconds),
            resend_available_at=now + timedelta(seconds=cooldown_seconds),
            verified_at=None,
            session_expires_at=None,
            attempts=0,
        )

    @Logger.io
    def send_code(
        self, *, code: str, now: datetime, code_ttl_seconds: int, cooldown_seconds: int
    ) -> 'OtpSession':
        """
        PHONE -> OTP_SENT. A session that is already OTP_SENT goes through the resend
        cooldown; an expired VERIFIED session starts over.
        """
        if self.state == OtpState.OTP_SENT:
            return self.resend_code(
                code=code,
                now=now,
                code_ttl_seconds=code_ttl_seconds,
                cooldown_seconds=cooldown_seconds,
            )
        return self._issue_code(
            code=code, now=now, code_ttl_seconds=code_ttl_seconds, cooldown_seconds=cooldown_seconds
        )

    @Logger.io
    def resend_code(
        self, *, code: str, now: datetime, code_ttl_seconds: int, cooldown_seconds: int
    ) -> 'OtpSession':
        if self.state != OtpState.OTP_SENT:
            raise DomainError('No pending verification code to resend')
        if remaining := self.cooldown_remaining(now):
            raise OtpResendCooldownError(retry_after_seconds=remaining)
        return self._issue_code(
            code=code, now=now, code_ttl_seconds=code_ttl_seconds, cooldown_seconds=cooldown_seconds
        )

    @Logger.io
    def verify(
        self,
        *,
        code: str,
        now: datetime,
        verified_ttl_seconds: int,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> 'OtpSession':
        """
        OTP_SENT -> VERIFIED on the right code before expiry.

        Re-verifying a verified session returns it untouched (cooldown included).

        Raises:
            OtpMismatchError: wrong code, state stays OTP_SENT
            OtpExpiredError: code past its TTL
            OtpAttemptsExceededError: `max_attempts` wrong codes against the current code
        """
        if self.is_verified(now):
            return self
        if self.state == OtpState.OTP_SENT and self.attempts >= max_attempts:
            raise OtpAttemptsExceededError(retry_after_seconds=self.cooldown_remaining(now))
        if self.state != OtpState.OTP_SENT or self.code_hash is None:
            raise DomainError('No verification code has been sent to this number')
        if self.code_expires_at is None or self.code_expires_at <= now:
            raise OtpExpiredError()
        if not hmac.compare_digest(self.code_hash, hash_otp_code(phone=self.phone, code=code)):
            raise OtpMismatchError()

        return attrs.evolve(
            self,
            state=OtpState.VERIFIED,
            code_hash=None,
            code_expires_at=None,
            verified_at=now,
            session_expires_at=now + timedelta(seconds=verified_ttl_seconds),
        )

    def record_failed_attempt(self, *, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> 'OtpSession':
        """The last allowed miss burns the code; only a resend issues a new one"""
        attempts = self.attempts + 1
        if attempts < max_attempts:
            return attrs.evolve(self, attempts=attempts)
        return attrs.evolve(self, attempts=attempts, code_hash=None, code_expires_at=None)

    @Logger.io
    def change_number(self) -> 'OtpSession':
        """OTP_SENT -> PHONE, the pending code is discarded"""
        if self.state == OtpState.VERIFIED:
            raise DomainError('Phone number is already verified')
        return attrs.evolve(
            self,
            state=OtpState.PHONE,
            code_hash=None,
            code_expires_at=None,
        )
