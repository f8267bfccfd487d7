"""OTP verify outcome DTO."""

import attrs

from src.service.booking.domain.entity.otp_session_entity import OtpSession


@attrs.define(frozen=True)
class GuestVerificationResult:
    """`newly_verified` is only set when this call matched the code"""

    session: OtpSession
    newly_verified: bool = False
