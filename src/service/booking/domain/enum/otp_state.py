from enum import StrEnum


class OtpState(StrEnum):
    PHONE = 'phone'
    OTP_SENT = 'otp_sent'
    VERIFIED = 'verified'
