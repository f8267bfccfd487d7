from typing import Optional

from pydantic import BaseModel, Field


class OtpPhoneRequest(BaseModel):
    model_config = {'json_schema_extra': {'example': {'phone': '0501234567'}}}

    phone: str = Field(min_length=1)


class OtpVerifyRequest(OtpPhoneRequest):
    model_config = {'json_schema_extra': {'example': {'phone': '0501234567', 'code': '482913'}}}

    code: str = Field(min_length=4, max_length=8)


class OtpSessionResponse(BaseModel):
    model_config = {
        'json_schema_extra': {
            'example': {
                'phone': '+966501234567',
                'state': 'otp_sent',
                'resend_available_in': 60,
                'verified': False,
                'session_expires_at': None,
                'guest_token': 'eyJhbGciOiJIUzI1NiIs...',
            }
        }
    }

    phone: str
    state: str
    resend_available_in: int
    verified: bool
    session_expires_at: Optional[str] = None
    guest_token: Optional[str] = None  # send as X-Guest-Token; booking needs the verified one
