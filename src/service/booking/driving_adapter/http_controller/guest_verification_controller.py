from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends

from src.platform.logging.loguru_io import Logger
from src.service.booking.app.command.change_otp_number_use_case import ChangeOtpNumberUseCase
from src.service.booking.app.command.resend_otp_use_case import ResendOtpUseCase
from src.service.booking.app.command.send_otp_use_case import SendOtpUseCase
from src.service.booking.app.command.verify_otp_use_case import VerifyOtpUseCase
from src.service.booking.domain.clock import utc_now
from src.service.booking.domain.entity.otp_session_entity import OtpSession
from src.service.booking.domain.value_object.guest_identity import GuestIdentity
from src.service.booking.driving_adapter.http_controller.auth.jwt_auth import JwtAuth
from src.service.booking.driving_adapter.http_controller.auth.role_auth import (
    get_jwt_auth,
    get_optional_guest,
)
from src.service.booking.driving_adapter.http_controller.schema.guest_verification_schema import (
    OtpPhoneRequest,
    OtpSessionResponse,
    OtpVerifyRequest,
)


router = APIRouter(prefix='/guest/otp')


def _session_response(
    session: OtpSession, now: datetime, guest_token: Optional[str] = None
) -> OtpSessionResponse:
    return OtpSessionResponse(
        phone=session.phone,
        state=session.state.value,
        resend_available_in=session.cooldown_remaining(now),
        verified=session.is_verified(now),
        session_expires_at=(
            session.session_expires_at.isoformat() if session.session_expires_at else None
        ),
        guest_token=guest_token,
    )


def _pending_token(jwt_auth: JwtAuth, session: OtpSession) -> Optional[str]:
    """Lets the guest change the number they typed; it grants no booking rights"""
    if session.code_expires_at is None:
        return None
    return jwt_auth.create_guest_token(
        tenant_id=session.tenant_id,
        phone=session.phone,
        verified=False,
        expires_at=session.code_expires_at,
    )


@router.post('/send')
@Logger.io
async def send_otp(
    tenant_id: int,
    request: OtpPhoneRequest,
    use_case: SendOtpUseCase = Depends(SendOtpUseCase.depends),
    jwt_auth: JwtAuth = Depends(get_jwt_auth),
) -> OtpSessionResponse:
    session = await use_case.execute(tenant_id=tenant_id, phone=request.phone)
    return _session_response(session, utc_now(), _pending_token(jwt_auth, session))


@router.post('/resend')
@Logger.io
async def resend_otp(
    tenant_id: int,
    request: OtpPhoneRequest,
    use_case: ResendOtpUseCase = Depends(ResendOtpUseCase.depends),
    jwt_auth: JwtAuth = Depends(get_jwt_auth),
) -> OtpSessionResponse:
    session = await use_case.execute(tenant_id=tenant_id, phone=request.phone)
    return _session_response(session, utc_now(), _pending_token(jwt_auth, session))


@router.post('/verify')
@Logger.io
async def verify_otp(
    tenant_id: int,
    request: OtpVerifyRequest,
    use_case: VerifyOtpUseCase = Depends(VerifyOtpUseCase.depends),
    jwt_auth: JwtAuth = Depends(get_jwt_auth),
) -> OtpSessionResponse:
    result = await use_case.execute(tenant_id=tenant_id, phone=request.phone, code=request.code)
    session = result.session

    guest_token = None
    if result.newly_verified and session.session_expires_at is not None:
        guest_token = jwt_auth.create_guest_token(
            tenant_id=tenant_id,
            phone=session.phone,
            verified=True,
            expires_at=session.session_expires_at,
        )
    return _session_response(session, utc_now(), guest_token)


@router.post('/change-number')
@Logger.io
async def change_otp_number(
    tenant_id: int,
    guest: Optional[GuestIdentity] = Depends(get_optional_guest),
    use_case: ChangeOtpNumberUseCase = Depends(ChangeOtpNumberUseCase.depends),
) -> OtpSessionResponse:
    session = await use_case.execute(tenant_id=tenant_id, guest=guest)
    return _session_response(session, utc_now())
