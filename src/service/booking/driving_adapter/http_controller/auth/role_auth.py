from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.platform.config.di import Container
from src.platform.exception.exceptions import ForbiddenError
from src.service.booking.domain.value_object.guest_identity import GuestIdentity
from src.service.booking.domain.value_object.principal import Principal
from src.service.booking.driving_adapter.http_controller.auth.jwt_auth import JwtAuth


bearer_scheme = HTTPBearer(auto_error=False)


@inject
async def get_optional_principal(
    tenant_id: int,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    jwt_auth: JwtAuth = Depends(Provide[Container.jwt_auth]),
) -> Optional[Principal]:
    """Principal for the tenant in the path, or None for a guest"""
    if credentials is None:
        return None
    principal = jwt_auth.decode_principal(credentials.credentials)
    if principal.tenant_id != tenant_id:
        raise ForbiddenError('Token does not belong to this tenant')
    return principal


@inject
async def get_optional_guest(
    tenant_id: int,
    guest_token: Optional[str] = Header(default=None, alias='X-Guest-Token'),
    jwt_auth: JwtAuth = Depends(Provide[Container.jwt_auth]),
) -> Optional[GuestIdentity]:
    """Guest identity from the token the OTP endpoints issued, or None"""
    if not guest_token:
        return None
    guest = jwt_auth.decode_guest(guest_token)
    if guest.tenant_id != tenant_id:
        raise ForbiddenError('Token does not belong to this tenant')
    return guest


@inject
def get_jwt_auth(jwt_auth: JwtAuth = Depends(Provide[Container.jwt_auth])) -> JwtAuth:
    return jwt_auth
