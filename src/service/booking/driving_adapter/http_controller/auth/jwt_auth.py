"""
Bearer token authentication

Tokens are issued by the tenant's identity service; this side only verifies them and rebuilds
the caller's `Principal` from the claims (no DB query). A request without a token is a guest.

Guests get their own short-lived token from the OTP endpoints, bound to the phone that
received the code. It is sent in `X-Guest-Token` and never accepted as a bearer token.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import AuthenticationError
from src.service.booking.domain.enum.user_role import UserRole
from src.service.booking.domain.value_object.guest_identity import GuestIdentity
from src.service.booking.domain.value_object.principal import Principal


GUEST_TOKEN_KIND = 'guest'


class JwtAuth:
    def __init__(self) -> None:
        self.secret = settings.SECRET_KEY.get_secret_value()
        self.algorithm = settings.ALGORITHM
        self.token_expire_days = 7

    def create_jwt_token(self, principal: Principal) -> str:
        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            'sub': str(principal.user_id),
            'exp': now + timedelta(days=self.token_expire_days),
            'iat': now,
            'user_id': principal.user_id,
            'tenant_id': principal.tenant_id,
            'role': principal.role.value,
            'customer_id': principal.customer_id,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_principal(self, token: str) -> Principal:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.PyJWTError:
            raise AuthenticationError('Invalid token')
        if payload.get('kind') == GUEST_TOKEN_KIND:
            raise AuthenticationError('Invalid token')

        user_id = payload.get('user_id')
        tenant_id = payload.get('tenant_id')
        role = payload.get('role')
        if user_id is None or tenant_id is None or not role:
            raise AuthenticationError('Invalid token')

        try:
            user_role = UserRole(role)
        except ValueError:
            raise AuthenticationError('Invalid token')

        return Principal(
            user_id=int(user_id),
            tenant_id=int(tenant_id),
            role=user_role,
            customer_id=payload.get('customer_id'),
        )

    def create_guest_token(
        self, *, tenant_id: int, phone: str, verified: bool, expires_at: datetime
    ) -> str:
        """Short-lived token proving the holder received the code sent to `phone`"""
        payload: dict[str, Any] = {
            'sub': f'guest:{phone}',
            'kind': GUEST_TOKEN_KIND,
            'exp': expires_at,
            'iat': datetime.now(timezone.utc),
            'tenant_id': tenant_id,
            'phone': phone,
            'verified': verified,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_guest(self, token: str) -> GuestIdentity:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.PyJWTError:
            raise AuthenticationError('Invalid guest token')

        tenant_id = payload.get('tenant_id')
        phone = payload.get('phone')
        if payload.get('kind') != GUEST_TOKEN_KIND or tenant_id is None or not phone:
            raise AuthenticationError('Invalid guest token')

        return GuestIdentity(
            tenant_id=int(tenant_id), phone=str(phone), verified=payload.get('verified') is True
        )
