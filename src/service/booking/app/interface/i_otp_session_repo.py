from abc import ABC, abstractmethod
from typing import Optional

from src.service.booking.domain.entity.otp_session_entity import OtpSession


class IOtpSessionRepo(ABC):
    @abstractmethod
    async def get(self, *, tenant_id: int, phone: str) -> Optional[OtpSession]:
        pass

    @abstractmethod
    async def save(self, *, session: OtpSession) -> OtpSession:
        """Insert or replace the session for (tenant_id, phone)"""
        pass
