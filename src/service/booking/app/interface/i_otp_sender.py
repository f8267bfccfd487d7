from abc import ABC, abstractmethod


class IOtpSender(ABC):
    """Delivers verification codes (SMS, WhatsApp, ...)"""

    @abstractmethod
    async def send(self, *, tenant_id: int, phone: str, code: str) -> None:
        pass
