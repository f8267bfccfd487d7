from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger
from src.service.booking.app.interface.i_otp_sender import IOtpSender


class LoggingOtpSender(IOtpSender):
    """Development sender: the code only appears in DEBUG logs"""

    async def send(self, *, tenant_id: int, phone: str, code: str) -> None:
        Logger.base.info(f'📱 [OTP] tenant={tenant_id} code sent to ***{phone[-4:]}')
        if settings.DEBUG:
            Logger.base.debug(f'📱 [OTP] tenant={tenant_id} phone={phone} code={code}')
