from src.platform.logging.loguru_io import Logger
from src.platform.metrics.booking_metrics import metrics
from src.service.booking.app.interface.i_booking_lock_command_repo import IBookingLockCommandRepo
from src.service.booking.domain.clock import Clock, utc_now


class ExpireBookingLocksUseCase:
    """Periodic sweep returning the capacity of locks nobody committed or released"""

    def __init__(
        self, *, booking_lock_command_repo: IBookingLockCommandRepo, clock: Clock = utc_now
    ) -> None:
        self.booking_lock_command_repo = booking_lock_command_repo
        self.clock = clock

    async def execute(self) -> int:
        expired = await self.booking_lock_command_repo.purge_expired_locks(now=self.clock())
        metrics.record_expired_locks(count=expired)
        if expired:
            Logger.base.info(f'⏰ [LOCK-SWEEP] Expired {expired} booking lock(s)')
        return expired
