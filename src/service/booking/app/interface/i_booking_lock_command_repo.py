"""
Booking Lock Command Repository Interface

Every method runs in its own transaction. Capacity is only ever changed through guarded
conditional updates so concurrent callers can never oversell.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Sequence
from uuid import UUID

from src.service.booking.domain.entity.booking_entity import Booking
from src.service.booking.domain.entity.booking_lock_entity import BookingLock


class IBookingLockCommandRepo(ABC):
    @abstractmethod
    async def purge_expired_locks(self, *, now: datetime) -> int:
        """
        LOCKED -> EXPIRED for every lock past its TTL, returning its held capacity

        Returns:
            Number of locks expired
        """
        pass

    @abstractmethod
    async def release_session_locks(
        self, *, tenant_id: int, session_id: str, now: datetime
    ) -> int:
        """Release every still-held lock of a session (a new checkout replaces the old one)"""
        pass

    @abstractmethod
    async def acquire_lock(self, *, lock: BookingLock) -> BookingLock:
        """
        Reserve `locked_capacity` on every slot of the lock and persist it

        Raises:
            InsufficientCapacityError: some slot lacks free capacity; nothing is reserved
        """
        pass

    @abstractmethod
    async def get_lock(self, *, tenant_id: int, lock_id: UUID) -> Optional[BookingLock]:
        pass

    @abstractmethod
    async def release_lock(self, *, lock_id: UUID) -> bool:
        """
        LOCKED -> RELEASED. Idempotent.

        Returns:
            True when this call released the capacity, False when the lock was no longer held
        """
        pass

    @abstractmethod
    async def commit_lock(
        self, *, lock: BookingLock, bookings: Sequence[Booking], now: datetime
    ) -> list[Booking]:
        """
        Turn a held lock into committed bookings atomically

        Raises:
            LockExpiredError: lock no longer LOCKED, expired, or owned by another session
            CommitPartialFailureError: a slot or package decrement failed; every write of
                this commit has been rolled back
        """
        pass
