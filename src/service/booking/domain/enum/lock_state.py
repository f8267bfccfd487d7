from enum import StrEnum


class LockState(StrEnum):
    LOCKED = 'locked'
    COMMITTED = 'committed'
    RELEASED = 'released'
    EXPIRED = 'expired'
