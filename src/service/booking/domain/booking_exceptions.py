"""
Booking core error taxonomy

Capacity and entitlement errors carry `available` / `requested` so clients can offer an
accurate retry instead of a generic failure.
"""

from typing import Any, Optional

from src.platform.exception.exceptions import (
    ConflictError,
    CustomBaseError,
    DomainError,
    ForbiddenError,
    TooManyRequestsError,
)


class InsufficientCapacityError(ConflictError):
    def __init__(self, *, available: int, requested: int, message: Optional[str] = None) -> None:
        self.available = available
        self.requested = requested
        super().__init__(
            message
            or (
                f'Not enough tickets available. Only {available} available, '
                f'but {requested} requested.'
            ),
            available=available,
            requested=requested,
        )


class EntitlementExhaustedError(ConflictError):
    def __init__(self, *, available: int, requested: int) -> None:
        self.available = available
        self.requested = requested
        super().__init__(
            f'Package entitlement exhausted. Only {available} remaining, '
            f'but {requested} requested.',
            available=available,
            requested=requested,
        )


class LockExpiredError(ConflictError):
    def __init__(self, lock_id: Any) -> None:
        self.lock_id = lock_id
        super().__init__(f'Booking lock {lock_id} has expired. Please select your slots again.')


class MixedResourceSelectionError(DomainError):
    def __init__(self, resource_ids: set[Any]) -> None:
        self.resource_ids = resource_ids
        super().__init__(
            f'All selected slots must belong to the same employee, got {len(resource_ids)} different'
        )


class NoSlotSelectedError(DomainError):
    def __init__(self, *, required: int) -> None:
        self.required = required
        super().__init__(f'Please select {required} slot(s) to continue')


class InvalidSlotSelectionError(DomainError):
    pass


class VerificationRequiredError(ForbiddenError):
    def __init__(self) -> None:
        super().__init__('Phone verification is required before booking as a guest')


class InvalidPhoneFormatError(DomainError):
    def __init__(self, phone: str, reason: str) -> None:
        self.phone = phone
        super().__init__(f'Invalid phone number: {reason}')


class OtpExpiredError(DomainError):
    def __init__(self) -> None:
        super().__init__('Verification code has expired. Please request a new one.')


class OtpMismatchError(DomainError):
    def __init__(self) -> None:
        super().__init__('Invalid verification code')


class OtpResendCooldownError(TooManyRequestsError):
    def __init__(self, *, retry_after_seconds: int) -> None:
        super().__init__(
            f'Please wait {retry_after_seconds} seconds before requesting a new code',
            retry_after_seconds=retry_after_seconds,
        )


class OtpAttemptsExceededError(TooManyRequestsError):
    def __init__(self, *, retry_after_seconds: int) -> None:
        super().__init__(
            'Too many incorrect codes. Please request a new one.',
            retry_after_seconds=retry_after_seconds,
        )


class CommitPartialFailureError(CustomBaseError):
    """Raised inside the commit transaction to force a full rollback; never reaches clients."""

    def __init__(self, cause: CustomBaseError) -> None:
        self.cause = cause
        super().__init__(f'Commit rolled back: {cause.message}', 500)
