"""Application layer DTOs"""

from src.service.booking.app.dto.allocation_result import AllocationResult
from src.service.booking.app.dto.availability_result import AvailabilityResult
from src.service.booking.app.dto.guest_verification_result import GuestVerificationResult

__all__ = [
    'AllocationResult',
    'AvailabilityResult',
    'GuestVerificationResult',
]
