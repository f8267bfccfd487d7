"""
Wire Modules Configuration

Defines the modules that need dependency injection wiring.
Shared between production and test environments.
"""

from types import ModuleType

from src.service.booking.app.command import (
    cancel_booking_group_use_case,
    change_otp_number_use_case,
    commit_booking_use_case,
    guest_verification_gate,
    lock_booking_use_case,
    release_booking_lock_use_case,
    resend_otp_use_case,
    send_otp_use_case,
    update_payment_status_use_case,
    verify_otp_use_case,
)
from src.service.booking.app.query import (
    allocate_booking_use_case,
    get_booking_lock_use_case,
    resolve_availability_use_case,
    resolve_entitlement_use_case,
)
from src.service.booking.driving_adapter.http_controller.auth import role_auth


WIRE_MODULES: list[ModuleType] = [
    resolve_availability_use_case,
    resolve_entitlement_use_case,
    allocate_booking_use_case,
    get_booking_lock_use_case,
    guest_verification_gate,
    lock_booking_use_case,
    commit_booking_use_case,
    release_booking_lock_use_case,
    update_payment_status_use_case,
    cancel_booking_group_use_case,
    send_otp_use_case,
    resend_otp_use_case,
    verify_otp_use_case,
    change_otp_number_use_case,
    role_auth,
]
