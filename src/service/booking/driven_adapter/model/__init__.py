"""
Database Models

Import all models here to ensure they are registered with SQLAlchemy
"""

from src.service.booking.driven_adapter.model.booking_lock_model import (
    BookingLockModel,
    BookingLockUnitModel,
)
from src.service.booking.driven_adapter.model.booking_model import BookingModel
from src.service.booking.driven_adapter.model.otp_session_model import OtpSessionModel
from src.service.booking.driven_adapter.model.package_model import (
    PackageExhaustionNoticeModel,
    PackageSubscriptionModel,
    PackageUsageModel,
)
from src.service.booking.driven_adapter.model.resource_model import ResourceModel
from src.service.booking.driven_adapter.model.service_model import (
    ServiceModel,
    ServiceOfferModel,
)
from src.service.booking.driven_adapter.model.slot_model import ShiftModel, SlotModel
from src.service.booking.driven_adapter.model.tenant_model import TenantModel

__all__ = [
    'BookingLockModel',
    'BookingLockUnitModel',
    'BookingModel',
    'OtpSessionModel',
    'PackageExhaustionNoticeModel',
    'PackageSubscriptionModel',
    'PackageUsageModel',
    'ResourceModel',
    'ServiceModel',
    'ServiceOfferModel',
    'ShiftModel',
    'SlotModel',
    'TenantModel',
]
