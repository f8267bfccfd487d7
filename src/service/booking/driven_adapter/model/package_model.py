from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from src.platform.database.orm_db_setting import Base


class PackageSubscriptionModel(Base):
    __tablename__ = 'package_subscriptions'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    customer_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    package_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='active')
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class PackageUsageModel(Base):
    """Per-service quota of one subscription"""

    __tablename__ = 'package_usages'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subscription_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    service_id: Mapped[int] = mapped_column(Integer, nullable=False)
    original_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    remaining_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    used_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint('subscription_id', 'service_id', name='uq_package_usages_service'),
        CheckConstraint('remaining_quantity >= 0', name='ck_package_usages_remaining_non_negative'),
        CheckConstraint(
            'remaining_quantity <= original_quantity', name='ck_package_usages_remaining_le_original'
        ),
        CheckConstraint(
            'used_quantity = original_quantity - remaining_quantity',
            name='ck_package_usages_used_consistent',
        ),
    )


class PackageExhaustionNoticeModel(Base):
    """Recorded once when a usage row reaches zero"""

    __tablename__ = 'package_exhaustion_notices'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subscription_id: Mapped[int] = mapped_column(Integer, nullable=False)
    service_id: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            'subscription_id', 'service_id', name='uq_package_exhaustion_notices_usage'
        ),
    )
