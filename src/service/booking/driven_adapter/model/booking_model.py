from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import DateTime, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from src.platform.database.orm_db_setting import Base


class BookingModel(Base):
    """One row per ticket unit; a checkout's rows share booking_group_id"""

    __tablename__ = 'bookings'

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)  # UUID7
    tenant_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    booking_group_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    service_id: Mapped[int] = mapped_column(Integer, nullable=False)
    slot_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    resource_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    customer_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(32), nullable=False)
    customer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    adult_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    child_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    visitor_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='confirmed')
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, default='unpaid')
    payment_method: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    transaction_reference: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    package_subscription_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    offer_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
