from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.platform.database.orm_db_setting import Base


class BookingLockModel(Base):
    __tablename__ = 'booking_locks'

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)  # UUID7
    tenant_id: Mapped[int] = mapped_column(Integer, nullable=False)
    session_id: Mapped[str] = mapped_column(String(64), nullable=False)
    service_id: Mapped[int] = mapped_column(Integer, nullable=False)
    offer_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    customer_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    state: Mapped[str] = mapped_column(String(20), nullable=False, default='locked')
    total_units: Mapped[int] = mapped_column(Integer, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('ix_booking_locks_state_expires_at', 'state', 'expires_at'),
        Index('ix_booking_locks_tenant_session', 'tenant_id', 'session_id'),
    )


class BookingLockUnitModel(Base):
    __tablename__ = 'booking_lock_units'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    lock_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey('booking_locks.id', ondelete='CASCADE'), nullable=False, index=True
    )
    unit_index: Mapped[int] = mapped_column(Integer, nullable=False)
    slot_id: Mapped[int] = mapped_column(Integer, nullable=False)
    resource_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    ticket_kind: Mapped[str] = mapped_column(String(10), nullable=False)
    list_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    package_subscription_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_extension: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
