from datetime import date
from typing import Optional

from sqlalchemy import JSON, Boolean, CheckConstraint, Date, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.platform.database.orm_db_setting import Base


class ShiftModel(Base):
    __tablename__ = 'shifts'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    service_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    days_of_week: Mapped[list] = mapped_column(JSON, nullable=False, default=list)  # 0 = Sunday
    start_time_utc: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    end_time_utc: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class SlotModel(Base):
    """
    Materialized bookable unit of time

    available_capacity counts committed bookings away; locked_capacity is the part of it held
    by unexpired locks. Rows are exhausted, never deleted.
    """

    __tablename__ = 'slots'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[int] = mapped_column(Integer, nullable=False)
    shift_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    service_id: Mapped[int] = mapped_column(Integer, nullable=False)
    resource_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    slot_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    end_time: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    original_capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    available_capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    locked_capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    booked_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        CheckConstraint('available_capacity >= 0', name='ck_slots_available_non_negative'),
        CheckConstraint('locked_capacity >= 0', name='ck_slots_locked_non_negative'),
        CheckConstraint(
            'available_capacity <= original_capacity', name='ck_slots_available_le_original'
        ),
        CheckConstraint(
            'locked_capacity <= available_capacity', name='ck_slots_locked_le_available'
        ),
        Index('ix_slots_tenant_service_date', 'tenant_id', 'service_id', 'slot_date'),
    )
