"""
PeopleDesk HRM - Attendance Models
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Date, DateTime, ForeignKey, Numeric, Text,
    Enum as SQLEnum, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel, TenantScopedMixin


class AttendanceStatus(str, Enum):
    """Day classification. LEAVE is reserved for leave integration and never derived from hours."""
    PRESENT = "PRESENT"
    HALF_DAY = "HALF_DAY"
    ABSENT = "ABSENT"
    LEAVE = "LEAVE"


class AttendanceRecord(BaseModel, TenantScopedMixin):
    """One row per employee per calendar day."""

    __tablename__ = "attendance_records"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    # Stored in UTC
    check_in: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    check_out: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    hours_worked: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=5, scale=2), nullable=True,
    )
    # Unset until the day is resolved at check-out
    status: Mapped[Optional[AttendanceStatus]] = mapped_column(
        SQLEnum(AttendanceStatus), nullable=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "user_id", "work_date", name="uq_attendance_tenant_user_date"),
    )

    @property
    def is_checked_out(self) -> bool:
        return self.check_out is not None

    def __repr__(self) -> str:
        return f"<AttendanceRecord(user_id={self.user_id}, date={self.work_date}, status={self.status})>"
