"""
PeopleDesk HRM - Leave Models

Leave policies, yearly balances and leave requests.
"""

import uuid
from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Date, DateTime, ForeignKey, Integer, String, Text,
    Enum as SQLEnum, UniqueConstraint, CheckConstraint
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel, TenantScopedMixin

if TYPE_CHECKING:
    from app.models.user import User


class LeaveStatus(str, Enum):
    """Leave request status."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class LeavePolicy(BaseModel, TenantScopedMixin):
    """Named leave category with a default yearly allotment."""

    __tablename__ = "leave_policies"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    default_days: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_leave_policy_tenant_name"),
        CheckConstraint("default_days >= 0", name="leave_policy_default_days_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<LeavePolicy(name={self.name}, default_days={self.default_days})>"


class LeaveBalance(BaseModel, TenantScopedMixin):
    """
    Days allotted and used for one (tenant, employee, policy, year).

    Rows are created lazily on first read. The unique constraint is the
    only guard against two first reads creating duplicates.
    """

    __tablename__ = "leave_balances"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    policy_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("leave_policies.id", ondelete="CASCADE"),
        nullable=False,
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    days_allotted: Mapped[int] = mapped_column(Integer, nullable=False)
    days_used: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    policy: Mapped["LeavePolicy"] = relationship("LeavePolicy")

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "user_id", "policy_id", "year",
            name="uq_leave_balance_tenant_user_policy_year",
        ),
    )

    @property
    def days_remaining(self) -> int:
        return self.days_allotted - self.days_used


class LeaveRequest(BaseModel, TenantScopedMixin):
    """
    Employee leave request.

    days_lwp is the number of unpaid days inside the requested range. Only
    approved requests with days_lwp > 0 reduce payroll.
    """

    __tablename__ = "leave_requests"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    policy_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("leave_policies.id", ondelete="CASCADE"),
        nullable=False,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    days: Mapped[int] = mapped_column(Integer, nullable=False)
    days_lwp: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[LeaveStatus] = mapped_column(
        SQLEnum(LeaveStatus),
        default=LeaveStatus.PENDING,
        nullable=False,
        index=True,
    )
    applied_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    approved_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    policy: Mapped["LeavePolicy"] = relationship("LeavePolicy")
    user: Mapped["User"] = relationship("User", foreign_keys=[user_id])

    __table_args__ = (
        CheckConstraint("days_lwp >= 0 AND days_lwp <= days", name="leave_request_lwp_within_days"),
    )

    @property
    def paid_days(self) -> int:
        return self.days - self.days_lwp

    def __repr__(self) -> str:
        return f"<LeaveRequest(user_id={self.user_id}, status={self.status}, days={self.days})>"
