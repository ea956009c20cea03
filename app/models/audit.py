"""
PeopleDesk HRM - Activity Log Model

Append-only record of administrative actions (payroll processed, leave
decisions, onboarding).
"""

import uuid
from enum import Enum
from typing import Optional

from sqlalchemy import ForeignKey, String, Text, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel, TenantScopedMixin


class ActivityAction(str, Enum):
    """Logged administrative actions."""
    TENANT_REGISTERED = "TENANT_REGISTERED"
    EMPLOYEE_ONBOARDED = "EMPLOYEE_ONBOARDED"
    OFFER_UPDATED = "OFFER_UPDATED"
    LEAVE_APPROVED = "LEAVE_APPROVED"
    LEAVE_REJECTED = "LEAVE_REJECTED"
    PAYROLL_PROCESSED = "PAYROLL_PROCESSED"


class ActivityLog(BaseModel, TenantScopedMixin):
    """Single administrative event."""

    __tablename__ = "activity_logs"

    action: Mapped[ActivityAction] = mapped_column(SQLEnum(ActivityAction), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    performed_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    target_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    reference: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True,
        comment="Id of the affected row (run, request, profile)",
    )

    def __repr__(self) -> str:
        return f"<ActivityLog(action={self.action}, tenant_id={self.tenant_id})>"
