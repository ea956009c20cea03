"""
PeopleDesk HRM - User and Employee Profile Models

A User is a login identity inside one tenant. An EmployeeProfile holds the
HR-facing details (employee code, name, designation) of an employee user.
"""

import uuid
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Boolean, Date, ForeignKey, String, UniqueConstraint, Enum as SQLEnum
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel, TenantScopedMixin

if TYPE_CHECKING:
    from app.models.payroll import Offer
    from app.models.tenant import Tenant


class UserRole(str, Enum):
    """Tenant-level roles."""
    ADMIN = "ADMIN"
    EMPLOYEE = "EMPLOYEE"


class User(BaseModel, TenantScopedMixin):
    """Login identity."""

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole),
        default=UserRole.EMPLOYEE,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="users")
    profile: Mapped[Optional["EmployeeProfile"]] = relationship(
        "EmployeeProfile",
        back_populates="user",
        uselist=False,
    )
    offer: Mapped[Optional["Offer"]] = relationship(
        "Offer",
        back_populates="user",
        uselist=False,
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"


class EmployeeProfile(BaseModel, TenantScopedMixin):
    """HR record of an employee."""

    __tablename__ = "employee_profiles"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    employee_id: Mapped[str] = mapped_column(
        String(50), nullable=False,
        comment="Tenant-visible employee code e.g. EMP-0001",
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    personal_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    designation: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    employee_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    joining_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="profile")

    __table_args__ = (
        UniqueConstraint("tenant_id", "employee_id", name="uq_employee_profile_tenant_code"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<EmployeeProfile(employee_id={self.employee_id}, name={self.full_name})>"
