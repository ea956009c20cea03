"""
PeopleDesk HRM - Payroll Models

Salary structure (Offer) and processed payroll runs.

Salary figures on the Offer are monthly amounts. Gross and net are stored
once when the offer is made; loss-of-pay deductions are recomputed on top
of them every month.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    Boolean, DateTime, ForeignKey, Integer, Numeric, String,
    Enum as SQLEnum, UniqueConstraint, CheckConstraint
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel, TenantScopedMixin

if TYPE_CHECKING:
    from app.models.user import User


MONEY = Numeric(precision=12, scale=2)
TOTAL = Numeric(precision=18, scale=2)


class PayrollRunStatus(str, Enum):
    """Payroll run status."""
    PROCESSED = "PROCESSED"


# ===========================================
# SALARY STRUCTURE
# ===========================================

class Offer(BaseModel, TenantScopedMixin):
    """
    Employee salary structure.

    At most one per employee. Offers are updated in place and never deleted.
    """

    __tablename__ = "offers"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    annual_ctc: Mapped[Decimal] = mapped_column(TOTAL, nullable=False)
    role_title: Mapped[str] = mapped_column(String(150), nullable=False)

    basic: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0.00"), nullable=False)
    hra: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0.00"), nullable=False)
    da: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0.00"), nullable=False)
    special_allowance: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0.00"), nullable=False)
    gross_salary: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    pf_deduction: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0.00"), nullable=False)
    tax: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0.00"), nullable=False)
    net_salary: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    is_signed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="offer")

    __table_args__ = (
        CheckConstraint("gross_salary >= 0", name="offer_gross_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Offer(user_id={self.user_id}, gross={self.gross_salary})>"


# ===========================================
# PAYROLL RUN
# ===========================================

class PayrollRun(BaseModel, TenantScopedMixin):
    """
    A processed payroll month.

    One per tenant and calendar month; processing the same month twice is a conflict.
    """

    __tablename__ = "payroll_runs"

    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[PayrollRunStatus] = mapped_column(
        SQLEnum(PayrollRunStatus),
        default=PayrollRunStatus.PROCESSED,
        nullable=False,
    )

    total_employees: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_gross: Mapped[Decimal] = mapped_column(TOTAL, default=Decimal("0.00"), nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(TOTAL, default=Decimal("0.00"), nullable=False)
    total_net: Mapped[Decimal] = mapped_column(TOTAL, default=Decimal("0.00"), nullable=False)

    processed_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    processed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    items: Mapped[List["PayrollRunItem"]] = relationship(
        "PayrollRunItem",
        back_populates="payroll_run",
        cascade="all, delete-orphan",
        order_by="PayrollRunItem.employee_name",
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "month", "year", name="uq_payroll_run_tenant_period"),
        CheckConstraint("month >= 1 AND month <= 12", name="payroll_run_month_range"),
    )

    def __repr__(self) -> str:
        return f"<PayrollRun(tenant_id={self.tenant_id}, period={self.year}-{self.month:02d})>"


class PayrollRunItem(BaseModel, TenantScopedMixin):
    """Frozen copy of one employee's preview row at processing time."""

    __tablename__ = "payroll_run_items"

    payroll_run_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("payroll_runs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_code: Mapped[str] = mapped_column(String(50), nullable=False)
    employee_name: Mapped[str] = mapped_column(String(255), nullable=False)
    department: Mapped[str] = mapped_column(String(150), nullable=False)

    basic_salary: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    hra: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    allowances: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    gross_salary: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    lwp_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    lwp_deduction: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    pf_deduction: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    tax_deduction: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    other_deductions: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    net_salary: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    payroll_run: Mapped["PayrollRun"] = relationship("PayrollRun", back_populates="items")

    __table_args__ = (
        UniqueConstraint("payroll_run_id", "user_id", name="uq_payroll_run_item_user"),
    )
