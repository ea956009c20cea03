"""
PeopleDesk HRM - Payroll Preview Calculator

Monthly pay computation for one employee.

Rules:
1. Per-day salary = monthly gross / 30. The divisor is fixed at 30 whatever
   the length of the month.
2. LWP deduction = per-day salary x LWP days, rounded to 2 decimals.
3. Other deductions = PF + tax from the salary structure.
4. Total deductions = other deductions + LWP deduction.
5. Net salary = gross - total deductions, rounded to 2 decimals.

All arithmetic uses Decimal with ROUND_HALF_UP.
"""

import uuid
from calendar import monthrange
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional, Tuple

from app.utils.error_handling import ErrorCode, ValidationException


# ===========================================
# CONSTANTS
# ===========================================

PER_DAY_DIVISOR = Decimal("30")
MONEY_QUANTUM = Decimal("0.01")
NO_DEPARTMENT = "N/A"


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class SalariedEmployee:
    """Employee profile joined with its salary structure."""
    user_id: uuid.UUID
    employee_code: str
    first_name: str
    last_name: str
    designation: Optional[str]
    basic: Decimal
    hra: Decimal
    da: Decimal
    special_allowance: Decimal
    gross_salary: Decimal
    pf_deduction: Decimal
    tax: Decimal

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class PayrollPreviewRow:
    """One employee's computed pay for a month."""
    user_id: uuid.UUID
    employee_id: str
    name: str
    department: str
    basic_salary: Decimal
    hra: Decimal
    allowances: Decimal
    gross_salary: Decimal
    lwp_days: int
    lwp_deduction: Decimal
    pf_deduction: Decimal
    tax_deduction: Decimal
    other_deductions: Decimal
    total_deductions: Decimal
    net_salary: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "employee_id": self.employee_id,
            "name": self.name,
            "department": self.department,
            "basic_salary": self.basic_salary,
            "hra": self.hra,
            "allowances": self.allowances,
            "gross_salary": self.gross_salary,
            "lwp_days": self.lwp_days,
            "lwp_deduction": self.lwp_deduction,
            "pf_deduction": self.pf_deduction,
            "tax_deduction": self.tax_deduction,
            "other_deductions": self.other_deductions,
            "total_deductions": self.total_deductions,
            "net_salary": self.net_salary,
        }


class PayrollCalculator:
    """Stateless payroll rules."""

    @staticmethod
    def validate_period(month: int, year: int) -> None:
        if not 1 <= month <= 12:
            raise ValidationException(
                f"Month must be between 1 and 12, got {month}.",
                field="month",
                code=ErrorCode.INVALID_PERIOD,
            )
        if not 1 <= year <= 9999:
            raise ValidationException(
                f"Invalid year {year}.",
                field="year",
                code=ErrorCode.INVALID_PERIOD,
            )

    @classmethod
    def month_window(cls, month: int, year: int) -> Tuple[date, date]:
        """First and last calendar day of the month, both inclusive."""
        cls.validate_period(month, year)
        last_day = monthrange(year, month)[1]
        return date(year, month, 1), date(year, month, last_day)

    @staticmethod
    def calculate_lwp_deduction(gross_salary: Decimal, lwp_days: int) -> Decimal:
        per_day = Decimal(gross_salary) / PER_DAY_DIVISOR
        return round_money(per_day * Decimal(lwp_days))

    @classmethod
    def compute_row(cls, employee: SalariedEmployee, lwp_days: int) -> PayrollPreviewRow:
        gross = Decimal(employee.gross_salary)
        pf = Decimal(employee.pf_deduction)
        tax = Decimal(employee.tax)

        lwp_deduction = cls.calculate_lwp_deduction(gross, lwp_days)
        other_deductions = pf + tax
        total_deductions = round_money(other_deductions + lwp_deduction)
        net_salary = round_money(gross - total_deductions)

        return PayrollPreviewRow(
            user_id=employee.user_id,
            employee_id=employee.employee_code,
            name=employee.full_name,
            department=employee.designation or NO_DEPARTMENT,
            basic_salary=Decimal(employee.basic),
            hra=Decimal(employee.hra),
            allowances=Decimal(employee.special_allowance) + Decimal(employee.da),
            gross_salary=gross,
            lwp_days=lwp_days,
            lwp_deduction=lwp_deduction,
            pf_deduction=pf,
            tax_deduction=tax,
            other_deductions=other_deductions,
            total_deductions=total_deductions,
            net_salary=net_salary,
        )
