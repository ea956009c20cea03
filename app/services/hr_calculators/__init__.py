"""
PeopleDesk HRM - HR Calculators Package

Pure computation rules with no database access.

Modules:
- attendance_rules: hours worked and PRESENT / HALF_DAY / ABSENT classification
- payroll_rules: month windows and per-employee LWP / net salary computation
"""

from datetime import datetime
from decimal import Decimal
from typing import Tuple

from app.models.attendance import AttendanceStatus
from app.services.hr_calculators.attendance_rules import (
    AttendanceCalculator,
    HALF_DAY_THRESHOLD_HOURS,
    FULL_DAY_THRESHOLD_HOURS,
)
from app.services.hr_calculators.payroll_rules import (
    PayrollCalculator,
    PayrollPreviewRow,
    SalariedEmployee,
    PER_DAY_DIVISOR,
    round_money,
)


# ===========================================
# CONVENIENCE FUNCTIONS
# ===========================================

def calculate_hours_worked(check_in: datetime, check_out: datetime) -> Decimal:
    """
    Hours between two timestamps, rounded to 2 decimals.

    Raises:
        InvalidDateRangeException: if check_out is not after check_in
    """
    return AttendanceCalculator.calculate_hours_worked(check_in, check_out)


def classify_hours(hours: Decimal) -> AttendanceStatus:
    """Map hours worked to an attendance status."""
    return AttendanceCalculator.classify_hours(hours)


def resolve_attendance(check_in: datetime, check_out: datetime) -> Tuple[Decimal, AttendanceStatus]:
    """Hours worked and status for a completed day."""
    return AttendanceCalculator.resolve(check_in, check_out)


def calculate_lwp_deduction(gross_salary: Decimal, lwp_days: int) -> Decimal:
    """
    Loss-of-pay deduction.

    Args:
        gross_salary: Monthly gross
        lwp_days: Unpaid days attributed to the month

    Returns:
        gross / 30 x days, rounded to 2 decimals
    """
    return PayrollCalculator.calculate_lwp_deduction(gross_salary, lwp_days)


__all__ = [
    "AttendanceCalculator",
    "PayrollCalculator",
    "PayrollPreviewRow",
    "SalariedEmployee",
    "HALF_DAY_THRESHOLD_HOURS",
    "FULL_DAY_THRESHOLD_HOURS",
    "PER_DAY_DIVISOR",
    "round_money",
    "calculate_hours_worked",
    "classify_hours",
    "resolve_attendance",
    "calculate_lwp_deduction",
]
