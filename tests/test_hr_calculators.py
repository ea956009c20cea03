"""
PeopleDesk HRM - HR Calculator Tests

Attendance classification and payroll row arithmetic.
"""

import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.models.attendance import AttendanceStatus
from app.services.hr_calculators import (
    AttendanceCalculator,
    PayrollCalculator,
    SalariedEmployee,
    calculate_hours_worked,
    calculate_lwp_deduction,
    classify_hours,
    resolve_attendance,
)
from app.utils.error_handling import InvalidDateRangeException, ValidationException


CHECK_IN = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


def _employee(gross="30000.00", pf="1800.00", tax="1200.00", designation="Engineer"):
    return SalariedEmployee(
        user_id=uuid.uuid4(),
        employee_code="EMP-001",
        first_name="Bob",
        last_name="Builder",
        designation=designation,
        basic=Decimal("15000.00"),
        hra=Decimal("6000.00"),
        da=Decimal("3000.00"),
        special_allowance=Decimal("6000.00"),
        gross_salary=Decimal(gross),
        pf_deduction=Decimal(pf),
        tax=Decimal(tax),
    )


class TestAttendanceCalculator:
    """Hours worked and day classification."""

    @pytest.mark.parametrize(
        "worked, expected_hours, expected_status",
        [
            (timedelta(hours=4, minutes=29, seconds=24), Decimal("4.49"), AttendanceStatus.ABSENT),
            (timedelta(hours=4, minutes=30), Decimal("4.50"), AttendanceStatus.HALF_DAY),
            (timedelta(hours=8, minutes=59, seconds=24), Decimal("8.99"), AttendanceStatus.HALF_DAY),
            (timedelta(hours=9), Decimal("9.00"), AttendanceStatus.PRESENT),
            (timedelta(hours=9, seconds=36), Decimal("9.01"), AttendanceStatus.PRESENT),
        ],
    )
    def test_threshold_boundaries(self, worked, expected_hours, expected_status):
        """Thresholds are 4.5 (half day) and 9 (present), both inclusive."""
        hours, status = AttendanceCalculator.resolve(CHECK_IN, CHECK_IN + worked)

        assert hours == expected_hours
        assert status == expected_status

    def test_hours_rounded_half_up(self):
        """7h 30m 18s is 7.505 hours, rounded to 7.51."""
        hours = calculate_hours_worked(CHECK_IN, CHECK_IN + timedelta(hours=7, minutes=30, seconds=18))
        assert hours == Decimal("7.51")

    @pytest.mark.parametrize(
        "worked, expected_hours, expected_status",
        [
            (timedelta(hours=4, minutes=29, seconds=50), Decimal("4.50"), AttendanceStatus.ABSENT),
            (timedelta(hours=8, minutes=59, seconds=50), Decimal("9.00"), AttendanceStatus.HALF_DAY),
            (timedelta(hours=8, minutes=59, seconds=59), Decimal("9.00"), AttendanceStatus.HALF_DAY),
        ],
    )
    def test_classification_uses_exact_duration(self, worked, expected_hours, expected_status):
        """Stored hours may round up to a threshold the day did not reach."""
        hours, status = resolve_attendance(CHECK_IN, CHECK_IN + worked)
        assert hours == expected_hours
        assert status == expected_status

    def test_classify_hours_directly(self):
        assert classify_hours(Decimal("0")) == AttendanceStatus.ABSENT
        assert classify_hours(Decimal("4.5")) == AttendanceStatus.HALF_DAY
        assert classify_hours(Decimal("12")) == AttendanceStatus.PRESENT

    def test_check_out_before_check_in_rejected(self):
        with pytest.raises(InvalidDateRangeException) as exc_info:
            calculate_hours_worked(CHECK_IN, CHECK_IN - timedelta(minutes=1))
        assert exc_info.value.status_code == 400

    def test_zero_duration_rejected(self):
        with pytest.raises(InvalidDateRangeException):
            calculate_hours_worked(CHECK_IN, CHECK_IN)

    def test_missing_check_out_rejected(self):
        with pytest.raises(ValidationException):
            AttendanceCalculator.resolve(CHECK_IN, None)

    def test_offsets_are_compared_in_utc(self):
        """09:00+05:30 to 09:00Z is 5.5 hours."""
        ist = timezone(timedelta(hours=5, minutes=30))
        start = datetime(2025, 3, 10, 9, 0, tzinfo=ist)
        end = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)

        assert calculate_hours_worked(start, end) == Decimal("5.50")

    def test_naive_timestamps_treated_as_utc(self):
        naive = datetime(2025, 3, 10, 9, 0)
        assert AttendanceCalculator.to_utc(naive) == CHECK_IN

    def test_work_date_uses_own_offset(self):
        late_evening = datetime(2025, 3, 10, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        assert AttendanceCalculator.work_date(late_evening) == date(2025, 3, 10)


class TestPayrollCalculator:
    """Per-employee payroll arithmetic."""

    def test_lwp_deduction_uses_fixed_30_day_divisor(self):
        """30000 / 30 x 3 = 3000.00 regardless of month length."""
        assert calculate_lwp_deduction(Decimal("30000"), 3) == Decimal("3000.00")

    def test_lwp_deduction_rounds_to_cents(self):
        """25000 / 30 = 833.333..., x 1 rounds to 833.33."""
        assert calculate_lwp_deduction(Decimal("25000"), 1) == Decimal("833.33")

    def test_compute_row_with_lwp(self):
        row = PayrollCalculator.compute_row(_employee(), lwp_days=3)

        assert row.lwp_days == 3
        assert row.lwp_deduction == Decimal("3000.00")
        assert row.other_deductions == Decimal("3000.00")
        assert row.total_deductions == Decimal("6000.00")
        assert row.net_salary == Decimal("24000.00")
        assert row.allowances == Decimal("9000.00")

    def test_compute_row_without_lwp(self):
        row = PayrollCalculator.compute_row(_employee(), lwp_days=0)

        assert row.lwp_deduction == Decimal("0.00")
        assert row.total_deductions == Decimal("3000.00")
        assert row.net_salary == Decimal("27000.00")

    def test_missing_designation_reported_as_na(self):
        row = PayrollCalculator.compute_row(_employee(designation=None), lwp_days=0)
        assert row.department == "N/A"

    def test_net_can_go_negative(self):
        """A month fully on LWP is not clamped."""
        row = PayrollCalculator.compute_row(_employee(), lwp_days=31)
        assert row.net_salary == Decimal("-4000.00")

    def test_month_window_covers_whole_month(self):
        assert PayrollCalculator.month_window(2, 2024) == (date(2024, 2, 1), date(2024, 2, 29))
        assert PayrollCalculator.month_window(12, 2025) == (date(2025, 12, 1), date(2025, 12, 31))

    @pytest.mark.parametrize("month", [0, 13, -1])
    def test_invalid_month_rejected(self, month):
        with pytest.raises(ValidationException) as exc_info:
            PayrollCalculator.month_window(month, 2025)
        assert exc_info.value.field == "month"
