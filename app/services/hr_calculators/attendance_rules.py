"""
PeopleDesk HRM - Attendance Status Calculator

Turns a day's check-in and check-out into hours worked and a status.

Classification uses the exact duration; only the stored hours are rounded:
- below 4.5 hours         -> ABSENT
- 4.5 up to below 9 hours -> HALF_DAY
- 9 hours or more         -> PRESENT
"""

from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple

from app.models.attendance import AttendanceStatus
from app.utils.error_handling import InvalidDateRangeException, ValidationException


# ===========================================
# CONSTANTS
# ===========================================

HALF_DAY_THRESHOLD_HOURS = Decimal("4.5")
FULL_DAY_THRESHOLD_HOURS = Decimal("9")

SECONDS_PER_HOUR = Decimal("3600")
HOURS_QUANTUM = Decimal("0.01")


class AttendanceCalculator:
    """
    Stateless attendance rules.

    Timestamps may be naive (treated as UTC, which is how the database hands
    them back on backends without time zone support) or offset-aware.
    """

    @staticmethod
    def to_utc(moment: datetime) -> datetime:
        """Normalize a timestamp to an aware UTC datetime."""
        if moment.tzinfo is None:
            return moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(timezone.utc)

    @staticmethod
    def work_date(moment: datetime) -> date:
        """Calendar day a timestamp belongs to, in the timestamp's own offset."""
        return moment.date()

    @classmethod
    def duration_hours(cls, check_in: datetime, check_out: datetime) -> Decimal:
        """
        Unrounded hours between check-in and check-out.

        Raises:
            InvalidDateRangeException: check-out is not strictly after check-in
        """
        start = cls.to_utc(check_in)
        end = cls.to_utc(check_out)
        if end <= start:
            raise InvalidDateRangeException(
                start=start.isoformat(),
                end=end.isoformat(),
                message="Check-out time must be after check-in time.",
                field="checkOutTime",
            )

        seconds = Decimal(str((end - start).total_seconds()))
        return seconds / SECONDS_PER_HOUR

    @classmethod
    def calculate_hours_worked(cls, check_in: datetime, check_out: datetime) -> Decimal:
        """Hours between check-in and check-out, rounded half-up to 2 decimals."""
        return cls.duration_hours(check_in, check_out).quantize(HOURS_QUANTUM, rounding=ROUND_HALF_UP)

    @staticmethod
    def classify_hours(hours: Decimal) -> AttendanceStatus:
        if hours < HALF_DAY_THRESHOLD_HOURS:
            return AttendanceStatus.ABSENT
        if hours < FULL_DAY_THRESHOLD_HOURS:
            return AttendanceStatus.HALF_DAY
        return AttendanceStatus.PRESENT

    @classmethod
    def resolve(
        cls,
        check_in: Optional[datetime],
        check_out: Optional[datetime],
    ) -> Tuple[Decimal, AttendanceStatus]:
        """
        Resolve a completed day.

        Returns:
            (hours_worked, status)
        """
        if check_in is None:
            raise ValidationException("Check-in time is required.", field="checkInTime")
        if check_out is None:
            raise ValidationException("Check-out time is required.", field="checkOutTime")

        exact = cls.duration_hours(check_in, check_out)
        hours = exact.quantize(HOURS_QUANTUM, rounding=ROUND_HALF_UP)
        return hours, cls.classify_hours(exact)
