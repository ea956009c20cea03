"""
PeopleDesk HRM - Attendance Service

Check-in / check-out workflow over the per-day attendance record.

A day is keyed by (tenant, employee, calendar date of the supplied
timestamp). Check-in creates or refreshes the day; check-out resolves it
exactly once into hours worked and a status.
"""

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.attendance import AttendanceRecord
from app.models.user import EmployeeProfile, UserRole
from app.services.employee_service import EmployeeService
from app.services.hr_calculators import AttendanceCalculator
from app.utils.error_handling import (
    AuthorizationException,
    ConflictException,
    ErrorCode,
    InvalidDateRangeException,
    NotFoundException,
)

logger = logging.getLogger(__name__)


NO_CHECK_IN_MESSAGE = "Cannot check out. No check-in record found for today."
ALREADY_CHECKED_OUT_MESSAGE = "You have already checked out today."


class AttendanceService:
    """Service for attendance recording and reporting."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ===========================================
    # HELPERS
    # ===========================================

    async def _resolve_employee(
        self,
        tenant_id: uuid.UUID,
        employee_code: str,
        actor_id: uuid.UUID,
        actor_role: UserRole,
    ) -> EmployeeProfile:
        profile = await EmployeeService(self.db).get_profile_by_code(tenant_id, employee_code)
        if actor_role != UserRole.ADMIN and profile.user_id != actor_id:
            raise AuthorizationException("You can only record your own attendance.")
        return profile

    async def get_record(
        self,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        work_date: date,
    ) -> Optional[AttendanceRecord]:
        result = await self.db.execute(
            select(AttendanceRecord).where(
                and_(
                    AttendanceRecord.tenant_id == tenant_id,
                    AttendanceRecord.user_id == user_id,
                    AttendanceRecord.work_date == work_date,
                )
            )
        )
        return result.scalar_one_or_none()

    # ===========================================
    # CHECK-IN / CHECK-OUT
    # ===========================================

    async def check_in(
        self,
        tenant_id: uuid.UUID,
        employee_code: str,
        check_in_time: datetime,
        actor_id: uuid.UUID,
        actor_role: UserRole,
    ) -> AttendanceRecord:
        """
        Record the start of a working day.

        A second check-in before check-out moves the check-in time.

        Raises:
            EmployeeNotFoundException: unknown employee code
            ConflictException: the day is already checked out
        """
        profile = await self._resolve_employee(tenant_id, employee_code, actor_id, actor_role)
        work_date = AttendanceCalculator.work_date(check_in_time)
        stamp = AttendanceCalculator.to_utc(check_in_time)

        record = await self.get_record(tenant_id, profile.user_id, work_date)
        if record is None:
            record = AttendanceRecord(
                tenant_id=tenant_id,
                user_id=profile.user_id,
                work_date=work_date,
                check_in=stamp,
            )
            try:
                async with self.db.begin_nested():
                    self.db.add(record)
            except IntegrityError:
                # A concurrent check-in created the day first
                logger.info(f"Concurrent check-in for {employee_code} on {work_date}, reusing row")
                record = await self.get_record(tenant_id, profile.user_id, work_date)
                if record is None:
                    raise

        if record.check_out is not None:
            raise ConflictException(
                ALREADY_CHECKED_OUT_MESSAGE,
                resource_type="AttendanceRecord",
                code=ErrorCode.ALREADY_CHECKED_OUT,
            )
        if record.check_in is None or AttendanceCalculator.to_utc(record.check_in) != stamp:
            record.check_in = stamp

        await self.db.commit()
        logger.info(f"Check-in {employee_code} on {work_date} at {stamp.isoformat()}")
        return record

    async def check_out(
        self,
        tenant_id: uuid.UUID,
        employee_code: str,
        check_out_time: datetime,
        actor_id: uuid.UUID,
        actor_role: UserRole,
    ) -> AttendanceRecord:
        """
        Resolve the working day.

        The write is conditional on the day not being checked out yet, so of
        two concurrent check-outs exactly one succeeds.

        Raises:
            EmployeeNotFoundException: unknown employee code
            NotFoundException: no check-in for that day
            ConflictException: already checked out (stored check-out unchanged)
            InvalidDateRangeException: check-out not after check-in
        """
        profile = await self._resolve_employee(tenant_id, employee_code, actor_id, actor_role)
        work_date = AttendanceCalculator.work_date(check_out_time)

        record = await self.get_record(tenant_id, profile.user_id, work_date)
        if record is None or record.check_in is None:
            raise NotFoundException("AttendanceRecord", message=NO_CHECK_IN_MESSAGE)
        if record.check_out is not None:
            raise ConflictException(
                ALREADY_CHECKED_OUT_MESSAGE,
                resource_type="AttendanceRecord",
                code=ErrorCode.ALREADY_CHECKED_OUT,
            )

        hours, status = AttendanceCalculator.resolve(record.check_in, check_out_time)
        stamp = AttendanceCalculator.to_utc(check_out_time)

        result = await self.db.execute(
            update(AttendanceRecord)
            .where(
                and_(
                    AttendanceRecord.id == record.id,
                    AttendanceRecord.check_out.is_(None),
                )
            )
            .values(check_out=stamp, hours_worked=hours, status=status)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise ConflictException(
                ALREADY_CHECKED_OUT_MESSAGE,
                resource_type="AttendanceRecord",
                code=ErrorCode.ALREADY_CHECKED_OUT,
            )

        await self.db.commit()
        await self.db.refresh(record)
        logger.info(f"Check-out {employee_code} on {work_date}: {hours}h -> {status.value}")
        return record

    async def get_today_status(
        self,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Status of the day containing `now`, keyed the same way as check-ins:
        by the calendar date in the timestamp's own offset. Without `now`
        the current UTC day is used.
        """
        work_date = AttendanceCalculator.work_date(now or datetime.now(timezone.utc))
        record = await self.get_record(tenant_id, user_id, work_date)
        return {
            "checked_in": bool(record and record.check_in),
            "checked_out": bool(record and record.check_out),
            "check_in_time": record.check_in if record else None,
            "check_out_time": record.check_out if record else None,
        }

    # ===========================================
    # REPORTING
    # ===========================================

    async def get_activity_logs(
        self,
        tenant_id: uuid.UUID,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Most recent attendance days expanded into check-in, check-out and
        daily summary events, newest first.
        """
        result = await self.db.execute(
            select(AttendanceRecord, EmployeeProfile)
            .outerjoin(
                EmployeeProfile,
                and_(
                    EmployeeProfile.user_id == AttendanceRecord.user_id,
                    EmployeeProfile.tenant_id == AttendanceRecord.tenant_id,
                ),
            )
            .where(AttendanceRecord.tenant_id == tenant_id)
            .order_by(AttendanceRecord.work_date.desc())
            .limit(limit or settings.attendance_log_limit)
        )

        events: List[Dict[str, Any]] = []
        for record, profile in result.all():
            base = {
                "attendance_id": record.id,
                "user_id": record.user_id,
                "employee_id": profile.employee_id if profile else "N/A",
                "employee_name": profile.full_name if profile else "",
                "hours_worked": record.hours_worked,
                "daily_status": record.status.value if record.status else "UNKNOWN",
            }
            if record.check_in:
                events.append({
                    **base,
                    "id": f"{record.id}-checkin",
                    "action": "CHECK_IN",
                    "timestamp": AttendanceCalculator.to_utc(record.check_in),
                })
            if record.check_out:
                events.append({
                    **base,
                    "id": f"{record.id}-checkout",
                    "action": "CHECK_OUT",
                    "timestamp": AttendanceCalculator.to_utc(record.check_out),
                })
            summary_at = record.check_out or record.check_in or datetime.combine(record.work_date, datetime.min.time())
            events.append({
                **base,
                "id": f"{record.id}-summary",
                "action": "DAILY_SUMMARY",
                "timestamp": AttendanceCalculator.to_utc(summary_at),
            })

        events.sort(key=lambda e: e["timestamp"], reverse=True)
        return events

    async def get_export_rows(
        self,
        tenant_id: uuid.UUID,
        from_date: date,
        to_date: date,
        employee_code: Optional[str] = None,
        designation: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Flat rows for the attendance report, oldest day first.

        Times are rendered as UTC HH:MM; missing values as "-".
        """
        if to_date < from_date:
            raise InvalidDateRangeException(
                start=from_date.isoformat(),
                end=to_date.isoformat(),
                message="toDate cannot be before fromDate.",
                field="toDate",
            )

        query = (
            select(AttendanceRecord, EmployeeProfile)
            .join(
                EmployeeProfile,
                and_(
                    EmployeeProfile.user_id == AttendanceRecord.user_id,
                    EmployeeProfile.tenant_id == AttendanceRecord.tenant_id,
                ),
            )
            .where(
                and_(
                    AttendanceRecord.tenant_id == tenant_id,
                    AttendanceRecord.work_date >= from_date,
                    AttendanceRecord.work_date <= to_date,
                )
            )
        )
        if employee_code:
            query = query.where(EmployeeProfile.employee_id == employee_code)
        if designation:
            query = query.where(EmployeeProfile.designation == designation)
        query = query.order_by(AttendanceRecord.work_date, EmployeeProfile.employee_id)

        result = await self.db.execute(query)
        return [
            {
                "employee_id": profile.employee_id,
                "name": profile.full_name,
                "designation": profile.designation or "-",
                "date": record.work_date.isoformat(),
                "check_in": _format_clock(record.check_in),
                "check_out": _format_clock(record.check_out),
                "hours": f"{record.hours_worked:.2f}" if record.hours_worked is not None else "-",
                "status": record.status.value if record.status else "-",
            }
            for record, profile in result.all()
        ]


def _format_clock(moment: Optional[datetime]) -> str:
    if moment is None:
        return "-"
    return AttendanceCalculator.to_utc(moment).strftime("%H:%M")
