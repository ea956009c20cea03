"""
PeopleDesk HRM - Attendance Router

Check-in / check-out, today's status, the admin activity feed and the
attendance report export.
"""

from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import CurrentUser, get_current_user, require_admin
from app.models.attendance import AttendanceRecord
from app.schemas.attendance import (
    AttendanceLogEvent,
    AttendanceRecordResponse,
    CheckInRequest,
    CheckInResponse,
    CheckOutRequest,
    CheckOutResponse,
    ExportFormat,
    TodayStatusResponse,
)
from app.services.attendance_service import AttendanceService
from app.services.hr_calculators import AttendanceCalculator
from app.services.report_export_service import AttendanceReportExporter


router = APIRouter()


def _utc(moment):
    return AttendanceCalculator.to_utc(moment) if moment else None


def _record_response(record: AttendanceRecord) -> AttendanceRecordResponse:
    return AttendanceRecordResponse(
        id=record.id,
        user_id=record.user_id,
        work_date=record.work_date,
        check_in=_utc(record.check_in),
        check_out=_utc(record.check_out),
        hours_worked=record.hours_worked,
        status=record.status.value if record.status else None,
    )


@router.post(
    "/check-in",
    response_model=CheckInResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Check in",
    description="Start the working day of the given employee. The day is taken from checkInTime.",
)
async def check_in(
    request: CheckInRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    record = await AttendanceService(db).check_in(
        tenant_id=current_user.tenant_id,
        employee_code=request.employee_id,
        check_in_time=request.check_in_time,
        actor_id=current_user.user_id,
        actor_role=current_user.role,
    )
    return CheckInResponse(message="Checked in successfully", record_id=record.id)


@router.post(
    "/check-out",
    response_model=CheckOutResponse,
    summary="Check out",
    description="Close the working day and compute hours worked and status.",
)
async def check_out(
    request: CheckOutRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    record = await AttendanceService(db).check_out(
        tenant_id=current_user.tenant_id,
        employee_code=request.employee_id,
        check_out_time=request.check_out_time,
        actor_id=current_user.user_id,
        actor_role=current_user.role,
    )
    return CheckOutResponse(message="Checked out successfully", record=_record_response(record))


@router.get(
    "/status/today",
    response_model=TodayStatusResponse,
    summary="Today's attendance of the caller",
)
async def get_today_status(
    at: Optional[datetime] = Query(
        None, description="Caller's current time with its UTC offset; picks the day like checkInTime does"
    ),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    data = await AttendanceService(db).get_today_status(current_user.tenant_id, current_user.user_id, now=at)
    return TodayStatusResponse(
        checked_in=data["checked_in"],
        checked_out=data["checked_out"],
        check_in_time=_utc(data["check_in_time"]),
        check_out_time=_utc(data["check_out_time"]),
    )


@router.get(
    "/logs",
    response_model=List[AttendanceLogEvent],
    summary="Attendance activity feed",
    description="Most recent attendance days as check-in, check-out and daily summary events.",
)
async def get_activity_logs(
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    events = await AttendanceService(db).get_activity_logs(current_user.tenant_id)
    return [AttendanceLogEvent(**event) for event in events]


@router.get(
    "/export",
    summary="Export attendance report",
    description="Attendance rows for a date range as an Excel workbook or PDF.",
)
async def export_attendance(
    from_date: date = Query(..., description="First day, inclusive"),
    to_date: date = Query(..., description="Last day, inclusive"),
    employee_id: Optional[str] = Query(None, description="Employee code filter"),
    designation: Optional[str] = Query(None),
    format: ExportFormat = Query("excel"),
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    rows = await AttendanceService(db).get_export_rows(
        tenant_id=current_user.tenant_id,
        from_date=from_date,
        to_date=to_date,
        employee_code=employee_id,
        designation=designation,
    )

    exporter = AttendanceReportExporter()
    period = f"{from_date.isoformat()} to {to_date.isoformat()}"
    if format == "pdf":
        report = exporter.to_pdf(rows, period=period)
    else:
        report = exporter.to_excel(rows, period=period)

    return StreamingResponse(
        iter([report.content]),
        media_type=report.media_type,
        headers={"Content-Disposition": report.content_disposition},
    )
