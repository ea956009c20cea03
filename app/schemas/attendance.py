"""
PeopleDesk HRM - Attendance Schemas
"""

from datetime import date, datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import Field

from app.schemas.base import CamelModel, Money


ExportFormat = Literal["excel", "pdf"]


class CheckInRequest(CamelModel):
    """Start of a working day."""
    employee_id: str = Field(..., min_length=1)
    check_in_time: datetime


class CheckOutRequest(CamelModel):
    """End of a working day."""
    employee_id: str = Field(..., min_length=1)
    check_out_time: datetime


class AttendanceRecordResponse(CamelModel):
    """Stored attendance day."""
    id: UUID
    user_id: UUID
    work_date: date
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    hours_worked: Optional[Money] = None
    status: Optional[str] = None


class CheckInResponse(CamelModel):
    message: str
    record_id: UUID


class CheckOutResponse(CamelModel):
    message: str
    record: AttendanceRecordResponse


class TodayStatusResponse(CamelModel):
    """Caller's attendance for today."""
    checked_in: bool
    checked_out: bool
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None


class AttendanceLogEvent(CamelModel):
    """Single entry of the admin activity feed."""
    id: str
    attendance_id: UUID
    user_id: UUID
    employee_id: str
    employee_name: str
    action: Literal["CHECK_IN", "CHECK_OUT", "DAILY_SUMMARY"]
    timestamp: datetime
    hours_worked: Optional[Money] = None
    daily_status: str
