"""
PeopleDesk HRM - Leave Schemas
"""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field, model_validator

from app.schemas.base import CamelModel


# ===========================================
# POLICIES
# ===========================================

class LeavePolicyCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    default_days: int = Field(..., ge=0, le=366)


class LeavePolicyUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    default_days: Optional[int] = Field(None, ge=0, le=366)


class LeavePolicyResponse(CamelModel):
    id: UUID
    name: str
    default_days: int


# ===========================================
# BALANCES & REQUESTS
# ===========================================

class LeaveBalanceResponse(CamelModel):
    """Balance for one policy and year."""
    policy_id: UUID
    policy_name: str
    year: int
    days_allotted: int
    days_used: int
    days_remaining: int


class LeaveApplyRequest(CamelModel):
    """Employee leave application."""
    policy_id: UUID
    start_date: date
    end_date: date
    days: int = Field(..., gt=0)
    days_lwp: int = Field(0, ge=0)
    reason: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_range(self) -> "LeaveApplyRequest":
        if self.end_date < self.start_date:
            raise ValueError("endDate cannot be before startDate")
        if self.days_lwp > self.days:
            raise ValueError("daysLwp cannot exceed days")
        return self


class LeaveRequestResponse(CamelModel):
    id: UUID
    user_id: UUID
    policy_id: UUID
    policy_name: Optional[str] = None
    start_date: date
    end_date: date
    days: int
    days_lwp: int
    reason: str
    status: str
    applied_date: datetime
    approved_by_id: Optional[UUID] = None
    admin_notes: Optional[str] = None


class LeaveOverviewResponse(CamelModel):
    """Caller's balances and request history."""
    balances: List[LeaveBalanceResponse]
    requests: List[LeaveRequestResponse]


class AdminLeaveRequestResponse(LeaveRequestResponse):
    """Request with requester and balance context for approvers."""
    employee_name: str
    employee_code: Optional[str] = None
    balance: Optional[LeaveBalanceResponse] = None


class LeaveDecisionRequest(CamelModel):
    admin_notes: Optional[str] = None
