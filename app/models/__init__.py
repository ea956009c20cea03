"""
PeopleDesk HRM - SQLAlchemy Models Package

This package contains all database models for the application.
"""

from app.models.base import BaseModel, TimestampMixin, TenantScopedMixin
from app.models.tenant import Tenant, Subscription, SubscriptionStatus
from app.models.user import User, UserRole, EmployeeProfile
from app.models.payroll import Offer, PayrollRun, PayrollRunItem, PayrollRunStatus
from app.models.leave import LeavePolicy, LeaveBalance, LeaveRequest, LeaveStatus
from app.models.attendance import AttendanceRecord, AttendanceStatus
from app.models.audit import ActivityLog, ActivityAction

__all__ = [
    "BaseModel",
    "TimestampMixin",
    "TenantScopedMixin",
    # Tenancy
    "Tenant",
    "Subscription",
    "SubscriptionStatus",
    # People
    "User",
    "UserRole",
    "EmployeeProfile",
    # Payroll
    "Offer",
    "PayrollRun",
    "PayrollRunItem",
    "PayrollRunStatus",
    # Leave
    "LeavePolicy",
    "LeaveBalance",
    "LeaveRequest",
    "LeaveStatus",
    # Attendance
    "AttendanceRecord",
    "AttendanceStatus",
    # Audit
    "ActivityLog",
    "ActivityAction",
]
