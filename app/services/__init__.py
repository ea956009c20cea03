"""
PeopleDesk HRM - Services Package

Business logic services.
"""

from app.services.auth_service import AuthService
from app.services.audit_service import AuditService
from app.services.employee_service import EmployeeService
from app.services.attendance_service import AttendanceService
from app.services.leave_service import LeaveService
from app.services.payroll_service import PayrollService

__all__ = [
    "AuthService",
    "AuditService",
    "EmployeeService",
    "AttendanceService",
    "LeaveService",
    "PayrollService",
]
