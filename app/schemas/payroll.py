"""
PeopleDesk HRM - Payroll Schemas
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from app.schemas.base import CamelModel, Money


class PayrollRowResponse(CamelModel):
    """One employee's pay for the month."""
    user_id: UUID
    employee_id: str
    name: str
    department: str
    basic_salary: Money
    hra: Money
    allowances: Money
    gross_salary: Money
    lwp_days: int
    lwp_deduction: Money
    pf_deduction: Money
    tax_deduction: Money
    other_deductions: Money
    total_deductions: Money
    net_salary: Money


class PayrollRunSummary(CamelModel):
    id: UUID
    month: int
    year: int
    status: str
    total_employees: int
    total_gross: Money
    total_deductions: Money
    total_net: Money
    processed_at: datetime


class PayrollDataResponse(CamelModel):
    """Processed run for the month if there is one, otherwise the live preview."""
    is_processed: bool
    month: int
    year: int
    run_details: Optional[PayrollRunSummary] = None
    employees: List[PayrollRowResponse]


class PayrollRunRequest(CamelModel):
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=9999)
    employee_ids: List[UUID] = Field(..., min_length=1, description="User ids to include")


class PayrollRunResponse(CamelModel):
    message: str
    run: PayrollRunSummary
