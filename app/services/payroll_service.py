"""
PeopleDesk HRM - Payroll Service

Monthly payroll preview and processed payroll runs.

Preview rules:
1. Eligible employees are tenant profiles whose user has a salary structure (Offer).
   Profiles without one are skipped.
2. LWP days for a month are summed from APPROVED leave requests with days_lwp > 0
   whose start date falls inside the month. Only the start date is checked, so a
   request that spans two months counts wholly in the month it starts.
3. Each row is computed by PayrollCalculator (gross / 30 per day).

A preview is a pure function of Offer and LeaveRequest rows; computing it twice
with unchanged data gives identical rows in identical order.
"""

import logging
import uuid
from collections import defaultdict
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.audit import ActivityAction
from app.models.leave import LeaveRequest, LeaveStatus
from app.models.payroll import Offer, PayrollRun, PayrollRunItem, PayrollRunStatus
from app.models.tenant import Tenant
from app.models.user import EmployeeProfile
from app.services.audit_service import AuditService
from app.services.hr_calculators import (
    PayrollCalculator,
    PayrollPreviewRow,
    SalariedEmployee,
    round_money,
)
from app.utils.error_handling import (
    ConflictException,
    ErrorCode,
    NotFoundException,
    ValidationException,
)

logger = logging.getLogger(__name__)


# ===========================================
# DATA SOURCE
# ===========================================

class PayrollDataSource(Protocol):
    """Read access the preview calculator needs."""

    async def list_salaried_employees(self, tenant_id: uuid.UUID) -> Sequence[SalariedEmployee]:
        ...

    async def list_lwp_requests(
        self, tenant_id: uuid.UUID, window_start: date, window_end: date
    ) -> Sequence[Tuple[uuid.UUID, int]]:
        """(user_id, days_lwp) of approved LWP requests starting inside the window."""
        ...


class SQLAlchemyPayrollDataSource:
    """Payroll data source on the request's session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_salaried_employees(self, tenant_id: uuid.UUID) -> List[SalariedEmployee]:
        result = await self.db.execute(
            select(EmployeeProfile, Offer)
            .join(
                Offer,
                and_(
                    Offer.user_id == EmployeeProfile.user_id,
                    Offer.tenant_id == EmployeeProfile.tenant_id,
                ),
            )
            .where(EmployeeProfile.tenant_id == tenant_id)
        )
        return [
            SalariedEmployee(
                user_id=profile.user_id,
                employee_code=profile.employee_id,
                first_name=profile.first_name,
                last_name=profile.last_name,
                designation=profile.designation,
                basic=offer.basic,
                hra=offer.hra,
                da=offer.da,
                special_allowance=offer.special_allowance,
                gross_salary=offer.gross_salary,
                pf_deduction=offer.pf_deduction,
                tax=offer.tax,
            )
            for profile, offer in result.all()
        ]

    async def list_lwp_requests(
        self, tenant_id: uuid.UUID, window_start: date, window_end: date
    ) -> List[Tuple[uuid.UUID, int]]:
        result = await self.db.execute(
            select(LeaveRequest.user_id, LeaveRequest.days_lwp).where(
                and_(
                    LeaveRequest.tenant_id == tenant_id,
                    LeaveRequest.status == LeaveStatus.APPROVED,
                    LeaveRequest.days_lwp > 0,
                    LeaveRequest.start_date >= window_start,
                    LeaveRequest.start_date <= window_end,
                )
            )
        )
        return [(user_id, days_lwp) for user_id, days_lwp in result.all()]


async def calculate_payroll_preview(
    source: PayrollDataSource,
    tenant_id: uuid.UUID,
    month: int,
    year: int,
) -> List[PayrollPreviewRow]:
    """
    Compute the payroll preview of a tenant for one month.

    Rows are ordered by employee name, then employee code. An empty tenant
    gives an empty list.

    Raises:
        ValidationException: month outside 1..12
    """
    window_start, window_end = PayrollCalculator.month_window(month, year)

    employees = await source.list_salaried_employees(tenant_id)
    if not employees:
        return []

    lwp_by_user: Dict[uuid.UUID, int] = defaultdict(int)
    for user_id, days_lwp in await source.list_lwp_requests(tenant_id, window_start, window_end):
        lwp_by_user[user_id] += days_lwp

    rows = [
        PayrollCalculator.compute_row(employee, lwp_by_user.get(employee.user_id, 0))
        for employee in employees
    ]
    rows.sort(key=lambda row: (row.name.lower(), row.employee_id))
    return rows


# ===========================================
# PAYROLL SERVICE
# ===========================================

class PayrollService:
    """
    Payroll service for previews and processed runs.
    """

    def __init__(self, db: AsyncSession, source: Optional[PayrollDataSource] = None):
        self.db = db
        self.source = source or SQLAlchemyPayrollDataSource(db)

    async def get_preview(self, tenant_id: uuid.UUID, month: int, year: int) -> List[PayrollPreviewRow]:
        return await calculate_payroll_preview(self.source, tenant_id, month, year)

    async def find_run(self, tenant_id: uuid.UUID, month: int, year: int) -> Optional[PayrollRun]:
        result = await self.db.execute(
            select(PayrollRun)
            .options(selectinload(PayrollRun.items))
            .where(
                and_(
                    PayrollRun.tenant_id == tenant_id,
                    PayrollRun.month == month,
                    PayrollRun.year == year,
                )
            )
        )
        return result.scalar_one_or_none()

    async def get_run(self, tenant_id: uuid.UUID, run_id: uuid.UUID) -> PayrollRun:
        result = await self.db.execute(
            select(PayrollRun)
            .options(selectinload(PayrollRun.items))
            .where(and_(PayrollRun.tenant_id == tenant_id, PayrollRun.id == run_id))
        )
        run = result.scalar_one_or_none()
        if not run:
            raise NotFoundException("Payroll run", run_id)
        return run

    async def get_payroll_data(
        self,
        tenant_id: uuid.UUID,
        month: int,
        year: int,
    ) -> Dict[str, Any]:
        """
        The processed run of the month if there is one, otherwise the live preview.
        """
        PayrollCalculator.validate_period(month, year)
        run = await self.find_run(tenant_id, month, year)
        if run:
            return {
                "is_processed": True,
                "month": month,
                "year": year,
                "run_details": run_summary(run),
                "employees": [item_to_row(item).to_dict() for item in run.items],
            }

        rows = await self.get_preview(tenant_id, month, year)
        return {
            "is_processed": False,
            "month": month,
            "year": year,
            "run_details": None,
            "employees": [row.to_dict() for row in rows],
        }

    async def run_payroll(
        self,
        tenant_id: uuid.UUID,
        month: int,
        year: int,
        user_ids: Sequence[uuid.UUID],
        processed_by_id: Optional[uuid.UUID] = None,
    ) -> PayrollRun:
        """
        Process the month for the selected employees.

        The preview is recomputed at processing time; the run, its items and
        the activity log entry are committed together.

        Raises:
            ValidationException: no employee selected, or none of them is payable
            ConflictException: the month is already processed
        """
        PayrollCalculator.validate_period(month, year)
        if not user_ids:
            raise ValidationException("No employees selected.", field="employeeIds")

        if await self.find_run(tenant_id, month, year):
            raise ConflictException(
                f"Payroll for {month:02d}/{year} has already been processed.",
                resource_type="PayrollRun",
                code=ErrorCode.ALREADY_PROCESSED,
            )

        selected = set(user_ids)
        rows = [row for row in await self.get_preview(tenant_id, month, year) if row.user_id in selected]
        if not rows:
            raise ValidationException(
                "None of the selected employees has a salary structure.",
                field="employeeIds",
            )

        total_gross = round_money(sum((row.gross_salary for row in rows), Decimal("0")))
        total_deductions = round_money(sum((row.total_deductions for row in rows), Decimal("0")))
        total_net = round_money(sum((row.net_salary for row in rows), Decimal("0")))

        run = PayrollRun(
            tenant_id=tenant_id,
            month=month,
            year=year,
            status=PayrollRunStatus.PROCESSED,
            total_employees=len(rows),
            total_gross=total_gross,
            total_deductions=total_deductions,
            total_net=total_net,
            processed_by_id=processed_by_id,
            processed_at=datetime.now(timezone.utc),
        )
        run.items = [
            PayrollRunItem(
                tenant_id=tenant_id,
                user_id=row.user_id,
                employee_code=row.employee_id,
                employee_name=row.name,
                department=row.department,
                basic_salary=row.basic_salary,
                hra=row.hra,
                allowances=row.allowances,
                gross_salary=row.gross_salary,
                lwp_days=row.lwp_days,
                lwp_deduction=row.lwp_deduction,
                pf_deduction=row.pf_deduction,
                tax_deduction=row.tax_deduction,
                other_deductions=row.other_deductions,
                total_deductions=row.total_deductions,
                net_salary=row.net_salary,
            )
            for row in rows
        ]
        self.db.add(run)
        await self.db.flush()

        AuditService(self.db).log_action(
            tenant_id=tenant_id,
            action=ActivityAction.PAYROLL_PROCESSED,
            description=(
                f"Processed payroll for {month:02d}/{year}: {len(rows)} employee(s), "
                f"net {total_net}"
            ),
            performed_by_id=processed_by_id,
            reference=str(run.id),
        )

        try:
            await self.db.commit()
        except IntegrityError as e:
            # Concurrent run for the same month committed first
            await self.db.rollback()
            raise ConflictException(
                f"Payroll for {month:02d}/{year} has already been processed.",
                resource_type="PayrollRun",
                code=ErrorCode.ALREADY_PROCESSED,
            ) from e

        logger.info(f"Payroll run {run.id} processed for tenant {tenant_id} ({month:02d}/{year})")
        return run

    async def get_tenant_name(self, tenant_id: uuid.UUID) -> str:
        result = await self.db.execute(select(Tenant.name).where(Tenant.id == tenant_id))
        return result.scalar_one_or_none() or ""


def run_summary(run: PayrollRun) -> Dict[str, Any]:
    return {
        "id": run.id,
        "month": run.month,
        "year": run.year,
        "status": run.status.value,
        "total_employees": run.total_employees,
        "total_gross": run.total_gross,
        "total_deductions": run.total_deductions,
        "total_net": run.total_net,
        "processed_at": run.processed_at,
    }


def item_to_row(item: PayrollRunItem) -> PayrollPreviewRow:
    return PayrollPreviewRow(
        user_id=item.user_id,
        employee_id=item.employee_code,
        name=item.employee_name,
        department=item.department,
        basic_salary=item.basic_salary,
        hra=item.hra,
        allowances=item.allowances,
        gross_salary=item.gross_salary,
        lwp_days=item.lwp_days,
        lwp_deduction=item.lwp_deduction,
        pf_deduction=item.pf_deduction,
        tax_deduction=item.tax_deduction,
        other_deductions=item.other_deductions,
        total_deductions=item.total_deductions,
        net_salary=item.net_salary,
    )


REGISTER_MONEY_FIELDS = (
    "gross_salary", "lwp_deduction", "other_deductions", "total_deductions", "net_salary",
)


def format_currency(amount: Decimal) -> str:
    """Format amount as currency string."""
    return f"{amount:,.2f}"


def register_row(row: PayrollPreviewRow, as_text: bool = False) -> Dict[str, Any]:
    """
    Display row of the payroll register.

    Amounts are floats for a workbook, so they stay numeric cells, and
    "30,000.00" style strings for a PDF table.
    """
    display = {"employee_id": row.employee_id, "name": row.name}
    for field in REGISTER_MONEY_FIELDS:
        amount = getattr(row, field)
        display[field] = format_currency(amount) if as_text else float(amount)
    return display
