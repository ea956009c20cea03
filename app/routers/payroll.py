"""
PeopleDesk HRM - Payroll Router

Monthly payroll preview, processing and register export. Admin only.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import CurrentUser, require_admin
from app.schemas.attendance import ExportFormat
from app.schemas.payroll import (
    PayrollDataResponse,
    PayrollRowResponse,
    PayrollRunRequest,
    PayrollRunResponse,
    PayrollRunSummary,
)
from app.services.payroll_service import PayrollService, item_to_row, register_row, run_summary
from app.services.report_export_service import PayrollReportExporter


router = APIRouter()


@router.get(
    "/preview",
    response_model=List[PayrollRowResponse],
    summary="Payroll preview",
    description="Live computation for every employee with a salary structure. Nothing is stored.",
)
async def get_preview(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=9999),
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    rows = await PayrollService(db).get_preview(current_user.tenant_id, month, year)
    return [row.to_dict() for row in rows]


@router.get(
    "/data",
    response_model=PayrollDataResponse,
    summary="Payroll of a month",
    description="The processed run if the month is closed, otherwise the live preview.",
)
async def get_payroll_data(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=9999),
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    return await PayrollService(db).get_payroll_data(current_user.tenant_id, month, year)


@router.post(
    "/run",
    response_model=PayrollRunResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Process payroll",
    description="Freeze the month for the selected employees. A month can be processed once.",
)
async def run_payroll(
    request: PayrollRunRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    run = await PayrollService(db).run_payroll(
        tenant_id=current_user.tenant_id,
        month=request.month,
        year=request.year,
        user_ids=request.employee_ids,
        processed_by_id=current_user.user_id,
    )
    return PayrollRunResponse(
        message=f"Payroll processed for {run.total_employees} employee(s)",
        run=PayrollRunSummary(**run_summary(run)),
    )


@router.get(
    "/run/{run_id}/export",
    summary="Export payroll register",
)
async def export_run(
    run_id: UUID,
    format: ExportFormat = Query("pdf"),
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
):
    payroll_service = PayrollService(db)
    run = await payroll_service.get_run(current_user.tenant_id, run_id)
    company_name = await payroll_service.get_tenant_name(current_user.tenant_id)
    exporter = PayrollReportExporter()
    if format == "excel":
        rows = [register_row(item_to_row(item)) for item in run.items]
        report = exporter.to_excel(rows, run.month, run.year, company_name=company_name)
    else:
        rows = [register_row(item_to_row(item), as_text=True) for item in run.items]
        report = exporter.to_pdf(rows, run.month, run.year, company_name=company_name)

    return StreamingResponse(
        iter([report.content]),
        media_type=report.media_type,
        headers={"Content-Disposition": report.content_disposition},
    )
