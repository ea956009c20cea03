"""
PeopleDesk HRM - Report Export Tests

Workbook and PDF rendering of the attendance and payroll reports.
"""

import io
import uuid
from decimal import Decimal

import pytest
from openpyxl import load_workbook

from app.services.hr_calculators import PayrollCalculator, SalariedEmployee
from app.services.payroll_service import register_row
from app.services.report_export_service import (
    ATTENDANCE_COLUMNS,
    EXCEL_MEDIA_TYPE,
    PAYROLL_COLUMNS,
    PDF_MEDIA_TYPE,
    AttendanceReportExporter,
    PayrollReportExporter,
)


def _payroll_row(as_text=False):
    employee = SalariedEmployee(
        user_id=uuid.uuid4(),
        employee_code="EMP-001",
        first_name="Bob",
        last_name="Builder",
        designation="Engineer",
        basic=Decimal("15000.00"),
        hra=Decimal("6000.00"),
        da=Decimal("3000.00"),
        special_allowance=Decimal("6000.00"),
        gross_salary=Decimal("30000.00"),
        pf_deduction=Decimal("1800.00"),
        tax=Decimal("1200.00"),
    )
    return register_row(PayrollCalculator.compute_row(employee, lwp_days=2), as_text=as_text)


ATTENDANCE_ROW = {
    "employee_id": "EMP-001",
    "name": "Bob Builder",
    "designation": "Engineer",
    "date": "2025-03-10",
    "check_in": "09:00",
    "check_out": "18:00",
    "hours": "9.00",
    "status": "PRESENT",
}


def _header_row(content):
    sheet = load_workbook(io.BytesIO(content)).active
    return sheet, [cell.value for cell in sheet[4]]


class TestAttendanceReportExporter:

    def test_empty_workbook_has_header_only(self):
        report = AttendanceReportExporter().to_excel([])

        sheet, headers = _header_row(report.content)
        assert headers == [label for label, _ in ATTENDANCE_COLUMNS]
        assert sheet.max_row == 4
        assert report.filename == "attendance.xlsx"
        assert report.media_type == EXCEL_MEDIA_TYPE

    def test_workbook_rows_follow_columns(self):
        report = AttendanceReportExporter().to_excel([ATTENDANCE_ROW], period="2025-03-10 to 2025-03-10")

        sheet, _ = _header_row(report.content)
        assert [cell.value for cell in sheet[5]] == [ATTENDANCE_ROW[key] for _, key in ATTENDANCE_COLUMNS]
        assert sheet["A2"].value == "2025-03-10 to 2025-03-10"

    @pytest.mark.parametrize("rows", [[], [ATTENDANCE_ROW]])
    def test_pdf_rendered(self, rows):
        report = AttendanceReportExporter().to_pdf(rows)

        assert report.content.startswith(b"%PDF")
        assert report.filename == "attendance.pdf"
        assert report.media_type == PDF_MEDIA_TYPE
        assert report.content_disposition == 'attachment; filename="attendance.pdf"'


class TestPayrollReportExporter:

    def test_workbook_money_cells_are_numbers(self):
        report = PayrollReportExporter().to_excel([_payroll_row()], 3, 2025, company_name="Acme Corp")

        sheet, headers = _header_row(report.content)
        assert headers == [label for label, _ in PAYROLL_COLUMNS]
        values = [cell.value for cell in sheet[5]]
        assert values[:2] == ["EMP-001", "Bob Builder"]
        assert values[2:] == [30000.0, 2000.0, 3000.0, 5000.0, 25000.0]
        assert sheet["C5"].number_format == "#,##0.00"
        assert sheet["A2"].value.startswith("Acme Corp - March 2025")
        assert report.filename == "Payroll-2025-03.xlsx"

    def test_empty_register_has_header_only(self):
        report = PayrollReportExporter().to_excel([], 11, 2025)

        sheet, _ = _header_row(report.content)
        assert sheet.max_row == 4
        assert report.filename == "Payroll-2025-11.xlsx"

    def test_pdf_filename_zero_pads_month(self):
        report = PayrollReportExporter().to_pdf([_payroll_row()], 3, 2025)

        assert report.content.startswith(b"%PDF")
        assert report.filename == "Payroll-2025-03.pdf"
        assert report.media_type == PDF_MEDIA_TYPE

    def test_pdf_rendered_from_formatted_rows(self):
        report = PayrollReportExporter().to_pdf([_payroll_row(as_text=True)], 3, 2025, company_name="Acme Corp")

        assert report.content.startswith(b"%PDF")

    def test_workbook_writes_preformatted_values_unchanged(self):
        row = _payroll_row(as_text=True)
        report = PayrollReportExporter().to_excel([row], 3, 2025)

        sheet, _ = _header_row(report.content)
        assert sheet["C5"].value == "30,000.00"
        assert sheet["G5"].value == "25,000.00"

    def test_pdf_table_cells_are_caller_values(self):
        row = dict(_payroll_row(as_text=True), net_salary="INR 25,000.00")

        body = PayrollReportExporter()._body([row], as_text=True)

        assert body == [["EMP-001", "Bob Builder", "30,000.00", "2,000.00", "3,000.00", "5,000.00", "INR 25,000.00"]]


class TestPayrollRegisterRows:
    """Display rows built before export."""

    def test_text_rows_carry_formatted_amounts(self):
        row = _payroll_row(as_text=True)

        assert row == {
            "employee_id": "EMP-001",
            "name": "Bob Builder",
            "gross_salary": "30,000.00",
            "lwp_deduction": "2,000.00",
            "other_deductions": "3,000.00",
            "total_deductions": "5,000.00",
            "net_salary": "25,000.00",
        }

    def test_workbook_rows_carry_numbers(self):
        row = _payroll_row()

        assert row["gross_salary"] == 30000.0
        assert isinstance(row["net_salary"], float)
