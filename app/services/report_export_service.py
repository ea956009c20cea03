"""
PeopleDesk HRM - Report Export Service

Renders attendance and payroll report rows as Excel or PDF documents.

Exporters only lay out values they are given; hours, statuses and amounts
are computed and formatted upstream. Numeric cells in the payroll money
columns get a thousands number format. An empty row list produces a valid file holding the
header only.
"""

import io
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

# PDF Generation (reportlab)
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import (
    SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer, HRFlowable
)

# Excel Generation (openpyxl)
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment
from openpyxl.utils import get_column_letter

from app.config import settings

logger = logging.getLogger(__name__)


EXCEL_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MEDIA_TYPE = "application/pdf"

ATTENDANCE_COLUMNS = [
    ("Employee ID", "employee_id"),
    ("Name", "name"),
    ("Designation", "designation"),
    ("Date", "date"),
    ("Check In", "check_in"),
    ("Check Out", "check_out"),
    ("Hours", "hours"),
    ("Status", "status"),
]

PAYROLL_COLUMNS = [
    ("Emp ID", "employee_id"),
    ("Employee Name", "name"),
    ("Gross Salary", "gross_salary"),
    ("LWP Deduction", "lwp_deduction"),
    ("Other Deductions", "other_deductions"),
    ("Total Deductions", "total_deductions"),
    ("Net Salary", "net_salary"),
]

PAYROLL_MONEY_KEYS = {
    "gross_salary", "lwp_deduction", "other_deductions", "total_deductions", "net_salary",
}


@dataclass(frozen=True)
class ExportedReport:
    """Rendered document ready to stream."""
    content: bytes
    filename: str
    media_type: str

    @property
    def content_disposition(self) -> str:
        return f'attachment; filename="{self.filename}"'


class _ReportExporter:
    """Shared reportlab styles and openpyxl header layout."""

    header_fill = PatternFill(start_color="2D3748", end_color="2D3748", fill_type="solid")
    header_font = Font(bold=True, size=10, color="FFFFFF")
    title_font = Font(bold=True, size=14)

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        self.styles.add(ParagraphStyle(
            name='ReportTitle',
            parent=self.styles['Heading1'],
            fontSize=16,
            alignment=TA_CENTER,
            spaceAfter=12,
            textColor=colors.HexColor("#1a365d")
        ))
        self.styles.add(ParagraphStyle(
            name='ReportSubtitle',
            parent=self.styles['Heading2'],
            fontSize=11,
            alignment=TA_CENTER,
            spaceAfter=8,
            textColor=colors.HexColor("#4a5568")
        ))
        self.styles.add(ParagraphStyle(
            name='Footer',
            parent=self.styles['Normal'],
            fontSize=8,
            alignment=TA_CENTER,
            textColor=colors.HexColor("#718096")
        ))

    def _write_sheet(
        self,
        title: str,
        subtitle: Optional[str],
        headers: List[str],
        body: List[List[Any]],
        money_columns: Sequence[int] = (),
    ) -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = title[:31]

        ws['A1'] = title
        ws['A1'].font = self.title_font
        if subtitle:
            ws['A2'] = subtitle

        header_row = 4
        for col, header in enumerate(headers, 1):
            cell = ws.cell(row=header_row, column=col, value=header)
            cell.fill = self.header_fill
            cell.font = self.header_font
            cell.alignment = Alignment(horizontal="center")

        for offset, values in enumerate(body, 1):
            for col, value in enumerate(values, 1):
                cell = ws.cell(row=header_row + offset, column=col, value=value)
                if col - 1 in money_columns:
                    cell.number_format = '#,##0.00'

        for col, header in enumerate(headers, 1):
            widest = max([len(header)] + [len(str(values[col - 1])) for values in body])
            ws.column_dimensions[get_column_letter(col)].width = min(widest + 4, 40)

        buffer = io.BytesIO()
        wb.save(buffer)
        buffer.seek(0)
        return buffer.read()

    def _write_pdf(
        self,
        title: str,
        subtitle: Optional[str],
        headers: List[str],
        body: List[List[str]],
        right_aligned_from: Optional[int] = None,
    ) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=landscape(A4),
            rightMargin=0.5*inch,
            leftMargin=0.5*inch,
            topMargin=0.5*inch,
            bottomMargin=0.5*inch
        )

        elements = [Paragraph(title, self.styles['ReportTitle'])]
        if subtitle:
            elements.append(Paragraph(subtitle, self.styles['ReportSubtitle']))
        elements.append(Spacer(1, 12))

        table = Table([headers] + body, repeatRows=1)

        style_commands = [
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor("#2d3748")),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 6),
            ('TOPPADDING', (0, 0), (-1, 0), 6),
            ('TOPPADDING', (0, 1), (-1, -1), 3),
            ('BOTTOMPADDING', (0, 1), (-1, -1), 3),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor("#cbd5e0")),
        ]
        if body:
            style_commands.append(
                ('ROWBACKGROUNDS', (0, 1), (-1, len(body)), [colors.white, colors.HexColor("#f7fafc")])
            )
        if right_aligned_from is not None:
            style_commands.append(('ALIGN', (right_aligned_from, 1), (-1, -1), 'RIGHT'))
        table.setStyle(TableStyle(style_commands))
        elements.append(table)

        elements.append(Spacer(1, 20))
        elements.append(HRFlowable(width="100%", color=colors.gray))
        elements.append(Paragraph(
            f"Generated by {settings.app_name} on {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M')} UTC",
            self.styles['Footer']
        ))

        doc.build(elements)
        buffer.seek(0)
        return buffer.read()


class AttendanceReportExporter(_ReportExporter):
    """Attendance report for a date range."""

    filename_stem = "attendance"

    def _body(self, rows: Sequence[Dict[str, Any]]) -> List[List[str]]:
        return [[str(row.get(key, "-")) for _, key in ATTENDANCE_COLUMNS] for row in rows]

    def to_excel(self, rows: Sequence[Dict[str, Any]], period: Optional[str] = None) -> ExportedReport:
        content = self._write_sheet(
            "Attendance Report",
            period,
            [label for label, _ in ATTENDANCE_COLUMNS],
            self._body(rows),
        )
        logger.info(f"Rendered attendance workbook with {len(rows)} row(s)")
        return ExportedReport(content, f"{self.filename_stem}.xlsx", EXCEL_MEDIA_TYPE)

    def to_pdf(self, rows: Sequence[Dict[str, Any]], period: Optional[str] = None) -> ExportedReport:
        content = self._write_pdf(
            "Attendance Report",
            period,
            [label for label, _ in ATTENDANCE_COLUMNS],
            self._body(rows),
        )
        logger.info(f"Rendered attendance PDF with {len(rows)} row(s)")
        return ExportedReport(content, f"{self.filename_stem}.pdf", PDF_MEDIA_TYPE)


class PayrollReportExporter(_ReportExporter):
    """Payroll register of one month."""

    def _filename(self, month: int, year: int, extension: str) -> str:
        return f"Payroll-{year}-{month:02d}.{extension}"

    def _subtitle(self, month: int, year: int, company_name: Optional[str]) -> str:
        period = datetime(year, month, 1).strftime("%B %Y")
        label = f"{period} (amounts in {settings.report_currency_label})"
        return f"{company_name} - {label}" if company_name else label

    def _body(self, rows: Sequence[Dict[str, Any]], as_text: bool = False) -> List[List[Any]]:
        return [
            [str(row[key]) if as_text else row[key] for _, key in PAYROLL_COLUMNS]
            for row in rows
        ]

    def to_excel(
        self,
        rows: Sequence[Dict[str, Any]],
        month: int,
        year: int,
        company_name: Optional[str] = None,
    ) -> ExportedReport:
        money_columns = [
            index for index, (_, key) in enumerate(PAYROLL_COLUMNS) if key in PAYROLL_MONEY_KEYS
        ]
        content = self._write_sheet(
            "Payroll",
            self._subtitle(month, year, company_name),
            [label for label, _ in PAYROLL_COLUMNS],
            self._body(rows),
            money_columns=money_columns,
        )
        return ExportedReport(content, self._filename(month, year, "xlsx"), EXCEL_MEDIA_TYPE)

    def to_pdf(
        self,
        rows: Sequence[Dict[str, Any]],
        month: int,
        year: int,
        company_name: Optional[str] = None,
    ) -> ExportedReport:
        content = self._write_pdf(
            "Payroll Register",
            self._subtitle(month, year, company_name),
            [label for label, _ in PAYROLL_COLUMNS],
            self._body(rows, as_text=True),
            right_aligned_from=2,
        )
        return ExportedReport(content, self._filename(month, year, "pdf"), PDF_MEDIA_TYPE)
