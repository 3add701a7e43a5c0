from __future__ import annotations

from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from carehours.models import BalanceStatus
from carehours.schemas import UserBalanceReport, WorkerBalanceReport

USER_HEADERS = [
    "User ID",
    "User",
    "Surname",
    "Monthly Hours",
    "Assigned Hours",
    "Used Hours",
    "Remaining Hours",
    "Excess Hours",
    "Worker Assigned Hours",
    "Worker Used Hours",
    "Working Days",
    "Festive Days",
    "Festive Hours",
    "Percentage",
    "Status",
]

ASSIGNMENT_HEADERS = [
    "User ID",
    "Assignment ID",
    "Worker",
    "Type",
    "Assigned Hours",
    "Used Hours",
]

HEADER_FILL = PatternFill(fill_type="solid", fgColor="0B4F73")
META_LABEL_FILL = PatternFill(fill_type="solid", fgColor="EAF4F9")
META_VALUE_FILL = PatternFill(fill_type="solid", fgColor="F8FCFF")
ZEBRA_FILL = PatternFill(fill_type="solid", fgColor="F7FBFE")
WARNING_FILL = PatternFill(fill_type="solid", fgColor="FFF3CD")
ALERT_FILL = PatternFill(fill_type="solid", fgColor="FDE2E4")
SUCCESS_FILL = PatternFill(fill_type="solid", fgColor="E6F4EA")

HEADER_FONT = Font(bold=True, color="FFFFFF")
BOLD_FONT = Font(bold=True, color="0F172A")
TITLE_FONT = Font(bold=True, color="0B4F73", size=14)
MUTED_FONT = Font(color="334155")

THIN_SIDE = Side(style="thin", color="D5E2EC")
THIN_BORDER = Border(left=THIN_SIDE, right=THIN_SIDE, top=THIN_SIDE, bottom=THIN_SIDE)

STATUS_FILLS = {
    BalanceStatus.PERFECT.value: SUCCESS_FILL,
    BalanceStatus.DEFICIT.value: WARNING_FILL,
    BalanceStatus.EXCESS.value: ALERT_FILL,
}


def _style_header(ws: Worksheet, row: int = 1) -> None:
    for cell in ws[row]:
        if cell.value is None:
            continue
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = THIN_BORDER


def _auto_width(ws: Worksheet) -> None:
    for column_cells in ws.iter_cols(min_row=1, max_row=ws.max_row, min_col=1, max_col=ws.max_column):
        max_len = 0
        col_letter = get_column_letter(column_cells[0].column)
        for cell in column_cells:
            if cell.coordinate in ws.merged_cells:
                continue
            value = "" if cell.value is None else str(cell.value)
            max_len = max(max_len, len(value))
        ws.column_dimensions[col_letter].width = min(max_len + 2, 45)


def _merge_title(ws: Worksheet, row: int, text: str, *, width: int) -> None:
    ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=width)
    cell = ws.cell(row=row, column=1, value=text)
    cell.font = TITLE_FONT
    cell.alignment = Alignment(horizontal="left", vertical="center")


def _style_metadata_rows(ws: Worksheet, *, start_row: int, end_row: int) -> None:
    for row_idx in range(start_row, end_row + 1):
        label_cell = ws.cell(row=row_idx, column=1)
        value_cell = ws.cell(row=row_idx, column=2)
        label_cell.font = BOLD_FONT
        label_cell.fill = META_LABEL_FILL
        label_cell.alignment = Alignment(horizontal="left", vertical="center")
        label_cell.border = THIN_BORDER

        value_cell.font = MUTED_FONT
        value_cell.fill = META_VALUE_FILL
        value_cell.alignment = Alignment(horizontal="left", vertical="center")
        value_cell.border = THIN_BORDER


def _style_table_region(ws: Worksheet, *, header_row: int, data_start_row: int, data_end_row: int, width: int) -> None:
    ws.freeze_panes = f"A{header_row + 1}"
    if data_end_row < data_start_row:
        return

    ws.auto_filter.ref = f"A{header_row}:{get_column_letter(width)}{data_end_row}"
    for row_idx in range(data_start_row, data_end_row + 1):
        for col_idx in range(1, width + 1):
            cell = ws.cell(row=row_idx, column=col_idx)
            cell.border = THIN_BORDER
            if row_idx % 2 == 0:
                cell.fill = ZEBRA_FILL
            if isinstance(cell.value, (int, float)):
                cell.alignment = Alignment(horizontal="center", vertical="center")
            else:
                cell.alignment = Alignment(horizontal="left", vertical="center")

        status_cell = ws.cell(row=row_idx, column=width)
        status_fill = STATUS_FILLS.get(str(status_cell.value))
        if status_fill is not None:
            status_cell.fill = status_fill
            status_cell.font = BOLD_FONT


def _user_row(item: UserBalanceReport) -> list[object]:
    return [
        item.entity_id,
        item.entity_name,
        item.user_surname or "",
        item.monthly_hours,
        item.assigned_hours,
        item.used_hours,
        item.remaining_hours,
        item.excess_hours,
        item.worker_assigned_hours or 0,
        item.worker_used_hours or 0,
        item.holiday_info.working_days,
        item.holiday_info.total_holidays,
        item.holiday_info.holiday_hours,
        item.percentage,
        item.status.value,
    ]


def _write_summary_sheet(ws: Worksheet, report: WorkerBalanceReport) -> None:
    width = len(USER_HEADERS)
    _merge_title(ws, 1, f"Monthly balance - {report.worker_name}", width=width)

    meta_start = 3
    ws.cell(row=3, column=1, value="Worker")
    ws.cell(row=3, column=2, value=f"{report.worker_name} ({report.worker_id})")
    ws.cell(row=4, column=1, value="Period")
    ws.cell(row=4, column=2, value=f"{report.year}-{report.month:02d}")
    ws.cell(row=5, column=1, value="Overall status")
    ws.cell(row=5, column=2, value=report.overall_status.value)
    ws.cell(row=6, column=1, value="Overall percentage")
    ws.cell(row=6, column=2, value=report.overall_percentage)
    _style_metadata_rows(ws, start_row=meta_start, end_row=6)

    header_row = 8
    for col_idx, header in enumerate(USER_HEADERS, start=1):
        ws.cell(row=header_row, column=col_idx, value=header)
    _style_header(ws, header_row)

    row_idx = header_row
    for item in report.user_balances:
        row_idx += 1
        for col_idx, value in enumerate(_user_row(item), start=1):
            ws.cell(row=row_idx, column=col_idx, value=value)
    _style_table_region(ws, header_row=header_row, data_start_row=header_row + 1, data_end_row=row_idx, width=width)

    totals_row = row_idx + 2
    totals = [
        "Totals",
        "",
        "",
        report.total_monthly_hours,
        report.total_assigned_hours,
        report.total_used_hours,
        report.total_remaining_hours,
        report.total_excess_hours,
        report.total_worker_assigned_hours,
        report.total_worker_used_hours,
    ]
    for col_idx, value in enumerate(totals, start=1):
        cell = ws.cell(row=totals_row, column=col_idx, value=value)
        cell.font = BOLD_FONT
        cell.fill = META_LABEL_FILL
        cell.border = THIN_BORDER

    if report.skipped_user_ids:
        note = ws.cell(
            row=totals_row + 2,
            column=1,
            value="Skipped users: " + ", ".join(str(user_id) for user_id in report.skipped_user_ids),
        )
        note.fill = ALERT_FILL
        note.font = Font(bold=True, color="9F1239")
    _auto_width(ws)


def _write_assignments_sheet(ws: Worksheet, report: WorkerBalanceReport) -> None:
    ws.append(ASSIGNMENT_HEADERS)
    _style_header(ws, 1)
    for item in report.user_balances:
        for assignment in item.assignments:
            ws.append(
                [
                    item.entity_id,
                    assignment.assignment_id,
                    assignment.worker_name or "",
                    assignment.assignment_type or "",
                    assignment.assigned_hours,
                    assignment.used_hours,
                ]
            )
    ws.freeze_panes = "A2"
    for row in ws.iter_rows(min_row=2, max_row=ws.max_row):
        for cell in row:
            cell.border = THIN_BORDER
    _auto_width(ws)


def build_worker_balance_xlsx_bytes(report: WorkerBalanceReport) -> bytes:
    wb = Workbook()
    summary = wb.active
    summary.title = "Balance"
    _write_summary_sheet(summary, report)
    _write_assignments_sheet(wb.create_sheet("Assignments"), report)

    stream = BytesIO()
    wb.save(stream)
    return stream.getvalue()
