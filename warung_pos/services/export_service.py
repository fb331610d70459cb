from __future__ import annotations

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from warung_pos.config import EXPORTS_DIR, OUTLET_DISPLAY_NAME
from warung_pos.constants import PAYMENT_LABELS, PAYMENT_TYPES
from warung_pos.models.cash_record import DailyRevenueReport

logger = logging.getLogger(__name__)

MONEY_FORMAT = '"Rp" #,##0'


def payment_rows(report: DailyRevenueReport) -> list[tuple[str, str, int, str]]:
    """(payment type, label, revenue, remark) for every known payment type."""
    remarks = report.reconciliation.remarks
    return [
        (p, PAYMENT_LABELS[p], report.revenue_for(p), remarks.get(p, ""))
        for p in PAYMENT_TYPES
    ]


def summary_rows(report: DailyRevenueReport) -> list[tuple[str, int | str]]:
    rec = report.reconciliation
    return [
        ("Total Revenue", report.total_revenue),
        ("Total Revenue (excl. Cash)", report.total_revenue_excl_cash),
        ("Total Debit", report.total_debit),
        ("Drink Revenue", report.total_drink_revenue),
        ("Previous Day Balance", rec.previous_day_balance),
        ("Cash Revenue", report.cash_revenue),
        ("Cash Deposit", rec.cash_deposit or 0),
        ("Adjustment", rec.adjustment),
        ("Remaining Balance", rec.remaining_balance),
        ("Status", rec.state.value),
        ("Submitted By", rec.submitted_by_cashier_name if rec.is_locked and rec.submitted_by_cashier_name else "-"),
    ]


class ExportService:
    def __init__(self, out_dir: Optional[Path | str] = None):
        self.out_dir = Path(out_dir) if out_dir else Path(EXPORTS_DIR)

    def _default_path(self, report: DailyRevenueReport, ext: str) -> Path:
        self.out_dir.mkdir(parents=True, exist_ok=True)
        return self.out_dir / f"daily_revenue_{report.outlet_id}_{report.report_date.isoformat()}.{ext}"

    def export_daily_report_csv(self, report: DailyRevenueReport, out_path: Path | None = None) -> Path:
        out_path = Path(out_path) if out_path else self._default_path(report, "csv")
        with open(out_path, "w", newline="", encoding="utf-8") as f:
            w = csv.writer(f)
            w.writerow(["payment_type", "label", "revenue", "remark"])
            for row in payment_rows(report):
                w.writerow(row)
            w.writerow([])
            for label, value in summary_rows(report):
                w.writerow([label, "", value, ""])
        logger.info(f"Daily report exported to {out_path}")
        return out_path

    def export_daily_report_xlsx(self, report: DailyRevenueReport, out_path: Path | None = None) -> Path:
        out_path = Path(out_path) if out_path else self._default_path(report, "xlsx")

        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Daily Revenue"

        now = datetime.now().strftime("%Y-%m-%d %H:%M")
        outlet = report.outlet_name or OUTLET_DISPLAY_NAME

        # ── Styles ────────────────────────────────────────────────────────────
        title_fill = PatternFill("solid", fgColor="6B4B3A")
        title_font = Font(bold=True, size=14, color="FFFFFF")
        subtitle_font = Font(size=10, color="6E6E6E")
        header_fill = PatternFill("solid", fgColor="EADFD2")
        header_font = Font(bold=True, size=10, color="1F1F1F")
        total_fill = PatternFill("solid", fgColor="F0FAF4")
        border_side = Side(style="thin", color="D5C7B8")
        thin_border = Border(bottom=border_side)
        center_align = Alignment(horizontal="center", vertical="center")
        right_align = Alignment(horizontal="right", vertical="center")

        # ── Title block ───────────────────────────────────────────────────────
        ws.merge_cells("A1:C1")
        ws["A1"] = f"{outlet} - Daily Revenue"
        ws["A1"].font = title_font
        ws["A1"].fill = title_fill
        ws["A1"].alignment = center_align
        ws.row_dimensions[1].height = 28

        ws.merge_cells("A2:C2")
        ws["A2"] = f"Date: {report.report_date.isoformat()}  |  Generated: {report.generated_at or now}"
        ws["A2"].font = subtitle_font
        ws["A2"].alignment = center_align

        # ── Column headers ────────────────────────────────────────────────────
        for col_idx, h in enumerate(["Payment Type", "Revenue", "Remark"], start=1):
            cell = ws.cell(row=4, column=col_idx, value=h)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = center_align if col_idx > 1 else Alignment(horizontal="left")
            cell.border = thin_border

        # ── Payment rows ──────────────────────────────────────────────────────
        row_idx = 5
        for _, label, revenue, remark in payment_rows(report):
            row_fill = PatternFill("solid", fgColor="FFFFFF" if (row_idx % 2 == 0) else "FAF7F4")
            ws.cell(row=row_idx, column=1, value=label).fill = row_fill
            c_rev = ws.cell(row=row_idx, column=2, value=revenue)
            c_rev.number_format = MONEY_FORMAT
            c_rev.alignment = right_align
            c_rev.fill = row_fill
            ws.cell(row=row_idx, column=3, value=remark).fill = row_fill
            row_idx += 1

        # ── Summary ───────────────────────────────────────────────────────────
        row_idx += 1
        for label, value in summary_rows(report):
            c_label = ws.cell(row=row_idx, column=1, value=label)
            c_label.font = Font(bold=True, size=10)
            c_label.fill = total_fill
            c_val = ws.cell(row=row_idx, column=2, value=value)
            c_val.alignment = right_align
            c_val.fill = total_fill
            if isinstance(value, int):
                c_val.number_format = MONEY_FORMAT
            row_idx += 1

        ws.column_dimensions["A"].width = 28
        ws.column_dimensions["B"].width = 20
        ws.column_dimensions["C"].width = 36
        ws.freeze_panes = "A5"

        wb.save(out_path)
        logger.info(f"Daily report exported to {out_path}")
        return out_path
