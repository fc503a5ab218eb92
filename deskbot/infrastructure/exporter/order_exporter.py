"""
Order Exporter - Styled Excel Report of the Order Ledger
=========================================================

Writes one sheet:
- Header row (8 columns, bold on blue)
- One row per order, filled by status colour
- Summary block below: total orders, total revenue, count per status

The file name embeds the export date. Sending the file and deleting it
afterwards is the caller's job.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

import pandas as pd
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from ...domain.errors import BackendError
from ...domain.models import Order, OrderStatus, summarize_orders
from ...domain.order_input import format_date

logger = logging.getLogger(__name__)

HEADERS = [
    "Order ID",
    "Orderer Name",
    "Price",
    "Details",
    "Work Type",
    "Status",
    "Created Time",
    "Deadline",
]

SHEET_NAME = "Orders"

STATUS_FILLS = {
    OrderStatus.TODO: PatternFill("solid", start_color="FFF2CC", end_color="FFF2CC"),
    OrderStatus.ON_PROGRESS: PatternFill("solid", start_color="DDEBF7", end_color="DDEBF7"),
    OrderStatus.DONE: PatternFill("solid", start_color="E2EFDA", end_color="E2EFDA"),
    OrderStatus.CANCELED: PatternFill("solid", start_color="F8CBAD", end_color="F8CBAD"),
}
HEADER_FILL = PatternFill("solid", start_color="4472C4", end_color="4472C4")
HEADER_FONT = Font(bold=True, color="FFFFFF")
SUMMARY_FONT = Font(bold=True)

COLUMN_WIDTHS = [12, 22, 14, 40, 20, 14, 18, 14]


def _cell_text(value: str) -> str:
    """Drop control characters Excel cannot store."""
    return ILLEGAL_CHARACTERS_RE.sub("", value or "")


@dataclass(frozen=True)
class ExportResult:
    filename: str
    filepath: Path


class OrderExporter:
    """
    Usage:
        exporter = OrderExporter(Path("exports"))
        result = exporter.export(ledger.all(), ledger.summary())
        print(result.filepath)
    """

    def __init__(self, export_dir: Path, now: Callable[[], datetime] = datetime.now):
        self.export_dir = Path(export_dir)
        self._now = now

    def export(self, orders: List[Order], summary: Optional[dict] = None) -> ExportResult:
        """
        Render orders to an .xlsx file.

        Raises:
            BackendError: if the workbook cannot be written.
        """
        summary = summary or summarize_orders(orders)
        filename = f"orders_{self._now().strftime('%Y-%m-%d_%H%M%S')}.xlsx"
        filepath = self.export_dir / filename

        df = pd.DataFrame([self._to_row(o) for o in orders], columns=HEADERS)

        try:
            self.export_dir.mkdir(parents=True, exist_ok=True)
            with pd.ExcelWriter(filepath, engine="openpyxl") as writer:
                df.to_excel(writer, sheet_name=SHEET_NAME, index=False)
                sheet = writer.sheets[SHEET_NAME]
                self._style_sheet(sheet, orders)
                self._write_summary(sheet, len(orders), summary)
        except Exception as e:
            # openpyxl raises its own exception types (IllegalCharacterError, ...)
            logger.error("Export failed", extra={"meta": {"error": e, "path": filepath}})
            raise BackendError(f"Export failed: {e}") from e

        logger.info("Orders exported", extra={"meta": {"path": filepath, "count": len(orders)}})
        return ExportResult(filename=filename, filepath=filepath)

    def _to_row(self, order: Order) -> list:
        return [
            order.id,
            _cell_text(order.orderer_name),
            order.price,
            _cell_text(order.details),
            _cell_text(order.work),
            order.status.value,
            format_date(order.time, with_time=True),
            format_date(order.deadline),
        ]

    def _style_sheet(self, sheet, orders: List[Order]) -> None:
        for col, width in enumerate(COLUMN_WIDTHS, start=1):
            sheet.column_dimensions[get_column_letter(col)].width = width

        for cell in sheet[1]:
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.alignment = Alignment(horizontal="center", vertical="center")

        # Data rows start right below the header
        for row_idx, order in enumerate(orders, start=2):
            fill = STATUS_FILLS[order.status]
            for col in range(1, len(HEADERS) + 1):
                cell = sheet.cell(row=row_idx, column=col)
                cell.fill = fill
                cell.alignment = Alignment(vertical="top", wrap_text=True)
            sheet.cell(row=row_idx, column=3).number_format = "#,##0"

        sheet.freeze_panes = "A2"

    def _write_summary(self, sheet, order_count: int, summary: dict) -> None:
        # One blank row between data and summary
        row = order_count + 3

        sheet.cell(row=row, column=1, value="Summary").font = SUMMARY_FONT
        row += 1
        sheet.cell(row=row, column=1, value="Total Orders")
        sheet.cell(row=row, column=2, value=summary["total"])
        row += 1
        sheet.cell(row=row, column=1, value="Total Revenue")
        revenue = sheet.cell(row=row, column=2, value=summary["revenue"])
        revenue.number_format = "#,##0"
        row += 1

        for status in OrderStatus:
            label = sheet.cell(row=row, column=1, value=f"Status: {status.value}")
            label.fill = STATUS_FILLS[status]
            sheet.cell(row=row, column=2, value=summary["by_status"].get(status.value, 0))
            row += 1
