"""CSV export of loan history and the dashboard PDF report."""

from __future__ import annotations

import csv
import io
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from zoneinfo import ZoneInfo

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from ..core.config import settings
from ..core.statuses import LOAN_OVERDUE
from .loancalc import parse_iso

LOGGER = logging.getLogger(__name__)

PDF_FONT_FAMILY = "Helvetica"
HISTORY_COLUMNS = (
    "id",
    "device_id",
    "chromebook_model",
    "borrower_name",
    "borrower_ra",
    "borrower_email",
    "user_type",
    "purpose",
    "loan_type",
    "loan_date",
    "expected_return_date",
    "return_date",
    "returned_by_name",
    "returned_by_email",
    "status",
)
# Active-loan table: (header, key, width in mm).
LOAN_TABLE = (
    ("Device", "device_id", 22),
    ("Borrower", "borrower_name", 52),
    ("Purpose", "purpose", 46),
    ("Loaned", "loan_date", 30),
    ("Due", "expected_return_date", 30),
)


def export_history_csv(items: Sequence[Dict[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=HISTORY_COLUMNS, extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    for item in items:
        writer.writerow({column: "" if item.get(column) is None else item.get(column) for column in HISTORY_COLUMNS})
    return buffer.getvalue()


def _pdf_text(value: Any) -> str:
    # Core PDF fonts only cover latin-1.
    return str(value if value is not None else "").encode("latin-1", "replace").decode("latin-1")


def _local(value: Optional[str]) -> str:
    parsed = parse_iso(value)
    if parsed is None:
        return "-"
    return parsed.astimezone(ZoneInfo(settings.TZ)).strftime("%d/%m/%Y %H:%M")


def _fit(pdf: FPDF, text: str, width: float) -> str:
    if pdf.get_string_width(text) <= width - 2:
        return text
    while text and pdf.get_string_width(text + "...") > width - 2:
        text = text[:-1]
    return text + "..."


def _table_header(pdf: FPDF) -> None:
    pdf.set_font(PDF_FONT_FAMILY, "B", 9)
    pdf.set_fill_color(229, 231, 235)
    for header, _, width in LOAN_TABLE:
        pdf.cell(width, 7, header, border=1, fill=True)
    pdf.ln(7)
    pdf.set_font(PDF_FONT_FAMILY, "", 9)


def render_dashboard_pdf(
    stats: Dict[str, Any],
    history: Sequence[Dict[str, Any]],
    period_label: str,
) -> bytes:
    """Render key statistics and the open loans, flagging overdue ones."""

    pdf = FPDF(unit="mm", format="A4")
    pdf.set_auto_page_break(auto=False)
    pdf.add_page()
    effective_width = pdf.w - pdf.l_margin - pdf.r_margin
    bottom = pdf.h - 15

    pdf.set_font(PDF_FONT_FAMILY, "B", 16)
    pdf.cell(effective_width, 10, _pdf_text(f"{settings.APP_NAME} - Dashboard report"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    generated_at = datetime.now(timezone.utc).astimezone(ZoneInfo(settings.TZ))
    pdf.set_font(PDF_FONT_FAMILY, size=10)
    pdf.cell(
        effective_width,
        5,
        _pdf_text(f"Period: {period_label} | Generated: {generated_at.strftime('%d/%m/%Y %H:%M')}"),
        new_x=XPos.LMARGIN,
        new_y=YPos.NEXT,
    )
    pdf.ln(4)

    pdf.set_font(PDF_FONT_FAMILY, "B", 12)
    pdf.cell(effective_width, 6, "Key statistics", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_font(PDF_FONT_FAMILY, "", 11)
    lines: List[str] = [
        f"Total Chromebooks: {stats.get('total_chromebooks', 0)}",
        f"Available: {stats.get('available_chromebooks', 0)}",
        f"Active loans: {stats.get('total_active', 0)}",
        f"Usage rate: {stats.get('usage_rate', 0):.0f}%",
        f"Peak occupancy: {stats.get('max_occupancy_rate', 0):.0f}%",
        f"Average usage time: {round(stats.get('average_usage_minutes', 0))} min",
        f"Completion rate: {stats.get('completion_rate', 0):.0f}%",
    ]
    for user_type, count in (stats.get("loans_by_user_type") or {}).items():
        lines.append(f"Loans by {user_type}: {count}")
    for line in lines:
        pdf.multi_cell(effective_width, 5.5, _pdf_text(line), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(4)

    active = [item for item in history if not item.get("return_date")]
    pdf.set_font(PDF_FONT_FAMILY, "B", 12)
    pdf.cell(effective_width, 6, _pdf_text(f"Active loans ({len(active)})"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    if not active:
        pdf.set_font(PDF_FONT_FAMILY, "I", 10)
        pdf.cell(effective_width, 6, "No active loans.", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    else:
        _table_header(pdf)
        for item in active:
            if pdf.get_y() + 7 > bottom:
                pdf.add_page()
                _table_header(pdf)
            overdue = item.get("status") == LOAN_OVERDUE
            if overdue:
                pdf.set_text_color(185, 28, 28)
            for _, key, width in LOAN_TABLE:
                value = item.get(key)
                if key in ("loan_date", "expected_return_date"):
                    value = _local(value)
                if key == "device_id" and overdue:
                    value = f"{value} (!)"
                pdf.cell(width, 7, _fit(pdf, _pdf_text(value), width), border=1)
            pdf.ln(7)
            pdf.set_text_color(0, 0, 0)
        pdf.set_font(PDF_FONT_FAMILY, "I", 8)
        pdf.cell(effective_width, 5, "(!) overdue", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    output = pdf.output()
    LOGGER.info("dashboard.pdf_rendered", extra={"extra_data": {"active": len(active)}})
    return bytes(output)
