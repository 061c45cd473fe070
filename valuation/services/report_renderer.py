"""PDF rendering of a valuation report."""
from __future__ import annotations

import io
import logging
from datetime import datetime, timezone
from typing import List
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from valuation.core.errors import UpstreamError
from valuation.core.line_items import (
    AGGREGATE_RATIOS,
    CONSTRUCTION_SECTIONS,
    LINE_ITEMS,
    construction_key,
)
from valuation.core.record import ValuationRecord
from valuation.services.field_calculator import format_number, valuation_total

logger = logging.getLogger(__name__)

PAGE_MARGIN = 18 * mm
CONTENT_WIDTH = A4[0] - (PAGE_MARGIN * 2)

styles = getSampleStyleSheet()

TITLE_STYLE = ParagraphStyle(
    name="ReportTitle",
    parent=styles["Title"],
    fontName="Helvetica-Bold",
    fontSize=16,
    leading=20,
    alignment=0,
    spaceAfter=10,
)

HEADING_STYLE = ParagraphStyle(
    name="SectionHeading",
    fontName="Helvetica-Bold",
    fontSize=11,
    leading=14,
    spaceBefore=4,
    spaceAfter=6,
    keepWithNext=True,
)

BODY_STYLE = ParagraphStyle(
    name="BodyText",
    fontName="Helvetica",
    fontSize=9,
    leading=12,
    wordWrap="CJK",
    splitLongWords=True,
)

LABEL_STYLE = ParagraphStyle(
    name="LabelText",
    parent=BODY_STYLE,
    fontName="Helvetica-Bold",
)

AGGREGATE_LABELS = {
    "fairMarketValue": "Fair Market Value",
    "realizableValue": "Realizable Value (90%)",
    "distressValue": "Distress Value (80%)",
    "insurableValue": "Insurable Value (35%)",
}

DIRECTION_LABELS = [
    ("north1", "North (as per document)"),
    ("east1", "East (as per document)"),
    ("south1", "South (as per document)"),
    ("west1", "West (as per document)"),
    ("north2", "North (as per site)"),
    ("east2", "East (as per site)"),
    ("south2", "South (as per site)"),
    ("west2", "West (as per site)"),
]

_BASE_TABLE_STYLE = [
    ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
    ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
    ("FONTSIZE", (0, 0), (-1, -1), 9),
    ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
    ("LEFTPADDING", (0, 0), (-1, -1), 4),
    ("RIGHTPADDING", (0, 0), (-1, -1), 4),
    ("TOPPADDING", (0, 0), (-1, -1), 3),
    ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
]


def _para(value, style: ParagraphStyle = BODY_STYLE) -> Paragraph:
    text = escape(str(value or "").strip()).replace("\n", "<br/>")
    return Paragraph(text or "-", style)


def _choice(record: ValuationRecord, key: str, custom_key: str) -> str:
    value = record.get(key)
    return record.get(custom_key) if value.strip().lower() == "other" else value


def _kv_table(rows: List[List[str]]) -> Table:
    table = Table(
        [[_para(label, LABEL_STYLE), _para(value)] for label, value in rows],
        colWidths=[60 * mm, CONTENT_WIDTH - 60 * mm],
        hAlign="LEFT",
    )
    table.setStyle(TableStyle(_BASE_TABLE_STYLE + [("BACKGROUND", (0, 0), (-1, -1), colors.whitesmoke)]))
    return table


def _grid(rows: List[List[str]], col_widths: List[float]) -> Table:
    formatted = [
        [_para(cell, LABEL_STYLE if idx == 0 else BODY_STYLE) for cell in row]
        for idx, row in enumerate(rows)
    ]
    table = Table(formatted, colWidths=col_widths, repeatRows=1, hAlign="LEFT")
    table.setStyle(TableStyle(_BASE_TABLE_STYLE))
    return table


class ReportRenderer:
    def generate(self, record: ValuationRecord) -> bytes:
        """Render the record as a PDF document and return its bytes."""
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=PAGE_MARGIN,
            rightMargin=PAGE_MARGIN,
            topMargin=PAGE_MARGIN,
            bottomMargin=PAGE_MARGIN,
            title=f"Valuation Report {record.id}",
        )
        try:
            doc.build(self._story(record))
        except Exception as e:
            logger.exception("report rendering failed", extra={"record_id": record.id})
            raise UpstreamError(f"Could not render valuation report: {e}") from e
        return buffer.getvalue()

    def _story(self, record: ValuationRecord) -> List:
        story: List = [Paragraph("Property Valuation Report", TITLE_STYLE)]

        story.append(
            _kv_table(
                [
                    ["Report ID", record.id],
                    ["Status", record.status.value],
                    ["Prepared By", record.created_by],
                    ["Last Updated By", f"{record.last_updated_by or '-'} ({record.last_updated_by_role or '-'})"],
                    ["Generated At (UTC)", datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M")],
                ]
            )
        )
        story.append(Spacer(1, 8))

        story.append(Paragraph("1. Client & Bank Details", HEADING_STYLE))
        story.append(
            _kv_table(
                [
                    ["Client Name", record.get("clientName")],
                    ["Mobile Number", record.get("mobileNumber")],
                    ["Address", record.get("address")],
                    ["Bank", _choice(record, "bankName", "customBankName")],
                    ["City", _choice(record, "city", "customCity")],
                    ["DSA", _choice(record, "dsa", "customDsa")],
                    ["Engineer", _choice(record, "engineerName", "customEngineerName")],
                    ["Payment Collected", record.get("payment")],
                    ["Collected By", record.get("collectedBy")],
                ]
            )
        )
        story.append(Spacer(1, 8))

        story.append(Paragraph("2. Location", HEADING_STYLE))
        location_rows = [
            ["Latitude", record.get("latitude")],
            ["Longitude", record.get("longitude")],
        ]
        location_rows += [[label, record.get(key)] for key, label in DIRECTION_LABELS]
        story.append(_kv_table(location_rows))
        story.append(Spacer(1, 8))

        story.append(Paragraph("3. Valuation", HEADING_STYLE))
        item_rows = [["Item", "Qty", "Rate", "Estimated Value"]]
        for item in LINE_ITEMS:
            item_rows.append(
                [item.label, record.get(item.quantity_key), record.get(item.rate_key), record.get(item.value_key)]
            )
        total, rounded = valuation_total(record)
        item_rows.append(["Total", "", "", format_number(total) if total else ""])
        item_rows.append(["Round figure", "", "", format_number(rounded) if rounded else ""])
        story.append(_grid(item_rows, [70 * mm, 25 * mm, 30 * mm, CONTENT_WIDTH - 125 * mm]))
        story.append(Spacer(1, 6))
        story.append(_kv_table([[AGGREGATE_LABELS[key], record.get(key)] for key in AGGREGATE_RATIOS]))
        story.append(Spacer(1, 8))

        cost_rows = [["Section", "Area (SMT)", "Area (SYD)", "Rate / SYD", "Value"]]
        for section in CONSTRUCTION_SECTIONS:
            values = [record.get(construction_key(section, p)) for p in ("areaSMT", "areaSYD", "ratePerSYD", "value")]
            if any(values):
                cost_rows.append([section] + values)
        if len(cost_rows) > 1:
            cost_rows.append(
                [
                    "Total",
                    record.get(construction_key("total", "areaSMT")),
                    record.get(construction_key("total", "areaSYD")),
                    record.get(construction_key("total", "ratePerSYD")),
                    record.get(construction_key("total", "roundedValue")),
                ]
            )
            story.append(Paragraph("4. Construction Cost Analysis", HEADING_STYLE))
            story.append(_grid(cost_rows, [50 * mm, 28 * mm, 28 * mm, 28 * mm, CONTENT_WIDTH - 134 * mm]))
            story.append(Spacer(1, 8))

        attachment_rows = [["Category", "File", "Reference"]]
        for category, items in record.attachments.items():
            for att in items:
                reference = getattr(att, "url", None) or "(not uploaded)"
                attachment_rows.append([category.value, att.file_name, reference])
        if len(attachment_rows) > 1:
            story.append(Paragraph("5. Attachments", HEADING_STYLE))
            story.append(_grid(attachment_rows, [30 * mm, 50 * mm, CONTENT_WIDTH - 80 * mm]))
            story.append(Spacer(1, 8))

        story.append(Paragraph("6. Remarks", HEADING_STYLE))
        story.append(
            _kv_table(
                [
                    ["Notes", record.get("notes")],
                    ["Manager Feedback", record.manager_feedback],
                ]
            )
        )
        return story
