"""Bulk export renderers (JSON, CSV, Markdown, PDF)."""

import csv
import io
import json
from datetime import datetime
from typing import Callable, Dict, List, NamedTuple, Optional
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import HRFlowable, Paragraph, SimpleDocTemplate, Spacer

from ..models.item import SavedItem, to_iso, utc_now

CSV_HEADER = ["ID", "URL", "Title", "Summary", "Category", "Tags", "Created At"]


class ExportFormat(NamedTuple):
    extension: str
    media_type: str


FORMATS: Dict[str, ExportFormat] = {
    "json": ExportFormat("json", "application/json"),
    "csv": ExportFormat("csv", "text/csv"),
    "markdown": ExportFormat("md", "text/markdown"),
    "pdf": ExportFormat("pdf", "application/pdf"),
}


def export_filename(fmt: str, now: Optional[datetime] = None) -> str:
    """``recallbin-export-<epoch millis>.<ext>``."""
    now = now or utc_now()
    return f"recallbin-export-{int(now.timestamp() * 1000)}.{FORMATS[fmt].extension}"


def to_json(items: List[SavedItem], now: Optional[datetime] = None) -> str:
    payload = {
        "exported_at": to_iso(now or utc_now()),
        "total_items": len(items),
        "items": [item.model_dump(mode="json") for item in items],
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


def to_csv(items: List[SavedItem]) -> str:
    """One row per item after a fixed header; every cell is quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for item in items:
        ai = item.ai_output
        writer.writerow([
            item.id,
            item.url,
            item.display_title,
            (ai.summary if ai else None) or "",
            (ai.category if ai else None) or "",
            "; ".join(ai.tags if ai else []),
            to_iso(item.created_at),
        ])
    return buffer.getvalue()


def to_markdown(items: List[SavedItem], now: Optional[datetime] = None) -> str:
    lines = [
        "# RecallBin Export",
        "",
        f"Exported on: {to_iso(now or utc_now())}",
        "",
        f"Total items: {len(items)}",
        "",
        "---",
        "",
    ]
    for item in items:
        ai = item.ai_output
        lines += [
            f"## {item.display_title or 'Untitled'}",
            "",
            f"**URL**: {item.url or 'N/A'}",
            "",
            f"**Category**: {(ai.category if ai else None) or 'Unknown'}",
            "",
            f"**Tags**: {', '.join(ai.tags if ai else [])}",
            "",
            f"**Created**: {item.created_at.date().isoformat()}",
            "",
            "### Summary",
            "",
            (ai.summary if ai else None) or "No summary available.",
            "",
        ]
        if ai and ai.key_ideas:
            lines += ["### Key Ideas", ""]
            lines += [f"- {idea}" for idea in ai.key_ideas]
            lines.append("")
        lines += ["---", ""]
    return "\n".join(lines)


def to_pdf(items: List[SavedItem], now: Optional[datetime] = None) -> bytes:
    """Render a simple paginated report with one section per item."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        title="RecallBin Export",
        leftMargin=18 * mm,
        rightMargin=18 * mm,
        topMargin=18 * mm,
        bottomMargin=18 * mm,
    )
    styles = getSampleStyleSheet()

    story = [
        Paragraph("RecallBin Export", styles["Title"]),
        Paragraph(f"Exported on: {to_iso(now or utc_now())}", styles["Normal"]),
        Paragraph(f"Total items: {len(items)}", styles["Normal"]),
        Spacer(1, 6 * mm),
    ]
    for item in items:
        ai = item.ai_output
        story.append(Paragraph(escape(item.display_title or "Untitled"), styles["Heading2"]))
        if item.url:
            story.append(Paragraph(f"<b>URL:</b> {escape(item.url)}", styles["Normal"]))
        story.append(
            Paragraph(
                f"<b>Category:</b> {escape((ai.category if ai else None) or 'Unknown')}",
                styles["Normal"],
            )
        )
        if ai and ai.tags:
            story.append(Paragraph(f"<b>Tags:</b> {escape(', '.join(ai.tags))}", styles["Normal"]))
        story.append(
            Paragraph(f"<b>Created:</b> {item.created_at.date().isoformat()}", styles["Normal"])
        )
        story.append(Spacer(1, 2 * mm))
        story.append(
            Paragraph(escape((ai.summary if ai else None) or "No summary available."), styles["BodyText"])
        )
        story.append(Spacer(1, 3 * mm))
        story.append(HRFlowable(width="100%"))
        story.append(Spacer(1, 3 * mm))

    doc.build(story)
    return buffer.getvalue()


RENDERERS: Dict[str, Callable[[List[SavedItem]], object]] = {
    "json": to_json,
    "csv": to_csv,
    "markdown": to_markdown,
    "pdf": to_pdf,
}
