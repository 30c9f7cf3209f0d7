"""Printable grievance receipt with a tracking QR code."""

from __future__ import annotations

import base64
import io
from datetime import datetime
from typing import Optional

from reportlab.graphics import renderPDF
from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from unitydesk.models import CamelModel
from unitydesk.utils.time import utc_now


PRIMARY = colors.HexColor("#0F4C81")
TEXT = colors.HexColor("#374151")
MUTED = colors.HexColor("#646464")
PRIORITY_COLORS = {
    "high": colors.HexColor("#EF4444"),
    "medium": colors.HexColor("#F97316"),
    "low": colors.HexColor("#3B82F6"),
}


class ReportRequest(CamelModel):
    reference_id: str = ""
    summary: str = ""
    department: str = ""
    priority: str = "medium"
    severity: Optional[str] = None
    location: Optional[str] = None
    estimated_resolution: Optional[str] = None
    submitted_at: Optional[datetime] = None
    is_anonymous: bool = True
    citizen_name: Optional[str] = None

    def missing_fields(self) -> list[str]:
        return [
            name
            for name, value in (
                ("referenceId", self.reference_id),
                ("summary", self.summary),
                ("department", self.department),
            )
            if not value.strip()
        ]


def tracking_url(app_url: str, reference_id: str) -> str:
    return f"{app_url.rstrip('/')}/status?ref={reference_id}"


def report_file_name(reference_id: str) -> str:
    return f"grievance-{reference_id}.pdf"


def _qr_drawing(value: str, size: float) -> Drawing:
    widget = QrCodeWidget(value, barFillColor=PRIMARY, barBorder=1)
    x1, y1, x2, y2 = widget.getBounds()
    drawing = Drawing(
        size, size, transform=[size / (x2 - x1), 0, 0, size / (y2 - y1), 0, 0]
    )
    drawing.add(widget)
    return drawing


def _label(pdf: canvas.Canvas, x: float, y: float, label: str, value: str, color=TEXT) -> None:
    pdf.setFillColor(TEXT)
    pdf.setFont("Helvetica", 9)
    pdf.drawString(x, y, label)
    pdf.setFillColor(color)
    pdf.setFont("Helvetica-Bold", 11)
    pdf.drawString(x, y - 6 * mm, value)


def _paragraph(pdf: canvas.Canvas, y: float, title: str, body: str, width: float) -> float:
    pdf.setFillColor(MUTED)
    pdf.setFont("Helvetica-Bold", 10)
    pdf.drawString(20 * mm, y, title)
    y -= 7 * mm
    pdf.setFillColor(TEXT)
    pdf.setFont("Helvetica", 10)
    for line in simpleSplit(body, "Helvetica", 10, width):
        pdf.drawString(20 * mm, y, line)
        y -= 5 * mm
    return y - 5 * mm


def build_report_pdf(request: ReportRequest, app_url: str) -> bytes:
    """Render the one-page receipt the citizen keeps after submitting."""
    buffer = io.BytesIO()
    width, height = A4
    pdf = canvas.Canvas(buffer, pagesize=A4)
    pdf.setTitle(f"Grievance Report {request.reference_id}")

    pdf.setFillColor(PRIMARY)
    pdf.rect(0, height - 40 * mm, width, 40 * mm, stroke=0, fill=1)
    pdf.setFillColor(colors.white)
    pdf.setFont("Helvetica-Bold", 24)
    pdf.drawCentredString(width / 2, height - 20 * mm, "Grievance Report")
    pdf.setFont("Helvetica", 10)
    pdf.drawCentredString(width / 2, height - 30 * mm, "AI-Powered Civic Complaint System")

    qr_size = 40 * mm
    renderPDF.draw(
        _qr_drawing(tracking_url(app_url, request.reference_id), qr_size),
        pdf,
        width - 55 * mm,
        height - 90 * mm,
    )
    pdf.setFillColor(MUTED)
    pdf.setFont("Helvetica", 8)
    pdf.drawCentredString(width - 35 * mm, height - 95 * mm, "Scan to track")

    pdf.setFillColor(MUTED)
    pdf.setFont("Helvetica", 10)
    pdf.drawString(25 * mm, height - 60 * mm, "Reference ID")
    pdf.setFillColor(PRIMARY)
    pdf.setFont("Helvetica-Bold", 18)
    pdf.drawString(25 * mm, height - 70 * mm, request.reference_id)

    y = height - 105 * mm
    _label(pdf, 25 * mm, y, "Department", request.department)
    y -= 18 * mm

    priority = request.priority.lower()
    _label(
        pdf,
        25 * mm,
        y,
        "Priority",
        priority.upper(),
        PRIORITY_COLORS.get(priority, PRIORITY_COLORS["medium"]),
    )
    if request.severity:
        _label(pdf, width / 2 + 5 * mm, y, "Severity", request.severity)
    y -= 18 * mm

    submitted = request.submitted_at or utc_now()
    _label(pdf, 20 * mm, y, "Submitted On", submitted.strftime("%d %B %Y, %H:%M"))
    if request.citizen_name and not request.is_anonymous:
        _label(pdf, width / 2 + 5 * mm, y, "Submitted By", request.citizen_name)
    y -= 16 * mm

    text_width = width - 40 * mm
    y = _paragraph(pdf, y, "Complaint Summary", request.summary, text_width)
    if request.location:
        y = _paragraph(pdf, y, "Location", request.location, text_width)
    if request.estimated_resolution:
        _label(
            pdf,
            25 * mm,
            y,
            "Estimated Resolution Time",
            request.estimated_resolution,
            colors.HexColor("#16A34A"),
        )

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def report_data_uri(pdf_bytes: bytes) -> str:
    return "data:application/pdf;base64," + base64.b64encode(pdf_bytes).decode("ascii")
