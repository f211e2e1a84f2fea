# File: parking_reports/infrastructure/invoice.py
"""
Invoice PDF rendering

Fixed single-page layout, drawn directly on a reportlab canvas:
1. Branded header band (company, support e-mail, website, INVOICE title)
2. Invoice metadata and the "Billed To" block
3. One-row booking summary table
4. Fee breakdown, verification QR code and PAID stamp
5. Signature line and footer notes

The QR code is the only asynchronous step; it is generated in a worker thread
and awaited before any drawing starts, so the document is never finalised
without it.
"""

import asyncio
import io
import logging
from datetime import date, datetime, timezone
from typing import Optional

import qrcode
from qrcode.exceptions import DataOverflowError
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from reportlab.platypus import Table, TableStyle

from ..application.exceptions import InvoiceGenerationError
from ..config import PDF_COLORS, ReportSettings
from ..domain.models import Booking, CustomerProfile, Invoice, NOT_AVAILABLE
from .exporters import BookingFormatter, fit_text, rgb


PAGE_WIDTH, PAGE_HEIGHT = A4
LEFT = 15 * mm
RIGHT = PAGE_WIDTH - 15 * mm
INVOICE_CURRENCY = "Rs "
SUMMARY_WEIGHTS = (1.2, 1.0, 0.9, 1.1, 1.5, 1.5, 1.0)
CELL_PADDING = 3
CELL_FONT_SIZE = 8

TEXT = colors.Color(0.2, 0.2, 0.2)
MUTE = colors.Color(0.45, 0.45, 0.45)


def _y(mm_from_top: float) -> float:
    """Convert a top-down millimetre offset to reportlab's bottom-up points"""
    return PAGE_HEIGHT - mm_from_top * mm


def summary_column_widths():
    width = RIGHT - LEFT
    return [width * w / sum(SUMMARY_WEIGHTS) for w in SUMMARY_WEIGHTS]


# ============================================================================
# QR CODE
# ============================================================================

def _qr_png(payload: str) -> bytes:
    img = qrcode.make(payload)
    buf = io.BytesIO()
    img.save(buf, format='PNG')
    return buf.getvalue()


async def build_qr_png(payload: str) -> bytes:
    """Encode `payload` as a PNG QR code off the event loop"""
    try:
        return await asyncio.to_thread(_qr_png, payload)
    except (DataOverflowError, OSError, ValueError) as e:
        raise InvoiceGenerationError(f"Could not generate QR code: {e}") from e


# ============================================================================
# RENDERER
# ============================================================================

class InvoiceRenderer:
    """Renders an Invoice to PDF bytes"""

    content_type = "application/pdf"

    def __init__(self, settings: ReportSettings, formatter: BookingFormatter):
        self.settings = settings
        self.formatter = formatter
        self.logger = logging.getLogger(self.__class__.__name__)

    async def render(self, invoice: Invoice) -> bytes:
        qr_png = await build_qr_png(invoice.verification_payload)
        data = self._draw(invoice, qr_png)
        self.logger.info(f"Rendered invoice {invoice.invoice_number} for booking {invoice.booking.id}")
        return data

    def _draw(self, invoice: Invoice, qr_png: bytes) -> bytes:
        buffer = io.BytesIO()
        c = canvas.Canvas(
            buffer,
            pagesize=A4,
            pageCompression=1 if self.settings.pdf_compression else 0,
            invariant=1 if self.settings.pdf_invariant else 0,
        )
        c.setTitle(f"Invoice {invoice.invoice_number}")
        c.setAuthor(self.settings.brand_name)

        self._draw_header(c)
        self._draw_metadata(c, invoice)
        table_bottom = self._draw_summary_table(c, invoice)
        self._draw_fees(c, invoice, table_bottom)
        self._draw_qr(c, qr_png, table_bottom)
        self._draw_footer(c)

        c.showPage()
        c.save()
        return buffer.getvalue()

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _draw_header(self, c: canvas.Canvas):
        c.setFillColor(rgb(PDF_COLORS["invoice_band"]))
        c.rect(0, _y(40), PAGE_WIDTH, 40 * mm, stroke=0, fill=1)

        c.setFillColor(TEXT)
        c.setFont("Helvetica-Bold", 20)
        c.drawString(LEFT, _y(18), self.settings.brand_name)
        c.setFont("Helvetica", 9)
        c.setFillColor(MUTE)
        c.drawString(LEFT, _y(26), self.settings.support_email)
        c.drawString(LEFT, _y(31), self.settings.website)

        c.setFillColor(TEXT)
        c.setFont("Helvetica-Bold", 22)
        c.drawRightString(RIGHT, _y(22), "INVOICE")

    def _draw_metadata(self, c: canvas.Canvas, invoice: Invoice):
        c.setFont("Helvetica", 10)
        c.setFillColor(TEXT)
        c.drawRightString(RIGHT, _y(52), f"Invoice No: {invoice.invoice_number}")
        c.drawRightString(RIGHT, _y(58), f"Date: {self.formatter.day(invoice.issue_date)}")
        c.drawRightString(RIGHT, _y(64), f"Booking Id: {invoice.booking.id}")

        profile = invoice.profile
        c.setFont("Helvetica-Bold", 12)
        c.drawString(LEFT, _y(52), "Billed To")
        c.setFont("Helvetica", 10)
        c.drawString(LEFT, _y(58), profile.full_name)
        c.setFillColor(MUTE)
        c.drawString(LEFT, _y(64), f"Email: {profile.email or NOT_AVAILABLE}")
        c.drawString(LEFT, _y(70), f"Mobile: {profile.mobile_number or NOT_AVAILABLE}")

    def _draw_summary_table(self, c: canvas.Canvas, invoice: Invoice) -> float:
        """Draw the booking summary; returns the table's bottom edge in points"""
        booking = invoice.booking
        c.setFillColor(TEXT)
        c.setFont("Helvetica-Bold", 12)
        c.drawString(LEFT, _y(84), "Booking Summary")

        values = [
            booking.display("company"),
            booking.display("registration_number"),
            booking.display("category"),
            booking.display("location"),
            self.formatter.timestamp(booking.in_time),
            self.formatter.timestamp(booking.out_time),
            f"{booking.total_spent:.2f}",
        ]
        width = RIGHT - LEFT
        col_widths = summary_column_widths()
        data = [
            ["Vehicle Company", "Reg No", "Category", "Location", "Check-In", "Check-Out", "Amount (Rs)"],
            [
                fit_text(value, w - 2 * CELL_PADDING, "Helvetica", CELL_FONT_SIZE)
                for value, w in zip(values, col_widths)
            ],
        ]

        table = Table(data, colWidths=col_widths)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), rgb(PDF_COLORS["invoice_table"])),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 0), (-1, -1), CELL_FONT_SIZE),
            ('GRID', (0, 0), (-1, -1), 0.25, colors.lightgrey),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('LEFTPADDING', (0, 0), (-1, -1), CELL_PADDING),
            ('RIGHTPADDING', (0, 0), (-1, -1), CELL_PADDING),
        ]))
        _, height = table.wrapOn(c, width, PAGE_HEIGHT)
        top = _y(88)
        table.drawOn(c, LEFT, top - height)
        return top - height

    def _draw_fees(self, c: canvas.Canvas, invoice: Invoice, table_bottom: float):
        fees = invoice.fees
        label_x = RIGHT - 60 * mm
        y = table_bottom - 12 * mm

        c.setFont("Helvetica-Bold", 12)
        c.setFillColor(TEXT)
        c.drawString(label_x, y, "Fee Breakdown")
        y -= 7 * mm

        c.setFont("Helvetica", 10)
        lines = [
            ("Base Fare:", fees.base_fare.format(INVOICE_CURRENCY)),
            (f"GST ({fees.gst_percentage}%):", fees.gst.format(INVOICE_CURRENCY)),
            ("Discount:", f"-{fees.discount.format(INVOICE_CURRENCY)}"),
        ]
        for label, value in lines:
            c.drawString(label_x, y, label)
            c.drawRightString(RIGHT, y, value)
            y -= 6 * mm

        c.setStrokeColor(colors.lightgrey)
        c.line(label_x, y + 3 * mm, RIGHT, y + 3 * mm)
        c.setFont("Helvetica-Bold", 12)
        c.drawString(label_x, y - 2 * mm, "Total Payable:")
        c.drawRightString(RIGHT, y - 2 * mm, fees.total.format(INVOICE_CURRENCY))

        self._draw_paid_stamp(c, label_x - 45 * mm, table_bottom - 35 * mm)

    def _draw_paid_stamp(self, c: canvas.Canvas, x: float, y: float):
        green = rgb(PDF_COLORS["paid_stamp"])
        c.saveState()
        c.translate(x, y)
        c.rotate(15)
        c.setStrokeColor(green)
        c.setLineWidth(2)
        c.roundRect(0, 0, 34 * mm, 13 * mm, 2 * mm, stroke=1, fill=0)
        c.setFillColor(green)
        c.setFont("Helvetica-Bold", 22)
        c.drawCentredString(17 * mm, 3.5 * mm, "PAID")
        c.restoreState()

    def _draw_qr(self, c: canvas.Canvas, qr_png: bytes, table_bottom: float):
        size = 35 * mm
        top = table_bottom - 10 * mm
        c.drawImage(ImageReader(io.BytesIO(qr_png)), LEFT, top - size, size, size)
        c.setFont("Helvetica", 8)
        c.setFillColor(MUTE)
        c.drawString(LEFT, top - size - 4 * mm, "Scan to verify this invoice")

    def _draw_footer(self, c: canvas.Canvas):
        c.setStrokeColor(TEXT)
        c.line(RIGHT - 55 * mm, _y(250), RIGHT, _y(250))
        c.setFont("Helvetica", 9)
        c.setFillColor(TEXT)
        c.drawCentredString(RIGHT - 27.5 * mm, _y(255), "Authorized Signature")

        c.setFont("Helvetica-Bold", 10)
        c.drawCentredString(PAGE_WIDTH / 2.0, _y(270), f"Thank you for choosing {self.settings.brand_name}!")
        c.setFont("Helvetica", 8)
        c.setFillColor(MUTE)
        c.drawCentredString(
            PAGE_WIDTH / 2.0, _y(277),
            "Note: This is a computer-generated invoice. No signature required."
        )


async def generate_invoice(
    booking: Booking,
    profile: CustomerProfile,
    settings: Optional[ReportSettings] = None,
    issue_date: Optional[date] = None
) -> bytes:
    """Render the invoice PDF for one booking billed to `profile`"""
    settings = settings or ReportSettings()
    formatter = BookingFormatter(settings)
    if issue_date is None:
        issue_date = formatter.local_date(datetime.now(timezone.utc))
    invoice = Invoice.for_booking(booking, profile, issue_date)
    return await InvoiceRenderer(settings, formatter).render(invoice)
