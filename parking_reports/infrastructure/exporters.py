# File: parking_reports/infrastructure/exporters.py
"""
Tabular exporters: CSV and multi-section PDF booking reports

This module contains:
1. BookingFormatter - the single place where bookings become display strings
2. Column sets for CSV, admin PDF and customer PDF tables
3. CsvExporter - UTF-8 CSV with standard quoting
4. PdfReportExporter - reportlab document with a coloured header band,
   labelled sections, striped tables and a "Page i of N" footer

Both exporters build the whole document in memory and return bytes; saving
is the download sink's job.
"""

import csv
import io
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from functools import partial
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..config import PDF_COLORS, RGB, ReportSettings
from ..domain.classification import ClassifiedBookings
from ..domain.models import Booking, BookingCategory, Money, NO_TIME


# ============================================================================
# FORMATTING
# ============================================================================

class BookingFormatter:
    """Formats booking fields for every export"""

    def __init__(self, settings: ReportSettings):
        self.settings = settings

    def text(self, booking: Booking, name: str) -> str:
        return booking.display(name)

    def timestamp(self, value: Optional[datetime]) -> str:
        if value is None:
            return NO_TIME
        return value.astimezone(self.settings.tz).strftime(self.settings.datetime_format)

    def amount(self, value: Optional[Decimal]) -> str:
        return Money(value if value is not None else Decimal("0")).format(self.settings.currency_symbol)

    def day(self, value: date) -> str:
        return value.strftime(self.settings.date_format)

    def local_date(self, now: datetime) -> date:
        """Calendar date of `now` in the display timezone"""
        return now.astimezone(self.settings.tz).date()


def report_filename(label: str, extension: str, on: date) -> str:
    """{Label}_Bookings_{yyyy-MM-dd}.{ext}"""
    return f"{label}_Bookings_{on.isoformat()}.{extension}"


# ============================================================================
# COLUMNS
# ============================================================================

@dataclass(frozen=True)
class ReportColumn:
    """One table column: heading, cell renderer and relative width"""
    header: str
    render: Callable[[BookingFormatter, Booking], str]
    weight: float = 1.0
    past_only: bool = False


def _text(name: str) -> Callable[[BookingFormatter, Booking], str]:
    return lambda fmt, booking: fmt.text(booking, name)


def _in_time(fmt: BookingFormatter, booking: Booking) -> str:
    return fmt.timestamp(booking.in_time)


def _out_time(fmt: BookingFormatter, booking: Booking) -> str:
    return fmt.timestamp(booking.out_time)


def _total(fmt: BookingFormatter, booking: Booking) -> str:
    return fmt.amount(booking.total_spent)


CSV_COLUMNS: Tuple[ReportColumn, ...] = (
    ReportColumn("Parking Number", _text("id")),
    ReportColumn("Name", _text("customer_name")),
    ReportColumn("Company", _text("company")),
    ReportColumn("Reg No", _text("registration_number")),
    ReportColumn("Category", _text("category")),
    ReportColumn("Location", _text("location")),
    ReportColumn("In Time", _in_time),
    ReportColumn("Out Time", _out_time),
    ReportColumn("Total Spent", _total),
)

ADMIN_PDF_COLUMNS: Tuple[ReportColumn, ...] = (
    ReportColumn("Parking #", _text("id"), weight=1.0),
    ReportColumn("Name", _text("customer_name"), weight=1.3),
    ReportColumn("Company", _text("company"), weight=1.1),
    ReportColumn("Reg No", _text("registration_number"), weight=1.1),
    ReportColumn("Category", _text("category"), weight=0.9),
    ReportColumn("Location", _text("location"), weight=1.1),
    ReportColumn("In Time", _in_time, weight=1.5),
    ReportColumn("Out Time", _out_time, weight=1.5, past_only=True),
    ReportColumn("Total Spent", _total, weight=1.0),
)

CUSTOMER_PDF_COLUMNS: Tuple[ReportColumn, ...] = (
    ReportColumn("Company", _text("company"), weight=1.1),
    ReportColumn("Reg Number", _text("registration_number"), weight=1.1),
    ReportColumn("Location", _text("location"), weight=1.2),
    ReportColumn("In Time", _in_time, weight=1.5),
    ReportColumn("Out Time", _out_time, weight=1.5, past_only=True),
    ReportColumn("Total Spent", _total, weight=1.0),
)


def columns_for(columns: Sequence[ReportColumn], category: Optional[BookingCategory]) -> List[ReportColumn]:
    """Drop the past-only columns unless the section holds past bookings"""
    include_past = category is BookingCategory.PAST
    return [column for column in columns if include_past or not column.past_only]


# ============================================================================
# CSV
# ============================================================================

class CsvExporter:
    """Renders a booking list as CSV bytes"""

    content_type = "text/csv"
    extension = "csv"

    def __init__(self, formatter: BookingFormatter, columns: Sequence[ReportColumn] = CSV_COLUMNS):
        self.formatter = formatter
        self.columns = tuple(columns)
        self.logger = logging.getLogger(self.__class__.__name__)

    def rows(self, bookings: Iterable[Booking]) -> List[List[str]]:
        return [[column.render(self.formatter, booking) for column in self.columns] for booking in bookings]

    def render(self, bookings: Iterable[Booking]) -> bytes:
        buffer = io.StringIO(newline="")
        writer = csv.writer(buffer)
        writer.writerow([column.header for column in self.columns])
        rows = self.rows(bookings)
        writer.writerows(rows)
        self.logger.debug(f"Rendered CSV with {len(rows)} rows")
        return buffer.getvalue().encode("utf-8")


# ============================================================================
# PDF REPORT
# ============================================================================

def rgb(value: RGB) -> colors.Color:
    r, g, b = value
    return colors.Color(r / 255.0, g / 255.0, b / 255.0)


def fit_text(text: str, width: float, font: str, size: float) -> str:
    """Truncate with an ellipsis so the text fits in `width` points"""
    if stringWidth(text, font, size) <= width:
        return text
    ellipsis = "..."
    while text and stringWidth(text + ellipsis, font, size) > width:
        text = text[:-1]
    return text + ellipsis


@dataclass(frozen=True)
class ReportSection:
    """A titled table of bookings"""
    title: str
    bookings: Tuple[Booking, ...]
    color: RGB
    category: Optional[BookingCategory] = None


@dataclass(frozen=True)
class ReportDocument:
    """Everything the PDF exporter needs to lay out a report"""
    title: str
    generated_on: date
    sections: Tuple[ReportSection, ...]
    columns: Tuple[ReportColumn, ...]
    header_color: RGB
    stripe_color: RGB
    font_size: float = 9
    summary: Optional[str] = None

    @property
    def row_count(self) -> int:
        return sum(len(section.bookings) for section in self.sections)


class FooterCanvas(canvas.Canvas):
    """
    Canvas that defers page output until the page count is known,
    then stamps "Page i of N - {footer}" on every page
    """

    def __init__(self, *args, footer_text: str = "", **kwargs):
        super().__init__(*args, **kwargs)
        self.footer_text = footer_text
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self.draw_footer(total)
            super().showPage()
        super().save()

    def draw_footer(self, total: int):
        width, _ = self._pagesize
        self.saveState()
        self.setStrokeColor(colors.lightgrey)
        self.line(15 * mm, 14 * mm, width - 15 * mm, 14 * mm)
        self.setFont("Helvetica", 8)
        self.setFillColor(colors.grey)
        self.drawCentredString(width / 2.0, 9 * mm, f"Page {self._pageNumber} of {total} - {self.footer_text}")
        self.restoreState()


class PdfReportExporter:
    """
    Renders admin (single section) and customer (multi-section) reports
    """

    content_type = "application/pdf"
    extension = "pdf"

    BAND_HEIGHT = 28 * mm
    MARGIN = 15 * mm

    SECTION_COLORS = {
        BookingCategory.ONGOING: PDF_COLORS["ongoing"],
        BookingCategory.UPCOMING: PDF_COLORS["upcoming"],
        BookingCategory.PAST: PDF_COLORS["past"],
    }

    def __init__(self, settings: ReportSettings, formatter: BookingFormatter):
        self.settings = settings
        self.formatter = formatter
        self.styles = getSampleStyleSheet()
        self.logger = logging.getLogger(self.__class__.__name__)

    # ------------------------------------------------------------------
    # Document builders
    # ------------------------------------------------------------------

    def admin_document(
        self,
        bookings: Sequence[Booking],
        category: BookingCategory,
        generated_on: date
    ) -> ReportDocument:
        """One section holding the active tab's filtered and sorted view"""
        section = ReportSection(
            title=f"{category.section_title} ({len(bookings)})",
            bookings=tuple(bookings),
            color=PDF_COLORS["admin_header"],
            category=category,
        )
        return ReportDocument(
            title=f"{self.settings.brand_name} - {self.settings.admin_report_title}",
            generated_on=generated_on,
            sections=(section,),
            columns=ADMIN_PDF_COLUMNS,
            header_color=PDF_COLORS["admin_header"],
            stripe_color=PDF_COLORS["admin_stripe"],
            font_size=8,
        )

    def customer_document(self, classified: ClassifiedBookings, generated_on: date) -> ReportDocument:
        """One section per non-empty bucket, in ongoing, upcoming, past order"""
        sections = tuple(
            ReportSection(
                title=category.section_title,
                bookings=tuple(bookings),
                color=self.SECTION_COLORS[category],
                category=category,
            )
            for category, bookings in classified.sections()
            if bookings
        )
        return ReportDocument(
            title=self.settings.customer_report_title,
            generated_on=generated_on,
            sections=sections,
            columns=CUSTOMER_PDF_COLUMNS,
            header_color=PDF_COLORS["ongoing"],
            stripe_color=PDF_COLORS["customer_stripe"],
            font_size=9,
            summary=f"Total Bookings: {classified.total}",
        )

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self, document: ReportDocument) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=self.MARGIN,
            rightMargin=self.MARGIN,
            topMargin=self.MARGIN,
            bottomMargin=20 * mm,
            title=document.title,
            author=self.settings.brand_name,
            pageCompression=1 if self.settings.pdf_compression else 0,
            invariant=1 if self.settings.pdf_invariant else 0,
        )

        story = [Spacer(1, self.BAND_HEIGHT - self.MARGIN + 6 * mm)]
        if document.summary:
            story.append(Paragraph(document.summary, self.styles["Normal"]))
            story.append(Spacer(1, 4 * mm))

        if not document.sections:
            story.append(Paragraph("No bookings found", self.styles["Normal"]))

        for section in document.sections:
            story.extend(self._section_flowables(section, document, doc.width))

        doc.build(
            story,
            onFirstPage=partial(self._draw_header_band, document=document),
            canvasmaker=partial(FooterCanvas, footer_text=self.settings.footer_title),
        )
        self.logger.info(
            f"Rendered PDF '{document.title}' with {len(document.sections)} section(s), {document.row_count} rows"
        )
        return buffer.getvalue()

    def _section_flowables(self, section: ReportSection, document: ReportDocument, width: float) -> List:
        heading = ParagraphStyle(
            f"Section{section.title}",
            parent=self.styles["Heading3"],
            textColor=rgb(section.color),
            spaceBefore=6,
            spaceAfter=4,
        )
        columns = columns_for(document.columns, section.category)
        flowables = [Paragraph(section.title, heading)]
        flowables.append(self._table(section, columns, document, width))
        if not section.bookings:
            flowables.append(Paragraph("No bookings found", self.styles["Italic"]))
        flowables.append(Spacer(1, 6 * mm))
        return flowables

    def _table(
        self,
        section: ReportSection,
        columns: Sequence[ReportColumn],
        document: ReportDocument,
        width: float
    ) -> Table:
        total_weight = sum(column.weight for column in columns)
        col_widths = [width * column.weight / total_weight for column in columns]
        size = document.font_size
        padding = 3

        data = [[column.header for column in columns]]
        for booking in section.bookings:
            data.append([
                fit_text(column.render(self.formatter, booking), col_width - 2 * padding, "Helvetica", size)
                for column, col_width in zip(columns, col_widths)
            ])

        table = Table(data, colWidths=col_widths, repeatRows=1)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), rgb(section.color)),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 0), (-1, -1), size),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, rgb(document.stripe_color)]),
            ('GRID', (0, 0), (-1, -1), 0.25, colors.lightgrey),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('LEFTPADDING', (0, 0), (-1, -1), padding),
            ('RIGHTPADDING', (0, 0), (-1, -1), padding),
        ]))
        return table

    def _draw_header_band(self, canv: canvas.Canvas, doc: SimpleDocTemplate, document: ReportDocument):
        width, height = doc.pagesize
        canv.saveState()
        canv.setFillColor(rgb(document.header_color))
        canv.rect(0, height - self.BAND_HEIGHT, width, self.BAND_HEIGHT, stroke=0, fill=1)
        canv.setFillColor(colors.white)
        canv.setFont("Helvetica-Bold", 18)
        canv.drawCentredString(width / 2.0, height - 13 * mm, document.title)
        canv.setFont("Helvetica", 10)
        canv.drawCentredString(
            width / 2.0, height - 21 * mm, f"Generated on: {self.formatter.day(document.generated_on)}"
        )
        canv.restoreState()
