# File: parking_reports/application/report_controller.py
"""
Report Controller

One explicit object per report screen. It owns the loaded booking snapshot,
the classification derived from it, the loading/error/exporting flags and
the current view query (tab, category, search, sort, page).

Responsibilities:
1. refresh() - fetch from the repository and reclassify
2. view() / categories() - what the table and filter drop-down show
3. export_csv() / export_pdf() / export_invoice() - document downloads
4. Query mutators - changing tab, category or search goes back to page 1

Two presets exist: ADMIN (page size 10, single-section PDF of the active tab)
and CUSTOMER (page size 5, multi-section PDF of all bookings, invoices).
Failures never raise out of the controller; they are logged, published on
the event bus and reported through the returned flag or result DTO.
"""

import asyncio
import logging
from datetime import date, datetime, timezone
from enum import Enum
from typing import Callable, List, Optional

from ..config import ReportSettings
from ..domain.classification import ClassifiedBookings, TemporalClassifier
from ..domain.models import (
    ALL_CATEGORIES, Booking, BookingCategory, CustomerProfile, Invoice, SortKey
)
from ..domain.strategies import SortSpec
from ..infrastructure.exporters import BookingFormatter, CsvExporter, PdfReportExporter
from ..infrastructure.invoice import InvoiceRenderer
from ..infrastructure.messaging import DomainEvent, EventBus, EventType, NotificationCenter, Notification
from ..infrastructure.repositories import BookingRepository
from ..infrastructure.storage import DownloadSink
from .commands import (
    ExportCommand, ExportCsvCommand, ExportPdfReportCommand, GenerateInvoiceCommand, export_label
)
from .dtos import ExportResultDTO, ReportQueryDTO
from .exceptions import BookingFetchError, BookingNotFoundError, ReportServiceError
from .report_pipeline import Page, ReportPipeline


class ReportMode(str, Enum):
    """Which portal the controller serves"""
    ADMIN = "admin"
    CUSTOMER = "customer"


class ReportController:
    """
    State holder and coordinator for one report screen
    """

    def __init__(
        self,
        repository: BookingRepository,
        sink: DownloadSink,
        settings: Optional[ReportSettings] = None,
        mode: ReportMode = ReportMode.ADMIN,
        event_bus: Optional[EventBus] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.repository = repository
        self.sink = sink
        self.settings = settings or ReportSettings()
        self.mode = ReportMode(mode)
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = logging.getLogger(self.__class__.__name__)

        self.event_bus = event_bus or EventBus()
        self.notifications = NotificationCenter().register(self.event_bus)

        self.classifier = TemporalClassifier(self.clock)
        self.pipeline = ReportPipeline()
        self.formatter = BookingFormatter(self.settings)
        self.csv_exporter = CsvExporter(self.formatter)
        self.pdf_exporter = PdfReportExporter(self.settings, self.formatter)
        self.invoice_renderer = InvoiceRenderer(self.settings, self.formatter)

        # Loaded state
        self.bookings: List[Booking] = []
        self.classified = ClassifiedBookings()
        self.loading = False
        self.error: Optional[str] = None
        self.exporting: Optional[str] = None
        self.last_refreshed: Optional[datetime] = None

        # View state
        self.active_tab = BookingCategory.ONGOING
        self.category = ALL_CATEGORIES
        self.search = ""
        self.sort: Optional[SortSpec] = None
        self.page = 1

    @property
    def is_admin(self) -> bool:
        return self.mode is ReportMode.ADMIN

    @property
    def page_size(self) -> int:
        return self.settings.admin_page_size if self.is_admin else self.settings.customer_page_size

    @property
    def latest_notification(self) -> Optional[Notification]:
        return self.notifications.latest

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def refresh(self) -> bool:
        """
        Fetch the booking list and rebuild the classification

        On failure the previously loaded bookings and buckets are kept.
        Returns: True when fresh data was loaded
        """
        self.loading = True
        try:
            bookings = await asyncio.to_thread(self.repository.fetch_all)
        except BookingFetchError as e:
            self.error = str(e)
            self.logger.error(f"Failed to refresh bookings: {e}", exc_info=True)
            self._publish(EventType.REPORT_REFRESH_FAILED, error=str(e))
            return False
        finally:
            self.loading = False

        self._apply_snapshot(bookings)
        self.logger.info(f"Loaded {len(bookings)} bookings ({self.mode.value} view)")
        self._publish(EventType.REPORT_REFRESHED, count=len(bookings))
        return True

    def _apply_snapshot(self, bookings: List[Booking]):
        classified = self.classifier.classify(bookings)
        if not self.is_admin:
            classified = classified.ordered()
        self.bookings, self.classified = list(bookings), classified
        self.error = None
        self.last_refreshed = self.clock()
        self._clamp_page()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def current_query(self) -> ReportQueryDTO:
        return ReportQueryDTO(
            category=self.category,
            search=self.search,
            sort_by=self.sort.key.value if self.sort else None,
            sort_order=self.sort.direction.value if self.sort else "asc",
            page=self.page,
            page_size=self.page_size,
        )

    def active_bookings(self) -> List[Booking]:
        return list(self.classified.get(self.active_tab))

    def filtered_view(self) -> List[Booking]:
        """Active tab after filtering and sorting, without pagination"""
        return self.pipeline.apply(self.active_bookings(), self.current_query())

    def view(self) -> Page:
        """The current page of the active tab"""
        return self.pipeline.run(self.active_bookings(), self.current_query())

    def categories(self) -> List[str]:
        """Distinct non-empty vehicle categories, in first-seen order"""
        seen = []
        for booking in self.bookings:
            if booking.category and booking.category not in seen:
                seen.append(booking.category)
        return seen

    def counts(self):
        return self.classified.counts()

    # ------------------------------------------------------------------
    # Query mutators
    # ------------------------------------------------------------------

    def set_tab(self, tab: BookingCategory):
        self.active_tab = BookingCategory(tab)
        self.page = 1

    def set_category(self, category: Optional[str]):
        self.category = category or ALL_CATEGORIES
        self.page = 1

    def set_search(self, text: Optional[str]):
        self.search = text or ""
        self.page = 1

    def request_sort(self, key: SortKey) -> SortSpec:
        """Header click: same key flips the direction, a new key sorts ascending"""
        self.sort = SortSpec.toggle(self.sort, key)
        return self.sort

    def clear_sort(self):
        self.sort = None

    def set_page(self, page: int):
        if page < 1:
            raise ValueError(f"Page must be >= 1, got {page}")
        self.page = page

    def next_page(self):
        if self.view().has_next:
            self.page += 1

    def prev_page(self):
        if self.page > 1:
            self.page -= 1

    def _clamp_page(self):
        total_pages = self.view().total_pages
        if self.page > max(total_pages, 1):
            self.page = max(total_pages, 1)

    # ------------------------------------------------------------------
    # Exports
    # ------------------------------------------------------------------

    def today(self) -> date:
        return self.formatter.local_date(self.clock())

    async def export_csv(self) -> ExportResultDTO:
        """CSV of the active tab's filtered view (admin) or of all bookings (customer)"""
        def build() -> ExportCommand:
            if self.is_admin:
                bookings, label = self.filtered_view(), export_label(self.active_tab)
            else:
                bookings, label = self.bookings, export_label(None)
            return ExportCsvCommand(bookings, label, self.today(), self.csv_exporter, self.sink)

        return await self._run_export("csv", build)

    async def export_pdf(self) -> ExportResultDTO:
        """Single-section PDF of the active tab (admin) or sectioned PDF of all bookings (customer)"""
        def build() -> ExportCommand:
            if self.is_admin:
                document = self.pdf_exporter.admin_document(self.filtered_view(), self.active_tab, self.today())
                label = export_label(self.active_tab)
            else:
                document = self.pdf_exporter.customer_document(self.classified, self.today())
                label = export_label(None)
            return ExportPdfReportCommand(document, label, self.pdf_exporter, self.sink)

        return await self._run_export("pdf", build)

    async def export_invoice(self, booking_id: str, profile: CustomerProfile) -> ExportResultDTO:
        """Invoice for one loaded booking, billed to `profile`"""
        def build() -> ExportCommand:
            booking = self.find_booking(booking_id)
            invoice = Invoice.for_booking(booking, profile, self.today())
            return GenerateInvoiceCommand(invoice, self.invoice_renderer, self.sink)

        return await self._run_export("invoice", build)

    def find_booking(self, booking_id: str) -> Booking:
        for booking in self.bookings:
            if booking.id == booking_id:
                return booking
        raise BookingNotFoundError(booking_id)

    async def _run_export(self, export_format: str, build: Callable[[], ExportCommand]) -> ExportResultDTO:
        if self.exporting is not None:
            message = f"Another export ({self.exporting}) is already in progress"
            self.logger.warning(message)
            self._publish(EventType.EXPORT_REFUSED, format=export_format, running=self.exporting)
            return ExportResultDTO(success=False, format=export_format, message=message)

        self.exporting = export_format
        try:
            try:
                command = build()
            except ReportServiceError as e:
                self.logger.error(f"Cannot start {export_format} export: {e}")
                self._publish(EventType.EXPORT_FAILED, format=export_format, error=str(e))
                return ExportResultDTO(success=False, format=export_format, message=str(e))

            result = await command.execute()
        finally:
            self.exporting = None

        if not result.success:
            self._publish(EventType.EXPORT_FAILED, format=export_format, error=result.error_message)
            return ExportResultDTO(
                success=False,
                format=export_format,
                message=result.error_message or f"Failed to export {export_format}",
                filename=result.filename,
            )

        if export_format == "invoice":
            self._publish(EventType.INVOICE_GENERATED, format=export_format, filename=result.filename)
        else:
            self._publish(EventType.EXPORT_COMPLETED, format=export_format, filename=result.filename)

        return ExportResultDTO(
            success=True,
            format=export_format,
            message=f"Saved {result.filename}",
            filename=result.filename,
            location=result.location,
            row_count=result.row_count,
        )

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _publish(self, event_type: EventType, **data):
        self.event_bus.publish(DomainEvent(event_type=event_type, data=data, source=self.__class__.__name__))
