# File: parking_reports/application/commands.py
"""
Command Pattern Implementation for Exports

Each export (CSV report, PDF report, invoice) is encapsulated as a command
that can be validated, executed and described. Execution renders the whole
document in memory first and only then hands the bytes to the download sink,
so a failed render never produces a file.

Command Types:
1. ExportCsvCommand - filtered/sorted booking list as CSV
2. ExportPdfReportCommand - single or multi-section PDF report
3. GenerateInvoiceCommand - one-booking invoice PDF with QR code
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Sequence, Tuple
from datetime import date, datetime, timezone
import logging
from dataclasses import dataclass, field
import uuid

from ..domain.models import Booking, BookingCategory, Invoice
from ..infrastructure.exporters import (
    CsvExporter, PdfReportExporter, ReportDocument, report_filename
)
from ..infrastructure.invoice import InvoiceRenderer
from ..infrastructure.storage import DownloadSink


# ============================================================================
# COMMAND RESULTS
# ============================================================================

@dataclass
class CommandResult:
    """Result of an export command"""
    success: bool
    command_id: str
    command_type: str
    executed_at: datetime
    filename: Optional[str] = None
    location: Optional[str] = None
    row_count: int = 0
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "success": self.success,
            "command_id": self.command_id,
            "command_type": self.command_type,
            "executed_at": self.executed_at.isoformat(),
            "filename": self.filename,
            "location": self.location,
            "row_count": self.row_count,
            "error_message": self.error_message,
            "metadata": self.metadata
        }


# ============================================================================
# COMMAND BASE CLASS
# ============================================================================

class ExportCommand(ABC):
    """
    Abstract base class for export commands

    Subclasses provide the filename, content type and rendering; the base
    class owns validation, saving, logging and result construction.
    """

    content_type = "application/octet-stream"

    def __init__(self, sink: DownloadSink, command_id: Optional[str] = None):
        self.sink = sink
        self.command_id = command_id or str(uuid.uuid4())
        self.executed_at: Optional[datetime] = None
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    @abstractmethod
    def filename(self) -> str:
        pass

    @property
    def row_count(self) -> int:
        return 0

    @abstractmethod
    def validate(self) -> Tuple[bool, List[str]]:
        """
        Validate command parameters before execution

        Returns: (is_valid, error_messages)
        """
        pass

    @abstractmethod
    async def render(self) -> bytes:
        """Produce the complete document"""
        pass

    def get_description(self) -> str:
        """Get human-readable command description"""
        return f"{self.__class__.__name__.replace('Command', '')} -> {self.filename}"

    def _result(self, success: bool, location: Optional[str] = None, error: Optional[str] = None) -> CommandResult:
        return CommandResult(
            success=success,
            command_id=self.command_id,
            command_type=self.__class__.__name__,
            executed_at=self.executed_at or datetime.now(timezone.utc),
            filename=self.filename,
            location=location,
            row_count=self.row_count,
            error_message=error,
        )

    async def execute(self) -> CommandResult:
        """Validate, render, then save"""
        self.logger.info(f"Executing {self.get_description()}")

        is_valid, errors = self.validate()
        if not is_valid:
            self.logger.warning(f"Validation failed: {errors}")
            return self._result(False, error=f"Validation failed: {'; '.join(errors)}")

        try:
            data = await self.render()
            location = self.sink.save(self.filename, data, self.content_type)
        except Exception as e:
            self.logger.error(f"Error executing {self.__class__.__name__}: {e}", exc_info=True)
            return self._result(False, error=str(e))

        self.executed_at = datetime.now(timezone.utc)
        self.logger.info(f"Exported {self.row_count} rows to {location}")
        return self._result(True, location=location)

    def to_dict(self) -> Dict[str, Any]:
        """Convert command to dictionary for logging"""
        return {
            "command_id": self.command_id,
            "command_type": self.__class__.__name__,
            "filename": self.filename,
            "executed_at": self.executed_at.isoformat() if self.executed_at else None,
        }


# ============================================================================
# CONCRETE COMMANDS
# ============================================================================

class ExportCsvCommand(ExportCommand):
    """Export a booking list as {Label}_Bookings_{date}.csv"""

    content_type = CsvExporter.content_type

    def __init__(
        self,
        bookings: Sequence[Booking],
        label: str,
        exported_on: date,
        exporter: CsvExporter,
        sink: DownloadSink
    ):
        super().__init__(sink)
        self.bookings = list(bookings)
        self.label = label
        self.exported_on = exported_on
        self.exporter = exporter

    @property
    def filename(self) -> str:
        return report_filename(self.label, CsvExporter.extension, self.exported_on)

    @property
    def row_count(self) -> int:
        return len(self.bookings)

    def validate(self) -> Tuple[bool, List[str]]:
        errors = []
        if not self.label or not self.label.strip():
            errors.append("Export label is required")
        return len(errors) == 0, errors

    async def render(self) -> bytes:
        return await asyncio.to_thread(self.exporter.render, self.bookings)


class ExportPdfReportCommand(ExportCommand):
    """Export a report document as {Label}_Bookings_{date}.pdf"""

    content_type = PdfReportExporter.content_type

    def __init__(
        self,
        document: ReportDocument,
        label: str,
        exporter: PdfReportExporter,
        sink: DownloadSink
    ):
        super().__init__(sink)
        self.document = document
        self.label = label
        self.exporter = exporter

    @property
    def filename(self) -> str:
        return report_filename(self.label, PdfReportExporter.extension, self.document.generated_on)

    @property
    def row_count(self) -> int:
        return self.document.row_count

    def validate(self) -> Tuple[bool, List[str]]:
        errors = []
        if not self.label or not self.label.strip():
            errors.append("Export label is required")
        if not self.document.columns:
            errors.append("Report has no columns")
        return len(errors) == 0, errors

    async def render(self) -> bytes:
        return await asyncio.to_thread(self.exporter.render, self.document)


class GenerateInvoiceCommand(ExportCommand):
    """Render and save Invoice_{registration_number}.pdf"""

    content_type = InvoiceRenderer.content_type

    def __init__(self, invoice: Invoice, renderer: InvoiceRenderer, sink: DownloadSink):
        super().__init__(sink)
        self.invoice = invoice
        self.renderer = renderer

    @property
    def filename(self) -> str:
        return self.invoice.filename

    @property
    def row_count(self) -> int:
        return 1

    def validate(self) -> Tuple[bool, List[str]]:
        errors = []
        if self.invoice.fees.total != self.invoice.booking.amount:
            errors.append("Invoice total does not match the booking amount")
        return len(errors) == 0, errors

    async def render(self) -> bytes:
        return await self.renderer.render(self.invoice)


def export_label(category: Optional[BookingCategory]) -> str:
    """Filename label: the category title, or 'All' for every booking"""
    return category.title if category is not None else "All"
