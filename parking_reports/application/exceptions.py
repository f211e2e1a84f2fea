# File: parking_reports/application/exceptions.py
"""
Exceptions raised by the report services

None of these is fatal: the controller catches them, keeps its previous
state and turns them into a one-line notification.
"""

from typing import Optional


class ReportServiceError(Exception):
    """Base exception for report service errors"""
    pass


class BookingFetchError(ReportServiceError):
    """The backend could not be reached or returned an unusable payload"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ExportError(ReportServiceError):
    """A document could not be rendered or saved"""
    pass


class InvoiceGenerationError(ExportError):
    """The invoice or its verification QR code could not be produced"""
    pass


class BookingNotFoundError(ReportServiceError):
    """No booking with the requested id is loaded"""

    def __init__(self, booking_id: str):
        super().__init__(f"Booking {booking_id} not found")
        self.booking_id = booking_id
