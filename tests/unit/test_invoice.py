#!/usr/bin/env python3
"""
Invoice Renderer Unit Tests

Tests for the invoice PDF and its verification QR code.
"""

import asyncio
import unittest
import sys
from pathlib import Path
from dataclasses import replace
from datetime import date
from decimal import Decimal
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from parking_reports.application.exceptions import InvoiceGenerationError
from parking_reports.config import ReportSettings
from parking_reports.domain.models import Booking, CustomerProfile, Invoice
from parking_reports.infrastructure import invoice as invoice_module
from parking_reports.infrastructure.exporters import BookingFormatter, fit_text
from parking_reports.infrastructure.invoice import (
    CELL_FONT_SIZE, CELL_PADDING, InvoiceRenderer, build_qr_png, generate_invoice, summary_column_widths
)


PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def make_invoice(profile=None):
    booking = Booking(
        id="65f1c2a9b8d7e6f5a4b3c2d1",
        in_time="2024-06-01T10:00:00Z",
        out_time="2024-06-01T12:00:00Z",
        total_spent=Decimal("150"),
        company="Honda",
        registration_number="MH12AB1234",
        category="Car",
        location="Airport",
    )
    profile = profile or CustomerProfile("Asha", "Verma", "asha@example.com", "9876543210")
    return Invoice.for_booking(booking, profile, date(2024, 6, 2))


class TestQrCode(unittest.TestCase):
    """Unit tests for QR code generation"""

    def test_png_is_produced(self):
        data = asyncio.run(build_qr_png("Invoice: INV-b3c2d1, Booking ID: x, Total: Rs 150.00"))
        self.assertTrue(data.startswith(PNG_SIGNATURE))

    def test_oversized_payload_is_reported(self):
        with self.assertRaises(InvoiceGenerationError):
            asyncio.run(build_qr_png("x" * 5000))


class TestInvoiceRenderer(unittest.TestCase):
    """Unit tests for InvoiceRenderer"""

    def setUp(self):
        self.settings = ReportSettings(pdf_compression=False)
        self.renderer = InvoiceRenderer(self.settings, BookingFormatter(self.settings))

    def test_invoice_contents(self):
        data = asyncio.run(self.renderer.render(make_invoice()))
        self.assertTrue(data.startswith(b"%PDF"))
        for text in [
            b"INVOICE", b"Invoice No: INV-b3c2d1", b"Date: 2024-06-02",
            b"Booking Id: 65f1c2a9b8d7e6f5a4b3c2d1", b"Billed To", b"Asha Verma",
            b"Email: asha@example.com", b"Mobile: 9876543210",
            b"Booking Summary", b"MH12AB1234", b"150.00",
            b"Base Fare:", b"Rs 150.00", b"Rs 27.00", b"-Rs 27.00",
            b"Total Payable:", b"PAID", b"Scan to verify this invoice",
            b"Authorized Signature", b"Thank you for choosing EazyParking!",
        ]:
            self.assertIn(text, data, msg=f"Missing {text!r}")

    def test_total_payable_line_shows_the_booking_amount(self):
        with patch.object(invoice_module.canvas.Canvas, "drawString", autospec=True) as left, \
                patch.object(invoice_module.canvas.Canvas, "drawRightString", autospec=True) as right:
            asyncio.run(self.renderer.render(make_invoice()))

        labels = {call.args[3]: call.args[2] for call in left.call_args_list}
        values = {call.args[2]: call.args[3] for call in right.call_args_list}
        self.assertEqual(values[labels["Total Payable:"]], "Rs 150.00")
        self.assertEqual(values[labels["Base Fare:"]], "Rs 150.00")
        self.assertEqual(values[labels["Discount:"]], "-Rs 27.00")

    def test_long_summary_cells_are_shortened(self):
        long_company = "Bharat Heavy Electricals Commercial Vehicles Division"
        invoice = make_invoice()
        booking = replace(invoice.booking, company=long_company)
        data = asyncio.run(self.renderer.render(
            Invoice.for_booking(booking, invoice.profile, invoice.issue_date)
        ))

        fitted = fit_text(long_company, summary_column_widths()[0] - 2 * CELL_PADDING, "Helvetica", CELL_FONT_SIZE)
        self.assertTrue(fitted.endswith("..."))
        self.assertIn(fitted.encode(), data)
        self.assertNotIn(long_company.encode(), data)
        self.assertIn(b"MH12AB1234", data)

    def test_missing_contact_details(self):
        data = asyncio.run(self.renderer.render(make_invoice(CustomerProfile("Asha"))))
        self.assertIn(b"Email: N/A", data)
        self.assertIn(b"Mobile: N/A", data)

    def test_qr_payload(self):
        qr_png = asyncio.run(build_qr_png("placeholder"))

        async def fake_qr(payload):
            fake_qr.payloads.append(payload)
            return qr_png
        fake_qr.payloads = []

        with patch.object(invoice_module, "build_qr_png", fake_qr):
            asyncio.run(self.renderer.render(make_invoice()))

        self.assertEqual(
            fake_qr.payloads,
            ["Invoice: INV-b3c2d1, Booking ID: 65f1c2a9b8d7e6f5a4b3c2d1, Total: Rs 150.00"]
        )

    def test_qr_failure_aborts_rendering(self):
        async def failing_qr(payload):
            raise InvoiceGenerationError("no qr")

        with patch.object(invoice_module, "build_qr_png", failing_qr):
            with patch.object(InvoiceRenderer, "_draw") as draw:
                with self.assertRaises(InvoiceGenerationError):
                    asyncio.run(self.renderer.render(make_invoice()))
                draw.assert_not_called()


class TestGenerateInvoice(unittest.TestCase):
    """Unit tests for the one-call invoice helper"""

    def test_generate_invoice(self):
        invoice = make_invoice()
        data = asyncio.run(generate_invoice(
            invoice.booking, invoice.profile,
            settings=ReportSettings(pdf_compression=False), issue_date=date(2024, 6, 2)
        ))
        self.assertTrue(data.startswith(b"%PDF"))
        self.assertIn(b"Date: 2024-06-02", data)
        self.assertIn(b"Total Payable:", data)


if __name__ == '__main__':
    unittest.main()
