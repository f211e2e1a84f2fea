#!/usr/bin/env python3
"""
Download Sink Unit Tests
"""

import os
import tempfile
import unittest
import sys
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from parking_reports.application.exceptions import ExportError
from parking_reports.infrastructure.storage import (
    FileSystemDownloadSink, InMemoryDownloadSink, safe_filename
)


class TestSafeFilename(unittest.TestCase):

    def test_plain_names_are_unchanged(self):
        self.assertEqual(safe_filename("Ongoing_Bookings_2024-06-01.csv"), "Ongoing_Bookings_2024-06-01.csv")

    def test_separators_are_replaced(self):
        self.assertEqual(safe_filename("Invoice_MH/12:AB.pdf"), "Invoice_MH_12_AB.pdf")
        self.assertEqual(safe_filename("../secret"), "_secret")

    def test_empty_names_are_rejected(self):
        for bad in ["", "   ", "..."]:
            with self.assertRaises(ExportError, msg=f"Accepted {bad!r}"):
                safe_filename(bad)


class TestFileSystemDownloadSink(unittest.TestCase):
    """Unit tests for FileSystemDownloadSink"""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.directory = Path(self.tmp.name) / "exports"
        self.sink = FileSystemDownloadSink(self.directory)

    def tearDown(self):
        self.tmp.cleanup()

    def test_save_creates_directory_and_file(self):
        location = self.sink.save("All_Bookings_2024-06-01.csv", b"a,b\r\n", "text/csv")
        self.assertEqual(location, str(self.directory / "All_Bookings_2024-06-01.csv"))
        self.assertEqual(Path(location).read_bytes(), b"a,b\r\n")

    def test_save_overwrites(self):
        self.sink.save("report.pdf", b"first", "application/pdf")
        location = self.sink.save("report.pdf", b"second", "application/pdf")
        self.assertEqual(Path(location).read_bytes(), b"second")
        self.assertEqual(os.listdir(self.directory), ["report.pdf"])

    def test_failed_write_leaves_no_file(self):
        with patch("parking_reports.infrastructure.storage.os.replace", side_effect=OSError("disk full")):
            with self.assertRaises(ExportError):
                self.sink.save("report.pdf", b"data", "application/pdf")
        self.assertEqual(os.listdir(self.directory), [])

    def test_failed_write_keeps_previous_file(self):
        self.sink.save("report.pdf", b"old", "application/pdf")
        with patch("parking_reports.infrastructure.storage.os.replace", side_effect=OSError("disk full")):
            with self.assertRaises(ExportError):
                self.sink.save("report.pdf", b"new", "application/pdf")
        self.assertEqual((self.directory / "report.pdf").read_bytes(), b"old")
        self.assertEqual(os.listdir(self.directory), ["report.pdf"])


class TestInMemoryDownloadSink(unittest.TestCase):

    def test_save(self):
        sink = InMemoryDownloadSink()
        location = sink.save("Invoice_MH12AB1234.pdf", b"%PDF", "application/pdf")
        self.assertEqual(location, "memory://Invoice_MH12AB1234.pdf")
        self.assertEqual(sink.files["Invoice_MH12AB1234.pdf"], b"%PDF")
        self.assertEqual(sink.content_types["Invoice_MH12AB1234.pdf"], "application/pdf")


if __name__ == '__main__':
    unittest.main()
