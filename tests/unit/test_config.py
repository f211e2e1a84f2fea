#!/usr/bin/env python3
"""
Configuration Unit Tests
"""

import os
import tempfile
import unittest
import sys
from pathlib import Path

from pydantic import ValidationError

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from parking_reports.config import AppConfig, PDF_COLORS, ReportSettings, Theme


class TestAppConfig(unittest.TestCase):

    def test_themes_define_the_same_colours(self):
        self.assertEqual(set(AppConfig.COLORS[Theme.LIGHT]), set(AppConfig.COLORS[Theme.DARK]))

    def test_pdf_colours_are_rgb(self):
        for name, value in PDF_COLORS.items():
            self.assertEqual(len(value), 3, msg=name)
            self.assertTrue(all(0 <= c <= 255 for c in value), msg=name)


class TestReportSettings(unittest.TestCase):
    """Unit tests for ReportSettings"""

    def test_defaults(self):
        settings = ReportSettings()
        self.assertIsNone(settings.backend_url)
        self.assertEqual(settings.admin_page_size, 10)
        self.assertEqual(settings.customer_page_size, 5)
        self.assertEqual(settings.footer_title, "EazyParking Booking Report")

    def test_backend_url_normalisation(self):
        self.assertEqual(ReportSettings(backend_url="https://api.example.com/").backend_url, "https://api.example.com")
        self.assertIsNone(ReportSettings(backend_url="  ").backend_url)

    def test_invalid_values(self):
        with self.assertRaises(ValidationError):
            ReportSettings(timezone="Mars/Olympus_Mons")
        with self.assertRaises(ValidationError):
            ReportSettings(admin_page_size=0)
        with self.assertRaises(ValidationError):
            ReportSettings(request_timeout=0)

    def test_validate_assignment(self):
        settings = ReportSettings()
        with self.assertRaises(ValidationError):
            settings.timezone = "Nowhere/Special"

    def test_timezone(self):
        self.assertEqual(ReportSettings(timezone="Asia/Kolkata").tz.key, "Asia/Kolkata")


class TestSettingsFromYaml(unittest.TestCase):
    """Unit tests for loading settings from YAML"""

    def write(self, text):
        handle = tempfile.NamedTemporaryFile("w", suffix=".yaml", delete=False, encoding="utf-8")
        with handle:
            handle.write(text)
        self.addCleanup(os.unlink, handle.name)
        return handle.name

    def test_from_yaml(self):
        path = self.write(
            "backend_url: https://api.example.com/\n"
            "timezone: Asia/Kolkata\n"
            "customer_page_size: 8\n"
        )
        settings = ReportSettings.from_yaml(path)
        self.assertEqual(settings.backend_url, "https://api.example.com")
        self.assertEqual(settings.timezone, "Asia/Kolkata")
        self.assertEqual(settings.customer_page_size, 8)
        self.assertEqual(settings.admin_page_size, 10)

    def test_empty_file_uses_defaults(self):
        self.assertEqual(ReportSettings.from_yaml(self.write("")), ReportSettings())

    def test_invalid_files(self):
        for text in ["- just\n- a list\n", "key: [unclosed\n", "timezone: Nowhere/Special\n"]:
            with self.assertRaises(ValueError, msg=f"Accepted {text!r}"):
                ReportSettings.from_yaml(self.write(text))

    def test_missing_file(self):
        with self.assertRaises(OSError):
            ReportSettings.from_yaml("/nonexistent/settings.yaml")


if __name__ == '__main__':
    unittest.main()
