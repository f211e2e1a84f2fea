#!/usr/bin/env python3
"""
DTO Unit Tests

Tests for wire-shape validation of bookings, profiles and report queries.
"""

import unittest
import sys
from pathlib import Path
from datetime import datetime, timezone
from decimal import Decimal

from pydantic import ValidationError

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from parking_reports.application.dtos import (
    BookingDTO, ExportResultDTO, ProfileDTO, ReportQueryDTO
)
from parking_reports.domain.models import SortDirection, SortKey


class TestBookingDTO(unittest.TestCase):
    """Unit tests for BookingDTO"""

    def setUp(self):
        self.record = {
            "id": "b-1",
            "customerName": "Asha Verma",
            "company": "Honda",
            "registrationNumber": "MH12AB1234",
            "category": "Car",
            "location": "Airport",
            "inTime": "2024-06-01T10:00:00Z",
            "outTime": "2024-06-01T12:00:00Z",
            "totalSpent": 150,
        }

    def test_wire_aliases(self):
        dto = BookingDTO.from_dict(self.record)
        self.assertEqual(dto.customer_name, "Asha Verma")
        self.assertEqual(dto.registration_number, "MH12AB1234")
        self.assertEqual(dto.in_time, datetime(2024, 6, 1, 10, tzinfo=timezone.utc))
        self.assertEqual(dto.total_spent, Decimal("150"))

    def test_python_names_are_accepted(self):
        dto = BookingDTO(id="b-2", in_time="2024-06-01T10:00:00Z", total_spent="12.50")
        self.assertEqual(dto.total_spent, Decimal("12.50"))

    def test_numeric_id(self):
        self.record["id"] = 42
        self.assertEqual(BookingDTO.from_dict(self.record).id, "42")

    def test_blank_strings_become_absent(self):
        self.record.update({"company": "", "location": "   ", "outTime": ""})
        dto = BookingDTO.from_dict(self.record)
        self.assertIsNone(dto.company)
        self.assertIsNone(dto.location)
        self.assertIsNone(dto.out_time)

    def test_unreadable_out_time_is_absent(self):
        self.record["outTime"] = "not-a-date"
        with self.assertLogs("BookingDTO", level="WARNING") as logs:
            dto = BookingDTO.from_dict(self.record)
        self.assertIsNone(dto.out_time)
        self.assertIn("not-a-date", logs.output[0])

    def test_missing_amount_is_zero(self):
        self.record["totalSpent"] = None
        self.assertEqual(BookingDTO.from_dict(self.record).total_spent, Decimal("0"))
        del self.record["totalSpent"]
        self.assertEqual(BookingDTO.from_dict(self.record).total_spent, Decimal("0"))

    def test_invalid_records(self):
        for field, value in [("inTime", "not-a-date"), ("inTime", None), ("totalSpent", -5), ("id", "")]:
            record = dict(self.record, **{field: value})
            with self.assertRaises(ValidationError, msg=f"Accepted {field}={value!r}"):
                BookingDTO.from_dict(record)

    def test_to_domain(self):
        booking = BookingDTO.from_dict(self.record).to_domain()
        self.assertEqual(booking.id, "b-1")
        self.assertEqual(booking.company, "Honda")
        self.assertTrue(booking.has_checked_out)

    def test_from_domain(self):
        booking = BookingDTO.from_dict(self.record).to_domain()
        dto = BookingDTO.from_domain(booking)
        self.assertEqual(dto.to_dict(by_alias=True)["registrationNumber"], "MH12AB1234")


class TestProfileDTO(unittest.TestCase):
    """Unit tests for ProfileDTO"""

    def test_profile(self):
        profile = ProfileDTO.from_dict({
            "firstName": "Asha", "lastName": "Verma",
            "email": "asha@example.com", "mobileNumber": 9876543210,
        }).to_domain()
        self.assertEqual(profile.full_name, "Asha Verma")
        self.assertEqual(profile.mobile_number, "9876543210")

    def test_invalid_email(self):
        with self.assertRaises(ValidationError):
            ProfileDTO(firstName="Asha", email="not-an-email")

    def test_blank_mobile(self):
        self.assertIsNone(ProfileDTO(firstName="Asha", mobileNumber="").mobile_number)


class TestReportQueryDTO(unittest.TestCase):
    """Unit tests for ReportQueryDTO"""

    def test_defaults(self):
        query = ReportQueryDTO()
        self.assertEqual(query.category, "all")
        self.assertEqual(query.search, "")
        self.assertEqual(query.page, 1)
        self.assertIsNone(query.sort_spec())

    def test_empty_category_means_all(self):
        self.assertEqual(ReportQueryDTO(category="").category, "all")
        self.assertEqual(ReportQueryDTO(search=None).search, "")

    def test_sort_by_alias_is_normalised(self):
        query = ReportQueryDTO(sort_by="inTime", sort_order="desc")
        self.assertEqual(query.sort_by, "in_time")
        spec = query.sort_spec()
        self.assertIs(spec.key, SortKey.IN_TIME)
        self.assertIs(spec.direction, SortDirection.DESC)

    def test_invalid_values(self):
        with self.assertRaises(ValidationError):
            ReportQueryDTO(sort_by="colour")
        with self.assertRaises(ValidationError):
            ReportQueryDTO(sort_order="sideways")
        with self.assertRaises(ValidationError):
            ReportQueryDTO(page=0)
        with self.assertRaises(ValidationError):
            ReportQueryDTO(page_size=101)


class TestExportResultDTO(unittest.TestCase):
    """Unit tests for ExportResultDTO"""

    def test_result(self):
        result = ExportResultDTO(success=True, format="csv", message="Saved", filename="All_Bookings_2024-06-01.csv")
        self.assertEqual(result.to_dict(exclude_none=True)["filename"], "All_Bookings_2024-06-01.csv")
        self.assertNotIn("location", result.to_dict(exclude_none=True))

    def test_unknown_format(self):
        with self.assertRaises(ValidationError):
            ExportResultDTO(success=True, format="xlsx", message="Saved")


if __name__ == '__main__':
    unittest.main()
