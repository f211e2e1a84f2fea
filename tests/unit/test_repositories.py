#!/usr/bin/env python3
"""
Repository Unit Tests

Tests for the backend record mapper and the in-memory and HTTP repositories.
The HTTP repository is exercised against a mocked requests session.
"""

import unittest
import sys
from pathlib import Path
from decimal import Decimal
from unittest.mock import Mock

import requests

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from parking_reports.application.exceptions import BookingFetchError
from parking_reports.config import ReportSettings
from parking_reports.infrastructure.factories import BookingFactory
from parking_reports.infrastructure.repositories import (
    BookingMapper, HttpBookingRepository, InMemoryBookingRepository, build_session
)


FLAT_RECORD = {
    "id": "65f1c2a9b8d7e6f5a4b3c2d1",
    "registrationNumber": "MH12AB1234",
    "location": "Airport",
    "company": "Honda",
    "category": "Car",
    "inTime": "2024-06-01T10:00:00Z",
    "outTime": "2024-06-01T12:00:00Z",
    "totalSpent": 150,
}

NESTED_RECORD = {
    "bookId": "65f1c2a9b8d7e6f5a4b3c2d2",
    "user": {"firstName": "Asha", "lastName": "Verma"},
    "vehicle": {
        "vehicleCompanyName": "Yamaha",
        "registrationNumber": "KA01XY9876",
        "vehicleCategory": {"vehicleCat": "Bike"},
        "inTime": "2024-06-02T09:00:00Z",
        "outTime": None,
    },
    "parkingLot": {"location": "City Mall", "price": 40},
}


class TestBookingMapper(unittest.TestCase):
    """Unit tests for BookingMapper"""

    def setUp(self):
        self.mapper = BookingMapper()

    def test_flat_record(self):
        booking = self.mapper.to_domain(FLAT_RECORD)
        self.assertEqual(booking.id, "65f1c2a9b8d7e6f5a4b3c2d1")
        self.assertEqual(booking.registration_number, "MH12AB1234")
        self.assertIsNone(booking.customer_name)
        self.assertEqual(booking.total_spent, Decimal("150"))

    def test_nested_record(self):
        booking = self.mapper.to_domain(NESTED_RECORD)
        self.assertEqual(booking.id, "65f1c2a9b8d7e6f5a4b3c2d2")
        self.assertEqual(booking.customer_name, "Asha Verma")
        self.assertEqual(booking.company, "Yamaha")
        self.assertEqual(booking.category, "Bike")
        self.assertEqual(booking.location, "City Mall")
        self.assertIsNone(booking.out_time)
        self.assertEqual(booking.total_spent, Decimal("40"))

    def test_flatten_leaves_flat_records_alone(self):
        self.assertIs(BookingMapper.flatten(FLAT_RECORD), FLAT_RECORD)

    def test_nested_record_without_user(self):
        record = dict(NESTED_RECORD, user=None)
        self.assertIsNone(self.mapper.to_domain(record).customer_name)

    def test_malformed_records_are_skipped(self):
        records = [
            FLAT_RECORD,
            dict(FLAT_RECORD, id=None),
            dict(FLAT_RECORD, id="x", inTime="garbage"),
            "not a record",
            NESTED_RECORD,
        ]
        with self.assertLogs("BookingMapper", level="WARNING") as logs:
            bookings = self.mapper.to_domain_many(records)
        self.assertEqual([b.registration_number for b in bookings], ["MH12AB1234", "KA01XY9876"])
        self.assertEqual(len(logs.records), 3)

    def test_non_object_references_read_as_empty(self):
        record = dict(NESTED_RECORD, user="deleted-user", parkingLot=["stale"])
        booking = self.mapper.to_domain(record)
        self.assertIsNone(booking.customer_name)
        self.assertIsNone(booking.location)
        self.assertEqual(booking.total_spent, Decimal("0"))
        self.assertEqual(booking.registration_number, "KA01XY9876")

    def test_deleted_vehicle_is_skipped_not_raised(self):
        records = [NESTED_RECORD, dict(NESTED_RECORD, bookId="gone", vehicle="deleted-vehicle")]
        with self.assertLogs("BookingMapper", level="WARNING") as logs:
            bookings = self.mapper.to_domain_many(records)
        self.assertEqual([b.id for b in bookings], ["65f1c2a9b8d7e6f5a4b3c2d2"])
        self.assertEqual(len(logs.records), 1)

    def test_unreadable_out_time_keeps_the_booking(self):
        record = {"id": "1", "inTime": "2024-01-01T00:00:00Z", "outTime": "not-a-date"}
        with self.assertLogs("BookingDTO", level="WARNING"):
            bookings = self.mapper.to_domain_many([record])
        self.assertEqual(len(bookings), 1)
        self.assertIsNone(bookings[0].out_time)
        self.assertFalse(bookings[0].has_checked_out)

    def test_missing_optional_fields_are_kept(self):
        record = {"id": "b1", "inTime": "2024-06-01T10:00:00Z"}
        bookings = self.mapper.to_domain_many([record])
        self.assertEqual(len(bookings), 1)
        self.assertEqual(bookings[0].total_spent, Decimal("0"))


class TestInMemoryBookingRepository(unittest.TestCase):
    """Unit tests for InMemoryBookingRepository"""

    def test_add_and_fetch(self):
        bookings = BookingFactory(seed=1).create_many(3, in_time="2024-06-01T10:00:00Z")
        repository = InMemoryBookingRepository(bookings)
        self.assertEqual(repository.count(), 3)
        self.assertEqual(repository.fetch_all(), bookings)

    def test_fetch_returns_a_copy(self):
        repository = InMemoryBookingRepository()
        repository.fetch_all().append("junk")
        self.assertEqual(repository.fetch_all(), [])

    def test_clear(self):
        repository = InMemoryBookingRepository(BookingFactory(seed=1).create_random_many(4))
        repository.clear()
        self.assertEqual(repository.count(), 0)


class TestHttpBookingRepository(unittest.TestCase):
    """Unit tests for HttpBookingRepository"""

    def setUp(self):
        self.settings = ReportSettings(backend_url="https://api.example.com/", api_token="secret")
        self.session = Mock()
        self.response = Mock()
        self.response.raise_for_status.return_value = None
        self.response.json.return_value = [FLAT_RECORD, NESTED_RECORD]
        self.session.get.return_value = self.response
        self.repository = HttpBookingRepository(
            self.settings, "/api/user/report", session=self.session
        )

    def test_requires_backend_url(self):
        with self.assertRaises(ValueError):
            HttpBookingRepository(ReportSettings(), "/api/user/report")

    def test_url_joining(self):
        self.assertEqual(self.repository.url, "https://api.example.com/api/user/report")

    def test_fetch_all(self):
        bookings = self.repository.fetch_all()
        self.assertEqual(len(bookings), 2)
        self.session.get.assert_called_once_with(
            "https://api.example.com/api/user/report",
            headers={"Authorization": "Bearer secret"},
            timeout=10.0,
        )

    def test_bad_nested_record_does_not_fail_the_fetch(self):
        self.response.json.return_value = [FLAT_RECORD, dict(NESTED_RECORD, bookId="bad", user="deleted-user")]
        bookings = self.repository.fetch_all()
        self.assertEqual([b.id for b in bookings], ["65f1c2a9b8d7e6f5a4b3c2d1", "bad"])

    def test_token_provider_is_called_per_request(self):
        tokens = iter(["first", "second"])
        repository = HttpBookingRepository(
            self.settings, "/api/user/report", token_provider=lambda: next(tokens), session=self.session
        )
        repository.fetch_all()
        repository.fetch_all()
        headers = [call.kwargs["headers"] for call in self.session.get.call_args_list]
        self.assertEqual(headers, [{"Authorization": "Bearer first"}, {"Authorization": "Bearer second"}])

    def test_no_token_sends_no_auth_header(self):
        repository = HttpBookingRepository(
            self.settings, "/api/user/report", token_provider=lambda: None, session=self.session
        )
        repository.fetch_all()
        self.assertEqual(self.session.get.call_args.kwargs["headers"], {})

    def test_wrapped_payload(self):
        self.response.json.return_value = {"success": True, "data": [FLAT_RECORD]}
        self.assertEqual(len(self.repository.fetch_all()), 1)
        self.response.json.return_value = {"bookings": [NESTED_RECORD]}
        self.assertEqual(self.repository.fetch_all()[0].company, "Yamaha")

    def test_unexpected_payload(self):
        self.response.json.return_value = {"message": "ok"}
        with self.assertRaises(BookingFetchError):
            self.repository.fetch_all()

    def test_http_error(self):
        error_response = Mock(status_code=503)
        self.response.raise_for_status.side_effect = requests.HTTPError(response=error_response)
        with self.assertRaises(BookingFetchError) as ctx:
            self.repository.fetch_all()
        self.assertEqual(ctx.exception.status_code, 503)
        self.assertIn("503", str(ctx.exception))

    def test_connection_error(self):
        self.session.get.side_effect = requests.ConnectionError("connection refused")
        with self.assertRaises(BookingFetchError) as ctx:
            self.repository.fetch_all()
        self.assertIsNone(ctx.exception.status_code)
        self.assertIn("Could not reach backend", str(ctx.exception))

    def test_invalid_json(self):
        self.response.json.side_effect = requests.JSONDecodeError("Expecting value", "<html>", 0)
        with self.assertRaises(BookingFetchError) as ctx:
            self.repository.fetch_all()
        self.assertEqual(str(ctx.exception), "Backend returned invalid JSON")


class TestBuildSession(unittest.TestCase):
    """Unit tests for the retrying session"""

    def test_retry_configuration(self):
        session = build_session(max_retries=2)
        retries = session.get_adapter("https://api.example.com").max_retries
        self.assertEqual(retries.total, 2)
        self.assertIn(503, retries.status_forcelist)
        self.assertEqual(session.headers["Accept"], "application/json")


if __name__ == '__main__':
    unittest.main()
