# File: parking_reports/infrastructure/repositories.py
"""
Repository Pattern Implementation for Booking Reports

Repositories give the report controller a collection-like, read-only view of
the bookings owned by the backend.

Repository Types:
1. BookingRepository - interface (fetch the full snapshot)
2. HttpBookingRepository - backend REST API over requests, bearer-token auth
3. InMemoryBookingRepository - for testing, development and demo mode

The backend sends two record shapes, both normalised by BookingMapper:
- flat (customer report): {"id", "registrationNumber", "location", "company",
  "category", "inTime", "outTime", "totalSpent"}
- nested (admin report): {"bookId", "user": {...}, "vehicle": {...},
  "parkingLot": {...}}
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any, Iterable, Callable
import logging

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from pydantic import ValidationError

from ..domain.models import Booking
from ..application.dtos import BookingDTO
from ..application.exceptions import BookingFetchError
from ..config import ReportSettings


# ============================================================================
# DOMAIN <-> WIRE MAPPERS
# ============================================================================

def _nested(record: Dict[str, Any], key: str) -> Dict[str, Any]:
    """Nested object at `key`; deleted or non-object references read as empty"""
    value = record.get(key)
    return value if isinstance(value, dict) else {}


class BookingMapper:
    """Maps backend booking records to domain Bookings"""

    def __init__(self):
        self._logger = logging.getLogger(self.__class__.__name__)

    @staticmethod
    def flatten(record: Dict[str, Any]) -> Dict[str, Any]:
        """Normalise a nested admin record into the flat wire shape"""
        if "vehicle" not in record and "bookId" not in record:
            return record

        user = _nested(record, "user")
        vehicle = _nested(record, "vehicle")
        lot = _nested(record, "parkingLot")
        vehicle_category = _nested(vehicle, "vehicleCategory")

        name = record.get("customerName")
        if name is None and user:
            name = f"{user.get('firstName') or ''} {user.get('lastName') or ''}".strip()

        return {
            "id": record.get("id", record.get("bookId")),
            "customerName": name,
            "company": record.get("company", vehicle.get("vehicleCompanyName")),
            "registrationNumber": record.get("registrationNumber", vehicle.get("registrationNumber")),
            "category": record.get("category", vehicle_category.get("vehicleCat")),
            "location": record.get("location", lot.get("location")),
            "inTime": record.get("inTime", vehicle.get("inTime")),
            "outTime": record.get("outTime", vehicle.get("outTime")),
            "totalSpent": record.get("totalSpent", lot.get("price")),
        }

    def to_domain(self, record: Dict[str, Any]) -> Booking:
        """Convert one record; raises ValidationError for unusable records"""
        return BookingDTO.model_validate(self.flatten(record)).to_domain()

    def to_domain_many(self, records: Iterable[Dict[str, Any]]) -> List[Booking]:
        """
        Convert a batch of records

        Records without an id or a parseable in_time cannot be classified and
        are skipped with a warning; optional fields never cause a skip.
        """
        bookings = []
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                self._logger.warning(f"Skipping record #{index}: expected an object, got {type(record).__name__}")
                continue
            try:
                bookings.append(self.to_domain(record))
            except (ValidationError, ValueError, TypeError) as e:
                self._logger.warning(f"Skipping malformed booking record #{index}: {e}")
        return bookings


# ============================================================================
# REPOSITORY INTERFACES
# ============================================================================

class BookingRepository(ABC):
    """Read-only source of booking snapshots"""

    @abstractmethod
    def fetch_all(self) -> List[Booking]:
        """
        Fetch the complete current booking list
        Raises: BookingFetchError when the source is unavailable
        """
        pass


# ============================================================================
# IN-MEMORY REPOSITORY
# ============================================================================

class InMemoryBookingRepository(BookingRepository):
    """In-memory repository for testing and demo mode"""

    def __init__(self, bookings: Optional[Iterable[Booking]] = None):
        self._storage: Dict[str, Booking] = {}
        self._logger = logging.getLogger(self.__class__.__name__)
        for booking in bookings or []:
            self.add(booking)

    def add(self, booking: Booking) -> Booking:
        self._storage[booking.id] = booking
        self._logger.debug(f"Added booking {booking.id}")
        return booking

    def add_many(self, bookings: Iterable[Booking]) -> List[Booking]:
        return [self.add(b) for b in bookings]

    def fetch_all(self) -> List[Booking]:
        return list(self._storage.values())

    def count(self) -> int:
        return len(self._storage)

    def clear(self):
        """Clear all data (for testing)"""
        self._storage.clear()


# ============================================================================
# HTTP REPOSITORY
# ============================================================================

def build_session(max_retries: int) -> requests.Session:
    """Session retrying idempotent reads on connection errors and 5xx/429"""
    session = requests.Session()
    retries = Retry(
        total=max_retries, connect=max_retries, read=max_retries, backoff_factor=0.5,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=("GET",),
        raise_on_status=False,
    )
    session.mount("https://", HTTPAdapter(max_retries=retries))
    session.mount("http://", HTTPAdapter(max_retries=retries))
    session.headers.update({"Accept": "application/json"})
    return session


class HttpBookingRepository(BookingRepository):
    """
    Fetches bookings from the backend REST API

    The request is a plain GET returning a JSON array (or an object wrapping
    it under "data" or "bookings"), authenticated with a bearer token. The
    token is obtained from `token_provider` on every call so a refreshed
    token is picked up without rebuilding the repository.
    """

    def __init__(
        self,
        settings: ReportSettings,
        path: str,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        session: Optional[requests.Session] = None,
        mapper: Optional[BookingMapper] = None
    ):
        if not settings.backend_url:
            raise ValueError("HttpBookingRepository requires settings.backend_url")
        self.settings = settings
        self.url = f"{settings.backend_url}/{path.lstrip('/')}"
        self.token_provider = token_provider or (lambda: settings.api_token)
        self.session = session or build_session(settings.max_retries)
        self.mapper = mapper or BookingMapper()
        self._logger = logging.getLogger(self.__class__.__name__)

    def _headers(self) -> Dict[str, str]:
        token = self.token_provider()
        return {"Authorization": f"Bearer {token}"} if token else {}

    def fetch_all(self) -> List[Booking]:
        self._logger.info(f"Fetching bookings from {self.url}")
        try:
            response = self.session.get(
                self.url, headers=self._headers(), timeout=self.settings.request_timeout
            )
            response.raise_for_status()
            payload = response.json()
        except requests.JSONDecodeError as e:
            self._logger.error(f"Backend returned invalid JSON: {e}")
            raise BookingFetchError("Backend returned invalid JSON") from e
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            self._logger.error(f"Backend returned HTTP {status} for {self.url}")
            raise BookingFetchError(f"Backend returned HTTP {status}", status_code=status) from e
        except requests.RequestException as e:
            self._logger.error(f"Request to {self.url} failed: {e}")
            raise BookingFetchError(f"Could not reach backend: {e}") from e

        records = self._extract_records(payload)
        bookings = self.mapper.to_domain_many(records)
        self._logger.info(f"Fetched {len(bookings)} bookings ({len(records) - len(bookings)} skipped)")
        return bookings

    @staticmethod
    def _extract_records(payload: Any) -> List[Any]:
        if isinstance(payload, dict):
            for key in ("data", "bookings"):
                if isinstance(payload.get(key), list):
                    return payload[key]
        if isinstance(payload, list):
            return payload
        raise BookingFetchError(f"Unexpected payload type from backend: {type(payload).__name__}")
