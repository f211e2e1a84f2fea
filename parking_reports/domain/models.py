# File: parking_reports/domain/models.py
"""
Domain Models for the Booking Report & Export Engine

This module contains:
1. Value Objects: Money, FeeBreakdown, CustomerProfile
2. Entities: Booking (read-only projection of a backend booking record)
3. Enums: BookingCategory, SortDirection, SortKey
4. Derived documents: Invoice

Bookings are owned by the backend; this subsystem only reads snapshots of them
and never mutates them. Every derived structure is recomputed on demand.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Union
from datetime import datetime, date, timezone
from decimal import Decimal
from enum import Enum


# Literal fallbacks used wherever an optional value has to be rendered
NOT_AVAILABLE = "N/A"
NO_TIME = "-"

# Sentinel category value that disables category filtering
ALL_CATEGORIES = "all"

# Goods and services tax rate shown on invoices
GST_RATE = Decimal("0.18")


# ============================================================================
# TIME HELPERS
# ============================================================================

def ensure_aware(value: datetime) -> datetime:
    """Attach UTC to naive datetimes so every instant is comparable"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_instant(value: Union[str, datetime, date]) -> datetime:
    """
    Parse an ISO 8601 timestamp into a timezone-aware instant

    Accepts full timestamps ("2020-01-01T10:00:00Z"), offsets, and bare dates
    ("2020-01-01", read as midnight UTC). Raises ValueError for anything else.
    """
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Cannot parse timestamp: {value!r}")

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return ensure_aware(datetime.fromisoformat(text))
    except ValueError:
        raise ValueError(f"Invalid ISO 8601 timestamp: {value!r}") from None


# ============================================================================
# ENUMS FOR DOMAIN TYPES
# ============================================================================

class BookingCategory(str, Enum):
    """
    Temporal bucket a booking falls into relative to a reference instant
    Never stored on the booking itself
    """
    ONGOING = "ongoing"
    UPCOMING = "upcoming"
    PAST = "past"

    @property
    def title(self) -> str:
        """Capitalised label used in filenames and tab captions"""
        return self.value.capitalize()

    @property
    def section_title(self) -> str:
        """Heading used for report sections"""
        return f"{self.title} Bookings"

    def __str__(self) -> str:
        return self.title


class SortDirection(str, Enum):
    """Sort direction for report columns"""
    ASC = "asc"
    DESC = "desc"

    def toggled(self) -> 'SortDirection':
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


class SortKey(str, Enum):
    """
    Sortable booking fields
    Values are the attribute names on Booking
    """
    ID = "id"
    CUSTOMER_NAME = "customer_name"
    COMPANY = "company"
    REGISTRATION_NUMBER = "registration_number"
    CATEGORY = "category"
    LOCATION = "location"
    IN_TIME = "in_time"
    OUT_TIME = "out_time"
    TOTAL_SPENT = "total_spent"

    @property
    def is_date(self) -> bool:
        return self in (SortKey.IN_TIME, SortKey.OUT_TIME)

    @property
    def is_numeric(self) -> bool:
        return self is SortKey.TOTAL_SPENT

    @classmethod
    def parse(cls, value: Union[str, 'SortKey']) -> 'SortKey':
        """Accept both attribute names and the backend's camelCase field names"""
        if isinstance(value, SortKey):
            return value
        aliases = {
            "customerName": cls.CUSTOMER_NAME,
            "name": cls.CUSTOMER_NAME,
            "registrationNumber": cls.REGISTRATION_NUMBER,
            "inTime": cls.IN_TIME,
            "outTime": cls.OUT_TIME,
            "totalSpent": cls.TOTAL_SPENT,
            "key": cls.ID,
        }
        if value in aliases:
            return aliases[value]
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown sort key: {value!r}") from None


# ============================================================================
# VALUE OBJECTS
# ============================================================================

@dataclass(frozen=True)
class Money:
    """
    Value Object: Monetary amount in the system's base currency
    """
    amount: Decimal
    currency: str = "INR"

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))

        if self.amount < Decimal('0'):
            raise ValueError("Money amount cannot be negative")

        if len(self.currency) != 3:
            raise ValueError(f"Currency must be 3-letter code: {self.currency}")

    def __add__(self, other: 'Money') -> 'Money':
        if self.currency != other.currency:
            raise ValueError(f"Cannot add {self.currency} to {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __mul__(self, multiplier: Decimal) -> 'Money':
        if multiplier < Decimal('0'):
            raise ValueError("Multiplier cannot be negative")
        return Money(self.amount * multiplier, self.currency)

    def format(self, symbol: str = "Rs.") -> str:
        """Format with two decimals, e.g. 'Rs.150.00' or with symbol='Rs ' -> 'Rs 150.00'"""
        return f"{symbol}{self.amount:.2f}"

    def to_dict(self) -> Dict[str, Any]:
        return {"amount": str(self.amount), "currency": self.currency}


@dataclass(frozen=True)
class FeeBreakdown:
    """
    Value Object: Itemised invoice lines

    The discount line always equals the GST line, so the payable total is
    the base fare itself. Only the presentation is itemised.
    """
    base_fare: Money
    gst: Money
    discount: Money
    total: Money

    @classmethod
    def from_base_fare(cls, base_fare: Money, gst_rate: Decimal = GST_RATE) -> 'FeeBreakdown':
        gst = base_fare * gst_rate
        return cls(
            base_fare=base_fare,
            gst=gst,
            discount=gst,
            total=base_fare,
        )

    @property
    def gst_percentage(self) -> int:
        if self.base_fare.amount == 0:
            return int(GST_RATE * 100)
        return int((self.gst.amount / self.base_fare.amount * 100).to_integral_value())


@dataclass(frozen=True)
class CustomerProfile:
    """
    Value Object: The customer (or admin) an invoice is billed to
    """
    first_name: str
    last_name: str = ""
    email: Optional[str] = None
    mobile_number: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or NOT_AVAILABLE


# ============================================================================
# DOMAIN ENTITIES
# ============================================================================

@dataclass(frozen=True)
class Booking:
    """
    Entity: One parking reservation/usage record

    A read-only snapshot of the backend record. Display strings may be absent
    (None); rendering code falls back to "N/A". `out_time` being absent means
    the vehicle has not checked out yet.
    """
    id: str
    in_time: datetime
    out_time: Optional[datetime] = None
    total_spent: Decimal = Decimal("0")
    customer_name: Optional[str] = None
    company: Optional[str] = None
    registration_number: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None

    def __post_init__(self):
        if not self.id or not str(self.id).strip():
            raise ValueError("Booking id cannot be empty")
        object.__setattr__(self, 'id', str(self.id))

        if self.in_time is None:
            raise ValueError(f"Booking {self.id} has no in_time")
        object.__setattr__(self, 'in_time', parse_instant(self.in_time))

        if self.out_time is not None:
            object.__setattr__(self, 'out_time', parse_instant(self.out_time))

        amount = self.total_spent if self.total_spent is not None else Decimal("0")
        if not isinstance(amount, Decimal):
            amount = Decimal(str(amount))
        if amount < Decimal("0"):
            raise ValueError(f"Booking {self.id} has negative total_spent: {amount}")
        object.__setattr__(self, 'total_spent', amount)

    @property
    def has_checked_out(self) -> bool:
        return self.out_time is not None

    @property
    def amount(self) -> Money:
        return Money(self.total_spent)

    def display(self, name: str) -> str:
        """Display string for an optional text attribute, with the N/A fallback"""
        value = getattr(self, name)
        if value is None or (isinstance(value, str) and not value.strip()):
            return NOT_AVAILABLE
        return str(value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "customer_name": self.customer_name,
            "company": self.company,
            "registration_number": self.registration_number,
            "category": self.category,
            "location": self.location,
            "in_time": self.in_time.isoformat(),
            "out_time": self.out_time.isoformat() if self.out_time else None,
            "total_spent": str(self.total_spent),
        }

    def __str__(self) -> str:
        return f"Booking {self.id} [{self.display('registration_number')}]"


# ============================================================================
# DERIVED DOCUMENTS
# ============================================================================

@dataclass(frozen=True)
class Invoice:
    """
    Ephemeral invoice composed from one booking and one profile

    Never persisted; it only exists while its PDF is being rendered.
    """
    booking: Booking
    profile: CustomerProfile
    issue_date: date
    fees: FeeBreakdown = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, 'fees', FeeBreakdown.from_base_fare(self.booking.amount))

    @classmethod
    def for_booking(cls, booking: Booking, profile: CustomerProfile, issue_date: date) -> 'Invoice':
        return cls(booking=booking, profile=profile, issue_date=issue_date)

    @property
    def invoice_number(self) -> str:
        """Derived from the last 6 characters of the booking id"""
        return f"INV-{self.booking.id[-6:]}"

    @property
    def verification_payload(self) -> str:
        """Plain-text payload encoded in the invoice QR code"""
        return (
            f"Invoice: {self.invoice_number}, "
            f"Booking ID: {self.booking.id}, "
            f"Total: Rs {self.fees.total.amount:.2f}"
        )

    @property
    def filename(self) -> str:
        reference = self.booking.registration_number or self.booking.id
        return f"Invoice_{reference}.pdf"
