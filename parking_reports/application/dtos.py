# File: parking_reports/application/dtos.py
"""
Data Transfer Objects (DTOs) for the Booking Report Engine

This module defines DTOs for data transfer between layers:
1. Input DTOs - Booking and profile records as the backend sends them
2. Query DTOs - Category / search / sort / page parameters of a report view
3. Output DTOs - Outcome of an export

DTO Principles:
- Validation at creation
- Wire names (camelCase) accepted through aliases, Python names everywhere else
- No business logic, only data and conversion to domain objects
"""

from typing import Dict, Optional, Any
from datetime import datetime, timezone
from decimal import Decimal
import json
import logging
from pydantic import BaseModel, Field, field_validator
from pydantic import ConfigDict

from ..domain.models import (
    Booking, CustomerProfile, SortKey, SortDirection,
    ALL_CATEGORIES, parse_instant
)
from ..domain.strategies import SortSpec


# ============================================================================
# BASE DTO CLASSES
# ============================================================================

class BaseDTO(BaseModel):
    """Base DTO with common functionality"""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
    )

    def to_dict(self, exclude_none: bool = False, **kwargs) -> Dict[str, Any]:
        """Convert DTO to dictionary"""
        data = self.model_dump(**kwargs)
        if exclude_none:
            data = {k: v for k, v in data.items() if v is not None}
        return data

    def to_json(self, **kwargs) -> str:
        """Convert DTO to JSON string"""
        return self.model_dump_json(**kwargs)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BaseDTO':
        """Create DTO from dictionary"""
        return cls.model_validate(data)

    @classmethod
    def from_json(cls, json_str: str) -> 'BaseDTO':
        """Create DTO from JSON string"""
        data = json.loads(json_str)
        return cls.model_validate(data)


class PaginatedRequest(BaseDTO):
    """Base DTO for paginated requests"""
    page: int = Field(default=1, ge=1, description="Page number (1-based)")
    page_size: int = Field(default=10, ge=1, le=100, description="Items per page")
    sort_by: Optional[str] = Field(default=None, description="Field to sort by")
    sort_order: str = Field(default="asc", pattern="^(asc|desc)$", description="Sort order (asc/desc)")


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


# ============================================================================
# INPUT DTOs
# ============================================================================

class BookingDTO(BaseDTO):
    """
    Booking record in the flat wire shape

    {"id", "customerName", "company", "registrationNumber", "category",
     "location", "inTime", "outTime", "totalSpent"}
    """
    id: str = Field(..., min_length=1)
    customer_name: Optional[str] = Field(default=None, alias="customerName")
    company: Optional[str] = None
    registration_number: Optional[str] = Field(default=None, alias="registrationNumber")
    category: Optional[str] = None
    location: Optional[str] = None
    in_time: datetime = Field(..., alias="inTime")
    out_time: Optional[datetime] = Field(default=None, alias="outTime")
    total_spent: Decimal = Field(default=Decimal("0"), ge=0, alias="totalSpent")

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        """Backends may send numeric ids"""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator('customer_name', 'company', 'registration_number', 'category', 'location', mode='before')
    @classmethod
    def blank_strings_are_absent(cls, v):
        return _blank_to_none(v)

    @field_validator('in_time', mode='before')
    @classmethod
    def parse_in_time(cls, v):
        return parse_instant(v)

    @field_validator('out_time', mode='before')
    @classmethod
    def parse_out_time(cls, v):
        """An unreadable out time is treated as absent so the booking stays ongoing"""
        v = _blank_to_none(v)
        if v is None:
            return None
        try:
            return parse_instant(v)
        except ValueError as e:
            logging.getLogger(cls.__name__).warning(f"Ignoring out time: {e}")
            return None

    @field_validator('total_spent', mode='before')
    @classmethod
    def missing_amount_is_zero(cls, v):
        v = _blank_to_none(v)
        return Decimal("0") if v is None else v

    def to_domain(self) -> Booking:
        return Booking(
            id=self.id,
            customer_name=self.customer_name,
            company=self.company,
            registration_number=self.registration_number,
            category=self.category,
            location=self.location,
            in_time=self.in_time,
            out_time=self.out_time,
            total_spent=self.total_spent,
        )

    @classmethod
    def from_domain(cls, booking: Booking) -> 'BookingDTO':
        return cls(
            id=booking.id,
            customer_name=booking.customer_name,
            company=booking.company,
            registration_number=booking.registration_number,
            category=booking.category,
            location=booking.location,
            in_time=booking.in_time,
            out_time=booking.out_time,
            total_spent=booking.total_spent,
        )


class ProfileDTO(BaseDTO):
    """Customer profile as returned by the profile endpoint"""
    first_name: str = Field(default="", alias="firstName")
    last_name: str = Field(default="", alias="lastName")
    email: Optional[str] = None
    mobile_number: Optional[str] = Field(default=None, alias="mobileNumber")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        if v is not None and '@' not in v:
            raise ValueError(f"Invalid email address: {v}")
        return v

    @field_validator('mobile_number', mode='before')
    @classmethod
    def blank_mobile_is_absent(cls, v):
        if isinstance(v, int):
            return str(v)
        return _blank_to_none(v)

    def to_domain(self) -> CustomerProfile:
        return CustomerProfile(
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            mobile_number=self.mobile_number,
        )


# ============================================================================
# QUERY DTOs
# ============================================================================

class ReportQueryDTO(PaginatedRequest):
    """Filter, sort and page parameters of one report view"""
    category: str = Field(default=ALL_CATEGORIES, description="Vehicle category or 'all'")
    search: str = Field(default="", description="Free-text search query")

    @field_validator('category', mode='before')
    @classmethod
    def default_category(cls, v):
        return v or ALL_CATEGORIES

    @field_validator('search', mode='before')
    @classmethod
    def default_search(cls, v):
        return v or ""

    @field_validator('sort_by')
    @classmethod
    def validate_sort_by(cls, v):
        if v is None:
            return v
        return SortKey.parse(v).value

    def sort_spec(self) -> Optional[SortSpec]:
        if self.sort_by is None:
            return None
        return SortSpec(SortKey(self.sort_by), SortDirection(self.sort_order))


# ============================================================================
# OUTPUT DTOs
# ============================================================================

class ExportResultDTO(BaseDTO):
    """Outcome of a CSV, PDF report or invoice export"""
    success: bool
    format: str = Field(..., pattern="^(csv|pdf|invoice)$")
    message: str
    filename: Optional[str] = None
    location: Optional[str] = None
    row_count: int = Field(default=0, ge=0)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
