# File: parking_reports/domain/strategies.py
"""
Strategy Pattern Implementation for Booking Report Queries

This module encapsulates the interchangeable algorithms applied to a booking
list before it is shown or exported.

Key Strategies:
1. Filter Strategies - Category equality, free-text search, composition
2. Sort Strategies - Date, numeric and case-folded string ordering
3. SortSpec - The (key, direction) pair plus the header-click toggle rule

Sorting rules:
- Sorting is stable; equal values keep their input order in both directions
- Records whose sort value is absent are placed after all present values,
  whichever direction is requested
- Descending order is a genuine reverse of the ascending comparison
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, List, Any, Iterable, Sequence
from decimal import Decimal
import logging

from .models import (
    Booking, SortKey, SortDirection, ALL_CATEGORIES
)


# Fields inspected by the free-text search box
SEARCH_FIELDS = ("company", "registration_number", "location", "category")


# ============================================================================
# FILTER STRATEGIES
# ============================================================================

class BookingFilter(ABC):
    """
    Abstract base class for booking filters
    A filter is a predicate; applying it keeps input order
    """

    @abstractmethod
    def matches(self, booking: Booking) -> bool:
        """Return True if the booking passes this filter"""
        pass

    def apply(self, bookings: Iterable[Booking]) -> List[Booking]:
        return [booking for booking in bookings if self.matches(booking)]

    def __and__(self, other: 'BookingFilter') -> 'CompositeFilter':
        return CompositeFilter([self, other])


class CategoryFilter(BookingFilter):
    """
    Exact match on the vehicle category
    The sentinel "all" disables filtering
    """

    def __init__(self, category: Optional[str] = ALL_CATEGORIES):
        self.category = category or ALL_CATEGORIES

    @property
    def is_active(self) -> bool:
        return self.category != ALL_CATEGORIES

    def matches(self, booking: Booking) -> bool:
        if not self.is_active:
            return True
        return booking.category == self.category


class SearchTextFilter(BookingFilter):
    """
    Case-insensitive substring search over a fixed set of text fields

    A booking matches when any field contains the query. Absent fields never
    match. An empty query matches everything.
    """

    def __init__(self, query: Optional[str] = "", fields: Sequence[str] = SEARCH_FIELDS):
        self.query = (query or "").strip().casefold()
        self.fields = tuple(fields)

    def matches(self, booking: Booking) -> bool:
        if not self.query:
            return True
        for name in self.fields:
            value = getattr(booking, name)
            if value is not None and self.query in str(value).casefold():
                return True
        return False


class CompositeFilter(BookingFilter):
    """Conjunction of filters; an empty composite matches everything"""

    def __init__(self, filters: Optional[Iterable[BookingFilter]] = None):
        self.filters: List[BookingFilter] = []
        for item in filters or []:
            if isinstance(item, CompositeFilter):
                self.filters.extend(item.filters)
            else:
                self.filters.append(item)

    def matches(self, booking: Booking) -> bool:
        return all(f.matches(booking) for f in self.filters)


# ============================================================================
# SORT STRATEGIES
# ============================================================================

class SortStrategy(ABC):
    """
    Abstract base class for sort strategies
    Subclasses decide how a field value is compared
    """

    def __init__(self, key: SortKey):
        self.key = SortKey.parse(key)
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def sort_value(self, booking: Booking) -> Optional[Any]:
        """
        Comparable value for the booking
        Returns: None when the booking has no value for this key
        """
        pass

    def sort(self, bookings: Iterable[Booking], direction: SortDirection = SortDirection.ASC) -> List[Booking]:
        """Return a new, stably sorted list; absent values go last"""
        direction = SortDirection(direction)
        present = []
        missing = []
        for booking in bookings:
            value = self.sort_value(booking)
            if value is None:
                missing.append(booking)
            else:
                present.append((value, booking))

        # list.sort keeps equal elements in input order even with reverse=True
        present.sort(key=lambda pair: pair[0], reverse=direction is SortDirection.DESC)
        return [booking for _, booking in present] + missing

    def get_strategy_name(self) -> str:
        return self.__class__.__name__.replace("SortStrategy", "")

    def __str__(self) -> str:
        return f"{self.get_strategy_name()} sort on {self.key.value}"


class DateSortStrategy(SortStrategy):
    """Chronological order of in_time / out_time"""

    def sort_value(self, booking: Booking) -> Optional[Any]:
        return getattr(booking, self.key.value)


class NumericSortStrategy(SortStrategy):
    """Numeric order; an absent amount counts as zero"""

    def sort_value(self, booking: Booking) -> Optional[Any]:
        value = getattr(booking, self.key.value)
        return value if value is not None else Decimal("0")


class StringSortStrategy(SortStrategy):
    """Case-folded lexical order"""

    def sort_value(self, booking: Booking) -> Optional[Any]:
        value = getattr(booking, self.key.value)
        if value is None:
            return None
        text = str(value).strip()
        return text.casefold() if text else None


class SortStrategyFactory:
    """Select the sort strategy appropriate for a key"""

    @staticmethod
    def create(key: SortKey) -> SortStrategy:
        key = SortKey.parse(key)
        if key.is_date:
            return DateSortStrategy(key)
        if key.is_numeric:
            return NumericSortStrategy(key)
        return StringSortStrategy(key)


# ============================================================================
# SORT SPECIFICATION
# ============================================================================

@dataclass(frozen=True)
class SortSpec:
    """A sort key with its direction"""
    key: SortKey
    direction: SortDirection = SortDirection.ASC

    def __post_init__(self):
        object.__setattr__(self, 'key', SortKey.parse(self.key))
        object.__setattr__(self, 'direction', SortDirection(self.direction))

    @staticmethod
    def toggle(current: Optional['SortSpec'], key: SortKey) -> 'SortSpec':
        """
        Header-click rule: the same key flips the direction,
        a different key starts ascending
        """
        key = SortKey.parse(key)
        if current is not None and current.key is key:
            return SortSpec(key, current.direction.toggled())
        return SortSpec(key, SortDirection.ASC)

    def apply(self, bookings: Iterable[Booking]) -> List[Booking]:
        return SortStrategyFactory.create(self.key).sort(bookings, self.direction)
