# File: parking_reports/domain/classification.py
"""
Temporal Classification of Bookings

Partitions a booking list into ongoing / upcoming / past buckets relative to a
reference instant. Rules are applied per booking in this fixed order:

1. in_time strictly after now           -> UPCOMING
2. out_time present and before now      -> PAST
3. otherwise                            -> ONGOING

A booking that has started and has no out_time stays ongoing indefinitely.
Inconsistent pairs (out_time before in_time) are not rejected; rule order
decides which bucket they land in.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .models import Booking, BookingCategory, ensure_aware


# ============================================================================
# CLASSIFIED RESULT
# ============================================================================

@dataclass(frozen=True)
class ClassifiedBookings:
    """Three disjoint buckets whose union is the input list"""
    ongoing: Tuple[Booking, ...] = ()
    upcoming: Tuple[Booking, ...] = ()
    past: Tuple[Booking, ...] = ()

    def get(self, category: BookingCategory) -> Tuple[Booking, ...]:
        category = BookingCategory(category)
        if category is BookingCategory.ONGOING:
            return self.ongoing
        if category is BookingCategory.UPCOMING:
            return self.upcoming
        return self.past

    def counts(self) -> Dict[BookingCategory, int]:
        return {
            BookingCategory.ONGOING: len(self.ongoing),
            BookingCategory.UPCOMING: len(self.upcoming),
            BookingCategory.PAST: len(self.past),
        }

    @property
    def total(self) -> int:
        return len(self.ongoing) + len(self.upcoming) + len(self.past)

    def sections(self) -> List[Tuple[BookingCategory, Tuple[Booking, ...]]]:
        """Buckets in report order: ongoing, upcoming, past"""
        return [
            (BookingCategory.ONGOING, self.ongoing),
            (BookingCategory.UPCOMING, self.upcoming),
            (BookingCategory.PAST, self.past),
        ]

    def ordered(self) -> 'ClassifiedBookings':
        """
        Copy in customer display order:
        upcoming soonest first, ongoing most recent first, past most recently ended first
        """
        return ClassifiedBookings(
            ongoing=tuple(sorted(self.ongoing, key=lambda b: b.in_time, reverse=True)),
            upcoming=tuple(sorted(self.upcoming, key=lambda b: b.in_time)),
            past=tuple(sorted(self.past, key=lambda b: b.out_time, reverse=True)),
        )


# ============================================================================
# CLASSIFIER
# ============================================================================

def classify_booking(booking: Booking, now: datetime) -> BookingCategory:
    """Category of a single booking at instant `now`"""
    now = ensure_aware(now)
    if booking.in_time > now:
        return BookingCategory.UPCOMING
    if booking.out_time is not None and booking.out_time < now:
        return BookingCategory.PAST
    return BookingCategory.ONGOING


def classify(bookings: Iterable[Booking], now: datetime) -> ClassifiedBookings:
    """
    Partition bookings into the three buckets

    Pure and idempotent; relative input order is preserved inside each bucket.
    """
    buckets: Dict[BookingCategory, List[Booking]] = {
        BookingCategory.ONGOING: [],
        BookingCategory.UPCOMING: [],
        BookingCategory.PAST: [],
    }
    for booking in bookings:
        buckets[classify_booking(booking, now)].append(booking)

    return ClassifiedBookings(
        ongoing=tuple(buckets[BookingCategory.ONGOING]),
        upcoming=tuple(buckets[BookingCategory.UPCOMING]),
        past=tuple(buckets[BookingCategory.PAST]),
    )


class TemporalClassifier:
    """
    Classifier bound to a clock

    The clock is injectable so reports can be rebuilt against a fixed instant.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = logging.getLogger(self.__class__.__name__)

    def classify(self, bookings: Iterable[Booking], now: Optional[datetime] = None) -> ClassifiedBookings:
        reference = ensure_aware(now) if now is not None else ensure_aware(self.clock())
        result = classify(bookings, reference)
        self.logger.debug(
            f"Classified {result.total} bookings at {reference.isoformat()}: "
            f"{len(result.ongoing)} ongoing, {len(result.upcoming)} upcoming, {len(result.past)} past"
        )
        return result
