# File: parking_reports/application/report_pipeline.py
"""
Filter -> Sort -> Paginate pipeline for report views

The pipeline is stateless: every call recomputes its output from the bucket
it is given. Exports use `apply()` (the whole filtered and sorted view);
the table uses `run()` (one page of it).
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from ..domain.models import Booking
from ..domain.strategies import (
    BookingFilter, CategoryFilter, SearchTextFilter, CompositeFilter,
    SortSpec, SEARCH_FIELDS
)
from .dtos import ReportQueryDTO


@dataclass(frozen=True)
class Page:
    """One page of a filtered and sorted booking list"""
    items: Tuple[Booking, ...]
    page: int
    page_size: int
    total_items: int
    total_pages: int

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def is_empty(self) -> bool:
        return not self.items


def paginate(items: Sequence[Booking], page: int, page_size: int) -> Page:
    """
    Slice [(page-1)*size, page*size) out of `items`

    total_pages is 0 for an empty list; pages past the end are empty.
    """
    if page < 1:
        raise ValueError(f"Page must be >= 1, got {page}")
    if page_size < 1:
        raise ValueError(f"Page size must be >= 1, got {page_size}")

    total = len(items)
    start = (page - 1) * page_size
    return Page(
        items=tuple(items[start:start + page_size]),
        page=page,
        page_size=page_size,
        total_items=total,
        total_pages=math.ceil(total / page_size),
    )


class ReportPipeline:
    """
    Applies a ReportQueryDTO to a booking list
    """

    def __init__(self, search_fields: Sequence[str] = SEARCH_FIELDS):
        self.search_fields = tuple(search_fields)
        self.logger = logging.getLogger(self.__class__.__name__)

    def build_filter(self, query: ReportQueryDTO) -> BookingFilter:
        return CompositeFilter([
            CategoryFilter(query.category),
            SearchTextFilter(query.search, self.search_fields),
        ])

    def sort(self, bookings: Iterable[Booking], spec: Optional[SortSpec]) -> List[Booking]:
        if spec is None:
            return list(bookings)
        return spec.apply(bookings)

    def apply(self, bookings: Iterable[Booking], query: ReportQueryDTO) -> List[Booking]:
        """Filtered and sorted view, without pagination"""
        filtered = self.build_filter(query).apply(bookings)
        return self.sort(filtered, query.sort_spec())

    def run(self, bookings: Iterable[Booking], query: ReportQueryDTO) -> Page:
        """Filtered, sorted and paginated view"""
        view = self.apply(bookings, query)
        page = paginate(view, query.page, query.page_size)
        self.logger.debug(
            f"Query category={query.category!r} search={query.search!r} sort={query.sort_by}/{query.sort_order} "
            f"-> {page.total_items} rows, page {page.page}/{page.total_pages}"
        )
        return page
