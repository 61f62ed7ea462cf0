import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional, Tuple, Union

from app.core.config import settings
from app.core.errors import ValidationError
from app.services.validation import parse_datetime

ALL = "all"
DEFAULT_SORT = "-date"
# Fields matched by the free-text search
TEXT_SEARCH_FIELDS = ("customerName", "carDetails.make", "carDetails.model")
SORTABLE_FIELDS = {
    "customerName", "serviceType", "date", "timeSlot", "duration", "price",
    "status", "rating", "createdAt", "updatedAt",
}

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_NESTED_KEY = re.compile(r"^carDetails\.[A-Za-z_][A-Za-z0-9_]*$")


# --- Clauses (implicitly ANDed) ---

@dataclass(frozen=True)
class Equals:
    field: str
    value: str


@dataclass(frozen=True)
class DateRange:
    field: str
    gte: Optional[datetime] = None
    lte: Optional[datetime] = None


@dataclass(frozen=True)
class TextSearch:
    """Case-insensitive substring match on any of `fields`."""
    fields: Tuple[str, ...]
    term: str


Clause = Union[Equals, DateRange, TextSearch]


@dataclass(frozen=True)
class SortField:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class BookingQuery:
    filters: Tuple[Clause, ...] = ()
    sort: Tuple[SortField, ...] = ()
    offset: int = 0
    limit: Optional[int] = None


@dataclass
class BookingFilters:
    q: Optional[str] = None
    serviceType: Optional[str] = None
    carType: Optional[str] = None
    status: Optional[str] = None
    dateFrom: Optional[str] = None
    dateTo: Optional[str] = None
    sort: list = field(default_factory=list)


def _parse_int(value, default: int) -> int:
    # parseInt-style: "2abc" -> 2, "abc" -> default
    if value is None:
        return default
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else default


def parse_pagination(page=None, page_size=None) -> Tuple[int, int]:
    """Returns (page, pageSize) with page >= 1 and pageSize clamped to [1, MAX_PAGE_SIZE]."""
    page = max(_parse_int(page, 1), 1)
    page_size = _parse_int(page_size, settings.DEFAULT_PAGE_SIZE)
    page_size = max(min(page_size, settings.MAX_PAGE_SIZE), 1)
    return page, page_size


def parse_sort(raw: Union[str, Iterable[str], None]) -> Tuple[SortField, ...]:
    """
    Accepts "-date,price" or ["-date", "price"] (or a mix).
    A leading '-' means descending. Empty and unknown entries are skipped;
    an empty result falls back to date descending.
    """
    if raw is None:
        raw = [DEFAULT_SORT]
    elif isinstance(raw, str):
        raw = [raw]

    result = []
    for chunk in raw:
        for entry in (chunk or "").split(","):
            entry = entry.strip()
            descending = entry.startswith("-")
            name = entry[1:] if descending else entry
            if not name:
                continue
            if name not in SORTABLE_FIELDS and not _NESTED_KEY.match(name):
                continue
            result.append(SortField(name, descending))

    return tuple(result) or (SortField("date", descending=True),)


def _is_set(value: Optional[str]) -> bool:
    return bool(value) and value != ALL


def _date_bound(name: str, value: str) -> datetime:
    parsed = parse_datetime(value)
    if parsed is None:
        raise ValidationError("Invalid date filter", details={name: f"Invalid date: {value}"})
    return parsed


def text_search(term: str) -> TextSearch:
    return TextSearch(TEXT_SEARCH_FIELDS, term)


def build_filters(filters: BookingFilters) -> Tuple[Clause, ...]:
    clauses = []
    if _is_set(filters.serviceType):
        clauses.append(Equals("serviceType", filters.serviceType))
    if _is_set(filters.carType):
        clauses.append(Equals("carDetails.type", filters.carType))
    if _is_set(filters.status):
        clauses.append(Equals("status", filters.status))
    if filters.dateFrom or filters.dateTo:
        clauses.append(DateRange(
            "date",
            gte=_date_bound("dateFrom", filters.dateFrom) if filters.dateFrom else None,
            lte=_date_bound("dateTo", filters.dateTo) if filters.dateTo else None,
        ))
    if filters.q:
        clauses.append(text_search(filters.q))
    return tuple(clauses)


def build_list_query(filters: BookingFilters, page: int, page_size: int) -> Tuple[BookingQuery, BookingQuery]:
    """
    Returns (page_query, count_query). Both share the same filters; the count
    query carries no sort or window so it yields the total matching records.
    """
    clauses = build_filters(filters)
    page_query = BookingQuery(
        filters=clauses,
        sort=parse_sort(filters.sort or None),
        offset=(page - 1) * page_size,
        limit=page_size,
    )
    return page_query, BookingQuery(filters=clauses)


def build_search_query(q: Optional[str]) -> Optional[BookingQuery]:
    """Lightweight search. None means the caller should answer with no items."""
    if not q or not q.strip():
        return None
    return BookingQuery(filters=(text_search(q),), limit=settings.SEARCH_LIMIT)
