"""Merge, filter and search over normalized recall feeds."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from itertools import chain
from typing import Iterable, List, Optional, Sequence

from .models import DATE_UNKNOWN, RecallRecord

DEFAULT_WINDOW_DAYS = 365
ALL_SEVERITIES = "all"

# Sorts below every real YYYYMMDD value.
_UNKNOWN_SORT_KEY = "00000000"


def date_sort_key(record: RecallRecord) -> str:
    value = record.recall_date
    if value == DATE_UNKNOWN or len(value) != 8 or not value.isdigit():
        return _UNKNOWN_SORT_KEY
    return value


def merge_feeds(*feeds: Iterable[RecallRecord]) -> List[RecallRecord]:
    """Combine feeds newest first; ties keep their original feed order."""
    merged = list(chain.from_iterable(feeds))
    merged.sort(key=date_sort_key, reverse=True)
    return merged


@dataclass
class FeedFilters:
    """Filters applied by view(); the defaults show the last year of everything."""

    archive: bool = False
    since_date: Optional[date] = None
    severity: Optional[str] = None
    query: Optional[str] = None
    # None means the default window, or the service's configured one.
    window_days: Optional[int] = None


def filter_by_date(
    records: Sequence[RecallRecord],
    *,
    archive: bool = False,
    since_date: Optional[date] = None,
    window_days: int = DEFAULT_WINDOW_DAYS,
    today: Optional[date] = None,
) -> List[RecallRecord]:
    """Keep records dated on or after the cutoff; archive mode keeps all.

    Records with an unknown date fall outside every window.
    """
    if archive:
        return list(records)
    if since_date is None:
        since_date = (today or date.today()) - timedelta(days=window_days)
    cutoff = since_date.strftime("%Y%m%d")
    return [record for record in records if date_sort_key(record) >= cutoff]


def by_severity(records: Sequence[RecallRecord], severity: Optional[str]) -> List[RecallRecord]:
    if not severity or severity == ALL_SEVERITIES:
        return list(records)
    return [record for record in records if record.severity == severity]


def search(records: Sequence[RecallRecord], keyword: Optional[str]) -> List[RecallRecord]:
    """Case-insensitive substring match on product, brand, reason or company."""
    if not keyword or not keyword.strip():
        return list(records)
    term = keyword.strip().lower()
    return [
        record
        for record in records
        if term in record.product_name.lower()
        or term in record.brand.lower()
        or term in record.reason.lower()
        or term in record.company.lower()
    ]


def view(
    records: Sequence[RecallRecord],
    filters: Optional[FeedFilters] = None,
    *,
    today: Optional[date] = None,
) -> List[RecallRecord]:
    """Apply date window, then severity, then keyword."""
    filters = filters or FeedFilters()
    result = filter_by_date(
        records,
        archive=filters.archive,
        since_date=filters.since_date,
        window_days=DEFAULT_WINDOW_DAYS if filters.window_days is None else filters.window_days,
        today=today,
    )
    result = by_severity(result, filters.severity)
    return search(result, filters.query)
