"""Data models for the recall feed."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, List, Optional

SOURCE_FDA = "FDA"
SOURCE_USDA = "USDA"

SEVERITY_CRITICAL = "critical"
SEVERITY_HIGH = "high"
SEVERITY_MEDIUM = "medium"
SEVERITIES = (SEVERITY_CRITICAL, SEVERITY_HIGH, SEVERITY_MEDIUM)

DATE_UNKNOWN = "Date unknown"
UNKNOWN = "Unknown"
UNKNOWN_PRODUCT = "Unknown Product"
NOT_AVAILABLE = "N/A"
REASON_NOT_SPECIFIED = "Reason not specified"


class RecordFormatError(ValueError):
    """Raised when a serialized record cannot be rebuilt."""


@dataclass
class RecallRecord:
    """Canonical, source-agnostic recall notice.

    Both feeds converge on this shape, so filtering, matching and
    display never need to know which upstream produced a record.
    """

    id: str
    product_name: str
    brand: str
    reason: str
    classification: str
    severity: str
    recall_date: str
    recall_number: str
    company: str
    distribution_pattern: str
    action_to_take: str
    details: str
    source: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> RecallRecord:
        """Rebuild a record from its serialized form, ignoring unknown keys."""
        if not isinstance(data, dict):
            raise RecordFormatError(f"Expected a mapping, got {type(data).__name__}")
        names = [f.name for f in fields(cls)]
        missing = [name for name in names if name not in data]
        if missing:
            raise RecordFormatError(f"Record missing fields: {', '.join(missing)}")
        return cls(**{name: str(data[name]) for name in names})


@dataclass
class CachedFeed:
    """A cache read result with its age evaluated at read time."""

    records: List[RecallRecord]
    age_minutes: int
    cached_at: datetime
    count: int


@dataclass
class UpdateInfo:
    """Freshness summary for display next to the feed."""

    last_update: datetime
    minutes_ago: int
    needs_refresh: bool


@dataclass
class FetchStats:
    """Counters for a single feed refresh."""

    source: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    attempts: int = 0
    retries: int = 0
    records: int = 0
    from_cache: bool = False
    stale: bool = False
    errors: List[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def add_error(self, message: str) -> None:
        self.errors.append(message)
