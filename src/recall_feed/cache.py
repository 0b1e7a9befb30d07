"""TTL cache for normalized recall feeds.

One entry per namespace, stored as a JSON blob in a KeyValueStore:

    {"data": [record, ...], "cachedAt": "2024-01-15T10:00:00Z", "count": 42}

Entries are replaced wholesale on write. Age is evaluated against the
clock on every read, so staleness never depends on when the entry was
last looked at.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence

from .logging_config import get_logger
from .models import CachedFeed, RecallRecord, RecordFormatError
from .store import KeyValueStore, StoreError

logger = get_logger("cache")

DEFAULT_TTL = timedelta(hours=1)
ISO_TIMESTAMP_SUFFIX = "Z"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _format_timestamp(value: datetime) -> str:
    value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(timespec="milliseconds") + ISO_TIMESTAMP_SUFFIX


def _parse_timestamp(value: str) -> datetime:
    text = value.strip()
    if text.endswith(ISO_TIMESTAMP_SUFFIX):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class TTLCache:
    """Read/write/expire layer over a key-value store."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        ttl: timedelta = DEFAULT_TTL,
        clock: Optional[Clock] = None,
    ) -> None:
        self.store = store
        self.ttl = ttl
        self.clock = clock or utc_now

    @property
    def ttl_minutes(self) -> int:
        return int(self.ttl.total_seconds() // 60)

    def write(self, namespace: str, records: Sequence[RecallRecord]) -> None:
        """Replace the entry for namespace. Store failures propagate as StoreError."""
        payload = {
            "data": [record.to_dict() for record in records],
            "cachedAt": _format_timestamp(self.clock()),
            "count": len(records),
        }
        self.store.set(namespace, json.dumps(payload))
        logger.info("Cached %s records under %s", len(records), namespace)

    def read(self, namespace: str, allow_expired: bool = False) -> Optional[CachedFeed]:
        """Return the cached feed, or None on a miss.

        With allow_expired=False an entry older than the TTL counts as a
        miss. With allow_expired=True the last written entry is returned
        regardless of age. Corrupt entries and store failures are misses.
        """
        try:
            blob = self.store.get(namespace)
        except StoreError as exc:
            logger.error("Cache read error for %s: %s", namespace, exc)
            return None
        if blob is None:
            return None

        try:
            parsed = json.loads(blob)
            cached_at = _parse_timestamp(parsed["cachedAt"])
            records = [RecallRecord.from_dict(item) for item in parsed["data"]]
            count = int(parsed.get("count", len(records)))
        except (ValueError, TypeError, KeyError, AttributeError, RecordFormatError) as exc:
            logger.warning("Ignoring corrupt cache entry %s: %s", namespace, exc)
            return None

        age = max(self.clock() - cached_at, timedelta(0))
        if not allow_expired and age > self.ttl:
            logger.info("Cache %s expired (%.0f min old)", namespace, age.total_seconds() / 60)
            return None

        return CachedFeed(
            records=records,
            age_minutes=int(age.total_seconds() / 60 + 0.5),
            cached_at=cached_at,
            count=count,
        )

    def clear(self, namespace: str) -> None:
        self.store.remove(namespace)
        logger.info("Cleared cache %s", namespace)

    def records(self, namespace: str, allow_expired: bool = False) -> List[RecallRecord]:
        cached = self.read(namespace, allow_expired=allow_expired)
        return cached.records if cached else []
