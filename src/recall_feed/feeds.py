"""Per-source feed fetchers: cache first, network second, stale cache last."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .cache import TTLCache, utc_now
from .config import RecallConfig, SourceConfig
from .http_client import FetchError, FetchFn, HTTPClient, SleepFn, fetch_with_retry
from .logging_config import get_logger
from .models import FetchStats, RecallRecord, UpdateInfo
from .normalizers import (
    FDA_ENVELOPE_KEYS,
    USDA_ENVELOPE_KEYS,
    normalize_fda_record,
    normalize_usda_record,
    unwrap_envelope,
)
from .store import StoreError

Normalizer = Callable[[Any, int], RecallRecord]

SOURCE_PARSERS: Dict[str, Tuple[Normalizer, Sequence[str]]] = {
    "fda": (normalize_fda_record, FDA_ENVELOPE_KEYS),
    "usda": (normalize_usda_record, USDA_ENVELOPE_KEYS),
}


class FeedFetcher:
    """Fetch, normalize and cache one upstream recall feed.

    fetch_feed never raises. When the network is unavailable it serves
    the last cached feed regardless of age, and an empty list only when
    nothing was ever cached. Concurrent refreshes of the same fetcher
    share one in-flight request.
    """

    def __init__(
        self,
        source: SourceConfig,
        cache: TTLCache,
        normalizer: Normalizer,
        *,
        envelope_keys: Iterable[str] = ("results",),
        client: Optional[HTTPClient] = None,
        fetch: Optional[FetchFn] = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.source = source
        self.cache = cache
        self.normalizer = normalizer
        self.envelope_keys = tuple(envelope_keys)
        self.client = client or HTTPClient()
        self._fetch = fetch or self.client.get_json
        self._sleep = sleep
        self.policy = source.retry_policy()
        self.logger = get_logger(f"feeds.{source.source_id}")
        self.last_stats: Optional[FetchStats] = None
        self._inflight: Optional[asyncio.Future] = None

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def namespace(self) -> str:
        return self.source.cache_key

    async def fetch_feed(self, force_refresh: bool = False) -> List[RecallRecord]:
        """Return the feed, refreshing from the network when the cache is stale.

        Args:
            force_refresh: Clear the cache namespace first, guaranteeing a
                network attempt

        Returns:
            Normalized records, most recent first as delivered upstream
        """
        if force_refresh:
            self.logger.info("Force refresh requested for %s", self.name)
            try:
                self.cache.clear(self.namespace)
            except StoreError as exc:
                self.logger.error("Could not clear %s cache: %s", self.name, exc)
        else:
            cached = self.cache.read(self.namespace)
            if cached is not None:
                self.logger.info(
                    "Using cached %s feed: %s recalls (age: %s min)",
                    self.name,
                    cached.count,
                    cached.age_minutes,
                )
                return cached.records

        return await self._refresh_once()

    async def _refresh_once(self) -> List[RecallRecord]:
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._refresh())
        else:
            self.logger.debug("Joining in-flight %s refresh", self.name)
        # shield so one cancelled caller does not cancel the shared refresh
        return await asyncio.shield(self._inflight)

    def _parse(self, payload: Any) -> List[Any]:
        return unwrap_envelope(payload, self.envelope_keys)

    async def _refresh(self) -> List[RecallRecord]:
        stats = FetchStats(source=self.name, started_at=utc_now())
        self.last_stats = stats
        self.logger.info("Fetching fresh %s recalls from %s", self.name, self.source.url)

        try:
            raw_records = await fetch_with_retry(
                self.source.url,
                self.policy,
                fetch=self._fetch,
                parse=self._parse,
                sleep=self._sleep,
                stats=stats,
            )
        except FetchError as exc:
            self.logger.error("All %s attempts failed: %s", self.name, exc.last_cause)
            return self._fallback(stats)
        except Exception as exc:
            self.logger.exception("Unexpected %s fetch failure: %s", self.name, exc)
            stats.add_error(f"{type(exc).__name__}: {exc}")
            return self._fallback(stats)

        records = [
            self.normalizer(raw, index)
            for index, raw in enumerate(raw_records[: self.source.max_records])
        ]

        try:
            self.cache.write(self.namespace, records)
        except StoreError as exc:
            self.logger.error("%s cache write error: %s", self.name, exc)
            stats.add_error(str(exc))

        stats.records = len(records)
        stats.completed_at = utc_now()
        self.logger.info(
            "Retrieved %s %s recalls in %s attempt(s), %.2fs",
            len(records),
            self.name,
            stats.attempts,
            stats.duration_seconds or 0.0,
        )
        return records

    def _fallback(self, stats: FetchStats) -> List[RecallRecord]:
        stats.completed_at = utc_now()
        cached = self.cache.read(self.namespace, allow_expired=True)
        if cached is None:
            self.logger.warning("No cached %s feed available; returning no recalls", self.name)
            return []

        stats.from_cache = True
        stats.stale = True
        stats.records = len(cached.records)
        self.logger.warning(
            "Serving expired %s cache (%s recalls, %s min old)",
            self.name,
            cached.count,
            cached.age_minutes,
        )
        return cached.records

    def cached_records(self) -> List[RecallRecord]:
        """Last cached feed regardless of age; never touches the network."""
        return self.cache.records(self.namespace, allow_expired=True)

    def last_update(self) -> Optional[UpdateInfo]:
        cached = self.cache.read(self.namespace, allow_expired=True)
        if cached is None:
            return None
        return UpdateInfo(
            last_update=cached.cached_at,
            minutes_ago=cached.age_minutes,
            needs_refresh=cached.age_minutes > self.cache.ttl_minutes,
        )

    def clear_cache(self) -> None:
        self.cache.clear(self.namespace)


def build_fetchers(
    config: RecallConfig,
    cache: TTLCache,
    *,
    client: Optional[HTTPClient] = None,
    fetch: Optional[FetchFn] = None,
    sleep: SleepFn = asyncio.sleep,
) -> List[FeedFetcher]:
    """Build a fetcher for every enabled source with a known parser."""
    client = client or HTTPClient(user_agent=config.user_agent)
    fetchers = []
    for source in config.get_enabled_sources():
        parser = SOURCE_PARSERS.get(source.source_id)
        if parser is None:
            get_logger("feeds").warning("No parser registered for source %s; skipping", source.source_id)
            continue
        normalizer, envelope_keys = parser
        fetchers.append(
            FeedFetcher(
                source,
                cache,
                normalizer,
                envelope_keys=envelope_keys,
                client=client,
                fetch=fetch,
                sleep=sleep,
            )
        )
    return fetchers
