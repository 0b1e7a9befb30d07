"""Recall feed service: the merged view over every configured source."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import date
from typing import List, Optional, Sequence

from .cache import Clock, TTLCache
from .config import RecallConfig
from .feeds import FeedFetcher, build_fetchers
from .filters import FeedFilters, by_severity, merge_feeds, search, view
from .http_client import FetchFn, HTTPClient, SleepFn
from .logging_config import get_logger
from .matching import find_match
from .models import RecallRecord, UpdateInfo
from .sharing import DEFAULT_LINK_TEMPLATES, official_link
from .store import KeyValueStore, SQLiteStore, StoreError

logger = get_logger("service")


class RecallFeedService:
    """Serves the merged FDA + USDA recall feed to callers.

    Refreshes run per source and concurrently; a failing source only
    costs its own records. Scan matching reads the cache only.
    """

    def __init__(
        self,
        fetchers: Sequence[FeedFetcher],
        *,
        window_days: int = 365,
        link_templates: Optional[dict] = None,
    ) -> None:
        self.fetchers = list(fetchers)
        self.window_days = window_days
        self.link_templates = link_templates or dict(DEFAULT_LINK_TEMPLATES)

    @classmethod
    def from_config(
        cls,
        config: Optional[RecallConfig] = None,
        *,
        store: Optional[KeyValueStore] = None,
        client: Optional[HTTPClient] = None,
        fetch: Optional[FetchFn] = None,
        sleep: SleepFn = asyncio.sleep,
        clock: Optional[Clock] = None,
    ) -> "RecallFeedService":
        config = config or RecallConfig()
        if store is None:
            store = SQLiteStore(config.cache_db_path)
        cache = TTLCache(store, ttl=config.cache_ttl, clock=clock)
        fetchers = build_fetchers(config, cache, client=client, fetch=fetch, sleep=sleep)
        templates = {**DEFAULT_LINK_TEMPLATES, **config.link_templates()}
        return cls(fetchers, window_days=config.archive_window_days, link_templates=templates)

    async def fetch_feed(self, force_refresh: bool = False) -> List[RecallRecord]:
        """Fetch every source concurrently and merge newest first."""
        results = await asyncio.gather(
            *(fetcher.fetch_feed(force_refresh=force_refresh) for fetcher in self.fetchers),
            return_exceptions=True,
        )

        feeds: List[List[RecallRecord]] = []
        for fetcher, result in zip(self.fetchers, results):
            if isinstance(result, BaseException):
                logger.error("Fetcher %s raised exception: %s", fetcher.name, result)
                feeds.append([])
                continue
            logger.info("%s: %s recalls", fetcher.name, len(result))
            feeds.append(result)

        merged = merge_feeds(*feeds)
        logger.info("Total merged recalls: %s", len(merged))
        return merged

    async def refresh_feed(self) -> List[RecallRecord]:
        """Drop every cached feed and fetch again."""
        logger.info("Force refreshing merged recall feed")
        return await self.fetch_feed(force_refresh=True)

    async def view(
        self,
        filters: Optional[FeedFilters] = None,
        *,
        today: Optional[date] = None,
    ) -> List[RecallRecord]:
        filters = filters or FeedFilters()
        if filters.window_days is None:
            filters = replace(filters, window_days=self.window_days)
        return view(await self.fetch_feed(), filters, today=today)

    async def search(self, keyword: Optional[str]) -> List[RecallRecord]:
        return search(await self.fetch_feed(), keyword)

    async def get_recalls_by_severity(self, severity: str) -> List[RecallRecord]:
        return by_severity(await self.fetch_feed(), severity)

    def cached_feed(self) -> List[RecallRecord]:
        """Merged cache contents regardless of age, without network I/O."""
        return merge_feeds(*(fetcher.cached_records() for fetcher in self.fetchers))

    def match_scan(self, product_name: Optional[str], brand_name: Optional[str]) -> Optional[RecallRecord]:
        """Check a scanned product against the cached feed only."""
        return find_match(self.cached_feed(), product_name, brand_name)

    def get_last_update_time(self) -> Optional[UpdateInfo]:
        """Freshness of the newest cached source, or None when nothing is cached."""
        updates = [info for info in (fetcher.last_update() for fetcher in self.fetchers) if info]
        if not updates:
            return None
        return min(updates, key=lambda info: info.minutes_ago)

    def clear_cache(self) -> None:
        for fetcher in self.fetchers:
            try:
                fetcher.clear_cache()
            except StoreError as exc:
                logger.error("Error clearing %s cache: %s", fetcher.name, exc)
        logger.info("All recall caches cleared")

    def official_link(self, record: RecallRecord) -> Optional[str]:
        return official_link(record, self.link_templates)

    def get_fetcher(self, name: str) -> Optional[FeedFetcher]:
        for fetcher in self.fetchers:
            if fetcher.name == name or fetcher.source.source_id == name:
                return fetcher
        return None
