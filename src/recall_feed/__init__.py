"""Recall feed package namespace."""

from importlib import import_module
from typing import Any

__all__ = [
    "RecallRecord",
    "RecallFeedService",
    "RecallConfig",
    "TTLCache",
    "InMemoryStore",
    "SQLiteStore",
    "FeedFilters",
    "RetryPolicy",
    "FetchError",
    "fetch_with_retry",
    "find_match",
]

_EXPORTS = {
    "RecallRecord": "models",
    "RecallFeedService": "service",
    "RecallConfig": "config",
    "TTLCache": "cache",
    "InMemoryStore": "store",
    "SQLiteStore": "store",
    "FeedFilters": "filters",
    "RetryPolicy": "http_client",
    "FetchError": "http_client",
    "fetch_with_retry": "http_client",
    "find_match": "matching",
}


def __getattr__(name: str) -> Any:
    module_name = _EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module = import_module(f"{__name__}.{module_name}")
    return getattr(module, name)


def __dir__() -> list[str]:
    return sorted(__all__)
