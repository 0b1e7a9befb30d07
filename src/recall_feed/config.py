"""Configuration loader for the recall feed sources."""

from __future__ import annotations

import copy
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .http_client import DEFAULT_USER_AGENT, RetryPolicy
from .models import SOURCE_FDA, SOURCE_USDA


class ConfigError(ValueError):
    """Raised when the configuration file is malformed."""


FDA_ENFORCEMENT_URL = "https://api.fda.gov/food/enforcement.json?limit=50&sort=report_date:desc"
FSIS_RECALL_URL = "https://www.fsis.usda.gov/fsis/api/recall/v/1"

DEFAULT_CONFIG: Dict[str, Any] = {
    "settings": {
        "cache_ttl_minutes": 60,
        "archive_window_days": 365,
        "cache_db_path": "cache/recall_cache.db",
        "user_agent": DEFAULT_USER_AGENT,
    },
    "sources": {
        "fda": {
            "name": SOURCE_FDA,
            "url": FDA_ENFORCEMENT_URL,
            "cache_key": "recall_feed_cache",
            "max_attempts": 1,
            "timeout_seconds": 10,
            "backoff_base_seconds": 1.0,
            "max_records": 50,
            "link_template": "https://www.fda.gov/safety/recalls-market-withdrawals-safety-alerts",
        },
        "usda": {
            "name": SOURCE_USDA,
            "url": FSIS_RECALL_URL,
            "cache_key": "usda_recall_feed_cache",
            "max_attempts": 3,
            "timeout_seconds": 30,
            "backoff_base_seconds": 1.0,
            "max_records": 50,
            "link_template": "https://www.fsis.usda.gov/recalls/{recall_number}",
        },
    },
}


class SourceConfig:
    """Configuration for a single upstream feed."""

    def __init__(self, source_id: str, data: Dict[str, Any]) -> None:
        for required in ("url", "cache_key"):
            if not data.get(required):
                raise ConfigError(f"Source {source_id!r} is missing {required!r}")
        self.source_id = source_id
        self.name = data.get("name", source_id.upper())
        self.url = data["url"]
        self.cache_key = data["cache_key"]
        self.enabled = data.get("enabled", True)
        self.max_attempts = int(data.get("max_attempts", 3))
        self.timeout_seconds = float(data.get("timeout_seconds", 30))
        self.backoff_base_seconds = float(data.get("backoff_base_seconds", 1.0))
        self.max_records = int(data.get("max_records", 50))
        self.link_template = data.get("link_template", "")

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            timeout_seconds=self.timeout_seconds,
            backoff_base_seconds=self.backoff_base_seconds,
        )


class RecallConfig:
    """Central configuration container for the recall feed."""

    DEFAULT_CONFIG_PATH = Path("config/recall_sources.yaml")

    def __init__(self, config_path: Optional[Path | str] = None) -> None:
        path = Path(config_path) if config_path else self.DEFAULT_CONFIG_PATH
        if not path.is_absolute():
            path = Path.cwd() / path
        self.config_path = path
        self._data = self._load_config()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecallConfig":
        config = cls.__new__(cls)
        config.config_path = None
        config._data = _merge(DEFAULT_CONFIG, data)
        return config

    def _load_config(self) -> Dict[str, Any]:
        if not self.config_path.exists():
            return copy.deepcopy(DEFAULT_CONFIG)
        with open(self.config_path, "r", encoding="utf-8") as handle:
            try:
                loaded = yaml.safe_load(handle) or {}
            except yaml.YAMLError as exc:
                raise ConfigError(f"Invalid YAML in {self.config_path}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise ConfigError(f"{self.config_path} must contain a mapping")
        return _merge(DEFAULT_CONFIG, loaded)

    def get_source(self, source_id: str) -> Optional[SourceConfig]:
        sources_dict = self._data.get("sources", {})
        if source_id not in sources_dict:
            return None
        return SourceConfig(source_id, sources_dict[source_id])

    def get_enabled_sources(self) -> List[SourceConfig]:
        sources_dict = self._data.get("sources", {})
        return [
            SourceConfig(sid, source_data)
            for sid, source_data in sources_dict.items()
            if source_data.get("enabled", True)
        ]

    def get_setting(self, key: str, default: Any = None) -> Any:
        return self._data.get("settings", {}).get(key, default)

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(minutes=float(self.get_setting("cache_ttl_minutes", 60)))

    @property
    def archive_window_days(self) -> int:
        return int(self.get_setting("archive_window_days", 365))

    @property
    def cache_db_path(self) -> Path:
        return Path(self.get_setting("cache_db_path", "cache/recall_cache.db"))

    @property
    def user_agent(self) -> str:
        return self.get_setting("user_agent", DEFAULT_USER_AGENT)

    def link_templates(self) -> Dict[str, str]:
        """Deep-link templates keyed by record source name."""
        return {
            source.name: source.link_template
            for source in self.get_enabled_sources()
            if source.link_template
        }


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged
