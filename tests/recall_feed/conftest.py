"""Shared fixtures for recall feed tests."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from src.recall_feed.cache import TTLCache
from src.recall_feed.models import RecallRecord
from src.recall_feed.store import InMemoryStore

FIXTURES = Path(__file__).parent / "fixtures"


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 2, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def load_json(name: str):
    with open(FIXTURES / name, "r", encoding="utf-8") as handle:
        return json.load(handle)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def cache(store, clock):
    return TTLCache(store, clock=clock)


@pytest.fixture
def make_record():
    def _make(**overrides):
        values = {
            "id": "F-0001-2024",
            "product_name": "Acme Peanut Butter",
            "brand": "Acme",
            "reason": "Potential Salmonella contamination",
            "classification": "Class II",
            "severity": "high",
            "recall_date": "20240115",
            "recall_number": "F-0001-2024",
            "company": "Acme Foods Inc.",
            "distribution_pattern": "Nationwide",
            "action_to_take": "Return to store",
            "details": "",
            "source": "FDA",
        }
        values.update(overrides)
        return RecallRecord(**values)

    return _make
