"""Tests for the TTL cache and its stores."""

import json
from datetime import timedelta

import pytest

from src.recall_feed.cache import TTLCache
from src.recall_feed.store import InMemoryStore, SQLiteStore, StoreError


def test_write_then_read_returns_equal_records(cache, make_record):
    records = [make_record(), make_record(id="F-2", product_name="Other", recall_date="Date unknown")]
    cache.write("recall_feed_cache", records)

    cached = cache.read("recall_feed_cache", allow_expired=True)

    assert cached is not None
    assert cached.records == records
    assert cached.count == 2
    assert cached.age_minutes == 0


def test_read_missing_namespace_returns_none(cache):
    assert cache.read("recall_feed_cache") is None
    assert cache.read("recall_feed_cache", allow_expired=True) is None


def test_entry_expires_after_ttl_but_stays_available(cache, clock, make_record):
    records = [make_record()]
    cache.write("usda_recall_feed_cache", records)

    clock.advance(minutes=60)
    fresh = cache.read("usda_recall_feed_cache")
    assert fresh is not None
    assert fresh.age_minutes == 60

    clock.advance(minutes=1)
    assert cache.read("usda_recall_feed_cache") is None

    stale = cache.read("usda_recall_feed_cache", allow_expired=True)
    assert stale is not None
    assert stale.records == records
    assert stale.age_minutes == 61


def test_age_is_rounded_to_nearest_minute(cache, clock, make_record):
    cache.write("ns", [make_record()])
    clock.advance(seconds=89)
    assert cache.read("ns").age_minutes == 1
    clock.advance(seconds=1)
    assert cache.read("ns").age_minutes == 2


def test_namespaces_are_independent(cache, clock, make_record):
    cache.write("recall_feed_cache", [make_record(source="FDA")])
    clock.advance(minutes=45)
    cache.write("usda_recall_feed_cache", [make_record(source="USDA")])
    clock.advance(minutes=30)

    assert cache.read("recall_feed_cache") is None
    usda = cache.read("usda_recall_feed_cache")
    assert usda is not None
    assert usda.records[0].source == "USDA"


def test_write_replaces_whole_entry(cache, make_record):
    cache.write("ns", [make_record(id="a"), make_record(id="b")])
    cache.write("ns", [make_record(id="c")])

    cached = cache.read("ns")
    assert [record.id for record in cached.records] == ["c"]
    assert cached.count == 1


def test_clear_removes_entry(cache, make_record):
    cache.write("ns", [make_record()])
    cache.clear("ns")
    assert cache.read("ns", allow_expired=True) is None
    cache.clear("ns")


def test_custom_ttl(store, clock, make_record):
    short = TTLCache(store, ttl=timedelta(minutes=5), clock=clock)
    short.write("ns", [make_record()])
    clock.advance(minutes=6)
    assert short.read("ns") is None
    assert short.ttl_minutes == 5


@pytest.mark.parametrize(
    "blob",
    [
        "{not json",
        json.dumps([1, 2, 3]),
        json.dumps({"data": []}),
        json.dumps({"data": [], "cachedAt": "yesterday"}),
        json.dumps({"data": [{"id": "x"}], "cachedAt": "2024-02-01T12:00:00.000Z"}),
        json.dumps({"data": None, "cachedAt": "2024-02-01T12:00:00.000Z"}),
    ],
)
def test_corrupt_entries_are_cache_misses(store, cache, blob):
    store.set("ns", blob)
    assert cache.read("ns") is None
    assert cache.read("ns", allow_expired=True) is None


def test_store_failure_on_read_is_a_miss(clock):
    class BrokenStore(InMemoryStore):
        def get(self, key):
            raise StoreError("disk gone")

    assert TTLCache(BrokenStore(), clock=clock).read("ns", allow_expired=True) is None


def test_stored_blob_shape(store, cache, make_record):
    cache.write("recall_feed_cache", [make_record()])
    payload = json.loads(store.get("recall_feed_cache"))

    assert set(payload) == {"data", "cachedAt", "count"}
    assert payload["count"] == 1
    assert payload["cachedAt"] == "2024-02-01T12:00:00.000Z"
    assert payload["data"][0]["product_name"] == "Acme Peanut Butter"


def test_sqlite_store_roundtrip(tmp_path, clock, make_record):
    db_path = tmp_path / "cache" / "recall_cache.db"
    cache = TTLCache(SQLiteStore(db_path), clock=clock)
    records = [make_record(), make_record(id="F-9", source="USDA")]

    cache.write("recall_feed_cache", records)

    reopened = TTLCache(SQLiteStore(db_path), clock=clock)
    assert reopened.read("recall_feed_cache").records == records

    reopened.clear("recall_feed_cache")
    assert reopened.read("recall_feed_cache", allow_expired=True) is None


def test_sqlite_store_overwrites_key(tmp_path):
    store = SQLiteStore(tmp_path / "kv.db")
    store.set("k", "one")
    store.set("k", "two")
    assert store.get("k") == "two"
    store.remove("k")
    assert store.get("k") is None
    store.remove("k")
