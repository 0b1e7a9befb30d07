"""Tests for FDA and USDA record normalization."""

from datetime import date, datetime

import pytest

from src.recall_feed.models import SEVERITIES
from src.recall_feed.normalizers import (
    FDA_ENVELOPE_KEYS,
    USDA_ENVELOPE_KEYS,
    FeedFormatError,
    extract_brand,
    format_date,
    normalize_fda_record,
    normalize_usda_record,
    unwrap_envelope,
)

from conftest import load_json


def test_fda_fixture_parsing():
    raw_records = unwrap_envelope(load_json("fda_enforcement.json"), FDA_ENVELOPE_KEYS)
    records = [normalize_fda_record(raw, index) for index, raw in enumerate(raw_records)]

    assert len(records) == 3

    first = records[0]
    assert first.id == "F-0123-2024"
    assert first.product_name.startswith("Acme Peanut Butter")
    assert first.brand == "Acme Peanut"
    assert first.classification == "Class I"
    assert first.severity == "critical"
    assert first.recall_date == "20240115"
    assert first.company == "Acme Foods Inc."
    assert first.details == "Lot 2401A, Best by 01/2025"
    assert first.source == "FDA"
    assert "Dispose immediately" in first.action_to_take

    second = records[1]
    assert second.brand == "Sunny Valley"
    assert second.severity == "high"
    assert second.details == ""


def test_fda_missing_fields_degrade_to_defaults():
    record = normalize_fda_record(load_json("fda_enforcement.json")["results"][2], 2)

    assert record.id == "fda-recall-2"
    assert record.recall_number == "N/A"
    assert record.recall_date == "Date unknown"
    assert record.company == "Unknown"
    assert record.distribution_pattern == "Unknown"
    assert record.severity == "medium"


def test_fda_falls_back_to_initiation_date():
    record = normalize_fda_record({"recall_initiation_date": "20231201"}, 0)
    assert record.recall_date == "20231201"


def test_unparseable_report_date_falls_back_to_initiation_date():
    record = normalize_fda_record({"report_date": "pending", "recall_initiation_date": "20231201"}, 0)
    assert record.recall_date == "20231201"


def test_usda_skips_unparseable_date_alias():
    record = normalize_usda_record({"recallDate": "TBD", "field_recall_date": "2024-01-08T00:00:00"}, 0)
    assert record.recall_date == "20240108"


@pytest.mark.parametrize("raw", [{}, None, "garbage", {"classification": None}])
def test_normalizers_never_fail_and_always_assign_severity(raw):
    for normalize in (normalize_fda_record, normalize_usda_record):
        record = normalize(raw, 7)
        assert record.severity in SEVERITIES
        assert record.product_name == "Unknown Product"
        assert record.brand == "Unknown"
        assert record.reason == "Reason not specified"
        assert record.recall_date == "Date unknown"


def test_usda_fixture_parsing():
    raw_records = unwrap_envelope(load_json("usda_recalls.json"), USDA_ENVELOPE_KEYS)
    records = [normalize_usda_record(raw, index) for index, raw in enumerate(raw_records)]

    first = records[0]
    assert first.id == "045-2024"
    assert first.product_name == "Prairie Farms Smoked Sausage Links"
    assert first.brand == "Prairie Farms"
    assert first.classification == "Class I"
    assert first.severity == "critical"
    assert first.recall_date == "20240120"
    assert first.company == "Prairie Farms Meats"
    assert first.distribution_pattern == "IL, IN, MI"
    assert first.details == "12-oz vacuum-packed packages"
    assert first.source == "USDA"

    second = records[1]
    assert second.id == "046-2024"
    assert second.product_name == "Golden Hen Chicken Nuggets"
    assert second.classification == "Class II"
    assert second.severity == "high"
    assert second.recall_date == "20240108"
    assert second.company == "Golden Hen Poultry"

    third = records[2]
    assert third.id == "usda-recall-2"
    assert third.recall_number == "N/A"
    assert third.classification == "Class III"
    assert third.severity == "medium"
    assert third.recall_date == "Date unknown"


def test_usda_explicit_classification_wins():
    record = normalize_usda_record({"classification": "Class III", "healthRisk": "High"}, 0)
    assert record.classification == "Class III"
    assert record.severity == "medium"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Acme Peanut Butter, Creamy", "Acme Peanut"),
        ("Acme (Peanut Butter)", "Acme"),
        ("Cheese", "Cheese"),
        ("(Organic) Spinach", "(Organic)"),
        ("", "Unknown"),
        (None, "Unknown"),
        ("   ", "Unknown"),
    ],
)
def test_extract_brand(text, expected):
    assert extract_brand(text) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        ("20240115", "20240115"),
        ("2024-01-15", "20240115"),
        ("2024-01-15T08:30:00Z", "20240115"),
        ("January 5, 2024", "20240105"),
        (date(2023, 3, 9), "20230309"),
        (datetime(2023, 3, 9, 23, 59), "20230309"),
        ("20241399", "Date unknown"),
        ("not a date", "Date unknown"),
        ("", "Date unknown"),
        (None, "Date unknown"),
        (20240115, "Date unknown"),
    ],
)
def test_format_date(value, expected):
    assert format_date(value) == expected


def test_unwrap_envelope_shapes():
    assert unwrap_envelope([{"a": 1}], USDA_ENVELOPE_KEYS) == [{"a": 1}]
    assert unwrap_envelope({"results": [{"a": 1}]}, FDA_ENVELOPE_KEYS) == [{"a": 1}]
    assert unwrap_envelope({"data": [{"a": 1}]}, USDA_ENVELOPE_KEYS) == [{"a": 1}]


@pytest.mark.parametrize(
    "payload",
    [
        {"error": {"code": "NOT_FOUND"}},
        {"results": []},
        [],
        "<html>maintenance</html>",
        None,
    ],
)
def test_unwrap_envelope_rejects_unusable_payloads(payload):
    with pytest.raises(FeedFormatError):
        unwrap_envelope(payload, FDA_ENVELOPE_KEYS)
