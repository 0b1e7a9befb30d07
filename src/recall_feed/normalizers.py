"""Normalize raw FDA and USDA recall payloads into RecallRecord.

The two upstream schemas share nothing but the output contract, so each
source gets its own free function. Normalization is total: missing or
malformed fields degrade to documented defaults instead of raising.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from dateutil import parser as date_parser

from .models import (
    DATE_UNKNOWN,
    NOT_AVAILABLE,
    REASON_NOT_SPECIFIED,
    SOURCE_FDA,
    SOURCE_USDA,
    UNKNOWN,
    UNKNOWN_PRODUCT,
    RecallRecord,
)
from .severity import (
    NOT_SPECIFIED,
    action_for_severity,
    fda_severity,
    usda_classification,
    usda_severity,
)

_COMPACT_DATE = re.compile(r"^\d{8}$")
_BRAND_BOUNDARY = re.compile(r"[,(]")

FDA_ENVELOPE_KEYS: Sequence[str] = ("results",)
USDA_ENVELOPE_KEYS: Sequence[str] = ("results", "data")

USDA_PRODUCT_KEYS = ("productName", "product_description", "product", "field_title")
USDA_REASON_KEYS = ("recallReason", "reason_for_recall", "reason", "field_recall_reason")
USDA_DATE_KEYS = ("recallDate", "recall_date", "date", "field_recall_date")
FDA_DATE_KEYS = ("report_date", "recall_initiation_date")
USDA_NUMBER_KEYS = ("recallNumber", "recall_number", "field_recall_number")
USDA_COMPANY_KEYS = ("recallingFirm", "recalling_firm", "company", "field_establishment")
USDA_DISTRIBUTION_KEYS = ("distribution", "distribution_pattern", "field_states")
USDA_DETAIL_KEYS = ("productDescription", "product_description", "code_info", "field_summary")
USDA_RISK_KEYS = ("healthRisk", "health_risk", "field_risk_level")


class FeedFormatError(ValueError):
    """Raised when a feed payload does not carry a usable record list."""


def unwrap_envelope(payload: Any, keys: Iterable[str]) -> List[Any]:
    """Return the record list from a bare array or a named envelope key."""
    if isinstance(payload, list):
        records = payload
    elif isinstance(payload, dict):
        records = None
        for key in keys:
            candidate = payload.get(key)
            if isinstance(candidate, list):
                records = candidate
                break
        if records is None:
            raise FeedFormatError(f"Unexpected response format: keys {sorted(payload)}")
    else:
        raise FeedFormatError(f"Unexpected response type: {type(payload).__name__}")

    if not records:
        raise FeedFormatError("Feed returned no recalls")
    return records


def extract_brand(text: Optional[str]) -> str:
    """Guess the brand from a product description.

    Takes the first one or two words before any comma or parenthesis.
    This is a heuristic only; descriptions that lead with a generic
    product noun produce a wrong brand.
    """
    if not text or not isinstance(text, str):
        return UNKNOWN
    head = _BRAND_BOUNDARY.split(text, maxsplit=1)[0]
    candidate = " ".join(head.split()[:2])
    if candidate:
        return candidate
    words = text.split()
    return words[0] if words else UNKNOWN


def format_date(value: Any) -> str:
    """Normalize a date to YYYYMMDD, or the unknown sentinel."""
    if value is None:
        return DATE_UNKNOWN
    if isinstance(value, datetime):
        return value.strftime("%Y%m%d")
    if isinstance(value, date):
        return value.strftime("%Y%m%d")
    if not isinstance(value, str):
        return DATE_UNKNOWN

    text = value.strip()
    if not text:
        return DATE_UNKNOWN

    if _COMPACT_DATE.match(text):
        try:
            return datetime.strptime(text, "%Y%m%d").strftime("%Y%m%d")
        except ValueError:
            return DATE_UNKNOWN

    try:
        parsed = date_parser.parse(text)
    except (ValueError, OverflowError):
        return DATE_UNKNOWN
    return parsed.strftime("%Y%m%d")


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(item) for item in value if item)
    text = str(value).strip()
    return text or None


def _first(raw: Dict[str, Any], keys: Iterable[str]) -> Optional[str]:
    for key in keys:
        text = _text(raw.get(key))
        if text:
            return text
    return None


def _first_date(raw: Dict[str, Any], keys: Iterable[str]) -> str:
    """First candidate date that parses; an unparseable one falls through."""
    for key in keys:
        formatted = format_date(_text(raw.get(key)))
        if formatted != DATE_UNKNOWN:
            return formatted
    return DATE_UNKNOWN


def normalize_fda_record(raw: Any, index: int) -> RecallRecord:
    """Normalize one openFDA food enforcement result."""
    if not isinstance(raw, dict):
        raw = {}

    description = _text(raw.get("product_description"))
    classification = _text(raw.get("classification"))
    severity = fda_severity(classification)
    recall_number = _text(raw.get("recall_number"))

    return RecallRecord(
        id=recall_number or f"fda-recall-{index}",
        product_name=description or UNKNOWN_PRODUCT,
        brand=extract_brand(description),
        reason=_text(raw.get("reason_for_recall")) or REASON_NOT_SPECIFIED,
        classification=classification or NOT_SPECIFIED,
        severity=severity,
        recall_date=_first_date(raw, FDA_DATE_KEYS),
        recall_number=recall_number or NOT_AVAILABLE,
        company=_text(raw.get("recalling_firm")) or UNKNOWN,
        distribution_pattern=_text(raw.get("distribution_pattern")) or UNKNOWN,
        action_to_take=action_for_severity(severity),
        details=_text(raw.get("code_info")) or "",
        source=SOURCE_FDA,
    )


def normalize_usda_record(raw: Any, index: int) -> RecallRecord:
    """Normalize one FSIS recall entry, tolerating several field spellings."""
    if not isinstance(raw, dict):
        raw = {}

    product = _first(raw, USDA_PRODUCT_KEYS)
    explicit_class = _text(raw.get("classification"))
    risk = explicit_class or _first(raw, USDA_RISK_KEYS)
    severity = usda_severity(risk)
    recall_number = _first(raw, USDA_NUMBER_KEYS)

    return RecallRecord(
        id=recall_number or f"usda-recall-{index}",
        product_name=product or UNKNOWN_PRODUCT,
        brand=extract_brand(product),
        reason=_first(raw, USDA_REASON_KEYS) or REASON_NOT_SPECIFIED,
        classification=explicit_class or usda_classification(risk),
        severity=severity,
        recall_date=_first_date(raw, USDA_DATE_KEYS),
        recall_number=recall_number or NOT_AVAILABLE,
        company=_first(raw, USDA_COMPANY_KEYS) or UNKNOWN,
        distribution_pattern=_first(raw, USDA_DISTRIBUTION_KEYS) or UNKNOWN,
        action_to_take=action_for_severity(severity),
        details=_first(raw, USDA_DETAIL_KEYS) or "",
        source=SOURCE_USDA,
    )
