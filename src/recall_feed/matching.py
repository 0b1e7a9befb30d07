"""Fuzzy matching of a scanned product against cached recalls.

This is a best-effort classifier, not an exact lookup. Known behaviour:

* Tokens of three characters or fewer are ignored, so short brand or
  product words ("Jif", "tea") never produce a name match on their own.
* Containment runs both ways, so "butter" matches "peanutbutter" and
  "nuts" matches "walnuts".
* A scan with two or more significant words may match on name alone,
  which trades some false positives for tolerance of bad brand guesses.

The token floor and the two-token fallback are tuned product behaviour.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from .logging_config import get_logger
from .models import RecallRecord

logger = get_logger("matching")

MIN_TOKEN_LENGTH = 4
STRONG_NAME_TOKENS = 2


def significant_tokens(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return [token for token in text.lower().split() if len(token) >= MIN_TOKEN_LENGTH]


def _name_match(scan_tokens: List[str], recall_tokens: List[str]) -> bool:
    return any(
        recall_token in token or token in recall_token
        for token in scan_tokens
        for recall_token in recall_tokens
    )


def _brand_match(scan_brand: str, recall_brand: str) -> bool:
    if not scan_brand or not recall_brand:
        return False
    return scan_brand in recall_brand or recall_brand in scan_brand


def is_match(product_name: Optional[str], brand_name: Optional[str], record: RecallRecord) -> bool:
    scan_tokens = significant_tokens(product_name)
    if not _name_match(scan_tokens, significant_tokens(record.product_name)):
        return False
    if len(scan_tokens) >= STRONG_NAME_TOKENS:
        return True
    scan_brand = (brand_name or "").strip().lower()
    recall_brand = (record.brand or "").strip().lower()
    return _brand_match(scan_brand, recall_brand)


def find_match(
    records: Iterable[RecallRecord],
    product_name: Optional[str],
    brand_name: Optional[str],
) -> Optional[RecallRecord]:
    """Return the first record in feed order that matches the scan.

    Feeds are ordered newest first, so the most recent recall wins.
    """
    for record in records:
        if is_match(product_name, brand_name, record):
            logger.info(
                "Recall match for scan %r / %r: %s (%s %s)",
                product_name,
                brand_name,
                record.product_name,
                record.source,
                record.recall_number,
            )
            return record
    return None
