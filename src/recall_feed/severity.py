"""Map each source's native risk vocabulary onto one severity scale."""

from __future__ import annotations

import re
from typing import Optional

from .models import SEVERITY_CRITICAL, SEVERITY_HIGH, SEVERITY_MEDIUM

CLASS_I = "Class I"
CLASS_II = "Class II"
CLASS_III = "Class III"
NOT_SPECIFIED = "Not specified"

_FDA_SEVERITY = {
    CLASS_I: SEVERITY_CRITICAL,
    CLASS_II: SEVERITY_HIGH,
    CLASS_III: SEVERITY_MEDIUM,
}

_CLASS_SEVERITY = {
    "iii": SEVERITY_MEDIUM,
    "ii": SEVERITY_HIGH,
    "i": SEVERITY_CRITICAL,
}

_SEVERITY_CLASS = {
    SEVERITY_CRITICAL: CLASS_I,
    SEVERITY_HIGH: CLASS_II,
    SEVERITY_MEDIUM: CLASS_III,
}

# "class iii" must not be read as "class i"
_CLASS_NUMERAL = re.compile(r"\bclass\s+(iii|ii|i)\b")

ACTIONS = {
    SEVERITY_CRITICAL: "URGENT: Do not consume! Dispose immediately. Serious health risk.",
    SEVERITY_HIGH: "WARNING: Do not consume. Return to store for refund. May cause temporary health issues.",
    SEVERITY_MEDIUM: "NOTICE: Product may not meet standards. Return to store if concerned.",
}
DEFAULT_ACTION = "Do not consume. Check with retailer or manufacturer."


def fda_severity(classification: Optional[str]) -> str:
    """FDA classes map one-to-one; anything unrecognised is treated as high."""
    if not classification:
        return SEVERITY_HIGH
    return _FDA_SEVERITY.get(classification.strip(), SEVERITY_HIGH)


def usda_severity(risk: Optional[object]) -> str:
    """Derive severity from a USDA classification or health-risk label.

    FSIS publishes both "Class I" style labels and free-text risk levels
    such as "High - Class I" or "Low". An explicit class numeral wins
    over the risk words.
    """
    if not risk:
        return SEVERITY_HIGH
    text = str(risk).lower()
    numeral = _CLASS_NUMERAL.search(text)
    if numeral:
        return _CLASS_SEVERITY[numeral.group(1)]
    if "high" in text:
        return SEVERITY_CRITICAL
    if "low" in text:
        return SEVERITY_MEDIUM
    return SEVERITY_HIGH


def usda_classification(risk: Optional[object]) -> str:
    """Express a USDA health-risk label in the FDA class vocabulary."""
    if not risk:
        return CLASS_II
    return _SEVERITY_CLASS[usda_severity(risk)]


def action_for_severity(severity: Optional[str]) -> str:
    if severity is None:
        return DEFAULT_ACTION
    return ACTIONS.get(severity, DEFAULT_ACTION)
