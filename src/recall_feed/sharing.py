"""Official deep links and share text for recall records."""

from __future__ import annotations

from typing import Dict, Optional

from .models import NOT_AVAILABLE, SOURCE_FDA, SOURCE_USDA, RecallRecord

DEFAULT_LINK_TEMPLATES: Dict[str, str] = {
    SOURCE_FDA: "https://www.fda.gov/safety/recalls-market-withdrawals-safety-alerts",
    SOURCE_USDA: "https://www.fsis.usda.gov/recalls/{recall_number}",
}


def official_link(record: RecallRecord, templates: Optional[Dict[str, str]] = None) -> Optional[str]:
    """Build the agency page URL for a record, or None for an unknown source."""
    template = (templates or DEFAULT_LINK_TEMPLATES).get(record.source)
    if not template:
        return None
    recall_number = "" if record.recall_number == NOT_AVAILABLE else record.recall_number
    return template.format(recall_number=recall_number)


def share_message(record: RecallRecord) -> str:
    return (
        "FOOD RECALL ALERT\n\n"
        f"Product: {record.product_name}\n"
        f"Brand: {record.brand}\n"
        f"Reason: {record.reason}\n"
        f"Classification: {record.classification}\n"
        f"Date: {record.recall_date}\n\n"
        f"{record.action_to_take}\n\n"
        f"Source: {record.source} • {record.recall_number}"
    )
