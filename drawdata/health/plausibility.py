"""
Row-count sanity check.

When a run collects far fewer rows than the store already holds for the
source, the extraction most likely broke (a layout change, an empty
download) rather than the agency genuinely publishing less. The check
only warns; upserts never delete, so stored rows survive either way.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from django.conf import settings

logger = logging.getLogger(__name__)


@dataclass
class RowCountCheck:
    plausible: bool
    drop_percent: float
    existing_count: int


def check_row_count_sanity(
    store,
    kind: str,
    filters: Dict[str, Any],
    new_count: int,
    label: str,
    threshold: Optional[float] = None,
    log: Optional[logging.LoggerAdapter] = None,
    alert_handler=None,
    source_id: Optional[str] = None,
) -> RowCountCheck:
    """
    Compare a fresh row count with the number of rows already stored.

    Args:
        store: RegulatoryStore
        kind: Store kind to count (e.g. "unit")
        filters: Lookup restricting the count to this source
        new_count: Rows collected in this run
        label: Name used in log lines
        threshold: Drop percentage above which the count is implausible
        log: Logger or source-prefixed adapter
        alert_handler: Optional StructureChangeAlertHandler
        source_id: Source identifier for alerts

    Returns:
        RowCountCheck; plausible is True when it could not be determined
    """
    log = log or logger
    if threshold is None:
        threshold = getattr(settings, "DRAWDATA_ROW_DROP_THRESHOLD", 80)

    try:
        existing = store.count(kind, filters)
    except Exception as e:
        log.warning(f"[row-sanity] Could not count existing {label}: {e}")
        return RowCountCheck(plausible=True, drop_percent=0.0, existing_count=0)

    if existing == 0:
        return RowCountCheck(plausible=True, drop_percent=0.0, existing_count=0)

    drop_percent = (existing - new_count) / existing * 100
    if drop_percent > threshold:
        log.warning(
            f"[row-sanity] {label} dropped from {existing} to {new_count} rows "
            f"({drop_percent:.1f}% drop). Likely extraction failure, not a real data change."
        )
        if alert_handler is not None and source_id:
            alert_handler.handle_row_count_drop(source_id, label, existing, new_count, drop_percent)
        return RowCountCheck(plausible=False, drop_percent=drop_percent, existing_count=existing)

    return RowCountCheck(plausible=True, drop_percent=drop_percent, existing_count=existing)
