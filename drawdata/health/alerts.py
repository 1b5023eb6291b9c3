"""
Alert Handler for data-integrity warnings.

Routes alerts to the log and to Sentry. A drifted page structure is a
warning since extraction may still work; a collapsed row count is critical
since extraction has most likely failed. Neither condition stops collection.

Usage:
    handler = StructureChangeAlertHandler()
    handler.handle_fingerprint_change("CO", url, comparison)
    handler.handle_row_count_drop("CO", "units", existing=500, new=20, drop_percent=96.0)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from drawdata.monitoring.sentry_integration import capture_alert

logger = logging.getLogger(__name__)


class AlertSeverity(Enum):
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass
class StructureAlert:
    """
    A data-integrity alert for one source.

    Attributes:
        source: Two-letter source identifier
        severity: Alert severity level
        message: Human-readable alert message
        alert_type: "structure_change" or "row_count_drop"
        url: Page the alert concerns, when applicable
        extra_data: Additional context data
        timestamp: ISO timestamp of the alert
    """

    source: str
    severity: AlertSeverity
    message: str
    alert_type: str = "structure_change"
    url: Optional[str] = None
    extra_data: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


class StructureChangeAlertHandler:
    """Log data-integrity alerts locally and forward them to Sentry."""

    def __init__(self):
        self._sent_alerts: List[StructureAlert] = []

    def handle_fingerprint_change(self, source: str, url: str, comparison) -> None:
        """
        Handle a structural fingerprint change.

        Args:
            source: Source identifier
            url: Page whose structure changed
            comparison: FingerprintComparison with added/removed paths
        """
        alert = StructureAlert(
            source=source,
            severity=AlertSeverity.WARNING,
            message=(
                f"Structural change detected on {url}: {comparison.details}. "
                f"Extraction for {source} may need updating."
            ),
            url=url,
            extra_data={
                "added_paths": comparison.added[:10],
                "removed_paths": comparison.removed[:10],
            },
        )
        self._send_alert(alert)

    def handle_row_count_drop(
        self,
        source: str,
        label: str,
        existing: int,
        new: int,
        drop_percent: float,
    ) -> None:
        """Handle a new row count far below what is already stored."""
        alert = StructureAlert(
            source=source,
            severity=AlertSeverity.CRITICAL,
            alert_type="row_count_drop",
            message=(
                f"{label}: {new} rows collected vs {existing} stored "
                f"({drop_percent:.0f}% drop). Possible extraction failure."
            ),
            extra_data={
                "label": label,
                "existing_count": existing,
                "new_count": new,
                "drop_percent": drop_percent,
            },
        )
        self._send_alert(alert)

    def _send_alert(self, alert: StructureAlert) -> None:
        self._sent_alerts.append(alert)

        log_level = logging.ERROR if alert.severity == AlertSeverity.CRITICAL else logging.WARNING
        logger.log(log_level, f"Integrity alert [{alert.source}]: {alert.message}")

        sentry_level = "error" if alert.severity == AlertSeverity.CRITICAL else alert.severity.value
        capture_alert(
            message=alert.message,
            level=sentry_level,
            source_id=alert.source,
            alert_type=alert.alert_type,
            extra_data={
                "severity": alert.severity.value,
                "timestamp": alert.timestamp,
                "url": alert.url,
                **alert.extra_data,
            },
        )

    def get_sent_alerts(self) -> List[StructureAlert]:
        return list(self._sent_alerts)
