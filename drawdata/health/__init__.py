"""
Data-integrity checks for collection runs.

- Structural fingerprints that flag silent page-layout drift
- Row-count sanity checks against previously stored data
- Alert routing to logs and Sentry
"""

from .alerts import AlertSeverity, StructureAlert, StructureChangeAlertHandler
from .fingerprint import FingerprintComparison, FingerprintSignature, StructuralFingerprint
from .plausibility import RowCountCheck, check_row_count_sanity

__all__ = [
    "AlertSeverity",
    "StructureAlert",
    "StructureChangeAlertHandler",
    "FingerprintComparison",
    "FingerprintSignature",
    "StructuralFingerprint",
    "RowCountCheck",
    "check_row_count_sanity",
]
