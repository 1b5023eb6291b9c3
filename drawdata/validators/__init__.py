"""
Validation layer for collected records.

One structural serializer per record kind, plausibility refinements layered
on top, and a batch validator that never raises.
"""

from .batch import BatchValidation, validate_batch
from .schemas import (
    DeadlineSerializer,
    DrawHistorySerializer,
    FeeSerializer,
    LeftoverTagSerializer,
    PlausibleDeadlineSerializer,
    PlausibleFeeSerializer,
    PlausibleLeftoverTagSerializer,
    PlausibleSeasonSerializer,
    RegulationSerializer,
    SeasonSerializer,
    UnitSerializer,
    parse_record_date,
)

__all__ = [
    "BatchValidation",
    "validate_batch",
    "DeadlineSerializer",
    "DrawHistorySerializer",
    "FeeSerializer",
    "LeftoverTagSerializer",
    "PlausibleDeadlineSerializer",
    "PlausibleFeeSerializer",
    "PlausibleLeftoverTagSerializer",
    "PlausibleSeasonSerializer",
    "RegulationSerializer",
    "SeasonSerializer",
    "UnitSerializer",
    "parse_record_date",
]
