"""
Batch validation.

`validate_batch` partitions arbitrary input into typed records and rejected
rows. It never raises: a row that is not even a mapping is rejected like any
other invalid row. Log volume is bounded to five detailed rejections per
batch plus one summary line.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

MAX_LOGGED_REJECTIONS = 5


@dataclass
class BatchValidation:
    """Outcome of validating one batch."""

    accepted: List[Any] = field(default_factory=list)
    rejections: List[Tuple[int, str]] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return len(self.rejections)


def _flatten_errors(errors) -> str:
    """Turn a DRF error structure into "field: message; ..." text."""
    if isinstance(errors, dict):
        parts = []
        for key, value in errors.items():
            message = _flatten_errors(value)
            parts.append(message if key == "non_field_errors" else f"{key}: {message}")
        return "; ".join(parts)
    if isinstance(errors, (list, tuple)):
        return ", ".join(_flatten_errors(item) for item in errors)
    return str(errors)


def _as_mapping(row):
    if dataclasses.is_dataclass(row) and not isinstance(row, type):
        return dataclasses.asdict(row)
    return row


def validate_batch(
    rows: Sequence[Any],
    serializer_class,
    label: str,
    log: Optional[logging.LoggerAdapter] = None,
) -> BatchValidation:
    """
    Validate a batch of rows against a serializer.

    Args:
        rows: Records (dataclasses or dicts) or anything else
        serializer_class: Serializer with a `record_class` attribute
        label: Name used in log lines (e.g. "fees")
        log: Logger or source-prefixed adapter

    Returns:
        BatchValidation; len(accepted) + skipped == len(rows)
    """
    log = log or logger
    result = BatchValidation()

    for index, row in enumerate(rows):
        try:
            serializer = serializer_class(data=_as_mapping(row))
            if serializer.is_valid():
                result.accepted.append(serializer_class.record_class(**serializer.validated_data))
                continue
            reason = _flatten_errors(serializer.errors)
        except Exception as e:
            reason = f"{type(e).__name__}: {e}"

        result.rejections.append((index, reason))
        if len(result.rejections) <= MAX_LOGGED_REJECTIONS:
            log.info(f"  [{label}] Row {index} failed validation: {reason}")

    if result.skipped:
        log.info(f"  [{label}] Validated: {len(result.accepted)} ok, {result.skipped} skipped")

    return result
