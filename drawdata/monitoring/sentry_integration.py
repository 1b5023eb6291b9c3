"""
Sentry error tracking for collection runs.

The SDK itself is initialised in config/settings/base.py when SENTRY_DSN is
set; without a DSN every call here is a cheap no-op inside the SDK.

Usage:
    from drawdata.monitoring import capture_collection_error

    try:
        count = await self._collect_fees()
    except Exception as e:
        capture_collection_error(e, source_id="CO", phase="fees")
"""

import logging
from typing import Any, Dict, Optional

import sentry_sdk

logger = logging.getLogger(__name__)

# Keys whose values never leave the process
SENSITIVE_FIELDS = {
    "cookie",
    "api_key",
    "apikey",
    "api-key",
    "authorization",
    "password",
    "secret",
    "token",
    "dsn",
}


def _filter_sensitive_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Replace values of sensitive keys with a placeholder, recursively.

    Args:
        data: Dictionary potentially containing sensitive data

    Returns:
        Filtered copy of the dictionary
    """
    if not isinstance(data, dict):
        return data

    filtered = {}
    for key, value in data.items():
        key_lower = str(key).lower()
        if any(sensitive in key_lower for sensitive in SENSITIVE_FIELDS):
            filtered[key] = "[Filtered]"
        elif isinstance(value, dict):
            filtered[key] = _filter_sensitive_data(value)
        else:
            filtered[key] = value
    return filtered


def add_collection_breadcrumb(
    source_id: str,
    message: str,
    phase: Optional[str] = None,
    url: Optional[str] = None,
    level: str = "info",
    extra_data: Optional[Dict[str, Any]] = None,
) -> None:
    """Record a breadcrumb describing a collection step."""
    data: Dict[str, Any] = {"source": source_id}
    if phase:
        data["phase"] = phase
    if url:
        data["url"] = url
    if extra_data:
        data.update(_filter_sensitive_data(extra_data))

    try:
        sentry_sdk.add_breadcrumb(
            category="collection",
            message=message,
            level=level,
            data=data,
        )
    except Exception as e:
        logger.warning(f"Failed to add Sentry breadcrumb: {e}")


def capture_collection_error(
    error: Exception,
    source_id: Optional[str] = None,
    phase: Optional[str] = None,
    url: Optional[str] = None,
    extra_context: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Capture a collection error to Sentry with source and phase context.

    Args:
        error: The exception that occurred
        source_id: Two-letter source identifier
        phase: Orchestrator phase that failed (e.g. "fees")
        url: URL being retrieved, when known
        extra_context: Additional context (filtered for sensitive data)
    """
    add_collection_breadcrumb(
        source_id=source_id or "unknown",
        message=f"Error: {type(error).__name__}",
        phase=phase,
        url=url,
        level="error",
    )

    try:
        with sentry_sdk.new_scope() as scope:
            scope.set_tag("collector.source", source_id or "unknown")
            if phase:
                scope.set_tag("collector.phase", phase)
            if url:
                scope.set_extra("collection_url", url)
            if extra_context:
                scope.set_extra("collection_context", _filter_sensitive_data(extra_context))
            sentry_sdk.capture_exception(error)
    except Exception as e:
        logger.warning(f"Failed to capture exception to Sentry: {e}")


def capture_alert(
    message: str,
    level: str = "warning",
    source_id: Optional[str] = None,
    alert_type: str = "structure_change",
    extra_data: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Capture an alert message to Sentry.

    Used for structural drift and suspicious row-count drops.
    """
    try:
        with sentry_sdk.new_scope() as scope:
            scope.set_tag("alert.type", alert_type)
            if source_id:
                scope.set_tag("collector.source", source_id)
            if extra_data:
                scope.set_extra("alert_data", _filter_sensitive_data(extra_data))
            sentry_sdk.capture_message(message, level=level)
    except Exception as e:
        logger.warning(f"Failed to capture alert to Sentry: {e}")
