"""
Monitoring for the draw-data collector.

- Sentry error tracking with collection context (source, phase, URL)
- Alert capture for structural drift and row-count drops
"""

from .sentry_integration import (
    add_collection_breadcrumb,
    capture_alert,
    capture_collection_error,
)

__all__ = [
    "add_collection_breadcrumb",
    "capture_alert",
    "capture_collection_error",
]
