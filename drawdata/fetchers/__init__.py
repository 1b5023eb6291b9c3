"""Retrieval layer for collection sources."""

from .transport import RetrievalExhausted, RetryingTransport

__all__ = ["RetrievalExhausted", "RetryingTransport"]
