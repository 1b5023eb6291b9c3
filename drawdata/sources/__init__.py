"""
Source extraction modules.

Each agency is one BaseSource subclass registered in SOURCE_REGISTRY.
"""

from .base import BaseSource, SourceLogAdapter
from .registry import SOURCE_REGISTRY, UnknownSourceError, available_sources, get_source_class

__all__ = [
    "BaseSource",
    "SourceLogAdapter",
    "SOURCE_REGISTRY",
    "UnknownSourceError",
    "available_sources",
    "get_source_class",
]
