"""
Source registry.

Maps two-letter identifiers to extraction classes in the order the batch
runner processes them.
"""

from typing import Dict, Iterable, List, Optional, Type

from drawdata.sources.base import BaseSource
from drawdata.sources.colorado import ColoradoSource
from drawdata.sources.oregon import OregonSource


class UnknownSourceError(LookupError):
    """Raised when none of the requested source identifiers is registered."""

    def __init__(self, requested: Iterable[str], available: Iterable[str]):
        self.requested = list(requested)
        self.available = list(available)
        super().__init__(
            f"No matching sources: {', '.join(self.requested)}. "
            f"Available: {', '.join(self.available)}"
        )


SOURCE_REGISTRY: Dict[str, Type[BaseSource]] = {
    ColoradoSource.source_id: ColoradoSource,
    OregonSource.source_id: OregonSource,
}


def available_sources(registry: Optional[Dict[str, Type[BaseSource]]] = None) -> List[str]:
    return list((registry or SOURCE_REGISTRY).keys())


def get_source_class(
    source_id: str, registry: Optional[Dict[str, Type[BaseSource]]] = None
) -> Type[BaseSource]:
    """Look up a source class by identifier, case-insensitively."""
    registry = registry or SOURCE_REGISTRY
    try:
        return registry[source_id.strip().upper()]
    except KeyError:
        raise UnknownSourceError([source_id], registry.keys())
