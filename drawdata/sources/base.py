"""
Source Extraction Interface.

Every agency module subclasses BaseSource and implements up to seven async
producers, one per record kind. `collect_units` and `collect_draw_history`
are mandatory; the rest default to an empty list.

Contract for implementers: a producer returns only the items it parsed
successfully. Row-level parse problems are skipped inside the producer and
never raised; a raised exception means the whole phase failed (page
unreachable, layout unrecognisable) and is recorded by the orchestrator.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from asgiref.sync import sync_to_async

from drawdata.fetchers.transport import RetryingTransport
from drawdata.health.fingerprint import FingerprintComparison, StructuralFingerprint
from drawdata.sources.types import (
    DeadlineRecord,
    DrawHistoryRecord,
    FeeRecord,
    LeftoverTagRecord,
    RegulationRecord,
    SeasonRecord,
    UnitRecord,
)
from drawdata.utils.delimited import tokenize, zip_row


class SourceLogAdapter(logging.LoggerAdapter):
    """Prefix every line with the source identifier, e.g. "[CO] Found 12 units"."""

    def process(self, msg, kwargs):
        return f"[{self.extra['source']}] {msg}", kwargs


class BaseSource(ABC):
    """
    Base class for one agency's extraction module.

    Attributes:
        source_id: Two-letter identifier ("CO")
        source_name: Display name ("Colorado")
        source_url: Landing page recorded as provenance on stored rows
    """

    source_id: str = ""
    source_name: str = ""
    source_url: str = ""

    def __init__(self, store, transport: Optional[RetryingTransport] = None, alert_handler=None):
        """
        Args:
            store: RegulatoryStore used for fingerprints
            transport: Shared RetryingTransport (one is created if omitted)
            alert_handler: Optional StructureChangeAlertHandler for drift alerts
        """
        self.store = store
        self.transport = transport or RetryingTransport()
        self.alert_handler = alert_handler
        self.logger = SourceLogAdapter(
            logging.getLogger(type(self).__module__), {"source": self.source_id}
        )

    def __repr__(self):
        return f"<{type(self).__name__} {self.source_id}>"

    @property
    def module_label(self) -> str:
        """Provenance label written to the audit record."""
        return type(self).__module__

    # -------------------------------------------------------------------------
    # Producers
    # -------------------------------------------------------------------------

    @abstractmethod
    async def collect_units(self) -> List[UnitRecord]:
        ...

    @abstractmethod
    async def collect_draw_history(self) -> List[DrawHistoryRecord]:
        ...

    async def collect_deadlines(self) -> List[DeadlineRecord]:
        return []

    async def collect_fees(self) -> List[FeeRecord]:
        return []

    async def collect_seasons(self) -> List[SeasonRecord]:
        return []

    async def collect_regulations(self) -> List[RegulationRecord]:
        return []

    async def collect_leftover_tags(self) -> List[LeftoverTagRecord]:
        return []

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, message)

    async def fetch_page(self, url: str, max_attempts: Optional[int] = None) -> str:
        return await self.transport.retrieve(url, max_attempts)

    async def fetch_bytes(self, url: str, max_attempts: Optional[int] = None) -> bytes:
        return await self.transport.retrieve_bytes(url, max_attempts)

    async def fetch_csv(self, url: str, delimiter: str = ",") -> List[List[str]]:
        """Retrieve and tokenize a delimited file."""
        text = await self.transport.retrieve(url)
        return tokenize(text, delimiter)

    def parse_csv_row(self, headers: Sequence[str], row: Sequence[str]) -> Dict[str, str]:
        return zip_row(headers, row)

    async def check_structure(self, content: str, url: str) -> Optional[FingerprintComparison]:
        """Fingerprint fetched content and warn when its structure drifted."""
        return await sync_to_async(StructuralFingerprint.check, thread_sensitive=True)(
            content,
            url,
            self.source_id,
            self.store,
            alert_handler=self.alert_handler,
            log=self.logger,
        )

    async def close(self) -> None:
        await self.transport.close()
