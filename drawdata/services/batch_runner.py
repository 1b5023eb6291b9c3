"""
Batch Runner - collect every registered source in turn.

Sources run strictly one after another with a fixed politeness delay
between them. A failure escaping a source's orchestrator becomes a
"Fatal: ..." error on that source's summary row; later sources still run.

The batch counts as failed only when some source wrote no units and no
draw history *and* reported errors. A source that legitimately found
nothing is not a failure.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Type

from django.conf import settings
from django.utils import timezone

from drawdata.fetchers.transport import RetryingTransport
from drawdata.health.alerts import StructureChangeAlertHandler
from drawdata.monitoring.sentry_integration import capture_collection_error
from drawdata.services.orchestrator import SourceRunOrchestrator, SourceRunResult
from drawdata.sources.base import BaseSource
from drawdata.sources.registry import SOURCE_REGISTRY, UnknownSourceError

logger = logging.getLogger(__name__)

COUNT_COLUMNS = [
    ("Units", "units"),
    ("Draw", "draw_history"),
    ("Deadl", "deadlines"),
    ("Fees", "fees"),
    ("Seasn", "seasons"),
    ("Regs", "regulations"),
    ("Left", "leftover_tags"),
]
MAX_ERRORS_SHOWN = 5


@dataclass
class SummaryRow:
    source_name: str
    result: SourceRunResult

    @property
    def failed(self) -> bool:
        return bool(self.result.errors) and not self.result.productive


@dataclass
class BatchSummary:
    rows: List[SummaryRow] = field(default_factory=list)
    started_at: Optional[str] = None

    @property
    def totals(self) -> Dict[str, int]:
        totals = {attr: 0 for _, attr in COUNT_COLUMNS}
        totals["errors"] = 0
        for row in self.rows:
            for _, attr in COUNT_COLUMNS:
                totals[attr] += getattr(row.result, attr)
            totals["errors"] += len(row.result.errors)
        return totals

    @property
    def failed(self) -> bool:
        return any(row.failed for row in self.rows)

    def to_dict(self) -> Dict:
        return {
            "started_at": self.started_at,
            "failed": self.failed,
            "totals": self.totals,
            "sources": [
                {"name": row.source_name, **row.result.to_dict()} for row in self.rows
            ],
        }


def _pad(value, width: int) -> str:
    return str(value).ljust(width)


def render_summary(summary: BatchSummary) -> str:
    """Fixed-width summary table with up to five error messages per source."""
    lines = ["", "=" * 110, "COLLECTION SUMMARY", "=" * 110]

    header = _pad("Source", 16) + _pad("ID", 5)
    header += "".join(_pad(title, 7) for title, _ in COUNT_COLUMNS) + _pad("Errs", 7)
    lines.append(header)
    lines.append("-" * 77)

    for row in summary.rows:
        result = row.result
        line = _pad(row.source_name, 16) + _pad(result.source, 5)
        line += "".join(_pad(getattr(result, attr), 7) for _, attr in COUNT_COLUMNS)
        line += _pad(len(result.errors), 7)
        lines.append(line)
        for message in result.errors[:MAX_ERRORS_SHOWN]:
            lines.append(f"  -> {message}")

    totals = summary.totals
    lines.append("-" * 77)
    line = _pad("TOTAL", 16) + _pad("", 5)
    line += "".join(_pad(totals[attr], 7) for _, attr in COUNT_COLUMNS)
    line += _pad(totals["errors"], 7)
    lines.append(line)
    lines.append("=" * 110)

    return "\n".join(line.rstrip() for line in lines)


class BatchRunner:
    """
    Run the orchestrator for each selected source, sequentially.

    Args:
        store: RegulatoryStore shared by every source
        registry: source id -> BaseSource subclass (default SOURCE_REGISTRY)
        delay: Seconds between sources (default DRAWDATA_INTER_SOURCE_DELAY)
        sleep: Coroutine used for the delay
        transport: Shared RetryingTransport (one is created per batch if omitted)
    """

    def __init__(
        self,
        store,
        registry: Optional[Dict[str, Type[BaseSource]]] = None,
        delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        transport: Optional[RetryingTransport] = None,
    ):
        self.store = store
        self.registry = registry if registry is not None else SOURCE_REGISTRY
        self.delay = (
            delay if delay is not None else getattr(settings, "DRAWDATA_INTER_SOURCE_DELAY", 2.0)
        )
        self._sleep = sleep
        self.transport = transport
        self.alert_handler = StructureChangeAlertHandler()

    def select(self, source_ids: Optional[Sequence[str]] = None) -> List[Type[BaseSource]]:
        """
        Resolve requested identifiers (case-insensitive) to source classes.

        Unknown identifiers are logged and skipped; UnknownSourceError is
        raised when none match. No identifiers selects every source.
        """
        if not source_ids:
            return list(self.registry.values())

        wanted = [source_id.strip().upper() for source_id in source_ids]
        unknown = [source_id for source_id in wanted if source_id not in self.registry]
        if unknown:
            logger.warning(f"Ignoring unknown sources: {', '.join(unknown)}")

        selected = [self.registry[sid] for sid in dict.fromkeys(wanted) if sid in self.registry]
        if not selected:
            raise UnknownSourceError(wanted, self.registry.keys())
        return selected

    async def run(self, source_ids: Optional[Sequence[str]] = None) -> BatchSummary:
        """Collect the selected sources and return the batch summary."""
        source_classes = self.select(source_ids)
        summary = BatchSummary(started_at=timezone.now().isoformat())

        logger.info(
            f"Running {len(source_classes)} source(s): "
            f"{', '.join(cls.source_id for cls in source_classes)}"
        )

        owns_transport = self.transport is None
        transport = self.transport or RetryingTransport()
        try:
            for index, source_class in enumerate(source_classes):
                if index > 0 and self.delay:
                    await self._sleep(self.delay)

                logger.info(f"Running: {source_class.source_name} ({source_class.source_id})")
                summary.rows.append(
                    SummaryRow(
                        source_name=source_class.source_name,
                        result=await self._run_one(source_class, transport),
                    )
                )
        finally:
            if owns_transport:
                await transport.close()

        return summary

    async def _run_one(self, source_class: Type[BaseSource], transport) -> SourceRunResult:
        try:
            source = source_class(
                store=self.store, transport=transport, alert_handler=self.alert_handler
            )
            return await SourceRunOrchestrator(source, self.store).run()
        except Exception as e:
            logger.error(f"[{source_class.source_id}] Fatal: {e}")
            capture_collection_error(e, source_id=source_class.source_id, phase="run")
            return SourceRunResult(source=source_class.source_id, errors=[f"Fatal: {e}"])
