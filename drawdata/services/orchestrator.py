"""
Per-Source Orchestrator.

Runs one source through every collection phase in a fixed order:

    units -> draw_history -> deadlines -> fees -> seasons -> regulations
          -> leftover_tags -> fee_sync -> audit

Each phase is isolated: an exception is recorded as "<phase> failed: ..."
in the run's error list, reported to Sentry, and the next phase runs
anyway. Records are validated before they are written; rejected records
are counted as skipped, never persisted. One audit record closes the run.

Usage:
    source = ColoradoSource(store=store, transport=transport)
    result = await SourceRunOrchestrator(source, store).run()
    print(result.to_dict())
"""

import math
import time
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

from asgiref.sync import sync_to_async
from django.utils import timezone

from drawdata.health.plausibility import check_row_count_sanity
from drawdata.monitoring.sentry_integration import (
    add_collection_breadcrumb,
    capture_collection_error,
)
from drawdata.services.fee_sync import build_summary_row, summarize_fees
from drawdata.sources.base import BaseSource
from drawdata.sources.types import DrawHistoryRecord, FeeRecord
from drawdata.validators.batch import validate_batch
from drawdata.validators.schemas import (
    DrawHistorySerializer,
    PlausibleDeadlineSerializer,
    PlausibleFeeSerializer,
    PlausibleLeftoverTagSerializer,
    PlausibleSeasonSerializer,
    RegulationSerializer,
    UnitSerializer,
)


@dataclass
class SourceRunResult:
    """Counts of rows written per kind plus everything that went wrong."""

    source: str
    units: int = 0
    draw_history: int = 0
    deadlines: int = 0
    fees: int = 0
    seasons: int = 0
    regulations: int = 0
    leftover_tags: int = 0
    rows_skipped: int = 0
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def total_rows(self) -> int:
        return (
            self.units
            + self.draw_history
            + self.deadlines
            + self.fees
            + self.seasons
            + self.regulations
            + self.leftover_tags
        )

    @property
    def productive(self) -> bool:
        """True when any row of the two mandatory kinds was written."""
        return self.units > 0 or self.draw_history > 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["total_rows"] = self.total_rows
        return data


def derive_odds(tags: int, applicants: int) -> float:
    """Draw odds in percent, rounded half-up to two decimals."""
    if applicants <= 0:
        return 0
    return math.floor(tags / applicants * 10000 + 0.5) / 100


class SourceRunOrchestrator:
    """Sequence, validate and persist one source's collection phases."""

    def __init__(self, source: BaseSource, store=None, alert_handler=None):
        self.source = source
        self.store = store or source.store
        self.alert_handler = alert_handler or source.alert_handler
        self.log = source.logger
        self._unit_ids: Dict[Tuple[str, str, str], Optional[int]] = {}
        self._accepted_fees: List[FeeRecord] = []

    # -------------------------------------------------------------------------
    # Store access (the ORM is synchronous)
    # -------------------------------------------------------------------------

    async def _upsert(self, kind: str, rows: List[Dict[str, Any]]) -> int:
        return await sync_to_async(self.store.upsert, thread_sensitive=True)(kind, rows)

    async def _lookup(self, kind: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        return await sync_to_async(self.store.lookup, thread_sensitive=True)(kind, filters)

    async def _check_row_count(self, kind: str, filters: Dict[str, Any], count: int, label: str):
        return await sync_to_async(check_row_count_sanity, thread_sensitive=True)(
            self.store,
            kind,
            filters,
            count,
            label,
            log=self.log,
            alert_handler=self.alert_handler,
            source_id=self.source.source_id,
        )

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    async def run(self) -> SourceRunResult:
        """
        Run every phase for the source and write the audit record.

        Returns:
            SourceRunResult with per-kind counts and accumulated errors
        """
        started = time.monotonic()
        now = timezone.now()
        result = SourceRunResult(source=self.source.source_id)
        self._unit_ids = {}
        self._accepted_fees = []

        phases = [
            ("units", self._collect_units),
            ("draw_history", self._collect_draw_history),
            ("deadlines", self._collect_deadlines),
            ("fees", self._collect_fees),
            ("seasons", self._collect_seasons),
            ("regulations", self._collect_regulations),
            ("leftover_tags", self._collect_leftover_tags),
            ("fee_sync", self._sync_fee_summary),
        ]

        for phase, handler in phases:
            add_collection_breadcrumb(self.source.source_id, f"Phase {phase}", phase=phase)
            try:
                count = await handler(result, now)
            except Exception as e:
                message = f"{phase} failed: {e}"
                result.errors.append(message)
                self.log.error(message)
                capture_collection_error(e, source_id=self.source.source_id, phase=phase)
                continue
            if count is not None:
                setattr(result, phase, count)

        result.duration_seconds = round(time.monotonic() - started, 2)
        await self._write_audit_record(result)

        self.log.info(
            f"Done. Units: {result.units}, Draw: {result.draw_history}, "
            f"Deadlines: {result.deadlines}, Fees: {result.fees}, Seasons: {result.seasons}, "
            f"Regs: {result.regulations}, Leftover: {result.leftover_tags}, "
            f"Skipped: {result.rows_skipped}, Errors: {len(result.errors)}"
        )
        return result

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    async def _collect_units(self, result: SourceRunResult, now) -> int:
        self.log.info("Collecting units...")
        records = await self.source.collect_units()
        self.log.info(f"  Found {len(records)} units")

        batch = validate_batch(records, UnitSerializer, "units", self.log)
        result.rows_skipped += batch.skipped
        if not batch.accepted:
            return 0

        await self._check_row_count(
            "unit", {"source": self.source.source_id}, len(batch.accepted), "units"
        )

        rows = []
        for unit in batch.accepted:
            row = asdict(unit)
            row["terrain_type"] = row["terrain_type"] or []
            row["elevation_range"] = row["elevation_range"] or []
            row.update(source_url=self.source.source_url, source_pulled_at=now, updated_at=now)
            rows.append(row)

        count = await self._upsert("unit", rows)
        self.log.info(f"  Upserted {count} units")
        return count

    async def _resolve_unit_id(self, record: DrawHistoryRecord) -> Optional[int]:
        key = record.split_unit_ref()
        if key not in self._unit_ids:
            source, species, unit_code = key
            rows = await self._lookup(
                "unit", {"source": source, "species": species, "unit_code": unit_code}
            )
            self._unit_ids[key] = rows[0]["id"] if rows else None
        return self._unit_ids[key]

    @staticmethod
    def _with_derived_odds(record):
        if isinstance(record, DrawHistoryRecord) and not record.odds:
            return replace(record, odds=derive_odds(record.tags, record.applicants))
        return record

    async def _collect_draw_history(self, result: SourceRunResult, now) -> int:
        self.log.info("Collecting draw history...")
        records = await self.source.collect_draw_history()
        self.log.info(f"  Found {len(records)} draw history rows")

        # Odds are checked against the 0-100 bound like any collected value
        records = [self._with_derived_odds(record) for record in records]
        batch = validate_batch(records, DrawHistorySerializer, "draw history", self.log)
        result.rows_skipped += batch.skipped
        if not batch.accepted:
            return 0

        await self._check_row_count(
            "draw_history",
            {"unit__source": self.source.source_id},
            len(batch.accepted),
            "draw history",
        )

        count = 0
        for record in batch.accepted:
            unit_id = await self._resolve_unit_id(record)
            if unit_id is None:
                result.errors.append(f"No unit row for {record.unit_ref}; skipping")
                result.rows_skipped += 1
                continue

            row = {
                "unit_id": unit_id,
                "year": record.year,
                "applicants": record.applicants,
                "tags_available": record.tags,
                "tags_issued": record.tags,
                "odds_percent": record.odds,
                "min_points_drawn": record.min_points_drawn,
                "source_url": self.source.source_url,
                "source_pulled_at": now,
            }
            try:
                count += await self._upsert("draw_history", [row])
            except Exception as e:
                result.errors.append(f"draw history upsert {record.unit_ref} {record.year}: {e}")

        self.log.info(f"  Upserted {count} draw history rows")
        return count

    async def _collect_validated(
        self,
        result: SourceRunResult,
        label: str,
        records: List[Any],
        serializer_class,
        kind: str,
        extra: Dict[str, Any],
    ) -> Tuple[int, List[Any]]:
        """Validate records, upsert the accepted ones with extra columns, return (count, accepted)."""
        self.log.info(f"  Found {len(records)} {label} entries")
        batch = validate_batch(records, serializer_class, label, self.log)
        result.rows_skipped += batch.skipped
        if not batch.accepted:
            return 0, []

        rows = [{**asdict(record), **extra} for record in batch.accepted]
        count = await self._upsert(kind, rows)
        self.log.info(f"  Upserted {count} {label}")
        return count, batch.accepted

    async def _collect_deadlines(self, result: SourceRunResult, now) -> int:
        self.log.info("Collecting deadlines...")
        records = await self.source.collect_deadlines()
        count, _ = await self._collect_validated(
            result, "deadlines", records, PlausibleDeadlineSerializer, "deadline",
            {"source_url": self.source.source_url, "source_pulled_at": now},
        )
        return count

    async def _collect_fees(self, result: SourceRunResult, now) -> int:
        self.log.info("Collecting fees...")
        records = await self.source.collect_fees()
        count, accepted = await self._collect_validated(
            result, "fees", records, PlausibleFeeSerializer, "fee",
            {"source_url": self.source.source_url, "source_pulled_at": now},
        )
        self._accepted_fees = accepted
        return count

    async def _collect_seasons(self, result: SourceRunResult, now) -> int:
        self.log.info("Collecting seasons...")
        records = await self.source.collect_seasons()
        count, _ = await self._collect_validated(
            result, "seasons", records, PlausibleSeasonSerializer, "season",
            {"source_url": self.source.source_url, "source_pulled_at": now},
        )
        return count

    async def _collect_regulations(self, result: SourceRunResult, now) -> int:
        self.log.info("Collecting regulations...")
        records = await self.source.collect_regulations()
        count, _ = await self._collect_validated(
            result, "regulations", records, RegulationSerializer, "regulation",
            {"scraped_at": now},
        )
        return count

    async def _collect_leftover_tags(self, result: SourceRunResult, now) -> int:
        self.log.info("Collecting leftover tags...")
        records = await self.source.collect_leftover_tags()
        count, _ = await self._collect_validated(
            result, "leftover tags", records, PlausibleLeftoverTagSerializer, "leftover_tag",
            {"scraped_at": now},
        )
        return count

    async def _sync_fee_summary(self, result: SourceRunResult, now) -> None:
        summary = summarize_fees(self._accepted_fees)
        row = build_summary_row(self.source.source_id, self.source.source_url, summary, now)
        if row is None:
            self.log.info("  No nonresident tag costs in collected fees; skipping fee summary sync")
            return None

        row["updated_at"] = now
        await self._upsert("fee_summary", [row])
        self.log.info(
            f"  Synced {len(summary.tag_costs)} nonresident tag costs and license fees"
        )
        return None

    async def _write_audit_record(self, result: SourceRunResult) -> None:
        record = {
            "import_type": "collector",
            "source": self.source.source_id,
            "rows_imported": result.total_rows,
            "rows_skipped": result.rows_skipped,
            "errors": list(result.errors),
            "source_module": self.source.module_label,
            "source_url": self.source.source_url,
        }
        try:
            await sync_to_async(self.store.insert_audit_record, thread_sensitive=True)(record)
        except Exception as e:
            message = f"audit write failed: {e}"
            result.errors.append(message)
            self.log.error(message)
            capture_collection_error(e, source_id=self.source.source_id, phase="audit")
