"""
Regulatory Store - durable storage for collected records.

Wraps the Django ORM behind the three operations the collection pipeline
needs: upsert by natural key, lookup by filter, and the append-only audit
write. The store is constructed once per batch and handed explicitly to
each source and orchestrator.

Usage:
    store = RegulatoryStore()          # raises ImproperlyConfigured if unusable
    store.upsert("unit", rows)         # update-or-create on (source, species, unit_code)
    store.lookup("unit", {"source": "CO", "unit_code": "10"})
    store.insert_audit_record({...})
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import models, transaction

from drawdata.models import (
    Deadline,
    DrawHistory,
    Fee,
    LeftoverTag,
    Regulation,
    RunAuditRecord,
    Season,
    SourceFeeSummary,
    SourceFingerprint,
    Unit,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreKind:
    """A record kind: its model and the natural key used for upserts."""

    model: Type[models.Model]
    conflict_key: Tuple[str, ...]


STORE_KINDS: Dict[str, StoreKind] = {
    "unit": StoreKind(Unit, ("source", "species", "unit_code")),
    "draw_history": StoreKind(DrawHistory, ("unit_id", "year")),
    "deadline": StoreKind(Deadline, ("source", "species", "deadline_type", "year")),
    "fee": StoreKind(Fee, ("source", "fee_name", "residency")),
    "season": StoreKind(Season, ("source", "species", "season_type", "year")),
    "regulation": StoreKind(Regulation, ("source", "title")),
    "leftover_tag": StoreKind(LeftoverTag, ("source", "species", "unit_code")),
    "fingerprint": StoreKind(SourceFingerprint, ("source", "url")),
    "fee_summary": StoreKind(SourceFeeSummary, ("source",)),
}

# Engines that talk to a server and therefore need an endpoint and credential
_NETWORK_ENGINE_MARKERS = ("postgresql", "mysql", "oracle")


class RegulatoryStore:
    """
    Durable store backed by a Django database alias.

    Construction verifies the database configuration so that a missing
    endpoint or credential fails before any collection phase runs.
    """

    def __init__(self, using: str = "default"):
        """
        Initialize the store.

        Args:
            using: Django database alias to read and write

        Raises:
            ImproperlyConfigured: If the alias is missing or lacks an
                engine, name, host or password
        """
        self.using = using
        self.verify_configuration(settings.DATABASES.get(using), using)

    @staticmethod
    def verify_configuration(config: Optional[Dict[str, Any]], alias: str = "default") -> None:
        """
        Check that a database configuration can reach the durable store.

        Args:
            config: One entry of settings.DATABASES (or None)
            alias: Alias name used in the error message

        Raises:
            ImproperlyConfigured: On any missing endpoint or credential
        """
        if not config:
            raise ImproperlyConfigured(f"Database alias '{alias}' is not configured")

        engine = config.get("ENGINE") or ""
        if not engine:
            raise ImproperlyConfigured(f"Database alias '{alias}' has no ENGINE")
        if not config.get("NAME"):
            raise ImproperlyConfigured(f"Database alias '{alias}' has no NAME")

        if any(marker in engine for marker in _NETWORK_ENGINE_MARKERS):
            missing = [key for key in ("HOST", "PASSWORD") if not config.get(key)]
            if missing:
                raise ImproperlyConfigured(
                    f"Database alias '{alias}' is missing {', '.join(missing)} "
                    f"(set DB_HOST / DB_PASSWORD)"
                )

    def _kind(self, kind: str) -> StoreKind:
        try:
            return STORE_KINDS[kind]
        except KeyError:
            raise ValueError(f"Unknown record kind: {kind}. Available: {sorted(STORE_KINDS)}")

    def upsert(self, kind: str, rows: Iterable[Dict[str, Any]]) -> int:
        """
        Insert or overwrite rows sharing the kind's natural key.

        All rows are written in one transaction: a failure leaves none of
        this batch behind.

        Args:
            kind: Record kind (see STORE_KINDS)
            rows: Column dicts; each must contain every conflict-key field

        Returns:
            Number of rows written
        """
        entry = self._kind(kind)
        manager = entry.model.objects.using(self.using)
        written = 0

        with transaction.atomic(using=self.using):
            for row in rows:
                lookup = {key: row[key] for key in entry.conflict_key}
                defaults = {k: v for k, v in row.items() if k not in entry.conflict_key}
                manager.update_or_create(defaults=defaults, **lookup)
                written += 1

        logger.debug(f"Upserted {written} {kind} rows")
        return written

    def lookup(self, kind: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Return matching rows of a kind as plain dicts."""
        entry = self._kind(kind)
        return list(entry.model.objects.using(self.using).filter(**filters).values())

    def count(self, kind: str, filters: Dict[str, Any]) -> int:
        """Return the number of stored rows of a kind matching the filters."""
        entry = self._kind(kind)
        return entry.model.objects.using(self.using).filter(**filters).count()

    def insert_audit_record(self, record: Dict[str, Any]) -> RunAuditRecord:
        """Append one run audit record."""
        return RunAuditRecord.objects.using(self.using).create(**record)
