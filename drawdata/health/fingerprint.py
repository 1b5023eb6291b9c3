"""
Structural Fingerprinting for source pages.

Hashes the selector paths of key structural elements (tables, forms, main
content containers and headings) so that a layout change on an agency
site is noticed even when extraction still "succeeds" with wrong data.
Text and attribute values are ignored, so routine data updates keep the
same fingerprint.

Delimited files (CSV downloads) have no markup; their fingerprint is
taken from the header line instead.

Usage:
    signature = StructuralFingerprint.compute(html, url, "CO")
    previous = StructuralFingerprint.last_signature("CO", url, store)
    comparison = StructuralFingerprint.compare(signature, previous)
    if comparison.changed:
        log.warning(comparison.details)
    StructuralFingerprint.store(signature, store)

    # or all of the above, never raising:
    StructuralFingerprint.check(html, url, "CO", store)
"""

import hashlib
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)


@dataclass
class FingerprintSignature:
    """Structural signature of one (source, url) page."""

    source: str
    url: str
    selector_hash: str
    selector_paths: List[str]
    computed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_row(self) -> dict:
        return {
            "source": self.source,
            "url": self.url,
            "selector_hash": self.selector_hash,
            "selector_paths": list(self.selector_paths),
            "computed_at": self.computed_at,
        }


@dataclass
class FingerprintComparison:
    changed: bool
    details: str
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)


class StructuralFingerprint:
    """
    Compute, compare and persist structural fingerprints.

    The fingerprint is a heuristic drift detector: identical input always
    compares as unchanged, and a different table/heading layout changes
    the hash. Missing some drift is acceptable.
    """

    KEY_ELEMENTS = "table, form, main, article, section, h1, h2, h3"
    MAX_DEPTH = 5
    HASH_LENGTH = 16

    @classmethod
    def compute(cls, content: str, url: str, source: str) -> FingerprintSignature:
        """
        Compute a structural fingerprint for fetched content.

        Args:
            content: HTML page or delimited text
            url: URL the content came from
            source: Source identifier

        Returns:
            FingerprintSignature with sorted selector paths and their hash
        """
        if cls._looks_like_markup(content):
            soup = BeautifulSoup(content, "html.parser")
            paths = [cls._selector_path(element) for element in soup.select(cls.KEY_ELEMENTS)]
        else:
            paths = cls._delimited_paths(content)

        paths.sort()
        digest = hashlib.sha256("|".join(paths).encode("utf-8")).hexdigest()

        signature = FingerprintSignature(
            source=source,
            url=url,
            selector_hash=digest[: cls.HASH_LENGTH],
            selector_paths=paths,
        )
        logger.debug(f"Computed fingerprint for {source} {url}: {signature.selector_hash}")
        return signature

    @staticmethod
    def _looks_like_markup(content: str) -> bool:
        return "<" in content[:4096]

    @staticmethod
    def _delimited_paths(content: str) -> List[str]:
        for line in content.splitlines():
            if line.strip():
                return [f"delimited:{line.strip().lower()}"]
        return []

    @classmethod
    def _selector_path(cls, element: Tag) -> str:
        """
        Build `depth:tag.class1.class2` parts for an element and up to four
        ancestors, root first. Walking stops at <html>/<body>.
        """
        parts = []
        current = element
        depth = 0
        while depth < cls.MAX_DEPTH and isinstance(current, Tag):
            if current.name in ("html", "body", "[document]"):
                break
            classes = current.get("class") or []
            if isinstance(classes, str):
                classes = classes.split()
            class_part = ".".join(sorted(c for c in classes if c))
            parts.append(f"{depth}:{current.name}.{class_part}" if class_part else f"{depth}:{current.name}")
            current = current.parent
            depth += 1
        return " > ".join(reversed(parts))

    @classmethod
    def compare(
        cls, current: FingerprintSignature, previous: Optional[FingerprintSignature]
    ) -> FingerprintComparison:
        """
        Compare a fresh fingerprint with the previously stored one.

        No previous fingerprint is reported as unchanged.
        """
        if previous is None:
            return FingerprintComparison(changed=False, details="First fingerprint recorded")

        if current.selector_hash == previous.selector_hash:
            return FingerprintComparison(changed=False, details="Structure unchanged")

        current_counts = Counter(current.selector_paths)
        previous_counts = Counter(previous.selector_paths)
        added = sorted((current_counts - previous_counts).elements())
        removed = sorted((previous_counts - current_counts).elements())

        return FingerprintComparison(
            changed=True,
            details=f"Structure changed: {len(added)} paths added, {len(removed)} removed",
            added=added,
            removed=removed,
        )

    @classmethod
    def store(cls, signature: FingerprintSignature, store) -> None:
        """Upsert the fingerprint on (source, url)."""
        store.upsert("fingerprint", [signature.to_row()])

    @classmethod
    def last_signature(cls, source: str, url: str, store) -> Optional[FingerprintSignature]:
        """Return the stored fingerprint for (source, url), or None."""
        rows = store.lookup("fingerprint", {"source": source, "url": url})
        if not rows:
            return None
        row = rows[0]
        return FingerprintSignature(
            source=row["source"],
            url=row["url"],
            selector_hash=row["selector_hash"],
            selector_paths=list(row["selector_paths"] or []),
            computed_at=row["computed_at"],
        )

    @classmethod
    def check(
        cls,
        content: str,
        url: str,
        source: str,
        store,
        alert_handler=None,
        log: Optional[logging.LoggerAdapter] = None,
    ) -> Optional[FingerprintComparison]:
        """
        Fingerprint content, compare with the stored signature, warn on
        drift and store the new signature.

        Never raises: any failure is logged and None is returned, since a
        broken drift check must not stop collection.
        """
        log = log or logger
        try:
            signature = cls.compute(content, url, source)
            previous = cls.last_signature(source, url, store)
            comparison = cls.compare(signature, previous)

            if comparison.changed:
                log.warning(f"Fingerprint drift on {url}: {comparison.details}")
                if alert_handler is not None:
                    alert_handler.handle_fingerprint_change(source, url, comparison)
            else:
                log.info(f"Fingerprint {url}: {comparison.details}")

            cls.store(signature, store)
            return comparison
        except Exception as e:
            log.warning(f"Fingerprint check failed for {url}: {e}")
            return None
