"""
Fee de-duplication.

Agencies are collected twice for fees: a structured list maintained in the
extraction module and a live scrape of the fee pages that catches
mid-year changes. Both usually report the same fees under slightly
different labels ("NR Elk Tag" vs "NR Elk Tag pricing").

Two fees are duplicates when their amounts are equal to the cent and one
name, reduced to lower-case word tokens, is a word-prefix of the other.
Distinct fees that share an amount and a long common prefix but differ
in a later word ("NR Elk Tag Archery" vs "NR Elk Tag Rifle") are kept.
"""

import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Tuple

from drawdata.sources.types import FeeRecord

_WORD = re.compile(r"[a-z0-9]+")


class FeeDeduplicator:
    """Track emitted fees and reject later duplicates."""

    def __init__(self, fees: Iterable[FeeRecord] = ()):
        self._seen: List[Tuple[int, Tuple[str, ...]]] = []
        for fee in fees:
            self.add(fee.amount, fee.fee_name)

    @staticmethod
    def name_tokens(name: str) -> Tuple[str, ...]:
        return tuple(_WORD.findall(name.lower()))

    @staticmethod
    def cents(amount) -> int:
        value = Decimal(str(amount)) * 100
        return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    @staticmethod
    def _is_word_prefix(shorter: Tuple[str, ...], longer: Tuple[str, ...]) -> bool:
        return len(shorter) <= len(longer) and longer[: len(shorter)] == shorter

    def is_duplicate(self, amount, name: str) -> bool:
        tokens = self.name_tokens(name)
        if not tokens:
            return False
        cents = self.cents(amount)
        for seen_cents, seen_tokens in self._seen:
            if seen_cents != cents or not seen_tokens:
                continue
            if self._is_word_prefix(seen_tokens, tokens) or self._is_word_prefix(tokens, seen_tokens):
                return True
        return False

    def add(self, amount, name: str) -> bool:
        """Record a fee; returns False (and records nothing) for a duplicate."""
        if self.is_duplicate(amount, name):
            return False
        self._seen.append((self.cents(amount), self.name_tokens(name)))
        return True
