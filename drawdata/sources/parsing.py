"""Small value parsers shared by extraction modules."""

import re
from typing import Dict, Mapping, Optional


def first_value(row: Mapping[str, str], *keys: str) -> str:
    """Return the first non-blank value among the given header keys."""
    for key in keys:
        value = (row.get(key) or "").strip()
        if value:
            return value
    return ""


def parse_count(value: Optional[str]) -> int:
    """Parse "1,234" style counts; anything unparseable is 0."""
    if not value:
        return 0
    match = re.match(r"-?\d+", re.sub(r"[,\s]", "", value))
    return int(match.group()) if match else 0


def parse_optional_int(value: Optional[str]) -> Optional[int]:
    if not value or not value.strip():
        return None
    match = re.match(r"-?\d+", re.sub(r"[,\s]", "", value))
    return int(match.group()) if match else None


def parse_percent(value: Optional[str]) -> Optional[float]:
    """Parse "12.5%" or "12.5"; blank, zero or unparseable values give None."""
    if not value:
        return None
    try:
        number = float(value.replace("%", "").replace(",", "").strip())
    except ValueError:
        return None
    return number or None


def parse_amount(value: str) -> Optional[float]:
    try:
        return float(value.replace(",", "").replace("$", "").strip())
    except ValueError:
        return None


def match_species(text: str, aliases: Dict[str, str]) -> Optional[str]:
    """
    Map free text to a species id using substring aliases.

    Longer aliases are tried first so that "blacktail deer" is not read
    as plain "deer".
    """
    lowered = text.lower()
    for alias in sorted(aliases, key=len, reverse=True):
        if alias in lowered:
            return aliases[alias]
    return None
