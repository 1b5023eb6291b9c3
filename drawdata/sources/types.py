"""
Typed records produced by extraction modules.

Extraction modules build these from header-keyed row dicts; the
validation layer checks them and the orchestrator persists them.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Tuple, Union


@dataclass
class UnitRecord:
    source: str
    species: str
    unit_code: str
    unit_name: str
    success_rate: Optional[float] = None
    trophy_rating: Optional[float] = None
    points_required_resident: Optional[int] = None
    points_required_nonresident: Optional[int] = None
    terrain_type: Optional[List[str]] = None
    pressure_level: Optional[str] = None
    elevation_range: Optional[List[int]] = None
    public_land_pct: Optional[float] = None
    tag_quota_nonresident: Optional[int] = None
    notes: Optional[str] = None

    @property
    def unit_ref(self) -> str:
        return f"{self.source}:{self.species}:{self.unit_code}"


@dataclass
class DrawHistoryRecord:
    """
    One year of draw statistics for a unit.

    `unit_ref` is "SOURCE:species:unit_code"; odds may be left unset and
    are then derived from tags / applicants before validation.
    """

    unit_ref: str
    year: int
    applicants: int
    tags: int
    odds: Optional[float] = None
    min_points_drawn: Optional[int] = None

    def split_unit_ref(self) -> Tuple[str, str, str]:
        source, species, unit_code = self.unit_ref.split(":", 2)
        return source, species, unit_code


@dataclass
class DeadlineRecord:
    source: str
    species: str
    deadline_type: str
    date: str
    year: int
    notes: Optional[str] = None


@dataclass
class FeeRecord:
    source: str
    fee_name: str
    amount: Union[Decimal, float]
    residency: str
    frequency: str
    species: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class SeasonRecord:
    source: str
    species: str
    season_type: str
    start_date: str
    end_date: str
    year: int
    unit_code: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class RegulationRecord:
    source: str
    title: str
    summary: str
    source_url: str
    category: str
    effective_date: Optional[str] = None


@dataclass
class LeftoverTagRecord:
    source: str
    species: str
    unit_code: str
    tags_available: int
    source_url: str
    season_type: Optional[str] = None

