"""
Fee summary sync.

Derives the per-source cost summary the planning application reads
directly: nonresident and resident tag cost per species, and the three
license-level fees (qualifying license, application fee, point fee)
recognised by name.
"""

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, Optional

from django.utils import timezone

from drawdata.sources.types import FeeRecord

APP_FEE = re.compile(r"app(lication)?\s*(fee|cost)")
POINT_FEE = re.compile(r"point\s*(fee|cost)|preference\s*(fee|cost)")
QUALIFYING_LICENSE = re.compile(r"license|qualifying|sportsman|conservation|habitat|combo")


@dataclass
class FeeSummary:
    tag_costs: Dict[str, float] = field(default_factory=dict)
    resident_tag_costs: Dict[str, float] = field(default_factory=dict)
    qualifying_license: float = 0
    app_fee: float = 0
    point_fee: float = 0

    @property
    def license_fees(self) -> Dict[str, float]:
        return {
            "qualifying_license": self.qualifying_license,
            "app_fee": self.app_fee,
            "point_fee": self.point_fee,
        }


def _number(amount) -> float:
    return float(amount) if isinstance(amount, Decimal) else amount


def summarize_fees(fees: Iterable[FeeRecord]) -> FeeSummary:
    """
    Split fees into per-species tag costs and license-level fees.

    Species-tagged fees go to the tag cost maps ("both" counts as
    nonresident); untagged fees are matched by name. Later fees win.
    """
    summary = FeeSummary()
    for fee in fees:
        amount = _number(fee.amount)
        if fee.species:
            if fee.residency in ("nonresident", "both"):
                summary.tag_costs[fee.species] = amount
            if fee.residency == "resident":
                summary.resident_tag_costs[fee.species] = amount
            continue

        name = fee.fee_name.lower()
        if APP_FEE.search(name):
            summary.app_fee = amount
        elif POINT_FEE.search(name):
            summary.point_fee = amount
        elif QUALIFYING_LICENSE.search(name):
            summary.qualifying_license = amount
    return summary


def build_summary_row(source_id: str, source_url: str, summary: FeeSummary, now=None) -> Optional[dict]:
    """
    Row for the fee_summary store kind, or None when there are no
    nonresident species tag costs to publish.

    Resident tag costs are only included when some were found, so an
    earlier value is not blanked by a source that publishes none.
    """
    if not summary.tag_costs:
        return None

    now = now or timezone.now()
    row = {
        "source": source_id,
        "tag_costs": summary.tag_costs,
        "license_fees": summary.license_fees,
        "source_url": source_url,
        "source_pulled_at": now,
    }
    if summary.resident_tag_costs:
        row["resident_tag_costs"] = summary.resident_tag_costs
    return row
