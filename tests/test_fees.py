"""
Tests for fee de-duplication and the fee summary.
"""

from datetime import datetime, timezone
from decimal import Decimal

from drawdata.services.fee_sync import build_summary_row, summarize_fees
from drawdata.sources.fees import FeeDeduplicator
from drawdata.sources.types import FeeRecord


def _fee(name, amount, residency="nonresident", species=None):
    return FeeRecord(source="CO", fee_name=name, amount=Decimal(str(amount)),
                     residency=residency, frequency="per_species", species=species)


class TestFeeDeduplicator:
    """Tests for FeeDeduplicator."""

    def test_word_prefix_with_same_amount_is_duplicate(self):
        dedup = FeeDeduplicator([_fee("NR Elk Tag", 692)])
        assert dedup.is_duplicate(692, "NR Elk Tag pricing")
        assert dedup.is_duplicate("692.00", "nr elk")

    def test_different_later_word_is_kept(self):
        dedup = FeeDeduplicator()
        assert dedup.add(692, "NR Elk Tag Archery")
        assert dedup.add(692, "NR Elk Tag Rifle")

    def test_different_amount_is_kept(self):
        dedup = FeeDeduplicator([_fee("NR Elk Tag", 692)])
        assert not dedup.is_duplicate(701, "NR Elk Tag")

    def test_amounts_compared_to_the_cent(self):
        dedup = FeeDeduplicator([_fee("Habitat Stamp", 12.5)])
        assert dedup.is_duplicate(12.50, "Habitat Stamp")
        assert not dedup.is_duplicate(12.51, "Habitat Stamp")

    def test_add_rejects_duplicate(self):
        dedup = FeeDeduplicator()
        assert dedup.add(100, "Application Fee")
        assert not dedup.add(100, "Application fee (nonrefundable)")

    def test_name_without_words_never_duplicate(self):
        dedup = FeeDeduplicator([_fee("---", 10)])
        assert not dedup.is_duplicate(10, "***")


class TestSummarizeFees:
    """Tests for the fee summary."""

    def test_species_and_license_fees(self):
        summary = summarize_fees([
            _fee("NR Elk Tag", 692, species="elk"),
            _fee("Resident Elk Tag", 66, residency="resident", species="elk"),
            _fee("NR Deer Tag", 503, residency="both", species="deer"),
            _fee("Nonresident Application Fee", 10),
            _fee("Preference Point Fee", 100, residency="both"),
            _fee("Nonresident Small Game License", 101.11),
        ])

        assert summary.tag_costs == {"elk": 692.0, "deer": 503.0}
        assert summary.resident_tag_costs == {"elk": 66.0}
        assert summary.license_fees == {
            "qualifying_license": 101.11,
            "app_fee": 10.0,
            "point_fee": 100.0,
        }

    def test_later_fee_wins(self):
        summary = summarize_fees([
            _fee("NR Elk Tag", 692, species="elk"),
            _fee("NR Elk Tag (updated)", 701, species="elk"),
        ])
        assert summary.tag_costs["elk"] == 701.0


class TestBuildSummaryRow:
    """Tests for build_summary_row()."""

    def test_none_without_tag_costs(self):
        summary = summarize_fees([_fee("Application Fee", 10)])
        assert build_summary_row("CO", "https://agency.example", summary) is None

    def test_row_omits_empty_resident_costs(self):
        now = datetime(2026, 3, 1, tzinfo=timezone.utc)
        summary = summarize_fees([_fee("NR Elk Tag", 692, species="elk")])

        row = build_summary_row("CO", "https://agency.example", summary, now=now)

        assert row["source"] == "CO"
        assert row["tag_costs"] == {"elk": 692.0}
        assert row["source_pulled_at"] == now
        assert "resident_tag_costs" not in row
