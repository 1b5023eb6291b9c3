"""
Record schemas.

Structural serializers check presence, type, string length and numeric
range for each record kind. The Plausible* subclasses add domain rules on
top: values that are well-typed but cannot be right (a $0 fee, a deadline
in 1999, a season that ends before it starts).

Each serializer names the dataclass its validated data is turned into via
`record_class`.
"""

import re
from datetime import date, datetime
from typing import Optional

from django.conf import settings
from rest_framework import serializers

from drawdata.models import PressureLevel, RegulationCategory, Residency
from drawdata.sources.types import (
    DeadlineRecord,
    DrawHistoryRecord,
    FeeRecord,
    LeftoverTagRecord,
    RegulationRecord,
    SeasonRecord,
    UnitRecord,
)

DATE_FORMATS = ("%Y-%m-%d", "%B %d, %Y", "%b %d, %Y", "%m/%d/%Y")

def parse_record_date(value) -> Optional[date]:
    """
    Parse the date formats agencies publish.

    Accepts ISO dates, "April 7, 2026", "Apr 7, 2026" and "04/07/2026".
    Returns None when nothing matches.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = re.sub(r"\s+", " ", value.strip())
    # "Sept" is common on agency pages but not understood by strptime
    text = re.sub(r"^Sept\b\.?", "Sep", text)
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def plausible_year_window():
    return (
        getattr(settings, "DRAWDATA_PLAUSIBLE_YEAR_MIN", 2024),
        getattr(settings, "DRAWDATA_PLAUSIBLE_YEAR_MAX", 2030),
    )


def _optional(field_class, **kwargs):
    return field_class(required=False, allow_null=True, **kwargs)


class SourceField(serializers.CharField):
    """Two-letter source identifier."""

    def __init__(self, **kwargs):
        kwargs.setdefault("min_length", 2)
        kwargs.setdefault("max_length", 2)
        super().__init__(**kwargs)


# =============================================================================
# Structural schemas
# =============================================================================


class UnitSerializer(serializers.Serializer):
    record_class = UnitRecord

    source = SourceField()
    species = serializers.CharField(max_length=50)
    unit_code = serializers.CharField(max_length=50)
    unit_name = serializers.CharField(max_length=200)
    success_rate = _optional(serializers.FloatField, min_value=0, max_value=100)
    trophy_rating = _optional(serializers.FloatField, min_value=0, max_value=10)
    points_required_resident = _optional(serializers.IntegerField, min_value=0)
    points_required_nonresident = _optional(serializers.IntegerField, min_value=0)
    terrain_type = _optional(serializers.ListField, child=serializers.CharField())
    pressure_level = _optional(serializers.ChoiceField, choices=PressureLevel.choices)
    elevation_range = _optional(
        serializers.ListField,
        child=serializers.IntegerField(),
        min_length=2,
        max_length=2,
    )
    public_land_pct = _optional(serializers.FloatField, min_value=0, max_value=100)
    tag_quota_nonresident = _optional(serializers.IntegerField, min_value=0)
    notes = _optional(serializers.CharField, allow_blank=True)


class DrawHistorySerializer(serializers.Serializer):
    record_class = DrawHistoryRecord

    unit_ref = serializers.RegexField(
        r"^[A-Z]{2}:\w+:.+$",
        error_messages={"invalid": "Must be SOURCE:species:unit_code"},
    )
    year = serializers.IntegerField(min_value=2000, max_value=2050)
    applicants = serializers.IntegerField(min_value=0)
    tags = serializers.IntegerField(min_value=0)
    odds = _optional(serializers.FloatField, min_value=0, max_value=100)
    min_points_drawn = _optional(serializers.IntegerField, min_value=0)


class DeadlineSerializer(serializers.Serializer):
    record_class = DeadlineRecord

    source = SourceField()
    species = serializers.CharField(max_length=50)
    deadline_type = serializers.CharField(max_length=50)
    date = serializers.CharField(max_length=40)
    year = serializers.IntegerField(min_value=2000, max_value=2050)
    notes = _optional(serializers.CharField, allow_blank=True)


class FeeSerializer(serializers.Serializer):
    record_class = FeeRecord

    source = SourceField()
    fee_name = serializers.CharField(max_length=200)
    amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, max_value=50000
    )
    residency = serializers.ChoiceField(choices=Residency.choices)
    frequency = serializers.CharField(max_length=30)
    species = _optional(serializers.CharField, max_length=50)
    notes = _optional(serializers.CharField, allow_blank=True)


class SeasonSerializer(serializers.Serializer):
    record_class = SeasonRecord

    source = SourceField()
    species = serializers.CharField(max_length=50)
    season_type = serializers.CharField(max_length=50)
    start_date = serializers.CharField(max_length=40)
    end_date = serializers.CharField(max_length=40)
    year = serializers.IntegerField(min_value=2000, max_value=2050)
    unit_code = _optional(serializers.CharField, max_length=50)
    notes = _optional(serializers.CharField, allow_blank=True)


class RegulationSerializer(serializers.Serializer):
    record_class = RegulationRecord

    source = SourceField()
    title = serializers.CharField(max_length=300)
    summary = serializers.CharField()
    source_url = serializers.URLField(max_length=2000)
    category = serializers.ChoiceField(choices=RegulationCategory.choices)
    effective_date = _optional(serializers.CharField, max_length=40)


class LeftoverTagSerializer(serializers.Serializer):
    record_class = LeftoverTagRecord

    source = SourceField()
    species = serializers.CharField(max_length=50)
    unit_code = serializers.CharField(max_length=50)
    tags_available = serializers.IntegerField(min_value=0)
    source_url = serializers.URLField(max_length=2000)
    season_type = _optional(serializers.CharField, max_length=50)


# =============================================================================
# Plausibility refinements
# =============================================================================


class PlausibleFeeSerializer(FeeSerializer):
    """Fees strictly between $0 and $10,000."""

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Fee amount must be greater than 0")
        if value >= 10000:
            raise serializers.ValidationError("Fee amount must be below 10000")
        return value


class PlausibleDeadlineSerializer(DeadlineSerializer):
    """The date must parse and fall inside the plausible year window."""

    def validate_date(self, value):
        parsed = parse_record_date(value)
        if parsed is None:
            raise serializers.ValidationError(f"Unparseable date: {value!r}")
        low, high = plausible_year_window()
        if not low <= parsed.year <= high:
            raise serializers.ValidationError(
                f"Date year {parsed.year} outside plausible window [{low}, {high}]"
            )
        return parsed.isoformat()


class PlausibleSeasonSerializer(SeasonSerializer):
    """Both dates parse inside the window and the season does not end before it starts."""

    def _check_date(self, value):
        parsed = parse_record_date(value)
        if parsed is None:
            raise serializers.ValidationError(f"Unparseable date: {value!r}")
        low, high = plausible_year_window()
        if not low <= parsed.year <= high:
            raise serializers.ValidationError(
                f"Date year {parsed.year} outside plausible window [{low}, {high}]"
            )
        return parsed.isoformat()

    def validate_start_date(self, value):
        return self._check_date(value)

    def validate_end_date(self, value):
        return self._check_date(value)

    def validate(self, attrs):
        # Both values are ISO strings by now, so they order lexically
        if attrs["end_date"] < attrs["start_date"]:
            raise serializers.ValidationError({"end_date": "Season ends before it starts"})
        return attrs


class PlausibleLeftoverTagSerializer(LeftoverTagSerializer):
    def validate_tags_available(self, value):
        if value < 1:
            raise serializers.ValidationError("A leftover tag entry needs at least 1 tag")
        return value
