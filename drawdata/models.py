"""
Django models for the draw data collector.

Models: Unit, DrawHistory, Deadline, Fee, Season, Regulation, LeftoverTag,
        SourceFingerprint, SourceFeeSummary, RunAuditRecord

Every collected kind carries a natural key enforced by a unique constraint;
the collector writes through update-or-create on that key, so repeated runs
overwrite rather than duplicate. Nothing here is ever deleted by a run.
"""

from django.db import models
from django.utils import timezone


class Residency(models.TextChoices):
    """Who a fee applies to."""

    RESIDENT = "resident", "Resident"
    NONRESIDENT = "nonresident", "Nonresident"
    BOTH = "both", "Both"


class PressureLevel(models.TextChoices):
    """Hunting pressure rating for a unit."""

    LOW = "Low", "Low"
    MODERATE = "Moderate", "Moderate"
    HIGH = "High", "High"


class RegulationCategory(models.TextChoices):
    """Categories of regulatory announcements."""

    RULE_CHANGE = "rule_change", "Rule Change"
    ANNOUNCEMENT = "announcement", "Announcement"
    EMERGENCY_CLOSURE = "emergency_closure", "Emergency Closure"
    LEFTOVER_TAGS = "leftover_tags", "Leftover Tags"


class Unit(models.Model):
    """
    A hunting unit scoped to one species within one source.

    Natural key: (source, species, unit_code).
    """

    source = models.CharField(max_length=2, help_text="Two-letter source identifier")
    species = models.CharField(max_length=50)
    unit_code = models.CharField(max_length=50)
    unit_name = models.CharField(max_length=200)

    # Optional enrichment
    success_rate = models.FloatField(null=True, blank=True)
    trophy_rating = models.FloatField(null=True, blank=True)
    points_required_resident = models.FloatField(null=True, blank=True)
    points_required_nonresident = models.FloatField(null=True, blank=True)
    terrain_type = models.JSONField(default=list, blank=True)
    pressure_level = models.CharField(
        max_length=10, choices=PressureLevel.choices, null=True, blank=True
    )
    elevation_range = models.JSONField(default=list, blank=True)
    public_land_pct = models.FloatField(null=True, blank=True)
    tag_quota_nonresident = models.IntegerField(null=True, blank=True)
    notes = models.TextField(null=True, blank=True)

    # Provenance
    source_url = models.URLField(max_length=2000, blank=True)
    source_pulled_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "ref_units"
        ordering = ["source", "species", "unit_code"]
        constraints = [
            models.UniqueConstraint(
                fields=["source", "species", "unit_code"], name="unique_unit_per_source"
            ),
        ]

    def __str__(self):
        return f"{self.source}:{self.species}:{self.unit_code}"

    @property
    def unit_ref(self) -> str:
        return f"{self.source}:{self.species}:{self.unit_code}"


class DrawHistory(models.Model):
    """
    Historical draw statistics for one unit and year.

    Natural key: (unit, year). Later runs overwrite earlier ones.
    """

    unit = models.ForeignKey(Unit, on_delete=models.CASCADE, related_name="draw_history")
    year = models.IntegerField()
    applicants = models.IntegerField(default=0)
    tags_available = models.IntegerField(default=0)
    tags_issued = models.IntegerField(default=0)
    odds_percent = models.FloatField(default=0)
    min_points_drawn = models.IntegerField(null=True, blank=True)

    source_url = models.URLField(max_length=2000, blank=True)
    source_pulled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "ref_unit_draw_history"
        ordering = ["unit", "-year"]
        constraints = [
            models.UniqueConstraint(fields=["unit", "year"], name="unique_draw_year_per_unit"),
        ]

    def __str__(self):
        return f"{self.unit} {self.year}: {self.odds_percent}%"


class Deadline(models.Model):
    """Application and draw dates. Natural key: (source, species, deadline_type, year)."""

    source = models.CharField(max_length=2)
    species = models.CharField(max_length=50)
    deadline_type = models.CharField(
        max_length=50,
        help_text="application_open | application_close | draw_results | leftover",
    )
    date = models.CharField(max_length=40, help_text="ISO date string")
    year = models.IntegerField()
    notes = models.TextField(null=True, blank=True)

    source_url = models.URLField(max_length=2000, blank=True)
    source_pulled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "scraped_deadlines"
        ordering = ["source", "year", "date"]
        constraints = [
            models.UniqueConstraint(
                fields=["source", "species", "deadline_type", "year"],
                name="unique_deadline_per_source_year",
            ),
        ]

    def __str__(self):
        return f"{self.source} {self.species} {self.deadline_type} {self.date}"


class Fee(models.Model):
    """License, tag and application fees. Natural key: (source, fee_name, residency)."""

    source = models.CharField(max_length=2)
    fee_name = models.CharField(max_length=200)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    residency = models.CharField(max_length=20, choices=Residency.choices)
    species = models.CharField(max_length=50, null=True, blank=True)
    frequency = models.CharField(
        max_length=30, help_text="annual | per_species | one_time"
    )
    notes = models.TextField(null=True, blank=True)

    source_url = models.URLField(max_length=2000, blank=True)
    source_pulled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "scraped_fees"
        ordering = ["source", "fee_name"]
        constraints = [
            models.UniqueConstraint(
                fields=["source", "fee_name", "residency"], name="unique_fee_per_source"
            ),
        ]

    def __str__(self):
        return f"{self.source} {self.fee_name} ({self.residency}): ${self.amount}"


class Season(models.Model):
    """Season dates. Natural key: (source, species, season_type, year)."""

    source = models.CharField(max_length=2)
    species = models.CharField(max_length=50)
    unit_code = models.CharField(max_length=50, null=True, blank=True)
    season_type = models.CharField(
        max_length=50, help_text="archery | muzzleloader | rifle | general"
    )
    start_date = models.CharField(max_length=40)
    end_date = models.CharField(max_length=40)
    year = models.IntegerField()
    notes = models.TextField(null=True, blank=True)

    source_url = models.URLField(max_length=2000, blank=True)
    source_pulled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "scraped_seasons"
        ordering = ["source", "species", "start_date"]
        constraints = [
            models.UniqueConstraint(
                fields=["source", "species", "season_type", "year"],
                name="unique_season_per_source_year",
            ),
        ]

    def __str__(self):
        return f"{self.source} {self.species} {self.season_type} {self.year}"


class Regulation(models.Model):
    """Rule changes and announcements. Natural key: (source, title)."""

    source = models.CharField(max_length=2)
    title = models.CharField(max_length=300)
    summary = models.TextField()
    effective_date = models.CharField(max_length=40, null=True, blank=True)
    source_url = models.URLField(max_length=2000)
    category = models.CharField(max_length=30, choices=RegulationCategory.choices)
    scraped_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "scraped_regulations"
        ordering = ["source", "-scraped_at"]
        constraints = [
            models.UniqueConstraint(fields=["source", "title"], name="unique_regulation_title"),
        ]

    def __str__(self):
        return f"{self.source}: {self.title[:60]}"


class LeftoverTag(models.Model):
    """Leftover / second-draw tag availability. Natural key: (source, species, unit_code)."""

    source = models.CharField(max_length=2)
    species = models.CharField(max_length=50)
    unit_code = models.CharField(max_length=50)
    tags_available = models.IntegerField()
    season_type = models.CharField(max_length=50, null=True, blank=True)
    source_url = models.URLField(max_length=2000)
    scraped_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "scraped_leftover_tags"
        ordering = ["source", "species", "unit_code"]
        constraints = [
            models.UniqueConstraint(
                fields=["source", "species", "unit_code"], name="unique_leftover_per_unit"
            ),
        ]

    def __str__(self):
        return f"{self.source}:{self.species}:{self.unit_code} ({self.tags_available} left)"


class SourceFingerprint(models.Model):
    """
    Last structural signature seen for a fetched URL.

    One row per (source, url); compared and then overwritten on every fetch.
    """

    source = models.CharField(max_length=2)
    url = models.URLField(max_length=2000)
    selector_hash = models.CharField(max_length=16)
    selector_paths = models.JSONField(default=list)
    computed_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "scraper_fingerprints"
        ordering = ["source", "url"]
        constraints = [
            models.UniqueConstraint(fields=["source", "url"], name="unique_fingerprint_per_url"),
        ]

    def __str__(self):
        return f"{self.source} {self.url} [{self.selector_hash}]"


class SourceFeeSummary(models.Model):
    """
    Denormalized per-source tag cost summary consumed by the planning app.

    Derived from collected fees after each run; keyed by source.
    """

    source = models.CharField(max_length=2, unique=True)
    tag_costs = models.JSONField(default=dict, help_text="Nonresident tag cost per species")
    resident_tag_costs = models.JSONField(default=dict, blank=True)
    license_fees = models.JSONField(
        default=dict, help_text="{qualifying_license, app_fee, point_fee}"
    )
    source_url = models.URLField(max_length=2000, blank=True)
    source_pulled_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "source_fee_summaries"
        ordering = ["source"]

    def __str__(self):
        return f"{self.source} fee summary ({len(self.tag_costs)} species)"


class RunAuditRecord(models.Model):
    """
    One row per orchestrator invocation. Append-only.
    """

    import_type = models.CharField(max_length=30, default="collector")
    source = models.CharField(max_length=2)
    rows_imported = models.IntegerField(default=0)
    rows_skipped = models.IntegerField(default=0)
    errors = models.JSONField(default=list, blank=True)
    source_module = models.CharField(max_length=200, blank=True)
    source_url = models.URLField(max_length=2000, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "data_import_log"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["source", "created_at"]),
        ]

    def __str__(self):
        return f"{self.source} run at {self.created_at:%Y-%m-%d %H:%M} ({self.rows_imported} rows)"

    @property
    def had_errors(self) -> bool:
        return bool(self.errors)
