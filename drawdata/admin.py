"""
Django admin configuration for collected draw data.

Operators inspect what collection wrote; nothing here is edited by hand.
Run audit records and fingerprints are fully read-only.
"""

from django.contrib import admin
from django.utils.html import format_html

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


class ReadOnlyAdmin(admin.ModelAdmin):
    """Rows are written by collection runs only."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(RunAuditRecord)
class RunAuditRecordAdmin(ReadOnlyAdmin):
    list_display = [
        "created_at",
        "source",
        "rows_imported",
        "rows_skipped",
        "error_badge",
        "source_module",
    ]
    list_filter = ["source", ("created_at", admin.DateFieldListFilter)]
    ordering = ["-created_at"]

    def error_badge(self, obj):
        """Display error count as colored badge."""
        count = len(obj.errors or [])
        color = "#dc3545" if count else "#28a745"
        return format_html(
            '<span style="background-color: {}; color: white; '
            'padding: 2px 8px; border-radius: 4px;">{}</span>',
            color, count
        )
    error_badge.short_description = "Errors"


@admin.register(SourceFingerprint)
class SourceFingerprintAdmin(ReadOnlyAdmin):
    list_display = ["source", "url", "selector_hash", "computed_at"]
    list_filter = ["source"]
    search_fields = ["url"]
    ordering = ["source", "url"]


@admin.register(Unit)
class UnitAdmin(admin.ModelAdmin):
    list_display = ["source", "species", "unit_code", "unit_name", "source_pulled_at"]
    list_filter = ["source", "species"]
    search_fields = ["unit_code", "unit_name"]


@admin.register(DrawHistory)
class DrawHistoryAdmin(admin.ModelAdmin):
    list_display = ["unit", "year", "applicants", "tags_issued", "odds_percent", "min_points_drawn"]
    list_filter = ["year", "unit__source", "unit__species"]
    list_select_related = ["unit"]


@admin.register(Deadline)
class DeadlineAdmin(admin.ModelAdmin):
    list_display = ["source", "species", "deadline_type", "date", "year"]
    list_filter = ["source", "deadline_type", "year"]


@admin.register(Fee)
class FeeAdmin(admin.ModelAdmin):
    list_display = ["source", "fee_name", "amount", "residency", "species", "frequency"]
    list_filter = ["source", "residency", "frequency"]
    search_fields = ["fee_name"]


@admin.register(Season)
class SeasonAdmin(admin.ModelAdmin):
    list_display = ["source", "species", "season_type", "start_date", "end_date", "year"]
    list_filter = ["source", "season_type", "year"]


@admin.register(Regulation)
class RegulationAdmin(admin.ModelAdmin):
    list_display = ["source", "title", "category", "effective_date", "scraped_at"]
    list_filter = ["source", "category"]
    search_fields = ["title", "summary"]


@admin.register(LeftoverTag)
class LeftoverTagAdmin(admin.ModelAdmin):
    list_display = ["source", "species", "unit_code", "tags_available", "scraped_at"]
    list_filter = ["source", "species"]


@admin.register(SourceFeeSummary)
class SourceFeeSummaryAdmin(ReadOnlyAdmin):
    list_display = ["source", "source_pulled_at", "updated_at"]
