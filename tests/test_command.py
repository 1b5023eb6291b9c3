"""
Tests for the collect_draw_data management command and the Celery task.
"""

from io import StringIO
from unittest.mock import AsyncMock, patch

import pytest
from django.core.exceptions import ImproperlyConfigured
from django.core.management import call_command
from django.core.management.base import CommandError

from drawdata.services.batch_runner import BatchSummary, SummaryRow
from drawdata.services.orchestrator import SourceRunResult
from drawdata.sources.registry import UnknownSourceError


def _summary(*results):
    return BatchSummary(rows=[SummaryRow(r.source, r) for r in results])


@pytest.mark.django_db
class TestCollectDrawDataCommand:
    """Tests for the collect_draw_data management command."""

    def test_list_sources(self):
        out = StringIO()
        call_command("collect_draw_data", "--list", stdout=out)

        output = out.getvalue()
        assert "CO  Colorado" in output
        assert "OR  Oregon" in output

    @patch("drawdata.management.commands.collect_draw_data.BatchRunner")
    def test_successful_run_prints_summary(self, mock_runner_class):
        mock_runner_class.return_value.run = AsyncMock(
            return_value=_summary(SourceRunResult(source="CO", units=3, draw_history=9))
        )
        out = StringIO()

        call_command("collect_draw_data", "co", "--delay", "0", stdout=out)

        mock_runner_class.return_value.run.assert_awaited_once_with(["co"])
        assert mock_runner_class.call_args.kwargs["delay"] == 0.0
        assert "COLLECTION SUMMARY" in out.getvalue()
        assert "Collection complete" in out.getvalue()

    @patch("drawdata.management.commands.collect_draw_data.BatchRunner")
    def test_unproductive_source_with_errors_fails(self, mock_runner_class):
        mock_runner_class.return_value.run = AsyncMock(
            return_value=_summary(
                SourceRunResult(source="CO", units=3),
                SourceRunResult(source="OR", errors=["units failed: timeout"]),
            )
        )

        with pytest.raises(CommandError, match="OR"):
            call_command("collect_draw_data", stdout=StringIO())

    @patch("drawdata.management.commands.collect_draw_data.BatchRunner")
    def test_unknown_sources_fail(self, mock_runner_class):
        mock_runner_class.return_value.run = AsyncMock(
            side_effect=UnknownSourceError(["TX"], ["CO", "OR"])
        )

        with pytest.raises(CommandError, match="Available: CO, OR"):
            call_command("collect_draw_data", "TX", stdout=StringIO())

    @patch("drawdata.management.commands.collect_draw_data.RegulatoryStore")
    def test_unconfigured_store_fails_before_collection(self, mock_store_class):
        mock_store_class.side_effect = ImproperlyConfigured("missing DB_PASSWORD")

        with pytest.raises(CommandError, match="not configured"):
            call_command("collect_draw_data", stdout=StringIO())


@pytest.mark.django_db
class TestCollectSourcesTask:
    """Tests for the scheduled Celery task."""

    @patch("drawdata.tasks.BatchRunner")
    def test_returns_summary_dict(self, mock_runner_class):
        mock_runner_class.return_value.run = AsyncMock(
            return_value=_summary(SourceRunResult(source="CO", units=3, fees=2))
        )
        from drawdata.tasks import collect_sources

        result = collect_sources.apply(args=[["CO"]]).get()

        assert result["failed"] is False
        assert result["totals"]["units"] == 3
        assert result["sources"][0]["source"] == "CO"
