"""
Tests for structural fingerprinting and drift alerts.
"""

import logging
from unittest.mock import MagicMock, patch

from drawdata.health.fingerprint import StructuralFingerprint

URL = "https://agency.example/big-game"

PAGE = """
<html><body>
  <main class="content">
    <h1>Big Game</h1>
    <section class="fees"><h2>Fees</h2>
      <table class="fee-table"><tr><th>Item</th><th>Cost</th></tr>
      <tr><td>Elk</td><td>$692</td></tr></table>
    </section>
  </main>
</body></html>
"""

SAME_LAYOUT_NEW_DATA = PAGE.replace("$692", "$701").replace("Big Game", "Big Game 2026")

CHANGED_LAYOUT = """
<html><body>
  <main class="content">
    <h1>Big Game</h1>
    <div class="fees"><h3>Fees</h3>
      <ul><li>Elk $692</li></ul>
    </div>
  </main>
</body></html>
"""


class TestCompute:
    """Tests for fingerprint computation."""

    def test_identical_content_has_identical_hash(self):
        a = StructuralFingerprint.compute(PAGE, URL, "CO")
        b = StructuralFingerprint.compute(PAGE, URL, "CO")
        assert a.selector_hash == b.selector_hash
        assert len(a.selector_hash) == 16

    def test_text_changes_do_not_change_hash(self):
        a = StructuralFingerprint.compute(PAGE, URL, "CO")
        b = StructuralFingerprint.compute(SAME_LAYOUT_NEW_DATA, URL, "CO")
        assert a.selector_hash == b.selector_hash

    def test_layout_change_changes_hash(self):
        a = StructuralFingerprint.compute(PAGE, URL, "CO")
        b = StructuralFingerprint.compute(CHANGED_LAYOUT, URL, "CO")
        assert a.selector_hash != b.selector_hash

    def test_selector_paths_include_depth_and_classes(self):
        signature = StructuralFingerprint.compute(PAGE, URL, "CO")
        assert "0:main.content" in signature.selector_paths
        assert "2:main.content > 1:section.fees > 0:table.fee-table" in signature.selector_paths
        assert signature.selector_paths == sorted(signature.selector_paths)

    def test_delimited_content_uses_header_line(self):
        signature = StructuralFingerprint.compute("\nUnit,Applicants,Tags\n1,100,10\n", URL, "CO")
        assert signature.selector_paths == ["delimited:unit,applicants,tags"]

    def test_delimited_header_change_changes_hash(self):
        a = StructuralFingerprint.compute("Unit,Applicants\n1,2\n", URL, "CO")
        b = StructuralFingerprint.compute("Hunt,Applicants\n1,2\n", URL, "CO")
        assert a.selector_hash != b.selector_hash


class TestCompare:
    """Tests for fingerprint comparison."""

    def test_first_fingerprint(self):
        current = StructuralFingerprint.compute(PAGE, URL, "CO")
        comparison = StructuralFingerprint.compare(current, None)
        assert not comparison.changed
        assert comparison.details == "First fingerprint recorded"

    def test_unchanged(self):
        current = StructuralFingerprint.compute(PAGE, URL, "CO")
        previous = StructuralFingerprint.compute(SAME_LAYOUT_NEW_DATA, URL, "CO")
        comparison = StructuralFingerprint.compare(current, previous)
        assert not comparison.changed
        assert comparison.details == "Structure unchanged"

    def test_changed_reports_added_and_removed_paths(self):
        previous = StructuralFingerprint.compute(PAGE, URL, "CO")
        current = StructuralFingerprint.compute(CHANGED_LAYOUT, URL, "CO")
        comparison = StructuralFingerprint.compare(current, previous)

        assert comparison.changed
        assert "2:main.content > 1:section.fees > 0:table.fee-table" in comparison.removed
        assert "2:main.content > 1:div.fees > 0:h3" in comparison.added
        assert comparison.details.startswith("Structure changed:")


class TestCheck:
    """Tests for the check-and-store cycle."""

    def test_first_check_stores_signature(self, memory_store):
        store = memory_store
        comparison = StructuralFingerprint.check(PAGE, URL, "CO", store)

        assert comparison.details == "First fingerprint recorded"
        stored = StructuralFingerprint.last_signature("CO", URL, store)
        assert stored.selector_hash == StructuralFingerprint.compute(PAGE, URL, "CO").selector_hash

    def test_drift_warns_and_alerts(self, memory_store, caplog):
        store = memory_store
        alert_handler = MagicMock()
        StructuralFingerprint.check(PAGE, URL, "CO", store)

        with caplog.at_level(logging.WARNING, logger="drawdata"):
            comparison = StructuralFingerprint.check(
                CHANGED_LAYOUT, URL, "CO", store, alert_handler=alert_handler
            )

        assert comparison.changed
        assert "Fingerprint drift" in caplog.text
        alert_handler.handle_fingerprint_change.assert_called_once_with("CO", URL, comparison)
        # New signature replaces the old one
        stored = StructuralFingerprint.last_signature("CO", URL, store)
        assert stored.selector_hash == StructuralFingerprint.compute(CHANGED_LAYOUT, URL, "CO").selector_hash

    def test_store_failure_never_raises(self):
        store = MagicMock()
        store.lookup.side_effect = RuntimeError("database is down")

        assert StructuralFingerprint.check(PAGE, URL, "CO", store) is None

    def test_persists_through_regulatory_store(self, store):
        StructuralFingerprint.check(PAGE, URL, "CO", store)
        StructuralFingerprint.check(PAGE, URL, "CO", store)

        rows = store.lookup("fingerprint", {"source": "CO"})
        assert len(rows) == 1
        assert rows[0]["url"] == URL


class TestAlertHandler:
    """Tests for StructureChangeAlertHandler."""

    def test_fingerprint_change_alert_forwarded_to_sentry(self):
        from drawdata.health.alerts import StructureChangeAlertHandler
        from drawdata.health.fingerprint import FingerprintComparison

        handler = StructureChangeAlertHandler()
        comparison = FingerprintComparison(
            changed=True, details="Structure changed: 1 paths added, 0 removed", added=["0:h2"]
        )

        with patch("drawdata.health.alerts.capture_alert") as mock_capture:
            handler.handle_fingerprint_change("CO", URL, comparison)

        alerts = handler.get_sent_alerts()
        assert len(alerts) == 1
        assert alerts[0].url == URL
        assert alerts[0].extra_data["added_paths"] == ["0:h2"]
        mock_capture.assert_called_once()
        assert mock_capture.call_args.kwargs["source_id"] == "CO"
        assert mock_capture.call_args.kwargs["alert_type"] == "structure_change"

    def test_row_count_drop_alert(self):
        from drawdata.health.alerts import StructureChangeAlertHandler

        handler = StructureChangeAlertHandler()
        with patch("drawdata.health.alerts.capture_alert"):
            handler.handle_row_count_drop("CO", "units", existing=500, new=20, drop_percent=96.0)

        alert = handler.get_sent_alerts()[0]
        assert alert.alert_type == "row_count_drop"
        assert "20 rows collected vs 500 stored" in alert.message

    def test_severity_sets_log_and_sentry_levels(self, caplog):
        from drawdata.health.alerts import AlertSeverity, StructureChangeAlertHandler
        from drawdata.health.fingerprint import FingerprintComparison

        handler = StructureChangeAlertHandler()
        comparison = FingerprintComparison(changed=True, details="Structure changed", added=["0:h2"])

        with caplog.at_level(logging.WARNING, logger="drawdata"):
            with patch("drawdata.health.alerts.capture_alert") as mock_capture:
                handler.handle_fingerprint_change("CO", URL, comparison)
                handler.handle_row_count_drop("CO", "units", existing=500, new=0, drop_percent=100.0)

        drift, drop = handler.get_sent_alerts()
        assert drift.severity == AlertSeverity.WARNING
        assert drop.severity == AlertSeverity.CRITICAL
        assert [c.kwargs["level"] for c in mock_capture.call_args_list] == ["warning", "error"]

        levels = [r.levelno for r in caplog.records if "Integrity alert" in r.getMessage()]
        assert levels == [logging.WARNING, logging.ERROR]
