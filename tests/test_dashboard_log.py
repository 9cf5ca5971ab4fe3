"""Unit tests for activity log parsing used by the dashboard."""

from datetime import datetime

import pytest

from dashboard.log_lines import LEVELS, classify_line, filter_lines, level_counts, parse_line

LOG = [
    "[2024-06-01 08:00:00] Starting new processing cycle at 2024-06-01 08:00:00\n",
    "[2024-06-01 08:00:01] \n",
    "[2024-06-01 08:00:02] Certificate check 2024-06-01: 2 alert(s) sent\n",
    "[2024-06-01 08:00:02] Notification [certificate_expiry] for guard-1: WPBR verloopt via push\n",
    "[2024-06-01 08:00:03] Invoice SAL-2024-0001 generated: € 1.234,56\n",
    "[2024-06-01 08:00:04] Error processing SEPA payment P1: Het bedrag moet groter zijn dan 0\n",
    "[2024-06-01 08:00:05] Job source 'feed' unavailable. Skipping.\n",
    "plain line without timestamp\n",
]


class TestClassifyLine:
    @pytest.mark.parametrize("text,level", [
        ("Certificate check 2024-06-01: 0 alert(s) sent", "alert"),
        ("Certificate C1 renewed until 2026-06-01", "alert"),
        ("Notification [payment] for guard-2: Betaling ontvangen via email", "alert"),
        ("Invoice SAL-2024-0001 generated: € 10,00", "finance"),
        ("Payment operation refund failed (attempt 1): timeout. Retrying in 1.0s", "error"),
        ("Skipping certificate 'C9': bad date", "warning"),
        ("=" * 60, "cycle"),
        ("No new jobs or alerts. Sleeping for 120.0 minutes", "cycle"),
        ("Added 3 new jobs from 'static'.", "info"),
    ])
    def test_levels(self, text, level):
        assert classify_line(text) == level

    def test_every_level_is_listed(self):
        assert "alert" in LEVELS
        assert set(level_counts([])) == set(LEVELS)


class TestParseLine:
    def test_timestamp_is_split_off(self):
        line = parse_line(LOG[2])
        assert line.timestamp == datetime(2024, 6, 1, 8, 0, 2)
        assert line.text == "Certificate check 2024-06-01: 2 alert(s) sent"
        assert line.level == "alert"

    def test_line_without_timestamp(self):
        line = parse_line("plain line without timestamp\n")
        assert line.timestamp is None
        assert line.level == "info"

    def test_blank_lines_are_dropped(self):
        assert parse_line(LOG[1]) is None
        assert parse_line("\n") is None


class TestFilterLines:
    def test_newest_first_without_blanks(self):
        lines = filter_lines(LOG)
        assert len(lines) == 7
        assert lines[0].text == "plain line without timestamp"
        assert lines[-1].level == "cycle"

    def test_alert_level_only(self):
        lines = filter_lines(LOG, ["alert"])
        assert [line.timestamp.second for line in lines] == [2, 2]

    def test_query_is_case_insensitive(self):
        lines = filter_lines(LOG, query="sal-2024")
        assert [line.level for line in lines] == ["finance"]

    def test_level_counts(self):
        counts = level_counts(filter_lines(LOG))
        assert counts["alert"] == 2
        assert counts["finance"] == 1
        assert counts["error"] == 1
        assert counts["warning"] == 1
