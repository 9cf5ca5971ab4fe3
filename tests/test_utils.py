"""Unit tests for Dutch formatting, parsing and the debouncer."""

import threading
from datetime import date, datetime, timedelta

import pytest

from utils.debounce import Debouncer
from utils.formatting import (
    format_distance,
    format_dutch_currency,
    format_dutch_date,
    format_percentage,
    format_short_date,
    time_ago,
)
from utils.parsing import (
    is_valid_dutch_iban,
    normalize_iban,
    normalize_postal_code,
    parse_bool,
    parse_date,
    parse_float,
    parse_location,
    split_list,
    join_list,
)


class TestFormatting:
    @pytest.mark.parametrize("amount,expected", [
        (1234.5, "€ 1.234,50"),
        (0, "€ 0,00"),
        (-12, "€ -12,00"),
        (None, "€ 0,00"),
        (1000000, "€ 1.000.000,00"),
    ])
    def test_currency(self, amount, expected):
        assert format_dutch_currency(amount) == expected

    def test_percentage(self):
        assert format_percentage(0.21) == "21%"
        assert format_percentage(0.3693, 2) == "36,93%"

    def test_distance(self):
        assert format_distance(2.3) == "2,3 km"
        assert format_distance(12) == "12,0 km"

    def test_dates(self):
        assert format_dutch_date(date(2024, 3, 5)) == "5 maart 2024"
        assert format_short_date(date(2024, 3, 5)) == "05-03-2024"
        assert format_dutch_date(None) == ""

    def test_time_ago(self):
        now = datetime(2024, 5, 10, 12, 0)
        assert time_ago(now - timedelta(seconds=30), now) == "Zojuist"
        assert time_ago(now - timedelta(minutes=1), now) == "1 minuut geleden"
        assert time_ago(now - timedelta(minutes=5), now) == "5 minuten geleden"
        assert time_ago(now - timedelta(hours=3), now) == "3 uur geleden"
        assert time_ago(now - timedelta(days=2), now) == "2 dagen geleden"
        assert time_ago(datetime(2024, 4, 1, 8, 0), now) == "1 april 2024"


class TestParsing:
    def test_parse_location(self):
        assert parse_location("Rotterdam Zuid, 3083AA") == ("Rotterdam Zuid", "3083AA")
        assert parse_location("Amsterdam") == ("Amsterdam", "")
        assert parse_location("") == ("", "")

    def test_normalize_postal_code(self):
        assert normalize_postal_code("3083 aa") == "3083AA"
        assert normalize_postal_code("geen code") == ""

    def test_iban(self):
        assert normalize_iban("nl91 abna 0417 1643 00") == "NL91ABNA0417164300"
        assert is_valid_dutch_iban("NL91 ABNA 0417 1643 00")
        assert not is_valid_dutch_iban("NL92ABNA0417164300")
        assert not is_valid_dutch_iban("DE89370400440532013000")

    def test_parse_float_accepts_dutch_notation(self):
        assert parse_float("24,75") == 24.75
        assert parse_float("€ 1.234,50") == 1234.5
        assert parse_float("12.5") == 12.5
        assert parse_float("abc", default=-1.0) == -1.0
        assert parse_float("") == 0.0

    def test_parse_bool(self):
        assert parse_bool("TRUE")
        assert parse_bool("ja")
        assert not parse_bool("")
        assert not parse_bool("FALSE")

    def test_parse_date(self):
        assert parse_date("2024-05-01T09:00:00") == date(2024, 5, 1)
        assert parse_date("not a date") is None

    def test_lists(self):
        assert split_list("WPBR; BHV;;") == ["WPBR", "BHV"]
        assert join_list(["WPBR", " ", "BHV"]) == "WPBR;BHV"


class TestDebouncer:
    def test_zero_delay_runs_immediately(self):
        calls = []
        Debouncer(0, calls.append).call("x")
        assert calls == ["x"]

    def test_flush_runs_latest_only(self):
        calls = []
        debouncer = Debouncer(60, calls.append)
        debouncer.call("a")
        debouncer.call("b")
        assert debouncer.pending
        assert debouncer.flush()
        assert calls == ["b"]
        assert not debouncer.pending
        assert not debouncer.flush()

    def test_cancel_drops_pending(self):
        calls = []
        debouncer = Debouncer(60, calls.append)
        debouncer.call("a")
        debouncer.cancel()
        assert not debouncer.flush()
        assert calls == []

    def test_replaced_timer_does_not_run_new_arguments(self):
        calls = []
        debouncer = Debouncer(60, calls.append)
        debouncer.call("a")
        replaced = debouncer._generation
        debouncer.call("b")

        # The first timer fires after it was replaced
        debouncer._fire(replaced)
        assert calls == []
        assert debouncer.pending
        debouncer.cancel()

    def test_timer_fires_on_its_own(self):
        done = threading.Event()
        calls = []

        def record(value):
            calls.append(value)
            done.set()

        debouncer = Debouncer(0.02, record)
        debouncer.call("a")
        debouncer.call("b")
        assert done.wait(5)
        assert calls == ["b"]
        assert not debouncer.pending
