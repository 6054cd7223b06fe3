"""Tests for duration parsing and formatting."""

import pytest

from slack_focus_mode.duration import describe_duration, format_duration, parse_duration

HOUR = 60 * 60 * 1000
MINUTE = 60 * 1000


class TestParseDuration:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("2h", 2 * HOUR),
            ("30m", 30 * MINUTE),
            ("1h30m", 90 * MINUTE),
            ("0h45m", 45 * MINUTE),
            ("90m", 90 * MINUTE),
        ],
    )
    def test_valid_durations(self, text, expected):
        assert parse_duration(text) == expected

    def test_case_insensitive(self):
        assert parse_duration("1H30M") == 90 * MINUTE

    @pytest.mark.parametrize(
        "text", ["", "2x", "h", "30", "m", "1h 30m", " 2h", "2h ", "30m1h", "2h\n", "-1h", "1.5h"]
    )
    def test_malformed_returns_none(self, text):
        assert parse_duration(text) is None

    def test_zero_minutes_parses_to_zero(self):
        assert parse_duration("0m") == 0


class TestFormatDuration:
    def test_hours_and_minutes(self):
        assert format_duration(90 * MINUTE) == "1h 30m"

    def test_hours_only(self):
        assert format_duration(2 * HOUR) == "2h"

    def test_minutes_only(self):
        assert format_duration(45 * MINUTE) == "45m"

    def test_zero(self):
        assert format_duration(0) == "0m"

    def test_partial_minutes_are_floored(self):
        assert format_duration(MINUTE * 5 + 59_999) == "5m"
        assert format_duration(59_999) == "0m"

    def test_accepts_float_milliseconds(self):
        assert format_duration(7_260_000.5) == "2h 1m"


class TestDescribeDuration:
    @pytest.mark.parametrize(
        "ms, expected",
        [
            (8 * HOUR, "8 hours"),
            (HOUR, "1 hour"),
            (HOUR + 30 * MINUTE, "1 hour 30 minutes"),
            (2 * HOUR + MINUTE, "2 hours 1 minute"),
            (45 * MINUTE, "45 minutes"),
            (0, "0 minutes"),
        ],
    )
    def test_words(self, ms, expected):
        assert describe_duration(ms) == expected


class TestRoundTrip:
    @pytest.mark.parametrize(
        "text, normalized",
        [("1h30m", "1h 30m"), ("2h", "2h"), ("45m", "45m"), ("2H0M", "2h"), ("75m", "1h 15m")],
    )
    def test_parse_then_format(self, text, normalized):
        assert format_duration(parse_duration(text)) == normalized
