"""Tests for the date phrase parser."""

from datetime import date, datetime, timezone

import pytest

from tt_cli.dates import DateParser, next_weekday, parse_date
from tt_cli.exceptions import ParseError
from tt_cli.utils.datetime import to_date

# Thursday
NOW = datetime(2025, 1, 23, 15, 30, tzinfo=timezone.utc)


class TestDateParser:
    """Test each supported date form."""

    def setup_method(self):
        self.parser = DateParser()

    def test_parse_iso_date(self):
        assert self.parser.parse("2025-03-01", NOW) == date(2025, 3, 1)

    def test_parse_keywords(self):
        assert self.parser.parse("today", NOW) == date(2025, 1, 23)
        assert self.parser.parse("Tomorrow", NOW) == date(2025, 1, 24)

    def test_input_is_trimmed(self):
        assert self.parser.parse("  TODAY  ", NOW) == date(2025, 1, 23)

    def test_parse_relative_offsets(self):
        assert self.parser.parse("+3d", NOW) == date(2025, 1, 26)
        assert self.parser.parse("+2w", NOW) == date(2025, 2, 6)
        assert self.parser.parse("+1m", NOW) == date(2025, 2, 23)

    def test_month_offset_clamps_to_month_end(self):
        now = datetime(2025, 1, 31, 9, 0, tzinfo=timezone.utc)
        assert self.parser.parse("+1m", now) == date(2025, 2, 28)

    def test_parse_weekday(self):
        assert self.parser.parse("friday", NOW) == date(2025, 1, 24)
        assert self.parser.parse("next monday", NOW) == date(2025, 1, 27)
        assert self.parser.parse("mon", NOW) == date(2025, 1, 27)

    def test_same_weekday_is_a_week_later(self):
        """Naming today's weekday never returns today."""
        assert self.parser.parse("thursday", NOW) == date(2025, 1, 30)
        assert self.parser.parse("next thursday", NOW) == date(2025, 1, 30)

    def test_accepts_plain_date_as_now(self):
        assert self.parser.parse("tomorrow", date(2025, 1, 23)) == date(2025, 1, 24)

    def test_malformed_iso_date_is_rejected(self):
        with pytest.raises(ParseError) as exc_info:
            self.parser.parse("2025-02-30", NOW)
        assert "2025-02-30" in str(exc_info.value)

    @pytest.mark.parametrize("text", ["someday", "", "+3x", "next", "next week", "2025/01/15"])
    def test_unparseable_input(self, text):
        with pytest.raises(ParseError):
            self.parser.parse(text, NOW)

    def test_error_echoes_original_input(self):
        with pytest.raises(ParseError) as exc_info:
            self.parser.parse("Whenever", NOW)
        assert exc_info.value.text == "Whenever"
        assert "Whenever" in exc_info.value.message

    def test_misspelling_gets_suggestion(self):
        with pytest.raises(ParseError) as exc_info:
            self.parser.parse("tomorow", NOW)
        assert "tomorrow" in exc_info.value.suggestions

        with pytest.raises(ParseError) as exc_info:
            self.parser.parse("next fridy", NOW)
        assert "friday" in exc_info.value.suggestions


class TestHelpers:
    """Test module-level helpers."""

    def test_next_weekday_skips_today(self):
        thursday = date(2025, 1, 23)
        assert next_weekday(thursday, 3) == date(2025, 1, 30)
        assert next_weekday(thursday, 4) == date(2025, 1, 24)
        assert next_weekday(thursday, 2) == date(2025, 1, 29)

    def test_parse_date_uses_shared_parser(self):
        assert parse_date("+1d", NOW) == date(2025, 1, 24)


class TestLocalToday:
    """Date words are resolved against the local calendar day, not UTC."""

    # 20:00 on Thursday in UTC-5, already Friday in UTC
    EVENING = datetime(2025, 1, 24, 1, 0, tzinfo=timezone.utc)

    def test_today_late_evening_west_of_utc(self, local_timezone):
        local_timezone("EST5")
        parser = DateParser()
        assert parser.parse("today", self.EVENING) == date(2025, 1, 23)
        assert parser.parse("tomorrow", self.EVENING) == date(2025, 1, 24)
        assert parser.parse("friday", self.EVENING) == date(2025, 1, 24)

    def test_to_date_converts_to_local_time(self, local_timezone):
        local_timezone("EST5")
        assert to_date(self.EVENING) == date(2025, 1, 23)
        assert to_date(datetime(2025, 1, 24, 1, 0)) == date(2025, 1, 24)
        assert to_date(date(2025, 1, 24)) == date(2025, 1, 24)

    def test_utc_local_time(self):
        assert to_date(self.EVENING) == date(2025, 1, 24)
