"""Tests for recurrence phrase parsing and rule persistence."""

import pytest

from tt_cli.exceptions import ParseError
from tt_cli.recurring import (
    RecurrenceKind,
    RecurrenceParser,
    Rule,
    ordinal,
    parse_recurrence,
)


class TestFixedPhrases:
    """Test fixed schedule phrases."""

    @pytest.mark.parametrize("phrase,interval,unit", [
        ("daily", 1, "day"),
        ("Weekly", 1, "week"),
        ("monthly", 1, "month"),
        ("yearly", 1, "year"),
        ("biweekly", 2, "week"),
        ("every day", 1, "day"),
        ("every month", 1, "month"),
        ("every 2 weeks", 2, "week"),
        ("every 3 months", 3, "month"),
        ("every 1 year", 1, "year"),
        ("every 10 days", 10, "day"),
    ])
    def test_interval_phrases(self, phrase, interval, unit):
        result = RecurrenceParser.parse(phrase)
        assert result.kind == RecurrenceKind.FIXED
        assert result.rule == Rule(interval=interval, unit=unit)

    def test_extra_whitespace_and_case(self):
        result = RecurrenceParser.parse("  Every   2   Weeks ")
        assert result.rule == Rule(interval=2, unit="week")

    def test_single_weekday(self):
        result = RecurrenceParser.parse("every monday")
        assert result.kind == RecurrenceKind.FIXED
        assert result.rule == Rule(interval=1, unit="week", weekdays=("mon",))

    def test_weekday_list(self):
        result = RecurrenceParser.parse("every mon,wed,fri")
        assert result.rule.weekdays == ("mon", "wed", "fri")
        assert result.rule.unit == "week"
        assert result.rule.interval == 1

    def test_weekday_list_is_canonically_ordered(self):
        result = RecurrenceParser.parse("every Friday, tue")
        assert result.rule.weekdays == ("tue", "fri")

    def test_unknown_weekday_rejects_whole_phrase(self):
        with pytest.raises(ParseError):
            RecurrenceParser.parse("every mon,funday")

    def test_misspelled_weekday_suggestion(self):
        with pytest.raises(ParseError) as exc_info:
            RecurrenceParser.parse("every mondy")
        assert exc_info.value.suggestions == ["monday"]
        assert "did you mean 'monday'" in str(exc_info.value)

    @pytest.mark.parametrize("phrase,day", [
        ("every 1st", 1),
        ("every 2nd", 2),
        ("every 15th", 15),
        ("every 31st", 31),
    ])
    def test_day_of_month(self, phrase, day):
        result = RecurrenceParser.parse(phrase)
        assert result.kind == RecurrenceKind.FIXED
        assert result.rule == Rule(interval=1, unit="month", day=day)

    @pytest.mark.parametrize("phrase", ["every 32nd", "every 0th"])
    def test_day_of_month_out_of_range(self, phrase):
        with pytest.raises(ParseError):
            RecurrenceParser.parse(phrase)


class TestRelativePhrases:
    """Test phrases anchored on completion."""

    @pytest.mark.parametrize("phrase,interval,unit", [
        ("3d after done", 3, "day"),
        ("3 d after done", 3, "day"),
        ("2w after completion", 2, "week"),
        ("1m after done", 1, "month"),
        ("1y after done", 1, "year"),
        ("1 week after done", 1, "week"),
        ("2 months after completion", 2, "month"),
        ("after 10 days", 10, "day"),
        ("after 1 year", 1, "year"),
    ])
    def test_relative_phrases(self, phrase, interval, unit):
        result = RecurrenceParser.parse(phrase)
        assert result.kind == RecurrenceKind.RELATIVE
        assert result.rule == Rule(interval=interval, unit=unit)

    def test_zero_interval_is_rejected(self):
        with pytest.raises(ParseError):
            RecurrenceParser.parse("0d after done")
        with pytest.raises(ParseError):
            RecurrenceParser.parse("every 0 days")


class TestInvalidPhrases:
    """Test rejected phrases."""

    @pytest.mark.parametrize("phrase", [
        "fortnightly",
        "",
        "every",
        "every 2 weeks after done",
        "3x after done",
        "every other day",
    ])
    def test_rejected(self, phrase):
        with pytest.raises(ParseError):
            parse_recurrence(phrase)

    def test_error_echoes_input(self):
        with pytest.raises(ParseError) as exc_info:
            parse_recurrence("Fortnightly")
        assert exc_info.value.text == "Fortnightly"
        assert "Fortnightly" in str(exc_info.value)


class TestRule:
    """Test rule validation, JSON persistence and formatting."""

    def test_to_json_shapes(self):
        assert Rule(interval=1, unit="day").to_json() == '{"interval":1,"unit":"day"}'
        assert (Rule(interval=1, unit="week", weekdays=("mon", "wed")).to_json()
                == '{"interval":1,"unit":"week","weekdays":["mon","wed"]}')
        assert Rule(interval=1, unit="month", day=15).to_json() == '{"interval":1,"unit":"month","day":15}'

    @pytest.mark.parametrize("rule", [
        Rule(interval=1, unit="day"),
        Rule(interval=3, unit="week"),
        Rule(interval=1, unit="week", weekdays=("sun", "mon", "sat")),
        Rule(interval=1, unit="month", day=31),
        Rule(interval=12, unit="month"),
        Rule(interval=2, unit="year"),
    ])
    def test_json_round_trip(self, rule):
        assert Rule.from_json(rule.to_json()) == rule

    def test_from_json_reads_stored_rule(self):
        rule = Rule.from_json('{"interval": 2, "unit": "week", "weekdays": ["fri", "tue"]}')
        assert rule == Rule(interval=2, unit="week", weekdays=("tue", "fri"))

    @pytest.mark.parametrize("text", [
        "not json",
        "[1, 2]",
        '{"interval": 0, "unit": "day"}',
        '{"interval": 1, "unit": "fortnight"}',
        '{"interval": 1, "unit": "day", "weekdays": ["mon"]}',
        '{"unit": "day"}',
    ])
    def test_from_json_rejects_invalid(self, text):
        with pytest.raises(ParseError):
            Rule.from_json(text)

    def test_refinements_are_exclusive(self):
        with pytest.raises(ValueError):
            Rule(interval=1, unit="week", weekdays=("mon",), day=3)
        with pytest.raises(ValueError):
            Rule(interval=1, unit="month", weekdays=("mon",))
        with pytest.raises(ValueError):
            Rule(interval=1, unit="week", day=3)

    def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            Rule(interval=0, unit="day")
        with pytest.raises(ValueError):
            Rule(interval=-1, unit="week")

    def test_duplicate_weekdays_collapse(self):
        assert Rule(interval=1, unit="week", weekdays=("mon", "mon")).weekdays == ("mon",)

    @pytest.mark.parametrize("rule,text", [
        (Rule(interval=1, unit="day"), "daily"),
        (Rule(interval=3, unit="day"), "every 3 days"),
        (Rule(interval=1, unit="week"), "weekly"),
        (Rule(interval=2, unit="week"), "biweekly"),
        (Rule(interval=3, unit="week"), "every 3 weeks"),
        (Rule(interval=1, unit="week", weekdays=("mon", "wed", "fri")), "every mon,wed,fri"),
        (Rule(interval=1, unit="month"), "monthly"),
        (Rule(interval=2, unit="month"), "every 2 months"),
        (Rule(interval=1, unit="month", day=15), "every 15th"),
        (Rule(interval=1, unit="month", day=22), "every 22nd"),
        (Rule(interval=1, unit="year"), "yearly"),
        (Rule(interval=5, unit="year"), "every 5 years"),
    ])
    def test_format(self, rule, text):
        assert rule.format() == text
        assert str(rule) == text

    def test_format_parses_back_to_same_rule(self):
        for phrase in ["every 2 weeks", "every 3 days", "every tue,thu", "every 3rd", "biweekly"]:
            rule = parse_recurrence(phrase).rule
            assert parse_recurrence(rule.format()).rule == rule

    @pytest.mark.parametrize("n,text", [
        (1, "1st"), (2, "2nd"), (3, "3rd"), (4, "4th"), (11, "11th"),
        (12, "12th"), (13, "13th"), (21, "21st"), (23, "23rd"), (31, "31st"),
    ])
    def test_ordinal(self, n, text):
        assert ordinal(n) == text
