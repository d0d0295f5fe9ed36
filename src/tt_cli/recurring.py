"""
Recurrence rules for tt.

This module parses natural language recurrence phrases into rules, persists
rules as JSON, renders them back into a canonical phrase, and computes the
next occurrence of a rule under fixed or relative semantics.
"""

import json
import logging
import re
from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from fuzzywuzzy import fuzz, process

from .exceptions import ParseError
from .utils.datetime import add_months, add_years, to_date, today_local

logger = logging.getLogger(__name__)


UNITS = ("day", "week", "month", "year")

# Monday-first, matching date.weekday()
WEEKDAY_CODES = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

WEEKDAY_ALIASES = {
    "monday": "mon", "mon": "mon",
    "tuesday": "tue", "tue": "tue",
    "wednesday": "wed", "wed": "wed",
    "thursday": "thu", "thu": "thu",
    "friday": "fri", "fri": "fri",
    "saturday": "sat", "sat": "sat",
    "sunday": "sun", "sun": "sun",
}

UNIT_LETTERS = {"d": "day", "w": "week", "m": "month", "y": "year"}


class RecurrenceKind(Enum):
    """How the next occurrence is anchored."""
    FIXED = "fixed"  # Calendar schedule, independent of completion time
    RELATIVE = "relative"  # Offset from the moment of completion


@dataclass(frozen=True)
class Rule:
    """A recurrence rule: every `interval` `unit`s, optionally refined.

    `weekdays` only applies to weekly rules and `day` (day of month) only to
    monthly rules; at most one refinement is set.
    """
    interval: int = 1
    unit: str = "day"
    weekdays: Tuple[str, ...] = ()
    day: Optional[int] = None

    def __post_init__(self):
        if isinstance(self.interval, bool) or not isinstance(self.interval, int) or self.interval < 1:
            raise ValueError(f"interval must be a positive integer, got {self.interval!r}")
        if self.unit not in UNITS:
            raise ValueError(f"unit must be one of {', '.join(UNITS)}, got {self.unit!r}")

        weekdays = tuple(self.weekdays or ())
        unknown = [wd for wd in weekdays if wd not in WEEKDAY_CODES]
        if unknown:
            raise ValueError(f"unknown weekday codes: {', '.join(unknown)}")
        # Canonical order keeps JSON round-trips stable
        object.__setattr__(self, "weekdays", tuple(wd for wd in WEEKDAY_CODES if wd in weekdays))

        if self.day is not None:
            if isinstance(self.day, bool) or not isinstance(self.day, int) or not 1 <= self.day <= 31:
                raise ValueError(f"day of month must be between 1 and 31, got {self.day!r}")
        if self.weekdays and self.day is not None:
            raise ValueError("weekdays and day of month are mutually exclusive")
        if self.weekdays and self.unit != "week":
            raise ValueError("weekdays only apply to weekly rules")
        if self.day is not None and self.unit != "month":
            raise ValueError("day of month only applies to monthly rules")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted dictionary shape."""
        data: Dict[str, Any] = {"interval": self.interval, "unit": self.unit}
        if self.weekdays:
            data["weekdays"] = list(self.weekdays)
        if self.day is not None:
            data["day"] = self.day
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Rule':
        """Create a Rule from its persisted dictionary shape."""
        return cls(
            interval=data.get("interval", 0),
            unit=data.get("unit", ""),
            weekdays=tuple(data.get("weekdays") or ()),
            day=data.get("day") or None,
        )

    def to_json(self) -> str:
        """Serialize to compact JSON, e.g. ``{"interval":1,"unit":"week","weekdays":["mon"]}``."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json(cls, text: str) -> 'Rule':
        """Parse persisted JSON back into a Rule.

        Raises:
            ParseError: If the JSON is malformed or describes an invalid rule.
        """
        try:
            data = json.loads(text)
            if not isinstance(data, dict):
                raise ValueError("rule JSON must be an object")
            return cls.from_dict(data)
        except (TypeError, ValueError) as e:
            raise ParseError(text, f"invalid recurrence rule {text!r}: {e}")

    def format(self) -> str:
        """Render a canonical human phrase for the rule."""
        if self.unit == "day":
            return "daily" if self.interval == 1 else f"every {self.interval} days"
        if self.unit == "week":
            if self.weekdays:
                return "every " + ",".join(self.weekdays)
            if self.interval == 1:
                return "weekly"
            if self.interval == 2:
                return "biweekly"
            return f"every {self.interval} weeks"
        if self.unit == "month":
            if self.day is not None:
                return f"every {ordinal(self.day)}"
            return "monthly" if self.interval == 1 else f"every {self.interval} months"
        return "yearly" if self.interval == 1 else f"every {self.interval} years"

    def __str__(self) -> str:
        return self.format()


@dataclass(frozen=True)
class ParseResult:
    """A parsed recurrence phrase."""
    rule: Rule
    kind: RecurrenceKind


def ordinal(n: int) -> str:
    """Return 1st, 2nd, 3rd, 4th, ..., 11th, 12th, 13th, 21st, ..."""
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def normalize_unit(word: str) -> str:
    """Map a unit word or letter (days, w, month) to its singular unit."""
    if word in UNIT_LETTERS:
        return UNIT_LETTERS[word]
    return word[:-1] if word.endswith("s") else word


def _positive(value: str, phrase: str) -> int:
    n = int(value)
    if n < 1:
        raise ParseError(phrase, f"cannot parse recurrence: {phrase} (interval must be at least 1)")
    return n


_UNIT_WORDS = r'(day|days|week|weeks|month|months|year|years)'

Builder = Callable[[re.Match, str], Rule]


class RecurrenceParser:
    """Parses natural language recurrence phrases.

    Relative phrases are tried first since they are anchored by "after" and
    must not be read as fixed schedules. Supported forms:

    - ``3d after done``, ``2 weeks after completion``, ``after 10 days``
    - ``daily``, ``weekly``, ``monthly``, ``yearly``, ``biweekly``
    - ``every week``, ``every 3 months``
    - ``every monday``, ``every mon,wed,fri``
    - ``every 1st``, ``every 15th``
    """

    RELATIVE_PATTERNS: List[Tuple[str, Builder]] = [
        (r'^(\d+)\s*([dwmy])\s+after\s+(?:done|completion)$',
         lambda m, s: Rule(interval=_positive(m.group(1), s), unit=normalize_unit(m.group(2)))),
        (r'^(\d+)\s+' + _UNIT_WORDS + r'\s+after\s+(?:done|completion)$',
         lambda m, s: Rule(interval=_positive(m.group(1), s), unit=normalize_unit(m.group(2)))),
        (r'^after\s+(\d+)\s+' + _UNIT_WORDS + r'$',
         lambda m, s: Rule(interval=_positive(m.group(1), s), unit=normalize_unit(m.group(2)))),
    ]

    FIXED_PATTERNS: List[Tuple[str, Builder]] = [
        # Keywords
        (r'^daily$', lambda m, s: Rule(interval=1, unit="day")),
        (r'^weekly$', lambda m, s: Rule(interval=1, unit="week")),
        (r'^monthly$', lambda m, s: Rule(interval=1, unit="month")),
        (r'^yearly$', lambda m, s: Rule(interval=1, unit="year")),
        (r'^biweekly$', lambda m, s: Rule(interval=2, unit="week")),

        # Intervals
        (r'^every\s+(day|week|month|year)$', lambda m, s: Rule(interval=1, unit=m.group(1))),
        (r'^every\s+(\d+)\s+' + _UNIT_WORDS + r'$',
         lambda m, s: Rule(interval=_positive(m.group(1), s), unit=normalize_unit(m.group(2)))),
    ]

    DAY_OF_MONTH = re.compile(r'^every\s+(\d+)(st|nd|rd|th)$')

    @classmethod
    def parse(cls, phrase: str) -> ParseResult:
        """Parse a recurrence phrase into a rule and its kind.

        Raises:
            ParseError: If the phrase matches none of the supported forms.
        """
        original = phrase
        phrase = " ".join((phrase or "").lower().split())

        for regex, build in cls.RELATIVE_PATTERNS:
            match = re.match(regex, phrase)
            if match:
                return cls._result(build(match, original), RecurrenceKind.RELATIVE, original)

        for regex, build in cls.FIXED_PATTERNS:
            match = re.match(regex, phrase)
            if match:
                return cls._result(build(match, original), RecurrenceKind.FIXED, original)

        weekdays = cls._parse_weekdays(phrase)
        if weekdays:
            rule = Rule(interval=1, unit="week", weekdays=tuple(weekdays))
            return cls._result(rule, RecurrenceKind.FIXED, original)

        match = cls.DAY_OF_MONTH.match(phrase)
        if match:
            day = int(match.group(1))
            if 1 <= day <= 31:
                return cls._result(Rule(interval=1, unit="month", day=day), RecurrenceKind.FIXED, original)

        raise ParseError(original, f"cannot parse recurrence: {original}", cls._suggest(phrase))

    @staticmethod
    def _result(rule: Rule, kind: RecurrenceKind, original: str) -> ParseResult:
        logger.debug(f"Parsed recurrence {original!r} as {rule.to_json()} ({kind.value})")
        return ParseResult(rule=rule, kind=kind)

    @staticmethod
    def _parse_weekdays(phrase: str) -> Optional[List[str]]:
        """Parse ``every mon,wed`` into weekday codes; any unknown token rejects all."""
        if not phrase.startswith("every "):
            return None

        weekdays = []
        for token in phrase[len("every "):].split(","):
            code = WEEKDAY_ALIASES.get(token.strip())
            if code is None:
                return None
            weekdays.append(code)
        return weekdays

    @staticmethod
    def _suggest(phrase: str) -> List[str]:
        """Suggest weekday names for misspelled tokens in an ``every`` phrase."""
        if not phrase.startswith("every "):
            return []

        names = [name for name in WEEKDAY_ALIASES if len(name) > 3]
        suggestions = []
        for token in phrase[len("every "):].split(","):
            token = token.strip()
            if not token or token in WEEKDAY_ALIASES:
                continue
            matches = process.extractBests(token, names, scorer=fuzz.ratio, score_cutoff=70, limit=1)
            suggestions.extend(match[0] for match in matches)
        return suggestions


def parse_recurrence(phrase: str) -> ParseResult:
    """Parse a recurrence phrase."""
    return RecurrenceParser.parse(phrase)


class OccurrenceCalculator:
    """Computes the next occurrence date of a recurrence rule.

    Fixed rules are computed from the calculator's own notion of today so a
    schedule does not drift with completion time. Relative rules are
    computed from the anchor passed in, normally the completion timestamp.
    """

    def __init__(self, clock: Optional[Callable[[], Union[date, datetime]]] = None):
        self.clock = clock or today_local

    def today(self) -> date:
        return to_date(self.clock())

    def next_occurrence(self, rule: Rule, kind: RecurrenceKind,
                        anchor: Union[date, datetime, None] = None) -> date:
        """Return the next occurrence of rule.

        Args:
            rule: The recurrence rule
            kind: Fixed or relative semantics
            anchor: Completion time for relative rules; ignored for fixed rules

        Returns:
            The calendar date of the next occurrence
        """
        if kind == RecurrenceKind.RELATIVE:
            if anchor is None:
                raise ValueError("relative recurrence needs an anchor date")
            next_date = add_interval(to_date(anchor), rule)
        else:
            today = self.today()
            if rule.weekdays:
                next_date = next_weekday_occurrence(today, rule.weekdays)
            elif rule.day is not None:
                next_date = next_day_of_month(today, rule.day)
            else:
                next_date = add_interval(today, rule)

        logger.debug(f"Next occurrence of {rule.format()} ({kind.value}) is {next_date}")
        return next_date


def add_interval(start: date, rule: Rule) -> date:
    """Add the rule's interval to a date."""
    if rule.unit == "day":
        return start + timedelta(days=rule.interval)
    if rule.unit == "week":
        return start + timedelta(weeks=rule.interval)
    if rule.unit == "month":
        return add_months(start, rule.interval)
    return add_years(start, rule.interval)


def next_weekday_occurrence(today: date, weekdays: Iterable[str]) -> date:
    """Find the nearest listed weekday strictly after today (1-7 days ahead)."""
    offsets = []
    for code in weekdays:
        days_ahead = (WEEKDAY_CODES.index(code) - today.weekday()) % 7
        offsets.append(days_ahead or 7)
    return today + timedelta(days=min(offsets))


def next_day_of_month(today: date, day: int) -> date:
    """Find the next given day of month, clamping to short months.

    This month is used while today is before the target day; otherwise the
    occurrence rolls to next month. The result is always after today.
    """
    if today.day < day:
        candidate = _clamped(today.year, today.month, day)
        if candidate > today:
            return candidate

    rolled = add_months(today.replace(day=1), 1)
    return _clamped(rolled.year, rolled.month, day)


def _clamped(year: int, month: int, day: int) -> date:
    return date(year, month, min(day, monthrange(year, month)[1]))


_default_calculator = OccurrenceCalculator()


def next_occurrence(rule: Rule, kind: RecurrenceKind,
                    anchor: Union[date, datetime, None] = None) -> date:
    """Compute the next occurrence with the shared calculator."""
    return _default_calculator.next_occurrence(rule, kind, anchor)
