"""Natural language date parser for planned and due dates."""

import logging
import re
from datetime import date, datetime, timedelta
from typing import Optional, Union

from fuzzywuzzy import fuzz, process

from .exceptions import ParseError
from .utils.datetime import add_months, now_utc, to_date

logger = logging.getLogger(__name__)


WEEKDAY_NAMES = {
    "monday": 0, "mon": 0,
    "tuesday": 1, "tue": 1,
    "wednesday": 2, "wed": 2,
    "thursday": 3, "thu": 3,
    "friday": 4, "fri": 4,
    "saturday": 5, "sat": 5,
    "sunday": 6, "sun": 6,
}

ISO_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')
RELATIVE_RE = re.compile(r'^\+(\d+)([dwm])$')


def next_weekday(today: date, weekday: int) -> date:
    """Return the next date falling on weekday, strictly after today."""
    days_ahead = (weekday - today.weekday()) % 7
    if days_ahead == 0:
        days_ahead = 7
    return today + timedelta(days=days_ahead)


class DateParser:
    """Parses short date phrases anchored to a reference "now".

    Forms are tried in order and the first match wins:

    - ISO date: ``2025-01-15``
    - keywords: ``today``, ``tomorrow``
    - offsets: ``+3d``, ``+2w``, ``+1m``
    - weekdays: ``friday``, ``next fri`` (always strictly after today)
    """

    def __init__(self):
        self.keywords = {
            'today': lambda today: today,
            'tomorrow': lambda today: today + timedelta(days=1),
        }

    def parse(self, text: str, now: Optional[Union[date, datetime]] = None) -> date:
        """Parse text into a calendar date, raising ParseError on failure."""
        original = text
        text = (text or "").strip().lower()
        today = to_date(now if now is not None else now_utc())

        if not text:
            raise ParseError(original, f"cannot parse date: {original!r}")

        if ISO_DATE_RE.match(text):
            try:
                return date.fromisoformat(text)
            except ValueError:
                # Shaped like ISO but not a real calendar date
                raise ParseError(original, f"cannot parse date: {original}")

        if text in self.keywords:
            return self.keywords[text](today)

        match = RELATIVE_RE.match(text)
        if match:
            return self._apply_offset(today, int(match.group(1)), match.group(2))

        weekday = WEEKDAY_NAMES.get(text[len("next "):] if text.startswith("next ") else text)
        if weekday is not None:
            return next_weekday(today, weekday)

        logger.debug(f"Rejected date phrase {original!r}")
        raise ParseError(original, f"cannot parse date: {original}", self._suggest(text))

    def _apply_offset(self, today: date, amount: int, unit: str) -> date:
        if unit == 'd':
            return today + timedelta(days=amount)
        if unit == 'w':
            return today + timedelta(weeks=amount)
        return add_months(today, amount)

    def _suggest(self, text: str):
        word = text.split()[-1]
        candidates = list(self.keywords) + [name for name in WEEKDAY_NAMES if len(name) > 3]
        matches = process.extractBests(word, candidates, scorer=fuzz.ratio,
                                      score_cutoff=75, limit=2)
        return [match[0] for match in matches]


_default_parser = DateParser()


def parse_date(text: str, now: Optional[Union[date, datetime]] = None) -> date:
    """Parse a date phrase with the shared parser."""
    return _default_parser.parse(text, now)
