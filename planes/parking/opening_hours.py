"""
Opening-hours expressions used by parking time restrictions

Supports the subset of the OSM opening_hours syntax that appears in
parking:condition:*:time_interval and *:conditional values:

    24/7
    Mo-Fr 08:00-18:00; Sa 08:00-13:00
    Mo,We,Fr 9-12,14-18
    Jun-Aug Sa,Su 10:00-20:00
    2025 Jun 01-2025 Aug 31 Mo-Fr 07:00-19:00
    22:00-06:00
    Mo-Fr 08:00-18:00; PH off

Anything else raises MalformedTag. PH/SH selectors are accepted but never
match, as there is no holiday calendar.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import FrozenSet, List, Optional, Tuple

from ..exceptions import MalformedTag


WEEKDAYS = ["Mo", "Tu", "We", "Th", "Fr", "Sa", "Su"]
MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
MINUTES_PER_DAY = 24 * 60

_WD = r"(?:Mo|Tu|We|Th|Fr|Sa|Su|PH|SH)"
_MON = r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)"
_TIME = r"\d{1,2}(?::\d{2})?"

DATE_RANGE_RE = re.compile(
    rf"^(\d{{4}})\s+({_MON})\s+(\d{{1,2}})\s*-\s*(?:(\d{{4}})\s+)?({_MON})\s+(\d{{1,2}})(?=\s|$)"
)
MONTHS_RE = re.compile(rf"^({_MON}(?:\s*-\s*{_MON})?(?:\s*,\s*{_MON}(?:\s*-\s*{_MON})?)*)(?=\s|$)")
WEEKDAYS_RE = re.compile(rf"^({_WD}(?:\s*-\s*{_WD})?(?:\s*,\s*{_WD}(?:\s*-\s*{_WD})?)*)\s*:?(?=\s|$|\d)")
TIMES_RE = re.compile(rf"^({_TIME}\s*-\s*{_TIME}(?:\s*,\s*{_TIME}\s*-\s*{_TIME})*)(?=\s|$|,)")
MODIFIER_RE = re.compile(r"^(off|closed|open)\b", re.IGNORECASE)


@dataclass(frozen=True)
class DateRange:
    """Absolute, inclusive range of calendar days"""
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class HoursRule:
    """
    One ';'-separated rule

    intervals are (start, end) minutes from midnight; end may exceed one day
    for ranges running past midnight.
    """
    weekdays: FrozenSet[int]
    months: FrozenSet[int]
    intervals: Tuple[Tuple[int, int], ...]
    date_range: Optional[DateRange] = None
    off: bool = False

    def matches_day(self, day: date) -> bool:
        if self.date_range is not None and not self.date_range.contains(day):
            return False
        return day.weekday() in self.weekdays and day.month in self.months

    def covers(self, minute: int) -> bool:
        return any(start <= minute < min(end, MINUTES_PER_DAY) for start, end in self.intervals)

    def spills_into_next_day(self, minute: int) -> bool:
        return any(end > MINUTES_PER_DAY and minute < end - MINUTES_PER_DAY for _, end in self.intervals)


@dataclass(frozen=True)
class TimeSpan:
    """A recurring (or date-bounded) set of intervals parsed from one expression"""
    rules: Tuple[HoursRule, ...]
    source: str = ""

    @property
    def is_absolute(self) -> bool:
        return any(rule.date_range is not None for rule in self.rules)

    def contains(self, instant: datetime) -> bool:
        """
        Check whether the instant falls inside the span

        The last rule whose day selectors match a day decides that day, as in
        opening_hours. Spill-over past midnight only counts when it comes from
        the rule deciding the previous day, and an explicit 'off' also cancels
        it.
        """
        day = instant.date()
        minute = instant.hour * 60 + instant.minute

        deciding = self._deciding_rule(day)
        if deciding is not None:
            if deciding.off:
                return False
            if deciding.covers(minute):
                return True

        previous = self._deciding_rule(day - timedelta(days=1))
        return previous is not None and not previous.off and previous.spills_into_next_day(minute)

    def _deciding_rule(self, day: date) -> Optional[HoursRule]:
        deciding = None
        for rule in self.rules:
            if rule.matches_day(day):
                deciding = rule
        return deciding


def parse_opening_hours(text: str, key: str = "opening_hours") -> TimeSpan:
    """
    Parse an opening-hours expression

    Args:
        text: expression, e.g. "Mo-Fr 08:00-18:00; Sa 08:00-13:00"
        key: tag key, used in error messages

    Returns:
        TimeSpan

    Raises:
        MalformedTag: if the expression is empty or outside the supported subset
    """
    if text is None or not text.strip():
        raise MalformedTag(key, text or "", "empty time expression")

    rules: List[HoursRule] = []
    for part in _split_rules(text):
        rules.extend(_parse_rule(part, key, text))
    return TimeSpan(rules=tuple(rules), source=text.strip())


def _split_rules(text: str) -> List[str]:
    return [part.strip() for part in text.split(";") if part.strip()]


def _parse_rule(rule_text: str, key: str, full_text: str) -> List[HoursRule]:
    rest = rule_text.strip()
    if rest == "24/7":
        return [HoursRule(frozenset(range(7)), frozenset(range(1, 13)), ((0, MINUTES_PER_DAY),))]

    date_range = None
    months = frozenset(range(1, 13))
    weekdays = frozenset(range(7))
    holidays_only = False
    intervals: Tuple[Tuple[int, int], ...] = ((0, MINUTES_PER_DAY),)
    off = False

    match = DATE_RANGE_RE.match(rest)
    if match:
        date_range = _parse_date_range(match, key, full_text)
        rest = rest[match.end():].strip()

    match = MONTHS_RE.match(rest)
    if match:
        months = _parse_months(match.group(1))
        rest = rest[match.end():].strip()

    match = WEEKDAYS_RE.match(rest)
    if match:
        try:
            weekdays, holidays_only = _parse_weekdays(match.group(1))
        except ValueError as e:
            raise MalformedTag(key, full_text, f"bad weekday range {match.group(1)!r}") from e
        rest = rest[match.end():].strip()

    if rest.startswith("24/7"):
        rest = rest[4:].strip()
    else:
        match = TIMES_RE.match(rest)
        if match:
            intervals = _parse_times(match.group(1), key, full_text)
            rest = rest[match.end():].strip()

    match = MODIFIER_RE.match(rest)
    if match:
        off = match.group(1).lower() in ("off", "closed")
        rest = rest[match.end():].strip()

    # "Mo-Fr 08:00-18:00, Sa 08:00-13:00" - an additional rule after a comma
    additional: List[HoursRule] = []
    if rest.startswith(","):
        additional = _parse_rule(rest[1:], key, full_text)
        rest = ""

    if rest:
        raise MalformedTag(key, full_text, f"unexpected {rest!r}")

    if holidays_only:
        # Nothing selects these days without a holiday calendar
        return additional

    rule = HoursRule(
        weekdays=weekdays,
        months=months,
        intervals=intervals,
        date_range=date_range,
        off=off,
    )
    return [rule] + additional


def _expand_range(names: List[str], first: str, last: str) -> List[int]:
    """Indices from first to last inclusive, wrapping around the end"""
    start = names.index(first)
    end = names.index(last)
    if end >= start:
        return list(range(start, end + 1))
    return list(range(start, len(names))) + list(range(0, end + 1))


def _parse_weekdays(selector: str) -> Tuple[FrozenSet[int], bool]:
    days = set()
    has_holiday = False
    for item in selector.split(","):
        item = item.strip()
        if item in ("PH", "SH"):
            has_holiday = True
            continue
        if "-" in item:
            first, last = [s.strip() for s in item.split("-")]
            days.update(_expand_range(WEEKDAYS, first, last))
        else:
            days.add(WEEKDAYS.index(item))
    return frozenset(days), has_holiday and not days


def _parse_months(selector: str) -> FrozenSet[int]:
    months = set()
    for item in selector.split(","):
        item = item.strip()
        if "-" in item:
            first, last = [s.strip() for s in item.split("-")]
            months.update(m + 1 for m in _expand_range(MONTHS, first, last))
        else:
            months.add(MONTHS.index(item) + 1)
    return frozenset(months)


def _parse_times(selector: str, key: str, full_text: str) -> Tuple[Tuple[int, int], ...]:
    intervals = []
    for item in selector.split(","):
        start_text, end_text = [s.strip() for s in item.split("-")]
        start = _parse_time(start_text, key, full_text)
        end = _parse_time(end_text, key, full_text)
        if start >= MINUTES_PER_DAY:
            raise MalformedTag(key, full_text, f"range starts at {start_text}")
        if end <= start:
            end += MINUTES_PER_DAY
        intervals.append((start, end))
    return tuple(intervals)


def _parse_time(text: str, key: str, full_text: str) -> int:
    hours, _, minutes = text.partition(":")
    hour = int(hours)
    minute = int(minutes) if minutes else 0
    if hour > 24 or minute > 59 or (hour == 24 and minute):
        raise MalformedTag(key, full_text, f"invalid time {text}")
    return hour * 60 + minute


def _parse_date_range(match: "re.Match", key: str, full_text: str) -> DateRange:
    start_year, start_month, start_day, end_year, end_month, end_day = match.groups()
    try:
        start = date(int(start_year), MONTHS.index(start_month) + 1, int(start_day))
        end = date(int(end_year or start_year), MONTHS.index(end_month) + 1, int(end_day))
    except ValueError as e:
        raise MalformedTag(key, full_text, str(e)) from e
    if end < start:
        raise MalformedTag(key, full_text, "date range ends before it starts")
    return DateRange(start=start, end=end)
