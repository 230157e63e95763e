from datetime import datetime

import pytest

from planes.exceptions import MalformedTag
from planes.parking.opening_hours import parse_opening_hours

from conftest import MONDAY_MORNING, SUNDAY_NOON


def test_weekday_range_with_hours():
    span = parse_opening_hours("Mo-Fr 08:00-18:00")
    assert span.contains(MONDAY_MORNING)
    assert span.contains(datetime(2025, 6, 2, 8, 0))
    assert not span.contains(datetime(2025, 6, 2, 18, 0))
    assert not span.contains(SUNDAY_NOON)


def test_always_open():
    span = parse_opening_hours("24/7")
    assert span.contains(MONDAY_MORNING)
    assert span.contains(SUNDAY_NOON)
    assert span.contains(datetime(2025, 12, 31, 23, 59))


def test_range_past_midnight_spills_into_next_day():
    span = parse_opening_hours("22:00-06:00")
    assert span.contains(datetime(2025, 6, 3, 23, 0))
    assert span.contains(datetime(2025, 6, 3, 5, 0))
    assert not span.contains(datetime(2025, 6, 3, 12, 0))


def test_spill_over_comes_from_rule_deciding_previous_day():
    span = parse_opening_hours("Mo-Fr 22:00-06:00; Fr 10:00-12:00")
    # Tuesday 03:00, Monday night still running
    assert span.contains(datetime(2025, 6, 3, 3, 0))
    # Saturday 03:00, Friday is decided by the 10:00-12:00 rule
    assert not span.contains(datetime(2025, 6, 7, 3, 0))
    assert span.contains(datetime(2025, 6, 6, 11, 0))
    assert not span.contains(datetime(2025, 6, 6, 23, 0))


def test_later_rule_overrides_day():
    span = parse_opening_hours("Mo-Fr 08:00-18:00; We off")
    assert span.contains(MONDAY_MORNING)
    assert not span.contains(datetime(2025, 6, 4, 9, 30))


def test_public_holiday_rule_is_accepted_but_never_matches():
    span = parse_opening_hours("Mo-Fr 08:00-18:00; PH off")
    assert len(span.rules) == 1
    assert span.contains(MONDAY_MORNING)


def test_month_selector():
    span = parse_opening_hours("Jun-Aug Sa,Su 10:00-20:00")
    assert span.contains(SUNDAY_NOON)
    assert not span.contains(datetime(2025, 9, 7, 12, 0))


def test_absolute_date_range():
    span = parse_opening_hours("2025 Jun 01-2025 Jun 30 Mo-Fr 07:00-19:00")
    assert span.is_absolute
    assert span.contains(MONDAY_MORNING)
    assert not span.contains(datetime(2025, 7, 7, 9, 30))


def test_hour_only_times_and_lists():
    span = parse_opening_hours("Mo-Fr 9-12,14-18")
    assert not span.contains(datetime(2025, 6, 2, 13, 0))
    assert span.contains(datetime(2025, 6, 2, 15, 0))


def test_comma_separated_additional_rule():
    span = parse_opening_hours("Mo-Fr 08:00-18:00, Sa 08:00-13:00")
    assert span.contains(datetime(2025, 6, 7, 10, 0))
    assert not span.contains(datetime(2025, 6, 7, 14, 0))


def test_weekday_range_wraps_around_week():
    span = parse_opening_hours("Fr-Mo 10:00-12:00")
    assert span.contains(datetime(2025, 6, 1, 11, 0))
    assert not span.contains(datetime(2025, 6, 4, 11, 0))


@pytest.mark.parametrize("text", [
    "",
    "stay < 2 hours",
    "Mo-Fr 25:00-26:00",
    "Xx 10:00-12:00",
    "Mo-Fr 08:00-18:00 sometimes",
])
def test_malformed_expressions_raise(text):
    with pytest.raises(MalformedTag):
        parse_opening_hours(text, "parking:condition:time_interval")
