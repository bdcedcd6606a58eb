import pytest

from cadence.core.errors import ValidationError
from cadence.core.models import IntervalUnit, RecurrenceKind
from cadence.lib.parsing import format_weekdays, parse_kind, parse_unit, parse_weekdays


def test_parse_weekday_names():
    assert parse_weekdays("sat,sun") == frozenset({6, 0})
    assert parse_weekdays("Monday Wednesday") == frozenset({1, 3})


def test_parse_weekday_numbers():
    assert parse_weekdays("0,6") == frozenset({0, 6})


def test_parse_weekday_out_of_range():
    with pytest.raises(ValidationError):
        parse_weekdays("7")


def test_parse_weekday_unknown():
    with pytest.raises(ValidationError):
        parse_weekdays("funday")


def test_format_weekdays_sorted_from_sunday():
    assert format_weekdays(frozenset({6, 0, 3})) == "sun,wed,sat"


def test_parse_unit_aliases():
    assert parse_unit("w") == IntervalUnit.WEEKS
    assert parse_unit("Months") == IntervalUnit.MONTHS
    with pytest.raises(ValidationError):
        parse_unit("fortnights")


def test_parse_kind():
    assert parse_kind("fixed") == RecurrenceKind.FIXED_SCHEDULE
    assert parse_kind("after") == RecurrenceKind.AFTER_COMPLETION
    with pytest.raises(ValidationError):
        parse_kind("sometimes")
