from datetime import date

import pytest

from habitual.core.errors import ValidationError
from habitual.lib.dates import parse_due_date, parse_weekdays, require_date

FRIDAY = date(2024, 1, 5)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("today", FRIDAY),
        ("Yesterday", date(2024, 1, 4)),
        ("tomorrow", date(2024, 1, 6)),
        ("mon", date(2024, 1, 8)),
        ("friday", FRIDAY),
        ("2024-02-29", date(2024, 2, 29)),
    ],
)
def test_parse_due_date(text, expected):
    assert parse_due_date(text, today=FRIDAY) == expected


def test_time_only_is_not_a_date():
    assert parse_due_date("12:30", today=FRIDAY) is None


def test_require_date_rejects_garbage():
    with pytest.raises(ValidationError):
        require_date("someday soon", today=FRIDAY)


def test_weekdays_are_sunday_first():
    assert parse_weekdays("mon,wed") == [1, 3]
    assert parse_weekdays("sunday, sat") == [0, 6]
    assert parse_weekdays("1,3") == [1, 3]


def test_unknown_weekday():
    with pytest.raises(ValidationError):
        parse_weekdays("funday")
