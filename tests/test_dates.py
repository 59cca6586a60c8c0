from datetime import date, datetime

import pytest

from app.shared.utils.dates import (
    get_week_key,
    get_weeks_of_month,
    local_day_bounds_utc,
    months_between,
    next_working_day,
    parse_date,
    percent_change,
    previous_period,
)


def test_parse_date_formats():
    assert parse_date("2024-05-10") == date(2024, 5, 10)
    assert parse_date("2024-05-10T03:00:00.000Z") == date(2024, 5, 10)
    assert parse_date("10/05/2024") == date(2024, 5, 10)
    assert parse_date(datetime(2024, 5, 10, 23, 59)) == date(2024, 5, 10)
    assert parse_date("") is None
    assert parse_date(None) is None


def test_parse_date_invalid():
    with pytest.raises(ValueError):
        parse_date("no es fecha")


def test_weeks_of_month_cover_whole_month():
    weeks = get_weeks_of_month(2024, 5)
    # 1 de mayo de 2024 es miércoles
    assert weeks[0]["week_key"] == "2024-04-29"
    assert weeks[-1]["end_date"] == date(2024, 6, 2)
    assert len(weeks) == 5
    assert all(w["start_date"].weekday() == 0 for w in weeks)


def test_week_key_is_monday():
    assert get_week_key(date(2024, 5, 12)) == "2024-05-06"
    assert get_week_key(date(2024, 5, 6)) == "2024-05-06"


def test_next_working_day_skips_sunday():
    assert next_working_day(date(2024, 5, 10)) == date(2024, 5, 11)
    assert next_working_day(date(2024, 5, 11)) == date(2024, 5, 13)


def test_previous_period_same_length():
    assert previous_period(date(2024, 5, 1), date(2024, 5, 31)) == (date(2024, 3, 31), date(2024, 4, 30))


def test_local_day_bounds_in_utc():
    start, end = local_day_bounds_utc(date(2024, 5, 10))
    assert start == datetime(2024, 5, 10, 3, 0)
    assert end == datetime(2024, 5, 11, 3, 0)


def test_months_between_and_percent_change():
    assert months_between(datetime(2024, 1, 15), datetime(2024, 1, 20)) == 1
    assert months_between(datetime(2024, 1, 15), datetime(2024, 4, 20)) == 3
    assert percent_change(150, 100) == 50.0
    assert percent_change(10, 0) is None
