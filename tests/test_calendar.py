import pytest

from farmsim.core.calendar import (
    DAYS_PER_YEAR,
    MAX_YEARS,
    STARTING_DAY,
    calendar_for_day,
    in_planting_window,
    is_final_day_reached,
    is_season_change,
    is_year_end,
)


def test_starting_day_is_march_first_spring() -> None:
    date = calendar_for_day(STARTING_DAY)

    assert date.month == 3
    assert date.day_of_month == 1
    assert date.season == "spring"
    assert date.year == 1
    assert date.describe() == "March 1, Year 1 (Spring)"


def test_year_rollover() -> None:
    last = calendar_for_day(DAYS_PER_YEAR - 1)
    first = calendar_for_day(DAYS_PER_YEAR)

    assert (last.month, last.day_of_month, last.year) == (12, 31, 1)
    assert (first.month, first.day_of_month, first.year) == (1, 1, 2)
    assert first.season == "winter"
    assert is_year_end(DAYS_PER_YEAR - 1)
    assert not is_year_end(DAYS_PER_YEAR)


def test_season_change_detection() -> None:
    may_31 = 150
    june_1 = 151
    assert calendar_for_day(june_1).season == "summer"
    assert is_season_change(may_31, june_1)
    assert not is_season_change(june_1, june_1 + 1)


def test_final_day() -> None:
    assert not is_final_day_reached(MAX_YEARS * DAYS_PER_YEAR - 1)
    assert is_final_day_reached(MAX_YEARS * DAYS_PER_YEAR)


def test_planting_window_plain_and_wrapping() -> None:
    assert in_planting_window(10, 10, 11)
    assert not in_planting_window(3, 10, 11)
    assert in_planting_window(1, 11, 2)
    assert in_planting_window(12, 11, 2)
    assert not in_planting_window(5, 11, 2)


def test_negative_day_rejected() -> None:
    with pytest.raises(ValueError):
        calendar_for_day(-1)
