"""Day-of-game calendar helpers.

The engine counts time in absolute days (``total_day``, 0-indexed from
January 1st of year 1). Every other calendar field is derived from it.
"""
from __future__ import annotations

from dataclasses import dataclass

from farmsim.core.types import Season

DAYS_PER_YEAR = 365
MAX_YEARS = 30
# March 1st of year 1; the game opens at the start of spring.
STARTING_DAY = 59

# Day-of-year (1-based) on which each month starts; index 0 is unused.
MONTH_START_DAYS: tuple[int, ...] = (0, 1, 32, 60, 91, 121, 152, 182, 213, 244, 274, 305, 335)

MONTH_NAMES: tuple[str, ...] = (
    "",
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

_SEASON_BY_MONTH: dict[int, Season] = {
    1: "winter",
    2: "winter",
    3: "spring",
    4: "spring",
    5: "spring",
    6: "summer",
    7: "summer",
    8: "summer",
    9: "fall",
    10: "fall",
    11: "fall",
    12: "winter",
}


@dataclass(frozen=True, slots=True)
class CalendarDate:
    """Calendar position derived from an absolute day count."""

    day: int
    month: int
    season: Season
    year: int
    total_day: int

    @property
    def day_of_month(self) -> int:
        return self.day - MONTH_START_DAYS[self.month] + 1

    def describe(self) -> str:
        """Return a display string such as ``March 1, Year 1 (Spring)``."""
        return (
            f"{MONTH_NAMES[self.month]} {self.day_of_month}, Year {self.year} "
            f"({season_name(self.season)})"
        )


def calendar_for_day(total_day: int) -> CalendarDate:
    """Convert an absolute day count into a CalendarDate."""
    if total_day < 0:
        raise ValueError("total_day must be non-negative.")
    year = total_day // DAYS_PER_YEAR + 1
    day = total_day % DAYS_PER_YEAR + 1
    month = 12
    for candidate in range(12, 0, -1):
        if day >= MONTH_START_DAYS[candidate]:
            month = candidate
            break
    return CalendarDate(day=day, month=month, season=_SEASON_BY_MONTH[month], year=year, total_day=total_day)


def is_final_day_reached(total_day: int) -> bool:
    return total_day >= MAX_YEARS * DAYS_PER_YEAR


def is_year_end(total_day: int) -> bool:
    """Return True when ``total_day`` is December 31st."""
    return (total_day + 1) % DAYS_PER_YEAR == 0


def is_season_change(previous_day: int, current_day: int) -> bool:
    return calendar_for_day(previous_day).season != calendar_for_day(current_day).season


def season_name(season: Season) -> str:
    return season.capitalize()


def month_name(month: int) -> str:
    if not 1 <= month <= 12:
        return ""
    return MONTH_NAMES[month]


def in_planting_window(month: int, start_month: int, end_month: int) -> bool:
    """Return True when ``month`` lies in the (possibly year-wrapping) window."""
    if start_month <= end_month:
        return start_month <= month <= end_month
    return month >= start_month or month <= end_month
