"""Deterministic 30-year climate track used to drive daily weather."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, List

from farmsim.core.calendar import MAX_YEARS
from farmsim.core.types import Season

# Scenario tuning:
# - Temperatures warm by 0.1°F per year across the whole track.
# - Year 3 carries a dry, hot summer so early players meet water stress.
# - From year 10 summers see slightly more heatwaves.
# - Winter chill declines in steps, which eventually starves almonds.
WARMING_PER_YEAR = 0.1
DRY_SUMMER_YEARS = frozenset({3})
EXTRA_HEAT_FROM_YEAR = 10


@dataclass(frozen=True, slots=True)
class SeasonParams:
    """Seasonal averages that daily weather is drawn around."""

    avg_temp_high: float = 75.0
    avg_temp_low: float = 50.0
    temp_variance: float = 8.0
    precip_probability: float = 0.05
    precip_intensity: float = 0.3
    avg_et0: float = 0.2
    heatwave_probability: float = 0.0
    frost_probability: float = 0.0


@dataclass(frozen=True, slots=True)
class YearClimate:
    year: int
    seasons: Dict[Season, SeasonParams]
    chill_hours: float


@dataclass(frozen=True, slots=True)
class ClimateScenario:
    """A named climate track covering every playable year."""

    id: str
    name: str
    years: List[YearClimate]

    def params_for(self, year: int, season: Season) -> SeasonParams:
        index = max(0, min(year - 1, len(self.years) - 1))
        return self.years[index].seasons[season]

    def chill_hours_for(self, year: int) -> float:
        index = max(0, min(year - 1, len(self.years) - 1))
        return self.years[index].chill_hours


def _chill_hours(year: int) -> float:
    if year <= 5:
        return 800.0
    if year <= 15:
        return 700.0
    if year <= 25:
        return 630.0
    return 570.0


def build_year(year: int) -> YearClimate:
    """Return the climate parameters for a single year of the baseline track."""
    warming = (year - 1) * WARMING_PER_YEAR
    dry_summer = year in DRY_SUMMER_YEARS
    extra_heat = 0.02 if year >= EXTRA_HEAT_FROM_YEAR else 0.0
    base = SeasonParams()
    seasons: Dict[Season, SeasonParams] = {
        "spring": replace(
            base,
            avg_temp_high=75 + warming,
            avg_temp_low=48 + warming,
            temp_variance=10,
            precip_probability=0.12,
            precip_intensity=0.4,
            avg_et0=0.18,
            frost_probability=0.05 if year <= 5 else 0.02,
        ),
        "summer": replace(
            base,
            avg_temp_high=(102 if dry_summer else 97) + warming,
            avg_temp_low=63 + warming,
            temp_variance=6,
            precip_probability=0.01 if dry_summer else 0.03,
            precip_intensity=0.2,
            avg_et0=0.35 if dry_summer else 0.30,
            heatwave_probability=0.4 if dry_summer else 0.1 + extra_heat,
        ),
        "fall": replace(
            base,
            avg_temp_high=78 + warming,
            avg_temp_low=50 + warming,
            temp_variance=12,
            precip_probability=0.08,
            precip_intensity=0.5,
            avg_et0=0.15,
        ),
        "winter": replace(
            base,
            avg_temp_high=57 + warming,
            avg_temp_low=38 + warming,
            temp_variance=8,
            precip_probability=0.20,
            precip_intensity=0.6,
            avg_et0=0.08,
            frost_probability=0.15 if year <= 15 else 0.08,
        ),
    }
    return YearClimate(year=year, seasons=seasons, chill_hours=_chill_hours(year))


def build_baseline_scenario() -> ClimateScenario:
    """Return the default "Gradual Challenge" climate track."""
    return ClimateScenario(
        id="baseline",
        name="Gradual Challenge",
        years=[build_year(year) for year in range(1, MAX_YEARS + 1)],
    )
