"""Daily weather generation.

Each call consumes RNG draws in a fixed order, so the weather stream is
reproducible as long as it is generated exactly once per simulated day.
"""
from __future__ import annotations

from dataclasses import dataclass

from farmsim.core.calendar import calendar_for_day
from farmsim.core.rng import RNG
from farmsim.domain.climate import ClimateScenario

EXTREME_EVENT_MIN_DAYS = 3
EXTREME_EVENT_MAX_DAYS = 5
HEATWAVE_TEMP_BONUS = 10.0
FROST_TEMP_CEILING = 32.0
DAYS_PER_SEASON = 90


@dataclass(slots=True)
class DailyWeather:
    temp_high: float
    temp_low: float
    precipitation: float
    et0: float
    is_heatwave: bool = False
    is_frost: bool = False

    @property
    def avg_temp(self) -> float:
        return (self.temp_high + self.temp_low) / 2


@dataclass(slots=True)
class WeatherState:
    """Multi-day extreme weather tracking plus the most recent day."""

    heatwave_days_remaining: int = 0
    frost_days_remaining: int = 0
    last: DailyWeather | None = None


def generate_daily_weather(scenario: ClimateScenario, total_day: int, rng: RNG) -> DailyWeather:
    """Draw base weather for ``total_day`` from its seasonal parameters."""
    date = calendar_for_day(total_day)
    params = scenario.params_for(date.year, date.season)

    high_variance = (rng.random() - 0.5) * 2 * params.temp_variance
    low_variance = (rng.random() - 0.5) * 2 * params.temp_variance
    temp_high = params.avg_temp_high + high_variance
    temp_low = min(params.avg_temp_low + low_variance, temp_high - 5)

    precipitation = 0.0
    if rng.chance(params.precip_probability):
        precipitation = params.precip_intensity * (0.5 + rng.random())

    et0 = params.avg_et0 * (0.85 + rng.random() * 0.3)
    return DailyWeather(temp_high=temp_high, temp_low=temp_low, precipitation=precipitation, et0=et0)


def apply_extreme_events(
    weather_state: WeatherState,
    weather: DailyWeather,
    scenario: ClimateScenario,
    total_day: int,
    rng: RNG,
) -> None:
    """Continue or roll heatwaves and frosts, adjusting ``weather`` in place."""
    date = calendar_for_day(total_day)
    params = scenario.params_for(date.year, date.season)

    if weather_state.heatwave_days_remaining > 0:
        weather_state.heatwave_days_remaining -= 1
        _apply_heatwave(weather)
    elif rng.chance(params.heatwave_probability / DAYS_PER_SEASON):
        duration = rng.randint(EXTREME_EVENT_MIN_DAYS, EXTREME_EVENT_MAX_DAYS)
        weather_state.heatwave_days_remaining = duration - 1
        _apply_heatwave(weather)

    if weather_state.frost_days_remaining > 0:
        weather_state.frost_days_remaining -= 1
        _apply_frost(weather)
    elif rng.chance(params.frost_probability / DAYS_PER_SEASON):
        duration = rng.randint(EXTREME_EVENT_MIN_DAYS, EXTREME_EVENT_MAX_DAYS)
        weather_state.frost_days_remaining = duration - 1
        _apply_frost(weather)


def _apply_heatwave(weather: DailyWeather) -> None:
    weather.is_heatwave = True
    weather.temp_high += HEATWAVE_TEMP_BONUS


def _apply_frost(weather: DailyWeather) -> None:
    weather.is_frost = True
    weather.temp_low = min(weather.temp_low, FROST_TEMP_CEILING)
