from farmsim.core.calendar import MAX_YEARS
from farmsim.core.rng import RNG
from farmsim.domain.climate import (
    ClimateScenario,
    SeasonParams,
    YearClimate,
    build_baseline_scenario,
    build_year,
)
from farmsim.domain.weather import (
    WeatherState,
    apply_extreme_events,
    generate_daily_weather,
)
from tests.helpers.farm_builders import make_weather


def _build_scenario(params: SeasonParams) -> ClimateScenario:
    seasons = {season: params for season in ("spring", "summer", "fall", "winter")}
    return ClimateScenario(id="test", name="Test", years=[YearClimate(year=1, seasons=seasons, chill_hours=800.0)])


def test_baseline_covers_every_year() -> None:
    scenario = build_baseline_scenario()

    assert scenario.id == "baseline"
    assert len(scenario.years) == MAX_YEARS
    assert scenario.params_for(MAX_YEARS + 5, "summer") == scenario.years[-1].seasons["summer"]


def test_year_three_has_dry_summer() -> None:
    normal = build_year(2).seasons["summer"]
    dry = build_year(3).seasons["summer"]

    assert dry.avg_temp_high > normal.avg_temp_high
    assert dry.precip_probability < normal.precip_probability
    assert dry.heatwave_probability == 0.4


def test_chill_hours_decline_over_time() -> None:
    scenario = build_baseline_scenario()

    assert scenario.chill_hours_for(1) == 800.0
    assert scenario.chill_hours_for(10) == 700.0
    assert scenario.chill_hours_for(20) == 630.0
    assert scenario.chill_hours_for(30) == 570.0


def test_generated_weather_is_deterministic() -> None:
    scenario = build_baseline_scenario()
    rng_a = RNG(99)
    rng_b = RNG(99)

    days_a = [generate_daily_weather(scenario, day, rng_a) for day in range(59, 89)]
    days_b = [generate_daily_weather(scenario, day, rng_b) for day in range(59, 89)]

    assert days_a == days_b


def test_generated_weather_bounds() -> None:
    scenario = build_baseline_scenario()
    rng = RNG(7)
    params = scenario.params_for(1, "summer")

    for day in range(151, 243):
        weather = generate_daily_weather(scenario, day, rng)
        assert weather.temp_low <= weather.temp_high - 5
        assert abs(weather.temp_high - params.avg_temp_high) <= params.temp_variance
        assert params.avg_et0 * 0.85 <= weather.et0 <= params.avg_et0 * 1.15
        assert weather.precipitation >= 0.0


def test_heatwave_starts_and_continues() -> None:
    scenario = _build_scenario(SeasonParams(heatwave_probability=90.0))
    state = WeatherState()
    rng = RNG(1)

    first = make_weather(high=90.0)
    apply_extreme_events(state, first, scenario, 100, rng)

    assert first.is_heatwave
    assert first.temp_high == 100.0
    assert 2 <= state.heatwave_days_remaining <= 4

    remaining = state.heatwave_days_remaining
    second = make_weather(high=90.0)
    apply_extreme_events(state, second, scenario, 101, rng)

    assert second.is_heatwave
    assert state.heatwave_days_remaining == remaining - 1


def test_frost_caps_low_temperature() -> None:
    scenario = _build_scenario(SeasonParams(frost_probability=90.0))
    state = WeatherState()
    weather = make_weather(high=60.0, low=45.0)

    apply_extreme_events(state, weather, scenario, 10, RNG(2))

    assert weather.is_frost
    assert weather.temp_low == 32.0
    assert not weather.is_heatwave


def test_no_extremes_when_probability_zero() -> None:
    scenario = _build_scenario(SeasonParams())
    state = WeatherState()
    rng = RNG(3)

    for day in range(30):
        weather = make_weather()
        apply_extreme_events(state, weather, scenario, day, rng)
        assert not weather.is_heatwave
        assert not weather.is_frost
