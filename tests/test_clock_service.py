from pathlib import Path

import pytest

from farmsim.config import EngineConfig
from farmsim.core.calendar import DAYS_PER_YEAR, MAX_YEARS
from farmsim.domain.panels import EventPanel, GameOverPanel, LoanOfferPanel, ThresholdPanel
from farmsim.domain.state import ActiveEffect, Loan
from farmsim.services.slot_store import InMemorySlotStorage
from tests.helpers.farm_builders import build_services, build_state, place_crop, set_day, write_definitions


def _quiet_services(tmp_path: Path):
    return build_services(write_definitions(tmp_path, {}))


@pytest.mark.parametrize("speed", [3, -1, True, "1", None])
def test_set_speed_rejects_invalid_values(speed: object) -> None:
    services = build_services()
    state = build_state()

    result = services.clock.set_speed(state, speed)

    assert result.reason == "invalid_speed"
    assert state.speed == 0


def test_set_speed_blocked_by_panel_but_pause_allowed() -> None:
    services = build_services()
    state = build_state()
    state.active_panel = ThresholdPanel(reason="year_end", message="Done.")

    assert services.clock.set_speed(state, 2).reason == "panel_active"
    assert services.clock.set_speed(state, 0).success

    services.autopause.raise_game_over(state, "bankruptcy", "Broke.")
    assert services.clock.set_speed(state, 1).reason == "game_over"


def test_advance_when_paused_runs_nothing() -> None:
    services = build_services()
    state = build_state()

    assert services.clock.advance(state, 1.0) == 0
    assert state.calendar.total_day == 59


def test_advance_converts_real_time_to_ticks(tmp_path: Path) -> None:
    services = _quiet_services(tmp_path)
    state = build_state()
    assert services.clock.set_speed(state, 1).success

    assert services.clock.advance(state, 0.1) == 1
    assert services.clock.advance(state, 0.05) == 0
    assert services.clock.advance(state, 0.05) == 1
    assert state.calendar.total_day == 61


def test_advance_caps_long_frames(tmp_path: Path) -> None:
    services = _quiet_services(tmp_path)
    state = build_state()
    services.clock.set_speed(state, 4)

    assert services.clock.advance(state, 10.0) == 4


def test_step_advances_days_regardless_of_speed(tmp_path: Path) -> None:
    services = _quiet_services(tmp_path)
    state = build_state()

    assert services.clock.step(state, 10) == 10
    assert state.calendar.total_day == 69
    assert state.weather.last is not None
    assert state.ledger.cash == 50000


def test_step_blocked_while_panel_open() -> None:
    services = build_services()
    state = build_state()
    state.active_panel = ThresholdPanel(reason="year_end", message="Done.")

    assert services.clock.step(state, 5) == 0
    assert state.calendar.total_day == 59


def test_season_change_notifies(tmp_path: Path) -> None:
    services = _quiet_services(tmp_path)
    state = build_state()
    set_day(state, 150)
    state.water_stress_paused_this_season = True

    services.clock.tick(state)

    assert state.calendar.season == "summer"
    assert not state.water_stress_paused_this_season
    assert state.notifications[-1].kind == "season_change"
    assert state.notifications[-1].message == "Summer - Year 1"


def test_effects_expire_on_their_day(tmp_path: Path) -> None:
    services = _quiet_services(tmp_path)
    state = build_state()
    state.active_effects.append(ActiveEffect(kind="irrigation_cost", value=2.0, expires_on_day=60, source_event_id="x"))
    state.active_effects.append(ActiveEffect(kind="irrigation_cost", value=2.0, expires_on_day=61, source_event_id="y"))

    services.clock.tick(state)

    assert [effect.source_event_id for effect in state.active_effects] == ["y"]


def test_harvest_ready_pauses(tmp_path: Path) -> None:
    services = _quiet_services(tmp_path)
    state = build_state()
    state.speed = 2
    place_crop(state, 0, 0, "processing_tomatoes", gdd_accumulated=2600.0)

    report = services.clock.tick(state)

    assert isinstance(report.panel, ThresholdPanel)
    assert report.panel.reason == "harvest_ready"
    assert state.speed == 0


def test_water_stress_pauses_once_per_season(tmp_path: Path) -> None:
    services = _quiet_services(tmp_path)
    state = build_state()
    place_crop(state, 0, 0, "processing_tomatoes")
    state.grid[0][0].soil.moisture = 0.0

    first = services.clock.tick(state)
    assert isinstance(first.panel, ThresholdPanel)
    assert first.panel.reason == "water_stress"
    assert services.autopause.resolve(state, "dismiss").success

    state.grid[0][0].soil.moisture = 0.0
    second = services.clock.tick(state)

    assert second.panel is None
    assert state.water_stress_paused_this_season


def test_year_end_summary_and_perennial_aging() -> None:
    services = build_services()
    state = build_state()
    set_day(state, DAYS_PER_YEAR - 2)
    crop = place_crop(state, 0, 0, "almonds", is_perennial=True, perennial_age=2)
    state.ledger.yearly_revenue = 1000

    report = services.clock.tick(state)

    assert isinstance(report.panel, ThresholdPanel)
    assert report.panel.reason == "year_end"
    assert report.panel.details["year"] == 1
    assert report.panel.details["revenue"] == 1000
    assert report.panel.details["expenses"] == 200
    assert crop.perennial_age == 3
    assert crop.established
    assert state.ledger.cash == 49800
    assert state.ledger.yearly_revenue == 0


def test_insolvency_offers_loan(tmp_path: Path) -> None:
    services = _quiet_services(tmp_path)
    state = build_state(cash=-100)

    report = services.clock.tick(state)

    assert isinstance(report.panel, LoanOfferPanel)
    assert report.panel.amount == 6000


def test_insolvency_after_loan_is_bankruptcy(tmp_path: Path) -> None:
    services = _quiet_services(tmp_path)
    state = build_state(cash=-100)
    state.ledger.loans_taken = 1

    report = services.clock.tick(state)

    assert isinstance(report.panel, GameOverPanel)
    assert report.panel.reason == "bankruptcy"
    assert services.clock.step(state, 1) == 0


def test_hard_floor_inside_grace_offers_loan_first(tmp_path: Path) -> None:
    services = build_services(write_definitions(tmp_path, {}), config=EngineConfig(bankruptcy_grace_days=5))
    state = build_state(cash=-30000)

    services.clock.step(state, 1)

    assert state.game_over is None
    assert isinstance(state.active_panel, LoanOfferPanel)
    assert state.active_panel.amount == 35000


def test_debt_cap_is_game_over(tmp_path: Path) -> None:
    services = _quiet_services(tmp_path)
    state = build_state()
    state.ledger.loans.append(Loan(principal=100000, interest_rate=0.1, balance=100000.0, remaining_term=1000))

    report = services.clock.tick(state)

    assert isinstance(report.panel, GameOverPanel)
    assert report.panel.reason == "debt_spiral"


def test_final_day_ends_game_without_advancing() -> None:
    services = build_services()
    state = build_state()
    last_day = MAX_YEARS * DAYS_PER_YEAR - 1
    set_day(state, last_day)

    report = services.clock.tick(state)

    assert isinstance(report.panel, GameOverPanel)
    assert report.panel.reason == "year_30"
    assert state.calendar.total_day == last_day


def test_same_seed_same_history() -> None:
    services_a = build_services()
    services_b = build_services()
    state_a = build_state(seed=7)
    state_b = build_state(seed=7)
    for state in (state_a, state_b):
        place_crop(state, 0, 0, "silage_corn")

    services_a.clock.step(state_a, 60)
    services_b.clock.step(state_b, 60)

    assert state_a.calendar == state_b.calendar
    assert state_a.weather.last == state_b.weather.last
    assert state_a.grid[0][0].soil == state_b.grid[0][0].soil
    assert state_a.rng == state_b.rng
    assert state_a.event_rng == state_b.event_rng


@pytest.mark.parametrize("speed", [1, 2, 4])
def test_idle_farm_keeps_cash_for_three_years(speed: int) -> None:
    services = build_services()
    state = build_state()
    last_day = state.calendar.total_day + 3 * DAYS_PER_YEAR
    assert services.clock.set_speed(state, speed).success

    while state.calendar.total_day < last_day:
        services.clock.advance(state, 0.1)
        panel = state.active_panel
        if panel is None:
            continue
        assert not isinstance(panel, (GameOverPanel, LoanOfferPanel))
        response = None
        if isinstance(panel, EventPanel):
            event_def = services.events_repo.get(panel.event_id)
            response = next(
                choice.id
                for choice in event_def.choices
                if all(effect.type != "modify_cash" for effect in choice.effects)
            )
        assert services.autopause.resolve(state, response).success
        assert services.clock.set_speed(state, speed).success

    assert state.ledger.cash == 50000
    assert state.ledger.loans == []


def test_season_change_writes_autosave(tmp_path: Path) -> None:
    services = build_services(write_definitions(tmp_path, {}), storage=InMemorySlotStorage())
    persistence = services.persistence
    assert persistence is not None
    state = build_state()

    services.clock.step(state, 91)
    assert not persistence.has_autosave()

    services.clock.step(state, 1)
    assert state.calendar.season == "summer"
    assert persistence.has_autosave()
    assert persistence.load_autosave() == state
    assert persistence.list_slots() == []


class _ReadOnlyStorage(InMemorySlotStorage):
    def write_slot(self, slot_id, record) -> None:
        raise PermissionError(13, "Read-only file system")


def test_failed_autosave_does_not_stop_the_clock(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    services = build_services(write_definitions(tmp_path, {}), storage=_ReadOnlyStorage())
    state = build_state()

    with caplog.at_level("WARNING", logger="farmsim.services.clock_service"):
        assert services.clock.step(state, 100) == 100

    assert state.calendar.season == "summer"
    assert "Autosave failed" in caplog.text
