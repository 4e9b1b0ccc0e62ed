"""Tick scheduler: turns wall-clock time into simulated days."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from farmsim.config import EngineConfig
from farmsim.core.calendar import calendar_for_day, is_final_day_reached, is_season_change, is_year_end, season_name
from farmsim.core.types import VALID_SPEEDS
from farmsim.domain.climate import ClimateScenario
from farmsim.domain.panels import ActivePanel, ThresholdPanel
from farmsim.domain.state import GameState
from farmsim.domain.weather import DailyWeather, apply_extreme_events, generate_daily_weather
from farmsim.services import modifiers
from farmsim.services.autopause_service import AutoPauseService
from farmsim.services.event_service import EventService
from farmsim.services.ledger_service import LedgerService
from farmsim.services.persistence_service import PersistenceService
from farmsim.services.results import CommandResult
from farmsim.services.soil_service import SoilService

logger = logging.getLogger(__name__)

# Longest wall-clock slice honoured per advance() call, in seconds.
MAX_FRAME_SECONDS = 0.1


@dataclass(slots=True)
class TickReport:
    day: int
    weather: DailyWeather | None = None
    panel: ActivePanel | None = None


class ClockService:
    """Runs ticks in the fixed order weather, soil, ledger, events, auto-pause."""

    def __init__(
        self,
        *,
        scenario: ClimateScenario,
        soil: SoilService,
        ledger: LedgerService,
        events: EventService,
        autopause: AutoPauseService,
        config: EngineConfig,
        persistence: PersistenceService | None = None,
    ) -> None:
        self._scenario = scenario
        self._soil = soil
        self._ledger = ledger
        self._events = events
        self._autopause = autopause
        self._config = config
        self._persistence = persistence
        self._accumulator = 0.0

    def reset(self) -> None:
        self._accumulator = 0.0

    def set_speed(self, state: GameState, speed: object) -> CommandResult:
        if isinstance(speed, bool) or speed not in VALID_SPEEDS:
            return CommandResult.rejected("invalid_speed", f"Speed must be one of {list(VALID_SPEEDS)}.")
        if speed == 0:
            state.speed = 0
            self._accumulator = 0.0
            return CommandResult.ok("Paused.")
        if state.game_over is not None:
            return CommandResult.rejected("game_over", "The game is over.")
        if state.active_panel is not None:
            return CommandResult.rejected("panel_active", "Respond to the open panel before resuming.")
        state.speed = int(speed)
        return CommandResult.ok(f"Speed set to {speed}x.")

    def advance(self, state: GameState, real_seconds: float) -> int:
        """Run the ticks owed for ``real_seconds`` of play; returns how many ran."""
        if state.speed == 0 or state.active_panel is not None or state.game_over is not None:
            self._accumulator = 0.0
            return 0
        frame = min(max(real_seconds, 0.0), MAX_FRAME_SECONDS)
        self._accumulator += frame * self._config.base_ticks_per_second * state.speed
        owed = int(self._accumulator)
        self._accumulator -= owed
        return self._run(state, owed)

    def step(self, state: GameState, ticks: int) -> int:
        """Run up to ``ticks`` days immediately, stopping at the first panel."""
        if state.active_panel is not None or state.game_over is not None:
            return 0
        return self._run(state, max(0, ticks))

    def _run(self, state: GameState, ticks: int) -> int:
        ran = 0
        for _ in range(ticks):
            report = self.tick(state)
            ran += 1
            if report.panel is not None or state.active_panel is not None:
                self._accumulator = 0.0
                break
        return ran

    def tick(self, state: GameState) -> TickReport:
        """Simulate one day."""
        next_day = state.calendar.total_day + 1
        if is_final_day_reached(next_day):
            self._autopause.raise_game_over(
                state,
                "year_30",
                f"You completed 30 years of farming! Final cash: ${state.ledger.cash}.",
            )
            return TickReport(day=state.calendar.total_day, panel=self._autopause.surface(state))

        weather = generate_daily_weather(self._scenario, next_day, state.rng)
        apply_extreme_events(state.weather, weather, self._scenario, next_day, state.rng)
        state.weather.last = weather

        previous_day = state.calendar.total_day
        state.calendar = calendar_for_day(next_day)
        season_changed = is_season_change(previous_day, next_day)
        if season_changed:
            state.water_stress_paused_this_season = False
            self._notify(state, "season_change", f"{season_name(state.calendar.season)} - Year {state.calendar.year}")
        modifiers.expire_effects(state)

        field_report = self._soil.simulate_day(state, weather, self._scenario)
        if field_report.any_harvest_ready:
            self._autopause.queue_threshold(
                state,
                ThresholdPanel(reason="harvest_ready", message="Your crops are ready to harvest!"),
            )
        if field_report.any_water_stress and not state.water_stress_paused_this_season:
            state.water_stress_paused_this_season = True
            self._autopause.queue_threshold(
                state,
                ThresholdPanel(reason="water_stress", message="Some of your crops need water!"),
            )

        self._run_ledger(state)
        if state.game_over is None:
            self._events.evaluate(state)

        panel = self._autopause.surface(state)
        if season_changed and self._persistence is not None:
            self._autosave(state)
        logger.debug("Tick %s done (cash=%s)", next_day, state.ledger.cash)
        return TickReport(day=next_day, weather=weather, panel=panel)

    def _run_ledger(self, state: GameState) -> None:
        accrual = self._ledger.accrue_daily(state)
        if accrual.matured_loans:
            self._notify(state, "loan", f"Your loan reached the end of its term. ${accrual.amount_due} was due.")
        if accrual.game_over_reason is not None:
            self._autopause.raise_game_over(
                state,
                accrual.game_over_reason,
                f"Your debt has exceeded ${self._config.loan_debt_cap}. The bank has foreclosed on your farm.",
            )

        if is_year_end(state.calendar.total_day):
            maintenance = self._soil.advance_perennial_year(state)
            self._ledger.charge(state, maintenance)
            summary = self._ledger.year_end_summary(state)
            self._autopause.queue_threshold(
                state,
                ThresholdPanel(
                    reason="year_end",
                    message=f"Year {state.calendar.year} is complete.",
                    details=summary,
                ),
            )
            self._ledger.reset_yearly(state)

        if state.game_over is not None:
            return
        if not self._ledger.update_insolvency(state):
            return
        if self._ledger.can_offer_loan(state):
            self._autopause.offer_loan(state, self._ledger.build_loan_offer(state))
        else:
            self._autopause.raise_game_over(
                state,
                "bankruptcy",
                "You've run out of money again. With an outstanding loan, the bank can no longer help.",
            )

    def _autosave(self, state: GameState) -> None:
        assert self._persistence is not None
        try:
            self._persistence.autosave(state)
        except OSError as exc:
            logger.warning("Autosave failed on day %s: %s", state.calendar.total_day, exc)

    def _notify(self, state: GameState, kind, message: str) -> None:
        state.add_notification(kind, message, self._config.notification_limit)
