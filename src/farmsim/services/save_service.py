"""Serialization helpers for save/load."""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, get_args

from farmsim.core.calendar import DAYS_PER_YEAR, MAX_YEARS, calendar_for_day
from farmsim.core.rng import RNG, RNGStatePayload
from farmsim.core.types import GROWTH_STAGES, VALID_SPEEDS, GameOverReason, NotificationKind, ThresholdReason
from farmsim.data.repositories import CropsRepository, EventsRepository
from farmsim.domain.panels import ActivePanel, EventPanel, GameOverPanel, LoanOfferPanel, ThresholdPanel
from farmsim.domain.state import (
    GRID_COLS,
    GRID_ROWS,
    ActiveEffect,
    Cell,
    CropInstance,
    EffectKind,
    EventLogEntry,
    EventOccurrence,
    GameState,
    LedgerState,
    Loan,
    Notification,
    SoilState,
)
from farmsim.domain.weather import DailyWeather, WeatherState
from farmsim.services.errors import CorruptSaveDataError, UnsupportedFormatVersionError

SavePayload = Dict[str, Any]

_EFFECT_KINDS = get_args(EffectKind)
_NOTIFICATION_KINDS = get_args(NotificationKind)
_GAME_OVER_REASONS = get_args(GameOverReason)
_THRESHOLD_REASONS = get_args(ThresholdReason)


class SaveService:
    """Converts runtime state to/from a validated, versioned payload."""

    SAVE_VERSION = 1

    def __init__(self, *, crops_repo: CropsRepository, events_repo: EventsRepository) -> None:
        self._crops_repo = crops_repo
        self._events_repo = events_repo

    def serialize(self, state: GameState) -> SavePayload:
        """Return a JSON-serializable payload for persistence."""
        return {
            "format_version": self.SAVE_VERSION,
            "rng": state.rng.export_state(),
            "event_rng": state.event_rng.export_state(),
            "state": self._serialize_state(state),
        }

    def deserialize(self, payload: Mapping[str, Any]) -> GameState:
        """Rehydrate a GameState and both RNG streams from a persisted payload."""
        if not isinstance(payload, Mapping):
            raise CorruptSaveDataError("Save data must be a JSON object.")
        version = payload.get("format_version")
        if version != self.SAVE_VERSION:
            raise UnsupportedFormatVersionError(
                f"Save format version {version!r} is not supported (expected {self.SAVE_VERSION})."
            )
        state_payload = payload.get("state")
        if not isinstance(state_payload, Mapping):
            raise CorruptSaveDataError("Save data is missing the state section.")

        seed = self._require_int(state_payload.get("seed"), "state.seed")
        rng = self._restore_rng(seed, payload.get("rng"), "rng")
        event_rng = self._restore_rng(seed, payload.get("event_rng"), "event_rng")

        total_day = self._require_int(state_payload.get("total_day"), "state.total_day")
        if not 0 <= total_day < MAX_YEARS * DAYS_PER_YEAR:
            raise CorruptSaveDataError("state.total_day is out of range.")
        speed = state_payload.get("speed")
        if isinstance(speed, bool) or speed not in VALID_SPEEDS:
            raise CorruptSaveDataError(f"Invalid speed value: {speed}")

        state = GameState(
            player_id=self._require_str(state_payload.get("player_id"), "state.player_id"),
            seed=seed,
            calendar=calendar_for_day(total_day),
            ledger=self._coerce_ledger(state_payload.get("ledger")),
            rng=rng,
            event_rng=event_rng,
            grid=self._coerce_grid(state_payload.get("grid")),
            speed=speed,
        )
        state.weather = self._coerce_weather(state_payload.get("weather"))
        state.scheduled_events = self._coerce_occurrences(state_payload.get("scheduled_events"), "state.scheduled_events")
        state.event_queue = self._coerce_occurrences(state_payload.get("event_queue"), "state.event_queue")
        state.event_log = self._coerce_event_log(state_payload.get("event_log"))
        state.active_effects = self._coerce_effects(state_payload.get("active_effects"))
        state.next_occurrence_id = self._require_positive_int(
            state_payload.get("next_occurrence_id"), "state.next_occurrence_id"
        )
        state.active_panel = self._coerce_optional_panel(state_payload.get("active_panel"), "state.active_panel")
        game_over = self._coerce_optional_panel(state_payload.get("game_over"), "state.game_over")
        if game_over is not None and not isinstance(game_over, GameOverPanel):
            raise CorruptSaveDataError("state.game_over must be a game over panel.")
        state.game_over = game_over
        loan_offer = self._coerce_optional_panel(state_payload.get("loan_offer_pending"), "state.loan_offer_pending")
        if loan_offer is not None and not isinstance(loan_offer, LoanOfferPanel):
            raise CorruptSaveDataError("state.loan_offer_pending must be a loan offer panel.")
        state.loan_offer_pending = loan_offer
        state.pending_thresholds = self._coerce_thresholds(state_payload.get("pending_thresholds"))
        state.water_stress_paused_this_season = self._require_bool(
            state_payload.get("water_stress_paused_this_season"), "state.water_stress_paused_this_season"
        )
        state.notifications = self._coerce_notifications(state_payload.get("notifications"))
        state.next_notification_id = self._require_positive_int(
            state_payload.get("next_notification_id"), "state.next_notification_id"
        )
        state.flags = self._coerce_bool_dict(state_payload.get("flags"), "state.flags")
        state.selected_cell = self._coerce_selected_cell(state_payload.get("selected_cell"))
        return state

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def _serialize_state(self, state: GameState) -> Dict[str, Any]:
        ledger = state.ledger
        return {
            "player_id": state.player_id,
            "seed": state.seed,
            "total_day": state.calendar.total_day,
            "speed": state.speed,
            "ledger": {
                "cash": ledger.cash,
                "yearly_revenue": ledger.yearly_revenue,
                "yearly_expenses": ledger.yearly_expenses,
                "yearly_interest": ledger.yearly_interest,
                "insolvent_days": ledger.insolvent_days,
                "loans_taken": ledger.loans_taken,
                "loans": [
                    {
                        "principal": loan.principal,
                        "interest_rate": loan.interest_rate,
                        "balance": loan.balance,
                        "remaining_term": loan.remaining_term,
                    }
                    for loan in ledger.loans
                ],
            },
            "grid": [self._serialize_cell(cell) for cell in state.iter_cells()],
            "weather": {
                "heatwave_days_remaining": state.weather.heatwave_days_remaining,
                "frost_days_remaining": state.weather.frost_days_remaining,
                "last": self._serialize_weather(state.weather.last),
            },
            "scheduled_events": [self._serialize_occurrence(entry) for entry in state.scheduled_events],
            "event_queue": [self._serialize_occurrence(entry) for entry in state.event_queue],
            "event_log": [
                {
                    "occurrence_id": entry.occurrence_id,
                    "event_id": entry.event_id,
                    "day": entry.day,
                    "choice_id": entry.choice_id,
                }
                for entry in state.event_log
            ],
            "active_effects": [
                {
                    "kind": effect.kind,
                    "value": effect.value,
                    "expires_on_day": effect.expires_on_day,
                    "source_event_id": effect.source_event_id,
                    "crop_id": effect.crop_id,
                }
                for effect in state.active_effects
            ],
            "next_occurrence_id": state.next_occurrence_id,
            "active_panel": serialize_panel(state.active_panel),
            "game_over": serialize_panel(state.game_over),
            "loan_offer_pending": serialize_panel(state.loan_offer_pending),
            "pending_thresholds": [serialize_panel(panel) for panel in state.pending_thresholds],
            "water_stress_paused_this_season": state.water_stress_paused_this_season,
            "notifications": [
                {"id": entry.id, "kind": entry.kind, "message": entry.message, "day": entry.day}
                for entry in state.notifications
            ],
            "next_notification_id": state.next_notification_id,
            "flags": dict(state.flags),
            "selected_cell": list(state.selected_cell) if state.selected_cell is not None else None,
        }

    @staticmethod
    def _serialize_cell(cell: Cell) -> Dict[str, Any]:
        soil = cell.soil
        crop = cell.crop
        return {
            "row": cell.row,
            "col": cell.col,
            "soil": {
                "nitrogen": soil.nitrogen,
                "moisture": soil.moisture,
                "organic_matter": soil.organic_matter,
                "moisture_capacity": soil.moisture_capacity,
            },
            "crop": None
            if crop is None
            else {
                "crop_id": crop.crop_id,
                "planted_day": crop.planted_day,
                "gdd_accumulated": crop.gdd_accumulated,
                "water_stress_days": crop.water_stress_days,
                "growth_stage": crop.growth_stage,
                "overripe_days_remaining": crop.overripe_days_remaining,
                "is_perennial": crop.is_perennial,
                "perennial_age": crop.perennial_age,
                "established": crop.established,
                "is_dormant": crop.is_dormant,
                "harvested_this_season": crop.harvested_this_season,
                "chill_hours": crop.chill_hours,
            },
        }

    @staticmethod
    def _serialize_weather(weather: DailyWeather | None) -> Dict[str, Any] | None:
        if weather is None:
            return None
        return {
            "temp_high": weather.temp_high,
            "temp_low": weather.temp_low,
            "precipitation": weather.precipitation,
            "et0": weather.et0,
            "is_heatwave": weather.is_heatwave,
            "is_frost": weather.is_frost,
        }

    @staticmethod
    def _serialize_occurrence(occurrence: EventOccurrence) -> Dict[str, Any]:
        return {
            "occurrence_id": occurrence.occurrence_id,
            "event_id": occurrence.event_id,
            "scheduled_on_day": occurrence.scheduled_on_day,
            "fires_on_day": occurrence.fires_on_day,
            "is_false_alarm": occurrence.is_false_alarm,
        }

    # ------------------------------------------------------------------
    # Coercion
    # ------------------------------------------------------------------
    def _restore_rng(self, seed: int, payload: Any, context: str) -> RNG:
        if not isinstance(payload, Mapping):
            raise CorruptSaveDataError(f"{context} section is missing.")
        rng = RNG(seed)
        try:
            rng.restore_state(self._coerce_rng_payload(payload, context))
        except ValueError as exc:
            raise CorruptSaveDataError(f"Invalid {context} state: {exc}") from exc
        return rng

    def _coerce_rng_payload(self, payload: Mapping[str, Any], context: str) -> RNGStatePayload:
        version = self._require_int(payload.get("version"), f"{context}.version")
        state_values = payload.get("state")
        if not isinstance(state_values, list):
            raise CorruptSaveDataError(f"Invalid {context} state payload.")
        return {"version": version, "state": state_values, "gauss": payload.get("gauss")}

    def _coerce_ledger(self, value: Any) -> LedgerState:
        mapping = self._require_dict(value, "state.ledger")
        loans: List[Loan] = []
        for index, entry in enumerate(self._require_list(mapping.get("loans"), "state.ledger.loans")):
            context = f"state.ledger.loans[{index}]"
            loan_map = self._require_dict(entry, context)
            loans.append(
                Loan(
                    principal=self._require_int(loan_map.get("principal"), f"{context}.principal"),
                    interest_rate=self._require_number(loan_map.get("interest_rate"), f"{context}.interest_rate"),
                    balance=self._require_number(loan_map.get("balance"), f"{context}.balance"),
                    remaining_term=self._require_int(loan_map.get("remaining_term"), f"{context}.remaining_term"),
                )
            )
        return LedgerState(
            cash=self._require_int(mapping.get("cash"), "state.ledger.cash"),
            yearly_revenue=self._require_int(mapping.get("yearly_revenue"), "state.ledger.yearly_revenue"),
            yearly_expenses=self._require_int(mapping.get("yearly_expenses"), "state.ledger.yearly_expenses"),
            yearly_interest=self._require_number(mapping.get("yearly_interest"), "state.ledger.yearly_interest"),
            insolvent_days=self._require_int(mapping.get("insolvent_days"), "state.ledger.insolvent_days"),
            loans=loans,
            loans_taken=self._require_int(mapping.get("loans_taken"), "state.ledger.loans_taken"),
        )

    def _coerce_grid(self, value: Any) -> List[List[Cell]]:
        entries = self._require_list(value, "state.grid")
        if len(entries) != GRID_ROWS * GRID_COLS:
            raise CorruptSaveDataError(f"state.grid must contain {GRID_ROWS * GRID_COLS} cells.")
        grid: List[List[Cell]] = [[] for _ in range(GRID_ROWS)]
        for index, entry in enumerate(entries):
            context = f"state.grid[{index}]"
            mapping = self._require_dict(entry, context)
            row = self._require_int(mapping.get("row"), f"{context}.row")
            col = self._require_int(mapping.get("col"), f"{context}.col")
            if (row, col) != divmod(index, GRID_COLS):
                raise CorruptSaveDataError(f"{context} is out of order.")
            soil_map = self._require_dict(mapping.get("soil"), f"{context}.soil")
            soil = SoilState(
                nitrogen=self._require_number(soil_map.get("nitrogen"), f"{context}.soil.nitrogen"),
                moisture=self._require_number(soil_map.get("moisture"), f"{context}.soil.moisture"),
                organic_matter=self._require_number(soil_map.get("organic_matter"), f"{context}.soil.organic_matter"),
                moisture_capacity=self._require_number(
                    soil_map.get("moisture_capacity"), f"{context}.soil.moisture_capacity"
                ),
            )
            crop_raw = mapping.get("crop")
            crop = None if crop_raw is None else self._coerce_crop(crop_raw, f"{context}.crop")
            grid[row].append(Cell(row=row, col=col, soil=soil, crop=crop))
        return grid

    def _coerce_crop(self, value: Any, context: str) -> CropInstance:
        mapping = self._require_dict(value, context)
        crop_id = self._require_str(mapping.get("crop_id"), f"{context}.crop_id")
        if not self._crops_repo.has(crop_id):
            raise CorruptSaveDataError(f"Save incompatible with current definitions: crop '{crop_id}' missing.")
        stage = mapping.get("growth_stage")
        if stage not in GROWTH_STAGES:
            raise CorruptSaveDataError(f"{context}.growth_stage has invalid value: {stage}")
        return CropInstance(
            crop_id=crop_id,
            planted_day=self._require_int(mapping.get("planted_day"), f"{context}.planted_day"),
            gdd_accumulated=self._require_number(mapping.get("gdd_accumulated"), f"{context}.gdd_accumulated"),
            water_stress_days=self._require_int(mapping.get("water_stress_days"), f"{context}.water_stress_days"),
            growth_stage=stage,
            overripe_days_remaining=self._require_int(
                mapping.get("overripe_days_remaining"), f"{context}.overripe_days_remaining"
            ),
            is_perennial=self._require_bool(mapping.get("is_perennial"), f"{context}.is_perennial"),
            perennial_age=self._require_int(mapping.get("perennial_age"), f"{context}.perennial_age"),
            established=self._require_bool(mapping.get("established"), f"{context}.established"),
            is_dormant=self._require_bool(mapping.get("is_dormant"), f"{context}.is_dormant"),
            harvested_this_season=self._require_bool(
                mapping.get("harvested_this_season"), f"{context}.harvested_this_season"
            ),
            chill_hours=self._require_number(mapping.get("chill_hours"), f"{context}.chill_hours"),
        )

    def _coerce_weather(self, value: Any) -> WeatherState:
        mapping = self._require_dict(value, "state.weather")
        last_raw = mapping.get("last")
        last = None
        if last_raw is not None:
            last_map = self._require_dict(last_raw, "state.weather.last")
            last = DailyWeather(
                temp_high=self._require_number(last_map.get("temp_high"), "state.weather.last.temp_high"),
                temp_low=self._require_number(last_map.get("temp_low"), "state.weather.last.temp_low"),
                precipitation=self._require_number(last_map.get("precipitation"), "state.weather.last.precipitation"),
                et0=self._require_number(last_map.get("et0"), "state.weather.last.et0"),
                is_heatwave=self._require_bool(last_map.get("is_heatwave"), "state.weather.last.is_heatwave"),
                is_frost=self._require_bool(last_map.get("is_frost"), "state.weather.last.is_frost"),
            )
        return WeatherState(
            heatwave_days_remaining=self._require_int(
                mapping.get("heatwave_days_remaining"), "state.weather.heatwave_days_remaining"
            ),
            frost_days_remaining=self._require_int(mapping.get("frost_days_remaining"), "state.weather.frost_days_remaining"),
            last=last,
        )

    def _coerce_occurrences(self, value: Any, context: str) -> List[EventOccurrence]:
        occurrences: List[EventOccurrence] = []
        for index, entry in enumerate(self._require_list(value, context)):
            entry_ctx = f"{context}[{index}]"
            mapping = self._require_dict(entry, entry_ctx)
            occurrences.append(
                EventOccurrence(
                    occurrence_id=self._require_int(mapping.get("occurrence_id"), f"{entry_ctx}.occurrence_id"),
                    event_id=self._require_event_id(mapping.get("event_id"), f"{entry_ctx}.event_id"),
                    scheduled_on_day=self._require_int(mapping.get("scheduled_on_day"), f"{entry_ctx}.scheduled_on_day"),
                    fires_on_day=self._require_int(mapping.get("fires_on_day"), f"{entry_ctx}.fires_on_day"),
                    is_false_alarm=self._require_bool(mapping.get("is_false_alarm"), f"{entry_ctx}.is_false_alarm"),
                )
            )
        return occurrences

    def _coerce_event_log(self, value: Any) -> List[EventLogEntry]:
        entries: List[EventLogEntry] = []
        for index, entry in enumerate(self._require_list(value, "state.event_log")):
            context = f"state.event_log[{index}]"
            mapping = self._require_dict(entry, context)
            entries.append(
                EventLogEntry(
                    occurrence_id=self._require_int(mapping.get("occurrence_id"), f"{context}.occurrence_id"),
                    event_id=self._require_event_id(mapping.get("event_id"), f"{context}.event_id"),
                    day=self._require_int(mapping.get("day"), f"{context}.day"),
                    choice_id=self._require_str(mapping.get("choice_id"), f"{context}.choice_id"),
                )
            )
        return entries

    def _coerce_effects(self, value: Any) -> List[ActiveEffect]:
        effects: List[ActiveEffect] = []
        for index, entry in enumerate(self._require_list(value, "state.active_effects")):
            context = f"state.active_effects[{index}]"
            mapping = self._require_dict(entry, context)
            kind = mapping.get("kind")
            if kind not in _EFFECT_KINDS:
                raise CorruptSaveDataError(f"{context}.kind has invalid value: {kind}")
            crop_id = mapping.get("crop_id")
            if crop_id is not None:
                crop_id = self._require_str(crop_id, f"{context}.crop_id")
            effects.append(
                ActiveEffect(
                    kind=kind,
                    value=self._require_number(mapping.get("value"), f"{context}.value"),
                    expires_on_day=self._require_int(mapping.get("expires_on_day"), f"{context}.expires_on_day"),
                    source_event_id=self._require_str(mapping.get("source_event_id"), f"{context}.source_event_id"),
                    crop_id=crop_id,
                )
            )
        return effects

    def _coerce_optional_panel(self, value: Any, context: str) -> ActivePanel | None:
        if value is None:
            return None
        return self._coerce_panel(value, context)

    def _coerce_panel(self, value: Any, context: str) -> ActivePanel:
        mapping = self._require_dict(value, context)
        kind = mapping.get("kind")
        if kind == "game_over":
            reason = mapping.get("reason")
            if reason not in _GAME_OVER_REASONS:
                raise CorruptSaveDataError(f"{context}.reason has invalid value: {reason}")
            return GameOverPanel(
                reason=reason,
                message=self._require_str(mapping.get("message"), f"{context}.message"),
                day=self._require_int(mapping.get("day"), f"{context}.day"),
                cash=self._require_int(mapping.get("cash"), f"{context}.cash"),
                debt=self._require_number(mapping.get("debt"), f"{context}.debt"),
            )
        if kind == "event":
            return EventPanel(
                occurrence_id=self._require_int(mapping.get("occurrence_id"), f"{context}.occurrence_id"),
                event_id=self._require_event_id(mapping.get("event_id"), f"{context}.event_id"),
            )
        if kind == "loan_offer":
            return LoanOfferPanel(
                amount=self._require_int(mapping.get("amount"), f"{context}.amount"),
                interest_rate=self._require_number(mapping.get("interest_rate"), f"{context}.interest_rate"),
                cash=self._require_int(mapping.get("cash"), f"{context}.cash"),
            )
        if kind == "threshold":
            reason = mapping.get("reason")
            if reason not in _THRESHOLD_REASONS:
                raise CorruptSaveDataError(f"{context}.reason has invalid value: {reason}")
            return ThresholdPanel(
                reason=reason,
                message=self._require_str(mapping.get("message"), f"{context}.message"),
                details=dict(self._require_dict(mapping.get("details"), f"{context}.details")),
            )
        raise CorruptSaveDataError(f"{context}.kind has invalid value: {kind}")

    def _coerce_thresholds(self, value: Any) -> List[ThresholdPanel]:
        panels: List[ThresholdPanel] = []
        for index, entry in enumerate(self._require_list(value, "state.pending_thresholds")):
            panel = self._coerce_panel(entry, f"state.pending_thresholds[{index}]")
            if not isinstance(panel, ThresholdPanel):
                raise CorruptSaveDataError("state.pending_thresholds may only hold threshold panels.")
            panels.append(panel)
        return panels

    def _coerce_notifications(self, value: Any) -> List[Notification]:
        notifications: List[Notification] = []
        for index, entry in enumerate(self._require_list(value, "state.notifications")):
            context = f"state.notifications[{index}]"
            mapping = self._require_dict(entry, context)
            kind = mapping.get("kind")
            if kind not in _NOTIFICATION_KINDS:
                raise CorruptSaveDataError(f"{context}.kind has invalid value: {kind}")
            notifications.append(
                Notification(
                    id=self._require_int(mapping.get("id"), f"{context}.id"),
                    kind=kind,
                    message=self._require_str(mapping.get("message"), f"{context}.message"),
                    day=self._require_int(mapping.get("day"), f"{context}.day"),
                )
            )
        return notifications

    def _coerce_selected_cell(self, value: Any) -> tuple[int, int] | None:
        if value is None:
            return None
        entries = self._require_list(value, "state.selected_cell")
        if len(entries) != 2:
            raise CorruptSaveDataError("state.selected_cell must hold a row and a column.")
        row = self._require_int(entries[0], "state.selected_cell[0]")
        col = self._require_int(entries[1], "state.selected_cell[1]")
        if not (0 <= row < GRID_ROWS and 0 <= col < GRID_COLS):
            raise CorruptSaveDataError("state.selected_cell is outside the grid.")
        return (row, col)

    def _coerce_bool_dict(self, value: Any, context: str) -> Dict[str, bool]:
        mapping = self._require_dict(value, context)
        result: Dict[str, bool] = {}
        for key, entry in mapping.items():
            if not isinstance(key, str):
                raise CorruptSaveDataError(f"{context} keys must be strings.")
            result[key] = self._require_bool(entry, f"{context}.{key}")
        return result

    def _require_event_id(self, value: Any, context: str) -> str:
        event_id = self._require_str(value, context)
        if not self._events_repo.has(event_id):
            raise CorruptSaveDataError(f"Save incompatible with current definitions: event '{event_id}' missing.")
        return event_id

    @staticmethod
    def _require_dict(value: Any, context: str) -> Mapping[str, Any]:
        if not isinstance(value, Mapping):
            raise CorruptSaveDataError(f"{context} must be an object.")
        return value

    @staticmethod
    def _require_list(value: Any, context: str) -> List[Any]:
        if not isinstance(value, list):
            raise CorruptSaveDataError(f"{context} must be a list.")
        return value

    @staticmethod
    def _require_str(value: Any, context: str) -> str:
        if not isinstance(value, str):
            raise CorruptSaveDataError(f"{context} must be a string.")
        return value

    @staticmethod
    def _require_int(value: Any, context: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise CorruptSaveDataError(f"{context} must be an integer.")
        return value

    def _require_positive_int(self, value: Any, context: str) -> int:
        value_int = self._require_int(value, context)
        if value_int < 1:
            raise CorruptSaveDataError(f"{context} must be a positive integer.")
        return value_int

    @staticmethod
    def _require_number(value: Any, context: str) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise CorruptSaveDataError(f"{context} must be a number.")
        return float(value)

    @staticmethod
    def _require_bool(value: Any, context: str) -> bool:
        if not isinstance(value, bool):
            raise CorruptSaveDataError(f"{context} must be a boolean.")
        return value


def serialize_panel(panel: ActivePanel | None) -> Dict[str, Any] | None:
    """Return the JSON form of a panel, tagged with its kind."""
    if panel is None:
        return None
    if isinstance(panel, GameOverPanel):
        return {
            "kind": panel.kind,
            "reason": panel.reason,
            "message": panel.message,
            "day": panel.day,
            "cash": panel.cash,
            "debt": panel.debt,
        }
    if isinstance(panel, EventPanel):
        return {"kind": panel.kind, "occurrence_id": panel.occurrence_id, "event_id": panel.event_id}
    if isinstance(panel, LoanOfferPanel):
        return {"kind": panel.kind, "amount": panel.amount, "interest_rate": panel.interest_rate, "cash": panel.cash}
    return {"kind": panel.kind, "reason": panel.reason, "message": panel.message, "details": dict(panel.details)}
