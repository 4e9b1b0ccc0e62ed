"""Event scheduling, foreshadowing and choice resolution."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from farmsim.config import EngineConfig
from farmsim.core.rng import RNG
from farmsim.data.repositories import EventsRepository
from farmsim.domain.defs import ConditionDef, EffectDef, EventDef
from farmsim.domain.state import ActiveEffect, EventLogEntry, EventOccurrence, GameState
from farmsim.services.ledger_service import LedgerService
from farmsim.services.results import CommandResult
from farmsim.services.soil_service import MAX_NITROGEN

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EventTickReport:
    scheduled: List[EventOccurrence] = field(default_factory=list)
    queued: List[EventOccurrence] = field(default_factory=list)
    false_alarms: List[EventOccurrence] = field(default_factory=list)


class EventService:
    """Evaluates the event catalog once per tick and applies chosen responses."""

    def __init__(self, *, events_repo: EventsRepository, ledger: LedgerService, config: EngineConfig) -> None:
        self._events_repo = events_repo
        self._ledger = ledger
        self._config = config

    def get_event(self, event_id: str) -> EventDef:
        return self._events_repo.get(event_id)

    def evaluate(self, state: GameState) -> EventTickReport:
        """Mature due occurrences, then schedule any newly triggered events."""
        report = EventTickReport()
        self._mature_scheduled(state, report)
        for event in self._events_repo.in_declared_order():
            if not self._is_eligible(state, event):
                continue
            if not self._conditions_met(state, event.preconditions, state.event_rng):
                continue
            self._schedule(state, event, report)
        if report.queued:
            self._sort_queue(state)
        return report

    def _mature_scheduled(self, state: GameState, report: EventTickReport) -> None:
        today = state.calendar.total_day
        pending: List[EventOccurrence] = []
        for occurrence in state.scheduled_events:
            if occurrence.fires_on_day > today:
                pending.append(occurrence)
            elif occurrence.is_false_alarm:
                report.false_alarms.append(occurrence)
                logger.debug("Foreshadowed %s was a false alarm", occurrence.event_id)
            else:
                state.event_queue.append(occurrence)
                report.queued.append(occurrence)
        state.scheduled_events = pending

    def _is_eligible(self, state: GameState, event: EventDef) -> bool:
        if self._on_cooldown(state, event):
            return False
        if event.max_occurrences is not None and self._occurrence_count(state, event.id) >= event.max_occurrences:
            return False
        return not self._is_pending(state, event.id)

    @staticmethod
    def _on_cooldown(state: GameState, event: EventDef) -> bool:
        if event.cooldown_days <= 0:
            return False
        days = [entry.day for entry in state.event_log if entry.event_id == event.id]
        if not days:
            return False
        return state.calendar.total_day - max(days) < event.cooldown_days

    @staticmethod
    def _occurrence_count(state: GameState, event_id: str) -> int:
        return sum(1 for entry in state.event_log if entry.event_id == event_id)

    @staticmethod
    def _is_pending(state: GameState, event_id: str) -> bool:
        if any(occurrence.event_id == event_id for occurrence in state.scheduled_events):
            return True
        if any(occurrence.event_id == event_id for occurrence in state.event_queue):
            return True
        panel = state.active_panel
        return panel is not None and panel.kind == "event" and panel.event_id == event_id

    def _conditions_met(self, state: GameState, conditions: List[ConditionDef], rng: RNG) -> bool:
        # Random draws happen only once every deterministic condition holds.
        ordered = [c for c in conditions if c.type != "random"] + [c for c in conditions if c.type == "random"]
        return all(self._condition_holds(state, condition, rng) for condition in ordered)

    @staticmethod
    def _condition_holds(state: GameState, condition: ConditionDef, rng: RNG) -> bool:
        data = condition.data
        kind = condition.type
        if kind == "min_year":
            return state.calendar.year >= data["year"]
        if kind == "max_year":
            return state.calendar.year <= data["year"]
        if kind == "season":
            return state.calendar.season == data["season"]
        if kind == "season_not":
            return state.calendar.season != data["season"]
        if kind == "cash_below":
            return state.ledger.cash < data["amount"]
        if kind == "cash_above":
            return state.ledger.cash > data["amount"]
        if kind == "has_crop":
            crop_id = data.get("crop_id")
            return any(
                cell.crop is not None and (crop_id is None or cell.crop.crop_id == crop_id)
                for cell in state.iter_cells()
            )
        if kind == "avg_nitrogen_below":
            cells = list(state.iter_cells())
            return sum(cell.soil.nitrogen for cell in cells) / len(cells) < data["level"]
        if kind == "any_perennial_planted":
            return any(cell.crop is not None and cell.crop.is_perennial for cell in state.iter_cells())
        if kind == "no_debt":
            return not state.ledger.loans
        if kind == "has_flag":
            return state.flags.get(str(data["flag"])) is True
        if kind == "random":
            return rng.chance(float(data["probability"]))
        raise ValueError(f"Unhandled condition type '{kind}'.")

    def _schedule(self, state: GameState, event: EventDef, report: EventTickReport) -> None:
        today = state.calendar.total_day
        foreshadow = event.foreshadowing
        is_false_alarm = not state.event_rng.chance(foreshadow.reliability)
        occurrence = EventOccurrence(
            occurrence_id=state.next_occurrence_id,
            event_id=event.id,
            scheduled_on_day=today,
            fires_on_day=today + foreshadow.lead_days,
            is_false_alarm=is_false_alarm,
        )
        state.next_occurrence_id += 1
        report.scheduled.append(occurrence)
        if foreshadow.lead_days > 0:
            state.scheduled_events.append(occurrence)
            state.add_notification("foreshadowing", foreshadow.signal, self._config.notification_limit)
            logger.debug("Scheduled %s for day %s", event.id, occurrence.fires_on_day)
        elif is_false_alarm:
            report.false_alarms.append(occurrence)
        else:
            state.event_queue.append(occurrence)
            report.queued.append(occurrence)

    def _sort_queue(self, state: GameState) -> None:
        declared: Dict[str, int] = {
            event.id: index for index, event in enumerate(self._events_repo.in_declared_order())
        }
        state.event_queue.sort(
            key=lambda occurrence: (
                -self._events_repo.get(occurrence.event_id).priority,
                declared[occurrence.event_id],
                occurrence.occurrence_id,
            )
        )

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------
    def resolve(self, state: GameState, occurrence_id: int, event_id: str, choice_id: object) -> CommandResult:
        """Apply the chosen response for an occurrence and record it in the log."""
        event = self._events_repo.get(event_id)
        choice = event.get_choice(choice_id) if isinstance(choice_id, str) else None
        if choice is None:
            return CommandResult.rejected("invalid_choice", f"Invalid choice '{choice_id}' for {event.title}.")
        if choice.requires_cash is not None and state.ledger.cash < choice.requires_cash:
            return CommandResult.rejected(
                "insufficient_cash",
                f"Not enough cash. Requires ${choice.requires_cash}.",
            )
        cash_before = state.ledger.cash
        for effect in choice.effects:
            self._apply_effect(state, effect, event.id)
        state.event_log.append(
            EventLogEntry(
                occurrence_id=occurrence_id,
                event_id=event.id,
                day=state.calendar.total_day,
                choice_id=choice.id,
            )
        )
        logger.info("Resolved %s with %s", event.id, choice.id)
        delta = state.ledger.cash - cash_before
        return CommandResult.ok(
            choice.label,
            cost=max(0, -delta),
            revenue=max(0, delta),
        )

    def _apply_effect(self, state: GameState, effect: EffectDef, source_event_id: str) -> None:
        data = effect.data
        today = state.calendar.total_day
        kind = effect.type
        if kind == "modify_cash":
            self._ledger.adjust_cash(state, int(data["amount"]))
        elif kind == "modify_moisture_all":
            for cell in state.iter_cells():
                soil = cell.soil
                soil.moisture = max(0.0, min(soil.moisture + float(data["amount"]), soil.moisture_capacity))
        elif kind == "modify_nitrogen_all":
            for cell in state.iter_cells():
                soil = cell.soil
                soil.nitrogen = max(0.0, min(soil.nitrogen + float(data["amount"]), MAX_NITROGEN))
        elif kind in ("modify_yield_modifier", "modify_price_modifier"):
            state.active_effects.append(
                ActiveEffect(
                    kind="yield_modifier" if kind == "modify_yield_modifier" else "price_modifier",
                    value=float(data["multiplier"]),
                    expires_on_day=today + int(data["duration_days"]),
                    source_event_id=source_event_id,
                    crop_id=str(data["crop_id"]),
                )
            )
        elif kind == "modify_irrigation_cost":
            state.active_effects.append(
                ActiveEffect(
                    kind="irrigation_cost",
                    value=float(data["multiplier"]),
                    expires_on_day=today + int(data["duration_days"]),
                    source_event_id=source_event_id,
                )
            )
        elif kind == "restrict_watering":
            state.active_effects.append(
                ActiveEffect(
                    kind="watering_restriction",
                    value=1.0,
                    expires_on_day=today + int(data["duration_days"]),
                    source_event_id=source_event_id,
                )
            )
        elif kind == "set_flag":
            state.flags[str(data["flag"])] = bool(data["value"])
        elif kind == "add_notification":
            state.add_notification(
                data["notification_kind"],
                str(data["message"]),
                self._config.notification_limit,
            )
        elif kind == "cancel_pending_event":
            self.cancel_pending(state, str(data["event_id"]))
        else:
            raise ValueError(f"Unhandled effect type '{kind}'.")

    @staticmethod
    def cancel_pending(state: GameState, event_id: str) -> int:
        """Drop scheduled and queued occurrences of ``event_id``."""
        before = len(state.scheduled_events) + len(state.event_queue)
        state.scheduled_events = [o for o in state.scheduled_events if o.event_id != event_id]
        state.event_queue = [o for o in state.event_queue if o.event_id != event_id]
        removed = before - len(state.scheduled_events) - len(state.event_queue)
        if removed:
            logger.debug("Cancelled %s pending occurrence(s) of %s", removed, event_id)
        return removed
