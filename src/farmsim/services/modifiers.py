"""Lookups over the timed modifiers installed by event choices."""
from __future__ import annotations

from farmsim.domain.state import GameState

# Effects that apply to every crop use this id.
ALL_CROPS = "*"
MAX_MODIFIER = 10.0


def _multiplier(state: GameState, kind: str, crop_id: str | None = None) -> float:
    value = 1.0
    for effect in state.active_effects:
        if effect.kind != kind:
            continue
        if crop_id is not None and effect.crop_id not in (ALL_CROPS, crop_id):
            continue
        value *= effect.value
    return max(0.0, min(MAX_MODIFIER, value))


def yield_modifier(state: GameState, crop_id: str) -> float:
    return _multiplier(state, "yield_modifier", crop_id)


def price_modifier(state: GameState, crop_id: str) -> float:
    return _multiplier(state, "price_modifier", crop_id)


def irrigation_cost_multiplier(state: GameState) -> float:
    return _multiplier(state, "irrigation_cost")


def watering_restricted(state: GameState) -> bool:
    return any(effect.kind == "watering_restriction" for effect in state.active_effects)


def expire_effects(state: GameState) -> int:
    """Drop effects whose expiry day has been reached; returns how many were removed."""
    today = state.calendar.total_day
    before = len(state.active_effects)
    state.active_effects = [effect for effect in state.active_effects if effect.expires_on_day > today]
    return before - len(state.active_effects)
