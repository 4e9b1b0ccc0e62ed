"""Event catalog definition structures."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal

EventKind = Literal["climate", "market", "advisor", "regulatory"]

CONDITION_TYPES: frozenset[str] = frozenset(
    {
        "min_year",
        "max_year",
        "season",
        "season_not",
        "cash_below",
        "cash_above",
        "has_crop",
        "avg_nitrogen_below",
        "any_perennial_planted",
        "no_debt",
        "has_flag",
        "random",
    }
)

EFFECT_TYPES: frozenset[str] = frozenset(
    {
        "modify_cash",
        "modify_moisture_all",
        "modify_nitrogen_all",
        "modify_yield_modifier",
        "modify_price_modifier",
        "modify_irrigation_cost",
        "restrict_watering",
        "set_flag",
        "add_notification",
        "cancel_pending_event",
    }
)


@dataclass(frozen=True, slots=True)
class ConditionDef:
    """One precondition of an event's trigger predicate."""

    type: str
    data: Dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class EffectDef:
    """Deterministic effect applied when a choice is selected."""

    type: str
    data: Dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ChoiceDef:
    """A selectable response to an event."""

    id: str
    label: str
    description: str
    effects: List[EffectDef] = field(default_factory=list)
    requires_cash: int | None = None


@dataclass(frozen=True, slots=True)
class ForeshadowDef:
    """Advance warning emitted when an event gets scheduled."""

    signal: str
    lead_days: int
    reliability: float = 1.0


@dataclass(frozen=True, slots=True)
class EventDef:
    """Static catalog entry describing a conditional occurrence."""

    id: str
    kind: EventKind
    title: str
    description: str
    preconditions: List[ConditionDef]
    priority: int
    cooldown_days: int
    foreshadowing: ForeshadowDef
    choices: List[ChoiceDef]
    max_occurrences: int | None = None
    tags: List[str] = field(default_factory=list)

    def get_choice(self, choice_id: str) -> ChoiceDef | None:
        for choice in self.choices:
            if choice.id == choice_id:
                return choice
        return None
