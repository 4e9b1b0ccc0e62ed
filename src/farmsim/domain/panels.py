"""Blocking panels that halt the clock until the player responds."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Union

from farmsim.core.types import GameOverReason, PanelKind, ThresholdReason

# Higher surfaces first.
PANEL_PRIORITY: Dict[PanelKind, int] = {
    "game_over": 100,
    "event": 85,
    "loan_offer": 70,
    "threshold": 0,
}

THRESHOLD_PRIORITY: Dict[ThresholdReason, int] = {
    "harvest_ready": 60,
    "water_stress": 50,
    "year_end": 40,
}


@dataclass(frozen=True, slots=True)
class GameOverPanel:
    """Terminal panel; cannot be resolved."""

    reason: GameOverReason
    message: str
    day: int
    cash: int
    debt: float

    @property
    def kind(self) -> PanelKind:
        return "game_over"

    @property
    def priority(self) -> int:
        return PANEL_PRIORITY["game_over"]


@dataclass(frozen=True, slots=True)
class EventPanel:
    occurrence_id: int
    event_id: str

    @property
    def kind(self) -> PanelKind:
        return "event"

    @property
    def priority(self) -> int:
        return PANEL_PRIORITY["event"]


@dataclass(frozen=True, slots=True)
class LoanOfferPanel:
    amount: int
    interest_rate: float
    cash: int

    @property
    def kind(self) -> PanelKind:
        return "loan_offer"

    @property
    def priority(self) -> int:
        return PANEL_PRIORITY["loan_offer"]


@dataclass(frozen=True, slots=True)
class ThresholdPanel:
    """Informational pause, acknowledged by the player.

    ``details`` only holds JSON-friendly values so the panel survives a
    save and load unchanged.
    """

    reason: ThresholdReason
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> PanelKind:
        return "threshold"

    @property
    def priority(self) -> int:
        return PANEL_PRIORITY["threshold"] + THRESHOLD_PRIORITY[self.reason]


ActivePanel = Union[GameOverPanel, EventPanel, LoanOfferPanel, ThresholdPanel]

__all__ = [
    "ActivePanel",
    "EventPanel",
    "GameOverPanel",
    "LoanOfferPanel",
    "PANEL_PRIORITY",
    "THRESHOLD_PRIORITY",
    "ThresholdPanel",
]
