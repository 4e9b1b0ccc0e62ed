"""Command outcome records shared by the field, ledger and panel services."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal, Tuple

RejectionReason = Literal[
    "invalid_cell",
    "unknown_crop",
    "occupied",
    "wrong_season",
    "insufficient_cash",
    "no_crop",
    "not_ready",
    "already_harvested",
    "not_perennial",
    "watering_restricted",
    "nothing_to_do",
    "confirmation_required",
    "panel_active",
    "no_panel",
    "invalid_choice",
    "invalid_speed",
    "game_over",
    "no_game",
]


@dataclass(frozen=True, slots=True)
class BulkPreview:
    cells: List[Tuple[int, int]]
    total_cost: int
    affordable_rows: int
    total_rows: int

    @property
    def affordable(self) -> bool:
        return self.affordable_rows >= self.total_rows


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of a player command. Rejections leave the state untouched."""

    success: bool
    reason: RejectionReason | None = None
    message: str = ""
    cost: int = 0
    revenue: int = 0
    cells_affected: int = 0
    ticks: int = 0
    preview: BulkPreview | None = None

    @classmethod
    def ok(cls, message: str = "", **values) -> "CommandResult":
        return cls(success=True, message=message, **values)

    @classmethod
    def rejected(cls, reason: RejectionReason, message: str, preview: BulkPreview | None = None) -> "CommandResult":
        return cls(success=False, reason=reason, message=message, preview=preview)
