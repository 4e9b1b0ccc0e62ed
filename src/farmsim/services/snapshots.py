"""Immutable read models handed to the UI."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from farmsim.core.calendar import in_planting_window, season_name
from farmsim.data.repositories import CropsRepository, EventsRepository
from farmsim.domain.panels import ActivePanel, EventPanel, GameOverPanel, LoanOfferPanel
from farmsim.domain.state import Cell, GameState
from farmsim.services.soil_service import WATER_STRESS_ALERT_THRESHOLD, is_ready_for_harvest

EMPTY_CELL_LABEL = "Empty"


@dataclass(frozen=True, slots=True)
class CellView:
    row: int
    col: int
    crop_id: str | None
    crop_name: str
    growth_stage: str | None
    moisture: float
    moisture_capacity: float
    nitrogen: float
    organic_matter: float
    is_dormant: bool = False
    harvest_ready: bool = False
    needs_water: bool = False


@dataclass(frozen=True, slots=True)
class PanelOption:
    id: str
    label: str
    description: str = ""
    enabled: bool = True


@dataclass(frozen=True, slots=True)
class PanelView:
    kind: str
    title: str
    message: str
    payload: Dict[str, Any] = field(default_factory=dict)
    options: Tuple[PanelOption, ...] = ()


@dataclass(frozen=True, slots=True)
class NotificationView:
    id: int
    kind: str
    message: str
    day: int


@dataclass(frozen=True, slots=True)
class CropOption:
    id: str
    name: str
    kind: str
    seed_cost: int
    plantable_now: bool


@dataclass(frozen=True, slots=True)
class GameSnapshot:
    player_id: str
    date: str
    season: str
    year: int
    total_day: int
    cash: int
    debt: float
    speed: int
    cells: Tuple[Tuple[CellView, ...], ...]
    panel: PanelView | None
    notifications: Tuple[NotificationView, ...]
    available_crops: Tuple[CropOption, ...]
    selected_cell: Tuple[int, int] | None = None
    game_over: bool = False

    def cell(self, row: int, col: int) -> CellView:
        return self.cells[row][col]


class SnapshotBuilder:
    """Projects the mutable state tree into a GameSnapshot."""

    def __init__(self, *, crops_repo: CropsRepository, events_repo: EventsRepository) -> None:
        self._crops_repo = crops_repo
        self._events_repo = events_repo

    def build(self, state: GameState) -> GameSnapshot:
        month = state.calendar.month
        crops = tuple(
            CropOption(
                id=crop.id,
                name=crop.name,
                kind=crop.kind,
                seed_cost=crop.seed_cost,
                plantable_now=in_planting_window(month, crop.planting_window.start_month, crop.planting_window.end_month),
            )
            for crop in self._crops_repo.in_declared_order()
        )
        return GameSnapshot(
            player_id=state.player_id,
            date=state.calendar.describe(),
            season=season_name(state.calendar.season),
            year=state.calendar.year,
            total_day=state.calendar.total_day,
            cash=state.ledger.cash,
            debt=round(state.ledger.debt, 2),
            speed=state.speed,
            cells=tuple(tuple(self._cell_view(cell) for cell in row) for row in state.grid),
            panel=self._panel_view(state, state.active_panel),
            notifications=tuple(
                NotificationView(id=entry.id, kind=entry.kind, message=entry.message, day=entry.day)
                for entry in state.notifications
            ),
            available_crops=crops,
            selected_cell=state.selected_cell,
            game_over=state.game_over is not None,
        )

    def _cell_view(self, cell: Cell) -> CellView:
        soil = cell.soil
        crop = cell.crop
        if crop is None:
            return CellView(
                row=cell.row,
                col=cell.col,
                crop_id=None,
                crop_name=EMPTY_CELL_LABEL,
                growth_stage=None,
                moisture=soil.moisture,
                moisture_capacity=soil.moisture_capacity,
                nitrogen=soil.nitrogen,
                organic_matter=soil.organic_matter,
            )
        return CellView(
            row=cell.row,
            col=cell.col,
            crop_id=crop.crop_id,
            crop_name=self._crops_repo.get(crop.crop_id).name,
            growth_stage=crop.growth_stage,
            moisture=soil.moisture,
            moisture_capacity=soil.moisture_capacity,
            nitrogen=soil.nitrogen,
            organic_matter=soil.organic_matter,
            is_dormant=crop.is_dormant,
            harvest_ready=is_ready_for_harvest(crop),
            needs_water=soil.moisture < soil.moisture_capacity * WATER_STRESS_ALERT_THRESHOLD,
        )

    def _panel_view(self, state: GameState, panel: ActivePanel | None) -> PanelView | None:
        if panel is None:
            return None
        if isinstance(panel, GameOverPanel):
            return PanelView(
                kind=panel.kind,
                title="Game Over",
                message=panel.message,
                payload={"reason": panel.reason, "day": panel.day, "cash": panel.cash, "debt": panel.debt},
            )
        if isinstance(panel, EventPanel):
            event = self._events_repo.get(panel.event_id)
            return PanelView(
                kind=panel.kind,
                title=event.title,
                message=event.description,
                payload={"event_id": event.id, "event_kind": event.kind, "occurrence_id": panel.occurrence_id},
                options=tuple(
                    PanelOption(
                        id=choice.id,
                        label=choice.label,
                        description=choice.description,
                        enabled=choice.requires_cash is None or state.ledger.cash >= choice.requires_cash,
                    )
                    for choice in event.choices
                ),
            )
        if isinstance(panel, LoanOfferPanel):
            return PanelView(
                kind=panel.kind,
                title="Emergency Loan",
                message=(
                    f"You've run out of money. The bank is offering an emergency loan of ${panel.amount} "
                    f"at {panel.interest_rate * 100:.0f}% annual interest."
                ),
                payload={"amount": panel.amount, "interest_rate": panel.interest_rate, "cash": panel.cash},
                options=(
                    PanelOption(id="accept", label="Accept Loan"),
                    PanelOption(id="decline", label="Decline"),
                ),
            )
        return PanelView(
            kind=panel.kind,
            title=panel.reason.replace("_", " ").title(),
            message=panel.message,
            payload={"reason": panel.reason, **panel.details},
            options=(PanelOption(id="dismiss", label="Continue"),),
        )
