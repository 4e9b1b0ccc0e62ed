"""Per-cell soil and crop simulation plus the field commands."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import groupby
from typing import List, Sequence, Tuple

from farmsim.config import EngineConfig
from farmsim.core.calendar import DAYS_PER_YEAR, in_planting_window, month_name
from farmsim.core.types import BulkOp, BulkScope, GrowthStage
from farmsim.data.repositories import CropsRepository
from farmsim.domain.climate import ClimateScenario
from farmsim.domain.defs import CropDef
from farmsim.domain.state import GRID_COLS, Cell, CropInstance, GameState, moisture_capacity_for
from farmsim.domain.weather import DailyWeather
from farmsim.services import modifiers
from farmsim.services.ledger_service import LedgerService
from farmsim.services.results import BulkPreview, CommandResult

logger = logging.getLogger(__name__)

BARE_SOIL_KC = 0.3
DORMANT_KC = 0.2
MIN_ORGANIC_MATTER = 0.5
MAX_ORGANIC_MATTER = 10.0
MAX_NITROGEN = 200.0
OM_DECAY_PER_YEAR = 0.02
WILTING_THRESHOLD = 0.15
WATER_STRESS_ALERT_THRESHOLD = 0.25
OVERRIPE_GRACE_DAYS = 30
IRRIGATION_COST_PER_CELL = 5
WATER_DOSE_INCHES = 3.0
# Winter length used to spread a year's chill hours over dormant days.
DORMANCY_DAYS = 90
ESTABLISHMENT_PROGRESS_CAP = 0.49
PERENNIAL_RESET_PROGRESS = 0.8

_STAGE_THRESHOLDS: Tuple[Tuple[float, GrowthStage], ...] = (
    (1.0, "harvestable"),
    (0.8, "mature"),
    (0.5, "flowering"),
    (0.2, "vegetative"),
)


def growth_stage_for(progress: float) -> GrowthStage:
    for threshold, stage in _STAGE_THRESHOLDS:
        if progress >= threshold:
            return stage
    return "seedling"


def is_ready_for_harvest(crop: CropInstance) -> bool:
    if crop.growth_stage not in ("harvestable", "overripe"):
        return False
    return not (crop.is_perennial and crop.harvested_this_season)


@dataclass(slots=True)
class FieldTickReport:
    any_harvest_ready: bool = False
    any_water_stress: bool = False
    rotted: List[Tuple[int, int]] = field(default_factory=list)


@dataclass(slots=True)
class HarvestOutcome:
    crop_id: str
    yield_amount: float
    gross_revenue: int
    labor_cost: int
    repayment: int

    @property
    def net(self) -> int:
        return self.gross_revenue - self.labor_cost - self.repayment


class SoilService:
    """Soil water and nutrients, crop growth, and the commands that touch plots."""

    def __init__(self, *, crops_repo: CropsRepository, ledger: LedgerService, config: EngineConfig) -> None:
        self._crops_repo = crops_repo
        self._ledger = ledger
        self._config = config

    # ------------------------------------------------------------------
    # Daily simulation
    # ------------------------------------------------------------------
    def simulate_day(self, state: GameState, weather: DailyWeather, scenario: ClimateScenario) -> FieldTickReport:
        report = FieldTickReport()
        for cell in state.iter_cells():
            self._simulate_soil(cell, weather)
            if cell.crop is None:
                continue
            self._simulate_crop(state, cell, weather, scenario, report)
            crop = cell.crop
            if crop is None:
                continue
            if crop.growth_stage == "harvestable" and not (crop.is_perennial and crop.harvested_this_season):
                report.any_harvest_ready = True
            if cell.soil.moisture < cell.soil.moisture_capacity * WATER_STRESS_ALERT_THRESHOLD:
                report.any_water_stress = True
        return report

    def _simulate_soil(self, cell: Cell, weather: DailyWeather) -> None:
        soil = cell.soil
        if cell.crop is None:
            kc = BARE_SOIL_KC
        else:
            kc = self._crop_coefficient(cell.crop)
        soil.moisture = max(0.0, soil.moisture - weather.et0 * kc)
        soil.moisture = min(soil.moisture + weather.precipitation, soil.moisture_capacity)

        decay = soil.organic_matter * (OM_DECAY_PER_YEAR / DAYS_PER_YEAR)
        soil.organic_matter = min(MAX_ORGANIC_MATTER, max(MIN_ORGANIC_MATTER, soil.organic_matter - decay))
        soil.moisture_capacity = moisture_capacity_for(soil.organic_matter)
        soil.moisture = min(soil.moisture, soil.moisture_capacity)

        mineralized = (soil.organic_matter / 100) * 30 / DAYS_PER_YEAR
        soil.nitrogen = min(soil.nitrogen + mineralized, MAX_NITROGEN)

    def _crop_coefficient(self, crop: CropInstance) -> float:
        if crop.is_perennial and crop.is_dormant:
            return DORMANT_KC
        return self._crops_repo.get(crop.crop_id).coefficient_for(crop.growth_stage)

    def _simulate_crop(
        self,
        state: GameState,
        cell: Cell,
        weather: DailyWeather,
        scenario: ClimateScenario,
        report: FieldTickReport,
    ) -> None:
        crop = cell.crop
        assert crop is not None
        crop_def = self._crops_repo.get(crop.crop_id)
        today = state.calendar.total_day

        if crop.is_perennial and crop_def.dormant_seasons:
            should_sleep = state.calendar.season in crop_def.dormant_seasons
            if should_sleep and not crop.is_dormant:
                crop.is_dormant = True
                crop.chill_hours = 0.0
            elif not should_sleep and crop.is_dormant:
                # Waking starts a fresh season; last winter's chill is kept for the harvest.
                crop.is_dormant = False
                crop.gdd_accumulated = 0.0
                crop.water_stress_days = 0
                crop.planted_day = today
                crop.harvested_this_season = False
                crop.growth_stage = "seedling"
                crop.overripe_days_remaining = -1
            if crop.is_dormant:
                if crop_def.chill_hours_required is not None:
                    crop.chill_hours += scenario.chill_hours_for(state.calendar.year) / DORMANCY_DAYS
                return

        if crop.growth_stage == "overripe":
            crop.overripe_days_remaining -= 1
            if crop.overripe_days_remaining > 0:
                return
            if crop.is_perennial:
                crop.growth_stage = "mature"
                crop.overripe_days_remaining = -1
                crop.gdd_accumulated = crop_def.gdd_to_maturity * PERENNIAL_RESET_PROGRESS
                self._notify(
                    state,
                    "info",
                    f"Your {crop_def.name} in row {cell.row + 1} missed the harvest window. "
                    "No yield this season, but the trees survive.",
                )
                return
            self._notify(state, "crop_rotted", f"Your {crop_def.name} in row {cell.row + 1} rotted in the field. Total loss.")
            cell.crop = None
            report.rotted.append((cell.row, cell.col))
            return

        if crop.growth_stage == "harvestable":
            crop.growth_stage = "overripe"
            crop.overripe_days_remaining = OVERRIPE_GRACE_DAYS
            return

        gdd = max(0.0, weather.avg_temp - crop_def.gdd_base)
        crop.gdd_accumulated += gdd

        if cell.soil.moisture < cell.soil.moisture_capacity * WILTING_THRESHOLD:
            crop.water_stress_days += 1

        uptake = crop_def.nitrogen_uptake * (gdd / crop_def.gdd_to_maturity)
        cell.soil.nitrogen = max(0.0, cell.soil.nitrogen - uptake)

        progress = crop.gdd_accumulated / crop_def.gdd_to_maturity
        if crop.is_perennial and not crop.established:
            progress = min(progress, ESTABLISHMENT_PROGRESS_CAP)
        crop.growth_stage = growth_stage_for(progress)

    def advance_perennial_year(self, state: GameState) -> int:
        """Age every perennial by a year; returns the maintenance owed."""
        maintenance = 0
        for cell in state.iter_cells():
            crop = cell.crop
            if crop is None or not crop.is_perennial:
                continue
            crop_def = self._crops_repo.get(crop.crop_id)
            crop.perennial_age += 1
            if not crop.established and crop.perennial_age >= crop_def.years_to_establish:
                crop.established = True
            maintenance += crop_def.annual_maintenance_cost
        return maintenance

    # ------------------------------------------------------------------
    # Single-cell commands
    # ------------------------------------------------------------------
    def plant(self, state: GameState, row: int, col: int, crop_id: str) -> CommandResult:
        cell = state.cell_at(row, col)
        if cell is None:
            return CommandResult.rejected("invalid_cell", f"No plot at row {row}, col {col}.")
        if not self._crops_repo.has(crop_id):
            return CommandResult.rejected("unknown_crop", f"Unknown crop '{crop_id}'.")
        if cell.crop is not None:
            return CommandResult.rejected("occupied", "This plot already has a crop.")
        crop_def = self._crops_repo.get(crop_id)
        rejection = self._check_window(state, crop_def)
        if rejection is not None:
            return rejection
        cost = crop_def.seed_cost
        if not self._ledger.can_afford(state, cost):
            return CommandResult.rejected(
                "insufficient_cash",
                f"Not enough cash. Cost: ${cost}, Available: ${state.ledger.cash}.",
            )
        self._ledger.charge(state, cost)
        self._place_crop(state, cell, crop_def)
        logger.debug("Planted %s at (%s, %s)", crop_id, row, col)
        return CommandResult.ok(f"Planted {crop_def.name}.", cost=cost, cells_affected=1)

    def harvest(self, state: GameState, row: int, col: int) -> CommandResult:
        cell = state.cell_at(row, col)
        if cell is None:
            return CommandResult.rejected("invalid_cell", f"No plot at row {row}, col {col}.")
        rejection = self._check_harvestable(cell)
        if rejection is not None:
            return rejection
        outcome = self._harvest_cell(state, cell)
        return CommandResult.ok(
            f"Harvested {self._crops_repo.get(outcome.crop_id).name}.",
            cost=outcome.labor_cost,
            revenue=outcome.gross_revenue,
            cells_affected=1,
        )

    def remove_crop(self, state: GameState, row: int, col: int) -> CommandResult:
        cell = state.cell_at(row, col)
        if cell is None:
            return CommandResult.rejected("invalid_cell", f"No plot at row {row}, col {col}.")
        if cell.crop is None:
            return CommandResult.rejected("no_crop", "This plot has no crop to remove.")
        if not cell.crop.is_perennial:
            return CommandResult.rejected("not_perennial", "Use harvest to clear annual crops.")
        crop_def = self._crops_repo.get(cell.crop.crop_id)
        cost = crop_def.removal_cost
        if not self._ledger.can_afford(state, cost):
            return CommandResult.rejected(
                "insufficient_cash",
                f"Not enough cash. Removal cost: ${cost}, Available: ${state.ledger.cash}.",
            )
        self._ledger.charge(state, cost)
        cell.crop = None
        self._notify(state, "info", f"Removed {crop_def.name} from row {row + 1}, col {col + 1}. Cost: ${cost}.")
        return CommandResult.ok(f"Removed {crop_def.name}.", cost=cost, cells_affected=1)

    def water(self, state: GameState, cells: Sequence[Tuple[int, int]]) -> CommandResult:
        """Irrigate the given plots as one transaction."""
        if modifiers.watering_restricted(state):
            return CommandResult.rejected(
                "watering_restricted",
                "Watering is currently restricted by water allocation regulations.",
            )
        targets: List[Cell] = []
        for row, col in cells:
            cell = state.cell_at(row, col)
            if cell is None:
                return CommandResult.rejected("invalid_cell", f"No plot at row {row}, col {col}.")
            if cell not in targets:
                targets.append(cell)
        if not targets:
            return CommandResult.rejected("nothing_to_do", "No plots selected.")
        cost = self.irrigation_cost(state, len(targets))
        if not self._ledger.can_afford(state, cost):
            return CommandResult.rejected(
                "insufficient_cash",
                f"Not enough cash to water. Cost: ${cost}, Available: ${state.ledger.cash}.",
            )
        self._apply_water(state, targets, cost)
        return CommandResult.ok(f"Watered {len(targets)} plot(s).", cost=cost, cells_affected=len(targets))

    def irrigation_cost(self, state: GameState, cell_count: int) -> int:
        return int(round(cell_count * IRRIGATION_COST_PER_CELL * modifiers.irrigation_cost_multiplier(state)))

    # ------------------------------------------------------------------
    # Bulk commands
    # ------------------------------------------------------------------
    def preview_bulk(
        self,
        state: GameState,
        scope: BulkScope,
        op: BulkOp,
        index: int | None = None,
        crop_id: str | None = None,
    ) -> CommandResult:
        """Report which plots a bulk command would touch and what it would cost."""
        targets_or_rejection = self._bulk_targets(state, scope, op, index, crop_id)
        if isinstance(targets_or_rejection, CommandResult):
            return targets_or_rejection
        preview = self._build_preview(state, op, targets_or_rejection, crop_id)
        return CommandResult.ok("Preview.", cost=preview.total_cost, cells_affected=len(preview.cells), preview=preview)

    def bulk(
        self,
        state: GameState,
        scope: BulkScope,
        op: BulkOp,
        index: int | None = None,
        crop_id: str | None = None,
        *,
        confirmed: bool = False,
        max_rows: int | None = None,
    ) -> CommandResult:
        targets_or_rejection = self._bulk_targets(state, scope, op, index, crop_id)
        if isinstance(targets_or_rejection, CommandResult):
            return targets_or_rejection
        targets = targets_or_rejection
        preview = self._build_preview(state, op, targets, crop_id)

        if scope == "field" and preview.total_cost > 0 and not confirmed:
            return CommandResult.rejected(
                "confirmation_required",
                f"This will affect {len(targets)} plots for ${preview.total_cost}. Confirm to proceed.",
                preview=preview,
            )
        if max_rows is not None:
            if scope != "field" or max_rows < 1 or max_rows > preview.affordable_rows:
                return CommandResult.rejected(
                    "insufficient_cash",
                    f"Only {preview.affordable_rows} row(s) are affordable.",
                    preview=preview,
                )
            targets = [cell for rows in _rows_of(targets)[:max_rows] for cell in rows]
        elif not preview.affordable:
            return CommandResult.rejected(
                "insufficient_cash",
                f"Not enough cash. Cost: ${preview.total_cost}, Available: ${state.ledger.cash}.",
                preview=preview,
            )

        if op == "plant":
            assert crop_id is not None
            crop_def = self._crops_repo.get(crop_id)
            cost = crop_def.seed_cost * len(targets)
            self._ledger.charge(state, cost)
            for cell in targets:
                self._place_crop(state, cell, crop_def)
            return CommandResult.ok(f"Planted {len(targets)} plot(s) of {crop_def.name}.", cost=cost, cells_affected=len(targets))
        if op == "water":
            cost = self.irrigation_cost(state, len(targets))
            self._apply_water(state, targets, cost)
            return CommandResult.ok(f"Watered {len(targets)} plot(s).", cost=cost, cells_affected=len(targets))

        outcomes = [self._harvest_cell(state, cell) for cell in targets]
        return CommandResult.ok(
            f"Harvested {len(outcomes)} plot(s).",
            cost=sum(outcome.labor_cost for outcome in outcomes),
            revenue=sum(outcome.gross_revenue for outcome in outcomes),
            cells_affected=len(outcomes),
        )

    def _bulk_targets(
        self,
        state: GameState,
        scope: BulkScope,
        op: BulkOp,
        index: int | None,
        crop_id: str | None,
    ) -> List[Cell] | CommandResult:
        cells = self._cells_in_scope(state, scope, index)
        if cells is None:
            return CommandResult.rejected("invalid_cell", f"Invalid {scope} index {index}.")
        if op == "plant":
            if crop_id is None or not self._crops_repo.has(crop_id):
                return CommandResult.rejected("unknown_crop", f"Unknown crop '{crop_id}'.")
            rejection = self._check_window(state, self._crops_repo.get(crop_id))
            if rejection is not None:
                return rejection
            targets = [cell for cell in cells if cell.crop is None]
            if scope == "field":
                # Field planting fills whole empty rows only.
                targets = [cell for rows in _rows_of(targets) if len(rows) == GRID_COLS for cell in rows]
            if not targets:
                return CommandResult.rejected("nothing_to_do", "No empty plots in the selected area.")
            return targets
        if op == "water":
            if modifiers.watering_restricted(state):
                return CommandResult.rejected(
                    "watering_restricted",
                    "Watering is currently restricted by water allocation regulations.",
                )
            targets = [cell for cell in cells if cell.crop is not None]
            if not targets:
                return CommandResult.rejected("nothing_to_do", "No planted plots to water.")
            return targets
        targets = [cell for cell in cells if cell.crop is not None and is_ready_for_harvest(cell.crop)]
        if not targets:
            return CommandResult.rejected("nothing_to_do", "No crops ready to harvest.")
        return targets

    @staticmethod
    def _cells_in_scope(state: GameState, scope: BulkScope, index: int | None) -> List[Cell] | None:
        if scope == "field":
            return list(state.iter_cells())
        if index is None or not 0 <= index < len(state.grid):
            return None
        if scope == "row":
            return list(state.grid[index])
        if scope == "col":
            return [row[index] for row in state.grid]
        return None

    def _build_preview(self, state: GameState, op: BulkOp, targets: List[Cell], crop_id: str | None) -> BulkPreview:
        rows = _rows_of(targets)
        total_cost = int(round(sum(self._cell_cost(state, op, cell, crop_id) for cell in targets)))
        affordable_rows = 0
        spent = 0.0
        for row_cells in rows:
            spent += sum(self._cell_cost(state, op, cell, crop_id) for cell in row_cells)
            # Harvest labor is settled out of the same harvest's revenue.
            if op != "harvest" and int(round(spent)) > state.ledger.cash:
                break
            affordable_rows += 1
        return BulkPreview(
            cells=[(cell.row, cell.col) for cell in targets],
            total_cost=total_cost,
            affordable_rows=affordable_rows,
            total_rows=len(rows),
        )

    def _cell_cost(self, state: GameState, op: BulkOp, cell: Cell, crop_id: str | None) -> float:
        if op == "plant":
            assert crop_id is not None
            return float(self._crops_repo.get(crop_id).seed_cost)
        if op == "water":
            return IRRIGATION_COST_PER_CELL * modifiers.irrigation_cost_multiplier(state)
        assert cell.crop is not None
        return float(self._crops_repo.get(cell.crop.crop_id).labor_cost)

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------
    def _check_window(self, state: GameState, crop_def: CropDef) -> CommandResult | None:
        window = crop_def.planting_window
        if in_planting_window(state.calendar.month, window.start_month, window.end_month):
            return None
        return CommandResult.rejected(
            "wrong_season",
            f"{crop_def.name} can only be planted "
            f"{month_name(window.start_month)}-{month_name(window.end_month)}.",
        )

    @staticmethod
    def _check_harvestable(cell: Cell) -> CommandResult | None:
        crop = cell.crop
        if crop is None:
            return CommandResult.rejected("no_crop", "No crop to harvest.")
        if crop.growth_stage not in ("harvestable", "overripe"):
            return CommandResult.rejected("not_ready", f"Crop is not ready to harvest ({crop.growth_stage}).")
        if crop.is_perennial and crop.harvested_this_season:
            return CommandResult.rejected(
                "already_harvested",
                "Already harvested this season. Trees produce one crop per year.",
            )
        return None

    def _place_crop(self, state: GameState, cell: Cell, crop_def: CropDef) -> None:
        cell.crop = CropInstance(
            crop_id=crop_def.id,
            planted_day=state.calendar.total_day,
            is_perennial=crop_def.is_perennial,
            established=not crop_def.is_perennial or crop_def.years_to_establish <= 0,
        )

    def _apply_water(self, state: GameState, targets: List[Cell], cost: int) -> None:
        self._ledger.charge(state, cost)
        for cell in targets:
            cell.soil.moisture = min(cell.soil.moisture + WATER_DOSE_INCHES, cell.soil.moisture_capacity)

    def _harvest_cell(self, state: GameState, cell: Cell) -> HarvestOutcome:
        crop = cell.crop
        assert crop is not None
        crop_def = self._crops_repo.get(crop.crop_id)

        yield_amount = crop_def.yield_potential
        if crop.is_perennial and not crop.established:
            yield_amount = 0.0

        growing_days = max(1, state.calendar.total_day - crop.planted_day)
        yield_amount *= max(0.0, 1 - crop_def.ky * (crop.water_stress_days / growing_days))
        yield_amount *= min(1.0, (cell.soil.nitrogen + crop_def.nitrogen_uptake * 0.5) / crop_def.nitrogen_uptake)
        if crop.growth_stage == "overripe":
            yield_amount *= crop.overripe_days_remaining / OVERRIPE_GRACE_DAYS
        yield_amount *= modifiers.yield_modifier(state, crop.crop_id)

        required = crop_def.chill_hours_required
        if required is not None and crop.is_perennial and crop.established:
            chill_factor = 1.0 if required == 0 else min(1.0, max(0.0, crop.chill_hours / required))
            yield_amount *= chill_factor
            if chill_factor < 1.0:
                self._notify(
                    state,
                    "info",
                    f"{crop_def.name}: insufficient chill hours ({round(crop.chill_hours)}/{required}). "
                    f"Yield reduced by {round((1 - chill_factor) * 100)}%.",
                )
        yield_amount = max(0.0, yield_amount)

        price = crop_def.base_price * modifiers.price_modifier(state, crop.crop_id)
        gross = yield_amount * price
        gross_revenue = int(round(gross))
        self._ledger.credit(state, gross_revenue)
        self._ledger.charge(state, crop_def.labor_cost)
        repayment = self._ledger.repay_from_revenue(state, gross)

        # Nitrogen removed with the harvested biomass.
        cell.soil.nitrogen = max(0.0, cell.soil.nitrogen - crop_def.nitrogen_uptake * 0.5)

        message = (
            f"Harvested {crop_def.name}: {yield_amount:.1f} {crop_def.yield_unit} at "
            f"${price:.2f}/{crop_def.yield_unit} = ${gross_revenue} (labor: ${crop_def.labor_cost}"
        )
        if repayment:
            message += f", loan repayment: ${repayment}"
        self._notify(state, "harvest", message + ")")

        if crop.is_perennial:
            crop.growth_stage = "mature"
            crop.gdd_accumulated = crop_def.gdd_to_maturity * PERENNIAL_RESET_PROGRESS
            crop.overripe_days_remaining = -1
            crop.water_stress_days = 0
            crop.planted_day = state.calendar.total_day
            crop.harvested_this_season = True
        else:
            cell.crop = None
        logger.debug("Harvested %s at (%s, %s) for %s", crop_def.id, cell.row, cell.col, gross_revenue)
        return HarvestOutcome(
            crop_id=crop_def.id,
            yield_amount=yield_amount,
            gross_revenue=gross_revenue,
            labor_cost=crop_def.labor_cost,
            repayment=repayment,
        )

    def _notify(self, state: GameState, kind, message: str) -> None:
        state.add_notification(kind, message, self._config.notification_limit)


def _rows_of(cells: List[Cell]) -> List[List[Cell]]:
    ordered = sorted(cells, key=lambda cell: (cell.row, cell.col))
    return [list(group) for _, group in groupby(ordered, key=lambda cell: cell.row)]
