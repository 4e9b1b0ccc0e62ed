"""Crop definition structures."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from farmsim.core.types import CropKind, GrowthStage, Season


@dataclass(frozen=True, slots=True)
class PlantingWindow:
    """Inclusive month range in which a crop may be planted."""

    start_month: int
    end_month: int


@dataclass(frozen=True, slots=True)
class CropDef:
    """Static agronomic and economic parameters for one crop."""

    id: str
    name: str
    kind: CropKind
    gdd_base: float
    gdd_to_maturity: float
    planting_window: PlantingWindow
    crop_coefficients: Dict[GrowthStage, float]
    ky: float
    nitrogen_uptake: float
    yield_potential: float
    yield_unit: str
    base_price: float
    seed_cost: int
    labor_cost: int
    description: str = ""
    years_to_establish: int = 0
    removal_cost: int = 0
    annual_maintenance_cost: int = 0
    dormant_seasons: List[Season] = field(default_factory=list)
    chill_hours_required: float | None = None

    @property
    def is_perennial(self) -> bool:
        return self.kind == "perennial"

    def coefficient_for(self, stage: GrowthStage) -> float:
        return self.crop_coefficients.get(stage, 0.5)
