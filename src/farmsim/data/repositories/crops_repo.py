"""Crops repository."""
from __future__ import annotations

from typing import Dict, List

from farmsim.core.types import GROWTH_STAGES, SEASONS, GrowthStage, Season
from farmsim.data.errors import DataValidationError
from farmsim.data.repositories.base import RepositoryBase
from farmsim.domain.defs import CropDef, PlantingWindow

_REQUIRED_FIELDS = {
    "name",
    "kind",
    "gdd_base",
    "gdd_to_maturity",
    "planting_window",
    "crop_coefficients",
    "ky",
    "nitrogen_uptake",
    "yield_potential",
    "yield_unit",
    "base_price",
    "seed_cost",
    "labor_cost",
    "description",
}
_PERENNIAL_FIELDS = {
    "years_to_establish",
    "removal_cost",
    "annual_maintenance_cost",
    "dormant_seasons",
    "chill_hours_required",
}


class CropsRepository(RepositoryBase[CropDef]):
    """Loads and validates crop definitions."""

    def __init__(self, base_path=None) -> None:
        super().__init__("crops.json", base_path)

    def _build(self, raw: dict[str, object]) -> Dict[str, CropDef]:
        crops: Dict[str, CropDef] = {}
        for crop_id, payload in raw.items():
            context = f"crop '{crop_id}'"
            data = self._require_mapping(payload, context)
            self._assert_exact_fields(data, _REQUIRED_FIELDS, context, optional_keys=_PERENNIAL_FIELDS)

            kind = self._require_str(data["kind"], f"{context} kind")
            if kind not in ("annual", "perennial"):
                raise DataValidationError(f"{context} kind must be 'annual' or 'perennial'.")
            gdd_to_maturity = self._require_number(data["gdd_to_maturity"], f"{context} gdd_to_maturity")
            if gdd_to_maturity <= 0:
                raise DataValidationError(f"{context} gdd_to_maturity must be positive.")
            nitrogen_uptake = self._require_number(data["nitrogen_uptake"], f"{context} nitrogen_uptake")
            if nitrogen_uptake <= 0:
                raise DataValidationError(f"{context} nitrogen_uptake must be positive.")
            seed_cost = self._require_int(data["seed_cost"], f"{context} seed_cost")
            labor_cost = self._require_int(data["labor_cost"], f"{context} labor_cost")
            if seed_cost < 0 or labor_cost < 0:
                raise DataValidationError(f"{context} costs must be non-negative.")

            chill_raw = data.get("chill_hours_required")
            chill_hours = (
                None if chill_raw is None else self._require_number(chill_raw, f"{context} chill_hours_required")
            )

            crops[crop_id] = CropDef(
                id=crop_id,
                name=self._require_str(data["name"], f"{context} name"),
                kind=kind,  # type: ignore[arg-type]
                gdd_base=self._require_number(data["gdd_base"], f"{context} gdd_base"),
                gdd_to_maturity=gdd_to_maturity,
                planting_window=self._parse_window(data["planting_window"], context),
                crop_coefficients=self._parse_coefficients(data["crop_coefficients"], context),
                ky=self._require_number(data["ky"], f"{context} ky"),
                nitrogen_uptake=nitrogen_uptake,
                yield_potential=self._require_number(data["yield_potential"], f"{context} yield_potential"),
                yield_unit=self._require_str(data["yield_unit"], f"{context} yield_unit"),
                base_price=self._require_number(data["base_price"], f"{context} base_price"),
                seed_cost=seed_cost,
                labor_cost=labor_cost,
                description=self._require_str(data["description"], f"{context} description"),
                years_to_establish=self._require_int(data.get("years_to_establish", 0), f"{context} years_to_establish"),
                removal_cost=self._require_int(data.get("removal_cost", 0), f"{context} removal_cost"),
                annual_maintenance_cost=self._require_int(
                    data.get("annual_maintenance_cost", 0), f"{context} annual_maintenance_cost"
                ),
                dormant_seasons=self._parse_seasons(data.get("dormant_seasons", []), context),
                chill_hours_required=chill_hours,
            )
        return crops

    def _parse_window(self, value: object, context: str) -> PlantingWindow:
        window = self._require_mapping(value, f"{context} planting_window")
        self._assert_exact_fields(window, {"start_month", "end_month"}, f"{context} planting_window")
        start = self._require_int(window["start_month"], f"{context} planting_window start_month")
        end = self._require_int(window["end_month"], f"{context} planting_window end_month")
        if not (1 <= start <= 12 and 1 <= end <= 12):
            raise DataValidationError(f"{context} planting_window months must be within 1-12.")
        return PlantingWindow(start_month=start, end_month=end)

    def _parse_coefficients(self, value: object, context: str) -> Dict[GrowthStage, float]:
        mapping = self._require_mapping(value, f"{context} crop_coefficients")
        unknown = set(mapping.keys()) - set(GROWTH_STAGES)
        if unknown:
            raise DataValidationError(f"{context} crop_coefficients has unknown stages: {sorted(unknown)}.")
        coefficients: Dict[GrowthStage, float] = {}
        for stage in GROWTH_STAGES:
            if stage in mapping:
                coefficients[stage] = self._require_number(mapping[stage], f"{context} kc[{stage}]")
        return coefficients

    def _parse_seasons(self, value: object, context: str) -> List[Season]:
        if not isinstance(value, list):
            raise DataValidationError(f"{context} dormant_seasons must be a list.")
        seasons: List[Season] = []
        for entry in value:
            if entry not in SEASONS:
                raise DataValidationError(f"{context} dormant_seasons has invalid season {entry!r}.")
            seasons.append(entry)
        return seasons
