"""Shared type aliases for the core and domain layers."""
from typing import Literal

Season = Literal["spring", "summer", "fall", "winter"]
GrowthStage = Literal["seedling", "vegetative", "flowering", "mature", "harvestable", "overripe"]
CropKind = Literal["annual", "perennial"]
GameSpeed = Literal[0, 1, 2, 4]
BulkScope = Literal["row", "col", "field"]
BulkOp = Literal["plant", "water", "harvest"]
PanelKind = Literal["game_over", "event", "loan_offer", "threshold"]
ThresholdReason = Literal["harvest_ready", "water_stress", "year_end"]
GameOverReason = Literal["year_30", "bankruptcy", "debt_spiral"]
NotificationKind = Literal[
    "info",
    "harvest",
    "season_change",
    "crop_rotted",
    "foreshadowing",
    "event_result",
    "loan",
]

SEASONS: tuple[Season, ...] = ("spring", "summer", "fall", "winter")
GROWTH_STAGES: tuple[GrowthStage, ...] = (
    "seedling",
    "vegetative",
    "flowering",
    "mature",
    "harvestable",
    "overripe",
)
VALID_SPEEDS: tuple[int, ...] = (0, 1, 2, 4)

__all__ = [
    "BulkOp",
    "BulkScope",
    "CropKind",
    "GameOverReason",
    "GameSpeed",
    "GROWTH_STAGES",
    "GrowthStage",
    "NotificationKind",
    "PanelKind",
    "SEASONS",
    "Season",
    "ThresholdReason",
    "VALID_SPEEDS",
]
