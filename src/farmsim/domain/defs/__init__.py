"""Domain definition exports."""

from .crop_def import CropDef, PlantingWindow
from .event_def import (
    CONDITION_TYPES,
    EFFECT_TYPES,
    ChoiceDef,
    ConditionDef,
    EffectDef,
    EventDef,
    ForeshadowDef,
)

__all__ = [
    "CONDITION_TYPES",
    "EFFECT_TYPES",
    "ChoiceDef",
    "ConditionDef",
    "CropDef",
    "EffectDef",
    "EventDef",
    "ForeshadowDef",
    "PlantingWindow",
]
