"""UI-agnostic controllers."""

from .farm_controller import FarmController

__all__ = ["FarmController"]
