"""Repository exports."""

from .crops_repo import CropsRepository
from .events_repo import EventsRepository

__all__ = [
    "CropsRepository",
    "EventsRepository",
]
