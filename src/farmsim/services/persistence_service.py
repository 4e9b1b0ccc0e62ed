"""Named, versioned save slots on top of a pluggable storage backend."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

from farmsim.domain.state import GameState
from farmsim.services.errors import CorruptSaveDataError, SaveLoadError, UnsupportedFormatVersionError
from farmsim.services.save_service import SaveService
from farmsim.services.slot_store import SlotStorage

logger = logging.getLogger(__name__)

_DEFAULT_SLOT_ID = "untitled"

# Reserved for the season-change autosave; normalize_slot_id never yields an underscore.
AUTOSAVE_SLOT_ID = "_autosave"
AUTOSAVE_NAME = "Autosave"


@dataclass(frozen=True, slots=True)
class SlotInfo:
    """Slot metadata for menu display."""

    id: str
    name: str
    saved_at: str
    written_at: str
    sequence: int
    format_version: int | None
    is_corrupt: bool = False


def normalize_slot_id(name: str) -> str:
    """Turn a display name into a storage key, e.g. ``"My Farm!"`` -> ``"my-farm"``."""
    slot_id = re.sub(r"[^a-z0-9]+", "-", name.strip().lower()).strip("-")
    return slot_id or _DEFAULT_SLOT_ID


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PersistenceService:
    """Writes, lists, loads and deletes save slots."""

    def __init__(
        self,
        *,
        save_service: SaveService,
        storage: SlotStorage,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._save_service = save_service
        self._storage = storage
        self._now = now

    def save(self, state: GameState, name: str) -> SlotInfo:
        slot_id = normalize_slot_id(name)
        return self._write(state, slot_id, name.strip() or slot_id)

    def autosave(self, state: GameState) -> SlotInfo:
        """Overwrite the reserved autosave slot; it never shows up in list_slots()."""
        return self._write(state, AUTOSAVE_SLOT_ID, AUTOSAVE_NAME)

    def has_autosave(self) -> bool:
        return AUTOSAVE_SLOT_ID in self._storage.list_slots()

    def load_autosave(self) -> GameState:
        return self.load(AUTOSAVE_SLOT_ID)

    def list_slots(self) -> List[SlotInfo]:
        """Return slot metadata, most recently written first; unreadable slots are flagged."""
        return [info for info in self._scan() if info.id != AUTOSAVE_SLOT_ID]

    def _write(self, state: GameState, slot_id: str, name: str) -> SlotInfo:
        sequence = max((info.sequence for info in self._scan()), default=0) + 1
        record: Dict[str, Any] = {
            "id": slot_id,
            "name": name,
            "saved_at": state.calendar.describe(),
            "written_at": self._now().isoformat(),
            "sequence": sequence,
            "format_version": SaveService.SAVE_VERSION,
            "state": self._save_service.serialize(state),
        }
        self._storage.write_slot(slot_id, record)
        logger.info("Saved slot %s (sequence %s)", slot_id, sequence)
        return self._slot_info(slot_id, record)

    def _scan(self) -> List[SlotInfo]:
        slots: List[SlotInfo] = []
        for slot_id in self._storage.list_slots():
            try:
                record = self._storage.read_slot(slot_id)
                slots.append(self._slot_info(slot_id, record))
            except SaveLoadError as exc:
                logger.warning("Slot %s is unreadable: %s", slot_id, exc)
                slots.append(
                    SlotInfo(
                        id=slot_id,
                        name=slot_id,
                        saved_at="",
                        written_at="",
                        sequence=0,
                        format_version=None,
                        is_corrupt=True,
                    )
                )
        slots.sort(key=lambda info: (-info.sequence, info.id))
        return slots

    def load(self, slot_id: str) -> GameState:
        """Return a fresh GameState from the slot; raises SaveLoadError subclasses on failure."""
        record = self._storage.read_slot(slot_id)
        version = record.get("format_version")
        if version != SaveService.SAVE_VERSION:
            raise UnsupportedFormatVersionError(
                f"Slot '{slot_id}' uses format version {version!r}; expected {SaveService.SAVE_VERSION}."
            )
        payload = record.get("state")
        if not isinstance(payload, dict):
            raise CorruptSaveDataError(f"Slot '{slot_id}' has no state payload.")
        state = self._save_service.deserialize(payload)
        logger.info("Loaded slot %s", slot_id)
        return state

    def delete_slot(self, slot_id: str) -> bool:
        deleted = self._storage.delete_slot(slot_id)
        if deleted:
            logger.info("Deleted slot %s", slot_id)
        return deleted

    @staticmethod
    def _slot_info(slot_id: str, record: Dict[str, Any]) -> SlotInfo:
        name = record.get("name")
        saved_at = record.get("saved_at")
        written_at = record.get("written_at")
        sequence = record.get("sequence")
        version = record.get("format_version")
        if not isinstance(name, str) or not isinstance(saved_at, str) or not isinstance(written_at, str):
            raise CorruptSaveDataError(f"Slot '{slot_id}' has malformed metadata.")
        if isinstance(sequence, bool) or not isinstance(sequence, int):
            raise CorruptSaveDataError(f"Slot '{slot_id}' has no sequence number.")
        return SlotInfo(
            id=slot_id,
            name=name,
            saved_at=saved_at,
            written_at=written_at,
            sequence=sequence,
            format_version=version if isinstance(version, int) and not isinstance(version, bool) else None,
        )
