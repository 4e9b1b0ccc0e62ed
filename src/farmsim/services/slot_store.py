"""Save slot storage backends."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Protocol

from farmsim import config
from farmsim.services.errors import CorruptSaveDataError, SlotNotFoundError

_SLOT_PREFIX = "slot_"
_SLOT_SUFFIX = ".json"


class SlotStorage(Protocol):
    """Minimal key/value interface the persistence layer writes slot records through."""

    def list_slots(self) -> List[str]:
        ...

    def read_slot(self, slot_id: str) -> Dict[str, Any]:
        ...

    def write_slot(self, slot_id: str, record: Dict[str, Any]) -> None:
        ...

    def delete_slot(self, slot_id: str) -> bool:
        ...


def _decode(text: str, slot_id: str) -> Dict[str, Any]:
    try:
        record = json.loads(text)
    except ValueError as exc:
        raise CorruptSaveDataError(f"Slot '{slot_id}' is not valid JSON.") from exc
    if not isinstance(record, dict):
        raise CorruptSaveDataError(f"Slot '{slot_id}' must hold a JSON object.")
    return record


class JsonDirectorySlotStorage:
    """Stores one JSON file per slot in a directory."""

    def __init__(self, base_dir: Path | str | None = None) -> None:
        self._base_dir = Path(base_dir) if base_dir is not None else config.get_save_dir()

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def list_slots(self) -> List[str]:
        if not self._base_dir.exists():
            return []
        slot_ids = [
            path.name[len(_SLOT_PREFIX) : -len(_SLOT_SUFFIX)]
            for path in self._base_dir.glob(f"{_SLOT_PREFIX}*{_SLOT_SUFFIX}")
            if path.is_file()
        ]
        return sorted(slot_ids)

    def read_slot(self, slot_id: str) -> Dict[str, Any]:
        path = self._slot_path(slot_id)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise SlotNotFoundError(f"No save named '{slot_id}'.") from exc
        except UnicodeDecodeError as exc:
            raise CorruptSaveDataError(f"Slot '{slot_id}' is not valid UTF-8.") from exc
        except OSError as exc:
            raise CorruptSaveDataError(f"Slot '{slot_id}' could not be read: {exc}") from exc
        return _decode(text, slot_id)

    def write_slot(self, slot_id: str, record: Dict[str, Any]) -> None:
        self._base_dir.mkdir(parents=True, exist_ok=True)
        path = self._slot_path(slot_id)
        path.write_text(json.dumps(record, indent=2, sort_keys=True), encoding="utf-8")

    def delete_slot(self, slot_id: str) -> bool:
        try:
            self._slot_path(slot_id).unlink()
        except FileNotFoundError:
            return False
        return True

    def _slot_path(self, slot_id: str) -> Path:
        return self._base_dir / f"{_SLOT_PREFIX}{slot_id}{_SLOT_SUFFIX}"


class InMemorySlotStorage:
    """Keeps encoded slot records in a dict; records are copied on every read and write."""

    def __init__(self) -> None:
        self._slots: Dict[str, str] = {}

    def list_slots(self) -> List[str]:
        return sorted(self._slots)

    def read_slot(self, slot_id: str) -> Dict[str, Any]:
        try:
            text = self._slots[slot_id]
        except KeyError as exc:
            raise SlotNotFoundError(f"No save named '{slot_id}'.") from exc
        return _decode(text, slot_id)

    def write_slot(self, slot_id: str, record: Dict[str, Any]) -> None:
        self._slots[slot_id] = json.dumps(record, sort_keys=True)

    def write_raw(self, slot_id: str, text: str) -> None:
        """Store undecoded text, e.g. to simulate a damaged slot."""
        self._slots[slot_id] = text

    def delete_slot(self, slot_id: str) -> bool:
        return self._slots.pop(slot_id, None) is not None
