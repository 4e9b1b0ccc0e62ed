import json
from pathlib import Path

import pytest

from farmsim.services.errors import CorruptSaveDataError, SlotNotFoundError, UnsupportedFormatVersionError
from farmsim.services.persistence_service import AUTOSAVE_SLOT_ID, PersistenceService, normalize_slot_id
from farmsim.services.save_service import SaveService
from farmsim.services.slot_store import InMemorySlotStorage, JsonDirectorySlotStorage
from tests.helpers.farm_builders import FIXED_NOW, build_services, build_state, place_crop


@pytest.fixture(params=["memory", "directory"])
def storage(request, tmp_path: Path):
    if request.param == "memory":
        return InMemorySlotStorage()
    return JsonDirectorySlotStorage(tmp_path / "saves")


def _build_persistence(storage) -> PersistenceService:
    services = build_services()
    save_service = SaveService(crops_repo=services.crops_repo, events_repo=services.events_repo)
    return PersistenceService(save_service=save_service, storage=storage, now=lambda: FIXED_NOW)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("My Farm!", "my-farm"),
        ("  Spring  Run 2 ", "spring-run-2"),
        ("", "untitled"),
        ("!!!", "untitled"),
    ],
)
def test_normalize_slot_id(name: str, expected: str) -> None:
    assert normalize_slot_id(name) == expected


def test_save_writes_metadata(storage) -> None:
    persistence = _build_persistence(storage)
    state = build_state()

    info = persistence.save(state, "My Farm")

    assert info.id == "my-farm"
    assert info.name == "My Farm"
    assert info.saved_at == "March 1, Year 1 (Spring)"
    assert info.written_at == FIXED_NOW.isoformat()
    assert info.sequence == 1
    assert info.format_version == SaveService.SAVE_VERSION
    assert not info.is_corrupt


def test_load_round_trips(storage) -> None:
    persistence = _build_persistence(storage)
    state = build_state(seed=3)
    place_crop(state, 2, 2, "sorghum")
    state.ledger.cash = 1234
    persistence.save(state, "Run")

    loaded = persistence.load("run")

    assert loaded is not state
    assert loaded.ledger.cash == 1234
    assert loaded.grid[2][2].crop == state.grid[2][2].crop
    assert loaded.rng == state.rng


def test_overwrite_bumps_sequence_and_orders_newest_first(storage) -> None:
    persistence = _build_persistence(storage)
    state = build_state()

    persistence.save(state, "alpha")
    persistence.save(state, "beta")
    persistence.save(state, "alpha")

    slots = persistence.list_slots()

    assert [slot.id for slot in slots] == ["alpha", "beta"]
    assert [slot.sequence for slot in slots] == [3, 2]


def test_missing_slot_raises(storage) -> None:
    persistence = _build_persistence(storage)

    with pytest.raises(SlotNotFoundError):
        persistence.load("ghost")


def test_delete_slot(storage) -> None:
    persistence = _build_persistence(storage)
    persistence.save(build_state(), "alpha")

    assert persistence.delete_slot("alpha")
    assert not persistence.delete_slot("alpha")
    assert persistence.list_slots() == []


def test_autosave_slot_is_reserved(storage) -> None:
    persistence = _build_persistence(storage)
    state = build_state()
    state.ledger.cash = 777
    assert not persistence.has_autosave()

    persistence.save(state, "alpha")
    info = persistence.autosave(state)
    persistence.save(build_state(), "Autosave")

    assert info.id == AUTOSAVE_SLOT_ID
    assert info.name == "Autosave"
    assert info.sequence == 2
    assert persistence.has_autosave()
    assert [slot.id for slot in persistence.list_slots()] == ["autosave", "alpha"]
    assert persistence.list_slots()[0].sequence == 3
    assert persistence.load_autosave().ledger.cash == 777
    assert persistence.delete_slot(AUTOSAVE_SLOT_ID)
    assert not persistence.has_autosave()


def test_corrupt_slot_listed_and_load_fails() -> None:
    storage = InMemorySlotStorage()
    persistence = _build_persistence(storage)
    persistence.save(build_state(), "good")
    storage.write_raw("broken", "{not json")

    slots = persistence.list_slots()

    assert [slot.id for slot in slots] == ["good", "broken"]
    assert slots[1].is_corrupt
    assert slots[1].sequence == 0
    with pytest.raises(CorruptSaveDataError):
        persistence.load("broken")


def test_wrong_version_slot_rejected(tmp_path: Path) -> None:
    storage = JsonDirectorySlotStorage(tmp_path)
    persistence = _build_persistence(storage)
    persistence.save(build_state(), "old")
    path = tmp_path / "slot_old.json"
    record = json.loads(path.read_text(encoding="utf-8"))
    record["format_version"] = 99
    path.write_text(json.dumps(record), encoding="utf-8")

    with pytest.raises(UnsupportedFormatVersionError):
        persistence.load("old")


def test_slot_without_state_is_corrupt() -> None:
    storage = InMemorySlotStorage()
    persistence = _build_persistence(storage)
    storage.write_slot(
        "empty",
        {"id": "empty", "name": "Empty", "saved_at": "", "written_at": "", "sequence": 1, "format_version": 1},
    )

    with pytest.raises(CorruptSaveDataError):
        persistence.load("empty")


def test_directory_storage_file_layout(tmp_path: Path) -> None:
    storage = JsonDirectorySlotStorage(tmp_path / "nested")
    _build_persistence(storage).save(build_state(), "Farm One")

    assert (tmp_path / "nested" / "slot_farm-one.json").exists()
    assert storage.list_slots() == ["farm-one"]


def test_directory_storage_missing_dir_lists_nothing(tmp_path: Path) -> None:
    assert JsonDirectorySlotStorage(tmp_path / "absent").list_slots() == []


def test_directory_slot_that_cannot_be_read_is_corrupt(tmp_path: Path) -> None:
    storage = JsonDirectorySlotStorage(tmp_path)
    (tmp_path / "slot_folder.json").mkdir()

    with pytest.raises(CorruptSaveDataError):
        storage.read_slot("folder")


def test_unreadable_slot_file_listed_as_corrupt(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    storage = JsonDirectorySlotStorage(tmp_path)
    persistence = _build_persistence(storage)
    persistence.save(build_state(), "good")
    persistence.save(build_state(), "locked")
    original_read_text = Path.read_text

    def read_text(self: Path, *args, **kwargs) -> str:
        if self.name == "slot_locked.json":
            raise PermissionError(13, "Permission denied", str(self))
        return original_read_text(self, *args, **kwargs)

    monkeypatch.setattr(Path, "read_text", read_text)
    slots = persistence.list_slots()

    assert [slot.id for slot in slots] == ["good", "locked"]
    assert slots[1].is_corrupt
    with pytest.raises(CorruptSaveDataError):
        persistence.load("locked")
