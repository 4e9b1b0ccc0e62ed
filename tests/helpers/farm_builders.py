from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from farmsim.config import EngineConfig
from farmsim.core.calendar import calendar_for_day
from farmsim.data.repositories import CropsRepository, EventsRepository
from farmsim.domain.climate import build_baseline_scenario
from farmsim.domain.state import CropInstance, GameState, new_game_state
from farmsim.domain.weather import DailyWeather
from farmsim.services.autopause_service import AutoPauseService
from farmsim.services.clock_service import ClockService
from farmsim.services.controllers import FarmController
from farmsim.services.event_service import EventService
from farmsim.services.ledger_service import LedgerService
from farmsim.services.persistence_service import PersistenceService
from farmsim.services.save_service import SaveService
from farmsim.services.slot_store import InMemorySlotStorage
from farmsim.services.soil_service import SoilService

FIXED_NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


@dataclass(slots=True)
class Services:
    config: EngineConfig
    crops_repo: CropsRepository
    events_repo: EventsRepository
    ledger: LedgerService
    soil: SoilService
    events: EventService
    autopause: AutoPauseService
    clock: ClockService
    persistence: PersistenceService | None = None


def build_services(
    definitions_dir: Path | None = None,
    config: EngineConfig | None = None,
    storage: InMemorySlotStorage | None = None,
) -> Services:
    config = config or EngineConfig()
    crops_repo = CropsRepository(base_path=definitions_dir)
    events_repo = EventsRepository(base_path=definitions_dir, crops_repo=crops_repo)
    ledger = LedgerService(config)
    soil = SoilService(crops_repo=crops_repo, ledger=ledger, config=config)
    events = EventService(events_repo=events_repo, ledger=ledger, config=config)
    autopause = AutoPauseService(events=events, ledger=ledger, config=config)
    persistence = None
    if storage is not None:
        save_service = SaveService(crops_repo=crops_repo, events_repo=events_repo)
        persistence = PersistenceService(save_service=save_service, storage=storage, now=lambda: FIXED_NOW)
    clock = ClockService(
        scenario=build_baseline_scenario(),
        soil=soil,
        ledger=ledger,
        events=events,
        autopause=autopause,
        config=config,
        persistence=persistence,
    )
    return Services(
        config=config,
        crops_repo=crops_repo,
        events_repo=events_repo,
        ledger=ledger,
        soil=soil,
        events=events,
        autopause=autopause,
        clock=clock,
        persistence=persistence,
    )


def build_controller(config: EngineConfig | None = None, storage: InMemorySlotStorage | None = None) -> FarmController:
    controller = FarmController(
        config=config,
        storage=storage or InMemorySlotStorage(),
        now=lambda: FIXED_NOW,
    )
    controller.new_game("tester", seed=42)
    return controller


def build_state(seed: int = 42, cash: int = 50000) -> GameState:
    return new_game_state("tester", seed, cash)


def set_day(state: GameState, total_day: int) -> None:
    state.calendar = calendar_for_day(total_day)


def place_crop(state: GameState, row: int, col: int, crop_id: str, **fields: Any) -> CropInstance:
    crop = CropInstance(crop_id=crop_id, planted_day=state.calendar.total_day, **fields)
    state.grid[row][col].crop = crop
    return crop


def make_weather(high: float = 85.0, low: float = 65.0, precipitation: float = 0.0, et0: float = 0.2) -> DailyWeather:
    return DailyWeather(temp_high=high, temp_low=low, precipitation=precipitation, et0=et0)


def make_definitions_dir(tmp_path: Path) -> Path:
    definitions_dir = tmp_path / "definitions"
    definitions_dir.mkdir()
    return definitions_dir


def write_json(path: Path, payload: Dict[str, Any]) -> None:
    path.write_text(json.dumps(payload), encoding="utf-8")


def tomato_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "name": "Processing Tomatoes",
        "kind": "annual",
        "gdd_base": 50,
        "gdd_to_maturity": 2500,
        "planting_window": {"start_month": 3, "end_month": 5},
        "crop_coefficients": {"seedling": 0.3, "vegetative": 0.7, "flowering": 1.1, "mature": 0.9},
        "ky": 1.05,
        "nitrogen_uptake": 200,
        "yield_potential": 45,
        "yield_unit": "tons",
        "base_price": 80,
        "seed_cost": 150,
        "labor_cost": 200,
        "description": "Warm-season crop.",
    }
    payload.update(overrides)
    return payload


def event_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "kind": "climate",
        "title": "Test Event",
        "description": "Something happens.",
        "preconditions": [],
        "priority": 50,
        "cooldown_days": 30,
        "foreshadowing": {"signal": "Something is coming.", "lead_days": 0, "reliability": 1.0},
        "choices": [
            {
                "id": "pay",
                "label": "Pay",
                "description": "Pay to avoid trouble.",
                "requires_cash": 500,
                "effects": [{"type": "modify_cash", "amount": -500}],
            },
            {"id": "ignore", "label": "Ignore", "description": "Do nothing.", "effects": []},
        ],
    }
    payload.update(overrides)
    return payload


def write_definitions(tmp_path: Path, events: Dict[str, Any], crops: Dict[str, Any] | None = None) -> Path:
    definitions_dir = make_definitions_dir(tmp_path)
    write_json(definitions_dir / "crops.json", crops if crops is not None else {"processing_tomatoes": tomato_payload()})
    write_json(definitions_dir / "events.json", events)
    return definitions_dir
