"""UI-agnostic engine facade: the command API plus immutable snapshots."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Sequence, Tuple

from farmsim.config import EngineConfig
from farmsim.core.types import BulkOp, BulkScope
from farmsim.data.repositories import CropsRepository, EventsRepository
from farmsim.domain.climate import ClimateScenario, build_baseline_scenario
from farmsim.domain.state import GameState, new_game_state
from farmsim.services.autopause_service import AutoPauseService
from farmsim.services.clock_service import ClockService
from farmsim.services.errors import SaveLoadError
from farmsim.services.event_service import EventService
from farmsim.services.ledger_service import LedgerService
from farmsim.services.persistence_service import PersistenceService, SlotInfo
from farmsim.services.results import CommandResult
from farmsim.services.save_service import SaveService
from farmsim.services.slot_store import JsonDirectorySlotStorage, SlotStorage
from farmsim.services.snapshots import GameSnapshot, SnapshotBuilder
from farmsim.services.soil_service import SoilService

logger = logging.getLogger(__name__)

Subscriber = Callable[[GameSnapshot], None]


class FarmController:
    """
    Single writer for one playthrough.

    Responsibilities:
    - Own the GameState and route every command to the service that handles it
    - Reject commands while a panel is open or after the game has ended
    - Publish a fresh GameSnapshot to subscribers after each settled command or tick batch

    Non-responsibilities (handled by the presentation layer):
    - Rendering, input widgets, tutorials
    - Driving the frame loop that calls advance()
    """

    def __init__(
        self,
        *,
        config: EngineConfig | None = None,
        crops_repo: CropsRepository | None = None,
        events_repo: EventsRepository | None = None,
        storage: SlotStorage | None = None,
        scenario: ClimateScenario | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._crops_repo = crops_repo or CropsRepository()
        self._events_repo = events_repo or EventsRepository(crops_repo=self._crops_repo)
        self._ledger = LedgerService(self._config)
        self._soil = SoilService(crops_repo=self._crops_repo, ledger=self._ledger, config=self._config)
        self._events = EventService(events_repo=self._events_repo, ledger=self._ledger, config=self._config)
        self._autopause = AutoPauseService(events=self._events, ledger=self._ledger, config=self._config)
        save_service = SaveService(crops_repo=self._crops_repo, events_repo=self._events_repo)
        persistence_kwargs = {"save_service": save_service, "storage": storage or JsonDirectorySlotStorage()}
        if now is not None:
            persistence_kwargs["now"] = now
        self._persistence = PersistenceService(**persistence_kwargs)
        self._clock = ClockService(
            scenario=scenario or build_baseline_scenario(),
            soil=self._soil,
            ledger=self._ledger,
            events=self._events,
            autopause=self._autopause,
            config=self._config,
            persistence=self._persistence,
        )
        self._snapshots = SnapshotBuilder(crops_repo=self._crops_repo, events_repo=self._events_repo)
        self._subscribers: List[Subscriber] = []
        self._state: GameState | None = None

    @property
    def state(self) -> GameState | None:
        return self._state

    @property
    def config(self) -> EngineConfig:
        return self._config

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def new_game(self, player_id: str, seed: int | None = None) -> CommandResult:
        seed = self._config.default_seed if seed is None else seed
        self._state = new_game_state(player_id, seed, self._config.starting_cash)
        self._clock.reset()
        logger.info("New game for %s (seed %s)", player_id, seed)
        self._publish()
        return CommandResult.ok(f"Welcome, {player_id}.")

    # ------------------------------------------------------------------
    # Field commands
    # ------------------------------------------------------------------
    def select_cell(self, row: int, col: int) -> CommandResult:
        state = self._state
        if state is None:
            return self._no_game()
        if state.game_over is not None:
            return self._game_over()
        if state.cell_at(row, col) is None:
            return CommandResult.rejected("invalid_cell", f"No plot at row {row}, col {col}.")
        state.selected_cell = (row, col)
        self._publish()
        return CommandResult.ok()

    def plant(self, row: int, col: int, crop_id: str) -> CommandResult:
        return self._field_command(lambda state: self._soil.plant(state, row, col, crop_id))

    def harvest(self, row: int, col: int) -> CommandResult:
        return self._field_command(lambda state: self._soil.harvest(state, row, col))

    def remove_crop(self, row: int, col: int) -> CommandResult:
        return self._field_command(lambda state: self._soil.remove_crop(state, row, col))

    def water(self, cells: Sequence[Tuple[int, int]]) -> CommandResult:
        return self._field_command(lambda state: self._soil.water(state, cells))

    def bulk(
        self,
        scope: BulkScope,
        op: BulkOp,
        index: int | None = None,
        crop_id: str | None = None,
        confirmed: bool = False,
        max_rows: int | None = None,
    ) -> CommandResult:
        return self._field_command(
            lambda state: self._soil.bulk(
                state, scope, op, index, crop_id, confirmed=confirmed, max_rows=max_rows
            )
        )

    def preview_bulk(
        self,
        scope: BulkScope,
        op: BulkOp,
        index: int | None = None,
        crop_id: str | None = None,
    ) -> CommandResult:
        state = self._state
        if state is None:
            return self._no_game()
        return self._soil.preview_bulk(state, scope, op, index, crop_id)

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------
    def set_speed(self, speed: int) -> CommandResult:
        state = self._state
        if state is None:
            return self._no_game()
        result = self._clock.set_speed(state, speed)
        if result.success:
            self._publish()
        return result

    def advance(self, real_seconds: float) -> CommandResult:
        """Feed elapsed wall-clock time to the scheduler."""
        state = self._state
        if state is None:
            return self._no_game()
        rejection = self._blocked(state)
        if rejection is not None:
            return rejection
        ticks = self._clock.advance(state, real_seconds)
        if ticks:
            self._publish()
        return CommandResult.ok(ticks=ticks)

    def step(self, ticks: int = 1) -> CommandResult:
        """Run up to ``ticks`` simulated days regardless of speed."""
        state = self._state
        if state is None:
            return self._no_game()
        rejection = self._blocked(state)
        if rejection is not None:
            return rejection
        ran = self._clock.step(state, ticks)
        if ran:
            self._publish()
        return CommandResult.ok(ticks=ran)

    # ------------------------------------------------------------------
    # Panels and notifications
    # ------------------------------------------------------------------
    def resolve_panel(self, response: object = None) -> CommandResult:
        state = self._state
        if state is None:
            return self._no_game()
        result = self._autopause.resolve(state, response)
        if result.success:
            self._publish()
        return result

    def dismiss_notification(self, notification_id: int) -> CommandResult:
        state = self._state
        if state is None:
            return self._no_game()
        if state.game_over is not None:
            return self._game_over()
        remaining =[entry for entry in state.notifications if entry.id != notification_id]
        if len(remaining) == len(state.notifications):
            return CommandResult.rejected("nothing_to_do", f"No notification {notification_id}.")
        state.notifications = remaining
        self._publish()
        return CommandResult.ok()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def save(self, name: str) -> SlotInfo:
        if self._state is None:
            raise SaveLoadError("There is no game in progress to save.")
        return self._persistence.save(self._state, name)

    def load(self, slot_id: str) -> GameSnapshot:
        """Replace the session with a saved game; on failure the current session is kept."""
        return self._resume(self._persistence.load(slot_id))

    def has_autosave(self) -> bool:
        return self._persistence.has_autosave()

    def load_autosave(self) -> GameSnapshot:
        """Resume from the last season-change autosave."""
        return self._resume(self._persistence.load_autosave())

    def delete_slot(self, slot_id: str) -> bool:
        return self._persistence.delete_slot(slot_id)

    def list_slots(self) -> List[SlotInfo]:
        return self._persistence.list_slots()

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------
    def snapshot(self) -> GameSnapshot:
        if self._state is None:
            raise RuntimeError("No game in progress.")
        return self._snapshots.build(self._state)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for snapshots; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _resume(self, state: GameState) -> GameSnapshot:
        self._state = state
        self._clock.reset()
        snapshot = self._snapshots.build(state)
        self._publish(snapshot)
        return snapshot

    def _field_command(self, action: Callable[[GameState], CommandResult]) -> CommandResult:
        state = self._state
        if state is None:
            return self._no_game()
        rejection = self._blocked(state)
        if rejection is not None:
            return rejection
        result = action(state)
        if result.success:
            self._publish()
        else:
            logger.debug("Command rejected: %s", result.reason)
        return result

    @staticmethod
    def _blocked(state: GameState) -> CommandResult | None:
        if state.game_over is not None:
            return FarmController._game_over()
        if state.active_panel is not None:
            return CommandResult.rejected("panel_active", "Respond to the open panel first.")
        return None

    @staticmethod
    def _game_over() -> CommandResult:
        return CommandResult.rejected("game_over", "The game is over. Start a new game to keep farming.")

    @staticmethod
    def _no_game() -> CommandResult:
        return CommandResult.rejected("no_game", "Start or load a game first.")

    def _publish(self, snapshot: GameSnapshot | None = None) -> None:
        if not self._subscribers or self._state is None:
            return
        snapshot = snapshot or self._snapshots.build(self._state)
        for callback in list(self._subscribers):
            callback(snapshot)
