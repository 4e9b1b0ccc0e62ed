"""Mutable game state tree."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Literal, Tuple

from farmsim.core.calendar import STARTING_DAY, CalendarDate, calendar_for_day
from farmsim.core.rng import RNG
from farmsim.core.types import GrowthStage, NotificationKind
from farmsim.domain.panels import ActivePanel, GameOverPanel, LoanOfferPanel, ThresholdPanel
from farmsim.domain.weather import WeatherState

GRID_ROWS = 8
GRID_COLS = 8

STARTING_NITROGEN = 100.0
STARTING_ORGANIC_MATTER = 2.0
STARTING_MOISTURE = 4.0
BASE_MOISTURE_CAPACITY = 6.0
OM_MOISTURE_BONUS_PER_PERCENT = 0.8
EVENT_RNG_SEED_OFFSET = 10000

EffectKind = Literal["yield_modifier", "price_modifier", "irrigation_cost", "watering_restriction"]


def moisture_capacity_for(organic_matter: float) -> float:
    return BASE_MOISTURE_CAPACITY + (organic_matter - 2.0) * OM_MOISTURE_BONUS_PER_PERCENT


@dataclass(slots=True)
class SoilState:
    nitrogen: float = STARTING_NITROGEN
    moisture: float = STARTING_MOISTURE
    organic_matter: float = STARTING_ORGANIC_MATTER
    moisture_capacity: float = BASE_MOISTURE_CAPACITY


@dataclass(slots=True)
class CropInstance:
    """A crop growing in one cell.

    ``planted_day`` is reset when a perennial wakes or is harvested so the
    water-stress ratio always covers the current season only.
    """

    crop_id: str
    planted_day: int
    gdd_accumulated: float = 0.0
    water_stress_days: int = 0
    growth_stage: GrowthStage = "seedling"
    overripe_days_remaining: int = -1
    is_perennial: bool = False
    perennial_age: int = 0
    established: bool = False
    is_dormant: bool = False
    harvested_this_season: bool = False
    chill_hours: float = 0.0


@dataclass(slots=True)
class Cell:
    row: int
    col: int
    soil: SoilState = field(default_factory=SoilState)
    crop: CropInstance | None = None


@dataclass(slots=True)
class Loan:
    principal: int
    interest_rate: float
    balance: float
    remaining_term: int


@dataclass(slots=True)
class LedgerState:
    cash: int
    yearly_revenue: int = 0
    yearly_expenses: int = 0
    yearly_interest: float = 0.0
    insolvent_days: int = 0
    loans: List[Loan] = field(default_factory=list)
    loans_taken: int = 0

    @property
    def debt(self) -> float:
        return sum(loan.balance for loan in self.loans)


@dataclass(slots=True)
class EventOccurrence:
    occurrence_id: int
    event_id: str
    scheduled_on_day: int
    fires_on_day: int
    is_false_alarm: bool = False


@dataclass(slots=True)
class ActiveEffect:
    """A timed modifier installed by an event choice; gone once ``expires_on_day`` is reached."""

    kind: EffectKind
    value: float
    expires_on_day: int
    source_event_id: str
    crop_id: str | None = None


@dataclass(slots=True)
class EventLogEntry:
    occurrence_id: int
    event_id: str
    day: int
    choice_id: str


@dataclass(slots=True)
class Notification:
    id: int
    kind: NotificationKind
    message: str
    day: int


@dataclass
class GameState:
    """Root aggregate for a single playthrough."""

    player_id: str
    seed: int
    calendar: CalendarDate
    ledger: LedgerState
    rng: RNG
    event_rng: RNG
    grid: List[List[Cell]] = field(default_factory=list)
    speed: int = 0
    weather: WeatherState = field(default_factory=WeatherState)
    scheduled_events: List[EventOccurrence] = field(default_factory=list)
    event_queue: List[EventOccurrence] = field(default_factory=list)
    event_log: List[EventLogEntry] = field(default_factory=list)
    active_effects: List[ActiveEffect] = field(default_factory=list)
    next_occurrence_id: int = 1
    active_panel: ActivePanel | None = None
    game_over: GameOverPanel | None = None
    loan_offer_pending: LoanOfferPanel | None = None
    pending_thresholds: List[ThresholdPanel] = field(default_factory=list)
    water_stress_paused_this_season: bool = False
    notifications: List[Notification] = field(default_factory=list)
    next_notification_id: int = 1
    flags: Dict[str, bool] = field(default_factory=dict)
    selected_cell: Tuple[int, int] | None = None

    def cell_at(self, row: int, col: int) -> Cell | None:
        if not (0 <= row < GRID_ROWS and 0 <= col < GRID_COLS):
            return None
        return self.grid[row][col]

    def iter_cells(self) -> Iterator[Cell]:
        for row in self.grid:
            yield from row

    def add_notification(self, kind: NotificationKind, message: str, limit: int) -> Notification:
        notification = Notification(
            id=self.next_notification_id,
            kind=kind,
            message=message,
            day=self.calendar.total_day,
        )
        self.next_notification_id += 1
        self.notifications.append(notification)
        if len(self.notifications) > limit:
            del self.notifications[: len(self.notifications) - limit]
        return notification


def create_grid() -> List[List[Cell]]:
    return [[Cell(row=row, col=col) for col in range(GRID_COLS)] for row in range(GRID_ROWS)]


def new_game_state(player_id: str, seed: int, starting_cash: int) -> GameState:
    """Build the opening state: spring of year 1, paused, all plots bare."""
    return GameState(
        player_id=player_id,
        seed=seed,
        calendar=calendar_for_day(STARTING_DAY),
        ledger=LedgerState(cash=starting_cash),
        rng=RNG(seed),
        event_rng=RNG(seed + EVENT_RNG_SEED_OFFSET),
        grid=create_grid(),
    )
