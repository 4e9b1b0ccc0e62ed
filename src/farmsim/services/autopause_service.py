"""Auto-pause coordinator: owns the single active panel."""
from __future__ import annotations

import logging

from farmsim.config import EngineConfig
from farmsim.core.types import GameOverReason
from farmsim.domain.panels import ActivePanel, EventPanel, GameOverPanel, LoanOfferPanel, ThresholdPanel
from farmsim.domain.state import GameState
from farmsim.services.event_service import EventService
from farmsim.services.ledger_service import LedgerService
from farmsim.services.results import CommandResult

logger = logging.getLogger(__name__)

_THRESHOLD_RESPONSES = (None, "dismiss", "acknowledge")


class AutoPauseService:
    """Collects pause conditions and surfaces them one at a time by priority."""

    def __init__(self, *, events: EventService, ledger: LedgerService, config: EngineConfig) -> None:
        self._events = events
        self._ledger = ledger
        self._config = config

    # ------------------------------------------------------------------
    # Pending conditions
    # ------------------------------------------------------------------
    def raise_game_over(self, state: GameState, reason: GameOverReason, message: str) -> None:
        if state.game_over is not None:
            return
        state.game_over = GameOverPanel(
            reason=reason,
            message=message,
            day=state.calendar.total_day,
            cash=state.ledger.cash,
            debt=round(state.ledger.debt, 2),
        )
        state.loan_offer_pending = None
        logger.info("Game over (%s) on day %s", reason, state.calendar.total_day)

    def queue_threshold(self, state: GameState, panel: ThresholdPanel) -> None:
        """Record a threshold pause; a newer one replaces a pending one with the same reason."""
        state.pending_thresholds = [p for p in state.pending_thresholds if p.reason != panel.reason]
        state.pending_thresholds.append(panel)
        state.pending_thresholds.sort(key=lambda pending: -pending.priority)

    def offer_loan(self, state: GameState, offer: LoanOfferPanel) -> None:
        active = state.active_panel
        if state.loan_offer_pending is not None or (active is not None and active.kind == "loan_offer"):
            return
        state.loan_offer_pending = offer

    # ------------------------------------------------------------------
    # Surfacing
    # ------------------------------------------------------------------
    def surface(self, state: GameState) -> ActivePanel | None:
        """Promote the highest pending condition to the active panel, pausing the clock."""
        active = state.active_panel
        if state.game_over is not None:
            if isinstance(active, GameOverPanel):
                return None
            # Game over pre-empts whatever is on screen.
            state.active_panel = state.game_over
            state.speed = 0
            return state.active_panel
        if active is not None:
            return None
        panel: ActivePanel | None = None
        if state.event_queue:
            occurrence = state.event_queue.pop(0)
            panel = EventPanel(occurrence_id=occurrence.occurrence_id, event_id=occurrence.event_id)
        elif state.loan_offer_pending is not None:
            panel = state.loan_offer_pending
            state.loan_offer_pending = None
        elif state.pending_thresholds:
            panel = state.pending_thresholds.pop(0)
        if panel is None:
            return None
        state.active_panel = panel
        state.speed = 0
        logger.debug("Surfaced %s panel", panel.kind)
        return panel

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------
    def resolve(self, state: GameState, response: object) -> CommandResult:
        panel = state.active_panel
        if panel is None:
            return CommandResult.rejected("no_panel", "There is nothing to respond to.")
        if isinstance(panel, GameOverPanel):
            return CommandResult.rejected("game_over", "The game is over. Start a new game to keep farming.")
        if isinstance(panel, EventPanel):
            result = self._events.resolve(state, panel.occurrence_id, panel.event_id, response)
        elif isinstance(panel, LoanOfferPanel):
            result = self._resolve_loan(state, panel, response)
        else:
            if response not in _THRESHOLD_RESPONSES:
                return CommandResult.rejected("invalid_choice", f"'{response}' is not a valid response.")
            result = CommandResult.ok(panel.message)
        if not result.success:
            return result
        state.active_panel = None
        self.surface(state)
        return result

    def _resolve_loan(self, state: GameState, offer: LoanOfferPanel, response: object) -> CommandResult:
        if response == "accept":
            self._ledger.accept_loan(state, offer)
            state.add_notification(
                "loan",
                f"Emergency loan of ${offer.amount} received at {offer.interest_rate * 100:.0f}% interest.",
                self._config.notification_limit,
            )
            return CommandResult.ok("Loan accepted.", revenue=offer.amount)
        if response == "decline":
            logger.info("Loan offer of %s declined", offer.amount)
            return CommandResult.ok("Loan declined.")
        return CommandResult.rejected("invalid_choice", "Respond with 'accept' or 'decline'.")
