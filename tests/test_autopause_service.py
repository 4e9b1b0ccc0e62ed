from pathlib import Path

from farmsim.domain.panels import EventPanel, GameOverPanel, LoanOfferPanel, ThresholdPanel
from farmsim.domain.state import EventOccurrence
from tests.helpers.farm_builders import build_services, build_state, event_payload, write_definitions


def _queue_event(state, event_id: str = "storm", occurrence_id: int = 1) -> None:
    state.event_queue.append(
        EventOccurrence(occurrence_id=occurrence_id, event_id=event_id, scheduled_on_day=59, fires_on_day=59)
    )


def test_surface_nothing_pending() -> None:
    services = build_services()
    state = build_state()
    state.speed = 2

    assert services.autopause.surface(state) is None
    assert state.speed == 2


def test_priority_order_event_loan_threshold(tmp_path: Path) -> None:
    services = build_services(write_definitions(tmp_path, {"storm": event_payload()}))
    state = build_state()
    state.speed = 4
    services.autopause.queue_threshold(state, ThresholdPanel(reason="year_end", message="Year over."))
    services.autopause.queue_threshold(state, ThresholdPanel(reason="harvest_ready", message="Ripe."))
    services.autopause.offer_loan(state, LoanOfferPanel(amount=6000, interest_rate=0.1, cash=-100))
    _queue_event(state)

    first = services.autopause.surface(state)

    assert isinstance(first, EventPanel)
    assert state.speed == 0
    assert services.autopause.surface(state) is None

    assert services.autopause.resolve(state, "ignore").success
    assert isinstance(state.active_panel, LoanOfferPanel)

    assert services.autopause.resolve(state, "decline").success
    assert isinstance(state.active_panel, ThresholdPanel)
    assert state.active_panel.reason == "harvest_ready"

    assert services.autopause.resolve(state, None).success
    assert state.active_panel.reason == "year_end"

    assert services.autopause.resolve(state, "acknowledge").success
    assert state.active_panel is None


def test_threshold_with_same_reason_replaces_pending() -> None:
    services = build_services()
    state = build_state()

    services.autopause.queue_threshold(state, ThresholdPanel(reason="year_end", message="Old."))
    services.autopause.queue_threshold(state, ThresholdPanel(reason="year_end", message="New."))

    assert [panel.message for panel in state.pending_thresholds] == ["New."]


def test_game_over_preempts_active_panel() -> None:
    services = build_services()
    state = build_state()
    services.autopause.queue_threshold(state, ThresholdPanel(reason="water_stress", message="Dry."))
    services.autopause.surface(state)

    services.autopause.raise_game_over(state, "bankruptcy", "Broke.")
    panel = services.autopause.surface(state)

    assert isinstance(panel, GameOverPanel)
    assert panel.reason == "bankruptcy"
    assert services.autopause.resolve(state, "dismiss").reason == "game_over"
    assert state.active_panel is panel


def test_first_game_over_reason_wins() -> None:
    services = build_services()
    state = build_state()

    services.autopause.raise_game_over(state, "debt_spiral", "Too much debt.")
    services.autopause.raise_game_over(state, "bankruptcy", "Broke.")

    assert state.game_over is not None
    assert state.game_over.reason == "debt_spiral"


def test_resolve_without_panel() -> None:
    services = build_services()
    state = build_state()

    assert services.autopause.resolve(state, None).reason == "no_panel"


def test_invalid_responses_keep_panel(tmp_path: Path) -> None:
    services = build_services(write_definitions(tmp_path, {"storm": event_payload()}))
    state = build_state()
    _queue_event(state)
    services.autopause.surface(state)

    assert services.autopause.resolve(state, "panic").reason == "invalid_choice"
    assert isinstance(state.active_panel, EventPanel)

    state.active_panel = LoanOfferPanel(amount=6000, interest_rate=0.1, cash=-100)
    assert services.autopause.resolve(state, "maybe").reason == "invalid_choice"

    state.active_panel = ThresholdPanel(reason="year_end", message="Done.")
    assert services.autopause.resolve(state, "yes").reason == "invalid_choice"
    assert state.active_panel is not None


def test_accepting_loan_credits_cash() -> None:
    services = build_services()
    state = build_state(cash=-100)
    services.autopause.offer_loan(state, services.ledger.build_loan_offer(state))
    services.autopause.surface(state)

    result = services.autopause.resolve(state, "accept")

    assert result.success
    assert state.ledger.cash == 5900
    assert state.ledger.loans_taken == 1
    assert state.notifications[-1].kind == "loan"
    assert state.active_panel is None


def test_duplicate_loan_offer_ignored() -> None:
    services = build_services()
    state = build_state(cash=-100)
    first = LoanOfferPanel(amount=6000, interest_rate=0.1, cash=-100)
    second = LoanOfferPanel(amount=9000, interest_rate=0.1, cash=-4000)

    services.autopause.offer_loan(state, first)
    services.autopause.offer_loan(state, second)

    assert state.loan_offer_pending == first
