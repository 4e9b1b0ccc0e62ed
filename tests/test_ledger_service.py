from dataclasses import replace

import pytest

from farmsim.config import EngineConfig
from farmsim.domain.state import Loan
from farmsim.services.ledger_service import LedgerService
from tests.helpers.farm_builders import build_state


def _build_loan(balance: float, remaining_term: int = 1825) -> Loan:
    return Loan(principal=int(balance), interest_rate=0.10, balance=balance, remaining_term=remaining_term)


def test_charge_and_credit_track_yearly_totals() -> None:
    ledger = LedgerService(EngineConfig())
    state = build_state()

    ledger.charge(state, 300)
    ledger.credit(state, 1000)
    ledger.adjust_cash(state, -200)
    ledger.adjust_cash(state, 50)

    assert state.ledger.cash == 50550
    assert state.ledger.yearly_expenses == 500
    assert state.ledger.yearly_revenue == 1050


def test_can_afford_boundary() -> None:
    ledger = LedgerService(EngineConfig())
    state = build_state(cash=150)

    assert ledger.can_afford(state, 150)
    assert not ledger.can_afford(state, 151)


def test_daily_interest_accrues() -> None:
    ledger = LedgerService(EngineConfig())
    state = build_state()
    state.ledger.loans.append(_build_loan(10000.0))

    report = ledger.accrue_daily(state)

    expected = 10000.0 * 0.10 / 365
    assert report.interest == pytest.approx(expected)
    assert state.ledger.debt == pytest.approx(10000.0 + expected)
    assert state.ledger.loans[0].remaining_term == 1824
    assert report.game_over_reason is None


def test_matured_loan_comes_due() -> None:
    ledger = LedgerService(EngineConfig())
    state = build_state()
    state.ledger.loans.append(_build_loan(3650.0, remaining_term=1))

    report = ledger.accrue_daily(state)

    assert report.matured_loans == 1
    assert report.amount_due == 3651
    assert state.ledger.cash == 50000 - 3651
    assert state.ledger.loans == []


def test_debt_cap_ends_game() -> None:
    ledger = LedgerService(EngineConfig())
    state = build_state()
    state.ledger.loans.append(_build_loan(100000.0))

    report = ledger.accrue_daily(state)

    assert report.game_over_reason == "debt_spiral"


def test_insolvency_without_grace() -> None:
    ledger = LedgerService(EngineConfig())
    state = build_state(cash=-1)

    assert ledger.update_insolvency(state)


def test_insolvency_with_grace_and_hard_floor() -> None:
    ledger = LedgerService(replace(EngineConfig(), bankruptcy_grace_days=2))
    state = build_state(cash=-10)

    assert not ledger.update_insolvency(state)
    assert not ledger.update_insolvency(state)
    assert ledger.update_insolvency(state)

    state.ledger.cash = 10
    assert not ledger.update_insolvency(state)
    assert state.ledger.insolvent_days == 0

    state.ledger.cash = -30000
    assert ledger.update_insolvency(state)


def test_loan_offer_rounds_up_to_thousand() -> None:
    ledger = LedgerService(EngineConfig())

    assert ledger.loan_offer_amount(-100) == 6000
    assert ledger.loan_offer_amount(-5000) == 10000
    assert ledger.loan_offer_amount(-5001) == 11000


def test_accept_loan_adds_cash_and_counts() -> None:
    ledger = LedgerService(EngineConfig())
    state = build_state(cash=-100)
    state.ledger.insolvent_days = 1

    offer = ledger.build_loan_offer(state)
    loan = ledger.accept_loan(state, offer)

    assert offer.amount == 6000
    assert state.ledger.cash == 5900
    assert state.ledger.loans_taken == 1
    assert state.ledger.insolvent_days == 0
    assert loan.remaining_term == 1825
    assert not ledger.can_offer_loan(state)


def test_repayment_spans_loans_and_drops_settled() -> None:
    ledger = LedgerService(EngineConfig())
    state = build_state()
    state.ledger.loans = [_build_loan(100.0), _build_loan(1000.0)]

    repaid = ledger.repay_from_revenue(state, 1000.0)

    assert repaid == 200
    assert len(state.ledger.loans) == 1
    assert state.ledger.loans[0].balance == pytest.approx(900.0)
    assert state.ledger.cash == 49800


def test_repayment_never_exceeds_debt() -> None:
    ledger = LedgerService(EngineConfig())
    state = build_state()
    state.ledger.loans = [_build_loan(50.0)]

    assert ledger.repay_from_revenue(state, 10000.0) == 50
    assert state.ledger.loans == []
    assert ledger.repay_from_revenue(state, 10000.0) == 0


def test_year_end_summary_and_reset() -> None:
    ledger = LedgerService(EngineConfig())
    state = build_state()
    ledger.credit(state, 4000)
    ledger.charge(state, 1500)

    summary = ledger.year_end_summary(state)

    assert summary["revenue"] == 4000
    assert summary["expenses"] == 1500
    assert summary["net"] == 2500
    assert summary["cash"] == 52500
    assert summary["year"] == 1

    ledger.reset_yearly(state)
    assert state.ledger.yearly_revenue == 0
    assert state.ledger.yearly_expenses == 0
