"""Cash ledger, loans and the bankruptcy predicate."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict

from farmsim.config import EngineConfig
from farmsim.core.calendar import DAYS_PER_YEAR
from farmsim.core.types import GameOverReason
from farmsim.domain.panels import LoanOfferPanel
from farmsim.domain.state import GameState, Loan

logger = logging.getLogger(__name__)

# Balances below this are treated as repaid.
_SETTLED_BALANCE = 0.01


@dataclass(slots=True)
class AccrualReport:
    interest: float = 0.0
    matured_loans: int = 0
    amount_due: int = 0
    game_over_reason: GameOverReason | None = None


class LedgerService:
    """Integer cash bookkeeping plus loan accrual."""

    def __init__(self, config: EngineConfig) -> None:
        self._config = config

    def can_afford(self, state: GameState, amount: int) -> bool:
        return state.ledger.cash >= amount

    def charge(self, state: GameState, amount: int) -> None:
        if amount <= 0:
            return
        state.ledger.cash -= amount
        state.ledger.yearly_expenses += amount

    def credit(self, state: GameState, amount: int) -> None:
        if amount <= 0:
            return
        state.ledger.cash += amount
        state.ledger.yearly_revenue += amount

    def adjust_cash(self, state: GameState, delta: int) -> None:
        """Apply a signed cash change (event effects)."""
        if delta < 0:
            self.charge(state, -delta)
        else:
            self.credit(state, delta)

    def repay_from_revenue(self, state: GameState, gross_revenue: float) -> int:
        """Withhold the repayment share of ``gross_revenue`` against outstanding loans."""
        debt = state.ledger.debt
        if debt <= 0 or gross_revenue <= 0:
            return 0
        remaining = min(gross_revenue * self._config.loan_repayment_fraction, debt)
        repaid = remaining
        for loan in state.ledger.loans:
            portion = min(loan.balance, remaining)
            loan.balance -= portion
            remaining -= portion
            if remaining <= 0:
                break
        state.ledger.loans = [loan for loan in state.ledger.loans if loan.balance > _SETTLED_BALANCE]
        amount = int(round(repaid))
        self.charge(state, amount)
        return amount

    def accrue_daily(self, state: GameState) -> AccrualReport:
        """Add one day of interest, count down loan terms and check the debt cap."""
        report = AccrualReport()
        outstanding = []
        for loan in state.ledger.loans:
            interest = loan.balance * (loan.interest_rate / DAYS_PER_YEAR)
            loan.balance += interest
            report.interest += interest
            loan.remaining_term -= 1
            if loan.remaining_term <= 0:
                due = int(round(loan.balance))
                self.charge(state, due)
                report.matured_loans += 1
                report.amount_due += due
                logger.info("Loan of %s matured; %s due", loan.principal, due)
                continue
            outstanding.append(loan)
        state.ledger.loans = outstanding
        state.ledger.yearly_interest += report.interest
        if state.ledger.debt > self._config.loan_debt_cap:
            report.game_over_reason = "debt_spiral"
        return report

    def update_insolvency(self, state: GameState) -> bool:
        """Advance the insolvent-day counter and return whether the farm is bankrupt."""
        ledger = state.ledger
        if ledger.cash >= 0:
            ledger.insolvent_days = 0
            return False
        ledger.insolvent_days += 1
        return (
            ledger.insolvent_days > self._config.bankruptcy_grace_days
            or ledger.cash < self._config.bankruptcy_hard_floor
        )

    def can_offer_loan(self, state: GameState) -> bool:
        return state.ledger.loans_taken < self._config.max_loans

    def loan_offer_amount(self, cash: int) -> int:
        return int(math.ceil((abs(cash) + self._config.loan_buffer) / 1000) * 1000)

    def build_loan_offer(self, state: GameState) -> LoanOfferPanel:
        cash = state.ledger.cash
        return LoanOfferPanel(
            amount=self.loan_offer_amount(cash),
            interest_rate=self._config.loan_interest_rate,
            cash=cash,
        )

    def accept_loan(self, state: GameState, offer: LoanOfferPanel) -> Loan:
        loan = Loan(
            principal=offer.amount,
            interest_rate=offer.interest_rate,
            balance=float(offer.amount),
            remaining_term=self._config.loan_term_days,
        )
        state.ledger.loans.append(loan)
        state.ledger.loans_taken += 1
        state.ledger.cash += offer.amount
        state.ledger.insolvent_days = 0
        logger.info("Loan accepted: %s at %.0f%%", offer.amount, offer.interest_rate * 100)
        return loan

    def year_end_summary(self, state: GameState) -> Dict[str, float]:
        ledger = state.ledger
        return {
            "year": state.calendar.year,
            "revenue": ledger.yearly_revenue,
            "expenses": ledger.yearly_expenses,
            "net": ledger.yearly_revenue - ledger.yearly_expenses,
            "cash": ledger.cash,
            "debt": round(ledger.debt, 2),
            "interest": round(ledger.yearly_interest, 2),
        }

    def reset_yearly(self, state: GameState) -> None:
        state.ledger.yearly_revenue = 0
        state.ledger.yearly_expenses = 0
        state.ledger.yearly_interest = 0.0
