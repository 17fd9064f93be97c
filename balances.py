"""
balances.py
Yearly rollups: monthly income/expense totals and the carryover chain
(each year opens with the previous year's closing balance).
"""

from __future__ import annotations

import logging
from datetime import date

import auth
import ledger
import store
from models import MONTHS, MonthAmount, User, ValidationError, YearlyData

logger = logging.getLogger(__name__)

INITIAL_BALANCE_KEY = "initial_balance"


def _monthly(records, year: int) -> tuple[MonthAmount, ...]:
    sums = {m: 0 for m in MONTHS}
    for r in records:
        if r.year == year:
            sums[r.month] += r.amount
    return tuple(MonthAmount(month=m, amount=sums[m]) for m in MONTHS)


def compute_yearly_data(incomes, expenses, current_year: int, opening: int = 0) -> list[YearlyData]:
    """
    One YearlyData per year from the earliest record (or current_year) to the latest.
    The first year opens with `opening`; later years open with the previous closing balance.
    """
    years = {r.year for r in incomes} | {r.year for r in expenses} | {current_year}
    result: list[YearlyData] = []
    balance = opening
    for year in range(min(years), max(years) + 1):
        data = YearlyData(
            year=year,
            opening_balance=balance,
            monthly_incomes=_monthly(incomes, year),
            monthly_expenses=_monthly(expenses, year),
        )
        result.append(data)
        balance = data.closing_balance
    return result


def get_initial_balance() -> int:
    return int(store.get_setting(INITIAL_BALANCE_KEY, "0"))


def set_initial_balance(amount: int, *, actor: User | None) -> None:
    """Opening balance of the earliest year on record."""
    auth.require_editor(actor)
    try:
        amount = int(amount)
    except (TypeError, ValueError):
        raise ValidationError("Initial balance must be numeric.") from None
    store.set_setting(INITIAL_BALANCE_KEY, str(amount))
    logger.info("Initial balance set to %d", amount)


def all_yearly_data(current_year: int | None = None) -> list[YearlyData]:
    return compute_yearly_data(
        ledger.list_incomes(),
        ledger.list_expenses(),
        current_year or date.today().year,
        opening=get_initial_balance(),
    )


def yearly_data(year: int) -> YearlyData:
    # passing `year` as current_year guarantees it is inside the computed range
    return next(d for d in all_yearly_data(current_year=year) if d.year == year)
