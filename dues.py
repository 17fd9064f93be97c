"""
dues.py
Monthly dues per member and year, kept consistent with the income ledger.

Unpaid amount rules:
- "unpaid" month adds that month's dues to the member's unpaid total
- "paid" month adds the shortfall (dues - paid), if any
- "prepaid" and "-" add nothing
A status change applies the difference between the old and new contribution,
so a manually overridden unpaid total is adjusted rather than recomputed.

Every "paid" month with a positive amount owns exactly one "dues" income
(dated the 1st of that month); any other status owns none.
"""

from __future__ import annotations

import logging
from dataclasses import replace

import pandas as pd

import auth
import ledger
import members
import store
import utils
from models import (
    DUES_STATUSES,
    MEMBER_COLORS,
    MONTHS,
    DuesData,
    Income,
    MonthlyDue,
    NotFoundError,
    User,
    ValidationError,
)

logger = logging.getLogger(__name__)


def unpaid_contribution(entry: MonthlyDue) -> int:
    if entry.status == "unpaid":
        return entry.dues_amount
    if entry.status == "paid":
        return max(0, entry.dues_amount - entry.amount)
    return 0


def cycle_color(color: str) -> str:
    try:
        idx = MEMBER_COLORS.index(color)
    except ValueError:
        return MEMBER_COLORS[0]
    return MEMBER_COLORS[(idx + 1) % len(MEMBER_COLORS)]


def new_year_dues(member_id: str, year: int) -> DuesData:
    """Fresh twelve-month record; the unpaid total carries over from the latest earlier year."""
    default = members.get_default_dues(member_id)
    # years never written in between carry the same amount forward
    earlier = [r for r in store.select("dues", member_id=member_id) if int(r["year"]) < year]
    previous = max(earlier, key=lambda r: int(r["year"])) if earlier else None
    carried = int(previous["unpaid_amount"] or 0) if previous else 0
    return DuesData(
        member_id=member_id,
        year=year,
        months=[MonthlyDue(month=m, dues_amount=default) for m in MONTHS],
        unpaid_amount=carried,
    )


def get_member_dues(member_id: str, year: int) -> DuesData:
    row = store.get("dues", member_id=member_id, year=year)
    if row:
        return DuesData.from_row(row)
    return new_year_dues(member_id, year)


def get_year_dues(year: int) -> list[DuesData]:
    """One DuesData per roster member, in roster order."""
    stored = {r["member_id"]: DuesData.from_row(r) for r in store.select("dues", year=year)}
    return [stored.get(m.id) or new_year_dues(m.id, year) for m in members.list_members()]


def _save(dues: DuesData) -> None:
    store.upsert("dues", dues.to_row())


def _validate_month(month: int) -> None:
    if month not in MONTHS:
        raise ValidationError(f"Month must be 1-12, got {month}.")


def _changed_entry(entry: MonthlyDue, status: str, amount: int | None,
                   color: str | None, dues_amount: int | None) -> MonthlyDue:
    if status not in DUES_STATUSES:
        raise ValidationError(f"Unknown dues status: {status}")
    expected = entry.dues_amount if dues_amount is None else int(dues_amount)
    if amount is None:
        amount = 0 if status == "-" else expected
    amount = int(amount)
    if amount < 0 or expected < 0:
        raise ValidationError("Dues amounts cannot be negative.")
    if color is not None and color not in MEMBER_COLORS:
        raise ValidationError(f"Unknown color: {color}")
    return replace(
        entry,
        status=status,
        amount=amount,
        dues_amount=expected,
        color=color or entry.color,
    )


def preview_unpaid(dues: DuesData, month: int, status: str, amount: int | None = None,
                   dues_amount: int | None = None) -> int:
    """Unpaid total the member would have after the change (nothing is saved)."""
    _validate_month(month)
    old = dues.month(month)
    new = _changed_entry(old, status, amount, None, dues_amount)
    return max(0, dues.unpaid_amount - unpaid_contribution(old) + unpaid_contribution(new))


def _sync_income(member_id: str, year: int, entry: MonthlyDue, actor: User) -> MonthlyDue:
    existing = ledger.get_income(entry.income_id) if entry.income_id else None

    if entry.status != "paid" or entry.amount <= 0:
        if existing:
            ledger.delete_record("income", existing.id, actor=actor)
        return replace(entry, income_id=None)

    record_date = utils.first_of_month(year, entry.month)
    if existing:
        updated = ledger.update_record(
            "income",
            replace(existing, date=record_date, type="dues", amount=entry.amount, member_id=member_id),
            actor=actor,
        )
        return replace(entry, income_id=updated.id)

    income = ledger.add_record(
        "income",
        record_date,
        "dues",
        entry.amount,
        actor=actor,
        member_id=member_id,
        note=f"{utils.month_label(entry.month)} {year} dues",
    )
    return replace(entry, income_id=income.id)


def apply_dues_change(member_id: str, year: int, month: int, status: str, amount: int | None = None,
                      color: str | None = None, dues_amount: int | None = None, *,
                      actor: User | None) -> DuesData:
    """
    Set one month's dues status and mirror it into the income ledger.

    amount is what was paid for "paid" (defaults to the month's dues);
    dues_amount overrides the expected dues for this month.
    """
    auth.require_editor(actor)
    _validate_month(month)
    if members.get_member(member_id) is None:
        raise NotFoundError(f"No such member: {member_id}")

    dues = get_member_dues(member_id, year)
    old = dues.month(month)
    new = _changed_entry(old, status, amount, color, dues_amount)

    dues.unpaid_amount = max(0, dues.unpaid_amount - unpaid_contribution(old) + unpaid_contribution(new))
    dues.months[month - 1] = _sync_income(member_id, year, new, actor)
    _save(dues)

    logger.info(
        "Dues %s %d-%02d: %s -> %s (amount %d, unpaid %d)",
        member_id, year, month, old.status, new.status, new.amount, dues.unpaid_amount,
    )
    return dues


def set_unpaid_amount(member_id: str, year: int, amount: int, *, actor: User | None) -> DuesData:
    """Manual override of the unpaid total; later status changes adjust from here."""
    auth.require_editor(actor)
    if int(amount) < 0:
        raise ValidationError("Unpaid amount cannot be negative.")
    dues = get_member_dues(member_id, year)
    previous = dues.unpaid_amount
    dues.unpaid_amount = int(amount)
    _save(dues)
    logger.info("Unpaid amount for %s in %d overridden: %d -> %d", member_id, year, previous, amount)
    return dues


# ---------- Ledger-side edits of dues incomes ----------

def _find_linked(income_id: str) -> tuple[DuesData, int] | None:
    for row in store.select("dues"):
        for m in row["months"]:
            if m.get("income_id") == income_id:
                return DuesData.from_row(row), int(m["month"])
    return None


def _release(dues: DuesData, month: int) -> None:
    old = dues.month(month)
    released = replace(old, status="-", amount=0, income_id=None)
    dues.unpaid_amount = max(0, dues.unpaid_amount - unpaid_contribution(old))
    dues.months[month - 1] = released
    _save(dues)
    logger.info("Dues %s %d-%02d released from its income record", dues.member_id, dues.year, month)


def update_income(income: Income, *, actor: User | None) -> Income:
    """Update an income; a linked dues month follows the new amount, or is released if the link no longer fits."""
    updated = ledger.update_record("income", income, actor=actor)
    linked = _find_linked(updated.id)
    if linked is None:
        return updated

    dues, month = linked
    still_matches = (
        updated.type == "dues"
        and updated.member_id == dues.member_id
        and updated.year == dues.year
        and updated.month == month
    )
    if not still_matches:
        _release(dues, month)
        return updated

    old = dues.month(month)
    new = replace(old, amount=updated.amount)
    dues.unpaid_amount = max(0, dues.unpaid_amount - unpaid_contribution(old) + unpaid_contribution(new))
    dues.months[month - 1] = new
    _save(dues)
    return updated


def delete_income(income_id: str, *, actor: User | None) -> None:
    ledger.delete_record("income", income_id, actor=actor)
    linked = _find_linked(income_id)
    if linked is not None:
        _release(*linked)


# ---------- Tables ----------

def monthly_status_table(year: int) -> pd.DataFrame:
    return utils.dues_grid_frame(get_year_dues(year), members.member_names())


def total_unpaid(year: int) -> int:
    return sum(d.unpaid_amount for d in get_year_dues(year))
