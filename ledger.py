"""
ledger.py
Income and expense records.

Dues incomes are normally written through dues.py so the monthly dues grid
stays consistent; the functions here do not know about dues.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict

import auth
import store
import utils
from models import EXPENSE_TYPES, INCOME_TYPES, Expense, Income, NotFoundError, User, ValidationError

logger = logging.getLogger(__name__)

_KINDS = {
    "income": ("incomes", INCOME_TYPES, Income),
    "expense": ("expenses", EXPENSE_TYPES, Expense),
}


def _kind(kind: str):
    try:
        return _KINDS[kind]
    except KeyError:
        raise ValueError(f"kind must be 'income' or 'expense', got {kind!r}") from None


def _from_row(cls, row: dict):
    return cls(
        id=row["id"],
        date=row["date"],
        type=row["type"],
        amount=int(row["amount"]),
        year=int(row["year"]),
        month=int(row["month"]),
        member_id=row.get("member_id"),
        note=row.get("note"),
    )


def _build(kind: str, record_date: str, record_type: str, amount, member_id, note, record_id=None):
    _, types, cls = _kind(kind)
    errors = utils.validate_record_inputs(record_date, record_type, amount, types)
    if errors:
        raise ValidationError(" ".join(errors))
    d = utils.parse_iso(record_date)
    return cls(
        id=record_id or str(uuid.uuid4()),
        date=d.isoformat(),
        type=record_type,
        amount=int(amount),
        year=d.year,
        month=d.month,
        member_id=member_id or None,
        note=(note or "").strip() or None,
    )


def _save(kind: str, record) -> None:
    table, _, _ = _kind(kind)
    store.upsert(table, asdict(record))


def get_record(kind: str, record_id: str):
    table, _, cls = _kind(kind)
    row = store.get(table, id=record_id)
    return _from_row(cls, row) if row else None


def list_records(kind: str, year: int | None = None, month: int | None = None, member_id: str | None = None):
    table, _, cls = _kind(kind)
    filters = {}
    if year is not None:
        filters["year"] = year
    if month is not None:
        filters["month"] = month
    if member_id is not None:
        filters["member_id"] = member_id
    records = [_from_row(cls, r) for r in store.select(table, **filters)]
    return sorted(records, key=lambda r: (r.date, r.id), reverse=True)


def add_record(kind: str, record_date: str, record_type: str, amount, *, actor: User | None,
               member_id: str | None = None, note: str | None = None, record_id: str | None = None):
    auth.require_editor(actor)
    record = _build(kind, record_date, record_type, amount, member_id, note, record_id)
    _save(kind, record)
    logger.info("Added %s %s: %s %s", kind, record.id, record.type, record.amount)
    return record


def update_record(kind: str, record, *, actor: User | None):
    auth.require_editor(actor)
    if get_record(kind, record.id) is None:
        raise NotFoundError(f"No such {kind}: {record.id}")
    # re-validate and re-derive year/month from the date
    updated = _build(kind, record.date, record.type, record.amount, record.member_id, record.note, record.id)
    _save(kind, updated)
    logger.info("Updated %s %s", kind, record.id)
    return updated


def delete_record(kind: str, record_id: str, *, actor: User | None) -> None:
    auth.require_editor(actor)
    table, _, _ = _kind(kind)
    store.delete(table, id=record_id)
    logger.info("Deleted %s %s", kind, record_id)


# ---------- Thin named wrappers ----------

def add_income(record_date, record_type, amount, *, actor, member_id=None, note=None) -> Income:
    return add_record("income", record_date, record_type, amount, actor=actor, member_id=member_id, note=note)


def add_expense(record_date, record_type, amount, *, actor, member_id=None, note=None) -> Expense:
    return add_record("expense", record_date, record_type, amount, actor=actor, member_id=member_id, note=note)


def get_income(income_id: str) -> Income | None:
    return get_record("income", income_id)


def get_expense(expense_id: str) -> Expense | None:
    return get_record("expense", expense_id)


def list_incomes(year=None, month=None, member_id=None) -> list[Income]:
    return list_records("income", year, month, member_id)


def list_expenses(year=None, month=None, member_id=None) -> list[Expense]:
    return list_records("expense", year, month, member_id)


def update_expense(expense: Expense, *, actor) -> Expense:
    return update_record("expense", expense, actor=actor)


def delete_expense(expense_id: str, *, actor) -> None:
    delete_record("expense", expense_id, actor=actor)


# ---------- Queries ----------

def totals(year: int) -> dict:
    income = sum(r.amount for r in list_incomes(year=year))
    expense = sum(r.amount for r in list_expenses(year=year))
    return {"income": income, "expense": expense, "net": income - expense}


def recent_transactions(kind: str, limit: int = 5):
    return list_records(kind)[:limit]


def condolence_payouts(member_id: str, year: int) -> list[Expense]:
    return [e for e in list_expenses(year=year, member_id=member_id) if e.type == "condolence"]

