"""
utils.py
Validation, dates, formatting, table building and CSV exports.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import date

import pandas as pd

from config import get_settings
from models import DUES_STATUS_LABELS, MONTH_NAMES, DuesData, YearlyData


def parse_iso(d: str) -> date:
    return date.fromisoformat(d)


def first_of_month(year: int, month: int) -> str:
    return date(year, month, 1).isoformat()


def format_currency(amount: int | float) -> str:
    return f"{get_settings().currency_symbol}{int(amount):,}"


def month_label(month: int) -> str:
    return MONTH_NAMES[month - 1]


def validate_record_inputs(record_date: str, record_type: str, amount, allowed_types) -> list[str]:
    errors: list[str] = []
    try:
        parse_iso(record_date)
    except (TypeError, ValueError):
        errors.append("Date must be a valid ISO date (YYYY-MM-DD).")
    if record_type not in allowed_types:
        errors.append(f"Type must be one of: {', '.join(allowed_types)}.")
    try:
        if int(amount) <= 0:
            errors.append("Amount must be greater than zero.")
    except (TypeError, ValueError):
        errors.append("Amount must be numeric.")
    return errors


def validate_event_inputs(event_date: str, name: str, amount) -> list[str]:
    errors: list[str] = []
    if not (event_date or "").strip():
        errors.append("Date is required.")
    if not (name or "").strip():
        errors.append("Member name is required.")
    try:
        if int(amount or 0) < 0:
            errors.append("Amount cannot be negative.")
    except (TypeError, ValueError):
        errors.append("Amount must be numeric.")
    return errors


# ---------- Tables for the UI ----------

def records_frame(records, names: dict[str, str] | None = None) -> pd.DataFrame:
    """Income/expense records as a DataFrame (newest first), with member names resolved."""
    columns = ["id", "date", "type", "member", "amount", "note"]
    rows = []
    for r in records:
        row = asdict(r)
        row["member"] = (names or {}).get(row.get("member_id"), row.get("member_id") or "")
        rows.append(row)
    if not rows:
        return pd.DataFrame(columns=columns)
    df = pd.DataFrame(rows)
    return df.sort_values("date", ascending=False)[columns].reset_index(drop=True)


def dues_grid_frame(dues: list[DuesData], names: dict[str, str]) -> pd.DataFrame:
    """One row per member: twelve month statuses plus the unpaid total."""
    rows = []
    for d in dues:
        row = {"member": names.get(d.member_id, d.member_id)}
        for m in d.months:
            label = DUES_STATUS_LABELS[m.status]
            if m.status == "paid":
                label = f"{m.amount:,}"
            row[month_label(m.month)] = label
        row["unpaid"] = d.unpaid_amount
        rows.append(row)
    columns = ["member", *MONTH_NAMES, "unpaid"]
    if not rows:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(rows, columns=columns)


def monthly_balance_frame(year_data: YearlyData) -> pd.DataFrame:
    """Month-by-month income, expense and running balance starting from the opening balance."""
    rows = []
    balance = year_data.opening_balance
    for inc, exp in zip(year_data.monthly_incomes, year_data.monthly_expenses):
        balance += inc.amount - exp.amount
        rows.append(
            {
                "month": month_label(inc.month),
                "income": inc.amount,
                "expense": exp.amount,
                "balance": balance,
            }
        )
    return pd.DataFrame(rows, columns=["month", "income", "expense", "balance"])


def frame_to_csv_bytes(df: pd.DataFrame) -> bytes:
    return df.to_csv(index=False).encode("utf-8")
