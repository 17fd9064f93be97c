"""
db.py
Local SQLite store: connection helpers, table layout, generic row access.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from config import get_settings


@dataclass(frozen=True)
class TableSpec:
    key: tuple[str, ...]
    columns: tuple[str, ...]
    json_columns: tuple[str, ...] = ()


TABLES: dict[str, TableSpec] = {
    "users": TableSpec(
        ("id",), ("id", "name", "role", "password_hash", "created_at", "contact")
    ),
    "members": TableSpec(("id",), ("id", "name")),
    "member_settings": TableSpec(("member_id",), ("member_id", "default_dues")),
    "incomes": TableSpec(
        ("id",), ("id", "date", "type", "amount", "year", "month", "member_id", "note")
    ),
    "expenses": TableSpec(
        ("id",), ("id", "date", "type", "amount", "year", "month", "member_id", "note")
    ),
    "dues": TableSpec(
        ("member_id", "year"), ("member_id", "year", "months", "unpaid_amount"), ("months",)
    ),
    "events": TableSpec(("id",), ("id", "date", "name", "description", "amount")),
    "event_histories": TableSpec(
        ("id",), ("id", "year", "created_at", "events"), ("events",)
    ),
    "app_settings": TableSpec(("key",), ("key", "value")),
}


def db_path() -> Path:
    return Path(get_settings().db_file)


@contextmanager
def get_conn():
    conn = sqlite3.connect(db_path(), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def execute(sql: str, params: tuple = ()) -> int:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.lastrowid


def fetch_all(sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchall()


def _create_tables() -> None:
    with get_conn() as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                role TEXT NOT NULL CHECK(role IN ('admin','treasurer','member')),
                password_hash TEXT NOT NULL,
                created_at TEXT NOT NULL,
                contact TEXT NOT NULL DEFAULT ''
            );

            CREATE TABLE IF NOT EXISTS members (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS member_settings (
                member_id TEXT PRIMARY KEY,
                default_dues INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS incomes (
                id TEXT PRIMARY KEY,
                date TEXT NOT NULL,
                type TEXT NOT NULL,
                amount INTEGER NOT NULL,
                year INTEGER NOT NULL,
                month INTEGER NOT NULL,
                member_id TEXT,
                note TEXT
            );

            CREATE TABLE IF NOT EXISTS expenses (
                id TEXT PRIMARY KEY,
                date TEXT NOT NULL,
                type TEXT NOT NULL,
                amount INTEGER NOT NULL,
                year INTEGER NOT NULL,
                month INTEGER NOT NULL,
                member_id TEXT,
                note TEXT
            );

            CREATE TABLE IF NOT EXISTS dues (
                member_id TEXT NOT NULL,
                year INTEGER NOT NULL,
                months TEXT NOT NULL,
                unpaid_amount INTEGER NOT NULL DEFAULT 0,
                PRIMARY KEY (member_id, year)
            );

            CREATE TABLE IF NOT EXISTS events (
                id TEXT PRIMARY KEY,
                date TEXT NOT NULL,
                name TEXT NOT NULL,
                description TEXT,
                amount INTEGER NOT NULL DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS event_histories (
                id TEXT PRIMARY KEY,
                year INTEGER NOT NULL,
                created_at TEXT NOT NULL,
                events TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS app_settings (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_incomes_year ON incomes(year, month);
            CREATE INDEX IF NOT EXISTS idx_expenses_year ON expenses(year, month);
            """
        )


def _migrate() -> None:
    """Add columns introduced after the first release (idempotent)."""
    with get_conn() as conn:
        cols = {row[1] for row in conn.execute("PRAGMA table_info(users)").fetchall()}
        if "contact" not in cols:
            conn.execute("ALTER TABLE users ADD COLUMN contact TEXT NOT NULL DEFAULT ''")


def init_db() -> None:
    """Create the local tables (idempotent)."""
    db_path().parent.mkdir(parents=True, exist_ok=True)
    _create_tables()
    _migrate()


# ---------- Generic row access (used by store.py) ----------

def _where(filters: dict) -> tuple[str, list]:
    clauses = []
    params: list = []
    for col, value in filters.items():
        if value is None:
            clauses.append(f"{col} IS NULL")
        else:
            clauses.append(f"{col} = ?")
            params.append(value)
    sql = (" WHERE " + " AND ".join(clauses)) if clauses else ""
    return sql, params


def _decode(layout: TableSpec, row: sqlite3.Row) -> dict:
    out = dict(row)
    for col in layout.json_columns:
        if out.get(col) is not None:
            out[col] = json.loads(out[col])
    return out


def select_rows(table: str, filters: dict) -> list[dict]:
    layout = TABLES[table]
    where, params = _where(filters)
    rows = fetch_all(f"SELECT {', '.join(layout.columns)} FROM {table}{where}", tuple(params))
    return [_decode(layout, r) for r in rows]


def upsert_row(table: str, row: dict) -> None:
    layout = TABLES[table]
    cols = [c for c in layout.columns if c in row]
    values = [
        json.dumps(row[c], ensure_ascii=False) if c in layout.json_columns else row[c]
        for c in cols
    ]
    updates = [c for c in cols if c not in layout.key]
    sql = (
        f"INSERT INTO {table}({', '.join(cols)}) VALUES({', '.join('?' for _ in cols)})"
        f" ON CONFLICT({', '.join(layout.key)}) DO "
    )
    if updates:
        sql += "UPDATE SET " + ", ".join(f"{c}=excluded.{c}" for c in updates)
    else:
        sql += "NOTHING"
    execute(sql, tuple(values))


def delete_rows(table: str, filters: dict) -> None:
    where, params = _where(filters)
    execute(f"DELETE FROM {table}{where}", tuple(params))
