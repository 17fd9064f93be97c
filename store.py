"""
store.py
Record store used by every service module.

Calls go to the remote table API when one is configured and fall back to the
local SQLite store if the remote call fails. Successful remote writes are
mirrored locally so a later fallback read still sees them.
"""

from __future__ import annotations

import logging

import db
from config import get_settings
from remote import RemoteError, RemoteTableClient

logger = logging.getLogger(__name__)

_remote: RemoteTableClient | None = None
_remote_checked = False


class StoreError(Exception):
    pass


def set_remote_client(client: RemoteTableClient | None) -> None:
    global _remote, _remote_checked
    _remote = client
    _remote_checked = True


def reset() -> None:
    """Forget the remote client; the next call re-reads settings."""
    global _remote, _remote_checked
    if _remote is not None:
        _remote.close()
    _remote = None
    _remote_checked = False


def remote_client() -> RemoteTableClient | None:
    global _remote, _remote_checked
    if not _remote_checked:
        settings = get_settings()
        if settings.remote_enabled:
            _remote = RemoteTableClient(
                settings.remote_url,
                api_key=settings.remote_api_key,
                timeout=settings.remote_timeout,
            )
        _remote_checked = True
    return _remote


def _check(table: str, columns) -> db.TableSpec:
    layout = db.TABLES.get(table)
    if layout is None:
        raise StoreError(f"Unknown table: {table}")
    unknown = set(columns) - set(layout.columns)
    if unknown:
        raise StoreError(f"Unknown column(s) for {table}: {', '.join(sorted(unknown))}")
    return layout


def select(table: str, **filters) -> list[dict]:
    _check(table, filters)
    client = remote_client()
    if client is not None:
        try:
            return client.select(table, filters)
        except RemoteError as exc:
            logger.warning("Remote select on %s failed, using local store: %s", table, exc)
    return db.select_rows(table, filters)


def get(table: str, **key_values) -> dict | None:
    layout = _check(table, key_values)
    if set(key_values) != set(layout.key):
        raise StoreError(f"{table} is keyed by {', '.join(layout.key)}")
    rows = select(table, **key_values)
    return rows[0] if rows else None


def upsert(table: str, row: dict) -> dict:
    layout = _check(table, row)
    missing = [k for k in layout.key if row.get(k) is None]
    if missing:
        raise StoreError(f"Missing key column(s) for {table}: {', '.join(missing)}")
    client = remote_client()
    if client is not None:
        try:
            client.upsert(table, row, layout.key)
        except RemoteError as exc:
            logger.warning("Remote upsert on %s failed, writing locally: %s", table, exc)
    db.upsert_row(table, row)
    return row


def delete(table: str, **filters) -> None:
    _check(table, filters)
    if not filters:
        raise StoreError("Refusing to delete without filters")
    client = remote_client()
    if client is not None:
        try:
            client.delete(table, filters)
        except RemoteError as exc:
            logger.warning("Remote delete on %s failed, deleting locally: %s", table, exc)
    db.delete_rows(table, filters)


# ---------- app_settings ----------

def get_setting(key: str, default: str | None = None) -> str | None:
    row = get("app_settings", key=key)
    if row:
        return str(row["value"])
    return default


def set_setting(key: str, value: str) -> None:
    upsert("app_settings", {"key": key, "value": str(value)})
