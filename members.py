"""
members.py
Member roster, kept in sync with user accounts, and per-member default dues.
"""

from __future__ import annotations

import logging

import auth
import store
from config import get_settings
from models import Member, User, ValidationError

logger = logging.getLogger(__name__)


def list_members() -> list[Member]:
    rows = store.select("members")
    return sorted((Member(id=r["id"], name=r["name"]) for r in rows), key=lambda m: (m.name, m.id))


def get_member(member_id: str) -> Member | None:
    row = store.get("members", id=member_id)
    return Member(id=row["id"], name=row["name"]) if row else None


def member_names() -> dict[str, str]:
    return {m.id: m.name for m in list_members()}


def member_contacts() -> list[tuple[Member, str]]:
    """Roster members with the contact from their user account (empty when there is none)."""
    contacts = {r["id"]: r.get("contact") or "" for r in store.select("users")}
    return [(m, contacts.get(m.id, "")) for m in list_members()]


def has_dues_history(member_id: str) -> bool:
    for row in store.select("dues", member_id=member_id):
        if int(row.get("unpaid_amount") or 0) != 0:
            return True
        if any(m.get("status", "-") != "-" for m in row["months"]):
            return True
    return False


def sync_members_with_users() -> list[Member]:
    """
    Every user is also a member (name follows the user).
    Members without a user account are kept only while they have dues history.
    """
    users = {r["id"]: r["name"] for r in store.select("users")}
    existing = {r["id"]: r["name"] for r in store.select("members")}

    for user_id, name in users.items():
        if existing.get(user_id) != name:
            store.upsert("members", {"id": user_id, "name": name})

    for member_id in existing:
        if member_id in users:
            continue
        if has_dues_history(member_id):
            continue
        store.delete("members", id=member_id)
        store.delete("member_settings", member_id=member_id)
        logger.info("Removed member %s (no user account, no dues history)", member_id)

    return list_members()


def get_default_dues(member_id: str) -> int:
    row = store.get("member_settings", member_id=member_id)
    if row and row.get("default_dues") is not None:
        return int(row["default_dues"])
    return get_settings().monthly_dues


def set_default_dues(member_id: str, amount: int, *, actor: User | None) -> None:
    auth.require_editor(actor)
    if amount < 0:
        raise ValidationError("Default dues cannot be negative.")
    store.upsert("member_settings", {"member_id": member_id, "default_dues": int(amount)})
