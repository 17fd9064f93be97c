"""
auth.py
Users, credentials (bcrypt hashing, verify, login, change password) and role checks.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone

import bcrypt

import members
import store
from models import EDITOR_ROLES, ROLES, PermissionDenied, User, ValidationError, NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_ID = "admin"
DEFAULT_ADMIN_PASSWORD = "admin123"
MIN_PASSWORD_LENGTH = 6


def _to_bcrypt_secret(password: str) -> bytes:
    """
    bcrypt only uses the first 72 BYTES of the password.
    We truncate to 72 bytes to avoid ValueError and to make behavior explicit.
    """
    pw = password.encode("utf-8")
    if len(pw) > 72:
        pw = pw[:72]
    return pw


def hash_password(password: str) -> str:
    secret = _to_bcrypt_secret(password)
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(secret, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    return bcrypt.checkpw(_to_bcrypt_secret(password), password_hash.encode("utf-8"))


def _to_user(row: dict) -> User:
    return User(
        id=row["id"],
        name=row["name"],
        role=row["role"],
        password_hash=row.get("password_hash") or "",
        created_at=row.get("created_at") or "",
        contact=row.get("contact") or "",
    )


def get_user(user_id: str) -> User | None:
    row = store.get("users", id=user_id)
    return _to_user(row) if row else None


def list_users() -> list[User]:
    return sorted((_to_user(r) for r in store.select("users")), key=lambda u: u.name)


def login(user_id: str, password: str) -> User | None:
    user = get_user(user_id.strip())
    if not user or not verify_password(password, user.password_hash):
        logger.info("Failed login for %r", user_id)
        return None
    return user


def _validate_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _save(user: User) -> None:
    store.upsert(
        "users",
        {
            "id": user.id,
            "name": user.name,
            "role": user.role,
            "password_hash": user.password_hash,
            "created_at": user.created_at,
            "contact": user.contact,
        },
    )


def add_user(
    user_id: str, name: str, password: str, role: str = "member", *, actor: User | None, contact: str = ""
) -> User:
    require_admin(actor)
    user_id = user_id.strip()
    name = name.strip()
    if not user_id or not name:
        raise ValidationError("User id and name are required.")
    if role not in ROLES:
        raise ValidationError(f"Unknown role: {role}")
    if get_user(user_id):
        raise ValidationError(f"User id already exists: {user_id}")
    _validate_password(password)

    user = User(
        id=user_id,
        name=name,
        role=role,
        password_hash=hash_password(password),
        created_at=_now(),
        contact=contact.strip(),
    )
    _save(user)
    members.sync_members_with_users()
    logger.info("Added user %s (%s) by %s", user_id, role, actor.id)
    return user


def _admin_count(exclude: str | None = None) -> int:
    return sum(1 for u in list_users() if u.role == "admin" and u.id != exclude)


def _update(user_id: str, name: str | None = None, role: str | None = None, contact: str | None = None) -> User:
    user = get_user(user_id)
    if not user:
        raise NotFoundError(f"No such user: {user_id}")
    if role is not None and role not in ROLES:
        raise ValidationError(f"Unknown role: {role}")
    if user.role == "admin" and role not in (None, "admin") and _admin_count(exclude=user_id) == 0:
        raise ValidationError("The club needs at least one admin.")

    new_name = name.strip() if name is not None else user.name
    if not new_name:
        raise ValidationError("Name is required.")
    updated = replace(
        user,
        name=new_name,
        role=role or user.role,
        contact=contact.strip() if contact is not None else user.contact,
    )
    _save(updated)
    members.sync_members_with_users()
    return updated


def update_user(
    user_id: str,
    name: str | None = None,
    role: str | None = None,
    contact: str | None = None,
    *,
    actor: User | None,
) -> User:
    require_admin(actor)
    return _update(user_id, name=name, role=role, contact=contact)


def update_profile(user_id: str, name: str, contact: str | None = None) -> User:
    """Self-service edit of the logged-in user's own name and contact."""
    return _update(user_id, name=name, contact=contact)


def delete_user(user_id: str, *, actor: User | None) -> None:
    require_admin(actor)
    user = get_user(user_id)
    if not user:
        raise NotFoundError(f"No such user: {user_id}")
    if user.role == "admin" and _admin_count(exclude=user_id) == 0:
        raise ValidationError("The club needs at least one admin.")
    store.delete("users", id=user_id)
    members.sync_members_with_users()
    logger.info("Deleted user %s by %s", user_id, actor.id)


def change_password(user_id: str, new_password: str) -> None:
    user = get_user(user_id)
    if not user:
        raise NotFoundError(f"No such user: {user_id}")
    _validate_password(new_password)
    _save(replace(user, password_hash=hash_password(new_password)))
    if user.id == DEFAULT_ADMIN_ID:
        clear_force_password_change()


# ---------- Roles ----------

def can_edit(user: User | None) -> bool:
    return bool(user and user.role in EDITOR_ROLES)


def can_manage_users(user: User | None) -> bool:
    return bool(user and user.role == "admin")


def require_editor(user: User | None) -> None:
    if not can_edit(user):
        raise PermissionDenied("Only an admin or the treasurer can change ledgers and dues.")


def require_admin(user: User | None) -> None:
    if not can_manage_users(user):
        raise PermissionDenied("Only an admin can manage users.")


# ---------- First run ----------

def init_users() -> None:
    """
    Insert the default admin (admin/admin123) if there are no users yet
    and force a password change on first login.
    """
    if store.select("users"):
        if store.get_setting("force_password_change") is None:
            store.set_setting("force_password_change", "0")
        return
    _save(
        User(
            id=DEFAULT_ADMIN_ID,
            name="Administrator",
            role="admin",
            password_hash=hash_password(DEFAULT_ADMIN_PASSWORD),
            created_at=_now(),
        )
    )
    store.set_setting("force_password_change", "1")
    members.sync_members_with_users()


def is_force_password_change() -> bool:
    return store.get_setting("force_password_change") == "1"


def clear_force_password_change() -> None:
    store.set_setting("force_password_change", "0")
