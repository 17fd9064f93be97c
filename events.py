"""
events.py
Special-occasion payouts (weddings, funerals, ...) and their yearly archive.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict
from datetime import datetime

import auth
import store
import utils
from models import EventHistory, NotFoundError, SpecialEvent, User, ValidationError

logger = logging.getLogger(__name__)


def _to_event(row: dict) -> SpecialEvent:
    return SpecialEvent(
        id=row["id"],
        date=row["date"],
        name=row["name"],
        description=row.get("description") or "",
        amount=int(row.get("amount") or 0),
    )


def list_events() -> list[SpecialEvent]:
    return sorted((_to_event(r) for r in store.select("events")), key=lambda e: (e.date, e.name))


def _validated(event_date: str, name: str, description: str, amount, event_id: str) -> SpecialEvent:
    errors = utils.validate_event_inputs(event_date, name, amount)
    if errors:
        raise ValidationError(" ".join(errors))
    return SpecialEvent(
        id=event_id,
        date=event_date.strip(),
        name=name.strip(),
        description=(description or "").strip(),
        amount=int(amount or 0),
    )


def add_event(event_date: str, name: str, description: str = "", amount: int = 0, *,
              actor: User | None) -> SpecialEvent:
    auth.require_editor(actor)
    event = _validated(event_date, name, description, amount, str(uuid.uuid4()))
    store.upsert("events", asdict(event))
    return event


def update_event(event: SpecialEvent, *, actor: User | None) -> SpecialEvent:
    auth.require_editor(actor)
    if store.get("events", id=event.id) is None:
        raise NotFoundError(f"No such event: {event.id}")
    updated = _validated(event.date, event.name, event.description, event.amount, event.id)
    store.upsert("events", asdict(updated))
    return updated


def delete_event(event_id: str, *, actor: User | None) -> None:
    auth.require_editor(actor)
    store.delete("events", id=event_id)


def reset_events(year: int, *, actor: User | None) -> EventHistory:
    """Archive the live list under `year`, then clear it."""
    auth.require_editor(actor)
    current = list_events()
    history = EventHistory(
        id=str(uuid.uuid4()),
        year=year,
        created_at=datetime.now().isoformat(timespec="seconds"),
        events=tuple(current),
    )
    store.upsert(
        "event_histories",
        {
            "id": history.id,
            "year": history.year,
            "created_at": history.created_at,
            "events": [asdict(e) for e in current],
        },
    )
    for event in current:
        store.delete("events", id=event.id)
    logger.info("Archived %d event(s) for %d", len(current), year)
    return history


def list_event_histories() -> list[EventHistory]:
    histories = [
        EventHistory(
            id=r["id"],
            year=int(r["year"]),
            created_at=r["created_at"],
            events=tuple(_to_event(e) for e in r["events"]),
        )
        for r in store.select("event_histories")
    ]
    return sorted(histories, key=lambda h: h.created_at, reverse=True)
