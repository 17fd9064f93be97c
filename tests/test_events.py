"""
Tests for the special-occasion list and its archive.
"""

from dataclasses import replace

import pytest

import events
from models import NotFoundError, PermissionDenied, ValidationError


class TestEvents:
    def test_add_and_list_sorted_by_date(self, treasurer):
        events.add_event("2024-05-01", "Moon", "wedding", 100000, actor=treasurer)
        events.add_event("2024-02-01", "Yoo", "funeral", 50000, actor=treasurer)
        assert [e.name for e in events.list_events()] == ["Yoo", "Moon"]

    def test_date_and_name_required(self, treasurer):
        with pytest.raises(ValidationError):
            events.add_event("", "Moon", actor=treasurer)
        with pytest.raises(ValidationError):
            events.add_event("2024-05-01", "  ", actor=treasurer)

    def test_update_and_delete(self, treasurer):
        event = events.add_event("2024-05-01", "Moon", "wedding", 100000, actor=treasurer)
        events.update_event(replace(event, amount=150000), actor=treasurer)
        assert events.list_events()[0].amount == 150000

        events.delete_event(event.id, actor=treasurer)
        assert events.list_events() == []
        with pytest.raises(NotFoundError):
            events.update_event(event, actor=treasurer)

    def test_member_role_is_read_only(self, plain_member):
        with pytest.raises(PermissionDenied):
            events.add_event("2024-05-01", "Moon", actor=plain_member)


class TestReset:
    def test_reset_archives_then_clears(self, treasurer):
        events.add_event("2024-05-01", "Moon", "wedding", 100000, actor=treasurer)
        events.add_event("2024-06-01", "Yoo", "funeral", 50000, actor=treasurer)

        history = events.reset_events(2024, actor=treasurer)

        assert events.list_events() == []
        assert history.year == 2024
        assert [e.name for e in history.events] == ["Moon", "Yoo"]

        [stored] = events.list_event_histories()
        assert stored == history

    def test_reset_of_empty_list_still_archives(self, treasurer):
        history = events.reset_events(2023, actor=treasurer)
        assert history.events == ()
        assert [h.year for h in events.list_event_histories()] == [2023]
