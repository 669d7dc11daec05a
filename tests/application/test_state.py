"""Tests for the AppState controller."""

import pytest

from credo.application.state import AppState
from credo.domain.constants import DAY_MS
from credo.domain.exceptions import NotFoundError, ValidationError
from credo.infrastructure.store import MemoryStore


class TestLoading:
    def test_defaults_on_empty_store(self, app_state):
        assert app_state.cards == {}
        assert app_state.goals == []
        assert app_state.applications == []
        assert app_state.stats.streak == 0
        assert app_state.stats.last_review is None

    def test_malformed_entries_are_skipped(self, catalog):
        store = MemoryStore(
            data={
                "credo_cards": {
                    "kekich_1": {"easeFactor": 2.0, "interval": 3, "repetitions": 2,
                                 "nextReview": 5, "lastReview": 1},
                    "kekich_2": "garbage",
                    "kekich_3": {"interval": 1},
                },
                "credo_goals": [{"id": "g1", "name": "Run"}, {"nope": True}],
                "credo_applications": "not a list",
                "credo_stats": {"streak": "many"},
            }
        )
        state = AppState(store, catalog)
        assert list(state.cards) == ["kekich_1"]
        assert [g.id for g in state.goals] == ["g1"]
        assert state.applications == []
        assert state.stats.streak == 0

    def test_reads_camel_case_backups(self, catalog):
        store = MemoryStore(
            data={"credo_stats": {"streak": 3, "lastReview": 99, "totalReviews": 10}}
        )
        state = AppState(store, catalog)
        assert state.stats.total_reviews == 10
        assert state.stats.last_review == 99


class TestGrading:
    def test_lookup_does_not_persist(self, app_state, store):
        app_state.card_state("kekich", 1)
        app_state.get_due_cards()
        assert app_state.cards == {}
        assert store.get("cards") is None

    def test_grade_persists_card_and_stats(self, app_state, store, local_ms):
        now = local_ms(2026, 3, 10, 12, 0)
        state = app_state.grade_card("kekich", 2, 5, now=now)

        assert state.interval == 1
        assert store.get("cards")["kekich_2"]["nextReview"] == now + DAY_MS
        assert store.get("stats") == {"streak": 1, "lastReview": now, "totalReviews": 1}

    def test_graded_card_leaves_queue(self, app_state, local_ms):
        now = local_ms(2026, 3, 10, 12, 0)
        assert len(app_state.get_due_cards(now)) == 5
        app_state.grade_card("paulism", 1, 4, now=now)
        due = app_state.get_due_cards(now)
        assert "paulism_1" not in [c.key for c in due]
        assert len(due) == 4

    def test_failed_grade_still_counts_for_streak(self, app_state, local_ms):
        app_state.grade_card("kekich", 1, 0, now=local_ms(2026, 3, 9, 12, 0))
        app_state.grade_card("kekich", 1, 1, now=local_ms(2026, 3, 10, 12, 0))
        assert app_state.stats.streak == 2
        assert app_state.stats.total_reviews == 2

    def test_unknown_card(self, app_state):
        with pytest.raises(NotFoundError):
            app_state.grade_card("kekich", 404, 5)
        assert app_state.stats.total_reviews == 0

    def test_state_survives_reload(self, app_state, store, catalog):
        app_state.grade_card("kekich", 3, 5)
        again = AppState(store, catalog)
        assert again.cards == app_state.cards
        assert again.stats == app_state.stats

    def test_progress(self, app_state):
        for _ in range(5):
            app_state.grade_card("kekich", 1, 5)
        report = app_state.progress()
        assert report.mastered_count == 1
        assert report.total_reviews == 5
        assert report.due_count == 4


class TestGoals:
    def test_add_goal(self, app_state, store):
        goal = app_state.add_goal("  Run a marathon ", "2026-10-01", ["kekich_2", "kekich_2"])
        assert goal.name == "Run a marathon"
        assert goal.linked_credos == ["kekich_2"]
        assert store.get("goals")[0]["targetDate"] == "2026-10-01"

    def test_ids_unique_within_same_millisecond(self, app_state, monkeypatch):
        monkeypatch.setattr("credo.application.state.now_ms", lambda: 1000)
        a = app_state.add_goal("A")
        b = app_state.add_goal("B")
        assert a.id != b.id
        assert a.created_at == b.created_at == 1000

    def test_blank_name_rejected(self, app_state):
        with pytest.raises(ValidationError):
            app_state.add_goal("   ")
        assert app_state.goals == []

    def test_update_goal_replaces_by_id(self, app_state):
        keep = app_state.add_goal("Keep")
        goal = app_state.add_goal("Old", "2026-01-01")
        updated = app_state.update_goal(goal.id, name="New", target_date="")
        assert updated.name == "New"
        assert updated.target_date is None
        assert updated.created_at == goal.created_at
        assert [g.name for g in app_state.goals] == ["Keep", "New"]
        assert app_state.get_goal(keep.id) == keep

    def test_update_rejects_unknown_fields(self, app_state):
        goal = app_state.add_goal("Goal")
        with pytest.raises(ValidationError):
            app_state.update_goal(goal.id, created_at=0)

    def test_update_missing_goal(self, app_state):
        with pytest.raises(NotFoundError):
            app_state.update_goal("nope", name="x")

    def test_delete_goal(self, app_state, store):
        goal = app_state.add_goal("Goal")
        app_state.delete_goal(goal.id)
        assert app_state.goals == []
        assert store.get("goals") == []
        with pytest.raises(NotFoundError):
            app_state.delete_goal(goal.id)

    def test_toggle_link(self, app_state):
        goal = app_state.add_goal("Goal")
        goal = app_state.toggle_link(goal.id, "paulism_2")
        assert goal.linked_credos == ["paulism_2"]
        goal = app_state.toggle_link(goal.id, "paulism_2")
        assert goal.linked_credos == []
        with pytest.raises(NotFoundError):
            app_state.toggle_link(goal.id, "kekich_999")

    def test_dangling_links_are_skipped(self, app_state):
        goal = app_state.add_goal("Goal", linked_credos=["kekich_1", "kekich_999"])
        assert [i.key for i in app_state.linked_credos(goal)] == ["kekich_1"]


class TestApplications:
    def test_snapshot_text(self, app_state):
        principle = app_state.add_application("kekich", 3, " Skipped the takeaway ")
        rule_set = app_state.add_application("paulism", 1, "Up at six")
        assert principle.note == "Skipped the takeaway"
        assert principle.credo_text == "Spend less than you earn."
        assert rule_set.credo_text == "Own the Morning"

    def test_empty_note_rejected(self, app_state):
        with pytest.raises(ValidationError):
            app_state.add_application("kekich", 1, "  ")

    def test_unknown_credo(self, app_state):
        with pytest.raises(NotFoundError):
            app_state.add_application("paulism", 9, "note")

    def test_recent_newest_first(self, app_state):
        for n in range(7):
            app_state.add_application("kekich", 1, f"note {n}")
        recent = app_state.recent_applications()
        assert [a.note for a in recent] == ["note 6", "note 5", "note 4", "note 3", "note 2"]
        assert app_state.recent_applications(0) == []
