"""
Application state controller.

Owns the card states, goals, applications and stats, loads them from a
KeyValueStore and writes each collection back after every mutation.
Consumers get an explicit AppState instance instead of ambient globals.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace
from typing import Any, TypeVar

from credo.application import scheduler
from credo.application.catalog import Catalog
from credo.application.id_service import new_id
from credo.application.queue_builder import DueCard, due_cards, resolve_card_state
from credo.application.stats import ProgressReport, build_progress, update_stats
from credo.application.utils.clock import now_ms
from credo.domain.constants import (
    APPLICATIONS_KEY,
    CARDS_KEY,
    GOALS_KEY,
    RECENT_APPLICATIONS,
    STATS_KEY,
)
from credo.domain.exceptions import NotFoundError, ValidationError
from credo.domain.models import Application, CardState, ContentItem, Goal, Stats, make_key
from credo.domain.ports import KeyValueStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

GOAL_FIELDS = {"name", "target_date", "linked_credos"}


def _load_records(raw: Any, parse: Callable[[dict[str, Any]], T], label: str) -> list[T]:
    if not isinstance(raw, list):
        if raw is not None:
            logger.warning(f"[state] Stored {label} is not a list, ignoring it")
        return []
    records: list[T] = []
    for entry in raw:
        try:
            records.append(parse(entry))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"[state] Skipping malformed {label} entry: {e}")
    return records


class AppState:
    """
    Explicit application state, owned by the top-level controller (CLI or server).

    Reads never write: looking up an unreviewed card returns a default state
    without storing it. Only grading persists card states.

    Not thread-safe; callers serialize read-modify-write sequences.
    """

    def __init__(self, store: KeyValueStore, catalog: Catalog):
        self.store = store
        self.catalog = catalog
        self.cards: dict[str, CardState] = {}
        self.goals: list[Goal] = []
        self.applications: list[Application] = []
        self.stats = Stats()
        self.reload()

    # ------------------------------------------------------------------
    # Loading / saving
    # ------------------------------------------------------------------

    def reload(self) -> None:
        """Re-read every collection from the store."""
        raw_cards = self.store.get(CARDS_KEY, {})
        self.cards = {}
        if isinstance(raw_cards, dict):
            for key, raw in raw_cards.items():
                try:
                    self.cards[key] = CardState.from_dict(raw)
                except (AttributeError, KeyError, TypeError, ValueError) as e:
                    logger.warning(f"[state] Dropping malformed card state {key}: {e}")

        self.goals = _load_records(self.store.get(GOALS_KEY, []), Goal.from_dict, "goal")
        self.applications = _load_records(
            self.store.get(APPLICATIONS_KEY, []), Application.from_dict, "application"
        )

        raw_stats = self.store.get(STATS_KEY, None)
        try:
            self.stats = Stats.from_dict(raw_stats) if isinstance(raw_stats, dict) else Stats()
        except (TypeError, ValueError) as e:
            logger.warning(f"[state] Malformed stats, starting fresh: {e}")
            self.stats = Stats()

        logger.debug(
            f"[state] Loaded {len(self.cards)} cards, {len(self.goals)} goals, "
            f"{len(self.applications)} applications"
        )

    def _save_cards(self) -> None:
        self.store.set(CARDS_KEY, {k: v.to_dict() for k, v in self.cards.items()})

    def _save_goals(self) -> None:
        self.store.set(GOALS_KEY, [g.to_dict() for g in self.goals])

    def _save_applications(self) -> None:
        self.store.set(APPLICATIONS_KEY, [a.to_dict() for a in self.applications])

    def _save_stats(self) -> None:
        self.store.set(STATS_KEY, self.stats.to_dict())

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    def require_item(self, item_type: str, item_id: int) -> ContentItem:
        item = self.catalog.find(item_type, item_id)
        if item is None:
            raise NotFoundError(f"No credo {make_key(item_type, item_id)} in the catalog")
        return item

    def card_state(self, item_type: str, item_id: int, now: int | None = None) -> CardState:
        return resolve_card_state(make_key(item_type, item_id), self.cards, now)

    def get_due_cards(self, now: int | None = None) -> list[DueCard]:
        if now is None:
            now = now_ms()
        return due_cards(
            self.catalog,
            lambda item_type, item_id: self.card_state(item_type, item_id, now),
            now,
        )

    def grade_card(
        self, item_type: str, item_id: int, quality: int, now: int | None = None
    ) -> CardState:
        """Grade a card, persist its new state and advance the stats."""
        self.require_item(item_type, item_id)
        if now is None:
            now = now_ms()

        key = make_key(item_type, item_id)
        new_state = scheduler.grade(self.card_state(item_type, item_id, now), quality, now)
        self.cards[key] = new_state
        self.stats = update_stats(self.stats, now)
        self._save_cards()
        self._save_stats()

        logger.debug(
            f"Graded {key} q={quality}: interval={new_state.interval}d "
            f"reps={new_state.repetitions} ease={new_state.ease_factor:.2f}"
        )
        return new_state

    def progress(self, now: int | None = None) -> ProgressReport:
        return build_progress(
            self.catalog, self.cards, self.stats, len(self.get_due_cards(now))
        )

    # ------------------------------------------------------------------
    # Goals
    # ------------------------------------------------------------------

    def get_goal(self, goal_id: str) -> Goal:
        for goal in self.goals:
            if goal.id == goal_id:
                return goal
        raise NotFoundError(f"No goal with id {goal_id}")

    def add_goal(
        self,
        name: str,
        target_date: str | None = None,
        linked_credos: Iterable[str] = (),
    ) -> Goal:
        name = name.strip()
        if not name:
            raise ValidationError("Goal name must not be empty")
        now = now_ms()
        goal = Goal(
            id=new_id(),
            name=name,
            created_at=now,
            target_date=target_date or None,
            linked_credos=list(dict.fromkeys(linked_credos)),
        )
        self.goals.append(goal)
        self._save_goals()
        logger.info(f"Added goal {goal.id}: {goal.name}")
        return goal

    def update_goal(self, goal_id: str, **updates: Any) -> Goal:
        """Merge ``updates`` into the goal and replace it by id."""
        unknown = set(updates) - GOAL_FIELDS
        if unknown:
            raise ValidationError(f"Unknown goal fields: {', '.join(sorted(unknown))}")
        if "name" in updates:
            updates["name"] = str(updates["name"]).strip()
            if not updates["name"]:
                raise ValidationError("Goal name must not be empty")
        if "target_date" in updates:
            updates["target_date"] = updates["target_date"] or None
        if "linked_credos" in updates:
            updates["linked_credos"] = list(dict.fromkeys(updates["linked_credos"]))

        current = self.get_goal(goal_id)
        updated = replace(current, **updates)
        self.goals = [updated if g.id == goal_id else g for g in self.goals]
        self._save_goals()
        return updated

    def delete_goal(self, goal_id: str) -> None:
        self.get_goal(goal_id)
        self.goals = [g for g in self.goals if g.id != goal_id]
        self._save_goals()
        logger.info(f"Deleted goal {goal_id}")

    def toggle_link(self, goal_id: str, key: str) -> Goal:
        """Link ``key`` to the goal, or unlink it if already linked."""
        goal = self.get_goal(goal_id)
        if key in goal.linked_credos:
            linked = [k for k in goal.linked_credos if k != key]
        else:
            if key not in self.catalog:
                raise NotFoundError(f"No credo {key} in the catalog")
            linked = [*goal.linked_credos, key]
        return self.update_goal(goal_id, linked_credos=linked)

    def linked_credos(self, goal: Goal) -> list[ContentItem]:
        """Resolve a goal's links, skipping keys no longer in the catalog."""
        return [item for key in goal.linked_credos if (item := self.catalog.get(key))]

    # ------------------------------------------------------------------
    # Applications
    # ------------------------------------------------------------------

    def add_application(self, item_type: str, item_id: int, note: str) -> Application:
        note = note.strip()
        if not note:
            raise ValidationError("Application note must not be empty")
        item = self.require_item(item_type, item_id)
        application = Application(
            id=new_id(),
            credo_type=item.type,
            credo_id=item.id,
            note=note,
            credo_text=item.snapshot_text,
            created_at=now_ms(),
        )
        self.applications.append(application)
        self._save_applications()
        logger.info(f"Logged application for {application.credo_key}")
        return application

    def recent_applications(self, limit: int = RECENT_APPLICATIONS) -> list[Application]:
        """Newest first."""
        if limit <= 0:
            return []
        return list(reversed(self.applications[-limit:]))
