"""
Domain models for cards, content, goals and statistics.

These are pure data structures with no I/O or external dependencies.
Persisted dictionaries use camelCase keys so backups stay compatible
with older exports.
"""

from dataclasses import dataclass, field
from typing import Any

from .constants import (
    DEFAULT_EASE_FACTOR,
    DISPLAY_TRUNCATE_LEN,
    PRINCIPLE_TYPE,
    RULE_SET_TYPE,
)


def make_key(item_type: str, item_id: int) -> str:
    """Composite key joining a content item to its scheduling state."""
    return f"{item_type}_{item_id}"


@dataclass(frozen=True)
class CardState:
    """
    SM-2 scheduling record for one content item.

    Attributes:
        ease_factor: Interval multiplier, never below 1.3.
        interval: Days until the next review (0 only before the first grading).
        repetitions: Consecutive successful recalls since the last failure.
        next_review: Due time, epoch milliseconds.
        last_review: Epoch milliseconds of the last grading, None if never graded.
    """

    ease_factor: float
    interval: int
    repetitions: int
    next_review: int
    last_review: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "easeFactor": self.ease_factor,
            "interval": self.interval,
            "repetitions": self.repetitions,
            "nextReview": self.next_review,
            "lastReview": self.last_review,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CardState":
        last_review = data.get("lastReview")
        return cls(
            ease_factor=float(data.get("easeFactor", DEFAULT_EASE_FACTOR)),
            interval=int(data.get("interval", 0)),
            repetitions=int(data.get("repetitions", 0)),
            next_review=int(data["nextReview"]),
            last_review=int(last_review) if last_review is not None else None,
        )


@dataclass(frozen=True)
class Principle:
    """A single free-text principle with a category tag."""

    id: int
    text: str
    category: str
    type: str = PRINCIPLE_TYPE

    @property
    def key(self) -> str:
        return make_key(self.type, self.id)

    @property
    def display(self) -> str:
        return f"K#{self.id}: {self.text[:DISPLAY_TRUNCATE_LEN]}..."

    @property
    def snapshot_text(self) -> str:
        return self.text


@dataclass(frozen=True)
class RuleSet:
    """A titled statement with an ordered list of actionable rules."""

    id: int
    title: str
    truth: str
    rules: tuple[str, ...] = ()
    type: str = RULE_SET_TYPE

    @property
    def key(self) -> str:
        return make_key(self.type, self.id)

    @property
    def display(self) -> str:
        return f"P#{self.id}: {self.title}"

    @property
    def snapshot_text(self) -> str:
        return self.title


ContentItem = Principle | RuleSet


@dataclass
class Goal:
    """
    A user goal linked to zero or more credos.

    ``linked_credos`` holds composite keys; entries may dangle if the
    catalog changes.
    """

    id: str
    name: str
    created_at: int
    target_date: str | None = None
    linked_credos: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "targetDate": self.target_date,
            "linkedCredos": list(self.linked_credos),
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Goal":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            created_at=int(data.get("createdAt", 0)),
            target_date=data.get("targetDate") or None,
            linked_credos=list(data.get("linkedCredos") or []),
        )


@dataclass(frozen=True)
class Application:
    """
    Log entry describing how a credo was applied.

    ``credo_text`` is captured at creation so later catalog edits do not
    rewrite history.
    """

    id: str
    credo_type: str
    credo_id: int
    note: str
    credo_text: str
    created_at: int

    @property
    def credo_key(self) -> str:
        return make_key(self.credo_type, self.credo_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "credoType": self.credo_type,
            "credoId": self.credo_id,
            "note": self.note,
            "credoText": self.credo_text,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Application":
        return cls(
            id=str(data["id"]),
            credo_type=str(data["credoType"]),
            credo_id=int(data["credoId"]),
            note=str(data.get("note", "")),
            credo_text=str(data.get("credoText", "")),
            created_at=int(data.get("createdAt", 0)),
        )


@dataclass(frozen=True)
class Stats:
    """
    Review aggregate, mutated only by grading events.

    Attributes:
        streak: Consecutive calendar days with at least one review.
        last_review: Epoch milliseconds of the most recent grading.
        total_reviews: Monotonic count of gradings.
    """

    streak: int = 0
    last_review: int | None = None
    total_reviews: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "streak": self.streak,
            "lastReview": self.last_review,
            "totalReviews": self.total_reviews,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Stats":
        last_review = data.get("lastReview")
        return cls(
            streak=int(data.get("streak", 0)),
            last_review=int(last_review) if last_review is not None else None,
            total_reviews=int(data.get("totalReviews", 0)),
        )
