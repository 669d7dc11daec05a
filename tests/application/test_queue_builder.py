"""Tests for the review queue builder."""

from credo.application.queue_builder import (
    DueCard,
    due_cards,
    flatten_catalog,
    resolve_card_state,
)
from credo.application.scheduler import default_card_state
from credo.domain.models import CardState, Principle

NOW = 1_700_000_000_000


def _at(next_review: int) -> CardState:
    return CardState(2.5, 1, 1, next_review=next_review, last_review=next_review - 1)


class TestResolveCardState:
    def test_returns_stored_state(self):
        stored = _at(NOW + 5)
        assert resolve_card_state("kekich_1", {"kekich_1": stored}, NOW) is stored

    def test_defaults_without_writing(self):
        cards: dict[str, CardState] = {}
        state = resolve_card_state("kekich_1", cards, NOW)
        assert state == default_card_state(NOW)
        assert cards == {}


def test_flatten_keeps_catalog_order(catalog):
    keys = [item.key for item in flatten_catalog(catalog)]
    assert keys == ["kekich_1", "kekich_2", "kekich_3", "paulism_1", "paulism_2"]


def test_filters_and_orders_by_due_time():
    items = [Principle(1, "a", "x"), Principle(2, "b", "x"), Principle(3, "c", "x")]
    states = {1: _at(NOW - 1000), 2: _at(NOW + 1000), 3: _at(NOW)}

    result = due_cards(items, lambda t, i: states[i], NOW)

    assert [c.item.id for c in result] == [1, 3]
    assert all(isinstance(c, DueCard) for c in result)


def test_overdue_first_and_ties_keep_catalog_order(catalog):
    states = {
        "kekich_1": _at(NOW - 10),
        "kekich_2": _at(NOW - 500),
        "kekich_3": _at(NOW - 10),
        "paulism_1": _at(NOW + 1),
        "paulism_2": _at(NOW - 10),
    }

    result = due_cards(catalog, lambda t, i: states[f"{t}_{i}"], NOW)

    assert [c.key for c in result] == ["kekich_2", "kekich_1", "kekich_3", "paulism_2"]


def test_unreviewed_cards_are_due_immediately(catalog):
    cards: dict[str, CardState] = {}
    result = due_cards(catalog, lambda t, i: resolve_card_state(f"{t}_{i}", cards, NOW), NOW)
    assert len(result) == 5
    assert cards == {}


def test_repeated_query_is_identical(catalog):
    cards = {"kekich_2": _at(NOW - 100), "paulism_1": _at(NOW + 100)}

    def lookup(t, i):
        return resolve_card_state(f"{t}_{i}", cards, NOW)

    assert due_cards(catalog, lookup, NOW) == due_cards(catalog, lookup, NOW)


def test_empty_catalog():
    assert due_cards([], lambda t, i: _at(NOW), NOW) == []
