"""
Queue builder for review sessions.

Builds the ordered set of due cards by:
1. Flattening the catalog (principles first, then rule-sets)
2. Resolving each item's scheduling state (stored or default)
3. Keeping items whose next review has passed, earliest first
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass

from credo.application.catalog import Catalog
from credo.application.scheduler import default_card_state
from credo.domain.models import CardState, ContentItem

logger = logging.getLogger(__name__)

CardStateLookup = Callable[[str, int], CardState]


@dataclass(frozen=True)
class DueCard:
    """A content item paired with its scheduling state."""

    item: ContentItem
    state: CardState

    @property
    def key(self) -> str:
        return self.item.key


def resolve_card_state(
    key: str, cards: Mapping[str, CardState], now: int | None = None
) -> CardState:
    """
    Return the stored state for ``key``, or a fresh default.

    Never writes to ``cards``; defaults are persisted only after grading.
    """
    state = cards.get(key)
    if state is not None:
        return state
    return default_card_state(now)


def flatten_catalog(catalog: Catalog) -> list[ContentItem]:
    return list(catalog.items())


def due_cards(
    catalog: Catalog | Iterable[ContentItem],
    card_state_lookup: CardStateLookup,
    now: int,
) -> list[DueCard]:
    """
    Build the review queue at instant ``now``.

    Args:
        catalog: The content catalog, or any iterable of items in catalog order.
        card_state_lookup: (type, id) -> CardState; must not mutate anything.
        now: Current instant in epoch milliseconds.

    Returns:
        Due cards sorted by next_review ascending. The sort is stable, so ties
        keep catalog order.
    """
    items = flatten_catalog(catalog) if isinstance(catalog, Catalog) else list(catalog)

    paired = [DueCard(item, card_state_lookup(item.type, item.id)) for item in items]
    due = [card for card in paired if card.state.next_review <= now]
    due.sort(key=lambda card: card.state.next_review)

    logger.debug(f"[queue] {len(due)}/{len(paired)} cards due at {now}")
    return due
