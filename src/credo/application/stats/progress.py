"""
Progress reporting for the dashboard.

Mastery is a reporting measure only; it never feeds back into scheduling.
"""

from collections.abc import Mapping
from dataclasses import dataclass

from credo.application.catalog import Catalog
from credo.application.scheduler import is_mastered, round_half_up
from credo.domain.models import CardState, Stats


@dataclass
class ProgressReport:
    """Snapshot of the numbers shown on the dashboard."""

    streak: int
    due_count: int
    mastered_count: int
    catalog_size: int
    total_reviews: int

    @property
    def mastery_percent(self) -> int:
        if self.catalog_size == 0:
            return 0
        return round_half_up(self.mastered_count / self.catalog_size * 100)


def count_mastered(catalog: Catalog, cards: Mapping[str, CardState]) -> int:
    """Count catalog items whose stored state has reached the mastery threshold."""
    return sum(
        1 for item in catalog.items() if item.key in cards and is_mastered(cards[item.key])
    )


def build_progress(
    catalog: Catalog,
    cards: Mapping[str, CardState],
    stats: Stats,
    due_count: int,
) -> ProgressReport:
    return ProgressReport(
        streak=stats.streak,
        due_count=due_count,
        mastered_count=count_mastered(catalog, cards),
        catalog_size=len(catalog),
        total_reviews=stats.total_reviews,
    )
