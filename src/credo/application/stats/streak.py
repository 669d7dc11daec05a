"""
Streak and review-count updater.

Runs once per grading event, regardless of the grade given. Days are
compared as local calendar dates, so the result depends on the host
timezone and clock.
"""

from credo.application.utils.clock import local_day, now_ms
from credo.domain.constants import DAY_MS
from credo.domain.models import Stats


def update_stats(stats: Stats, now: int | None = None) -> Stats:
    """
    Advance the aggregate for a review happening at ``now``.

    - last review today: streak unchanged
    - last review yesterday: streak + 1
    - anything else, including no prior review: streak restarts at 1
    """
    if now is None:
        now = now_ms()

    today = local_day(now)
    yesterday = local_day(now - DAY_MS)
    last_day = local_day(stats.last_review) if stats.last_review is not None else None

    if last_day == today:
        streak = stats.streak
    elif last_day == yesterday:
        streak = stats.streak + 1
    else:
        streak = 1

    return Stats(
        streak=streak,
        last_review=now,
        total_reviews=stats.total_reviews + 1,
    )
