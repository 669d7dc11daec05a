"""
SM-2 card scheduler.

Pure computation module with no I/O: persisting the returned state is the
caller's job.
"""

import math

from credo.application.utils.clock import now_ms
from credo.domain.constants import (
    DAY_MS,
    DEFAULT_EASE_FACTOR,
    FIRST_INTERVAL_DAYS,
    LAPSE_INTERVAL_DAYS,
    MASTERY_REPETITIONS,
    MIN_EASE_FACTOR,
    PASSING_QUALITY,
    SECOND_INTERVAL_DAYS,
)
from credo.domain.models import CardState


def default_card_state(now: int | None = None) -> CardState:
    """State of a card that has never been graded; due immediately."""
    if now is None:
        now = now_ms()
    return CardState(
        ease_factor=DEFAULT_EASE_FACTOR,
        interval=0,
        repetitions=0,
        next_review=now,
        last_review=None,
    )


def round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; 2.5 days must become 3.
    return int(math.floor(value + 0.5))


def next_ease_factor(ease_factor: float, quality: int) -> float:
    """
    EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)), floored at 1.3.
    """
    miss = 5 - quality
    updated = ease_factor + (0.1 - miss * (0.08 + miss * 0.02))
    return max(updated, MIN_EASE_FACTOR)


def grade(state: CardState, quality: int, now: int | None = None) -> CardState:
    """
    Compute the next review state of a card from a recall-quality grade.

    Args:
        state: Current scheduling state (stored or default).
        quality: Recall quality, nominally 0-5. Values outside that range are
            not validated here and go straight into the ease formula; the CLI
            and HTTP layers reject them before they reach this function.
        now: Grading instant in epoch milliseconds (defaults to the wall clock).

    Returns:
        A new CardState; the input is never modified.
    """
    if now is None:
        now = now_ms()

    if quality >= PASSING_QUALITY:
        if state.repetitions == 0:
            interval = FIRST_INTERVAL_DAYS
        elif state.repetitions == 1:
            interval = SECOND_INTERVAL_DAYS
        else:
            interval = round_half_up(state.interval * state.ease_factor)
        repetitions = state.repetitions + 1
    else:
        repetitions = 0
        interval = LAPSE_INTERVAL_DAYS

    return CardState(
        ease_factor=next_ease_factor(state.ease_factor, quality),
        interval=interval,
        repetitions=repetitions,
        next_review=now + interval * DAY_MS,
        last_review=now,
    )


def is_mastered(state: CardState) -> bool:
    return state.repetitions >= MASTERY_REPETITIONS
