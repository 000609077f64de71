"""Memory model: difficulty, stability, retrievability and review intervals.

Pure functions over fixed parameters. Nothing here reads the clock or a global
random source; callers pass ``now`` and an ``rng`` explicitly.
"""

from __future__ import annotations

import math
import random
from datetime import datetime

from .models import CardState, Rating, normalize_datetime

INITIAL_STABILITY_AGAIN = 0.4
INITIAL_STABILITY_STEP = 1.2
INITIAL_DIFFICULTY = 3.2
DIFFICULTY_STEP = -0.5
MEAN_REVERSION_SPEED = 0.2
STABILITY_GROWTH_FACTOR = 1.4
STABILITY_DECAY_EXPONENT = -0.12
RETRIEVABILITY_GAIN = 0.8
INTERVAL_FACTOR = 2.0
FUZZ_FACTOR = 0.2
TARGET_RETENTION = 0.9
MAX_INTERVAL_DAYS = 365

MIN_STABILITY = 0.1
DIFFICULTY_MIN = 1.0
DIFFICULTY_MAX = 5.0
MIN_INTERVAL_DAYS = 1

# Shared by the stability update and the interval factor.
HARD_MULTIPLIER = 0.8
EASY_MULTIPLIER = 1.3

SECONDS_PER_DAY = 86400.0


def retrievability(elapsed_days: float, stability: float) -> float:
    """Recall probability after ``elapsed_days`` for a memory of ``stability`` days.

    R = exp(ln(0.9) * t / S), so R == 0.9 exactly when t == S.
    """
    if stability <= 0:
        raise ValueError("stability must be positive")
    elapsed = max(0.0, elapsed_days)
    return math.exp(math.log(TARGET_RETENTION) * elapsed / stability)


def elapsed_days(since: datetime | None, now: datetime) -> float:
    if since is None:
        return 0.0
    delta = normalize_datetime(now) - normalize_datetime(since)
    return max(0.0, delta.total_seconds() / SECONDS_PER_DAY)


def next_difficulty(difficulty: float | None, rating: Rating) -> float:
    """Shift difficulty by rating, pull it back toward the mean, clamp to [1, 5]."""
    d = INITIAL_DIFFICULTY if difficulty is None else difficulty

    if rating == Rating.AGAIN:
        d += DIFFICULTY_STEP
    elif rating == Rating.HARD:
        d += DIFFICULTY_STEP / 2
    elif rating == Rating.EASY:
        d -= DIFFICULTY_STEP

    d = INITIAL_DIFFICULTY + (d - INITIAL_DIFFICULTY) * (1 - MEAN_REVERSION_SPEED)
    return max(DIFFICULTY_MIN, min(DIFFICULTY_MAX, d))


def initial_stability(rating: Rating) -> float:
    if rating == Rating.AGAIN:
        return INITIAL_STABILITY_AGAIN
    return INITIAL_STABILITY_AGAIN + (int(rating) - 1) * INITIAL_STABILITY_STEP


def next_stability(
    state: CardState,
    stability: float,
    last_review: datetime | None,
    rating: Rating,
    now: datetime,
) -> float:
    """Stability after a review.

    New cards get a rating-dependent starting value. Forgetting a card that
    was already studied resets it. Otherwise:

        S' = S * growth * exp(decay * S) + gain * (1 - R)

    scaled by 0.8 for HARD and 1.3 for EASY.
    """
    if state is CardState.NEW:
        return max(MIN_STABILITY, initial_stability(rating))

    if rating == Rating.AGAIN:
        return max(MIN_STABILITY, INITIAL_STABILITY_AGAIN)

    current = max(MIN_STABILITY, stability)
    r = retrievability(elapsed_days(last_review, now), current)
    grown = (
        current * STABILITY_GROWTH_FACTOR * math.exp(STABILITY_DECAY_EXPONENT * current)
        + RETRIEVABILITY_GAIN * (1 - r)
    )

    if rating == Rating.HARD:
        grown *= HARD_MULTIPLIER
    elif rating == Rating.EASY:
        grown *= EASY_MULTIPLIER

    return max(MIN_STABILITY, grown)


def next_interval(
    stability: float,
    rating: Rating,
    *,
    fuzzy: bool = False,
    max_interval_days: int = MAX_INTERVAL_DAYS,
    rng: random.Random | None = None,
) -> int:
    """Days until the next review, always within [1, max_interval_days]."""
    if rating == Rating.AGAIN:
        return MIN_INTERVAL_DAYS

    factor = INTERVAL_FACTOR
    if rating == Rating.HARD:
        factor *= HARD_MULTIPLIER
    elif rating == Rating.EASY:
        factor *= EASY_MULTIPLIER

    interval = math.ceil(stability * factor)

    if fuzzy:
        source = rng if rng is not None else random.Random()
        fuzz = source.uniform(1 - FUZZ_FACTOR, 1 + FUZZ_FACTOR)
        interval = math.ceil(interval * fuzz)

    upper = max(MIN_INTERVAL_DAYS, int(max_interval_days))
    return max(MIN_INTERVAL_DAYS, min(upper, interval))


__all__ = [
    "DIFFICULTY_MAX",
    "DIFFICULTY_MIN",
    "DIFFICULTY_STEP",
    "EASY_MULTIPLIER",
    "FUZZ_FACTOR",
    "HARD_MULTIPLIER",
    "INITIAL_DIFFICULTY",
    "INITIAL_STABILITY_AGAIN",
    "INITIAL_STABILITY_STEP",
    "INTERVAL_FACTOR",
    "MAX_INTERVAL_DAYS",
    "MEAN_REVERSION_SPEED",
    "MIN_INTERVAL_DAYS",
    "MIN_STABILITY",
    "RETRIEVABILITY_GAIN",
    "STABILITY_DECAY_EXPONENT",
    "STABILITY_GROWTH_FACTOR",
    "TARGET_RETENTION",
    "elapsed_days",
    "initial_stability",
    "next_difficulty",
    "next_interval",
    "next_stability",
    "retrievability",
]
