"""Review state machine: NEW -> LEARNING -> REVIEW, with RELEARNING on a lapse."""

from __future__ import annotations

import random
from datetime import datetime, timedelta

from . import fsrs
from .models import Card, CardState, Rating, normalize_datetime

_LAPSE_STATES = (CardState.REVIEW, CardState.RELEARNING)


def next_state(state: CardState, rating: Rating) -> tuple[CardState, bool]:
    """Return the state after ``rating`` and whether the review counts as a lapse."""
    if rating == Rating.AGAIN:
        if state in _LAPSE_STATES:
            return CardState.RELEARNING, True
        return CardState.LEARNING, False
    return CardState.REVIEW, False


def review_card(
    card: Card,
    rating: Rating,
    *,
    now: datetime,
    fuzzy: bool = False,
    max_interval_days: int = fsrs.MAX_INTERVAL_DAYS,
    rng: random.Random | None = None,
) -> int:
    """Apply one review to ``card`` in place and return the interval in days.

    Difficulty and stability are computed from the card as it was before
    this review, so the state change happens last.
    """
    moment = normalize_datetime(now)

    difficulty = fsrs.next_difficulty(card.difficulty, rating)
    stability = fsrs.next_stability(card.state, card.stability, card.last_review, rating, moment)
    state, lapsed = next_state(card.state, rating)
    interval = fsrs.next_interval(
        stability,
        rating,
        fuzzy=fuzzy,
        max_interval_days=max_interval_days,
        rng=rng,
    )

    card.difficulty = difficulty
    card.stability = stability
    card.state = state
    if lapsed:
        card.lapses += 1
    card.last_review = moment
    card.due_date = moment + timedelta(days=interval)
    card.review_count += 1
    card.last_rating = rating
    return interval


def reset_card(card: Card, now: datetime) -> None:
    """Put ``card`` back to a never-reviewed NEW card, keeping its content."""
    card.state = CardState.NEW
    card.difficulty = fsrs.INITIAL_DIFFICULTY
    card.stability = 0.0
    card.due_date = normalize_datetime(now)
    card.review_count = 0
    card.lapses = 0
    card.last_review = None
    card.last_rating = None


__all__ = ["next_state", "reset_card", "review_card"]
