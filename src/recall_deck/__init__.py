"""Recall Deck: a spaced-repetition scheduler for language flashcards."""

from .config import Settings, load_settings
from .deck import Deck
from .errors import LoadFailure, MissingField, NotFound, PersistFailure, RecallDeckError
from .models import Card, CardState, Rating, RetentionStats, ReviewResult
from .session import ReviewSession

__all__ = [
    "Card",
    "CardState",
    "Deck",
    "LoadFailure",
    "MissingField",
    "NotFound",
    "PersistFailure",
    "Rating",
    "RecallDeckError",
    "RetentionStats",
    "ReviewResult",
    "ReviewSession",
    "Settings",
    "load_settings",
]
