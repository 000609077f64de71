from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import TypedDict


class CardState(Enum):
    NEW = "NEW"
    LEARNING = "LEARNING"
    REVIEW = "REVIEW"
    RELEARNING = "RELEARNING"


class Rating(IntEnum):
    """How well a card was recalled, from forgotten to effortless."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4

    @classmethod
    def parse(cls, value: str | Rating) -> Rating:
        if isinstance(value, Rating):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise ValueError(f"Unsupported rating: {value}") from None


class CardEdit(TypedDict, total=False):
    front: str
    back: str
    tags: set[str] | list[str]
    notes: str | None
    suspended: bool


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_datetime(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(slots=True)
class Card:
    id: str
    front: str
    back: str
    due_date: datetime
    created_at: datetime
    tags: set[str] = field(default_factory=set)
    notes: str | None = None
    source_lang: str | None = None
    target_lang: str | None = None
    state: CardState = CardState.NEW
    difficulty: float = 3.2
    stability: float = 0.0
    last_review: datetime | None = None
    review_count: int = 0
    lapses: int = 0
    last_rating: Rating | None = None
    suspended: bool = False

    def is_new(self) -> bool:
        return self.state is CardState.NEW


@dataclass(slots=True)
class ReviewResult:
    card: Card
    interval_days: int
    next_due_date: str


@dataclass(slots=True)
class RetentionStats:
    card_count: int
    total_reviews: int
    successful_reviews: int
    retention_ratio: float
    target_retention: float


__all__ = [
    "Card",
    "CardEdit",
    "CardState",
    "Rating",
    "RetentionStats",
    "ReviewResult",
    "normalize_datetime",
    "utc_now",
]
