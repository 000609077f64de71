"""Per-session review tallies for a run through the due queue."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Sequence

from .models import Card, Rating, normalize_datetime, utc_now


@dataclass(slots=True)
class ReviewSession:
    total: int
    started_at: datetime = field(default_factory=utc_now)
    counts: dict[Rating, int] = field(default_factory=lambda: {rating: 0 for rating in Rating})

    @classmethod
    def start(cls, cards: Sequence[Card], now: datetime | None = None) -> ReviewSession:
        return cls(total=len(cards), started_at=normalize_datetime(now or utc_now()))

    def record(self, rating: Rating) -> None:
        self.counts[rating] += 1

    @property
    def reviewed(self) -> int:
        return sum(self.counts.values())

    @property
    def remaining(self) -> int:
        return max(0, self.total - self.reviewed)

    def elapsed_seconds(self, now: datetime | None = None) -> float:
        moment = normalize_datetime(now or utc_now())
        return max(0.0, (moment - self.started_at).total_seconds())

    def cards_per_minute(self, now: datetime | None = None) -> float:
        elapsed = self.elapsed_seconds(now)
        if elapsed <= 0:
            return 0.0
        return self.reviewed / (elapsed / 60)

    def summary(self, now: datetime | None = None) -> dict[str, Any]:
        return {
            "total": self.total,
            "reviewed": self.reviewed,
            "again": self.counts[Rating.AGAIN],
            "hard": self.counts[Rating.HARD],
            "good": self.counts[Rating.GOOD],
            "easy": self.counts[Rating.EASY],
            "elapsed_seconds": round(self.elapsed_seconds(now)),
            "cards_per_minute": round(self.cards_per_minute(now), 2),
        }


__all__ = ["ReviewSession"]
