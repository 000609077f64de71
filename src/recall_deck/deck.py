"""The scheduler facade used by review and browse front-ends.

A Deck owns one CardStore and serializes every mutation and the flush that
follows it behind a single lock. The file is always rewritten whole, so two
writers must never interleave.
"""

from __future__ import annotations

import logging
import os
import random
import threading
from dataclasses import replace
from datetime import datetime
from typing import Iterable, Mapping

from . import scheduler
from .config import Settings, load_settings
from .due import get_all_cards, get_due_cards, sort_for_browse
from .errors import LoadFailure, NotFound, PersistFailure
from .export import export_cards
from .history import convert_history, load_history
from .models import Card, CardEdit, Rating, RetentionStats, ReviewResult, normalize_datetime, utc_now
from .persistence import JsonCardFile
from .store import CardStore

logger = logging.getLogger(__name__)


def _snapshot(card: Card) -> Card:
    return replace(card, tags=set(card.tags))


class Deck:
    def __init__(
        self,
        store: CardStore,
        settings: Settings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or Settings()
        self._rng = rng or random.Random()
        self._lock = threading.RLock()

    @classmethod
    def open(cls, settings: Settings | None = None, rng: random.Random | None = None) -> Deck:
        """Create a deck for ``settings.cards_path`` and load it."""
        resolved = settings or load_settings()
        store = CardStore(JsonCardFile(resolved.cards_path), default_tags=resolved.default_tags)
        store.load()
        return cls(store, resolved, rng=rng)

    @property
    def load_error(self) -> LoadFailure | None:
        return self.store.load_error

    def _flush(self) -> None:
        if self.settings.auto_save:
            self.store.save()

    def save(self) -> None:
        with self._lock:
            self.store.save()

    # --- queries ---

    def due_cards(self, now: datetime | None = None, learn_ahead_days: float | None = None) -> list[Card]:
        window = self.settings.learn_ahead_days if learn_ahead_days is None else learn_ahead_days
        with self._lock:
            due = get_due_cards(self.store.cards, now or utc_now(), window)
            return [_snapshot(card) for card in due]

    def all_cards(self) -> list[Card]:
        with self._lock:
            return [_snapshot(card) for card in get_all_cards(self.store.cards)]

    def browse_cards(self) -> list[Card]:
        """Every card, suspended ones included, ordered by due date."""
        with self._lock:
            return [_snapshot(card) for card in sort_for_browse(self.store.cards)]

    def get_card(self, card_id: str) -> Card | None:
        with self._lock:
            card = self.store.get(card_id)
            return _snapshot(card) if card is not None else None

    def retention_stats(self) -> RetentionStats:
        """Coarse retention estimate from per-card aggregates.

        There is no per-review log, so a card whose last rating was GOOD or
        EASY counts ``review_count - lapses`` successes and any other card
        counts none.
        """
        with self._lock:
            cards = [_snapshot(card) for card in self.store.cards]
        total = sum(card.review_count for card in cards)
        successful = sum(
            max(0, card.review_count - card.lapses)
            for card in cards
            if card.last_rating is not None and card.last_rating >= Rating.GOOD
        )
        return RetentionStats(
            card_count=len(cards),
            total_reviews=total,
            successful_reviews=successful,
            retention_ratio=successful / total if total else 0.0,
            target_retention=self.settings.target_retention,
        )

    # --- mutations ---

    def add_card(
        self,
        front: str,
        back: str,
        tags: Iterable[str] | None = None,
        notes: str | None = None,
        *,
        now: datetime | None = None,
    ) -> Card:
        with self._lock:
            card = self.store.add(front, back, tags=tags, notes=notes, now=now)
            logger.info("Added flashcard %s", card.id)
            self._flush()
            return _snapshot(card)

    def edit_card(self, card_id: str, partial: CardEdit | Mapping[str, object]) -> bool:
        with self._lock:
            if not self.store.edit(card_id, partial):
                return False
            self._flush()
            return True

    def delete_card(self, card_id: str) -> bool:
        with self._lock:
            if not self.store.delete(card_id):
                return False
            logger.info("Deleted flashcard %s", card_id)
            self._flush()
            return True

    def update_card(self, card_id: str, rating: Rating | str, now: datetime | None = None) -> ReviewResult:
        """Apply a review and persist it.

        An unknown id raises NotFound before anything changes. If saving
        fails the review stays applied in memory and PersistFailure is
        raised; call ``save()`` again to retry.
        """
        grade = Rating.parse(rating)
        moment = normalize_datetime(now or utc_now())
        with self._lock:
            card = self.store.get(card_id)
            if card is None:
                raise NotFound(card_id)
            interval = scheduler.review_card(
                card,
                grade,
                now=moment,
                fuzzy=self.settings.fuzzy_intervals,
                max_interval_days=self.settings.maximum_interval_days,
                rng=self._rng,
            )
            logger.debug("Reviewed %s as %s; next review in %d days", card_id, grade.name, interval)
            result = ReviewResult(
                card=_snapshot(card),
                interval_days=interval,
                next_due_date=card.due_date.strftime("%Y-%m-%d"),
            )
            try:
                self._flush()
            except PersistFailure:
                logger.error("Review of %s applied in memory but not saved", card_id)
                raise
            return result

    def reset_all_cards(self, now: datetime | None = None) -> int:
        moment = normalize_datetime(now or utc_now())
        with self._lock:
            cards = self.store.cards
            for card in cards:
                scheduler.reset_card(card, moment)
            logger.info("Reset %d flashcards to NEW", len(cards))
            self._flush()
            return len(cards)

    # --- import / export ---

    def export(self, path: str | os.PathLike[str] | None = None, now: datetime | None = None) -> int:
        with self._lock:
            cards = [_snapshot(card) for card in self.store.cards]
        return export_cards(cards, path or self.settings.export_path, now=now)

    def import_history(self, path: str | os.PathLike[str] | None = None, now: datetime | None = None) -> int:
        entries = load_history(path or self.settings.history_path)
        with self._lock:
            added = convert_history(self.store, entries, now=now)
            if added:
                logger.info("Converted %d history entries to flashcards", len(added))
                self._flush()
            return len(added)


__all__ = ["Deck"]
