from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable

from .models import Card, normalize_datetime


def is_due(card: Card, threshold: datetime) -> bool:
    return not card.suspended and card.due_date <= threshold


def get_due_cards(cards: Iterable[Card], now: datetime, learn_ahead_days: float = 0) -> list[Card]:
    """Unsuspended cards due by ``now`` plus the learn-ahead window, oldest first.

    ``sorted`` is stable, so cards sharing a due date keep store order.
    """
    threshold = normalize_datetime(now) + timedelta(days=learn_ahead_days)
    due = [card for card in cards if is_due(card, threshold)]
    return sorted(due, key=lambda card: card.due_date)


def get_all_cards(cards: Iterable[Card]) -> list[Card]:
    return list(cards)


def sort_for_browse(cards: Iterable[Card]) -> list[Card]:
    return sorted(cards, key=lambda card: card.due_date)


__all__ = ["get_all_cards", "get_due_cards", "is_due", "sort_for_browse"]
