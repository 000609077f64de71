"""Translation history written by the lookup service, and its conversion into cards."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping

from .models import Card, normalize_datetime
from .store import CardStore

logger = logging.getLogger(__name__)

HISTORY_TAGS: tuple[str, ...] = ("from-history", "language-learning")


@dataclass(slots=True)
class HistoryEntry:
    type: str
    text: str | None = None
    result: str | None = None
    source_lang: str | None = None
    target_lang: str | None = None
    timestamp: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> HistoryEntry:
        def _text(key: str) -> str | None:
            value = data.get(key)
            return None if value is None else str(value)

        return cls(
            type=str(data.get("type") or ""),
            text=_text("text"),
            result=_text("result"),
            source_lang=_text("source_lang"),
            target_lang=_text("target_lang"),
            timestamp=_text("timestamp"),
        )


def _parse_timestamp(value: str | None) -> datetime | None:
    """ISO 8601 text or epoch seconds; anything else is ignored."""
    if not value:
        return None
    try:
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        pass
    try:
        return normalize_datetime(datetime.fromisoformat(value))
    except ValueError:
        logger.debug("Ignoring unparseable history timestamp %r", value)
        return None


def load_history(path: str | os.PathLike[str]) -> list[HistoryEntry]:
    """Read the history document; anything unreadable yields an empty history."""
    history_path = Path(path)
    if not history_path.exists():
        return []
    try:
        data = json.loads(history_path.read_text(encoding="utf-8") or "[]")
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Could not read history from %s: %s", history_path, exc)
        return []
    if not isinstance(data, list):
        logger.warning("History in %s is not a list; ignoring it", history_path)
        return []
    return [HistoryEntry.from_mapping(item) for item in data if isinstance(item, Mapping)]


def convert_history(
    store: CardStore,
    entries: Iterable[HistoryEntry],
    now: datetime | None = None,
) -> list[Card]:
    """Add a card for each new translation entry and return the added cards.

    Entries whose text is already a card front, or was added earlier in the
    same pass, are skipped. Cards keep the entry's language pair, and its
    timestamp becomes ``created_at`` when it parses.
    """
    existing = {card.front for card in store.cards}
    added: list[Card] = []
    for entry in entries:
        if entry.type != "translation":
            continue
        front = (entry.text or "").strip()
        back = (entry.result or "").strip()
        if not front or not back or front in existing:
            continue
        card = store.add(front, back, tags=HISTORY_TAGS, now=now)
        card.source_lang = entry.source_lang
        card.target_lang = entry.target_lang
        translated_at = _parse_timestamp(entry.timestamp)
        if translated_at is not None:
            card.created_at = translated_at
        existing.add(card.front)
        added.append(card)
    return added


__all__ = ["HISTORY_TAGS", "HistoryEntry", "convert_history", "load_history"]
