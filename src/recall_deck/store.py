"""In-memory card collection backed by a JSON document."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Iterable, Mapping

from . import fsrs
from .errors import LoadFailure, MissingField
from .models import Card, CardEdit, CardState, normalize_datetime, utc_now
from .persistence import JsonCardFile

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS: frozenset[str] = frozenset({"front", "back", "tags", "notes", "suspended"})


def _clean(text: object) -> str | None:
    if text is None:
        return None
    return str(text).strip()


def _normalize_tags(raw: object) -> set[str]:
    """Trimmed, non-blank tags; a bare string is rejected rather than split into letters."""
    if raw is None:
        return set()
    if isinstance(raw, str) or not isinstance(raw, Iterable):
        raise ValueError("tags must be a collection of strings")
    return {str(tag).strip() for tag in raw if str(tag).strip()}


def _require(field: str, value: object) -> str:
    cleaned = _clean(value)
    if not cleaned:
        raise MissingField(field)
    return cleaned


class CardStore:
    """Cards in insertion order, loaded from and flushed to a JsonCardFile.

    The store does not decide when to save; the owner calls ``save()`` after
    mutations when auto-save is on.
    """

    def __init__(self, file: JsonCardFile, default_tags: Iterable[str] = ()) -> None:
        self.file = file
        self.default_tags: tuple[str, ...] = tuple(default_tags)
        self.load_error: LoadFailure | None = None
        self._cards: dict[str, Card] = {}

    @property
    def cards(self) -> list[Card]:
        return list(self._cards.values())

    def __len__(self) -> int:
        return len(self._cards)

    def __contains__(self, card_id: object) -> bool:
        return card_id in self._cards

    def load(self) -> list[Card]:
        """Replace the in-memory collection with the persisted one.

        A corrupt document leaves the store empty and is kept on
        ``load_error``; loading never raises.
        """
        self.load_error = None
        try:
            cards = self.file.read()
        except LoadFailure as exc:
            logger.warning("Starting with an empty card store: %s", exc)
            self.load_error = exc
            cards = []
        self._cards = {card.id: card for card in cards}
        logger.info("Loaded %d flashcards from %s", len(self._cards), self.file.path)
        return self.cards

    def save(self) -> None:
        self.file.write(self._cards.values())

    def get(self, card_id: str) -> Card | None:
        return self._cards.get(card_id)

    def _new_id(self) -> str:
        card_id = uuid.uuid4().hex
        while card_id in self._cards:
            card_id = uuid.uuid4().hex
        return card_id

    def add(
        self,
        front: str,
        back: str,
        tags: Iterable[str] | None = None,
        notes: str | None = None,
        *,
        now: datetime | None = None,
    ) -> Card:
        trimmed_front = _require("front", front)
        trimmed_back = _require("back", back)
        timestamp = normalize_datetime(now or utc_now())
        card = Card(
            id=self._new_id(),
            front=trimmed_front,
            back=trimmed_back,
            due_date=timestamp,
            created_at=timestamp,
            tags=_normalize_tags(self.default_tags if tags is None else tags),
            notes=_clean(notes) or None,
            state=CardState.NEW,
            difficulty=fsrs.INITIAL_DIFFICULTY,
            stability=0.0,
        )
        self._cards[card.id] = card
        return card

    def edit(self, card_id: str, partial: CardEdit | Mapping[str, object]) -> bool:
        """Update content fields present in ``partial``; scheduling fields are never touched."""
        unknown = set(partial) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        card = self._cards.get(card_id)
        if card is None:
            return False

        # Validate everything before mutating so a bad edit changes nothing.
        front = _require("front", partial["front"]) if "front" in partial else card.front
        back = _require("back", partial["back"]) if "back" in partial else card.back
        tags = _normalize_tags(partial["tags"]) if "tags" in partial else card.tags

        card.front = front
        card.back = back
        card.tags = tags
        if "notes" in partial:
            notes = partial["notes"]
            card.notes = _clean(notes) or None
        if "suspended" in partial:
            card.suspended = bool(partial["suspended"])
        return True

    def delete(self, card_id: str) -> bool:
        return self._cards.pop(card_id, None) is not None


__all__ = ["CardStore"]
