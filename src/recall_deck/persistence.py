"""JSON document persistence for the card collection.

The whole collection is one JSON array. Saves go through a temporary file in
the destination directory followed by ``os.replace`` so readers never see a
half-written document.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Mapping

from . import fsrs
from .errors import LoadFailure, PersistFailure
from .models import Card, CardState, Rating, normalize_datetime

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS: tuple[str, ...] = ("id", "front", "back", "due_date")


def _iso(value: datetime) -> str:
    return normalize_datetime(value).isoformat()


def _parse_datetime(value: Any, field: str) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"{field} must be an ISO 8601 string")
    return normalize_datetime(datetime.fromisoformat(value))


def _optional_datetime(value: Any, field: str) -> datetime | None:
    if value is None:
        return None
    return _parse_datetime(value, field)


def card_to_record(card: Card) -> dict[str, Any]:
    return {
        "id": card.id,
        "front": card.front,
        "back": card.back,
        "tags": sorted(card.tags),
        "notes": card.notes,
        "source_lang": card.source_lang,
        "target_lang": card.target_lang,
        "state": card.state.name,
        "difficulty": card.difficulty,
        "stability": card.stability,
        "due_date": _iso(card.due_date),
        "last_review": _iso(card.last_review) if card.last_review else None,
        "review_count": card.review_count,
        "lapses": card.lapses,
        "last_rating": card.last_rating.name if card.last_rating else None,
        "suspended": card.suspended,
        "created_at": _iso(card.created_at),
    }


def card_from_record(record: Mapping[str, Any]) -> Card:
    """Build a Card from a decoded record, raising ValueError on bad data."""
    missing = [key for key in _REQUIRED_FIELDS if key not in record]
    if missing:
        raise ValueError(f"Missing required card fields: {', '.join(missing)}")

    tags = record.get("tags") or []
    if not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags):
        raise ValueError("tags must be a list of strings")

    try:
        state = CardState[str(record.get("state") or "NEW")]
    except KeyError:
        raise ValueError(f"Unsupported card state: {record.get('state')}") from None

    last_rating_raw = record.get("last_rating")
    last_rating = Rating.parse(last_rating_raw) if last_rating_raw is not None else None

    due_date = _parse_datetime(record["due_date"], "due_date")
    created_raw = record.get("created_at")

    review_count = int(record.get("review_count") or 0)
    lapses = int(record.get("lapses") or 0)
    if review_count < 0 or lapses < 0:
        raise ValueError("review_count and lapses must be non-negative")

    notes = record.get("notes")
    if notes is not None and not isinstance(notes, str):
        raise ValueError("notes must be a string")
    suspended = record.get("suspended", False)
    if not isinstance(suspended, bool):
        raise ValueError("suspended must be a boolean")
    for key in ("source_lang", "target_lang"):
        if record.get(key) is not None and not isinstance(record[key], str):
            raise ValueError(f"{key} must be a string")

    # Never-reviewed cards may carry no difficulty yet.
    difficulty_raw = record.get("difficulty")
    difficulty = fsrs.INITIAL_DIFFICULTY if difficulty_raw is None else float(difficulty_raw)

    return Card(
        id=str(record["id"]),
        front=str(record["front"]),
        back=str(record["back"]),
        due_date=due_date,
        created_at=_parse_datetime(created_raw, "created_at") if created_raw else due_date,
        tags=set(tags),
        notes=notes,
        source_lang=record.get("source_lang"),
        target_lang=record.get("target_lang"),
        state=state,
        difficulty=max(fsrs.DIFFICULTY_MIN, min(fsrs.DIFFICULTY_MAX, difficulty)),
        stability=float(record.get("stability") or 0.0),
        last_review=_optional_datetime(record.get("last_review"), "last_review"),
        review_count=review_count,
        lapses=lapses,
        last_rating=last_rating,
        suspended=suspended,
    )


class JsonCardFile:
    """Reads and writes the card collection as a single JSON document."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def read(self) -> list[Card]:
        """Return the stored cards; an absent or blank document is an empty list.

        Raises LoadFailure when the file cannot be read or does not decode to
        a valid collection.
        """
        if not self.path.exists():
            return []
        try:
            raw = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise LoadFailure(f"Could not read {self.path}: {exc}") from exc
        if not raw.strip():
            return []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise LoadFailure(f"Invalid JSON in {self.path}: {exc}") from exc
        if not isinstance(data, list):
            raise LoadFailure(f"Expected a list of cards in {self.path}")

        cards: list[Card] = []
        seen: set[str] = set()
        for index, record in enumerate(data):
            if not isinstance(record, dict):
                raise LoadFailure(f"Card record {index} in {self.path} is not an object")
            try:
                card = card_from_record(record)
            except (TypeError, ValueError) as exc:
                raise LoadFailure(f"Card record {index} in {self.path}: {exc}") from exc
            if card.id in seen:
                raise LoadFailure(f"Duplicate card id {card.id!r} in {self.path}")
            seen.add(card.id)
            cards.append(card)
        return cards

    def write(self, cards: Iterable[Card]) -> None:
        payload = json.dumps(
            [card_to_record(card) for card in cards],
            ensure_ascii=False,
            indent=2,
        )
        directory = self.path.parent
        tmp_name: str | None = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=directory,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
            logger.error("Failed to write cards to %s: %s", self.path, exc)
            raise PersistFailure(f"Could not write {self.path}: {exc}") from exc


__all__ = ["JsonCardFile", "card_from_record", "card_to_record"]
