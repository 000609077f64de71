"""Plain-text export of the collection, one ``front | back | tags | state | due`` line per card."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Iterable

from .errors import PersistFailure
from .models import Card, normalize_datetime, utc_now

logger = logging.getLogger(__name__)

EXPORT_TITLE = "# Recall Deck Flashcards Export"
EXPORT_FORMAT = "# Format: Front | Back | Tags | State | Due Date"


def format_card_line(card: Card) -> str:
    tags = ", ".join(sorted(card.tags))
    due = card.due_date.strftime("%Y-%m-%d")
    return f"{card.front} | {card.back} | {tags} | {card.state.name} | {due}"


def export_cards(
    cards: Iterable[Card],
    path: str | os.PathLike[str],
    now: datetime | None = None,
) -> int:
    """Write ``cards`` to ``path`` and return how many were exported."""
    generated = normalize_datetime(now or utc_now()).strftime("%Y-%m-%d %H:%M:%S")
    lines = [EXPORT_TITLE, f"# Generated on {generated} UTC", EXPORT_FORMAT, ""]
    lines.extend(format_card_line(card) for card in cards)
    count = len(lines) - 4

    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text("\n".join(lines) + "\n", encoding="utf-8")
    except OSError as exc:
        raise PersistFailure(f"Could not write export to {target}: {exc}") from exc

    logger.info("Exported %d flashcards to %s", count, target)
    return count


__all__ = ["export_cards", "format_card_line"]
