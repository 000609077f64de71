"""Error taxonomy for the card store and review flow."""

from __future__ import annotations


class RecallDeckError(Exception):
    """Base class for every error raised by recall_deck."""


class LoadFailure(RecallDeckError):
    """The persisted card document is unreadable or corrupt."""


class PersistFailure(RecallDeckError):
    """Writing the card document (or an export) failed."""


class MissingField(RecallDeckError, ValueError):
    def __init__(self, field: str) -> None:
        super().__init__(f"{field} must not be empty")
        self.field = field


class NotFound(RecallDeckError, LookupError):
    def __init__(self, card_id: str) -> None:
        super().__init__(f"Card not found: {card_id}")
        self.card_id = card_id


__all__ = [
    "LoadFailure",
    "MissingField",
    "NotFound",
    "PersistFailure",
    "RecallDeckError",
]
