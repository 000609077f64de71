"""Tests for export.py: the plain-text export format."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from recall_deck.errors import PersistFailure
from recall_deck.export import export_cards, format_card_line
from recall_deck.models import Card, CardState

NOW = datetime(2024, 3, 5, 9, 30, 15, tzinfo=timezone.utc)


def _card(**overrides) -> Card:
    values = dict(id="c1", front="perro", back="dog", due_date=NOW, created_at=NOW)
    values.update(overrides)
    return Card(**values)


def test_card_line_sorts_tags():
    card = _card(tags={"spanish", "animals"}, state=CardState.REVIEW)
    assert format_card_line(card) == "perro | dog | animals, spanish | REVIEW | 2024-03-05"


def test_card_line_without_tags():
    assert format_card_line(_card()) == "perro | dog |  | NEW | 2024-03-05"


def test_export_writes_header_and_lines(tmp_path):
    target = tmp_path / "nested" / "export.txt"
    cards = [_card(), _card(id="c2", front="gato", back="cat")]

    assert export_cards(cards, target, now=NOW) == 2

    lines = target.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "# Recall Deck Flashcards Export"
    assert lines[1] == "# Generated on 2024-03-05 09:30:15 UTC"
    assert lines[2] == "# Format: Front | Back | Tags | State | Due Date"
    assert lines[3] == ""
    assert lines[4:] == ["perro | dog |  | NEW | 2024-03-05", "gato | cat |  | NEW | 2024-03-05"]


def test_export_empty_collection(tmp_path):
    target = tmp_path / "export.txt"
    assert export_cards([], target, now=NOW) == 0
    assert len(target.read_text(encoding="utf-8").splitlines()) == 4


def test_export_failure_raises_persist_failure(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    with pytest.raises(PersistFailure):
        export_cards([_card()], blocker / "export.txt", now=NOW)
