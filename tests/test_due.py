"""Tests for due.py: due-queue filtering and ordering."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from recall_deck.due import get_all_cards, get_due_cards, sort_for_browse
from recall_deck.models import Card

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def day(n: float) -> datetime:
    return BASE + timedelta(days=n)


def _card(card_id: str, due: datetime, suspended: bool = False) -> Card:
    return Card(id=card_id, front=card_id, back=card_id, due_date=due, created_at=BASE, suspended=suspended)


def test_orders_oldest_due_first():
    cards = [_card("five", day(5)), _card("one", day(1)), _card("three", day(3))]

    due = get_due_cards(cards, now=day(10), learn_ahead_days=0)

    assert [card.id for card in due] == ["one", "three", "five"]


def test_excludes_future_cards():
    cards = [_card("past", day(1)), _card("future", day(12))]
    assert [card.id for card in get_due_cards(cards, now=day(10))] == ["past"]


def test_due_exactly_now_is_included():
    assert [card.id for card in get_due_cards([_card("now", day(10))], now=day(10))] == ["now"]


def test_learn_ahead_window_includes_upcoming_cards():
    cards = [_card("soon", day(11)), _card("later", day(14))]

    assert [card.id for card in get_due_cards(cards, now=day(10), learn_ahead_days=2)] == ["soon"]
    assert [card.id for card in get_due_cards(cards, now=day(10), learn_ahead_days=0.5)] == []


def test_suspended_cards_excluded_but_browsable():
    cards = [_card("held", day(1), suspended=True), _card("open", day(2))]

    assert [card.id for card in get_due_cards(cards, now=day(10))] == ["open"]
    assert [card.id for card in get_all_cards(cards)] == ["held", "open"]


def test_ties_keep_insertion_order():
    cards = [_card("b", day(2)), _card("a", day(2)), _card("c", day(1)), _card("d", day(2))]
    assert [card.id for card in get_due_cards(cards, now=day(3))] == ["c", "b", "a", "d"]


def test_returns_new_list():
    cards = [_card("one", day(1))]
    due = get_due_cards(cards, now=day(2))
    cards.append(_card("two", day(1)))
    assert [card.id for card in due] == ["one"]


def test_empty_store_gives_empty_queue():
    assert get_due_cards([], now=day(0)) == []


def test_browse_order_is_by_due_date():
    cards = [_card("late", day(9), suspended=True), _card("early", day(1))]
    assert [card.id for card in sort_for_browse(cards)] == ["early", "late"]
