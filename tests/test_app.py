"""HTTP tests for app.py against a deck in a temporary directory."""

from __future__ import annotations

import json
import time
from concurrent.futures import ThreadPoolExecutor
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from recall_deck.app import create_app, get_deck
from recall_deck.config import Settings
from recall_deck.deck import Deck


def _settings(tmp_path, **overrides) -> Settings:
    values = dict(
        cards_path=tmp_path / "flashcards.json",
        history_path=tmp_path / "history.json",
        export_path=tmp_path / "export.txt",
        fuzzy_intervals=False,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture()
def deck(tmp_path):
    return Deck.open(_settings(tmp_path))


@pytest.fixture()
def client(deck):
    return TestClient(create_app(deck))


def _add(client, front="perro", back="dog", **extra) -> dict:
    response = client.post("/cards", json={"front": front, "back": back, **extra})
    assert response.status_code == 201
    return response.json()


class TestCards:
    def test_add_card(self, client):
        card = _add(client, tags=["animals"], notes="masculine")
        assert card["state"] == "NEW"
        assert card["tags"] == ["animals"]
        assert card["notes"] == "masculine"
        assert card["review_count"] == 0

    def test_blank_front_is_400(self, client):
        response = client.post("/cards", json={"front": "  ", "back": "dog"})
        assert response.status_code == 400
        assert response.json()["field"] == "front"

    def test_get_card(self, client):
        card = _add(client)
        assert client.get(f"/cards/{card['id']}").json()["front"] == "perro"
        assert client.get("/cards/missing").status_code == 404

    def test_list_cards_in_both_orders(self, client):
        first = _add(client, "perro", "dog")
        second = _add(client, "gato", "cat")
        ids = [card["id"] for card in client.get("/cards").json()]
        assert ids == [first["id"], second["id"]]
        assert len(client.get("/cards", params={"order": "due"}).json()) == 2

    def test_edit_card(self, client):
        card = _add(client)
        response = client.patch(f"/cards/{card['id']}", json={"back": "hound", "tags": ["a1"]})
        assert response.json() == {"updated": True}

        edited = client.get(f"/cards/{card['id']}").json()
        assert edited["back"] == "hound"
        assert edited["tags"] == ["a1"]

    def test_edit_rejects_unknown_fields(self, client):
        card = _add(client)
        response = client.patch(f"/cards/{card['id']}", json={"state": "REVIEW"})
        assert response.status_code == 422

    def test_edit_unknown_card_is_404(self, client):
        assert client.patch("/cards/missing", json={"front": "x"}).status_code == 404

    def test_delete_card(self, client):
        card = _add(client)
        assert client.delete(f"/cards/{card['id']}").status_code == 204
        assert client.delete(f"/cards/{card['id']}").status_code == 404
        assert client.get("/cards").json() == []


class TestReview:
    def test_due_then_review_good(self, client):
        card = _add(client)
        due = client.get("/cards/due").json()
        assert [item["id"] for item in due] == [card["id"]]

        response = client.post(f"/cards/{card['id']}/review/good")

        assert response.status_code == 200
        body = response.json()
        assert body["interval_days"] == 6
        assert body["card"]["state"] == "REVIEW"
        assert body["card"]["last_rating"] == "GOOD"
        assert client.get("/cards/due").json() == []

    def test_review_unknown_card_is_404(self, client):
        assert client.post("/cards/missing/review/good").status_code == 404

    def test_review_bad_rating_is_422(self, client):
        card = _add(client)
        assert client.post(f"/cards/{card['id']}/review/perfect").status_code == 422

    def test_suspended_card_leaves_due_queue(self, client):
        card = _add(client)
        client.patch(f"/cards/{card['id']}", json={"suspended": True})
        assert client.get("/cards/due").json() == []
        assert len(client.get("/cards").json()) == 1

    def test_negative_learn_ahead_rejected(self, client):
        assert client.get("/cards/due", params={"learn_ahead_days": -1}).status_code == 422

    def test_persist_failure_is_503(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        deck = Deck.open(_settings(tmp_path, cards_path=blocker / "flashcards.json", auto_save=False))
        card = deck.add_card("perro", "dog")
        deck.settings = _settings(tmp_path, cards_path=blocker / "flashcards.json", auto_save=True)
        client = TestClient(create_app(deck))

        response = client.post(f"/cards/{card.id}/review/good")

        assert response.status_code == 503
        assert deck.get_card(card.id).review_count == 1


class TestCollection:
    def test_stats(self, client):
        card = _add(client)
        client.post(f"/cards/{card['id']}/review/easy")

        stats = client.get("/stats").json()

        assert stats["card_count"] == 1
        assert stats["total_reviews"] == 1
        assert stats["successful_reviews"] == 1
        assert stats["retention_ratio"] == 1.0
        assert stats["target_retention"] == 0.9

    def test_export(self, client, deck):
        _add(client)
        body = client.post("/export").json()
        assert body == {"exported": 1, "path": str(deck.settings.export_path)}
        assert deck.settings.export_path.exists()

    def test_history_convert(self, client, deck):
        deck.settings.history_path.write_text(
            json.dumps([{"type": "translation", "text": "hola", "result": "hello"}]),
            encoding="utf-8",
        )
        assert client.post("/history/convert").json() == {"added": 1}
        assert client.post("/history/convert").json() == {"added": 0}

    def test_reset(self, client):
        card = _add(client)
        client.post(f"/cards/{card['id']}/review/good")

        assert client.post("/reset").json() == {"reset": 1}
        assert client.get(f"/cards/{card['id']}").json()["state"] == "NEW"


def test_lazy_open_builds_a_single_deck(tmp_path, monkeypatch):
    real_open = Deck.open
    opened = []

    def slow_open(settings=None, rng=None):
        time.sleep(0.05)
        deck = real_open(_settings(tmp_path))
        opened.append(deck)
        return deck

    monkeypatch.setattr(Deck, "open", slow_open)
    request = SimpleNamespace(app=create_app())

    with ThreadPoolExecutor(max_workers=8) as pool:
        decks = list(pool.map(lambda _: get_deck(request), range(8)))

    assert len(opened) == 1
    assert all(deck is opened[0] for deck in decks)
