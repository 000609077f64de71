from __future__ import annotations

import logging
import threading
from contextlib import asynccontextmanager
from typing import Any, Literal

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from starlette.responses import Response

from .deck import Deck
from .errors import MissingField, NotFound, PersistFailure
from .models import Card
from .persistence import card_to_record

logger = logging.getLogger(__name__)

RatingName = Literal["again", "hard", "good", "easy"]


class CardCreate(BaseModel):
    front: str
    back: str
    tags: list[str] | None = None
    notes: str | None = None


class CardPatch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    front: str | None = None
    back: str | None = None
    tags: list[str] | None = None
    notes: str | None = None
    suspended: bool | None = None


def _card_json(card: Card) -> dict[str, Any]:
    return card_to_record(card)


_open_lock = threading.Lock()


def get_deck(request: Request) -> Deck:
    # Lifespan hooks do not run for a bare TestClient, so open on first use too.
    deck: Deck | None = getattr(request.app.state, "deck", None)
    if deck is not None:
        return deck
    with _open_lock:
        deck = getattr(request.app.state, "deck", None)
        if deck is None:
            deck = Deck.open()
            request.app.state.deck = deck
    return deck


def create_app(deck: Deck | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        with _open_lock:
            if getattr(app.state, "deck", None) is None:
                app.state.deck = Deck.open()
        loaded = app.state.deck
        if loaded.load_error is not None:
            logger.warning("Card file could not be loaded: %s", loaded.load_error)
        yield

    app = FastAPI(title="Recall Deck", lifespan=lifespan)
    app.state.deck = deck

    @app.exception_handler(MissingField)
    async def _missing_field(_: Request, exc: MissingField) -> JSONResponse:
        return JSONResponse({"detail": str(exc), "field": exc.field}, status_code=status.HTTP_400_BAD_REQUEST)

    @app.exception_handler(NotFound)
    async def _not_found(_: Request, exc: NotFound) -> JSONResponse:
        return JSONResponse({"detail": str(exc)}, status_code=status.HTTP_404_NOT_FOUND)

    @app.exception_handler(PersistFailure)
    async def _persist_failure(_: Request, exc: PersistFailure) -> JSONResponse:
        return JSONResponse({"detail": str(exc)}, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)

    @app.get("/cards/due")
    def due_cards(
        learn_ahead_days: float | None = Query(None, ge=0),
        deck: Deck = Depends(get_deck),
    ) -> list[dict[str, Any]]:
        return [_card_json(card) for card in deck.due_cards(learn_ahead_days=learn_ahead_days)]

    @app.get("/cards")
    def all_cards(
        order: Literal["store", "due"] = "store",
        deck: Deck = Depends(get_deck),
    ) -> list[dict[str, Any]]:
        cards = deck.browse_cards() if order == "due" else deck.all_cards()
        return [_card_json(card) for card in cards]

    @app.get("/cards/{card_id}")
    def get_card(card_id: str, deck: Deck = Depends(get_deck)) -> dict[str, Any]:
        card = deck.get_card(card_id)
        if card is None:
            raise NotFound(card_id)
        return _card_json(card)

    @app.post("/cards", status_code=status.HTTP_201_CREATED)
    def add_card(payload: CardCreate, deck: Deck = Depends(get_deck)) -> dict[str, Any]:
        card = deck.add_card(payload.front, payload.back, tags=payload.tags, notes=payload.notes)
        return _card_json(card)

    @app.patch("/cards/{card_id}")
    def edit_card(card_id: str, payload: CardPatch, deck: Deck = Depends(get_deck)) -> dict[str, bool]:
        partial = payload.model_dump(exclude_unset=True)
        if not deck.edit_card(card_id, partial):
            raise NotFound(card_id)
        return {"updated": True}

    @app.delete("/cards/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_card(card_id: str, deck: Deck = Depends(get_deck)) -> Response:
        if not deck.delete_card(card_id):
            raise NotFound(card_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post("/cards/{card_id}/review/{rating}")
    def review_card(card_id: str, rating: RatingName, deck: Deck = Depends(get_deck)) -> dict[str, Any]:
        result = deck.update_card(card_id, rating)
        return {
            "card": _card_json(result.card),
            "interval_days": result.interval_days,
            "next_due_date": result.next_due_date,
        }

    @app.get("/stats")
    def retention_stats(deck: Deck = Depends(get_deck)) -> dict[str, Any]:
        stats = deck.retention_stats()
        return {
            "card_count": stats.card_count,
            "total_reviews": stats.total_reviews,
            "successful_reviews": stats.successful_reviews,
            "retention_ratio": stats.retention_ratio,
            "target_retention": stats.target_retention,
        }

    @app.post("/export")
    def export(deck: Deck = Depends(get_deck)) -> dict[str, Any]:
        path = deck.settings.export_path
        return {"exported": deck.export(path), "path": str(path)}

    @app.post("/history/convert")
    def convert_history(deck: Deck = Depends(get_deck)) -> dict[str, int]:
        return {"added": deck.import_history()}

    @app.post("/reset")
    def reset(deck: Deck = Depends(get_deck)) -> dict[str, int]:
        return {"reset": deck.reset_all_cards()}

    return app


app = create_app()


def main() -> None:
    import uvicorn

    uvicorn.run("recall_deck.app:app", host="127.0.0.1", port=8000, reload=True)


if __name__ == "__main__":
    main()
