from __future__ import annotations

import argparse
import logging
from typing import Sequence

from .config import load_settings
from .deck import Deck
from .errors import PersistFailure
from .models import Rating
from .session import ReviewSession

_QUIT = {"q", "quit", "exit"}


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _read_rating() -> Rating | None:
    while True:
        answer = input("Rating [1=again 2=hard 3=good 4=easy, q=quit]: ").strip().lower()
        if answer in _QUIT:
            return None
        if answer.isdigit() and 1 <= int(answer) <= 4:
            return Rating(int(answer))
        try:
            return Rating.parse(answer)
        except ValueError:
            print(f"Unknown rating: {answer!r}")


def _review(deck: Deck, limit: int | None) -> None:
    queue = deck.due_cards()
    if limit is not None:
        queue = queue[:limit]
    if not queue:
        print("No flashcards due for review")
        return

    session = ReviewSession.start(queue)
    for position, card in enumerate(queue, start=1):
        print(f"\n[{position}/{len(queue)}] {card.front}")
        input("(press Enter to show the answer)")
        print(f"  {card.back}")
        if card.notes:
            print(f"  Notes: {card.notes}")
        rating = _read_rating()
        if rating is None:
            break
        result = deck.update_card(card.id, rating)
        session.record(rating)
        print(f"  Next review in {result.interval_days} days ({result.next_due_date})")

    summary = session.summary()
    print(
        f"\nReviewed {summary['reviewed']} of {summary['total']}: "
        f"again {summary['again']}, hard {summary['hard']}, "
        f"good {summary['good']}, easy {summary['easy']}"
    )


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="recall-deck", description="Spaced-repetition flashcard scheduler")
    parser.add_argument("--config", help="Path to a YAML settings file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug messages")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("stats", help="Show retention statistics")
    commands.add_parser("due", help="List cards due for review")

    review = commands.add_parser("review", help="Review due cards interactively")
    review.add_argument("--limit", type=int, help="Stop after this many cards")

    export = commands.add_parser("export", help="Export all cards to a text file")
    export.add_argument("--path", help="Destination file (defaults to the configured export path)")

    history = commands.add_parser("convert-history", help="Turn translation history into cards")
    history.add_argument("--path", help="History JSON file (defaults to the configured history path)")

    reset = commands.add_parser("reset", help="Reset every card to NEW")
    reset.add_argument("--yes", action="store_true", help="Confirm the reset")

    serve = commands.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    settings = load_settings(args.config)

    if args.command == "serve":
        import uvicorn

        from .app import create_app

        uvicorn.run(create_app(Deck.open(settings)), host=args.host, port=args.port)
        return 0

    deck = Deck.open(settings)
    if deck.load_error is not None:
        print(f"Warning: {deck.load_error}")

    try:
        if args.command == "stats":
            stats = deck.retention_stats()
            print(f"Cards: {stats.card_count}")
            print(f"Reviews: {stats.total_reviews} ({stats.successful_reviews} successful)")
            print(f"Retention: {stats.retention_ratio:.0%} (target {stats.target_retention:.0%})")
        elif args.command == "due":
            due = deck.due_cards()
            if not due:
                print("No flashcards due for review")
            for card in due:
                print(f"{card.due_date:%Y-%m-%d}  {card.state.name:<10}  {card.front}")
        elif args.command == "review":
            _review(deck, args.limit)
        elif args.command == "export":
            path = args.path or settings.export_path
            count = deck.export(path)
            print(f"Exported {count} flashcards to {path}")
        elif args.command == "convert-history":
            added = deck.import_history(args.path)
            print(f"Converted {added} history entries to flashcards")
        elif args.command == "reset":
            if not args.yes:
                print("Refusing to reset without --yes")
                return 2
            print(f"Reset {deck.reset_all_cards()} flashcards to NEW")
    except PersistFailure as exc:
        print(f"Error: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
