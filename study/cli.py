"""
Quick Draw study CLI.

Usage:
    python -m study.cli [--db PATH | --database-url URL] [--user ID] <command> ...

    add-deck "Spanish" [--language es]
    import <deck_id> cards.csv
    decks
    due <deck_id>
    learning <deck_id> [--upcoming]
    next <deck_id>
    review <deck_id>
    grade <card_id> <rating>
    preview <card_id>
    options <deck_id> [--easy-bonus X] [--hard-interval-factor X] ...
    stats <deck_id>
    steps "10m,1h,1d"
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from uuid import uuid4

from backend.config import Settings
from study.analytics import compute_deck_stats
from study.card_import import import_cards_csv
from study.dates import utc_now
from study.due_queue import (
    get_all_learning_cards,
    get_due_cards,
    get_due_decks,
    get_next_due_at,
    get_sub_day_cards,
    get_upcoming_cards,
)
from study.errors import NotFoundError, StudyError
from study.grader import grade_card
from study.learning_steps import parse_learning_steps
from study.models import Deck, DeckOptions
from study.scheduler import format_interval, preview_next_intervals
from study.session import run_review_session
from study.storage import StudyStore

logger = logging.getLogger("quickdraw.cli")


def _open_store(args, settings: Settings):
    if args.database_url:
        from backend.db.session import init_db
        from backend.repository import SqlStudyStore
        settings.database_url = args.database_url
        init_db(settings)
        return SqlStudyStore(settings)
    return StudyStore(args.db or settings.study_db_path)


def _print_items(items):
    for i, (card, p) in enumerate(items, 1):
        print(f"  {i}. {card.front_text[:70]}")
        print(f"     id={card.card_id}  state={p.state.value}  due={p.due_at.isoformat()}  "
              f"interval={p.interval_days}d  ease={p.ease_factor:.2f}  lapses={p.lapses}")


def cmd_add_deck(args, store, settings):
    """Create a deck."""
    deck = store.add_deck(Deck(deck_id=str(uuid4()), user_id=args.user,
                               name=args.name, language=args.language))
    print(f"Created deck {deck.name!r}: {deck.deck_id}")


def cmd_import(args, store, settings):
    """Import cards from CSV."""
    if store.get_deck(args.deck_id) is None:
        raise NotFoundError(f"Deck not found: {args.deck_id}")
    count = import_cards_csv(store, args.deck_id, Path(args.csv))
    print(f"Imported {count} card(s) into {args.deck_id}")


def cmd_decks(args, store, settings):
    """Show decks with cards due now."""
    due = get_due_decks(store, args.user, utc_now())
    if not due:
        print("No decks have cards due. Come back later!")
        return
    print(f"\n{len(due)} deck(s) with due cards:\n")
    for deck, count in due:
        print(f"  {deck.name} ({deck.deck_id}): {count} due")


def cmd_due(args, store, settings):
    """Show due cards for a deck."""
    now = utc_now()
    due = get_due_cards(store, args.user, args.deck_id, now)
    if not due:
        print("No cards due now.")
        next_due = get_next_due_at(store, args.user, args.deck_id, now)
        if next_due is not None:
            print(f"Next card due at {next_due.isoformat()}")
        return
    print(f"\n{len(due)} card(s) due for review:\n")
    _print_items(due)


def cmd_learning(args, store, settings):
    """Show learning cards (or upcoming review cards)."""
    now = utc_now()
    if args.upcoming:
        items = get_upcoming_cards(store, args.user, args.deck_id, now, limit=args.limit)
        title = "upcoming review card(s)"
    elif args.pending:
        items = get_sub_day_cards(store, args.user, args.deck_id, now)
        title = "learning card(s) due later"
    else:
        items = get_all_learning_cards(store, args.user, args.deck_id)
        title = "learning card(s)"
    print(f"\n{len(items)} {title}:\n")
    _print_items(items)


def cmd_next(args, store, settings):
    """Show when the next card in a deck becomes due."""
    next_due = get_next_due_at(store, args.user, args.deck_id, utc_now())
    if next_due is None:
        print("Nothing scheduled after now.")
    else:
        print(next_due.isoformat())


def cmd_review(args, store, settings):
    """Run an interactive review session."""
    run_review_session(
        store, args.user, args.deck_id,
        log_path=settings.session_log_path,
        tz=settings.tz,
        disable_fuzz=settings.disable_fuzz,
    )


def cmd_grade(args, store, settings):
    """Grade one card non-interactively."""
    progress = grade_card(
        store, args.user, args.card_id, args.rating, utc_now(),
        tz=settings.tz, disable_fuzz=settings.disable_fuzz,
    )
    print(f"{args.card_id}: {progress.state.value}, interval {progress.interval_days}d, "
          f"ease {progress.ease_factor:.2f}, due {progress.due_at.isoformat()}")


def cmd_preview(args, store, settings):
    """Show the interval each rating would give."""
    card = store.get_card(args.card_id)
    if card is None:
        raise NotFoundError(f"Card not found: {args.card_id}")
    progress = store.get_progress(args.user, args.card_id)
    if progress is None:
        raise NotFoundError(f"No progress for card {args.card_id}; run 'due' first")
    intervals = preview_next_intervals(progress, store.get_deck_options(card.deck_id))
    for name, minutes in intervals.items():
        print(f"  {name:<6} {format_interval(minutes)}")


_OPTION_ARGS = {
    'easy_bonus': float,
    'hard_interval_factor': float,
    'lapse_interval_percent': int,
    'interval_modifier': float,
    'max_interval_days': int,
    'learning_steps': str,
}


def cmd_options(args, store, settings):
    """Show or update deck options."""
    if store.get_deck(args.deck_id) is None:
        raise NotFoundError(f"Deck not found: {args.deck_id}")
    options = store.get_deck_options(args.deck_id)
    changes = {k: getattr(args, k) for k in _OPTION_ARGS if getattr(args, k) is not None}
    if changes:
        options = DeckOptions(**{**options.to_dict(), **changes})
        store.set_deck_options(args.deck_id, options)
    resolved = options.resolve()
    print(f"\nOptions for {args.deck_id}:")
    for name in _OPTION_ARGS:
        stored = getattr(options, name)
        suffix = '' if stored is not None else '  (default)'
        print(f"  {name:<24} {getattr(resolved, name)}{suffix}")


def cmd_stats(args, store, settings):
    """Show deck statistics."""
    if store.get_deck(args.deck_id) is None:
        raise NotFoundError(f"Deck not found: {args.deck_id}")
    now = utc_now()
    card_ids = [c.card_id for c in store.list_cards(args.deck_id)]
    stats = compute_deck_stats(store.list_progress(args.user, card_ids), now)

    print(f"\nDeck: {args.deck_id}")
    print(f"  Cards:     {len(card_ids)} ({stats['total']} started tracking)")
    print(f"  New:       {stats['new']}")
    print(f"  Learning:  {stats['learning']}")
    print(f"  Review:    {stats['review']} (mature {stats['mature']}, young {stats['young']})")
    print(f"  Due now:   {stats['due_now']}")
    print(f"  Avg ease:  {stats['avg_ease']:.2f}")
    print(f"  Lapses:    {stats['total_lapses']}")
    print(f"  Retention: {stats['retention'] * 100:.1f}%")
    print(f"  Mastery:   {stats['mastery'] * 100:.1f}%")


def cmd_steps(args, store, settings):
    """Show how a learning-step string parses."""
    steps = parse_learning_steps(args.steps)
    print(', '.join(format_interval(m) for m in steps))


COMMANDS = {
    'add-deck': cmd_add_deck,
    'import': cmd_import,
    'decks': cmd_decks,
    'due': cmd_due,
    'learning': cmd_learning,
    'next': cmd_next,
    'review': cmd_review,
    'grade': cmd_grade,
    'preview': cmd_preview,
    'options': cmd_options,
    'stats': cmd_stats,
    'steps': cmd_steps,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Quick Draw -- spaced repetition flashcards",
        prog="python -m study.cli",
    )
    parser.add_argument(
        '--db', default=None,
        help="Path to the JSONL study store (default: $STUDY_DB_PATH or study_store.jsonl)",
    )
    parser.add_argument(
        '--database-url', default=None,
        help="Use a SQL database instead of the JSONL store, e.g. sqlite:///quickdraw.db",
    )
    parser.add_argument(
        '--user', default=os.environ.get('QUICKDRAW_USER', 'local'),
        help="User id whose progress to use (default: $QUICKDRAW_USER or 'local')",
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    p = subparsers.add_parser('add-deck', help='Create a deck')
    p.add_argument('name')
    p.add_argument('--language', default=None)

    p = subparsers.add_parser('import', help='Import cards from a front,back CSV')
    p.add_argument('deck_id')
    p.add_argument('csv')

    subparsers.add_parser('decks', help='Show decks with due cards')

    p = subparsers.add_parser('due', help='Show cards due for review')
    p.add_argument('deck_id')

    p = subparsers.add_parser('learning', help='Show learning-phase cards')
    p.add_argument('deck_id')
    p.add_argument('--pending', action='store_true',
                   help='Only learning cards not yet due')
    p.add_argument('--upcoming', action='store_true',
                   help='Show upcoming review cards instead')
    p.add_argument('--limit', type=int, default=25)

    p = subparsers.add_parser('next', help='Show when the next card becomes due')
    p.add_argument('deck_id')

    p = subparsers.add_parser('review', help='Run interactive review session')
    p.add_argument('deck_id')

    p = subparsers.add_parser('grade', help='Grade one card')
    p.add_argument('card_id')
    p.add_argument('rating', help='1-4 or again/hard/good/easy')

    p = subparsers.add_parser('preview', help='Preview intervals for each rating')
    p.add_argument('card_id')

    p = subparsers.add_parser('options', help='Show or set deck options')
    p.add_argument('deck_id')
    for name, kind in _OPTION_ARGS.items():
        p.add_argument('--' + name.replace('_', '-'), dest=name, type=kind, default=None)

    p = subparsers.add_parser('stats', help='Show deck statistics')
    p.add_argument('deck_id')

    p = subparsers.add_parser('steps', help='Parse a learning-step string')
    p.add_argument('steps')

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = Settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 0

    try:
        store = _open_store(args, settings)
        handler(args, store, settings)
    except StudyError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
