"""
Due-set selection: which of a deck's cards a user should study now.

Every function takes a store (StudyStore or SqlStudyStore) and an explicit
`now`. Store errors propagate unchanged.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from study.card_states import CardState
from study.dates import to_utc
from study.errors import NotFoundError
from study.models import Card, CardProgress, Deck

logger = logging.getLogger("quickdraw.due_queue")

DueItem = Tuple[Card, CardProgress]


def _deck_cards(store, deck_id: str) -> List[Card]:
    if store.get_deck(deck_id) is None:
        raise NotFoundError(f"Deck not found: {deck_id}")
    return store.list_cards(deck_id)


def _pair(cards: List[Card], rows: List[CardProgress]) -> List[DueItem]:
    by_id = {c.card_id: c for c in cards}
    return [(by_id[p.card_id], p) for p in rows if p.card_id in by_id]


def _by_due(items: List[DueItem]) -> List[DueItem]:
    return sorted(items, key=lambda item: item[1].due_at)


def ensure_progress_for_deck(store, user_id: str, deck_id: str, now: datetime) -> List[str]:
    """
    Create the missing progress rows for a deck's cards (state NEW, due now).

    Only rows still missing are inserted, so re-running after a failed
    insert fills exactly the gap.

    Returns:
        The deck's card ids.
    """
    now = to_utc(now)
    cards = _deck_cards(store, deck_id)
    card_ids = [c.card_id for c in cards]
    if not card_ids:
        return []

    existing = {p.card_id for p in store.list_progress(user_id, card_ids)}
    missing = [cid for cid in card_ids if cid not in existing]
    if missing:
        store.insert_progress([CardProgress.new(user_id, cid, now) for cid in missing])
        logger.info("Created %d progress row(s) for user %s deck %s",
                    len(missing), user_id, deck_id)
    return card_ids


def get_due_cards(store, user_id: str, deck_id: str, now: datetime) -> List[DueItem]:
    """
    Cards due at or before `now`: learning cards first, then by due time.

    Returns:
        [(card, progress), ...]
    """
    now = to_utc(now)
    ensure_progress_for_deck(store, user_id, deck_id, now)
    cards = store.list_cards(deck_id)
    rows = store.list_progress(user_id, [c.card_id for c in cards], due_at_lte=now)
    items = _pair(cards, rows)
    items.sort(key=lambda item: (item[1].state != CardState.LEARNING, item[1].due_at))
    return items


def get_all_learning_cards(store, user_id: str, deck_id: str) -> List[DueItem]:
    """Every learning-state card, due or not, soonest first."""
    cards = _deck_cards(store, deck_id)
    rows = store.list_progress(user_id, [c.card_id for c in cards], state=CardState.LEARNING)
    return _by_due(_pair(cards, rows))


def get_sub_day_cards(store, user_id: str, deck_id: str, now: datetime) -> List[DueItem]:
    """Learning-state cards that are not yet due, soonest first."""
    cards = _deck_cards(store, deck_id)
    rows = store.list_progress(
        user_id, [c.card_id for c in cards],
        state=CardState.LEARNING, due_at_gt=to_utc(now),
    )
    return _by_due(_pair(cards, rows))


def get_upcoming_cards(store, user_id: str, deck_id: str, now: datetime,
                       limit: int = 25) -> List[DueItem]:
    """Not-yet-due cards outside the learning phase, soonest first."""
    cards = _deck_cards(store, deck_id)
    rows = store.list_progress(user_id, [c.card_id for c in cards], due_at_gt=to_utc(now))
    rows = [p for p in rows if p.state != CardState.LEARNING]
    return _by_due(_pair(cards, rows))[:max(0, limit)]


def get_due_decks(store, user_id: str, now: datetime) -> List[Tuple[Deck, int]]:
    """
    Decks with at least one due card, most recently updated first.

    Ensures progress for each deck so new cards count as due.

    Returns:
        [(deck, due_count), ...]
    """
    now = to_utc(now)
    due_decks = []
    for deck in store.list_decks(user_id):
        card_ids = ensure_progress_for_deck(store, user_id, deck.deck_id, now)
        if not card_ids:
            continue
        count = len(store.list_progress(user_id, card_ids, due_at_lte=now))
        if count > 0:
            due_decks.append((deck, count))
    return due_decks


def get_next_due_at(store, user_id: str, deck_id: str, now: datetime) -> Optional[datetime]:
    """Earliest due time strictly after `now` in the deck, or None."""
    cards = _deck_cards(store, deck_id)
    rows = store.list_progress(user_id, [c.card_id for c in cards], due_at_gt=to_utc(now))
    if not rows:
        return None
    return min(p.due_at for p in rows)


def build_study_queue(store, user_id: str, deck_id: str, now: datetime) -> List[DueItem]:
    """Queue for a study session: due cards, then not-yet-due learning cards."""
    due = get_due_cards(store, user_id, deck_id, now)
    queued = {card.card_id for card, _ in due}
    sub_day = [item for item in get_sub_day_cards(store, user_id, deck_id, now)
               if item[0].card_id not in queued]
    return due + sub_day
