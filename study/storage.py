"""JSONL-backed study store: decks, cards, deck options and per-user progress."""

import json
import logging
import os
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from study.card_states import CardState
from study.dates import to_utc, utc_now
from study.errors import NotFoundError, StorageError
from study.models import Card, CardProgress, Deck, DeckOptions

logger = logging.getLogger("quickdraw.storage")


class StudyStore:
    """
    JSONL-backed study storage.

    Loads the whole file into memory on init (fine for <10k cards).
    Every mutation rewrites the file atomically (temp file + rename).
    One line per record: {"type": "deck"|"card"|"options"|"progress", "data": {...}}.
    Progress rows are keyed by (user_id, card_id), so there is never more
    than one row per pair.
    """

    def __init__(self, db_path):
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        self._decks: Dict[str, Deck] = {}
        self._cards: Dict[str, Card] = {}
        self._options: Dict[str, DeckOptions] = {}
        self._progress: Dict[Tuple[str, str], CardProgress] = {}
        self._load()

    def _load(self) -> None:
        if not self.db_path.exists():
            return
        try:
            with open(self.db_path, 'r', encoding='utf-8') as f:
                for lineno, line in enumerate(f, 1):
                    line = line.strip()
                    if not line:
                        continue
                    self._load_record(json.loads(line))
        except (OSError, ValueError, TypeError, KeyError) as e:
            raise StorageError(f"Cannot read study store {self.db_path}: {e}") from e

    def _load_record(self, record: Dict) -> None:
        kind = record['type']
        data = record['data']
        if kind == 'deck':
            deck = Deck.from_dict(data)
            self._decks[deck.deck_id] = deck
        elif kind == 'card':
            card = Card.from_dict(data)
            self._cards[card.card_id] = card
        elif kind == 'options':
            self._options[data['deck_id']] = DeckOptions.from_dict(data.get('options'))
        elif kind == 'progress':
            p = CardProgress.from_dict(data)
            self._progress[(p.user_id, p.card_id)] = p
        else:
            logger.warning("Skipping unknown record type %r in %s", kind, self.db_path)

    def _records(self) -> Iterable[Dict]:
        for deck in self._decks.values():
            yield {'type': 'deck', 'data': deck.to_dict()}
        for deck_id, options in self._options.items():
            yield {'type': 'options', 'data': {'deck_id': deck_id, 'options': options.to_dict()}}
        for card in self._cards.values():
            yield {'type': 'card', 'data': card.to_dict()}
        for p in self._progress.values():
            yield {'type': 'progress', 'data': p.to_dict()}

    def _save(self) -> None:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.db_path.parent, prefix=self.db_path.name, suffix='.tmp',
            )
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    for record in self._records():
                        f.write(json.dumps(record, ensure_ascii=False) + '\n')
                os.replace(tmp_name, self.db_path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Cannot write study store {self.db_path}: {e}") from e

    # ----------------------------
    # Decks & cards
    # ----------------------------

    def add_deck(self, deck: Deck) -> Deck:
        with self._lock:
            self._decks[deck.deck_id] = deck
            self._save()
        return deck

    def get_deck(self, deck_id: str) -> Optional[Deck]:
        return self._decks.get(deck_id)

    def list_decks(self, user_id: str) -> List[Deck]:
        """User's decks, most recently updated first."""
        decks = [d for d in self._decks.values() if d.user_id == user_id]
        decks.sort(key=lambda d: d.updated_at, reverse=True)
        return decks

    def add_card(self, card: Card) -> Card:
        with self._lock:
            deck = self._decks.get(card.deck_id)
            if deck is None:
                raise NotFoundError(f"Deck not found: {card.deck_id}")
            self._cards[card.card_id] = card
            deck.updated_at = utc_now()
            self._save()
        return card

    def add_cards(self, cards: List[Card]) -> None:
        """Batch insert -- single save at the end."""
        with self._lock:
            for card in cards:
                if card.deck_id not in self._decks:
                    raise NotFoundError(f"Deck not found: {card.deck_id}")
            for card in cards:
                self._cards[card.card_id] = card
                self._decks[card.deck_id].updated_at = utc_now()
            self._save()

    def get_card(self, card_id: str) -> Optional[Card]:
        return self._cards.get(card_id)

    def list_cards(self, deck_id: str) -> List[Card]:
        return [c for c in self._cards.values() if c.deck_id == deck_id]

    def delete_card(self, card_id: str) -> None:
        """Remove a card and, by cascade, every user's progress on it."""
        with self._lock:
            if self._cards.pop(card_id, None) is None:
                raise NotFoundError(f"Card not found: {card_id}")
            for key in [k for k in self._progress if k[1] == card_id]:
                del self._progress[key]
            self._save()

    # ----------------------------
    # Deck options
    # ----------------------------

    def get_deck_options(self, deck_id: str) -> DeckOptions:
        """Stored options, or all-None options when the deck has none."""
        return self._options.get(deck_id) or DeckOptions()

    def set_deck_options(self, deck_id: str, options: DeckOptions) -> None:
        with self._lock:
            self._options[deck_id] = options
            self._save()

    # ----------------------------
    # Progress
    # ----------------------------

    def get_progress(self, user_id: str, card_id: str) -> Optional[CardProgress]:
        return self._progress.get((user_id, card_id))

    def list_progress(
        self,
        user_id: str,
        card_ids: Iterable[str],
        state: Optional[CardState] = None,
        due_at_lte: Optional[datetime] = None,
        due_at_gt: Optional[datetime] = None,
    ) -> List[CardProgress]:
        """Progress rows for `card_ids`, optionally filtered by state and due range."""
        lte = to_utc(due_at_lte) if due_at_lte is not None else None
        gt = to_utc(due_at_gt) if due_at_gt is not None else None
        rows = []
        for card_id in card_ids:
            p = self._progress.get((user_id, card_id))
            if p is None:
                continue
            if state is not None and p.state != state:
                continue
            if lte is not None and p.due_at > lte:
                continue
            if gt is not None and p.due_at <= gt:
                continue
            rows.append(p)
        return rows

    def insert_progress(self, rows: List[CardProgress]) -> None:
        """Insert new rows; a row that already exists for (user, card) is an error."""
        with self._lock:
            for p in rows:
                if (p.user_id, p.card_id) in self._progress:
                    raise StorageError(
                        f"Progress already exists for user={p.user_id} card={p.card_id}")
            for p in rows:
                self._progress[(p.user_id, p.card_id)] = p
            self._save()

    def upsert_progress(self, progress: CardProgress) -> CardProgress:
        with self._lock:
            self._progress[(progress.user_id, progress.card_id)] = progress
            self._save()
        return progress

    def count(self) -> int:
        return len(self._cards)
