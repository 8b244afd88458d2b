"""SQL-backed study store with the same interface as study.storage.StudyStore."""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from backend.config import Settings
from backend.db.models import CardProgressRow, CardRow, DeckOptionsRow, DeckRow
from backend.db.session import get_db
from study.card_states import CardState
from study.dates import to_utc, utc_now
from study.errors import NotFoundError, StorageError
from study.models import Card, CardProgress, Deck, DeckOptions

logger = logging.getLogger("quickdraw.db")

_PROGRESS_FIELDS = (
    "state", "ease_factor", "interval_days", "repetitions", "lapses",
    "learning_step_index", "due_at", "last_reviewed_at",
)
_OPTION_FIELDS = tuple(DeckOptions.__dataclass_fields__)


def _deck_from_row(row: DeckRow) -> Deck:
    return Deck(
        deck_id=row.id, user_id=row.user_id, name=row.name, language=row.language,
        created_at=to_utc(row.created_at), updated_at=to_utc(row.updated_at),
    )


def _card_from_row(row: CardRow) -> Card:
    return Card(
        card_id=row.id, deck_id=row.deck_id, front_text=row.front_text,
        back_text=row.back_text, created_at=to_utc(row.created_at),
    )


def _progress_from_row(row: CardProgressRow) -> CardProgress:
    return CardProgress(
        user_id=row.user_id,
        card_id=row.card_id,
        state=CardState(row.state),
        ease_factor=row.ease_factor,
        interval_days=row.interval_days,
        repetitions=row.repetitions,
        lapses=row.lapses,
        learning_step_index=row.learning_step_index,
        due_at=row.due_at,
        last_reviewed_at=row.last_reviewed_at,
    )


def _apply_progress(row: CardProgressRow, progress: CardProgress) -> None:
    for name in _PROGRESS_FIELDS:
        value = getattr(progress, name)
        if name == "state":
            value = value.value
        setattr(row, name, value)


class SqlStudyStore:
    """
    Study store over SQLAlchemy.

    One short transaction per call. Driver errors surface as StorageError;
    the unique (user_id, card_id) constraint keeps one progress row per pair.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    @contextmanager
    def _session(self):
        try:
            with get_db(self.settings) as db:
                yield db
        except SQLAlchemyError as e:
            logger.exception("Database operation failed")
            raise StorageError(f"Database operation failed: {e}") from e

    # ----------------------------
    # Decks & cards
    # ----------------------------

    def add_deck(self, deck: Deck) -> Deck:
        with self._session() as db:
            db.add(DeckRow(
                id=deck.deck_id, user_id=deck.user_id, name=deck.name,
                language=deck.language, created_at=deck.created_at,
                updated_at=deck.updated_at,
            ))
        return deck

    def get_deck(self, deck_id: str) -> Optional[Deck]:
        with self._session() as db:
            row = db.get(DeckRow, deck_id)
            return _deck_from_row(row) if row is not None else None

    def list_decks(self, user_id: str) -> List[Deck]:
        with self._session() as db:
            rows = db.scalars(
                select(DeckRow)
                .where(DeckRow.user_id == user_id)
                .order_by(DeckRow.updated_at.desc())
            ).all()
            return [_deck_from_row(r) for r in rows]

    def add_card(self, card: Card) -> Card:
        self.add_cards([card])
        return card

    def add_cards(self, cards: List[Card]) -> None:
        with self._session() as db:
            for card in cards:
                deck = db.get(DeckRow, card.deck_id)
                if deck is None:
                    raise NotFoundError(f"Deck not found: {card.deck_id}")
                db.add(CardRow(
                    id=card.card_id, deck_id=card.deck_id, front_text=card.front_text,
                    back_text=card.back_text, created_at=card.created_at,
                ))
                deck.updated_at = utc_now()

    def get_card(self, card_id: str) -> Optional[Card]:
        with self._session() as db:
            row = db.get(CardRow, card_id)
            return _card_from_row(row) if row is not None else None

    def list_cards(self, deck_id: str) -> List[Card]:
        with self._session() as db:
            rows = db.scalars(
                select(CardRow).where(CardRow.deck_id == deck_id).order_by(CardRow.created_at)
            ).all()
            return [_card_from_row(r) for r in rows]

    def delete_card(self, card_id: str) -> None:
        """Remove a card; progress rows go with it via ON DELETE CASCADE."""
        with self._session() as db:
            row = db.get(CardRow, card_id)
            if row is None:
                raise NotFoundError(f"Card not found: {card_id}")
            db.delete(row)

    # ----------------------------
    # Deck options
    # ----------------------------

    def get_deck_options(self, deck_id: str) -> DeckOptions:
        with self._session() as db:
            row = db.get(DeckOptionsRow, deck_id)
            if row is None:
                return DeckOptions()
            return DeckOptions(**{name: getattr(row, name) for name in _OPTION_FIELDS})

    def set_deck_options(self, deck_id: str, options: DeckOptions) -> None:
        with self._session() as db:
            row = db.get(DeckOptionsRow, deck_id)
            if row is None:
                row = DeckOptionsRow(deck_id=deck_id)
                db.add(row)
            for name in _OPTION_FIELDS:
                setattr(row, name, getattr(options, name))

    # ----------------------------
    # Progress
    # ----------------------------

    def get_progress(self, user_id: str, card_id: str) -> Optional[CardProgress]:
        with self._session() as db:
            row = db.scalars(
                select(CardProgressRow).where(
                    CardProgressRow.user_id == user_id,
                    CardProgressRow.card_id == card_id,
                )
            ).first()
            return _progress_from_row(row) if row is not None else None

    def list_progress(
        self,
        user_id: str,
        card_ids: Iterable[str],
        state: Optional[CardState] = None,
        due_at_lte: Optional[datetime] = None,
        due_at_gt: Optional[datetime] = None,
    ) -> List[CardProgress]:
        card_ids = list(card_ids)
        if not card_ids:
            return []
        stmt = select(CardProgressRow).where(
            CardProgressRow.user_id == user_id,
            CardProgressRow.card_id.in_(card_ids),
        )
        if state is not None:
            stmt = stmt.where(CardProgressRow.state == CardState(state).value)
        if due_at_lte is not None:
            stmt = stmt.where(CardProgressRow.due_at <= to_utc(due_at_lte))
        if due_at_gt is not None:
            stmt = stmt.where(CardProgressRow.due_at > to_utc(due_at_gt))
        with self._session() as db:
            rows = db.scalars(stmt.order_by(CardProgressRow.due_at, CardProgressRow.id)).all()
            return [_progress_from_row(r) for r in rows]

    def insert_progress(self, rows: List[CardProgress]) -> None:
        with self._session() as db:
            for progress in rows:
                row = CardProgressRow(user_id=progress.user_id, card_id=progress.card_id)
                _apply_progress(row, progress)
                db.add(row)

    def upsert_progress(self, progress: CardProgress) -> CardProgress:
        with self._session() as db:
            row = db.scalars(
                select(CardProgressRow).where(
                    CardProgressRow.user_id == progress.user_id,
                    CardProgressRow.card_id == progress.card_id,
                )
            ).first()
            if row is None:
                row = CardProgressRow(user_id=progress.user_id, card_id=progress.card_id)
                db.add(row)
            _apply_progress(row, progress)
        return progress
