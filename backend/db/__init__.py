"""Database layer: SQLAlchemy models and session."""

from backend.db.models import Base, DeckRow, CardRow, DeckOptionsRow, CardProgressRow
from backend.db.session import get_db, init_db, reset_engine

__all__ = [
    "Base",
    "DeckRow",
    "CardRow",
    "DeckOptionsRow",
    "CardProgressRow",
    "get_db",
    "init_db",
    "reset_engine",
]
