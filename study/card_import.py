"""Import front/back card pairs from CSV into a deck."""

import csv
from pathlib import Path
from typing import List
from uuid import uuid4

from study.errors import InputValidationError
from study.models import Card


def read_cards_csv(path: Path, deck_id: str) -> List[Card]:
    """
    Read cards from a two-column CSV (front, back).

    A header row of exactly "front,back" is skipped. Blank rows and rows
    with an empty front are ignored; extra columns are ignored.

    Raises:
        InputValidationError if the file is missing, unreadable or not UTF-8.
    """
    cards = []
    try:
        with open(path, 'r', encoding='utf-8', newline='') as f:
            for i, row in enumerate(csv.reader(f)):
                if not row or not row[0].strip():
                    continue
                if i == 0 and [c.strip().lower() for c in row[:2]] == ['front', 'back']:
                    continue
                back = row[1].strip() if len(row) > 1 else ''
                cards.append(Card(
                    card_id=str(uuid4()),
                    deck_id=deck_id,
                    front_text=row[0].strip(),
                    back_text=back,
                ))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise InputValidationError(f"Cannot read cards from {path}: {e}") from e
    return cards


def import_cards_csv(store, deck_id: str, path: Path) -> int:
    """Add every card in the CSV to the deck. Returns the number added."""
    cards = read_cards_csv(Path(path), deck_id)
    if cards:
        store.add_cards(cards)
    return len(cards)
