"""Session logging -- writes a JSONL line after each review session."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from study.card_states import Rating


def log_session(
    log_path: Path,
    summary: Dict,
    cards_reviewed: List[Dict],
    user_id: Optional[str] = None,
    deck_id: Optional[str] = None,
) -> Dict:
    """
    Append a session record to the JSONL log file.

    Args:
        log_path:       Path to the session log file
        summary:        Summary dict from run_review_session
        cards_reviewed: Per-card dicts with card_id, rating, state_before,
                        state_after, interval_days
        user_id:        Reviewing user, if known
        deck_id:        Studied deck, if known

    Returns:
        The session record dict that was written.
    """
    histogram = {r.name.lower(): 0 for r in Rating}
    transitions: Dict[str, int] = {}

    for cr in cards_reviewed:
        try:
            histogram[Rating(cr.get('rating')).name.lower()] += 1
        except ValueError:
            pass
        before = cr.get('state_before')
        after = cr.get('state_after')
        if before and after:
            key = f"{before}->{after}"
            transitions[key] = transitions.get(key, 0) + 1

    avg_rating = 0.0
    if cards_reviewed:
        total = sum(cr.get('rating', 0) for cr in cards_reviewed)
        avg_rating = round(total / len(cards_reviewed), 2)

    record = {
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'user_id': user_id,
        'deck_id': deck_id,
        'cards_reviewed': summary.get('reviewed', 0),
        'skipped': summary.get('skipped', 0),
        'lapses': summary.get('lapses', 0),
        'graduated': summary.get('graduated', 0),
        'avg_rating': avg_rating,
        'rating_histogram': histogram,
        'transitions': transitions,
        'card_details': cards_reviewed,
    }

    log_path = Path(log_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with open(log_path, 'a', encoding='utf-8') as f:
        f.write(json.dumps(record, ensure_ascii=False) + '\n')

    return record


def read_session_log(log_path: Path) -> List[Dict]:
    """Read all session records from the log file."""
    records = []
    log_path = Path(log_path)
    if not log_path.exists():
        return records
    with open(log_path, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if line:
                records.append(json.loads(line))
    return records
