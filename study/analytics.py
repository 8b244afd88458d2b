"""Deck statistics computed from progress rows."""

from datetime import datetime
from typing import Dict, List

from study.card_states import CardState
from study.dates import to_utc
from study.models import CardProgress

MATURE_INTERVAL_DAYS = 21


def _card_mastery(progress: CardProgress, now: datetime) -> float:
    """
    Mastery score for a single card (0..1).

    Heuristics:
        - base = min(1.0, interval_days / 30)
        - penalty for lapses: -0.05 per lapse
        - boost for ease above 2.5: +0.05 per 0.1
        - stale review (> 60 days past due): 30% penalty
    """
    if progress.state == CardState.NEW:
        return 0.0

    score = min(1.0, progress.interval_days / 30.0)
    score -= progress.lapses * 0.05
    score += max(0.0, progress.ease_factor - 2.5) * 0.5

    overdue_days = (to_utc(now) - progress.due_at).total_seconds() / 86400
    if overdue_days > 60:
        score *= 0.7

    return max(0.0, min(1.0, score))


def compute_deck_stats(progress_rows: List[CardProgress], now: datetime) -> Dict:
    """
    Summarize a user's progress across a deck.

    Retention is estimated from row fields as
    1 - lapses / (lapses + repetitions), so it only sees reviews since each
    card's last lapse.

    Returns:
        {
            total, new, learning, review: int,
            due_now, mature, young: int,
            avg_ease: float, total_lapses: int,
            retention: float 0..1 (1.0 when nothing reviewed),
            mastery: float 0..1,
        }
    """
    now = to_utc(now)
    by_state = {s: 0 for s in CardState}
    for p in progress_rows:
        by_state[p.state] += 1

    started = [p for p in progress_rows if p.state != CardState.NEW]
    review = [p for p in progress_rows if p.state == CardState.REVIEW]
    mature = sum(1 for p in review if p.interval_days >= MATURE_INTERVAL_DAYS)

    total_lapses = sum(p.lapses for p in progress_rows)
    total_successes = sum(p.repetitions for p in progress_rows)
    attempts = total_lapses + total_successes
    retention = 1.0 - total_lapses / attempts if attempts else 1.0

    avg_ease = (sum(p.ease_factor for p in started) / len(started)) if started else 0.0
    mastery = (sum(_card_mastery(p, now) for p in progress_rows) / len(progress_rows)
               if progress_rows else 0.0)

    return {
        'total': len(progress_rows),
        'new': by_state[CardState.NEW],
        'learning': by_state[CardState.LEARNING],
        'review': by_state[CardState.REVIEW],
        'due_now': sum(1 for p in progress_rows if p.due_at <= now),
        'mature': mature,
        'young': len(review) - mature,
        'avg_ease': round(avg_ease, 4),
        'total_lapses': total_lapses,
        'retention': round(retention, 4),
        'mastery': round(mastery, 4),
    }
