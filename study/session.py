"""Interactive review session runner with injectable IO and clock."""

import random
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set

from study.card_states import CardState, Rating
from study.dates import utc_now
from study.due_queue import DueItem, build_study_queue, get_all_learning_cards
from study.errors import InvalidRating
from study.grader import grade_card, parse_rating
from study.scheduler import format_interval, preview_next_intervals
from study.session_log import log_session


def _next_queue(store, user_id: str, deck_id: str, now: datetime,
                skipped: Set[str]) -> List[DueItem]:
    """
    Fresh queue, minus skipped cards.

    Falls back to every remaining learning card so the session does not end
    while minute-scale cards are still pending.
    """
    queue = [item for item in build_study_queue(store, user_id, deck_id, now)
             if item[0].card_id not in skipped]
    if queue:
        return queue
    return [item for item in get_all_learning_cards(store, user_id, deck_id)
            if item[0].card_id not in skipped]


def _format_buttons(intervals: Dict[str, int]) -> str:
    return "  ".join(
        f"[{r.value}] {r.name.capitalize()} ({format_interval(intervals[r.name.lower()])})"
        for r in Rating
    )


def run_review_session(
    store,
    user_id: str,
    deck_id: str,
    input_fn: Callable[[str], str] = input,
    output_fn: Callable[[str], None] = print,
    now_fn: Callable[[], datetime] = utc_now,
    log_path: Optional[Path] = None,
    tz: Optional[tzinfo] = None,
    rng: Optional[random.Random] = None,
    disable_fuzz: bool = False,
) -> Dict:
    """
    Run an interactive review session over a deck.

    IO and the clock are injectable for testability.

    Flow per card:
        1. Show front; Enter reveals, 'q' quits, 's' skips
        2. Show back and the interval each rating would give
        3. Read a rating (1-4 or again/hard/good/easy); re-prompt if invalid
        4. Grade and persist via grade_card
        5. After Again/Hard on a learning card, rebuild the queue so the
           card comes back; otherwise advance, rebuilding when exhausted

    Args:
        store:        StudyStore or SqlStudyStore
        user_id:      Reviewing user
        deck_id:      Deck to study
        input_fn:     Callable for user input (default: builtin input)
        output_fn:    Callable for display (default: builtin print)
        now_fn:       Clock, called once per queue build and per grade
        log_path:     Optional path for the session log
        tz:           Local zone for review due times
        rng:          Random source for fuzz
        disable_fuzz: Skip fuzz

    Returns:
        Summary dict: {reviewed, again, hard, good, easy, skipped, lapses, graduated}
    """
    counts = {r.name.lower(): 0 for r in Rating}
    reviewed = 0
    skipped_ids: Set[str] = set()
    lapses = 0
    graduated = 0
    cards_reviewed_log: List[Dict] = []

    options = store.get_deck_options(deck_id)
    queue = _next_queue(store, user_id, deck_id, now_fn(), skipped_ids)

    output_fn(f"\n{'='*60}")
    output_fn(f"REVIEW SESSION -- {len(queue)} card(s) queued")
    output_fn(f"{'='*60}")
    output_fn("Press Enter to reveal, 'q' to quit, 's' to skip a card.\n")

    idx = 0
    quit_requested = False
    while not quit_requested:
        if idx >= len(queue):
            queue = _next_queue(store, user_id, deck_id, now_fn(), skipped_ids)
            idx = 0
            if not queue:
                break

        card, progress = queue[idx]
        label = 'Learning' if progress.state != CardState.REVIEW else 'Review'
        output_fn(f"\n--- Card {idx + 1}/{len(queue)} [{label}] ---")
        output_fn(f"  {card.front_text}")

        try:
            reply = input_fn("\n(Enter to reveal) ")
        except (EOFError, KeyboardInterrupt):
            output_fn("\nSession ended.")
            break

        if reply.strip().lower() == 'q':
            output_fn("Ending session early.")
            break
        if reply.strip().lower() == 's':
            skipped_ids.add(card.card_id)
            output_fn("  (skipped)")
            idx += 1
            continue

        output_fn(f"  {card.back_text}")
        output_fn("  " + _format_buttons(preview_next_intervals(progress, options)))

        rating = None
        while rating is None:
            try:
                answer = input_fn("Rating: ")
            except (EOFError, KeyboardInterrupt):
                answer = 'q'
            if answer.strip().lower() == 'q':
                output_fn("Ending session early.")
                quit_requested = True
                break
            try:
                rating = parse_rating(answer)
            except InvalidRating:
                output_fn("  Enter 1-4 (again, hard, good, easy).")
        if rating is None:
            break

        updated = grade_card(
            store, user_id, card.card_id, rating, now_fn(),
            tz=tz, rng=rng, disable_fuzz=disable_fuzz,
        )

        reviewed += 1
        counts[rating.name.lower()] += 1
        if progress.state == CardState.REVIEW and rating == Rating.AGAIN:
            lapses += 1
        if progress.state != CardState.REVIEW and updated.state == CardState.REVIEW:
            graduated += 1

        output_fn(f"  Next review: {updated.due_at.isoformat()} "
                  f"(interval: {updated.interval_days}d)")

        cards_reviewed_log.append({
            'card_id': card.card_id,
            'rating': int(rating),
            'state_before': progress.state.value,
            'state_after': updated.state.value,
            'interval_days': updated.interval_days,
        })

        if rating in (Rating.AGAIN, Rating.HARD) and progress.state != CardState.REVIEW:
            queue = _next_queue(store, user_id, deck_id, now_fn(), skipped_ids)
            idx = 0
            if not queue:
                break
        else:
            idx += 1

    summary = {
        'reviewed': reviewed,
        **counts,
        'skipped': len(skipped_ids),
        'lapses': lapses,
        'graduated': graduated,
    }

    output_fn(f"\n{'='*60}")
    output_fn("SESSION COMPLETE")
    output_fn(f"  Reviewed: {reviewed}  Again: {counts['again']}  Hard: {counts['hard']}  "
              f"Good: {counts['good']}  Easy: {counts['easy']}  Skipped: {len(skipped_ids)}")
    if lapses:
        output_fn(f"  Lapses: {lapses}")
    if graduated:
        output_fn(f"  Graduated: {graduated} card(s)")
    output_fn(f"{'='*60}")

    if log_path and cards_reviewed_log:
        log_session(log_path, summary, cards_reviewed_log, user_id=user_id, deck_id=deck_id)

    return summary
