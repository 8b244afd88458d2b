"""SM-2 scheduler with a learning phase, lapses and fuzz."""

import logging
import math
import random
from dataclasses import replace
from datetime import datetime, tzinfo
from typing import Dict, Optional

from study.card_states import CardState, Rating
from study.dates import add_minutes, local_midnight, to_utc
from study.errors import InvalidRating
from study.learning_steps import parse_learning_steps
from study.models import CardProgress, MIN_EASE_FACTOR, SchedulingOptions, resolve_options
from study.srs_math import apply_fuzz, calculate_new_ease_factor, round_half_up

logger = logging.getLogger("quickdraw.scheduler")


# Learning-phase delays (minutes)
AGAIN_MINUTES = 2
HARD_MINUTES = 10
GOOD_MINUTES = 24 * 60
EASY_MINUTES = 4 * 24 * 60

GRADUATE_GOOD_DAYS = 1
GRADUATE_EASY_DAYS = 4

LAPSE_EASE_PENALTY = 0.2

MINUTES_PER_DAY = 24 * 60


def validate_rating(rating) -> Rating:
    """Return `rating` as a Rating, or raise InvalidRating."""
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRating(rating)
    try:
        return Rating(rating)
    except ValueError:
        raise InvalidRating(rating) from None


def _review_base_interval(
    repetitions: int,
    interval_days: int,
    new_ease: float,
    rating: Rating,
    opts: SchedulingOptions,
) -> float:
    """Unfuzzed, unclamped day interval for a successful review."""
    # Uses the pre-increment repetition count
    if repetitions == 0:
        base = 1.0
    elif repetitions == 1:
        base = 6.0
    else:
        base = interval_days * new_ease

    if rating == Rating.HARD:
        base = interval_days * opts.hard_interval_factor
    if rating == Rating.EASY:
        base = base * opts.easy_bonus

    base = base * opts.interval_modifier
    if not math.isfinite(base):
        return float(opts.max_interval_days)
    return base


def _clamp_interval(days: float, opts: SchedulingOptions) -> int:
    return min(max(round_half_up(days), 1), opts.max_interval_days)


def schedule_next_review(
    progress: CardProgress,
    rating,
    deck_options,
    now: datetime,
    tz: Optional[tzinfo] = None,
    rng: Optional[random.Random] = None,
    disable_fuzz: bool = False,
) -> CardProgress:
    """
    Compute the progress record that follows a graded review.

    Learning-phase and lapse transitions are due a fixed number of minutes
    after `now`. Graduations and successful reviews are due at local
    midnight of the target day (in `tz`, or the system zone).

    Args:
        progress:     Current progress (not mutated)
        rating:       Rating or int 1-4
        deck_options: DeckOptions, dict, SchedulingOptions or None (defaults)
        now:          Instant of the review; naive values are UTC
        tz:           Local zone for midnight due times
        rng:          Random source for fuzz (needs .uniform)
        disable_fuzz: Skip fuzz for deterministic results

    Returns:
        A new CardProgress with every scheduling field recomputed.

    Raises:
        InvalidRating if rating is not 1-4.
    """
    rating = validate_rating(rating)
    opts = resolve_options(deck_options)
    now = to_utc(now)
    ease = progress.ease_factor

    if progress.state in (CardState.NEW, CardState.LEARNING):
        steps = parse_learning_steps(opts.learning_steps)

        if rating == Rating.AGAIN:
            result = replace(
                progress,
                state=CardState.LEARNING,
                learning_step_index=0,
                due_at=add_minutes(now, AGAIN_MINUTES),
            )
        elif rating == Rating.HARD:
            result = replace(
                progress,
                state=CardState.LEARNING,
                due_at=add_minutes(now, HARD_MINUTES),
            )
        else:
            days = GRADUATE_GOOD_DAYS if rating == Rating.GOOD else GRADUATE_EASY_DAYS
            result = replace(
                progress,
                state=CardState.REVIEW,
                interval_days=days,
                repetitions=1,
                ease_factor=calculate_new_ease_factor(ease, rating),
                learning_step_index=len(steps) - 1,
                due_at=local_midnight(now, days, tz),
            )
    elif rating == Rating.AGAIN:
        result = replace(
            progress,
            state=CardState.LEARNING,
            lapses=progress.lapses + 1,
            repetitions=0,
            ease_factor=max(MIN_EASE_FACTOR, ease - LAPSE_EASE_PENALTY),
            learning_step_index=0,
            interval_days=max(1, round_half_up(
                progress.interval_days * opts.lapse_interval_percent / 100)),
            due_at=add_minutes(now, AGAIN_MINUTES),
        )
    else:
        new_ease = calculate_new_ease_factor(ease, rating)
        base = _review_base_interval(
            progress.repetitions, progress.interval_days, new_ease, rating, opts,
        )
        fuzzed = apply_fuzz(round_half_up(base), disabled=disable_fuzz, rng=rng)
        interval = _clamp_interval(fuzzed, opts)
        result = replace(
            progress,
            state=CardState.REVIEW,
            repetitions=progress.repetitions + 1,
            ease_factor=new_ease,
            interval_days=interval,
            due_at=local_midnight(now, interval, tz),
        )

    result = replace(result, last_reviewed_at=now)
    logger.debug(
        "card %s: %s -[%s]-> %s interval=%sd ease=%.2f due=%s",
        progress.card_id, progress.state.value, rating.name,
        result.state.value, result.interval_days, result.ease_factor,
        result.due_at.isoformat(),
    )
    return result


def preview_next_intervals(progress: CardProgress, deck_options=None) -> Dict[str, int]:
    """
    Minutes until the card would be due again, for each rating.

    Side-effect free and never fuzzed. Pass the same deck options that will
    be used for grading.

    Returns:
        {'again': m, 'hard': m, 'good': m, 'easy': m}
    """
    if progress.state in (CardState.NEW, CardState.LEARNING):
        return {
            'again': AGAIN_MINUTES,
            'hard': HARD_MINUTES,
            'good': GOOD_MINUTES,
            'easy': EASY_MINUTES,
        }

    opts = resolve_options(deck_options)
    preview = {'again': AGAIN_MINUTES}
    for rating in (Rating.HARD, Rating.GOOD, Rating.EASY):
        new_ease = calculate_new_ease_factor(progress.ease_factor, rating)
        base = _review_base_interval(
            progress.repetitions, progress.interval_days, new_ease, rating, opts,
        )
        preview[rating.name.lower()] = _clamp_interval(base, opts) * MINUTES_PER_DAY
    return preview


def format_interval(minutes) -> str:
    """Short label for a rating button: 2m, 10m, 3h, 4d, 1.5mo, 2.1y."""
    if minutes is None:
        return ''
    if minutes < 60:
        return f"{round_half_up(minutes)}m"
    if minutes < MINUTES_PER_DAY:
        return f"{round_half_up(minutes / 60)}h"
    days = minutes / MINUTES_PER_DAY
    if days < 30:
        return f"{round_half_up(days)}d"
    if days < 365:
        return f"{days / 30:.1f}mo"
    return f"{days / 365:.1f}y"
