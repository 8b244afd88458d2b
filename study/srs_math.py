"""SM-2 math helpers: rating -> quality mapping, ease update and interval fuzz."""

import math
import random
from typing import Optional

from study.card_states import Rating
from study.models import MIN_EASE_FACTOR

_QUALITY_BY_RATING = {
    Rating.AGAIN: 0,
    Rating.HARD: 2,
    Rating.GOOD: 3,
    Rating.EASY: 5,
}

# Fallback source when the caller does not inject one. A private instance,
# so seeding or reseeding the process-global `random` never affects it.
_default_rng = random.Random()


def round_half_up(value: float) -> int:
    """Round to nearest integer, halves away from zero for positive values."""
    return int(math.floor(value + 0.5))


def rating_to_quality(rating) -> int:
    """Map a 1-4 rating onto the SM-2 0-5 quality scale (unknown -> 3)."""
    try:
        return _QUALITY_BY_RATING[Rating(rating)]
    except (ValueError, TypeError):
        return 3


def calculate_new_ease_factor(ease_factor: float, rating) -> float:
    """
    SM-2 ease update: EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)).

    Floored at 1.3.
    """
    q = rating_to_quality(rating)
    delta = 0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)
    return max(MIN_EASE_FACTOR, ease_factor + delta)


def fuzz_range(interval_days: float) -> float:
    if interval_days < 7:
        return min(1.0, interval_days * 0.15)
    if interval_days < 30:
        return interval_days * 0.05
    return interval_days * 0.10


def apply_fuzz(interval_days, disabled: bool = False,
               rng: Optional[random.Random] = None) -> int:
    """
    Jitter a day interval so cards reviewed together drift apart.

    Intervals under 2 days, and any interval when `disabled` is set, come
    back unchanged (rounded). `rng` needs a `uniform(a, b)` method.
    """
    if disabled or interval_days < 2:
        return interval_days if interval_days < 2 else round_half_up(interval_days)

    spread = fuzz_range(interval_days)
    rng = rng if rng is not None else _default_rng
    fuzz = rng.uniform(-spread, spread)
    return max(1, round_half_up(interval_days + fuzz))
