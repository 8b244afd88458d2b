"""Rating input parsing and the grade-a-card read-modify-write."""

import logging
import random
from datetime import datetime, tzinfo
from typing import Optional

from study.card_states import Rating
from study.errors import InvalidRating, NotFoundError
from study.models import CardProgress
from study.scheduler import schedule_next_review, validate_rating

logger = logging.getLogger("quickdraw.grader")


_RATING_NAMES = {r.name.lower(): r for r in Rating}


def parse_rating(value) -> Rating:
    """
    Accept a Rating, an int 1-4, a digit string or a rating name.

    Raises:
        InvalidRating for anything else.
    """
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _RATING_NAMES:
            return _RATING_NAMES[text]
        if text.isdecimal():
            try:
                number = int(text)
            except ValueError:
                raise InvalidRating(value) from None
            return validate_rating(number)
        raise InvalidRating(value)
    return validate_rating(value)


def grade_card(
    store,
    user_id: str,
    card_id: str,
    rating,
    now: datetime,
    tz: Optional[tzinfo] = None,
    rng: Optional[random.Random] = None,
    disable_fuzz: bool = False,
) -> CardProgress:
    """
    Grade one card and persist its new schedule.

    The rating is validated before the store is touched. Storage errors
    propagate unchanged.

    Returns:
        The stored CardProgress.

    Raises:
        InvalidRating if rating is not 1-4.
        NotFoundError if the user has no progress row for the card.
    """
    rating = parse_rating(rating)

    progress = store.get_progress(user_id, card_id)
    if progress is None:
        raise NotFoundError(f"No progress for user={user_id} card={card_id}")

    card = store.get_card(card_id)
    if card is None:
        raise NotFoundError(f"Card not found: {card_id}")
    options = store.get_deck_options(card.deck_id)

    updated = schedule_next_review(
        progress, rating, options, now,
        tz=tz, rng=rng, disable_fuzz=disable_fuzz,
    )
    store.upsert_progress(updated)
    logger.info("Graded card %s as %s for user %s: %s, next due %s",
                card_id, rating.name, user_id, updated.state.value,
                updated.due_at.isoformat())
    return updated
