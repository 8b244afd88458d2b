"""Card lifecycle states and review ratings for the scheduling engine."""

from enum import Enum, IntEnum


class CardState(str, Enum):
    """Lifecycle phase of a user's progress on a card."""
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"


class Rating(IntEnum):
    """Four-level recall rating. Higher is better."""
    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4
