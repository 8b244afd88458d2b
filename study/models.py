"""Data models for the study engine: decks, cards, per-user progress and deck options."""

import logging
import math
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Dict, Optional

from study.card_states import CardState
from study.dates import parse_instant, to_utc, utc_now

logger = logging.getLogger("quickdraw.models")


DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3

# Keeps now + interval inside the datetime range
MAX_INTERVAL_CEILING_DAYS = 365000


def _instant_to_str(value: Optional[datetime]) -> Optional[str]:
    return to_utc(value).isoformat() if value is not None else None


@dataclass
class Deck:
    """A user's named collection of cards."""
    deck_id: str
    user_id: str
    name: str
    language: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict:
        d = asdict(self)
        d['created_at'] = _instant_to_str(self.created_at)
        d['updated_at'] = _instant_to_str(self.updated_at)
        return d

    @classmethod
    def from_dict(cls, data: Dict) -> 'Deck':
        data = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        for key in ('created_at', 'updated_at'):
            if data.get(key):
                data[key] = parse_instant(data[key])
            else:
                data.pop(key, None)
        return cls(**data)


@dataclass
class Card:
    """A two-sided flashcard belonging to one deck."""
    card_id: str
    deck_id: str
    front_text: str = ''
    back_text: str = ''
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict:
        d = asdict(self)
        d['created_at'] = _instant_to_str(self.created_at)
        return d

    @classmethod
    def from_dict(cls, data: Dict) -> 'Card':
        data = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        if data.get('created_at'):
            data['created_at'] = parse_instant(data['created_at'])
        else:
            data.pop('created_at', None)
        return cls(**data)


@dataclass
class CardProgress:
    """
    One user's scheduling state for one card.

    Invariants: ease_factor >= 1.3; a NEW card has zero repetitions and a
    zero interval. Instants are aware UTC datetimes.
    """
    user_id: str
    card_id: str
    state: CardState = CardState.NEW
    ease_factor: float = DEFAULT_EASE_FACTOR
    interval_days: int = 0
    repetitions: int = 0
    lapses: int = 0
    learning_step_index: int = 0
    due_at: datetime = field(default_factory=utc_now)
    last_reviewed_at: Optional[datetime] = None

    def __post_init__(self):
        self.state = CardState(self.state)
        self.due_at = to_utc(self.due_at)
        if self.last_reviewed_at is not None:
            self.last_reviewed_at = to_utc(self.last_reviewed_at)

    @classmethod
    def new(cls, user_id: str, card_id: str, now: datetime) -> 'CardProgress':
        """Fresh progress row, immediately due."""
        return cls(user_id=user_id, card_id=card_id, due_at=now)

    def to_dict(self) -> Dict:
        d = asdict(self)
        d['state'] = self.state.value
        d['due_at'] = _instant_to_str(self.due_at)
        d['last_reviewed_at'] = _instant_to_str(self.last_reviewed_at)
        return d

    @classmethod
    def from_dict(cls, data: Dict) -> 'CardProgress':
        data = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        if data.get('due_at'):
            data['due_at'] = parse_instant(data['due_at'])
        if data.get('last_reviewed_at'):
            data['last_reviewed_at'] = parse_instant(data['last_reviewed_at'])
        return cls(**data)


# ----------------------------
# Deck options
# ----------------------------

@dataclass(frozen=True)
class SchedulingOptions:
    """Fully-resolved deck options; every field holds a usable value."""
    easy_bonus: float = 1.3
    hard_interval_factor: float = 1.2
    lapse_interval_percent: int = 10
    interval_modifier: float = 1.0
    max_interval_days: int = 36500
    learning_steps: str = '10m,1d'


_DEFAULTS = SchedulingOptions()


def _is_number(value) -> bool:
    return (isinstance(value, (int, float)) and not isinstance(value, bool)
            and math.isfinite(value))


def _positive_float(name: str, value) -> float:
    if value is None:
        return getattr(_DEFAULTS, name)
    if _is_number(value) and value > 0:
        return float(value)
    logger.warning("Ignoring invalid deck option %s=%r; using default", name, value)
    return getattr(_DEFAULTS, name)


def _bounded_int(name: str, value, low: int, high: Optional[int] = None) -> int:
    if value is None:
        return getattr(_DEFAULTS, name)
    if _is_number(value) and float(value).is_integer():
        value = int(value)
        if value >= low and (high is None or value <= high):
            return value
    logger.warning("Ignoring invalid deck option %s=%r; using default", name, value)
    return getattr(_DEFAULTS, name)


@dataclass
class DeckOptions:
    """
    Per-deck scheduling options as stored. Any field may be None.

    Missing or invalid fields fall back to their defaults one at a time;
    call resolve() once at the scheduling boundary.
    """
    easy_bonus: Optional[float] = None
    hard_interval_factor: Optional[float] = None
    lapse_interval_percent: Optional[int] = None
    interval_modifier: Optional[float] = None
    max_interval_days: Optional[int] = None
    learning_steps: Optional[str] = None

    def resolve(self) -> SchedulingOptions:
        steps = self.learning_steps
        if steps is not None and (not isinstance(steps, str) or not steps.strip()):
            logger.warning("Ignoring invalid deck option learning_steps=%r; using default", steps)
            steps = None
        return SchedulingOptions(
            easy_bonus=_positive_float('easy_bonus', self.easy_bonus),
            hard_interval_factor=_positive_float('hard_interval_factor', self.hard_interval_factor),
            lapse_interval_percent=_bounded_int('lapse_interval_percent',
                                                self.lapse_interval_percent, 0, 100),
            interval_modifier=_positive_float('interval_modifier', self.interval_modifier),
            max_interval_days=_bounded_int('max_interval_days', self.max_interval_days,
                                           1, MAX_INTERVAL_CEILING_DAYS),
            learning_steps=steps if steps is not None else _DEFAULTS.learning_steps,
        )

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> 'DeckOptions':
        if not data:
            return cls()
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


def resolve_options(options) -> SchedulingOptions:
    """Accept None, a DeckOptions, a plain dict or an already-resolved SchedulingOptions."""
    if options is None:
        return _DEFAULTS
    if isinstance(options, SchedulingOptions):
        return options
    if isinstance(options, dict):
        options = DeckOptions.from_dict(options)
    return options.resolve()
