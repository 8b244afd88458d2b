"""Tests for study/models.py -- progress records and deck option resolution."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from study.card_states import CardState
from study.models import (
    Card,
    CardProgress,
    Deck,
    DeckOptions,
    SchedulingOptions,
    resolve_options,
)

NOW = datetime(2026, 3, 10, 15, 30, tzinfo=timezone.utc)


def test_new_progress_defaults():
    p = CardProgress.new('u1', 'c1', NOW)
    assert p.state == CardState.NEW
    assert p.ease_factor == 2.5
    assert p.interval_days == 0
    assert p.repetitions == 0
    assert p.lapses == 0
    assert p.learning_step_index == 0
    assert p.due_at == NOW
    assert p.last_reviewed_at is None


def test_progress_state_coerced_from_string():
    p = CardProgress(user_id='u1', card_id='c1', state='review', due_at=NOW)
    assert p.state is CardState.REVIEW


def test_progress_naive_datetimes_become_utc():
    p = CardProgress(user_id='u1', card_id='c1', due_at=datetime(2026, 3, 10, 15, 30))
    assert p.due_at == NOW
    assert p.due_at.tzinfo is not None


def test_progress_dict_round_trip():
    p = CardProgress(user_id='u1', card_id='c1', state=CardState.REVIEW, ease_factor=2.2,
                     interval_days=6, repetitions=2, lapses=1, due_at=NOW,
                     last_reviewed_at=NOW)
    d = p.to_dict()
    assert d['state'] == 'review'
    assert d['due_at'] == '2026-03-10T15:30:00+00:00'
    assert CardProgress.from_dict(d) == p


def test_progress_from_dict_accepts_z_suffix():
    p = CardProgress.from_dict({'user_id': 'u1', 'card_id': 'c1',
                                'due_at': '2026-03-10T15:30:00Z', 'extra': 1})
    assert p.due_at == NOW


def test_deck_and_card_round_trip():
    deck = Deck(deck_id='d1', user_id='u1', name='Spanish', language='es',
                created_at=NOW, updated_at=NOW)
    assert Deck.from_dict(deck.to_dict()) == deck
    card = Card(card_id='c1', deck_id='d1', front_text='hola', back_text='hello',
                created_at=NOW)
    assert Card.from_dict(card.to_dict()) == card


def test_empty_options_resolve_to_defaults():
    assert DeckOptions().resolve() == SchedulingOptions()
    assert resolve_options(None) == SchedulingOptions(
        easy_bonus=1.3, hard_interval_factor=1.2, lapse_interval_percent=10,
        interval_modifier=1.0, max_interval_days=36500, learning_steps='10m,1d',
    )


def test_each_field_defaults_independently():
    resolved = DeckOptions(easy_bonus=2.0, max_interval_days=0).resolve()
    assert resolved.easy_bonus == 2.0
    assert resolved.max_interval_days == 36500
    assert resolved.hard_interval_factor == 1.2


def test_invalid_values_replaced(caplog):
    options = DeckOptions(
        easy_bonus=-1, hard_interval_factor=float('nan'),
        lapse_interval_percent=150, interval_modifier=True,
        max_interval_days=2.5, learning_steps='   ',
    )
    with caplog.at_level(logging.WARNING, logger='quickdraw.models'):
        resolved = options.resolve()
    assert resolved == SchedulingOptions()
    assert 'easy_bonus' in caplog.text
    assert 'lapse_interval_percent' in caplog.text


def test_lapse_percent_bounds():
    assert DeckOptions(lapse_interval_percent=0).resolve().lapse_interval_percent == 0
    assert DeckOptions(lapse_interval_percent=100).resolve().lapse_interval_percent == 100
    assert DeckOptions(lapse_interval_percent=-1).resolve().lapse_interval_percent == 10


def test_resolve_options_accepts_dict_and_resolved():
    resolved = resolve_options({'easy_bonus': 1.5, 'unknown': 'x'})
    assert resolved.easy_bonus == 1.5
    assert resolve_options(resolved) is resolved


def test_options_dict_round_trip():
    options = DeckOptions(easy_bonus=1.5, learning_steps='1m,10m')
    assert DeckOptions.from_dict(options.to_dict()) == options
    assert DeckOptions.from_dict(None) == DeckOptions()


def test_max_interval_ceiling():
    assert DeckOptions(max_interval_days=365000).resolve().max_interval_days == 365000
    assert DeckOptions(max_interval_days=365001).resolve().max_interval_days == 36500
    assert DeckOptions(max_interval_days=10 ** 12).resolve().max_interval_days == 36500


def test_huge_finite_factors_accepted():
    resolved = DeckOptions(easy_bonus=1e200, interval_modifier=1e200).resolve()
    assert resolved.easy_bonus == 1e200
    assert resolved.interval_modifier == 1e200
