"""Tests for study/scheduler.py -- learning phase, graduation, reviews and lapses."""

import sys
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from zoneinfo import ZoneInfo

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest
from study.card_states import CardState, Rating
from study.errors import InvalidRating
from study.models import CardProgress, DeckOptions
from study.scheduler import (
    format_interval,
    preview_next_intervals,
    schedule_next_review,
)

NOW = datetime(2026, 3, 10, 15, 30, tzinfo=timezone.utc)
UTC = timezone.utc


def _new_progress(**overrides):
    p = CardProgress(user_id='u1', card_id='c1', due_at=NOW)
    return replace(p, **overrides)


def _review_progress(ease=2.5, interval=10, reps=3, lapses=0):
    return _new_progress(state=CardState.REVIEW, ease_factor=ease,
                         interval_days=interval, repetitions=reps, lapses=lapses)


def _schedule(progress, rating, options=None, now=NOW, tz=UTC):
    return schedule_next_review(progress, rating, options, now, tz=tz, disable_fuzz=True)


# ============================================================================
# Learning phase
# ============================================================================

def test_new_good_graduates_to_review():
    """NEW + GOOD: review, 1 day, 1 repetition, due local midnight tomorrow."""
    result = _schedule(_new_progress(), Rating.GOOD)
    assert result.state == CardState.REVIEW
    assert result.interval_days == 1
    assert result.repetitions == 1
    assert result.learning_step_index == 1
    assert result.ease_factor == pytest.approx(2.36)
    assert result.due_at == datetime(2026, 3, 11, 0, 0, tzinfo=UTC)
    assert result.last_reviewed_at == NOW


def test_new_easy_graduates_with_four_days():
    result = _schedule(_new_progress(), Rating.EASY)
    assert result.state == CardState.REVIEW
    assert result.interval_days == 4
    assert result.repetitions == 1
    assert result.ease_factor == pytest.approx(2.6)
    assert result.due_at == datetime(2026, 3, 14, 0, 0, tzinfo=UTC)


def test_new_again_enters_learning_two_minutes():
    result = _schedule(_new_progress(learning_step_index=1), Rating.AGAIN)
    assert result.state == CardState.LEARNING
    assert result.learning_step_index == 0
    assert result.due_at == NOW + timedelta(minutes=2)
    assert result.ease_factor == 2.5
    assert result.repetitions == 0
    assert result.interval_days == 0


def test_learning_hard_stays_learning_ten_minutes():
    progress = _new_progress(state=CardState.LEARNING, learning_step_index=1)
    result = _schedule(progress, Rating.HARD)
    assert result.state == CardState.LEARNING
    assert result.learning_step_index == 1
    assert result.due_at == NOW + timedelta(minutes=10)


def test_graduation_step_index_follows_configured_steps():
    """Graduating marks the last configured learning step."""
    options = DeckOptions(learning_steps='1m,10m,1h,1d')
    result = _schedule(_new_progress(), Rating.GOOD, options)
    assert result.learning_step_index == 3
    # fixed graduation interval regardless of configured steps
    assert result.interval_days == 1


def test_learning_timing_ignores_configured_steps():
    options = DeckOptions(learning_steps='30m,2d')
    assert _schedule(_new_progress(), Rating.AGAIN, options).due_at == NOW + timedelta(minutes=2)
    assert _schedule(_new_progress(), Rating.HARD, options).due_at == NOW + timedelta(minutes=10)


# ============================================================================
# Review phase
# ============================================================================

def test_review_first_success_is_one_day():
    """repetitions=0 (first success since lapse): interval 1 before fuzz."""
    result = _schedule(_review_progress(interval=3, reps=0), Rating.GOOD)
    assert result.interval_days == 1
    assert result.repetitions == 1


def test_review_second_success_is_six_days():
    result = _schedule(_review_progress(interval=1, reps=1), Rating.GOOD)
    assert result.interval_days == 6
    assert result.repetitions == 2


def test_review_good_uses_new_ease():
    """Third+ success: interval * new ease (10 * 2.36 = 23.6 -> 24)."""
    result = _schedule(_review_progress(), Rating.GOOD)
    assert result.interval_days == 24
    assert result.repetitions == 4
    assert result.state == CardState.REVIEW
    assert result.ease_factor == pytest.approx(2.36)
    assert result.due_at == datetime(2026, 4, 3, 0, 0, tzinfo=UTC)


def test_review_hard_uses_hard_factor():
    """HARD overrides the base: 10 * 1.2 = 12."""
    result = _schedule(_review_progress(), Rating.HARD)
    assert result.interval_days == 12
    assert result.ease_factor == pytest.approx(2.18)


def test_review_hard_ignores_ladder():
    """HARD uses interval * factor even on the first success."""
    result = _schedule(_review_progress(interval=10, reps=0), Rating.HARD)
    assert result.interval_days == 12


def test_review_easy_applies_bonus():
    """EASY: 10 * 2.6 * 1.3 = 33.8 -> 34."""
    result = _schedule(_review_progress(), Rating.EASY)
    assert result.interval_days == 34
    assert result.ease_factor == pytest.approx(2.6)


def test_interval_modifier_scales_every_rating():
    options = DeckOptions(interval_modifier=0.5)
    assert _schedule(_review_progress(), Rating.GOOD, options).interval_days == 12
    assert _schedule(_review_progress(), Rating.HARD, options).interval_days == 6


def test_custom_deck_options():
    options = DeckOptions(easy_bonus=2.0, hard_interval_factor=1.5)
    assert _schedule(_review_progress(), Rating.EASY, options).interval_days == 52
    assert _schedule(_review_progress(), Rating.HARD, options).interval_days == 15


def test_interval_never_exceeds_max():
    options = DeckOptions(max_interval_days=100)
    result = _schedule(_review_progress(interval=90, reps=8), Rating.EASY, options)
    assert result.interval_days == 100

    result = _schedule(_review_progress(interval=30000, reps=20), Rating.GOOD)
    assert result.interval_days == 36500


def test_interval_with_fuzz_still_clamped():
    options = DeckOptions(max_interval_days=50)
    for seed in range(20):
        import random
        result = schedule_next_review(
            _review_progress(interval=45, reps=5), Rating.GOOD, options, NOW,
            tz=UTC, rng=random.Random(seed),
        )
        assert 1 <= result.interval_days <= 50


def test_interval_at_least_one_day():
    result = _schedule(_review_progress(interval=0, reps=4), Rating.HARD)
    assert result.interval_days == 1


# ============================================================================
# Lapses
# ============================================================================

def test_review_again_is_a_lapse():
    """REVIEW + AGAIN: learning, lapses+1, ease-0.2, 10% interval, due now+2m."""
    result = _schedule(_review_progress(), Rating.AGAIN, DeckOptions(lapse_interval_percent=10))
    assert result.state == CardState.LEARNING
    assert result.lapses == 1
    assert result.ease_factor == pytest.approx(2.3)
    assert result.interval_days == 1
    assert result.learning_step_index == 0
    assert result.repetitions == 0
    assert result.due_at == NOW + timedelta(minutes=2)


def test_lapse_interval_percent():
    options = DeckOptions(lapse_interval_percent=50)
    assert _schedule(_review_progress(interval=15), Rating.AGAIN, options).interval_days == 8
    options = DeckOptions(lapse_interval_percent=0)
    assert _schedule(_review_progress(interval=15), Rating.AGAIN, options).interval_days == 1


def test_lapse_ease_floor():
    result = _schedule(_review_progress(ease=1.4), Rating.AGAIN)
    assert result.ease_factor == pytest.approx(1.3)
    result = _schedule(_review_progress(ease=1.3, lapses=4), Rating.AGAIN)
    assert result.ease_factor >= 1.3
    assert result.lapses == 5


def test_ease_never_below_floor_for_any_rating():
    for state in CardState:
        for ease in (1.3, 1.31, 1.5, 2.5, 3.0):
            for rating in Rating:
                progress = _new_progress(state=state, ease_factor=ease,
                                         interval_days=5, repetitions=2)
                if state == CardState.NEW:
                    progress = replace(progress, interval_days=0, repetitions=0)
                result = _schedule(progress, rating)
                assert result.ease_factor >= 1.3


def test_relearned_card_restarts_ladder():
    """After a lapse and re-graduation the 1/6-day ladder starts over."""
    lapsed = _schedule(_review_progress(interval=20, reps=5), Rating.AGAIN)
    regraduated = _schedule(lapsed, Rating.GOOD)
    assert regraduated.state == CardState.REVIEW
    assert regraduated.repetitions == 1
    nxt = _schedule(regraduated, Rating.GOOD, now=NOW + timedelta(days=1))
    assert nxt.interval_days == 6


# ============================================================================
# Local-midnight vs fixed-offset due times
# ============================================================================

def test_review_due_is_local_midnight_in_zone():
    """11:30 EDT: tomorrow's local midnight is 04:00 UTC."""
    ny = ZoneInfo('America/New_York')
    result = _schedule(_new_progress(), Rating.GOOD, tz=ny)
    assert result.due_at == datetime(2026, 3, 11, 4, 0, tzinfo=UTC)


def test_review_due_same_regardless_of_time_of_day():
    ny = ZoneInfo('America/New_York')
    morning = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)   # 08:00 EDT
    late = datetime(2026, 3, 11, 3, 30, tzinfo=UTC)      # 23:30 EDT, same local day
    a = _schedule(_new_progress(), Rating.GOOD, now=morning, tz=ny)
    b = _schedule(_new_progress(), Rating.GOOD, now=late, tz=ny)
    assert a.due_at == b.due_at


def test_learning_due_is_exact_offset_regardless_of_zone():
    ny = ZoneInfo('America/New_York')
    late = datetime(2026, 3, 11, 3, 59, tzinfo=UTC)
    result = _schedule(_new_progress(), Rating.AGAIN, now=late, tz=ny)
    assert result.due_at == late + timedelta(minutes=2)


def test_naive_now_treated_as_utc():
    naive = datetime(2026, 3, 10, 15, 30)
    result = _schedule(_new_progress(), Rating.HARD, now=naive)
    assert result.due_at == NOW + timedelta(minutes=10)
    assert result.due_at.tzinfo is not None


# ============================================================================
# Validation & purity
# ============================================================================

@pytest.mark.parametrize('bad', [0, 5, -1, 'good', 3.0, True, None])
def test_invalid_rating_raises(bad):
    with pytest.raises(InvalidRating):
        _schedule(_new_progress(), bad)


def test_invalid_rating_is_value_error():
    with pytest.raises(ValueError):
        _schedule(_new_progress(), 7)


def test_plain_int_rating_accepted():
    assert _schedule(_new_progress(), 3).state == CardState.REVIEW


def test_input_progress_not_mutated():
    progress = _review_progress()
    before = progress.to_dict()
    _schedule(progress, Rating.AGAIN)
    _schedule(progress, Rating.EASY)
    assert progress.to_dict() == before


def test_partial_and_invalid_options_default_per_field():
    """Missing or garbage fields fall back independently."""
    options = {'easy_bonus': -3, 'hard_interval_factor': 'abc', 'interval_modifier': None}
    assert _schedule(_review_progress(), Rating.EASY, options).interval_days == 34
    assert _schedule(_review_progress(), Rating.HARD, options).interval_days == 12


def test_none_options_use_defaults():
    assert _schedule(_review_progress(), Rating.GOOD, None).interval_days == 24


# ============================================================================
# Interval preview
# ============================================================================

def test_preview_learning_constants():
    for state in (CardState.NEW, CardState.LEARNING):
        preview = preview_next_intervals(_new_progress(state=state))
        assert preview == {'again': 2, 'hard': 10, 'good': 1440, 'easy': 5760}


def test_preview_review_matches_schedule():
    progress = _review_progress()
    preview = preview_next_intervals(progress, DeckOptions())
    assert preview['again'] == 2
    for rating in (Rating.HARD, Rating.GOOD, Rating.EASY):
        scheduled = _schedule(progress, rating, DeckOptions())
        assert preview[rating.name.lower()] == scheduled.interval_days * 1440


def test_preview_does_not_mutate():
    progress = _review_progress()
    before = progress.to_dict()
    preview_next_intervals(progress, {'easy_bonus': 2.0})
    assert progress.to_dict() == before


def test_preview_respects_options():
    preview = preview_next_intervals(_review_progress(), {'max_interval_days': 20})
    assert preview['good'] == 20 * 1440
    assert preview['easy'] == 20 * 1440
    assert preview['hard'] == 12 * 1440


# ============================================================================
# format_interval
# ============================================================================

def test_format_interval():
    assert format_interval(2) == '2m'
    assert format_interval(10) == '10m'
    assert format_interval(90) == '2h'
    assert format_interval(1440) == '1d'
    assert format_interval(5760) == '4d'
    assert format_interval(45 * 1440) == '1.5mo'
    assert format_interval(730 * 1440) == '2.0y'
    assert format_interval(None) == ''


# ============================================================================
# Extreme deck options
# ============================================================================

def test_overflowing_factors_clamp_to_max_interval():
    """Factors whose product is infinite schedule at the max interval."""
    options = DeckOptions(easy_bonus=1e200, interval_modifier=1e200)
    result = _schedule(_review_progress(), Rating.EASY, options)
    assert result.interval_days == 36500
    assert result.due_at == datetime(2126, 2, 14, tzinfo=UTC)

    result = _schedule(_review_progress(), Rating.HARD,
                       DeckOptions(hard_interval_factor=1e308, interval_modifier=1e308))
    assert result.interval_days == 36500


def test_overflowing_factors_with_fuzz():
    import random
    options = DeckOptions(easy_bonus=1e200, interval_modifier=1e200)
    result = schedule_next_review(_review_progress(), Rating.EASY, options, NOW,
                                  tz=UTC, rng=random.Random(3))
    assert 1 <= result.interval_days <= 36500


def test_preview_with_overflowing_factors():
    preview = preview_next_intervals(
        _review_progress(), DeckOptions(easy_bonus=1e200, interval_modifier=1e200))
    assert preview == {'again': 2, 'hard': 36500 * 1440,
                       'good': 36500 * 1440, 'easy': 36500 * 1440}


def test_oversized_max_interval_falls_back_to_default():
    options = DeckOptions(max_interval_days=10_000_000, interval_modifier=1e6)
    result = _schedule(_review_progress(), Rating.GOOD, options)
    assert result.interval_days == 36500
    preview = preview_next_intervals(_review_progress(), options)
    assert preview['good'] == 36500 * 1440


def test_max_interval_at_ceiling_still_schedules():
    options = DeckOptions(max_interval_days=365000, interval_modifier=1e6)
    result = _schedule(_review_progress(), Rating.GOOD, options)
    assert result.interval_days == 365000
    assert result.due_at.year > 3000
