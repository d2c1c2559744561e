import itertools

import pytest

from errors import ValidationError
from utils.clock import DAY_MS
from utils.sm2 import (
    MIN_EASE,
    compute_next_state,
    confidence_to_quality,
    next_review_at,
)


def test_good_progression_follows_fixed_then_multiplied_intervals():
    state = compute_next_state(2, 2.5, 0, 0)
    assert state == (2.5, 1, 1)
    state = compute_next_state(2, state.ease, state.interval, state.streak)
    assert state == (2.5, 6, 2)
    state = compute_next_state(2, state.ease, state.interval, state.streak)
    assert state == (2.5, 15, 3)


def test_solid_raises_ease_and_uses_bonus():
    assert compute_next_state(3, 2.5, 0, 0) == (pytest.approx(2.6), 2, 1)
    assert compute_next_state(3, 2.6, 2, 1) == (pytest.approx(2.7), 7, 2)
    assert compute_next_state(3, 2.5, 10, 2).interval == 30


def test_forgot_resets_streak_and_floors_ease():
    state = compute_next_state(0, 1.4, 10, 5)
    assert state.interval == 1
    assert state.streak == 0
    assert state.ease == MIN_EASE


def test_shaky_halves_interval_within_bounds():
    state = compute_next_state(1, 2.5, 10, 3)
    assert state.ease == pytest.approx(2.35)
    assert state.interval == 3
    assert state.streak == 0
    assert compute_next_state(1, 2.5, 0, 0).interval == 1
    assert compute_next_state(1, 2.5, 3, 0).interval == 2


def test_rounding_is_half_up():
    assert compute_next_state(1, 2.5, 1, 1).interval == 1
    assert compute_next_state(2, 2.5, 5, 2).interval == 13


def test_ease_never_drops_below_floor():
    state = compute_next_state(1, 1.3, 4, 0)
    assert state.ease == MIN_EASE


def test_invalid_quality_is_rejected():
    with pytest.raises(ValidationError):
        compute_next_state(4, 2.5, 1, 1)


def test_confidence_mapping():
    assert confidence_to_quality("new") == 0
    assert confidence_to_quality("learning") == 1
    assert confidence_to_quality("shaky") == 1
    assert confidence_to_quality("good") == 2
    assert confidence_to_quality("solid") == 3
    with pytest.raises(ValidationError):
        confidence_to_quality("perfect")


def test_next_review_at_adds_whole_days():
    assert next_review_at(3, 1_000) == 1_000 + 3 * DAY_MS


def _replay(qualities):
    ease, interval, streak = 2.5, 0, 0
    for quality in qualities:
        state = compute_next_state(quality, ease, interval, streak)
        assert state.ease >= MIN_EASE
        assert state.interval >= 1
        if quality >= 2:
            assert state.streak == streak + 1
        else:
            assert state.streak == 0
        ease, interval, streak = state
    return ease, interval, streak


def test_every_short_review_sequence_stays_in_bounds():
    for qualities in itertools.product(range(4), repeat=6):
        _replay(qualities)


def test_long_failing_runs_pin_ease_at_floor():
    assert _replay([0] * 50) == (MIN_EASE, 1, 0)
    ease, interval, streak = _replay([1] * 50)
    assert ease == MIN_EASE
    assert interval == 1
    assert streak == 0
