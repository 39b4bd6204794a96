from datetime import timedelta

import pytest

from cekatan.application.scheduling.sm2 import (
    calculate_next_review,
    deserialize_card_state,
    grade_review,
    is_correct_rating,
    serialize_card_state,
)
from cekatan.domain.scheduling.models import CardState, ProgressRecord, Rating


def test_again_resets_interval_and_relearns_in_ten_minutes(now):
    state = calculate_next_review(10, 2.5, Rating.AGAIN, now)

    assert state.interval == 0
    assert state.ease_factor == pytest.approx(2.3)
    assert state.next_review == now + timedelta(minutes=10)


def test_hard_multiplies_interval(now):
    state = calculate_next_review(10, 2.5, Rating.HARD, now)

    assert state.interval == 12
    assert state.ease_factor == pytest.approx(2.35)
    assert state.next_review == now + timedelta(days=12)


def test_hard_on_new_card_is_one_day(now):
    assert calculate_next_review(0, 2.5, Rating.HARD, now).interval == 1


def test_good_uses_ease(now):
    state = calculate_next_review(10, 2.5, Rating.GOOD, now)
    assert state.interval == 25
    assert state.ease_factor == pytest.approx(2.5)


def test_good_first_review_is_one_day(now):
    assert calculate_next_review(0, 2.5, Rating.GOOD, now).interval == 1


def test_easy_adds_bonus(now):
    state = calculate_next_review(4, 2.5, Rating.EASY, now)
    assert state.interval == 11
    assert state.ease_factor == pytest.approx(2.65)


def test_easy_first_review_is_four_days(now):
    state = calculate_next_review(0, 2.5, Rating.EASY, now)
    assert state.interval == 4
    assert state.next_review == now + timedelta(days=4)


@pytest.mark.parametrize("rating", [Rating.AGAIN, Rating.HARD])
def test_ease_never_below_floor(now, rating):
    state = calculate_next_review(5, 1.35, rating, now)
    assert state.ease_factor == pytest.approx(1.3)


def test_accepts_plain_int_rating(now):
    assert calculate_next_review(0, 2.5, 3, now).interval == 1


def test_correct_ratings():
    assert not is_correct_rating(Rating.AGAIN)
    assert not is_correct_rating(Rating.HARD)
    assert is_correct_rating(Rating.GOOD)
    assert is_correct_rating(Rating.EASY)


def test_grade_review_new_card_uses_defaults(now):
    outcome = grade_review(None, Rating.GOOD, now)

    assert outcome.is_correct is True
    assert outcome.interval == 1
    assert outcome.ease_factor == pytest.approx(2.5)


def test_grade_review_uses_existing_state(now):
    existing = ProgressRecord(
        card_id="c1", collection_id="deck", next_review=now, interval=6, ease_factor=2.0
    )
    outcome = grade_review(existing, Rating.GOOD, now)

    assert outcome.interval == 12
    assert outcome.next_review == now + timedelta(days=12)


def test_card_state_json_uses_camel_case(now):
    state = CardState(interval=3, ease_factor=2.36, next_review=now)

    payload = serialize_card_state(state)

    assert '"easeFactor": 2.36' in payload
    assert '"nextReview"' in payload
    assert deserialize_card_state(payload) == state
