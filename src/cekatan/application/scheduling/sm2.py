"""
SM-2 interval arithmetic.

Turns a rating into the (interval, ease factor, next review) triple that
the progress merge step persists. Pure, no I/O.
"""

import json
from datetime import datetime, timedelta, timezone

from cekatan.application.utils.numeric import round_half_up
from cekatan.domain.constants import (
    AGAIN_EASE_PENALTY,
    AGAIN_RELEARN_MINUTES,
    CORRECT_RATING_THRESHOLD,
    DEFAULT_EASE_FACTOR,
    EASY_EASE_BONUS,
    EASY_FIRST_INTERVAL,
    HARD_EASE_PENALTY,
    HARD_INTERVAL_MULTIPLIER,
    MIN_EASE_FACTOR,
)
from cekatan.domain.scheduling.models import CardState, ProgressRecord, Rating, ReviewOutcome


def calculate_next_review(
    interval: int,
    ease_factor: float,
    rating: Rating | int,
    now: datetime | None = None,
) -> CardState:
    """
    Compute the next scheduling state for a card.

    Again resets the interval to 0 and brings the card back in 10 minutes
    (same-day relearning). Every other rating schedules `interval` days out.
    The ease factor never drops below 1.3.
    """
    now = now or datetime.now(timezone.utc)
    rating = Rating(rating)

    if rating is Rating.AGAIN:
        return CardState(
            interval=0,
            ease_factor=max(MIN_EASE_FACTOR, ease_factor - AGAIN_EASE_PENALTY),
            next_review=now + timedelta(minutes=AGAIN_RELEARN_MINUTES),
        )

    if rating is Rating.HARD:
        new_interval = max(1, round_half_up(interval * HARD_INTERVAL_MULTIPLIER))
        new_ease = max(MIN_EASE_FACTOR, ease_factor - HARD_EASE_PENALTY)
    elif rating is Rating.GOOD:
        new_interval = 1 if interval == 0 else round_half_up(interval * ease_factor)
        new_ease = ease_factor
    else:
        new_interval = (
            EASY_FIRST_INTERVAL
            if interval == 0
            else round_half_up(interval * (ease_factor + EASY_EASE_BONUS))
        )
        new_ease = ease_factor + EASY_EASE_BONUS

    return CardState(
        interval=new_interval,
        ease_factor=max(MIN_EASE_FACTOR, new_ease),
        next_review=now + timedelta(days=new_interval),
    )


def is_correct_rating(rating: Rating | int) -> bool:
    return int(rating) >= CORRECT_RATING_THRESHOLD


def grade_review(
    existing: ProgressRecord | None,
    rating: Rating | int,
    now: datetime | None = None,
) -> ReviewOutcome:
    """Run SM-2 against a card's current state (or new-card defaults)."""
    state = calculate_next_review(
        interval=existing.interval if existing else 0,
        ease_factor=existing.ease_factor if existing else DEFAULT_EASE_FACTOR,
        rating=rating,
        now=now,
    )
    return ReviewOutcome(
        is_correct=is_correct_rating(rating),
        interval=state.interval,
        ease_factor=state.ease_factor,
        next_review=state.next_review,
    )


def serialize_card_state(state: CardState) -> str:
    return json.dumps(
        {
            "interval": state.interval,
            "easeFactor": state.ease_factor,
            "nextReview": state.next_review.isoformat(),
        }
    )


def deserialize_card_state(payload: str) -> CardState:
    data = json.loads(payload)
    return CardState(
        interval=int(data["interval"]),
        ease_factor=float(data["easeFactor"]),
        next_review=datetime.fromisoformat(data["nextReview"]),
    )
