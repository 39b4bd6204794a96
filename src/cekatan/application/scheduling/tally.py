"""Rating tally for a flashcard study session."""

from collections.abc import Iterable
from dataclasses import replace

from cekatan.domain.scheduling.models import Rating, SessionTally

_RATING_FIELDS = {
    Rating.AGAIN: "again",
    Rating.HARD: "hard",
    Rating.GOOD: "good",
    Rating.EASY: "easy",
}


def update_session_tally(tally: SessionTally, rating: Rating | int) -> SessionTally:
    key = _RATING_FIELDS[Rating(rating)]
    return replace(
        tally,
        cards_reviewed=tally.cards_reviewed + 1,
        **{key: getattr(tally, key) + 1},
    )


def apply_ratings(ratings: Iterable[Rating | int]) -> SessionTally:
    tally = SessionTally()
    for rating in ratings:
        tally = update_session_tally(tally, rating)
    return tally
