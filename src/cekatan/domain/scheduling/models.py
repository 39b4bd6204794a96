"""
Domain models for card scheduling.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum

from cekatan.domain.constants import DEFAULT_EASE_FACTOR


class Rating(IntEnum):
    """Button pressed during review."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4


@dataclass(frozen=True)
class ProgressRecord:
    """
    Per-user scheduling state for one card.

    A card without a record is "new". Records are upserted on every answer
    and soft-suspended instead of deleted.

    Attributes:
        card_id: The card this state belongs to.
        collection_id: Deck the card lives in.
        interval: Current interval in days (>= 0).
        ease_factor: SM-2 ease (starts at 2.5, floor 1.3).
        next_review: When the card becomes due (timezone-aware).
        repetitions: Successful repetitions with a positive interval.
        suspended: Soft-deleted from study queues.
        correct_count: Answers counted as correct.
        total_attempts: All answers.
        last_answered_at: Timestamp of the latest answer.
    """

    card_id: str
    collection_id: str
    next_review: datetime
    interval: int = 0
    ease_factor: float = DEFAULT_EASE_FACTOR
    repetitions: int = 0
    suspended: bool = False
    correct_count: int = 0
    total_attempts: int = 0
    last_answered_at: datetime | None = None

    # Digital notebook
    is_flagged: bool = False
    notes: str | None = None

    @property
    def accuracy(self) -> float | None:
        if self.total_attempts == 0:
            return None
        return self.correct_count / self.total_attempts

    def is_due(self, now: datetime) -> bool:
        return not self.suspended and self.next_review <= now


@dataclass(frozen=True)
class ReviewOutcome:
    """
    Result of grading one answer, computed upstream by the SM-2 step.

    The merge step only persists these values; it never recomputes them.
    """

    is_correct: bool
    interval: int
    ease_factor: float
    next_review: datetime


@dataclass(frozen=True)
class CardState:
    """Serializable subset of a card's scheduling state."""

    interval: int
    ease_factor: float
    next_review: datetime


@dataclass(frozen=True)
class DueBatch:
    """One page of cards to study, with pagination diagnostics."""

    card_ids: list[str]
    total_due: int
    has_more_batches: bool
    is_new_cards_fallback: bool


@dataclass(frozen=True)
class SessionTally:
    """Running counts for a study session (flashcard review, not an exam)."""

    cards_reviewed: int = 0
    again: int = 0
    hard: int = 0
    good: int = 0
    easy: int = 0
