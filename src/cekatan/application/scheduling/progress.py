"""
Merge step for per-card scheduling state.

Persists an already-graded review outcome into the user's progress record.
The SM-2 arithmetic happens before this (see sm2.py); nothing here
recomputes intervals.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone

from cekatan.domain.scheduling.models import ProgressRecord, ReviewOutcome

logger = logging.getLogger(__name__)


def upsert_progress_on_answer(
    existing: ProgressRecord | None,
    outcome: ReviewOutcome,
    card_id: str,
    collection_id: str,
    now: datetime | None = None,
) -> ProgressRecord:
    """
    Produce the progress record to store after an answer.

    Args:
        existing: Current record, or None for a new card.
        outcome: Graded result carrying the new interval/ease/next_review.
        card_id: Card being answered (used when there is no record yet).
        collection_id: Collection the card belongs to.
        now: Answer time; defaults to the current UTC time.

    Returns:
        The merged record. Repetitions only grow when the new interval is
        positive; the card is always unsuspended.
    """
    now = now or datetime.now(timezone.utc)
    base = existing or ProgressRecord(
        card_id=card_id, collection_id=collection_id, next_review=outcome.next_review
    )

    merged = replace(
        base,
        interval=outcome.interval,
        ease_factor=outcome.ease_factor,
        next_review=outcome.next_review,
        repetitions=base.repetitions + (1 if outcome.interval > 0 else 0),
        suspended=False,
        correct_count=base.correct_count + (1 if outcome.is_correct else 0),
        total_attempts=base.total_attempts + 1,
        last_answered_at=now,
    )

    logger.debug(
        f"[progress] card={card_id} interval {base.interval}->{merged.interval} "
        f"next_review={merged.next_review.isoformat()}"
    )
    return merged


def suspend_progress(record: ProgressRecord) -> ProgressRecord:
    """Soft-delete a card from study queues. Records are never removed."""
    if record.suspended:
        return record
    return replace(record, suspended=True)


def unsuspend_progress(record: ProgressRecord) -> ProgressRecord:
    if not record.suspended:
        return record
    return replace(record, suspended=False)
