from datetime import timedelta

from cekatan.application.scheduling.progress import (
    suspend_progress,
    unsuspend_progress,
    upsert_progress_on_answer,
)
from cekatan.domain.scheduling.models import ProgressRecord, ReviewOutcome


def _outcome(now, interval=1, ease=2.5, correct=True):
    return ReviewOutcome(
        is_correct=correct,
        interval=interval,
        ease_factor=ease,
        next_review=now + timedelta(days=interval),
    )


def test_first_answer_creates_record(now):
    record = upsert_progress_on_answer(None, _outcome(now), "c1", "deck", now=now)

    assert record.card_id == "c1"
    assert record.collection_id == "deck"
    assert record.interval == 1
    assert record.repetitions == 1
    assert record.correct_count == 1
    assert record.total_attempts == 1
    assert record.last_answered_at == now
    assert record.suspended is False


def test_merge_persists_outcome_values_as_given(now):
    outcome = _outcome(now, interval=7, ease=1.9)
    record = upsert_progress_on_answer(None, outcome, "c1", "deck", now=now)

    assert record.interval == 7
    assert record.ease_factor == 1.9
    assert record.next_review == outcome.next_review


def test_zero_interval_does_not_count_repetition(now):
    existing = ProgressRecord(
        card_id="c1", collection_id="deck", next_review=now, interval=5, repetitions=3
    )
    outcome = ReviewOutcome(
        is_correct=False, interval=0, ease_factor=2.3, next_review=now + timedelta(minutes=10)
    )

    record = upsert_progress_on_answer(existing, outcome, "c1", "deck", now=now)

    assert record.repetitions == 3
    assert record.correct_count == 0
    assert record.total_attempts == 1


def test_counts_accumulate(now):
    record = None
    for correct in (True, False, True, True):
        record = upsert_progress_on_answer(
            record, _outcome(now, correct=correct), "c1", "deck", now=now
        )

    assert record.total_attempts == 4
    assert record.correct_count == 3
    assert record.correct_count <= record.total_attempts
    assert record.accuracy == 0.75


def test_answer_unsuspends(now):
    existing = ProgressRecord(card_id="c1", collection_id="deck", next_review=now, suspended=True)
    record = upsert_progress_on_answer(existing, _outcome(now), "c1", "deck", now=now)
    assert record.suspended is False


def test_answer_keeps_notebook_fields(now):
    existing = ProgressRecord(
        card_id="c1", collection_id="deck", next_review=now, is_flagged=True, notes="tricky"
    )
    record = upsert_progress_on_answer(existing, _outcome(now), "c1", "deck", now=now)
    assert record.is_flagged is True
    assert record.notes == "tricky"


def test_suspend_and_unsuspend(now):
    record = ProgressRecord(card_id="c1", collection_id="deck", next_review=now)

    suspended = suspend_progress(record)

    assert suspended.suspended is True
    assert suspend_progress(suspended) is suspended
    assert unsuspend_progress(suspended).suspended is False
    assert unsuspend_progress(record) is record
