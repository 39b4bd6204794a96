"""
Assessment session state machine.

    in_progress --complete_session--> completed
    in_progress --expire_by_timeout-> timed_out
    in_progress --expire_by_schedule-> expired

Every transition takes a session and returns a session. Anything attempted
on a terminal session, or with an unknown question or out-of-range option,
returns the input object unchanged.
"""

import logging
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timezone

from ulid import ULID

from cekatan.domain.constants import MAX_SCORE
from cekatan.domain.session.models import (
    CompletionResult,
    ExamSession,
    Question,
    SessionStatus,
)

logger = logging.getLogger(__name__)


def generate_session_id() -> str:
    return str(ULID())


def calculate_score(correct: int, total: int) -> int:
    """Percentage of correct answers, rounded half up. Zero questions score 0."""
    if total <= 0:
        return 0
    # Integer arithmetic so exact halves (23/40 -> 57.5) round up.
    return (2 * MAX_SCORE * correct + total) // (2 * total)


def determine_passed(score: int, pass_score: int) -> bool:
    return score >= pass_score


def create_session(
    session_id: str,
    questions: Iterable[Question],
    time_limit_seconds: int,
    started_at: datetime | None = None,
) -> ExamSession:
    """
    Start a session. Questions keep the order given; any shuffling must be
    done by the caller beforehand (see admission.select_questions).
    """
    return ExamSession(
        id=session_id,
        questions=tuple(questions),
        time_remaining_seconds=max(0, time_limit_seconds),
        started_at=started_at or datetime.now(timezone.utc),
    )


def submit_answer(session: ExamSession, question_id: str, selected_index: int) -> ExamSession:
    """Record (or overwrite) the answer for one question."""
    if session.status is not SessionStatus.IN_PROGRESS:
        return session

    question = session.question(question_id)
    if question is None:
        logger.debug(f"[session {session.id}] ignoring answer for unknown question {question_id}")
        return session

    if not 0 <= selected_index < question.option_count:
        logger.debug(
            f"[session {session.id}] ignoring out-of-range index {selected_index} "
            f"for {question_id}"
        )
        return session

    if session.answers.get(question_id) == selected_index:
        return session

    return replace(session, answers={**session.answers, question_id: selected_index})


def count_correct(session: ExamSession) -> int:
    return sum(1 for q in session.questions if session.answers.get(q.id) == q.correct_index)


def grade(session: ExamSession, pass_score: int) -> tuple[int, int, bool]:
    """Returns (correct, score, passed) for the answers recorded so far."""
    total = len(session.questions)
    correct = count_correct(session)
    score = calculate_score(correct, total)
    # A session with no questions never passes, whatever the threshold
    passed = total > 0 and determine_passed(score, pass_score)
    return correct, score, passed


def complete_session(
    session: ExamSession, pass_score: int, now: datetime | None = None
) -> CompletionResult:
    """
    Grade and close an in-progress session.

    Completing a session that is already terminal does not recompute the
    stored score: it reports score 0 / not passed and leaves the session as is.
    """
    if session.status is not SessionStatus.IN_PROGRESS:
        logger.info(f"[session {session.id}] complete requested on {session.status.value} session")
        return CompletionResult(session=session, score=0, passed=False)

    correct, score, passed = grade(session, pass_score)
    completed = replace(
        session,
        status=SessionStatus.COMPLETED,
        score=score,
        passed=passed,
        completed_at=now or datetime.now(timezone.utc),
    )
    logger.info(
        f"[session {session.id}] completed: {correct}/{len(session.questions)} "
        f"score={score} passed={passed}"
    )
    return CompletionResult(
        session=completed,
        score=score,
        passed=passed,
        correct=correct,
        total=len(session.questions),
    )


def expire_by_timeout(session: ExamSession, now: datetime | None = None) -> ExamSession:
    """Time ran out. Answers are kept as submitted."""
    if session.status is not SessionStatus.IN_PROGRESS:
        return session
    return replace(
        session,
        status=SessionStatus.TIMED_OUT,
        time_remaining_seconds=0,
        completed_at=now or datetime.now(timezone.utc),
    )


def expire_by_schedule(session: ExamSession, now: datetime | None = None) -> ExamSession:
    """The assessment's schedule window closed while the session was open."""
    if session.status is not SessionStatus.IN_PROGRESS:
        return session
    return replace(
        session,
        status=SessionStatus.EXPIRED,
        completed_at=now or datetime.now(timezone.utc),
    )


def record_tab_switch(session: ExamSession) -> ExamSession:
    if session.status is not SessionStatus.IN_PROGRESS:
        return session
    return replace(session, tab_switch_count=session.tab_switch_count + 1)


def tick(session: ExamSession, elapsed_seconds: int, now: datetime | None = None) -> ExamSession:
    """
    Count the timer down. Reaching zero times the session out.

    Negative or zero elapsed time is ignored.
    """
    if session.status is not SessionStatus.IN_PROGRESS or elapsed_seconds <= 0:
        return session

    remaining = max(0, session.time_remaining_seconds - elapsed_seconds)
    if remaining == 0:
        return expire_by_timeout(session, now)
    return replace(session, time_remaining_seconds=remaining)


def to_record(session: ExamSession) -> dict:
    """Persisted shape of a session."""
    return {
        "id": session.id,
        "status": session.status.value,
        "questionOrder": session.question_order,
        "answers": dict(session.answers),
        "timeRemainingSeconds": session.time_remaining_seconds,
        "tabSwitchCount": session.tab_switch_count,
        "score": session.score,
        "passed": session.passed,
        "completedAt": session.completed_at.isoformat() if session.completed_at else None,
        "startedAt": session.started_at.isoformat() if session.started_at else None,
    }


def from_record(record: dict, questions_by_id: dict[str, Question]) -> ExamSession:
    """
    Rebuild a session from its persisted shape.

    Question content is not stored with the session, so the caller supplies it.
    Ids in questionOrder with no matching question are dropped.
    """
    questions = tuple(
        questions_by_id[qid] for qid in record.get("questionOrder", []) if qid in questions_by_id
    )
    completed_at = record.get("completedAt")
    started_at = record.get("startedAt")
    return ExamSession(
        id=record["id"],
        questions=questions,
        status=SessionStatus(record.get("status", SessionStatus.IN_PROGRESS.value)),
        answers={str(k): int(v) for k, v in (record.get("answers") or {}).items()},
        time_remaining_seconds=int(record.get("timeRemainingSeconds", 0)),
        tab_switch_count=int(record.get("tabSwitchCount", 0)),
        score=record.get("score"),
        passed=record.get("passed"),
        completed_at=datetime.fromisoformat(completed_at) if completed_at else None,
        started_at=datetime.fromisoformat(started_at) if started_at else None,
    )
