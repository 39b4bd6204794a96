"""
Admission checks for starting (or resuming) an assessment session.

Decides whether a candidate may begin an attempt and, if so, which questions
the new session gets. Results are tagged Ok/Err values; nothing here raises
for a refused start.
"""

import hmac
import logging
import math
import random
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone

from cekatan.application.session.state_machine import create_session, generate_session_id
from cekatan.domain.results import Err, Ok, Result
from cekatan.domain.session.models import (
    AssessmentPolicy,
    ExamSession,
    PastAttempt,
    Question,
    SessionStatus,
)

logger = logging.getLogger(__name__)


def select_questions(
    question_pool: Sequence[Question],
    question_count: int,
    shuffle: bool = False,
    rng: random.Random | None = None,
) -> list[Question]:
    """
    Pick the questions for a new session.

    Shuffles with Fisher-Yates when requested, then takes the first
    `question_count`. The order returned is the order the session keeps.
    """
    picked = list(question_pool)
    if shuffle:
        rng = rng or random.SystemRandom()
        for i in range(len(picked) - 1, 0, -1):
            j = rng.randint(0, i)
            picked[i], picked[j] = picked[j], picked[i]
    return picked[: max(0, question_count)]


def _access_code_ok(expected: str, provided: str | None) -> bool:
    if provided is None:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


def check_admission(
    policy: AssessmentPolicy,
    past_attempts: Sequence[PastAttempt],
    access_code: str | None = None,
    now: datetime | None = None,
) -> Result[None]:
    """
    Validate access code, schedule window, attempt limit and cooldown.

    Args:
        policy: The assessment's settings.
        past_attempts: Earlier sessions of this candidate (excluding any
            session that is still in progress).
        access_code: Code supplied by the candidate, if any.
        now: Reference time.
    """
    now = now or datetime.now(timezone.utc)

    if policy.access_code and not _access_code_ok(policy.access_code, access_code):
        return Err("Invalid access code")

    if policy.start_date and policy.start_date > now:
        return Err("This assessment has not started yet")
    if policy.end_date and policy.end_date < now:
        return Err("This assessment has closed")

    if policy.max_attempts and len(past_attempts) >= policy.max_attempts:
        return Err("Maximum attempts reached")

    if policy.cooldown_minutes:
        completed = [a.completed_at for a in past_attempts if a.completed_at]
        if completed:
            cooldown_end = max(completed) + timedelta(minutes=policy.cooldown_minutes)
            if now < cooldown_end:
                minutes_left = math.ceil((cooldown_end - now).total_seconds() / 60)
                plural = "s" if minutes_left != 1 else ""
                return Err(f"Please wait {minutes_left} minute{plural} before retaking")

    return Ok(None)


def start_or_resume(
    policy: AssessmentPolicy,
    question_pool: Sequence[Question],
    past_attempts: Sequence[PastAttempt] = (),
    existing: ExamSession | None = None,
    access_code: str | None = None,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> Result[ExamSession]:
    """
    Start a new session, or hand back the candidate's open one.

    An in-progress session is resumed as-is (same questions, answers and
    remaining time) once the access code and schedule window still allow it.
    """
    now = now or datetime.now(timezone.utc)

    if existing is not None and existing.status is SessionStatus.IN_PROGRESS:
        gate = check_admission(policy, (), access_code, now)
        if not gate.ok:
            return gate
        logger.info(f"[admission] resuming session {existing.id}")
        return Ok(existing)

    gate = check_admission(policy, past_attempts, access_code, now)
    if not gate.ok:
        logger.info(f"[admission] refused: {gate.error}")
        return gate

    questions = select_questions(
        question_pool, policy.question_count, policy.shuffle_questions, rng
    )
    if not questions:
        return Err("No questions available")

    session = create_session(
        generate_session_id(), questions, policy.time_limit_seconds, started_at=now
    )
    logger.info(f"[admission] started session {session.id} with {len(questions)} questions")
    return Ok(session)
