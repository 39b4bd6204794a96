"""
Point-in-time expiry sweeps.

There is no background timer: callers run these checks on page load or on a
schedule, and stale sessions are closed at that moment.
"""

import logging
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from cekatan.application.session.state_machine import expire_by_schedule, expire_by_timeout, grade
from cekatan.domain.session.models import ExamSession, SessionStatus

logger = logging.getLogger(__name__)


def deadline_for(session: ExamSession, time_limit_seconds: int) -> datetime | None:
    if session.started_at is None:
        return None
    return session.started_at + timedelta(seconds=time_limit_seconds)


def is_past_deadline(
    session: ExamSession, time_limit_seconds: int, now: datetime | None = None
) -> bool:
    deadline = deadline_for(session, time_limit_seconds)
    if deadline is None:
        return False
    return (now or datetime.now(timezone.utc)) > deadline


def expire_stale_sessions(
    sessions: Iterable[ExamSession],
    time_limit_seconds: int,
    pass_score: int,
    now: datetime | None = None,
) -> list[ExamSession]:
    """
    Time out every in-progress session whose deadline has passed.

    Stale sessions are graded on the answers they already hold. Only the
    sessions that changed are returned.
    """
    now = now or datetime.now(timezone.utc)
    expired: list[ExamSession] = []

    for session in sessions:
        if session.status is not SessionStatus.IN_PROGRESS:
            continue
        if not is_past_deadline(session, time_limit_seconds, now):
            continue

        _, score, passed = grade(session, pass_score)
        timed_out = replace(expire_by_timeout(session, now), score=score, passed=passed)
        expired.append(timed_out)

    if expired:
        logger.info(f"[expiry] timed out {len(expired)} stale session(s)")
    return expired


def close_schedule_window(
    sessions: Iterable[ExamSession],
    end_date: datetime | None,
    now: datetime | None = None,
) -> list[ExamSession]:
    """Expire open sessions once the assessment's end date has passed."""
    now = now or datetime.now(timezone.utc)
    if end_date is None or end_date >= now:
        return []
    return [
        expire_by_schedule(s, now) for s in sessions if s.status is SessionStatus.IN_PROGRESS
    ]
