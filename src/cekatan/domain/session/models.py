"""
Domain models for timed assessment sessions.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class SessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self is not SessionStatus.IN_PROGRESS


@dataclass(frozen=True)
class Question:
    """
    A multiple-choice question as seen by the session.

    Attributes:
        id: Card template id.
        options: Answer options in display order.
        correct_index: Index into options of the right answer.
    """

    id: str
    options: tuple[str, ...]
    correct_index: int

    @property
    def option_count(self) -> int:
        return len(self.options)


@dataclass(frozen=True)
class ExamSession:
    """
    One candidate's attempt at a timed exam.

    Instances are never mutated; every transition returns a new session, or
    the same object when the transition is a no-op. `answers` must be treated
    as read-only.
    """

    id: str
    questions: tuple[Question, ...]
    time_remaining_seconds: int
    status: SessionStatus = SessionStatus.IN_PROGRESS
    answers: dict[str, int] = field(default_factory=dict)
    tab_switch_count: int = 0
    started_at: datetime | None = None

    # Written once, at the terminal transition
    score: int | None = None
    passed: bool | None = None
    completed_at: datetime | None = None

    @property
    def question_order(self) -> list[str]:
        return [q.id for q in self.questions]

    def question(self, question_id: str) -> Question | None:
        for q in self.questions:
            if q.id == question_id:
                return q
        return None


@dataclass(frozen=True)
class CompletionResult:
    """What complete_session hands back: the session plus the graded score."""

    session: ExamSession
    score: int
    passed: bool
    correct: int = 0
    total: int = 0


@dataclass(frozen=True)
class AssessmentPolicy:
    """
    Exam settings that gate who may start a session and how it is built.

    All limits are optional. If not set, that check is skipped.
    """

    time_limit_minutes: int
    pass_score: int
    question_count: int
    shuffle_questions: bool = False
    start_date: datetime | None = None
    end_date: datetime | None = None
    max_attempts: int | None = None
    cooldown_minutes: int | None = None
    access_code: str | None = None

    @property
    def time_limit_seconds(self) -> int:
        return self.time_limit_minutes * 60


@dataclass(frozen=True)
class PastAttempt:
    """A previous session by the same candidate for the same assessment."""

    session_id: str
    status: SessionStatus
    completed_at: datetime | None = None
