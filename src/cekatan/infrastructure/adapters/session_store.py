"""In-memory storage of exam sessions for the HTTP server."""

from dataclasses import dataclass, replace

from cekatan.domain.session.models import (
    AssessmentPolicy,
    ExamSession,
    PastAttempt,
    SessionStatus,
)


@dataclass(frozen=True)
class SessionEntry:
    session: ExamSession
    policy: AssessmentPolicy
    assessment_id: str
    candidate_id: str


class InMemorySessionRepository:
    """
    Sessions keyed by id. Not shared between processes; a restart loses them.
    """

    def __init__(self):
        self._entries: dict[str, SessionEntry] = {}

    def add(self, entry: SessionEntry) -> None:
        self._entries[entry.session.id] = entry

    def get(self, session_id: str) -> SessionEntry | None:
        return self._entries.get(session_id)

    def update(self, session: ExamSession) -> SessionEntry:
        entry = replace(self._entries[session.id], session=session)
        self._entries[session.id] = entry
        return entry

    def open_session(self, assessment_id: str, candidate_id: str) -> ExamSession | None:
        for entry in self._entries.values():
            if (
                entry.assessment_id == assessment_id
                and entry.candidate_id == candidate_id
                and entry.session.status is SessionStatus.IN_PROGRESS
            ):
                return entry.session
        return None

    def past_attempts(self, assessment_id: str, candidate_id: str) -> list[PastAttempt]:
        """Finished sessions only; an open session is not a past attempt."""
        return [
            PastAttempt(
                session_id=e.session.id,
                status=e.session.status,
                completed_at=e.session.completed_at,
            )
            for e in self._entries.values()
            if e.assessment_id == assessment_id
            and e.candidate_id == candidate_id
            and e.session.status.is_terminal
        ]

    def in_progress(self) -> list[SessionEntry]:
        return [e for e in self._entries.values() if e.session.status is SessionStatus.IN_PROGRESS]

    def clear(self) -> None:
        self._entries.clear()
