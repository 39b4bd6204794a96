# Domain Session Package
from .models import (
    AssessmentPolicy,
    CompletionResult,
    ExamSession,
    PastAttempt,
    Question,
    SessionStatus,
)

__all__ = [
    "AssessmentPolicy",
    "CompletionResult",
    "ExamSession",
    "PastAttempt",
    "Question",
    "SessionStatus",
]
