# Application Scheduling Package
from .due_queue import (
    compute_due_count,
    compute_global_due_count,
    interleave_cards,
    select_due_batch,
)
from .progress import suspend_progress, unsuspend_progress, upsert_progress_on_answer
from .sm2 import calculate_next_review, grade_review
from .tally import apply_ratings, update_session_tally

__all__ = [
    "compute_due_count",
    "compute_global_due_count",
    "interleave_cards",
    "select_due_batch",
    "suspend_progress",
    "unsuspend_progress",
    "upsert_progress_on_answer",
    "calculate_next_review",
    "grade_review",
    "apply_ratings",
    "update_session_tally",
]
