# Application Session Package
from .admission import check_admission, select_questions, start_or_resume
from .expiry import close_schedule_window, expire_stale_sessions, is_past_deadline
from .state_machine import (
    calculate_score,
    complete_session,
    create_session,
    determine_passed,
    expire_by_schedule,
    expire_by_timeout,
    record_tab_switch,
    submit_answer,
    tick,
)

__all__ = [
    "check_admission",
    "select_questions",
    "start_or_resume",
    "close_schedule_window",
    "expire_stale_sessions",
    "is_past_deadline",
    "calculate_score",
    "complete_session",
    "create_session",
    "determine_passed",
    "expire_by_schedule",
    "expire_by_timeout",
    "record_tab_switch",
    "submit_answer",
    "tick",
]
