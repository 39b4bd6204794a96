"""
Pure state transitions for the auto-scan loop.

Each function takes an AutoScanState and returns a new one. The async
driver in scanner.py calls these and checkpoints after every call.
"""

from dataclasses import replace
from datetime import datetime, timezone

from cekatan.domain.scan.models import (
    AutoScanState,
    SafetyPolicy,
    ScanOutcome,
    SkippedPage,
)


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(timezone.utc)


def new_scan_state(total_pages: int, now: datetime | None = None) -> AutoScanState:
    return AutoScanState(total_pages=max(0, total_pages), last_updated=_now(now))


def start_scan(
    state: AutoScanState, start_page: int = 1, now: datetime | None = None
) -> AutoScanState:
    """
    Begin scanning at `start_page`.

    A page outside 1..total_pages falls back to page 1. Starting at page 1
    is a fresh start: counters and the skip log are cleared. A document with
    no pages cannot be scanned.
    """
    if state.total_pages <= 0:
        return state

    effective = start_page if 1 <= start_page <= state.total_pages else 1
    base = new_scan_state(state.total_pages, now) if effective == 1 else state
    return replace(base, is_scanning=True, current_page=effective, last_updated=_now(now))


def resume_scan(state: AutoScanState, now: datetime | None = None) -> AutoScanState:
    """Continue from the saved page with every counter intact."""
    if state.total_pages <= 0 or state.current_page > state.total_pages:
        return state
    return replace(state, is_scanning=True, last_updated=_now(now))


def record_page_success(
    state: AutoScanState, cards_created: int, now: datetime | None = None
) -> AutoScanState:
    """A page went through. Zero cards created is still a success."""
    stats = replace(
        state.stats,
        cards_created=state.stats.cards_created + max(0, cards_created),
        pages_processed=state.stats.pages_processed + 1,
    )
    return replace(state, stats=stats, consecutive_errors=0, last_updated=_now(now))


def record_page_skip(
    state: AutoScanState, page_number: int, reason: str, now: datetime | None = None
) -> AutoScanState:
    """A page failed every attempt: log it and count the error."""
    skipped = SkippedPage(page_number=page_number, reason=reason or "Unknown error")
    stats = replace(state.stats, errors_count=state.stats.errors_count + 1)
    return replace(
        state,
        stats=stats,
        skipped_pages=(*state.skipped_pages, skipped),
        consecutive_errors=state.consecutive_errors + 1,
        last_updated=_now(now),
    )


def reached_safety_stop(state: AutoScanState, policy: SafetyPolicy | None = None) -> bool:
    policy = policy or SafetyPolicy()
    return state.consecutive_errors >= policy.max_consecutive_errors


def advance_page(state: AutoScanState, now: datetime | None = None) -> AutoScanState:
    """Move to the next page; running off the end finishes the scan."""
    next_page = state.current_page + 1
    finished = next_page > state.total_pages
    return replace(
        state,
        current_page=next_page,
        is_scanning=state.is_scanning and not finished,
        last_updated=_now(now),
    )


def halt_scan(state: AutoScanState, now: datetime | None = None) -> AutoScanState:
    """Stop the loop, keeping page, counters and skip log."""
    if not state.is_scanning:
        return state
    return replace(state, is_scanning=False, last_updated=_now(now))


# Pause and stop differ only in how the caller presents them.
pause_scan = halt_scan
stop_scan = halt_scan


def reset_scan(state: AutoScanState, now: datetime | None = None) -> AutoScanState:
    return new_scan_state(state.total_pages, now)


def scan_outcome(state: AutoScanState, policy: SafetyPolicy | None = None) -> ScanOutcome:
    """Tell apart a finished scan, a safety stop and a user pause."""
    if state.is_scanning:
        return ScanOutcome.RUNNING
    if state.total_pages > 0 and state.current_page > state.total_pages:
        return ScanOutcome.COMPLETED
    if reached_safety_stop(state, policy):
        return ScanOutcome.SAFETY_STOPPED
    return ScanOutcome.PAUSED


def progress_percent(state: AutoScanState) -> float:
    if state.total_pages <= 0:
        return 0.0
    return min(state.current_page / state.total_pages * 100, 100.0)
