"""
Domain models for the auto-scan ingestion loop.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Literal

from cekatan.domain.constants import MAX_ATTEMPTS_PER_PAGE, MAX_CONSECUTIVE_ERRORS

AIMode = Literal["extract", "generate"]


@dataclass(frozen=True)
class AutoScanStats:
    cards_created: int = 0
    pages_processed: int = 0
    errors_count: int = 0


@dataclass(frozen=True)
class SkippedPage:
    """A page given up on after exhausting its retries."""

    page_number: int
    reason: str

    def __post_init__(self):
        if self.page_number <= 0:
            raise ValueError(f"page_number must be positive, got {self.page_number}")
        if not self.reason:
            raise ValueError("reason must be non-empty")


@dataclass(frozen=True)
class AutoScanState:
    """
    Checkpointed progress of one scan over a (deck, source) pair.

    Attributes:
        is_scanning: True while the loop is active.
        current_page: Next page to process (1-based).
        total_pages: Page count of the source document.
        stats: Running counters.
        skipped_pages: Pages that failed every attempt, in order.
        consecutive_errors: Back-to-back failures; any success resets it.
        last_updated: Time of the last mutation.
    """

    total_pages: int
    last_updated: datetime
    is_scanning: bool = False
    current_page: int = 1
    stats: AutoScanStats = field(default_factory=AutoScanStats)
    skipped_pages: tuple[SkippedPage, ...] = ()
    consecutive_errors: int = 0


class ScanOutcome(str, Enum):
    """How an idle (or running) scan should be presented to the operator."""

    RUNNING = "running"
    COMPLETED = "completed"
    SAFETY_STOPPED = "safety_stopped"
    PAUSED = "paused"


@dataclass(frozen=True)
class RetryPolicy:
    """Total attempts per page, including the first one."""

    max_attempts: int = MAX_ATTEMPTS_PER_PAGE


@dataclass(frozen=True)
class SafetyPolicy:
    """Consecutive page failures that halt the loop."""

    max_consecutive_errors: int = MAX_CONSECUTIVE_ERRORS


@dataclass(frozen=True)
class CardDraft:
    """A multiple-choice card proposed by the drafting collaborator."""

    stem: str
    options: list[str]
    correct_index: int
    explanation: str | None = None
    tag_names: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CreateCardsPayload:
    """
    Batch sent to the card creation collaborator.

    target_collection_id must equal the deck the caller was invoked with.
    """

    target_collection_id: str
    session_tags: list[str]
    cards: list[CardDraft]
