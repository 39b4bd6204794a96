"""
Auto-scan driver: walks a document page by page and turns each page into cards.

Per page: extract text, draft cards, create them. A failing page is tried
again (see RetryPolicy) and then skipped. Consecutive failures trip the
safety stop (see SafetyPolicy). State is checkpointed after every mutation
so a restarted process can resume at the same page.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from cekatan.application.scan.checkpoint import CheckpointStore, checkpoint_key
from cekatan.application.scan.export import build_export
from cekatan.application.scan.text import PageText, combine_page_texts
from cekatan.application.scan.transitions import (
    advance_page,
    halt_scan,
    new_scan_state,
    pause_scan,
    reached_safety_stop,
    record_page_skip,
    record_page_success,
    reset_scan,
    resume_scan,
    scan_outcome,
    start_scan,
    stop_scan,
)
from cekatan.domain.constants import MIN_PAGE_TEXT_LENGTH, SCAN_DELAY_SECONDS
from cekatan.domain.errors import PageProcessingError
from cekatan.domain.ports import CardCreator, CardDrafter, PageTextExtractor
from cekatan.domain.scan.models import (
    AIMode,
    AutoScanState,
    AutoScanStats,
    CreateCardsPayload,
    RetryPolicy,
    SafetyPolicy,
    ScanOutcome,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageResult:
    """Outcome of one page after all its attempts."""

    page_number: int
    ok: bool
    cards_created: int = 0
    attempts: int = 1
    reason: str | None = None


class AutoScanner:
    """
    One scan of one source document into one deck.

    At most one scanner should run per (deck, source) pair; the checkpoint key
    is scoped to that pair. pause()/stop() take effect between pages: a page
    already in flight finishes, including its retry, before the loop halts.
    """

    def __init__(
        self,
        deck_id: str,
        source_id: str,
        total_pages: int,
        extractor: PageTextExtractor,
        drafter: CardDrafter,
        creator: CardCreator,
        checkpoints: CheckpointStore,
        session_tags: list[str] | None = None,
        ai_mode: AIMode = "extract",
        include_next_page: bool = False,
        retry: RetryPolicy | None = None,
        safety: SafetyPolicy | None = None,
        delay_seconds: float = SCAN_DELAY_SECONDS,
        on_page_complete: Callable[[int, int], None] | None = None,
        on_error: Callable[[int, str], None] | None = None,
        on_complete: Callable[[AutoScanStats], None] | None = None,
        on_safety_stop: Callable[[], None] | None = None,
    ):
        """
        Args:
            deck_id: Collection new cards are created in.
            source_id: Document being scanned.
            total_pages: Page count of the document.
            extractor: Page text port.
            drafter: AI drafting port.
            creator: Batch card creation port.
            checkpoints: Where state is saved after every change.
            session_tags: Tags applied to every created card.
            ai_mode: 'extract' existing questions or 'generate' new ones.
            include_next_page: Send page N together with N+1 to the drafter.
            retry: Attempts per page; defaults to 2.
            safety: Consecutive failures before halting; defaults to 3.
            delay_seconds: Pause between pages.
        """
        self.deck_id = deck_id
        self.source_id = source_id
        self.extractor = extractor
        self.drafter = drafter
        self.creator = creator
        self.checkpoints = checkpoints
        self.session_tags = list(session_tags or [])
        self.ai_mode = ai_mode
        self.include_next_page = include_next_page
        self.retry = retry or RetryPolicy()
        self.safety = safety or SafetyPolicy()
        self.delay_seconds = delay_seconds

        self.on_page_complete = on_page_complete
        self.on_error = on_error
        self.on_complete = on_complete
        self.on_safety_stop = on_safety_stop

        self.key = checkpoint_key(deck_id, source_id)
        self.state = new_scan_state(total_pages)
        self.has_resumable_state = False
        self._hydrate(total_pages)

    # ------------------------------------------------------------------
    # Checkpointing
    # ------------------------------------------------------------------

    def _hydrate(self, total_pages: int) -> None:
        saved = self.checkpoints.load(self.key)
        if saved is None:
            return

        if saved.total_pages != total_pages:
            logger.warning(
                f"[scan {self.key}] Checkpoint is for {saved.total_pages} pages, "
                f"document has {total_pages}; starting fresh"
            )
            return

        # Loaded idle. Only a run that was cut off mid-scan offers a resume;
        # paused, stopped and safety-stopped checkpoints were halted on purpose.
        self.state = replace(saved, is_scanning=False)
        self.has_resumable_state = saved.is_scanning and saved.current_page <= saved.total_pages
        logger.info(
            f"[scan {self.key}] Restored checkpoint at page {saved.current_page}/{total_pages}"
        )

    def _set(self, state: AutoScanState) -> None:
        self.state = state
        self.checkpoints.save(self.key, state)

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    async def start(self, start_page: int = 1) -> AutoScanState:
        """Start at `start_page` (page 1 resets counters) and run to a halt."""
        if self.state.total_pages <= 0:
            logger.warning(f"[scan {self.key}] Document has no pages; nothing to scan")
            return self.state

        self._set(start_scan(self.state, start_page))
        self.has_resumable_state = False
        logger.info(
            f"[scan {self.key}] Starting at page {self.state.current_page}/{self.state.total_pages}"
        )
        return await self.run()

    async def resume(self) -> AutoScanState:
        """Continue from the checkpointed page. Never rewinds to page 1."""
        resumed = resume_scan(self.state)
        if not resumed.is_scanning:
            return self.state

        self._set(resumed)
        self.has_resumable_state = False
        logger.info(f"[scan {self.key}] Resuming at page {self.state.current_page}")
        return await self.run()

    def pause(self) -> AutoScanState:
        self._set(pause_scan(self.state))
        return self.state

    def stop(self) -> AutoScanState:
        self._set(stop_scan(self.state))
        return self.state

    def reset(self) -> AutoScanState:
        self.state = reset_scan(self.state)
        self.has_resumable_state = False
        self.checkpoints.clear(self.key)
        return self.state

    @property
    def outcome(self) -> ScanOutcome:
        return scan_outcome(self.state, self.safety)

    def export_log(self, now: datetime | None = None) -> dict[str, Any]:
        return build_export(self.state, self.deck_id, self.source_id, now)

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def run(self) -> AutoScanState:
        """
        Process pages until the document ends, the safety stop trips, or
        pause()/stop() is called. Page failures are never raised from here.
        """
        while self.state.is_scanning:
            page = self.state.current_page

            if page > self.state.total_pages:
                self._set(halt_scan(self.state))
                self._finish()
                break

            result = await self.process_page(page)

            if result.ok:
                self._set(record_page_success(self.state, result.cards_created))
                if self.on_page_complete:
                    self.on_page_complete(page, result.cards_created)
            else:
                reason = result.reason or "Unknown error"
                self._set(record_page_skip(self.state, page, reason))
                logger.warning(f"[scan {self.key}] Skipped page {page}: {reason}")
                if self.on_error:
                    self.on_error(page, reason)

                if reached_safety_stop(self.state, self.safety):
                    logger.warning(
                        f"[scan {self.key}] Safety stop: "
                        f"{self.state.consecutive_errors} consecutive errors at page {page}"
                    )
                    self._set(halt_scan(self.state))
                    if self.on_safety_stop:
                        self.on_safety_stop()
                    break

            self._set(advance_page(self.state))

            if self.state.current_page > self.state.total_pages:
                self._finish()
                break

            if self.state.is_scanning and self.delay_seconds > 0:
                await asyncio.sleep(self.delay_seconds)

        return self.state

    def _finish(self) -> None:
        stats = self.state.stats
        logger.info(
            f"[scan {self.key}] Finished: {stats.pages_processed} pages, "
            f"{stats.cards_created} cards, {stats.errors_count} errors"
        )
        if self.on_complete:
            self.on_complete(stats)

    async def process_page(self, page_number: int) -> PageResult:
        """Run one page through extract/draft/create, retrying per the policy."""
        reason = "Unknown error"
        max_attempts = max(1, self.retry.max_attempts)

        for attempt in range(1, max_attempts + 1):
            try:
                created = await self._attempt_page(page_number)
                return PageResult(page_number, ok=True, cards_created=created, attempts=attempt)
            except Exception as e:
                reason = str(e) or type(e).__name__
                if attempt < max_attempts:
                    logger.info(
                        f"[scan {self.key}] Retrying page {page_number} "
                        f"({attempt}/{max_attempts} failed: {reason})"
                    )

        return PageResult(page_number, ok=False, attempts=max_attempts, reason=reason)

    async def _attempt_page(self, page_number: int) -> int:
        """Returns the number of cards created. Raises on any collaborator failure."""
        text = await self.extractor.extract_page_text(page_number)

        if self.include_next_page and page_number < self.state.total_pages:
            next_text = await self.extractor.extract_page_text(page_number + 1)
            text = combine_page_texts(
                [PageText(page_number, text), PageText(page_number + 1, next_text)]
            )

        if not text or len(text) < MIN_PAGE_TEXT_LENGTH:
            logger.debug(f"[scan {self.key}] Page {page_number} has too little text; skipping")
            return 0

        drafted = await self.drafter.draft(text, self.ai_mode, self.session_tags)
        if not drafted.ok:
            raise PageProcessingError(page_number, drafted.error or "AI draft failed")

        if not drafted.data:
            return 0

        payload = CreateCardsPayload(
            target_collection_id=self.deck_id,
            session_tags=self.session_tags,
            cards=list(drafted.data),
        )
        saved = await self.creator.create_cards(payload)
        if not saved.ok:
            raise PageProcessingError(page_number, saved.error or "Save failed")

        return saved.data
