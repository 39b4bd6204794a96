"""
Due-card selection for study sessions.

Builds ordered study batches by:
1. Splitting candidates into due (has progress, next_review <= now, not suspended)
   and new (no progress record)
2. Paginating the due portion, oldest next_review first
3. Interleaving a capped number of new cards into the first batch

This is a pure computation module with no I/O.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import TypeVar

from cekatan.domain.constants import (
    BATCH_SIZE,
    NEW_CARD_INTERLEAVE_RATIO,
    NEW_CARDS_FALLBACK_LIMIT,
)
from cekatan.domain.scheduling.models import DueBatch, ProgressRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


def compute_due_count(
    records: Iterable[ProgressRecord], collection_id: str, now: datetime
) -> int:
    """
    Count progress records in a collection whose next_review is at or before now.

    Unknown collections simply count zero.
    """
    return sum(1 for r in records if r.collection_id == collection_id and r.next_review <= now)


def compute_global_due_count(records: Iterable[ProgressRecord], now: datetime) -> int:
    """Due count across every collection the records belong to."""
    return sum(1 for r in records if r.next_review <= now)


def interleave_cards(due: Sequence[T], new: Sequence[T], ratio: int) -> list[T]:
    """
    Insert one new card after every `ratio` due cards.

    New cards left over once the due cards run out are appended at the end.
    """
    if not new:
        return list(due)
    if not due:
        return list(new)

    ratio = max(1, ratio)
    result: list[T] = []
    new_index = 0

    for i, card in enumerate(due):
        result.append(card)
        if (i + 1) % ratio == 0 and new_index < len(new):
            result.append(new[new_index])
            new_index += 1

    result.extend(new[new_index:])
    return result


def select_due_batch(
    candidate_card_ids: Iterable[str],
    progress_by_card: Mapping[str, ProgressRecord],
    now: datetime,
    page_size: int = BATCH_SIZE,
    new_card_cap: int = NEW_CARDS_FALLBACK_LIMIT,
    interleave_ratio: int = NEW_CARD_INTERLEAVE_RATIO,
    batch_number: int = 0,
) -> DueBatch:
    """
    Select one batch of cards to study.

    Args:
        candidate_card_ids: Active cards across the user's subscribed collections.
        progress_by_card: The user's scheduling state keyed by card id.
        now: Reference time for due-ness.
        page_size: Due cards per batch.
        new_card_cap: Maximum new cards offered (first batch only).
        interleave_ratio: Due cards between consecutive new cards.
        batch_number: Zero-based page over the due portion.

    Returns:
        DueBatch with the ordered card ids and pagination info.
    """
    candidates = list(dict.fromkeys(candidate_card_ids))

    due_records = [
        progress_by_card[cid]
        for cid in candidates
        if cid in progress_by_card and progress_by_card[cid].is_due(now)
    ]
    due_records.sort(key=lambda r: r.next_review)

    new_ids = [cid for cid in candidates if cid not in progress_by_card]
    capped_new = new_ids[: max(0, new_card_cap)]

    total_due = len(due_records) + len(capped_new)
    if total_due == 0:
        return DueBatch(
            card_ids=[], total_due=0, has_more_batches=False, is_new_cards_fallback=False
        )

    # Out-of-range pages are empty, not errors
    if batch_number < 0 or page_size <= 0:
        return DueBatch(
            card_ids=[], total_due=total_due, has_more_batches=False, is_new_cards_fallback=False
        )

    offset = batch_number * page_size
    due_page = [r.card_id for r in due_records[offset : offset + page_size]]

    if batch_number == 0 and capped_new:
        card_ids = interleave_cards(due_page, capped_new, interleave_ratio)
    else:
        card_ids = due_page

    logger.debug(
        f"[due] batch={batch_number} due={len(due_records)} new={len(new_ids)} "
        f"(capped {len(capped_new)}) -> {len(card_ids)} cards"
    )

    return DueBatch(
        card_ids=card_ids,
        total_due=total_due,
        has_more_batches=total_due > offset + page_size,
        is_new_cards_fallback=len(due_records) == 0 and len(new_ids) > 0,
    )
