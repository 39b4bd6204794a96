"""
Durable checkpoints for the auto-scan loop.

State is stored as camelCase JSON under a key derived from the (deck, source)
pair, through whatever KeyValueStore adapter is injected. Neither direction
raises: a missing, unparseable or invalid value reads as "no checkpoint", and
a failed write is logged while the scan carries on.
"""

import logging
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from cekatan.domain.constants import CHECKPOINT_KEY_PREFIX
from cekatan.domain.ports import KeyValueStore
from cekatan.domain.scan.models import AutoScanState, AutoScanStats, SkippedPage

logger = logging.getLogger(__name__)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StatsModel(_CamelModel):
    cards_created: int = Field(default=0, ge=0)
    pages_processed: int = Field(default=0, ge=0)
    errors_count: int = Field(default=0, ge=0)


class SkippedPageModel(_CamelModel):
    page_number: int = Field(gt=0)
    reason: str = Field(min_length=1)


class CheckpointModel(_CamelModel):
    is_scanning: bool
    current_page: int = Field(ge=1)
    total_pages: int = Field(ge=0)
    stats: StatsModel
    skipped_pages: list[SkippedPageModel] = Field(default_factory=list)
    consecutive_errors: int = Field(default=0, ge=0)
    last_updated: datetime

    @classmethod
    def from_state(cls, state: AutoScanState) -> "CheckpointModel":
        return cls(
            is_scanning=state.is_scanning,
            current_page=state.current_page,
            total_pages=state.total_pages,
            stats=stats_model(state.stats),
            skipped_pages=[skipped_model(s) for s in state.skipped_pages],
            consecutive_errors=state.consecutive_errors,
            last_updated=state.last_updated,
        )

    def to_state(self) -> AutoScanState:
        return AutoScanState(
            is_scanning=self.is_scanning,
            current_page=self.current_page,
            total_pages=self.total_pages,
            stats=AutoScanStats(
                cards_created=self.stats.cards_created,
                pages_processed=self.stats.pages_processed,
                errors_count=self.stats.errors_count,
            ),
            skipped_pages=tuple(
                SkippedPage(page_number=s.page_number, reason=s.reason)
                for s in self.skipped_pages
            ),
            consecutive_errors=self.consecutive_errors,
            last_updated=self.last_updated,
        )


def stats_model(stats: AutoScanStats) -> StatsModel:
    return StatsModel(
        cards_created=stats.cards_created,
        pages_processed=stats.pages_processed,
        errors_count=stats.errors_count,
    )


def skipped_model(skipped: SkippedPage) -> SkippedPageModel:
    return SkippedPageModel(page_number=skipped.page_number, reason=skipped.reason)


def checkpoint_key(deck_id: str, source_id: str) -> str:
    return f"{CHECKPOINT_KEY_PREFIX}_{deck_id}_{source_id}"


class CheckpointStore:
    """
    save/load/clear of AutoScanState over a KeyValueStore port.

    Each (deck, source) pair owns one key, so two scans of different
    documents never share a checkpoint.
    """

    def __init__(self, kv: KeyValueStore):
        self._kv = kv

    def save(self, key: str, state: AutoScanState) -> None:
        payload = CheckpointModel.from_state(state).model_dump_json(by_alias=True)
        try:
            self._kv.set(key, payload)
        except OSError as e:
            logger.warning(f"[checkpoint] Failed to save {key}: {e}")

    def load(self, key: str) -> AutoScanState | None:
        raw = self._kv.get(key)
        if raw is None:
            return None
        try:
            return CheckpointModel.model_validate_json(raw).to_state()
        except ValidationError as e:
            logger.warning(
                f"[checkpoint] Ignoring unreadable checkpoint {key}: "
                f"{e.error_count()} validation error(s)"
            )
            return None

    def clear(self, key: str) -> None:
        self._kv.delete(key)
