"""
Validated wire shapes for progress data read from files and HTTP bodies.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator

from cekatan.domain.constants import DEFAULT_EASE_FACTOR, MIN_EASE_FACTOR
from cekatan.domain.scheduling.models import ProgressRecord


class ProgressRecordModel(BaseModel):
    card_id: str
    collection_id: str
    next_review: datetime
    interval: int = Field(default=0, ge=0)
    ease_factor: float = Field(default=DEFAULT_EASE_FACTOR, ge=MIN_EASE_FACTOR)
    repetitions: int = Field(default=0, ge=0)
    suspended: bool = False
    correct_count: int = Field(default=0, ge=0)
    total_attempts: int = Field(default=0, ge=0)
    last_answered_at: datetime | None = None
    is_flagged: bool = False
    notes: str | None = None

    @field_validator("next_review", "last_answered_at")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        # Naive timestamps are UTC
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_record(self) -> ProgressRecord:
        return ProgressRecord(**self.model_dump())


class ProgressSnapshot(BaseModel):
    """A user's candidate cards plus their progress records."""

    card_ids: list[str] = Field(default_factory=list)
    progress: list[ProgressRecordModel] = Field(default_factory=list)

    def records(self) -> list[ProgressRecord]:
        return [p.to_record() for p in self.progress]

    def progress_by_card(self) -> dict[str, ProgressRecord]:
        return {p.card_id: p.to_record() for p in self.progress}
