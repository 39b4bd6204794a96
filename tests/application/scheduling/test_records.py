from datetime import timezone

import pytest
from pydantic import ValidationError

from cekatan.application.scheduling.records import ProgressRecordModel, ProgressSnapshot


def test_naive_timestamps_are_utc():
    model = ProgressRecordModel(
        card_id="c1", collection_id="deck", next_review="2024-03-01T10:00:00"
    )
    assert model.next_review.tzinfo is timezone.utc


def test_snapshot_builds_records():
    snapshot = ProgressSnapshot.model_validate(
        {
            "card_ids": ["c1", "c2"],
            "progress": [
                {
                    "card_id": "c1",
                    "collection_id": "deck",
                    "next_review": "2024-03-01T10:00:00Z",
                    "interval": 3,
                }
            ],
        }
    )

    by_card = snapshot.progress_by_card()

    assert list(by_card) == ["c1"]
    assert by_card["c1"].interval == 3
    assert snapshot.records()[0].card_id == "c1"


def test_ease_below_floor_is_rejected():
    with pytest.raises(ValidationError):
        ProgressRecordModel(
            card_id="c1",
            collection_id="deck",
            next_review="2024-03-01T10:00:00Z",
            ease_factor=1.0,
        )
