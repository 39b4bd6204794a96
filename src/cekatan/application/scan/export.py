"""Operator-facing JSON export of a scan's skip log and counters."""

import json
from datetime import datetime, timezone
from typing import Any

from cekatan.application.scan.checkpoint import skipped_model, stats_model
from cekatan.domain.scan.models import AutoScanState


def build_export(
    state: AutoScanState,
    deck_id: str,
    source_id: str,
    now: datetime | None = None,
) -> dict[str, Any]:
    timestamp = (now or datetime.now(timezone.utc)).isoformat()
    return {
        "skippedPages": [
            skipped_model(s).model_dump(by_alias=True) for s in state.skipped_pages
        ],
        "stats": stats_model(state.stats).model_dump(by_alias=True),
        "timestamp": timestamp,
        "deckId": deck_id,
        "sourceId": source_id,
    }


def export_json(
    state: AutoScanState,
    deck_id: str,
    source_id: str,
    now: datetime | None = None,
) -> str:
    return json.dumps(build_export(state, deck_id, source_id, now), indent=2)


def export_filename(now: datetime | None = None) -> str:
    millis = int((now or datetime.now(timezone.utc)).timestamp() * 1000)
    return f"autoscan-log-{millis}.json"
