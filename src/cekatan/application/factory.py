"""
Adapter Factory
Centralizes construction of stores, collaborators and scanners from AppConfig.
"""

from pathlib import Path

from cekatan.application.config import AppConfig
from cekatan.application.scan.checkpoint import CheckpointStore
from cekatan.application.scan.scanner import AutoScanner
from cekatan.domain.ports import CardCreator, CardDrafter, KeyValueStore
from cekatan.domain.scan.models import RetryPolicy, SafetyPolicy
from cekatan.infrastructure.adapters.http_collaborators import HttpCardCreator, HttpCardDrafter
from cekatan.infrastructure.adapters.kv_store import JsonFileKeyValueStore
from cekatan.infrastructure.adapters.text_document import TextDocumentExtractor


def get_key_value_store(config: AppConfig) -> KeyValueStore:
    return JsonFileKeyValueStore(config.checkpoint_dir)


def get_checkpoint_store(config: AppConfig) -> CheckpointStore:
    return CheckpointStore(get_key_value_store(config))


def get_collaborators(config: AppConfig) -> tuple[CardDrafter, CardCreator]:
    """Returns the (drafter, creator) pair. The caller owns closing them."""
    drafter = HttpCardDrafter(url=config.drafter_url, timeout=config.request_timeout)
    creator = HttpCardCreator(url=config.creator_url, timeout=config.request_timeout)
    return drafter, creator


def build_scanner(
    config: AppConfig,
    document: Path,
    deck_id: str,
    source_id: str | None = None,
    session_tags: list[str] | None = None,
    drafter: CardDrafter | None = None,
    creator: CardCreator | None = None,
) -> AutoScanner:
    """
    Wire an AutoScanner for a plain-text document.

    source_id defaults to the document's file stem. Collaborators default to
    the HTTP adapters at the configured URLs.
    """
    extractor = TextDocumentExtractor(document)
    if drafter is None or creator is None:
        default_drafter, default_creator = get_collaborators(config)
        drafter = drafter or default_drafter
        creator = creator or default_creator

    return AutoScanner(
        deck_id=deck_id,
        source_id=source_id or Path(document).stem,
        total_pages=extractor.total_pages,
        extractor=extractor,
        drafter=drafter,
        creator=creator,
        checkpoints=get_checkpoint_store(config),
        session_tags=session_tags,
        ai_mode=config.ai_mode,
        include_next_page=config.include_next_page,
        retry=RetryPolicy(max_attempts=config.max_attempts_per_page),
        safety=SafetyPolicy(max_consecutive_errors=config.max_consecutive_errors),
        delay_seconds=config.scan_delay_seconds,
    )
