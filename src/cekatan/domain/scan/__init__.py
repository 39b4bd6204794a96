# Domain Scan Package
from .models import (
    AIMode,
    AutoScanState,
    AutoScanStats,
    CardDraft,
    CreateCardsPayload,
    RetryPolicy,
    SafetyPolicy,
    ScanOutcome,
    SkippedPage,
)

__all__ = [
    "AIMode",
    "AutoScanState",
    "AutoScanStats",
    "CardDraft",
    "CreateCardsPayload",
    "RetryPolicy",
    "SafetyPolicy",
    "ScanOutcome",
    "SkippedPage",
]
