# Application Scan Package
from .checkpoint import CheckpointStore, checkpoint_key
from .export import build_export, export_json
from .scanner import AutoScanner, PageResult
from .text import PageText, clean_page_text, combine_page_texts
from .transitions import scan_outcome

__all__ = [
    "CheckpointStore",
    "checkpoint_key",
    "build_export",
    "export_json",
    "AutoScanner",
    "PageResult",
    "PageText",
    "clean_page_text",
    "combine_page_texts",
    "scan_outcome",
]
