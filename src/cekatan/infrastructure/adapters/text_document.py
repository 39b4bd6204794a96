"""
Page extraction from plain-text documents.

Pages are separated by form feeds (\\f), which is what `pdftotext` emits.
"""

import logging
from pathlib import Path

from cekatan.application.scan.text import clean_page_text
from cekatan.domain.ports import PageTextExtractor

logger = logging.getLogger(__name__)

PAGE_SEPARATOR = "\f"


class TextDocumentExtractor(PageTextExtractor):
    def __init__(self, path: Path):
        self.path = Path(path)
        raw = self.path.read_text(encoding="utf-8")
        pages = raw.split(PAGE_SEPARATOR)
        # pdftotext ends the last page with a form feed too
        if len(pages) > 1 and not pages[-1].strip():
            pages = pages[:-1]
        self._pages = pages
        logger.debug(f"[extract] {self.path.name}: {len(pages)} page(s)")

    @property
    def total_pages(self) -> int:
        return len(self._pages)

    async def extract_page_text(self, page_number: int) -> str:
        if page_number < 1 or page_number > len(self._pages):
            raise ValueError(f"Invalid page number: {page_number}")
        return clean_page_text(self._pages[page_number - 1])
