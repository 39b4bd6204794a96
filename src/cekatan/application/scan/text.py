"""Page text cleanup and multi-page stitching for the scan loop."""

import re
from collections.abc import Iterable
from dataclasses import dataclass

_PAGE_NUMBER = re.compile(r"^\d+$")
_HEADER_FOOTER = re.compile(r"^(chapter|section|page)\s*\d+$", re.IGNORECASE)
_COPYRIGHT = re.compile(r"copyright|©|\(c\)", re.IGNORECASE)


@dataclass(frozen=True)
class PageText:
    page_number: int
    text: str


def page_marker(page_number: int) -> str:
    return f"--- Page {page_number} ---"


def clean_page_text(raw_text: str) -> str:
    """
    Strip headers, footers, bare page numbers and copyright lines.

    Short lines (< 5 chars) within three lines of either edge are treated as
    header/footer noise. Blank lines are dropped and runs of spaces collapse.
    """
    lines = raw_text.split("\n")
    kept: list[str] = []

    for index, line in enumerate(lines):
        trimmed = line.strip()
        if not trimmed:
            continue

        near_edge = index < 3 or index >= len(lines) - 3
        if near_edge and len(trimmed) < 5:
            continue
        if _PAGE_NUMBER.match(trimmed):
            continue
        if _HEADER_FOOTER.match(trimmed):
            continue
        if _COPYRIGHT.search(trimmed) and len(trimmed) < 100:
            continue

        kept.append(line)

    result = "\n".join(kept)
    result = re.sub(r"\n{3,}", "\n\n", result)
    result = re.sub(r"[ \t]+", " ", result)
    return result.strip()


def combine_page_texts(pages: Iterable[PageText]) -> str:
    """
    Join consecutive pages into one prompt.

    The first page is emitted as-is; every following page is preceded by a
    `--- Page N ---` marker so the drafter can tell where the break was.
    """
    parts: list[str] = []
    for i, page in enumerate(pages):
        if i == 0:
            parts.append(page.text)
        else:
            parts.append(f"{page_marker(page.page_number)}\n{page.text}")
    return "\n\n".join(parts)
