"""
Exception hierarchy for cekatan.

State machines never raise for bad input (they return the input unchanged);
these exceptions are for collaborator failures crossing a port.
"""


class CekatanError(Exception):
    """Base exception for all cekatan errors."""


class PageProcessingError(CekatanError):
    """A page step failed inside the auto-scan loop. Retried, then skipped."""

    def __init__(self, page_number: int, reason: str):
        super().__init__(reason)
        self.page_number = page_number
        self.reason = reason


class CollaboratorError(CekatanError):
    """An external collaborator (drafting, card creation) could not be reached."""
