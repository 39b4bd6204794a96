"""
Ports (interfaces) for the collaborators the engines depend on.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod

from cekatan.domain.results import Result
from cekatan.domain.scan.models import AIMode, CardDraft, CreateCardsPayload


class KeyValueStore(ABC):
    """
    Port for durable string key-value storage.

    Implementations:
        - InMemoryKeyValueStore: process-local dict, used in tests.
        - JsonFileKeyValueStore: one file per key under a directory.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the key. Deleting a missing key is not an error."""
        pass


class PageTextExtractor(ABC):
    """Port for pulling text out of one page of a source document."""

    @abstractmethod
    async def extract_page_text(self, page_number: int) -> str:
        """
        Args:
            page_number: 1-based page index.

        Returns:
            Cleaned page text. May raise; the scan loop counts that as a failure.
        """
        pass


class CardDrafter(ABC):
    """Port for the AI drafting collaborator."""

    @abstractmethod
    async def draft(
        self, text: str, mode: AIMode, default_tags: list[str]
    ) -> Result[list[CardDraft]]:
        """
        Draft cards from text.

        Returns:
            Ok with the drafts (an empty list is a valid zero-yield result),
            or Err with a message.
        """
        pass


class CardCreator(ABC):
    """Port for the batch card creation collaborator."""

    @abstractmethod
    async def create_cards(self, payload: CreateCardsPayload) -> Result[int]:
        """
        Persist drafted cards.

        Returns:
            Ok with the number of cards created, or Err with a message.
        """
        pass
