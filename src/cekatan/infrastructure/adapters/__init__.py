# Infrastructure Adapters Package
from .http_collaborators import HttpCardCreator, HttpCardDrafter
from .kv_store import InMemoryKeyValueStore, JsonFileKeyValueStore
from .session_store import InMemorySessionRepository, SessionEntry
from .text_document import TextDocumentExtractor

__all__ = [
    "HttpCardCreator",
    "HttpCardDrafter",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "InMemorySessionRepository",
    "SessionEntry",
    "TextDocumentExtractor",
]
