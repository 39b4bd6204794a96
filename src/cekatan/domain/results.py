"""
Tagged result values returned across every collaborator boundary.

    Ok(data=...)      -> ok is True
    Err(error="...")  -> ok is False
"""

from dataclasses import dataclass
from typing import Generic, Literal, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    data: T
    ok: Literal[True] = True


@dataclass(frozen=True)
class Err:
    error: str
    ok: Literal[False] = False


Result = Ok[T] | Err
