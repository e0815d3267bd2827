"""Retrieval types and collaborator contracts for menu RAG."""

import math
from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True)
class DurationWindow:
    """Inclusive duration range (minutes) a stored menu must fall in."""

    min: int
    max: int

    @classmethod
    def around(cls, duration: int, ratio: float) -> "DurationWindow":
        """Window of +/- ``ratio`` around ``duration``, widened to whole minutes."""
        return cls(min=math.floor(duration * (1 - ratio)), max=math.ceil(duration * (1 + ratio)))

    def contains(self, duration: int) -> bool:
        return self.min <= duration <= self.max


@dataclass(frozen=True)
class RetrievalHit:
    """A stored menu returned by similarity search.

    Attributes:
        id: Stored menu identifier
        metadata: Stored metadata (title, description, totalTime, duration, intensity, ...)
        similarity: Cosine similarity to the query
    """

    id: str
    metadata: dict[str, Any] = field(default_factory=dict)
    similarity: float = 0.0


class EmbeddingProvider(Protocol):
    async def embed(self, text: str, credentials: str) -> list[float]: ...


class RetrievalStore(Protocol):
    async def query_nearest(
        self,
        vector: list[float],
        top_k: int,
        duration_filter: DurationWindow | None = None,
    ) -> list[RetrievalHit]: ...
