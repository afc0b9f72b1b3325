"""Shared data models for memo-mcp."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Payload keys owned by the engine; caller metadata cannot override them.
RESERVED_PAYLOAD_KEYS = frozenset({"document", "timestamp"})


@dataclass(slots=True)
class CollectionConfig:
    """Expected configuration of the Qdrant collection.

    Mutable: vector_size is corrected forward when the embedding provider
    returns vectors of another length. Each SemanticMemory owns one.
    """

    vector_size: int
    on_disk: bool = True
    distance: str = "Cosine"


class Fact(BaseModel):
    """A key/value fact as stored in the Redis hash (JSON)."""

    model_config = ConfigDict(populate_by_name=True)

    value: str
    updated_at: str = Field(alias="updatedAt")


class SearchResult(BaseModel):
    """Nearest-neighbour results, batched per query.

    Every field is a list of per-query lists; a single search fills exactly
    one inner list each. `scores` are cosine similarities (1 is best) and
    `distances` are 1 - score.
    """

    ids: list[list[str]] = Field(default_factory=lambda: [[]])
    documents: list[list[str | None]] = Field(default_factory=lambda: [[]])
    metadatas: list[list[dict[str, Any]]] = Field(default_factory=lambda: [[]])
    scores: list[list[float]] = Field(default_factory=lambda: [[]])
    distances: list[list[float]] = Field(default_factory=lambda: [[]])

    @property
    def count(self) -> int:
        """Number of hits for the first (only) query."""
        return len(self.ids[0]) if self.ids else 0
