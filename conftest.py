"""Shared fixtures: in-process Qdrant, fake Redis, temp notes dir, toy embedders."""

from __future__ import annotations

import hashlib
import re

import fakeredis
import numpy as np
import pytest
from qdrant_client import AsyncQdrantClient

from embeddings import Embedder, HashEmbedder
from facts import FactMemory
from notes import NoteMemory
from semantic import SemanticMemory

TEST_COLLECTION = "memories_test"
TEST_DIM = 64


class KeywordEmbedder(Embedder):
    """Bag-of-words vectors: texts sharing words score higher. Good enough for ranking tests."""

    name = "keyword"

    def embed_sync(self, text: str) -> list[float]:
        vector = np.zeros(self._dimension)
        for word in re.findall(r"\w+", text.lower()):
            bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % self._dimension
            vector[bucket] += 1.0
        norm = np.linalg.norm(vector)
        if norm == 0:
            vector[0] = 1.0
            norm = 1.0
        return (vector / norm).tolist()


@pytest.fixture
async def qdrant():
    client = AsyncQdrantClient(location=":memory:")
    yield client
    await client.close()


@pytest.fixture
def semantic(qdrant) -> SemanticMemory:
    """Engine over an in-memory Qdrant with keyword embeddings."""
    return SemanticMemory(
        client=qdrant,
        collection_name=TEST_COLLECTION,
        embedder=KeywordEmbedder(TEST_DIM),
    )


@pytest.fixture
def hash_semantic(qdrant) -> SemanticMemory:
    return SemanticMemory(
        client=qdrant,
        collection_name=TEST_COLLECTION,
        embedder=HashEmbedder(TEST_DIM),
    )


@pytest.fixture
async def facts():
    store = FactMemory(client=fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True))
    yield store
    await store.disconnect()


@pytest.fixture
def notes(tmp_path) -> NoteMemory:
    return NoteMemory(tmp_path / "agent_notes")
