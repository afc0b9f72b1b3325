"""
Embedding providers for semantic memory.

- local:  sentence-transformers (mean pooling, normalized), default all-MiniLM-L6-v2
- ollama: Ollama /api/embeddings over HTTP, normalized with numpy
- hash:   deterministic hash-seeded vectors, no semantic meaning (offline/tests)

All providers return unit-length vectors so cosine similarity is meaningful.
Blocking work (model inference, HTTP) runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import hashlib
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import requests

from errors import ConfigurationError, EmbeddingError
from utils import log

if TYPE_CHECKING:
    from sentence_transformers import SentenceTransformer


def _normalize(embedding: np.ndarray) -> list[float]:
    norm = np.linalg.norm(embedding)
    return (embedding / norm).tolist() if norm > 0 else embedding.tolist()


class Embedder(ABC):
    """Base class: turns text into a fixed-length unit vector."""

    name = "base"

    def __init__(self, dimension: int):
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        """Reported (nominal) output size. The engine trusts observed lengths over this."""
        return self._dimension

    @abstractmethod
    def embed_sync(self, text: str) -> list[float]:
        """Blocking embed of one text."""

    async def embed(self, text: str) -> list[float]:
        """Embed text without blocking the event loop."""
        try:
            return await asyncio.to_thread(self.embed_sync, text)
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(f"{self.name} embedding failed: {e}") from e


class SentenceTransformerEmbedder(Embedder):
    """Local sentence-transformers model, loaded once per instance."""

    name = "local"

    def __init__(self, model_name: str, cache_dir: Path | None = None, dimension: int = 384):
        super().__init__(dimension)
        self.model_name = model_name
        self.cache_dir = cache_dir
        self._model: SentenceTransformer | None = None

    def load(self) -> None:
        """Load the model and adopt its reported dimension."""
        if self._model is not None:
            return
        try:
            from sentence_transformers import SentenceTransformer

            if self.cache_dir is not None:
                self.cache_dir.mkdir(parents=True, exist_ok=True)
            log(f"Loading embedding model {self.model_name}", "DEBUG")
            self._model = SentenceTransformer(
                self.model_name,
                cache_folder=str(self.cache_dir) if self.cache_dir else None,
            )
        except Exception as e:
            raise EmbeddingError(f"Failed to load embedding model {self.model_name}: {e}") from e
        reported = self._model.get_sentence_embedding_dimension()
        if reported:
            self._dimension = int(reported)

    def embed_sync(self, text: str) -> list[float]:
        self.load()
        embedding = self._model.encode(text, normalize_embeddings=True, convert_to_numpy=True)
        return np.asarray(embedding, dtype=np.float32).tolist()


class OllamaEmbedder(Embedder):
    """Embeddings from a running Ollama server."""

    name = "ollama"

    def __init__(self, model_name: str, base_url: str, dimension: int, timeout: float = 30):
        super().__init__(dimension)
        self.model_name = model_name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def embed_sync(self, text: str) -> list[float]:
        response = requests.post(
            f"{self.base_url}/api/embeddings",
            json={"model": self.model_name, "prompt": text},
            timeout=self.timeout,
        )
        response.raise_for_status()
        embedding = np.array(response.json().get("embedding", []), dtype=np.float64)
        if embedding.size == 0:
            raise EmbeddingError(f"Ollama returned an empty embedding for model {self.model_name}")
        return _normalize(embedding)


class HashEmbedder(Embedder):
    """
    Deterministic hash-based embedding.
    Not real semantic meaning: identical text maps to identical vectors, nothing more.
    """

    name = "hash"

    def embed_sync(self, text: str) -> list[float]:
        seed = int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:8], "big")
        values = np.random.default_rng(seed).standard_normal(self._dimension)
        return _normalize(values)


def create_embedder(
    provider: str,
    model_name: str,
    dimension: int,
    cache_dir: Path | None = None,
    ollama_base_url: str = "http://localhost:11434",
) -> Embedder:
    """Build the embedding provider named by EMBEDDING_PROVIDER."""
    provider = provider.lower()
    if provider == "local":
        embedder = SentenceTransformerEmbedder(model_name, cache_dir=cache_dir, dimension=dimension)
        embedder.load()
        return embedder
    if provider == "ollama":
        return OllamaEmbedder(model_name, ollama_base_url, dimension)
    if provider == "hash":
        log("Using hash embeddings (no semantic quality)", "WARNING")
        return HashEmbedder(dimension)
    raise ConfigurationError(f"Unknown embedding provider '{provider}'. Valid: local, ollama, hash")
