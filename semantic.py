"""
Semantic memory engine backed by Qdrant.

Turns text into embeddings, stores them under content-derived IDs and answers
nearest-neighbour queries. Before every operation the collection is checked
against the expected configuration (vector size, on-disk storage) and
recreated if it has drifted. Recreation drops the stored points.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from qdrant_client import AsyncQdrantClient, models

from config import CONFIG
from embeddings import Embedder, create_embedder
from errors import EmbeddingError, MemoError, VectorIndexError
from models import RESERVED_PAYLOAD_KEYS, CollectionConfig, SearchResult
from utils import content_id, log, now_ts

T = TypeVar("T")

UNNAMED_SNAPSHOT = "unnamed_snapshot"


def default_embedder() -> Embedder:
    """Build the embedding provider described by CONFIG."""
    return create_embedder(
        CONFIG.embedding_provider,
        CONFIG.embed_model,
        CONFIG.embedding_dim,
        cache_dir=CONFIG.model_cache_dir,
        ollama_base_url=CONFIG.ollama_base_url,
    )


def _live_vector_params(info: models.CollectionInfo) -> models.VectorParams | None:
    """VectorParams of an unnamed-vector collection, None for named vectors."""
    vectors = info.config.params.vectors
    return vectors if isinstance(vectors, models.VectorParams) else None


class SemanticMemory:
    """Remember/search/forget text in a Qdrant collection.

    Each instance owns its CollectionConfig and its embedding provider, so
    several engines (e.g. in tests) never share expectations.
    """

    def __init__(
        self,
        client: AsyncQdrantClient | None = None,
        collection_name: str | None = None,
        embedder: Embedder | None = None,
        embedder_factory: Callable[[], Embedder] = default_embedder,
        collection_config: CollectionConfig | None = None,
        url: str | None = None,
        api_key: str | None = None,
    ):
        """
        Args:
            client: Qdrant client (created from url/api_key when omitted)
            collection_name: Target collection (default QDRANT_COLLECTION)
            embedder: Ready embedding provider; skips lazy creation
            embedder_factory: Builds the provider on first use when embedder is None
            collection_config: Initial expectation (default: provider's reported size)
            url: Qdrant URL or ':memory:'
            api_key: Optional Qdrant API key
        """
        self.client = client or AsyncQdrantClient(
            location=url or CONFIG.qdrant_url,
            api_key=api_key if api_key is not None else CONFIG.qdrant_api_key,
        )
        self.collection_name = collection_name or CONFIG.qdrant_collection
        self._embedder = embedder
        self._embedder_factory = embedder_factory
        self._adopt_reported_size = collection_config is None
        if collection_config is None:
            size = embedder.dimension if embedder is not None else CONFIG.embedding_dim
            collection_config = CollectionConfig(vector_size=size)
        self.config = collection_config
        self._embedder_lock = asyncio.Lock()
        self._collection_lock = asyncio.Lock()

    # =========================================================================
    # Readiness
    # =========================================================================

    async def ensure_embedder(self) -> Embedder:
        """Create the embedding provider once and adopt its reported dimension."""
        if self._embedder is not None:
            return self._embedder
        async with self._embedder_lock:
            if self._embedder is None:
                try:
                    embedder = await asyncio.to_thread(self._embedder_factory)
                except MemoError:
                    raise
                except Exception as e:
                    raise EmbeddingError(f"Failed to create embedding provider: {e}") from e
                if self._adopt_reported_size and embedder.dimension != self.config.vector_size:
                    log(
                        f"Provider reports {embedder.dimension}-d vectors, "
                        f"expected {self.config.vector_size}; using provider size",
                        "DEBUG",
                    )
                    self.config.vector_size = embedder.dimension
                self._embedder = embedder
        return self._embedder

    async def ensure_collection(self) -> bool:
        """Make sure the collection exists and matches self.config.

        Returns True if the collection was created or recreated.
        """
        async with self._collection_lock:
            try:
                response = await self.client.get_collections()
                if self.collection_name not in {c.name for c in response.collections}:
                    await self._create_collection()
                    return True

                info = await self.client.get_collection(self.collection_name)
                live = _live_vector_params(info)
                if (
                    live is not None
                    and live.size == self.config.vector_size
                    and live.on_disk is self.config.on_disk
                    and live.distance == models.Distance(self.config.distance)
                ):
                    return False

                log(
                    f"Collection '{self.collection_name}' configuration mismatch "
                    f"(live={live}; expected size={self.config.vector_size}, "
                    f"on_disk={self.config.on_disk}, distance={self.config.distance}). "
                    "Recreating collection.",
                    "WARNING",
                )
                await self.client.delete_collection(self.collection_name)
                await self._create_collection()
                return True
            except Exception as e:
                log(f"Error ensuring Qdrant collection: {e}", "ERROR")
                raise VectorIndexError(f"Failed to ensure collection '{self.collection_name}': {e}") from e

    async def _create_collection(self) -> None:
        try:
            await self.client.create_collection(
                collection_name=self.collection_name,
                vectors_config=models.VectorParams(
                    size=self.config.vector_size,
                    distance=models.Distance(self.config.distance),
                    on_disk=self.config.on_disk,
                ),
            )
            log(f"Created collection '{self.collection_name}' ({self.config.vector_size}-d)")
        except Exception as e:
            # Another caller created it first
            if "already exists" in str(e).lower():
                log(f"Collection '{self.collection_name}' already exists", "DEBUG")
                return
            raise

    async def ensure_ready(self) -> None:
        """Embedding provider first (it may fix the vector size), then collection."""
        await self.ensure_embedder()
        await self.ensure_collection()

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _embed(self, text: str) -> list[float]:
        embedder = await self.ensure_embedder()
        embedding = await embedder.embed(text)
        if len(embedding) != self.config.vector_size:
            log(
                f"Embedding size mismatch: expected {self.config.vector_size}, got {len(embedding)}",
                "WARNING",
            )
            # Takes effect at the next ensure_collection()
            self.config.vector_size = len(embedding)
        return embedding

    async def _call(self, operation: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except Exception as e:
            raise VectorIndexError(f"Qdrant {operation} failed: {e}") from e

    @staticmethod
    def _build_payload(text: str, metadata: dict[str, Any] | None) -> dict[str, Any]:
        metadata = dict(metadata or {})
        clobbered = RESERVED_PAYLOAD_KEYS & metadata.keys()
        if clobbered:
            log(f"Ignoring reserved metadata keys: {sorted(clobbered)}", "WARNING")
        extra = {k: v for k, v in metadata.items() if k not in RESERVED_PAYLOAD_KEYS}
        return {"document": text, **extra, "timestamp": now_ts()}

    # =========================================================================
    # Operations
    # =========================================================================

    @staticmethod
    def identity_for(text: str) -> str:
        """Point ID for text. Same text, same ID: remembering twice overwrites."""
        return content_id(text)

    async def remember(self, text: str, metadata: dict[str, Any] | None = None) -> str:
        """Embed and upsert text, returning its point ID."""
        await self.ensure_ready()
        embedding = await self._embed(text)
        point_id = self.identity_for(text)
        point = models.PointStruct(
            id=point_id,
            vector=embedding,
            payload=self._build_payload(text, metadata),
        )
        await self._call(
            "upsert",
            self.client.upsert(collection_name=self.collection_name, points=[point], wait=True),
        )
        log(f"Semantic memory added: {text[:50]}...", "DEBUG")
        return point_id

    async def search(self, query: str, results_count: int) -> SearchResult:
        """Top results_count memories by cosine similarity, best first."""
        await self.ensure_ready()
        embedding = await self._embed(query)
        response = await self._call(
            "search",
            self.client.query_points(
                collection_name=self.collection_name,
                query=embedding,
                limit=results_count,
                with_payload=True,
            ),
        )

        ids, documents, metadatas, scores = [], [], [], []
        for point in response.points:
            payload = dict(point.payload or {})
            ids.append(str(point.id))
            documents.append(payload.pop("document", None))
            metadatas.append(payload)
            scores.append(point.score)

        return SearchResult(
            ids=[ids],
            documents=[documents],
            metadatas=[metadatas],
            scores=[scores],
            distances=[[1 - s for s in scores]],
        )

    async def forget(self, point_id: str) -> None:
        """Delete a point by ID. Unknown IDs are not an error."""
        await self.ensure_ready()
        await self._call(
            "delete",
            self.client.delete(
                collection_name=self.collection_name,
                points_selector=models.PointIdsList(points=[point_id]),
                wait=True,
            ),
        )

    async def forget_by_query(self, query: str) -> int:
        """Delete the single closest memory to query, however distant.

        Returns the number of deleted points (0 or 1).
        """
        await self.ensure_ready()
        embedding = await self._embed(query)
        response = await self._call(
            "search",
            self.client.query_points(
                collection_name=self.collection_name,
                query=embedding,
                limit=1,
                with_payload=False,
            ),
        )
        if not response.points:
            return 0
        closest = response.points[0]
        await self._call(
            "delete",
            self.client.delete(
                collection_name=self.collection_name,
                points_selector=models.PointIdsList(points=[closest.id]),
                wait=True,
            ),
        )
        log(f"Forgot memory {closest.id} (score {closest.score:.3f})", "DEBUG")
        return 1

    async def create_snapshot(self) -> str:
        """Trigger a Qdrant snapshot of the collection and return its name."""
        await self.ensure_collection()
        result = await self._call(
            "snapshot", self.client.create_snapshot(collection_name=self.collection_name)
        )
        return result.name if result is not None and result.name else UNNAMED_SNAPSHOT

    async def close(self) -> None:
        await self.client.close()
