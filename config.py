"""Server configuration for memo-mcp, read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from errors import ConfigurationError

load_dotenv()

LOG_LEVELS = ("debug", "info", "warn", "error")
EMBEDDING_PROVIDERS = frozenset({"local", "ollama", "hash"})


@dataclass(frozen=True, slots=True)
class Config:
    """Server configuration with sensible defaults."""

    redis_host: str = os.environ.get("REDIS_HOST", "localhost")
    redis_port: int = int(os.environ.get("REDIS_PORT", "6379"))
    facts_key: str = "agent:facts"
    qdrant_url: str = os.environ.get("QDRANT_URL", "http://localhost:6333")
    qdrant_api_key: str | None = os.environ.get("QDRANT_API_KEY") or None
    qdrant_collection: str = os.environ.get("QDRANT_COLLECTION", "memories")
    embedding_provider: str = os.environ.get("EMBEDDING_PROVIDER", "local")  # local | ollama | hash
    embed_model: str = os.environ.get("EMBED_MODEL", "sentence-transformers/all-MiniLM-L6-v2")
    embedding_dim: int = int(os.environ.get("EMBEDDING_DIM", "384"))  # all-MiniLM-L6-v2
    ollama_base_url: str = os.environ.get("OLLAMA_BASE_URL", "http://localhost:11434")
    notes_dir: Path = Path(os.environ.get("NOTES_DIR", "./agent_notes"))
    log_level: str = os.environ.get("LOG_LEVEL", "info").lower()
    default_results: int = 5
    max_results: int = 20

    @property
    def model_cache_dir(self) -> Path:
        return self.notes_dir / ".cache"

    def validate(self) -> None:
        """Raise ConfigurationError if any setting is out of range."""
        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid LOG_LEVEL '{self.log_level}'. Valid: {', '.join(LOG_LEVELS)}"
            )
        if self.embedding_provider not in EMBEDDING_PROVIDERS:
            raise ConfigurationError(
                f"Invalid EMBEDDING_PROVIDER '{self.embedding_provider}'. "
                f"Valid: {sorted(EMBEDDING_PROVIDERS)}"
            )
        if self.embedding_dim <= 0:
            raise ConfigurationError(f"EMBEDDING_DIM must be positive, got {self.embedding_dim}")


CONFIG = Config()
