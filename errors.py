"""Exceptions raised by the memo-mcp stores.

The command layer in server.py turns these into user-facing tool errors.
"""


class MemoError(Exception):
    """Base exception for all memo-mcp errors."""

    kind = "memo"


class ConfigurationError(MemoError):
    """Invalid configuration value."""

    kind = "configuration"


class EmbeddingError(MemoError):
    """Embedding provider failed to load or to embed text."""

    kind = "embedding"


class VectorIndexError(MemoError):
    """Qdrant call failed."""

    kind = "index"


class FactStoreError(MemoError):
    """Redis call failed."""

    kind = "facts"


class NoteStoreError(MemoError):
    """Note file could not be read or written."""

    kind = "notes"


class PathTraversalError(NoteStoreError, ValueError):
    """Note path resolves outside the notes directory."""
