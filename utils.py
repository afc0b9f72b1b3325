"""Shared utility functions for memo-mcp."""

from __future__ import annotations

import hashlib
import sys
import time
import uuid
from datetime import datetime, timezone

from config import CONFIG

_LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}
_CONFIG_LEVELS = {"debug": "DEBUG", "info": "INFO", "warn": "WARNING", "error": "ERROR"}


def log(message: str, level: str = "INFO") -> None:
    """Write a log line to stderr (stdout carries the MCP stdio transport)."""
    threshold = _LEVELS[_CONFIG_LEVELS.get(CONFIG.log_level, "INFO")]
    if _LEVELS.get(level, 20) < threshold:
        return
    print(f"[memo-mcp] {level}: {message}", file=sys.stderr)


def content_id(text: str) -> str:
    """Derive a stable point ID from text content.

    MD5 hex digest re-grouped as 8-4-4-4-12, which Qdrant accepts as a UUID:
        content_id("hello") -> 5d41402a-bc4b-2a76-b971-9d911017c592
    """
    digest = hashlib.md5(text.encode("utf-8")).hexdigest()
    return str(uuid.UUID(hex=digest))


def now_ts() -> float:
    """Current time as float seconds since the epoch."""
    return time.time()


def now_iso() -> str:
    """Get current UTC timestamp as ISO string."""
    return datetime.now(timezone.utc).isoformat()
