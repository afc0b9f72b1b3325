#!/usr/bin/env python3
"""
memo-mcp - Agent Memory MCP Server

Three independent memory stores exposed as MCP tools:
- Notes: markdown files in folders (exact documents)
- Facts: key/value pairs in a Redis hash (exact recall)
- Semantic memory: Qdrant vector search over sentence-transformers embeddings
"""

from __future__ import annotations

import asyncio

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from config import CONFIG
from errors import MemoError
from facts import FactMemory
from notes import NoteMemory
from semantic import SemanticMemory
from utils import log

# =============================================================================
# Stores (Lazy Singletons)
# =============================================================================

_semantic: SemanticMemory | None = None
_facts: FactMemory | None = None
_notes: NoteMemory | None = None


def get_semantic() -> SemanticMemory:
    """Get or create the semantic memory engine."""
    global _semantic
    if _semantic is None:
        _semantic = SemanticMemory()
    return _semantic


def get_facts() -> FactMemory:
    """Get or create the Redis fact store."""
    global _facts
    if _facts is None:
        _facts = FactMemory()
    return _facts


def get_notes() -> NoteMemory:
    """Get or create the markdown note store."""
    global _notes
    if _notes is None:
        _notes = NoteMemory()
    return _notes


def _fail(action: str, error: Exception) -> ToolError:
    """Log and wrap a store error as a user-facing tool error."""
    log(f"{action} failed ({getattr(error, 'kind', type(error).__name__)}): {error}", "ERROR")
    return ToolError(f"Error {action}: {error}")


# =============================================================================
# FastMCP Server
# =============================================================================

mcp = FastMCP(
    "memo-mcp",
    instructions=(
        "Agent memory: markdown notes for documents, key/value facts for exact recall, "
        "and semantic memory for contextual search"
    ),
)

# -----------------------------------------------------------------------------
# Notes
# -----------------------------------------------------------------------------


@mcp.tool(
    annotations={
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
    }
)
async def write_note(folder: str, name: str, content: str) -> str:
    """Write a note to file memory. Notes are stored as markdown files in organized folders.

    Args:
        folder: The folder name to organize the note (e.g., 'projects', 'tasks')
        name: The name of the note file (without extension)
        content: The markdown content of the note
    """
    try:
        await get_notes().write(folder, name, content)
    except MemoError as e:
        raise _fail("saving note", e) from e
    log(f"Note saved: {folder}/{name}")
    return f"Successfully saved note to {folder}/{name}.md"


@mcp.tool(
    annotations={
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
    }
)
async def read_note(folder: str, name: str) -> str:
    """Read a note from file memory.

    Args:
        folder: The folder where the note is located
        name: The name of the note to read
    """
    try:
        text = await get_notes().read(folder, name)
    except MemoError as e:
        raise _fail("reading note", e) from e
    if text is None:
        raise ToolError(f"Note '{name}' not found in folder '{folder}'.")
    return text


@mcp.tool(
    annotations={
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
    }
)
async def list_notes(folder: str) -> str:
    """List all notes in a specific folder.

    Args:
        folder: The folder to list notes from
    """
    try:
        names = await get_notes().list_docs(folder)
    except MemoError as e:
        raise _fail("listing notes", e) from e
    if not names:
        return f"No notes found in folder '{folder}'."
    return f"Notes in '{folder}':\n- " + "\n- ".join(names)


@mcp.tool(
    annotations={
        "readOnlyHint": False,
        "destructiveHint": True,
        "idempotentHint": True,
    }
)
async def forget_note(folder: str, name: str) -> str:
    """Delete a note from file memory.

    Args:
        folder: The folder where the note is located
        name: The name of the note to delete
    """
    try:
        await get_notes().delete(folder, name)
    except MemoError as e:
        raise _fail("deleting note", e) from e
    return f"Successfully deleted note {folder}/{name}.md"


# -----------------------------------------------------------------------------
# Semantic memory
# -----------------------------------------------------------------------------


@mcp.tool(
    annotations={
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
    }
)
async def remember(text: str, metadata: dict | None = None) -> str:
    """Save text to semantic memory for later contextual search.

    Args:
        text: The text content to remember
        metadata: Optional metadata to associate with this memory
    """
    if not text.strip():
        raise ToolError("Error: text is required")
    try:
        memory_id = await get_semantic().remember(text, metadata or {})
    except MemoError as e:
        raise _fail("saving to semantic memory", e) from e
    return f"Successfully saved to semantic memory (ID: {memory_id})."


@mcp.tool(
    annotations={
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
    }
)
async def search_memory(query: str, n: int = CONFIG.default_results) -> str:
    """Search semantic memory for information relevant to a query.

    Args:
        query: The search query
        n: Number of results to return (1-20, default 5)
    """
    if not query.strip():
        raise ToolError("Error: query is required")
    if not 1 <= n <= CONFIG.max_results:
        raise ToolError(f"Error: n must be between 1 and {CONFIG.max_results}, got {n}")
    try:
        result = await get_semantic().search(query, n)
    except MemoError as e:
        raise _fail("searching memory", e) from e
    return result.model_dump_json(indent=2)


@mcp.tool(
    annotations={
        "readOnlyHint": False,
        "destructiveHint": True,
        "idempotentHint": False,
    }
)
async def forget_memory(id: str | None = None, query: str | None = None) -> str:
    """Delete a memory from semantic memory using its ID or a similarity query.

    A query deletes the single closest memory, however distant. Use search_memory
    and forget by ID for exact control.

    Args:
        id: The specific ID of the memory to forget
        query: A query to find and forget the most similar memory
    """
    semantic = get_semantic()
    try:
        if id:
            await semantic.forget(id)
            return f"Successfully forgot memory with ID {id}"
        if query:
            count = await semantic.forget_by_query(query)
            if count > 0:
                return f"Successfully forgot memory similar to: {query}"
            return "No similar memory found to forget."
    except MemoError as e:
        raise _fail("forgetting memory", e) from e
    raise ToolError("Please provide either an 'id' or a 'query'.")


@mcp.tool(
    annotations={
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": False,
    }
)
async def checkpoint_semantic() -> str:
    """Trigger a manual snapshot of the semantic memory (Qdrant)."""
    try:
        snapshot_name = await get_semantic().create_snapshot()
    except MemoError as e:
        raise _fail("creating semantic snapshot", e) from e
    return f"Semantic snapshot created: {snapshot_name}"


# -----------------------------------------------------------------------------
# Facts
# -----------------------------------------------------------------------------


@mcp.tool(
    annotations={
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": True,
    }
)
async def remember_fact(key: str, value: str) -> str:
    """Save a specific fact as a key-value pair for exact recall.

    Args:
        key: The unique key for this fact
        value: The value or description of the fact
    """
    try:
        await get_facts().remember(key, value)
    except MemoError as e:
        raise _fail("saving fact", e) from e
    return f"Successfully saved fact: {key}"


@mcp.tool(
    annotations={
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
    }
)
async def recall_fact(key: str) -> str:
    """Retrieve a specific fact by its key.

    Args:
        key: The key of the fact to retrieve
    """
    try:
        fact = await get_facts().recall(key)
    except MemoError as e:
        raise _fail("recalling fact", e) from e
    if fact is None:
        raise ToolError(f'Fact "{key}" not found.')
    return f'Fact "{key}": {fact.value}\nLast updated: {fact.updated_at}'


@mcp.tool(
    annotations={
        "readOnlyHint": False,
        "destructiveHint": True,
        "idempotentHint": True,
    }
)
async def forget_fact(key: str) -> str:
    """Delete a fact from the key-value store.

    Args:
        key: The key of the fact to forget
    """
    try:
        await get_facts().forget(key)
    except MemoError as e:
        raise _fail("forgetting fact", e) from e
    return f"Successfully forgot fact: {key}"


@mcp.tool(
    annotations={
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
    }
)
async def list_facts() -> str:
    """List all known facts from the key-value store."""
    try:
        facts = await get_facts().get_all()
    except MemoError as e:
        raise _fail("listing facts", e) from e
    if not facts:
        return "No facts found in the store."
    return "Stored facts:\n- " + "\n- ".join(facts)


@mcp.tool(
    annotations={
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": False,
    }
)
async def checkpoint_facts() -> str:
    """Trigger a manual persistent snapshot (RDB) of all facts in Redis."""
    try:
        await get_facts().checkpoint()
    except MemoError as e:
        raise _fail("triggering checkpoint", e) from e
    return "Manual checkpoint (BGSAVE) triggered successfully."


# =============================================================================
# Server Entry Point
# =============================================================================


async def run_server():
    """Validate config, connect to Redis, then serve MCP over stdio."""
    CONFIG.validate()
    try:
        await get_facts().connect()
        log("Connected to Redis")
    except MemoError as e:
        log(f"Failed to connect to Redis, fact tools may not work: {e}", "ERROR")
    try:
        await mcp.run_stdio_async()
    finally:
        if _semantic is not None:
            await _semantic.close()
        await get_facts().disconnect()


def main():
    """Entry point."""
    asyncio.run(run_server())


if __name__ == "__main__":
    main()
