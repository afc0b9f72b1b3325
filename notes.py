"""Markdown note store: NOTES_DIR/<folder>/<name>.md"""

from __future__ import annotations

import asyncio
from pathlib import Path

from config import CONFIG
from errors import NoteStoreError, PathTraversalError

NOTE_SUFFIX = ".md"


class NoteMemory:
    """Notes kept as markdown files in folders under a base directory."""

    def __init__(self, base_path: Path | str | None = None):
        self.base = Path(base_path if base_path is not None else CONFIG.notes_dir).resolve()

    def _resolve_folder(self, folder: str) -> Path:
        folder_path = (self.base / folder).resolve()
        if not folder_path.is_relative_to(self.base):
            raise PathTraversalError(f"Invalid path: Path traversal detected ({folder})")
        return folder_path

    def _resolve_note(self, folder: str, name: str) -> Path:
        file_path = (self._resolve_folder(folder) / f"{name}{NOTE_SUFFIX}").resolve()
        if not file_path.is_relative_to(self.base) or file_path == self.base:
            raise PathTraversalError(f"Invalid path: Path traversal detected ({folder}/{name})")
        return file_path

    # Blocking file I/O, run in a worker thread by the async methods below

    def _write_sync(self, folder: str, name: str, content: str) -> Path:
        file_path = self._resolve_note(folder, name)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content, encoding="utf-8")
        return file_path

    def _read_sync(self, folder: str, name: str) -> str | None:
        try:
            return self._resolve_note(folder, name).read_text(encoding="utf-8")
        except (FileNotFoundError, IsADirectoryError, PathTraversalError):
            return None

    def _list_sync(self, folder: str) -> list[str]:
        try:
            folder_path = self._resolve_folder(folder)
        except PathTraversalError:
            return []
        if not folder_path.is_dir():
            return []
        return sorted(p.stem for p in folder_path.iterdir() if p.is_file() and p.suffix == NOTE_SUFFIX)

    def _delete_sync(self, folder: str, name: str) -> None:
        self._resolve_note(folder, name).unlink(missing_ok=True)

    async def write(self, folder: str, name: str, content: str) -> None:
        try:
            await asyncio.to_thread(self._write_sync, folder, name, content)
        except OSError as e:
            raise NoteStoreError(f"Failed to write note {folder}/{name}: {e}") from e

    async def read(self, folder: str, name: str) -> str | None:
        """Note content, or None if it does not exist."""
        try:
            return await asyncio.to_thread(self._read_sync, folder, name)
        except OSError as e:
            raise NoteStoreError(f"Failed to read note {folder}/{name}: {e}") from e

    async def list_docs(self, folder: str) -> list[str]:
        """Note names (without extension) in folder, sorted."""
        try:
            return await asyncio.to_thread(self._list_sync, folder)
        except OSError as e:
            raise NoteStoreError(f"Failed to list notes in {folder}: {e}") from e

    async def delete(self, folder: str, name: str) -> None:
        """Delete a note. A missing note is not an error."""
        try:
            await asyncio.to_thread(self._delete_sync, folder, name)
        except OSError as e:
            raise NoteStoreError(f"Failed to delete note {folder}/{name}: {e}") from e
