"""Tests for the markdown note store."""

from __future__ import annotations

import pytest

from errors import PathTraversalError


class TestNotes:
    async def test_write_and_read(self, notes):
        await notes.write("projects", "memo", "# Memo\n\nThree stores.")
        assert await notes.read("projects", "memo") == "# Memo\n\nThree stores."
        assert (notes.base / "projects" / "memo.md").is_file()

    async def test_read_missing(self, notes):
        assert await notes.read("projects", "missing") is None

    async def test_overwrite(self, notes):
        await notes.write("tasks", "todo", "one")
        await notes.write("tasks", "todo", "two")
        assert await notes.read("tasks", "todo") == "two"

    async def test_list_docs(self, notes):
        await notes.write("tasks", "b", "")
        await notes.write("tasks", "a", "")
        (notes.base / "tasks" / "ignore.txt").write_text("x")

        assert await notes.list_docs("tasks") == ["a", "b"]

    async def test_list_missing_folder(self, notes):
        assert await notes.list_docs("nowhere") == []

    async def test_delete(self, notes):
        await notes.write("tasks", "done", "x")
        await notes.delete("tasks", "done")
        await notes.delete("tasks", "done")
        assert await notes.read("tasks", "done") is None

    async def test_nested_folder(self, notes):
        await notes.write("projects/memo", "design", "x")
        assert await notes.list_docs("projects/memo") == ["design"]


class TestPathTraversal:
    async def test_write_outside_base(self, notes):
        with pytest.raises(PathTraversalError):
            await notes.write("../outside", "escape", "x")
        assert not (notes.base.parent / "outside").exists()

    async def test_name_traversal(self, notes):
        with pytest.raises(PathTraversalError):
            await notes.write("projects", "../../escape", "x")

    async def test_sibling_prefix_is_outside(self, notes):
        # agent_notes2 starts with agent_notes but is not inside it
        with pytest.raises(PathTraversalError):
            await notes.write("../agent_notes2", "x", "x")

    async def test_read_and_list_outside_are_not_found(self, notes):
        assert await notes.read("..", "secret") is None
        assert await notes.list_docs("../..") == []

    async def test_delete_outside(self, notes):
        with pytest.raises(PathTraversalError):
            await notes.delete("..", "anything")
