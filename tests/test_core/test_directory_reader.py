# tests/test_core/test_directory_reader.py
"""Unit tests for `DirectoryReader` and its path helpers.
=========================================================

This suite covers:

1. **Ordering**
   - The synthetic `..` entry comes first, then directories, then files.
   - The filesystem root has no `..` entry.

2. **Filtering**
   - Hidden entries are listed or skipped according to `show_hidden`.

3. **Failures**
   - Missing, non-directory and unreadable paths come back as classified
     errors inside the `ReadResult` instead of being raised.

4. **Lazy details**
   - `stat_entry` fills in size and modification time.
"""

import errno
import os
from pathlib import Path

import pytest

from twinpane.core.DirectoryReader import (
    PARENT_ENTRY,
    PARENT_NAME,
    DirectoryReader,
    Entry,
    is_ancestor_or_equal,
    parent_of,
    resolve,
    sort_entries,
)
from twinpane.core.Errors import ErrorKind


def names(listing) -> list[str]:
    return [entry.name for entry in listing]


class TestRead:
    def test_parent_first_then_directories_then_files(self, tree: Path) -> None:
        result = DirectoryReader(show_hidden=True).read(str(tree))

        assert result.ok
        assert result.listing[0] == PARENT_ENTRY
        dirs = [e for e in result.listing[1:] if e.is_dir]
        files = [e for e in result.listing[1:] if not e.is_dir]
        assert names(dirs) == ["docs", "empty", "src"]
        assert set(names(files)) == {".profile", "alpha.txt", "notes.txt"}
        # Every directory precedes every file.
        assert result.listing[1 : 1 + len(dirs)] == tuple(dirs)

    def test_hidden_entries_are_skipped(self, tree: Path) -> None:
        result = DirectoryReader(show_hidden=False).read(str(tree))

        assert ".profile" not in names(result.listing)
        assert names(result.listing)[0] == PARENT_NAME

    def test_empty_directory_has_only_parent(self, tree: Path) -> None:
        result = DirectoryReader().read(str(tree / "empty"))

        assert result.ok
        assert result.listing == (PARENT_ENTRY,)

    def test_root_has_no_parent_entry(self) -> None:
        result = DirectoryReader().read(os.path.abspath(os.sep))

        assert result.ok
        assert PARENT_NAME not in names(result.listing)

    def test_result_path_is_normalized(self, tree: Path) -> None:
        result = DirectoryReader().read(str(tree / "docs" / ".." / "src"))

        assert result.path == str(tree / "src")

    def test_missing_directory_is_not_found(self, tree: Path) -> None:
        result = DirectoryReader().read(str(tree / "missing"))

        assert not result.ok
        assert result.listing == ()
        assert result.error.kind is ErrorKind.NOT_FOUND

    def test_file_is_not_a_directory(self, tree: Path) -> None:
        result = DirectoryReader().read(str(tree / "notes.txt"))

        assert result.error.kind is ErrorKind.NOT_A_DIRECTORY

    def test_permission_error_is_classified(self, tree: Path, monkeypatch) -> None:
        def deny(path):
            raise PermissionError(errno.EACCES, "Permission denied", path)

        monkeypatch.setattr(os, "scandir", deny)
        result = DirectoryReader().read(str(tree))

        assert result.error.kind is ErrorKind.PERMISSION_DENIED
        assert "Permission denied" in str(result.error)

    def test_symlinked_directory_counts_as_directory(self, tree: Path) -> None:
        try:
            os.symlink(tree / "docs", tree / "docs-link")
        except (OSError, NotImplementedError):
            pytest.skip("symlinks not supported here")

        listing = DirectoryReader().read(str(tree)).listing
        link = next(e for e in listing if e.name == "docs-link")

        assert link.is_dir
        assert link.is_symlink


class TestStatEntry:
    def test_fills_size_and_mtime(self, tree: Path) -> None:
        entry = Entry("notes.txt", is_dir=False)

        detailed = DirectoryReader().stat_entry(str(tree), entry)

        assert detailed.size == len("some notes")
        assert detailed.modified_at is not None
        assert entry.size is None

    def test_vanished_entry_is_returned_unchanged(self, tree: Path) -> None:
        entry = Entry("gone.txt", is_dir=False)

        assert DirectoryReader().stat_entry(str(tree), entry) is entry

    def test_parent_entry_is_not_statted(self, tree: Path) -> None:
        assert DirectoryReader().stat_entry(str(tree), PARENT_ENTRY) is PARENT_ENTRY


class TestPathHelpers:
    def test_resolve_parent_name(self, tree: Path) -> None:
        assert resolve(str(tree / "docs"), PARENT_NAME) == str(tree)
        assert resolve(str(tree), "docs") == str(tree / "docs")

    def test_root_is_its_own_parent(self) -> None:
        root = os.path.abspath(os.sep)
        assert parent_of(root) == root

    def test_is_ancestor_or_equal(self, tree: Path) -> None:
        assert is_ancestor_or_equal(str(tree), str(tree))
        assert is_ancestor_or_equal(str(tree), str(tree / "src" / "pkg"))
        assert not is_ancestor_or_equal(str(tree / "src"), str(tree / "srcfoo"))
        assert not is_ancestor_or_equal(str(tree / "src"), str(tree))

    def test_sort_entries_drops_duplicate_parent(self, tree: Path) -> None:
        listing = sort_entries([Entry("b", False), PARENT_ENTRY, Entry("a", True)], str(tree))

        assert names(listing) == [PARENT_NAME, "a", "b"]
