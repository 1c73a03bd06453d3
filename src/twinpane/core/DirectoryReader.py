# twinpane/core/DirectoryReader.py
"""DirectoryReader Module
======================
Reads one directory into an immutable, sorted ``Listing``.

A listing is a tuple of ``Entry`` objects ordered as an orthodox file manager
shows them:

1. the synthetic ``..`` entry, present only when the directory has a parent;
2. directories, by locale-aware collation of their names;
3. everything else, by the same collation.

``DirectoryReader.read`` never raises. Every platform failure is classified
through ``classify_os_error`` and returned inside the ``ReadResult``. The
reader keeps no cache: calling it again for the same path simply re-reads
the directory, which is how stale listings are corrected.

Size and modification time are not collected during the read. They are
filled in lazily with ``DirectoryReader.stat_entry`` for the one entry the
status line describes.
"""

import dataclasses
import locale
import logging
import os
from dataclasses import dataclass
from typing import Optional

from twinpane.core.Errors import FileManagerError, classify_os_error


PARENT_NAME = ".."


@dataclass(frozen=True)
class Entry:
    """One filesystem object inside a listing."""

    name: str
    is_dir: bool
    is_symlink: bool = False
    size: Optional[int] = None
    modified_at: Optional[float] = None

    @property
    def is_parent(self) -> bool:
        return self.name == PARENT_NAME


PARENT_ENTRY = Entry(PARENT_NAME, True)

Listing = tuple[Entry, ...]


@dataclass(frozen=True)
class ReadResult:
    """Outcome of one directory read: a listing or a classified error."""

    path: str
    listing: Listing = ()
    error: Optional[FileManagerError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def normalize_path(path: str) -> str:
    """Returns an absolute, normalized form of *path* (``~`` expanded)."""
    return os.path.normpath(os.path.abspath(os.path.expanduser(path)))


def parent_of(path: str) -> str:
    """Returns the parent directory; the filesystem root is its own parent."""
    return os.path.dirname(normalize_path(path))


def has_parent(path: str) -> bool:
    path = normalize_path(path)
    return parent_of(path) != path


def resolve(path: str, name: str) -> str:
    """Resolves an entry name relative to the directory *path*."""
    if name == PARENT_NAME:
        return parent_of(path)
    return normalize_path(os.path.join(path, name))


def is_ancestor_or_equal(ancestor: str, path: str) -> bool:
    """True when *path* is *ancestor* itself or lies somewhere below it."""
    ancestor = normalize_path(ancestor)
    path = normalize_path(path)
    try:
        return os.path.commonpath([ancestor, path]) == ancestor
    except ValueError:
        # Different drives on Windows.
        return False


def collation_key(name: str) -> str:
    try:
        return locale.strxfrm(name)
    except (ValueError, UnicodeError):
        return name


def sort_key(entry: Entry) -> tuple[bool, str, str]:
    return (not entry.is_dir, collation_key(entry.name), entry.name)


def sort_entries(entries: list[Entry], path: str) -> Listing:
    """Orders *entries* and prepends ``..`` when *path* has a parent."""
    ordered = sorted((e for e in entries if not e.is_parent), key=sort_key)
    if has_parent(path):
        return (PARENT_ENTRY, *ordered)
    return tuple(ordered)


# ==================== DirectoryReader Class ====================
class DirectoryReader:
    """Reads directories into sorted listings.

    Attributes:
        show_hidden (bool): When False, names starting with a dot are skipped.
            The synthetic ``..`` entry is never affected.
    """

    def __init__(self, show_hidden: bool = True) -> None:
        self.show_hidden = show_hidden

    def read(self, path: str) -> ReadResult:
        """Reads *path* and returns its sorted listing or a classified error.

        Args:
            path: Directory to read. It is normalized before use; the
                returned ``ReadResult.path`` is the normalized form.

        Returns:
            ReadResult: ``listing`` on success, ``error`` on failure.
        """
        path = normalize_path(path)
        entries: list[Entry] = []
        try:
            with os.scandir(path) as it:
                for dirent in it:
                    if not self.show_hidden and dirent.name.startswith("."):
                        continue
                    entries.append(
                        Entry(
                            name=dirent.name,
                            is_dir=self._is_dir(dirent),
                            is_symlink=self._is_symlink(dirent),
                        )
                    )
        except OSError as e:
            error = classify_os_error(e, path)
            logging.info(f"DirectoryReader: failed to read '{path}': {error}")
            return ReadResult(path=path, error=error)

        listing = sort_entries(entries, path)
        logging.debug(f"DirectoryReader: read {len(listing)} entries from '{path}'")
        return ReadResult(path=path, listing=listing)

    @staticmethod
    def _is_dir(dirent: os.DirEntry) -> bool:
        # Symlinks to directories count as directories so they can be entered.
        try:
            return dirent.is_dir()
        except OSError:
            return False

    @staticmethod
    def _is_symlink(dirent: os.DirEntry) -> bool:
        try:
            return dirent.is_symlink()
        except OSError:
            return False

    def stat_entry(self, directory: str, entry: Entry) -> Entry:
        """Returns a copy of *entry* with ``size`` and ``modified_at`` filled in.

        The ``..`` entry and entries that can no longer be stat'ed are
        returned unchanged.
        """
        if entry.is_parent:
            return entry
        full_path = resolve(directory, entry.name)
        try:
            st = os.stat(full_path, follow_symlinks=False)
        except OSError as e:
            logging.debug(f"DirectoryReader.stat_entry: cannot stat '{full_path}': {e}")
            return entry
        return dataclasses.replace(entry, size=st.st_size, modified_at=st.st_mtime)
