# twinpane/core/PanelState.py
"""PanelState Module
=================
Navigation state machine of one file panel.

A panel owns its current ``path``, the ``listing`` last read for that path,
a ``cursor`` into the listing, the ``scroll_offset`` of its viewport and the
``last_error`` to show inline. Two instances exist per session, addressed
through the ``Panel`` variant rather than by name.

Reading a directory is asynchronous. ``set_path`` and ``refresh`` do not read
anything themselves: they return a ``ReadRequest`` that the session hands to
the background engine, and the result comes back through
``on_listing_ready``. Every request carries a token; a result is applied only
when its path equals the panel's current path and its token is the latest
one issued, so a slow read for a directory the user already left can never
overwrite a newer navigation.

While a read is in flight the previous listing stays on screen and
``pending`` is True.

Invariants kept after every mutation:
    - ``0 <= cursor < max(1, len(listing))``; cursor is 0 for empty listings.
    - ``scroll_offset <= cursor < scroll_offset + viewport_height``.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from twinpane.core.DirectoryReader import (
    PARENT_NAME,
    Entry,
    Listing,
    ReadResult,
    has_parent,
    normalize_path,
    parent_of,
    resolve,
)
from twinpane.core.Errors import NotADirectory, NotFound


class Panel(Enum):
    LEFT = "left"
    RIGHT = "right"

    @property
    def other(self) -> "Panel":
        return Panel.RIGHT if self is Panel.LEFT else Panel.LEFT


@dataclass(frozen=True)
class ReadRequest:
    """A directory read issued by a panel, identified by its token."""

    panel: Panel
    path: str
    token: int


# ==================== PanelState Class ====================
class PanelState:
    """Per-panel path, listing, cursor, scroll and error state.

    Attributes:
        panel (Panel): Which side this state belongs to.
        path (str): Absolute, normalized directory shown by the panel.
        listing (Listing): Entries of ``path`` (possibly stale while pending).
        cursor (int): Index of the highlighted entry.
        scroll_offset (int): Index of the first visible entry.
        viewport_height (int): Number of rows the renderer can show.
        last_error (Optional[str]): Inline error text, if any.
        pending (bool): True while the latest read has not completed.
    """

    def __init__(self, panel: Panel, path: str, viewport_height: int = 1) -> None:
        self.panel = panel
        self.path = normalize_path(path)
        self.listing: Listing = ()
        self.cursor = 0
        self.scroll_offset = 0
        self.viewport_height = max(1, viewport_height)
        self.last_error: Optional[str] = None
        self.pending = False
        self._token = 0
        self._focus_name: Optional[str] = None
        self._keep_error = False

    # --- Read requests ---
    def _issue_read(self) -> ReadRequest:
        self._token += 1
        self.pending = True
        return ReadRequest(self.panel, self.path, self._token)

    def set_path(self, new_path: str, focus_name: Optional[str] = None) -> ReadRequest:
        """Switches the panel to *new_path* and returns the read to perform.

        Args:
            new_path: Directory to show next.
            focus_name: Entry name to highlight once the listing arrives
                (used when ascending, so the cursor lands on the directory
                we came from). Falls back to index 0 when absent.
        """
        self.path = normalize_path(new_path)
        self.cursor = 0
        self.scroll_offset = 0
        self._focus_name = focus_name
        self._keep_error = False
        logging.debug(f"PanelState[{self.panel.value}]: set_path -> '{self.path}'")
        return self._issue_read()

    def refresh(self, keep_error: bool = False) -> ReadRequest:
        """Re-reads the current path, keeping the cursor on the same entry name.

        Args:
            keep_error: Keep ``last_error`` even if the read succeeds. Used
                when a failed operation refreshes the panel it reported to.
        """
        selected = self.selected_entry()
        self._focus_name = selected.name if selected else None
        self._keep_error = keep_error
        return self._issue_read()

    def is_current(self, path: str, token: Optional[int] = None) -> bool:
        if normalize_path(path) != self.path:
            return False
        return token is None or token == self._token

    def on_listing_ready(
        self, path: str, result: ReadResult, token: Optional[int] = None
    ) -> bool:
        """Applies a finished read if it still targets the current state.

        Returns:
            bool: True if the result was applied, False if it was stale.
        """
        if not self.is_current(path, token):
            logging.debug(
                f"PanelState[{self.panel.value}]: dropping stale listing for '{path}' "
                f"(token {token}, current '{self.path}' token {self._token})"
            )
            return False

        self.pending = False
        if result.ok:
            self.listing = result.listing
            if not self._keep_error:
                self.last_error = None
            if self._focus_name:
                self.cursor = self._index_of(self._focus_name)
            self._clamp_cursor()
        else:
            self.listing = ()
            self.cursor = 0
            self.last_error = str(result.error)
        self._focus_name = None
        self._keep_error = False
        self.recompute_scroll()
        return True

    def _index_of(self, name: str) -> int:
        for i, entry in enumerate(self.listing):
            if entry.name == name:
                return i
        return self.cursor

    # --- Cursor and scroll ---
    def _clamp_cursor(self) -> None:
        if not self.listing:
            self.cursor = 0
        else:
            self.cursor = max(0, min(self.cursor, len(self.listing) - 1))

    def move_cursor(self, delta: int) -> bool:
        """Moves the cursor by *delta*, clamped to the listing bounds.

        This is the only cursor mutation entry point; Home/End and page moves
        are the same call with larger deltas.

        Returns:
            bool: True if the cursor position changed.
        """
        if not self.listing:
            self.cursor = 0
            return False
        old = self.cursor
        self.cursor = max(0, min(self.cursor + delta, len(self.listing) - 1))
        self.recompute_scroll()
        return self.cursor != old

    def move_to_start(self) -> bool:
        return self.move_cursor(-len(self.listing))

    def move_to_end(self) -> bool:
        return self.move_cursor(len(self.listing))

    def page_up(self) -> bool:
        return self.move_cursor(-self.viewport_height)

    def page_down(self) -> bool:
        return self.move_cursor(self.viewport_height)

    def recompute_scroll(self, viewport_height: Optional[int] = None) -> None:
        """Adjusts ``scroll_offset`` so that the cursor row is visible."""
        if viewport_height is not None:
            self.viewport_height = max(1, viewport_height)
        if self.cursor < self.scroll_offset:
            self.scroll_offset = self.cursor
        elif self.cursor >= self.scroll_offset + self.viewport_height:
            self.scroll_offset = self.cursor - self.viewport_height + 1

    def selected_entry(self) -> Optional[Entry]:
        if not self.listing:
            return None
        return self.listing[self.cursor]

    def visible_slice(self) -> Listing:
        return self.listing[self.scroll_offset : self.scroll_offset + self.viewport_height]

    # --- Directory changes ---
    def ascend(self) -> ReadRequest:
        """Moves to the parent directory.

        Valid whenever the path has a parent, which is exactly when the
        listing carries a ``..`` entry. An unreadable directory has an empty
        listing but can still be left this way.

        Raises:
            NotFound: At the filesystem root.
        """
        if not has_parent(self.path):
            raise NotFound("Already at the filesystem root", self.path)
        return self.set_path(parent_of(self.path), focus_name=os.path.basename(self.path))

    def descend_into(self, entry: Entry) -> ReadRequest:
        """Enters *entry*, which must be a directory (``..`` ascends).

        Raises:
            NotADirectory: If *entry* is not a directory.
        """
        if entry.name == PARENT_NAME:
            return self.ascend()
        if not entry.is_dir:
            raise NotADirectory(f"Not a directory: {entry.name}", resolve(self.path, entry.name))
        return self.set_path(resolve(self.path, entry.name))
