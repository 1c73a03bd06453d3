# tests/ui/test_draw_screen.py
"""Unit tests for the `DrawScreen` UI renderer.
==============================================

Tests for the `DrawScreen` UI renderer.

This module validates the helpers and the rendering of a session
`Snapshot`, including:

- Viewport height computation for a given terminal height.
- Width-aware truncation of wide Unicode names.
- Panel contents: entries, the empty-directory message, the loading
  message and the inline error row.
- The prompt line and the small-window fallback.

The suite relies on a module-scoped autouse fixture that mocks `curses`
symbols used inside `twinpane.ui.DrawScreen` to ensure tests are hermetic and
do not require a real terminal.
"""

from typing import Generator, Optional
from unittest.mock import MagicMock, patch

import pytest

from twinpane.core.DirectoryReader import PARENT_ENTRY, Entry
from twinpane.core.Navigation import InputMode
from twinpane.core.PanelState import Panel
from twinpane.core.Session import PanelView, Snapshot


# --- Global `curses` mock -----------------------------------------------------
@pytest.fixture(scope="module", autouse=True)
def mock_curses_module() -> Generator[None, None, None]:
    """Provide a module-level mock of `curses` for DrawScreen.

    We patch the `curses` module as imported by `twinpane.ui.DrawScreen`, defining:
    - A concrete `curses.error` exception type.
    - The attribute and ACS constants accessed by the renderer.
    - `color_pair()` that returns the pair index as-is (sufficient for tests).

    Yields:
        None: Ensures the patch remains active for the entire module scope.
    """
    curses_mock = MagicMock()

    # `curses.error` must be a real exception subclass
    class CursesError(Exception):
        """Minimal replacement for `curses.error` used in tests."""

    curses_mock.error = CursesError

    key_constants = {
        "A_NORMAL": 0,
        "A_REVERSE": 1,
        "A_BOLD": 2,
        "ACS_HLINE": ord("-"),
        "ACS_VLINE": ord("|"),
        "ACS_ULCORNER": ord("+"),
        "ACS_URCORNER": ord("+"),
        "ACS_LLCORNER": ord("+"),
        "ACS_LRCORNER": ord("+"),
        "COLOR_WHITE": 7,
        "COLOR_BLACK": 0,
        "COLORS": 256,
        "COLOR_PAIRS": 256,
    }
    for name, val in key_constants.items():
        setattr(curses_mock, name, val)

    # Simplified color pair resolution (identity)
    curses_mock.color_pair.side_effect = lambda x: x

    # Patch the `curses` module inside DrawScreen only
    with patch("twinpane.ui.DrawScreen.curses", curses_mock):
        yield


from twinpane.ui.DrawScreen import DrawScreen  # noqa: E402


def make_view(
    panel: Panel,
    entries: tuple[Entry, ...] = (),
    is_active: bool = False,
    error: Optional[str] = None,
    pending: bool = False,
) -> PanelView:
    return PanelView(
        panel=panel,
        path="/home/user" if panel is Panel.LEFT else "/tmp",
        entries=entries,
        cursor=0,
        is_active=is_active,
        error=error,
        pending=pending,
        selected=entries[0] if entries else None,
        total=len(entries),
        scroll_offset=0,
    )


def make_snapshot(left: PanelView, right: PanelView, **overrides) -> Snapshot:
    values = dict(
        left=left,
        right=right,
        active_panel=Panel.LEFT,
        operation=None,
        mode=InputMode.NORMAL,
        prompt_label="",
        prompt_text="",
        status_message="",
        running=False,
        show_hidden=True,
    )
    values.update(overrides)
    return Snapshot(**values)


def drawn_text(stdscr: MagicMock) -> str:
    return "\n".join(str(c.args[2]) for c in stdscr.addstr.call_args_list)


@pytest.fixture
def drawer(mock_stdscr: MagicMock, mock_config) -> DrawScreen:
    return DrawScreen(mock_stdscr, mock_config)


def test_viewport_height_for() -> None:
    # 24 rows: 3 footer rows, 2 border rows, 1 error row.
    assert DrawScreen.viewport_height_for(24) == 18
    assert DrawScreen.viewport_height_for(3) == 1


def test_truncate_string_counts_wide_characters(drawer: DrawScreen) -> None:
    assert drawer.truncate_string("abcdef", 3) == "abc"
    assert drawer.truncate_string("日本語", 4) == "日本"
    assert drawer.string_width("日本") == 4


def test_monochrome_defaults_without_color_config(drawer: DrawScreen) -> None:
    assert set(drawer.colors) >= {"panel", "selected", "error", "border_active"}


def test_draw_entries_and_empty_message(drawer: DrawScreen, mock_stdscr: MagicMock) -> None:
    left = make_view(
        Panel.LEFT,
        (PARENT_ENTRY, Entry("docs", True), Entry("notes.txt", False, size=2048)),
        is_active=True,
    )
    right = make_view(Panel.RIGHT)

    drawer.draw(make_snapshot(left, right, status_message="Copied"))

    text = drawn_text(mock_stdscr)
    assert "docs/" in text
    assert "<DIR>" in text
    assert "notes.txt" in text
    assert "/home/user" in text
    assert "No items in this directory." in text
    assert "Copied" in text
    assert "F5" in text


def test_draw_loading_and_error(drawer: DrawScreen, mock_stdscr: MagicMock) -> None:
    left = make_view(Panel.LEFT, is_active=True, pending=True)
    right = make_view(Panel.RIGHT, error="Permission denied: /tmp")

    drawer.draw(make_snapshot(left, right))

    text = drawn_text(mock_stdscr)
    assert "Loading..." in text
    assert "Error: Permission denied: /tmp" in text
    assert "No items in this directory." not in text


def test_error_row_is_panel_bottom(drawer: DrawScreen, mock_stdscr: MagicMock) -> None:
    right = make_view(Panel.RIGHT, error="boom")

    drawer.draw(make_snapshot(make_view(Panel.LEFT, is_active=True), right))

    rows = [c.args[0] for c in mock_stdscr.addstr.call_args_list if "Error: boom" in str(c.args[2])]
    # Panels are 21 rows high on a 24-row screen; the error sits above the border.
    assert rows == [19]


def test_prompt_line_shows_typed_text(drawer: DrawScreen, mock_stdscr: MagicMock) -> None:
    snapshot = make_snapshot(
        make_view(Panel.LEFT, is_active=True),
        make_view(Panel.RIGHT),
        mode=InputMode.COMMAND,
        prompt_label="/home/user$ ",
        prompt_text="ls -l",
    )

    drawer.draw(snapshot)

    assert "/home/user$ ls -l" in drawn_text(mock_stdscr)
    mock_stdscr.move.assert_called_with(22, len("/home/user$ ls -l"))


def test_small_window(drawer: DrawScreen, mock_stdscr: MagicMock) -> None:
    mock_stdscr.getmaxyx.return_value = (5, 20)

    drawer.draw(make_snapshot(make_view(Panel.LEFT), make_view(Panel.RIGHT)))

    assert "Window too small" in drawn_text(mock_stdscr)
