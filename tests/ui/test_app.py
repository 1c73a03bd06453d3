# tests/ui/test_app.py
"""Tests for the `App` main loop.
================================

The background engine, the terminal mode handling and the renderer are
replaced with test doubles; `KeyBinder` and `AppSession` are real. Keys are
fed through the mocked `stdscr.get_wch`.
"""

import curses
from pathlib import Path
from typing import Generator
from unittest.mock import MagicMock, patch

import pytest

from tests.stubs import RecordingEngine, settle
from twinpane.core.Navigation import InputMode
import twinpane.ui.App as app_module
from twinpane.ui.App import App


@pytest.fixture
def app(tree: Path, mock_stdscr: MagicMock, mock_config) -> Generator[App, None, None]:
    engine = RecordingEngine()
    engine.start = MagicMock()
    engine.stop = MagicMock()
    drawer_cls = MagicMock()
    drawer_cls.viewport_height_for.return_value = 5
    with (
        patch("twinpane.ui.App.AsyncEngine", return_value=engine),
        patch("twinpane.ui.App.DrawScreen", drawer_cls),
        patch("twinpane.ui.App.TerminalAppMode"),
    ):
        application = App(mock_stdscr, mock_config, left_path=str(tree), right_path=str(tree / "docs"))
        settle(application.session, engine)
        yield application


def test_step_translates_keys(app: App, mock_stdscr: MagicMock) -> None:
    mock_stdscr.get_wch.return_value = "j"

    assert app.step() is True
    assert app.session.active.cursor == 1


def test_step_without_key_reports_background_results(app: App, mock_stdscr: MagicMock) -> None:
    mock_stdscr.get_wch.side_effect = curses.error("no input")

    assert app.step() is False

    app.session.refresh_panel(app.session.active_panel)
    app.engine.run_all()
    assert app.step() is True


def test_colon_opens_command_line(app: App, mock_stdscr: MagicMock) -> None:
    mock_stdscr.get_wch.return_value = ":"

    app.step()

    assert app.session.mode is InputMode.COMMAND


def test_resize_updates_viewport(app: App, mock_stdscr: MagicMock) -> None:
    app_module.DrawScreen.viewport_height_for.return_value = 2
    mock_stdscr.get_wch.return_value = curses.KEY_RESIZE

    with patch("twinpane.ui.App.curses.update_lines_cols"):
        assert app.step() is True

    assert all(state.viewport_height == 2 for state in app.session.panels.values())


def test_run_until_quit(app: App, mock_stdscr: MagicMock) -> None:
    mock_stdscr.get_wch.side_effect = [curses.error("no input"), "q"]

    app.run()

    assert app.session.quit_requested
    app.engine.start.assert_called_once()
    app.engine.stop.assert_called_once()
    app.terminal.enter.assert_called_once_with(mock_stdscr)
    app.terminal.exit.assert_called_once()
    assert app.drawer.draw.call_count >= 2


def test_escape_keeps_the_loop_ticking(app: App, mock_stdscr: MagicMock) -> None:
    """A lone Esc must leave the tick timeout in place so results keep flowing."""
    mock_stdscr.get_wch.return_value = "\x1b"
    mock_stdscr.getch.side_effect = [curses.ERR]

    app.step()

    mock_stdscr.timeout.assert_called_with(App.TICK_MS)
