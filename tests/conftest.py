# tests/conftest.py
"""Pytest configuration with shared fixtures for the twinpane tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from tests.stubs import RecordingEngine


# --- Base fixtures for curses and configuration ---
@pytest.fixture
def mock_stdscr() -> MagicMock:
    """Create a mock of the `curses` stdscr for testing UI components.

    Returns:
        MagicMock: A mocked `stdscr` with terminal size set to (24, 80).
    """
    stdscr = MagicMock()
    stdscr.getmaxyx.return_value = (24, 80)
    return stdscr


@pytest.fixture
def mock_config() -> dict[str, dict[str, Any]]:
    """Provide a baseline configuration for twinpane tests."""
    return {
        "panels": {"show_hidden": True, "activate_file": "view"},
        "commands": {"viewer": "cat", "editor": "ed"},
        "keybindings": {},
        "colors": {},
    }


# --- Filesystem fixtures ---
@pytest.fixture
def tree(tmp_path: Path) -> Path:
    """Create a small directory tree.

    The structure includes:
    - docs/ with readme.txt
    - src/ with main.py and an empty pkg/ directory
    - empty/
    - notes.txt, alpha.txt and a hidden .profile

    Returns:
        Path: The root of the tree.
    """
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "readme.txt").write_text("read me")
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "main.py").write_text("print('hello')")
    (tmp_path / "src" / "pkg").mkdir()
    (tmp_path / "empty").mkdir()
    (tmp_path / "notes.txt").write_text("some notes")
    (tmp_path / "alpha.txt").write_text("a")
    (tmp_path / ".profile").write_text("export X=1")
    return tmp_path


@pytest.fixture
def engine() -> RecordingEngine:
    """A recording engine whose tasks run only when the test says so."""
    return RecordingEngine()


@pytest.fixture
def launcher() -> MagicMock:
    """A viewer/editor launcher that succeeds without touching the terminal."""
    return MagicMock(return_value=0)
