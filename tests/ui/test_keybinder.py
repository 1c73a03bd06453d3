# tests/ui/test_keybinder.py
"""Unit tests for the `KeyBinder` class.
========================================

Tests for the `KeyBinder` class.

This module verifies, against the real `curses` key constants (no terminal
is initialized, only module-level constants are used):

1. Decoding of key specification strings (`ctrl+r`, `f5`, `alt+.`, `:`).
2. Loading of keybindings from config, with defaults per action.
3. Mode-aware translation of key codes into `InputEvent` objects.
4. ESC-sequence parsing in `get_key_input` with a mocked window.
"""

import curses
from unittest.mock import MagicMock, call

import pytest

from twinpane.core.Navigation import InputEvent, InputMode, Intent
from twinpane.ui.KeyBinder import ESC, KeyBinder


@pytest.fixture
def binder(mock_stdscr: MagicMock) -> KeyBinder:
    return KeyBinder(mock_stdscr, {"keybindings": {}})


class TestDecode:
    @pytest.mark.parametrize(
        "spec, expected",
        [
            ("ctrl+r", 18),
            ("ctrl+p", 16),
            ("f5", curses.KEY_F5),
            ("F10", curses.KEY_F10),
            ("tab", 9),
            ("esc", ESC),
            ("pageup", curses.KEY_PPAGE),
            (":", ord(":")),
            ("q", ord("q")),
            ("alt+.", "alt-."),
            ("shift+a", ord("A")),
            (265, 265),
        ],
    )
    def test_decode_keystring(self, binder: KeyBinder, spec, expected) -> None:
        assert binder._decode_keystring(spec) == expected

    @pytest.mark.parametrize("spec", ["hyper+x", "notakey", ""])
    def test_invalid_specs_raise(self, binder: KeyBinder, spec: str) -> None:
        with pytest.raises(ValueError):
            binder._decode_keystring(spec)


class TestLoading:
    def test_defaults_are_loaded(self, binder: KeyBinder) -> None:
        assert binder.key_map[curses.KEY_F8] is Intent.DELETE
        assert binder.key_map[9] is Intent.TOGGLE_PANEL
        assert binder.key_map["alt-."] is Intent.TOGGLE_HIDDEN
        # Enter and Backspace get their terminal aliases.
        assert binder.key_map[10] is Intent.ACTIVATE
        assert binder.key_map[13] is Intent.ACTIVATE
        assert binder.key_map[127] is Intent.ASCEND

    def test_user_binding_overrides_default(self, mock_stdscr: MagicMock) -> None:
        kb = KeyBinder(mock_stdscr, {"keybindings": {"delete": "ctrl+d|f8", "refresh": ""}})

        assert kb.keybindings["delete"] == [4, curses.KEY_F8]
        assert curses.KEY_DC not in kb.key_map
        assert "refresh" not in kb.keybindings

    def test_invalid_item_is_skipped(self, mock_stdscr: MagicMock) -> None:
        kb = KeyBinder(mock_stdscr, {"keybindings": {"copy": ["bogus+x", "f5"]}})

        assert kb.keybindings["copy"] == [curses.KEY_F5]


class TestTranslate:
    def test_normal_mode_uses_key_map(self, binder: KeyBinder) -> None:
        assert binder.translate(curses.KEY_DOWN) == InputEvent(Intent.CURSOR_DOWN)
        assert binder.translate(ord(":")) == InputEvent(Intent.COMMAND_LINE)
        assert binder.translate(ord("z")) is None
        assert binder.translate(curses.ERR) is None

    def test_confirm_mode(self, binder: KeyBinder) -> None:
        mode = InputMode.CONFIRM
        assert binder.translate(ord("y"), mode).intent is Intent.CONFIRM
        assert binder.translate(10, mode).intent is Intent.CONFIRM
        assert binder.translate(ord("N"), mode).intent is Intent.DECLINE
        assert binder.translate(ESC, mode).intent is Intent.DECLINE
        assert binder.translate(curses.KEY_DOWN, mode).intent is Intent.CURSOR_DOWN

    @pytest.mark.parametrize("mode", [InputMode.NAME_INPUT, InputMode.COMMAND])
    def test_text_modes(self, binder: KeyBinder, mode: InputMode) -> None:
        assert binder.translate(ord("q"), mode) == InputEvent(Intent.TYPE_CHAR, text="q")
        assert binder.translate("é", mode) == InputEvent(Intent.TYPE_CHAR, text="é")
        assert binder.translate(13, mode).intent is Intent.SUBMIT
        assert binder.translate(ESC, mode).intent is Intent.CANCEL
        assert binder.translate(127, mode).intent is Intent.DELETE_CHAR
        assert binder.translate(curses.KEY_BACKSPACE, mode).intent is Intent.DELETE_CHAR
        assert binder.translate(curses.KEY_F5, mode) is None
        assert binder.translate(1, mode) is None


class TestGetKeyInput:
    def test_plain_character(self, binder: KeyBinder, mock_stdscr: MagicMock) -> None:
        mock_stdscr.get_wch.return_value = "j"
        assert binder.get_key_input() == ord("j")

    def test_non_ascii_character_stays_text(self, binder: KeyBinder, mock_stdscr: MagicMock) -> None:
        mock_stdscr.get_wch.return_value = "\u010d"
        key = binder.get_key_input()

        assert key == "\u010d"
        assert key != curses.KEY_F5
        assert binder.translate(key, InputMode.COMMAND).text == "\u010d"

    def test_function_key(self, binder: KeyBinder, mock_stdscr: MagicMock) -> None:
        mock_stdscr.get_wch.return_value = curses.KEY_F3
        assert binder.get_key_input() == curses.KEY_F3

    def test_no_input(self, binder: KeyBinder, mock_stdscr: MagicMock) -> None:
        mock_stdscr.get_wch.side_effect = curses.error("no input")
        assert binder.get_key_input() == curses.ERR

    def test_lone_escape(self, binder: KeyBinder, mock_stdscr: MagicMock) -> None:
        mock_stdscr.get_wch.return_value = "\x1b"
        mock_stdscr.getch.side_effect = [curses.ERR]
        assert binder.get_key_input() == ESC

    def test_alt_chord(self, binder: KeyBinder, mock_stdscr: MagicMock) -> None:
        mock_stdscr.get_wch.return_value = "\x1b"
        mock_stdscr.getch.side_effect = [ord("."), curses.ERR]
        assert binder.get_key_input() == "alt-."

    def test_escape_sequence(self, binder: KeyBinder, mock_stdscr: MagicMock) -> None:
        mock_stdscr.get_wch.return_value = "\x1b"
        mock_stdscr.getch.side_effect = [ord("["), ord("1"), ord("5"), ord("~"), curses.ERR]
        assert binder.get_key_input() == curses.KEY_F5
        mock_stdscr.timeout.assert_called_with(-1)

    @pytest.mark.parametrize(
        "sequence, expected",
        [
            ([curses.ERR], ESC),
            ([ord("."), curses.ERR], "alt-."),
        ],
    )
    def test_escape_restores_read_timeout(
        self, mock_stdscr: MagicMock, mock_config, sequence, expected
    ) -> None:
        """After an ESC the window goes back to the caller's read delay, not to blocking input."""
        binder = KeyBinder(mock_stdscr, mock_config, input_timeout_ms=100)
        mock_stdscr.get_wch.return_value = "\x1b"
        mock_stdscr.getch.side_effect = sequence

        assert binder.get_key_input() == expected

        delay_calls = [
            c for c in mock_stdscr.mock_calls if c[0] in ("nodelay", "timeout")
        ]
        assert delay_calls[-1] == call.timeout(100)

