# twinpane/ui/KeyBinder.py
"""KeyBinder.py
==================
Description:
-----------------------
The KeyBinder class translates raw key presses into the ``InputEvent`` values
understood by the file manager core. The core only knows intents (move the
cursor, copy, confirm, ...); which physical key produces which intent is
decided here, from the ``[keybindings]`` section of the configuration.

Key Features:
- Loads keybindings from the configuration, falling back per action to the
  built-in defaults, and supports modifier keys (Ctrl, Alt, Shift), function
  keys and terminal-specific codes.
- Mode-aware translation: while a y/n question is open, ``y``/``n``/Enter/Esc
  answer it; while the mkdir prompt or the command line is open, printable
  characters become text input.
- Reads ESC/Alt sequences robustly from the terminal.

Main Methods:
1. translate: Maps a key code to an ``InputEvent`` for the current input mode.
2. _load_keybindings: Loads and parses keybinding configurations.
3. _decode_keystring: Decodes key specification strings into key codes.
4. get_key_input: Reads a single key or key sequence from the terminal.
"""

import curses
import logging
import re
from typing import Any, Optional

from wcwidth import wcswidth

from twinpane.core.Navigation import InputEvent, InputMode, Intent
from twinpane.utils.logging_config import KEY_LOGGER
from twinpane.utils.utils import DEFAULT_CONFIG


# Config action name -> intent.
ACTION_INTENTS: dict[str, Intent] = {
    "toggle_panel": Intent.TOGGLE_PANEL,
    "quit": Intent.QUIT,
    "cursor_up": Intent.CURSOR_UP,
    "cursor_down": Intent.CURSOR_DOWN,
    "page_up": Intent.PAGE_UP,
    "page_down": Intent.PAGE_DOWN,
    "home": Intent.HOME,
    "end": Intent.END,
    "activate": Intent.ACTIVATE,
    "ascend": Intent.ASCEND,
    "view": Intent.VIEW,
    "edit": Intent.EDIT,
    "copy": Intent.COPY,
    "move": Intent.MOVE,
    "mkdir": Intent.MKDIR,
    "delete": Intent.DELETE,
    "refresh": Intent.REFRESH,
    "command_line": Intent.COMMAND_LINE,
    "copy_path": Intent.COPY_PATH,
    "toggle_hidden": Intent.TOGGLE_HIDDEN,
}

ESC = 27


# ==================== KeyBinder Class ====================
class KeyBinder:
    """Class KeyBinder
    ====================
    Translates key codes into intents according to the configured keybindings.

    Attributes:
        stdscr: The curses window keys are read from.
        config (dict): Application configuration.
        keybindings (dict): Action name -> list of decoded key codes.
        key_map (dict): Decoded key code -> ``Intent`` for NORMAL mode.
        input_timeout_ms (int): Read delay put back on the window after an
            escape sequence has been collected.
    """

    # Normalized escape sequences map. Keys do NOT include the leading ESC (0x1B),
    # because get_key_input() already strips/reads after ESC.
    ESCAPE_SEQUENCE_MAP: dict[str, str] = {
        # Arrows (CSI and SS3)
        "[A": "up", "[B": "down", "[C": "right", "[D": "left",
        "OA": "up", "OB": "down", "OC": "right", "OD": "left",

        # Home/End (CSI/SS3 and tilde variants)
        "[H": "home", "[F": "end", "OH": "home", "OF": "end",
        "[1~": "home", "[4~": "end", "[7~": "home", "[8~": "end",

        # Insert/Delete/PageUp/PageDown (~ style)
        "[2~": "insert", "[3~": "delete", "[5~": "pageup", "[6~": "pagedown",

        # Function keys (SS3, tilde and linux console variants)
        "OP": "f1", "OQ": "f2", "OR": "f3", "OS": "f4",
        "[[A": "f1", "[[B": "f2", "[[C": "f3", "[[D": "f4", "[[E": "f5",
        "[11~": "f1", "[12~": "f2", "[13~": "f3", "[14~": "f4",
        "[15~": "f5", "[17~": "f6", "[18~": "f7", "[19~": "f8",
        "[20~": "f9", "[21~": "f10", "[23~": "f11", "[24~": "f12",
    }

    def __init__(self, stdscr: Any, config: dict[str, Any], input_timeout_ms: int = -1) -> None:
        self.stdscr = stdscr
        self.config = config
        # Delay restored after reading an escape sequence; -1 blocks.
        self.input_timeout_ms = input_timeout_ms
        self.keybindings = self._load_keybindings()
        self.key_map = self._setup_key_map()

    # --- Configuration ---
    def _load_keybindings(self) -> dict[str, list[int | str]]:
        """Loads the keybindings for every known action.

        Each action takes its specification from ``config["keybindings"]`` if
        present, else from the built-in defaults. A specification is a list
        of key strings/codes or a ``|``-separated string. An empty
        specification disables the action.

        Returns:
            dict[str, list[int | str]]: Action name -> decoded key codes.
        """
        defaults: dict[str, Any] = DEFAULT_CONFIG["keybindings"]
        user_keybindings: dict[str, Any] = self.config.get("keybindings", {}) or {}
        parsed: dict[str, list[int | str]] = {}

        for action in ACTION_INTENTS:
            spec = user_keybindings.get(action, defaults.get(action))
            if not spec:
                logging.debug("Keybinding for action %r is disabled or empty.", action)
                continue

            if isinstance(spec, list):
                items = spec
            elif isinstance(spec, str) and "|" in spec:
                items = [s.strip() for s in spec.split("|")]
            else:
                items = [spec]

            codes: list[int | str] = []
            for item in items:
                try:
                    code = self._decode_keystring(item)
                except ValueError as e:
                    logging.error(
                        "Error parsing keybinding item %r for action %r: %s. "
                        "This specific binding for the action will be ignored.",
                        item, action, e,
                    )
                    continue
                if code not in codes:
                    codes.append(code)

            # Terminals disagree on what Backspace and Enter send.
            if curses.KEY_BACKSPACE in codes:
                codes.extend(c for c in (127, 8) if c not in codes)
            if curses.KEY_ENTER in codes:
                codes.extend(c for c in (10, 13) if c not in codes)

            if codes:
                parsed[action] = codes
            else:
                logging.warning(
                    "No valid key codes found for action %r after parsing. It will not be bound.",
                    action,
                )

        logging.debug("Loaded keybindings (action -> key codes): %s", parsed)
        return parsed

    def _setup_key_map(self) -> dict[int | str, Intent]:
        key_map: dict[int | str, Intent] = {}
        for action, codes in self.keybindings.items():
            intent = ACTION_INTENTS[action]
            for code in codes:
                if code in key_map and key_map[code] is not intent:
                    logging.warning(
                        f"Keybinding for action '{action}' (key: {code}) is overwriting "
                        f"an existing mapping for '{key_map[code].name}'."
                    )
                key_map[code] = intent
        return key_map

    def _decode_keystring(self, key_input: str | int) -> int | str:
        """Decodes a key specification string or integer into a key code.

        Args:
            key_input: e.g. ``"ctrl+r"``, ``"f5"``, ``"alt+."``, ``":"`` or an
                integer key code.

        Returns:
            int | str: The curses key code, or a logical ``"alt-<key>"``
            string for Alt chords.

        Raises:
            ValueError: If the key string is invalid or has unknown modifiers.
        """
        if isinstance(key_input, int):
            return key_input
        if not isinstance(key_input, str):
            raise ValueError(f"Invalid key_input type: {type(key_input)}. Expected str or int.")

        # Single characters are literal, so "+" and ":" can be bound.
        if len(key_input) == 1:
            return ord(key_input)

        s = key_input.strip().lower()
        if not s:
            raise ValueError("Key string cannot be empty.")

        parts = s.split("+")
        # "alt++" splits into ["alt", "", ""]
        if len(parts) > 2 and parts[-1] == "" and parts[-2] == "":
            parts = parts[:-2] + ["+"]

        if "alt" in parts[:-1]:
            other_mods = sorted(m for m in parts[:-1] if m != "alt")
            prefix = "+".join(other_mods) + "+" if other_mods else ""
            return f"alt-{prefix}{parts[-1]}"
        if s.startswith("alt-"):
            return s

        named_keys_map: dict[str, int] = {
            "left": curses.KEY_LEFT,
            "right": curses.KEY_RIGHT,
            "up": curses.KEY_UP,
            "down": curses.KEY_DOWN,
            "home": curses.KEY_HOME,
            "end": getattr(curses, "KEY_END", curses.KEY_LL),
            "pageup": curses.KEY_PPAGE,
            "pgup": curses.KEY_PPAGE,
            "pagedown": curses.KEY_NPAGE,
            "pgdn": curses.KEY_NPAGE,
            "delete": curses.KEY_DC,
            "del": curses.KEY_DC,
            "backspace": curses.KEY_BACKSPACE,
            "insert": curses.KEY_IC,
            "tab": 9,
            "enter": curses.KEY_ENTER,
            "return": curses.KEY_ENTER,
            "space": ord(" "),
            "esc": ESC,
            "escape": ESC,
            "shift+tab": getattr(curses, "KEY_BTAB", 353),
        }
        named_keys_map.update(
            {f"f{i}": getattr(curses, f"KEY_F{i}", 264 + i) for i in range(1, 13)}
        )

        if s in named_keys_map:
            return named_keys_map[s]

        base_key_str = parts[-1].strip()
        modifiers = set(p.strip() for p in parts[:-1])

        if base_key_str in named_keys_map:
            base_code = named_keys_map[base_key_str]
        elif len(base_key_str) == 1:
            base_code = ord(base_key_str)
        else:
            raise ValueError(f"Unknown base key '{base_key_str}' in '{key_input}'")

        if "ctrl" in modifiers:
            modifiers.remove("ctrl")
            if len(base_key_str) == 1 and "a" <= base_key_str <= "z":
                base_code = ord(base_key_str) - ord("a") + 1
            elif base_key_str == "\\":
                base_code = 28
            elif base_key_str == "]":
                base_code = 29
            elif base_key_str == "/":
                base_code = 31

        if "shift" in modifiers:
            modifiers.remove("shift")
            if len(base_key_str) == 1 and "a" <= base_key_str <= "z":
                base_code = ord(base_key_str.upper())

        if modifiers:
            raise ValueError(f"Unknown or unhandled modifiers {sorted(modifiers)} in '{key_input}'")
        return base_code

    # --- Translation ---
    @staticmethod
    def _is_enter(key: int | str) -> bool:
        return key in (10, 13, curses.KEY_ENTER)

    @staticmethod
    def _is_backspace(key: int | str) -> bool:
        return key in (8, 127, curses.KEY_BACKSPACE)

    @staticmethod
    def _printable(key: int | str) -> str:
        if isinstance(key, int):
            # Larger ints are curses KEY_* codes, not characters.
            return chr(key) if 32 <= key < 127 else ""
        if len(key) == 1 and wcswidth(key) > 0:
            return key
        return ""

    def translate(self, key: int | str, mode: InputMode = InputMode.NORMAL) -> Optional[InputEvent]:
        """Maps one key to an ``InputEvent`` for the given input mode.

        Returns:
            Optional[InputEvent]: None when the key means nothing in *mode*.
        """
        if key in (curses.ERR, -1):
            return None

        if mode is InputMode.CONFIRM:
            if key in (ord("y"), ord("Y")) or self._is_enter(key):
                return InputEvent(Intent.CONFIRM)
            if key in (ord("n"), ord("N"), ESC):
                return InputEvent(Intent.DECLINE)
            intent = self.key_map.get(key)
            return InputEvent(intent) if intent else None

        if mode in (InputMode.NAME_INPUT, InputMode.COMMAND):
            if self._is_enter(key):
                return InputEvent(Intent.SUBMIT)
            if key == ESC:
                return InputEvent(Intent.CANCEL)
            if self._is_backspace(key):
                return InputEvent(Intent.DELETE_CHAR)
            char = self._printable(key)
            if char:
                return InputEvent(Intent.TYPE_CHAR, text=char)
            return None

        intent = self.key_map.get(key)
        if intent is None:
            logging.debug("translate: unbound key %r", key)
            return None
        return InputEvent(intent)

    def get_key_input(self, window: Optional[Any] = None) -> int | str:
        """Read a single key or key sequence from the terminal with robust ESC parsing:
        - 27 (ESC) standalone,
        - Alt/Meta chord: ESC + printable -> "alt-<char>",
        - CSI/SS3 sequences (e.g., "[A", "OA", "[5~", "[15~", ...).

        ASCII characters are returned as their code point, like ``getch``.
        Other characters are returned as one-character strings, so that
        typed text never collides with the ``KEY_*`` codes above 255.

        Returns:
            int | str:
            - curses key code (int) for known keys and ASCII characters,
            - the character itself (str) for non-ASCII input,
            - "alt-<char>" for Alt/Meta,
            - 27 for a lone ESC,
            - curses.ERR when no key is available or on curses errors.
        """
        target = window or self.stdscr

        try:
            wch = target.get_wch()
        except curses.error:
            return curses.ERR

        ch = ord(wch) if isinstance(wch, str) and ord(wch) < 128 else wch
        if ch != ESC:
            KEY_LOGGER.debug(f"key={ch!r}")
            return ch

        # ESC received: lone ESC, Alt chord, or an escape sequence
        seq = ""
        target.nodelay(True)
        try:
            while True:
                nx = target.getch()
                if nx == curses.ERR:
                    break
                if 0 <= nx <= 255:
                    seq += chr(nx)
                else:
                    seq += f"<{nx}>"
        finally:
            target.timeout(self.input_timeout_ms)

        if not seq:
            KEY_LOGGER.debug("key=ESC")
            return ESC

        if seq[0] == "\x1b":
            seq = seq[1:]

        if len(seq) == 1 and seq.isprintable():
            alt_key = f"alt-{seq.lower()}"
            KEY_LOGGER.debug(f"key={alt_key!r}")
            return alt_key

        mapped = self.ESCAPE_SEQUENCE_MAP.get(seq)
        if not mapped:
            cleaned = "".join(re.findall(r"[\[O0-9;~A-Za-z]", seq))
            mapped = self.ESCAPE_SEQUENCE_MAP.get(cleaned)

        if mapped:
            code = self._decode_keystring(mapped)
            KEY_LOGGER.debug(f"key=ESC{seq!r} -> {mapped} ({code!r})")
            return code

        logging.warning("get_key_input: unknown escape sequence: ESC + %r", seq)
        return ESC

