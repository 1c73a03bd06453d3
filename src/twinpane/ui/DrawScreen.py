# twinpane/ui/DrawScreen.py
"""DrawScreen.py
========================
DrawScreen renders a session ``Snapshot`` with curses.

Screen layout (top to bottom):

- two side-by-side bordered panels; the active panel's border is
  highlighted and its title shows the panel path,
- inside each panel: the visible slice of the listing, and a bottom row
  reserved for the panel's inline ``Error: ...`` message,
- a status line describing the selected entry (size, modification time)
  and the last status message,
- the prompt line (y/n questions, the mkdir name prompt, the command line),
- the F-key menu bar.

The renderer is read-only: it never touches the session, only the snapshot.
Wide Unicode names are measured with ``wcwidth``.
"""

import curses
import logging
import time
from typing import Any

from wcwidth import wcswidth, wcwidth

from twinpane.core.DirectoryReader import Entry
from twinpane.core.Navigation import InputMode
from twinpane.core.Session import PanelView, Snapshot
from twinpane.utils.utils import format_size, get_file_icon, hex_to_xterm


MENU_ITEMS = (
    ("F3", "View"),
    ("F4", "Edit"),
    ("F5", "Copy"),
    ("F6", "Move"),
    ("F7", "MkDir"),
    ("F8", "Delete"),
    (":", "Cmd"),
    ("Esc", "Quit"),
)

# Rows below the panels: status line, prompt line, menu bar.
FOOTER_ROWS = 3


## ================= class DrawScreen ==============================
class DrawScreen:
    """DrawScreen Class
    =========================
    Draws the dual-panel interface from an immutable ``Snapshot``.

    Attributes:
        MIN_WINDOW_WIDTH (int): Narrowest window that can show two panels.
        MIN_WINDOW_HEIGHT (int): Lowest window that can show the layout.
        stdscr (curses.window): The main curses window object.
        config (dict): Application configuration.
        colors (dict[str, int]): Role name -> curses attribute.
        show_icons (bool): Prefix names with file-type icons.

    Methods:
        viewport_height_for(rows): Listing rows available in a window of *rows* lines.
        draw(snapshot): Renders one frame.
        truncate_string(s, max_width): Clips a string to a visual width.
    """

    MIN_WINDOW_WIDTH = 30
    MIN_WINDOW_HEIGHT = 8

    def __init__(self, stdscr: Any, config: dict[str, Any]) -> None:
        self.stdscr = stdscr
        self.config = config
        self.show_icons = bool(config.get("panels", {}).get("show_icons", False))
        self.colors: dict[str, int] = {}
        self.init_colors()

    @staticmethod
    def viewport_height_for(rows: int) -> int:
        """Panel height minus two border rows and the error row."""
        panel_height = rows - FOOTER_ROWS
        return max(1, panel_height - 3)

    # --- Colors ---
    def _color_index(self, spec: Any, can_use_256_colors: bool) -> int:
        if isinstance(spec, int):
            return spec
        name = str(spec).strip().lower()
        if name.startswith("#"):
            return hex_to_xterm(name) if can_use_256_colors else -1
        return getattr(curses, f"COLOR_{name.upper()}", -1)

    def init_colors(self) -> None:
        """Initializes curses color pairs with graceful degradation."""
        monochrome = {
            "panel": curses.A_NORMAL,
            "directory": curses.A_BOLD,
            "selected": curses.A_REVERSE,
            "border": curses.A_NORMAL,
            "border_active": curses.A_BOLD,
            "error": curses.A_BOLD,
            "menu_key": curses.A_REVERSE,
            "menu_label": curses.A_NORMAL,
            "status": curses.A_REVERSE,
        }
        try:
            has_colors = curses.has_colors() and curses.COLORS >= 8
        except curses.error:
            has_colors = False
        if not has_colors:
            logging.warning("Terminal has no or limited color support (< 8). Using monochrome attributes.")
            self.colors = monochrome
            return

        try:
            curses.start_color()
            curses.use_default_colors()
        except curses.error:
            pass

        extra_attrs = {"border_active": curses.A_BOLD, "error": curses.A_BOLD, "directory": curses.A_BOLD}
        user_colors: dict[str, Any] = self.config.get("colors", {})
        can_use_256_colors = curses.COLORS >= 256
        pair_id = 1
        for name, fallback in monochrome.items():
            spec = user_colors.get(name)
            if not (isinstance(spec, (list, tuple)) and len(spec) == 2) or pair_id >= curses.COLOR_PAIRS:
                self.colors[name] = fallback
                continue
            fg = self._color_index(spec[0], can_use_256_colors)
            bg = self._color_index(spec[1], can_use_256_colors)
            try:
                curses.init_pair(pair_id, fg, bg)
                self.colors[name] = curses.color_pair(pair_id) | extra_attrs.get(name, 0)
                pair_id += 1
            except curses.error as e:
                logging.error(f"Failed to initialize curses pair for '{name}': {e}")
                self.colors[name] = fallback

    # --- Text helpers ---
    def truncate_string(self, s: str, max_width: int) -> str:
        """Return `s` clipped to visual width `max_width`."""
        result: list[str] = []
        consumed = 0
        for ch in s:
            w = wcwidth(ch)
            if w < 0:
                w = 1
            if consumed + w > max_width:
                break
            result.append(ch)
            consumed += w
        return "".join(result)

    @staticmethod
    def string_width(s: str) -> int:
        width = wcswidth(s)
        return width if width >= 0 else len(s)

    def _addstr(self, y: int, x: int, text: str, attr: int = 0) -> None:
        # Writing into the bottom-right cell raises even when the text is drawn.
        try:
            self.stdscr.addstr(y, x, text, attr)
        except curses.error:
            pass

    # --- Frame ---
    def draw(self, snapshot: Snapshot) -> None:
        """Renders one complete frame."""
        try:
            height, width = self.stdscr.getmaxyx()
            if height < self.MIN_WINDOW_HEIGHT or width < self.MIN_WINDOW_WIDTH:
                self._show_small_window_error(height, width)
                return

            self.stdscr.erase()
            panel_height = height - FOOTER_ROWS
            left_width = width // 2
            self._draw_panel(snapshot.left, 0, left_width, panel_height)
            self._draw_panel(snapshot.right, left_width, width - left_width, panel_height)
            self._draw_status_line(snapshot, height - 3, width)
            self._draw_prompt_line(snapshot, height - 2, width)
            self._draw_menu_bar(height - 1, width)
            self._update_display()
        except curses.error as e:
            logging.error(f"DrawScreen: curses error while drawing: {e}")

    def _show_small_window_error(self, height: int, width: int) -> None:
        msg = f"Window too small ({width}x{height}). Minimum is {self.MIN_WINDOW_WIDTH}x{self.MIN_WINDOW_HEIGHT}."
        try:
            self.stdscr.clear()
            self._addstr(height // 2, max(0, (width - len(msg)) // 2), self.truncate_string(msg, width))
            self._update_display()
        except curses.error:
            pass

    def _draw_border(self, x: int, width: int, height: int, attr: int) -> None:
        right = x + width - 1
        bottom = height - 1
        self.stdscr.hline(0, x + 1, curses.ACS_HLINE | attr, width - 2)
        self.stdscr.hline(bottom, x + 1, curses.ACS_HLINE | attr, width - 2)
        self.stdscr.vline(1, x, curses.ACS_VLINE | attr, height - 2)
        self.stdscr.vline(1, right, curses.ACS_VLINE | attr, height - 2)
        for y, cx, ch in (
            (0, x, curses.ACS_ULCORNER),
            (0, right, curses.ACS_URCORNER),
            (bottom, x, curses.ACS_LLCORNER),
            (bottom, right, curses.ACS_LRCORNER),
        ):
            try:
                self.stdscr.addch(y, cx, ch | attr)
            except curses.error:
                pass

    def _entry_label(self, entry: Entry) -> str:
        name = entry.name
        if entry.is_dir and not entry.is_parent:
            name += "/"
        elif entry.is_symlink:
            name = "@" + name
        if self.show_icons and not entry.is_parent:
            name = f"{get_file_icon(entry.name, self.config, is_dir=entry.is_dir)} {name}"
        return name

    def _draw_panel(self, view: PanelView, x: int, width: int, height: int) -> None:
        """Draws one bordered panel: title, rows, empty/pending message, error row."""
        border_attr = self.colors["border_active" if view.is_active else "border"]
        panel_attr = self.colors["panel"]
        inner_x = x + 1
        inner_width = width - 2

        for y in range(1, height - 1):
            self._addstr(y, inner_x, " " * inner_width, panel_attr)
        self._draw_border(x, width, height, border_attr)

        title = f" {view.path}{' …' if view.pending else ''} "
        if self.string_width(title) > inner_width - 2:
            title = " …" + view.path[-(inner_width - 6):] + " "
        self._addstr(0, x + 2, self.truncate_string(title, inner_width - 2), border_attr)

        if not view.entries:
            if view.pending:
                message = "Loading..."
            elif view.error is None:
                message = "No items in this directory."
            else:
                message = ""
            if message:
                self._addstr(1, inner_x + 1, self.truncate_string(message, inner_width - 1), panel_attr)

        for row, entry in enumerate(view.entries):
            y = 1 + row
            if y >= height - 2:
                break
            if view.is_active and row == view.cursor:
                attr = self.colors["selected"]
            elif entry.is_dir:
                attr = self.colors["directory"]
            else:
                attr = panel_attr
            tag = "<DIR>" if entry.is_dir and not entry.is_parent else ""
            label = self.truncate_string(self._entry_label(entry), inner_width - len(tag) - 2)
            gap = inner_width - 1 - self.string_width(label) - len(tag)
            line = " " + label + " " * max(1, gap) + tag
            self._addstr(y, inner_x, self.truncate_string(line, inner_width), attr)

        if view.error:
            error_text = self.truncate_string(f"Error: {view.error}", inner_width - 1)
            self._addstr(height - 2, inner_x + 1, error_text, self.colors["error"])

    def _draw_status_line(self, snapshot: Snapshot, y: int, width: int) -> None:
        attr = self.colors["status"]
        self._addstr(y, 0, " " * width, attr)
        entry = snapshot.panel(snapshot.active_panel).selected
        left = ""
        if entry is not None and not entry.is_parent:
            parts = [entry.name]
            if not entry.is_dir and entry.size is not None:
                parts.append(format_size(entry.size))
            if entry.modified_at is not None:
                parts.append(time.strftime("%Y-%m-%d %H:%M", time.localtime(entry.modified_at)))
            left = "  ".join(parts)
        right = snapshot.status_message
        if snapshot.running and not right:
            right = "Working..."
        right = self.truncate_string(right, max(0, width // 2))
        left = self.truncate_string(left, max(0, width - self.string_width(right) - 3))
        self._addstr(y, 1, left, attr)
        if right:
            self._addstr(y, max(0, width - self.string_width(right) - 1), right, attr)

    def _draw_prompt_line(self, snapshot: Snapshot, y: int, width: int) -> None:
        text_mode = snapshot.mode in (InputMode.NAME_INPUT, InputMode.COMMAND)
        line = snapshot.prompt_label + (snapshot.prompt_text if text_mode else "")
        visible = line
        if self.string_width(line) > width - 1:
            # Keep the end of the typed text visible.
            visible = line[-(width - 1):]
        self._addstr(y, 0, visible)
        try:
            if text_mode:
                curses.curs_set(1)
                self.stdscr.move(y, min(width - 1, self.string_width(visible)))
            else:
                curses.curs_set(0)
        except curses.error:
            pass

    def _draw_menu_bar(self, y: int, width: int) -> None:
        x = 0
        for key, label in MENU_ITEMS:
            if x >= width - 1:
                break
            self._addstr(y, x, self.truncate_string(key, width - x - 1), self.colors["menu_key"])
            x += len(key)
            text = self.truncate_string(f"{label} ", max(0, width - x - 1))
            self._addstr(y, x, text, self.colors["menu_label"])
            x += len(text)

    def _update_display(self) -> None:
        """Physically updates the screen contents using curses double-buffering."""
        try:
            self.stdscr.noutrefresh()
            curses.doupdate()
        except curses.error as e:
            logging.error(f"Curses doupdate error: {e}")
