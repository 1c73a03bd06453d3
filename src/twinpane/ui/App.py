# twinpane/ui/App.py
"""App Module
==========
The curses main loop of twinpane.

Each iteration of ``App.run``:

1. drains the background engine's result queue into the session,
2. reads at most one key (``stdscr.timeout`` keeps the loop ticking so
   background results are picked up without input),
3. intercepts ``KEY_RESIZE`` and turns it into a RESIZE event carrying the
   new viewport height; every other key goes through the ``KeyBinder``,
4. redraws when anything changed.

Unexpected exceptions inside one iteration are logged and the loop keeps
running; ``KeyboardInterrupt`` ends the session.
"""

import curses
import logging
import queue
from typing import Any, Optional

from twinpane.core.AsyncEngine import AsyncEngine
from twinpane.core.Navigation import InputEvent, Intent
from twinpane.core.Session import AppSession
from twinpane.ui.DrawScreen import DrawScreen
from twinpane.ui.KeyBinder import KeyBinder
from twinpane.ui.TerminalAppMode import TerminalAppMode


logger = logging.getLogger("twinpane")


# ==================== App Class ====================
class App:
    """Wires curses, the background engine and the session together.

    Attributes:
        stdscr (curses.window): The main curses window.
        config (dict): Application configuration.
        engine (AsyncEngine): Background executor for reads, operations and commands.
        terminal (TerminalAppMode): Terminal mode handling and program handoff.
        session (AppSession): The file manager state.
        keybinder (KeyBinder): Key -> intent translation.
        drawer (DrawScreen): Snapshot renderer.
    """

    TICK_MS = 100

    def __init__(
        self,
        stdscr: Any,
        config: dict[str, Any],
        left_path: Optional[str] = None,
        right_path: Optional[str] = None,
    ) -> None:
        self.stdscr = stdscr
        self.config = config
        self.terminal = TerminalAppMode()
        self.engine = AsyncEngine(to_ui_queue=queue.Queue(), config=config)
        self.drawer = DrawScreen(stdscr, config)
        self.keybinder = KeyBinder(stdscr, config, input_timeout_ms=self.TICK_MS)

        rows, _cols = stdscr.getmaxyx()
        self.session = AppSession(
            self.engine,
            config=config,
            left_path=left_path,
            right_path=right_path,
            launcher=self.terminal.run_external,
            viewport_height=DrawScreen.viewport_height_for(rows),
        )

    def run(self) -> None:
        """Runs until the session asks to quit."""
        logger.info("twinpane main loop started.")
        self.terminal.enter(self.stdscr)
        self.engine.start()
        self.stdscr.timeout(self.TICK_MS)
        try:
            self.drawer.draw(self.session.snapshot())
            while not self.session.quit_requested:
                try:
                    if self.step():
                        self.drawer.draw(self.session.snapshot())
                except KeyboardInterrupt:
                    logger.info("Main loop interrupted by KeyboardInterrupt.")
                    break
                except Exception as e:
                    logger.exception(f"Unhandled exception in main loop: {e}")
                    self.session.status_message = f"Internal error: {e}"
        finally:
            self.engine.stop()
            self.terminal.exit()
        logger.info("twinpane main loop finished.")

    def step(self) -> bool:
        """Processes background results and at most one key.

        Returns:
            bool: True if a redraw is needed.
        """
        redraw_needed = self.session.process_results()

        key = self.keybinder.get_key_input()
        if key in (curses.ERR, -1):
            return redraw_needed

        if key == curses.KEY_RESIZE:
            return self.handle_resize() or redraw_needed

        event = self.keybinder.translate(key, self.session.mode)
        if event is None:
            return redraw_needed
        logging.debug(f"App: key {key!r} -> {event.intent.name}")
        return self.session.handle_input(event) or redraw_needed

    def handle_resize(self) -> bool:
        try:
            curses.update_lines_cols()
        except (AttributeError, curses.error):
            pass
        rows, cols = self.stdscr.getmaxyx()
        logging.debug(f"App: terminal resized to {cols}x{rows}")
        self.stdscr.clear()
        return self.session.handle_input(
            InputEvent(Intent.RESIZE, value=DrawScreen.viewport_height_for(rows))
        )
