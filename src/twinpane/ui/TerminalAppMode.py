# src/twinpane/ui/TerminalAppMode.py
from __future__ import annotations

import curses
import logging
import subprocess
from typing import Any, Optional

try:
    from curses import putp, setupterm, tigetstr
except ImportError:  # pragma: no cover
    tigetstr = None  # type: ignore[assignment]
    setupterm = None  # type: ignore[assignment]
    putp = None  # type: ignore[assignment]


class TerminalAppMode:
    """
    Puts the terminal into a file-manager-friendly state and hands it over to
    external programs (viewer, editor) on demand:

    - Alternate screen buffer (smcup/rmcup) so the shell prompt is hidden.
    - Application cursor keys (smkx/rmkx) so arrows and F-keys reach the app.
    - cbreak + noecho, keypad(True), hidden cursor.
    - ``run_external`` suspends curses, runs a program on the real terminal
      and restores the curses screen afterwards.

    Always pair `enter(stdscr)` with `exit()` (try/finally).
    """

    def __init__(self) -> None:
        self._entered: bool = False
        self._stdscr: Optional[Any] = None

    def enter(self, stdscr: Any) -> None:
        self._stdscr = stdscr

        try:
            if setupterm:
                setupterm()
        except curses.error as e:
            logging.debug("setupterm() failed or not required: %r", e)

        self._tputs("smcup")
        self._tputs("smkx")

        # cbreak keeps Ctrl+C as SIGINT, unlike raw mode.
        curses.cbreak()
        curses.noecho()
        stdscr.keypad(True)

        try:
            curses.set_escdelay(35)
        except (AttributeError, curses.error):
            pass
        try:
            curses.curs_set(0)
        except curses.error:
            pass

        stdscr.scrollok(False)
        stdscr.clearok(True)
        stdscr.erase()
        stdscr.refresh()

        self._entered = True
        logging.debug("TerminalAppMode: entered (alternate screen + app cursor keys).")

    def exit(self) -> None:
        if not self._entered:
            return

        try:
            if self._stdscr is not None:
                self._stdscr.keypad(False)
            curses.nocbreak()
            curses.echo()
            curses.curs_set(1)
        except curses.error:
            pass

        self._tputs("rmkx")
        self._tputs("rmcup")

        self._entered = False
        logging.debug("TerminalAppMode: exited (restored terminal modes).")

    def run_external(self, argv: list[str], cwd: str) -> int:
        """Runs *argv* in *cwd* with the terminal handed over, returns its exit code.

        Raises:
            OSError: When the program cannot be started.
        """
        logging.info(f"TerminalAppMode: suspending curses for {argv!r}")
        curses.def_prog_mode()
        curses.endwin()
        self._tputs("rmkx")
        try:
            return subprocess.call(argv, cwd=cwd)
        finally:
            self._tputs("smkx")
            curses.reset_prog_mode()
            if self._stdscr is not None:
                self._stdscr.clearok(True)
                self._stdscr.refresh()
            logging.info("TerminalAppMode: curses resumed")

    # ── helpers ───────────────────────────────────────────────────────────────

    def _tputs(self, capname: str) -> None:
        try:
            if tigetstr and putp:
                s = tigetstr(capname)
                if s:
                    putp(s)
        except curses.error as e:
            # Non-fatal where capability is missing (FreeBSD console, etc.).
            logging.debug("tputs(%s) skipped: %r", capname, e)
