# twinpane/main.py
"""
twinpane Main Entry Point
=========================

Launches the dual-panel file manager. It performs:
1) Environment Loading: reads ~/.config/twinpane/.env early, so PAGER/EDITOR
   overrides are visible to the viewer and editor lookup.
2) Argument Parsing: up to two start directories (left, right).
3) Configuration & Logging: loads config and initializes logging.
4) Curses Wrapper: safely initializes/tears down curses to avoid terminal corruption.
5) Application Run: instantiates App and starts its main loop.
"""

from __future__ import annotations

import argparse
import curses
import locale
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from twinpane import __version__

# --- Step 1: Load Environment Variables from the User's Config Directory ---
try:
    load_dotenv(dotenv_path=Path.home() / ".config" / "twinpane" / ".env")
except (OSError, RuntimeError):
    # No resolvable home directory; environment stays as inherited.
    pass

logger = logging.getLogger("twinpane")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="twinpane",
        description="Dual-panel orthodox file manager for the terminal.",
    )
    parser.add_argument("left", nargs="?", help="start directory of the left panel (default: /)")
    parser.add_argument("right", nargs="?", help="start directory of the right panel (default: ~)")
    parser.add_argument("--config", type=Path, help="use this config.toml instead of ~/.config/twinpane/config.toml")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main_app_runner(
    stdscr: Any, config: dict[str, Any], left: Optional[str], right: Optional[str]
) -> None:
    """Target for `curses.wrapper`: builds the App and runs its loop."""
    from twinpane.ui.App import App

    # Ignore terminal suspension (Ctrl+Z), typical for full-screen TUIs.
    if hasattr(signal, "SIGTSTP"):
        try:
            signal.signal(signal.SIGTSTP, signal.SIG_IGN)
        except (OSError, ValueError):
            pass

    App(stdscr, config, left_path=left, right_path=right).run()


def start(argv: Optional[list[str]] = None) -> None:
    """Parses arguments, sets up config and logging, and runs curses."""
    args = build_parser().parse_args(argv)

    try:
        from twinpane.utils.logging_config import setup_logging
        from twinpane.utils.utils import load_config

        config: dict[str, Any] = load_config(args.config)
        setup_logging(config)
    except Exception as e:
        # Logging is not ready; print to stderr and exit.
        print(f"FATAL: Could not initialize configuration or logging system: {e}", file=sys.stderr)
        sys.exit(1)

    logger.info(f"twinpane {__version__} starting up...")

    # Locale is important for collation and character widths.
    try:
        locale.setlocale(locale.LC_ALL, "")
    except locale.Error:
        logger.warning("Could not set system locale. Sorting and rendering may be affected.")

    os.environ.setdefault("ESCDELAY", "25")
    try:
        curses.wrapper(main_app_runner, config, args.left, args.right)
        logger.info("twinpane shut down gracefully.")
    except Exception:
        logger.critical("Unhandled exception at the top level.", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    start()
