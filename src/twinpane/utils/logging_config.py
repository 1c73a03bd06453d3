# twinpane/utils/logging_config.py
"""twinpane.utils.logging_config
===============================

Logging setup for twinpane.

curses owns the terminal while the file manager runs, so everything goes to
files by default; a console handler is available for debugging but is off
unless ``[logging] log_to_console = true`` is configured.

Handlers:
    - Rotating ``twinpane.log`` for general application events.
    - Optional console logging to stderr.
    - Optional ``error.log`` holding only ERROR and CRITICAL records.
    - Optional ``keytrace.log`` for raw key presses, enabled through the
      ``TWINPANE_KEYTRACE`` environment variable.

Log files are written to ``[logging] log_dir`` (default: the working
directory). When that directory cannot be created, the system temp
directory is used instead. ``setup_logging`` never raises.

Globals:
    logger: Main application logger ("twinpane").
    KEY_LOGGER: Logger for raw key-press trace events ("twinpane.keyevents").
"""

import logging
import logging.handlers
import os
import sys
import tempfile
from typing import Any, Optional


# ======================== Global loggers ========================
logger = logging.getLogger("twinpane")
KEY_LOGGER = logging.getLogger("twinpane.keyevents")

FILE_FORMAT = "%(asctime)s - %(levelname)-8s - %(name)-15s - %(message)s (%(filename)s:%(lineno)d)"
CONSOLE_FORMAT = "%(levelname)-8s - %(name)-12s - %(message)s"


def _resolve_log_dir(log_dir: str) -> str:
    """Returns a usable directory for log files, creating it if needed."""
    if not log_dir:
        return ""
    log_dir = os.path.expanduser(log_dir)
    try:
        os.makedirs(log_dir, exist_ok=True)
        return log_dir
    except OSError as e_mkdir:
        print(f"Error creating log directory '{log_dir}': {e_mkdir}", file=sys.stderr)
        fallback = tempfile.gettempdir()
        print(f"Logging to temporary directory: '{fallback}'", file=sys.stderr)
        return fallback


def _rotating_handler(
    filename: str, max_bytes: int, backup_count: int, level: int, formatter: logging.Formatter
) -> Optional[logging.Handler]:
    try:
        handler = logging.handlers.RotatingFileHandler(
            filename, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    except Exception as e_fh:
        print(f"Error setting up log file '{filename}': {e_fh}.", file=sys.stderr)
        return None
    handler.setFormatter(formatter)
    handler.setLevel(level)
    return handler


def setup_logging(config: Optional[dict[str, Any]] = None) -> None:
    """Configures application-wide logging handlers and log levels.

    Existing handlers on the root logger are replaced, so calling this twice
    (as tests do) does not duplicate records.

    Args:
        config (dict | None): Application configuration. Only the
            ``["logging"]`` section is consulted:

            - ``file_level`` (str): Level for twinpane.log. Default ``"DEBUG"``.
            - ``console_level`` (str): Level for stderr. Default ``"WARNING"``.
            - ``log_to_console`` (bool): Attach the stderr handler. Default ``False``.
            - ``separate_error_log`` (bool): Create error.log. Default ``False``.
            - ``log_dir`` (str): Directory for all log files. Default ``""``
              (the working directory).
    """
    if config is None:
        config = {}
    logging_config = config.get("logging", {})
    log_dir = _resolve_log_dir(str(logging_config.get("log_dir", "") or ""))

    log_file_level_str = str(logging_config.get("file_level", "DEBUG")).upper()
    log_file_level = getattr(logging, log_file_level_str, logging.DEBUG)

    file_formatter = logging.Formatter(FILE_FORMAT)
    log_filename = os.path.join(log_dir, "twinpane.log")
    file_handler = _rotating_handler(
        log_filename, 2 * 1024 * 1024, 5, log_file_level, file_formatter
    )

    console_handler = None
    if logging_config.get("log_to_console", False):
        console_level_str = str(logging_config.get("console_level", "WARNING")).upper()
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        console_handler.setLevel(getattr(logging, console_level_str, logging.WARNING))

    error_file_handler = None
    if logging_config.get("separate_error_log", False):
        error_file_handler = _rotating_handler(
            os.path.join(log_dir, "error.log"), 1024 * 1024, 3, logging.ERROR, file_formatter
        )

    root_logger = logging.getLogger()
    root_logger.handlers = []
    for handler in (file_handler, console_handler, error_file_handler):
        if handler:
            root_logger.addHandler(handler)
    root_logger.setLevel(log_file_level)

    # Key Event Logger
    KEY_LOGGER.propagate = False
    KEY_LOGGER.setLevel(logging.DEBUG)
    KEY_LOGGER.handlers = []

    if os.environ.get("TWINPANE_KEYTRACE", "").lower() in {"1", "true", "yes"}:
        key_trace_filename = os.path.join(log_dir, "keytrace.log")
        key_trace_handler = _rotating_handler(
            key_trace_filename, 1024 * 1024, 3, logging.DEBUG,
            logging.Formatter("%(asctime)s - %(message)s"),
        )
        if key_trace_handler:
            KEY_LOGGER.addHandler(key_trace_handler)
            KEY_LOGGER.disabled = False
            logging.info("Key event tracing enabled, logging to '%s'.", key_trace_filename)
        else:
            KEY_LOGGER.disabled = True
    else:
        KEY_LOGGER.addHandler(logging.NullHandler())
        KEY_LOGGER.disabled = True
        logging.debug("Key event tracing is disabled.")

    logging.info(
        "Logging setup complete. Root logger level: %s.",
        logging.getLevelName(root_logger.level),
    )
    if file_handler:
        logging.info(
            f"File logging to '{log_filename}' at level: {logging.getLevelName(file_handler.level)}."
        )
    if console_handler:
        logging.info(
            f"Console logging to stderr at level: {logging.getLevelName(console_handler.level)}."
        )
