# twinpane/utils/utils.py
"""
twinpane.utils.utils.py
=======================

This module provides a collection of core utility functions for twinpane.

Key functionalities include:
- Automatic User Configuration: Manages the creation and loading of user-specific
  configuration files (`config.toml`, `.env`) in `~/.config/twinpane`, ensuring a
  seamless first-run experience.
- Robust Configuration Loading: Implements a multi-layered strategy that loads a
  hardcoded, built-in default configuration, then recursively merges it with
  user-defined settings from `~/.config/twinpane/config.toml`.
- File Icon Resolution: Determines the appropriate icon for files based on their
  name or extension.
- Output Decoding: Turns raw bytes from shell commands into text, detecting the
  encoding with `chardet` when the output is not valid UTF-8.
- Helper Utilities: Includes functions for deep-merging dictionaries, human
  readable sizes and color conversion.

This architecture ensures the application is always runnable, even if user
configuration files are missing or corrupted, by falling back to the
embedded defaults.
"""

import copy
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import chardet
import toml

logger = logging.getLogger("twinpane")

# --- Constants ---
WHITE_FG_IDX = 255

ENV_TEMPLATE = """# Environment for twinpane.
# External programs used by View (F3) and Edit (F4) when config.toml does not name them.
# PAGER=less
# EDITOR=vi
"""

# This dictionary is the built-in configuration.
# It serves as the ultimate fallback, ensuring the application can ALWAYS start.
DEFAULT_CONFIG: Dict[str, Any] = {
    "logging": {
        "file_level": "DEBUG", "console_level": "WARNING",
        "log_to_console": False, "separate_error_log": False, "log_dir": "",
    },
    "panels": {
        "left": "", "right": "", "show_hidden": True,
        "activate_file": "view", "show_icons": False,
    },
    "commands": {"viewer": "", "editor": "", "shell": ""},
    "colors": {
        "panel": ["white", "blue"], "directory": ["cyan", "blue"],
        "selected": ["black", "cyan"], "border": ["white", "blue"],
        "border_active": ["yellow", "blue"], "error": ["red", "blue"],
        "menu_key": ["black", "cyan"], "menu_label": ["white", "black"],
        "status": ["white", "black"],
    },
    "keybindings": {
        "toggle_panel": ["tab"], "quit": ["esc", "q", "f10"],
        "cursor_up": ["up", "k"], "cursor_down": ["down", "j"],
        "page_up": ["pageup"], "page_down": ["pagedown"],
        "home": ["home"], "end": ["end"],
        "activate": ["enter", "ctrl+j", "ctrl+m"], "ascend": ["backspace", "left"],
        "view": ["f3"], "edit": ["f4"], "copy": ["f5"], "move": ["f6"],
        "mkdir": ["f7"], "delete": ["f8", "delete"],
        "refresh": ["ctrl+r"], "command_line": [":"],
        "copy_path": ["ctrl+p"], "toggle_hidden": ["alt+."],
    },
    "file_icons": {
        "python": "🐍", "text": "📝", "markdown": "📗", "shell": "💫",
        "image": "🖼️", "audio": "🎵", "video": "🎞️", "archive": "📦",
        "document": "📄", "folder": "📁", "default": "❓",
    },
    "supported_formats": {
        "python": ["py", "pyw"], "text": ["txt", "log", "rst"],
        "markdown": ["md", "markdown"], "shell": ["sh", "bash", "zsh", "fish"],
        "image": ["jpg", "jpeg", "png", "gif", "bmp", "svg", "webp"],
        "audio": ["mp3", "wav", "ogg", "flac"],
        "video": ["mp4", "mkv", "avi", "mov", "webm"],
        "archive": ["zip", "tar", "gz", "tgz", "bz2", "xz", "7z", "rar"],
        "document": ["pdf", "doc", "docx", "odt", "xls", "xlsx"],
    },
}


# --- Helper Functions ---

def get_config_dir() -> Path:
    """Returns the per-user configuration directory `~/.config/twinpane`."""
    return Path.home() / ".config" / "twinpane"


def get_project_root() -> Path:
    """Determines the project's root directory for finding template files."""
    return Path(__file__).resolve().parents[3]


def ensure_user_config_exists() -> None:
    """Checks for user config files in `~/.config/twinpane` and creates them if missing."""
    try:
        config_dir = get_config_dir()
        user_config_path = config_dir / "config.toml"
        user_env_path = config_dir / ".env"

        config_dir.mkdir(parents=True, exist_ok=True)

        if not user_config_path.exists():
            source_config_path = get_project_root() / "config.toml"
            if source_config_path.exists():
                user_config_path.write_text(
                    source_config_path.read_text(encoding="utf-8"), encoding="utf-8"
                )
                logger.info(f"Created user config template at: {user_config_path}")

        if not user_env_path.exists():
            user_env_path.write_text(ENV_TEMPLATE, encoding="utf-8")
            logger.info(f"Created user .env template at: {user_env_path}")

    except Exception as e:
        logger.critical(f"Could not create user configuration files: {e}", exc_info=True)


def load_config(user_config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Loads and merges configurations, ensuring the application can always run.

    Args:
        user_config_path: Explicit config file to merge instead of
            `~/.config/twinpane/config.toml` (no templates are created then).
    """
    final_config = copy.deepcopy(DEFAULT_CONFIG)
    logger.debug("Loaded embedded default configuration.")

    if user_config_path is None:
        ensure_user_config_exists()
        user_config_path = get_config_dir() / "config.toml"

    if user_config_path.is_file():
        try:
            user_config = toml.load(user_config_path)
            final_config = deep_merge(final_config, user_config)
            logger.info(f"Successfully loaded and merged user config from {user_config_path}")
        except Exception as e:
            logger.error(f"Could not parse user config '{user_config_path}': {e}. Using defaults.")

    return final_config


def get_file_icon(filename: Optional[str], config: Dict[str, Any], is_dir: bool = False) -> str:
    """
    Returns an icon string for a given filename based on the configuration.

    This function uses a two-pass strategy for reliability:
    1.  **Exact Match First**: It checks for an exact, case-insensitive match of the
        entire filename (e.g., "Makefile", ".gitignore"). This is the highest priority.
    2.  **Extension Match Second**: If no exact match is found, it checks the file's
        extension (e.g., "py", "js") against the configuration lists.

    Directories always get the "folder" icon. If neither pass finds a match, it
    returns a generic text icon as a fallback.

    Args:
        filename: The name of the file (e.g., "my_script.py").
        config: The application configuration dictionary.
        is_dir: True when the entry is a directory.

    Returns:
        A string containing the corresponding icon.
    """
    if not isinstance(config, dict):
        return "❓"

    file_icons = config.get("file_icons", {})
    supported_formats = config.get("supported_formats", {})
    default_icon = file_icons.get("default", "❓")
    text_icon = file_icons.get("text", "📝")

    if is_dir:
        return file_icons.get("folder", default_icon)
    if not filename:
        return default_icon

    base_name_lower = Path(filename.lower()).name

    # Pass 1: Check for an exact filename match (e.g., "makefile", ".gitignore").
    for icon_key, names_list in supported_formats.items():
        if isinstance(names_list, list):
            lower_names_list = [str(name).lower() for name in names_list]
            if base_name_lower in lower_names_list:
                return file_icons.get(icon_key, default_icon)

    # Pass 2: If no exact match, check by file extension.
    # Path.suffix handles names like 'archive.tar.gz' -> '.gz'
    extension = Path(base_name_lower).suffix
    if extension:
        ext_without_dot = extension[1:]
        for icon_key, extensions_list in supported_formats.items():
            if isinstance(extensions_list, list):
                if ext_without_dot in extensions_list:
                    return file_icons.get(icon_key, default_icon)

    # If no match was found in either pass, return the generic text icon.
    return text_icon


def decode_output(data: bytes) -> str:
    """
    Decodes subprocess output, detecting the encoding when it is not UTF-8.
    """
    if not data:
        return ""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        pass
    guess = chardet.detect(data)
    encoding = guess.get("encoding") or "latin-1"
    logger.debug(f"decode_output: detected {encoding} (confidence {guess.get('confidence')})")
    try:
        return data.decode(encoding, errors="replace")
    except LookupError:
        return data.decode("latin-1", errors="replace")


def format_size(size: Optional[int]) -> str:
    """
    Formats a byte count the way file managers show it (e.g. 512, 1.5K, 20M).
    """
    if size is None:
        return ""
    value = float(size)
    for unit in ("", "K", "M", "G", "T"):
        if value < 1024 or unit == "T":
            if unit == "":
                return str(int(value))
            return f"{value:.1f}{unit}" if value < 10 else f"{value:.0f}{unit}"
        value /= 1024
    return str(size)


def deep_merge(base: Dict, override: Dict) -> Dict:
    """
    Recursively merges the `override` dictionary into the `base` dictionary.
    """
    result = base.copy()
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def hex_to_xterm(hex_color: str) -> int:
    """
    Converts a hexadecimal color string to the nearest xterm-256 color index.
    """
    hex_color = hex_color.lstrip("#")
    if len(hex_color) != 6:
        return WHITE_FG_IDX
    try:
        r, g, b = (int(hex_color[i:i+2], 16) for i in (0, 2, 4))
    except ValueError:
        return WHITE_FG_IDX

    if r == g == b:
        if r < 8: return 16
        if r > 248: return 231
        return round(((r - 8) / 247) * 24) + 232

    return int(
        16
        + (36 * round(r / 255 * 5))
        + (6 * round(g / 255 * 5))
        + round(b / 255 * 5)
    )
