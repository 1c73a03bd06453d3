# tests/test_get_file_icon.py
"""Unit tests for the `get_file_icon` utility function.

This module verifies that the correct icon is returned based on
file names, extensions and the directory flag, using a configurable mapping.
"""

from twinpane.utils.utils import DEFAULT_CONFIG, get_file_icon


# Sample configuration used across tests
sample_config = {
    "file_icons": {
        "default": "❓",  # Fallback icon for unsupported files
        "text": "📝",  # Icon for plain text files
        "python": "🐍",  # Icon for Python files
        "folder": "📁",  # Icon for directories
        "docs": "📘",  # Documentation files (blue book)
    },
    "supported_formats": {
        "python": ["py", "pyw"],
        "text": ["txt", "log"],
        # Exact names (case-insensitive, without extension) +
        # extensions to be associated with the documentation icon 📘
        "docs": ["readme", "md", "rst", "guide", "manual"],
    },
}


def test_icon_for_exact_filename() -> None:
    """Ensure that exact file names and extensions map to the docs icon.

    This test checks both:
    - A bare filename without extension (`readme`).
    - A common documentation file with extension (`README.md`).
    """
    assert get_file_icon("readme", sample_config) == "📘"
    assert get_file_icon("README.md", sample_config) == "📘"


def test_icon_by_extension() -> None:
    assert get_file_icon("main.py", sample_config) == "🐍"
    assert get_file_icon("server.log", sample_config) == "📝"


def test_unknown_extension_falls_back_to_text_icon() -> None:
    assert get_file_icon("archive.xyz", sample_config) == "📝"


def test_directories_get_folder_icon() -> None:
    """A directory named like a Python file is still a directory."""
    assert get_file_icon("lib.py", sample_config, is_dir=True) == "📁"


def test_missing_name_or_config() -> None:
    assert get_file_icon(None, sample_config) == "❓"
    assert get_file_icon("a.py", None) == "❓"  # type: ignore[arg-type]


def test_default_config_covers_archives() -> None:
    assert get_file_icon("backup.tar.gz", DEFAULT_CONFIG) == DEFAULT_CONFIG["file_icons"]["archive"]
