# src/twinpane/__init__.py
"""twinpane: a dual-panel orthodox file manager for the terminal."""

__version__ = "0.1.0"
