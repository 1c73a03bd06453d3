# src/twinpane/core/__init__.py
"""Public facade for twinpane.core: re-export main classes from CamelCase modules.

Keeps one module per component (DirectoryReader.py, PanelState.py, ...),
but provides flat imports for convenience and stability.
"""

# Re-export classes/symbols from CamelCase modules
from .Errors import ErrorKind, FileManagerError  # noqa: F401
from .DirectoryReader import DirectoryReader, Entry, ReadResult  # noqa: F401
from .PanelState import Panel, PanelState  # noqa: F401
from .FileOperations import (  # noqa: F401
    FileOperationEngine,
    OperationKind,
    OperationStatus,
    PendingOperation,
)
from .AsyncEngine import AsyncEngine  # noqa: F401
from .Navigation import InputEvent, InputMode, Intent, NavigationController  # noqa: F401
from .Session import AppSession, Snapshot  # noqa: F401


__all__ = [
    "AppSession",
    "AsyncEngine",
    "DirectoryReader",
    "Entry",
    "ErrorKind",
    "FileManagerError",
    "FileOperationEngine",
    "InputEvent",
    "InputMode",
    "Intent",
    "NavigationController",
    "OperationKind",
    "OperationStatus",
    "Panel",
    "PanelState",
    "PendingOperation",
    "ReadResult",
    "Snapshot",
]
