# twinpane/core/Errors.py
"""Errors Module
=============
The error taxonomy shared by every core component of twinpane.

Platform errors (``OSError`` and its subclasses, ``shutil.Error``) are never
allowed to escape the core. They are classified into one of the
``FileManagerError`` subclasses below and then attached either to a panel
(``PanelState.last_error``) or to a pending file operation
(``PendingOperation.error_detail``).

Taxonomy:
---------
- NotFound: the path does not exist.
- PermissionDenied: the process lacks the rights for the requested access.
- NotADirectory: a directory was expected but something else was found.
- AlreadyExists: the target name is taken (mkdir, copy/move without overwrite).
- Busy: a file operation is already in progress.
- ExternalProcessFailed: viewer, editor or shell command exited non-zero.
- GenericIOError: catch-all for every other I/O failure.
"""

import errno
import logging
from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Stable identifiers for the error taxonomy."""

    NOT_FOUND = "NotFound"
    PERMISSION_DENIED = "PermissionDenied"
    NOT_A_DIRECTORY = "NotADirectory"
    ALREADY_EXISTS = "AlreadyExists"
    BUSY = "Busy"
    EXTERNAL_PROCESS_FAILED = "ExternalProcessFailed"
    GENERIC_IO = "GenericIOError"


class FileManagerError(Exception):
    """Base class of every classified twinpane error.

    Attributes:
        kind (ErrorKind): Taxonomy member of this error.
        message (str): Human readable text shown inline in a panel.
        path (Optional[str]): The filesystem path involved, if any.
    """

    kind: ErrorKind = ErrorKind.GENERIC_IO

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        return self.message


class NotFound(FileManagerError):
    kind = ErrorKind.NOT_FOUND


class PermissionDenied(FileManagerError):
    kind = ErrorKind.PERMISSION_DENIED


class NotADirectory(FileManagerError):
    kind = ErrorKind.NOT_A_DIRECTORY


class AlreadyExists(FileManagerError):
    kind = ErrorKind.ALREADY_EXISTS


class Busy(FileManagerError):
    kind = ErrorKind.BUSY


class ExternalProcessFailed(FileManagerError):
    """Raised when an external viewer, editor or shell command fails."""

    kind = ErrorKind.EXTERNAL_PROCESS_FAILED

    def __init__(
        self, message: str, path: Optional[str] = None, returncode: Optional[int] = None
    ) -> None:
        super().__init__(message, path)
        self.returncode = returncode


class GenericIOError(FileManagerError):
    kind = ErrorKind.GENERIC_IO


_ERRNO_CLASSES: dict[int, type[FileManagerError]] = {
    errno.ENOENT: NotFound,
    errno.EACCES: PermissionDenied,
    errno.EPERM: PermissionDenied,
    errno.ENOTDIR: NotADirectory,
    errno.EEXIST: AlreadyExists,
}


def classify_os_error(
    exc: BaseException, path: Optional[str] = None
) -> FileManagerError:
    """Maps a raw platform exception onto the twinpane error taxonomy.

    The mapping is decided by the exception class first (``FileNotFoundError``,
    ``PermissionError``, ...) and by ``errno`` second, so that plain
    ``OSError`` instances raised by ``shutil`` are classified as well.
    Already classified errors are returned unchanged.

    Args:
        exc: The exception to classify.
        path: The path the failing call was operating on. Used in the message
            when the exception does not carry a filename itself.

    Returns:
        FileManagerError: The classified error, never raised by this function.
    """
    if isinstance(exc, FileManagerError):
        return exc

    error_cls: type[FileManagerError] = GenericIOError
    if isinstance(exc, FileNotFoundError):
        error_cls = NotFound
    elif isinstance(exc, PermissionError):
        error_cls = PermissionDenied
    elif isinstance(exc, NotADirectoryError):
        error_cls = NotADirectory
    elif isinstance(exc, FileExistsError):
        error_cls = AlreadyExists
    elif isinstance(exc, OSError) and exc.errno in _ERRNO_CLASSES:
        error_cls = _ERRNO_CLASSES[exc.errno]

    if isinstance(exc, OSError) and exc.strerror:
        target = exc.filename if exc.filename is not None else path
        message = f"{exc.strerror}: {target}" if target else exc.strerror
    else:
        message = str(exc) or exc.__class__.__name__

    logging.debug(
        "classify_os_error: %s(%r) -> %s", type(exc).__name__, exc, error_cls.kind.value
    )
    return error_cls(message, path)
