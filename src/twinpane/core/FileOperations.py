# twinpane/core/FileOperations.py
"""FileOperations Module
=====================
The file operation engine: copy, move, delete, mkdir, view and edit.

Every operation is represented by an immutable ``PendingOperation`` that the
``FileOperationEngine`` replaces as it moves through its state machine::

    CREATED -> AWAITING_CONFIRMATION -> RUNNING -> SUCCEEDED | FAILED
            -> AWAITING_NAME         ->
            (declined)               -> CANCELLED

Confirmation rules:
    - DELETE always waits for confirmation.
    - COPY and MOVE wait for confirmation only when the destination directory
      already holds an entry with the same name; confirming overwrites it.
    - MKDIR waits for the user to supply a non-empty, unused name.
    - VIEW and EDIT start immediately.

The engine holds a single operation slot. While the slot is occupied by an
operation that has not reached a terminal state, ``request`` raises ``Busy``
and the occupying operation is left untouched. The check happens in
``request`` itself; there is only one actor (the user) that can start
operations, so no lock is involved.

COPY, MOVE, DELETE and MKDIR run on the background engine through the
``submit`` callable; the blocking work is done by ``perform_operation`` and
the outcome is handed back with ``complete``. VIEW and EDIT need the terminal,
so they run synchronously through the injected ``launcher`` and finish before
``request`` returns.
"""

import dataclasses
import logging
import os
import shlex
import shutil
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from twinpane.core.DirectoryReader import PARENT_NAME, normalize_path, parent_of
from twinpane.core.Errors import (
    AlreadyExists,
    Busy,
    ErrorKind,
    ExternalProcessFailed,
    FileManagerError,
    GenericIOError,
    NotFound,
    classify_os_error,
)
from twinpane.core.PanelState import Panel


# Runs an external program with the terminal handed over to it, returns its exit code.
Launcher = Callable[[list[str], str], int]
Submitter = Callable[[dict[str, Any]], None]


class OperationKind(Enum):
    COPY = "copy"
    MOVE = "move"
    DELETE = "delete"
    MKDIR = "mkdir"
    VIEW = "view"
    EDIT = "edit"


class OperationStatus(Enum):
    CREATED = "created"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    AWAITING_NAME = "awaiting_name"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset(
    {OperationStatus.SUCCEEDED, OperationStatus.FAILED, OperationStatus.CANCELLED}
)

# Commands tried when neither the config nor the environment names one.
FALLBACK_COMMANDS = {OperationKind.VIEW: "less", OperationKind.EDIT: "vi"}
ENVIRONMENT_COMMANDS = {
    OperationKind.VIEW: ("PAGER",),
    OperationKind.EDIT: ("VISUAL", "EDITOR"),
}


@dataclass(frozen=True)
class PendingOperation:
    """One requested file operation and its current state.

    Attributes:
        op_id (int): Identifier matching background results to the operation.
        kind (OperationKind): What to do.
        origin (Panel): The panel that triggered the operation.
        source_path (str): The entry operated on; for MKDIR, the directory
            in which the new directory is created.
        destination_path (Optional[str]): Full target path for COPY/MOVE.
        target_name (Optional[str]): Name supplied for MKDIR.
        status (OperationStatus): Position in the state machine.
        overwrite (bool): Replace an existing destination (confirmed).
        prompt (str): Question shown while awaiting confirmation or a name.
        error_detail (Optional[str]): Failure message, present iff FAILED.
        error_kind (Optional[ErrorKind]): Taxonomy member of the failure.
    """

    op_id: int
    kind: OperationKind
    origin: Panel
    source_path: str
    destination_path: Optional[str] = None
    target_name: Optional[str] = None
    status: OperationStatus = OperationStatus.CREATED
    overwrite: bool = False
    prompt: str = ""
    error_detail: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @property
    def is_active(self) -> bool:
        return self.status not in TERMINAL_STATUSES

    @property
    def source_name(self) -> str:
        return os.path.basename(self.source_path)

    @property
    def display_name(self) -> str:
        if self.kind is OperationKind.MKDIR and self.target_name:
            return self.target_name
        return self.source_name

    @property
    def target_path(self) -> Optional[str]:
        if self.kind is OperationKind.MKDIR:
            if not self.target_name:
                return None
            return os.path.join(self.source_path, self.target_name)
        return self.destination_path

    def affected_directories(self) -> tuple[str, ...]:
        """Directories whose listings change when this operation completes."""
        if self.kind is OperationKind.MKDIR:
            return (self.source_path,)
        source_dir = parent_of(self.source_path)
        if self.kind is OperationKind.COPY and self.destination_path:
            return (parent_of(self.destination_path),)
        if self.kind is OperationKind.MOVE and self.destination_path:
            return (source_dir, parent_of(self.destination_path))
        return (source_dir,)


def _is_within(path: str, ancestor: str) -> bool:
    ancestor = normalize_path(ancestor)
    try:
        return os.path.commonpath([normalize_path(path), ancestor]) == ancestor
    except ValueError:
        return False


def _remove(path: str) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    else:
        os.unlink(path)


def _prepare_destination(destination: str, overwrite: bool) -> None:
    if os.path.lexists(destination):
        if not overwrite:
            raise AlreadyExists(f"Already exists: {destination}", destination)
        _remove(destination)


def perform_operation(
    kind: OperationKind,
    source: str,
    destination: Optional[str] = None,
    overwrite: bool = False,
) -> None:
    """Performs the filesystem side of COPY, MOVE, DELETE or MKDIR.

    This is the blocking part of an operation; it runs on a worker thread of
    the background engine. For MKDIR, *source* is the full path of the
    directory to create.

    Raises:
        FileManagerError: Every failure, already classified. Partially
            completed recursive copies are not rolled back.
    """
    try:
        if kind is not OperationKind.MKDIR and not os.path.lexists(source):
            raise NotFound(f"No such file or directory: {source}", source)
        if kind is OperationKind.COPY:
            if destination is None:
                raise GenericIOError(f"No destination for {kind.value}", source)
            _prepare_destination(destination, overwrite)
            if os.path.isdir(source) and not os.path.islink(source):
                shutil.copytree(source, destination, symlinks=True)
            else:
                shutil.copy2(source, destination, follow_symlinks=False)
        elif kind is OperationKind.MOVE:
            if destination is None:
                raise GenericIOError(f"No destination for {kind.value}", source)
            _prepare_destination(destination, overwrite)
            shutil.move(source, destination)
        elif kind is OperationKind.DELETE:
            _remove(source)
        elif kind is OperationKind.MKDIR:
            os.mkdir(source)
        else:
            raise GenericIOError(f"Operation '{kind.value}' cannot run in the background")
    except FileManagerError:
        raise
    except OSError as e:
        raise classify_os_error(e, source) from e


def resolve_command(kind: OperationKind, commands: Mapping[str, Any]) -> list[str]:
    """Builds the argv prefix of the external viewer or editor.

    Lookup order: ``[commands] viewer/editor`` from the configuration, then
    ``PAGER`` (view) or ``VISUAL``/``EDITOR`` (edit) from the environment,
    then ``less`` / ``vi``.
    """
    key = "viewer" if kind is OperationKind.VIEW else "editor"
    configured = commands.get(key)
    if configured:
        return shlex.split(str(configured))
    for var in ENVIRONMENT_COMMANDS[kind]:
        value = os.environ.get(var)
        if value:
            return shlex.split(value)
    return [FALLBACK_COMMANDS[kind]]


# ==================== FileOperationEngine Class ====================
class FileOperationEngine:
    """Owns the single operation slot and drives its state machine.

    Attributes:
        current (Optional[PendingOperation]): The latest operation, active or
            finished. Finished operations stay here until the next request so
            the renderer can show their outcome.
        submit (Submitter): Sends background tasks to the async engine.
        launcher (Launcher): Runs viewer/editor processes in the foreground.
        commands (Mapping[str, Any]): The ``[commands]`` config section.
    """

    def __init__(
        self,
        submit: Submitter,
        launcher: Launcher,
        commands: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.submit = submit
        self.launcher = launcher
        self.commands: Mapping[str, Any] = commands or {}
        self.current: Optional[PendingOperation] = None
        self._next_id = 0

    @property
    def is_busy(self) -> bool:
        return self.current is not None and self.current.is_active

    @property
    def is_running(self) -> bool:
        return self.current is not None and self.current.status is OperationStatus.RUNNING

    def _transition(self, op: PendingOperation, **changes: Any) -> PendingOperation:
        new_op = dataclasses.replace(op, **changes)
        self.current = new_op
        logging.debug(
            f"FileOperationEngine: op #{op.op_id} {op.kind.value}: "
            f"{op.status.value} -> {new_op.status.value}"
        )
        return new_op

    def _fail(self, op: PendingOperation, error: FileManagerError) -> PendingOperation:
        logging.warning(f"FileOperationEngine: op #{op.op_id} {op.kind.value} failed: {error}")
        return self._transition(
            op,
            status=OperationStatus.FAILED,
            error_detail=str(error),
            error_kind=error.kind,
        )

    # --- Requests ---
    def request(
        self,
        kind: OperationKind,
        origin: Panel,
        source_path: str,
        destination_dir: Optional[str] = None,
    ) -> PendingOperation:
        """Creates a new operation and advances it as far as it can go alone.

        Args:
            kind: Operation to perform.
            origin: Panel that triggered it; receives the error on failure.
            source_path: Selected entry (or, for MKDIR, the directory to
                create the new directory in).
            destination_dir: Directory to copy/move into (COPY/MOVE only).

        Returns:
            PendingOperation: The operation in its new state: awaiting the
            user, running in the background, or finished (VIEW/EDIT).

        Raises:
            Busy: Another operation occupies the slot.
            GenericIOError, NotFound: The request is invalid; no operation
                is created.
        """
        if self.is_busy:
            assert self.current is not None
            raise Busy(
                f"Busy: {self.current.kind.value} of '{self.current.source_name}' "
                "is still in progress"
            )

        source_path = normalize_path(source_path)
        if kind is not OperationKind.MKDIR and os.path.basename(source_path) in ("", PARENT_NAME):
            raise GenericIOError(f"Cannot {kind.value} this entry", source_path)
        if kind in (OperationKind.VIEW, OperationKind.EDIT) and os.path.isdir(source_path):
            raise GenericIOError(
                f"Cannot {kind.value} a directory: {os.path.basename(source_path)}", source_path
            )

        self._next_id += 1
        op = PendingOperation(op_id=self._next_id, kind=kind, origin=origin, source_path=source_path)
        self.current = op
        logging.info(f"FileOperationEngine: created op #{op.op_id} {kind.value} '{source_path}'")

        if kind is OperationKind.DELETE:
            return self._transition(
                op,
                status=OperationStatus.AWAITING_CONFIRMATION,
                prompt=f"Delete '{op.source_name}'?",
            )

        if kind is OperationKind.MKDIR:
            return self._transition(
                op, status=OperationStatus.AWAITING_NAME, prompt="New directory name:"
            )

        if kind in (OperationKind.VIEW, OperationKind.EDIT):
            return self._run_external(op)

        # COPY / MOVE
        if destination_dir is None:
            self.current = None
            raise GenericIOError(f"No destination for {kind.value}", source_path)
        destination = os.path.join(normalize_path(destination_dir), op.source_name)
        if destination == source_path or _is_within(destination, source_path):
            self.current = None
            raise GenericIOError(
                f"Cannot {kind.value} '{op.source_name}' into itself", destination
            )
        # The destination must not contain the source.
        if _is_within(source_path, destination):
            self.current = None
            raise GenericIOError(
                f"Cannot {kind.value} '{op.source_name}' over a directory containing it",
                destination,
            )
        op = self._transition(op, destination_path=destination)
        if os.path.lexists(destination):
            return self._transition(
                op,
                status=OperationStatus.AWAITING_CONFIRMATION,
                overwrite=True,
                prompt=f"Overwrite '{destination}'?",
            )
        return self._start(op)

    def confirm(self) -> PendingOperation:
        """Accepts the pending confirmation and starts the operation."""
        op = self.current
        if op is None or op.status is not OperationStatus.AWAITING_CONFIRMATION:
            raise GenericIOError("No operation is awaiting confirmation")
        return self._start(op)

    def decline(self) -> PendingOperation:
        """Cancels an operation that is awaiting confirmation or a name."""
        op = self.current
        if op is None or op.status not in (
            OperationStatus.AWAITING_CONFIRMATION,
            OperationStatus.AWAITING_NAME,
        ):
            raise GenericIOError("No operation is awaiting an answer")
        logging.info(f"FileOperationEngine: op #{op.op_id} {op.kind.value} declined")
        return self._transition(op, status=OperationStatus.CANCELLED, prompt="")

    def supply_name(self, name: str) -> PendingOperation:
        """Provides the directory name of a MKDIR and starts it when valid.

        An empty, malformed or already used name fails the operation without
        touching the filesystem.
        """
        op = self.current
        if op is None or op.status is not OperationStatus.AWAITING_NAME:
            raise GenericIOError("No operation is awaiting a name")
        name = name.strip()
        if not name:
            return self._fail(op, GenericIOError("Directory name must not be empty"))
        if name in (".", PARENT_NAME) or os.sep in name or (os.altsep and os.altsep in name):
            return self._fail(op, GenericIOError(f"Invalid directory name: {name}"))
        op = self._transition(op, target_name=name)
        if os.path.lexists(op.target_path):
            return self._fail(op, AlreadyExists(f"Already exists: {name}", op.target_path))
        return self._start(op)

    # --- Execution ---
    def _start(self, op: PendingOperation) -> PendingOperation:
        op = self._transition(op, status=OperationStatus.RUNNING, prompt="")
        source = op.target_path if op.kind is OperationKind.MKDIR else op.source_path
        self.submit(
            {
                "type": "file_op",
                "op_id": op.op_id,
                "kind": op.kind.value,
                "source": source,
                "destination": op.destination_path,
                "overwrite": op.overwrite,
            }
        )
        return op

    def _run_external(self, op: PendingOperation) -> PendingOperation:
        op = self._transition(op, status=OperationStatus.RUNNING)
        argv = [*resolve_command(op.kind, self.commands), op.source_path]
        logging.info(f"FileOperationEngine: launching {argv!r}")
        try:
            returncode = self.launcher(argv, parent_of(op.source_path))
        except OSError as e:
            return self._fail(op, classify_os_error(e, argv[0]))
        if returncode != 0:
            return self._fail(
                op,
                ExternalProcessFailed(
                    f"{argv[0]} exited with status {returncode}", op.source_path, returncode
                ),
            )
        return self._transition(op, status=OperationStatus.SUCCEEDED)

    def complete(
        self, op_id: int, error: Optional[FileManagerError] = None
    ) -> Optional[PendingOperation]:
        """Applies the background outcome of the operation *op_id*.

        Returns:
            Optional[PendingOperation]: The finished operation, or None when
            *op_id* does not match the running operation.
        """
        op = self.current
        if op is None or op.op_id != op_id or op.status is not OperationStatus.RUNNING:
            logging.warning(f"FileOperationEngine: ignoring result for unknown op #{op_id}")
            return None
        if error is not None:
            return self._fail(op, error)
        logging.info(f"FileOperationEngine: op #{op_id} {op.kind.value} succeeded")
        return self._transition(op, status=OperationStatus.SUCCEEDED)
