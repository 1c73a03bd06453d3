# twinpane/core/Session.py
"""Session Module
==============
``AppSession`` is the composition root of the file manager core.

It owns the two ``PanelState`` objects (indexed by ``Panel``), the active
panel flag, the ``FileOperationEngine`` with its single operation slot, the
text prompt used for MKDIR names and the command line, and a reference to
the background ``AsyncEngine``.

State changes enter through exactly two doors:

- ``handle_input(event)``: one input event, dispatched by the
  ``NavigationController``.
- ``process_results()``: drains the engine's result queue and applies each
  completion (directory listings, finished operations, finished shell
  commands) on the UI thread.

``snapshot()`` returns an immutable ``Snapshot`` for the renderer. Nothing in
the snapshot aliases mutable session state.
"""

import logging
import os
import queue
import subprocess
from dataclasses import dataclass
from typing import Any, Callable, Optional

import pyperclip

from twinpane.core.DirectoryReader import (
    DirectoryReader,
    Entry,
    Listing,
    ReadResult,
    is_ancestor_or_equal,
    normalize_path,
    resolve,
)
from twinpane.core.Errors import (
    ExternalProcessFailed,
    FileManagerError,
    GenericIOError,
    NotADirectory,
    classify_os_error,
)
from twinpane.core.FileOperations import (
    FileOperationEngine,
    Launcher,
    OperationKind,
    OperationStatus,
    PendingOperation,
)
from twinpane.core.Navigation import InputEvent, InputMode, NavigationController
from twinpane.core.PanelState import Panel, PanelState, ReadRequest


def filesystem_root() -> str:
    return os.path.abspath(os.sep)


def home_directory() -> str:
    return normalize_path("~")


def run_external(argv: list[str], cwd: str) -> int:
    """Default launcher: runs *argv* in *cwd* and waits for it to exit."""
    return subprocess.call(argv, cwd=cwd)


@dataclass(frozen=True)
class PanelView:
    """Render-ready view of one panel."""

    panel: Panel
    path: str
    entries: Listing
    cursor: int
    is_active: bool
    error: Optional[str]
    pending: bool
    selected: Optional[Entry]
    total: int
    scroll_offset: int


@dataclass(frozen=True)
class Snapshot:
    """Everything the renderer needs for one frame."""

    left: PanelView
    right: PanelView
    active_panel: Panel
    operation: Optional[PendingOperation]
    mode: InputMode
    prompt_label: str
    prompt_text: str
    status_message: str
    running: bool
    show_hidden: bool

    def panel(self, panel: Panel) -> PanelView:
        return self.left if panel is Panel.LEFT else self.right


# ==================== AppSession Class ====================
class AppSession:
    """Owns both panels, the operation slot and the input mode.

    Attributes:
        engine: The background executor; needs ``submit_task(dict)`` and a
            ``to_ui_queue`` of result dictionaries (``AsyncEngine``).
        config (dict): Merged application configuration.
        panels (dict[Panel, PanelState]): Exactly two panel states.
        active_panel (Panel): The panel receiving navigation intents.
        operations (FileOperationEngine): The single operation slot.
        mode (InputMode): What the keyboard currently feeds.
        prompt_text (str): Text typed into the name prompt or command line.
        status_message (str): One-line feedback shown above the menu bar.
        show_hidden (bool): Whether dot-files are listed.
        file_action (OperationKind): VIEW or EDIT, run when a file is activated.
        quit_requested (bool): Set by the QUIT intent; the main loop exits.
    """

    def __init__(
        self,
        engine: Any,
        config: Optional[dict[str, Any]] = None,
        left_path: Optional[str] = None,
        right_path: Optional[str] = None,
        launcher: Optional[Launcher] = None,
        viewport_height: int = 20,
        clipboard: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.engine = engine
        self.config: dict[str, Any] = config or {}
        panels_config = self.config.get("panels", {})
        commands_config = self.config.get("commands", {})

        self.show_hidden = bool(panels_config.get("show_hidden", True))
        if str(panels_config.get("activate_file", "view")).lower() == "edit":
            self.file_action = OperationKind.EDIT
        else:
            self.file_action = OperationKind.VIEW
        self.shell: Optional[str] = commands_config.get("shell") or None

        self.controller = NavigationController()
        self.operations = FileOperationEngine(
            submit=engine.submit_task,
            launcher=launcher or run_external,
            commands=commands_config,
        )
        self.copy_to_clipboard = clipboard or pyperclip.copy
        self._stat_reader = DirectoryReader()
        self._stat_cache: dict[tuple[str, str], Entry] = {}

        self.mode = InputMode.NORMAL
        self.prompt_text = ""
        self.status_message = ""
        self.quit_requested = False
        self.active_panel = Panel.LEFT

        requested = {
            Panel.LEFT: left_path or panels_config.get("left") or filesystem_root(),
            Panel.RIGHT: right_path or panels_config.get("right") or home_directory(),
        }
        self.panels: dict[Panel, PanelState] = {}
        for panel in Panel:
            path, error = self._validate_start_path(requested[panel])
            state = PanelState(panel, path, viewport_height)
            self.panels[panel] = state
            if error is not None:
                state.last_error = str(error)
            self.submit_read(state.refresh(keep_error=error is not None))

    # --- Startup ---
    @staticmethod
    def _validate_start_path(path: str) -> tuple[str, Optional[FileManagerError]]:
        """Returns a usable start directory and the error that replaced *path*, if any."""
        path = normalize_path(path)
        error: Optional[FileManagerError] = None
        try:
            if not os.path.isdir(path):
                os.stat(path)
                error = NotADirectory(f"Not a directory: {path}", path)
        except OSError as e:
            error = classify_os_error(e, path)
        if error is None:
            return path, None
        root = filesystem_root()
        logging.warning(f"AppSession: invalid start path '{path}' ({error}); using '{root}'")
        return root, error

    # --- Accessors ---
    @property
    def active(self) -> PanelState:
        return self.panels[self.active_panel]

    @property
    def inactive(self) -> PanelState:
        return self.panels[self.active_panel.other]

    @property
    def running(self) -> bool:
        return self.operations.is_running

    # --- Input ---
    def handle_input(self, event: InputEvent) -> bool:
        """Applies one input event; returns True when a redraw is needed."""
        return self.controller.handle(self, event)

    def toggle_active_panel(self) -> bool:
        self.active_panel = self.active_panel.other
        return True

    def request_quit(self) -> None:
        logging.info("AppSession: quit requested")
        self.quit_requested = True

    def set_viewport_height(self, height: int) -> None:
        for state in self.panels.values():
            state.recompute_scroll(height)

    def toggle_hidden(self) -> bool:
        self.show_hidden = not self.show_hidden
        self.status_message = "Hidden files shown" if self.show_hidden else "Hidden files hidden"
        for panel in Panel:
            self.refresh_panel(panel)
        return True

    def copy_selected_path(self) -> bool:
        entry = self.active.selected_entry()
        if entry is None:
            raise GenericIOError("Nothing selected", self.active.path)
        path = resolve(self.active.path, entry.name)
        try:
            self.copy_to_clipboard(path)
        except pyperclip.PyperclipException as e:
            raise GenericIOError(f"Clipboard unavailable: {e}", path) from e
        self.status_message = f"Copied: {path}"
        return True

    def report_error(self, panel: Panel, error: Exception) -> None:
        """Writes *error* to the panel's inline error line."""
        if not isinstance(error, FileManagerError):
            if isinstance(error, OSError):
                error = classify_os_error(error)
            else:
                error = GenericIOError(str(error))
        self.panels[panel].last_error = str(error)

    # --- Directory reads ---
    def submit_read(self, request: ReadRequest) -> None:
        self.engine.submit_task(
            {
                "type": "read_dir",
                "panel": request.panel.value,
                "path": request.path,
                "token": request.token,
                "show_hidden": self.show_hidden,
            }
        )

    def refresh_panel(self, panel: Panel, keep_error: bool = False) -> None:
        self.submit_read(self.panels[panel].refresh(keep_error=keep_error))

    # --- Operations ---
    def begin_operation(self, kind: OperationKind) -> PendingOperation:
        """Starts *kind* on the active panel's selection (or directory, for MKDIR).

        Raises:
            FileManagerError: Busy, or nothing usable is selected.
        """
        state = self.active
        destination: Optional[str] = None
        if kind is OperationKind.MKDIR:
            source = state.path
        else:
            entry = state.selected_entry()
            if entry is None:
                raise GenericIOError("Nothing selected", state.path)
            if entry.is_parent:
                raise GenericIOError(f"Cannot {kind.value} '..'", state.path)
            source = resolve(state.path, entry.name)
            if kind in (OperationKind.COPY, OperationKind.MOVE):
                destination = self.inactive.path
        op = self.operations.request(kind, self.active_panel, source, destination)
        self._after_transition(op)
        return op

    def confirm(self) -> bool:
        self._after_transition(self.operations.confirm())
        return True

    def decline(self) -> bool:
        self.prompt_text = ""
        self._after_transition(self.operations.decline())
        return True

    def _after_transition(self, op: PendingOperation) -> None:
        if op.status is OperationStatus.AWAITING_CONFIRMATION:
            self.mode = InputMode.CONFIRM
            self.status_message = ""
        elif op.status is OperationStatus.AWAITING_NAME:
            self.mode = InputMode.NAME_INPUT
            self.prompt_text = ""
            self.status_message = ""
        elif op.status is OperationStatus.RUNNING:
            self.mode = InputMode.NORMAL
            self.status_message = f"{op.kind.value.capitalize()} '{op.display_name}'..."
        elif op.status is OperationStatus.CANCELLED:
            self.mode = InputMode.NORMAL
            self.status_message = f"{op.kind.value.capitalize()} cancelled"
        else:
            self._finish_operation(op)

    def _panels_to_refresh(self, op: PendingOperation) -> list[Panel]:
        if op.kind in (OperationKind.VIEW, OperationKind.EDIT):
            return [op.origin]
        affected = op.affected_directories()
        result = []
        for panel, state in self.panels.items():
            if any(is_ancestor_or_equal(state.path, d) for d in affected):
                result.append(panel)
            elif op.kind in (OperationKind.MOVE, OperationKind.DELETE) and is_ancestor_or_equal(
                op.source_path, state.path
            ):
                # The panel is showing a directory that no longer exists there.
                result.append(panel)
        return result

    def _finish_operation(self, op: PendingOperation) -> None:
        self.mode = InputMode.NORMAL
        failed = op.status is OperationStatus.FAILED
        if failed:
            self.panels[op.origin].last_error = op.error_detail
            self.status_message = f"{op.kind.value.capitalize()} failed"
        else:
            self.status_message = f"{op.kind.value.capitalize()} '{op.display_name}' done"
        for panel in self._panels_to_refresh(op):
            self.refresh_panel(panel, keep_error=failed and panel is op.origin)

    # --- Text prompt and command line ---
    def open_command_line(self) -> bool:
        self.mode = InputMode.COMMAND
        self.prompt_text = ""
        return True

    def close_command_line(self) -> bool:
        self.mode = InputMode.NORMAL
        self.prompt_text = ""
        return True

    def prompt_insert(self, text: str) -> bool:
        if not text:
            return False
        self.prompt_text += text
        return True

    def prompt_backspace(self) -> bool:
        if not self.prompt_text:
            return False
        self.prompt_text = self.prompt_text[:-1]
        return True

    def submit_prompt(self) -> bool:
        text = self.prompt_text
        if self.mode is InputMode.NAME_INPUT:
            self.prompt_text = ""
            self._after_transition(self.operations.supply_name(text))
            return True
        if self.mode is InputMode.COMMAND:
            self.close_command_line()
            if text.strip():
                self.run_command(text.strip())
            return True
        return False

    def run_command(self, command: str) -> None:
        """Runs *command* in the active panel's directory on the background engine."""
        logging.info(f"AppSession: command line '{command}' in '{self.active.path}'")
        self.engine.submit_task(
            {
                "type": "shell_command",
                "command": command,
                "cwd": self.active.path,
                "panel": self.active_panel.value,
                "shell": self.shell,
            }
        )
        self.status_message = f"Running: {command}"

    # --- Background completions ---
    def process_results(self) -> bool:
        """Drains the engine's result queue.

        Returns:
            bool: True if any result changed the session.
        """
        changed = False
        try:
            while True:
                msg = self.engine.to_ui_queue.get_nowait()
                changed |= self.apply_result(msg)
        except queue.Empty:
            pass
        return changed

    def apply_result(self, msg: dict[str, Any]) -> bool:
        """Applies one result dictionary produced by the background engine."""
        msg_type = msg.get("type")
        if msg_type == "listing_ready":
            result: ReadResult = msg["result"]
            state = self.panels[Panel(msg["panel"])]
            applied = state.on_listing_ready(msg["path"], result, msg.get("token"))
            if applied:
                self._stat_cache.clear()
            return applied

        if msg_type == "operation_done":
            op = self.operations.complete(msg["op_id"], msg.get("error"))
            if op is None:
                return False
            self._finish_operation(op)
            return True

        if msg_type == "command_done":
            self._finish_command(msg)
            return True

        if msg_type == "task_error":
            return self._apply_task_error(msg)

        logging.warning(f"AppSession: unknown result message type: {msg_type}")
        return False

    def _finish_command(self, msg: dict[str, Any]) -> None:
        panel = Panel(msg["panel"]) if msg.get("panel") else self.active_panel
        state = self.panels[panel]
        command = msg.get("command", "")
        returncode = msg.get("returncode")
        error: Optional[FileManagerError] = msg.get("error")
        if error is None and returncode != 0:
            error = ExternalProcessFailed(
                f"'{command}' exited with status {returncode}", msg.get("cwd"), returncode
            )

        lines = [line for line in msg.get("output", "").splitlines() if line.strip()]
        if error is not None:
            logging.info(f"AppSession: command '{command}' failed: {error}")
            state.last_error = str(error)
            self.status_message = lines[-1] if lines else f"'{command}' failed"
        else:
            self.status_message = lines[-1] if lines else f"'{command}' finished"
        self.refresh_panel(panel, keep_error=error is not None)

    def _apply_task_error(self, msg: dict[str, Any]) -> bool:
        error = GenericIOError(str(msg.get("error")))
        task_type = msg.get("task_type")
        if task_type == "file_op" and msg.get("op_id") is not None:
            op = self.operations.complete(msg["op_id"], error)
            if op is not None:
                self._finish_operation(op)
                return True
        if msg.get("panel"):
            state = self.panels[Panel(msg["panel"])]
            if task_type == "read_dir":
                state.pending = False
            state.last_error = str(error)
            return True
        self.status_message = f"Error: {error}"
        return True

    # --- Rendering ---
    def _selected_details(self, state: PanelState) -> Optional[Entry]:
        entry = state.selected_entry()
        if entry is None or entry.is_parent:
            return entry
        key = (state.path, entry.name)
        if key not in self._stat_cache:
            self._stat_cache[key] = self._stat_reader.stat_entry(state.path, entry)
        return self._stat_cache[key]

    def _panel_view(self, panel: Panel) -> PanelView:
        state = self.panels[panel]
        is_active = panel is self.active_panel
        return PanelView(
            panel=panel,
            path=state.path,
            entries=state.visible_slice(),
            cursor=state.cursor - state.scroll_offset,
            is_active=is_active,
            error=state.last_error,
            pending=state.pending,
            selected=self._selected_details(state) if is_active else state.selected_entry(),
            total=len(state.listing),
            scroll_offset=state.scroll_offset,
        )

    def snapshot(self) -> Snapshot:
        op = self.operations.current
        if self.mode is InputMode.COMMAND:
            label = f"{self.active.path}$ "
        elif op is not None and self.mode in (InputMode.CONFIRM, InputMode.NAME_INPUT):
            label = op.prompt + (" (y/n)" if self.mode is InputMode.CONFIRM else " ")
        else:
            label = ""
        return Snapshot(
            left=self._panel_view(Panel.LEFT),
            right=self._panel_view(Panel.RIGHT),
            active_panel=self.active_panel,
            operation=op,
            mode=self.mode,
            prompt_label=label,
            prompt_text=self.prompt_text,
            status_message=self.status_message,
            running=self.running,
            show_hidden=self.show_hidden,
        )
