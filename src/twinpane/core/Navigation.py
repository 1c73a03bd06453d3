# twinpane/core/Navigation.py
"""Navigation Module
=================
Turns input intents into session mutations.

The key binder decides *which* intent a physical key means; this module
decides *what* the intent does. ``NavigationController`` holds no state of
its own: every call reads and writes the ``AppSession`` it is given, which
keeps every state change attributable to exactly one input event.

Error policy: a ``FileManagerError`` (or a stray ``OSError``) raised while an
intent is carried out is caught here and written to the acting panel's
``last_error``. For each event either the session changes or an error is
surfaced, never both silently skipped; ``handle`` returns True in both
cases.
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Callable

from twinpane.core.Errors import FileManagerError, GenericIOError
from twinpane.core.FileOperations import OperationKind

if TYPE_CHECKING:
    from twinpane.core.Session import AppSession


class Intent(Enum):
    TOGGLE_PANEL = auto()
    QUIT = auto()
    CURSOR_UP = auto()
    CURSOR_DOWN = auto()
    PAGE_UP = auto()
    PAGE_DOWN = auto()
    HOME = auto()
    END = auto()
    ACTIVATE = auto()
    ASCEND = auto()
    VIEW = auto()
    EDIT = auto()
    COPY = auto()
    MOVE = auto()
    MKDIR = auto()
    DELETE = auto()
    REFRESH = auto()
    CONFIRM = auto()
    DECLINE = auto()
    COMMAND_LINE = auto()
    TYPE_CHAR = auto()
    DELETE_CHAR = auto()
    SUBMIT = auto()
    CANCEL = auto()
    COPY_PATH = auto()
    TOGGLE_HIDDEN = auto()
    RESIZE = auto()


class InputMode(Enum):
    """What the keyboard is currently feeding."""

    NORMAL = auto()
    CONFIRM = auto()
    NAME_INPUT = auto()
    COMMAND = auto()


@dataclass(frozen=True)
class InputEvent:
    """One classified key press.

    ``text`` carries the character of a TYPE_CHAR event; ``value`` carries
    the new viewport height of a RESIZE event.
    """

    intent: Intent
    text: str = ""
    value: int = 0


OPERATION_INTENTS = {
    Intent.VIEW: OperationKind.VIEW,
    Intent.EDIT: OperationKind.EDIT,
    Intent.COPY: OperationKind.COPY,
    Intent.MOVE: OperationKind.MOVE,
    Intent.MKDIR: OperationKind.MKDIR,
    Intent.DELETE: OperationKind.DELETE,
}

# Intents accepted while a confirmation question is on screen.
CONFIRM_INTENTS = frozenset(
    {Intent.CONFIRM, Intent.DECLINE, Intent.CANCEL, Intent.QUIT, Intent.RESIZE}
)

# Intents accepted while the mkdir name prompt or the command line is open.
TEXT_INTENTS = frozenset(
    {Intent.TYPE_CHAR, Intent.DELETE_CHAR, Intent.SUBMIT, Intent.CANCEL, Intent.RESIZE}
)


# ==================== NavigationController Class ====================
class NavigationController:
    """Stateless dispatcher from ``InputEvent`` to ``AppSession`` calls.

    Methods:
        handle(session, event) -> bool:
            Applies one event. Returns True if the session changed or an
            error was surfaced, False if the event was a no-op (for example
            moving the cursor up at the top of the listing).
    """

    def handle(self, session: "AppSession", event: InputEvent) -> bool:
        intent = event.intent
        mode = session.mode

        if mode is InputMode.CONFIRM and intent not in CONFIRM_INTENTS:
            session.status_message = "Please answer y/n"
            return True
        if mode in (InputMode.NAME_INPUT, InputMode.COMMAND) and intent not in TEXT_INTENTS:
            return False

        handler = self._handlers().get(intent)
        if handler is None:
            logging.debug(f"NavigationController: no handler for {intent.name}")
            return False

        try:
            return handler(session, event)
        except (FileManagerError, OSError) as e:
            logging.info(f"NavigationController: {intent.name} failed: {e}")
            session.report_error(session.active_panel, e)
            return True

    def _handlers(self) -> dict[Intent, Callable[["AppSession", InputEvent], bool]]:
        return {
            Intent.TOGGLE_PANEL: lambda s, e: s.toggle_active_panel(),
            Intent.QUIT: self._quit,
            Intent.CURSOR_UP: lambda s, e: s.active.move_cursor(-1),
            Intent.CURSOR_DOWN: lambda s, e: s.active.move_cursor(1),
            Intent.PAGE_UP: lambda s, e: s.active.page_up(),
            Intent.PAGE_DOWN: lambda s, e: s.active.page_down(),
            Intent.HOME: lambda s, e: s.active.move_to_start(),
            Intent.END: lambda s, e: s.active.move_to_end(),
            Intent.ACTIVATE: self._activate,
            Intent.ASCEND: self._ascend,
            Intent.VIEW: self._operation,
            Intent.EDIT: self._operation,
            Intent.COPY: self._operation,
            Intent.MOVE: self._operation,
            Intent.MKDIR: self._operation,
            Intent.DELETE: self._operation,
            Intent.REFRESH: self._refresh,
            Intent.CONFIRM: lambda s, e: s.confirm(),
            Intent.DECLINE: lambda s, e: s.decline(),
            Intent.COMMAND_LINE: lambda s, e: s.open_command_line(),
            Intent.TYPE_CHAR: lambda s, e: s.prompt_insert(e.text),
            Intent.DELETE_CHAR: lambda s, e: s.prompt_backspace(),
            Intent.SUBMIT: lambda s, e: s.submit_prompt(),
            Intent.CANCEL: self._cancel,
            Intent.COPY_PATH: lambda s, e: s.copy_selected_path(),
            Intent.TOGGLE_HIDDEN: lambda s, e: s.toggle_hidden(),
            Intent.RESIZE: self._resize,
        }

    # --- Handlers ---
    def _quit(self, session: "AppSession", event: InputEvent) -> bool:
        session.request_quit()
        return True

    def _activate(self, session: "AppSession", event: InputEvent) -> bool:
        panel = session.active
        entry = panel.selected_entry()
        if entry is None:
            raise GenericIOError("Nothing selected", panel.path)
        if entry.is_parent:
            session.submit_read(panel.ascend())
        elif entry.is_dir:
            session.submit_read(panel.descend_into(entry))
        else:
            session.begin_operation(session.file_action)
        return True

    def _ascend(self, session: "AppSession", event: InputEvent) -> bool:
        session.submit_read(session.active.ascend())
        return True

    def _operation(self, session: "AppSession", event: InputEvent) -> bool:
        session.begin_operation(OPERATION_INTENTS[event.intent])
        return True

    def _refresh(self, session: "AppSession", event: InputEvent) -> bool:
        session.refresh_panel(session.active_panel)
        return True

    def _cancel(self, session: "AppSession", event: InputEvent) -> bool:
        if session.mode is InputMode.COMMAND:
            return session.close_command_line()
        return session.decline()

    def _resize(self, session: "AppSession", event: InputEvent) -> bool:
        session.set_viewport_height(event.value)
        return True
