# twinpane/core/AsyncEngine.py
"""AsyncEngine Module
==================
This module provides the `AsyncEngine` class, which runs an asyncio event loop in a dedicated background thread and executes the slow parts of the file manager there: directory reads, file operations and shell commands typed into the command line. The curses UI thread never blocks on the filesystem; it only submits tasks and later drains their results.
Key Features:
-------------
- Runs an asyncio event loop in a separate thread to handle asynchronous tasks without blocking the main UI.
- Supports safe communication between threads using thread-safe queues.
- Dispatches tasks by their ``type`` to the matching async handler.
- Blocking filesystem work is pushed to the loop's default executor.
- Provides robust error handling and graceful shutdown of background tasks and the event loop.
Task types:
-----------
- ``read_dir``: ``{"panel", "path", "token", "show_hidden"}`` -> ``listing_ready``
- ``file_op``: ``{"op_id", "kind", "source", "destination", "overwrite"}`` -> ``operation_done``
- ``shell_command``: ``{"command", "cwd", "panel", "shell"}`` -> ``command_done``
Unknown task types are logged and dropped; unexpected failures produce a ``task_error`` message.
Results are only ever applied on the UI thread (see ``AppSession.process_results``), so the background thread never touches panel state.
Dependencies:
-------------
- asyncio
- threading
- queue
- logging
- typing
"""

import asyncio
import logging
import queue
import threading
from typing import Any, Optional

from twinpane.core.DirectoryReader import DirectoryReader
from twinpane.core.Errors import FileManagerError, classify_os_error
from twinpane.core.FileOperations import OperationKind, perform_operation
from twinpane.utils.utils import decode_output


# Let's define an alias for the queue elements to avoid repetition.
# The queue can receive tasks (dictionaries) or None to stop.
QueueItem = Optional[dict[str, Any]]


def run_blocking_task(task_data: dict[str, Any]) -> dict[str, Any]:
    """Executes a ``read_dir`` or ``file_op`` task synchronously.

    This is the blocking half of the engine, called from a worker thread.
    It is also usable directly, which lets tests replay tasks in any order.

    Args:
        task_data: The task dictionary as submitted by the UI thread.

    Returns:
        dict[str, Any]: The result message destined for the UI queue.

    Raises:
        ValueError: If the task type is not a blocking task.
    """
    task_type = task_data.get("type")

    if task_type == "read_dir":
        reader = DirectoryReader(show_hidden=task_data.get("show_hidden", True))
        result = reader.read(task_data["path"])
        return {
            "type": "listing_ready",
            "panel": task_data["panel"],
            "path": task_data["path"],
            "token": task_data.get("token"),
            "result": result,
        }

    if task_type == "file_op":
        error: Optional[FileManagerError] = None
        try:
            perform_operation(
                OperationKind(task_data["kind"]),
                task_data["source"],
                task_data.get("destination"),
                task_data.get("overwrite", False),
            )
        except FileManagerError as e:
            error = e
        return {"type": "operation_done", "op_id": task_data["op_id"], "error": error}

    raise ValueError(f"Not a blocking task type: {task_type!r}")


# ==================== AsyncEngine Class ====================
class AsyncEngine:
    """Class AsyncEngine
    ===================
    The `AsyncEngine` class is responsible for managing an asyncio event loop in a background thread.
    Directory reads and file operations are run on the loop's executor; shell commands run as
    asyncio subprocesses. Each finished task posts exactly one result dictionary to `to_ui_queue`.

    Attributes:
        loop (Optional[asyncio.AbstractEventLoop]): The asyncio event loop running in the background thread.
        thread (Optional[threading.Thread]): The background thread running the event loop.
        from_ui_queue (queue.Queue): Thread-safe queue for receiving tasks from the UI thread.
        to_ui_queue (queue.Queue): Thread-safe queue for sending results back to the UI thread.
        _tasks (set): Set of currently running asyncio tasks.
        config (dict): Application configuration.

    Methods:
        start():
            Starts the asyncio event loop in a background thread.
        submit_task(task_data: Dict[str, Any]):
            Thread-safe method for the UI thread to submit a new asynchronous task.
        stop():
            Gracefully stops the event loop and background thread, ensuring all tasks are cancelled.
        main_loop():
            The main asynchronous loop that listens for tasks from the UI thread and dispatches them.
        dispatch_task(task_data: Dict[str, Any]):
            Dispatches a received task to the appropriate asynchronous handler based on its type.
        _shutdown_tasks():
            Cancels all outstanding asynchronous tasks before shutting down the event loop.
    """

    def __init__(
        self, to_ui_queue: queue.Queue[dict[str, Any]], config: dict[str, Any]
    ) -> None:
        """Initializes the AsyncEngine instance.

        Args:
            to_ui_queue (queue.Queue): A thread-safe queue used to send results back to the main UI thread.
            config (dict): Configuration dictionary for the AsyncEngine.
        """
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.thread: Optional[threading.Thread] = None
        # from_ui_queue accepts tasks and stop signal (None)
        self.from_ui_queue: queue.Queue[QueueItem] = queue.Queue()
        # to_ui_queue sends only dictionaries with results
        self.to_ui_queue: queue.Queue[dict[str, Any]] = to_ui_queue
        self._tasks: set[asyncio.Task[Any]] = set()
        self.config: dict[str, Any] = config

    def _start_loop_in_thread(self) -> None:
        """Internal method to set up and run the event loop."""
        try:
            self.loop = asyncio.new_event_loop()
            asyncio.set_event_loop(self.loop)
            self.loop.run_until_complete(self.main_loop())
        finally:
            # Check that loop was created before accessing it
            if self.loop:
                if self.loop.is_running():
                    self.loop.stop()
                self.loop.close()
            logging.info("AsyncEngine event loop has shut down.")

    def start(self) -> None:
        """Starts the asyncio event loop in a background thread."""
        if self.thread is not None:
            logging.warning("AsyncEngine already started.")
            return
        logging.info("Starting AsyncEngine background thread...")
        self.thread = threading.Thread(
            target=self._start_loop_in_thread, daemon=True, name="AsyncEngineThread"
        )
        self.thread.start()

    async def main_loop(self) -> None:
        """The main async loop that listens for tasks from the UI thread.
        It runs until a stop signal (None) is received.
        """
        if not self.loop:
            logging.error("Event loop not initialized before starting main_loop.")
            return

        logging.info("AsyncEngine main_loop is running and waiting for tasks.")

        while True:
            try:
                # Safely wait for a task from the queue
                task_data = await self.loop.run_in_executor(
                    None, self.from_ui_queue.get
                )

                # Signal to stop the loop
                if task_data is None:
                    logging.info(
                        "AsyncEngine received stop signal. Breaking main_loop."
                    )
                    break

                # Run the task processing as a background asyncio.Task
                task = self.loop.create_task(self.dispatch_task(task_data))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)

            except Exception as e:
                # If the loop is still running, this is a real error
                if self.loop and self.loop.is_running():
                    logging.error(
                        f"Critical error in AsyncEngine main_loop: {e}", exc_info=True
                    )
                    await asyncio.sleep(1)
                else:  # Error during shutdown, likely normal
                    logging.info(
                        "Exception in main_loop during shutdown, likely normal"
                    )
                    break

        # Before exiting `main_loop`, cancel all remaining tasks.
        await self._shutdown_tasks()

    async def dispatch_task(self, task_data: dict[str, Any]) -> None:
        """Dispatches a task to the correct async handler based on its type."""
        task_type = task_data.get("type")
        logging.debug(f"AsyncEngine dispatching task of type: {task_type}")

        try:
            if task_type in ("read_dir", "file_op"):
                assert self.loop is not None
                result = await self.loop.run_in_executor(
                    None, run_blocking_task, task_data
                )
                self.to_ui_queue.put(result)

            elif task_type == "shell_command":
                command = task_data.get("command")
                cwd = task_data.get("cwd")
                if not (isinstance(command, str) and isinstance(cwd, str)):
                    raise ValueError(
                        "Missing or invalid 'command' or 'cwd' for shell_command task."
                    )
                self.to_ui_queue.put(await self._run_shell_command(task_data))

            else:
                logging.warning(f"AsyncEngine received unknown task type: {task_type}")

        except asyncio.CancelledError:
            raise
        except Exception as e:
            error_message = f"Error executing async task '{task_type}': {e}"
            logging.error(error_message, exc_info=True)
            # Send error message back to UI
            self.to_ui_queue.put(
                {
                    "type": "task_error",
                    "task_type": task_type,
                    "op_id": task_data.get("op_id"),
                    "panel": task_data.get("panel"),
                    "error": str(e),
                }
            )

    async def _run_shell_command(self, task_data: dict[str, Any]) -> dict[str, Any]:
        """Runs a command line in a shell and collects its combined output."""
        command: str = task_data["command"]
        cwd: str = task_data["cwd"]
        result: dict[str, Any] = {
            "type": "command_done",
            "command": command,
            "cwd": cwd,
            "panel": task_data.get("panel"),
            "returncode": None,
            "output": "",
            "error": None,
        }
        logging.info(f"AsyncEngine: running shell command {command!r} in '{cwd}'")
        try:
            process = await asyncio.create_subprocess_shell(
                command,
                cwd=cwd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                executable=task_data.get("shell") or None,
            )
            output, _ = await process.communicate()
        except OSError as e:
            result["error"] = classify_os_error(e, cwd)
            return result

        result["returncode"] = process.returncode
        result["output"] = decode_output(output or b"")
        logging.debug(f"AsyncEngine: command {command!r} exited with {process.returncode}")
        return result

    def submit_task(self, task_data: dict[str, Any]) -> None:
        """Thread-safe method for the UI thread to submit a task."""
        self.from_ui_queue.put(task_data)

    async def _shutdown_tasks(self) -> None:
        """Internal coroutine to cancel all running async tasks."""
        if not self._tasks:
            return
        logging.info(f"Cancelling {len(self._tasks)} outstanding async tasks...")
        tasks_to_cancel = list(self._tasks)
        for task in tasks_to_cancel:
            task.cancel()

        await asyncio.gather(*tasks_to_cancel, return_exceptions=True)
        logging.info("All async tasks cancelled.")

    def stop(self) -> None:
        """Gracefully and thread-safely stops the asyncio event loop and its tasks."""
        if not self.thread or not self.loop or not self.thread.is_alive():
            logging.debug(
                "AsyncEngine.stop() called, but no active loop or thread to stop."
            )
            return

        logging.info("Stopping AsyncEngine...")

        try:
            # Send None signal to the queue to exit the main_loop
            self.from_ui_queue.put(None)
            logging.info("Sent stop signal to AsyncEngine main_loop.")

            # Wait for the thread to finish
            self.thread.join(timeout=2.0)

            if self.thread.is_alive():
                logging.error(
                    "AsyncEngine thread did not stop gracefully within the timeout."
                )
                # Forcefully stop the event loop from another thread
                self.loop.call_soon_threadsafe(self.loop.stop)
            else:
                logging.info(
                    "AsyncEngine thread has been successfully stopped and joined."
                )

        except Exception as e:
            logging.error(
                f"An exception occurred while stopping AsyncEngine thread: {e}",
                exc_info=True,
            )
