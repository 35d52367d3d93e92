"""Live per-invocation status lines for a running batch.

Each invocation owns one spinner line showing its id and a message. The
message starts as the program name, follows the last line of the
invocation's log while it runs, and ends with a Done/Failed/Error
summary. The reporter only observes; runs behave the same without it.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TaskID, TextColumn

from fleetrun.orchestration.invocation import EXITED, Invocation, InvocationResult
from fleetrun.utils import read_last_line

logger = logging.getLogger(__name__)


class ProgressReporter:
    """Registry of live display lines, one per invocation.

    Use as a context manager around the batch; lines are added before the
    workers start and updated from worker threads.
    """

    def __init__(self, console: Console | None = None):
        self._progress = Progress(
            SpinnerColumn(finished_text="[bold]-[/bold]"),
            TextColumn("[bold]{task.fields[invocation_id]}[/bold]"),
            TextColumn("{task.description}"),
            console=console or Console(stderr=True),
            transient=False,
        )
        self._lines: dict[int, TaskID] = {}
        self._lock = threading.Lock()

    def __enter__(self) -> ProgressReporter:
        self._progress.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._progress.stop()

    def add(self, invocation: Invocation) -> int:
        """Register a line for *invocation* and return its handle."""
        task_id = self._progress.add_task(
            escape(invocation.program), total=None, invocation_id=escape(invocation.id),
        )
        with self._lock:
            handle = len(self._lines)
            self._lines[handle] = task_id
        return handle

    def update(self, handle: int, message: str) -> None:
        self._progress.update(self._lines[handle], description=message)

    def make_callback(self, handle: int, log_path: Path):
        """Return the poll-tick callback that mirrors the log's last line."""

        def tick() -> None:
            line = read_last_line(log_path)
            self.update(handle, "Running: %s" % escape(line))

        return tick

    def finish(self, handle: int, result: InvocationResult) -> None:
        status = result.exit_status
        if status.success:
            message = "[green]Done[/green]."
        elif status.kind == EXITED:
            message = "[red]Failed[/red] with exit status %d." % status.code
        else:
            message = "[red]Failed[/red] with %s." % status
        self._complete(handle, message)

    def error(self, handle: int, exc: BaseException) -> None:
        self._complete(handle, "[bold red]Error[/bold red] (%s)" % escape(str(exc)))

    def _complete(self, handle: int, message: str) -> None:
        task_id = self._lines[handle]
        self._progress.update(task_id, description=message, total=1, completed=1)
        self._progress.stop_task(task_id)
