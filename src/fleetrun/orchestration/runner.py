"""Run a single invocation to completion or forced termination.

The child's stdout and stderr both go to the invocation's log file. The
runner polls the child at a fixed resolution; on every tick it checks the
timeout deadline and the cancel event, and calls the optional progress
callback. A timed-out or cancelled child is killed and still produces a
normal (failing) result. Only spawn, kill and wait failures are errors.
"""

from __future__ import annotations

import logging
import subprocess
import threading
import time
from typing import Callable

from fleetrun.orchestration.invocation import ExitStatus, Invocation, InvocationResult

logger = logging.getLogger(__name__)

RESOLUTION = 0.1  # seconds

ProgressCallback = Callable[[], None]


class RunnerError(Exception):
    """Fatal failure while executing an invocation."""

    def __init__(self, invocation_id: str, message: str):
        super().__init__("%s: %s" % (invocation_id, message))
        self.invocation_id = invocation_id


class SpawnError(RunnerError):
    """The child process could not be started."""

    pass


class KillError(RunnerError):
    """The child process could not be killed."""

    pass


class WaitError(RunnerError):
    """The child's exit status could not be obtained."""

    pass


def _spawn(invocation: Invocation, log_file) -> subprocess.Popen:
    try:
        return subprocess.Popen(
            invocation.argv,
            cwd=invocation.working_directory,
            stdin=subprocess.DEVNULL,
            stdout=log_file,
            stderr=subprocess.STDOUT,
        )
    except (OSError, ValueError) as e:
        raise SpawnError(invocation.id, "failed to run '%s': %s" % (invocation.program, e)) from e


def _poll(proc: subprocess.Popen, invocation: Invocation, resolution: float) -> int | None:
    """Wait up to *resolution* seconds; return the exit code or None if still running."""
    try:
        return proc.wait(timeout=resolution)
    except subprocess.TimeoutExpired:
        return None
    except OSError as e:
        raise WaitError(invocation.id, "failed to wait for '%s': %s" % (invocation.program, e)) from e


def _kill(proc: subprocess.Popen, invocation: Invocation) -> ExitStatus:
    try:
        proc.kill()
    except OSError as e:
        raise KillError(invocation.id, "failed to kill '%s': %s" % (invocation.program, e)) from e
    try:
        return ExitStatus.from_returncode(proc.wait())
    except OSError as e:
        raise WaitError(invocation.id, "failed to wait for killed '%s': %s" % (invocation.program, e)) from e


def _reap(proc: subprocess.Popen, invocation: Invocation) -> None:
    """Kill and reap a child left running by an aborted poll loop."""
    try:
        if proc.poll() is None:
            proc.kill()
            proc.wait()
    except OSError as e:
        logger.warning("  %s could not kill child %d: %s", invocation.id, proc.pid, e)


def run_invocation(
        invocation: Invocation,
        progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
        resolution: float = RESOLUTION,
) -> InvocationResult:
    """Execute one invocation and classify how it ended.

    Args:
        invocation: What to run and where to log.
        progress: Called once per poll tick, e.g. to refresh a live display.
        cancel_event: When set, the child is killed at the next tick.
        resolution: Poll interval in seconds.

    Returns:
        The invocation's result. Timeouts and cancellation yield a result
        with a non-success exit status, not an exception.

    Raises:
        SpawnError: The program could not be started.
        KillError: A timed-out or cancelled child could not be killed.
        WaitError: The child's status could not be obtained.
    """
    logger.debug("Executing %s: %s", invocation.id, " ".join(invocation.argv))
    t0 = time.monotonic()
    deadline = t0 + invocation.timeout if invocation.timeout is not None else None

    try:
        log_file = open(invocation.log_path, "ab")
    except OSError as e:
        raise SpawnError(invocation.id, "cannot open log file %s: %s" % (invocation.log_path, e)) from e

    with log_file:
        proc = _spawn(invocation, log_file)
        try:
            while True:
                returncode = _poll(proc, invocation, resolution)

                if returncode is None and deadline is not None and time.monotonic() >= deadline:
                    exit_status = _kill(proc, invocation)
                    logger.warning("  %s TIMEOUT after %.1fs, killed (%s)",
                                   invocation.id, time.monotonic() - t0, exit_status)
                    break

                if returncode is None and cancel_event is not None and cancel_event.is_set():
                    exit_status = _kill(proc, invocation)
                    logger.info("  %s cancelled, killed (%s)", invocation.id, exit_status)
                    break

                if progress is not None:
                    progress()

                if returncode is not None:
                    exit_status = ExitStatus.from_returncode(returncode)
                    logger.debug("  %s finished %s (%.1fs)",
                                 invocation.id, exit_status, time.monotonic() - t0)
                    break
        except BaseException:
            _reap(proc, invocation)
            raise

    return InvocationResult(id=invocation.id, log_path=invocation.log_path, exit_status=exit_status)
