"""Run a batch of invocations concurrently.

Every invocation gets its own worker; the future returned for it is the
one-shot channel its result (or fatal error) arrives on. Futures are read
back in submission order, so the returned list lines up index for index
with the submitted invocations no matter which one finishes first.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Sequence

from rich.console import Console

from fleetrun.orchestration.invocation import Invocation, InvocationResult
from fleetrun.orchestration.progress import ProgressReporter
from fleetrun.orchestration.runner import RunnerError, run_invocation

logger = logging.getLogger(__name__)


class BatchError(Exception):
    """A worker hit a fatal runner error; the batch has no complete result."""

    def __init__(self, invocation_id: str, cause: RunnerError):
        super().__init__("Invocation '%s' failed: %s" % (invocation_id, cause))
        self.invocation_id = invocation_id


class BatchCancelled(Exception):
    """The batch was interrupted; in-flight children were killed."""

    pass


def _run_with_progress(
        invocation: Invocation,
        reporter: ProgressReporter,
        handle: int,
        cancel_event: threading.Event,
) -> InvocationResult:
    callback = reporter.make_callback(handle, invocation.log_path)
    try:
        result = run_invocation(invocation, progress=callback, cancel_event=cancel_event)
    except RunnerError as e:
        reporter.error(handle, e)
        raise
    reporter.finish(handle, result)
    return result


def _collect(futures: Sequence[Future], invocations: Sequence[Invocation]) -> list[InvocationResult]:
    results = []
    for invocation, future in zip(invocations, futures):
        try:
            results.append(future.result())
        except RunnerError as e:
            logger.error("  %s ERROR: %s", invocation.id, e)
            raise BatchError(invocation.id, e) from e
    return results


def run_batch(
        invocations: Sequence[Invocation],
        progress: bool = False,
        max_parallel: int | None = None,
        cancel_event: threading.Event | None = None,
        console: Console | None = None,
) -> list[InvocationResult]:
    """Run all invocations concurrently and return results in submission order.

    Args:
        invocations: The batch, in the order results should be returned.
        progress: Show a live status line per invocation.
        max_parallel: Upper bound on concurrently running invocations;
            ``None`` runs every invocation at once.
        cancel_event: Shared cancellation token; setting it kills all
            running children at their next poll tick.
        console: Console for the live display (defaults to stderr).

    Returns:
        One result per invocation, same order as *invocations*.

    Raises:
        BatchError: If any invocation hit a fatal runner error.
        BatchCancelled: If interrupted (Ctrl-C) while waiting for results.
    """
    invocations = list(invocations)
    if not invocations:
        return []
    if max_parallel is not None and max_parallel < 1:
        raise ValueError("max_parallel must be at least 1, got %d" % max_parallel)

    cancel_event = cancel_event or threading.Event()
    workers = min(max_parallel or len(invocations), len(invocations))
    logger.info("  Running %d commands on %d workers%s",
                len(invocations), workers, " with progress" if progress else "")

    t0 = time.monotonic()
    reporter = ProgressReporter(console=console) if progress else None
    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="fleetrun")
    try:
        if reporter is not None:
            with reporter:
                handles = [reporter.add(inv) for inv in invocations]
                futures = [
                    executor.submit(_run_with_progress, inv, reporter, handle, cancel_event)
                    for inv, handle in zip(invocations, handles)
                ]
                results = _collect(futures, invocations)
        else:
            futures = [executor.submit(run_invocation, inv, None, cancel_event) for inv in invocations]
            results = _collect(futures, invocations)
    except KeyboardInterrupt:
        logger.warning("Interrupted; killing running commands")
        cancel_event.set()
        executor.shutdown(wait=True, cancel_futures=True)
        raise BatchCancelled("Batch interrupted") from None
    except BatchError:
        cancel_event.set()
        executor.shutdown(wait=True, cancel_futures=True)
        raise
    executor.shutdown(wait=True)

    elapsed = time.monotonic() - t0
    ok = sum(1 for r in results if r.success)
    logger.info("  Batch done: %d/%d OK (%.1fs total)", ok, len(results), elapsed)
    return results
