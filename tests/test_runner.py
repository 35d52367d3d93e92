"""Tests for fleetrun.orchestration.runner (real child processes)."""

from __future__ import annotations

import subprocess
import threading
import time
from unittest import mock

import pytest

from fleetrun.orchestration.invocation import EXITED, Invocation
from fleetrun.orchestration.runner import (
    KillError,
    SpawnError,
    WaitError,
    run_invocation,
)


def test_success_writes_log(make_invocation):
    inv = make_invocation("print('hello')", id="hello")

    result = run_invocation(inv)

    assert result.id == "hello"
    assert result.success
    assert str(result.exit_status) == "Exited(0)"
    assert result.log_path == inv.log_path
    assert inv.log_path.read_text() == "hello\n"


def test_nonzero_exit_is_a_result(make_invocation):
    result = run_invocation(make_invocation("import sys; sys.exit(3)"))

    assert not result.success
    assert result.exit_status.kind == EXITED
    assert result.exit_status.code == 3


def test_stderr_goes_to_same_log(make_invocation):
    inv = make_invocation("import sys; print('out', flush=True); sys.stderr.write('err\\n')")

    run_invocation(inv)

    assert inv.log_path.read_text().splitlines() == ["out", "err"]


def test_stdin_is_empty(make_invocation):
    inv = make_invocation("import sys; print(repr(sys.stdin.read()))")

    run_invocation(inv)

    assert inv.log_path.read_text().strip() == "''"


def test_log_is_appended(make_invocation):
    inv = make_invocation("print('second')")
    inv.log_path.write_text("first\n")

    run_invocation(inv)

    assert inv.log_path.read_text() == "first\nsecond\n"


def test_working_directory(make_invocation, tmp_path):
    workdir = tmp_path / "work"
    workdir.mkdir()
    inv = make_invocation("import os; print(os.getcwd())")
    inv.working_directory = str(workdir)

    run_invocation(inv)

    assert inv.log_path.read_text().strip() == str(workdir.resolve())


def test_timeout_kills_child(make_invocation):
    inv = make_invocation("import time; time.sleep(10)", timeout=1)

    t0 = time.monotonic()
    result = run_invocation(inv)
    elapsed = time.monotonic() - t0

    assert not result.success
    assert result.exit_status.kind != EXITED or result.exit_status.code != 0
    assert elapsed < 2


def test_no_timeout(make_invocation):
    inv = make_invocation("import time; time.sleep(0.3); print('done')", timeout=None)

    result = run_invocation(inv)

    assert result.success
    assert inv.log_path.read_text() == "done\n"


def test_cancel_kills_child(make_invocation):
    inv = make_invocation("import time; time.sleep(10)")
    cancel = threading.Event()
    timer = threading.Timer(0.3, cancel.set)
    timer.start()

    t0 = time.monotonic()
    try:
        result = run_invocation(inv, cancel_event=cancel)
    finally:
        timer.cancel()

    assert not result.success
    assert time.monotonic() - t0 < 5


def test_progress_called_every_tick(make_invocation):
    calls = []
    inv = make_invocation("import time; time.sleep(0.5)")

    result = run_invocation(inv, progress=lambda: calls.append(1), resolution=0.05)

    assert result.success
    assert len(calls) >= 2


def test_missing_program(tmp_path):
    inv = Invocation(
        id="missing",
        program=str(tmp_path / "no-such-program"),
        arguments=[],
        log_path=tmp_path / "missing.log",
    )

    with pytest.raises(SpawnError) as exc_info:
        run_invocation(inv)

    assert exc_info.value.invocation_id == "missing"


def test_unwritable_log_path(make_invocation, tmp_path):
    inv = make_invocation("print('x')")
    inv.log_path = tmp_path / "no-such-dir" / "x.log"

    with pytest.raises(SpawnError):
        run_invocation(inv)


@mock.patch("fleetrun.orchestration.runner._spawn")
def test_kill_failure(mock_spawn, make_invocation):
    proc = mock.MagicMock()
    proc.wait.side_effect = subprocess.TimeoutExpired("x", 0.01)
    proc.kill.side_effect = OSError("permission denied")
    mock_spawn.return_value = proc

    with pytest.raises(KillError):
        run_invocation(make_invocation("pass", timeout=0), resolution=0.01)


@mock.patch("fleetrun.orchestration.runner._spawn")
def test_wait_failure(mock_spawn, make_invocation):
    proc = mock.MagicMock()
    proc.wait.side_effect = OSError("no child")
    mock_spawn.return_value = proc

    with pytest.raises(WaitError):
        run_invocation(make_invocation("pass"), resolution=0.01)


def test_failing_progress_callback_kills_child(make_invocation, tmp_path):
    marker = tmp_path / "still-alive"
    inv = make_invocation("import pathlib, time; time.sleep(1.0); pathlib.Path(%r).write_text('x')" % str(marker))

    def progress():
        raise PermissionError("log not readable")

    with pytest.raises(PermissionError):
        run_invocation(inv, progress=progress)

    time.sleep(1.5)
    assert not marker.exists()


@mock.patch("fleetrun.orchestration.runner._spawn")
def test_wait_failure_kills_running_child(mock_spawn, make_invocation):
    proc = mock.MagicMock()
    proc.poll.return_value = None
    proc.wait.side_effect = OSError("no child")
    mock_spawn.return_value = proc

    with pytest.raises(WaitError):
        run_invocation(make_invocation("pass"), resolution=0.01)

    proc.kill.assert_called_once()
