"""Invocation descriptors, exit classification and results."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

logger = logging.getLogger(__name__)

EXITED = "exited"
SIGNALED = "signaled"
OTHER = "other"
UNDETERMINED = "undetermined"

_MAX_EXIT_CODE = 2 ** 32
_MAX_SIGNAL = 255


@dataclass
class Invocation:
    """One program execution against one target.

    Created once by the command builder (or directly by a caller),
    consumed once by the process runner.
    """

    id: str
    program: str
    arguments: list[str]
    log_path: Path
    working_directory: str | None = None
    timeout: float | None = None

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.arguments]


@dataclass(frozen=True)
class ExitStatus:
    """Four-way outcome of a finished or killed process."""

    kind: str
    code: int | None = None

    @classmethod
    def exited(cls, code: int) -> ExitStatus:
        return cls(EXITED, code)

    @classmethod
    def signaled(cls, signal: int) -> ExitStatus:
        return cls(SIGNALED, signal)

    @classmethod
    def other(cls, code: int) -> ExitStatus:
        return cls(OTHER, code)

    @classmethod
    def undetermined(cls) -> ExitStatus:
        return cls(UNDETERMINED)

    @classmethod
    def from_returncode(cls, returncode: int | None) -> ExitStatus:
        """Classify a ``subprocess.Popen.returncode``.

        Negative return codes are POSIX signal terminations.
        """
        if returncode is None:
            return cls.undetermined()
        if 0 <= returncode < _MAX_EXIT_CODE:
            return cls.exited(returncode)
        if -_MAX_SIGNAL <= returncode < 0:
            return cls.signaled(-returncode)
        return cls.other(returncode)

    @property
    def success(self) -> bool:
        return self.kind == EXITED and self.code == 0

    def to_dict(self) -> dict[str, int] | str:
        if self.kind == UNDETERMINED:
            return "Undetermined"
        return {self.kind.capitalize(): self.code}

    def __str__(self) -> str:
        if self.kind == UNDETERMINED:
            return "Undetermined"
        return "%s(%d)" % (self.kind.capitalize(), self.code)


@dataclass
class InvocationResult:
    """Terminal outcome of one invocation."""

    id: str
    log_path: Path
    exit_status: ExitStatus = field(default_factory=ExitStatus.undetermined)

    @property
    def success(self) -> bool:
        return self.exit_status.success

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "log": str(self.log_path),
            "exit_status": self.exit_status.to_dict(),
        }


def filter_results(results: Iterable[InvocationResult], show_all: bool) -> list[InvocationResult]:
    """Select the results to display.

    Args:
        results: Results in submission order.
        show_all: Keep every result; otherwise keep only failures.

    Returns:
        A new list, order preserved. The input is never modified.
    """
    if show_all:
        logger.debug("Outputting all results.")
        return list(results)
    logger.debug("Outputting only failed results.")
    return [r for r in results if not r.exit_status.success]
