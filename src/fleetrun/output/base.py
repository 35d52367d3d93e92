"""Base class for fleetrun output formats."""

from __future__ import annotations

import logging
from abc import abstractmethod
from logging import Logger
from typing import IO, Sequence, TYPE_CHECKING

from scitrera_app_framework import Plugin, Variables

from fleetrun.bootstrap import EXT_OUTPUT
from fleetrun.orchestration.invocation import filter_results

if TYPE_CHECKING:
    from fleetrun.hosts import HostDescriptor
    from fleetrun.orchestration.invocation import InvocationResult

logger = logging.getLogger(__name__)


class OutputPlugin(Plugin):
    """Abstract base class for output formats.

    Each format is an SAF Plugin registered as a multi-extension under the
    'fleetrun.output' extension point, selected by ``format_name``.

    Subclasses must define:
        - format_name: str identifier (e.g. "human", "json")
        - write_results(): render command results
        - write_hosts(): render host descriptors
    """

    eager = False

    format_name: str = ""

    # --- SAF Plugin interface ---

    def name(self) -> str:
        return "fleetrun.output.%s" % self.format_name

    def extension_point_name(self, v: Variables) -> str:
        return EXT_OUTPUT

    def is_enabled(self, v: Variables) -> bool:
        # False keeps SAF's single-extension cache from hiding the other formats
        return False

    def is_multi_extension(self, v: Variables) -> bool:
        return True

    def initialize(self, v: Variables, logger: Logger) -> OutputPlugin:
        return self

    # --- Output interface ---

    def output_results(self, out: IO[str], results: Sequence[InvocationResult], show_all: bool = False) -> None:
        """Filter *results* and write the ones to display."""
        self.write_results(out, filter_results(results, show_all))

    @abstractmethod
    def write_results(self, out: IO[str], results: Sequence[InvocationResult]) -> None:
        ...

    @abstractmethod
    def write_hosts(self, out: IO[str], hosts: Sequence[HostDescriptor]) -> None:
        ...
