"""Human-readable table output."""

from __future__ import annotations

from typing import IO, Sequence, TYPE_CHECKING

from fleetrun.output.base import OutputPlugin
from fleetrun.utils.cli_formatters import format_hosts_table, format_results_table

if TYPE_CHECKING:
    from fleetrun.hosts import HostDescriptor
    from fleetrun.orchestration.invocation import InvocationResult


class HumanOutput(OutputPlugin):
    format_name = "human"

    def write_results(self, out: IO[str], results: Sequence[InvocationResult]) -> None:
        # an empty table is noise when everything succeeded
        if not results:
            return
        out.write(format_results_table(results) + "\n")

    def write_hosts(self, out: IO[str], hosts: Sequence[HostDescriptor]) -> None:
        out.write(format_hosts_table(hosts) + "\n")
