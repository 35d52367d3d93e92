"""Plain ``;``-separated output, one line per item, for scripting."""

from __future__ import annotations

from typing import IO, Sequence, TYPE_CHECKING

from fleetrun.output.base import OutputPlugin
from fleetrun.utils.cli_formatters import host_row

if TYPE_CHECKING:
    from fleetrun.hosts import HostDescriptor
    from fleetrun.orchestration.invocation import InvocationResult


class PlainOutput(OutputPlugin):
    format_name = "plain"

    def write_results(self, out: IO[str], results: Sequence[InvocationResult]) -> None:
        for r in results:
            out.write("%s;%s;%s\n" % (r.id, r.exit_status, r.log_path))

    def write_hosts(self, out: IO[str], hosts: Sequence[HostDescriptor]) -> None:
        for host in hosts:
            out.write(";".join(host_row(host)) + "\n")
