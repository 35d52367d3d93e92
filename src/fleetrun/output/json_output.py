"""JSON output."""

from __future__ import annotations

import json
from typing import IO, Sequence, TYPE_CHECKING

from fleetrun.output.base import OutputPlugin

if TYPE_CHECKING:
    from fleetrun.hosts import HostDescriptor
    from fleetrun.orchestration.invocation import InvocationResult


class JsonOutput(OutputPlugin):
    format_name = "json"

    def write_results(self, out: IO[str], results: Sequence[InvocationResult]) -> None:
        json.dump([r.to_dict() for r in results], out, indent=2)
        out.write("\n")

    def write_hosts(self, out: IO[str], hosts: Sequence[HostDescriptor]) -> None:
        json.dump([h.to_dict() for h in hosts], out, indent=2)
        out.write("\n")
