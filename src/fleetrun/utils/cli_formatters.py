"""Presentation layer formatting functions for fleetrun CLI."""

from __future__ import annotations

from typing import Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from fleetrun.hosts import HostDescriptor
    from fleetrun.orchestration.invocation import InvocationResult

MISSING = "-"


def format_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Format rows as a left-aligned text table with a header separator.

    Returns:
        Formatted multi-line string (no trailing newline).
    """
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    # no padding after the last column
    def render(cells: Sequence[str]) -> str:
        padded = [f"{cell:<{widths[i] + 2}}" for i, cell in enumerate(cells[:-1])]
        return " ".join(padded + [cells[-1]]).rstrip()

    total_width = sum(widths) + 3 * (len(widths) - 1)
    lines = [render(headers), "-" * total_width]
    lines.extend(render(row) for row in rows)
    return "\n".join(lines)


def format_results_table(results: Sequence[InvocationResult]) -> str:
    """Format command results as ``Command Id | Exit Status | Log File``."""
    rows = [[r.id, str(r.exit_status), str(r.log_path)] for r in results]
    return format_table(["Command Id", "Exit Status", "Log File"], rows)


def host_row(host: HostDescriptor) -> list[str]:
    from fleetrun.hosts import format_tags

    return [
        host.id,
        host.instance_type or MISSING,
        host.state or MISSING,
        host.private_ip_address or MISSING,
        host.public_ip_address or MISSING,
        format_tags(host.tags) or MISSING,
    ]


def format_hosts_table(hosts: Sequence[HostDescriptor]) -> str:
    """Format host descriptors as a text table."""
    if not hosts:
        return "No hosts found."
    headers = ["Id", "Type", "State", "Private IP", "Public IP", "Tags"]
    return format_table(headers, [host_row(h) for h in hosts])
