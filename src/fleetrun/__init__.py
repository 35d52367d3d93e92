"""fleetrun — run commands concurrently across fleets of remote hosts."""

__version__ = "0.4.0"
