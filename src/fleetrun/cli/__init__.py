"""fleetrun CLI: run commands on many hosts over ssh."""

from __future__ import annotations

from pathlib import Path

import click

from fleetrun import __version__
from ._common import _setup_logging
from ._hosts import hosts
from ._run import run
from ._ssh import ssh


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose/debug output")
@click.option("--profile", "-P", default=None, help="Config profile to use (default: config's default_profile)")
@click.option("--config", "config_path", default=None, type=click.Path(dir_okay=False, path_type=Path),
              help="Path to config file")
@click.version_option(__version__, prog_name="fleetrun")
@click.pass_context
def main(ctx, verbose, profile, config_path):
    """fleetrun: run shell commands on a fleet of hosts in parallel."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["profile"] = profile
    ctx.obj["config_path"] = config_path
    _setup_logging(verbose)


main.add_command(run)
main.add_command(ssh)
main.add_command(hosts)
