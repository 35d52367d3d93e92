"""Shared CLI infrastructure: utilities, Click types, decorators."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("human", "json", "plain")


def _setup_logging(verbose: bool):
    """Configure logging based on verbosity.

    Uses explicit handler setup instead of ``logging.basicConfig`` which
    is silently a no-op when the root logger already has handlers.
    """
    level = logging.DEBUG if verbose else logging.INFO
    fmt = ("%(asctime)s [%(levelname)s] %(name)s: %(message)s" if verbose
           else "%(message)s")

    root = logging.getLogger()
    root.setLevel(level)
    # Remove any handlers that may have been added by library imports
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt="%H:%M:%S"))
    root.addHandler(handler)

    from fleetrun.utils import suppress_noisy_loggers
    suppress_noisy_loggers()


def _init(ctx):
    """Initialize SAF and re-apply our logging (SAF reconfigures the root logger)."""
    from fleetrun.bootstrap import init_fleetrun

    v = init_fleetrun()
    _setup_logging(ctx.obj.get("verbose", False))
    return v


def _get_config(ctx, v=None):
    """Load the user config from --config or the config root."""
    from fleetrun.config import ConfigError, FleetrunConfig, get_config_root

    config_path = ctx.obj.get("config_path")
    if config_path is None:
        config_path = get_config_root(v) / "config.yaml"
    try:
        return FleetrunConfig(Path(config_path))
    except ConfigError as e:
        raise click.ClickException(str(e))


def _get_profile_or_exit(ctx, config):
    """Return the active profile; exit with an error if it is not defined."""
    from fleetrun.config import ConfigError

    try:
        return config.get_profile(ctx.obj.get("profile"))
    except ConfigError as e:
        click.echo("Error: %s" % e, err=True)
        sys.exit(1)


def _load_inventory_or_exit(profile, inventory_path=None):
    """Load the inventory from --inventory or the profile."""
    from fleetrun.hosts import HostResolutionError, load_inventory

    path = inventory_path or profile.inventory
    if not path:
        click.echo(
            "Error: No inventory configured. Use --inventory or set 'inventory' in profile '%s'."
            % profile.name,
            err=True,
        )
        sys.exit(1)
    try:
        return load_inventory(path)
    except HostResolutionError as e:
        click.echo("Error: %s" % e, err=True)
        sys.exit(1)


def _resolve_targets_or_exit(host_ids, inventory):
    """Resolve host ids (``-`` reads them from stdin) against the inventory."""
    from fleetrun.hosts import HostResolutionError, read_host_ids, resolve_targets

    try:
        if list(host_ids) == ["-"]:
            host_ids = read_host_ids(click.get_text_stream("stdin"))
        targets = resolve_targets(inventory, host_ids)
    except HostResolutionError as e:
        click.echo("Error: %s" % e, err=True)
        sys.exit(1)
    if not targets:
        click.echo("Error: No hosts specified.", err=True)
        sys.exit(1)
    return targets


def _get_output_or_exit(name, v=None):
    from fleetrun.bootstrap import get_output

    try:
        return get_output(name, v)
    except ValueError as e:
        click.echo("Error: %s" % e, err=True)
        sys.exit(1)


def inventory_option(f):
    """Common --inventory option."""
    return click.option("--inventory", "-i", "inventory_path", default=None,
                        type=click.Path(dir_okay=False, path_type=Path),
                        help="Inventory file (overrides the profile's inventory)")(f)


def ssh_options(f):
    """Common SSH connection options: --login-name, --public-ip, --ssh-opt."""
    f = click.option("--ssh-opt", "ssh_opts", multiple=True,
                     help="Pass an option to ssh (repeatable)")(f)
    f = click.option("--public-ip", "-p", is_flag=True,
                     help="Connect to the public IP address instead of the private one")(f)
    f = click.option("--login-name", "-l", default=None,
                     help="Remote login name (overrides the profile's ssh user)")(f)
    return f


def output_option(f):
    """Common --output selector."""
    return click.option("--output", "-o", "output_format", type=click.Choice(OUTPUT_FORMATS),
                        default="human", show_default=True, help="Output format")(f)


def dry_run_option(f):
    """Common --dry-run flag."""
    return click.option("--dry-run", "-n", is_flag=True,
                        help="Show what would be done")(f)


class RemoteCommand(click.Command):
    """Command that takes everything after ``--`` as a remote command line.

    The tokens are stored in ``ctx.meta["remote_command"]`` before Click
    parses the rest, so host ids and the remote command can both be
    variadic.
    """

    def parse_args(self, ctx, args):
        if "--" in args:
            idx = args.index("--")
            ctx.meta["remote_command"] = list(args[idx + 1:])
            args = args[:idx]
        return super().parse_args(ctx, args)
