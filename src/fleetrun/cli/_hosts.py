"""fleetrun hosts group and subcommands."""

from __future__ import annotations

import sys

import click

from ._common import (
    _get_config,
    _get_output_or_exit,
    _get_profile_or_exit,
    _init,
    _load_inventory_or_exit,
    inventory_option,
    output_option,
)


@click.group()
@click.pass_context
def hosts(ctx):
    """Inspect the host inventory."""
    pass


@hosts.command("list")
@inventory_option
@click.option("--filter", "-f", "filters", multiple=True, metavar="FIELD=REGEX",
              help="Only show hosts whose FIELD matches REGEX (repeatable; "
                   "FIELD is id, instance_type, state, private_ip_address, "
                   "public_ip_address or tags:KEY)")
@output_option
@click.pass_context
def hosts_list(ctx, inventory_path, filters, output_format):
    """List hosts of the inventory.

    Examples:

      fleetrun hosts list

      fleetrun hosts list -f state=running -f tags:role='^web' -o json
    """
    from fleetrun.hosts import HostResolutionError, filter_hosts

    v = _init(ctx)
    config = _get_config(ctx, v)
    profile = _get_profile_or_exit(ctx, config)
    inventory = _load_inventory_or_exit(profile, inventory_path)

    try:
        selected = filter_hosts(inventory, filters)
    except HostResolutionError as e:
        click.echo("Error: %s" % e, err=True)
        sys.exit(1)

    output = _get_output_or_exit(output_format, v)
    output.write_hosts(click.get_text_stream("stdout"), selected)
