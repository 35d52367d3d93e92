"""fleetrun ssh command."""

from __future__ import annotations

import shlex
import subprocess
import sys

import click

from ._common import (
    RemoteCommand,
    _get_config,
    _get_profile_or_exit,
    _init,
    _load_inventory_or_exit,
    _resolve_targets_or_exit,
    dry_run_option,
    inventory_option,
    ssh_options,
)


@click.command(cls=RemoteCommand)
@click.argument("host_id")
@inventory_option
@ssh_options
@dry_run_option
@click.pass_context
def ssh(ctx, host_id, inventory_path, login_name, public_ip, ssh_opts, dry_run):
    """Open an interactive ssh session to one host.

    HOST_ID is an inventory id. Anything after '--' is run on the host
    instead of a login shell. The exit code of ssh becomes fleetrun's exit
    code.

    Examples:

      fleetrun ssh web-1

      fleetrun ssh web-1 -p -l ubuntu -- tail -f /var/log/syslog
    """
    from fleetrun.orchestration.ssh import CommandBuildError, RunOptions, build_ssh_arguments

    _init(ctx)
    config = _get_config(ctx)
    profile = _get_profile_or_exit(ctx, config)
    inventory = _load_inventory_or_exit(profile, inventory_path)
    target = _resolve_targets_or_exit([host_id], inventory)[0]

    options = RunOptions(
        command=list(ctx.meta.get("remote_command", [])),
        login_name=login_name or profile.ssh_user,
        use_public_address=public_ip,
        ssh_options=profile.ssh_options + list(ssh_opts),
        timeout=None,
        program=profile.ssh_program,
    )
    try:
        argv = [options.program] + build_ssh_arguments(target, options)
    except CommandBuildError as e:
        click.echo("Error: Cannot build command for %s" % e, err=True)
        sys.exit(1)

    if dry_run:
        click.echo("[dry-run] %s" % shlex.join(argv))
        return

    try:
        # inherit the terminal so ssh can allocate a tty
        proc = subprocess.run(argv)
    except OSError as e:
        click.echo("Error: Failed to start %s: %s" % (options.program, e), err=True)
        sys.exit(1)
    sys.exit(proc.returncode)
