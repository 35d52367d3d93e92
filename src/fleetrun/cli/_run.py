"""fleetrun run command."""

from __future__ import annotations

import logging
import shlex
import sys
from pathlib import Path

import click

from ._common import (
    RemoteCommand,
    _get_config,
    _get_output_or_exit,
    _get_profile_or_exit,
    _init,
    _load_inventory_or_exit,
    _resolve_targets_or_exit,
    dry_run_option,
    inventory_option,
    output_option,
    ssh_options,
)

logger = logging.getLogger(__name__)


@click.command(cls=RemoteCommand)
@click.argument("host_ids", nargs=-1, required=True)
@inventory_option
@ssh_options
@click.option("--timeout", type=float, default=None,
              help="Seconds for each command to finish before it is killed [profile default: 300]")
@click.option("--no-progress-bar", is_flag=True, help="Do not show live progress while commands run")
@click.option("--show-all", is_flag=True,
              help="Show all command results; by default only failed commands are shown")
@output_option
@click.option("--max-parallel", type=click.IntRange(min=1), default=None,
              help="Run at most N commands at once (default: all)")
@click.option("--skip-invalid", is_flag=True,
              help="Skip hosts without a usable address instead of aborting")
@click.option("--log-dir", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Directory for per-host log files")
@dry_run_option
@click.pass_context
def run(
        ctx, host_ids, inventory_path, login_name, public_ip, ssh_opts, timeout, no_progress_bar,
        show_all, output_format, max_parallel, skip_invalid, log_dir, dry_run,
):
    """Run a command on hosts over ssh, all at once.

    HOST_IDS are inventory ids; use '-' to read them from stdin (e.g. the
    JSON of 'fleetrun hosts list -o json'). Everything after '--' is the
    remote command.

    Examples:

      fleetrun run web-1 web-2 -- uptime

      fleetrun run web-1 -l ubuntu --ssh-opt=-oStrictHostKeyChecking=no -- df -h

      fleetrun hosts list -f state=running -o json | fleetrun run - -- sudo systemctl restart app
    """
    from fleetrun.orchestration.parallel import BatchCancelled, BatchError, run_batch
    from fleetrun.orchestration.ssh import CommandBuildError, RunOptions, build_invocations

    command = list(ctx.meta.get("remote_command", []))
    if not command:
        click.echo("Error: No command given. Put the remote command after '--'.", err=True)
        sys.exit(1)

    v = _init(ctx)
    config = _get_config(ctx, v)
    profile = _get_profile_or_exit(ctx, config)
    inventory = _load_inventory_or_exit(profile, inventory_path)
    targets = _resolve_targets_or_exit(host_ids, inventory)

    options = RunOptions(
        command=command,
        login_name=login_name or profile.ssh_user,
        use_public_address=public_ip,
        ssh_options=profile.ssh_options + list(ssh_opts),
        timeout=timeout if timeout is not None else profile.timeout,
        log_dir=log_dir or config.log_dir,
        program=profile.ssh_program,
    )

    try:
        invocations = build_invocations(targets, options, skip_invalid=skip_invalid)
    except CommandBuildError as e:
        click.echo("Error: Cannot build command for %s" % e, err=True)
        sys.exit(1)
    if not invocations:
        click.echo("Error: No host has a usable address.", err=True)
        sys.exit(1)

    if dry_run:
        for inv in invocations:
            click.echo("[dry-run] %s: %s  (log: %s)" % (inv.id, shlex.join(inv.argv), inv.log_path))
        return

    output = _get_output_or_exit(output_format, v)
    try:
        results = run_batch(
            invocations,
            progress=not no_progress_bar,
            max_parallel=max_parallel or profile.max_parallel,
        )
    except BatchError as e:
        click.echo("Error: %s" % e, err=True)
        sys.exit(1)
    except BatchCancelled:
        click.echo("Aborted; running commands were killed.", err=True)
        sys.exit(130)

    output.output_results(click.get_text_stream("stdout"), results, show_all=show_all)

    failed = [r for r in results if not r.success]
    if failed:
        sys.exit(1)
