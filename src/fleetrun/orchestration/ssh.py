"""Build SSH invocations for a set of targets.

Every target becomes one :class:`Invocation` whose program is the SSH
client and whose arguments carry the login name, extra SSH options, the
resolved address and the remote command, in that order.
"""

from __future__ import annotations

import ipaddress
import logging
import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, TYPE_CHECKING

from fleetrun.orchestration.invocation import Invocation

if TYPE_CHECKING:
    from fleetrun.hosts import HostDescriptor

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300
LOG_DIR_PREFIX = "fleetrun-"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class CommandBuildError(Exception):
    """Raised when an invocation cannot be built for a target."""

    def __init__(self, target_id: str, message: str):
        super().__init__("%s: %s" % (target_id, message))
        self.target_id = target_id


class AddressMissingError(CommandBuildError):
    """The selected address field of the target is empty."""

    pass


class InvalidAddressError(CommandBuildError):
    """The selected address does not parse as an IP address."""

    pass


@dataclass
class RunOptions:
    """How to reach the targets and what to run there."""

    command: list[str] = field(default_factory=list)
    login_name: str | None = None
    use_public_address: bool = False
    ssh_options: list[str] = field(default_factory=list)
    timeout: float | None = DEFAULT_TIMEOUT
    program: str = "ssh"
    log_dir: Path | None = None


def select_address(
        target: HostDescriptor,
        use_public_address: bool = False,
) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
    """Pick and validate the address to connect to.

    There is no fallback between the public and the private address.

    Raises:
        AddressMissingError: If the selected address field is empty.
        InvalidAddressError: If it is not a valid IPv4/IPv6 address.
    """
    kind = "public" if use_public_address else "private"
    raw = target.public_ip_address if use_public_address else target.private_ip_address
    if not raw:
        raise AddressMissingError(target.id, "no %s IP address" % kind)
    try:
        return ipaddress.ip_address(str(raw).strip())
    except ValueError as e:
        raise InvalidAddressError(target.id, "invalid %s IP address %r" % (kind, raw)) from e


def build_ssh_arguments(target: HostDescriptor, options: RunOptions) -> list[str]:
    """Build the SSH client argument list for one target.

    Args:
        target: Host to connect to.
        options: Login name, address policy, SSH options and command.

    Returns:
        ``[-l, login]`` (only with a login name), then the SSH options,
        then the address, then the remote command tokens.
    """
    address = select_address(target, options.use_public_address)
    args = []
    if options.login_name:
        args.extend(["-l", options.login_name])
    args.extend(options.ssh_options)
    args.append(str(address))
    args.extend(options.command)
    return args


def allocate_log_dir(base: str | Path | None = None) -> Path:
    """Create a fresh, unique directory for one batch's log files."""
    if base is not None:
        base = Path(base).expanduser()
        base.mkdir(parents=True, exist_ok=True)
    return Path(tempfile.mkdtemp(prefix=LOG_DIR_PREFIX, dir=base))


def log_path_for(log_dir: Path, index: int, target_id: str) -> Path:
    """Return the (not yet created) log path for the *index*-th invocation."""
    safe_id = _UNSAFE_FILENAME_CHARS.sub("_", target_id) or "target"
    return log_dir / ("%03d-%s.log" % (index, safe_id))


def build_invocation(target: HostDescriptor, options: RunOptions, log_path: Path) -> Invocation:
    """Build the invocation for a single target."""
    args = build_ssh_arguments(target, options)
    logger.debug("ssh arguments for %s: %s", target.id, args)
    return Invocation(
        id=target.id,
        program=options.program,
        arguments=args,
        log_path=log_path,
        timeout=options.timeout,
    )


def build_invocations(
        targets: Iterable[HostDescriptor],
        options: RunOptions,
        skip_invalid: bool = False,
) -> list[Invocation]:
    """Build one invocation per target, in target order.

    By default the first target that fails to build aborts the whole
    batch, before anything has been spawned. With *skip_invalid* such
    targets are logged and left out instead.

    Args:
        targets: Resolved host descriptors.
        options: Options shared by all invocations.
        skip_invalid: Skip targets that cannot be built instead of failing.

    Returns:
        Invocations, each with its own log path in a fresh batch directory.

    Raises:
        CommandBuildError: On the first invalid target unless *skip_invalid*.
    """
    targets = list(targets)
    valid: list[HostDescriptor] = []
    for target in targets:
        try:
            select_address(target, options.use_public_address)
        except CommandBuildError as e:
            if not skip_invalid:
                raise
            logger.warning("Skipping %s", e)
            continue
        valid.append(target)

    if len(valid) < len(targets):
        logger.warning("Skipped %d of %d targets", len(targets) - len(valid), len(targets))
    if not valid:
        return []

    log_dir = allocate_log_dir(options.log_dir)
    logger.debug("Logs for %d invocations in %s", len(valid), log_dir)
    return [
        build_invocation(target, options, log_path_for(log_dir, index, target.id))
        for index, target in enumerate(valid)
    ]
