"""Target resolution from a host inventory.

Resolves host ids given on the command line (or piped on stdin) against
a YAML inventory file, and filters inventories by ``field=regex``
expressions.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, IO, Iterable

from vpd.next.util import read_yaml

logger = logging.getLogger(__name__)

FILTER_FIELDS = ("id", "instance_type", "state", "private_ip_address", "public_ip_address")
TAG_FIELD_PREFIX = "tags:"


class HostResolutionError(Exception):
    """Error during host resolution."""

    pass


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


@dataclass
class HostDescriptor:
    """A host known to the inventory."""

    id: str
    private_ip_address: str | None = None
    public_ip_address: str | None = None
    instance_type: str | None = None
    state: str | None = None
    tags: dict[str, str | None] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HostDescriptor:
        """Build a descriptor from an inventory entry.

        Scalar fields are coerced to strings (YAML may parse them as numbers).

        Raises:
            HostResolutionError: If the entry is not a mapping, has no id, or
                its tags are not a mapping.
        """
        if not isinstance(data, dict):
            raise HostResolutionError("Inventory entry must be a mapping, got: %r" % (data,))
        host_id = data.get("id")
        if not host_id:
            raise HostResolutionError("Inventory entry without 'id': %r" % (data,))
        tags = data.get("tags") or {}
        if not isinstance(tags, dict):
            raise HostResolutionError("Tags of host '%s' must be a mapping, got: %r" % (host_id, tags))
        return cls(
            id=str(host_id),
            private_ip_address=_optional_str(data.get("private_ip_address")),
            public_ip_address=_optional_str(data.get("public_ip_address")),
            instance_type=_optional_str(data.get("instance_type")),
            state=_optional_str(data.get("state")),
            tags={str(k): (None if v is None else str(v)) for k, v in tags.items()},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "private_ip_address": self.private_ip_address,
            "public_ip_address": self.public_ip_address,
            "instance_type": self.instance_type,
            "state": self.state,
            "tags": dict(self.tags),
        }


def load_inventory(path: str | Path) -> list[HostDescriptor]:
    """Load host descriptors from a YAML inventory file.

    The file holds a top-level ``hosts`` list; each entry needs an ``id``.

    Args:
        path: Path to the inventory file.

    Returns:
        Host descriptors in file order.

    Raises:
        HostResolutionError: If the file is missing or malformed.
    """
    file_path = Path(path).expanduser()
    if not file_path.exists():
        raise HostResolutionError("Inventory file not found: %s" % file_path)

    data = read_yaml(str(file_path)) or {}
    entries = data.get("hosts") if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise HostResolutionError("Inventory file has no 'hosts' list: %s" % file_path)

    hosts = [HostDescriptor.from_dict(entry) for entry in entries]
    logger.debug("Loaded %d hosts from inventory: %s", len(hosts), file_path)
    return hosts


def resolve_targets(inventory: Iterable[HostDescriptor], ids: Iterable[str]) -> list[HostDescriptor]:
    """Look up host ids in the inventory, keeping the order of *ids*.

    Raises:
        HostResolutionError: If any id is unknown.
    """
    by_id = {host.id: host for host in inventory}
    ids = list(ids)
    missing = [host_id for host_id in ids if host_id not in by_id]
    if missing:
        raise HostResolutionError("Unknown host id(s): %s" % ", ".join(missing))
    return [by_id[host_id] for host_id in ids]


def read_host_ids(stream: IO[str]) -> list[str]:
    """Read host ids from a stream (usually stdin).

    Accepts the JSON emitted by ``fleetrun hosts list -o json`` (a list of
    objects with an ``id`` key), a JSON list of strings, or plain
    whitespace-separated ids.
    """
    text = stream.read()
    if not text.strip():
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return text.split()

    if not isinstance(data, list):
        raise HostResolutionError("Expected a JSON list of host ids or host objects")
    ids = []
    for item in data:
        if isinstance(item, str):
            ids.append(item)
        elif isinstance(item, dict) and item.get("id"):
            ids.append(str(item["id"]))
        else:
            raise HostResolutionError("Cannot read a host id from %r" % (item,))
    logger.debug("Read %d host ids from stdin", len(ids))
    return ids


def _field_value(host: HostDescriptor, name: str) -> str | None:
    if name.startswith(TAG_FIELD_PREFIX):
        return host.tags.get(name[len(TAG_FIELD_PREFIX):])
    return getattr(host, name)


def parse_filter(expression: str) -> tuple[str, re.Pattern]:
    """Split a ``field=regex`` expression and compile the regex."""
    name, sep, pattern = expression.partition("=")
    name = name.strip()
    if not sep or not name:
        raise HostResolutionError("Filter must be field=regex, got: %s" % expression)
    if name not in FILTER_FIELDS and not name.startswith(TAG_FIELD_PREFIX):
        raise HostResolutionError(
            "Unknown filter field '%s' (use one of %s or tags:<key>)" % (name, ", ".join(FILTER_FIELDS))
        )
    try:
        return name, re.compile(pattern)
    except re.error as e:
        raise HostResolutionError("Invalid regex in filter '%s': %s" % (expression, e)) from e


def filter_hosts(hosts: Iterable[HostDescriptor], expressions: Iterable[str]) -> list[HostDescriptor]:
    """Keep hosts matching every ``field=regex`` expression.

    A field without a value never matches.
    """
    filters = [parse_filter(expr) for expr in expressions]
    selected = []
    for host in hosts:
        for name, regex in filters:
            value = _field_value(host, name)
            if value is None or not regex.search(value):
                break
        else:
            selected.append(host)
    return selected


def format_tags(tags: dict[str, str | None], keys: Iterable[str] | None = None) -> str:
    """Format tags as ``k1=v1, k2=`` sorted by key, optionally restricted to *keys*."""
    if keys is not None:
        wanted = set(keys)
        names = sorted(k for k in tags if k in wanted)
    else:
        names = sorted(tags)
    return ", ".join("%s=%s" % (k, tags[k] or "") for k in names)
