"""Shared pytest fixtures for fleetrun tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest
import yaml

from fleetrun.bootstrap import init_fleetrun
from fleetrun.hosts import HostDescriptor
from fleetrun.orchestration.invocation import Invocation


@pytest.fixture(autouse=True)
def isolate_stateful(tmp_path: Path, monkeypatch):
    """Redirect SAF stateful root to temp dir for test isolation.

    Prevents tests from reading or writing the real ~/.config/fleetrun/.
    Also resets the bootstrap singleton between tests.
    """
    monkeypatch.setenv("STATEFUL_ROOT", str(tmp_path / "stateful"))
    import fleetrun.bootstrap
    fleetrun.bootstrap._variables = None
    yield
    fleetrun.bootstrap._variables = None


@pytest.fixture
def v(tmp_path: Path) -> Any:
    """Initialize fleetrun and return the Variables instance.

    Uses WARNING log level to reduce test output noise.
    """
    import fleetrun.bootstrap
    fleetrun.bootstrap._variables = None

    return init_fleetrun(log_level="WARNING")


@pytest.fixture
def sample_hosts() -> list[dict[str, Any]]:
    """Inventory entries covering the address edge cases."""
    return [
        {
            "id": "web-1",
            "private_ip_address": "10.0.0.5",
            "public_ip_address": "203.0.113.5",
            "instance_type": "m5.large",
            "state": "running",
            "tags": {"role": "web", "env": "prod"},
        },
        {
            "id": "web-2",
            "private_ip_address": "10.0.0.6",
            "instance_type": "m5.large",
            "state": "running",
            "tags": {"role": "web", "env": "prod"},
        },
        {
            "id": "db-1",
            "private_ip_address": "10.0.1.7",
            "public_ip_address": "203.0.113.7",
            "instance_type": "r5.xlarge",
            "state": "stopped",
            "tags": {"role": "db", "backup": None},
        },
        {
            "id": "broken-1",
            "private_ip_address": "not-an-ip",
            "state": "running",
        },
    ]


@pytest.fixture
def inventory_file(tmp_path: Path, sample_hosts) -> Path:
    """Write the sample hosts to an inventory YAML file."""
    path = tmp_path / "inventory.yaml"
    with open(path, "w") as f:
        yaml.safe_dump({"hosts": sample_hosts}, f)
    return path


@pytest.fixture
def inventory(sample_hosts) -> list[HostDescriptor]:
    return [HostDescriptor.from_dict(h) for h in sample_hosts]


@pytest.fixture
def config_file(tmp_path: Path, inventory_file: Path) -> Path:
    """Write a config with a default and a 'prod' profile."""
    path = tmp_path / "config.yaml"
    data = {
        "default_profile": "default",
        "log_dir": str(tmp_path / "logs"),
        "defaults": {
            "ssh": {"user": "ubuntu", "options": ["-o", "BatchMode=yes"]},
            "timeout": 60,
        },
        "profiles": {
            "default": {"inventory": str(inventory_file)},
            "prod": {
                "inventory": str(inventory_file),
                "ssh": {"user": "admin"},
                "max_parallel": 2,
            },
        },
    }
    with open(path, "w") as f:
        yaml.safe_dump(data, f)
    return path


@pytest.fixture
def make_invocation(tmp_path: Path):
    """Factory for invocations running a Python snippet locally.

    Running ``sys.executable -c`` keeps the tests independent of what
    shell utilities the machine has.
    """
    counter = {"n": 0}

    def _make(code: str, id: str | None = None, timeout: float | None = None) -> Invocation:
        counter["n"] += 1
        inv_id = id or "inv-%d" % counter["n"]
        return Invocation(
            id=inv_id,
            program=sys.executable,
            arguments=["-c", code],
            log_path=tmp_path / ("%s.log" % inv_id),
            timeout=timeout,
        )

    return _make
