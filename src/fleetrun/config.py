"""User configuration and profiles for fleetrun."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, TYPE_CHECKING

from vpd.legacy.yaml_dict import VirtualPathDictChain, vpd_chain
from vpd.next.util import read_yaml

from fleetrun.orchestration.ssh import DEFAULT_TIMEOUT

if TYPE_CHECKING:
    from scitrera_app_framework.api.variables import Variables

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "fleetrun"
DEFAULT_PROFILE = "default"

BUILTIN_DEFAULTS: dict[str, Any] = {
    "ssh": {"user": None, "options": [], "program": "ssh"},
    "timeout": DEFAULT_TIMEOUT,
    "max_parallel": None,
    "inventory": None,
}


class ConfigError(Exception):
    """Raised for missing profiles or malformed configuration."""

    pass


def get_config_root(v: Variables | None = None) -> Path:
    """Config root from SAF stateful root, falling back to DEFAULT_CONFIG_DIR."""
    if v is not None:
        from scitrera_app_framework.core import is_stateful_ready
        stateful_root = is_stateful_ready(v)
        if stateful_root:
            return Path(stateful_root)
    return DEFAULT_CONFIG_DIR


class Profile:
    """Settings of one profile, layered over the config defaults."""

    def __init__(self, name: str, chain: VirtualPathDictChain):
        self.name = name
        self._chain = chain


    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by slash-separated key path (e.g. ``ssh/user``)."""
        value = self._chain.get(key)
        return default if value is None else value

    @property
    def ssh_user(self) -> str | None:
        return self.get("ssh/user")

    @property
    def ssh_program(self) -> str:
        return str(self.get("ssh/program", "ssh"))

    @property
    def ssh_options(self) -> list[str]:
        return [str(opt) for opt in self.get("ssh/options", [])]

    @property
    def timeout(self) -> float | None:
        value = self.get("timeout")
        return float(value) if value is not None else None

    @property
    def max_parallel(self) -> int | None:
        value = self.get("max_parallel")
        return int(value) if value is not None else None

    @property
    def inventory(self) -> Path | None:
        value = self.get("inventory")
        return Path(os.path.expanduser(value)) if value else None


class FleetrunConfig:
    """Manages fleetrun user configuration."""

    def __init__(self, config_path: Path | None = None):
        self.config_path = Path(config_path) if config_path else (DEFAULT_CONFIG_DIR / "config.yaml")
        self._data: dict[str, Any] = {}
        self._load()

    def _load(self):
        if self.config_path.exists():
            data = read_yaml(str(self.config_path)) or {}
            if not isinstance(data, dict):
                raise ConfigError("Config file must contain a mapping: %s" % self.config_path)
            self._data = data
        else:
            logger.debug("No config file at %s, using defaults", self.config_path)
            self._data = {}

    @property
    def default_profile(self) -> str:
        return self._data.get("default_profile", DEFAULT_PROFILE)

    @property
    def log_dir(self) -> Path | None:
        value = self._data.get("log_dir")
        return Path(os.path.expanduser(value)) if value else None

    def profile_names(self) -> list[str]:
        return sorted(self._data.get("profiles", {}) or {})

    def get_profile(self, name: str | None = None) -> Profile:
        """Return the named profile (or the default one).

        The built-in ``default`` profile always exists, even without a
        config file; any other name must be defined under ``profiles``.

        Raises:
            ConfigError: If the profile is not defined.
        """
        name = name or self.default_profile
        profiles = self._data.get("profiles", {}) or {}
        if name not in profiles and name != DEFAULT_PROFILE:
            raise ConfigError("No such profile '%s' (defined: %s)"
                              % (name, ", ".join(self.profile_names()) or "none"))
        profile_data = profiles.get(name) or {}
        chain = vpd_chain(profile_data, self._data.get("defaults", {}) or {}, BUILTIN_DEFAULTS)
        return Profile(name, chain)
