"""Bootstrap fleetrun's plugin system using SAF's desktop framework init."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from scitrera_app_framework import Variables, register_plugin, get_extensions
from scitrera_app_framework.util import find_types_in_modules

if TYPE_CHECKING:
    from fleetrun.output.base import OutputPlugin

logger = logging.getLogger(__name__)

EXT_OUTPUT = "fleetrun.output"

# Module-level singleton for the fleetrun Variables instance
_variables: Variables | None = None


def init_fleetrun(v: Variables | None = None, log_level: str = "WARNING") -> Variables:
    """Initialize fleetrun's plugin system.

    Args:
        v: Optional pre-existing Variables instance to reuse.
        log_level: SAF log level (default WARNING to reduce verbosity).

    Returns:
        The initialized Variables instance.
    """
    global _variables

    if _variables is not None and v is None:
        return _variables

    if v is None:
        from scitrera_app_framework import init_framework_desktop
        v = init_framework_desktop("fleetrun", log_level=log_level, fault_handler=False, shutdown_hooks=False,
                                   fixed_logger=logger)

        from fleetrun.utils import suppress_noisy_loggers
        suppress_noisy_loggers()

    _variables = v

    # Import here to avoid circular imports
    from fleetrun.output.base import OutputPlugin

    discovered = list(find_types_in_modules("fleetrun.output", OutputPlugin))
    for output_cls in discovered:
        if not output_cls.format_name:
            continue
        try:
            register_plugin(output_cls, v=v)
            logger.debug("Registered output format: %s", output_cls.__name__)
        except (ValueError, TypeError) as e:
            logger.debug("Skipping output format %s: %s", output_cls.__name__, e)

    return v


def get_variables() -> Variables:
    """Get the fleetrun Variables instance, initializing if needed."""
    global _variables
    if _variables is None:
        init_fleetrun()
    return _variables


def get_output(name: str, v: Variables | None = None) -> OutputPlugin:
    """Get an output format by name (e.g. "human", "json", "plain").

    Raises:
        ValueError: If the format is not registered.
    """
    if v is None:
        v = get_variables()

    all_outputs = get_extensions(EXT_OUTPUT, v=v)
    for _plugin_name, output in all_outputs.items():
        if output.format_name == name:
            return output

    raise ValueError("Unknown output format: %r. Available: %s" % (name, ", ".join(list_outputs(v))))


def list_outputs(v: Variables | None = None) -> list[str]:
    """List all registered output format names."""
    if v is None:
        v = get_variables()

    all_outputs = get_extensions(EXT_OUTPUT, v=v)
    return sorted(o.format_name for o in all_outputs.values())
