"""YAML Defaults Loader

Reads defaults.yaml, the registry that supplies the initial option values of
a flux driver. It imports nothing else from simpleflux.config so every other
config module may depend on it.

Usage:
    from simpleflux.config.yaml_loader import get_default
    n_cycles = get_default('driver.num_cycles', 1)
"""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any

import yaml

DEFAULTS_ENV_VAR = "SIMPLEFLUX_DEFAULTS_PATH"

_MISSING = object()
_DEFAULTS: dict[str, Any] | None = None


def defaults_path() -> Path:
    """Locate defaults.yaml.

    ``$SIMPLEFLUX_DEFAULTS_PATH`` wins when it names an existing file,
    otherwise the copy shipped next to this module is used.

    Raises:
        FileNotFoundError: If neither location holds the file.
    """
    override = os.getenv(DEFAULTS_ENV_VAR)
    if override and Path(override).is_file():
        return Path(override)

    packaged = Path(__file__).with_name("defaults.yaml")
    if not packaged.is_file():
        raise FileNotFoundError(
            f"Defaults file not found: {packaged}\n"
            f"Set {DEFAULTS_ENV_VAR} if the file was relocated."
        )
    return packaged


def _read_defaults() -> dict[str, Any]:
    with open(defaults_path(), encoding="utf-8") as f:
        loaded = yaml.safe_load(f)
    return loaded or {}


def _defaults() -> dict[str, Any]:
    global _DEFAULTS
    if _DEFAULTS is None:
        _DEFAULTS = _read_defaults()
    return _DEFAULTS


def get_defaults() -> dict[str, Any]:
    """Return a deep copy of the whole defaults tree.

    Example:
        >>> get_defaults()['driver']['entry_reuse']
        1
    """
    return copy.deepcopy(_defaults())


def get_default(key_path: str, default: Any = None) -> Any:
    """Look up one value by dotted path, e.g. ``'driver.num_cycles'``.

    A key that is absent, or explicitly ``null`` in the YAML, yields
    ``default``.

    Example:
        >>> get_default('metadata.window_tolerance')
        1e-06
        >>> get_default('driver.no_such_key', 'fallback')
        'fallback'
    """
    node: Any = _defaults()
    for key in key_path.split("."):
        if not isinstance(node, dict):
            return default
        node = node.get(key, _MISSING)
        if node is _MISSING:
            return default
    return default if node is None else copy.deepcopy(node)


def reload_defaults() -> None:
    """Drop the cached tree so the next lookup re-reads defaults.yaml."""
    global _DEFAULTS
    _DEFAULTS = None
