"""Configuration Module - Single Source of Truth for Driver Options

Default Configuration (loaded from defaults.yaml):
    from simpleflux.config import get_default, get_defaults

    n_cycles = get_default('driver.num_cycles')
    all_defaults = get_defaults()

Recommended Usage:
    from simpleflux.config import create_validated_config

    # Default config (already validated)
    config = create_validated_config()

    # Custom config with validation
    config = create_validated_config(num_cycles=2, entry_reuse=3, gen_weighted=True)

Import Policy:
    DO NOT use: from simpleflux.config import *

Submodules:
    enums: Configuration enumerations (BranchGroup)
    yaml_loader: YAML defaults loader (get_default, get_defaults)
    flux_config: FluxConfig dataclass and create_default_config
    validation: ConfigurationError, validate_config, warn_if_unsafe
"""

from simpleflux.config.enums import BranchGroup
# Import YAML loader functions first (no circular dependencies)
from simpleflux.config.yaml_loader import get_default, get_defaults, reload_defaults
from simpleflux.config.flux_config import FluxConfig, create_default_config
from simpleflux.config.validation import (
    ConfigurationError,
    ConfigurationWarning,
    create_validated_config,
    validate_config,
    warn_if_unsafe,
)


__all__ = [
    # Enums
    "BranchGroup",
    # Config classes
    "FluxConfig",
    # Factory functions
    "create_default_config",
    "create_validated_config",
    # Validation
    "ConfigurationError",
    "ConfigurationWarning",
    "validate_config",
    "warn_if_unsafe",
    # YAML defaults access
    "get_default",
    "get_defaults",
    "reload_defaults",
]
