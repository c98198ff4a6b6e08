"""
Configuration Validation Utilities

This module provides validation functions for flux driver configurations:
hard errors (ConfigurationError) and unsafe-but-legal choices
(ConfigurationWarning).

Import Policy:
    from simpleflux.config.validation import validate_config, warn_if_unsafe

DO NOT use: from simpleflux.config.validation import *
"""

import warnings
from typing import List, Tuple

from simpleflux.config.flux_config import FluxConfig, create_default_config


class ConfigurationError(Exception):
    """Raised when configuration validation fails.

    Also raised by the driver when a served record violates the
    configuration (energy above the declared cap).
    """

    pass


class ConfigurationWarning(Warning):
    """Warning for potentially unsafe configuration choices."""

    pass


def validate_config(config: FluxConfig, raise_on_error: bool = True) -> Tuple[bool, List[str]]:
    """Validate a flux driver configuration.

    Args:
        config: FluxConfig to validate
        raise_on_error: If True, raise ConfigurationError on validation failure

    Returns:
        Tuple of (is_valid, error_messages)

    Raises:
        ConfigurationError: If validation fails and raise_on_error=True
    """
    errors = config.validate()

    if errors:
        if raise_on_error:
            raise ConfigurationError(
                f"Configuration validation failed with {len(errors)} error(s):\n"
                + "\n".join(f"  - {err}" for err in errors)
            )
        return False, errors

    return True, []


def warn_if_unsafe(config: FluxConfig) -> List[str]:
    """Check for legal configuration choices that deserve attention.

    Warnings are issued via Python's warnings module.

    Returns:
        List of warning messages (empty if no warnings)
    """
    warnings_list = []

    # Unbounded cycling never ends on its own; combined with rejection
    # sampling a mis-scaled max weight can loop for a very long time.
    if config.num_cycles == 0 and not config.gen_weighted:
        warnings_list.append(
            "num_cycles=0 (unbounded) with unweighted generation: the stream never "
            "ends and POT accounting covers a single pass only."
        )
    elif config.num_cycles == 0:
        warnings_list.append(
            "num_cycles=0 (unbounded): POT accounting covers a single pass only."
        )

    if config.entry_reuse > 1:
        warnings_list.append(
            f"entry_reuse={config.entry_reuse}: each ray is served {config.entry_reuse} "
            "times in a row; served rays are correlated."
        )

    for warning_msg in warnings_list:
        warnings.warn(warning_msg, ConfigurationWarning, stacklevel=2)

    return warnings_list


def create_validated_config(**kwargs) -> FluxConfig:
    """Create a flux configuration with validation.

    This is the recommended way to create a configuration in user code.

    Args:
        **kwargs: FluxConfig fields to override in the default config

    Returns:
        Validated FluxConfig

    Raises:
        ConfigurationError: If the resulting configuration is invalid
        ValueError: If a keyword is not a FluxConfig field

    Example:
        >>> config = create_validated_config(num_cycles=2, flux_particles=[14, -14])
    """
    config = create_default_config()

    for key, value in kwargs.items():
        if not hasattr(config, key):
            raise ValueError(f"Unknown configuration parameter: {key}")
        setattr(config, key, value)

    validate_config(config, raise_on_error=True)
    return config
