"""Flux Driver Configuration - Single Source of Truth (SSOT)

This module provides the configuration dataclass of the flux driver.
ALL driver options flow through FluxConfig; the driver setters only
update the instance it owns.

Import Policy:
    from simpleflux.config.flux_config import FluxConfig, create_default_config

DO NOT use: from simpleflux.config.flux_config import *
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from simpleflux.config.defaults import (
    DEFAULT_BRANCH_REQUEST,
    DEFAULT_ENTRY_REUSE,
    DEFAULT_FLUX_PARTICLES,
    DEFAULT_GEN_WEIGHTED,
    DEFAULT_MAX_ENERGY,
    DEFAULT_NUM_CYCLES,
    DEFAULT_REJECT_WARNING_INTERVAL,
    DEFAULT_SEED,
    DEFAULT_UPSTREAM_Z,
    DEFAULT_WINDOW_TOLERANCE,
)
from simpleflux.config.enums import BranchGroup
from simpleflux.config.yaml_loader import get_default


@dataclass
class FluxConfig:
    """Options of a SimpleNtpFluxDriver.

    Attributes:
        branch_request: Comma-separated record groups to attach ("entry,numi,aux")
        flux_particles: Accepted PDG codes; empty means "all species in the files"
        max_energy: Energy cap [GeV]; None means "aggregate max energy of the files"
        gen_weighted: Serve native weights (True) or a rejection-sampled stream (False)
        num_cycles: Passes over the record chain; 0 cycles without limit
        entry_reuse: Times each entry is served before advancing (>= 1)
        upstream_z: Z [m] rays are moved to after reconstitution; None keeps them
        seed: Seed of the rejection sampler; None draws one at construction
        window_tolerance: Tolerance [m] for cross-file flux window comparison
        reject_warning_interval: Consecutive misses between liveness warnings

    """

    branch_request: str = DEFAULT_BRANCH_REQUEST
    flux_particles: list[int] = field(default_factory=lambda: list(DEFAULT_FLUX_PARTICLES))
    max_energy: float | None = DEFAULT_MAX_ENERGY
    gen_weighted: bool = DEFAULT_GEN_WEIGHTED
    num_cycles: int = DEFAULT_NUM_CYCLES
    entry_reuse: int = DEFAULT_ENTRY_REUSE
    upstream_z: float | None = DEFAULT_UPSTREAM_Z
    seed: int | None = DEFAULT_SEED
    window_tolerance: float = DEFAULT_WINDOW_TOLERANCE
    reject_warning_interval: int = DEFAULT_REJECT_WARNING_INTERVAL

    def requested_branches(self) -> list[BranchGroup]:
        """Groups named by branch_request, parsed in order.

        Raises:
            ValueError: If the request names an unknown group.
        """
        return BranchGroup.parse_request(self.branch_request)

    def validate(self) -> list[str]:
        """Validate the configuration.

        Returns:
            List of error messages (empty if valid)

        """
        errors = []

        try:
            groups = self.requested_branches()
        except ValueError as e:
            errors.append(f"branch_request '{self.branch_request}' is invalid: {e}")
        else:
            if BranchGroup.ENTRY not in groups:
                errors.append(
                    f"branch_request must include 'entry', got '{self.branch_request}'",
                )

        if self.num_cycles < 0:
            errors.append(f"num_cycles must be >= 0 (0 = unbounded), got {self.num_cycles}")

        if self.entry_reuse < 1:
            errors.append(f"entry_reuse must be >= 1, got {self.entry_reuse}")

        if self.max_energy is not None and self.max_energy <= 0:
            errors.append(f"max_energy must be > 0 GeV, got {self.max_energy}")

        if self.window_tolerance < 0:
            errors.append(f"window_tolerance must be >= 0, got {self.window_tolerance}")

        if self.reject_warning_interval < 1:
            errors.append(
                f"reject_warning_interval must be >= 1, got {self.reject_warning_interval}",
            )

        for pdg in self.flux_particles:
            if int(pdg) != pdg:
                errors.append(f"flux_particles must hold integer PDG codes, got {pdg!r}")

        return errors

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a plain dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FluxConfig:
        """Create a configuration from a dictionary.

        Missing keys fall back to the YAML defaults.

        Raises:
            ValueError: If the dictionary holds an unknown key.
        """
        config = create_default_config()
        for key, value in data.items():
            if not hasattr(config, key):
                raise ValueError(f"Unknown configuration parameter: {key}")
            setattr(config, key, value)
        config.flux_particles = [int(p) for p in config.flux_particles]
        return config


def create_default_config() -> FluxConfig:
    """Create a FluxConfig seeded from defaults.yaml.

    Keys missing from the YAML fall back to simpleflux.config.defaults.
    """
    return FluxConfig(
        branch_request=get_default("driver.branch_request", DEFAULT_BRANCH_REQUEST),
        flux_particles=[
            int(p) for p in get_default("driver.flux_particles", list(DEFAULT_FLUX_PARTICLES))
        ],
        max_energy=get_default("driver.max_energy", DEFAULT_MAX_ENERGY),
        gen_weighted=bool(get_default("driver.gen_weighted", DEFAULT_GEN_WEIGHTED)),
        num_cycles=int(get_default("driver.num_cycles", DEFAULT_NUM_CYCLES)),
        entry_reuse=int(get_default("driver.entry_reuse", DEFAULT_ENTRY_REUSE)),
        upstream_z=get_default("driver.upstream_z", DEFAULT_UPSTREAM_Z),
        seed=get_default("driver.seed", DEFAULT_SEED),
        window_tolerance=float(
            get_default("metadata.window_tolerance", DEFAULT_WINDOW_TOLERANCE),
        ),
        reject_warning_interval=int(
            get_default("driver.reject_warning_interval", DEFAULT_REJECT_WARNING_INTERVAL),
        ),
    )
