"""Flux driver: traversal, generation and POT accounting."""

from simpleflux.driver.accounting import StreamStatistics, effective_pots_per_entry
from simpleflux.driver.flux_driver import FluxRay, SimpleNtpFluxDriver
from simpleflux.driver.traversal import (
    AdvanceResult,
    Traversal,
    TraversalPhase,
    TraversalState,
)

__all__ = [
    "SimpleNtpFluxDriver",
    "FluxRay",
    "Traversal",
    "TraversalPhase",
    "TraversalState",
    "AdvanceResult",
    "StreamStatistics",
    "effective_pots_per_entry",
]
