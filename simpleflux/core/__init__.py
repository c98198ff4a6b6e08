"""Core data structures of the flux driver.

This module contains the flux record types, neutrino species codes,
flux-window geometry and cross-file metadata aggregation.
"""

from simpleflux.core.geometry import FluxWindow, FourVector, move_to_z0, reconstitute
from simpleflux.core.metadata import (
    MetadataAggregate,
    MetadataInconsistency,
    aggregate_metadata,
)
from simpleflux.core.pdg import (
    NU_E,
    NU_E_BAR,
    NU_MU,
    NU_MU_BAR,
    NU_TAU,
    NU_TAU_BAR,
    PDGCodeList,
    is_neutrino,
    neutrino_name,
)
from simpleflux.core.records import (
    ENTRY_DTYPE,
    PARENT_DTYPE,
    AuxInfo,
    FluxEntry,
    FluxMetadata,
    ParentDecayInfo,
    empty_entries,
    empty_parents,
)

__all__ = [
    # Records
    "ENTRY_DTYPE",
    "PARENT_DTYPE",
    "AuxInfo",
    "FluxEntry",
    "FluxMetadata",
    "ParentDecayInfo",
    "empty_entries",
    "empty_parents",
    # Species
    "NU_E",
    "NU_E_BAR",
    "NU_MU",
    "NU_MU_BAR",
    "NU_TAU",
    "NU_TAU_BAR",
    "PDGCodeList",
    "is_neutrino",
    "neutrino_name",
    # Geometry
    "FluxWindow",
    "FourVector",
    "move_to_z0",
    "reconstitute",
    # Metadata
    "MetadataAggregate",
    "MetadataInconsistency",
    "aggregate_metadata",
]
