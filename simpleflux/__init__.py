"""Simple-ntuple neutrino flux driver

Streams precomputed flux rays (one record per simulated beam neutrino)
from chained HDF5 flux files for neutrino event generation.

Key Principles:
- Chained files addressed by one global entry index
- Cross-file metadata folded into one aggregate with inconsistency flags
- Deterministic traversal with cycles and entry reuse
- Weighted or rejection-sampled (unweighted) generation
- POT accounting per served ray

Version: 1.0
"""

__version__ = "1.0"

# Configuration
from simpleflux.config import (
    ConfigurationError,
    ConfigurationWarning,
    FluxConfig,
    create_default_config,
    create_validated_config,
)

# Core data structures
from simpleflux.core import (
    FluxEntry,
    FluxMetadata,
    FluxWindow,
    FourVector,
    MetadataAggregate,
    MetadataInconsistency,
    PDGCodeList,
)

# File chain
from simpleflux.store import Hdf5FluxChain, LoadError, write_flux_file

# Driver
from simpleflux.driver import FluxRay, SimpleNtpFluxDriver

__all__ = [
    # Version
    "__version__",
    # Config
    "ConfigurationError",
    "ConfigurationWarning",
    "FluxConfig",
    "create_default_config",
    "create_validated_config",
    # Core
    "FluxEntry",
    "FluxMetadata",
    "FluxWindow",
    "FourVector",
    "MetadataAggregate",
    "MetadataInconsistency",
    "PDGCodeList",
    # Store
    "Hdf5FluxChain",
    "LoadError",
    "write_flux_file",
    # Driver
    "FluxRay",
    "SimpleNtpFluxDriver",
]
