"""Flux file storage: chained HDF5 record store and writer."""

from simpleflux.store.record_store import (
    Hdf5FluxChain,
    LoadError,
    RecordStore,
    resolve_file_patterns,
)
from simpleflux.store.writer import make_example_entries, write_flux_file

__all__ = [
    "Hdf5FluxChain",
    "LoadError",
    "RecordStore",
    "resolve_file_patterns",
    "make_example_entries",
    "write_flux_file",
]
