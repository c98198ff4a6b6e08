"""Writer for HDF5 flux files.

Produces files in the layout read by Hdf5FluxChain. Used by beam-simulation
converters, by the ``make-example`` CLI command and by the tests.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import h5py
import numpy as np

from simpleflux.config.defaults import (
    AUX_DBL_DATASET,
    AUX_GROUP,
    AUX_INT_DATASET,
    ENTRY_DATASET,
    META_GROUP,
    PARENT_DATASET,
)
from simpleflux.core.pdg import NU_E, NU_MU, NU_MU_BAR
from simpleflux.core.records import ENTRY_DTYPE, PARENT_DTYPE, FluxMetadata, empty_entries

logger = logging.getLogger(__name__)


def write_flux_file(
    path: str | Path,
    entries: np.ndarray,
    metadata: FluxMetadata | Sequence[FluxMetadata] | None = None,
    parents: np.ndarray | None = None,
    auxint: np.ndarray | None = None,
    auxdbl: np.ndarray | None = None,
) -> Path:
    """Write one flux file.

    Args:
        path: Output file (parent directories are created)
        entries: ENTRY_DTYPE rows
        metadata: One block, several blocks, or None for a file without metadata
        parents: PARENT_DTYPE rows, same length as entries
        auxint: Integer array [n_entries, n_auxint]
        auxdbl: Float array [n_entries, n_auxdbl]

    Returns:
        Path of the written file

    Raises:
        ValueError: On length mismatches or duplicate metakeys
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    n = len(entries)

    for name, array in (("parents", parents), ("auxint", auxint), ("auxdbl", auxdbl)):
        if array is not None and len(array) != n:
            raise ValueError(f"{name} has {len(array)} rows, entries has {n}")

    if isinstance(metadata, FluxMetadata):
        metadata = [metadata]
    metadata = list(metadata or [])
    keys = [m.metakey for m in metadata]
    if len(set(keys)) != len(keys):
        raise ValueError(f"Duplicate metakeys in one file: {keys}")

    with h5py.File(path, "w") as f:
        f.create_dataset(ENTRY_DATASET, data=np.asarray(entries).astype(ENTRY_DTYPE))
        if parents is not None:
            f.create_dataset(PARENT_DATASET, data=np.asarray(parents).astype(PARENT_DTYPE))
        if auxint is not None or auxdbl is not None:
            aux = f.create_group(AUX_GROUP)
            if auxint is not None:
                aux.create_dataset(AUX_INT_DATASET, data=np.asarray(auxint, dtype=np.int32).reshape(n, -1))
            if auxdbl is not None:
                aux.create_dataset(AUX_DBL_DATASET, data=np.asarray(auxdbl, dtype=np.float64).reshape(n, -1))
        if metadata:
            meta_group = f.create_group(META_GROUP)
            for meta in metadata:
                meta_group.create_group(str(meta.metakey)).attrs.update(meta.to_attrs())

    logger.info(f"Wrote {n} flux entries ({len(metadata)} metadata block(s)) to {path}")
    return path


def make_example_entries(
    n: int,
    rng: np.random.Generator,
    species: Sequence[int] = (NU_MU, NU_MU_BAR, NU_E),
    window_z: float = 0.0,
    max_weight: float = 1.0,
    metakey: int = 0,
) -> np.ndarray:
    """Synthetic on-axis beam rays crossing a 2 m x 2 m window at z=window_z.

    Energies follow a broad falling spectrum peaked near 2 GeV; weights are
    uniform in (0, max_weight] (all exactly 1 when max_weight == 1).
    """
    entries = empty_entries(n)
    entries["pdg"] = rng.choice(np.asarray(species), size=n)
    entries["E"] = rng.gamma(shape=3.0, scale=1.0, size=n) + 0.05
    entries["vtxx"] = rng.uniform(-1.0, 1.0, size=n)
    entries["vtxy"] = rng.uniform(-1.0, 1.0, size=n)
    entries["vtxz"] = window_z
    # small angular spread around +z, decay point ~ 500-700 m upstream
    theta = np.abs(rng.normal(0.0, 2.0e-3, size=n))
    phi = rng.uniform(0.0, 2.0 * np.pi, size=n)
    entries["px"] = entries["E"] * np.sin(theta) * np.cos(phi)
    entries["py"] = entries["E"] * np.sin(theta) * np.sin(phi)
    entries["pz"] = entries["E"] * np.cos(theta)
    entries["dist"] = rng.uniform(500.0, 700.0, size=n)
    if max_weight == 1.0:
        entries["wgt"] = 1.0
    else:
        entries["wgt"] = max_weight * (1.0 - rng.random(size=n))
    entries["metakey"] = metakey
    return entries
