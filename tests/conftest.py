"""Pytest configuration and shared fixtures for simpleflux tests."""

import itertools

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from simpleflux.config.flux_config import create_default_config
from simpleflux.core.pdg import NU_MU
from simpleflux.core.records import FluxMetadata, empty_entries, empty_parents
from simpleflux.store.writer import make_example_entries, write_flux_file


# Fixtures for flux records


@pytest.fixture
def entries_factory():
    """Build an entry array with explicit species, energies and weights.

    Scalars are broadcast; rays point along +z through the origin plane.
    """
    def _make(pdg, energy=1.0, wgt=1.0, metakey=0):
        pdg = np.atleast_1d(pdg)
        n = len(pdg)
        entries = empty_entries(n)
        entries["pdg"] = pdg
        entries["E"] = np.broadcast_to(energy, n)
        entries["pz"] = entries["E"]
        entries["wgt"] = np.broadcast_to(wgt, n)
        entries["vtxx"] = np.linspace(-0.5, 0.5, n)
        entries["dist"] = 600.0
        entries["metakey"] = metakey
        return entries

    return _make


@pytest.fixture
def flux_file_factory(tmp_path):
    """Write flux files into tmp_path.

    Returns a function taking either an explicit entry array or a number
    of synthetic entries, and the content of the optional groups.
    """
    counter = itertools.count()

    def _make(
        n=100,
        entries=None,
        name=None,
        species=(NU_MU,),
        protons=1000.0,
        max_weight=1.0,
        meta=True,
        parents=False,
        aux=False,
        metakey=0,
        window_base=(0.0, 0.0, 0.0),
    ):
        idx = next(counter)
        path = tmp_path / (name or f"flux_{idx:02d}.h5")
        if entries is None:
            rng = np.random.default_rng(1000 + idx)
            entries = make_example_entries(
                n, rng, species=species, max_weight=max_weight, metakey=metakey,
            )
        n = len(entries)

        block = None
        if meta:
            block = FluxMetadata.from_entries(
                entries,
                protons=protons,
                window_base=window_base,
                metakey=metakey,
                auxintname=["entry_idx"] if aux else [],
                auxdblname=["twice_E"] if aux else [],
                infiles=[f"beamsim_{idx}.root"],
            )

        parent_rows = None
        if parents:
            parent_rows = empty_parents(n)
            parent_rows["entryno"] = np.arange(n)
            parent_rows["ptype"] = 211
            parent_rows["vz"] = -entries["dist"]

        auxint = auxdbl = None
        if aux:
            auxint = np.arange(n).reshape(n, 1)
            auxdbl = (2.0 * entries["E"]).reshape(n, 1)

        return write_flux_file(path, entries, block, parents=parent_rows, auxint=auxint, auxdbl=auxdbl)

    return _make


# Fixtures for configuration


@pytest.fixture
def seeded_config():
    """Default configuration with a fixed sampler seed."""
    config = create_default_config()
    config.seed = 12345
    return config
