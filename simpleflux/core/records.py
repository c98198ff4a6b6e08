"""Flux record types.

A flux file stores, per simulated beam neutrino, one row of ENTRY_DTYPE and
optionally one row of PARENT_DTYPE and a row of auxiliary ints/doubles.
Every file also carries one or more FluxMetadata blocks, linked to the
entries through ``metakey``.

Units follow the producing beam simulation: positions and distances in m,
momenta and energies in GeV.

Import Policy:
    from simpleflux.core.records import FluxEntry, FluxMetadata, ENTRY_DTYPE

DO NOT use: from simpleflux.core.records import *
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Mapping

import numpy as np

from simpleflux.config.defaults import MAX_FILES_PRINTED
from simpleflux.core.pdg import neutrino_name

# =============================================================================
# On-disk row layouts (largest to smallest)
# =============================================================================

ENTRY_DTYPE = np.dtype([
    ("wgt", np.float64),
    ("vtxx", np.float64),
    ("vtxy", np.float64),
    ("vtxz", np.float64),
    ("dist", np.float64),
    ("px", np.float64),
    ("py", np.float64),
    ("pz", np.float64),
    ("E", np.float64),
    ("pdg", np.int32),
    ("metakey", np.uint32),
])

PARENT_DTYPE = np.dtype([
    ("tpx", np.float64),
    ("tpy", np.float64),
    ("tpz", np.float64),
    ("vx", np.float64),
    ("vy", np.float64),
    ("vz", np.float64),
    ("pdpx", np.float64),
    ("pdpy", np.float64),
    ("pdpz", np.float64),
    ("pppx", np.float64),
    ("pppy", np.float64),
    ("pppz", np.float64),
    ("ndecay", np.int32),
    ("ptype", np.int32),
    ("ppmedium", np.int32),
    ("tptype", np.int32),
    ("run", np.int32),
    ("evtno", np.int32),
    ("entryno", np.int32),
])


def empty_entries(n: int) -> np.ndarray:
    """Zero-filled entry array of length n."""
    return np.zeros(n, dtype=ENTRY_DTYPE)


def empty_parents(n: int) -> np.ndarray:
    """Zero-filled parent-decay array of length n."""
    return np.zeros(n, dtype=PARENT_DTYPE)


def _row_kwargs(row: np.void, dtype: np.dtype) -> dict[str, Any]:
    return {name: row[name].item() for name in dtype.names}


@dataclass(frozen=True)
class FluxEntry:
    """One simulated beam neutrino ("entry" group)."""

    wgt: float
    vtxx: float
    vtxy: float
    vtxz: float
    dist: float
    px: float
    py: float
    pz: float
    E: float
    pdg: int
    metakey: int

    @classmethod
    def from_row(cls, row: np.void) -> FluxEntry:
        return cls(**_row_kwargs(row, ENTRY_DTYPE))

    def describe(self) -> str:
        return (
            f"FluxEntry: pdg {self.pdg} ({neutrino_name(self.pdg)}) wgt {self.wgt:g}\n"
            f"  vtx [{self.vtxx:g}, {self.vtxy:g}, {self.vtxz:g}] m  dist {self.dist:g} m\n"
            f"  p4  [{self.px:g}, {self.py:g}, {self.pz:g}; {self.E:g}] GeV"
            f"  metakey {self.metakey}"
        )


@dataclass(frozen=True)
class ParentDecayInfo:
    """Parent hadron/muon information of a ray ("numi" group)."""

    tpx: float
    tpy: float
    tpz: float
    vx: float
    vy: float
    vz: float
    pdpx: float
    pdpy: float
    pdpz: float
    pppx: float
    pppy: float
    pppz: float
    ndecay: int
    ptype: int
    ppmedium: int
    tptype: int
    run: int
    evtno: int
    entryno: int

    @classmethod
    def from_row(cls, row: np.void) -> ParentDecayInfo:
        return cls(**_row_kwargs(row, PARENT_DTYPE))

    def describe(self) -> str:
        return (
            f"ParentDecayInfo: ptype {self.ptype} ndecay {self.ndecay} "
            f"decay vtx [{self.vx:g}, {self.vy:g}, {self.vz:g}]\n"
            f"  p at decay [{self.pdpx:g}, {self.pdpy:g}, {self.pdpz:g}]"
            f"  run {self.run} evtno {self.evtno} entryno {self.entryno}"
        )


@dataclass(frozen=True)
class AuxInfo:
    """Auxiliary values of a ray ("aux" group), named by the metadata."""

    auxint: tuple[int, ...] = ()
    auxdbl: tuple[float, ...] = ()

    def named(self, meta: FluxMetadata | None) -> dict[str, Any]:
        """Map values to the metadata names (positional names if unnamed)."""
        int_names = list(meta.auxintname) if meta is not None else []
        dbl_names = list(meta.auxdblname) if meta is not None else []
        result: dict[str, Any] = {}
        for i, value in enumerate(self.auxint):
            result[int_names[i] if i < len(int_names) else f"auxint{i}"] = value
        for i, value in enumerate(self.auxdbl):
            result[dbl_names[i] if i < len(dbl_names) else f"auxdbl{i}"] = value
        return result

    def describe(self) -> str:
        return f"AuxInfo: auxint {list(self.auxint)} auxdbl {list(self.auxdbl)}"


@dataclass
class FluxMetadata:
    """Summary of the rays a producing program wrote to one file.

    Attributes:
        pdglist: Neutrino species present
        max_energy: Maximum ray energy [GeV]
        min_wgt, max_wgt: Weight bounds
        protons: Protons-on-target represented by the rays
        window_base: x,y,z of the flux window base point [m]
        window_dir1, window_dir2: Vectors spanning the flux window [m]
        auxintname, auxdblname: Names of the auxiliary values
        infiles: Beam simulation files the rays were taken from
        seed: Random seed used by the producer
        metakey: Key tying entries to this block
    """

    pdglist: list[int] = field(default_factory=list)
    max_energy: float = 0.0
    min_wgt: float = 1.0e10
    max_wgt: float = -1.0e10
    protons: float = 0.0
    window_base: tuple[float, float, float] = (0.0, 0.0, 0.0)
    window_dir1: tuple[float, float, float] = (0.0, 0.0, 0.0)
    window_dir2: tuple[float, float, float] = (0.0, 0.0, 0.0)
    auxintname: list[str] = field(default_factory=list)
    auxdblname: list[str] = field(default_factory=list)
    infiles: list[str] = field(default_factory=list)
    seed: int = 0
    metakey: int = 0

    def add_flavor(self, pdg: int) -> None:
        """Add a species, keeping pdglist unique."""
        pdg = int(pdg)
        if pdg not in self.pdglist:
            self.pdglist.append(pdg)

    def has_species(self) -> bool:
        return len(self.pdglist) > 0

    def has_weights(self) -> bool:
        """True when the weight bounds were filled in by the producer."""
        return self.max_wgt > 0.0 and self.min_wgt <= self.max_wgt

    @classmethod
    def from_entries(
        cls,
        entries: np.ndarray,
        protons: float,
        window_base=(0.0, 0.0, 0.0),
        window_dir1=(1.0, 0.0, 0.0),
        window_dir2=(0.0, 1.0, 0.0),
        metakey: int = 0,
        **kwargs,
    ) -> FluxMetadata:
        """Build the block a producer would write for an entry array."""
        meta = cls(
            protons=float(protons),
            window_base=tuple(float(v) for v in window_base),
            window_dir1=tuple(float(v) for v in window_dir1),
            window_dir2=tuple(float(v) for v in window_dir2),
            metakey=int(metakey),
            **kwargs,
        )
        for pdg in np.unique(entries["pdg"]):
            meta.add_flavor(pdg)
        if len(entries) > 0:
            meta.max_energy = float(np.max(entries["E"]))
            meta.min_wgt = float(np.min(entries["wgt"]))
            meta.max_wgt = float(np.max(entries["wgt"]))
        return meta

    def to_attrs(self) -> dict[str, Any]:
        """Flatten to HDF5-attribute friendly values (empty lists dropped)."""
        attrs: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, list):
                if not value:
                    continue
                if f.name == "pdglist":
                    value = np.asarray(value, dtype=np.int32)
                else:
                    # h5py stores fixed-width byte strings, not numpy unicode
                    value = np.asarray([str(v).encode("utf-8") for v in value])
            elif isinstance(value, tuple):
                value = np.asarray(value, dtype=np.float64)
            attrs[f.name] = value
        return attrs

    @classmethod
    def from_attrs(cls, attrs: Mapping[str, Any]) -> FluxMetadata:
        """Inverse of to_attrs; missing attributes keep their defaults."""
        meta = cls()
        for f in fields(cls):
            if f.name not in attrs:
                continue
            value = attrs[f.name]
            if f.name == "pdglist":
                value = [int(v) for v in np.atleast_1d(value)]
            elif f.name in ("auxintname", "auxdblname", "infiles"):
                value = [_as_str(v) for v in np.atleast_1d(value)]
            elif f.name.startswith("window_"):
                value = tuple(float(v) for v in np.asarray(value).ravel()[:3])
            elif f.name in ("seed", "metakey"):
                value = int(value)
            else:
                value = float(value)
            setattr(meta, f.name, value)
        return meta

    def describe(self, max_files: int = MAX_FILES_PRINTED) -> str:
        lines = [
            f"FluxMetadata (metakey {self.metakey}, seed {self.seed}):",
            "  species: " + ", ".join(f"{p} ({neutrino_name(p)})" for p in self.pdglist),
            f"  max energy {self.max_energy:g} GeV, weights [{self.min_wgt:g}, {self.max_wgt:g}]",
            f"  POT {self.protons:g}",
            f"  window base {list(self.window_base)} dir1 {list(self.window_dir1)} "
            f"dir2 {list(self.window_dir2)}",
        ]
        if self.auxintname or self.auxdblname:
            lines.append(f"  aux ints {self.auxintname} aux doubles {self.auxdblname}")
        if self.infiles:
            shown = self.infiles[:max_files]
            lines.append(f"  {len(self.infiles)} input file(s):")
            lines.extend(f"    {name}" for name in shown)
            if len(self.infiles) > max_files:
                lines.append(f"    ... ({len(self.infiles) - max_files} more)")
        return "\n".join(lines)


def _as_str(value) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)
