"""Chained flux-file record store.

Presents a chain of flux files as position-addressable sequences: global
entry index -> (file, local index) through cumulative per-file counts.
Each file must carry the "entry" group; the "numi" and "aux" groups are
optional capabilities resolved once per file at load time; a requested
optional group must be carried by at least one file.

HDF5 layout of one flux file (see simpleflux.store.writer):
    /entry          compound dataset, ENTRY_DTYPE rows       (required)
    /numi           compound dataset, PARENT_DTYPE rows      (optional)
    /aux/auxint     int dataset [n_entries, n_auxint]        (optional)
    /aux/auxdbl     float dataset [n_entries, n_auxdbl]      (optional)
    /meta/<key>     group per metadata block; FluxMetadata fields as attributes

Import Policy:
    from simpleflux.store.record_store import Hdf5FluxChain, LoadError, resolve_file_patterns

DO NOT use: from simpleflux.store.record_store import *
"""

from __future__ import annotations

import glob
import logging
from abc import ABC, abstractmethod
from contextlib import ExitStack
from typing import Iterable

import h5py
import numpy as np

from simpleflux.config.defaults import (
    AUX_DBL_DATASET,
    AUX_GROUP,
    AUX_INT_DATASET,
    DEFAULT_BRANCH_REQUEST,
    ENTRY_DATASET,
    META_GROUP,
    PARENT_DATASET,
)
from simpleflux.config.enums import BranchGroup
from simpleflux.core.records import (
    ENTRY_DTYPE,
    AuxInfo,
    FluxEntry,
    FluxMetadata,
    ParentDecayInfo,
)

logger = logging.getLogger(__name__)


class LoadError(Exception):
    """Raised when a flux file chain cannot be built.

    No file matched, a file lacks the mandatory "entry" group, a requested
    optional group is absent from every file, a file is unreadable, or the
    chain holds zero entries.
    """

    pass


def resolve_file_patterns(patterns: str | Iterable[str]) -> list[str]:
    """Expand (possibly wildcarded) paths into an ordered, duplicate-free list.

    Patterns are expanded in the order given; the matches of one pattern
    are sorted. A plain path that does not exist is dropped.
    """
    if isinstance(patterns, str):
        patterns = [patterns]
    elif isinstance(patterns, (set, frozenset)):
        patterns = sorted(patterns)

    resolved: list[str] = []
    for pattern in patterns:
        matches = sorted(glob.glob(pattern))
        if not matches:
            logger.warning(f"No flux file matches '{pattern}'")
        for path in matches:
            if path not in resolved:
                resolved.append(path)
    return resolved


class RecordStore(ABC):
    """Position-addressable view of chained flux files.

    Subclasses provide per-file reads; the base class owns the global index
    bookkeeping and the capability checks.
    """

    def __init__(self, files: list[str], entry_counts: list[int], groups: list[BranchGroup]):
        self._files = list(files)
        self._groups = list(groups)
        self._boundaries = np.concatenate(([0], np.cumsum(entry_counts, dtype=np.int64)))

    # ------------------------------------------------------------------
    # Per-file hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def entries(self, ifile: int) -> np.ndarray:
        """All ENTRY_DTYPE rows of one file."""

    @abstractmethod
    def file_has_group(self, ifile: int, group: BranchGroup) -> bool:
        """Whether a file carries an optional group (and it was requested)."""

    @abstractmethod
    def _parent_row(self, ifile: int, local: int) -> np.void:
        ...

    @abstractmethod
    def _aux_row(self, ifile: int, local: int) -> AuxInfo:
        ...

    @abstractmethod
    def metadata(self, ifile: int) -> list[FluxMetadata]:
        """Metadata blocks stored in one file (possibly none)."""

    @abstractmethod
    def close(self) -> None:
        """Release every file handle."""

    # ------------------------------------------------------------------
    # Chain-level access
    # ------------------------------------------------------------------

    @property
    def file_list(self) -> list[str]:
        return list(self._files)

    @property
    def n_files(self) -> int:
        return len(self._files)

    @property
    def n_entries(self) -> int:
        return int(self._boundaries[-1])

    @property
    def file_boundaries(self) -> np.ndarray:
        """Cumulative entry counts, length n_files + 1, starting at 0."""
        return self._boundaries.copy()

    def entry_count(self, ifile: int) -> int:
        return int(self._boundaries[ifile + 1] - self._boundaries[ifile])

    def requested(self, group: BranchGroup) -> bool:
        return group in self._groups

    def has_group(self, group: BranchGroup) -> bool:
        """True if at least one file carries the (requested) group."""
        return any(self.file_has_group(i, group) for i in range(self.n_files))

    def locate(self, index: int) -> tuple[int, int]:
        """Map a global entry index to (file index, local index).

        Raises:
            IndexError: If index is outside [0, n_entries).
        """
        if index < 0 or index >= self.n_entries:
            raise IndexError(f"Entry index {index} outside [0, {self.n_entries})")
        ifile = int(np.searchsorted(self._boundaries, index, side="right")) - 1
        return ifile, int(index - self._boundaries[ifile])

    def entry(self, index: int) -> FluxEntry:
        ifile, local = self.locate(index)
        return FluxEntry.from_row(self.entries(ifile)[local])

    def parent(self, index: int) -> ParentDecayInfo | None:
        ifile, local = self.locate(index)
        if not self.file_has_group(ifile, BranchGroup.NUMI):
            return None
        return ParentDecayInfo.from_row(self._parent_row(ifile, local))

    def aux(self, index: int) -> AuxInfo | None:
        ifile, local = self.locate(index)
        if not self.file_has_group(ifile, BranchGroup.AUX):
            return None
        return self._aux_row(ifile, local)

    def find_meta(self, ifile: int, metakey: int) -> FluxMetadata | None:
        """Metadata block of a file matching metakey, if any."""
        for meta in self.metadata(ifile):
            if meta.metakey == metakey:
                return meta
        return None

    # Record-level summaries, used when metadata is missing or suspect

    def weight_range(self, ifile: int) -> tuple[float, float]:
        wgt = self.entries(ifile)["wgt"]
        if len(wgt) == 0:
            return 0.0, 0.0
        return float(np.min(wgt)), float(np.max(wgt))

    def max_entry_energy(self, ifile: int) -> float:
        energy = self.entries(ifile)["E"]
        return float(np.max(energy)) if len(energy) else 0.0

    def pdg_codes(self, ifile: int) -> list[int]:
        return [int(p) for p in np.unique(self.entries(ifile)["pdg"])]

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class Hdf5FluxChain(RecordStore):
    """RecordStore over HDF5 flux files opened with h5py.

    File handles stay open for the lifetime of the chain; the mandatory
    entry rows are read into memory at load, optional groups are read row
    by row on demand.
    """

    def __init__(
        self,
        files: list[str],
        handles: list[h5py.File],
        entry_arrays: list[np.ndarray],
        groups: list[BranchGroup],
        stack: ExitStack,
    ):
        super().__init__(files, [len(a) for a in entry_arrays], groups)
        self._handles = handles
        self._entry_arrays = entry_arrays
        self._stack = stack
        self._presence = {
            group: [
                group in groups and _file_carries(h, group)
                for h in handles
            ]
            for group in (BranchGroup.NUMI, BranchGroup.AUX)
        }
        self._meta_cache: dict[int, list[FluxMetadata]] = {}

    @classmethod
    def open(
        cls,
        patterns: str | Iterable[str],
        branch_request: str = DEFAULT_BRANCH_REQUEST,
    ) -> Hdf5FluxChain:
        """Resolve patterns and open every file of the chain.

        Raises:
            LoadError: See class LoadError. Files opened before the failure
                are closed before the error propagates.
        """
        files = resolve_file_patterns(patterns)
        if not files:
            raise LoadError(f"No flux files found for {patterns!r}")

        try:
            groups = BranchGroup.parse_request(branch_request)
        except ValueError as e:
            raise LoadError(f"Invalid branch request '{branch_request}': {e}") from e
        if BranchGroup.ENTRY not in groups:
            raise LoadError(f"Branch request '{branch_request}' lacks the mandatory 'entry' group")

        with ExitStack() as stack:
            handles = []
            entry_arrays = []
            for path in files:
                try:
                    handle = stack.enter_context(h5py.File(path, "r"))
                except OSError as e:
                    raise LoadError(f"Cannot open flux file {path}: {e}") from e
                handles.append(handle)
                entry_arrays.append(_read_entries(handle, path))

            n_entries = sum(len(a) for a in entry_arrays)
            if n_entries == 0:
                raise LoadError(f"Flux file chain of {len(files)} file(s) holds no entries")

            chain = cls(files, handles, entry_arrays, groups, stack.pop_all())

        try:
            chain._check_optional_groups()
        except LoadError:
            chain.close()
            raise
        logger.info(f"Flux chain: {chain.n_files} file(s), {chain.n_entries} entries")
        return chain

    def _check_optional_groups(self) -> None:
        for group, present in self._presence.items():
            if not self.requested(group):
                continue
            n_present = sum(present)
            if n_present == 0:
                raise LoadError(
                    f"Requested group '{group.value}' is absent from every file of the chain"
                )
            elif n_present < self.n_files:
                missing = [f for f, p in zip(self._files, present) if not p]
                logger.warning(
                    f"Group '{group.value}' present in {n_present} of {self.n_files} files; "
                    f"entries of {missing} will report none"
                )

    def entries(self, ifile: int) -> np.ndarray:
        return self._entry_arrays[ifile]

    def file_has_group(self, ifile: int, group: BranchGroup) -> bool:
        if group == BranchGroup.ENTRY:
            return True
        return self._presence[group][ifile]

    def _parent_row(self, ifile: int, local: int) -> np.void:
        return self._handles[ifile][PARENT_DATASET][local]

    def _aux_row(self, ifile: int, local: int) -> AuxInfo:
        aux = self._handles[ifile][AUX_GROUP]
        ints = tuple(int(v) for v in aux[AUX_INT_DATASET][local]) if AUX_INT_DATASET in aux else ()
        dbls = tuple(float(v) for v in aux[AUX_DBL_DATASET][local]) if AUX_DBL_DATASET in aux else ()
        return AuxInfo(auxint=ints, auxdbl=dbls)

    def metadata(self, ifile: int) -> list[FluxMetadata]:
        if ifile not in self._meta_cache:
            handle = self._handles[ifile]
            blocks = []
            if META_GROUP in handle:
                for key in handle[META_GROUP]:
                    blocks.append(FluxMetadata.from_attrs(handle[META_GROUP][key].attrs))
            self._meta_cache[ifile] = blocks
        return self._meta_cache[ifile]

    def close(self) -> None:
        if self._stack is not None:
            self._stack.close()
            self._stack = None
            logger.debug(f"Closed {self.n_files} flux file(s)")

    @property
    def closed(self) -> bool:
        return self._stack is None


def _file_carries(handle: h5py.File, group: BranchGroup) -> bool:
    if group == BranchGroup.NUMI:
        return PARENT_DATASET in handle
    if group == BranchGroup.AUX:
        return AUX_GROUP in handle and len(handle[AUX_GROUP]) > 0
    return ENTRY_DATASET in handle


def _read_entries(handle: h5py.File, path: str) -> np.ndarray:
    if ENTRY_DATASET not in handle:
        raise LoadError(f"Flux file {path} has no '{ENTRY_DATASET}' group")
    dataset = handle[ENTRY_DATASET]
    names = dataset.dtype.names or ()
    missing = [name for name in ENTRY_DTYPE.names if name not in names]
    if missing:
        raise LoadError(f"Flux file {path}: '{ENTRY_DATASET}' lacks fields {missing}")
    rows = dataset[()]
    return np.asarray(rows[list(ENTRY_DTYPE.names)]).astype(ENTRY_DTYPE)


__all__ = [
    "Hdf5FluxChain",
    "LoadError",
    "RecordStore",
    "resolve_file_patterns",
]
