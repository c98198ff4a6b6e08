"""Simple-ntuple flux driver

Streams flux rays from a chain of HDF5 flux files for neutrino event
generation. This is the main entry point of the package.

Generation loop (one generate_next call):
    1. Advance the traversal (reuse, next entry, wrap or end)
    2. Species filter: unknown species are noted as rejected and skipped
    3. Energy cap: a ray above max_energy is a ConfigurationError
    4. Weighting policy:
         weighted          serve the native weight
         already unweighted serve with weight 1, no sampling
         unweighted        accept if draw * max_weight < weight, serve weight 1
    5. Statistics: n_neutrinos, sum_weight, accumulated POT

Skipped and rejected rays consume traversal advances, so with a finite
cycle count the loop always terminates. With unbounded cycling a warning
is logged every reject_warning_interval consecutive rejections.

Import Policy:
    from simpleflux.driver.flux_driver import SimpleNtpFluxDriver, FluxRay

DO NOT use: from simpleflux.driver.flux_driver import *
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Iterable, Iterator

import numpy as np

from simpleflux.config.enums import BranchGroup
from simpleflux.config.flux_config import FluxConfig, create_default_config
from simpleflux.config.validation import (
    ConfigurationError,
    ConfigurationWarning,
    validate_config,
    warn_if_unsafe,
)
from simpleflux.core.geometry import FourVector, move_to_z0, reconstitute
from simpleflux.core.metadata import (
    MetadataAggregate,
    MetadataInconsistency,
    aggregate_metadata,
)
from simpleflux.core.pdg import PDGCodeList
from simpleflux.core.records import AuxInfo, FluxEntry, FluxMetadata, ParentDecayInfo
from simpleflux.driver.accounting import StreamStatistics, effective_pots_per_entry
from simpleflux.driver.traversal import AdvanceResult, Traversal
from simpleflux.store.record_store import Hdf5FluxChain, LoadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FluxRay:
    """Immutable snapshot of one served ray.

    Attributes:
        index: Global entry index the ray was read from
        pdg: Neutrino species
        weight: Served weight (1 for an unweighted stream)
        momentum: (px, py, pz, E) [GeV]
        position: (x, y, z, dist) [m]
        metakey: Key of the metadata block of the ray
    """

    index: int
    pdg: int
    weight: float
    momentum: FourVector
    position: FourVector
    metakey: int


class SimpleNtpFluxDriver:
    """Flux driver over chained simple-ntuple flux files.

    Options come from a FluxConfig (defaults.yaml when None); the set_*
    methods update that config in place. Files are held open from
    load_beam_sim_data until close(), a reload, or the end of a with block.

    Example:
        >>> with SimpleNtpFluxDriver() as driver:
        ...     driver.set_flux_particles([14, -14])
        ...     driver.load_beam_sim_data("flux_*.h5", "near")
        ...     for ray in driver:
        ...         handle(ray.pdg, ray.momentum, ray.position)
        ...     print(driver.used_pots())

    """

    def __init__(self, config: FluxConfig | None = None):
        """Initialize an unloaded driver.

        Args:
            config: Driver options. If None, uses the YAML defaults.

        Raises:
            ConfigurationError: If config validation fails

        """
        if config is None:
            config = create_default_config()
        validate_config(config, raise_on_error=True)
        self.config = config

        self._store: Hdf5FluxChain | None = None
        self._aggregate: MetadataAggregate | None = None
        self._traversal: Traversal | None = None
        self._det_loc = ""

        self._flux_particles = PDGCodeList(config.flux_particles)
        self._rejected = PDGCodeList()
        self._max_energy = config.max_energy
        self._max_weight = 0.0
        self._eff_pots_per_entry = 0.0
        self._stats = StreamStatistics()
        self._consecutive_misses = 0

        # An unseeded config still gets a fixed seed so clear() reproduces the stream
        if config.seed is None:
            self._seed = int(np.random.SeedSequence().entropy)
        else:
            self._seed = int(config.seed)
        self._rng = np.random.default_rng(self._seed)

        self._reset_current()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_beam_sim_data(self, filenames: str | Iterable[str], det_loc: str = "") -> None:
        """Open a chain of flux files and prepare the stream.

        Args:
            filenames: Path or glob pattern, or a list/set of them
            det_loc: Detector location tag (recorded and reported only)

        Raises:
            LoadError: No file resolves, a file lacks the entry group,
                a file cannot be read, or the chain holds no entries

        """
        if self._store is not None:
            logger.info("Reloading flux files; closing the current chain")
            self.close()

        store = Hdf5FluxChain.open(filenames, self.config.branch_request)
        try:
            aggregate = aggregate_metadata(store, self.config.window_tolerance)
        except Exception:
            store.close()
            raise

        self._store = store
        self._aggregate = aggregate
        self._det_loc = det_loc
        self._traversal = Traversal(
            store.n_entries, self.config.num_cycles, self.config.entry_reuse,
            boundaries=store.file_boundaries,
        )
        self._resolve_flux_particles()
        self._resolve_max_energy()
        self._update_effective_pots()
        warn_if_unsafe(self.config)
        self.clear()

        logger.info(
            f"Loaded {store.n_entries} flux entries from {store.n_files} file(s) "
            f"for location '{det_loc}'"
        )

    def _resolve_flux_particles(self) -> None:
        if len(self._flux_particles) == 0 and self._aggregate is not None:
            self._flux_particles = PDGCodeList(self._aggregate.pdglist)
            logger.info(f"No species requested; accepting all in the files: {self._flux_particles}")

    def _resolve_max_energy(self) -> None:
        if self._aggregate is None:
            return
        file_max = self._aggregate.max_energy
        if self.config.max_energy is None:
            self._max_energy = file_max
            logger.info(f"Max energy taken from the flux files: {file_max:g} GeV")
            return
        self._max_energy = self.config.max_energy
        if self._max_energy < file_max:
            message = (
                f"Declared max energy {self._max_energy:g} GeV is below the flux "
                f"files' max energy {file_max:g} GeV; a ray above it will be fatal"
            )
            logger.warning(message)
            warnings.warn(message, ConfigurationWarning, stacklevel=3)

    def _update_effective_pots(self) -> None:
        if self._store is None:
            return
        self._eff_pots_per_entry = effective_pots_per_entry(
            self._aggregate, self._store.n_entries, self.config.num_cycles,
        )

    def _require_loaded(self) -> None:
        if self._store is None:
            raise LoadError("No flux files loaded; call load_beam_sim_data first")

    # ------------------------------------------------------------------
    # Configuration surface
    # ------------------------------------------------------------------

    def set_requested_branch_list(self, request: str) -> None:
        """Choose the record groups attached at the next load ("entry,numi,aux")."""
        try:
            groups = BranchGroup.parse_request(request)
        except ValueError as e:
            raise ConfigurationError(f"Invalid branch request '{request}': {e}") from e
        if BranchGroup.ENTRY not in groups:
            raise ConfigurationError(f"Branch request '{request}' must include 'entry'")
        self.config.branch_request = request
        if self._store is not None:
            logger.info("Branch request changed; it takes effect at the next load")

    def set_flux_particles(self, codes: Iterable[int]) -> None:
        """Accept only these species; empty accepts every species in the files."""
        self._flux_particles = PDGCodeList(codes)
        self.config.flux_particles = list(self._flux_particles)
        self._resolve_flux_particles()

    def set_max_energy(self, max_energy: float) -> None:
        """Declare the largest ray energy [GeV] the consumer can handle."""
        if max_energy <= 0:
            raise ConfigurationError(f"max_energy must be > 0 GeV, got {max_energy}")
        self.config.max_energy = float(max_energy)
        self._max_energy = float(max_energy)
        self._resolve_max_energy()

    def set_gen_weighted(self, gen_weighted: bool) -> None:
        self.config.gen_weighted = bool(gen_weighted)

    def generate_weighted(self, gen_weighted: bool = True) -> None:
        """Alias of set_gen_weighted."""
        self.set_gen_weighted(gen_weighted)

    def set_num_of_cycles(self, num_cycles: int) -> None:
        """Passes over the chain; 0 cycles without limit."""
        if num_cycles < 0:
            raise ConfigurationError(f"num_cycles must be >= 0 (0 = unbounded), got {num_cycles}")
        self.config.num_cycles = int(num_cycles)
        if self._traversal is not None:
            self._traversal.configure(self.config.num_cycles, self.config.entry_reuse)
            self._update_effective_pots()

    def set_entry_reuse(self, entry_reuse: int) -> None:
        """Serve every entry this many times in a row."""
        if entry_reuse < 1:
            raise ConfigurationError(f"entry_reuse must be >= 1, got {entry_reuse}")
        self.config.entry_reuse = int(entry_reuse)
        if self._traversal is not None:
            self._traversal.configure(self.config.num_cycles, self.config.entry_reuse)

    def set_upstream_z(self, z0: float | None) -> None:
        """Move every served ray to this z [m]; None keeps the window position."""
        self.config.upstream_z = None if z0 is None else float(z0)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_next(self) -> bool:
        """Serve the next ray.

        Returns:
            True if a ray was served, False at end of stream (see end)

        Raises:
            LoadError: If no files are loaded
            ConfigurationError: If a ray exceeds the declared max energy

        """
        self._require_loaded()
        if self._traversal.end:
            return False

        while True:
            if not self._next_filtered():
                return False

            if self.config.gen_weighted:
                break

            if self._aggregate.already_unweighted:
                self._weight = 1.0
                break

            # The aggregate max covers every record weight, so this only
            # fires after a caller lowered metadata.max_weight and cleared
            if self._weight > self._max_weight:
                self._aggregate.flag(
                    MetadataInconsistency.WEIGHT_EXCEEDS_MAX,
                    f"entry {self._index} weight {self._weight:g} exceeds max weight "
                    f"{self._max_weight:g}; raising the max weight",
                )
                self._max_weight = self._weight

            draw = self._rng.random()
            if draw * self._max_weight < self._weight:
                self._weight = 1.0
                break

            self._consecutive_misses += 1
            if self._consecutive_misses % self.config.reject_warning_interval == 0:
                logger.warning(
                    f"{self._consecutive_misses} consecutive rejections "
                    f"(max weight {self._max_weight:g}); check the max weight scale"
                )

        self._consecutive_misses = 0
        self._stats.record(self._weight, self._eff_pots_per_entry)
        return True

    def _next_filtered(self) -> bool:
        """Advance to the next ray of an accepted species and reconstitute it."""
        while True:
            result = self._traversal.advance()
            if result is AdvanceResult.EXHAUSTED:
                self._end_of_stream()
                return False
            if result is AdvanceResult.NEW_ENTRY:
                self._read_entry()

            entry = self._entry
            if entry.pdg not in self._flux_particles:
                if self._rejected.add(entry.pdg):
                    logger.debug(f"Rejecting species {entry.pdg} at entry {self._index}")
                continue

            if entry.E > self._max_energy:
                raise ConfigurationError(
                    f"Flux entry {self._index} has E={entry.E:g} GeV above the declared "
                    f"max energy {self._max_energy:g} GeV"
                )

            self._reconstitute(entry)
            return True

    def _read_entry(self) -> None:
        state = self._traversal.state
        self._entry = self._store.entry(state.index)
        self._index = state.index
        self._ifile = state.file_index
        self._parent = None
        self._aux = None
        self._parent_loaded = False
        self._aux_loaded = False

    def _reconstitute(self, entry: FluxEntry) -> None:
        self._p4, self._x4 = reconstitute(entry)
        self._dist = entry.dist
        self._weight = entry.wgt
        if self.config.upstream_z is not None:
            self._x4, self._dist = move_to_z0(self._x4, self._p4, self._dist, self.config.upstream_z)

    def _end_of_stream(self) -> None:
        self._reset_current()
        logger.info(
            f"End of flux stream: {self._stats.n_neutrinos} neutrinos, "
            f"sum of weights {self._stats.sum_weight:g}, POT {self._stats.accum_pots:g}"
        )
        if len(self._rejected) > 0:
            logger.warning(f"Species seen in the files but rejected by the filter: {self._rejected}")

    def _reset_current(self) -> None:
        self._entry = None
        self._index = -1
        self._ifile = -1
        self._meta_key = None
        self._meta = None
        self._parent = None
        self._aux = None
        self._parent_loaded = False
        self._aux_loaded = False
        self._p4 = FourVector()
        self._x4 = FourVector()
        self._dist = 0.0
        self._weight = 0.0

    def clear(self) -> None:
        """Restart the stream: traversal, statistics and sampler; files stay loaded."""
        self._rng = np.random.default_rng(self._seed)
        self._stats.reset()
        self._rejected.clear()
        self._consecutive_misses = 0
        self._reset_current()
        if self._traversal is not None:
            self._traversal.reset()
        if self._aggregate is not None:
            self._max_weight = self._aggregate.max_weight

    def __iter__(self) -> Iterator[FluxRay]:
        while self.generate_next():
            yield self.current_ray()

    # ------------------------------------------------------------------
    # Per-ray queries
    # ------------------------------------------------------------------

    @property
    def pdg_code(self) -> int:
        return self._entry.pdg if self._entry is not None else 0

    @property
    def weight(self) -> float:
        return self._weight

    @property
    def momentum(self) -> FourVector:
        return self._p4

    @property
    def position(self) -> FourVector:
        return self._x4

    @property
    def index(self) -> int:
        return self._index

    @property
    def end(self) -> bool:
        return self._traversal is not None and self._traversal.end

    @property
    def current_entry(self) -> FluxEntry | None:
        return self._entry

    @property
    def current_meta(self) -> FluxMetadata | None:
        """Metadata block of the current ray, looked up when its file or key changes."""
        if self._entry is None:
            return None
        key = (self._ifile, self._entry.metakey)
        if key != self._meta_key:
            self._meta = self._store.find_meta(self._ifile, self._entry.metakey)
            self._meta_key = key
            if self._meta is None:
                logger.debug(f"No metadata block with metakey {self._entry.metakey} in file {self._ifile}")
        return self._meta

    @property
    def current_parent(self) -> ParentDecayInfo | None:
        """Parent decay block, None when not requested or absent from the file."""
        if self._entry is None:
            return None
        if not self._parent_loaded:
            self._parent = self._store.parent(self._index)
            self._parent_loaded = True
        return self._parent

    @property
    def current_aux(self) -> AuxInfo | None:
        """Auxiliary block, None when not requested or absent from the file."""
        if self._entry is None:
            return None
        if not self._aux_loaded:
            self._aux = self._store.aux(self._index)
            self._aux_loaded = True
        return self._aux

    def current_ray(self) -> FluxRay:
        """Snapshot of the current ray."""
        return FluxRay(
            index=self._index,
            pdg=self.pdg_code,
            weight=self._weight,
            momentum=self._p4,
            position=self._x4,
            metakey=self._entry.metakey if self._entry is not None else 0,
        )

    def decay_dist(self) -> float:
        """Distance [m] from the parent decay point to the current position."""
        return self._dist

    def move_to_z0(self, z0: float) -> None:
        """Slide the current ray along its momentum to z = z0 [m]."""
        self._x4, self._dist = move_to_z0(self._x4, self._p4, self._dist, z0)

    # ------------------------------------------------------------------
    # Aggregate queries
    # ------------------------------------------------------------------

    @property
    def flux_particles(self) -> PDGCodeList:
        return self._flux_particles

    @property
    def rejected_particles(self) -> PDGCodeList:
        return self._rejected

    @property
    def max_energy(self) -> float | None:
        return self._max_energy

    @property
    def max_weight(self) -> float:
        """Running max weight of the rejection sampler."""
        return self._max_weight

    @property
    def n_flux_neutrinos(self) -> int:
        return self._stats.n_neutrinos

    @property
    def sum_weight(self) -> float:
        return self._stats.sum_weight

    @property
    def effective_pots_per_entry(self) -> float:
        return self._eff_pots_per_entry

    @property
    def seed(self) -> int:
        return self._seed

    def used_pots(self) -> float:
        """POT consumed by the rays served so far."""
        return self._stats.accum_pots

    @property
    def file_list(self) -> list[str]:
        return self._store.file_list if self._store is not None else []

    @property
    def metadata(self) -> MetadataAggregate | None:
        """Aggregate metadata of the loaded files."""
        return self._aggregate

    @property
    def record_store(self) -> Hdf5FluxChain | None:
        return self._store

    def flux_window(self) -> tuple[np.ndarray, np.ndarray, np.ndarray] | None:
        """The three points defining the flux window, None if no file describes one."""
        if self._aggregate is None or self._aggregate.window is None:
            return None
        return self._aggregate.window.points()

    def format_current(self) -> str:
        """Human-readable dump of the current ray."""
        if self._entry is None:
            return "No current flux entry"
        lines = [
            f"Flux entry {self._index} (file {self._ifile}), served weight {self._weight:g}",
            self._entry.describe(),
            f"  p4 {self._p4.as_array().tolist()}",
            f"  x4 {self._x4.as_array().tolist()}",
        ]
        if self.current_parent is not None:
            lines.append(self.current_parent.describe())
        if self.current_aux is not None:
            lines.append(self.current_aux.describe())
            lines.append(f"  {self.current_aux.named(self.current_meta)}")
        return "\n".join(lines)

    def format_config(self) -> str:
        """Human-readable dump of the driver configuration and load state."""
        mode = "weighted" if self.config.gen_weighted else "unweighted"
        cycles = self.config.num_cycles if self.config.num_cycles > 0 else "unbounded"
        lines = [
            "SimpleNtpFluxDriver configuration:",
            f"  location '{self._det_loc}', branches '{self.config.branch_request}'",
            f"  species {self._flux_particles}, max energy {self._max_energy} GeV",
            f"  {mode} generation, cycles {cycles}, entry reuse {self.config.entry_reuse}",
            f"  upstream z {self.config.upstream_z}, seed {self._seed}",
        ]
        if self._store is not None:
            lines.append(
                f"  {self._store.n_entries} entries in {self._store.n_files} file(s), "
                f"max weight {self._max_weight:g}, POT per entry {self._eff_pots_per_entry:g}"
            )
            lines.extend(f"    {path}" for path in self._store.file_list)
        else:
            lines.append("  no flux files loaded")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release the file chain; the driver must be reloaded before use."""
        if self._store is not None:
            self._store.close()
        self._store = None
        self._aggregate = None
        self._traversal = None
        self._reset_current()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
