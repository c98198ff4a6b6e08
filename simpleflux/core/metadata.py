"""Cross-file metadata aggregation.

Folds the metadata blocks of every file in a record store into a single
MetadataAggregate. Partial or inconsistent metadata never aborts the fold:
each problem sets a MetadataInconsistency flag, is logged, and the
aggregate falls back to values measured on the records themselves, so the
aggregate bounds always cover every record.

Aggregation rules:
    species      union of metadata pdglists (plus any species seen in records)
    max_energy   max over files
    min/max wgt  min/max over files
    protons      sum over files (files without metadata contribute none)
    window       first file with metadata; others compared within tolerance

Import Policy:
    from simpleflux.core.metadata import aggregate_metadata, MetadataAggregate, MetadataInconsistency

DO NOT use: from simpleflux.core.metadata import *
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Flag, auto
from typing import TYPE_CHECKING

from simpleflux.config.defaults import DEFAULT_WINDOW_TOLERANCE
from simpleflux.core.geometry import FluxWindow
from simpleflux.core.pdg import PDGCodeList

if TYPE_CHECKING:
    from simpleflux.store.record_store import RecordStore

logger = logging.getLogger(__name__)


class MetadataInconsistency(Flag):
    """Non-fatal problems found while aggregating metadata.

    Flags:
        MISSING_META: A file has no metadata block at all
        INCOMPLETE_FIELDS: A block lacks species, weight bounds or window
        WINDOW_MISMATCH: Files disagree on the flux window
        FLAVOR_MISMATCH: Records carry species their metadata does not list
        BOUNDS_EXCEEDED: Records exceed the metadata max energy or max weight
        DUPLICATE_METAKEY: The same metakey appears in more than one file
        WEIGHT_EXCEEDS_MAX: A served weight exceeded the running max weight
    """
    NONE = 0
    MISSING_META = auto()
    INCOMPLETE_FIELDS = auto()
    WINDOW_MISMATCH = auto()
    FLAVOR_MISMATCH = auto()
    BOUNDS_EXCEEDED = auto()
    DUPLICATE_METAKEY = auto()
    WEIGHT_EXCEEDS_MAX = auto()


@dataclass
class MetadataAggregate:
    """Element-wise combination of all per-file metadata.

    Attributes:
        pdglist: Union of species
        max_energy: Largest energy [GeV]
        min_weight, max_weight: Weight bounds
        protons: POT represented by the files carrying metadata
        protons_with_meta: POT of the files with complete metadata
        file_protons: POT per file (0 for files without metadata)
        window: Flux window, None if no file describes one
        all_files_meta: Every file has complete metadata
        already_unweighted: Every record of every file has weight exactly 1
        n_entries_with_meta: Entries in files with complete metadata
        issues: Inconsistencies found (MetadataInconsistency.NONE if clean)
    """

    pdglist: PDGCodeList = field(default_factory=PDGCodeList)
    max_energy: float = 0.0
    min_weight: float = float("inf")
    max_weight: float = 0.0
    protons: float = 0.0
    protons_with_meta: float = 0.0
    file_protons: list[float] = field(default_factory=list)
    window: FluxWindow | None = None
    all_files_meta: bool = True
    already_unweighted: bool = True
    n_entries_with_meta: int = 0
    issues: MetadataInconsistency = MetadataInconsistency.NONE

    def flag(self, issue: MetadataInconsistency, message: str) -> None:
        """Record an inconsistency and log it."""
        self.issues |= issue
        logger.warning(f"Metadata inconsistency [{issue.name}]: {message}")

    def describe(self) -> str:
        lines = [
            "Aggregate flux metadata:",
            f"  species {self.pdglist}",
            f"  max energy {self.max_energy:g} GeV",
            f"  weights [{self.min_weight:g}, {self.max_weight:g}]"
            + ("  (already unweighted)" if self.already_unweighted else ""),
            f"  POT {self.protons:g} over {len(self.file_protons)} file(s)",
            f"  all files carry metadata: {self.all_files_meta}",
        ]
        if self.window is not None:
            p1, p2, p3 = self.window.points()
            lines.append(f"  flux window p1 {p1.tolist()} p2 {p2.tolist()} p3 {p3.tolist()}")
        if self.issues != MetadataInconsistency.NONE:
            lines.append(f"  issues: {self.issues}")
        return "\n".join(lines)


def aggregate_metadata(
    store: RecordStore,
    window_tolerance: float = DEFAULT_WINDOW_TOLERANCE,
) -> MetadataAggregate:
    """Fold the metadata of every file of a store.

    Args:
        store: Loaded record store
        window_tolerance: Absolute tolerance [m] for flux window comparison

    Returns:
        MetadataAggregate with issue flags set; never raises for bad metadata
    """
    agg = MetadataAggregate()
    key_owner: dict[int, int] = {}

    for ifile, path in enumerate(store.file_list):
        rec_min_wgt, rec_max_wgt = store.weight_range(ifile)
        rec_max_energy = store.max_entry_energy(ifile)
        rec_species = store.pdg_codes(ifile)
        if store.entry_count(ifile) > 0 and not (rec_min_wgt == 1.0 and rec_max_wgt == 1.0):
            agg.already_unweighted = False

        blocks = store.metadata(ifile)
        if not blocks:
            agg.all_files_meta = False
            agg.file_protons.append(0.0)
            agg.flag(
                MetadataInconsistency.MISSING_META,
                f"{path} has no metadata; using record values, its POT is unknown",
            )
            _fold_record_values(agg, rec_species, rec_max_energy, rec_min_wgt, rec_max_wgt)
            continue

        complete = True
        file_pot = 0.0
        meta_species = PDGCodeList()
        meta_max_energy = 0.0
        meta_max_wgt = 0.0
        for meta in blocks:
            file_pot += meta.protons

            if meta.metakey in key_owner and key_owner[meta.metakey] != ifile:
                agg.flag(
                    MetadataInconsistency.DUPLICATE_METAKEY,
                    f"metakey {meta.metakey} of {path} also used by "
                    f"{store.file_list[key_owner[meta.metakey]]}",
                )
            key_owner.setdefault(meta.metakey, ifile)

            if not meta.has_species() or not meta.has_weights():
                complete = False
                agg.flag(
                    MetadataInconsistency.INCOMPLETE_FIELDS,
                    f"{path} metakey {meta.metakey} lacks species or weight bounds",
                )
            else:
                meta_species.extend(meta.pdglist)
                meta_max_energy = max(meta_max_energy, meta.max_energy)
                meta_max_wgt = max(meta_max_wgt, meta.max_wgt)
                agg.min_weight = min(agg.min_weight, meta.min_wgt)

            _fold_window(agg, FluxWindow.from_metadata(meta), path, window_tolerance)

        agg.file_protons.append(file_pot)
        agg.protons += file_pot
        agg.pdglist.extend(meta_species)
        agg.max_energy = max(agg.max_energy, meta_max_energy)
        agg.max_weight = max(agg.max_weight, meta_max_wgt)

        if complete:
            agg.protons_with_meta += file_pot
            agg.n_entries_with_meta += store.entry_count(ifile)
            _check_record_bounds(
                agg, path, meta_species, meta_max_energy, meta_max_wgt,
                rec_species, rec_max_energy, rec_max_wgt,
            )
        else:
            agg.all_files_meta = False
        _fold_record_values(agg, rec_species, rec_max_energy, rec_min_wgt, rec_max_wgt)

    if agg.min_weight == float("inf"):
        agg.min_weight = 0.0

    logger.info(
        f"Scanned metadata of {store.n_files} file(s): {len(agg.pdglist)} species, "
        f"max energy {agg.max_energy:g} GeV, max weight {agg.max_weight:g}, "
        f"POT {agg.protons:g}"
    )
    return agg


def _fold_record_values(agg, species, max_energy, min_wgt, max_wgt) -> None:
    agg.pdglist.extend(species)
    agg.max_energy = max(agg.max_energy, max_energy)
    agg.min_weight = min(agg.min_weight, min_wgt)
    agg.max_weight = max(agg.max_weight, max_wgt)


def _fold_window(agg, window: FluxWindow, path: str, tolerance: float) -> None:
    if window.is_degenerate():
        agg.flag(MetadataInconsistency.INCOMPLETE_FIELDS, f"{path} has a degenerate flux window")
        return
    if agg.window is None:
        agg.window = window
    elif not agg.window.is_close(window, tolerance):
        agg.flag(
            MetadataInconsistency.WINDOW_MISMATCH,
            f"{path} flux window {window} differs from {agg.window}",
        )


def _check_record_bounds(
    agg, path, meta_species, meta_max_energy, meta_max_wgt,
    rec_species, rec_max_energy, rec_max_wgt,
) -> None:
    unlisted = [p for p in rec_species if p not in meta_species]
    if unlisted:
        agg.flag(
            MetadataInconsistency.FLAVOR_MISMATCH,
            f"{path} records carry species {unlisted} missing from its metadata",
        )
    if rec_max_energy > meta_max_energy or rec_max_wgt > meta_max_wgt:
        agg.flag(
            MetadataInconsistency.BOUNDS_EXCEEDED,
            f"{path} records reach E={rec_max_energy:g}, wgt={rec_max_wgt:g} beyond "
            f"metadata E={meta_max_energy:g}, wgt={meta_max_wgt:g}",
        )
