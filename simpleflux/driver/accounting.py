"""Stream accounting: served neutrinos, summed weight and POT.

POT normalization:
    eff_pots_per_entry = POT(files) / n_entries            (all files carry metadata)
                       = POT(complete) / n_entries_with_meta  (partial metadata)
    divided by num_cycles when num_cycles > 0.

Each served ray adds eff_pots_per_entry to the accumulated POT, so
accumulated POT == eff_pots_per_entry * n_neutrinos. With unbounded cycling
the per-entry value covers a single pass.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from simpleflux.core.metadata import MetadataAggregate

logger = logging.getLogger(__name__)


@dataclass
class StreamStatistics:
    """Running totals of one driver's served stream.

    Attributes:
        n_neutrinos: Rays served
        sum_weight: Sum of the weights reported for served rays
        accum_pots: POT consumed by the served rays
    """

    n_neutrinos: int = 0
    sum_weight: float = 0.0
    accum_pots: float = 0.0

    def record(self, weight: float, pots: float) -> None:
        self.n_neutrinos += 1
        self.sum_weight += weight
        self.accum_pots += pots

    def reset(self) -> None:
        self.n_neutrinos = 0
        self.sum_weight = 0.0
        self.accum_pots = 0.0


def effective_pots_per_entry(
    aggregate: MetadataAggregate,
    n_entries: int,
    num_cycles: int,
) -> float:
    """POT one served entry stands for.

    Returns 0 when no file carries usable metadata (POT unknown).
    """
    if aggregate.all_files_meta:
        pots = aggregate.protons / n_entries
    elif aggregate.n_entries_with_meta > 0:
        # Numerator and denominator cover the same files
        pots = aggregate.protons_with_meta / aggregate.n_entries_with_meta
        logger.warning(
            f"Incomplete metadata: POT per entry extrapolated from "
            f"{aggregate.n_entries_with_meta} of {n_entries} entries"
        )
    else:
        logger.warning("No usable metadata: POT per entry unknown, accounting will report 0")
        return 0.0

    if num_cycles > 0:
        pots /= num_cycles
    return pots
