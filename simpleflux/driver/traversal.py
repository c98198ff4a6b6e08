"""Traversal state machine over the chained records.

Phases:
    READY      after load or reset, nothing served yet
    SERVING    iterating
    EXHAUSTED  every requested cycle consumed (terminal until reset)

Each advance either reuses the current entry (while the reuse count is
below entry_reuse) or moves to the next global index, wrapping to 0 and
starting a new cycle at the end of the chain. With num_cycles > 0 the
wrap that would begin cycle num_cycles ends the traversal instead, so
exactly num_cycles * n_entries * entry_reuse advances succeed.
num_cycles == 0 cycles without limit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np

logger = logging.getLogger(__name__)


class TraversalPhase(Enum):
    READY = "ready"
    SERVING = "serving"
    EXHAUSTED = "exhausted"


class AdvanceResult(Enum):
    """Outcome of one advance.

    NEW_ENTRY: index moved, the caller must read the entry at the new index
    REUSED: same entry served again
    EXHAUSTED: no more entries; the end flag is now set
    """
    NEW_ENTRY = "new_entry"
    REUSED = "reused"
    EXHAUSTED = "exhausted"


@dataclass
class TraversalState:
    """Mutable cursor of a traversal.

    Attributes:
        index: Current global entry index (-1 before the first advance)
        file_index: File of the chain holding index (-1 before the first advance)
        cycle: Current cycle, counted from 0
        use: How many times the current entry has been served (1..entry_reuse)
        advances: Successful advances so far
        phase: Current phase
    """

    index: int = -1
    file_index: int = -1
    cycle: int = 0
    use: int = 0
    advances: int = 0
    phase: TraversalPhase = TraversalPhase.READY

    @property
    def end(self) -> bool:
        return self.phase == TraversalPhase.EXHAUSTED


class Traversal:
    """Deterministic cursor over n_entries records, with cycles and entry reuse.

    Args:
        n_entries: Records in the chain (> 0)
        num_cycles: Passes to make; 0 cycles without limit
        entry_reuse: Times each entry is served before advancing (>= 1)
        boundaries: Cumulative per-file entry counts starting at 0 and ending
            at n_entries; None treats the records as a single file
    """

    def __init__(
        self,
        n_entries: int,
        num_cycles: int = 1,
        entry_reuse: int = 1,
        boundaries: Sequence[int] | None = None,
    ):
        if n_entries <= 0:
            raise ValueError(f"n_entries must be > 0, got {n_entries}")
        if boundaries is None:
            boundaries = [0, n_entries]
        self.boundaries = np.asarray(boundaries, dtype=np.int64)
        if self.boundaries[0] != 0 or self.boundaries[-1] != n_entries:
            raise ValueError(f"boundaries must run from 0 to {n_entries}, got {list(boundaries)}")
        self.n_entries = n_entries
        self.configure(num_cycles, entry_reuse)
        self.state = TraversalState()

    def configure(self, num_cycles: int, entry_reuse: int) -> None:
        """Change the cycle and reuse limits; the cursor is kept."""
        if num_cycles < 0:
            raise ValueError(f"num_cycles must be >= 0, got {num_cycles}")
        if entry_reuse < 1:
            raise ValueError(f"entry_reuse must be >= 1, got {entry_reuse}")
        self.num_cycles = num_cycles
        self.entry_reuse = entry_reuse

    @property
    def end(self) -> bool:
        return self.state.end

    def reset(self) -> None:
        """Back to READY at the start of the chain."""
        self.state = TraversalState()

    def advance(self) -> AdvanceResult:
        """Move the cursor one step."""
        state = self.state
        if state.end:
            return AdvanceResult.EXHAUSTED

        if state.index >= 0 and state.use < self.entry_reuse:
            state.use += 1
            state.advances += 1
            state.phase = TraversalPhase.SERVING
            return AdvanceResult.REUSED

        next_index = state.index + 1
        if next_index >= self.n_entries:
            next_cycle = state.cycle + 1
            if self.num_cycles > 0 and next_cycle >= self.num_cycles:
                state.phase = TraversalPhase.EXHAUSTED
                logger.info(
                    f"Finished with flux chain after {next_cycle} cycle(s), "
                    f"{state.advances} advances"
                )
                return AdvanceResult.EXHAUSTED
            state.cycle = next_cycle
            next_index = 0
            logger.info(
                f"Starting cycle {state.cycle + 1}"
                + (f" of {self.num_cycles}" if self.num_cycles > 0 else " (unbounded)")
            )

        file_index = int(np.searchsorted(self.boundaries, next_index, side="right")) - 1
        if file_index != state.file_index:
            logger.debug(f"Moving to flux file {file_index} at entry {next_index}")
        state.index = next_index
        state.file_index = file_index
        state.use = 1
        state.advances += 1
        state.phase = TraversalPhase.SERVING
        return AdvanceResult.NEW_ENTRY
