"""PDG particle codes used by the flux driver.

This module is the Single Source of Truth for neutrino species codes.

Import Policy:
    from simpleflux.core.pdg import PDGCodeList, NU_MU, neutrino_name

DO NOT use: from simpleflux.core.pdg import *
"""

from __future__ import annotations

from typing import Iterable, Iterator

# =============================================================================
# Neutrino species
# =============================================================================

NU_E = 12
NU_E_BAR = -12
NU_MU = 14
NU_MU_BAR = -14
NU_TAU = 16
NU_TAU_BAR = -16

NEUTRINO_NAMES = {
    NU_E: "nu_e",
    NU_E_BAR: "nu_e_bar",
    NU_MU: "nu_mu",
    NU_MU_BAR: "nu_mu_bar",
    NU_TAU: "nu_tau",
    NU_TAU_BAR: "nu_tau_bar",
}


def is_neutrino(pdg: int) -> bool:
    """True for the six (anti)neutrino codes."""
    return int(pdg) in NEUTRINO_NAMES


def neutrino_name(pdg: int) -> str:
    """Readable name of a code, falling back to the number itself."""
    return NEUTRINO_NAMES.get(int(pdg), str(int(pdg)))


class PDGCodeList:
    """Ordered list of unique PDG codes.

    Used both as the accepted-species filter and as the diagnostic list of
    species seen but rejected. Adding a code already present is a no-op, so
    the list only ever grows.
    """

    def __init__(self, codes: Iterable[int] = ()):
        self._codes: list[int] = []
        for code in codes:
            self.add(code)

    def add(self, code: int) -> bool:
        """Append a code; return False if it was already present."""
        code = int(code)
        if code in self._codes:
            return False
        self._codes.append(code)
        return True

    def extend(self, codes: Iterable[int]) -> None:
        for code in codes:
            self.add(code)

    def clear(self) -> None:
        self._codes.clear()

    def __contains__(self, code) -> bool:
        return int(code) in self._codes

    def __iter__(self) -> Iterator[int]:
        return iter(self._codes)

    def __len__(self) -> int:
        return len(self._codes)

    def __eq__(self, other) -> bool:
        if isinstance(other, PDGCodeList):
            return set(self._codes) == set(other._codes)
        return NotImplemented

    def as_set(self) -> set[int]:
        return set(self._codes)

    def __repr__(self) -> str:
        return f"PDGCodeList({self._codes})"

    def __str__(self) -> str:
        return "[" + ", ".join(f"{c} ({neutrino_name(c)})" for c in self._codes) + "]"
