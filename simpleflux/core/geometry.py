"""Flux-window geometry and ray kinematics.

Reconstitutes the lab-frame 4-momentum and 4-position of a served ray from
its stored fields, and projects rays along their direction of flight.

The time slot of the 4-position carries the distance from the decay point
(c = 1 units), so a projection keeps position and distance consistent.

Import Policy:
    from simpleflux.core.geometry import FourVector, FluxWindow, reconstitute, move_to_z0

DO NOT use: from simpleflux.core.geometry import *
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from simpleflux.config.defaults import PZ_PARALLEL_EPSILON
from simpleflux.core.records import FluxEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FourVector:
    """Lorentz-style (x, y, z, t) quadruple.

    Used both as momentum (px, py, pz, E) and as position (x, y, z, dist).
    """

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    t: float = 0.0

    @property
    def vect(self) -> np.ndarray:
        """Spatial part as a length-3 array."""
        return np.array([self.x, self.y, self.z])

    @property
    def mag3(self) -> float:
        return float(np.linalg.norm(self.vect))

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z, self.t])


@dataclass(frozen=True)
class FluxWindow:
    """Plane patch the rays are defined on: base point plus two spanning vectors [m]."""

    base: tuple[float, float, float] = (0.0, 0.0, 0.0)
    dir1: tuple[float, float, float] = (0.0, 0.0, 0.0)
    dir2: tuple[float, float, float] = (0.0, 0.0, 0.0)

    @classmethod
    def from_metadata(cls, meta) -> FluxWindow:
        return cls(
            base=tuple(meta.window_base),
            dir1=tuple(meta.window_dir1),
            dir2=tuple(meta.window_dir2),
        )

    def points(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """The three corners defining the window: base, base+dir1, base+dir2."""
        p1 = np.asarray(self.base, dtype=float)
        return p1, p1 + np.asarray(self.dir1, dtype=float), p1 + np.asarray(self.dir2, dtype=float)

    def normal(self) -> np.ndarray:
        """Unit normal dir1 x dir2 (zero vector for a degenerate window)."""
        n = np.cross(np.asarray(self.dir1, dtype=float), np.asarray(self.dir2, dtype=float))
        norm = np.linalg.norm(n)
        return n / norm if norm > 0 else n

    def area(self) -> float:
        return float(np.linalg.norm(np.cross(self.dir1, self.dir2)))

    def is_degenerate(self) -> bool:
        return self.area() == 0.0

    def is_close(self, other: FluxWindow, tolerance: float) -> bool:
        return all(
            np.allclose(a, b, rtol=0.0, atol=tolerance)
            for a, b in ((self.base, other.base), (self.dir1, other.dir1), (self.dir2, other.dir2))
        )


def reconstitute(entry: FluxEntry) -> tuple[FourVector, FourVector]:
    """Build (p4, x4) of a ray.

    Returns:
        p4 = (px, py, pz, E) [GeV] and x4 = (vtxx, vtxy, vtxz, dist) [m]
    """
    p4 = FourVector(entry.px, entry.py, entry.pz, entry.E)
    x4 = FourVector(entry.vtxx, entry.vtxy, entry.vtxz, entry.dist)
    return p4, x4


def move_to_z0(
    x4: FourVector,
    p4: FourVector,
    dist: float,
    z0: float,
) -> tuple[FourVector, float]:
    """Slide a ray along its momentum until its z equals z0.

    The distance from the decay point changes by the signed path length,
    so a ray pushed upstream ends up closer to its parent decay.

    Returns:
        (new x4, new dist); the inputs unchanged when the ray is parallel
        to the z plane.
    """
    if abs(p4.z) < PZ_PARALLEL_EPSILON:
        logger.warning(f"Ray has pz={p4.z:g}; cannot move it to z0={z0:g}")
        return x4, dist

    scale = (z0 - x4.z) / p4.z
    step = scale * p4.mag3
    new_dist = dist + step
    moved = FourVector(x4.x + scale * p4.x, x4.y + scale * p4.y, z0, new_dist)
    return moved, new_dist
