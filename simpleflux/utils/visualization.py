"""Simple visualization utilities for served flux rays."""

import numpy as np
import matplotlib.pyplot as plt

from simpleflux.core.pdg import neutrino_name


def plot_energy_spectrum(
    rays,
    bins: int = 50,
    title: str = 'Flux Energy Spectrum',
    save_path: str = None,
):
    """Plot the weighted energy spectrum of served rays, one curve per species.

    Args:
        rays: Sequence of FluxRay snapshots
        bins: Number of energy bins
        title: Plot title
        save_path: If provided, save to file
    """
    pdg = np.array([r.pdg for r in rays], dtype=int)
    energy = np.array([r.momentum.t for r in rays], dtype=float)
    weight = np.array([r.weight for r in rays], dtype=float)

    fig, ax = plt.subplots(figsize=(10, 6))

    if len(energy) > 0:
        edges = np.linspace(0.0, energy.max() * 1.05, bins + 1)
        for code in np.unique(pdg):
            mask = pdg == code
            ax.hist(
                energy[mask],
                bins=edges,
                weights=weight[mask],
                histtype='step',
                linewidth=2,
                label=neutrino_name(code),
            )
        ax.legend()

    ax.set_xlabel('E [GeV]')
    ax.set_ylabel('Weighted rays')
    ax.set_title(title)
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        print(f"Saved: {save_path}")
    else:
        plt.show()

    plt.close()


def plot_window_footprint(
    rays,
    window=None,
    title: str = 'Flux Window Footprint',
    save_path: str = None,
):
    """Scatter the x/y positions of served rays.

    Args:
        rays: Sequence of FluxRay snapshots
        window: Optional (p1, p2, p3) points of the flux window to outline
        title: Plot title
        save_path: If provided, save to file
    """
    x = np.array([r.position.x for r in rays], dtype=float)
    y = np.array([r.position.y for r in rays], dtype=float)

    fig, ax = plt.subplots(figsize=(8, 8))

    ax.scatter(x, y, s=2, alpha=0.5)

    if window is not None:
        p1, p2, p3 = (np.asarray(p, dtype=float) for p in window)
        p4 = p2 + p3 - p1
        corners = np.array([p1, p2, p4, p3, p1])
        ax.plot(corners[:, 0], corners[:, 1], 'r-', linewidth=1.5, label='flux window')
        ax.legend()

    ax.set_xlabel('x [m]')
    ax.set_ylabel('y [m]')
    ax.set_title(title)
    ax.set_aspect('equal', adjustable='datalim')

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        print(f"Saved: {save_path}")
    else:
        plt.show()

    plt.close()
