"""Export functions for served flux rays.

This module provides functions for exporting a served stream:
- CSV files with one row per served ray
- Run summary (counts, weights, POT) as CSV
"""

import csv
from pathlib import Path
from typing import Iterable

from simpleflux.core.pdg import neutrino_name

RAY_HEADER = [
    "index",
    "pdg",
    "species",
    "weight",
    "px_GeV",
    "py_GeV",
    "pz_GeV",
    "E_GeV",
    "x_m",
    "y_m",
    "z_m",
    "dist_m",
    "metakey",
]


def export_rays_csv(rays: Iterable, filename="flux_rays.csv"):
    """Export served rays to CSV.

    Args:
        rays: Iterable of FluxRay snapshots
        filename: Output CSV filename

    Returns:
        Number of rows written
    """
    path = Path(filename)
    path.parent.mkdir(parents=True, exist_ok=True)

    n_rows = 0
    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(RAY_HEADER)

        for ray in rays:
            p4 = ray.momentum
            x4 = ray.position
            writer.writerow([
                ray.index,
                ray.pdg,
                neutrino_name(ray.pdg),
                f"{ray.weight:.8e}",
                f"{p4.x:.8e}",
                f"{p4.y:.8e}",
                f"{p4.z:.8e}",
                f"{p4.t:.8e}",
                f"{x4.x:.8e}",
                f"{x4.y:.8e}",
                f"{x4.z:.8e}",
                f"{x4.t:.8e}",
                ray.metakey,
            ])
            n_rows += 1

    return n_rows


def export_summary_csv(driver, filename="flux_summary.csv"):
    """Export the run summary of a driver.

    Args:
        driver: SimpleNtpFluxDriver after (or during) a run
        filename: Output CSV filename

    Returns:
        Path to output file
    """
    path = Path(filename)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["quantity", "value"])
        writer.writerow(["n_files", len(driver.file_list)])
        writer.writerow(["n_neutrinos", driver.n_flux_neutrinos])
        writer.writerow(["sum_weight", f"{driver.sum_weight:.8e}"])
        writer.writerow(["used_pots", f"{driver.used_pots():.8e}"])
        writer.writerow(["pots_per_entry", f"{driver.effective_pots_per_entry:.8e}"])
        writer.writerow(["max_weight", f"{driver.max_weight:.8e}"])
        writer.writerow(["species", " ".join(str(p) for p in driver.flux_particles)])
        writer.writerow(["rejected_species", " ".join(str(p) for p in driver.rejected_particles)])

    return path
