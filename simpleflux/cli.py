"""Command-line interface for inspecting and streaming flux files.

Usage:
    python -m simpleflux.cli info "flux_*.h5"
    python -m simpleflux.cli generate "flux_*.h5" -n 1000 --species 14 -14
    python -m simpleflux.cli generate "flux_*.h5" --summary totals.csv --plot-window window.png
    python -m simpleflux.cli make-example example_flux.h5 --entries 1000
"""

from __future__ import annotations

import argparse
import logging
import sys
from itertools import islice

import numpy as np

from simpleflux.config.defaults import DEFAULT_LOG_FORMAT, DEFAULT_LOG_LEVEL
from simpleflux.config.flux_config import create_default_config
from simpleflux.config.validation import ConfigurationError, validate_config
from simpleflux.config.yaml_loader import get_default
from simpleflux.core.pdg import NU_E, NU_MU, NU_MU_BAR
from simpleflux.core.records import FluxMetadata, empty_parents
from simpleflux.driver.flux_driver import SimpleNtpFluxDriver
from simpleflux.store.record_store import LoadError
from simpleflux.store.writer import make_example_entries, write_flux_file

logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    """Configure root logging from defaults.yaml (level may be overridden)."""
    logging.basicConfig(
        level=getattr(logging, (level or get_default("logging.level", DEFAULT_LOG_LEVEL)).upper()),
        format=get_default("logging.format", DEFAULT_LOG_FORMAT),
    )


def _build_driver(args: argparse.Namespace) -> SimpleNtpFluxDriver:
    config = create_default_config()
    if args.branches is not None:
        config.branch_request = args.branches
    if getattr(args, "seed", None) is not None:
        config.seed = args.seed
    validate_config(config, raise_on_error=True)
    return SimpleNtpFluxDriver(config)


def cmd_info(args: argparse.Namespace) -> None:
    """Load files and print configuration, aggregate metadata and per-file blocks."""
    with _build_driver(args) as driver:
        driver.load_beam_sim_data(args.files, args.location)

        print("\n" + "=" * 60)
        print("FLUX FILE INFORMATION")
        print("=" * 60)
        print("\n" + driver.format_config())
        print("\n" + driver.metadata.describe())

        store = driver.record_store
        print("\n[Files]")
        for ifile, path in enumerate(store.file_list):
            print(f"  {path}: {store.entry_count(ifile)} entries")
            for meta in store.metadata(ifile):
                print("    " + meta.describe().replace("\n", "\n    "))
        print("\n" + "=" * 60)


def cmd_generate(args: argparse.Namespace) -> None:
    """Stream rays and report counts, weights and POT."""
    with _build_driver(args) as driver:
        if args.species:
            driver.set_flux_particles(args.species)
        if args.emax is not None:
            driver.set_max_energy(args.emax)
        driver.set_gen_weighted(args.weighted)
        driver.set_num_of_cycles(args.cycles)
        driver.set_entry_reuse(args.reuse)
        driver.set_upstream_z(args.z0)

        driver.load_beam_sim_data(args.files, args.location)

        rays = list(islice(driver, args.n)) if args.n > 0 else list(driver)

        print(f"Served {driver.n_flux_neutrinos} rays"
              f" (sum of weights {driver.sum_weight:.6g}, POT {driver.used_pots():.6g})")
        if len(driver.rejected_particles) > 0:
            print(f"Rejected species: {driver.rejected_particles}")

        if args.csv:
            from simpleflux.utils.exporters import export_rays_csv
            n_rows = export_rays_csv(rays, args.csv)
            logger.info(f"Wrote {n_rows} rays to {args.csv}")

        if args.summary:
            from simpleflux.utils.exporters import export_summary_csv
            export_summary_csv(driver, args.summary)
            logger.info(f"Wrote run summary to {args.summary}")

        if args.plot:
            from simpleflux.utils.visualization import plot_energy_spectrum
            plot_energy_spectrum(rays, save_path=args.plot)

        if args.plot_window:
            from simpleflux.utils.visualization import plot_window_footprint
            plot_window_footprint(rays, window=driver.flux_window(), save_path=args.plot_window)


def cmd_make_example(args: argparse.Namespace) -> None:
    """Write a synthetic flux file."""
    rng = np.random.default_rng(args.seed)
    entries = make_example_entries(
        args.entries, rng, species=args.species, max_weight=args.max_weight,
    )
    meta = FluxMetadata.from_entries(
        entries,
        protons=args.pots,
        window_base=(-1.0, -1.0, 0.0),
        window_dir1=(2.0, 0.0, 0.0),
        window_dir2=(0.0, 2.0, 0.0),
        seed=args.seed if args.seed is not None else 0,
        infiles=["synthetic"],
    )
    parents = empty_parents(args.entries)
    parents["vz"] = -entries["dist"]
    parents["entryno"] = np.arange(args.entries)
    write_flux_file(args.output, entries, meta, parents=parents)
    print(f"Wrote {args.entries} entries ({args.pots:g} POT) to {args.output}")


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Simple-ntuple neutrino flux driver",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Write a synthetic flux file
  python -m simpleflux.cli make-example example_flux.h5 --entries 1000

  # Inspect a chain of flux files
  python -m simpleflux.cli info "flux_*.h5"

  # Serve 1000 unweighted muon-neutrino rays moved to z = -5 m
  python -m simpleflux.cli generate "flux_*.h5" -n 1000 --species 14 --z0 -5 \\
      --csv rays.csv --plot spectrum.png
        """,
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default: from defaults.yaml)")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Info command
    info_parser = subparsers.add_parser("info", help="Show metadata of flux files")
    info_parser.add_argument("files", nargs="+", help="Flux files or glob patterns")
    info_parser.add_argument("--location", default="", help="Detector location tag")
    info_parser.add_argument("--branches", default=None, help="Record groups, e.g. entry,numi,aux")

    # Generate command
    gen_parser = subparsers.add_parser("generate", help="Stream flux rays")
    gen_parser.add_argument("files", nargs="+", help="Flux files or glob patterns")
    gen_parser.add_argument("-n", type=int, default=0, help="Rays to serve (default: 0 = until end)")
    gen_parser.add_argument("--location", default="", help="Detector location tag")
    gen_parser.add_argument("--branches", default=None, help="Record groups, e.g. entry,numi,aux")
    gen_parser.add_argument("--weighted", action="store_true", help="Serve native weights")
    gen_parser.add_argument("--cycles", type=int, default=1, help="Passes over the files (0 = unbounded)")
    gen_parser.add_argument("--reuse", type=int, default=1, help="Times each entry is served")
    gen_parser.add_argument("--species", type=int, nargs="*", default=None, help="Accepted PDG codes")
    gen_parser.add_argument("--emax", type=float, default=None, help="Max energy [GeV]")
    gen_parser.add_argument("--z0", type=float, default=None, help="Move rays to this z [m]")
    gen_parser.add_argument("--seed", type=int, default=None, help="Rejection sampler seed")
    gen_parser.add_argument("--csv", default=None, help="Write served rays to this CSV file")
    gen_parser.add_argument("--summary", default=None, help="Write the run totals to this CSV file")
    gen_parser.add_argument("--plot", default=None, help="Save an energy spectrum plot here")
    gen_parser.add_argument("--plot-window", default=None,
                            help="Save a plot of ray positions over the flux window here")

    # Make-example command
    ex_parser = subparsers.add_parser("make-example", help="Write a synthetic flux file")
    ex_parser.add_argument("output", help="Output HDF5 file")
    ex_parser.add_argument("--entries", type=int, default=1000, help="Number of entries (default: 1000)")
    ex_parser.add_argument("--pots", type=float, default=1.0e6, help="POT represented (default: 1e6)")
    ex_parser.add_argument("--max-weight", type=float, default=1.0,
                           help="Max weight; 1 writes an already-unweighted file")
    ex_parser.add_argument("--species", type=int, nargs="+", default=[NU_MU, NU_MU_BAR, NU_E],
                           help="PDG codes to draw from")
    ex_parser.add_argument("--seed", type=int, default=None, help="Random seed")

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    commands = {
        "info": cmd_info,
        "generate": cmd_generate,
        "make-example": cmd_make_example,
    }
    if args.command not in commands:
        parser.print_help()
        return 1

    try:
        commands[args.command](args)
    except (LoadError, ConfigurationError) as e:
        logger.error(str(e))
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
