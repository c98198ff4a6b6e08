"""Utility modules for exporting and plotting served flux rays."""

from simpleflux.utils.exporters import export_rays_csv, export_summary_csv

__all__ = ["export_rays_csv", "export_summary_csv"]
