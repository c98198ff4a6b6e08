"""Tests for cross-file metadata aggregation."""

import logging

import pytest

from simpleflux.core.metadata import MetadataInconsistency, aggregate_metadata
from simpleflux.core.pdg import NU_E, NU_MU, NU_MU_BAR, PDGCodeList
from simpleflux.core.records import FluxMetadata
from simpleflux.store.record_store import Hdf5FluxChain
from simpleflux.store.writer import write_flux_file


def aggregate_of(paths, **kwargs):
    with Hdf5FluxChain.open([str(p) for p in paths]) as chain:
        return aggregate_metadata(chain, **kwargs)


class TestConsistentFiles:
    """Tests for the fold over complete, consistent metadata."""

    def test_union_and_sums(self, flux_file_factory):
        """Test species union, max energy, weight bounds and POT sum."""
        f1 = flux_file_factory(n=100, species=(NU_MU,), protons=1.0e3, max_weight=2.0)
        f2 = flux_file_factory(n=50, species=(NU_MU_BAR, NU_E), protons=5.0e2, max_weight=3.0)

        with Hdf5FluxChain.open([str(f1), str(f2)]) as chain:
            agg = aggregate_metadata(chain)
            meta1 = chain.metadata(0)[0]
            meta2 = chain.metadata(1)[0]

        assert agg.pdglist == PDGCodeList([NU_MU, NU_MU_BAR, NU_E])
        assert agg.max_energy == pytest.approx(max(meta1.max_energy, meta2.max_energy))
        assert agg.min_weight == pytest.approx(min(meta1.min_wgt, meta2.min_wgt))
        assert agg.max_weight == pytest.approx(max(meta1.max_wgt, meta2.max_wgt))
        assert agg.protons == pytest.approx(1.5e3)
        assert agg.file_protons == pytest.approx([1.0e3, 5.0e2])
        assert agg.all_files_meta
        assert agg.n_entries_with_meta == 150
        assert not agg.already_unweighted
        assert agg.issues == MetadataInconsistency.NONE

    def test_already_unweighted(self, flux_file_factory):
        """Test files whose weights are all exactly 1 enable the fast path."""
        f1 = flux_file_factory(n=20)
        f2 = flux_file_factory(n=30)

        agg = aggregate_of([f1, f2])

        assert agg.already_unweighted
        assert agg.min_weight == 1.0
        assert agg.max_weight == 1.0

    def test_window_taken_from_metadata(self, flux_file_factory):
        """Test the aggregate window is the files' common window."""
        path = flux_file_factory(n=10, window_base=(0.0, 0.0, 25.0))

        agg = aggregate_of([path])

        p1, _, _ = agg.window.points()
        assert p1[2] == pytest.approx(25.0)
        assert "flux window" in agg.describe()


class TestInconsistentFiles:
    """Tests for partial and inconsistent metadata (flagged, never fatal)."""

    def test_missing_metadata_file(self, flux_file_factory, caplog):
        """Test a file without metadata is flagged and its records still bound the aggregate."""
        with_meta = flux_file_factory(n=40, protons=400.0)
        without = flux_file_factory(n=60, meta=False, species=(NU_E,))

        with caplog.at_level(logging.WARNING):
            agg = aggregate_of([with_meta, without])

        assert agg.issues & MetadataInconsistency.MISSING_META
        assert not agg.all_files_meta
        assert agg.protons == pytest.approx(400.0)
        assert agg.file_protons == pytest.approx([400.0, 0.0])
        assert agg.protons_with_meta == pytest.approx(400.0)
        assert agg.n_entries_with_meta == 40
        assert NU_E in agg.pdglist
        assert "MISSING_META" in caplog.text

    def test_incomplete_block(self, tmp_path, entries_factory):
        """Test a block lacking species and weights is flagged incomplete."""
        entries = entries_factory([NU_MU] * 4, energy=2.0)
        path = write_flux_file(tmp_path / "incomplete.h5", entries, FluxMetadata(protons=100.0))

        agg = aggregate_of([path])

        assert agg.issues & MetadataInconsistency.INCOMPLETE_FIELDS
        assert not agg.all_files_meta
        assert agg.n_entries_with_meta == 0
        assert agg.protons == pytest.approx(100.0)
        assert agg.protons_with_meta == 0.0
        # Record values stand in for the missing fields
        assert NU_MU in agg.pdglist
        assert agg.max_energy == pytest.approx(2.0)
        assert agg.max_weight == pytest.approx(1.0)

    def test_window_mismatch(self, flux_file_factory):
        """Test files with different windows are flagged; the first window wins."""
        f1 = flux_file_factory(n=5, window_base=(0.0, 0.0, 0.0))
        f2 = flux_file_factory(n=5, window_base=(0.0, 0.0, 1.0))

        agg = aggregate_of([f1, f2])

        assert agg.issues & MetadataInconsistency.WINDOW_MISMATCH
        assert agg.window.base == (0.0, 0.0, 0.0)

    def test_window_within_tolerance(self, flux_file_factory):
        """Test window differences below the tolerance are accepted."""
        f1 = flux_file_factory(n=5, window_base=(0.0, 0.0, 0.0))
        f2 = flux_file_factory(n=5, window_base=(0.0, 0.0, 1.0e-3))

        agg = aggregate_of([f1, f2], window_tolerance=1.0e-2)

        assert not agg.issues & MetadataInconsistency.WINDOW_MISMATCH

    def test_records_beyond_metadata_bounds(self, tmp_path, entries_factory):
        """Test records exceeding the declared bounds are flagged and folded in."""
        entries = entries_factory([NU_MU, NU_E], energy=[1.0, 9.0], wgt=[1.0, 4.0])
        understated = FluxMetadata(pdglist=[NU_MU], max_energy=5.0, min_wgt=0.5, max_wgt=2.0,
                                   protons=10.0, window_dir1=(1.0, 0.0, 0.0),
                                   window_dir2=(0.0, 1.0, 0.0))
        path = write_flux_file(tmp_path / "understated.h5", entries, understated)

        agg = aggregate_of([path])

        assert agg.issues & MetadataInconsistency.FLAVOR_MISMATCH
        assert agg.issues & MetadataInconsistency.BOUNDS_EXCEEDED
        # Aggregate bounds cover every record
        assert agg.max_energy == pytest.approx(9.0)
        assert agg.max_weight == pytest.approx(4.0)
        assert NU_E in agg.pdglist

    def test_duplicate_metakey_across_files(self, flux_file_factory):
        """Test one metakey used by two files is flagged."""
        f1 = flux_file_factory(n=5, metakey=3)
        f2 = flux_file_factory(n=5, metakey=3)

        agg = aggregate_of([f1, f2])

        assert agg.issues & MetadataInconsistency.DUPLICATE_METAKEY

    def test_aggregate_is_monotonic(self, flux_file_factory):
        """Test adding files never lowers the max energy or max weight."""
        files = [flux_file_factory(n=30, max_weight=w) for w in (3.0, 1.5, 2.0)]

        previous = None
        for k in range(1, len(files) + 1):
            agg = aggregate_of(files[:k])
            if previous is not None:
                assert agg.max_energy >= previous.max_energy
                assert agg.max_weight >= previous.max_weight
            previous = agg
