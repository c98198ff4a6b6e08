"""Tests for flux record types and species codes."""

import numpy as np
import pytest

from simpleflux.core.pdg import (
    NU_E,
    NU_MU,
    NU_MU_BAR,
    PDGCodeList,
    is_neutrino,
    neutrino_name,
)
from simpleflux.core.records import (
    ENTRY_DTYPE,
    AuxInfo,
    FluxEntry,
    FluxMetadata,
    empty_entries,
)


class TestPDGCodeList:
    """Tests for the unique species list."""

    def test_add_is_unique(self):
        """Test adding a present code is a no-op reporting False."""
        codes = PDGCodeList([NU_MU])

        assert codes.add(NU_MU_BAR) is True
        assert codes.add(NU_MU) is False
        assert list(codes) == [NU_MU, NU_MU_BAR]

    def test_membership_accepts_numpy_ints(self):
        """Test numpy integers match plain int codes."""
        codes = PDGCodeList([NU_MU])

        assert np.int32(14) in codes
        assert np.int32(12) not in codes

    def test_equality_ignores_order(self):
        """Test equality compares the sets of codes."""
        assert PDGCodeList([NU_E, NU_MU]) == PDGCodeList([NU_MU, NU_E])
        assert PDGCodeList([NU_E]) != PDGCodeList([NU_E, NU_MU])

    def test_clear(self):
        """Test clear empties the list."""
        codes = PDGCodeList([NU_E, NU_MU])
        codes.clear()

        assert len(codes) == 0

    def test_names(self):
        """Test readable names with numeric fallback."""
        assert neutrino_name(NU_MU_BAR) == "nu_mu_bar"
        assert neutrino_name(211) == "211"
        assert is_neutrino(NU_E)
        assert not is_neutrino(211)
        assert "nu_mu" in str(PDGCodeList([NU_MU]))


class TestFluxEntry:
    """Tests for FluxEntry conversion."""

    def test_from_row(self):
        """Test a structured row converts to plain Python values."""
        rows = empty_entries(1)
        rows["pdg"] = NU_MU
        rows["E"] = 2.5
        rows["wgt"] = 0.75
        rows["metakey"] = 3

        entry = FluxEntry.from_row(rows[0])

        assert entry.pdg == NU_MU
        assert isinstance(entry.pdg, int)
        assert entry.E == pytest.approx(2.5)
        assert entry.wgt == pytest.approx(0.75)
        assert entry.metakey == 3
        assert "nu_mu" in entry.describe()

    def test_entries_are_immutable(self):
        """Test a FluxEntry cannot be modified."""
        entry = FluxEntry.from_row(empty_entries(1)[0])

        with pytest.raises(AttributeError):
            entry.E = 3.0


class TestAuxInfo:
    """Tests for auxiliary value naming."""

    def test_named_with_metadata(self):
        """Test values are keyed by the metadata names."""
        meta = FluxMetadata(auxintname=["idx"], auxdblname=["w1", "w2"])
        aux = AuxInfo(auxint=(7,), auxdbl=(0.5, 1.5))

        assert aux.named(meta) == {"idx": 7, "w1": 0.5, "w2": 1.5}

    def test_named_without_metadata(self):
        """Test positional names are used when no names are known."""
        aux = AuxInfo(auxint=(1, 2), auxdbl=(3.0,))

        assert aux.named(None) == {"auxint0": 1, "auxint1": 2, "auxdbl0": 3.0}


class TestFluxMetadata:
    """Tests for FluxMetadata construction and HDF5 attribute conversion."""

    def test_from_entries(self):
        """Test bounds and species are measured on the entries."""
        entries = np.zeros(3, dtype=ENTRY_DTYPE)
        entries["pdg"] = [NU_MU, NU_E, NU_MU]
        entries["E"] = [1.0, 4.0, 2.0]
        entries["wgt"] = [0.5, 1.5, 1.0]

        meta = FluxMetadata.from_entries(entries, protons=1.0e5, metakey=2)

        assert meta.pdglist == [NU_E, NU_MU]
        assert meta.max_energy == pytest.approx(4.0)
        assert meta.min_wgt == pytest.approx(0.5)
        assert meta.max_wgt == pytest.approx(1.5)
        assert meta.protons == pytest.approx(1.0e5)
        assert meta.metakey == 2
        assert meta.has_species()
        assert meta.has_weights()

    def test_unfilled_block_is_incomplete(self):
        """Test a default block reports no species and no weight bounds."""
        meta = FluxMetadata()

        assert not meta.has_species()
        assert not meta.has_weights()

    def test_attrs_round_trip(self):
        """Test to_attrs/from_attrs preserve a filled block."""
        meta = FluxMetadata(
            pdglist=[NU_MU, NU_MU_BAR],
            max_energy=120.0,
            min_wgt=0.1,
            max_wgt=3.0,
            protons=5.0e7,
            window_base=(-1.0, -1.0, 10.0),
            window_dir1=(2.0, 0.0, 0.0),
            window_dir2=(0.0, 2.0, 0.0),
            auxintname=["a"],
            infiles=["f1.root", "f2.root"],
            seed=99,
            metakey=4,
        )

        attrs = meta.to_attrs()
        restored = FluxMetadata.from_attrs(attrs)

        assert "auxdblname" not in attrs
        assert restored == meta

    def test_from_attrs_decodes_bytes(self):
        """Test byte strings as returned by HDF5 are decoded."""
        meta = FluxMetadata.from_attrs({"infiles": np.array([b"a.root", b"b.root"])})

        assert meta.infiles == ["a.root", "b.root"]

    def test_describe_limits_files(self):
        """Test long input file lists are truncated."""
        meta = FluxMetadata(infiles=[f"f{i}.root" for i in range(15)])

        text = meta.describe(max_files=3)

        assert "f2.root" in text
        assert "f3.root" not in text
        assert "12 more" in text
