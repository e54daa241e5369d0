"""Tests for the geometry presets and factory."""

import pytest

from calofrag.geo import Geometry, geo_factory
from calofrag.geo.factories import geo_dict


class TestGeoFactory:
    """Building geometries from presets or inline parameters."""

    def test_presets(self):
        """Every preset file is registered."""
        names = sorted(cfg["name"] for cfg in geo_dict().values())
        assert names == ["ild", "sid"]

    @pytest.mark.parametrize(
        "detector, n_ecal, n_hcal, bfield",
        [("ild", 30, 48, 3.5), ("SiD", 30, 40, 5.0)],
    )
    def test_preset_by_name(self, detector, n_ecal, n_hcal, bfield):
        """Presets are found by case-insensitive name."""
        geo = geo_factory(detector)
        assert geo.n_ecal_layers == n_ecal
        assert geo.n_hcal_layers == n_hcal
        assert geo.bfield == bfield
        assert geo.outermost_layer == n_ecal + n_hcal

    def test_preset_by_tag_and_version(self):
        """Tags and versions must match an existing preset."""
        assert geo_factory("ild", tag="o2").version == "2"
        assert geo_factory("ild", version=2).tag == "o2"
        with pytest.raises(ValueError):
            geo_factory("ild", tag="o9")
        with pytest.raises(ValueError):
            geo_factory("ild", version=7)

    def test_unknown_detector(self):
        """Unknown presets are rejected."""
        with pytest.raises(ValueError):
            geo_factory("cms")

    def test_inline(self):
        """Inline parameters build a custom geometry."""
        geo = geo_factory(n_ecal_layers=20, n_hcal_layers=10, bfield=0.0)
        assert geo.name == "custom"
        assert geo.outermost_layer == 30

    def test_preset_override(self):
        """Preset parameters cannot be partially overridden."""
        with pytest.raises(AssertionError):
            geo_factory("ild", bfield=4.0)


class TestGeometry:
    """Pseudolayer structure queries."""

    def test_sections(self):
        """Deep HCal pseudolayer range."""
        geo = Geometry("test", None, 1, 30, 48, 3.5)
        assert geo.deep_in_hcal(41, 10)
        assert not geo.deep_in_hcal(40, 10)

    def test_invalid(self):
        """The ECal cannot be empty."""
        with pytest.raises(AssertionError):
            Geometry("test", None, 1, 0, 48, 3.5)

    def test_coil(self):
        """The coil midpoint lies half way through the coil."""
        geo = Geometry(
            "test",
            None,
            1,
            30,
            48,
            3.5,
            coil_inner_radius=3000.0,
            coil_outer_radius=3400.0,
        )
        assert geo.coil_midpoint_radius == 3200.0
        with pytest.raises(AssertionError):
            Geometry(
                "test",
                None,
                1,
                30,
                48,
                3.5,
                coil_inner_radius=3400.0,
                coil_outer_radius=3000.0,
            )

    @pytest.mark.parametrize(
        "detector, coil_mid, endcap_z",
        [("ild", 3800.0, 4072.0), ("sid", 2992.5, 3395.0)],
    )
    def test_preset_muon_system(self, detector, coil_mid, endcap_z):
        """Presets define the boundaries of the muon system."""
        geo = geo_factory(detector)
        assert geo.coil_midpoint_radius == coil_mid
        assert geo.muon_endcap_inner_z == endcap_z
        assert geo.muon_barrel_bfield == 1.5
        assert geo.muon_endcap_bfield == 4.0
