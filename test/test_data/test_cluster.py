"""Tests for the cluster data structures."""

import numpy as np
import pytest

from calofrag.data import CaloHit, Cluster, FitResult, HitType


class TestCaloHit:
    """Calorimeter hit data class."""

    def test_defaults(self):
        """Positions default to an undefined array, hit type is cast."""
        hit = CaloHit(id=3, hit_type=1)
        assert hit.hit_type is HitType.HCAL
        assert hit.position.shape == (3,)
        assert np.all(np.isinf(hit.position))

    def test_unit_vector(self):
        """Unit vector along the hit position."""
        hit = CaloHit(position=[0.0, 3.0, 4.0])
        np.testing.assert_allclose(hit.unit_vector, [0.0, 0.6, 0.8])

    def test_bad_position(self):
        """Positions must be 3D."""
        with pytest.raises(AssertionError):
            CaloHit(position=[1.0, 2.0])


class TestFitResult:
    """Straight-line fit result."""

    def test_failed_fit(self):
        """Too few points give an unsuccessful fit."""
        fit = FitResult.from_points([[1.0, 0.0, 0.0]])
        assert not fit.success
        assert fit.radial_direction_cosine == 0.0

    def test_radial_fit(self):
        """A radial line is oriented outward by default."""
        fit = FitResult.from_points([[10.0 * i, 0.0, 0.0] for i in range(1, 6)])
        assert fit.success
        np.testing.assert_allclose(fit.direction, [1.0, 0.0, 0.0], atol=1e-9)
        assert fit.radial_direction_cosine == pytest.approx(1.0)


class TestCluster:
    """Cluster data class and its derived quantities."""

    def test_ordered_hits(self, make_cluster):
        """Hits are grouped by layer, in increasing layer order."""
        cluster = make_cluster([7, 3, 5, 3])
        assert list(cluster.ordered_hits) == [3, 5, 7]
        assert len(cluster.ordered_hits[3]) == 2
        assert cluster.n_hits == 4
        assert cluster.n_occupied_layers == 3
        assert cluster.inner_layer == 3
        assert cluster.outer_layer == 7
        np.testing.assert_array_equal(cluster.layers, [3, 3, 5, 7])

    def test_energies(self, make_cluster):
        """Hadronic energy, with and without correction."""
        cluster = make_cluster(range(1, 5), energy=0.5, energy_correction=1.2)
        assert cluster.hadronic_energy == pytest.approx(2.0)
        assert cluster.corrected_hadronic_energy == pytest.approx(2.4)

    def test_mip_fraction(self, make_cluster):
        """Fraction of MIP-like hits."""
        cluster = make_cluster(range(1, 3), is_mip=True)
        cluster.absorb(make_cluster(range(3, 5)))
        assert cluster.mip_fraction == pytest.approx(0.5)
        assert Cluster().mip_fraction == 0.0

    def test_cache_invalidation(self, make_cluster):
        """Derived quantities follow the hit content."""
        cluster = make_cluster(range(1, 4))
        assert cluster.outer_layer == 3
        assert cluster.hadronic_energy == pytest.approx(1.35)
        cluster.add_hit(
            CaloHit(position=[2000.0, 0.0, 0.0], pseudo_layer=15, hadronic_energy=1.0)
        )
        assert cluster.outer_layer == 15
        assert cluster.hadronic_energy == pytest.approx(2.35)
        assert len(cluster.points) == 4

    def test_absorb(self, make_cluster):
        """Absorbing a cluster takes its hits and tracks."""
        cluster = make_cluster(range(1, 4), track_ids=[0])
        other = make_cluster(range(10, 12), track_ids=[0, 2])
        cluster.absorb(other)
        assert cluster.n_hits == 5
        assert cluster.track_ids == [0, 2]
        assert cluster.outer_layer == 11

    def test_centroid(self, make_cluster):
        """Centroid of the hits in one layer."""
        cluster = make_cluster([4])
        cluster.absorb(make_cluster([4], y=20.0))
        np.testing.assert_allclose(cluster.centroid(4), [1890.0, 10.0, 0.0])
        with pytest.raises(AssertionError):
            cluster.centroid(5)

    def test_empty_layers(self):
        """An empty cluster has no layer."""
        with pytest.raises(AssertionError):
            Cluster().inner_layer

    def test_partial_fits(self, make_cluster):
        """Start and end fits use the requested layers only."""
        cluster = make_cluster(range(1, 6))
        cluster.absorb(make_cluster(range(6, 11), y=50.0))

        start = cluster.fit_start(5)
        assert start.success
        assert start.chi2 == pytest.approx(0.0, abs=1e-9)
        np.testing.assert_allclose(start.direction, [1.0, 0.0, 0.0], atol=1e-9)

        end = cluster.fit_end(5)
        assert end.success
        np.testing.assert_allclose(end.intercept, [1930.0, 50.0, 0.0])

        full = cluster.fit_to_all_hits
        assert full.chi2 > 0.0
        assert cluster.fit_to_all_hits is full

    def test_export(self, make_cluster):
        """Hits are not exported with the cluster attributes."""
        cluster = make_cluster(range(1, 3), cluster_id=4, track_ids=[1])
        out = cluster.as_dict()
        assert "hits" not in out
        assert out["id"] == 4
        assert out["track_ids"] == [1]
