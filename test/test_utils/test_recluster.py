"""Tests for the track-cluster compatibility helpers."""

import numpy as np
import pytest

from calofrag.utils.recluster import (
    is_leaving_detector,
    track_cluster_chi2,
    track_cluster_compatibility,
)
from calofrag.utils.errors import CalofragError, CompatibilityError


class TestCompatibility:
    """Energy compatibility between tracks and clusters."""

    def test_compatibility(self):
        """Signed number of standard deviations."""
        chi = track_cluster_compatibility(9.0, 10.0)
        assert chi == pytest.approx(-1.0 / (0.6 * np.sqrt(10.0)))
        assert track_cluster_compatibility(11.0, 10.0) == pytest.approx(-chi)

    def test_resolution(self):
        """The resolution is configurable."""
        chi = track_cluster_compatibility(5.0, 4.0, resolution=0.5)
        assert chi == pytest.approx(1.0)
        assert track_cluster_chi2(5.0, 4.0, resolution=0.5) == pytest.approx(1.0)

    @pytest.mark.parametrize("track_energy", [0.0, -1.0])
    def test_non_positive_track_energy(self, track_energy):
        """Track energies must be positive."""
        with pytest.raises(CompatibilityError) as excinfo:
            track_cluster_chi2(1.0, track_energy)
        assert isinstance(excinfo.value, CalofragError)


class TestLeavingDetector:
    """Clusters which exit the calorimeter."""

    def test_contained(self, make_cluster):
        """The outer layer does not reach the exit region."""
        assert not is_leaving_detector(make_cluster(range(1, 20)), 30)

    def test_leaving(self, make_cluster):
        """Two occupied layers in the exit region."""
        assert is_leaving_detector(make_cluster(range(20, 31)), 30)
        assert is_leaving_detector(make_cluster([20, 28, 30]), 30)

    def test_single_layer(self, make_cluster):
        """One occupied layer in the exit region is not enough."""
        assert not is_leaving_detector(make_cluster([20, 30]), 30)
        assert is_leaving_detector(make_cluster([20, 30]), 30, min_occupied=1)

    def test_empty(self, make_cluster):
        """An empty cluster does not leave."""
        assert not is_leaving_detector(make_cluster([]), 30)
