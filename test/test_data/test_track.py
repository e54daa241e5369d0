"""Tests for the track and particle data classes."""

import numpy as np

from calofrag.data import ParticleFlowObject, Track
from calofrag.math.helix import Helix


class TestTrack:
    """Charged track attributes."""

    def test_defaults(self):
        """Relationship lists are not shared between tracks."""
        first, second = Track(id=0), Track(id=1)
        first.parent_track_ids.append(3)
        first.cluster_ids.append(2)
        assert second.parent_track_ids == []
        assert second.cluster_ids == []
        assert first.charge == 0
        np.testing.assert_array_equal(first.momentum, np.zeros(3))

    def test_momentum(self):
        """The momentum at the DCA is preferred over the helix momentum."""
        helix = Helix([1850.0, 0.0, 0.0], [10.0, 0.0, 0.0], -1, 3.5)
        track = Track(id=0, helix=helix)
        assert track.charge == -1
        np.testing.assert_array_equal(track.momentum, [10.0, 0.0, 0.0])

        track.momentum[0] = 5.0
        assert helix.momentum[0] == 10.0

        track = Track(id=0, helix=helix, momentum_at_dca=[9, 1, 0])
        assert track.momentum.dtype == np.float64
        np.testing.assert_array_equal(track.momentum, [9.0, 1.0, 0.0])


class TestParticleFlowObject:
    """Reconstructed particle attributes."""

    def test_defaults(self):
        """Component lists are not shared between particles."""
        first, second = ParticleFlowObject(), ParticleFlowObject()
        first.hit_ids.append(4)
        assert second.hit_ids == []
        assert second.momentum.shape == (3,)

    def test_as_dict(self):
        """Particles are serializable."""
        pfo = ParticleFlowObject(
            id=0, pdg_code=-13, charge=1, momentum=[1.0, 2.0, 3.0], cluster_ids=[5]
        )
        out = pfo.as_dict()
        assert out["momentum"] == [1.0, 2.0, 3.0]
        assert out["cluster_ids"] == [5]
        assert out["pdg_code"] == -13
