"""Tests for the cluster contact features."""

import numpy as np
import pytest

from calofrag.reco.fragment.contact import (
    ClusterContact,
    ContactParameters,
    build_contact,
    helix_distances,
)


class TestContactParameters:
    """Contact feature extraction parameters."""

    def test_defaults(self):
        """Default thresholds."""
        params = ContactParameters()
        assert params.contact_distance == 2.0
        assert params.n_helix_comparison_layers == 9

    def test_invalid(self):
        """Distance bands must be nested."""
        with pytest.raises(AssertionError):
            ContactParameters(close_hit_distance1=10.0, close_hit_distance2=50.0)


class TestBuildContact:
    """Features of a (daughter, parent) pair."""

    def test_close_daughter(self, make_event):
        """A daughter running alongside the parent track, 15 mm away."""
        event = make_event(y=15.0)
        contact = build_contact(
            event.get_cluster(1), event.get_cluster(0), event.cluster_tracks(0)
        )
        assert contact.daughter_id == 1
        assert contact.parent_id == 0
        assert contact.daughter_inner_layer == 5
        assert contact.n_contact_layers == 12
        assert contact.contact_fraction == pytest.approx(1.0)
        assert contact.cone_fraction1 == pytest.approx(1.0)
        assert contact.cone_fraction2 == pytest.approx(1.0)
        assert contact.cone_fraction3 == pytest.approx(8.0 / 12.0)
        assert contact.close_hit_fraction1 == pytest.approx(1.0)
        assert contact.close_hit_fraction2 == pytest.approx(1.0)
        assert contact.distance_to_closest_hit == pytest.approx(15.0)
        assert contact.closest_distance_to_helix == pytest.approx(15.13, abs=0.05)
        assert contact.mean_distance_to_helix == pytest.approx(15.46, abs=0.05)
        assert contact.parent_track_energy == pytest.approx(10.0)

    def test_distant_daughter(self, make_event):
        """A daughter 120 mm away only retains its helix proximity."""
        event = make_event(y=120.0)
        contact = build_contact(
            event.get_cluster(1), event.get_cluster(0), event.cluster_tracks(0)
        )
        assert contact.n_contact_layers == 0
        assert contact.contact_fraction == 0.0
        assert contact.cone_fraction1 == 0.0
        assert contact.close_hit_fraction1 == 0.0
        assert contact.distance_to_closest_hit == pytest.approx(120.0)
        assert contact.closest_distance_to_helix == pytest.approx(120.13, abs=0.05)

    def test_trackless_parent(self, make_event):
        """Without tracks, there is no cone and no helix to compare with."""
        event = make_event(y=15.0)
        contact = build_contact(event.get_cluster(1), event.get_cluster(0), [])
        assert contact.cone_fraction1 == 0.0
        assert np.isinf(contact.closest_distance_to_helix)
        assert np.isinf(contact.mean_distance_to_helix)
        assert contact.parent_track_energy == 0.0
        assert contact.n_contact_layers == 12

    def test_helix_layers(self, make_event):
        """Only the first occupied daughter layers are compared with helices."""
        event = make_event(y=15.0)
        params = ContactParameters(n_helix_comparison_layers=1)
        contact = build_contact(
            event.get_cluster(1), event.get_cluster(0), event.cluster_tracks(0), params
        )
        assert contact.closest_distance_to_helix == pytest.approx(
            contact.mean_distance_to_helix
        )

    def test_helix_distances_empty(self):
        """No point, no distance."""
        assert helix_distances(np.empty((0, 3)), []) == (np.inf, np.inf)

    def test_contact_defaults(self):
        """A default contact carries no proximity information."""
        contact = ClusterContact(daughter_id=1, parent_id=0)
        assert contact.n_contact_layers == 0
        assert np.isinf(contact.distance_to_closest_hit)
