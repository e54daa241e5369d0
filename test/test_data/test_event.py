"""Tests for the event container."""

import numpy as np
import pytest

from calofrag.data import Cluster, Event, ParticleFlowObject, Track
from calofrag.utils.errors import CalofragError, ContainerError, ListNotFoundError


class TestEvent:
    """Cluster, track and hit list container."""

    def test_cluster_ids(self, make_cluster):
        """Clusters without an ID are given the next available one."""
        event = Event(clusters=[make_cluster([1], cluster_id=4), make_cluster([2])])
        assert event.cluster_ids == [4, 5]
        assert len(event) == 2
        assert event.add_cluster(make_cluster([3])) == 6

    def test_duplicate_cluster(self, make_cluster):
        """Cluster IDs are unique."""
        event = Event(clusters=[make_cluster([1], cluster_id=0)])
        with pytest.raises(ContainerError):
            event.add_cluster(make_cluster([2], cluster_id=0))

    def test_missing_objects(self):
        """Requests on missing objects fail loudly."""
        event = Event()
        with pytest.raises(ContainerError):
            event.get_cluster(0)
        with pytest.raises(ContainerError):
            event.get_track(0)
        with pytest.raises(ListNotFoundError):
            event.get_hit_list("muon")

    def test_list_not_found_is_key_error(self):
        """A missing list can be handled as a missing key."""
        with pytest.raises(KeyError):
            Event().get_hit_list("muon")
        assert issubclass(ListNotFoundError, CalofragError)

    def test_track_association(self, make_event):
        """Track associations are stored on both sides."""
        event = make_event()
        assert event.get_track(0).cluster_ids == [0]
        assert event.cluster_tracks(0) == [event.get_track(0)]
        assert event.cluster_tracks(1) == []

        event.add_track_cluster_association(0, 1)
        assert event.get_cluster(1).track_ids == [0]
        assert event.get_track(0).cluster_ids == [0, 1]

    def test_merge_and_delete(self, make_event):
        """The daughter is absorbed by the parent and removed."""
        event = make_event()
        event.merge_and_delete(0, 1)
        assert event.cluster_ids == [0]
        assert event.get_cluster(0).n_hits == 32
        with pytest.raises(ContainerError):
            event.get_cluster(1)

    def test_merge_tracked_daughter(self, make_cluster):
        """Track associations of the daughter are moved to the parent."""
        tracks = [Track(id=0), Track(id=1)]
        event = Event(
            clusters=[
                make_cluster([1, 2], cluster_id=0, track_ids=[0]),
                make_cluster([3, 4], cluster_id=1, track_ids=[1]),
            ],
            tracks=tracks,
        )
        event.merge_and_delete(0, 1)
        assert event.get_cluster(0).track_ids == [0, 1]
        assert event.get_track(1).cluster_ids == [0]

    def test_self_merge(self, make_event):
        """A cluster cannot be merged into itself."""
        with pytest.raises(ContainerError):
            make_event().merge_and_delete(0, 0)

    def test_add_hit_to_cluster(self, make_event, make_cluster):
        """Hits can be added to existing clusters only."""
        event = make_event()
        hit = make_cluster([25]).hits[0]
        event.add_hit_to_cluster(0, hit)
        assert event.get_cluster(0).outer_layer == 25
        with pytest.raises(ContainerError):
            event.add_hit_to_cluster(9, hit)

    def test_as_dict(self, make_event):
        """Serializable summary of the event."""
        out = make_event().as_dict()
        assert out["index"] == 0
        assert [c["id"] for c in out["clusters"]] == [0, 1]
        assert out["clusters"][1]["n_hits"] == 12
        assert out["clusters"][1]["inner_layer"] == 5
        assert out["clusters"][1]["outer_layer"] == 16
        assert out["clusters"][0]["hadronic_energy"] == pytest.approx(9.0)
        assert out["tracks"][0]["cluster_ids"] == [0]
        assert "helix" not in out["tracks"][0]

    def test_empty_cluster_summary(self):
        """Empty clusters have no layer range."""
        out = Event(clusters=[Cluster()]).as_dict()
        assert "inner_layer" not in out["clusters"][0]

    def test_cluster_lists(self, make_cluster):
        """Named cluster lists get IDs which never collide with clusters."""
        event = Event(
            clusters=[make_cluster([1], cluster_id=3)],
            cluster_lists={"muon": [make_cluster([2]), make_cluster([3])]},
        )
        assert [c.id for c in event.get_cluster_list("muon")] == [4, 5]
        assert event.cluster_ids == [3]
        assert event.add_cluster(make_cluster([4])) == 6

        event.add_cluster_list("other", [])
        assert event.get_cluster_list("other") == []
        with pytest.raises(ListNotFoundError):
            event.get_cluster_list("photon")

    def test_remove_track(self, make_event):
        """Removed tracks lose their cluster associations."""
        event = make_event()
        track = event.remove_track(0)
        assert track.id == 0
        assert event.tracks == {}
        assert event.get_cluster(0).track_ids == []
        with pytest.raises(ContainerError):
            event.remove_track(0)

    def test_pfos_as_dict(self, make_event):
        """Particles are part of the event summary."""
        event = make_event()
        assert event.as_dict()["pfos"] == []
        event.pfos.append(ParticleFlowObject(id=0, pdg_code=13, track_ids=[0]))
        out = event.as_dict()["pfos"][0]
        assert out["pdg_code"] == 13
        assert out["track_ids"] == [0]
        assert out["momentum"] == [-np.inf] * 3
