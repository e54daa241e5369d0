"""Sets up fixtures general to the entire test suite of this package.

This file is read during the collection phase of pytest when running anything
inside this directory.

Most fixtures build a simple barrel topology: hits are laid out along the x
axis starting at the front face of the ECal (x = 1850 mm), one hit every
10 mm, with the pseudolayer increasing by one per hit.
"""

import itertools

import pytest
import yaml

from calofrag.data import CaloHit, Cluster, Event, Track
from calofrag.geo import geo_factory
from calofrag.math.helix import Helix

# Radial position of the front face of the ECal (mm)
ECAL_FRONT = 1850.0

# Radial distance between consecutive pseudolayers (mm)
LAYER_STEP = 10.0


@pytest.fixture
def geometry():
    """ILD-like geometry: 30 ECal layers, 48 HCal layers, 3.5 T field."""
    return geo_factory(n_ecal_layers=30, n_hcal_layers=48, bfield=3.5)


@pytest.fixture
def make_cluster():
    """Factory of clusters with one hit per pseudolayer.

    Hit IDs are unique across all the clusters built by one factory.
    """
    hit_ids = itertools.count()

    def build(
        layers,
        y=0.0,
        energy=0.45,
        cluster_id=-1,
        track_ids=None,
        is_mip=False,
        **kwargs,
    ):
        hits = [
            CaloHit(
                id=next(hit_ids),
                position=[ECAL_FRONT + LAYER_STEP * l, y, 0.0],
                pseudo_layer=l,
                hadronic_energy=energy,
                electromagnetic_energy=energy,
                is_mip=is_mip,
            )
            for l in layers
        ]
        return Cluster(
            id=cluster_id, hits=hits, track_ids=list(track_ids or []), **kwargs
        )

    return build


@pytest.fixture
def make_track():
    """Factory of 10 GeV positive tracks entering the ECal along x."""

    def build(track_id=0, energy=10.0, charge=1, bfield=3.5):
        helix = Helix([ECAL_FRONT, 0.0, 0.0], [energy, 0.0, 0.0], charge, bfield)
        return Track(id=track_id, energy_at_dca=energy, helix=helix)

    return build


@pytest.fixture
def make_event(make_cluster, make_track):
    """Factory of events with one tracked parent and one trackless daughter.

    The parent has 20 hits of 0.45 GeV in layers 1 to 20 and is associated
    with a 10 GeV track. The daughter has 2.5 MeV hits, offset by `y` from
    the parent.
    """

    def build(y=15.0, layers=range(5, 17), energy=0.0025, **kwargs):
        track = make_track()
        parent = make_cluster(range(1, 21), cluster_id=0, track_ids=[0])
        daughter = make_cluster(layers, y=y, energy=energy, cluster_id=1, **kwargs)
        return Event(0, clusters=[parent, daughter], tracks=[track])

    return build


@pytest.fixture
def event_doc():
    """Event document equivalent to the default `make_event` topology."""
    hits, hit_id = [], 0
    for layer in range(1, 21):
        hits.append(
            {
                "id": hit_id,
                "position": [ECAL_FRONT + LAYER_STEP * layer, 0.0, 0.0],
                "pseudo_layer": layer,
                "hadronic_energy": 0.45,
                "hit_type": "ecal",
            }
        )
        hit_id += 1
    for layer in range(5, 17):
        hits.append(
            {
                "id": hit_id,
                "position": [ECAL_FRONT + LAYER_STEP * layer, 15.0, 0.0],
                "pseudo_layer": layer,
                "hadronic_energy": 0.0025,
                "hit_type": "ecal",
            }
        )
        hit_id += 1
    hits.append(
        {
            "id": hit_id,
            "position": [4000.0, 0.0, 0.0],
            "pseudo_layer": 90,
            "hit_type": "muon",
        }
    )

    return {
        "index": 7,
        "hits": hits,
        "tracks": [
            {
                "id": 0,
                "energy_at_dca": 10.0,
                "reference_point": [ECAL_FRONT, 0.0, 0.0],
                "momentum": [10.0, 0.0, 0.0],
                "charge": 1,
            }
        ],
        "clusters": [
            {"id": 0, "hit_ids": list(range(20)), "track_ids": [0]},
            {"id": 1, "hit_ids": list(range(20, 32))},
        ],
        "hit_lists": {"muon": [hit_id]},
    }


@pytest.fixture
def event_file(tmp_path, event_doc):
    """YAML file which contains two copies of the default event."""
    path = tmp_path / "events.yaml"
    second = dict(event_doc, index=8)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump_all([event_doc, second], f, sort_keys=False)

    return path
