"""Module with the event container shared by all reconstruction algorithms."""

from calofrag.utils.errors import ContainerError, ListNotFoundError

__all__ = ["Event"]


class Event:
    """Container of the hits, tracks and clusters of one event.

    Clusters are stored in insertion order under a stable integer ID. That
    order is the order in which algorithms visit clusters, which makes every
    algorithm deterministic for a given input.

    Attributes
    ----------
    index : int
        Index of the event in the input
    clusters : Dict[int, Cluster]
        Current clusters, keyed by their ID
    tracks : Dict[int, Track]
        Tracks, keyed by their ID
    hit_lists : Dict[str, List[CaloHit]]
        Named lists of hits (e.g. `muon`)
    cluster_lists : Dict[str, List[Cluster]]
        Named lists of clusters kept aside from the current clusters
        (e.g. `muon`)
    mc_daughters : Dict[int, List[int]]
        IDs of the daughters of each simulated particle
    pfos : List[ParticleFlowObject]
        Particles built so far
    """

    def __init__(
        self,
        index=0,
        clusters=None,
        tracks=None,
        hit_lists=None,
        cluster_lists=None,
        mc_daughters=None,
    ):
        """Initialize the event content.

        Parameters
        ----------
        index : int, default 0
            Index of the event in the input
        clusters : List[Cluster], optional
            Initial clusters
        tracks : List[Track], optional
            Tracks of the event
        hit_lists : Dict[str, List[CaloHit]], optional
            Named lists of hits
        cluster_lists : Dict[str, List[Cluster]], optional
            Named lists of clusters kept aside from the current clusters
        mc_daughters : Dict[int, List[int]], optional
            IDs of the daughters of each simulated particle
        """
        self.index = index
        self.clusters = {}
        self.tracks = {t.id: t for t in (tracks or [])}
        self.hit_lists = dict(hit_lists or {})
        self.mc_daughters = dict(mc_daughters or {})
        self.pfos = []
        self._next_id = 0
        for cluster in clusters or []:
            self.add_cluster(cluster)

        self.cluster_lists = {}
        for name, cluster_list in (cluster_lists or {}).items():
            self.add_cluster_list(name, cluster_list)

    def __len__(self):
        """Number of clusters currently held."""
        return len(self.clusters)

    @property
    def cluster_ids(self):
        """List of cluster IDs, in insertion order."""
        return list(self.clusters)

    def add_cluster(self, cluster):
        """Registers a new cluster.

        If the cluster does not have a valid ID yet, it is given the next
        available one.

        Parameters
        ----------
        cluster : Cluster
            Cluster to register

        Returns
        -------
        int
            ID of the registered cluster
        """
        if cluster.id < 0:
            cluster.id = self._next_id
        if cluster.id in self.clusters:
            raise ContainerError(f"A cluster with ID {cluster.id} already exists.")

        self.clusters[cluster.id] = cluster
        self._next_id = max(self._next_id, cluster.id + 1)
        for track_id in cluster.track_ids:
            self.add_track_cluster_association(track_id, cluster.id)

        return cluster.id

    def get_cluster(self, cluster_id):
        """Fetches a cluster by ID.

        Parameters
        ----------
        cluster_id : int
            Cluster ID

        Returns
        -------
        Cluster
            Requested cluster
        """
        if cluster_id not in self.clusters:
            raise ContainerError(f"No cluster with ID {cluster_id} in the event.")

        return self.clusters[cluster_id]

    def get_track(self, track_id):
        """Fetches a track by ID.

        Parameters
        ----------
        track_id : int
            Track ID

        Returns
        -------
        Track
            Requested track
        """
        if track_id not in self.tracks:
            raise ContainerError(f"No track with ID {track_id} in the event.")

        return self.tracks[track_id]

    def cluster_tracks(self, cluster_id):
        """List of tracks associated with a cluster."""
        return [self.get_track(t) for t in self.get_cluster(cluster_id).track_ids]

    def add_cluster_list(self, name, clusters):
        """Registers a named list of clusters kept aside from the current ones.

        Clusters without a valid ID are given one which does not collide
        with any cluster known to the event.

        Parameters
        ----------
        name : str
            Name of the cluster list
        clusters : List[Cluster]
            Clusters in the list
        """
        clusters = list(clusters)
        for cluster in clusters:
            if cluster.id < 0:
                cluster.id = self._next_id
            self._next_id = max(self._next_id, cluster.id + 1)

        self.cluster_lists[name] = clusters

    def get_cluster_list(self, name):
        """Fetches a named list of clusters.

        Parameters
        ----------
        name : str
            Name of the cluster list

        Returns
        -------
        List[Cluster]
            Requested cluster list
        """
        if name not in self.cluster_lists:
            raise ListNotFoundError(f"No cluster list named `{name}` in the event.")

        return self.cluster_lists[name]

    def remove_track(self, track_id):
        """Removes a track from the current tracks.

        Associations between the track and the current clusters are dropped.

        Parameters
        ----------
        track_id : int
            Track ID

        Returns
        -------
        Track
            Removed track
        """
        track = self.tracks.pop(self.get_track(track_id).id)
        for cluster_id in track.cluster_ids:
            if cluster_id in self.clusters:
                cluster = self.clusters[cluster_id]
                cluster.track_ids = [t for t in cluster.track_ids if t != track_id]

        return track

    def get_hit_list(self, name):
        """Fetches a named list of hits.

        Parameters
        ----------
        name : str
            Name of the hit list

        Returns
        -------
        List[CaloHit]
            Requested hit list
        """
        if name not in self.hit_lists:
            raise ListNotFoundError(f"No hit list named `{name}` in the event.")

        return self.hit_lists[name]

    def add_hit_to_cluster(self, cluster_id, hit):
        """Adds a hit to an existing cluster.

        Parameters
        ----------
        cluster_id : int
            Cluster ID
        hit : CaloHit
            Hit to add
        """
        self.get_cluster(cluster_id).add_hit(hit)

    def add_track_cluster_association(self, track_id, cluster_id):
        """Associates a track with a cluster, in both directions.

        Parameters
        ----------
        track_id : int
            Track ID
        cluster_id : int
            Cluster ID
        """
        track = self.get_track(track_id)
        cluster = self.get_cluster(cluster_id)
        if track_id not in cluster.track_ids:
            cluster.track_ids.append(track_id)
        if cluster_id not in track.cluster_ids:
            track.cluster_ids.append(cluster_id)

    def merge_and_delete(self, parent_id, daughter_id):
        """Merges a daughter cluster into a parent cluster.

        The daughter hits and track associations are transferred to the
        parent, after which the daughter ceases to exist.

        Parameters
        ----------
        parent_id : int
            ID of the cluster which survives
        daughter_id : int
            ID of the cluster which is absorbed
        """
        if parent_id == daughter_id:
            raise ContainerError(f"Cannot merge cluster {parent_id} into itself.")

        parent = self.get_cluster(parent_id)
        daughter = self.get_cluster(daughter_id)
        parent.absorb(daughter)
        for track_id in daughter.track_ids:
            track = self.get_track(track_id)
            track.cluster_ids = [c for c in track.cluster_ids if c != daughter_id]
            if parent_id not in track.cluster_ids:
                track.cluster_ids.append(parent_id)

        del self.clusters[daughter_id]

    def summary(self):
        """Short summary of the event content, used for logging.

        Returns
        -------
        str
            One-line summary
        """
        n_hits = sum(c.n_hits for c in self.clusters.values())
        return (
            f"Event {self.index}: {len(self.clusters)} clusters, "
            f"{n_hits} clustered hits, {len(self.tracks)} tracks"
        )

    def as_dict(self):
        """Returns the event content as a serializable dictionary.

        Returns
        -------
        dict
            Event index, clusters (with their hit IDs), tracks and particles
        """
        clusters = []
        for cluster in self.clusters.values():
            out = cluster.as_dict()
            out["hit_ids"] = [h.id for h in cluster.hits]
            out["n_hits"] = cluster.n_hits
            out["hadronic_energy"] = cluster.hadronic_energy
            if cluster.n_hits:
                out["inner_layer"] = int(cluster.inner_layer)
                out["outer_layer"] = int(cluster.outer_layer)
            clusters.append(out)

        return {
            "index": self.index,
            "clusters": clusters,
            "tracks": [t.as_dict() for t in self.tracks.values()],
            "pfos": [p.as_dict() for p in self.pfos],
        }
