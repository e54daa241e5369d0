"""Reconstruction of muons from clusters in the muon system.

Muon system clusters are matched to the tracks which reach them through the
solenoid coil. The calorimeter hits left along the matched track are then
absorbed by the muon cluster, and each matched pair is turned into a muon
particle. The particle components are finally removed from the lists used
by the downstream algorithms.
"""

import numpy as np

from calofrag.config.errors import InvalidParameterError
from calofrag.data import HitType, ParticleFlowObject
from calofrag.math.helix import Helix
from calofrag.utils.errors import ListNotFoundError
from calofrag.utils.logger import logger

from .base import AlgorithmBase

__all__ = ["MuonReconstructionAlgorithm"]


class MuonReconstructionContext:
    """State shared by the steps of one muon reconstruction pass.

    Attributes
    ----------
    event : Event
        Event container
    geometry : Geometry
        Detector geometry
    calo_hit_list_name : str
        Name of the calorimeter hit list in the event
    """

    def __init__(self, event, geometry, calo_hit_list_name="calo"):
        """Initialize an empty pass context.

        Parameters
        ----------
        event : Event
            Event container
        geometry : Geometry
            Detector geometry
        calo_hit_list_name : str, default 'calo'
            Name of the calorimeter hit list in the event
        """
        self.event = event
        self.geometry = geometry
        self.calo_hit_list_name = calo_hit_list_name
        self._calo_hits = None
        self._used_hit_ids = None
        self._external_helices = {}

    @property
    def calo_hits(self):
        """Calorimeter hits grouped by pseudolayer, in increasing order.

        The hits are only fetched once, on first use. A missing hit list
        simply provides no hit.

        Returns
        -------
        Dict[int, List[CaloHit]]
            Mapping from pseudolayer to the hits in that layer
        """
        if self._calo_hits is None:
            try:
                hits = self.event.get_hit_list(self.calo_hit_list_name)
            except ListNotFoundError:
                hits = []

            self._calo_hits = {}
            for hit in sorted(hits, key=lambda h: h.pseudo_layer):
                self._calo_hits.setdefault(hit.pseudo_layer, []).append(hit)

        return self._calo_hits

    def is_available(self, hit):
        """Checks that a hit does not belong to any cluster yet."""
        if self._used_hit_ids is None:
            clusters = list(self.event.clusters.values())
            for cluster_list in self.event.cluster_lists.values():
                clusters.extend(cluster_list)
            self._used_hit_ids = {h.id for c in clusters for h in c.hits}

        return hit.id not in self._used_hit_ids

    def add_hit(self, cluster, hit):
        """Adds an available hit to a cluster and marks it as used."""
        cluster.add_hit(hit)
        self._used_hit_ids.add(hit.id)

    def external_helix(self, track, negative_z):
        """Continuation of a track helix beyond the solenoid coil.

        The track is taken to enter the muon endcap if its helix reaches the
        endcap front face within the coil, the barrel otherwise. In the
        barrel the return field is opposite to the main field, which is
        modeled by flipping the charge. The result is cached per track and
        per endcap.

        Parameters
        ----------
        track : Track
            Track to extrapolate
        negative_z : bool
            Whether to consider the endcap at negative z

        Returns
        -------
        Tuple[np.ndarray, Helix]
            (3) Entry point in the muon system and the helix beyond it,
            `None` if the track never reaches the muon system
        """
        key = (track.id, negative_z)
        if key not in self._external_helices:
            geo, helix = self.geometry, track.helix
            z = -geo.muon_endcap_inner_z if negative_z else geo.muon_endcap_inner_z
            entry = helix.point_in_z(z)
            in_barrel = (
                entry is None or np.hypot(entry[0], entry[1]) > geo.coil_midpoint_radius
            )
            if in_barrel:
                entry = helix.point_on_circle(geo.coil_midpoint_radius)

            result = None
            if entry is not None:
                charge = -helix.charge if in_barrel else helix.charge
                bfield = (
                    geo.muon_barrel_bfield if in_barrel else geo.muon_endcap_bfield
                )
                momentum = helix.extrapolated_momentum(entry)
                result = entry, Helix(entry, momentum, charge, bfield)

            self._external_helices[key] = result

        return self._external_helices[key]

    def clear(self):
        """Discards the cached hits and helices."""
        self._calo_hits = None
        self._used_hit_ids = None
        self._external_helices = {}


class MuonReconstructionAlgorithm(AlgorithmBase):
    """Builds muon particles from muon system clusters and tracks."""

    # Name of the algorithm (as specified in the configuration)
    name = "muon_reconstruction"

    # Alternative allowed names of the algorithm
    aliases = ("muon",)

    # The algorithm relies on the coil and endcap boundaries
    need_geometry = True

    # Event attributes which must be present to run
    _keys = ("clusters", "cluster_lists", "tracks", "hit_lists", "pfos")

    # PDG codes of the negative and positive muons
    _mu_minus, _mu_plus = 13, -13

    def __init__(
        self,
        geometry,
        muon_cluster_list_name="muon",
        calo_hit_list_name="calo",
        muon_hit_list_name="muon",
        output_muon_cluster_list_name="muon_clusters",
        should_cheat_track_association=False,
        should_cheat_calo_hit_addition=False,
        max_cluster_calo_hits=30,
        min_cluster_occupied_layers=8,
        min_cluster_layer_span=8,
        n_cluster_layers_to_fit=100,
        max_distance_to_track=1500.0,
        min_track_candidate_energy=4.0,
        min_helix_cluster_cos_angle=0.95,
        n_expected_tracks_per_cluster=1,
        n_expected_parent_tracks=1,
        min_helix_calo_hit_cos_angle=0.95,
        region1_generic_distance=3.0,
        region2_generic_distance=6.0,
        isolated_min_region1_hits=1,
        isolated_max_region2_hits=0,
        max_generic_distance=6.0,
        isolated_max_generic_distance=3.0,
        should_cluster_isolated_hits=False,
    ):
        """Store the muon reconstruction parameters.

        Parameters
        ----------
        geometry : Geometry
            Detector geometry
        muon_cluster_list_name : str, default 'muon'
            Name of the muon system cluster list in the event
        calo_hit_list_name : str, default 'calo'
            Name of the calorimeter hit list in the event
        muon_hit_list_name : str, default 'muon'
            Name of the muon system hit list in the event
        output_muon_cluster_list_name : str, default 'muon_clusters'
            Name under which the clusters of the muon particles are saved
        should_cheat_track_association : bool, default False
            Associate tracks using the simulation truth
        should_cheat_calo_hit_addition : bool, default False
            Add calorimeter hits using the simulation truth
        max_cluster_calo_hits : int, default 30
            Maximum number of hits in a muon cluster
        min_cluster_occupied_layers : int, default 8
            Minimum number of occupied layers in a muon cluster
        min_cluster_layer_span : int, default 8
            Minimum span between the inner and outer muon cluster layers
        n_cluster_layers_to_fit : int, default 100
            Number of inner layers used to fit the muon cluster direction
        max_distance_to_track : float, default 1500.
            Maximum distance between the extrapolated track and the muon
            cluster inner centroid (mm)
        min_track_candidate_energy : float, default 4.
            Minimum energy of a candidate track (GeV)
        min_helix_cluster_cos_angle : float, default 0.95
            Minimum cosine between the muon system entry point and the
            muon cluster direction
        n_expected_tracks_per_cluster : int, default 1
            Number of tracks a muon cluster must have to be used
        n_expected_parent_tracks : int, default 1
            Maximum number of parent tracks of a muon track
        min_helix_calo_hit_cos_angle : float, default 0.95
            Minimum cosine between a calorimeter hit position and the track
            direction at that hit
        region1_generic_distance : float, default 3.
            Generic distance below which a hit is in the first region
        region2_generic_distance : float, default 6.
            Generic distance below which a hit is in the second region
        isolated_min_region1_hits : int, default 1
            Minimum number of first region hits in an isolated layer
        isolated_max_region2_hits : int, default 0
            Maximum number of second region hits in an isolated layer
        max_generic_distance : float, default 6.
            Maximum generic distance of an added hit
        isolated_max_generic_distance : float, default 3.
            Maximum generic distance of an added hit in an isolated layer
        should_cluster_isolated_hits : bool, default False
            Whether hits flagged as isolated can be added
        """
        # Store the geometry used throughout the run
        self.geometry = geometry

        # Input and output lists
        self.muon_cluster_list_name = muon_cluster_list_name
        self.calo_hit_list_name = calo_hit_list_name
        self.muon_hit_list_name = muon_hit_list_name
        self.output_muon_cluster_list_name = output_muon_cluster_list_name

        # Steering
        self.should_cheat_track_association = should_cheat_track_association
        self.should_cheat_calo_hit_addition = should_cheat_calo_hit_addition

        # Cluster-track association
        self.max_cluster_calo_hits = max_cluster_calo_hits
        self.min_cluster_occupied_layers = min_cluster_occupied_layers
        self.min_cluster_layer_span = min_cluster_layer_span
        self.n_cluster_layers_to_fit = n_cluster_layers_to_fit
        self.max_distance_to_track = max_distance_to_track
        self.min_track_candidate_energy = min_track_candidate_energy
        self.min_helix_cluster_cos_angle = min_helix_cluster_cos_angle

        # Particle building
        if n_expected_tracks_per_cluster < 1:
            raise InvalidParameterError(
                "A muon cluster must be expected to have at least one track, "
                f"got `n_expected_tracks_per_cluster` = "
                f"{n_expected_tracks_per_cluster}."
            )
        self.n_expected_tracks_per_cluster = n_expected_tracks_per_cluster
        self.n_expected_parent_tracks = n_expected_parent_tracks

        # Addition of calorimeter hits
        self.min_helix_calo_hit_cos_angle = min_helix_calo_hit_cos_angle
        self.region1_generic_distance = region1_generic_distance
        self.region2_generic_distance = region2_generic_distance
        self.isolated_min_region1_hits = isolated_min_region1_hits
        self.isolated_max_region2_hits = isolated_max_region2_hits
        self.max_generic_distance = max_generic_distance
        self.isolated_max_generic_distance = isolated_max_generic_distance
        self.should_cluster_isolated_hits = should_cluster_isolated_hits

    def process(self, event):
        """Reconstruct the muons of one event.

        Parameters
        ----------
        event : Event
            Event container

        Returns
        -------
        dict
            Number of muons built, tracks associated and hits added
        """
        result = {"n_muons": 0, "n_associated_tracks": 0, "n_added_hits": 0}
        try:
            muon_clusters = event.get_cluster_list(self.muon_cluster_list_name)
        except ListNotFoundError:
            return result

        if not muon_clusters:
            return result

        context = MuonReconstructionContext(
            event, self.geometry, self.calo_hit_list_name
        )

        # Associate the muon clusters with tracks
        if self.should_cheat_track_association:
            n_associated = self.cheat_associate_tracks(context, muon_clusters)
        else:
            n_associated = self.associate_tracks(context, muon_clusters)

        # Absorb the calorimeter hits left by the muons
        if self.should_cheat_calo_hit_addition:
            n_added = self.cheat_add_calo_hits(context, muon_clusters)
        else:
            n_added = self.add_calo_hits(context, muon_clusters)

        # Build the muons, remove their components from the event lists
        pfos = self.create_pfos(event, muon_clusters)
        self.tidy_lists(event, muon_clusters, pfos)
        context.clear()

        logger.debug(
            "Built %d muon(s) from %d muon cluster(s)", len(pfos), len(muon_clusters)
        )

        result["n_muons"] = len(pfos)
        result["n_associated_tracks"] = n_associated
        result["n_added_hits"] = n_added

        return result

    def is_candidate_track(self, track):
        """Checks whether a track could be associated with a muon cluster.

        Parameters
        ----------
        track : Track
            Track to check

        Returns
        -------
        bool
            `True` if the track is free, energetic enough and has no daughter
        """
        return (
            not track.has_associated_cluster
            and track.can_form_pfo
            and not len(track.daughter_track_ids)
            and track.energy_at_dca >= self.min_track_candidate_energy
        )

    def is_candidate_cluster(self, cluster):
        """Checks whether a muon cluster is long and thin enough to be matched.

        Parameters
        ----------
        cluster : Cluster
            Muon cluster to check

        Returns
        -------
        bool
            `True` if the cluster passes the size cuts
        """
        return (
            0 < cluster.n_hits <= self.max_cluster_calo_hits
            and cluster.n_occupied_layers >= self.min_cluster_occupied_layers
            and cluster.outer_layer - cluster.inner_layer
            >= self.min_cluster_layer_span
        )

    @staticmethod
    def associate(track, cluster):
        """Associates a track with a muon cluster, in both directions."""
        cluster.track_ids.append(track.id)
        track.cluster_ids.append(cluster.id)

    def associate_tracks(self, context, muon_clusters):
        """Associates each muon cluster with the track which best points to it.

        Parameters
        ----------
        context : MuonReconstructionContext
            Pass context
        muon_clusters : List[Cluster]
            Muon system clusters

        Returns
        -------
        int
            Number of associations made
        """
        n_associated = 0
        for cluster in muon_clusters:
            if not self.is_candidate_cluster(cluster):
                continue

            fit = cluster.fit_start(self.n_cluster_layers_to_fit)
            if not fit.success:
                continue

            inner_centroid = cluster.centroid(cluster.inner_layer)
            negative_z = inner_centroid[2] < 0.0

            # Ties in distance are resolved in favor of the energetic track
            best_track, best_energy = None, 0.0
            best_distance = self.max_distance_to_track
            for track in context.event.tracks.values():
                if not self.is_candidate_track(track) or track.helix is None:
                    continue

                external = context.external_helix(track, negative_z)
                if external is None:
                    continue

                entry, helix = external
                norm = np.linalg.norm(entry)
                if norm == 0.0:
                    continue

                cos_angle = np.dot(entry / norm, fit.direction)
                if cos_angle < self.min_helix_cluster_cos_angle:
                    continue

                distance = helix.distance_to_point(inner_centroid)
                if distance < best_distance or (
                    distance == best_distance and track.energy_at_dca > best_energy
                ):
                    best_track = track
                    best_distance = distance
                    best_energy = track.energy_at_dca

            if best_track is not None:
                self.associate(best_track, cluster)
                n_associated += 1

        return n_associated

    def add_calo_hits(self, context, muon_clusters):
        """Adds the calorimeter hits found along the track of each muon cluster.

        In each layer, the available hits are ranked by their distance to
        the track helix, in units of their cell size. If the layer only has
        hits close to the helix, all of those are added. Otherwise, only the
        closest hit is.

        Parameters
        ----------
        context : MuonReconstructionContext
            Pass context
        muon_clusters : List[Cluster]
            Muon system clusters

        Returns
        -------
        int
            Number of hits added
        """
        geo = self.geometry
        n_added = 0
        for cluster in muon_clusters:
            if len(cluster.track_ids) != self.n_expected_tracks_per_cluster:
                continue

            helix = context.event.get_track(cluster.track_ids[0]).helix
            if helix is None:
                continue

            for hits in context.calo_hits.values():
                candidates = []
                n_region1, n_region2 = 0, 0
                for hit in hits:
                    if not self.is_available(context, hit):
                        continue

                    # The hit must lie along the track direction
                    position = hit.position
                    direction = helix.extrapolated_momentum(position)
                    norm = np.linalg.norm(position) * np.linalg.norm(direction)
                    if norm == 0.0:
                        continue
                    if np.dot(position, direction) / norm < (
                        self.min_helix_calo_hit_cos_angle
                    ):
                        continue

                    # In the endcaps, the helix must reach the hit plane
                    # outside of the endcap inner radius
                    if hit.is_endcap:
                        point = helix.point_in_z(position[2])
                        if point is None:
                            continue

                        radius = np.hypot(point[0], point[1])
                        if hit.hit_type == HitType.HCAL and (
                            radius < geo.hcal_endcap_inner_radius
                        ):
                            continue
                        if hit.hit_type == HitType.ECAL and (
                            radius < geo.ecal_endcap_inner_radius
                        ):
                            continue

                    if hit.cell_length_scale == 0.0:
                        continue

                    distance = helix.distance_to_point(position) / hit.cell_length_scale
                    candidates.append((distance, hit))
                    if distance < self.region1_generic_distance:
                        n_region1 += 1
                    elif distance < self.region2_generic_distance:
                        n_region2 += 1

                is_isolated = (
                    n_region1 >= self.isolated_min_region1_hits
                    and n_region2 <= self.isolated_max_region2_hits
                )
                candidates.sort(key=lambda c: c[0])
                for distance, hit in candidates:
                    if distance > self.max_generic_distance or (
                        is_isolated and distance > self.isolated_max_generic_distance
                    ):
                        break

                    context.add_hit(cluster, hit)
                    n_added += 1
                    if not is_isolated:
                        break

        return n_added

    def is_available(self, context, hit):
        """Checks whether a calorimeter hit can be added to a muon cluster.

        Parameters
        ----------
        context : MuonReconstructionContext
            Pass context
        hit : CaloHit
            Hit to check

        Returns
        -------
        bool
            `True` if the hit is free and not excluded as isolated
        """
        if not self.should_cluster_isolated_hits and hit.is_isolated:
            return False

        return context.is_available(hit)

    @staticmethod
    def best_mc_particle(cluster):
        """Simulated particle which contributed most to a cluster.

        Parameters
        ----------
        cluster : Cluster
            Cluster to inspect

        Returns
        -------
        int
            ID of the simulated particle with the largest hadronic energy
            in the cluster, `None` if no hit is matched to a particle
        """
        energies = {}
        for layer_hits in cluster.ordered_hits.values():
            for hit in layer_hits:
                if hit.mc_particle_id < 0:
                    continue
                energies[hit.mc_particle_id] = (
                    energies.get(hit.mc_particle_id, 0.0) + hit.hadronic_energy
                )

        best_id, best_energy = None, 0.0
        for mc_id, energy in energies.items():
            if energy > best_energy:
                best_id, best_energy = mc_id, energy

        return best_id

    @staticmethod
    def is_matched(mc_daughters, mc_id, uid):
        """Checks whether a simulated particle is, or descends from, another.

        The lineage is walked with an explicit stack. Each particle is only
        visited once, such that a malformed lineage cannot loop forever.

        Parameters
        ----------
        mc_daughters : Dict[int, List[int]]
            IDs of the daughters of each simulated particle
        mc_id : int
            ID of the particle at the top of the lineage
        uid : int
            ID of the particle to look for

        Returns
        -------
        bool
            `True` if `uid` is `mc_id` or one of its descendants
        """
        stack, visited = [mc_id], set()
        while stack:
            current = stack.pop()
            if current == uid:
                return True
            if current in visited:
                continue

            visited.add(current)
            stack.extend(mc_daughters.get(current, []))

        return False

    def cheat_associate_tracks(self, context, muon_clusters):
        """Associates each muon cluster with the track of its simulated particle.

        Parameters
        ----------
        context : MuonReconstructionContext
            Pass context
        muon_clusters : List[Cluster]
            Muon system clusters

        Returns
        -------
        int
            Number of associations made
        """
        event = context.event
        n_associated = 0
        for cluster in muon_clusters:
            best_id = self.best_mc_particle(cluster)
            if best_id is None:
                logger.debug(
                    "No simulated particle matched to muon cluster %d", cluster.id
                )
                continue

            for track in event.tracks.values():
                if not self.is_candidate_track(track) or track.mc_particle_id < 0:
                    continue

                if self.is_matched(event.mc_daughters, track.mc_particle_id, best_id):
                    self.associate(track, cluster)
                    n_associated += 1
                    break

        return n_associated

    def cheat_add_calo_hits(self, context, muon_clusters):
        """Adds the calorimeter hits of the simulated particle of each cluster.

        Parameters
        ----------
        context : MuonReconstructionContext
            Pass context
        muon_clusters : List[Cluster]
            Muon system clusters

        Returns
        -------
        int
            Number of hits added
        """
        n_added = 0
        for cluster in muon_clusters:
            best_id = self.best_mc_particle(cluster)
            if best_id is None:
                logger.debug(
                    "No simulated particle matched to muon cluster %d", cluster.id
                )
                continue

            if len(cluster.track_ids) != self.n_expected_tracks_per_cluster:
                continue

            for hits in context.calo_hits.values():
                for hit in hits:
                    if hit.mc_particle_id != best_id:
                        continue
                    if self.is_available(context, hit):
                        context.add_hit(cluster, hit)
                        n_added += 1

        return n_added

    def create_pfos(self, event, muon_clusters):
        """Builds one muon particle per muon cluster with the expected tracks.

        Parameters
        ----------
        event : Event
            Event container
        muon_clusters : List[Cluster]
            Muon system clusters

        Returns
        -------
        List[ParticleFlowObject]
            Muon particles built, also appended to the event particles
        """
        pfos = []
        for cluster in muon_clusters:
            if len(cluster.track_ids) != self.n_expected_tracks_per_cluster:
                continue

            track = event.get_track(cluster.track_ids[0])
            if (
                len(track.parent_track_ids) > self.n_expected_parent_tracks
                or len(track.daughter_track_ids)
                or len(track.sibling_track_ids)
            ):
                logger.warning(
                    "Invalid or unexpected track relationships for muon track "
                    "%d, no muon built.",
                    track.id,
                )
                continue

            charge = track.charge
            pfo = ParticleFlowObject(
                id=len(event.pfos),
                pdg_code=self._mu_plus if charge > 0 else self._mu_minus,
                charge=charge,
                energy=track.energy_at_dca,
                mass=track.mass,
                momentum=track.momentum,
                track_ids=[track.id, *track.parent_track_ids],
                cluster_ids=[cluster.id],
                hit_ids=[h.id for h in cluster.hits],
            )
            event.pfos.append(pfo)
            pfos.append(pfo)

        return pfos

    def tidy_lists(self, event, muon_clusters, pfos):
        """Removes the components of the muon particles from the event lists.

        The muon tracks are removed from the current tracks and the muon
        hits from the calorimeter and muon system hit lists. The clusters of
        the muons are saved under their own list name.

        Parameters
        ----------
        event : Event
            Event container
        muon_clusters : List[Cluster]
            Muon system clusters
        pfos : List[ParticleFlowObject]
            Muon particles built in this pass
        """
        track_ids = {t for pfo in pfos for t in pfo.track_ids}
        hit_ids = {h for pfo in pfos for h in pfo.hit_ids}
        cluster_ids = {c for pfo in pfos for c in pfo.cluster_ids}

        for track_id in track_ids:
            if track_id in event.tracks:
                event.remove_track(track_id)

        for name in (self.calo_hit_list_name, self.muon_hit_list_name):
            if name in event.hit_lists:
                event.hit_lists[name] = [
                    h for h in event.hit_lists[name] if h.id not in hit_ids
                ]

        if len(cluster_ids):
            event.cluster_lists[self.output_muon_cluster_list_name] = [
                c for c in muon_clusters if c.id in cluster_ids
            ]
