"""Iterative removal of cluster fragments by evidence-based merging.

Clusters without an associated track which lie close to a tracked cluster
are likely fragments of the same hadronic shower. At each iteration, the
pair with the largest excess of evidence (total minus required) is merged,
and the contacts which may have changed are recomputed. The loop stops when
no pair has a positive excess evidence.
"""

import numpy as np

from calofrag.config.errors import InvalidParameterError
from calofrag.reco.base import AlgorithmBase
from calofrag.utils.errors import (
    CalofragError,
    ContactInvariantError,
    ListNotFoundError,
)
from calofrag.utils.logger import logger
from calofrag.utils.recluster import is_leaving_detector

from .contact import ContactParameters, build_contact
from .evidence import EvidenceModel

__all__ = ["FragmentRemovalAlgorithm"]


class FragmentRemovalContext:
    """State shared by all the iterations of one fragment removal pass.

    Attributes
    ----------
    event : Event
        Event container
    muon_hit_list_name : str
        Name of the muon system hit list in the event
    min_cos : float
        Minimum cosine between a muon hit direction and a cluster direction
        for the hit to be compatible with the cluster
    """

    def __init__(self, event, muon_hit_list_name="muon", min_cos=0.8):
        """Initialize an empty pass context.

        Parameters
        ----------
        event : Event
            Event container
        muon_hit_list_name : str, default 'muon'
            Name of the muon system hit list in the event
        min_cos : float, default 0.8
            Minimum cosine for a muon hit to be compatible with a cluster
        """
        self.event = event
        self.muon_hit_list_name = muon_hit_list_name
        self.min_cos = min_cos
        self._muon_directions = None

    @property
    def muon_directions(self):
        """Unit position vectors of the muon system hits.

        The vectors are only fetched once, on first use. A missing muon
        hit list is not an error, it simply provides no direction.

        Returns
        -------
        np.ndarray
            (N, 3) Muon hit directions
        """
        if self._muon_directions is None:
            try:
                hits = self.event.get_hit_list(self.muon_hit_list_name)
            except ListNotFoundError:
                hits = []

            self._muon_directions = np.empty((0, 3), dtype=np.float64)
            if len(hits):
                self._muon_directions = np.vstack([h.unit_vector for h in hits])

        return self._muon_directions

    def n_compatible_muon_hits(self, cluster):
        """Counts the muon hits aligned with the outer layer of a cluster.

        Parameters
        ----------
        cluster : Cluster
            Cluster to check

        Returns
        -------
        int
            Number of compatible muon hits, `None` if there is no muon hit
            or if the cluster has no direction
        """
        directions = self.muon_directions
        if not len(directions):
            return None

        centroid = cluster.centroid(cluster.outer_layer)
        norm = np.linalg.norm(centroid)
        if norm == 0.0:
            return None

        cluster_dir = centroid / norm

        return int(np.sum(np.dot(directions, cluster_dir) > self.min_cos))

    def clear(self):
        """Discards the cached muon hit directions."""
        self._muon_directions = None


class FragmentRemovalAlgorithm(AlgorithmBase):
    """Merges fragment clusters into the tracked clusters they belong to.

    A contact map is maintained between the candidate fragments (daughters)
    and the clusters which could absorb them (parents). Only the daughters
    affected by the latest merge are reconsidered at each iteration.
    """

    # Name of the algorithm (as specified in the configuration)
    name = "fragment_removal"

    # Alternative allowed names of the algorithm
    aliases = ("main_fragment_removal",)

    # The algorithm relies on the calorimeter layer structure
    need_geometry = True

    def __init__(
        self,
        geometry,
        min_daughter_calo_hits=5,
        min_daughter_hadronic_energy=0.025,
        contact_cut_max_distance=750.0,
        contact_cut_n_layers=0,
        contact_cut_cone_fraction1=0.25,
        contact_cut_close_hit_fraction1=0.25,
        contact_cut_close_hit_fraction2=0.15,
        contact_cut_mean_distance_to_helix=250.0,
        contact_cut_closest_distance_to_helix=150.0,
        contact_cut_layers_from_ecal=10,
        contact_cut_near_ecal_distance=250.0,
        leaving_n_outer_layers=4,
        leaving_min_outer_occupied_layers=2,
        muon_hit_list_name="muon",
        muon_compatible_cos=0.8,
        contact=None,
        **evidence,
    ):
        """Store the fragment removal parameters.

        Parameters
        ----------
        geometry : Geometry
            Calorimeter geometry
        min_daughter_calo_hits : int, default 5
            Minimum number of hits in a daughter cluster
        min_daughter_hadronic_energy : float, default 0.025
            Minimum hadronic energy of a daughter cluster (GeV)
        contact_cut_max_distance : float, default 750.
            Maximum distance between the closest daughter and parent hits (mm)
        contact_cut_n_layers : int, default 0
            Number of contact layers above which a contact is kept
        contact_cut_cone_fraction1 : float, default 0.25
            Widest cone fraction above which a contact is kept
        contact_cut_close_hit_fraction1 : float, default 0.25
            Outer band close hit fraction above which a contact is kept
        contact_cut_close_hit_fraction2 : float, default 0.15
            Inner band close hit fraction above which a contact is kept
        contact_cut_mean_distance_to_helix : float, default 250.
            Mean helix distance below which a contact is kept (mm)
        contact_cut_closest_distance_to_helix : float, default 150.
            Closest helix distance below which a contact is kept (mm)
        contact_cut_layers_from_ecal : int, default 10
            Margin, in layers, before the end of the ECal within which a
            daughter is considered to start near the ECal/HCal boundary
        contact_cut_near_ecal_distance : float, default 250.
            Maximum closest hit distance for daughters near the boundary (mm)
        leaving_n_outer_layers : int, default 4
            Number of outer calorimeter layers which define the exit region
        leaving_min_outer_occupied_layers : int, default 2
            Minimum number of occupied layers in the exit region
        muon_hit_list_name : str, default 'muon'
            Name of the muon system hit list in the event
        muon_compatible_cos : float, default 0.8
            Minimum cosine between a muon hit and a parent cluster direction
        contact : dict, optional
            Contact feature extraction parameters (see
            :class:`ContactParameters`)
        **evidence : dict, optional
            Evidence model parameters (see :class:`EvidenceModel`)
        """
        # Store the geometry constants used throughout the run
        self.geometry = geometry
        self.n_ecal_layers = geometry.n_ecal_layers
        self.outermost_layer = geometry.outermost_layer

        # Daughter selection
        self.min_daughter_calo_hits = min_daughter_calo_hits
        self.min_daughter_hadronic_energy = min_daughter_hadronic_energy

        # Contact cuts
        self.contact_cut_max_distance = contact_cut_max_distance
        self.contact_cut_n_layers = contact_cut_n_layers
        self.contact_cut_cone_fraction1 = contact_cut_cone_fraction1
        self.contact_cut_close_hit_fraction1 = contact_cut_close_hit_fraction1
        self.contact_cut_close_hit_fraction2 = contact_cut_close_hit_fraction2
        self.contact_cut_mean_distance_to_helix = contact_cut_mean_distance_to_helix
        self.contact_cut_closest_distance_to_helix = (
            contact_cut_closest_distance_to_helix
        )
        self.contact_cut_layers_from_ecal = contact_cut_layers_from_ecal
        self.contact_cut_near_ecal_distance = contact_cut_near_ecal_distance

        # Leaving cluster identification
        self.leaving_n_outer_layers = leaving_n_outer_layers
        self.leaving_min_outer_occupied_layers = leaving_min_outer_occupied_layers
        self.muon_hit_list_name = muon_hit_list_name
        self.muon_compatible_cos = muon_compatible_cos

        # Contact feature extraction parameters
        self.contact_params = ContactParameters(**(contact or {}))

        # Evidence model, which validates its own parameters
        unknown = set(evidence) - set(EvidenceModel.parameter_names())
        if len(unknown):
            raise InvalidParameterError(
                f"Unrecognized fragment removal parameter(s): {sorted(unknown)}"
            )
        self.evidence = EvidenceModel(n_ecal_layers=self.n_ecal_layers, **evidence)

    def process(self, event):
        """Merge fragments in one event until no merge is favored.

        Parameters
        ----------
        event : Event
            Event container

        Returns
        -------
        dict
            Number of merges performed
        """
        context = FragmentRemovalContext(
            event, self.muon_hit_list_name, self.muon_compatible_cos
        )

        contact_map, affected = {}, None
        n_merges = 0
        while True:
            # Refresh the contacts of the clusters affected by the last merge
            self.build_contact_map(event, contact_map, affected)

            # Find the best merge, stop if there is none
            parent_id, daughter_id, excess = self.select_merge(
                event, contact_map, context
            )
            if daughter_id is None:
                break

            # Find the clusters impacted by the merge, then merge
            affected = self.affected_clusters(contact_map, parent_id, daughter_id)
            del contact_map[daughter_id]
            event.merge_and_delete(parent_id, daughter_id)
            n_merges += 1

            logger.debug(
                "Merged cluster %d into cluster %d (excess evidence: %.3f)",
                daughter_id,
                parent_id,
                excess,
            )

        context.clear()

        return {"n_merges": n_merges}

    def is_daughter_candidate(self, cluster):
        """Checks whether a cluster could be a fragment of another.

        Parameters
        ----------
        cluster : Cluster
            Cluster to check

        Returns
        -------
        bool
            `True` if the cluster is trackless and large enough
        """
        return (
            not len(cluster.track_ids)
            and cluster.n_hits >= self.min_daughter_calo_hits
            and cluster.hadronic_energy >= self.min_daughter_hadronic_energy
        )

    def build_contact_map(self, event, contact_map, affected=None):
        """Populates the contact map in place.

        Parameters
        ----------
        event : Event
            Event container
        contact_map : Dict[int, List[ClusterContact]]
            Contacts of each daughter cluster, keyed by daughter ID
        affected : Set[int], optional
            IDs of the clusters which must be reconsidered. If not provided,
            every cluster is considered (first pass).
        """
        for daughter_id, daughter in event.clusters.items():
            # Only recompute the contacts of the affected clusters
            if affected is not None:
                if daughter_id not in affected:
                    continue
                contact_map.pop(daughter_id, None)

            # Apply the daughter selection
            if not self.is_daughter_candidate(daughter):
                continue

            # Compute the contacts with every tracked cluster
            contacts = []
            for parent_id, parent in event.clusters.items():
                if parent_id == daughter_id or not len(parent.track_ids):
                    continue

                contact = build_contact(
                    daughter,
                    parent,
                    event.cluster_tracks(parent_id),
                    self.contact_params,
                )
                if self.passes_contact_cuts(contact):
                    contacts.append(contact)

            if len(contacts):
                contact_map[daughter_id] = contacts

    def passes_contact_cuts(self, contact):
        """Checks whether two clusters are close enough to be merged.

        Parameters
        ----------
        contact : ClusterContact
            Contact features

        Returns
        -------
        bool
            `True` if the contact must be kept
        """
        if contact.distance_to_closest_hit > self.contact_cut_max_distance:
            return False

        if (
            contact.n_contact_layers > self.contact_cut_n_layers
            or contact.cone_fraction1 > self.contact_cut_cone_fraction1
            or contact.close_hit_fraction1 > self.contact_cut_close_hit_fraction1
            or contact.close_hit_fraction2 > self.contact_cut_close_hit_fraction2
            or contact.mean_distance_to_helix < self.contact_cut_mean_distance_to_helix
            or contact.closest_distance_to_helix
            < self.contact_cut_closest_distance_to_helix
        ):
            return True

        # Looser requirement for daughters starting near the ECal/HCal boundary
        return (
            contact.distance_to_closest_hit < self.contact_cut_near_ecal_distance
            and contact.daughter_inner_layer + self.contact_cut_layers_from_ecal
            > self.n_ecal_layers
        )

    def leaving_correction(self, parent, context):
        """Required evidence correction for a parent leaving the calorimeter.

        Parameters
        ----------
        parent : Cluster
            Candidate parent cluster
        context : FragmentRemovalContext
            State of the current pass

        Returns
        -------
        float
            Leaving correction (0 if the parent is contained)
        """
        if not is_leaving_detector(
            parent,
            self.outermost_layer,
            self.leaving_n_outer_layers,
            self.leaving_min_outer_occupied_layers,
        ):
            return 0.0

        n_compatible = None
        if self.evidence.use_muon_hits_in_leaving_correction:
            n_compatible = context.n_compatible_muon_hits(parent)

        return self.evidence.leaving_correction_value(n_compatible)

    def select_merge(self, event, contact_map, context):
        """Finds the (parent, daughter) pair with the largest excess evidence.

        Parameters
        ----------
        event : Event
            Event container
        contact_map : Dict[int, List[ClusterContact]]
            Contacts of each daughter cluster, keyed by daughter ID
        context : FragmentRemovalContext
            State of the current pass

        Returns
        -------
        int
            ID of the best parent, `None` if no merge is favored
        int
            ID of the best daughter, `None` if no merge is favored
        float
            Excess evidence of the best pair
        """
        best_parent_id, best_daughter_id = None, None
        highest_excess = 0.0
        for daughter_id, contacts in contact_map.items():
            # Every contact must belong to the daughter it is stored under
            for contact in contacts:
                if contact.daughter_id != daughter_id:
                    raise ContactInvariantError(daughter_id, contact.daughter_id)

            # Check that the merge could improve track-cluster compatibility
            daughter = event.get_cluster(daughter_id)
            parents = {c.parent_id: event.get_cluster(c.parent_id) for c in contacts}
            passes, global_delta_chi2 = self.evidence.passes_preselection(
                daughter, contacts, parents
            )
            if not passes:
                continue

            correction_layer = self.evidence.correction_layer(daughter)
            for contact in contacts:
                parent = parents[contact.parent_id]
                total = self.evidence.total_evidence(contact)
                required = self.evidence.required_evidence(
                    daughter,
                    parent,
                    contact,
                    correction_layer,
                    global_delta_chi2,
                    self.leaving_correction(parent, context),
                )

                excess = total - required
                if excess > highest_excess:
                    highest_excess = excess
                    best_parent_id, best_daughter_id = contact.parent_id, daughter_id

        return best_parent_id, best_daughter_id, highest_excess

    @staticmethod
    def affected_clusters(contact_map, parent_id, daughter_id):
        """Finds the clusters whose contacts are stale after a merge.

        Parameters
        ----------
        contact_map : Dict[int, List[ClusterContact]]
            Contacts of each daughter cluster, keyed by daughter ID
        parent_id : int
            ID of the cluster which absorbs the daughter
        daughter_id : int
            ID of the cluster which is absorbed

        Returns
        -------
        Set[int]
            IDs of the clusters to reconsider in the next iteration
        """
        if daughter_id not in contact_map:
            raise CalofragError(
                f"Cluster {daughter_id} cannot be merged, it has no contact."
            )

        affected = set()
        for key, contacts in contact_map.items():
            # Clusters which were in contact with the merged daughter
            if key == daughter_id:
                affected.update(c.parent_id for c in contacts)
                continue

            # Clusters which had the parent or the daughter as a parent
            for contact in contacts:
                if contact.parent_id in (parent_id, daughter_id):
                    affected.add(key)
                    break

        return affected
