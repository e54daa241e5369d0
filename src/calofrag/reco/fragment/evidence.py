"""Evidence model used to decide whether a cluster is a fragment of another.

The evidence for a merge is built from four independent heuristics (layers
in contact, cone extrapolation, track extrapolation, distance of closest
approach). It is compared with a required evidence, derived from the change
in track-cluster energy compatibility induced by the merge and corrected for
the topology and energy of the daughter cluster.
"""

from dataclasses import dataclass, fields

from calofrag.config.errors import InvalidParameterError
from calofrag.utils.recluster import track_cluster_chi2

__all__ = ["EvidenceModel"]


@dataclass
class EvidenceModel:
    """Total and required evidence computation for fragment merging.

    All the attributes are configurable parameters. Parameters suffixed with
    `d` are the scales which divide linearly-decaying evidence terms and must
    not vanish.

    Attributes
    ----------
    n_ecal_layers : int
        Number of ECal pseudolayers, fixed for the lifetime of the model
    """

    n_ecal_layers: int = 30

    # Layers in contact
    contact_evidence_n_layers1: int = 10
    contact_evidence_n_layers2: int = 4
    contact_evidence_n_layers3: int = 1
    contact_evidence1: float = 2.0
    contact_evidence2: float = 1.0
    contact_evidence3: float = 0.5

    # Cone extrapolation
    cone_evidence_fraction1: float = 0.5
    cone_evidence_ecal_multiplier: float = 0.5

    # Track extrapolation
    closest_track_evidence1: float = 200.0
    closest_track_evidence1d: float = 100.0
    closest_track_evidence2: float = 50.0
    closest_track_evidence2d: float = 20.0
    mean_track_evidence1: float = 200.0
    mean_track_evidence1d: float = 100.0
    mean_track_evidence2: float = 50.0
    mean_track_evidence2d: float = 50.0

    # Distance of closest approach
    distance_evidence1: float = 100.0
    distance_evidence1d: float = 100.0
    distance_evidence_close_fraction1_multiplier: float = 1.0
    distance_evidence_close_fraction2_multiplier: float = 2.0

    # Weights of the individual evidence terms
    contact_weight: float = 1.0
    cone_weight: float = 1.0
    distance_weight: float = 1.0
    track_extrapolation_weight: float = 1.0

    # Track-cluster compatibility
    max_chi2: float = 16.0
    max_global_chi2: float = 9.0
    chi2_base: float = 5.0
    global_chi2_penalty: float = 5.0

    # Correction layer
    correction_layer_n_hit_layers: int = 3
    correction_layer_energy_fraction: float = 0.25

    # Layer corrections
    layer_correction1: float = 2.0
    layer_correction2: float = 0.0
    layer_correction3: float = -1.0
    layer_correction4: float = -2.0
    layer_correction5: float = -2.0
    layer_correction6: float = -3.0
    n_deep_in_hcal_layers: int = 20
    layer_correction_layer_span: int = 4
    layer_correction_min_inner_layer: int = 5
    layer_correction_layers_from_ecal: int = 4

    # Leaving cluster corrections
    leaving_correction: float = 5.0
    use_muon_hits_in_leaving_correction: bool = True
    leaving_n_compatible_muon_hits: int = 5
    leaving_correction_many_muon_hits: float = 10.0
    leaving_correction_no_muon_hits: float = 2.0

    # Energy corrections
    energy_correction_threshold: float = 3.0
    low_energy_correction_threshold: float = 1.5
    low_energy_correction_n_hit_layers1: int = 6
    low_energy_correction_n_hit_layers2: int = 4
    low_energy_correction1: float = -1.0
    low_energy_correction2: float = -1.0
    low_energy_correction3: float = -1.0

    # Angular corrections
    angular_correction_offset: float = 0.75
    angular_correction_constant: float = -0.5
    angular_correction_gradient: float = 2.0

    # Photon cluster corrections
    photon_correction_energy1: float = 2.0
    photon_correction_energy2: float = 0.5
    photon_correction_energy3: float = 1.0
    photon_correction_shower_start1: float = 5.0
    photon_correction_shower_start2: float = 2.5
    photon_correction_shower_discrepancy1: float = 0.8
    photon_correction_shower_discrepancy2: float = 1.0
    photon_correction1: float = 10.0
    photon_correction2: float = 100.0
    photon_correction3: float = 5.0
    photon_correction4: float = 10.0
    photon_correction5: float = 2.0
    photon_correction6: float = 2.0
    photon_correction7: float = 0.0

    # Floor of the required evidence
    min_required_evidence: float = 0.5

    # Parameters used as denominators
    _denominators = (
        "closest_track_evidence1d",
        "closest_track_evidence2d",
        "mean_track_evidence1d",
        "mean_track_evidence2d",
        "distance_evidence1d",
    )

    def __post_init__(self):
        """Rejects unusable parameter values before any evaluation."""
        for key in self._denominators:
            if getattr(self, key) == 0:
                raise InvalidParameterError(
                    f"The evidence scale `{key}` must not be zero."
                )

        assert self.n_ecal_layers > 0, "The ECal must have at least one layer."

    @classmethod
    def parameter_names(cls):
        """List of configurable parameter names."""
        return [f.name for f in fields(cls) if f.name != "n_ecal_layers"]

    def contact_evidence(self, contact):
        """Evidence from the number of layers in which the clusters touch.

        Parameters
        ----------
        contact : ClusterContact
            Contact features

        Returns
        -------
        float
            Contact evidence
        """
        evidence = 0.0
        if contact.n_contact_layers > self.contact_evidence_n_layers1:
            evidence = self.contact_evidence1
        elif contact.n_contact_layers > self.contact_evidence_n_layers2:
            evidence = self.contact_evidence2
        elif contact.n_contact_layers > self.contact_evidence_n_layers3:
            evidence = self.contact_evidence3

        return evidence * (1.0 + contact.contact_fraction)

    def cone_evidence(self, contact):
        """Evidence from the daughter hits contained in the parent track cones.

        Parameters
        ----------
        contact : ClusterContact
            Contact features

        Returns
        -------
        float
            Cone evidence
        """
        if contact.cone_fraction1 <= self.cone_evidence_fraction1:
            return 0.0

        evidence = contact.cone_fraction1 + contact.cone_fraction2
        evidence += contact.cone_fraction3
        if contact.daughter_inner_layer < self.n_ecal_layers:
            evidence *= self.cone_evidence_ecal_multiplier

        return evidence

    def track_extrapolation_evidence(self, contact):
        """Evidence from the distances between daughter hits and parent helices.

        Parameters
        ----------
        contact : ClusterContact
            Contact features

        Returns
        -------
        float
            Track extrapolation evidence
        """
        closest = contact.closest_distance_to_helix
        mean = contact.mean_distance_to_helix
        if closest >= self.closest_track_evidence1:
            return 0.0

        evidence = (self.closest_track_evidence1 - closest) / (
            self.closest_track_evidence1d
        )
        if closest < self.closest_track_evidence2:
            evidence += (self.closest_track_evidence2 - closest) / (
                self.closest_track_evidence2d
            )

        evidence += (self.mean_track_evidence1 - mean) / self.mean_track_evidence1d
        if mean < self.mean_track_evidence2:
            evidence += (self.mean_track_evidence2 - mean) / (
                self.mean_track_evidence2d
            )

        return evidence

    def distance_evidence(self, contact):
        """Evidence from the distance of closest approach between hits.

        Parameters
        ----------
        contact : ClusterContact
            Contact features

        Returns
        -------
        float
            Distance evidence
        """
        if contact.distance_to_closest_hit >= self.distance_evidence1:
            return 0.0

        evidence = (self.distance_evidence1 - contact.distance_to_closest_hit) / (
            self.distance_evidence1d
        )
        evidence += (
            self.distance_evidence_close_fraction1_multiplier
            * contact.close_hit_fraction1
        )
        evidence += (
            self.distance_evidence_close_fraction2_multiplier
            * contact.close_hit_fraction2
        )

        return evidence

    def total_evidence(self, contact):
        """Weighted sum of the four evidence terms.

        Parameters
        ----------
        contact : ClusterContact
            Contact features

        Returns
        -------
        float
            Total evidence that the daughter is a fragment of the parent
        """
        return (
            self.contact_weight * self.contact_evidence(contact)
            + self.cone_weight * self.cone_evidence(contact)
            + self.distance_weight * self.distance_evidence(contact)
            + self.track_extrapolation_weight
            * self.track_extrapolation_evidence(contact)
        )

    def passes_preselection(self, daughter, contacts, parents):
        """Checks whether merging a daughter could improve the compatibility
        between its candidate parents and their tracks.

        The check is done contact by contact, then using the total energies
        of all the candidate parents and their tracks.

        Parameters
        ----------
        daughter : Cluster
            Candidate fragment cluster
        contacts : List[ClusterContact]
            Contacts of the daughter
        parents : Dict[int, Cluster]
            Candidate parent clusters, keyed by ID

        Returns
        -------
        bool
            Whether the daughter should be considered for merging
        float
            Improvement of the global chi2 brought by the merge
        """
        passes = False
        total_track_energy, total_cluster_energy = 0.0, 0.0
        daughter_energy = daughter.corrected_hadronic_energy
        for contact in contacts:
            track_energy = contact.parent_track_energy
            cluster_energy = parents[contact.parent_id].corrected_hadronic_energy
            old_chi2 = track_cluster_chi2(cluster_energy, track_energy)
            new_chi2 = track_cluster_chi2(
                daughter_energy + cluster_energy, track_energy
            )
            if new_chi2 < self.max_chi2 or new_chi2 < old_chi2:
                passes = True

            total_track_energy += track_energy
            total_cluster_energy += cluster_energy

        old_chi2 = track_cluster_chi2(total_cluster_energy, total_track_energy)
        new_chi2 = track_cluster_chi2(
            daughter_energy + total_cluster_energy, total_track_energy
        )
        if new_chi2 < self.max_global_chi2 or new_chi2 < old_chi2:
            passes = True

        return passes, old_chi2 - new_chi2

    def correction_layer(self, daughter):
        """Pseudolayer by which a significant share of the daughter energy
        has been deposited, counting from its inner layer.

        Parameters
        ----------
        daughter : Cluster
            Candidate fragment cluster

        Returns
        -------
        int
            Correction layer
        """
        energy_sum, layer_count = 0.0, 0
        total_energy = daughter.hadronic_energy
        for layer, hits in daughter.ordered_hits.items():
            energy_sum += sum(h.hadronic_energy for h in hits)
            layer_count += 1
            if (
                layer_count >= self.correction_layer_n_hit_layers
                or energy_sum > self.correction_layer_energy_fraction * total_energy
            ):
                return layer

        return daughter.inner_layer

    def layer_correction(self, daughter, correction_layer):
        """Correction based on the depth of the daughter in the calorimeter.

        Parameters
        ----------
        daughter : Cluster
            Candidate fragment cluster
        correction_layer : int
            Correction layer of the daughter

        Returns
        -------
        float
            Layer correction
        """
        n_ecal = self.n_ecal_layers
        if correction_layer <= n_ecal // 2:
            correction = self.layer_correction1
        elif correction_layer <= n_ecal:
            correction = self.layer_correction2
        elif correction_layer <= n_ecal + self.n_deep_in_hcal_layers:
            correction = self.layer_correction3
        else:
            correction = self.layer_correction4

        # Short daughters which start deep in the calorimeter
        inner, outer = daughter.inner_layer, daughter.outer_layer
        if (
            outer - inner < self.layer_correction_layer_span
            and inner > self.layer_correction_min_inner_layer
        ):
            correction = self.layer_correction5

        # Daughters which develop close to the ECal/HCal boundary
        if abs(correction_layer - n_ecal) < self.layer_correction_layers_from_ecal:
            correction = self.layer_correction6

        return correction

    def leaving_correction_value(self, n_compatible_muon_hits=None):
        """Correction applied when the parent cluster leaves the calorimeter.

        Parameters
        ----------
        n_compatible_muon_hits : int, optional
            Number of muon system hits compatible with the parent direction.
            If not provided, the muon system is not used.

        Returns
        -------
        float
            Leaving correction
        """
        correction = self.leaving_correction
        use_muon = self.use_muon_hits_in_leaving_correction
        if use_muon and n_compatible_muon_hits is not None:
            if n_compatible_muon_hits > self.leaving_n_compatible_muon_hits:
                correction = self.leaving_correction_many_muon_hits
            if n_compatible_muon_hits == 0:
                correction = self.leaving_correction_no_muon_hits

        return correction

    def energy_correction(self, daughter):
        """Correction applied to daughters below the energy threshold.

        Parameters
        ----------
        daughter : Cluster
            Candidate fragment cluster

        Returns
        -------
        float
            Energy correction (non-positive)
        """
        energy = daughter.hadronic_energy
        if energy < self.energy_correction_threshold:
            return energy - self.energy_correction_threshold

        return 0.0

    def low_energy_correction(self, daughter, correction_layer):
        """Corrections applied to low-energy daughters.

        Parameters
        ----------
        daughter : Cluster
            Candidate fragment cluster
        correction_layer : int
            Correction layer of the daughter

        Returns
        -------
        float
            Low energy correction
        """
        correction = 0.0
        if daughter.hadronic_energy >= self.low_energy_correction_threshold:
            return correction

        n_layers = daughter.n_occupied_layers
        if n_layers < self.low_energy_correction_n_hit_layers1:
            correction += self.low_energy_correction1
        if n_layers < self.low_energy_correction_n_hit_layers2:
            correction += self.low_energy_correction2
        if correction_layer > self.n_ecal_layers:
            correction += self.low_energy_correction3

        return correction

    def angular_correction(self, daughter):
        """Correction for daughters which do not point away from the origin.

        Parameters
        ----------
        daughter : Cluster
            Candidate fragment cluster

        Returns
        -------
        float
            Angular correction
        """
        fit = daughter.fit_to_all_hits
        cos = fit.radial_direction_cosine if fit.success else 0.0
        if cos < self.angular_correction_offset:
            return self.angular_correction_constant + (
                cos - self.angular_correction_offset
            ) * (self.angular_correction_gradient)

        return 0.0

    def photon_correction(self, daughter):
        """Correction for daughters which look like photon showers.

        The conditions are evaluated in a fixed order and the last one which
        matches determines the correction.

        Parameters
        ----------
        daughter : Cluster
            Candidate fragment cluster

        Returns
        -------
        float
            Photon correction
        """
        if not daughter.is_photon_fast:
            return 0.0

        energy = daughter.hadronic_energy
        start = daughter.shower_profile_start
        discrepancy = daughter.shower_profile_discrepancy
        e1, e2, e3 = (
            self.photon_correction_energy1,
            self.photon_correction_energy2,
            self.photon_correction_energy3,
        )
        s1 = self.photon_correction_shower_start1
        s2 = self.photon_correction_shower_start2
        d1 = self.photon_correction_shower_discrepancy1
        d2 = self.photon_correction_shower_discrepancy2

        correction = 0.0
        if energy > e1 and start < s1:
            correction = self.photon_correction1
        if energy > e1 and start < s2:
            correction = self.photon_correction2
        if energy < e1 and start < s2:
            correction = self.photon_correction3
        if energy < e1 and start < s2 and discrepancy < d1:
            correction = self.photon_correction4
        if energy < e1 and start > s2:
            correction = self.photon_correction5
        if energy < e2 and (start > s2 or discrepancy > d2):
            correction = self.photon_correction6
        if energy < e3 and start > s2:
            correction = self.photon_correction7

        return correction

    def required_evidence(
        self,
        daughter,
        parent,
        contact,
        correction_layer,
        global_delta_chi2,
        leaving_correction=0.0,
    ):
        """Evidence which must be exceeded to merge a daughter into a parent.

        Parameters
        ----------
        daughter : Cluster
            Candidate fragment cluster
        parent : Cluster
            Candidate parent cluster
        contact : ClusterContact
            Contact features of the pair
        correction_layer : int
            Correction layer of the daughter
        global_delta_chi2 : float
            Improvement of the global chi2 brought by the merge
        leaving_correction : float, default 0.
            Correction for a parent leaving the calorimeter

        Returns
        -------
        float
            Required evidence, never below the configured floor
        """
        # Primary requirement from the change in track-cluster compatibility
        track_energy = contact.parent_track_energy
        parent_energy = parent.corrected_hadronic_energy
        daughter_energy = daughter.corrected_hadronic_energy
        old_chi2 = track_cluster_chi2(parent_energy, track_energy)
        new_chi2 = track_cluster_chi2(daughter_energy + parent_energy, track_energy)

        chi2_evidence = self.chi2_base - (old_chi2 - new_chi2)
        global_chi2_evidence = (
            self.chi2_base + self.global_chi2_penalty - global_delta_chi2
        )
        using_global_chi2 = (
            new_chi2 > old_chi2 and new_chi2 > self.max_global_chi2
        ) or global_chi2_evidence < chi2_evidence

        # Corrections shared by both bases
        corrections = (
            self.layer_correction(daughter, correction_layer)
            + self.angular_correction(daughter)
            + self.energy_correction(daughter)
            + leaving_correction
            + self.photon_correction(daughter)
        )

        if using_global_chi2:
            required = global_chi2_evidence + corrections
        else:
            required = chi2_evidence + corrections
            required += self.low_energy_correction(daughter, correction_layer)

        return max(self.min_required_evidence, required)
