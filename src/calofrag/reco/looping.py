"""Merging of cluster pairs produced by a single looping track.

Low transverse momentum particles curl up in the magnetic field and can
re-enter the calorimeter, which yields two clusters whose outer ends face
each other. These are identified from straight-line fits to their last
occupied layers.
"""

import numpy as np

from calofrag.math.distance import closest_distance, line_closest_approach

from .base import AlgorithmBase

__all__ = ["LoopingTracksAlgorithm"]


class LoopingTracksAlgorithm(AlgorithmBase):
    """Merges clusters which are likely to belong to the same looping track."""

    # Name of the algorithm (as specified in the configuration)
    name = "looping_tracks"

    # The algorithm relies on the calorimeter layer structure
    need_geometry = True

    def __init__(
        self,
        geometry,
        n_layers_to_fit=5,
        fit_chi2_cut=100.0,
        n_deep_in_hcal_layers=10,
        can_merge_min_mip_fraction=0.7,
        can_merge_max_rms=5.0,
        min_hits_in_cluster=4,
        min_occupied_layers_in_cluster=2,
        max_outer_layer_difference=6,
        max_centroid_difference=2000.0,
        fit_direction_dot_product_cut_ecal=-0.1,
        fit_direction_dot_product_cut_hcal=0.0,
        closest_hit_distance_cut_ecal=250.0,
        closest_hit_distance_cut_hcal=500.0,
        fit_results_closest_approach_cut_ecal=50.0,
        fit_results_closest_approach_cut_hcal=200.0,
        n_good_features_for_cluster_merge=2,
        good_features_max_fit_dot_product=-0.5,
        good_features_max_fit_approach=50.0,
        good_features_max_layer_difference=4,
        good_features_min_mip_fraction=0.9,
    ):
        """Store the looping track merging parameters.

        Parameters
        ----------
        geometry : Geometry
            Calorimeter geometry
        n_layers_to_fit : int, default 5
            Number of outer occupied layers used in the cluster fits
        fit_chi2_cut : float, default 100.
            Maximum chi2 of a usable cluster fit
        n_deep_in_hcal_layers : int, default 10
            Number of HCal layers beyond which a cluster end is deep in the HCal
        can_merge_min_mip_fraction : float, default 0.7
            MIP fraction above which a cluster can be merged
        can_merge_max_rms : float, default 5.
            Fit RMS below which a cluster can be merged
        min_hits_in_cluster : int, default 4
            Minimum number of hits in a cluster
        min_occupied_layers_in_cluster : int, default 2
            Minimum number of occupied layers in a cluster
        max_outer_layer_difference : int, default 6
            Maximum difference between the outer layers of the two clusters
        max_centroid_difference : float, default 2000.
            Maximum distance between the outer layer centroids (mm)
        fit_direction_dot_product_cut_ecal : float, default -0.1
            Maximum fit direction dot product
        fit_direction_dot_product_cut_hcal : float, default 0.
            Maximum fit direction dot product, deep in the HCal
        closest_hit_distance_cut_ecal : float, default 250.
            Maximum distance between outer layer hits (mm)
        closest_hit_distance_cut_hcal : float, default 500.
            Maximum distance between outer layer hits, deep in the HCal (mm)
        fit_results_closest_approach_cut_ecal : float, default 50.
            Maximum distance of closest approach between fits (mm)
        fit_results_closest_approach_cut_hcal : float, default 200.
            Maximum distance of closest approach between fits, outside the
            ECal (mm)
        n_good_features_for_cluster_merge : int, default 2
            Number of good features needed to merge outside of the deep HCal
        good_features_max_fit_dot_product : float, default -0.5
            Fit direction dot product below which a pair has a good feature
        good_features_max_fit_approach : float, default 50.
            Fit closest approach below which a pair has a good feature (mm)
        good_features_max_layer_difference : int, default 4
            Outer layer difference below which a pair has a good feature
        good_features_min_mip_fraction : float, default 0.9
            MIP fraction above which both clusters have a good feature
        """
        # Store the geometry used throughout the run
        self.geometry = geometry
        self.n_ecal_layers = geometry.n_ecal_layers

        # Store the cluster selection parameters
        self.n_layers_to_fit = n_layers_to_fit
        self.fit_chi2_cut = fit_chi2_cut
        self.n_deep_in_hcal_layers = n_deep_in_hcal_layers
        self.can_merge_min_mip_fraction = can_merge_min_mip_fraction
        self.can_merge_max_rms = can_merge_max_rms
        self.min_hits_in_cluster = min_hits_in_cluster
        self.min_occupied_layers_in_cluster = min_occupied_layers_in_cluster

        # Store the pair compatibility parameters
        self.max_outer_layer_difference = max_outer_layer_difference
        self.max_centroid_difference = max_centroid_difference
        self.fit_direction_dot_product_cut_ecal = fit_direction_dot_product_cut_ecal
        self.fit_direction_dot_product_cut_hcal = fit_direction_dot_product_cut_hcal
        self.closest_hit_distance_cut_ecal = closest_hit_distance_cut_ecal
        self.closest_hit_distance_cut_hcal = closest_hit_distance_cut_hcal
        self.fit_results_closest_approach_cut_ecal = (
            fit_results_closest_approach_cut_ecal
        )
        self.fit_results_closest_approach_cut_hcal = (
            fit_results_closest_approach_cut_hcal
        )

        # Store the good feature parameters
        self.n_good_features_for_cluster_merge = n_good_features_for_cluster_merge
        self.good_features_max_fit_dot_product = good_features_max_fit_dot_product
        self.good_features_max_fit_approach = good_features_max_fit_approach
        self.good_features_max_layer_difference = good_features_max_layer_difference
        self.good_features_min_mip_fraction = good_features_min_mip_fraction

    def can_merge(self, cluster):
        """Checks whether a cluster is track-like enough to be merged.

        Parameters
        ----------
        cluster : Cluster
            Cluster to check

        Returns
        -------
        bool
            `True` if the cluster can be merged
        """
        if cluster.mip_fraction >= self.can_merge_min_mip_fraction:
            return True

        fit = cluster.fit_to_all_hits

        return fit.success and fit.rms <= self.can_merge_max_rms

    def process(self, event):
        """Merge looping track clusters in one event.

        Parameters
        ----------
        event : Event
            Event container

        Returns
        -------
        dict
            Number of merges performed
        """
        # Fit the end of every usable cluster, in order of inner layer
        clusters = [c for c in event.clusters.values() if c.n_hits]
        clusters.sort(key=lambda c: c.inner_layer)
        relations = []
        for cluster in clusters:
            if not self.can_merge(cluster):
                continue
            if (
                cluster.n_hits < self.min_hits_in_cluster
                or cluster.n_occupied_layers < self.min_occupied_layers_in_cluster
            ):
                continue

            fit = cluster.fit_end(self.n_layers_to_fit)
            if fit.success and fit.chi2 < self.fit_chi2_cut:
                relations.append([cluster, fit, False])

        # Compare every pair once, a parent is re-examined after a merge
        n_merges = 0
        i = 0
        while i < len(relations):
            parent, parent_fit, defunct = relations[i]
            if defunct:
                i += 1
                continue

            best = self.find_best_daughter(parent, parent_fit, relations[i + 1 :])
            if best is None:
                i += 1
                continue

            event.merge_and_delete(parent.id, best[0].id)
            best[2] = True
            n_merges += 1

        return {"n_merges": n_merges}

    def find_best_daughter(self, parent, parent_fit, candidates):
        """Finds the best looping track partner of a parent cluster.

        Parameters
        ----------
        parent : Cluster
            Parent cluster
        parent_fit : FitResult
            Fit to the outer layers of the parent
        candidates : List[list]
            (cluster, fit, defunct) relations of the candidate daughters

        Returns
        -------
        list
            Relation of the best daughter, `None` if there is none
        """
        geo, n_deep = self.geometry, self.n_deep_in_hcal_layers
        parent_outer = parent.outer_layer
        parent_outside_ecal = parent_outer > self.n_ecal_layers
        parent_deep = geo.deep_in_hcal(parent_outer, n_deep)

        best, min_approach = None, np.inf
        for relation in candidates:
            daughter, daughter_fit, defunct = relation
            if defunct:
                continue

            # Are both clusters outside of the ECal? If so, relax the cuts
            daughter_outer = daughter.outer_layer
            outside_ecal = parent_outside_ecal and daughter_outer > self.n_ecal_layers
            deep_in_hcal = parent_deep and geo.deep_in_hcal(daughter_outer, n_deep)

            # Apply loose cuts first
            layer_diff = abs(parent_outer - daughter_outer)
            if layer_diff > self.max_outer_layer_difference:
                continue

            centroid_diff = parent.centroid(parent_outer) - daughter.centroid(
                daughter_outer
            )
            if np.linalg.norm(centroid_diff) > self.max_centroid_difference:
                continue

            # Check that fit directions are compatible with a looping track
            dot_cut = (
                self.fit_direction_dot_product_cut_hcal
                if deep_in_hcal
                else self.fit_direction_dot_product_cut_ecal
            )
            dot = float(np.dot(parent_fit.direction, daughter_fit.direction))
            if dot > dot_cut:
                continue

            dir_diff = daughter_fit.direction - parent_fit.direction
            if np.dot(centroid_diff, dir_diff) <= 0.0:
                continue

            # Cut on the distance between hits in the outer layers
            hit_cut = (
                self.closest_hit_distance_cut_hcal
                if deep_in_hcal
                else self.closest_hit_distance_cut_ecal
            )
            if self.outer_layer_distance(parent, daughter) > hit_cut:
                continue

            # Cut on the distance of closest approach between the fits
            approach_cut = (
                self.fit_results_closest_approach_cut_hcal
                if outside_ecal
                else self.fit_results_closest_approach_cut_ecal
            )
            approach = line_closest_approach(
                parent_fit.intercept,
                parent_fit.direction,
                daughter_fit.intercept,
                daughter_fit.direction,
            )
            if approach > approach_cut or approach > min_approach:
                continue

            # Merge deep in the HCal, otherwise look for good features
            n_good = 0
            if not deep_in_hcal:
                n_good += dot < self.good_features_max_fit_dot_product
                n_good += approach < self.good_features_max_fit_approach
                n_good += layer_diff < self.good_features_max_layer_difference
                n_good += (
                    parent.mip_fraction > self.good_features_min_mip_fraction
                    and daughter.mip_fraction > self.good_features_min_mip_fraction
                )

            if deep_in_hcal or n_good >= self.n_good_features_for_cluster_merge:
                best, min_approach = relation, approach

        return best

    @staticmethod
    def outer_layer_distance(cluster_i, cluster_j):
        """Closest distance between the hits in the outer layers of two clusters.

        Parameters
        ----------
        cluster_i : Cluster
            First cluster
        cluster_j : Cluster
            Second cluster

        Returns
        -------
        float
            Closest distance (mm)
        """
        points_i = cluster_i.points[cluster_i.layers == cluster_i.outer_layer]
        points_j = cluster_j.points[cluster_j.layers == cluster_j.outer_layer]

        return closest_distance(
            np.ascontiguousarray(points_i), np.ascontiguousarray(points_j)
        )
