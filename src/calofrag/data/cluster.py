"""Module with the data class objects which represent calorimeter clusters."""

from dataclasses import dataclass
from typing import List

import numpy as np

from calofrag.math.linalg import centroid, fit_line

from .base import DataBase
from .hit import CaloHit

__all__ = ["FitResult", "Cluster"]


@dataclass(eq=False)
class FitResult(DataBase):
    """Result of a straight-line fit to (a subset of) the hits in a cluster.

    Attributes
    ----------
    success : bool
        Whether the fit succeeded
    direction : np.ndarray
        (3) Unit direction of the fitted line
    intercept : np.ndarray
        (3) Point through which the fitted line passes
    chi2 : float
        Mean squared perpendicular residual (mm^2)
    rms : float
        RMS of the perpendicular residuals (mm)
    """

    success: bool = False
    direction: np.ndarray = None
    intercept: np.ndarray = None
    chi2: float = 0.0
    rms: float = 0.0

    # Fixed-length attributes
    _fixed_length_attrs = (("direction", 3), ("intercept", 3))

    @property
    def radial_direction_cosine(self):
        """Cosine of the angle between the fit direction and the radial
        direction at the intercept.

        Returns
        -------
        float
            Radial direction cosine (0 if the fit failed)
        """
        norm = np.linalg.norm(self.intercept)
        if not self.success or not np.isfinite(norm) or norm == 0.0:
            return 0.0

        return float(np.dot(self.direction, self.intercept) / norm)

    @classmethod
    def from_points(cls, points, ref_dir=None):
        """Fits a line through a set of points.

        Parameters
        ----------
        points : np.ndarray
            (N, 3) Point coordinates
        ref_dir : np.ndarray, optional
            (3) Direction with which the fit direction must align. If not
            specified, the fit is oriented radially outward.

        Returns
        -------
        FitResult
            Fit result
        """
        points = np.ascontiguousarray(points, dtype=np.float64).reshape(-1, 3)
        if ref_dir is None:
            ref_dir = centroid(points) if len(points) else np.zeros(3)

        success, direction, intercept, chi2, rms = fit_line(
            points, np.asarray(ref_dir, dtype=np.float64)
        )
        if not success:
            return cls()

        return cls(
            success=True, direction=direction, intercept=intercept, chi2=chi2, rms=rms
        )


@dataclass(eq=False)
class Cluster(DataBase):
    """Group of calorimeter hits, possibly associated with tracks.

    Hits are accessed layer by layer, from the innermost to the outermost
    pseudolayer. Derived quantities are cached and invalidated whenever the
    hit content changes.

    Attributes
    ----------
    id : int
        Stable identifier of the cluster in the event
    hits : List[CaloHit]
        Hits which make up the cluster
    track_ids : List[int]
        IDs of the tracks associated with the cluster
    is_photon_fast : bool
        Outcome of the fast photon identification
    shower_profile_start : float
        Shower start estimated by the longitudinal profile (radiation lengths)
    shower_profile_discrepancy : float
        Discrepancy between observed and expected photon shower profiles
    energy_correction : float
        Multiplicative correction applied to the hadronic energy
    """

    id: int = -1
    hits: List[CaloHit] = None
    track_ids: List[int] = None
    is_photon_fast: bool = False
    shower_profile_start: float = 0.0
    shower_profile_discrepancy: float = 0.0
    energy_correction: float = 1.0

    # Attributes that must never be exported
    _skip_attrs = ("hits",)

    def __post_init__(self):
        """Gives fresh defaults to the list attributes, resets the cache."""
        super().__post_init__()
        if self.hits is None:
            self.hits = []
        if self.track_ids is None:
            self.track_ids = []
        self._cache = {}

    def _cached(self, key, func):
        """Returns a cached derived quantity, computing it if needed."""
        if key not in self._cache:
            self._cache[key] = func()

        return self._cache[key]

    def add_hit(self, hit):
        """Adds one hit to the cluster.

        Parameters
        ----------
        hit : CaloHit
            Hit to add
        """
        self.hits.append(hit)
        self._cache.clear()

    def absorb(self, other):
        """Transfers the hits and track associations of another cluster.

        Parameters
        ----------
        other : Cluster
            Cluster to absorb
        """
        self.hits.extend(other.hits)
        for track_id in other.track_ids:
            if track_id not in self.track_ids:
                self.track_ids.append(track_id)
        self._cache.clear()

    @property
    def ordered_hits(self):
        """Hits grouped by pseudolayer, in increasing layer order.

        Returns
        -------
        Dict[int, List[CaloHit]]
            Mapping from pseudolayer to the hits in that layer
        """

        def build():
            ordered = {}
            for hit in sorted(self.hits, key=lambda h: h.pseudo_layer):
                ordered.setdefault(hit.pseudo_layer, []).append(hit)
            return ordered

        return self._cached("ordered_hits", build)

    @property
    def n_hits(self):
        """Number of hits in the cluster."""
        return len(self.hits)

    @property
    def n_occupied_layers(self):
        """Number of pseudolayers with at least one hit."""
        return len(self.ordered_hits)

    @property
    def inner_layer(self):
        """Innermost occupied pseudolayer."""
        assert len(self.hits), "An empty cluster has no inner layer."
        return next(iter(self.ordered_hits))

    @property
    def outer_layer(self):
        """Outermost occupied pseudolayer."""
        assert len(self.hits), "An empty cluster has no outer layer."
        return next(reversed(self.ordered_hits))

    @property
    def hadronic_energy(self):
        """Sum of the hadronic energies of the hits."""
        return self._cached(
            "hadronic_energy", lambda: float(sum(h.hadronic_energy for h in self.hits))
        )

    @property
    def corrected_hadronic_energy(self):
        """Hadronic energy after the cluster-level energy correction."""
        return self.energy_correction * self.hadronic_energy

    @property
    def mip_fraction(self):
        """Fraction of the hits flagged as minimum ionizing."""
        if not len(self.hits):
            return 0.0

        return sum(h.is_mip for h in self.hits) / len(self.hits)

    @property
    def points(self):
        """(N, 3) array of hit positions, in increasing layer order."""
        return self._cached(
            "points",
            lambda: np.ascontiguousarray(
                [h.position for layer in self.ordered_hits.values() for h in layer],
                dtype=np.float64,
            ).reshape(-1, 3),
        )

    @property
    def layers(self):
        """(N) array of hit pseudolayers, aligned with :attr:`points`."""
        return self._cached(
            "layers",
            lambda: np.array(
                [h.pseudo_layer for layer in self.ordered_hits.values() for h in layer],
                dtype=np.int64,
            ),
        )

    @property
    def cell_lengths(self):
        """(N) array of hit cell length scales, aligned with :attr:`points`."""
        return self._cached(
            "cell_lengths",
            lambda: np.array(
                [
                    h.cell_length_scale
                    for layer in self.ordered_hits.values()
                    for h in layer
                ],
                dtype=np.float64,
            ),
        )

    def centroid(self, layer):
        """Mean position of the hits in one pseudolayer.

        Parameters
        ----------
        layer : int
            Pseudolayer

        Returns
        -------
        np.ndarray
            (3) Centroid of the layer
        """
        hits = self.ordered_hits.get(layer)
        assert hits, f"Cluster {self.id} has no hit in layer {layer}."

        return np.mean([h.position for h in hits], axis=0)

    @property
    def fit_to_all_hits(self):
        """Straight-line fit to all the hits, oriented radially outward.

        Returns
        -------
        FitResult
            Fit result
        """
        return self._cached("fit_all", lambda: FitResult.from_points(self.points))

    def fit_start(self, n_layers):
        """Straight-line fit to the hits in the first occupied layers.

        Parameters
        ----------
        n_layers : int
            Number of occupied layers to include

        Returns
        -------
        FitResult
            Fit result, oriented towards increasing layers
        """
        layers = list(self.ordered_hits)[:n_layers]
        return self._fit_layers(layers)

    def fit_end(self, n_layers):
        """Straight-line fit to the hits in the last occupied layers.

        Parameters
        ----------
        n_layers : int
            Number of occupied layers to include

        Returns
        -------
        FitResult
            Fit result, oriented towards increasing layers
        """
        layers = list(self.ordered_hits)[-n_layers:]
        return self._fit_layers(layers)

    def _fit_layers(self, layers):
        """Fits the hits of a list of layers, oriented inner to outer."""
        if not layers:
            return FitResult()

        points = [h.position for l in layers for h in self.ordered_hits[l]]
        ref_dir = self.centroid(layers[-1]) - self.centroid(layers[0])
        if not np.any(ref_dir):
            ref_dir = self.centroid(layers[0])

        return FitResult.from_points(points, ref_dir)
