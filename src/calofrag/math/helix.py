"""Charged-particle helix in a solenoidal magnetic field along the z axis.

Lengths are expressed in mm, momenta in GeV/c and the field in Tesla.
"""

import numpy as np
from scipy.optimize import minimize_scalar

__all__ = ["Helix"]

# Conversion between (GeV/c) / (T * mm) and the curvature radius
FIELD_CONSTANT = 0.299792458e-3


class Helix:
    """Helix parametrized by the turning angle measured from a reference point.

    When the particle is neutral or the field vanishes the helix degenerates
    to a straight line parametrized by its path length.

    Attributes
    ----------
    reference_point : np.ndarray
        (3) Position of the particle at the reference point
    momentum : np.ndarray
        (3) Momentum of the particle at the reference point
    charge : int
        Particle charge, in units of the elementary charge
    bfield : float
        Magnetic field strength along z
    """

    # Number of coarse samples used to seed the closest approach search
    _n_samples = 181

    def __init__(self, reference_point, momentum, charge, bfield):
        """Initialize the helix geometry.

        Parameters
        ----------
        reference_point : np.ndarray
            (3) Position of the particle at the reference point
        momentum : np.ndarray
            (3) Momentum of the particle at the reference point
        charge : int
            Particle charge, in units of the elementary charge
        bfield : float
            Magnetic field strength along z
        """
        self.reference_point = np.asarray(reference_point, dtype=np.float64)
        self.momentum = np.asarray(momentum, dtype=np.float64)
        self.charge = charge
        self.bfield = bfield

        assert np.linalg.norm(self.momentum) > 0.0, "Helix needs a non-zero momentum."

        # Transverse quantities
        self.pt = np.hypot(self.momentum[0], self.momentum[1])
        self.is_straight = self.charge * self.bfield == 0.0 or self.pt == 0.0
        if self.is_straight:
            return

        # Rotation sense in the transverse plane (positive is counter-clockwise)
        self.sense = -np.sign(self.charge * self.bfield)
        self.radius = self.pt / (FIELD_CONSTANT * abs(self.charge * self.bfield))
        self.tan_lambda = self.momentum[2] / self.pt

        phi0 = np.arctan2(self.momentum[1], self.momentum[0])
        perp = self.sense * np.array([-np.sin(phi0), np.cos(phi0)])
        self.center = self.reference_point[:2] + self.radius * perp
        offset = self.reference_point[:2] - self.center
        self.alpha0 = np.arctan2(offset[1], offset[0])

    @property
    def direction(self):
        """Unit momentum direction at the reference point."""
        return self.momentum / np.linalg.norm(self.momentum)

    def position(self, t):
        """Position along the helix.

        Parameters
        ----------
        t : float
            Turning angle (path length in mm for a straight line)

        Returns
        -------
        np.ndarray
            (3) Position on the helix
        """
        if self.is_straight:
            return self.reference_point + t * self.direction

        alpha = self.alpha0 + self.sense * t
        return np.array(
            [
                self.center[0] + self.radius * np.cos(alpha),
                self.center[1] + self.radius * np.sin(alpha),
                self.reference_point[2] + self.radius * self.tan_lambda * t,
            ]
        )

    def momentum_at(self, t):
        """Momentum along the helix.

        Parameters
        ----------
        t : float
            Turning angle (path length in mm for a straight line)

        Returns
        -------
        np.ndarray
            (3) Momentum vector
        """
        if self.is_straight:
            return self.momentum.copy()

        phi = np.arctan2(self.momentum[1], self.momentum[0]) + self.sense * t
        return np.array(
            [self.pt * np.cos(phi), self.pt * np.sin(phi), self.momentum[2]]
        )

    def closest_parameter(self, point):
        """Helix parameter of the point of closest approach to a point.

        Parameters
        ----------
        point : np.ndarray
            (3) Point coordinates

        Returns
        -------
        float
            Turning angle (or path length) at closest approach
        """
        point = np.asarray(point, dtype=np.float64)
        if self.is_straight:
            return np.dot(point - self.reference_point, self.direction)

        # Coarse scan over one turn on either side, then refine locally
        ts = np.linspace(-2 * np.pi, 2 * np.pi, self._n_samples)
        dists = [np.sum((self.position(t) - point) ** 2) for t in ts]
        best = int(np.argmin(dists))
        step = ts[1] - ts[0]
        result = minimize_scalar(
            lambda t: np.sum((self.position(t) - point) ** 2),
            bounds=(ts[best] - step, ts[best] + step),
            method="bounded",
        )

        return result.x if result.fun < dists[best] else ts[best]

    def distance_to_point(self, point):
        """Distance of closest approach between the helix and a point.

        Parameters
        ----------
        point : np.ndarray
            (3) Point coordinates

        Returns
        -------
        float
            Distance of closest approach (mm)
        """
        t = self.closest_parameter(point)
        return float(np.linalg.norm(self.position(t) - np.asarray(point)))

    def extrapolated_momentum(self, point):
        """Momentum of the particle at its closest approach to a point.

        Parameters
        ----------
        point : np.ndarray
            (3) Point coordinates

        Returns
        -------
        np.ndarray
            (3) Momentum vector
        """
        return self.momentum_at(self.closest_parameter(point))

    def point_in_z(self, z):
        """Position at which the helix reaches a given z coordinate.

        Parameters
        ----------
        z : float
            Target z coordinate (mm)

        Returns
        -------
        np.ndarray
            (3) Position on the helix, `None` if the helix never reaches `z`
        """
        dz = z - self.reference_point[2]
        if self.is_straight:
            if self.direction[2] == 0.0:
                return None
            return self.position(dz / self.direction[2])

        if self.tan_lambda == 0.0:
            return None

        return self.position(dz / (self.radius * self.tan_lambda))

    def point_on_circle(self, radius):
        """First position, moving forward, at which the helix reaches a
        given transverse radius.

        Parameters
        ----------
        radius : float
            Transverse radius of the target cylinder (mm)

        Returns
        -------
        np.ndarray
            (3) Position on the helix, `None` if the cylinder is never reached
        """
        if self.is_straight:
            start = self.reference_point[:2]
            axis = self.direction[:2]
            a = np.dot(axis, axis)
            if a == 0.0:
                return None
            b = 2.0 * np.dot(start, axis)
            c = np.dot(start, start) - radius**2
            disc = b**2 - 4.0 * a * c
            if disc < 0.0:
                return None
            roots = [(-b - np.sqrt(disc)) / (2.0 * a), (-b + np.sqrt(disc)) / (2.0 * a)]
            roots = [s for s in roots if s >= 0.0]
            if not roots:
                return None
            return self.position(min(roots))

        # Intersections of the projected helix circle with the target circle
        dist = np.linalg.norm(self.center)
        if (
            dist == 0.0
            or dist > radius + self.radius
            or dist < abs(radius - self.radius)
        ):
            return None

        along = (radius**2 - self.radius**2 + dist**2) / (2.0 * dist)
        across = np.sqrt(max(radius**2 - along**2, 0.0))
        unit = self.center / dist
        perp = np.array([-unit[1], unit[0]])

        # Keep the intersection reached first along the direction of motion
        best_t = None
        for sign in (-1.0, 1.0):
            point = along * unit + sign * across * perp
            offset = point - self.center
            alpha = np.arctan2(offset[1], offset[0])
            t = np.mod(self.sense * (alpha - self.alpha0), 2.0 * np.pi)
            if best_t is None or t < best_t:
                best_t = t

        return self.position(best_t)
