"""Tests for the distance routines between hit collections."""

import numpy as np
import pytest

from calofrag.math.distance import (
    close_fraction,
    closest_distance,
    cone_fraction,
    contact_layers,
    line_closest_approach,
    sqeuclidean,
)


class TestClosestDistance:
    """Closest pair of points between two sets."""

    def test_sqeuclidean(self):
        """Squared distance between two points."""
        x = np.array([0.0, 0.0, 0.0])
        y = np.array([1.0, 2.0, 2.0])
        assert sqeuclidean(x, y) == pytest.approx(9.0)

    def test_closest_pair(self):
        """The closest pair is found among all combinations."""
        x = np.array([[0.0, 0.0, 0.0], [100.0, 0.0, 0.0]])
        y = np.array([[3.0, 4.0, 0.0], [50.0, 0.0, 0.0]])
        assert closest_distance(x, y) == pytest.approx(5.0)

    def test_empty_set(self):
        """An empty set is infinitely far away."""
        x = np.empty((0, 3))
        y = np.array([[1.0, 0.0, 0.0]])
        assert np.isinf(closest_distance(x, y))


class TestFractions:
    """Close-hit and cone fractions."""

    def test_close_fraction(self):
        """Only the points with a close neighbor are counted."""
        x = np.array([[0.0, 0.0, 0.0], [0.0, 30.0, 0.0], [0.0, 200.0, 0.0]])
        y = np.array([[0.0, -10.0, 0.0]])
        assert close_fraction(x, y, 50.0) == pytest.approx(2.0 / 3.0)
        assert close_fraction(x, y, 20.0) == pytest.approx(1.0 / 3.0)
        assert close_fraction(np.empty((0, 3)), y, 20.0) == 0.0

    def test_cone_fraction(self):
        """Points are counted when their angle to the axis is small enough."""
        apex = np.zeros(3)
        axis = np.array([2.0, 0.0, 0.0])
        x = np.array([[10.0, 0.0, 0.0], [10.0, 10.0, 0.0], [-10.0, 0.0, 0.0]])
        assert cone_fraction(x, apex, axis, 0.9) == pytest.approx(1.0 / 3.0)
        assert cone_fraction(x, apex, axis, 0.5) == pytest.approx(2.0 / 3.0)

    def test_cone_fraction_degenerate(self):
        """A null axis or an empty set gives no point in the cone."""
        x = np.array([[10.0, 0.0, 0.0]])
        assert cone_fraction(x, np.zeros(3), np.zeros(3), 0.9) == 0.0
        assert cone_fraction(np.empty((0, 3)), np.zeros(3), np.ones(3), 0.9) == 0.0


class TestContactLayers:
    """Counting of the layers in which two collections touch."""

    @staticmethod
    def collection(layers, y):
        """One point per layer along x, offset by `y`."""
        layers = np.asarray(layers, dtype=np.int64)
        points = np.zeros((len(layers), 3))
        points[:, 0] = 10.0 * layers
        points[:, 1] = y
        return points, layers

    def test_full_contact(self):
        """Every shared layer is in contact when the collections are close."""
        x, lx = self.collection(range(5, 17), 15.0)
        y, ly = self.collection(range(1, 21), 0.0)
        scales = np.full(len(x), 10.0)
        n_contact, n_compared = contact_layers(x, lx, scales, y, ly, 2.0)
        assert n_contact == 12
        assert n_compared == 12

    def test_partial_overlap(self):
        """Only the layers occupied by both collections are compared."""
        x, lx = self.collection(range(15, 25), 15.0)
        y, ly = self.collection(range(1, 21), 0.0)
        scales = np.full(len(x), 10.0)
        n_contact, n_compared = contact_layers(x, lx, scales, y, ly, 2.0)
        assert n_compared == 6
        assert n_contact == 6

    def test_no_contact(self):
        """Distant collections share layers but do not touch."""
        x, lx = self.collection(range(5, 17), 120.0)
        y, ly = self.collection(range(1, 21), 0.0)
        scales = np.full(len(x), 10.0)
        n_contact, n_compared = contact_layers(x, lx, scales, y, ly, 2.0)
        assert n_contact == 0
        assert n_compared == 12

    def test_disjoint_layers(self):
        """Collections without common layers are never compared."""
        x, lx = self.collection(range(30, 35), 0.0)
        y, ly = self.collection(range(1, 21), 0.0)
        scales = np.full(len(x), 10.0)
        assert contact_layers(x, lx, scales, y, ly, 2.0) == (0, 0)


class TestLineClosestApproach:
    """Distance of closest approach between two lines."""

    def test_skew_lines(self):
        """Perpendicular lines offset along z."""
        approach = line_closest_approach(
            np.zeros(3),
            np.array([1.0, 0.0, 0.0]),
            np.array([0.0, 0.0, 5.0]),
            np.array([0.0, 1.0, 0.0]),
        )
        assert approach == pytest.approx(5.0)

    def test_intersecting_lines(self):
        """Coplanar lines which cross have no separation."""
        approach = line_closest_approach(
            np.zeros(3),
            np.array([1.0, 3.0, 0.0]),
            np.array([0.0, 10.0, 0.0]),
            np.array([1.0, -3.0, 0.0]),
        )
        assert approach == pytest.approx(0.0, abs=1e-9)

    def test_parallel_lines(self):
        """Parallel lines are separated by their perpendicular distance."""
        approach = line_closest_approach(
            np.zeros(3),
            np.array([2.0, 0.0, 0.0]),
            np.array([7.0, 3.0, 0.0]),
            np.array([1.0, 0.0, 0.0]),
        )
        assert approach == pytest.approx(3.0)
