"""Tests for the straight-line fits."""

import numpy as np
import pytest

from calofrag.math.linalg import centroid, fit_line


def test_centroid():
    """Mean position of a set of points."""
    x = np.array([[0.0, 0.0, 0.0], [2.0, 4.0, 6.0]])
    np.testing.assert_allclose(centroid(x), [1.0, 2.0, 3.0])


def test_fit_collinear():
    """Collinear points are fitted exactly, along the reference direction."""
    x = np.array([[float(i), 2.0 * i, 0.0] for i in range(5)])
    success, direction, intercept, chi2, rms = fit_line(x, np.array([-1.0, 0, 0]))
    assert success
    np.testing.assert_allclose(direction, -np.array([1.0, 2.0, 0.0]) / np.sqrt(5))
    np.testing.assert_allclose(intercept, [2.0, 4.0, 0.0])
    assert chi2 == pytest.approx(0.0, abs=1e-9)
    assert rms == pytest.approx(0.0, abs=1e-5)


def test_fit_residuals():
    """Residuals are measured perpendicular to the fitted line."""
    x = np.array(
        [[0.0, 1.0, 0.0], [10.0, -1.0, 0.0], [20.0, 1.0, 0.0], [30.0, -1.0, 0.0]]
    )
    success, direction, _, chi2, rms = fit_line(x, np.array([1.0, 0.0, 0.0]))
    assert success
    assert direction[0] > 0.99
    assert 0.0 < chi2 < 1.0
    assert rms == pytest.approx(np.sqrt(chi2))


def test_fit_failure():
    """A single point or coincident points cannot be fitted."""
    ref = np.array([1.0, 0.0, 0.0])
    assert not fit_line(np.array([[1.0, 2.0, 3.0]]), ref)[0]
    assert not fit_line(np.array([[1.0, 2.0, 3.0], [1.0, 2.0, 3.0]]), ref)[0]
