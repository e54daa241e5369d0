"""Numba JIT compiled straight-line fits to calorimeter hit positions."""

import numba as nb
import numpy as np

__all__ = ["centroid", "fit_line"]


@nb.njit(cache=True)
def centroid(x: nb.float64[:, :]) -> nb.float64[:]:
    """Numba implementation of `np.mean(x, axis=0)` for 3D points.

    Parameters
    ----------
    x : np.ndarray
        (N, 3) array of point coordinates

    Returns
    -------
    np.ndarray
        (3) Mean position
    """
    out = np.zeros(3, dtype=np.float64)
    for i in range(len(x)):
        out += x[i]

    return out / len(x)


@nb.njit(cache=True)
def fit_line(
    x: nb.float64[:, :], ref_dir: nb.float64[:]
) -> (nb.boolean, nb.float64[:], nb.float64[:], nb.float64, nb.float64):
    """Fits a straight line through a set of points.

    The line passes through the centroid of the points and follows the
    principal axis of their covariance matrix. The direction is flipped, if
    necessary, so that it has a non-negative projection on `ref_dir`.

    Parameters
    ----------
    x : np.ndarray
        (N, 3) array of point coordinates
    ref_dir : np.ndarray
        (3) Reference direction used to orient the fit

    Returns
    -------
    bool
        Whether the fit succeeded (needs two or more points with some spread)
    np.ndarray
        (3) Unit direction of the line
    np.ndarray
        (3) Intercept of the line (centroid of the points)
    float
        Chi2 of the fit, mean squared perpendicular residual
    float
        RMS of the perpendicular residuals
    """
    direction = np.zeros(3, dtype=np.float64)
    if len(x) < 2:
        return False, direction, np.zeros(3, dtype=np.float64), 0.0, 0.0

    # Compute the covariance matrix of the centered points
    inter = centroid(x)
    centered = x - inter
    cov = np.dot(np.ascontiguousarray(centered.T), centered) / len(x)
    if np.trace(cov) <= 0.0:
        return False, direction, inter, 0.0, 0.0

    # The principal axis is the eigenvector with the largest eigenvalue
    w, v = np.linalg.eigh(cov)
    direction[:] = v[:, 2]
    if np.dot(direction, ref_dir) < 0.0:
        direction = -direction

    # Compute the perpendicular residuals
    sq_sum = 0.0
    for i in range(len(x)):
        proj = np.dot(centered[i], direction)
        perp2 = np.dot(centered[i], centered[i]) - proj * proj
        sq_sum += max(perp2, 0.0)

    chi2 = sq_sum / len(x)

    return True, direction, inter, chi2, np.sqrt(chi2)
