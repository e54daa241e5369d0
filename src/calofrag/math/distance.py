"""Numba JIT compiled distance routines between calorimeter hit collections.

This module is entirely dedicated to 3D points, which is how calorimeter hits
are represented throughout this package. Each collection is provided as an
(N, 3) array of hit positions, optionally accompanied by the pseudolayer
of each hit and its cell length scale.
"""

import numba as nb
import numpy as np

__all__ = [
    "sqeuclidean",
    "closest_distance",
    "close_fraction",
    "cone_fraction",
    "contact_layers",
    "line_closest_approach",
]


@nb.njit(cache=True)
def sqeuclidean(x: nb.float64[:], y: nb.float64[:]) -> nb.float64:
    """Compute the squared Euclidean distance between two 3D points.

    Parameters
    ----------
    x : np.ndarray
        (3) Coorinates of the first point
    y : np.ndarray
        (3) Coorinates of the second point

    Returns
    -------
    float
        Squared Euclidean distance
    """
    return (y[0] - x[0]) ** 2 + (y[1] - x[1]) ** 2 + (y[2] - x[2]) ** 2


@nb.njit(cache=True)
def closest_distance(x: nb.float64[:, :], y: nb.float64[:, :]) -> nb.float64:
    """Finds the distance between the closest pair of points in two sets.

    Parameters
    ----------
    x : np.ndarray
        (N, 3) array of point coordinates in the first set
    y : np.ndarray
        (M, 3) array of point coordinates in the second set

    Returns
    -------
    float
        Distance between the two closest points (infinite if a set is empty)
    """
    dist2 = np.inf
    for i in range(len(x)):
        for j in range(len(y)):
            d2 = sqeuclidean(x[i], y[j])
            if d2 < dist2:
                dist2 = d2

    return np.sqrt(dist2)


@nb.njit(cache=True)
def close_fraction(
    x: nb.float64[:, :], y: nb.float64[:, :], max_dist: nb.float64
) -> nb.float64:
    """Fraction of the points in the first set which have at least one point
    of the second set closer than a certain distance.

    Parameters
    ----------
    x : np.ndarray
        (N, 3) array of point coordinates in the first set
    y : np.ndarray
        (M, 3) array of point coordinates in the second set
    max_dist : float
        Distance below which a point is considered close

    Returns
    -------
    float
        Fraction of close points in the first set
    """
    if len(x) == 0:
        return 0.0

    max_dist2 = max_dist * max_dist
    count = 0
    for i in range(len(x)):
        for j in range(len(y)):
            if sqeuclidean(x[i], y[j]) < max_dist2:
                count += 1
                break

    return count / len(x)


@nb.njit(cache=True)
def cone_fraction(
    x: nb.float64[:, :],
    apex: nb.float64[:],
    axis: nb.float64[:],
    cos_half_angle: nb.float64,
) -> nb.float64:
    """Fraction of points which lie within a cone.

    Parameters
    ----------
    x : np.ndarray
        (N, 3) array of point coordinates
    apex : np.ndarray
        (3) Position of the cone apex
    axis : np.ndarray
        (3) Direction of the cone axis (need not be normalized)
    cos_half_angle : float
        Cosine of the cone half-opening angle

    Returns
    -------
    float
        Fraction of points contained in the cone
    """
    if len(x) == 0:
        return 0.0

    axis_norm = np.sqrt(axis[0] ** 2 + axis[1] ** 2 + axis[2] ** 2)
    if axis_norm == 0.0:
        return 0.0

    count = 0
    for i in range(len(x)):
        diff = x[i] - apex
        diff_norm = np.sqrt(diff[0] ** 2 + diff[1] ** 2 + diff[2] ** 2)
        if diff_norm == 0.0:
            continue

        cos = (diff[0] * axis[0] + diff[1] * axis[1] + diff[2] * axis[2]) / (
            diff_norm * axis_norm
        )
        if cos > cos_half_angle:
            count += 1

    return count / len(x)


@nb.njit(cache=True)
def contact_layers(
    x: nb.float64[:, :],
    layers_x: nb.int64[:],
    scales_x: nb.float64[:],
    y: nb.float64[:, :],
    layers_y: nb.int64[:],
    threshold: nb.float64,
) -> (nb.int64, nb.int64):
    """Counts the pseudolayers in which two hit collections touch.

    Two collections are compared in every pseudolayer occupied by both. A
    compared layer is in contact if at least one pair of hits in that layer
    is closer than `threshold` times the cell length scale of the hit in the
    first collection.

    Parameters
    ----------
    x : np.ndarray
        (N, 3) Hit positions of the first collection
    layers_x : np.ndarray
        (N) Pseudolayer of each hit in the first collection
    scales_x : np.ndarray
        (N) Cell length scale of each hit in the first collection
    y : np.ndarray
        (M, 3) Hit positions of the second collection
    layers_y : np.ndarray
        (M) Pseudolayer of each hit in the second collection
    threshold : float
        Contact distance, in units of cell length scale

    Returns
    -------
    int
        Number of layers in contact
    int
        Number of layers occupied by both collections
    """
    if len(x) == 0 or len(y) == 0:
        return 0, 0

    # Restrict the search to the overlapping layer range
    lo = max(layers_x.min(), layers_y.min())
    hi = min(layers_x.max(), layers_y.max())
    if hi < lo:
        return 0, 0

    size = hi - lo + 1
    has_x = np.zeros(size, dtype=np.bool_)
    has_y = np.zeros(size, dtype=np.bool_)
    contact = np.zeros(size, dtype=np.bool_)
    for i in range(len(x)):
        if layers_x[i] >= lo and layers_x[i] <= hi:
            has_x[layers_x[i] - lo] = True
    for j in range(len(y)):
        if layers_y[j] >= lo and layers_y[j] <= hi:
            has_y[layers_y[j] - lo] = True

    # Look for one close pair of hits in each shared layer
    for i in range(len(x)):
        layer = layers_x[i]
        if layer < lo or layer > hi:
            continue
        if not has_y[layer - lo] or contact[layer - lo]:
            continue

        max_dist = threshold * scales_x[i]
        max_dist2 = max_dist * max_dist
        for j in range(len(y)):
            if layers_y[j] != layer:
                continue
            if sqeuclidean(x[i], y[j]) < max_dist2:
                contact[layer - lo] = True
                break

    n_contact, n_compared = 0, 0
    for k in range(size):
        if has_x[k] and has_y[k]:
            n_compared += 1
            if contact[k]:
                n_contact += 1

    return n_contact, n_compared


@nb.njit(cache=True)
def _cross(x: nb.float64[:], y: nb.float64[:]) -> nb.float64[:]:
    """Cross product of two 3D vectors."""
    out = np.empty(3, dtype=np.float64)
    out[0] = x[1] * y[2] - x[2] * y[1]
    out[1] = x[2] * y[0] - x[0] * y[2]
    out[2] = x[0] * y[1] - x[1] * y[0]

    return out


@nb.njit(cache=True)
def line_closest_approach(
    point_a: nb.float64[:],
    dir_a: nb.float64[:],
    point_b: nb.float64[:],
    dir_b: nb.float64[:],
) -> nb.float64:
    """Distance of closest approach between two infinite lines.

    Parameters
    ----------
    point_a : np.ndarray
        (3) Point on the first line
    dir_a : np.ndarray
        (3) Direction of the first line
    point_b : np.ndarray
        (3) Point on the second line
    dir_b : np.ndarray
        (3) Direction of the second line

    Returns
    -------
    float
        Distance of closest approach
    """
    diff = point_b - point_a
    cross = _cross(dir_a, dir_b)
    cross_norm = np.sqrt(cross[0] ** 2 + cross[1] ** 2 + cross[2] ** 2)

    # Parallel lines: perpendicular distance from one line to the other
    if cross_norm < 1e-9:
        norm_a = np.sqrt(dir_a[0] ** 2 + dir_a[1] ** 2 + dir_a[2] ** 2)
        perp = _cross(diff, dir_a)
        return np.sqrt(perp[0] ** 2 + perp[1] ** 2 + perp[2] ** 2) / norm_a

    return abs(diff[0] * cross[0] + diff[1] * cross[1] + diff[2] * cross[2]) / (
        cross_norm
    )
