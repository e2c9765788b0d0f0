"""Secondary source geometry: boundary parametrization and array layouts.

Rounded box
-----------
The boundary of a box with rounded corners in the horizontal plane, with a
bounding box of edge length 2 centered at the origin. One quarter of the
boundary consists of

    first edge   :  (1, u*l)                          n = (-1, 0)
    arc          :  (1-ratio, 1-ratio) + ratio*(cos phi, sin phi)
                                                      n = -(cos phi, sin phi)
    second edge  :  ((1-u)*l, 1)                      n = (0, -1)

with the quarter length l = pi/2*ratio + 2*(1-ratio) and u in [0, 1). The
other three quarters are obtained by rotations of 90, 180 and 270 deg.
The parameter t runs counter-clockwise with period 1, starting at
t = 0 -> (1, 0, 0). Speed along the boundary is constant (4*l per unit t),
so t is a normalized arc-length coordinate.

    ratio = 0  ->  square (corners at t = 1/8, 3/8, 5/8, 7/8)
    ratio = 1  ->  unit circle

Integration weights
-------------------
    w_i = (d(t_i, t_{i-1}) / 2 + d(t_i, t_{i+1}) / 2) * 4*l

where d is the circular distance on [0, 1) and indices wrap around, i.e. the
last element of t is the left neighbour of the first.
"""

import logging
from typing import Tuple, Union

import numpy as np

from sfsynth.config import SFSConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Boundary segments of one quarter
# ---------------------------------------------------------------------------
SEGMENT_EDGE_A: int = 0
SEGMENT_ARC: int = 1
SEGMENT_EDGE_B: int = 2

# Rotation (x, y) -> R[q] @ (x, y) of quarter q, counter-clockwise by q*90 deg
_QUARTER_ROTATIONS = np.array([
    [[1.0, 0.0], [0.0, 1.0]],
    [[0.0, -1.0], [1.0, 0.0]],
    [[-1.0, 0.0], [0.0, -1.0]],
    [[0.0, 1.0], [-1.0, 0.0]],
])  # (4, 2, 2)


def quarter_length(ratio: float) -> float:
    """Length of one quarter of the rounded box boundary."""
    return np.pi / 2.0 * ratio + 2.0 * (1.0 - ratio)


def _is_monotonic(t: np.ndarray) -> bool:
    dt = np.diff(t)
    return bool(np.all(dt >= 0.0) or np.all(dt <= 0.0))


def classify_segments(u: np.ndarray, ratio: float) -> np.ndarray:
    """Assign each local quarter parameter u in [0, 1) to a boundary segment.

    Returns
    -------
    segment : np.ndarray of int, shape (N,)
        SEGMENT_EDGE_A, SEGMENT_ARC or SEGMENT_EDGE_B.
    """
    l = quarter_length(ratio)
    circle = (1.0 - ratio) / l  # u where the arc begins
    circle_prime = 1.0 - circle  # u where the arc ends

    segment = np.full(u.shape, SEGMENT_ARC, dtype=int)
    segment[u < circle] = SEGMENT_EDGE_A
    segment[u > circle_prime] = SEGMENT_EDGE_B
    return segment


def rounded_box(
    t: Union[float, np.ndarray],
    ratio: float,
    check_sorted: bool = True,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Positions, inward normals and weights on the boundary of a rounded box.

    Parameters
    ----------
    t : float or np.ndarray, shape (N,)
        Boundary parameter, periodic with period 1.
    ratio : float
        Ratio between the corner radius and the half edge length of the
        bounding box, in [0, 1].
    check_sorted : bool
        Reject t that is neither ascending nor descending. The weights are
        only meaningful for sorted t.

    Returns
    -------
    x0 : np.ndarray, shape (N, 3)
        Positions.
    n0 : np.ndarray, shape (N, 3)
        Unit normals pointing into the box. At a square corner (ratio = 0)
        the normal is the 45 deg bisector of the adjacent edges.
    w0 : np.ndarray, shape (N,)
        Integration weights (arc length associated with each sample).
    """
    if not 0.0 <= ratio <= 1.0:
        raise ValueError(f"ratio has to be between 0.0 and 1.0, got {ratio}")
    t = np.atleast_1d(np.asarray(t, dtype=np.float64))
    if t.ndim != 1:
        raise ValueError(f"t must be a scalar or 1D sequence, got shape {t.shape}")
    if check_sorted and not _is_monotonic(t):
        raise ValueError("t has to be sorted in ascending or descending order")

    N = len(t)
    ratio_prime = 1.0 - ratio
    l = quarter_length(ratio)

    quarter = np.mod(np.floor(4.0 * t), 4).astype(int)  # (N,)
    u = np.mod(4.0 * t, 1.0)  # (N,), local parameter within the quarter
    segment = classify_segments(u, ratio)  # (N,)

    xy = np.zeros((N, 2))
    nxy = np.zeros((N, 2))

    edge_a = segment == SEGMENT_EDGE_A
    xy[edge_a, 0] = 1.0
    xy[edge_a, 1] = u[edge_a] * l
    nxy[edge_a, 0] = -1.0

    edge_b = segment == SEGMENT_EDGE_B
    xy[edge_b, 0] = (1.0 - u[edge_b]) * l
    xy[edge_b, 1] = 1.0
    nxy[edge_b, 1] = -1.0

    arc = segment == SEGMENT_ARC
    if ratio == 0.0:
        # Degenerate arc: the corner itself
        phi = np.full(int(np.sum(arc)), np.pi / 4.0)
    else:
        circle = ratio_prime / l
        phi = (u[arc] - circle) / (1.0 - 2.0 * circle) * np.pi / 2.0
    xy[arc, 0] = ratio_prime + ratio * np.cos(phi)
    xy[arc, 1] = ratio_prime + ratio * np.sin(phi)
    nxy[arc, 0] = -np.cos(phi)
    nxy[arc, 1] = -np.sin(phi)

    rot = _QUARTER_ROTATIONS[quarter]  # (N, 2, 2)
    x0 = np.zeros((N, 3))
    n0 = np.zeros((N, 3))
    x0[:, :2] = np.einsum("nij,nj->ni", rot, xy)
    n0[:, :2] = np.einsum("nij,nj->ni", rot, nxy)

    # Circular distance to the left neighbour; index -1 wraps to the last
    dist = np.mod(t - t[np.arange(N) - 1], 1.0)  # (N,)
    dist = np.minimum(np.abs(dist), np.abs(1.0 - dist))
    dist_right = dist[(np.arange(N) + 1) % N]  # (N,)
    w0 = (0.5 * dist + 0.5 * dist_right) * 4.0 * l

    return x0, n0, w0


# ---------------------------------------------------------------------------
# Secondary source layouts
# ---------------------------------------------------------------------------
def _linear_positions(
    n_sources: int, size_m: float,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    if n_sources < 2:
        raise ValueError(f"A linear array needs at least 2 sources, got {n_sources}")
    x0 = np.zeros((n_sources, 3))
    x0[:, 0] = np.linspace(-size_m / 2.0, size_m / 2.0, n_sources)
    n0 = np.tile([0.0, -1.0, 0.0], (n_sources, 1))  # (N, 3)
    w0 = np.full(n_sources, size_m / (n_sources - 1))
    return x0, n0, w0


def _circular_positions(
    n_sources: int, size_m: float,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    radius_m = size_m / 2.0
    phi = np.arange(n_sources) * 2.0 * np.pi / n_sources  # (N,)
    direction = np.column_stack([np.cos(phi), np.sin(phi), np.zeros(n_sources)])
    x0 = radius_m * direction  # (N, 3)
    n0 = -direction  # (N, 3), pointing to the center
    w0 = np.full(n_sources, 2.0 * np.pi * radius_m / n_sources)
    return x0, n0, w0


def _box_positions(
    n_sources: int, size_m: float, ratio: float,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    t = np.arange(n_sources) / n_sources  # (N,)
    x0, n0, w0 = rounded_box(t, ratio)
    return x0 * size_m / 2.0, n0, w0 * size_m / 2.0


def secondary_source_positions(
    conf: SFSConfig,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Secondary source positions, directions and weights for the configured array.

    Geometries
    ----------
        linear / line     : along the x-axis, normals (0, -1, 0)
        circular / circle : diameter L, normals towards the center
        box               : square of edge L (rounded box with ratio 0)
        rounded-box       : rounded box of edge L with conf ratio

    Parameters
    ----------
    conf : SFSConfig

    Returns
    -------
    x0 : np.ndarray, shape (N, 3)
        Positions [m].
    n0 : np.ndarray, shape (N, 3)
        Unit directions of the secondary sources.
    w0 : np.ndarray, shape (N,)
        Integration weights [m].
    """
    ss = conf.secondary_sources
    geometry = ss.geometry
    if ss.number < 1:
        raise ValueError(f"Number of secondary sources must be >= 1, got {ss.number}")

    if geometry in ("linear", "line"):
        x0, n0, w0 = _linear_positions(ss.number, ss.size_m)
    elif geometry in ("circular", "circle"):
        x0, n0, w0 = _circular_positions(ss.number, ss.size_m)
    elif geometry == "box":
        x0, n0, w0 = _box_positions(ss.number, ss.size_m, 0.0)
    elif geometry == "rounded-box":
        x0, n0, w0 = _box_positions(ss.number, ss.size_m, ss.ratio)
    else:
        raise ValueError(f"Unknown secondary source geometry: {geometry}")

    x0 = x0 + np.asarray(ss.center_m, dtype=np.float64)[None, :]
    logger.info(
        "Secondary sources: %s, N=%d, L=%.3f m, center=(%.2f, %.2f, %.2f)",
        geometry, ss.number, ss.size_m, *ss.center_m,
    )
    return x0, n0, w0
