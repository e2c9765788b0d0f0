"""Time-domain wave field synthesis from secondary source driving signals.

Formulation
-----------
For a field point x at observation frame t_f, each secondary source x0_i
with driving signal d_i contributes a 3D monopole

    p(x, t_f) = 1 / (pi L) * sum_i  d_i(t_f - |x - x0_i| / c) / (4 pi |x - x0_i|)

The driving signals are time reversed and advanced by (n_samples - frame)
samples, so that evaluating the shifted signal at the propagation delay
r/c*fs [samples] yields the driving signal at the emission time. Sample k of
the shifted signal sits at delay k + 1, so the field at an integer delay tau
is d_i[frame - tau]. Fractional delays use cubic-spline interpolation; delays
outside the knots [1, n_samples] (r < c/fs, or beyond the signal length)
contribute zero instead of being extrapolated. The factor 1/(pi L)
normalizes the amplitude to the array length L.

Singularity
-----------
A grid point on a secondary source (r = 0) makes the Green's function
unbounded. It is not masked: the resulting non-finite value is reported by
check_wave_field() as a NumericalError.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Optional, Tuple

import numpy as np
from scipy.interpolate import interp1d

from sfsynth.config import SFSConfig
from sfsynth.delay import delayline
from sfsynth.driving_functions import driving_function_imp_nfchoa_25d
from sfsynth.geometry import secondary_source_positions
from sfsynth.grid import AxisRange, SpatialGrid, xyz_grid
from sfsynth.validation import check_wave_field

logger = logging.getLogger(__name__)

NEAR_FIELD_WARN_M: float = 1e-3


@dataclass
class WaveField:
    """Wave field snapshot at one time frame.

    Attributes
    ----------
    x, y, z : np.ndarray
        Grid axes [m].
    p : np.ndarray
        Sound pressure on the grid, shape of the grid meshes.
    frame : int
        Observation time frame [samples].
    x0 : np.ndarray, shape (N, 3)
        Secondary source positions used [m].
    """

    x: np.ndarray
    y: np.ndarray
    z: np.ndarray
    p: np.ndarray
    frame: int
    x0: np.ndarray


def prepare_driving_signals(d: np.ndarray, frame: int) -> np.ndarray:
    """Time reverse driving signals and advance them to the observation frame.

    Parameters
    ----------
    d : np.ndarray, shape (L, N)
        Driving signals, one column per secondary source.
    frame : int
        Observation time frame [samples].

    Returns
    -------
    d_shifted : np.ndarray, shape (L, N)
    """
    L = d.shape[0]
    d_rev = d[::-1, :]  # later samples are emitted earlier
    return delayline(d_rev.T, -L + frame).T


def source_contribution(
    grid: SpatialGrid,
    x0_i: np.ndarray,
    d_i: np.ndarray,
    c_m_per_s: float,
    fs_hz: float,
) -> Tuple[np.ndarray, float]:
    """Field of one secondary source driven by its (prepared) signal.

    Parameters
    ----------
    grid : SpatialGrid
    x0_i : np.ndarray, shape (3,)
        Source position [m].
    d_i : np.ndarray, shape (L,)
        Time reversed and shifted driving signal.
    c_m_per_s : float
    fs_hz : float

    Returns
    -------
    p_i : np.ndarray, shape of the grid meshes
    r_min : float
        Distance of the closest grid point to the source [m].
    """
    r = np.sqrt(
        (grid.xx - x0_i[0]) ** 2
        + (grid.yy - x0_i[1]) ** 2
        + (grid.zz - x0_i[2]) ** 2
    )  # (grid shape)
    with np.errstate(divide="ignore"):
        g = 1.0 / (4.0 * np.pi * r)  # 3D monopole amplitude decay

    # Fractional propagation delays require interpolation of d_i
    samples = np.arange(1, len(d_i) + 1, dtype=np.float64)
    spline = interp1d(
        samples, d_i, kind="cubic", bounds_error=False, fill_value=0.0,
    )
    ds = spline(r / c_m_per_s * fs_hz)
    with np.errstate(invalid="ignore"):
        return ds * g, float(np.min(r))


def synthesize(
    grid: SpatialGrid,
    x0: np.ndarray,
    d: np.ndarray,
    array_length_m: float,
    conf: SFSConfig,
) -> np.ndarray:
    """Wave field of secondary sources x0 driven by d at frame conf.frame.

    Parameters
    ----------
    grid : SpatialGrid
        Evaluation grid.
    x0 : np.ndarray, shape (N, 3)
        Secondary source positions [m].
    d : np.ndarray, shape (L, N)
        Driving signals sampled at conf.fs.
    array_length_m : float
        Array length L [m] used for amplitude normalization.
    conf : SFSConfig
        Uses c, fs, frame, n_workers and field_limit.

    Returns
    -------
    p : np.ndarray, shape of the grid meshes

    Raises
    ------
    ValueError
        If conf or the inputs are invalid.
    NumericalError
        If the field is non-finite or exceeds conf.field_limit.
    """
    conf.validate()
    x0 = np.atleast_2d(np.asarray(x0, dtype=np.float64))
    d = np.asarray(d, dtype=np.float64)
    if d.ndim == 1:
        d = d[:, None]
    if d.shape[1] != x0.shape[0]:
        raise ValueError(
            f"Driving signals for {d.shape[1]} sources given, but {x0.shape[0]} "
            "secondary sources"
        )
    if array_length_m <= 0:
        raise ValueError(f"Array length must be positive, got {array_length_m}")
    if d.shape[0] < 4:
        raise ValueError(f"Driving signals need at least 4 samples, got {d.shape[0]}")

    d = prepare_driving_signals(d, conf.frame)
    n_sources = x0.shape[0]

    def _contribution(i: int) -> Tuple[np.ndarray, float]:
        return source_contribution(grid, x0[i], d[:, i], conf.c, conf.fs)

    if conf.n_workers > 1 and n_sources > 1:
        with ThreadPoolExecutor(max_workers=conf.n_workers) as pool:
            contributions = list(pool.map(_contribution, range(n_sources)))
    else:
        contributions = [_contribution(i) for i in range(n_sources)]

    # Sum in source order so the result does not depend on n_workers
    p = np.zeros(grid.shape)
    for p_i, _ in contributions:
        p = p + p_i

    p = p / (np.pi * array_length_m)

    min_dist = min(r_min for _, r_min in contributions)
    if min_dist < NEAR_FIELD_WARN_M:
        logger.warning("Grid point %.2e m from a secondary source", min_dist)

    check_wave_field(p, conf.frame, conf.field_limit)
    return p


def wave_field_imp_nfchoa_25d(
    X: AxisRange,
    Y: AxisRange,
    Z: AxisRange,
    xs: np.ndarray,
    src: str,
    L: float,
    conf: Optional[SFSConfig] = None,
) -> WaveField:
    """Wave field of an impulse reproduced by 2.5D NFC-HOA.

    Pipeline: secondary sources -> grid -> driving signals -> synthesize().

    Parameters
    ----------
    X, Y, Z : float or [min, max]
        Grid ranges [m].
    xs : np.ndarray, shape (3,)
        Plane wave direction ('pw') or point source position ('ps') [m].
    src : str
        'pw' or 'ps'.
    L : float
        Array length (diameter of the circular array) [m].
    conf : SFSConfig, optional

    Returns
    -------
    WaveField
    """
    if conf is None:
        conf = SFSConfig()
    if L <= 0:
        raise ValueError(f"Array length must be positive, got {L}")
    conf.validate()
    if conf.secondary_sources.size_m != L:
        logger.debug(
            "Array length L=%.3f m overrides configured size %.3f m",
            L, conf.secondary_sources.size_m,
        )
        conf = _with_array_size(conf, L)

    x0, _, _ = secondary_source_positions(conf)
    grid = xyz_grid(X, Y, Z, conf)
    d = driving_function_imp_nfchoa_25d(x0, np.asarray(xs, dtype=np.float64), src, conf)
    p = synthesize(grid, x0, d, L, conf)

    logger.info(
        "Wave field: src=%s, frame=%d, grid=%s, max|p|=%.3e",
        src, conf.frame, p.shape, float(np.max(np.abs(p))),
    )
    return WaveField(x=grid.x, y=grid.y, z=grid.z, p=p, frame=conf.frame, x0=x0)


def _with_array_size(conf: SFSConfig, size_m: float) -> SFSConfig:
    return replace(
        conf,
        secondary_sources=replace(conf.secondary_sources, size_m=size_m),
    )
