"""Monochromatic sound fields from circular harmonic expansion coefficients.

    P(x) = sum_{m=-N}^{N}  P_m  f_m(k r)  exp(i m phi)

with (r, phi) the polar coordinates of x relative to the expansion center
x_q, k = 2 pi f / c and the radial functions

    regular  ('R') :  f_m = J_m(kr)           (finite at x_q)
    singular ('S') :  f_m = H_m^(2)(kr)       (outgoing for exp(+i w t))
"""

import logging
from typing import Optional, Sequence, Tuple

import numpy as np
from scipy.special import hankel2, jv

from sfsynth.config import SFSConfig
from sfsynth.grid import AxisRange, xyz_grid

logger = logging.getLogger(__name__)

EXPANSION_MODES: Tuple[str, ...] = ("R", "S")


def circbasis_mono_grid(
    X: AxisRange,
    Y: AxisRange,
    Z: AxisRange,
    order: int,
    f_hz: float,
    xq_m: Sequence[float],
    conf: SFSConfig,
):
    """Regular/singular circular basis functions evaluated on a grid.

    Returns
    -------
    jn, h2n : list of np.ndarray
        Radial functions for m = -order..order.
    ym : list of np.ndarray
        Angular functions exp(i m phi) for m = -order..order.
    x, y, z : np.ndarray
        Grid axes [m].
    """
    grid = xyz_grid(X, Y, Z, conf)
    xq = np.asarray(xq_m, dtype=np.float64)
    dx = grid.xx - xq[0]
    dy = grid.yy - xq[1]
    kr = 2.0 * np.pi * f_hz / conf.c * np.sqrt(dx ** 2 + dy ** 2)
    phi = np.arctan2(dy, dx)

    m_range = range(-order, order + 1)
    jn = [jv(m, kr) for m in m_range]
    h2n = [hankel2(m, kr) for m in m_range]
    ym = [np.exp(1j * m * phi) for m in m_range]
    return jn, h2n, ym, grid.x, grid.y, grid.z


def sound_field_mono_circexp(
    X: AxisRange,
    Y: AxisRange,
    Z: AxisRange,
    Pm: np.ndarray,
    mode: str,
    f_hz: float,
    xq_m: Optional[Sequence[float]] = None,
    conf: Optional[SFSConfig] = None,
):
    """Sound field given by regular or singular circular expansion coefficients.

    Parameters
    ----------
    X, Y, Z : float or [min, max]
        Grid ranges [m].
    Pm : np.ndarray, shape (2N+1,)
        Expansion coefficients for m = -N..N.
    mode : str
        'R' (regular) or 'S' (singular).
    f_hz : float
        Frequency [Hz].
    xq_m : sequence of float, optional
        Expansion center [m], default origin.
    conf : SFSConfig, optional

    Returns
    -------
    P : np.ndarray, complex128
        Sound field on the grid.
    x, y, z : np.ndarray
        Grid axes [m].
    """
    if conf is None:
        conf = SFSConfig()
    if xq_m is None:
        xq_m = (0.0, 0.0, 0.0)
    Pm = np.atleast_1d(np.asarray(Pm))
    if Pm.ndim != 1:
        raise ValueError(f"Pm must be a vector, got shape {Pm.shape}")
    if (len(Pm) - 1) % 2 != 0:
        raise ValueError(f"Number of coefficients has to be odd, got {len(Pm)}")
    if f_hz <= 0:
        raise ValueError(f"Frequency must be positive, got {f_hz}")
    if mode not in EXPANSION_MODES:
        raise ValueError(f"{mode} is an unknown mode, expected one of {EXPANSION_MODES}")

    order = (len(Pm) - 1) // 2
    jn, h2n, ym, x, y, z = circbasis_mono_grid(X, Y, Z, order, f_hz, xq_m, conf)
    fn = jn if mode == "R" else h2n

    P = np.zeros(np.shape(ym[0]), dtype=np.complex128)
    for coeff, fn_m, ym_m in zip(Pm, fn, ym):
        P += coeff * fn_m * ym_m
    logger.debug("Circular expansion field: mode=%s, order=%d, f=%.1f Hz", mode, order, f_hz)
    return P, x, y, z
