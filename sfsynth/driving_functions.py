"""Time-domain 2.5D NFC-HOA driving functions for circular arrays.

Mathematical formulation
------------------------
Each circular harmonic order m is realized as an IIR filter obtained from
the reverse Bessel polynomial theta_m:

    plane wave   :  H_m(s) = s^m / prod(s - p_i c / r0)
    point source :  H_m(s) = prod(s - p_i c / rs) / prod(s - p_i c / r0)

where p_i are the roots of theta_m (scipy.signal.besselap, norm='delay'),
r0 the array radius and rs the source distance. The filters are
discretized with the bilinear transform and have unit gain at Nyquist.
The driving signal of the secondary source at angle phi_0 is

    d(phi_0, t) = w * sum_{m=0}^{M} (2 - delta_m0) h_m(t) cos(m (phi_0 - phi_s))

with phi_s the angle at which the virtual wave enters the array and

    plane wave   :  w = 2,              no delay
    point source :  w = 1 / (2 pi rs),  delay (rs - r0) / c

The plane wave time reference is the instant its wavefront enters the
array (the continuous-time advance r0/c is not applied).

Reference
---------
    Spors S., Kuscher V., Ahrens J. (2011) "Efficient realization of
    model-based rendering for 2.5-dimensional near-field compensated
    higher order Ambisonics", WASPAA.
"""

import logging
from typing import List, Tuple

import numpy as np
from scipy import signal as sps

from sfsynth.config import SFSConfig
from sfsynth.delay import delayline

logger = logging.getLogger(__name__)

SOURCE_TYPES: Tuple[str, ...] = ("pw", "ps")
CIRCULAR_TOLERANCE: float = 1e-6  # relative spread of source radii


def max_order_circular_harmonics(n_sources: int) -> int:
    """Largest circular harmonic order resolved by N equiangular sources."""
    return n_sources // 2 - (n_sources + 1) % 2


def _array_polar(x0: np.ndarray, center_m: np.ndarray) -> Tuple[float, np.ndarray]:
    """Radius and angles of a circular array about its center."""
    rel = x0[:, :2] - center_m[None, :2]  # (N, 2)
    radii = np.sqrt(np.sum(rel ** 2, axis=1))  # (N,)
    r0 = float(np.mean(radii))
    if r0 <= 0.0:
        raise ValueError("Secondary sources coincide with the array center")
    if np.max(np.abs(radii - r0)) > CIRCULAR_TOLERANCE * r0:
        raise ValueError(
            "NFC-HOA requires a circular array: source radii range "
            f"[{np.min(radii):.4f}, {np.max(radii):.4f}] m"
        )
    phi0 = np.arctan2(rel[:, 1], rel[:, 0])  # (N,)
    return r0, phi0


def modal_filters(
    max_order: int,
    r0_m: float,
    fs_hz: float,
    c_m_per_s: float,
    rs_m: float = np.inf,
) -> List[np.ndarray]:
    """Second-order-section modal filters for orders 0..max_order.

    Parameters
    ----------
    max_order : int
    r0_m : float
        Array radius [m].
    fs_hz : float
        Sample rate [Hz].
    c_m_per_s : float
        Speed of sound [m/s].
    rs_m : float
        Point source distance [m]; inf gives plane wave filters.

    Returns
    -------
    sos : list of np.ndarray
        sos[m] has shape (n_sections, 6). Order 0 is the identity.
    """
    sos = [np.array([[1.0, 0.0, 0.0, 1.0, 0.0, 0.0]])]
    for m in range(1, max_order + 1):
        _, roots, _ = sps.besselap(m, norm="delay")  # (m,)
        s_pole = roots * c_m_per_s / r0_m
        if np.isinf(rs_m):
            s_zero = np.zeros(m)
        else:
            s_zero = roots * c_m_per_s / rs_m
        z_zero, z_pole, gain = sps.bilinear_zpk(s_zero, s_pole, 1.0, fs_hz)
        sos.append(sps.zpk2sos(z_zero, z_pole, gain))
    logger.debug(
        "Modal filters: M=%d, r0=%.3f m, rs=%s m", max_order, r0_m, rs_m,
    )
    return sos


def driving_function_imp_nfchoa_25d(
    x0: np.ndarray,
    xs: np.ndarray,
    src: str,
    conf: SFSConfig,
) -> np.ndarray:
    """Impulse driving signals of a 2.5D NFC-HOA circular array.

    Parameters
    ----------
    x0 : np.ndarray, shape (N, 3)
        Secondary source positions on a circle around
        conf.secondary_sources.center_m [m].
    xs : np.ndarray, shape (3,)
        'pw': propagation direction of the plane wave;
        'ps': position of the point source [m].
    src : str
        'pw' (plane wave) or 'ps' (point source).
    conf : SFSConfig
        Uses c, fs, n_samples, nfchoa_order and the array center.

    Returns
    -------
    d : np.ndarray, shape (n_samples, N)
        Driving signal of each secondary source.
    """
    if src not in SOURCE_TYPES:
        raise ValueError(f"Unknown source type '{src}', expected one of {SOURCE_TYPES}")
    x0 = np.atleast_2d(np.asarray(x0, dtype=np.float64))
    xs = np.asarray(xs, dtype=np.float64)
    if xs.shape != (3,):
        raise ValueError(f"xs must have shape (3,), got {xs.shape}")

    N = x0.shape[0]
    center_m = np.asarray(conf.secondary_sources.center_m, dtype=np.float64)
    r0, phi0 = _array_polar(x0, center_m)
    max_order = (
        conf.nfchoa_order if conf.nfchoa_order is not None
        else max_order_circular_harmonics(N)
    )

    if src == "pw":
        norm = float(np.linalg.norm(xs[:2]))
        if norm == 0.0:
            raise ValueError("Plane wave direction must have a horizontal component")
        phi_s = np.arctan2(-xs[1], -xs[0])  # the wave enters from -n_pw
        rs = np.inf
        weight = 2.0
        delay_s = 0.0
    else:
        rel = xs[:2] - center_m[:2]
        rs = float(np.linalg.norm(rel))
        if rs <= r0:
            raise ValueError(
                f"Point source at distance {rs:.3f} m lies inside the array "
                f"(r0={r0:.3f} m); focused sources are not supported"
            )
        phi_s = np.arctan2(rel[1], rel[0])
        weight = 1.0 / (2.0 * np.pi * rs)
        delay_s = (rs - r0) / conf.c

    sos = modal_filters(max_order, r0, conf.fs, conf.c, rs)

    pulse = np.zeros(conf.n_samples)
    pulse[0] = 1.0
    d = np.zeros((conf.n_samples, N))  # (L, N)
    for m, sos_m in enumerate(sos):
        h_m = sps.sosfilt(sos_m, pulse)  # (L,)
        order_weight = 1.0 if m == 0 else 2.0
        d += order_weight * np.outer(h_m, np.cos(m * (phi0 - phi_s)))  # (L, N)
    d *= weight

    if delay_s > 0.0:
        d = delayline(d.T, delay_s * conf.fs).T

    logger.info(
        "NFC-HOA 2.5D driving signals: src=%s, N=%d, M=%d, r0=%.3f m, "
        "delay=%.2f samples",
        src, N, max_order, r0, delay_s * conf.fs,
    )
    return d
