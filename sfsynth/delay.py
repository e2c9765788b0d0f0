"""Delay line for sampled signals.

    y[k] = weight * x[k - delay]

The integer part of the delay is an index shift (length preserved, zero
filled), the fractional part is applied by cubic-spline resampling.
"""

import logging

import numpy as np
from scipy.interpolate import interp1d

logger = logging.getLogger(__name__)

MIN_SAMPLES_FRACTIONAL: int = 4  # cubic spline support


def _shift(sig: np.ndarray, n: int) -> np.ndarray:
    L = sig.shape[-1]
    out = np.zeros_like(sig)
    if abs(n) >= L:
        return out
    if n >= 0:
        out[..., n:] = sig[..., :L - n]
    else:
        out[..., :L + n] = sig[..., -n:]
    return out


def delayline(
    sig: np.ndarray,
    delay_samples: float,
    weight: float = 1.0,
) -> np.ndarray:
    """Delay and weight a signal along its last axis.

    Parameters
    ----------
    sig : np.ndarray, shape (..., L)
        Input signal(s).
    delay_samples : float
        Delay [samples]. Negative values advance the signal; samples moved
        outside [0, L) are dropped.
    weight : float
        Amplitude weight.

    Returns
    -------
    out : np.ndarray, shape (..., L)
    """
    sig = np.asarray(sig, dtype=np.float64)
    if sig.ndim == 0:
        raise ValueError("delayline expects at least a 1D signal")

    n_int = int(np.floor(delay_samples))
    frac = float(delay_samples) - n_int
    out = _shift(sig, n_int)

    if frac > 0.0:
        L = sig.shape[-1]
        if L < MIN_SAMPLES_FRACTIONAL:
            raise ValueError(
                f"Fractional delay needs at least {MIN_SAMPLES_FRACTIONAL} samples, got {L}"
            )
        k = np.arange(L, dtype=np.float64)  # (L,)
        spline = interp1d(
            k, out, kind="cubic", axis=-1,
            bounds_error=False, fill_value=0.0,
        )
        out = spline(k - frac)
        logger.debug("Fractional delay: %d + %.4f samples", n_int, frac)

    return weight * out
