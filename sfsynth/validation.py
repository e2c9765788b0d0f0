"""Sanity checks for synthesized sound fields."""

import logging
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


class NumericalError(ValueError):
    """A computed field is non-finite or outside its admissible range."""


def check_wave_field(
    p: np.ndarray,
    frame: int,
    limit: Optional[float] = None,
) -> None:
    """Check a wave field for non-finite values and excessive amplitude.

    Parameters
    ----------
    p : np.ndarray
        Wave field.
    frame : int
        Time frame the field belongs to [samples] (reported in errors).
    limit : float or None
        Largest admissible |p|. None skips the range check.

    Raises
    ------
    NumericalError
    """
    p = np.asarray(p)
    finite = np.isfinite(p)
    if not np.all(finite):
        n_bad = int(np.sum(~finite))
        raise NumericalError(
            f"Wave field at frame {frame} contains {n_bad} non-finite values "
            f"(grid point on a secondary source?)"
        )

    max_abs = float(np.max(np.abs(p))) if p.size else 0.0
    if limit is not None and max_abs > limit:
        raise NumericalError(
            f"Wave field at frame {frame} exceeds amplitude limit: "
            f"max|p|={max_abs:.3e} > {limit:.3e}"
        )
    logger.debug("Wave field check passed: frame=%d, max|p|=%.3e", frame, max_abs)
