"""Interpolation of impulse responses between three measured directions.

The desired direction p is written as a linear combination of the three
measurement directions (rows of the basis matrix B):

    B^T g = p,      ir = g_1 ir_1 + g_2 ir_2 + g_3 ir_3
"""

import logging

import numpy as np
from scipy import linalg

logger = logging.getLogger(__name__)


def intpol_ir3d(
    desired_point: np.ndarray,
    ir1: np.ndarray,
    ir2: np.ndarray,
    ir3: np.ndarray,
    basis: np.ndarray,
) -> np.ndarray:
    """Interpolate three impulse responses for a desired direction.

    Parameters
    ----------
    desired_point : np.ndarray, shape (3,)
        Desired direction (or position).
    ir1, ir2, ir3 : np.ndarray, shape (L,) or (L, C)
        Impulse responses measured at the directions basis[0..2].
    basis : np.ndarray, shape (3, 3)
        Measurement directions, one per row.

    Returns
    -------
    ir : np.ndarray, same shape as ir1
    """
    ir1, ir2, ir3 = (np.asarray(ir, dtype=np.float64) for ir in (ir1, ir2, ir3))
    if not (len(ir1) == len(ir2) == len(ir3)):
        raise ValueError(
            f"The given IRs have not the same length: "
            f"{len(ir1)}, {len(ir2)}, {len(ir3)}"
        )
    basis = np.asarray(basis, dtype=np.float64)
    if basis.shape != (3, 3):
        raise ValueError(f"basis must have shape (3, 3), got {basis.shape}")

    g = linalg.solve(basis.T, np.asarray(desired_point, dtype=np.float64))  # (3,)
    logger.debug("IR interpolation weights: %s", g)
    return g[0] * ir1 + g[1] * ir2 + g[2] * ir3
