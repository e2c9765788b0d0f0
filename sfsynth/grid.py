"""Spatial evaluation grids for sound field computations."""

import logging
from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

from sfsynth.config import SFSConfig

logger = logging.getLogger(__name__)

AxisRange = Union[float, Sequence[float]]


@dataclass
class SpatialGrid:
    """Axes and coordinate meshes of a (up to) 3D evaluation grid.

    Attributes
    ----------
    x, y, z : np.ndarray, shape (Nx,), (Ny,), (Nz,)
        Axis values [m]. Degenerate axes hold a single value.
    xx, yy, zz : np.ndarray
        Coordinate meshes [m], all of the same shape. Singleton dimensions
        are squeezed, so an x/y plane has shape (Ny, Nx).
    """

    x: np.ndarray
    y: np.ndarray
    z: np.ndarray
    xx: np.ndarray
    yy: np.ndarray
    zz: np.ndarray

    @property
    def shape(self):
        return self.xx.shape

    @property
    def n_points(self) -> int:
        return int(self.xx.size)

    def points(self) -> np.ndarray:
        """Grid points as an (M, 3) array."""
        return np.column_stack([self.xx.ravel(), self.yy.ravel(), self.zz.ravel()])


def _axis(values: AxisRange, resolution: int, name: str) -> np.ndarray:
    values = np.atleast_1d(np.asarray(values, dtype=np.float64))
    if values.size == 1:
        return values
    if values.size != 2:
        raise ValueError(f"{name} must be a single value or [min, max], got {values}")
    lo, hi = float(values[0]), float(values[1])
    if hi < lo:
        raise ValueError(f"{name}: max ({hi}) is smaller than min ({lo})")
    if hi == lo:
        return np.array([lo])
    return np.linspace(lo, hi, resolution)


def xyz_grid(
    X: AxisRange,
    Y: AxisRange,
    Z: AxisRange,
    conf: SFSConfig,
) -> SpatialGrid:
    """Build the evaluation grid spanned by X, Y, Z.

    Parameters
    ----------
    X, Y, Z : float or [min, max]
        Axis ranges [m]. A single value (or min == max) gives a degenerate
        axis, e.g. Z = 0 for a horizontal plane.
    conf : SFSConfig
        Uses conf.resolution points per non-degenerate axis.

    Returns
    -------
    SpatialGrid
    """
    x = _axis(X, conf.resolution, "X")
    y = _axis(Y, conf.resolution, "Y")
    z = _axis(Z, conf.resolution, "Z")

    xx, yy, zz = np.meshgrid(x, y, z, indexing="xy")  # (Ny, Nx, Nz)
    grid = SpatialGrid(
        x=x, y=y, z=z,
        xx=np.squeeze(xx), yy=np.squeeze(yy), zz=np.squeeze(zz),
    )
    logger.debug("Grid: Nx=%d, Ny=%d, Nz=%d, shape=%s", len(x), len(y), len(z), grid.shape)
    return grid
