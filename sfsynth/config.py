"""Configuration for sound field synthesis simulations.

A single ``SFSConfig`` dataclass carries every parameter the numerical core
reads: physical constants, time-domain settings, the spatial grid resolution
and the secondary source (loudspeaker array) description.

Defaults
--------
    c            = 343 m/s
    fs           = 44100 Hz
    n_samples    = 2048   (length of impulse driving signals)
    resolution   = 300    (grid points per non-degenerate axis)
    array        = circular, 64 sources, L = 3 m, centered at origin
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

# ---------------------------------------------------------------------------
# Physical constants and defaults
# ---------------------------------------------------------------------------
SPEED_OF_SOUND_M_PER_S: float = 343.0
DEFAULT_SAMPLE_RATE_HZ: float = 44100.0
DEFAULT_N_SAMPLES: int = 2048
DEFAULT_GRID_RESOLUTION: int = 300
DEFAULT_FIELD_LIMIT: float = 1e6

GEOMETRIES: Tuple[str, ...] = (
    "linear", "line", "circular", "circle", "box", "rounded-box",
)


@dataclass
class SecondarySourceConfig:
    """Secondary source array description.

    Attributes
    ----------
    geometry : str
        One of ``GEOMETRIES``.
    number : int
        Number of secondary sources.
    size_m : float
        Array length L [m]: line length, circle diameter or box edge.
    center_m : tuple of float
        Array center [m].
    ratio : float
        Corner rounding of the rounded box (0 = square, 1 = circle).
    """

    geometry: str = "circular"
    number: int = 64
    size_m: float = 3.0
    center_m: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    ratio: float = 0.5


@dataclass
class SFSConfig:
    """Simulation configuration.

    Attributes
    ----------
    c : float
        Speed of sound [m/s].
    fs : float
        Sample rate [Hz].
    frame : int
        Observation time frame [samples] of time-domain wave fields.
    n_samples : int
        Length of impulse driving signals [samples].
    resolution : int
        Number of grid points along each non-degenerate axis.
    field_limit : float or None
        Largest admissible |p| of a synthesized wave field, None disables
        the range check (non-finite values are always rejected).
    n_workers : int
        Worker threads for the per-source accumulation (1 = serial).
    nfchoa_order : int or None
        Maximum NFC-HOA order, None derives it from the number of sources.
    useplot, debug : bool
        Carried for callers; the numerical core ignores them.
    secondary_sources : SecondarySourceConfig
    """

    c: float = SPEED_OF_SOUND_M_PER_S
    fs: float = DEFAULT_SAMPLE_RATE_HZ
    frame: int = 0
    n_samples: int = DEFAULT_N_SAMPLES
    resolution: int = DEFAULT_GRID_RESOLUTION
    field_limit: Optional[float] = DEFAULT_FIELD_LIMIT
    n_workers: int = 1
    nfchoa_order: Optional[int] = None
    useplot: bool = False
    debug: bool = False
    secondary_sources: SecondarySourceConfig = field(
        default_factory=SecondarySourceConfig,
    )

    def validate(self) -> None:
        """Check parameter ranges. Raises ValueError on failure."""
        if self.c <= 0:
            raise ValueError(f"Speed of sound must be positive, got {self.c}")
        if self.fs <= 0:
            raise ValueError(f"Sample rate must be positive, got {self.fs}")
        if self.n_samples < 1:
            raise ValueError(f"n_samples must be >= 1, got {self.n_samples}")
        if self.resolution < 1:
            raise ValueError(f"resolution must be >= 1, got {self.resolution}")
        if self.n_workers < 1:
            raise ValueError(f"n_workers must be >= 1, got {self.n_workers}")
        if self.nfchoa_order is not None and self.nfchoa_order < 0:
            raise ValueError(f"nfchoa_order must be >= 0, got {self.nfchoa_order}")

        ss = self.secondary_sources
        if ss.geometry not in GEOMETRIES:
            raise ValueError(
                f"Unknown secondary source geometry '{ss.geometry}', "
                f"expected one of {GEOMETRIES}"
            )
        if ss.number < 1:
            raise ValueError(f"Number of secondary sources must be >= 1, got {ss.number}")
        if ss.size_m <= 0:
            raise ValueError(f"Array size must be positive, got {ss.size_m}")
        if not 0.0 <= ss.ratio <= 1.0:
            raise ValueError(f"ratio has to be between 0.0 and 1.0, got {ss.ratio}")
