"""Unit tests for circular expansion fields and 3-point IR interpolation.

Usage
-----
    python -m pytest tests/test_expansion.py -v
"""

import sys
from pathlib import Path

import numpy as np
import pytest
from scipy.special import hankel2, jv

# Ensure project root on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from sfsynth.circexp import sound_field_mono_circexp
from sfsynth.config import SFSConfig
from sfsynth.ir_interpolation import intpol_ir3d


@pytest.fixture
def conf():
    return SFSConfig(resolution=6)


# ---------------------------------------------------------------------------
# Circular expansion
# ---------------------------------------------------------------------------
class TestCircularExpansion:
    def test_regular_order_zero(self, conf):
        """Only P_0 = 1 gives J_0(kr)."""
        f_hz = 500.0
        P, x, y, z = sound_field_mono_circexp(
            [0.1, 1.0], 0.0, 0.0, np.array([0.0, 1.0, 0.0]), "R", f_hz, conf=conf,
        )
        k = 2.0 * np.pi * f_hz / conf.c
        np.testing.assert_allclose(P, jv(0, k * x), rtol=1e-12)
        assert np.all(y == 0.0) and np.all(z == 0.0)

    def test_singular_order_zero(self, conf):
        f_hz = 800.0
        P, x, _, _ = sound_field_mono_circexp(
            [0.2, 1.2], 0.0, 0.0, np.array([1.0]), "S", f_hz, conf=conf,
        )
        k = 2.0 * np.pi * f_hz / conf.c
        np.testing.assert_allclose(P, hankel2(0, k * x), rtol=1e-12)

    def test_angular_dependence(self, conf):
        """P_1 = 1 gives J_1(kr) exp(i phi); on the +y axis phi = 90 deg."""
        f_hz = 300.0
        Pm = np.array([0.0, 0.0, 0.0, 1.0, 0.0])
        P, _, y, _ = sound_field_mono_circexp(0.0, [0.1, 0.6], 0.0, Pm, "R", f_hz, conf=conf)
        k = 2.0 * np.pi * f_hz / conf.c
        np.testing.assert_allclose(P, 1j * jv(1, k * y), rtol=1e-12, atol=1e-15)

    def test_expansion_center(self, conf):
        f_hz = 400.0
        xq = (0.5, 0.0, 0.0)
        P, x, _, _ = sound_field_mono_circexp(
            [1.0, 2.0], 0.0, 0.0, np.array([1.0]), "R", f_hz, xq, conf,
        )
        k = 2.0 * np.pi * f_hz / conf.c
        np.testing.assert_allclose(P, jv(0, k * (x - 0.5)), rtol=1e-12)

    def test_even_number_of_coefficients(self, conf):
        with pytest.raises(ValueError, match="odd"):
            sound_field_mono_circexp(0.0, 0.0, 0.0, np.ones(4), "R", 100.0, conf=conf)

    def test_unknown_mode(self, conf):
        with pytest.raises(ValueError, match="unknown mode"):
            sound_field_mono_circexp(0.0, 0.0, 0.0, np.ones(3), "X", 100.0, conf=conf)

    def test_non_positive_frequency(self, conf):
        with pytest.raises(ValueError, match="Frequency"):
            sound_field_mono_circexp(0.0, 0.0, 0.0, np.ones(3), "R", 0.0, conf=conf)


# ---------------------------------------------------------------------------
# 3-point IR interpolation
# ---------------------------------------------------------------------------
class TestIRInterpolation:
    def test_identity_basis(self):
        rng = np.random.default_rng(0)
        ir1, ir2, ir3 = rng.standard_normal((3, 32))
        ir = intpol_ir3d(np.array([0.2, 0.3, 0.5]), ir1, ir2, ir3, np.eye(3))
        np.testing.assert_allclose(ir, 0.2 * ir1 + 0.3 * ir2 + 0.5 * ir3, rtol=1e-12)

    def test_measured_direction_reproduced(self):
        """Asking for a measurement direction returns its own IR."""
        rng = np.random.default_rng(1)
        ir1, ir2, ir3 = rng.standard_normal((3, 16, 2))  # binaural IRs
        basis = np.array([
            [1.0, 0.0, 0.0],
            [np.cos(0.5), np.sin(0.5), 0.0],
            [np.cos(0.2), 0.0, np.sin(0.2)],
        ])
        ir = intpol_ir3d(basis[1], ir1, ir2, ir3, basis)
        assert ir.shape == (16, 2)
        np.testing.assert_allclose(ir, ir2, atol=1e-12)

    def test_length_mismatch(self):
        with pytest.raises(ValueError, match="same length"):
            intpol_ir3d(np.ones(3), np.ones(8), np.ones(8), np.ones(7), np.eye(3))
