"""Unit tests for time-domain wave field synthesis.

Tests
-----
    TestPrepareDrivingSignals: time reversal + advance to the frame
    TestSynthesize:            single-source value, normalization,
                               determinism (serial vs threaded), singularity
    TestNFCHOAPipeline:        end-to-end plane wave / point source fields

Usage
-----
    python -m pytest tests/test_wave_field.py -v
"""

import logging
import sys
from pathlib import Path

import numpy as np
import pytest

# Ensure project root on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from sfsynth.config import SecondarySourceConfig, SFSConfig
from sfsynth.grid import xyz_grid
from sfsynth.validation import NumericalError, check_wave_field
from sfsynth.wave_field import (
    WaveField,
    prepare_driving_signals,
    source_contribution,
    synthesize,
    wave_field_imp_nfchoa_25d,
)

# Delays are integer samples for r = 0.5 m and r = 1.0 m
C_M_PER_S = 100.0
FS_HZ = 1000.0
N_SAMPLES = 64
PULSE_SAMPLE = 10


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def conf():
    """Frame chosen so that the pulse reaches r = 0.5 m at the snapshot."""
    return SFSConfig(
        c=C_M_PER_S, fs=FS_HZ, n_samples=N_SAMPLES, resolution=2,
        frame=PULSE_SAMPLE + 5,
    )


@pytest.fixture
def line_grid(conf):
    """Two points on the x-axis at 0.5 m and 1.0 m."""
    return xyz_grid([0.5, 1.0], 0.0, 0.0, conf)


@pytest.fixture
def pulse():
    d = np.zeros((N_SAMPLES, 1))
    d[PULSE_SAMPLE, 0] = 1.0
    return d


@pytest.fixture
def origin():
    return np.zeros((1, 3))


def _pipeline_conf(**kwargs):
    defaults = dict(
        n_samples=256, resolution=11, frame=120,
        secondary_sources=SecondarySourceConfig(geometry="circular", number=16, size_m=2.0),
    )
    defaults.update(kwargs)
    return SFSConfig(**defaults)


# ---------------------------------------------------------------------------
# Driving signal preparation
# ---------------------------------------------------------------------------
class TestPrepareDrivingSignals:
    def test_reverse_and_shift(self, pulse):
        """Sample k of the prepared signal (delay k + 1) is d[frame - 1 - k]."""
        frame = 20
        d_prep = prepare_driving_signals(pulse, frame)
        assert d_prep.shape == pulse.shape
        k_expected = frame - 1 - PULSE_SAMPLE
        assert d_prep[k_expected, 0] == 1.0
        assert np.sum(np.abs(d_prep)) == 1.0

    def test_pulse_not_yet_emitted(self, pulse):
        """Before the pulse is emitted the prepared signal is zero."""
        d_prep = prepare_driving_signals(pulse, PULSE_SAMPLE)
        assert np.all(d_prep == 0.0)


# ---------------------------------------------------------------------------
# Synthesis core
# ---------------------------------------------------------------------------
class TestSynthesize:
    def test_single_source_value(self, conf, line_grid, pulse, origin):
        """Field equals 1/(4 pi r) times the delayed sample, over pi*L."""
        L = 2.0
        p = synthesize(line_grid, origin, pulse, L, conf)
        assert p.shape == (2,)
        expected_near = 1.0 / (4.0 * np.pi * 0.5) / (np.pi * L)
        np.testing.assert_allclose(p[0], expected_near, rtol=1e-9)
        # At r = 1.0 m the pulse has not yet arrived
        assert abs(p[1]) < 1e-12

    def test_far_point_later_frame(self, conf, line_grid, pulse, origin):
        """Five samples later the pulse reaches the point at r = 1.0 m."""
        conf.frame += 5
        L = 2.0
        p = synthesize(line_grid, origin, pulse, L, conf)
        expected_far = 1.0 / (4.0 * np.pi * 1.0) / (np.pi * L)
        np.testing.assert_allclose(p[1], expected_far, rtol=1e-9)
        assert abs(p[0]) < 1e-12

    def test_normalization_by_array_length(self, conf, line_grid, pulse, origin):
        p1 = synthesize(line_grid, origin, pulse, 2.0, conf)
        p3 = synthesize(line_grid, origin, pulse, 6.0, conf)
        np.testing.assert_allclose(p3, p1 / 3.0, rtol=1e-12)

    def test_superposition(self, conf, line_grid):
        """Two sources add up their individual fields."""
        rng = np.random.default_rng(0)
        x0 = np.array([[0.0, 0.3, 0.0], [0.2, -0.4, 0.1]])
        d = rng.standard_normal((N_SAMPLES, 2))
        p_both = synthesize(line_grid, x0, d, 2.0, conf)
        p_a = synthesize(line_grid, x0[:1], d[:, :1], 2.0, conf)
        p_b = synthesize(line_grid, x0[1:], d[:, 1:], 2.0, conf)
        np.testing.assert_allclose(p_both, p_a + p_b, rtol=1e-12, atol=1e-15)

    def test_deterministic(self, conf):
        rng = np.random.default_rng(1)
        grid = xyz_grid([-0.5, 0.5], [-0.5, 0.5], 0.0, SFSConfig(resolution=7))
        x0 = rng.uniform(1.0, 2.0, size=(6, 3))
        d = rng.standard_normal((N_SAMPLES, 6))
        p1 = synthesize(grid, x0, d, 2.0, conf)
        p2 = synthesize(grid, x0, d, 2.0, conf)
        np.testing.assert_array_equal(p1, p2)

        conf.n_workers = 4
        p3 = synthesize(grid, x0, d, 2.0, conf)
        np.testing.assert_array_equal(p1, p3)

    def test_source_on_grid_point(self, conf, line_grid, pulse):
        """r = 0 is not masked and is reported as a numerical error."""
        x0 = np.array([[0.5, 0.0, 0.0]])
        with pytest.raises(NumericalError, match="non-finite"):
            synthesize(line_grid, x0, pulse, 2.0, conf)

    def test_amplitude_limit(self, conf, line_grid, pulse, origin):
        conf.field_limit = 1e-6
        with pytest.raises(NumericalError, match="limit"):
            synthesize(line_grid, origin, pulse, 2.0, conf)

    def test_mismatched_sources(self, conf, line_grid, pulse):
        x0 = np.zeros((2, 3))
        with pytest.raises(ValueError, match="secondary sources"):
            synthesize(line_grid, x0, pulse, 2.0, conf)

    def test_invalid_array_length(self, conf, line_grid, pulse, origin):
        with pytest.raises(ValueError, match="Array length"):
            synthesize(line_grid, origin, pulse, 0.0, conf)

    def test_invalid_speed_of_sound(self, line_grid, pulse, origin):
        bad = SFSConfig(c=-C_M_PER_S, fs=FS_HZ, n_samples=N_SAMPLES, frame=15)
        with pytest.raises(ValueError, match="Speed of sound"):
            synthesize(line_grid, origin, pulse, 2.0, bad)

    def test_invalid_sample_rate(self, line_grid, pulse, origin):
        bad = SFSConfig(c=C_M_PER_S, fs=0.0, n_samples=N_SAMPLES, frame=15)
        with pytest.raises(ValueError, match="Sample rate"):
            synthesize(line_grid, origin, pulse, 2.0, bad)

    def test_delay_below_first_sample(self, conf, origin):
        """Delays shorter than one sample fall outside the knots and give zero."""
        grid = xyz_grid([0.005, 0.5], 0.0, 0.0, conf)  # tau = 0.05 and 5 samples
        d = np.ones((N_SAMPLES, 1))
        p = synthesize(grid, origin, d, 2.0, conf)
        assert p[0] == 0.0
        expected = 1.0 / (4.0 * np.pi * 0.5) / (np.pi * 2.0)
        np.testing.assert_allclose(p[1], expected, rtol=1e-9)

    def test_near_field_warning(self, conf, origin, pulse, caplog):
        grid = xyz_grid([0.0005, 0.5], 0.0, 0.0, conf)
        with caplog.at_level(logging.WARNING, logger="sfsynth.wave_field"):
            synthesize(grid, origin, pulse, 2.0, conf)
        assert "from a secondary source" in caplog.text

    def test_contribution_reports_closest_distance(self, conf, line_grid, pulse):
        d_prep = prepare_driving_signals(pulse, conf.frame)
        p_i, r_min = source_contribution(
            line_grid, np.array([0.0, 0.3, 0.0]), d_prep[:, 0], conf.c, conf.fs,
        )
        assert p_i.shape == line_grid.shape
        np.testing.assert_allclose(r_min, np.hypot(0.5, 0.3), rtol=1e-12)


class TestCheckWaveField:
    def test_passes_finite(self):
        check_wave_field(np.ones((3, 3)), frame=0, limit=10.0)

    def test_nan_rejected(self):
        p = np.ones(4)
        p[2] = np.nan
        with pytest.raises(NumericalError, match="frame 7"):
            check_wave_field(p, frame=7)

    def test_is_value_error(self):
        assert issubclass(NumericalError, ValueError)


# ---------------------------------------------------------------------------
# End-to-end NFC-HOA
# ---------------------------------------------------------------------------
class TestNFCHOAPipeline:
    def test_plane_wave_field(self):
        conf = _pipeline_conf()
        field = wave_field_imp_nfchoa_25d(
            [-0.5, 0.5], [-0.5, 0.5], 0.0, np.array([0.0, -1.0, 0.0]), "pw", 2.0, conf,
        )
        assert isinstance(field, WaveField)
        assert field.p.shape == (11, 11)
        assert len(field.x) == 11 and len(field.y) == 11
        assert field.x0.shape == (16, 3)
        assert np.all(np.isfinite(field.p))
        assert np.max(np.abs(field.p)) > 0.0

    def test_point_source_field(self):
        conf = _pipeline_conf()
        field = wave_field_imp_nfchoa_25d(
            [-0.5, 0.5], 0.0, 0.0, np.array([0.0, 2.5, 0.0]), "ps", 2.0, conf,
        )
        assert field.p.shape == (11,)
        assert np.all(np.isfinite(field.p))

    def test_array_length_overrides_config(self):
        conf = _pipeline_conf()
        field = wave_field_imp_nfchoa_25d(
            0.0, 0.0, 0.0, np.array([1.0, 0.0, 0.0]), "pw", 3.0, conf,
        )
        np.testing.assert_allclose(np.linalg.norm(field.x0, axis=1), 1.5, atol=1e-12)
        # Caller's configuration is left untouched
        assert conf.secondary_sources.size_m == 2.0

    def test_non_circular_array_rejected(self):
        conf = _pipeline_conf(
            secondary_sources=SecondarySourceConfig(geometry="linear", number=16, size_m=2.0),
        )
        with pytest.raises(ValueError, match="circular"):
            wave_field_imp_nfchoa_25d(
                [-0.5, 0.5], [-0.5, 0.5], 0.0, np.array([0.0, -1.0, 0.0]), "pw", 2.0, conf,
            )

    def test_unknown_source_type(self):
        with pytest.raises(ValueError, match="source type"):
            wave_field_imp_nfchoa_25d(
                0.0, 0.0, 0.0, np.array([0.0, -1.0, 0.0]), "fs", 2.0, _pipeline_conf(),
            )
