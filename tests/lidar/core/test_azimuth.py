"""
Unit tests for azimuth module - per-channel interpolation and correction.
"""
import numpy as np
import pytest

from lidar_decoder.core.config import DecoderConfig
from lidar_decoder.lidar.core.azimuth import AzimuthCorrector, interpolate_azimuth, reduce_rotation
from lidar_decoder.lidar.core.calibration import CalibrationStore


class TestInterpolateAzimuth:
    """Tests for the pure interpolate_azimuth function"""

    def test_first_firing_uses_default(self):
        azimuth, delta = interpolate_azimuth(None, 1000, 64, 128, default_delta=10, max_delta=100)
        assert delta == 10
        assert azimuth == pytest.approx(1005.0)

    def test_measured_delta(self):
        azimuth, delta = interpolate_azimuth(1000, 1020, 64, 128, default_delta=10, max_delta=100)
        assert delta == 20
        assert azimuth == pytest.approx(1030.0)

    def test_delta_across_wrap(self):
        """Test that the delta is measured modulo a full turn"""
        _, delta = interpolate_azimuth(35990, 10, 0, 128, default_delta=10, max_delta=100)
        assert delta == 20

    def test_implausible_delta_uses_default(self):
        """Test that a jump (dropped packets) falls back to the default delta"""
        _, delta = interpolate_azimuth(1000, 5000, 0, 128, default_delta=10, max_delta=100)
        assert delta == 10

    def test_backwards_step_uses_default(self):
        """Test that a rotation going backwards is treated as implausible"""
        _, delta = interpolate_azimuth(1000, 990, 0, 128, default_delta=10, max_delta=100)
        assert delta == 10

    def test_result_wraps(self):
        azimuth, _ = interpolate_azimuth(35980, 35990, 127, 128, default_delta=10, max_delta=100)
        assert 0 <= azimuth < 36000
        assert azimuth == pytest.approx(35990 + 10 * 127 / 128)

    def test_array_positions(self):
        positions = np.arange(128)
        azimuths, _ = interpolate_azimuth(0, 128, positions, 128, default_delta=10, max_delta=200)
        np.testing.assert_array_almost_equal(azimuths, 128 + positions)

    def test_is_pure(self):
        """Test that repeated calls with the same inputs agree"""
        first = interpolate_azimuth(100, 110, 5, 128, 10, 100)
        second = interpolate_azimuth(100, 110, 5, 128, 10, 100)
        assert first == second


class TestReduceRotation:
    """Tests for reduce_rotation function"""

    @pytest.mark.parametrize("value", [-1, 0, 35999, 36000, 65535, -72001])
    def test_range_and_idempotence(self, value):
        once = reduce_rotation(value)
        assert 0 <= once < 36000
        assert reduce_rotation(once) == once


class TestAzimuthCorrector:
    """Tests for AzimuthCorrector class"""

    def test_first_packet(self, zero_store):
        corrector = AzimuthCorrector(zero_store, DecoderConfig())
        assert corrector.correct(9000, 0) == 9000
        assert corrector.correct(9000, 64) == 9005

    def test_channel_correction_applied(self, raw_tables):
        raw_tables["azimuth_corrections"][0] = 50
        raw_tables["azimuth_corrections"][1] = -50
        corrector = AzimuthCorrector(CalibrationStore.load(raw_tables), DecoderConfig())

        assert corrector.correct(1000, 0) == 1050
        # 20 + 10 / 128 - 50 = -29.92, floored to -30 and wrapped
        assert corrector.correct(20, 1) == 35970

    def test_corrected_result_wraps(self, raw_tables):
        raw_tables["azimuth_corrections"][127] = 50
        corrector = AzimuthCorrector(CalibrationStore.load(raw_tables), DecoderConfig())
        # 35990 + 10 * 127 / 128 + 50 = 36049.92 -> 49
        assert corrector.correct(35990, 127) == 49

    def test_rotation_codes_reduced(self, zero_store):
        """Test that rotation codes above a full turn are reduced first"""
        corrector = AzimuthCorrector(zero_store, DecoderConfig())
        assert corrector.correct(36000 + 100, 0) == 100

    def test_advance_tracks_previous(self, zero_store):
        corrector = AzimuthCorrector(zero_store, DecoderConfig())
        corrector.advance(1000, 10)

        azimuths, delta = corrector.correct_many(1040, np.array([0, 64]))

        assert delta == 40
        np.testing.assert_array_equal(azimuths, [1040, 1060])

    def test_correct_does_not_advance(self, zero_store):
        corrector = AzimuthCorrector(zero_store, DecoderConfig())
        corrector.correct(1000, 0)
        assert corrector.previous is None

    def test_implausible_step_reuses_last_delta(self, zero_store):
        """Test that a jump falls back to the last plausible delta rather than the configured default"""
        corrector = AzimuthCorrector(zero_store, DecoderConfig(default_azimuth_delta=10))
        corrector.advance(1000, 40)

        azimuths, delta = corrector.correct_many(5000, np.array([0, 64]))

        assert delta == 40
        np.testing.assert_array_equal(azimuths, [5000, 5020])

    def test_session_start_uses_configured_default(self, zero_store):
        corrector = AzimuthCorrector(zero_store, DecoderConfig(default_azimuth_delta=20, max_azimuth_delta=100))
        _, delta = corrector.correct_many(1000, np.array([0]))
        assert delta == 20
