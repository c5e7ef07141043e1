"""
Unit tests for projector module - Cartesian projection, window filtering and return selection.
"""
import numpy as np
import pytest

from lidar_decoder.core.config import DecoderConfig
from lidar_decoder.lidar.core.projector import PointProjector, select_returns


class TestProject:
    """Tests for PointProjector.project"""

    def test_forward_axis(self):
        """Test that vertical 0, azimuth 0 lands on the x axis"""
        projector = PointProjector(DecoderConfig())
        assert projector.project(12.5, 0, 0) == pytest.approx((12.5, 0.0, 0.0), abs=1e-9)

    def test_azimuth_90(self):
        projector = PointProjector(DecoderConfig())
        x, y, z = projector.project(20.0, 0, 9000)
        assert x == pytest.approx(0.0, abs=1e-9)
        assert y == pytest.approx(20.0)
        assert z == pytest.approx(0.0)

    def test_vertical_angle(self):
        projector = PointProjector(DecoderConfig())
        x, y, z = projector.project(10.0, 3000, 0)
        assert x == pytest.approx(10.0 * np.cos(np.radians(30)))
        assert z == pytest.approx(5.0)

    def test_negative_vertical_angle(self):
        projector = PointProjector(DecoderConfig())
        _, _, z = projector.project(10.0, -3000, 0)
        assert z == pytest.approx(-5.0)

    def test_optical_center_offset(self):
        """Test that Rx/Ry turn with the head and Rz is a fixed lift"""
        projector = PointProjector(DecoderConfig(optical_center_offset=(0.1, 0.02, 0.3)))

        assert projector.project(10.0, 0, 0) == pytest.approx((10.1, 0.02, 0.3))
        x, y, z = projector.project(10.0, 0, 9000)
        assert x == pytest.approx(-0.02, abs=1e-9)
        assert y == pytest.approx(10.1)
        assert z == pytest.approx(0.3)

    def test_none_distance(self):
        projector = PointProjector(DecoderConfig())
        assert projector.project(None, 0, 0) is None


class TestAzimuthWindow:
    """Tests for azimuth window filtering"""

    def test_full_circle_accepts_everything(self):
        projector = PointProjector(DecoderConfig(start_angle=0, end_angle=360))
        assert np.all(projector.in_window(np.arange(0, 36000, 100)))

    def test_window_excludes_outside(self):
        """Test that 95 degrees is dropped by a [0, 90) window"""
        projector = PointProjector(DecoderConfig(start_angle=0, end_angle=90))

        assert projector.project(10.0, 0, 9500) is None
        assert projector.project(10.0, 0, 4500) is not None

    def test_window_end_is_exclusive(self):
        projector = PointProjector(DecoderConfig(start_angle=0, end_angle=90))
        np.testing.assert_array_equal(projector.in_window([0, 8999, 9000]), [True, True, False])

    def test_window_through_zero(self):
        """Test a window that wraps from 270 through 0 to 90 degrees"""
        projector = PointProjector(DecoderConfig(start_angle=270, end_angle=90))
        np.testing.assert_array_equal(
            projector.in_window([27000, 35999, 0, 8999, 9000, 18000]),
            [True, True, True, True, False, False],
        )

    def test_project_many_masks_rejections(self):
        projector = PointProjector(DecoderConfig(start_angle=0, end_angle=90))
        xyz, keep = projector.project_many(
            np.array([10.0, np.nan, 10.0]),
            np.array([0, 0, 0]),
            np.array([0, 0, 18000]),
        )

        np.testing.assert_array_equal(keep, [True, False, False])
        assert np.all(np.isnan(xyz[1]))
        assert xyz[0, 0] == pytest.approx(10.0)


class TestSelectReturns:
    """Tests for select_returns function"""

    def setup_method(self):
        # Two echoes (rows) for three channels (columns)
        self.distances = np.array([
            [10.0, np.nan, 10.0],
            [15.0, 12.0, 15.0],
        ])
        self.intensities = np.array([
            [10, 90, 80],
            [200, 50, 80],
        ], dtype=np.uint8)

    def test_first(self):
        """Test that only the first listed valid echo survives per channel"""
        mask = select_returns(self.distances, self.intensities, "first")
        np.testing.assert_array_equal(mask, [[True, False, True], [False, True, False]])

    def test_strongest(self):
        """Test that the most intense echo wins and ties go to the first listed"""
        mask = select_returns(self.distances, self.intensities, "strongest")
        np.testing.assert_array_equal(mask, [[False, False, True], [True, True, False]])

    def test_all(self):
        mask = select_returns(self.distances, self.intensities, "all")
        np.testing.assert_array_equal(mask, ~np.isnan(self.distances))

    def test_channel_without_any_return(self):
        distances = np.full((2, 1), np.nan)
        intensities = np.zeros((2, 1), dtype=np.uint8)
        for mode in ("first", "strongest", "all"):
            assert not select_returns(distances, intensities, mode).any()

    def test_unknown_mode(self):
        with pytest.raises(ValueError, match="Unknown return mode"):
            select_returns(self.distances, self.intensities, "last")
