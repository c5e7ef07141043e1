"""
Spherical to Cartesian projection, azimuth-window filtering and return selection.
"""
from typing import Optional, Tuple

import numpy as np

from lidar_decoder.core.config import DecoderConfig
from .trig_table import TrigTable, get_trig_table


def select_returns(distances: np.ndarray, intensities: np.ndarray, mode: str) -> np.ndarray:
    """
    Chooses which echoes of a firing to emit.

    Args:
        distances: (E, C) calibrated distances, NaN where the echo was rejected
        intensities: (E, C) intensities, echoes in listed order along axis 0
        mode: "first", "strongest" or "all"

    Returns:
        (E, C) boolean mask of echoes to project
    """
    valid = ~np.isnan(distances)
    if mode == "all":
        return valid
    if mode == "first":
        return valid & (np.cumsum(valid, axis=0) == 1)
    if mode == "strongest":
        ranked = np.where(valid, intensities.astype(np.int32), -1)
        best = np.argmax(ranked, axis=0)  # argmax keeps the first listed on ties
        mask = np.zeros_like(valid)
        mask[best, np.arange(valid.shape[1])] = True
        return mask & valid
    raise ValueError(f"Unknown return mode: {mode}")


class PointProjector:
    """
    x = d cos(v) cos(a) + Rx cos(a) - Ry sin(a)
    y = d cos(v) sin(a) + Rx sin(a) + Ry cos(a)
    z = d sin(v) + Rz

    The optical-center offset (Rx, Ry) turns with the head, Rz does not.
    """

    def __init__(self, config: DecoderConfig, trig: Optional[TrigTable] = None):
        self.trig = trig or get_trig_table()
        self.rx, self.ry, self.rz = config.optical_center_offset
        self.start = config.start_units
        self.end = config.end_units
        self.full_window = config.full_window

    def in_window(self, azimuth: np.ndarray) -> np.ndarray:
        """Whether each azimuth (hundredths of a degree) falls inside [start, end)."""
        azimuth = np.asarray(azimuth)
        if self.full_window:
            return np.ones(azimuth.shape, dtype=bool)
        if self.start < self.end:
            return (azimuth >= self.start) & (azimuth < self.end)
        # Window wraps through 0 degrees
        return (azimuth >= self.start) | (azimuth < self.end)

    def project(self, distance: Optional[float], vertical: int, azimuth: int) -> Optional[Tuple[float, float, float]]:
        if distance is None:
            return None
        xyz, keep = self.project_many(np.asarray([distance]), np.asarray([vertical]), np.asarray([azimuth]))
        if not keep[0]:
            return None
        return tuple(float(v) for v in xyz[0])

    def project_many(self, distances: np.ndarray, verticals: np.ndarray, azimuths: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Projects arrays of samples.

        Returns:
            (xyz of shape (N, 3), boolean mask of accepted samples); rejected
            rows hold NaN.
        """
        distances = np.asarray(distances, dtype=np.float64)
        cos_v, sin_v = self.trig.lookup(np.asarray(verticals, dtype=np.int64))
        cos_a, sin_a = self.trig.lookup(np.asarray(azimuths, dtype=np.int64))

        horizontal = distances * cos_v
        xyz = np.empty((len(distances), 3), dtype=np.float64)
        xyz[:, 0] = horizontal * cos_a + self.rx * cos_a - self.ry * sin_a
        xyz[:, 1] = horizontal * sin_a + self.rx * sin_a + self.ry * cos_a
        xyz[:, 2] = distances * sin_v + self.rz

        keep = ~np.isnan(distances) & self.in_window(azimuths)
        xyz[~keep] = np.nan
        return xyz, keep
