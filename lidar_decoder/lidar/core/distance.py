"""
Raw distance code to calibrated metric distance.
"""
from typing import Optional

import numpy as np

from lidar_decoder.core.config import DecoderConfig
from .calibration import CalibrationStore, ChannelLike

DISTANCE_RESOLUTION = 0.005  # meters per raw unit
DISTANCE_MAX = 200.0
NO_RETURN = 0
RAW_DISTANCE_MIN = 1
RAW_DISTANCE_MAX = int(DISTANCE_MAX / DISTANCE_RESOLUTION + 1)  # 40001


class DistanceCalibrator:
    """
    distance = raw * DISTANCE_RESOLUTION + distance_correction(channel, temperature_index)

    Samples with the no-return code, a raw code outside
    [RAW_DISTANCE_MIN, RAW_DISTANCE_MAX], or a corrected distance outside the
    configured [min_distance, max_distance] are rejected.
    """

    def __init__(self, store: CalibrationStore, config: DecoderConfig):
        self.store = store
        self.min_distance = config.min_distance
        self.max_distance = config.max_distance

    def correct(self, channel: int, raw_distance: int, temperature_index: int) -> Optional[float]:
        result = self.correct_many(np.asarray([channel]), np.asarray([raw_distance]), temperature_index)[0]
        return None if np.isnan(result) else float(result)

    def correct_many(self, channels: ChannelLike, raw_distances: np.ndarray, temperature_index: int) -> np.ndarray:
        """Vectorized form of `correct`; rejected samples come back as NaN."""
        raw = np.asarray(raw_distances, dtype=np.int64)
        distance = raw * DISTANCE_RESOLUTION + self.store.distance_correction_many(channels, temperature_index)
        valid = (
            (raw != NO_RETURN)
            & (raw >= RAW_DISTANCE_MIN)
            & (raw <= RAW_DISTANCE_MAX)
            & (distance >= self.min_distance)
            & (distance <= self.max_distance)
        )
        return np.where(valid, distance, np.nan)
