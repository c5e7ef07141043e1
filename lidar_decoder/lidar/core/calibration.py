"""
Per-channel calibration tables for the 128-channel lidar.
"""
import logging
from typing import Any, Mapping, Optional, Union

import numpy as np

from lidar_decoder.core.errors import ConfigError
from .trig_table import ROTATION_MAX_UNITS

logger = logging.getLogger(__name__)

NUM_CHANNELS = 128
TEMPERATURE_MIN = 31
TEMPERATURE_RANGE = 40
TEMPERATURE_STEPS = TEMPERATURE_RANGE + 1

VERTICAL_ANGLE_LIMIT = 9000  # hundredths of a degree
DISTANCE_CORRECTION_LIMIT = 200.0  # meters

ChannelLike = Union[int, np.ndarray]


def _as_table(raw_tables: Mapping[str, Any], key: str) -> np.ndarray:
    if key not in raw_tables or raw_tables[key] is None:
        raise ConfigError(f"Calibration table '{key}' is missing")
    try:
        table = np.array(raw_tables[key], dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Calibration table '{key}' is not numeric: {e}") from e
    if table.ndim == 0 or table.shape[0] != NUM_CHANNELS:
        raise ConfigError(
            f"Calibration table '{key}' must have {NUM_CHANNELS} channel rows, got shape {table.shape}"
        )
    if not np.all(np.isfinite(table)):
        raise ConfigError(f"Calibration table '{key}' contains non-finite values")
    return table


def _check_vertical(table: np.ndarray) -> np.ndarray:
    if table.ndim != 1:
        raise ConfigError(f"vertical_angles must be one value per channel, got shape {table.shape}")
    if np.any(np.abs(table) > VERTICAL_ANGLE_LIMIT):
        raise ConfigError(f"vertical_angles must lie within ±{VERTICAL_ANGLE_LIMIT} hundredths of a degree")
    return table.astype(np.int32)


def _check_azimuth(table: np.ndarray) -> np.ndarray:
    if table.ndim not in (1, 2) or (table.ndim == 2 and table.shape[1] < 2):
        raise ConfigError(
            f"azimuth_corrections must be one value or a curve of >= 2 samples per channel, got shape {table.shape}"
        )
    if np.any(np.abs(table) >= ROTATION_MAX_UNITS):
        raise ConfigError(f"azimuth_corrections must lie within ±{ROTATION_MAX_UNITS} hundredths of a degree")
    return table


def _check_distance(table: np.ndarray) -> np.ndarray:
    if table.ndim != 2 or table.shape[1] < TEMPERATURE_STEPS:
        raise ConfigError(
            f"distance_corrections must have >= {TEMPERATURE_STEPS} temperature columns per channel, "
            f"got shape {table.shape}"
        )
    if np.any(np.abs(table) > DISTANCE_CORRECTION_LIMIT):
        raise ConfigError(f"distance_corrections must lie within ±{DISTANCE_CORRECTION_LIMIT} m")
    return table[:, :TEMPERATURE_STEPS]


def _freeze(table: np.ndarray) -> np.ndarray:
    table = np.ascontiguousarray(table)
    table.flags.writeable = False
    return table


class CalibrationStore:
    """
    Immutable per-channel calibration.

    Tables:
        vertical_angles:      int32[128], hundredths of a degree
        azimuth_corrections:  float64[128] constant offsets, or float64[128, K]
                              curves sampled evenly over [0, 36000)
        distance_corrections: float64[128, 41], meters per temperature index

    Safe to share between decoder instances.
    """

    def __init__(self, vertical_angles: np.ndarray, azimuth_corrections: np.ndarray, distance_corrections: np.ndarray):
        self.vertical_angles = _freeze(vertical_angles)
        self.azimuth_corrections = _freeze(azimuth_corrections)
        self.distance_corrections = _freeze(distance_corrections)

    @classmethod
    def load(cls, raw_tables: Mapping[str, Any]) -> "CalibrationStore":
        """
        Builds a store from already-parsed numeric tables.

        Raises:
            ConfigError: If a table is missing, has the wrong shape or holds out-of-range values
        """
        vertical = _check_vertical(_as_table(raw_tables, "vertical_angles"))
        azimuth = _check_azimuth(_as_table(raw_tables, "azimuth_corrections"))
        distance = _check_distance(_as_table(raw_tables, "distance_corrections"))
        kind = "curves" if azimuth.ndim == 2 else "offsets"
        logger.info(f"Loaded calibration for {NUM_CHANNELS} channels (azimuth {kind}, {distance.shape[1]} temperature steps)")
        return cls(vertical, azimuth, distance)

    @classmethod
    def zeros(cls) -> "CalibrationStore":
        return cls(
            np.zeros(NUM_CHANNELS, dtype=np.int32),
            np.zeros(NUM_CHANNELS, dtype=np.float64),
            np.zeros((NUM_CHANNELS, TEMPERATURE_STEPS), dtype=np.float64),
        )

    def with_angles(self, vertical_angles: Any, azimuth_corrections: Any) -> "CalibrationStore":
        """Returns a new store with the angle tables replaced and distance corrections kept."""
        return CalibrationStore.load({
            "vertical_angles": vertical_angles,
            "azimuth_corrections": azimuth_corrections,
            "distance_corrections": self.distance_corrections,
        })

    def vertical_angle(self, channel: int) -> int:
        return int(self.vertical_angles[channel])

    def azimuth_correction(self, channel: int, raw_azimuth: float) -> float:
        return float(self.azimuth_correction_many(np.asarray(channel), np.asarray(raw_azimuth, dtype=np.float64)))

    def azimuth_correction_many(self, channels: ChannelLike, raw_azimuth: np.ndarray) -> np.ndarray:
        """Correction in hundredths of a degree for each (channel, raw azimuth) pair."""
        if self.azimuth_corrections.ndim == 1:
            return self.azimuth_corrections[channels] + np.zeros_like(raw_azimuth, dtype=np.float64)

        samples = self.azimuth_corrections.shape[1]
        position = np.mod(raw_azimuth, ROTATION_MAX_UNITS) * samples / ROTATION_MAX_UNITS
        lower = np.floor(position).astype(np.intp) % samples
        upper = (lower + 1) % samples
        frac = position - np.floor(position)
        curve = self.azimuth_corrections
        return curve[channels, lower] * (1.0 - frac) + curve[channels, upper] * frac

    def distance_correction(self, channel: int, temperature_index: int, raw_distance: Optional[int] = None) -> float:
        """
        Additive distance correction in meters.

        The table holds one offset per channel and temperature step, so the
        correction does not vary with range; `raw_distance` is accepted and ignored.
        """
        return float(self.distance_corrections[channel, temperature_index])

    def distance_correction_many(self, channels: ChannelLike, temperature_index: int) -> np.ndarray:
        return self.distance_corrections[channels, temperature_index]
