"""
Per-channel azimuth interpolation and correction.

Every channel of a block shares the block's rotation code, but the channels
fire one after another while the head keeps turning. The angle swept between
two consecutive firings is spread evenly across the block's channels.
"""
from typing import Optional, Tuple, Union

import numpy as np

from lidar_decoder.core.config import DecoderConfig
from .calibration import CalibrationStore, ChannelLike
from .trig_table import ROTATION_MAX_UNITS

PositionLike = Union[int, np.ndarray]


def reduce_rotation(value):
    """Reduces a rotation code (or array of them) into [0, ROTATION_MAX_UNITS)."""
    return np.mod(value, ROTATION_MAX_UNITS)


def interpolate_azimuth(
    previous: Optional[int],
    current: int,
    position: PositionLike,
    channels_per_block: int,
    default_delta: int,
    max_delta: int,
) -> Tuple[Union[float, np.ndarray], int]:
    """
    Azimuth of the record at `position` within the firing at rotation `current`.

    Args:
        previous: Rotation code of the previous firing, or None at session start
        current: Rotation code of this firing
        position: Record position(s) within the block
        channels_per_block: Number of records per block
        default_delta: Delta used when there is no previous firing or the measured one is implausible
        max_delta: Largest measured delta accepted as plausible

    Returns:
        (azimuth in hundredths of a degree within [0, 36000), delta actually used)
    """
    delta = default_delta
    if previous is not None:
        measured = int(reduce_rotation(current - previous))
        if measured <= max_delta:
            delta = measured

    azimuth = reduce_rotation(current + delta * np.asarray(position, dtype=np.float64) / channels_per_block)
    if np.ndim(azimuth) == 0:
        azimuth = float(azimuth)
    return azimuth, delta


class AzimuthCorrector:
    """
    Tracks the previous firing's rotation code and applies per-channel corrections.

    `delta` is the last plausible rotation step; it stands in for the measured
    step when there is no previous firing or the measured one is implausible.
    """

    def __init__(self, store: CalibrationStore, config: DecoderConfig, channels_per_block: int = 128):
        self.store = store
        self.channels_per_block = channels_per_block
        self.max_delta = config.max_azimuth_delta
        self.previous: Optional[int] = None
        self.delta = config.default_azimuth_delta

    def correct(self, rotation_code: int, channel: int) -> int:
        corrected, _ = self.correct_many(rotation_code, np.asarray([channel]))
        return int(corrected[0])

    def correct_many(self, rotation_code: int, channels: ChannelLike) -> Tuple[np.ndarray, int]:
        """
        Corrected azimuths (int, [0, 36000)) for the given channels of one firing.

        Returns the azimuths and the delta used; does not advance state.
        """
        channels = np.asarray(channels, dtype=np.intp)
        current = int(reduce_rotation(rotation_code))
        interpolated, delta = interpolate_azimuth(
            self.previous,
            current,
            channels,
            self.channels_per_block,
            self.delta,
            self.max_delta,
        )
        interpolated = np.asarray(interpolated, dtype=np.float64)
        corrected = interpolated + self.store.azimuth_correction_many(channels, interpolated)
        return reduce_rotation(np.floor(corrected).astype(np.int64)), delta

    def advance(self, rotation_code: int, delta: int) -> None:
        """Records a completed firing so the next one measures its delta against it."""
        self.previous = int(reduce_rotation(rotation_code))
        self.delta = delta
