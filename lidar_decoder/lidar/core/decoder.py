"""
Packet decoder: turns one measurement packet into calibrated points.
"""
import logging
from typing import Any, List, Optional

import numpy as np

from lidar_decoder.core.config import DecoderConfig
from lidar_decoder.core.errors import ConfigError, MalformedPacketError
from lidar_decoder.lidar.protocol.difop import parse_difop
from lidar_decoder.lidar.protocol.packet import RECORD_LAYOUT, SCANS_PER_BLOCK, RawBlock, parse_packet
from .azimuth import AzimuthCorrector
from .calibration import CalibrationStore
from .distance import DistanceCalibrator
from .projector import PointProjector, select_returns
from .temperature import TemperatureTracker
from .trig_table import TrigTable

logger = logging.getLogger(__name__)

POINT_COLUMNS = ("x", "y", "z", "intensity")

_CHANNELS = np.array([r.channel for r in RECORD_LAYOUT], dtype=np.intp)


def group_firings(blocks: List[RawBlock]) -> List[List[RawBlock]]:
    """
    Groups blocks by firing: an upper-bank block starts a firing and any
    lower-bank blocks that follow it are extra echoes of that firing.
    """
    firings: List[List[RawBlock]] = []
    for block in blocks:
        if block.is_upper or not firings:
            firings.append([block])
        else:
            firings[-1].append(block)
    return firings


def empty_points() -> np.ndarray:
    return np.zeros((0, len(POINT_COLUMNS)), dtype=np.float32)


class PacketDecoder:
    """
    Decodes packets from one stream.

    Owns the per-stream device state (temperature estimate, previous firing
    rotation, azimuth delta). The calibration store and trig table may be
    shared between decoders, but a single decoder must not be used from two
    threads at once.
    """

    def __init__(self, store: CalibrationStore, config: Optional[DecoderConfig] = None, trig: Optional[TrigTable] = None):
        self.config = config or DecoderConfig()
        self.store = store
        self.temperature_tracker = TemperatureTracker()
        self.distance = DistanceCalibrator(store, self.config)
        self.azimuth = AzimuthCorrector(store, self.config, SCANS_PER_BLOCK)
        self.projector = PointProjector(self.config, trig)
        self.packet_count = 0
        self.angles_from_device = False

    @property
    def temperature(self) -> float:
        """Current temperature estimate in degrees Celsius."""
        return self.temperature_tracker.temperature

    def unpack(self, packet: bytes, cloud: Optional[Any] = None) -> np.ndarray:
        """
        Decodes one packet.

        Args:
            packet: Raw measurement packet
            cloud: Optional collection with an `append` method; receives the
                   packet's points

        Returns:
            float32 array of shape (N, 4): x, y, z, intensity

        Raises:
            MalformedPacketError: The packet is dropped and decoder state is left untouched
        """
        parsed = parse_packet(packet)

        self.temperature_tracker.update(parsed.status)
        temperature_index = self.temperature_tracker.estimate()

        rows = [self._decode_firing(firing, temperature_index) for firing in group_firings(parsed.blocks)]
        points = np.concatenate(rows) if rows else empty_points()
        self.packet_count += 1

        if cloud is not None:
            cloud.append(points)
        return points

    def _decode_firing(self, blocks: List[RawBlock], temperature_index: int) -> np.ndarray:
        rotation = blocks[0].rotation
        azimuths, delta = self.azimuth.correct_many(rotation, _CHANNELS)
        verticals = self.store.vertical_angles[_CHANNELS]

        distances = np.stack([
            self.distance.correct_many(_CHANNELS, block.distances[_CHANNELS], temperature_index)
            for block in blocks
        ])
        intensities = np.stack([block.intensities[_CHANNELS] for block in blocks])
        selected = select_returns(distances, intensities, self.config.return_mode)

        rows = []
        for echo in range(len(blocks)):
            xyz, keep = self.projector.project_many(distances[echo], verticals, azimuths)
            keep &= selected[echo]
            if not np.any(keep):
                continue
            out = np.empty((int(keep.sum()), len(POINT_COLUMNS)), dtype=np.float32)
            out[:, 0:3] = xyz[keep]
            out[:, 3] = intensities[echo][keep]
            rows.append(out)

        self.azimuth.advance(rotation, delta)
        return np.concatenate(rows) if rows else empty_points()

    def process_difop(self, packet: bytes) -> bool:
        """
        Replaces the angle tables with the ones reported by the device.

        Only the first valid device-info packet is applied. Returns True when
        the tables were replaced.

        Raises:
            MalformedPacketError: If the device-info packet is invalid or reports
                                  out-of-range angles; the current tables are kept
        """
        if self.angles_from_device:
            return False

        vertical, horizontal = parse_difop(packet)
        try:
            store = self.store.with_angles(vertical, horizontal)
        except ConfigError as e:
            raise MalformedPacketError(f"Device-info angles rejected: {e}") from e

        self.store = store
        self.distance.store = self.store
        self.azimuth.store = self.store
        self.angles_from_device = True
        logger.info("Angle calibration loaded from device-info packet")
        return True
