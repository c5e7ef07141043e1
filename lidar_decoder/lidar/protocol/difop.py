"""
Device-info (DIFOP) packet: the factory angle calibration burned into the lidar.

    Offset | Size    | Description
    -------|---------|------------
    0      | 8       | Magic A5 FF 00 5A 11 11 55 55
    468    | 128 * 3 | Vertical angles
    852    | 128 * 3 | Horizontal (azimuth) corrections

Each angle is a sign byte (0 positive, 1 negative) followed by a big-endian
uint16 magnitude in hundredths of a degree. An unprogrammed table reads as
all 0xFF.
"""
from typing import Tuple

import numpy as np

from lidar_decoder.core.errors import MalformedPacketError
from .packet import SCANS_PER_BLOCK

DIFOP_SIZE = 1248
DIFOP_MAGIC = bytes([0xA5, 0xFF, 0x00, 0x5A, 0x11, 0x11, 0x55, 0x55])
VERTICAL_ANGLE_OFFSET = 468
HORIZONTAL_ANGLE_OFFSET = 852
ANGLE_ENTRY_SIZE = 3


def is_difop(data: bytes) -> bool:
    return len(data) == DIFOP_SIZE and bytes(data[:len(DIFOP_MAGIC)]) == DIFOP_MAGIC


def _read_angle_table(data: bytes, offset: int, name: str) -> np.ndarray:
    size = SCANS_PER_BLOCK * ANGLE_ENTRY_SIZE
    raw = np.frombuffer(data, dtype=np.uint8, count=size, offset=offset).reshape(SCANS_PER_BLOCK, ANGLE_ENTRY_SIZE)

    if np.all(raw == 0xFF):
        raise MalformedPacketError(f"Device-info {name} table is not programmed")

    sign = raw[:, 0]
    if np.any(sign > 1):
        raise MalformedPacketError(f"Invalid sign byte in device-info {name} table")

    magnitude = (raw[:, 1].astype(np.int32) << 8) | raw[:, 2].astype(np.int32)
    return np.where(sign == 1, -magnitude, magnitude).astype(np.int32)


def parse_difop(data: bytes) -> Tuple[np.ndarray, np.ndarray]:
    """
    Extracts the per-channel angle tables from a device-info packet.

    Returns:
        (vertical_angles, horizontal_corrections), each int32[128] in hundredths of a degree

    Raises:
        MalformedPacketError: On a size or magic mismatch, or an unprogrammed table
    """
    data = bytes(data)
    if len(data) != DIFOP_SIZE:
        raise MalformedPacketError(
            f"Device-info size mismatch: expected {DIFOP_SIZE} bytes, got {len(data)}"
        )
    if data[:len(DIFOP_MAGIC)] != DIFOP_MAGIC:
        raise MalformedPacketError(f"Invalid device-info magic: {data[:len(DIFOP_MAGIC)].hex()}")

    vertical = _read_angle_table(data, VERTICAL_ANGLE_OFFSET, "vertical angle")
    horizontal = _read_angle_table(data, HORIZONTAL_ANGLE_OFFSET, "horizontal angle")
    return vertical, horizontal
