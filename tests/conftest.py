import struct

import numpy as np
import pytest

from lidar_decoder.core.config import DecoderConfig
from lidar_decoder.lidar.core import CalibrationStore, PacketDecoder
from lidar_decoder.lidar.protocol.packet import (
    BLOCKS_PER_PACKET,
    PACKET_HEADER_SIZE,
    SCANS_PER_BLOCK,
    UPPER_BANK,
)


def build_block(bank=UPPER_BANK, rotation=0, samples=None):
    """Block bytes; `samples` maps channel -> (raw_distance, intensity)."""
    records = bytearray(SCANS_PER_BLOCK * 3)
    for channel, (distance, intensity) in (samples or {}).items():
        struct.pack_into('<HB', records, channel * 3, distance, intensity)
    return struct.pack('<HH', bank, rotation) + bytes(records)


def build_packet(blocks=None, revolution=0, status=b'\x00\x00\x00\x00'):
    """Packet bytes; missing blocks are padded with empty upper-bank blocks."""
    blocks = list(blocks or [])
    while len(blocks) < BLOCKS_PER_PACKET:
        blocks.append(build_block(UPPER_BANK, 0))
    header = b'\x55\xAA' + b'\x00' * (PACKET_HEADER_SIZE - 2)
    return header + b''.join(blocks) + struct.pack('<H4s', revolution, status)


def temperature_status(celsius):
    """Status bytes carrying a temperature reading."""
    magnitude = int(round(abs(celsius) / 0.0625))
    high = (magnitude >> 5) & 0x7F
    if celsius < 0:
        high |= 0x80
    low = (magnitude & 0x1F) << 3
    return bytes([0x01, 0x00, low, high])


@pytest.fixture
def make_block():
    return build_block


@pytest.fixture
def make_packet():
    return build_packet


@pytest.fixture
def zero_store():
    return CalibrationStore.zeros()


@pytest.fixture
def full_config():
    """Full circle, no distance clipping beyond the device range, no optical offset."""
    return DecoderConfig(min_distance=0.0, max_distance=200.0)


@pytest.fixture
def decoder(zero_store, full_config):
    return PacketDecoder(zero_store, full_config)


@pytest.fixture
def raw_tables():
    return {
        "vertical_angles": np.zeros(128),
        "azimuth_corrections": np.zeros(128),
        "distance_corrections": np.zeros((128, 41)),
    }


@pytest.fixture
def make_status():
    return temperature_status
