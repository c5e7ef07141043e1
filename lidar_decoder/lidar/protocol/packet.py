"""
Measurement packet layout for the 128-channel rotating lidar.

All multi-byte fields are little-endian (low byte first):
    Offset | Size    | Type     | Description
    -------|---------|----------|------------
    0      | 78      | bytes    | Header (ignored)
    78     | 3 * 388 | block[3] | Data blocks
    1242   | 2       | uint16   | Revolution code (wraps at 65536)
    1244   | 4       | uint8[4] | Status bytes

Block layout (388 bytes):
    Offset | Size    | Type     | Description
    -------|---------|----------|------------
    0      | 2       | uint16   | Bank marker (0xEEFF upper, 0xDDFF lower)
    2      | 2       | uint16   | Rotation code, hundredths of a degree
    4      | 128 * 3 | record   | uint16 raw distance + uint8 intensity
"""
import struct
from dataclasses import dataclass
from typing import Iterator, List, NamedTuple, Tuple

import numpy as np

from lidar_decoder.core.errors import MalformedPacketError

PACKET_SIZE = 1248
BLOCKS_PER_PACKET = 3
SCANS_PER_BLOCK = 128
RAW_SCAN_SIZE = 3
BLOCK_HEADER_SIZE = 4
BLOCK_SIZE = BLOCK_HEADER_SIZE + SCANS_PER_BLOCK * RAW_SCAN_SIZE  # 388
PACKET_STATUS_SIZE = 4
PACKET_TAIL_SIZE = 2 + PACKET_STATUS_SIZE
PACKET_HEADER_SIZE = PACKET_SIZE - BLOCKS_PER_PACKET * BLOCK_SIZE - PACKET_TAIL_SIZE  # 78

UPPER_BANK = 0xEEFF
LOWER_BANK = 0xDDFF

ROTATION_MAX_UNITS = 36000

_BLOCK_HEADER = struct.Struct('<HH')
_PACKET_TAIL = struct.Struct('<H4s')


class RecordLayout(NamedTuple):
    """Where one channel's record lives inside a block."""
    record: int
    channel: int
    distance_offset: int
    intensity_offset: int


def build_record_layout() -> Tuple[RecordLayout, ...]:
    """Byte offsets (relative to the block start) for every record of a block."""
    layout = []
    for record in range(SCANS_PER_BLOCK):
        base = BLOCK_HEADER_SIZE + record * RAW_SCAN_SIZE
        layout.append(RecordLayout(record, record, base, base + 2))
    return tuple(layout)


RECORD_LAYOUT = build_record_layout()

# Index arrays derived from the layout so a block decodes with fancy indexing
_DISTANCE_LO = np.array([r.distance_offset for r in RECORD_LAYOUT], dtype=np.intp)
_DISTANCE_HI = _DISTANCE_LO + 1
_INTENSITY = np.array([r.intensity_offset for r in RECORD_LAYOUT], dtype=np.intp)
_CHANNELS = np.array([r.channel for r in RECORD_LAYOUT], dtype=np.intp)


class Sample(NamedTuple):
    bank: int
    channel: int
    raw_distance: int
    raw_intensity: int


@dataclass(frozen=True)
class RawBlock:
    """One decoded block; arrays are indexed by physical channel."""
    bank: int
    rotation: int
    distances: np.ndarray
    intensities: np.ndarray

    @property
    def is_upper(self) -> bool:
        return self.bank == UPPER_BANK


@dataclass(frozen=True)
class ParsedPacket:
    revolution: int
    status: bytes
    blocks: List[RawBlock]

    def samples(self) -> Iterator[Sample]:
        """Yield every channel record in packet order."""
        for block in self.blocks:
            for channel in range(SCANS_PER_BLOCK):
                yield Sample(
                    block.bank,
                    channel,
                    int(block.distances[channel]),
                    int(block.intensities[channel]),
                )


def parse_block(data: bytes, offset: int) -> RawBlock:
    """
    Decodes the block starting at `offset`.

    Raises:
        MalformedPacketError: If the bank marker is neither UPPER_BANK nor LOWER_BANK
    """
    bank, rotation = _BLOCK_HEADER.unpack_from(data, offset)
    if bank not in (UPPER_BANK, LOWER_BANK):
        raise MalformedPacketError(f"Unrecognized bank marker 0x{bank:04X} at offset {offset}")

    raw = np.frombuffer(data, dtype=np.uint8, count=BLOCK_SIZE, offset=offset)
    distances = np.empty(SCANS_PER_BLOCK, dtype=np.uint16)
    intensities = np.empty(SCANS_PER_BLOCK, dtype=np.uint8)
    distances[_CHANNELS] = raw[_DISTANCE_LO].astype(np.uint16) | (raw[_DISTANCE_HI].astype(np.uint16) << 8)
    intensities[_CHANNELS] = raw[_INTENSITY]
    distances.flags.writeable = False
    intensities.flags.writeable = False

    return RawBlock(bank=bank, rotation=rotation, distances=distances, intensities=intensities)


def parse_packet(data: bytes) -> ParsedPacket:
    """
    Structural decode of one measurement packet. No calibration is applied.

    Args:
        data: Raw packet buffer, exactly PACKET_SIZE bytes

    Returns:
        ParsedPacket with the revolution code, status bytes and blocks in order

    Raises:
        MalformedPacketError: On a length mismatch or an unknown bank marker
    """
    data = bytes(data)
    if len(data) != PACKET_SIZE:
        raise MalformedPacketError(
            f"Packet size mismatch: expected {PACKET_SIZE} bytes, got {len(data)}"
        )

    blocks = [
        parse_block(data, PACKET_HEADER_SIZE + i * BLOCK_SIZE)
        for i in range(BLOCKS_PER_PACKET)
    ]
    revolution, status = _PACKET_TAIL.unpack_from(data, PACKET_SIZE - PACKET_TAIL_SIZE)

    return ParsedPacket(revolution=revolution, status=status, blocks=blocks)
