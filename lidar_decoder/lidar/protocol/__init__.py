"""
Wire formats emitted by the lidar: measurement packets and device-info packets.
"""
from .packet import (
    parse_packet,
    ParsedPacket,
    RawBlock,
    RECORD_LAYOUT,
    PACKET_SIZE,
    SCANS_PER_BLOCK,
    UPPER_BANK,
    LOWER_BANK,
)
from .difop import parse_difop, is_difop, DIFOP_SIZE, DIFOP_MAGIC

__all__ = [
    "parse_packet",
    "ParsedPacket",
    "RawBlock",
    "RECORD_LAYOUT",
    "PACKET_SIZE",
    "SCANS_PER_BLOCK",
    "UPPER_BANK",
    "LOWER_BANK",
    "parse_difop",
    "is_difop",
    "DIFOP_SIZE",
    "DIFOP_MAGIC",
]
