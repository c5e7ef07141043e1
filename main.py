"""
LiDAR Packet Decoder

Decodes a capture of raw packets (measurement and device-info packets,
concatenated back to back, 1248 bytes each) into a single PCD file.

Environment Variables:
    LIDAR_CAPTURE_PATH: Capture file to decode (default: ./capture.bin)
    LIDAR_PCD_PATH: Output PCD file (default: ./output.pcd)
    LIDAR_START_ANGLE / LIDAR_END_ANGLE: Azimuth window in degrees (default: 0 / 360)
    LIDAR_MIN_DISTANCE / LIDAR_MAX_DISTANCE: Valid range in meters (default: 0.5 / 200)
    LIDAR_RETURN_MODE: first, strongest or all (default: strongest)
    LIDAR_RX / LIDAR_RY / LIDAR_RZ: Optical-center offset in meters

CLI Usage:
    python main.py

    # Keep only the front half-circle, every echo
    LIDAR_START_ANGLE=270 LIDAR_END_ANGLE=90 LIDAR_RETURN_MODE=all python main.py
"""
from pathlib import Path

from lidar_decoder.core.config import DecoderConfig, settings
from lidar_decoder.core.errors import MalformedPacketError
from lidar_decoder.core.logging_config import configure_logging, get_logger
from lidar_decoder.lidar.core import CalibrationStore, PacketDecoder
from lidar_decoder.lidar.io import PointAccumulator, save_to_pcd
from lidar_decoder.lidar.protocol import PACKET_SIZE, is_difop

logger = get_logger(__name__)


def decode_capture(capture_path: Path, decoder: PacketDecoder, cloud: PointAccumulator) -> int:
    """Feeds every packet of a capture file to the decoder. Returns the number of dropped packets."""
    dropped = 0
    with open(capture_path, 'rb') as f:
        while True:
            packet = f.read(PACKET_SIZE)
            if not packet:
                break
            try:
                if is_difop(packet):
                    decoder.process_difop(packet)
                else:
                    decoder.unpack(packet, cloud)
            except MalformedPacketError as e:
                dropped += 1
                logger.warning(f"Dropping packet at offset {f.tell() - len(packet)}: {e}")
    return dropped


if __name__ == "__main__":
    configure_logging()

    config = DecoderConfig.from_settings(settings)
    decoder = PacketDecoder(CalibrationStore.zeros(), config)
    cloud = PointAccumulator()

    capture_path = Path(settings.LIDAR_CAPTURE_PATH)
    logger.info(f"Starting {settings.PROJECT_NAME} {settings.VERSION} on {capture_path}")

    dropped = decode_capture(capture_path, decoder, cloud)
    save_to_pcd(cloud.to_points(), settings.LIDAR_PCD_PATH)

    logger.info(
        f"Decoded {decoder.packet_count} packets ({dropped} dropped) into {len(cloud)} points, "
        f"last temperature {decoder.temperature:.2f} C -> {settings.LIDAR_PCD_PATH}"
    )
    tracker = decoder.temperature_tracker
    logger.info(f"Temperature readings: {tracker.updates} accepted, {tracker.anomalies} implausible")
