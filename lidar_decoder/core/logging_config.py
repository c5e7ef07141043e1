import os
import logging
from logging.handlers import RotatingFileHandler
from typing import List, Optional

LOG_DIR = os.getenv(
    "LIDAR_LOG_DIR",
    os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "config", "logs"),
)
LOG_FILE = os.path.join(LOG_DIR, "lidar_decoder.log")
LOG_LEVEL = os.getenv("LIDAR_LOG_LEVEL", "INFO")
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 7

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def build_handlers(log_file: str = LOG_FILE) -> List[logging.Handler]:
    """Console handler plus a size-rotated file handler writing to `log_file`."""
    os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    return [logging.StreamHandler(), file_handler]


def configure_logging(level: Optional[int] = None, log_file: str = LOG_FILE) -> None:
    """Install the decoder's handlers on the root logger; level defaults to LIDAR_LOG_LEVEL."""
    if level is None:
        level = logging.getLevelName(LOG_LEVEL.upper())
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=build_handlers(log_file),
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
