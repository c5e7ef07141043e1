"""
Device temperature tracking from packet status bytes.
"""
import logging
import math
from typing import Sequence

from .calibration import TEMPERATURE_MIN, TEMPERATURE_RANGE

logger = logging.getLogger(__name__)

STATUS_KIND_TEMPERATURE = 0x01
TEMPERATURE_RESOLUTION = 0.0625  # degrees Celsius per unit
PLAUSIBLE_TEMPERATURE_MIN = -40.0
PLAUSIBLE_TEMPERATURE_MAX = 125.0


def compute_temperature(low: int, high: int) -> float:
    """
    Decodes the sign/magnitude temperature encoding.

    Bit 7 of `high` is the sign, the remaining 7 bits of `high` are the upper
    magnitude bits, and the top 5 bits of `low` are the lower magnitude bits.
    """
    magnitude = ((high & 0x7F) << 5) | (low >> 3)
    value = magnitude * TEMPERATURE_RESOLUTION
    return -value if high & 0x80 else value


def estimate_temperature_index(temperature: float) -> int:
    """Index into the temperature dimension of the distance-correction table."""
    rounded = int(math.floor(temperature + 0.5))
    rounded = min(max(rounded, TEMPERATURE_MIN), TEMPERATURE_MIN + TEMPERATURE_RANGE)
    return rounded - TEMPERATURE_MIN


class TemperatureTracker:
    """Keeps the last plausible temperature reported by the device."""

    def __init__(self, initial: float = float(TEMPERATURE_MIN)):
        self.temperature = initial
        self.updates = 0
        self.anomalies = 0

    def update(self, status: Sequence[int]) -> bool:
        """
        Consumes one packet's status bytes.

        Returns True when a reading was accepted, False when the packet
        carried no temperature or an implausible one.
        """
        if len(status) < 4 or status[0] != STATUS_KIND_TEMPERATURE:
            return False

        value = compute_temperature(status[2], status[3])
        if not PLAUSIBLE_TEMPERATURE_MIN <= value <= PLAUSIBLE_TEMPERATURE_MAX:
            self.anomalies += 1
            logger.debug(f"Ignoring implausible temperature {value:.2f} C, keeping {self.temperature:.2f} C")
            return False

        self.temperature = value
        self.updates += 1
        return True

    def estimate(self) -> int:
        return estimate_temperature_index(self.temperature)
