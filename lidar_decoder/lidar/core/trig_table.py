"""
Cosine/sine lookup over the device's fixed-point angle domain (hundredths of a degree).
"""
from typing import Optional, Tuple, Union

import numpy as np

ROTATION_MAX_UNITS = 36000
ROTATION_RESOLUTION = 0.01  # degrees per unit

AngleLike = Union[int, np.ndarray]


class TrigTable:
    """Precomputed cos/sin for every angle in [0, 36000]. Read-only after construction."""

    def __init__(self):
        radians = np.radians(np.arange(ROTATION_MAX_UNITS + 1, dtype=np.float64) * ROTATION_RESOLUTION)
        self.cos = np.cos(radians)
        self.sin = np.sin(radians)
        self.cos.flags.writeable = False
        self.sin.flags.writeable = False

    def lookup(self, angle: AngleLike) -> Tuple[AngleLike, AngleLike]:
        """
        Returns (cos, sin) for an angle in hundredths of a degree.

        Accepts a Python int or an integer numpy array. Angles are reduced
        modulo 36000 first, so negative values (e.g. vertical angles below
        the horizon) are valid.
        """
        index = np.mod(angle, ROTATION_MAX_UNITS)
        if np.ndim(index) == 0:
            index = int(index)
            return float(self.cos[index]), float(self.sin[index])
        return self.cos[index], self.sin[index]


_default_table: Optional[TrigTable] = None


def get_trig_table() -> TrigTable:
    """Shared table instance; safe to share since it is never mutated."""
    global _default_table
    if _default_table is None:
        _default_table = TrigTable()
    return _default_table
