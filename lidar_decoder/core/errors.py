"""
Error taxonomy for the packet decoder.

Per-sample rejections (no return, out of range, outside the azimuth window)
are not errors: those samples are simply left out of the output.
"""


class ConfigError(ValueError):
    """Calibration tables or decoder options are missing or out of range."""


class MalformedPacketError(ValueError):
    """A packet buffer does not match the device's fixed byte layout."""
