"""
Calibration and decoding core for the 128-channel lidar.
"""
from .trig_table import TrigTable, get_trig_table
from .calibration import CalibrationStore
from .temperature import TemperatureTracker
from .distance import DistanceCalibrator
from .azimuth import AzimuthCorrector, interpolate_azimuth
from .projector import PointProjector, select_returns
from .decoder import PacketDecoder

__all__ = [
    "TrigTable",
    "get_trig_table",
    "CalibrationStore",
    "TemperatureTracker",
    "DistanceCalibrator",
    "AzimuthCorrector",
    "interpolate_azimuth",
    "PointProjector",
    "select_returns",
    "PacketDecoder",
]
