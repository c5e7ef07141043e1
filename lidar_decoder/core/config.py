import math
import os
from typing import Literal, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from .errors import ConfigError


class Settings:
    # Project
    PROJECT_NAME: str = "Lidar Packet Decoder"
    VERSION: str = "0.1.0"

    # Decoder options
    LIDAR_START_ANGLE: float = float(os.getenv("LIDAR_START_ANGLE", 0.0))
    LIDAR_END_ANGLE: float = float(os.getenv("LIDAR_END_ANGLE", 360.0))
    LIDAR_MIN_DISTANCE: float = float(os.getenv("LIDAR_MIN_DISTANCE", 0.5))
    LIDAR_MAX_DISTANCE: float = float(os.getenv("LIDAR_MAX_DISTANCE", 200.0))
    LIDAR_RETURN_MODE: str = os.getenv("LIDAR_RETURN_MODE", "strongest")  # "first", "strongest" or "all"

    # Optical center position in the lidar frame (meters)
    LIDAR_RX: float = float(os.getenv("LIDAR_RX", 0.03615))
    LIDAR_RY: float = float(os.getenv("LIDAR_RY", 0.0))
    LIDAR_RZ: float = float(os.getenv("LIDAR_RZ", 0.0))

    # Azimuth interpolation between consecutive firings (hundredths of a degree)
    LIDAR_AZIMUTH_DELTA_DEFAULT: int = int(os.getenv("LIDAR_AZIMUTH_DELTA_DEFAULT", 10))
    LIDAR_AZIMUTH_DELTA_MAX: int = int(os.getenv("LIDAR_AZIMUTH_DELTA_MAX", 100))

    # File Settings
    LIDAR_CAPTURE_PATH: str = os.getenv("LIDAR_CAPTURE_PATH", "./capture.bin")
    LIDAR_PCD_PATH: str = os.getenv("LIDAR_PCD_PATH", "./output.pcd")


settings = Settings()


class DecoderConfig(BaseModel):
    """Validated decoder options.

    Angles are in degrees, distances in meters, azimuth deltas in
    hundredths of a degree.
    """
    model_config = ConfigDict(frozen=True)

    start_angle: float = 0.0
    end_angle: float = 360.0
    min_distance: float = 0.5
    max_distance: float = 200.0
    return_mode: Literal["first", "strongest", "all"] = "strongest"
    optical_center_offset: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    default_azimuth_delta: int = 10
    max_azimuth_delta: int = 100

    @model_validator(mode="after")
    def _check_ranges(self) -> "DecoderConfig":
        for name in ("start_angle", "end_angle", "min_distance", "max_distance"):
            if not math.isfinite(getattr(self, name)):
                raise ValueError(f"{name} must be finite, got {getattr(self, name)}")
        if not all(math.isfinite(v) for v in self.optical_center_offset):
            raise ValueError(f"optical_center_offset must be finite, got {self.optical_center_offset}")
        for name in ("start_angle", "end_angle"):
            value = getattr(self, name)
            if not 0.0 <= value <= 360.0:
                raise ValueError(f"{name} must be within [0, 360] degrees, got {value}")
        if self.min_distance < 0.0 or self.min_distance >= self.max_distance:
            raise ValueError(
                f"distance range must satisfy 0 <= min < max, got [{self.min_distance}, {self.max_distance}]"
            )
        if self.default_azimuth_delta < 0 or self.max_azimuth_delta < self.default_azimuth_delta:
            raise ValueError(
                f"azimuth deltas must satisfy 0 <= default <= max, "
                f"got default={self.default_azimuth_delta} max={self.max_azimuth_delta}"
            )
        return self

    @classmethod
    def build(cls, **options) -> "DecoderConfig":
        """Validate options, raising ConfigError instead of pydantic's ValidationError."""
        try:
            return cls(**options)
        except ValidationError as e:
            raise ConfigError(str(e)) from e

    @classmethod
    def from_settings(cls, source: Settings = settings) -> "DecoderConfig":
        return cls.build(
            start_angle=source.LIDAR_START_ANGLE,
            end_angle=source.LIDAR_END_ANGLE,
            min_distance=source.LIDAR_MIN_DISTANCE,
            max_distance=source.LIDAR_MAX_DISTANCE,
            return_mode=source.LIDAR_RETURN_MODE,
            optical_center_offset=(source.LIDAR_RX, source.LIDAR_RY, source.LIDAR_RZ),
            default_azimuth_delta=source.LIDAR_AZIMUTH_DELTA_DEFAULT,
            max_azimuth_delta=source.LIDAR_AZIMUTH_DELTA_MAX,
        )

    @property
    def start_units(self) -> int:
        """Window start in hundredths of a degree."""
        return int(round(self.start_angle * 100)) % 36000

    @property
    def end_units(self) -> int:
        """Window end in hundredths of a degree."""
        return int(round(self.end_angle * 100)) % 36000

    @property
    def full_window(self) -> bool:
        return self.start_units == self.end_units
