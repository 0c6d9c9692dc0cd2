"""
MaskFit configuration.

All tunable parameters live here so the capture and recommendation
pipeline is fully configurable without touching algorithmic code.
"""

from typing import Literal

from pydantic_settings import BaseSettings
from pydantic import Field


class CalibrationConfig(BaseSettings):
    """Assumed physiological constants for pixel → mm calibration."""

    # Average adult interpupillary distance in mm
    ipd_male_mm: float = 64.0
    ipd_female_mm: float = 62.0
    ipd_default_mm: float = 63.0

    min_ipd_px: float = 1e-6  # below this the calibration is degenerate

    # Landmarks the IPD is measured between: pupil centres (iris when the
    # mesh carries it, else mid eye corners) or the two inner eye corners
    ipd_reference: Literal["pupils", "inner_corners"] = "pupils"


class PoseConfig(BaseSettings):
    """Yaw thresholds and the face-size gate."""

    front_yaw_threshold_deg: float = 10.0
    profile_yaw_threshold_deg: float = 35.0
    max_yaw_deg: float = 90.0  # asymmetry ratio of ±1 maps to ±max_yaw_deg

    # IPD must exceed this fraction of the frame diagonal-equivalent
    min_ipd_fraction: float = 0.10


class MeasurementConfig(BaseSettings):
    """Per-frame feature extraction parameters."""

    detector_confidence: float = 0.95
    decimals: int = 1  # millimetre rounding
    face_length_ceiling_mm: float = 280.0

    # Anything larger than this is a pixel coordinate, not a normalized one
    max_normalized_coordinate: float = 2.0


class CaptureConfig(BaseSettings):
    """Capture session pacing."""

    front_stability_frames: int = 20
    side_stability_frames: int = 10
    scan_frames: int = 90  # buffer capacity per scan phase
    countdown_s: float = 3.0


class SizingConfig(BaseSettings):
    """Size classification thresholds (mm).  value < t1 → 1, < t2 → 2, else 3."""

    nose_width_mm: tuple[float, float] = (35.0, 40.0)
    face_length_mm: tuple[float, float] = (180.0, 200.0)
    face_width_mm: tuple[float, float] = (130.0, 145.0)
    mouth_width_mm: tuple[float, float] = (45.0, 52.0)

    small_max_score: int = 6
    medium_max_score: int = 10


class RecommendationConfig(BaseSettings):
    """Mask type scoring parameters."""

    baseline_score: int = 50
    materiality: int = 10  # adjustments at least this large get a reason line
    preference_bonus: int = 15

    tall_nose_mm: float = 22.0
    short_nose_mm: float = 16.0
    short_philtrum_mm: float = 12.0
    wide_mouth_mm: float = 55.0
    narrow_bridge_mm: float = 30.0
    recessed_jaw_mm: float = -10.0


class SessionStoreConfig(BaseSettings):
    """In-memory capture session registry used by the HTTP layer."""

    max_sessions: int = 256


class AppConfig(BaseSettings):
    """Top-level application configuration."""

    app_name: str = "MaskFit"
    version: str = "0.1.0"
    debug: bool = False
    api_key_header: str = "X-API-Key"
    cors_origins: list[str] = ["*"]

    calibration: CalibrationConfig = Field(default_factory=CalibrationConfig)
    pose: PoseConfig = Field(default_factory=PoseConfig)
    measurement: MeasurementConfig = Field(default_factory=MeasurementConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    sizing: SizingConfig = Field(default_factory=SizingConfig)
    recommendation: RecommendationConfig = Field(default_factory=RecommendationConfig)
    sessions: SessionStoreConfig = Field(default_factory=SessionStoreConfig)


config = AppConfig()
