"""
Pydantic models for API request/response and internal data transfer.
"""

from __future__ import annotations

from enum import Enum
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field


# ── Enums ──────────────────────────────────────────────────────────────

class Gender(str, Enum):
    male = "male"
    female = "female"


class AgeGroup(str, Enum):
    twenties = "20s"
    thirties = "30s"
    forties = "40s"
    fifties = "50s"
    sixties_plus = "60+"


class Level(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class MaskType(str, Enum):
    nasal = "nasal"
    pillow = "pillow"
    full = "full"


class MaskSize(str, Enum):
    S = "S"
    M = "M"
    L = "L"


class CapturePhase(str, Enum):
    IDLE = "IDLE"
    GUIDE_CHECK = "GUIDE_CHECK"
    COUNTDOWN = "COUNTDOWN"
    SCANNING_FRONT = "SCANNING_FRONT"
    GUIDE_TURN_SIDE = "GUIDE_TURN_SIDE"
    SCANNING_PROFILE = "SCANNING_PROFILE"
    COMPLETE = "COMPLETE"


class EventKind(str, Enum):
    phase_changed = "phase_changed"
    pose_stable = "pose_stable"
    face_not_found = "face_not_found"
    face_too_far = "face_too_far"
    not_front_facing = "not_front_facing"
    not_profile_facing = "not_profile_facing"
    frame_buffered = "frame_buffered"
    frame_discarded = "frame_discarded"
    countdown = "countdown"
    implausible_face_length = "implausible_face_length"


# ── Measurement records ────────────────────────────────────────────────

class MeasurementRecord(BaseModel):
    """
    Base for per-frame measurement value types.

    ``distance_fields`` are re-rounded to 0.1 mm after averaging and
    ``angle_fields`` to 0.1°;
    ``fixed_fields`` are not averaged but reset to a constant.
    """
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    distance_fields: ClassVar[tuple[str, ...]] = ()
    angle_fields: ClassVar[tuple[str, ...]] = ()
    fixed_fields: ClassVar[tuple[str, ...]] = ()


class FrontalMeasurement(MeasurementRecord):
    """One frame of frontal measurements, distances in millimetres."""
    distance_fields: ClassVar[tuple[str, ...]] = (
        "nose_width_mm",
        "face_length_mm",
        "face_width_mm",
        "philtrum_length_mm",
        "mouth_width_mm",
        "bridge_width_mm",
    )
    angle_fields: ClassVar[tuple[str, ...]] = ("chin_angle_deg",)
    fixed_fields: ClassVar[tuple[str, ...]] = ("confidence",)

    interpupillary_distance_px: float = Field(..., gt=0.0)
    scale_factor_mm_per_px: float = Field(..., gt=0.0)
    nose_width_mm: float = Field(..., ge=0.0)
    face_length_mm: float = Field(..., ge=0.0)
    face_width_mm: float = Field(..., ge=0.0)
    philtrum_length_mm: float = Field(..., ge=0.0)
    mouth_width_mm: float = Field(..., ge=0.0)
    bridge_width_mm: float = Field(..., ge=0.0)
    chin_angle_deg: float = Field(..., ge=0.0, le=180.0)
    confidence: float = Field(..., ge=0.0, le=1.0)


class ProfileMeasurement(MeasurementRecord):
    """One frame of side-view measurements taken with the frozen scale factor."""
    distance_fields: ClassVar[tuple[str, ...]] = ("nose_height_mm", "jaw_projection_mm")

    nose_height_mm: float = Field(..., ge=0.0)
    jaw_projection_mm: float  # negative = chin behind the subnasale


class MeasurementResult(BaseModel):
    """Averaged output of a completed capture session."""
    model_config = ConfigDict(frozen=True)

    front: FrontalMeasurement
    profile: ProfileMeasurement
    face_length_implausible: bool = False
    advisories: list[str] = Field(default_factory=list)


# ── Questionnaire ──────────────────────────────────────────────────────

class UserProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    gender: Gender | None = None
    age_group: AgeGroup = AgeGroup.thirties
    tossing: Level = Level.low
    mouth_breathing: bool = False
    pressure: Level = Level.medium  # low ≤10, medium 10–15, high ≥15 cmH2O
    preferred_types: tuple[MaskType, ...] = ()


# ── Recommendation ─────────────────────────────────────────────────────

class TypeScore(BaseModel):
    mask_type: MaskType
    score: int = Field(..., ge=0, le=100)
    reasons: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class MaskRecommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    size: MaskSize
    size_score: int
    ranked_types: list[TypeScore]
    overall_reasons: list[str] = Field(default_factory=list)


# ── Capture session reporting ──────────────────────────────────────────

class SessionEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: EventKind
    phase: CapturePhase
    value: float | None = None


class FrameReport(BaseModel):
    """What the UI needs after each submitted frame or timer tick."""
    phase: CapturePhase
    stability_counter: int
    stability_target: int
    progress: int = Field(..., ge=0, le=100)
    pose_valid: bool
    yaw_deg: float | None = None
    events: list[SessionEvent] = Field(default_factory=list)


# ── API request / response ─────────────────────────────────────────────

class SessionCreateRequest(BaseModel):
    gender: Gender | None = None


class SessionResponse(BaseModel):
    session_id: str
    phase: CapturePhase
    stability_counter: int
    progress: int


class FrameRequest(BaseModel):
    landmarks: list[list[float]] | None = Field(
        None, description="Normalized (x, y[, z]) points in detector order; null when no face",
    )
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    gender: Gender | None = None


class FrameResponse(BaseModel):
    session_id: str
    report: FrameReport
    status: str
    sub_status: str = ""


class CountdownRequest(BaseModel):
    elapsed_s: float = Field(1.0, gt=0.0)


class ResultResponse(BaseModel):
    session_id: str
    result: MeasurementResult


class SessionRecommendationResponse(BaseModel):
    session_id: str
    result: MeasurementResult
    recommendation: MaskRecommendation


class RecommendationRequest(BaseModel):
    front: FrontalMeasurement
    profile: ProfileMeasurement
    user_profile: UserProfile = Field(default_factory=UserProfile)


class RecommendationResponse(BaseModel):
    recommendation: MaskRecommendation


class HealthResponse(BaseModel):
    status: str
    version: str


class ErrorResponse(BaseModel):
    detail: str
