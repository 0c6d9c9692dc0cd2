"""
Per-frame facial measurements.

Frontal view
────────────
Every distance is measured between a designated landmark pair after
denormalizing both points to pixels, then converted with the IPD-derived
scale factor:

  Quantity        │ Landmark pair
  ────────────────┼───────────────────────────────
  Nose width      │ nostril edges (98 ↔ 327)
  Face length     │ face top ↔ chin (10 ↔ 152)
  Face width      │ contour left ↔ right (234 ↔ 454)
  Philtrum        │ subnasale ↔ upper lip (2 ↔ 0)
  Mouth width     │ mouth corners (61 ↔ 291)
  Bridge width    │ inner eye corners (133 ↔ 362)

The chin angle is the opening angle at the chin (152) between the lines to
the jaw corners (172, 397), in degrees.

Profile view
────────────
With the head turned, the nose and chin separate horizontally from the
face plane.  Measured with the scale factor frozen at the end of the
frontal scan (the IPD is foreshortened in profile and no longer usable):

  • Nose height:     |x(nose tip) − x(nose bridge)|
  • Jaw projection:  (x(chin) − x(subnasale)) · s,  s = sign of the nose
                     direction, so a chin behind the subnasale is negative.
"""

from __future__ import annotations

import logging

import numpy as np

from maskfit.config import config
from maskfit.core.calibration import is_degenerate_ipd, scale_factor
from maskfit.core.landmarks import FaceLandmark, LandmarkFrame
from maskfit.models.schemas import FrontalMeasurement, Gender, ProfileMeasurement

logger = logging.getLogger(__name__)

mcfg = config.measurement
ccfg = config.calibration

L = FaceLandmark


# ── Helpers ────────────────────────────────────────────────────────────

def distance(p1: np.ndarray, p2: np.ndarray) -> float:
    """Euclidean distance; 3D when both points carry depth, else 2D."""
    d = np.asarray(p2, dtype=float) - np.asarray(p1, dtype=float)
    if len(d) > 2 and not (p1[2] and p2[2]):
        d = d[:2]
    return float(np.linalg.norm(d))


def landmark_distance_px(
    frame: LandmarkFrame, a: FaceLandmark, b: FaceLandmark, width: int, height: int,
) -> float:
    return distance(frame.pixel(a, width, height), frame.pixel(b, width, height))


def interpupillary_distance_px(
    frame: LandmarkFrame, width: int, height: int, reference: str | None = None,
) -> float:
    """Calibration distance in pixels between the configured reference landmarks."""
    reference = ccfg.ipd_reference if reference is None else reference
    if reference == "inner_corners":
        return landmark_distance_px(frame, L.LEFT_EYE_INNER, L.RIGHT_EYE_INNER, width, height)
    return distance(frame.pupil(True, width, height), frame.pupil(False, width, height))


def chin_angle_deg(frame: LandmarkFrame, width: int, height: int) -> float:
    """
    Opening angle at the chin between the two jaw lines, in the image plane.

    Returns 0.0 when a jaw point coincides with the chin.
    """
    chin = frame.pixel(L.CHIN, width, height)[:2]
    left = chin - frame.pixel(L.JAW_LEFT, width, height)[:2]
    right = chin - frame.pixel(L.JAW_RIGHT, width, height)[:2]

    norms = float(np.linalg.norm(left) * np.linalg.norm(right))
    if norms < 1e-12:
        return 0.0
    cos_angle = np.clip(np.dot(left, right) / norms, -1.0, 1.0)
    return float(np.degrees(np.arccos(cos_angle)))


def _mm(px: float, scale: float) -> float:
    return round(px * scale, mcfg.decimals)


# ── Frontal ────────────────────────────────────────────────────────────

FRONTAL_PAIRS: dict[str, tuple[FaceLandmark, FaceLandmark]] = {
    "nose_width_mm": (L.NOSE_LEFT, L.NOSE_RIGHT),
    "face_length_mm": (L.FACE_TOP, L.CHIN),
    "face_width_mm": (L.FACE_LEFT, L.FACE_RIGHT),
    "philtrum_length_mm": (L.NOSE_BOTTOM, L.UPPER_LIP),
    "mouth_width_mm": (L.MOUTH_LEFT, L.MOUTH_RIGHT),
    "bridge_width_mm": (L.LEFT_EYE_INNER, L.RIGHT_EYE_INNER),
}


def measure_frontal(
    frame: LandmarkFrame | None,
    width: int,
    height: int,
    gender: Gender | None = None,
) -> FrontalMeasurement | None:
    """
    Measure a front-facing frame.

    Returns None when there is no face or the IPD is too small to
    calibrate from.
    """
    if frame is None or len(frame) == 0:
        return None

    ipd_px = interpupillary_distance_px(frame, width, height)
    if is_degenerate_ipd(ipd_px):
        logger.debug("Degenerate IPD (%.3g px); treating frame as faceless", ipd_px)
        return None

    scale = scale_factor(ipd_px, gender)
    values = {
        name: _mm(landmark_distance_px(frame, a, b, width, height), scale)
        for name, (a, b) in FRONTAL_PAIRS.items()
    }

    return FrontalMeasurement(
        interpupillary_distance_px=ipd_px,
        scale_factor_mm_per_px=scale,
        chin_angle_deg=round(chin_angle_deg(frame, width, height), mcfg.decimals),
        confidence=mcfg.detector_confidence,
        **values,
    )


# ── Profile ────────────────────────────────────────────────────────────

def measure_profile(
    frame: LandmarkFrame,
    width: int,
    height: int,
    frozen_scale: float,
) -> ProfileMeasurement:
    """Measure a side-facing frame with the session's frozen scale factor."""
    tip = frame.pixel(L.NOSE_TIP, width, height)
    bridge = frame.pixel(L.NOSE_BRIDGE, width, height)
    subnasale = frame.pixel(L.NOSE_BOTTOM, width, height)
    chin = frame.pixel(L.CHIN, width, height)

    nose_offset = float(tip[0] - bridge[0])
    forward = 1.0 if nose_offset >= 0 else -1.0

    return ProfileMeasurement(
        nose_height_mm=_mm(abs(nose_offset), frozen_scale),
        jaw_projection_mm=_mm(float(chin[0] - subnasale[0]) * forward, frozen_scale),
    )
