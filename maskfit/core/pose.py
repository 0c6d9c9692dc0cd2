"""
Head pose heuristics and frame validity gates.

Yaw is approximated from 2D landmark asymmetry rather than solved in 3D:

           dL − dR
    r  =  ─────────          yaw = r × 90°
           dL + dR

where dL / dR are the horizontal distances from the nose tip to the
left / right outer eye corner.  A frontal face gives r ≈ 0; as the head
turns, the nose tip slides towards one eye and |r| grows.  The mapping is
linear and saturates well before a true 90° profile, so the thresholds
below are tuned to this heuristic rather than to real angles.

Sign convention: positive yaw means the nose tip is closer to the image-
right eye corner in the unmirrored detector frame.  Mirrored previews
flip the sign; the magnitude tests below are unaffected.
"""

from __future__ import annotations

import math

from maskfit.config import config
from maskfit.core.landmarks import FaceLandmark, LandmarkFrame

pcfg = config.pose
mcfg = config.measurement


def estimate_yaw(frame: LandmarkFrame) -> float:
    """Approximate yaw in degrees, in [−max_yaw_deg, +max_yaw_deg]."""
    nose_x = float(frame.normalized(FaceLandmark.NOSE_TIP)[0])
    left_x = float(frame.normalized(FaceLandmark.LEFT_EYE_OUTER)[0])
    right_x = float(frame.normalized(FaceLandmark.RIGHT_EYE_OUTER)[0])

    dist_left = abs(nose_x - left_x)
    dist_right = abs(nose_x - right_x)
    total = dist_left + dist_right
    if total < 1e-12:
        return 0.0

    ratio = (dist_left - dist_right) / total
    return ratio * pcfg.max_yaw_deg


def is_front_facing(yaw_deg: float, threshold_deg: float | None = None) -> bool:
    threshold = pcfg.front_yaw_threshold_deg if threshold_deg is None else threshold_deg
    return abs(yaw_deg) < threshold


def is_profile_facing(yaw_deg: float, threshold_deg: float | None = None) -> bool:
    threshold = pcfg.profile_yaw_threshold_deg if threshold_deg is None else threshold_deg
    return abs(yaw_deg) > threshold


def frame_diagonal_equivalent(width: int, height: int) -> float:
    """RMS of the frame sides; equals the side length of a square frame."""
    return math.sqrt((width ** 2 + height ** 2) / 2.0)


def is_face_size_valid(
    ipd_px: float,
    width: int,
    height: int,
    min_fraction: float | None = None,
) -> bool:
    """
    Reject faces that are too far from the camera.

    A small IPD inflates the scale factor, so every measurement error in
    pixels is magnified in millimetres.
    """
    min_fraction = pcfg.min_ipd_fraction if min_fraction is None else min_fraction
    if not math.isfinite(ipd_px) or ipd_px <= 0:
        return False
    return ipd_px / frame_diagonal_equivalent(width, height) > min_fraction


def is_face_length_in_range(face_length_mm: float, ceiling_mm: float | None = None) -> bool:
    ceiling = mcfg.face_length_ceiling_mm if ceiling_mm is None else ceiling_mm
    return face_length_mm <= ceiling
