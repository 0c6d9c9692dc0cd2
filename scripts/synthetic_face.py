#!/usr/bin/env python3
"""
Synthetic face landmark frames with analytically known measurements.

A face is a handful of 3D anchor points in millimetres (x right, y down,
z towards the camera), placed so every frontal measurement pair is exactly
its ground-truth distance apart:

  - Eyes:    pupils ±IPD/2, inner corners ±bridge/2, outer corners
             mirrored so each pupil sits midway between its corners
  - Nose:    bridge (z = 0), tip (z = nose height), nostrils ±width/2
  - Mouth:   subnasale → upper lip = philtrum, corners ±width/2
  - Contour: top → chin = face length, left ↔ right = face width

Head turns rotate the anchors about the vertical axis
(x' = x·cos θ + z·sin θ) and the result is projected orthographically, the
way a 2D detector reports it (z = 0).  In a profile frame the nose height
and jaw projection therefore appear scaled by sin θ; ``profile_truth``
gives the projected values.

Usage:
    python scripts/synthetic_face.py [output_path]
"""

from __future__ import annotations

import json
import sys
from dataclasses import asdict, dataclass
from pathlib import Path

import numpy as np

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from maskfit.config import config
from maskfit.core.landmarks import IRIS_MESH_POINTS, MESH_POINTS, FaceLandmark as L

DEFAULT_WIDTH = 1000
DEFAULT_HEIGHT = 1000
DEFAULT_PX_PER_MM = 3.0
PROFILE_YAW_DEG = 45.0


@dataclass
class FaceSpec:
    """Ground-truth face dimensions in millimetres."""
    nose_width_mm: float = 36.0
    face_length_mm: float = 185.0
    face_width_mm: float = 135.0
    philtrum_length_mm: float = 14.0
    mouth_width_mm: float = 48.0
    bridge_width_mm: float = 34.0
    nose_height_mm: float = 20.0
    jaw_projection_mm: float = -5.0
    ipd_mm: float = 63.0

    def frontal_truth(self) -> dict[str, float]:
        return {
            "nose_width_mm": self.nose_width_mm,
            "face_length_mm": self.face_length_mm,
            "face_width_mm": self.face_width_mm,
            "philtrum_length_mm": self.philtrum_length_mm,
            "mouth_width_mm": self.mouth_width_mm,
            "bridge_width_mm": self.bridge_width_mm,
        }


GROUND_TRUTH = {**FaceSpec().frontal_truth(), "nose_height_mm": 20.0, "jaw_projection_mm": -5.0}


def chin_angle_truth(spec: FaceSpec) -> float:
    """Opening angle at the chin of the frontal anchors, in degrees."""
    half_width = 0.4 * spec.face_width_mm
    drop = 0.1 * spec.face_length_mm  # chin sits this far below the jaw corners
    return float(2 * np.degrees(np.arctan2(half_width, drop)))


def profile_truth(spec: FaceSpec, yaw_deg: float = PROFILE_YAW_DEG) -> dict[str, float]:
    """Profile measurements as a 2D detector sees them at ``yaw_deg``."""
    s = abs(np.sin(np.radians(yaw_deg)))
    return {
        "nose_height_mm": spec.nose_height_mm * s,
        "jaw_projection_mm": spec.jaw_projection_mm * s,
    }


def anchor_points_mm(spec: FaceSpec) -> dict[L, tuple[float, float, float]]:
    eye_y = -35.0
    half_ipd = spec.ipd_mm / 2
    inner = spec.bridge_width_mm / 2
    outer = spec.ipd_mm - inner

    subnasale_y = 10.0
    subnasale_z = 12.0
    lip_y = subnasale_y + spec.philtrum_length_mm
    chin_y = 0.4 * spec.face_length_mm

    return {
        L.LEFT_EYE_OUTER: (-outer, eye_y, -10.0),
        L.LEFT_EYE_INNER: (-inner, eye_y, -5.0),
        L.RIGHT_EYE_INNER: (inner, eye_y, -5.0),
        L.RIGHT_EYE_OUTER: (outer, eye_y, -10.0),
        L.LEFT_PUPIL: (-half_ipd, eye_y, -8.0),
        L.RIGHT_PUPIL: (half_ipd, eye_y, -8.0),
        L.NOSE_BRIDGE: (0.0, eye_y, 0.0),
        L.NOSE_TIP: (0.0, 0.0, spec.nose_height_mm),
        L.NOSE_LEFT: (-spec.nose_width_mm / 2, 5.0, 8.0),
        L.NOSE_RIGHT: (spec.nose_width_mm / 2, 5.0, 8.0),
        L.NOSE_BOTTOM: (0.0, subnasale_y, subnasale_z),
        L.UPPER_LIP: (0.0, lip_y, 10.0),
        L.LOWER_LIP: (0.0, lip_y + 15.0, 10.0),
        L.MOUTH_LEFT: (-spec.mouth_width_mm / 2, lip_y + 7.0, 2.0),
        L.MOUTH_RIGHT: (spec.mouth_width_mm / 2, lip_y + 7.0, 2.0),
        L.FACE_TOP: (0.0, chin_y - spec.face_length_mm, 0.0),
        L.CHIN: (0.0, chin_y, subnasale_z + spec.jaw_projection_mm),
        L.FACE_LEFT: (-spec.face_width_mm / 2, -10.0, -30.0),
        L.FACE_RIGHT: (spec.face_width_mm / 2, -10.0, -30.0),
        L.JAW_LEFT: (-0.4 * spec.face_width_mm, 0.3 * spec.face_length_mm, -20.0),
        L.JAW_RIGHT: (0.4 * spec.face_width_mm, 0.3 * spec.face_length_mm, -20.0),
    }


def make_frame(
    spec: FaceSpec | None = None,
    yaw_deg: float = 0.0,
    px_per_mm: float = DEFAULT_PX_PER_MM,
    width: int = DEFAULT_WIDTH,
    height: int = DEFAULT_HEIGHT,
    center: tuple[float, float] = (0.5, 0.45),
    noise_px: float = 0.0,
    rng: np.random.Generator | None = None,
    iris: bool = False,
) -> np.ndarray:
    """
    One detector frame as a normalized (N, 3) array.

    Landmarks without an anchor collapse onto the nose tip.
    """
    spec = spec or FaceSpec()
    n_points = IRIS_MESH_POINTS if iris else MESH_POINTS
    theta = np.radians(yaw_deg)

    mm = np.zeros((n_points, 3))
    mm[:] = anchor_points_mm(spec)[L.NOSE_TIP]
    for role, point in anchor_points_mm(spec).items():
        if int(role) < n_points:
            mm[int(role)] = point

    x = mm[:, 0] * np.cos(theta) + mm[:, 2] * np.sin(theta)
    y = mm[:, 1]

    px = np.column_stack([center[0] * width + x * px_per_mm, center[1] * height + y * px_per_mm])
    if noise_px > 0:
        rng = rng or np.random.default_rng(0)
        px = px + rng.normal(0.0, noise_px, px.shape)

    return np.column_stack([px[:, 0] / width, px[:, 1] / height, np.zeros(n_points)])


def make_capture(
    spec: FaceSpec | None = None,
    profile_yaw_deg: float = PROFILE_YAW_DEG,
    noise_px: float = 0.0,
    seed: int = 42,
    gender: str | None = None,
    user_profile: dict | None = None,
) -> dict:
    """
    A full recorded capture: frontal guide frames, frontal scan, head
    turn and profile scan, sized to the configured capture pacing.
    """
    spec = spec or FaceSpec()
    cap = config.capture
    rng = np.random.default_rng(seed)

    n_front = cap.front_stability_frames + cap.scan_frames
    n_side = cap.side_stability_frames + cap.scan_frames
    frames = [make_frame(spec, 0.0, noise_px=noise_px, rng=rng) for _ in range(n_front)]
    frames += [make_frame(spec, profile_yaw_deg, noise_px=noise_px, rng=rng) for _ in range(n_side)]

    return {
        "width": DEFAULT_WIDTH,
        "height": DEFAULT_HEIGHT,
        "gender": gender,
        "user_profile": user_profile or {},
        "ground_truth": {**spec.frontal_truth(), **profile_truth(spec, profile_yaw_deg)},
        "spec": asdict(spec),
        "frames": [f.round(6).tolist() for f in frames],
    }


if __name__ == "__main__":
    out = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("synthetic_capture.json")
    capture = make_capture()
    out.write_text(json.dumps(capture))
    print(f"Saved capture with {len(capture['frames'])} frames to {out}")
