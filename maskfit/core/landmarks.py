"""
Facial landmark roles and the read-only per-frame landmark container.

Indices follow the 468-point MediaPipe face mesh; the optional iris
refinement appends ten points (468–477) whose centres are 468 and 473.

  Role               │ Index │ Used for
  ───────────────────┼───────┼──────────────────────────────
  Eye outer corners  │ 33 / 263  │ yaw, pupil fallback
  Eye inner corners  │ 133 / 362 │ bridge width, pupil fallback, IPD (inner_corners)
  Pupils (iris)      │ 468 / 473 │ IPD when present
  Nose tip / bridge  │ 1 / 6     │ yaw, nose height
  Nostril edges      │ 98 / 327  │ nose width
  Subnasale          │ 2         │ philtrum, jaw projection
  Upper / lower lip  │ 0 / 17    │ philtrum
  Mouth corners      │ 61 / 291  │ mouth width
  Face top / chin    │ 10 / 152  │ face length, jaw projection, chin angle
  Contour left/right │ 234 / 454 │ face width
  Jaw left/right     │ 172 / 397 │ chin angle

"Left" and "right" are image sides of the unmirrored detector frame.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Sequence

import numpy as np

from maskfit.config import config

mcfg = config.measurement

MESH_POINTS = 468
IRIS_MESH_POINTS = 478


class FaceLandmark(IntEnum):
    LEFT_EYE_OUTER = 33
    LEFT_EYE_INNER = 133
    RIGHT_EYE_INNER = 362
    RIGHT_EYE_OUTER = 263
    LEFT_PUPIL = 468
    RIGHT_PUPIL = 473

    NOSE_TIP = 1
    NOSE_BRIDGE = 6
    NOSE_LEFT = 98
    NOSE_RIGHT = 327
    NOSE_BOTTOM = 2

    UPPER_LIP = 0
    LOWER_LIP = 17
    MOUTH_LEFT = 61
    MOUTH_RIGHT = 291

    FACE_TOP = 10
    CHIN = 152
    FACE_LEFT = 234
    FACE_RIGHT = 454
    JAW_LEFT = 172
    JAW_RIGHT = 397


class LandmarkFormatError(ValueError):
    """Landmark array has the wrong shape or is not in normalized units."""


@dataclass(frozen=True, eq=False)
class LandmarkFrame:
    """
    One detected face: an (N, 3) array of normalized points.

    x and y are fractions of frame width and height; z is the detector's
    relative depth (zero when the detector is 2D only).
    """
    points: np.ndarray

    @classmethod
    def from_points(cls, points: Sequence[Sequence[float]] | np.ndarray) -> LandmarkFrame:
        try:
            arr = np.asarray(points, dtype=float)
        except (TypeError, ValueError) as exc:
            raise LandmarkFormatError(f"Landmarks are not a rectangular numeric array: {exc}") from exc
        if arr.ndim != 2 or arr.shape[1] not in (2, 3):
            raise LandmarkFormatError(
                f"Expected an (N, 2) or (N, 3) point array, got shape {arr.shape}"
            )
        if arr.shape[0] < MESH_POINTS:
            raise LandmarkFormatError(
                f"Expected at least {MESH_POINTS} landmarks, got {arr.shape[0]}"
            )
        if not np.all(np.isfinite(arr)):
            raise LandmarkFormatError("Landmark coordinates must be finite")
        if float(np.max(np.abs(arr[:, :2]))) > mcfg.max_normalized_coordinate:
            raise LandmarkFormatError(
                "Landmark x/y look like pixel coordinates; "
                "expected values normalized to the frame size"
            )
        if arr.shape[1] == 2:
            arr = np.column_stack([arr, np.zeros(len(arr))])
        arr = arr.copy()
        arr.flags.writeable = False
        return cls(points=arr)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def has_iris(self) -> bool:
        return len(self.points) >= IRIS_MESH_POINTS

    def normalized(self, role: FaceLandmark) -> np.ndarray:
        return self.points[int(role)]

    def pixel(self, role: FaceLandmark, width: int, height: int) -> np.ndarray:
        """
        Denormalize a landmark to pixel units.

        z is scaled by the frame width, matching the detector's convention
        that depth shares the x scale.
        """
        x, y, z = self.points[int(role)]
        return np.array([x * width, y * height, z * width])

    def pupil(self, left: bool, width: int, height: int) -> np.ndarray:
        """Pupil centre in pixels: iris centre when available, else mid eye corners."""
        if self.has_iris:
            return self.pixel(FaceLandmark.LEFT_PUPIL if left else FaceLandmark.RIGHT_PUPIL, width, height)
        if left:
            a, b = FaceLandmark.LEFT_EYE_OUTER, FaceLandmark.LEFT_EYE_INNER
        else:
            a, b = FaceLandmark.RIGHT_EYE_INNER, FaceLandmark.RIGHT_EYE_OUTER
        return (self.pixel(a, width, height) + self.pixel(b, width, height)) / 2.0
