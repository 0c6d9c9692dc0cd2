"""
Shared test fixtures.
"""

import sys
from pathlib import Path

import pytest

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from maskfit.config import CaptureConfig
from maskfit.core.landmarks import LandmarkFrame
from maskfit.core.session import CaptureSession
from maskfit.models.schemas import CapturePhase
from scripts.synthetic_face import FaceSpec, make_frame

WIDTH = 1000
HEIGHT = 1000


@pytest.fixture
def face_spec() -> FaceSpec:
    return FaceSpec()


@pytest.fixture
def front_frame(face_spec) -> LandmarkFrame:
    """Default synthetic face, looking straight at the camera, 3 px/mm."""
    return LandmarkFrame.from_points(make_frame(face_spec))


@pytest.fixture
def profile_frame(face_spec) -> LandmarkFrame:
    """Default synthetic face turned 45° to the side."""
    return LandmarkFrame.from_points(make_frame(face_spec, yaw_deg=45.0))


@pytest.fixture
def small_capture() -> CaptureConfig:
    """Short pacing so state machine tests stay readable."""
    return CaptureConfig(
        front_stability_frames=3,
        side_stability_frames=2,
        scan_frames=5,
        countdown_s=3.0,
    )


def drive_to(session: CaptureSession, phase: CapturePhase, front, profile) -> None:
    """Feed ideal frames until the session reaches ``phase``."""
    if session.phase == CapturePhase.IDLE:
        session.start()
    for _ in range(10_000):
        if session.phase == phase:
            return
        if session.phase == CapturePhase.COUNTDOWN:
            session.tick(session.settings.countdown_s)
        elif session.phase in (CapturePhase.GUIDE_CHECK, CapturePhase.SCANNING_FRONT):
            session.process_frame(front, WIDTH, HEIGHT)
        else:
            session.process_frame(profile, WIDTH, HEIGHT)
    raise AssertionError(f"Session stuck in {session.phase.value}")
