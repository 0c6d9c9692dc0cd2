"""
Capture session state machine.

Phases
──────
  IDLE ─start→ GUIDE_CHECK ─20 stable frontal frames→ COUNTDOWN
       ─timer→ SCANNING_FRONT ─buffer full→ GUIDE_TURN_SIDE
       ─10 stable profile frames→ SCANNING_PROFILE ─buffer full→ COMPLETE

The machine never advances on its own: the caller submits one frame at a
time (``transition``) and drives the countdown with its own timer
(``tick``).  Only ``reset`` moves backwards.

``transition`` is pure: it copies the state, applies the frame and returns
the new state together with the events the presentation layer needs
(status text, progress bars).  ``CaptureSession`` is the thin stateful
wrapper that owns exactly one ``SessionState``.

Scale freezing
──────────────
When the frontal buffer fills, the mean scale factor over its frames is
frozen.  Every profile frame is measured with that factor: in profile the
IPD is foreshortened and would over-scale everything.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, NamedTuple, Sequence

import numpy as np

from maskfit.config import CaptureConfig, config
from maskfit.core.calibration import is_degenerate_ipd
from maskfit.core.feature_extraction import (
    interpupillary_distance_px,
    measure_frontal,
    measure_profile,
)
from maskfit.core.frame_buffer import FrameBuffer
from maskfit.core.landmarks import LandmarkFrame
from maskfit.core.pose import (
    estimate_yaw,
    is_face_length_in_range,
    is_face_size_valid,
    is_front_facing,
    is_profile_facing,
)
from maskfit.core.recommendation import recommend
from maskfit.models.schemas import (
    CapturePhase,
    EventKind,
    FrameReport,
    FrontalMeasurement,
    Gender,
    MaskRecommendation,
    MeasurementResult,
    ProfileMeasurement,
    SessionEvent,
    UserProfile,
)

logger = logging.getLogger(__name__)

mcfg = config.measurement

PHASE_ORDER: tuple[CapturePhase, ...] = (
    CapturePhase.IDLE,
    CapturePhase.GUIDE_CHECK,
    CapturePhase.COUNTDOWN,
    CapturePhase.SCANNING_FRONT,
    CapturePhase.GUIDE_TURN_SIDE,
    CapturePhase.SCANNING_PROFILE,
    CapturePhase.COMPLETE,
)


class SessionStateError(RuntimeError):
    """An operation was requested in a phase that does not allow it."""


# ── State ──────────────────────────────────────────────────────────────

@dataclass
class SessionState:
    phase: CapturePhase
    front_buffer: FrameBuffer[FrontalMeasurement]
    profile_buffer: FrameBuffer[ProfileMeasurement]
    stability_counter: int = 0
    countdown_remaining_s: float = 0.0
    frozen_scale_factor: float | None = None

    def copy(self) -> SessionState:
        return replace(
            self,
            front_buffer=self.front_buffer.copy(),
            profile_buffer=self.profile_buffer.copy(),
        )


def new_session_state(settings: CaptureConfig | None = None) -> SessionState:
    settings = settings or config.capture
    fixed = {"confidence": mcfg.detector_confidence}
    return SessionState(
        phase=CapturePhase.IDLE,
        front_buffer=FrameBuffer(settings.scan_frames, fixed),
        profile_buffer=FrameBuffer(settings.scan_frames),
    )


@dataclass(frozen=True)
class CaptureFrame:
    """One detector output handed to the state machine."""
    landmarks: LandmarkFrame | None
    width: int
    height: int
    gender: Gender | None = None


class Transition(NamedTuple):
    state: SessionState
    events: list[SessionEvent]
    pose_valid: bool = False
    yaw_deg: float | None = None


# ── Phase handlers ─────────────────────────────────────────────────────

def _event(state: SessionState, kind: EventKind, value: float | None = None) -> SessionEvent:
    return SessionEvent(kind=kind, phase=state.phase, value=value)


def _enter(state: SessionState, phase: CapturePhase, events: list[SessionEvent]) -> None:
    logger.info("Capture phase %s → %s", state.phase.value, phase.value)
    state.phase = phase
    events.append(_event(state, EventKind.phase_changed))


def _lose_face(state: SessionState, events: list[SessionEvent]) -> tuple[bool, float | None]:
    state.stability_counter = 0
    events.append(_event(state, EventKind.face_not_found))
    return False, None


def _guide_check(
    state: SessionState, frame: CaptureFrame, settings: CaptureConfig, events: list[SessionEvent],
) -> tuple[bool, float | None]:
    if frame.landmarks is None:
        return _lose_face(state, events)
    ipd_px = interpupillary_distance_px(frame.landmarks, frame.width, frame.height)
    if is_degenerate_ipd(ipd_px):
        return _lose_face(state, events)

    yaw = estimate_yaw(frame.landmarks)
    if not is_front_facing(yaw):
        state.stability_counter = 0
        events.append(_event(state, EventKind.not_front_facing, yaw))
        return False, yaw
    if not is_face_size_valid(ipd_px, frame.width, frame.height):
        state.stability_counter = 0
        events.append(_event(state, EventKind.face_too_far, ipd_px))
        return False, yaw

    state.stability_counter += 1
    events.append(_event(state, EventKind.pose_stable, state.stability_counter))
    if state.stability_counter >= settings.front_stability_frames:
        state.stability_counter = 0
        state.countdown_remaining_s = settings.countdown_s
        _enter(state, CapturePhase.COUNTDOWN, events)
    return True, yaw


def _scanning_front(
    state: SessionState, frame: CaptureFrame, settings: CaptureConfig, events: list[SessionEvent],
) -> tuple[bool, float | None]:
    measurement = measure_frontal(frame.landmarks, frame.width, frame.height, frame.gender)
    if measurement is None:
        events.append(_event(state, EventKind.face_not_found))
        return False, None

    yaw = estimate_yaw(frame.landmarks)
    if not is_face_size_valid(measurement.interpupillary_distance_px, frame.width, frame.height):
        logger.debug("Frontal frame rejected: IPD %.1f px too small", measurement.interpupillary_distance_px)
        events.append(_event(state, EventKind.face_too_far, measurement.interpupillary_distance_px))
        return False, yaw

    state.front_buffer.add(measurement)
    events.append(_event(state, EventKind.frame_buffered, state.front_buffer.progress()))
    if not is_face_length_in_range(measurement.face_length_mm):
        events.append(_event(state, EventKind.implausible_face_length, measurement.face_length_mm))

    if state.front_buffer.is_full():
        state.frozen_scale_factor = state.front_buffer.mean_of("scale_factor_mm_per_px")
        state.stability_counter = 0
        logger.info("Scale factor frozen at %.5f mm/px", state.frozen_scale_factor)
        _enter(state, CapturePhase.GUIDE_TURN_SIDE, events)
    return True, yaw


def _guide_turn_side(
    state: SessionState, frame: CaptureFrame, settings: CaptureConfig, events: list[SessionEvent],
) -> tuple[bool, float | None]:
    if frame.landmarks is None:
        return _lose_face(state, events)

    yaw = estimate_yaw(frame.landmarks)
    if not is_profile_facing(yaw):
        state.stability_counter = 0
        events.append(_event(state, EventKind.not_profile_facing, yaw))
        return False, yaw

    state.stability_counter += 1
    events.append(_event(state, EventKind.pose_stable, state.stability_counter))
    if state.stability_counter >= settings.side_stability_frames:
        state.stability_counter = 0
        state.profile_buffer.clear()
        _enter(state, CapturePhase.SCANNING_PROFILE, events)
    return True, yaw


def _scanning_profile(
    state: SessionState, frame: CaptureFrame, settings: CaptureConfig, events: list[SessionEvent],
) -> tuple[bool, float | None]:
    if frame.landmarks is None:
        events.append(_event(state, EventKind.face_not_found))
        return False, None
    if state.frozen_scale_factor is None:
        raise SessionStateError("Profile scan reached without a frozen scale factor")

    yaw = estimate_yaw(frame.landmarks)
    measurement = measure_profile(frame.landmarks, frame.width, frame.height, state.frozen_scale_factor)
    state.profile_buffer.add(measurement)
    events.append(_event(state, EventKind.frame_buffered, state.profile_buffer.progress()))

    if state.profile_buffer.is_full():
        _enter(state, CapturePhase.COMPLETE, events)
    return True, yaw


_Handler = Callable[
    [SessionState, CaptureFrame, CaptureConfig, list[SessionEvent]],
    tuple[bool, float | None],
]

_HANDLERS: dict[CapturePhase, _Handler] = {
    CapturePhase.GUIDE_CHECK: _guide_check,
    CapturePhase.SCANNING_FRONT: _scanning_front,
    CapturePhase.GUIDE_TURN_SIDE: _guide_turn_side,
    CapturePhase.SCANNING_PROFILE: _scanning_profile,
}


# ── Pure transitions ───────────────────────────────────────────────────

def start(state: SessionState) -> Transition:
    if state.phase != CapturePhase.IDLE:
        raise SessionStateError(f"Cannot start a session in phase {state.phase.value}")
    new = state.copy()
    new.stability_counter = 0
    events: list[SessionEvent] = []
    _enter(new, CapturePhase.GUIDE_CHECK, events)
    return Transition(new, events)


def transition(
    state: SessionState, frame: CaptureFrame, settings: CaptureConfig | None = None,
) -> Transition:
    """Apply one frame.  Phases that are not frame-driven discard it."""
    settings = settings or config.capture
    new = state.copy()
    events: list[SessionEvent] = []

    handler = _HANDLERS.get(new.phase)
    if handler is None:
        events.append(_event(new, EventKind.frame_discarded))
        return Transition(new, events)

    pose_valid, yaw = handler(new, frame, settings, events)
    return Transition(new, events, pose_valid, yaw)


def tick(state: SessionState, elapsed_s: float) -> Transition:
    """Advance the countdown timer; a no-op outside COUNTDOWN."""
    if not np.isfinite(elapsed_s) or elapsed_s <= 0:
        raise ValueError(f"Elapsed time must be positive and finite, got {elapsed_s!r}")
    new = state.copy()
    events: list[SessionEvent] = []
    if new.phase != CapturePhase.COUNTDOWN:
        return Transition(new, events)

    new.countdown_remaining_s = max(0.0, new.countdown_remaining_s - elapsed_s)
    events.append(_event(new, EventKind.countdown, float(np.ceil(new.countdown_remaining_s))))
    if new.countdown_remaining_s <= 0.0:
        new.front_buffer.clear()
        _enter(new, CapturePhase.SCANNING_FRONT, events)
    return Transition(new, events)


def build_result(state: SessionState, ceiling_mm: float | None = None) -> MeasurementResult:
    """Average both buffers into the completion record."""
    if not (state.front_buffer.is_full() and state.profile_buffer.is_full()):
        raise SessionStateError(
            f"Results requested with {len(state.front_buffer)}/{state.front_buffer.capacity} "
            f"frontal and {len(state.profile_buffer)}/{state.profile_buffer.capacity} profile frames"
        )

    front = state.front_buffer.average()
    profile = state.profile_buffer.average()

    advisories: list[str] = []
    implausible = not is_face_length_in_range(front.face_length_mm, ceiling_mm)
    if implausible:
        logger.warning("Implausible face length %.1f mm", front.face_length_mm)
        advisories.append(
            f"Face length {front.face_length_mm:.1f} mm is outside the plausible range; "
            "check camera distance and angle and measure again."
        )

    return MeasurementResult(
        front=front,
        profile=profile,
        face_length_implausible=implausible,
        advisories=advisories,
    )


# ── Stateful wrapper ───────────────────────────────────────────────────

class CaptureSession:
    """One live capture.  Not shared between users or threads."""

    def __init__(self, settings: CaptureConfig | None = None, gender: Gender | None = None):
        self.settings = settings or config.capture
        self.gender = gender
        self.state = new_session_state(self.settings)
        self._result: MeasurementResult | None = None

    # ── queries ──

    @property
    def phase(self) -> CapturePhase:
        return self.state.phase

    @property
    def stability_counter(self) -> int:
        return self.state.stability_counter

    @property
    def stability_target(self) -> int:
        if self.state.phase == CapturePhase.GUIDE_TURN_SIDE:
            return self.settings.side_stability_frames
        return self.settings.front_stability_frames

    @property
    def frozen_scale_factor(self) -> float | None:
        return self.state.frozen_scale_factor

    @property
    def is_complete(self) -> bool:
        return self.state.phase == CapturePhase.COMPLETE

    def progress(self) -> int:
        phase = self.state.phase
        if phase == CapturePhase.SCANNING_FRONT:
            return self.state.front_buffer.progress()
        if phase in (CapturePhase.GUIDE_TURN_SIDE, CapturePhase.SCANNING_PROFILE):
            return self.state.profile_buffer.progress()
        if phase == CapturePhase.COMPLETE:
            return 100
        return 0

    # ── commands ──

    def start(self) -> FrameReport:
        return self._apply(start(self.state))

    def process_frame(
        self,
        landmarks: LandmarkFrame | Sequence[Sequence[float]] | np.ndarray | None,
        width: int,
        height: int,
        gender: Gender | None = None,
    ) -> FrameReport:
        if landmarks is not None and not isinstance(landmarks, LandmarkFrame):
            landmarks = LandmarkFrame.from_points(landmarks) if len(landmarks) else None
        frame = CaptureFrame(landmarks, width, height, gender or self.gender)
        return self._apply(transition(self.state, frame, self.settings))

    def tick(self, elapsed_s: float = 1.0) -> FrameReport:
        return self._apply(tick(self.state, elapsed_s))

    def reset(self) -> None:
        logger.info("Capture session reset from %s", self.state.phase.value)
        self.state = new_session_state(self.settings)
        self._result = None

    def get_final_results(self) -> MeasurementResult | None:
        if not self.is_complete:
            return None
        if self._result is None:
            self._result = build_result(self.state)
        return self._result

    def recommend(self, user_profile: UserProfile) -> MaskRecommendation | None:
        result = self.get_final_results()
        if result is None:
            return None
        return recommend(result.front, result.profile, user_profile)

    def _apply(self, step: Transition) -> FrameReport:
        if PHASE_ORDER.index(step.state.phase) < PHASE_ORDER.index(self.state.phase):
            raise SessionStateError(
                f"Backward transition {self.state.phase.value} → {step.state.phase.value}"
            )
        self.state = step.state
        return FrameReport(
            phase=self.state.phase,
            stability_counter=self.state.stability_counter,
            stability_target=self.stability_target,
            progress=self.progress(),
            pose_valid=step.pose_valid,
            yaw_deg=step.yaw_deg,
            events=step.events,
        )
