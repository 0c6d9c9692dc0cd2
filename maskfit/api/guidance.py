"""
User-facing status text for capture reports.

Keeps presentation out of the state machine: the core emits events, this
module turns the latest report into the two lines the capture screen shows.
"""

from __future__ import annotations

from maskfit.models.schemas import CapturePhase, EventKind, FrameReport

PHASE_STATUS: dict[CapturePhase, str] = {
    CapturePhase.IDLE: "Ready",
    CapturePhase.GUIDE_CHECK: "Look straight at the camera",
    CapturePhase.COUNTDOWN: "Hold still, starting the scan",
    CapturePhase.SCANNING_FRONT: "Scanning front view",
    CapturePhase.GUIDE_TURN_SIDE: "Slowly turn your head to the side",
    CapturePhase.SCANNING_PROFILE: "Scanning side view",
    CapturePhase.COMPLETE: "Measurement complete",
}

EVENT_HINTS: dict[EventKind, str] = {
    EventKind.face_not_found: "Face not found",
    EventKind.face_too_far: "Move closer and fit your face to the guide",
    EventKind.not_front_facing: "Please face the camera",
    EventKind.not_profile_facing: "Turn a little further to the side",
    EventKind.implausible_face_length: "Keep the camera at eye level",
    EventKind.frame_discarded: "",
}


def status_text(report: FrameReport) -> tuple[str, str]:
    """(status, sub_status) for the given report."""
    status = PHASE_STATUS[report.phase]

    for event in reversed(report.events):
        if event.kind == EventKind.phase_changed:
            if report.phase == CapturePhase.COMPLETE:
                return status, "Review and save your results"
            return status, ""
        if event.kind in EVENT_HINTS:
            return status, EVENT_HINTS[event.kind]
        if event.kind == EventKind.pose_stable:
            count = min(report.stability_counter, report.stability_target)
            return status, f"Checking posture... {count}/{report.stability_target}"
        if event.kind == EventKind.frame_buffered:
            return status, f"{report.progress}% done"
        if event.kind == EventKind.countdown:
            return status, f"{int(event.value or 0)}"

    return status, ""
