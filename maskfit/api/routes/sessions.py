"""
Capture session endpoints.

The capture screen creates a session, streams detector output one frame
at a time, drives the countdown from its own timer and finally fetches the
averaged measurements and the mask recommendation.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from maskfit.api.guidance import status_text
from maskfit.core.frame_buffer import BufferFullError
from maskfit.core.landmarks import LandmarkFormatError, LandmarkFrame
from maskfit.core.session import CaptureSession, SessionStateError
from maskfit.models.schemas import (
    CountdownRequest,
    ErrorResponse,
    FrameReport,
    FrameRequest,
    FrameResponse,
    ResultResponse,
    SessionCreateRequest,
    SessionRecommendationResponse,
    SessionResponse,
    UserProfile,
)
from maskfit.storage.session_store import create_session, delete_session, get_session

logger = logging.getLogger(__name__)
router = APIRouter()


def _require_session(session_id: str) -> CaptureSession:
    session = get_session(session_id)
    if session is None:
        raise HTTPException(404, f"Session '{session_id}' not found")
    return session


def _summary(session_id: str, session: CaptureSession) -> SessionResponse:
    return SessionResponse(
        session_id=session_id,
        phase=session.phase,
        stability_counter=session.stability_counter,
        progress=session.progress(),
    )


def _frame_response(session_id: str, report: FrameReport) -> FrameResponse:
    status, sub_status = status_text(report)
    return FrameResponse(session_id=session_id, report=report, status=status, sub_status=sub_status)


@router.post("", response_model=SessionResponse, status_code=201)
async def open_session(req: SessionCreateRequest | None = None):
    """Create a capture session and enter the frontal guide phase."""
    session_id, session = create_session(req.gender if req else None)
    session.start()
    return _summary(session_id, session)


@router.get(
    "/{session_id}",
    response_model=SessionResponse,
    responses={404: {"model": ErrorResponse}},
)
async def read_session(session_id: str):
    return _summary(session_id, _require_session(session_id))


@router.post(
    "/{session_id}/frames",
    response_model=FrameResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def submit_frame(session_id: str, req: FrameRequest):
    """Feed one detector frame (or ``landmarks: null`` when no face was found)."""
    session = _require_session(session_id)

    landmarks = None
    if req.landmarks:
        try:
            landmarks = LandmarkFrame.from_points(req.landmarks)
        except LandmarkFormatError as exc:
            raise HTTPException(422, str(exc)) from exc

    try:
        report = session.process_frame(landmarks, req.width, req.height, req.gender)
    except (SessionStateError, BufferFullError) as exc:
        logger.exception("Frame rejected for session %s", session_id)
        raise HTTPException(409, str(exc)) from exc

    return _frame_response(session_id, report)


@router.post(
    "/{session_id}/countdown",
    response_model=FrameResponse,
    responses={404: {"model": ErrorResponse}},
)
async def advance_countdown(session_id: str, req: CountdownRequest | None = None):
    """Advance the countdown by the elapsed seconds of the caller's timer."""
    session = _require_session(session_id)
    report = session.tick(req.elapsed_s if req else 1.0)
    return _frame_response(session_id, report)


@router.post(
    "/{session_id}/reset",
    response_model=SessionResponse,
    responses={404: {"model": ErrorResponse}},
)
async def reset_session(session_id: str):
    """Discard all buffered frames and restart from the frontal guide."""
    session = _require_session(session_id)
    session.reset()
    session.start()
    return _summary(session_id, session)


@router.delete("/{session_id}", status_code=204, responses={404: {"model": ErrorResponse}})
async def close_session(session_id: str):
    if not delete_session(session_id):
        raise HTTPException(404, f"Session '{session_id}' not found")


@router.get(
    "/{session_id}/result",
    response_model=ResultResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def read_result(session_id: str):
    session = _require_session(session_id)
    result = session.get_final_results()
    if result is None:
        raise HTTPException(409, f"Session '{session_id}' is in phase {session.phase.value}, not COMPLETE")
    return ResultResponse(session_id=session_id, result=result)


@router.post(
    "/{session_id}/recommendation",
    response_model=SessionRecommendationResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def recommend_for_session(session_id: str, user_profile: UserProfile):
    """Recommend a mask from this session's averaged measurements."""
    session = _require_session(session_id)
    if user_profile.gender is not None and session.gender is not None and user_profile.gender != session.gender:
        logger.warning("Session %s calibrated for %s but profile says %s",
                       session_id, session.gender.value, user_profile.gender.value)

    result = session.get_final_results()
    recommendation = session.recommend(user_profile)
    if result is None or recommendation is None:
        raise HTTPException(409, f"Session '{session_id}' is in phase {session.phase.value}, not COMPLETE")

    return SessionRecommendationResponse(
        session_id=session_id,
        result=result,
        recommendation=recommendation,
    )
