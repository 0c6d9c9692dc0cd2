"""
In-memory registry of live capture sessions for the HTTP layer.

A capture only lives as long as its camera stream, so there is nothing to
persist here; finished results are handed back to the caller, whose
persistence layer owns storage.  The registry is bounded: when full, the
least recently touched session is evicted.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import OrderedDict

from maskfit.config import config
from maskfit.core.session import CaptureSession
from maskfit.models.schemas import Gender

logger = logging.getLogger(__name__)

_sessions: OrderedDict[str, CaptureSession] = OrderedDict()
_lock = threading.Lock()


def create_session(gender: Gender | None = None) -> tuple[str, CaptureSession]:
    """Register a new session.  Returns (session_id, session)."""
    session_id = uuid.uuid4().hex[:16]
    session = CaptureSession(config.capture, gender=gender)
    with _lock:
        while len(_sessions) >= config.sessions.max_sessions:
            evicted, _ = _sessions.popitem(last=False)
            logger.info("Evicted idle session %s", evicted)
        _sessions[session_id] = session
    logger.info("Session created: id=%s, gender=%s", session_id, gender.value if gender else "-")
    return session_id, session


def get_session(session_id: str) -> CaptureSession | None:
    with _lock:
        session = _sessions.get(session_id)
        if session is not None:
            _sessions.move_to_end(session_id)
        return session


def delete_session(session_id: str) -> bool:
    with _lock:
        return _sessions.pop(session_id, None) is not None


def clear_sessions() -> None:
    with _lock:
        _sessions.clear()


def session_count() -> int:
    with _lock:
        return len(_sessions)
