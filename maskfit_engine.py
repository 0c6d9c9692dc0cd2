#!/usr/bin/env python3

import json
import sys
from pathlib import Path

from maskfit.core.session import CaptureSession
from maskfit.models.schemas import CapturePhase, Gender, UserProfile


def run_capture(data: dict) -> dict:
    width, height = int(data["width"]), int(data["height"])
    gender = Gender(data["gender"]) if data.get("gender") else None

    session = CaptureSession(gender=gender)
    session.start()

    for points in data["frames"]:
        session.process_frame(points or None, width, height)
        if session.phase == CapturePhase.COUNTDOWN:
            session.tick(session.settings.countdown_s)
        if session.is_complete:
            break

    result = session.get_final_results()
    if result is None:
        raise ValueError(
            f"Capture ended in phase {session.phase.value} after {len(data['frames'])} frames"
        )

    recommendation = session.recommend(UserProfile(**data.get("user_profile") or {}))

    return {
        "result": result.model_dump(mode="json"),
        "recommendation": recommendation.model_dump(mode="json"),
    }


def main():
    if len(sys.argv) != 2:
        print(f"Usage: python {sys.argv[0]} <capture.json>", file=sys.stderr)
        sys.exit(1)

    try:
        data = json.loads(Path(sys.argv[1]).read_text())
        print(json.dumps(run_capture(data), indent=2))
    except Exception as exc:
        print(json.dumps({"error": str(exc)}), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
