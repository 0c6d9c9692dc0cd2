#!/usr/bin/env python3
"""
End-to-end benchmark: synthetic capture → session → average → evaluate.

Runs a handful of face shapes with detector-like landmark jitter through a
full capture session and compares the averaged measurements against the
generator's ground truth.

Usage:
    python scripts/benchmark.py [noise_px]
"""

from __future__ import annotations

import sys
import time
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from maskfit.core.session import CaptureSession
from maskfit.models.schemas import CapturePhase, UserProfile
from maskfit.validation.evaluation import evaluate, samples_from_result
from scripts.synthetic_face import FaceSpec, make_capture

FACES = {
    "small": FaceSpec(nose_width_mm=31, face_length_mm=172, face_width_mm=124, mouth_width_mm=42),
    "medium": FaceSpec(),
    "large": FaceSpec(nose_width_mm=42, face_length_mm=205, face_width_mm=150, mouth_width_mm=56),
    "short_philtrum": FaceSpec(philtrum_length_mm=10, bridge_width_mm=28),
}


def run_one(spec: FaceSpec, noise_px: float, seed: int):
    capture = make_capture(spec, noise_px=noise_px, seed=seed)
    session = CaptureSession()
    session.start()
    for points in capture["frames"]:
        session.process_frame(points, capture["width"], capture["height"])
        if session.phase == CapturePhase.COUNTDOWN:
            session.tick(session.settings.countdown_s)
    return session, capture["ground_truth"]


def main():
    noise_px = float(sys.argv[1]) if len(sys.argv) > 1 else 1.0

    print("=" * 70)
    print(f"MaskFit Benchmark  (landmark noise σ = {noise_px:.1f} px)")
    print("=" * 70)

    samples = []
    t0 = time.perf_counter()

    for i, (name, spec) in enumerate(FACES.items()):
        session, truth = run_one(spec, noise_px, seed=i)
        result = session.get_final_results()
        if result is None:
            print(f"    {name:<16} did not complete (phase {session.phase.value})")
            continue
        rec = session.recommend(UserProfile())
        samples.extend(samples_from_result(name, result, truth))
        print(f"    {name:<16} size {rec.size.value}  top type {rec.ranked_types[0].mask_type.value}")

    elapsed = time.perf_counter() - t0

    report = evaluate(samples)

    print("\n" + "-" * 70)
    print(f"{'Measurement':<24} {'N':>4} {'MAE':>8} {'RMSE':>8} {'Bias':>8} {'P95':>8}")
    print("-" * 70)
    for m in report.per_measurement:
        print(
            f"{m.measurement_name:<24} {m.n_samples:>4} {m.mae_mm:>8.2f} {m.rmse_mm:>8.2f} "
            f"{m.mbe_mm:>+8.2f} {m.p95_error_mm:>8.2f}"
        )
    print("-" * 70)

    print(f"\n    MAE:  {report.overall_mae_mm:.2f} mm")
    print(f"    RMSE: {report.overall_rmse_mm:.2f} mm")
    print(f"    Target MAE < 2.0 mm: {'PASS' if report.target_met else 'FAIL'}")
    print(f"    Total time: {elapsed:.2f} s  ({elapsed / max(1, len(FACES)):.2f} s per capture)")
    print(f"    Worst sample error: {max(abs(s.predicted_mm - s.truth_mm) for s in samples):.2f} mm"
          if samples else "    No completed captures")
    print("\n" + "=" * 70)


if __name__ == "__main__":
    main()
