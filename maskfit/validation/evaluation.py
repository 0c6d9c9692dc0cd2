"""
Validation framework: compare captured measurements against ground truth.

Design
──────
1. Every finished capture is flattened into **MeasurementSample** rows
   (capture_id, measurement_name, predicted_mm, truth_mm).  Ground truth
   comes from calipers, or from the synthetic face generator.

2. **Error metrics computed:**
   • Mean Absolute Error (MAE)
   • Root Mean Squared Error (RMSE)
   • Mean Bias Error (MBE) — directional; a constant bias across all
     measurements points at a wrong assumed IPD rather than landmark noise
   • 95th-percentile error — worst-case bound
   • Per-measurement breakdown

3. Bland–Altman points to check for proportional bias (error growing
   with face size, the signature of a miscalibrated scale factor).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from maskfit.models.schemas import MeasurementResult

logger = logging.getLogger(__name__)

TARGET_MAE_MM = 2.0


@dataclass
class MeasurementSample:
    capture_id: str
    measurement_name: str
    predicted_mm: float
    truth_mm: float


def samples_from_result(
    capture_id: str,
    result: MeasurementResult,
    truth_mm: dict[str, float],
) -> list[MeasurementSample]:
    """
    Pair every measured field with its ground truth.

    ``truth_mm`` keys are field names of FrontalMeasurement or
    ProfileMeasurement; fields without ground truth are skipped.
    """
    measured = {
        **result.front.model_dump(include=set(result.front.distance_fields)),
        **result.profile.model_dump(include=set(result.profile.distance_fields)),
    }
    return [
        MeasurementSample(capture_id, name, float(value), float(truth_mm[name]))
        for name, value in measured.items()
        if name in truth_mm
    ]


# ── Error analysis ─────────────────────────────────────────────────────

@dataclass
class ErrorMetrics:
    measurement_name: str
    n_samples: int
    mae_mm: float       # Mean Absolute Error
    rmse_mm: float      # Root Mean Squared Error
    mbe_mm: float       # Mean Bias Error (positive = over-prediction)
    p95_error_mm: float  # 95th percentile absolute error
    std_mm: float       # Standard deviation of errors


@dataclass
class EvaluationReport:
    overall_mae_mm: float
    overall_rmse_mm: float
    per_measurement: list[ErrorMetrics]
    n_total_samples: int
    target_met: bool  # True if overall MAE < 2.0 mm


def evaluate(samples: list[MeasurementSample]) -> EvaluationReport:
    """Compute error metrics over all samples."""
    errors_by_name: dict[str, list[float]] = {}
    for s in samples:
        errors_by_name.setdefault(s.measurement_name, []).append(s.predicted_mm - s.truth_mm)

    per_measurement: list[ErrorMetrics] = []
    all_errors: list[float] = []

    for name, errors in sorted(errors_by_name.items()):
        arr = np.array(errors)
        abs_arr = np.abs(arr)
        per_measurement.append(ErrorMetrics(
            measurement_name=name,
            n_samples=len(arr),
            mae_mm=float(np.mean(abs_arr)),
            rmse_mm=float(np.sqrt(np.mean(arr ** 2))),
            mbe_mm=float(np.mean(arr)),
            p95_error_mm=float(np.percentile(abs_arr, 95)),
            std_mm=float(np.std(arr)),
        ))
        all_errors.extend(errors)

    arr = np.array(all_errors)
    overall_mae = float(np.mean(np.abs(arr))) if len(arr) else 0.0
    overall_rmse = float(np.sqrt(np.mean(arr ** 2))) if len(arr) else 0.0

    if overall_mae >= TARGET_MAE_MM:
        logger.warning("Overall MAE %.2f mm misses the %.1f mm target", overall_mae, TARGET_MAE_MM)

    return EvaluationReport(
        overall_mae_mm=round(overall_mae, 3),
        overall_rmse_mm=round(overall_rmse, 3),
        per_measurement=per_measurement,
        n_total_samples=len(arr),
        target_met=overall_mae < TARGET_MAE_MM,
    )


# ── Bland–Altman data preparation ─────────────────────────────────────

@dataclass
class BlandAltmanPoint:
    mean_mm: float     # (predicted + truth) / 2
    diff_mm: float     # predicted − truth
    measurement_name: str
    capture_id: str


def bland_altman_data(samples: list[MeasurementSample]) -> list[BlandAltmanPoint]:
    """
    Each point is ( (pred+truth)/2 ,  pred−truth ).

    A well-calibrated capture shows points clustered around diff = 0
    with no trend against the mean.
    """
    return [
        BlandAltmanPoint(
            mean_mm=(s.predicted_mm + s.truth_mm) / 2,
            diff_mm=s.predicted_mm - s.truth_mm,
            measurement_name=s.measurement_name,
            capture_id=s.capture_id,
        )
        for s in samples
    ]
