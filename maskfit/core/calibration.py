"""
Pixel → millimetre calibration.

The interpupillary distance (IPD) is the only real-world reference length
available from a single webcam frame.  Adult IPD clusters tightly around
its population mean, so

    scale (mm/px) = IPD_assumed_mm / IPD_observed_px

Assumed IPD:  male 64 mm, female 62 mm, unknown 63 mm.
"""

from __future__ import annotations

import math

from maskfit.config import config
from maskfit.models.schemas import Gender

ccfg = config.calibration


class CalibrationError(ValueError):
    """Observed IPD is zero, near zero or not finite."""


def assumed_ipd_mm(gender: Gender | None = None) -> float:
    if gender == Gender.male:
        return ccfg.ipd_male_mm
    if gender == Gender.female:
        return ccfg.ipd_female_mm
    return ccfg.ipd_default_mm


def is_degenerate_ipd(ipd_px: float) -> bool:
    return not math.isfinite(ipd_px) or ipd_px <= ccfg.min_ipd_px


def scale_factor(ipd_px: float, gender: Gender | None = None) -> float:
    """Millimetres per pixel for a face whose pupils are ``ipd_px`` apart."""
    if is_degenerate_ipd(ipd_px):
        raise CalibrationError(f"Cannot calibrate from IPD of {ipd_px!r} px")
    return assumed_ipd_mm(gender) / ipd_px
