"""
Tests for landmark frames, calibration, pose heuristics and per-frame
feature extraction.
"""

import math

import numpy as np
import pytest

from maskfit.config import CalibrationConfig, config
from maskfit.core.calibration import CalibrationError, assumed_ipd_mm, scale_factor
from maskfit.core.feature_extraction import (
    chin_angle_deg,
    distance,
    interpupillary_distance_px,
    landmark_distance_px,
    measure_frontal,
    measure_profile,
)
from maskfit.core.landmarks import FaceLandmark, LandmarkFormatError, LandmarkFrame
from maskfit.core.pose import (
    estimate_yaw,
    frame_diagonal_equivalent,
    is_face_length_in_range,
    is_face_size_valid,
    is_front_facing,
    is_profile_facing,
)
from maskfit.models.schemas import Gender
from scripts.synthetic_face import FaceSpec, GROUND_TRUTH, chin_angle_truth, make_frame, profile_truth

from conftest import HEIGHT, WIDTH


# ── Landmark frames ───────────────────────────────────────────────────

class TestLandmarkFrame:

    def test_accepts_2d_points(self):
        frame = LandmarkFrame.from_points(make_frame()[:, :2])
        assert frame.points.shape == (468, 3)
        assert np.all(frame.points[:, 2] == 0.0)

    def test_is_read_only(self, front_frame):
        with pytest.raises(ValueError):
            front_frame.points[0, 0] = 0.5

    def test_rejects_pixel_coordinates(self):
        pixels = make_frame() * np.array([WIDTH, HEIGHT, 1.0])
        with pytest.raises(LandmarkFormatError):
            LandmarkFrame.from_points(pixels)

    def test_rejects_short_mesh(self):
        with pytest.raises(LandmarkFormatError):
            LandmarkFrame.from_points(make_frame()[:100])

    def test_rejects_non_finite(self):
        pts = make_frame()
        pts[5, 0] = np.nan
        with pytest.raises(LandmarkFormatError):
            LandmarkFrame.from_points(pts)

    def test_rejects_ragged_rows(self):
        pts = make_frame().tolist()
        pts[5] = pts[5][:2]
        with pytest.raises(LandmarkFormatError):
            LandmarkFrame.from_points(pts)

    def test_pixel_denormalizes(self, front_frame):
        tip = front_frame.pixel(FaceLandmark.NOSE_TIP, WIDTH, HEIGHT)
        assert tip[0] == pytest.approx(500.0)
        assert tip[1] == pytest.approx(450.0)

    def test_pupil_uses_iris_when_present(self):
        frame = LandmarkFrame.from_points(make_frame(iris=True))
        assert frame.has_iris
        left = frame.pupil(True, WIDTH, HEIGHT)
        assert left[0] == pytest.approx(500.0 - 31.5 * 3.0)


# ── Calibration ───────────────────────────────────────────────────────

class TestScaleFactor:

    def test_default_ipd(self):
        assert scale_factor(189.0) == pytest.approx(63.0 / 189.0)

    @pytest.mark.parametrize("gender,expected", [
        (Gender.male, 64.0),
        (Gender.female, 62.0),
        (None, 63.0),
    ])
    def test_gender_specific_ipd(self, gender, expected):
        assert assumed_ipd_mm(gender) == expected
        assert scale_factor(100.0, gender) == pytest.approx(expected / 100.0)

    @pytest.mark.parametrize("ipd", [1e-3, 10.0, 189.0, 4000.0])
    def test_positive_for_positive_ipd(self, ipd):
        s = scale_factor(ipd)
        assert s > 0 and math.isfinite(s)

    @pytest.mark.parametrize("ipd", [0.0, -1.0, 1e-9, float("nan"), float("inf")])
    def test_rejects_degenerate_ipd(self, ipd):
        with pytest.raises(CalibrationError):
            scale_factor(ipd)


# ── Pose ──────────────────────────────────────────────────────────────

class TestYaw:

    def test_frontal_face_has_zero_yaw(self, front_frame):
        assert estimate_yaw(front_frame) == pytest.approx(0.0, abs=1e-9)

    def test_turned_face_exceeds_profile_threshold(self, profile_frame):
        yaw = estimate_yaw(profile_frame)
        assert is_profile_facing(yaw)
        assert not is_front_facing(yaw)

    def test_sign_follows_turn_direction(self):
        left = estimate_yaw(LandmarkFrame.from_points(make_frame(yaw_deg=30.0)))
        right = estimate_yaw(LandmarkFrame.from_points(make_frame(yaw_deg=-30.0)))
        assert left > 0 > right
        assert left == pytest.approx(-right)

    def test_within_range(self):
        for angle in (0, 10, 30, 45, 60, 80):
            yaw = estimate_yaw(LandmarkFrame.from_points(make_frame(yaw_deg=angle)))
            assert -90.0 <= yaw <= 90.0

    def test_collapsed_landmarks_give_zero(self):
        frame = LandmarkFrame.from_points(np.full((468, 3), 0.5))
        assert estimate_yaw(frame) == 0.0


class TestPoseThresholds:

    @pytest.mark.parametrize("yaw,expected", [(0.0, True), (9.9, True), (-9.9, True), (10.0, False), (-25.0, False)])
    def test_front_facing(self, yaw, expected):
        assert is_front_facing(yaw) is expected

    @pytest.mark.parametrize("yaw,expected", [(35.0, False), (35.1, True), (-50.0, True), (20.0, False)])
    def test_profile_facing(self, yaw, expected):
        assert is_profile_facing(yaw) is expected

    def test_custom_threshold(self):
        assert is_front_facing(12.0, threshold_deg=15.0)


class TestFaceSizeGate:

    def test_square_frame_diagonal_equivalent(self):
        assert frame_diagonal_equivalent(1000, 1000) == pytest.approx(1000.0)

    def test_near_face_is_valid(self):
        assert is_face_size_valid(189.0, WIDTH, HEIGHT)

    def test_far_face_is_rejected(self):
        assert not is_face_size_valid(90.0, WIDTH, HEIGHT)

    def test_boundary_is_exclusive(self):
        assert not is_face_size_valid(100.0, WIDTH, HEIGHT)

    def test_zero_ipd_is_rejected(self):
        assert not is_face_size_valid(0.0, WIDTH, HEIGHT)

    def test_face_length_ceiling(self):
        assert is_face_length_in_range(280.0)
        assert not is_face_length_in_range(280.1)


# ── Feature extraction ────────────────────────────────────────────────

class TestDistance:

    def test_2d_when_depth_missing(self):
        assert distance(np.array([0, 0, 0.0]), np.array([3, 4, 5.0])) == pytest.approx(5.0)

    def test_3d_when_both_have_depth(self):
        assert distance(np.array([0, 0, 1.0]), np.array([2, 3, 7.0])) == pytest.approx(7.0)


class TestMeasureFrontal:

    def test_ipd_pixels(self, front_frame):
        assert interpupillary_distance_px(front_frame, WIDTH, HEIGHT) == pytest.approx(189.0)

    def test_ipd_defaults_to_pupil_centres(self, front_frame):
        assert CalibrationConfig().ipd_reference == "pupils"
        pupils = interpupillary_distance_px(front_frame, WIDTH, HEIGHT)
        assert pupils == pytest.approx(interpupillary_distance_px(front_frame, WIDTH, HEIGHT, "pupils"))
        assert pupils != pytest.approx(landmark_distance_px(
            front_frame, FaceLandmark.LEFT_EYE_INNER, FaceLandmark.RIGHT_EYE_INNER, WIDTH, HEIGHT,
        ))

    def test_ipd_between_inner_corners(self, front_frame, monkeypatch):
        # 34 mm bridge at 3 px/mm
        assert interpupillary_distance_px(front_frame, WIDTH, HEIGHT, "inner_corners") == pytest.approx(102.0)
        monkeypatch.setattr(config.calibration, "ipd_reference", "inner_corners")
        m = measure_frontal(front_frame, WIDTH, HEIGHT)
        assert m.interpupillary_distance_px == pytest.approx(102.0)
        assert m.scale_factor_mm_per_px == pytest.approx(63.0 / 102.0)

    def test_chin_angle(self, front_frame):
        expected = chin_angle_truth(FaceSpec())
        assert expected == pytest.approx(142.2, abs=0.1)
        assert chin_angle_deg(front_frame, WIDTH, HEIGHT) == pytest.approx(expected)
        assert measure_frontal(front_frame, WIDTH, HEIGHT).chin_angle_deg == pytest.approx(expected, abs=0.05)

    def test_right_angle_chin(self):
        pts = make_frame()
        chin = pts[FaceLandmark.CHIN]
        pts[FaceLandmark.JAW_LEFT] = chin + [-0.05, -0.05, 0.0]
        pts[FaceLandmark.JAW_RIGHT] = chin + [0.05, -0.05, 0.0]
        frame = LandmarkFrame.from_points(pts)
        assert chin_angle_deg(frame, WIDTH, HEIGHT) == pytest.approx(90.0)

    def test_chin_angle_ignores_face_scale(self):
        near = LandmarkFrame.from_points(make_frame(px_per_mm=3.0))
        far = LandmarkFrame.from_points(make_frame(px_per_mm=2.0))
        assert chin_angle_deg(near, WIDTH, HEIGHT) == pytest.approx(chin_angle_deg(far, WIDTH, HEIGHT))

    def test_chin_angle_zero_when_jaw_meets_chin(self):
        pts = make_frame()
        pts[FaceLandmark.JAW_LEFT] = pts[FaceLandmark.CHIN]
        frame = LandmarkFrame.from_points(pts)
        assert chin_angle_deg(frame, WIDTH, HEIGHT) == 0.0

    def test_recovers_ground_truth(self, front_frame):
        m = measure_frontal(front_frame, WIDTH, HEIGHT)
        assert m is not None
        for name in FaceSpec().frontal_truth():
            assert getattr(m, name) == pytest.approx(GROUND_TRUTH[name], abs=0.05), name

    def test_scale_and_confidence(self, front_frame):
        m = measure_frontal(front_frame, WIDTH, HEIGHT)
        assert m.scale_factor_mm_per_px == pytest.approx(1.0 / 3.0)
        assert m.confidence == 0.95

    def test_values_rounded_to_tenth_mm(self):
        frame = LandmarkFrame.from_points(make_frame(noise_px=1.5, rng=np.random.default_rng(3)))
        m = measure_frontal(frame, WIDTH, HEIGHT)
        for name in m.distance_fields:
            value = getattr(m, name)
            assert round(value, 1) == value

    def test_gender_changes_scale(self, front_frame):
        male = measure_frontal(front_frame, WIDTH, HEIGHT, Gender.male)
        female = measure_frontal(front_frame, WIDTH, HEIGHT, Gender.female)
        assert male.face_length_mm > female.face_length_mm

    def test_independent_of_distance_to_camera(self):
        near = measure_frontal(LandmarkFrame.from_points(make_frame(px_per_mm=3.0)), WIDTH, HEIGHT)
        far = measure_frontal(LandmarkFrame.from_points(make_frame(px_per_mm=2.0)), WIDTH, HEIGHT)
        assert near.face_width_mm == pytest.approx(far.face_width_mm, abs=0.1)

    def test_no_landmarks_returns_none(self):
        assert measure_frontal(None, WIDTH, HEIGHT) is None

    def test_collapsed_eyes_return_none(self):
        frame = LandmarkFrame.from_points(np.full((468, 3), 0.5))
        assert measure_frontal(frame, WIDTH, HEIGHT) is None


class TestMeasureProfile:

    def test_uses_given_scale(self, profile_frame):
        expected = profile_truth(FaceSpec(), 45.0)
        m = measure_profile(profile_frame, WIDTH, HEIGHT, frozen_scale=1.0 / 3.0)
        assert m.nose_height_mm == pytest.approx(expected["nose_height_mm"], abs=0.05)
        assert m.jaw_projection_mm == pytest.approx(expected["jaw_projection_mm"], abs=0.05)

    def test_scales_linearly(self, profile_frame):
        a = measure_profile(profile_frame, WIDTH, HEIGHT, frozen_scale=0.2)
        b = measure_profile(profile_frame, WIDTH, HEIGHT, frozen_scale=0.4)
        assert b.nose_height_mm == pytest.approx(2 * a.nose_height_mm, abs=0.1)

    def test_turn_direction_does_not_flip_sign(self):
        left = measure_profile(LandmarkFrame.from_points(make_frame(yaw_deg=45.0)), WIDTH, HEIGHT, 1 / 3)
        right = measure_profile(LandmarkFrame.from_points(make_frame(yaw_deg=-45.0)), WIDTH, HEIGHT, 1 / 3)
        assert left.nose_height_mm == pytest.approx(right.nose_height_mm)
        assert left.jaw_projection_mm == pytest.approx(right.jaw_projection_mm)
        assert left.jaw_projection_mm < 0
