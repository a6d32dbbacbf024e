import random

import pytest

from Posture_Engine.core.spatial_metrics import extract_posture_metrics

from conftest import make_frame


def test_upright_posture_has_zero_angles(upright_frame):
    metrics = extract_posture_metrics(upright_frame)
    assert metrics is not None
    assert metrics.spine_angle == pytest.approx(0.0)
    assert metrics.neck_tilt == pytest.approx(0.0)
    assert metrics.shoulder_tilt == pytest.approx(0.0)
    assert metrics.confidence == pytest.approx(0.9)


def test_spine_lean_measured_from_vertical():
    metrics = extract_posture_metrics(make_frame(shoulder_mid=(350, 200), ear_mid=(350, 100)))
    assert metrics.spine_angle == pytest.approx(45.0)
    assert metrics.neck_tilt == pytest.approx(0.0)


def test_lean_direction_is_ignored():
    right = extract_posture_metrics(make_frame(shoulder_mid=(350, 200), ear_mid=(350, 100)))
    left = extract_posture_metrics(make_frame(shoulder_mid=(-50, 200), ear_mid=(-50, 100)))
    assert left.spine_angle == pytest.approx(right.spine_angle)


def test_neck_and_shoulder_tilt():
    metrics = extract_posture_metrics(make_frame(ear_mid=(250, 100), shoulder_dy=100))
    assert metrics.neck_tilt == pytest.approx(45.0)
    assert metrics.shoulder_tilt == pytest.approx(45.0)
    raised_left = extract_posture_metrics(make_frame(shoulder_dy=-100))
    assert raised_left.shoulder_tilt == pytest.approx(45.0)


def test_confidence_is_mean_of_six_joints():
    metrics = extract_posture_metrics(make_frame(overrides={'left_hip': 0.3, 'nose': 0.0}))
    assert metrics.confidence == pytest.approx((0.9 * 5 + 0.3) / 6)


@pytest.mark.parametrize("joint", [
    'left_shoulder', 'right_shoulder', 'left_hip', 'right_hip', 'left_ear', 'right_ear'
])
def test_missing_or_weak_joint_is_undetermined(joint):
    assert extract_posture_metrics(make_frame(drop=(joint,))) is None
    assert extract_posture_metrics(make_frame(overrides={joint: 0.29})) is None


def test_nose_not_required():
    assert extract_posture_metrics(make_frame(drop=('nose',))) is not None


def test_camel_case_names_supported():
    assert extract_posture_metrics(make_frame(camel_case=True)) is not None


def test_angles_bounded_for_random_frames():
    rng = random.Random(7)
    for _ in range(200):
        frame = make_frame(
            shoulder_mid=(rng.uniform(-500, 500), rng.uniform(-500, 500)),
            hip_mid=(rng.uniform(-500, 500), rng.uniform(-500, 500)),
            ear_mid=(rng.uniform(-500, 500), rng.uniform(-500, 500)),
            shoulder_dy=rng.uniform(-300, 300),
            confidence=rng.uniform(0.3, 1.0),
        )
        metrics = extract_posture_metrics(frame)
        for angle in (metrics.spine_angle, metrics.neck_tilt, metrics.shoulder_tilt):
            assert 0.0 <= angle <= 90.0
        assert 0.0 <= metrics.confidence <= 1.0


def test_coincident_points_give_zero():
    metrics = extract_posture_metrics(make_frame(shoulder_mid=(150, 400), hip_mid=(150, 400)))
    assert metrics.spine_angle == 0.0
