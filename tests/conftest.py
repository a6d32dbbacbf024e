import pytest

from Posture_Engine.core.keypoints import Frame, Keypoint
from Posture_Engine.core.posture_classifier import PostureStatus, Snapshot
from Posture_Engine.core.spatial_metrics import PostureMetrics


def make_frame(
    shoulder_mid=(150.0, 200.0),
    hip_mid=(150.0, 400.0),
    ear_mid=(150.0, 100.0),
    nose=(150.0, 90.0),
    shoulder_dy=0.0,
    confidence=0.9,
    overrides=None,
    drop=(),
    camel_case=False,
    timestamp=None,
):
    """
    Seated person facing the camera. Shoulders are 100px apart, hips 80px,
    ears 40px. `shoulder_dy` lowers the right shoulder relative to the left.
    """
    sx, sy = shoulder_mid
    hx, hy = hip_mid
    ex, ey = ear_mid
    points = {
        'left_shoulder': (sx - 50, sy - shoulder_dy / 2),
        'right_shoulder': (sx + 50, sy + shoulder_dy / 2),
        'left_hip': (hx - 40, hy),
        'right_hip': (hx + 40, hy),
        'left_ear': (ex - 20, ey),
        'right_ear': (ex + 20, ey),
        'nose': nose,
    }
    confidences = {name: confidence for name in points}
    confidences.update(overrides or {})

    keypoints = []
    for name, (x, y) in points.items():
        if name in drop:
            continue
        label = name
        if camel_case:
            first, _, rest = name.partition('_')
            label = first + rest.capitalize()
        keypoints.append(Keypoint(name=label, x=x, y=y, confidence=confidences[name]))
    return Frame.from_keypoints(keypoints, timestamp=timestamp)


def make_snapshot(status=PostureStatus.GOOD, issues=(), timestamp=0.0, wellness=None, score=100):
    return Snapshot(
        metrics=PostureMetrics(spine_angle=0.0, neck_tilt=0.0, shoulder_tilt=0.0, confidence=1.0),
        status=status,
        score=score,
        issues=tuple(issues),
        timestamp=timestamp,
        wellness=wellness,
    )


@pytest.fixture
def upright_frame():
    return make_frame()
