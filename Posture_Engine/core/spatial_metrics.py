"""
Spatial Metric Extraction

Front-view posture angles from six torso/head joints. Spine angle and neck
tilt are measured from vertical, shoulder tilt from horizontal. All three use
absolute deltas, so leaning left and leaning right by the same amount give the
same angle, and every angle lies in [0, 90].

These are image-space proxies, not calibrated measurements of spinal curvature.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from ..config import DEFAULT_CONFIG, PostureThresholds
from .keypoints import (
    Frame, Keypoint,
    LEFT_EAR, RIGHT_EAR, LEFT_SHOULDER, RIGHT_SHOULDER, LEFT_HIP, RIGHT_HIP,
)

Point = Tuple[float, float]

REQUIRED_JOINTS = (LEFT_SHOULDER, RIGHT_SHOULDER, LEFT_HIP, RIGHT_HIP, LEFT_EAR, RIGHT_EAR)


@dataclass(frozen=True)
class PostureMetrics:
    """Posture angles in degrees plus the mean confidence of the joints used."""
    spine_angle: float
    neck_tilt: float
    shoulder_tilt: float
    confidence: float

    def to_dict(self) -> Dict[str, float]:
        return {
            'spine_angle': self.spine_angle,
            'neck_tilt': self.neck_tilt,
            'shoulder_tilt': self.shoulder_tilt,
            'confidence': self.confidence,
        }


# -----------------------------------------------------------------------------
# Geometry
# -----------------------------------------------------------------------------

def midpoint(a: Keypoint, b: Keypoint) -> Point:
    return ((a.x + b.x) / 2, (a.y + b.y) / 2)


def angle_from_vertical(a: Point, b: Point) -> float:
    """Angle of the a->b segment from the vertical axis, in [0, 90]."""
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    return float(np.degrees(np.arctan2(abs(dx), abs(dy))))


def angle_from_horizontal(a: Point, b: Point) -> float:
    """Angle of the a->b segment from the horizontal axis, in [0, 90]."""
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    return float(np.degrees(np.arctan2(abs(dy), abs(dx))))


# -----------------------------------------------------------------------------
# Extraction
# -----------------------------------------------------------------------------

def extract_posture_metrics(
    frame: Frame,
    thresholds: PostureThresholds = DEFAULT_CONFIG.posture
) -> Optional[PostureMetrics]:
    """
    Compute posture angles for one frame.

    Returns None (undetermined) when any required joint is missing or below
    the confidence threshold. This is a normal outcome, not an error.
    """
    joints = {}
    for name in REQUIRED_JOINTS:
        kp = frame.confident(name, thresholds.MIN_CONFIDENCE)
        if kp is None:
            return None
        joints[name] = kp

    shoulder_mid = midpoint(joints[LEFT_SHOULDER], joints[RIGHT_SHOULDER])
    hip_mid = midpoint(joints[LEFT_HIP], joints[RIGHT_HIP])
    ear_mid = midpoint(joints[LEFT_EAR], joints[RIGHT_EAR])

    left_shoulder = joints[LEFT_SHOULDER]
    right_shoulder = joints[RIGHT_SHOULDER]

    spine_angle = angle_from_vertical(hip_mid, shoulder_mid)
    neck_tilt = angle_from_vertical(shoulder_mid, ear_mid)
    shoulder_tilt = angle_from_horizontal(
        (left_shoulder.x, left_shoulder.y),
        (right_shoulder.x, right_shoulder.y)
    )
    confidence = float(np.clip(np.mean([kp.confidence for kp in joints.values()]), 0.0, 1.0))

    return PostureMetrics(
        spine_angle=spine_angle,
        neck_tilt=neck_tilt,
        shoulder_tilt=shoulder_tilt,
        confidence=confidence,
    )
