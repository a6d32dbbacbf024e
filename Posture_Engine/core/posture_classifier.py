"""
Posture Classifier Module

Rule-based mapping from posture angles to a status, a 0-100 score and an
ordered list of corrections. Pure: the same metrics always give the same
evaluation.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..config import DEFAULT_CONFIG, PostureThresholds, ScoreBaselines
from ..utils.numeric import round_half_up
from .spatial_metrics import PostureMetrics
from .wellness_estimator import WellnessMetrics


# -----------------------------------------------------------------------------
# Enums & Data Classes
# -----------------------------------------------------------------------------

class PostureStatus(Enum):
    GOOD = "good"
    WARNING = "warning"
    BAD = "bad"
    UNKNOWN = "unknown"


ISSUE_SPINE = "Straighten your spine"
ISSUE_NECK = "Lift your chin slightly"
ISSUE_SHOULDER = "Level your shoulders"


@dataclass(frozen=True)
class PostureEvaluation:
    status: PostureStatus
    score: int
    issues: Tuple[str, ...]

    @property
    def needs_correction(self) -> bool:
        return self.status in (PostureStatus.WARNING, PostureStatus.BAD)


@dataclass(frozen=True)
class Snapshot:
    """One complete scoring result for an accepted frame. Never mutated."""
    metrics: PostureMetrics
    status: PostureStatus
    score: int
    issues: Tuple[str, ...]
    timestamp: float
    wellness: Optional[WellnessMetrics] = None

    @classmethod
    def build(cls, metrics: PostureMetrics, evaluation: PostureEvaluation,
              timestamp: float, wellness: Optional[WellnessMetrics] = None) -> "Snapshot":
        return cls(
            metrics=metrics,
            status=evaluation.status,
            score=evaluation.score,
            issues=evaluation.issues,
            timestamp=timestamp,
            wellness=wellness,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'metrics': self.metrics.to_dict(),
            'wellness': self.wellness.to_dict() if self.wellness is not None else None,
            'status': self.status.value,
            'score': self.score,
            'issues': list(self.issues),
            'timestamp': self.timestamp,
        }


# -----------------------------------------------------------------------------
# Classification
# -----------------------------------------------------------------------------

def posture_score(metrics: PostureMetrics, baselines: ScoreBaselines = DEFAULT_CONFIG.baselines) -> int:
    """100 minus a linear penalty for every degree above each baseline, floored at 0."""
    penalty = (
        max(0.0, metrics.spine_angle - baselines.SPINE)
        + max(0.0, metrics.neck_tilt - baselines.NECK)
        + max(0.0, metrics.shoulder_tilt - baselines.SHOULDER)
    ) * baselines.PENALTY_PER_DEGREE
    return max(0, round_half_up(100 - penalty))


def evaluate_posture(
    metrics: PostureMetrics,
    thresholds: PostureThresholds = DEFAULT_CONFIG.posture,
    baselines: ScoreBaselines = DEFAULT_CONFIG.baselines
) -> PostureEvaluation:
    """Classify posture metrics into status, score and issues."""
    issues = []
    status = PostureStatus.GOOD

    if metrics.spine_angle > thresholds.SPINE_WARN:
        issues.append(ISSUE_SPINE)
        status = PostureStatus.WARNING
    if metrics.neck_tilt > thresholds.NECK_WARN:
        issues.append(ISSUE_NECK)
        status = PostureStatus.WARNING
    if metrics.shoulder_tilt > thresholds.SHOULDER_WARN:
        issues.append(ISSUE_SHOULDER)
        status = PostureStatus.WARNING

    if (metrics.spine_angle > thresholds.SPINE_BAD
            or metrics.neck_tilt > thresholds.NECK_BAD
            or metrics.shoulder_tilt > thresholds.SHOULDER_BAD):
        status = PostureStatus.BAD

    return PostureEvaluation(
        status=status,
        score=posture_score(metrics, baselines),
        issues=tuple(issues),
    )


def get_thresholds(thresholds: PostureThresholds = DEFAULT_CONFIG.posture) -> Dict[str, Dict[str, float]]:
    """Warn/bad table keyed by metric, for display next to live values."""
    return thresholds.as_table()
