"""
Posture Engine
Pose-to-wellness scoring: posture metrics, classification, wellness
heuristics, alerts, and weekly analytics over persisted scores.
"""

from .config import EngineConfig, load_config
from .core.keypoints import Frame, Keypoint
from .core.spatial_metrics import extract_posture_metrics
from .core.posture_classifier import PostureStatus, Snapshot, evaluate_posture
from .core.wellness_estimator import WellnessEstimator
from .core.alerts import AlertManager
from .core.weekly_aggregator import aggregate_weekly
from .pipeline.monitor import PostureMonitor, MonitorState
