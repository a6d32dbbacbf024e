"""Core scoring algorithms."""
from .keypoints import Keypoint, Frame, KEYPOINT_ALIASES, canonical_name
from .spatial_metrics import PostureMetrics, extract_posture_metrics
from .posture_classifier import PostureStatus, PostureEvaluation, Snapshot, evaluate_posture, get_thresholds
from .wellness_estimator import WellnessEstimator, WellnessMetrics, SessionState
from .alerts import Alert, AlertManager, AlertSeverity
from .weekly_aggregator import AnalyticsSummary, DailyScore, ScoreSample, aggregate_weekly, weekly_window_start
