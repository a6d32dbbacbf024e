"""Keypoint sources. The camera source needs the `camera` extra and is imported from .pose_detector directly."""
from .keypoint_source import (
    KeypointSource, KeypointSourceError, DetectionUnavailable, SourceLost, ReplayKeypointSource
)
