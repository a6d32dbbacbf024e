"""
Engine Configuration

Thresholds and timing constants used throughout the scoring pipeline.
Angles are image-space proxies in degrees, distances are in pixels and
durations are in milliseconds.

Defaults can be overridden with a JSON file:

    {
        "posture": {"spine_warn": 14},
        "pipeline": {"emit_interval_ms": 150}
    }
"""

import json
import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Sections
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class PostureThresholds:
    """
    Warn/bad limits for the three posture angles.

    A metric strictly greater than its warn limit produces an issue; strictly
    greater than its bad limit forces a `bad` status.
    """
    SPINE_WARN: float = 12.0
    SPINE_BAD: float = 20.0
    NECK_WARN: float = 10.0
    NECK_BAD: float = 18.0
    SHOULDER_WARN: float = 6.0
    SHOULDER_BAD: float = 12.0

    # Joints below this confidence are treated as not detected
    MIN_CONFIDENCE: float = 0.3

    def as_table(self) -> Dict[str, Dict[str, float]]:
        return {
            'spine': {'warn': self.SPINE_WARN, 'bad': self.SPINE_BAD},
            'neck': {'warn': self.NECK_WARN, 'bad': self.NECK_BAD},
            'shoulder': {'warn': self.SHOULDER_WARN, 'bad': self.SHOULDER_BAD},
        }


@dataclass(frozen=True)
class ScoreBaselines:
    """Penalty-free angle per metric and the per-degree penalty above it."""
    SPINE: float = 8.0
    NECK: float = 8.0
    SHOULDER: float = 4.0
    PENALTY_PER_DEGREE: float = 4.0


@dataclass(frozen=True)
class WellnessConfig:
    """
    Head-pose heuristics for focus, stress and blink estimation.

    None of these are clinical signals. Yaw and pitch are dimensionless
    proxies, the movement and gap limits are pixels.
    """
    MIN_CONFIDENCE: float = 0.3
    FRONTAL_EAR_CONFIDENCE: float = 0.5

    YAW_MAJOR: float = 30.0
    YAW_MINOR: float = 15.0
    YAW_MAJOR_PENALTY: float = 30.0
    YAW_MINOR_PENALTY: float = 15.0
    PITCH_MIN_RATIO: float = 0.8
    PITCH_PENALTY: float = 20.0
    FRONTAL_BONUS: float = 10.0

    HEAD_MOVEMENT_PX: float = 20.0
    HEAD_MOVEMENT_STRESS: float = 25.0
    EAR_SHOULDER_GAP_PX: float = 80.0
    RAISED_SHOULDER_STRESS: float = 30.0

    # Stand-in for eye-closure detection: chance of counting a blink per frame
    BLINK_PROBABILITY: float = 0.05
    MAX_BLINK_RATE: int = 30

    # (focus above, eye openness) pairs, checked in order
    EYE_OPENNESS_STEPS: Tuple[Tuple[float, float], ...] = ((70.0, 0.35), (40.0, 0.25))
    EYE_OPENNESS_FLOOR: float = 0.15


@dataclass(frozen=True)
class AlertConfig:
    MAX_ALERTS: int = 5
    DEFAULT_MESSAGE: str = "Adjust your posture"

    LOW_BLINK_RATE: int = 5
    WELLNESS_INTERVAL_MS: float = 20 * 60 * 1000
    WELLNESS_MESSAGE: str = "Low blink rate detected - look away from the screen for 20 seconds"

    BREAK_INTERVAL_MS: float = 45 * 60 * 1000


@dataclass(frozen=True)
class PipelineConfig:
    """Timing of the live capture loop and its background timers."""
    FRAME_INTERVAL_MS: float = 100.0
    EMIT_INTERVAL_MS: float = 200.0
    POLL_IDLE_SECONDS: float = 0.01

    PERSIST_INTERVAL_S: float = 60.0
    ANALYTICS_INTERVAL_S: float = 300.0
    BREAK_CHECK_INTERVAL_S: float = 60.0
    ANALYTICS_TIMEOUT_S: float = 10.0

    # A snapshot older than this is reported as stale
    STALE_AFTER_MS: float = 5000.0


@dataclass(frozen=True)
class EngineConfig:
    posture: PostureThresholds = field(default_factory=PostureThresholds)
    baselines: ScoreBaselines = field(default_factory=ScoreBaselines)
    wellness: WellnessConfig = field(default_factory=WellnessConfig)
    alerts: AlertConfig = field(default_factory=AlertConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)


DEFAULT_CONFIG = EngineConfig()


# -----------------------------------------------------------------------------
# Loading
# -----------------------------------------------------------------------------

def _override_section(section: Any, raw: Any) -> Any:
    """Apply lower/upper-case keys from `raw` onto a frozen section."""
    if not isinstance(raw, dict):
        return section
    known = {f.name: f for f in fields(section)}
    changes: Dict[str, Any] = {}
    for key, value in raw.items():
        name = str(key).upper()
        if name not in known:
            logger.warning("Unknown config key %s.%s ignored", type(section).__name__, key)
            continue
        current = getattr(section, name)
        try:
            if isinstance(current, bool):
                changes[name] = bool(value)
            elif isinstance(current, int):
                changes[name] = int(value)
            elif isinstance(current, float):
                changes[name] = float(value)
            elif isinstance(current, str):
                changes[name] = str(value)
            elif isinstance(current, tuple):
                changes[name] = tuple(tuple(v) if isinstance(v, list) else v for v in value)
        except (TypeError, ValueError):
            logger.warning("Invalid value for %s.%s: %r", type(section).__name__, key, value)
    return replace(section, **changes) if changes else section


def load_config(path: Optional[Path] = None) -> EngineConfig:
    """Load JSON overrides on top of the defaults. Missing or bad files fall back to defaults."""
    if path is None:
        return DEFAULT_CONFIG
    p = Path(path).expanduser()
    if not p.exists():
        logger.info("Config file %s not found, using defaults", p)
        return DEFAULT_CONFIG
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.exception("Could not read config file %s, using defaults", p)
        return DEFAULT_CONFIG
    if not isinstance(raw, dict):
        return DEFAULT_CONFIG

    return EngineConfig(
        posture=_override_section(DEFAULT_CONFIG.posture, raw.get('posture')),
        baselines=_override_section(DEFAULT_CONFIG.baselines, raw.get('baselines')),
        wellness=_override_section(DEFAULT_CONFIG.wellness, raw.get('wellness')),
        alerts=_override_section(DEFAULT_CONFIG.alerts, raw.get('alerts')),
        pipeline=_override_section(DEFAULT_CONFIG.pipeline, raw.get('pipeline')),
    )
