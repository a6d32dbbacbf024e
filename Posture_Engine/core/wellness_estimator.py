"""
Wellness Estimator Module

Focus, stress and blink-rate heuristics from head and shoulder keypoints.

- Focus drops when the head turns away (yaw) or drops (pitch).
- Stress rises with head instability between frames and with raised shoulders.
- Blinks are counted by a per-frame random draw. Body keypoints carry no
  eye-closure signal, so this is a placeholder; the random source is
  injectable so sessions can be replayed deterministically.

All outputs are best-effort heuristics, not clinical signals.
"""

import random
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np

from ..config import DEFAULT_CONFIG, WellnessConfig
from ..utils.numeric import clamp, round_half_up
from ..utils.timing import Clock, now_ms
from .keypoints import Frame, NOSE, LEFT_EAR, RIGHT_EAR, LEFT_SHOULDER, RIGHT_SHOULDER


# -----------------------------------------------------------------------------
# Data Classes
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class WellnessMetrics:
    blink_rate: int
    focus_score: float
    stress_level: float
    eye_openness: float
    is_blinking: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'blink_rate': self.blink_rate,
            'focus_score': self.focus_score,
            'stress_level': self.stress_level,
            'eye_openness': self.eye_openness,
            'is_blinking': self.is_blinking,
        }


@dataclass
class SessionState:
    """Mutable per-session counters. One instance per capture session."""
    session_start_time: float
    last_head_y: Optional[float] = None
    blink_count: int = 0

    def minutes_elapsed(self, now: float) -> float:
        return (now - self.session_start_time) / 60000


# -----------------------------------------------------------------------------
# Estimator
# -----------------------------------------------------------------------------

class WellnessEstimator:
    """Stateful focus/stress/blink estimator. Call `reset()` when a session starts."""

    def __init__(
        self,
        config: WellnessConfig = DEFAULT_CONFIG.wellness,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
        clock: Optional[Clock] = None
    ):
        self.config = config
        self.rng = rng if rng is not None else random.Random(seed)
        self.clock = clock or now_ms
        self.state = SessionState(session_start_time=self.clock())

    def reset(self, now: Optional[float] = None):
        """Start a fresh session: clears head position, blink count and start time."""
        self.state = SessionState(session_start_time=self.clock() if now is None else now)

    # -------------------------------------------------------------------------
    # Head pose proxies
    # -------------------------------------------------------------------------

    def _head_yaw(self, nose, left_ear, right_ear) -> float:
        """Horizontal nose offset from the ear midpoint (halved with one ear)."""
        if left_ear is not None and right_ear is not None:
            ear_mid_x = (left_ear.x + right_ear.x) / 2
            return abs(nose.x - ear_mid_x)
        ear = left_ear if left_ear is not None else right_ear
        return abs(nose.x - ear.x) / 2

    @staticmethod
    def _head_pitch(nose, left_shoulder, right_shoulder) -> float:
        """Nose height above the shoulder midpoint, relative to shoulder width."""
        if left_shoulder is None or right_shoulder is None:
            return 0.0
        shoulder_mid_y = (left_shoulder.y + right_shoulder.y) / 2
        shoulder_width = float(np.hypot(right_shoulder.x - left_shoulder.x,
                                        right_shoulder.y - left_shoulder.y))
        return (shoulder_mid_y - nose.y) / (shoulder_width or 1.0)

    # -------------------------------------------------------------------------
    # Scores
    # -------------------------------------------------------------------------

    def _focus_score(self, head_yaw: float, head_pitch: float, left_ear, right_ear) -> float:
        cfg = self.config
        focus = 100.0
        if head_yaw > cfg.YAW_MAJOR:
            focus -= cfg.YAW_MAJOR_PENALTY
        elif head_yaw > cfg.YAW_MINOR:
            focus -= cfg.YAW_MINOR_PENALTY
        if head_pitch < cfg.PITCH_MIN_RATIO:
            focus -= cfg.PITCH_PENALTY
        if (left_ear is not None and right_ear is not None
                and left_ear.confidence > cfg.FRONTAL_EAR_CONFIDENCE
                and right_ear.confidence > cfg.FRONTAL_EAR_CONFIDENCE):
            focus = min(100.0, focus + cfg.FRONTAL_BONUS)
        return clamp(focus, 0, 100)

    def _stress_level(self, nose, left_ear, right_ear, left_shoulder, right_shoulder) -> float:
        cfg = self.config
        stress = 0.0

        last_y = self.state.last_head_y
        if last_y is not None and abs(nose.y - last_y) > cfg.HEAD_MOVEMENT_PX:
            stress += cfg.HEAD_MOVEMENT_STRESS
        self.state.last_head_y = nose.y

        if None not in (left_ear, right_ear, left_shoulder, right_shoulder):
            gap = ((left_shoulder.y - left_ear.y) + (right_shoulder.y - right_ear.y)) / 2
            if gap < cfg.EAR_SHOULDER_GAP_PX:
                stress += cfg.RAISED_SHOULDER_STRESS
        return clamp(stress, 0, 100)

    def _register_blink(self) -> bool:
        if self.rng.random() < self.config.BLINK_PROBABILITY:
            self.state.blink_count += 1
            return True
        return False

    def _blink_rate(self, now: float) -> int:
        minutes = self.state.minutes_elapsed(now)
        rate = round_half_up(self.state.blink_count / max(minutes, 1.0))
        return int(min(max(rate, 0), self.config.MAX_BLINK_RATE))

    def _eye_openness(self, focus_score: float) -> float:
        for focus_above, openness in self.config.EYE_OPENNESS_STEPS:
            if focus_score > focus_above:
                return openness
        return self.config.EYE_OPENNESS_FLOOR

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    def update(self, frame: Frame, now: Optional[float] = None) -> Optional[WellnessMetrics]:
        """
        Process one frame.

        Returns None when the nose or both ears are missing or low-confidence;
        callers keep showing their previous value in that case.
        """
        now = self.clock() if now is None else now
        min_conf = self.config.MIN_CONFIDENCE

        nose = frame.confident(NOSE, min_conf)
        left_ear = frame.confident(LEFT_EAR, min_conf)
        right_ear = frame.confident(RIGHT_EAR, min_conf)
        if nose is None or (left_ear is None and right_ear is None):
            return None
        left_shoulder = frame.confident(LEFT_SHOULDER, min_conf)
        right_shoulder = frame.confident(RIGHT_SHOULDER, min_conf)

        head_yaw = self._head_yaw(nose, left_ear, right_ear)
        head_pitch = self._head_pitch(nose, left_shoulder, right_shoulder)

        focus_score = self._focus_score(head_yaw, head_pitch, left_ear, right_ear)
        stress_level = self._stress_level(nose, left_ear, right_ear, left_shoulder, right_shoulder)
        is_blinking = self._register_blink()

        return WellnessMetrics(
            blink_rate=self._blink_rate(now),
            focus_score=focus_score,
            stress_level=stress_level,
            eye_openness=self._eye_openness(focus_score),
            is_blinking=is_blinking,
        )

    @property
    def blink_count(self) -> int:
        return self.state.blink_count
