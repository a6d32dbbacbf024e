"""
Keypoint Model

Model-agnostic 2D keypoints and frames. Upstream detectors name joints
differently (`left_shoulder`, `leftShoulder`, `LEFT_SHOULDER`), so every lookup
goes through a canonical-name alias table.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple


# -----------------------------------------------------------------------------
# Canonical joint names
# -----------------------------------------------------------------------------

NOSE = "nose"
LEFT_EAR = "left_ear"
RIGHT_EAR = "right_ear"
LEFT_SHOULDER = "left_shoulder"
RIGHT_SHOULDER = "right_shoulder"
LEFT_HIP = "left_hip"
RIGHT_HIP = "right_hip"

KEYPOINT_ALIASES: Dict[str, Tuple[str, ...]] = {
    NOSE: ("nose", "NOSE"),
    LEFT_EAR: ("left_ear", "leftEar", "LEFT_EAR"),
    RIGHT_EAR: ("right_ear", "rightEar", "RIGHT_EAR"),
    LEFT_SHOULDER: ("left_shoulder", "leftShoulder", "LEFT_SHOULDER"),
    RIGHT_SHOULDER: ("right_shoulder", "rightShoulder", "RIGHT_SHOULDER"),
    LEFT_HIP: ("left_hip", "leftHip", "LEFT_HIP"),
    RIGHT_HIP: ("right_hip", "rightHip", "RIGHT_HIP"),
}

_ALIAS_TO_CANONICAL: Dict[str, str] = {
    alias: canonical
    for canonical, aliases in KEYPOINT_ALIASES.items()
    for alias in aliases
}


def canonical_name(name: str) -> Optional[str]:
    """Map any known upstream joint name to its canonical id, or None."""
    return _ALIAS_TO_CANONICAL.get(name)


# -----------------------------------------------------------------------------
# Data Classes
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class Keypoint:
    """A named joint estimate in image-space pixels."""
    name: str
    x: float
    y: float
    confidence: float

    def to_dict(self) -> Dict[str, float]:
        return {'name': self.name, 'x': self.x, 'y': self.y, 'confidence': self.confidence}


@dataclass(frozen=True)
class Frame:
    """All keypoints for one instant. Names are unique within a frame."""
    keypoints: Dict[str, Keypoint] = field(default_factory=dict)
    timestamp: Optional[float] = None

    @classmethod
    def from_keypoints(cls, keypoints: Iterable[Keypoint], timestamp: Optional[float] = None) -> "Frame":
        by_name: Dict[str, Keypoint] = {}
        for kp in keypoints:
            if kp.name in by_name:
                raise ValueError(f"Duplicate keypoint name in frame: {kp.name}")
            by_name[kp.name] = kp
        return cls(keypoints=by_name, timestamp=timestamp)

    @classmethod
    def from_dicts(cls, items: Iterable[Dict], timestamp: Optional[float] = None) -> "Frame":
        """Build from `{name|part, x, y, score|confidence}` dicts as emitted by JS/JSON detectors."""
        keypoints = []
        for item in items:
            name = item.get('name') or item.get('part')
            if not name:
                continue
            confidence = item.get('confidence', item.get('score'))
            keypoints.append(Keypoint(
                name=str(name),
                x=float(item['x']),
                y=float(item['y']),
                confidence=float(confidence) if confidence is not None else 0.0,
            ))
        return cls.from_keypoints(keypoints, timestamp)

    def get(self, joint: str) -> Optional[Keypoint]:
        """Find a joint by canonical id, trying every alias."""
        direct = self.keypoints.get(joint)
        if direct is not None:
            return direct
        for alias in KEYPOINT_ALIASES.get(joint, ()):
            kp = self.keypoints.get(alias)
            if kp is not None:
                return kp
        return None

    def confident(self, joint: str, min_confidence: float) -> Optional[Keypoint]:
        """Return the joint only if it is present with confidence >= min_confidence."""
        kp = self.get(joint)
        if kp is None or kp.confidence < min_confidence:
            return None
        return kp

    def __len__(self) -> int:
        return len(self.keypoints)
