"""
Pose Detector Module
Camera-backed keypoint source using OpenCV capture and the MediaPipe Pose
Landmarker (Tasks API, 0.10+). Only landmark coordinates leave this module;
video frames are never stored.

Install the camera extra to use it: pip install ".[camera]"
"""

import asyncio
import logging
import ssl
import threading
import urllib.request
from pathlib import Path
from typing import Dict, Optional

from ..core.keypoints import Frame, Keypoint
from ..utils.timing import now_ms
from .keypoint_source import DetectionUnavailable, KeypointSource, SourceLost

logger = logging.getLogger(__name__)


class MediaPipeKeypointSource(KeypointSource):
    """Reads webcam frames and returns pixel-space keypoints for the first detected person."""

    # Landmark indices (MediaPipe Pose Landmarker)
    LANDMARKS: Dict[str, int] = {
        'nose': 0,
        'left_ear': 7,
        'right_ear': 8,
        'left_shoulder': 11,
        'right_shoulder': 12,
        'left_hip': 23,
        'right_hip': 24,
    }

    MODEL_URL = "https://storage.googleapis.com/mediapipe-models/pose_landmarker/pose_landmarker_lite/float16/latest/pose_landmarker_lite.task"
    MODEL_PATH = Path(__file__).parent.parent.parent / "models" / "pose_landmarker.task"

    def __init__(self, camera_id: int = 0, width: int = 640, height: int = 480,
                 min_detection_confidence: float = 0.5, min_tracking_confidence: float = 0.5,
                 model_path: Optional[Path] = None):
        try:
            import cv2
            import mediapipe as mp
            from mediapipe.tasks import python as mp_python
            from mediapipe.tasks.python import vision
        except ImportError as e:
            raise RuntimeError(
                'Camera dependencies are not installed. Install with: pip install ".[camera]"'
            ) from e

        self._cv2 = cv2
        self._mp = mp
        self.model_path = Path(model_path) if model_path else self.MODEL_PATH
        self._ensure_model()

        options = vision.PoseLandmarkerOptions(
            base_options=mp_python.BaseOptions(model_asset_path=str(self.model_path)),
            running_mode=vision.RunningMode.VIDEO,
            num_poses=1,
            min_pose_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
            output_segmentation_masks=False
        )
        self.landmarker = vision.PoseLandmarker.create_from_options(options)

        self.cap = cv2.VideoCapture(camera_id)
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        if not self.cap.isOpened():
            self.landmarker.close()
            raise SourceLost(f"Could not open camera {camera_id}")

        self._last_timestamp_ms = 0
        self.closed = False
        self._lock = threading.Lock()

    def _ensure_model(self):
        """Download the model if not present."""
        if self.model_path.exists():
            return
        import certifi

        logger.info("Downloading pose model to %s", self.model_path)
        self.model_path.parent.mkdir(parents=True, exist_ok=True)
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        try:
            with urllib.request.urlopen(self.MODEL_URL, context=ssl_context) as response:
                with open(self.model_path, 'wb') as f:
                    f.write(response.read())
        except OSError as e:
            raise RuntimeError(f"Failed to download model: {e}\n"
                               f"Please manually download from:\n{self.MODEL_URL}\n"
                               f"And save to: {self.model_path}") from e

    def _capture(self) -> Frame:
        """Blocking: grab one camera frame and run the landmarker on it."""
        with self._lock:
            return self._capture_locked()

    def _capture_locked(self) -> Frame:
        if self.closed:
            raise SourceLost("camera source closed")
        ok, image = self.cap.read()
        if not ok:
            raise SourceLost("camera stopped delivering frames")

        timestamp = now_ms()
        # MediaPipe requires monotonic timestamps
        timestamp_ms = int(timestamp)
        if timestamp_ms <= self._last_timestamp_ms:
            timestamp_ms = self._last_timestamp_ms + 1
        self._last_timestamp_ms = timestamp_ms

        h, w = image.shape[0], image.shape[1]
        rgb = self._cv2.cvtColor(image, self._cv2.COLOR_BGR2RGB)
        mp_image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=rgb)
        try:
            result = self.landmarker.detect_for_video(mp_image, timestamp_ms)
        except RuntimeError as e:
            raise DetectionUnavailable(str(e)) from e

        if not result.pose_landmarks:
            # Nobody in view: an empty frame, which scores as undetermined
            return Frame(timestamp=timestamp)

        landmarks = result.pose_landmarks[0]
        keypoints = []
        for name, idx in self.LANDMARKS.items():
            lm = landmarks[idx]
            visibility = getattr(lm, 'visibility', None)
            keypoints.append(Keypoint(
                name=name,
                x=float(lm.x) * w,
                y=float(lm.y) * h,
                confidence=float(visibility) if visibility is not None else 0.0,
            ))
        return Frame.from_keypoints(keypoints, timestamp=timestamp)

    async def read(self) -> Frame:
        return await asyncio.to_thread(self._capture)

    def close(self):
        """Release camera and model."""
        with self._lock:
            if self.closed:
                return
            self.closed = True
            self.cap.release()
            self.landmarker.close()
