"""
Posture Monitor

Runs one capture session on a single asyncio timeline:

    poll source -> extract metrics -> classify -> update wellness -> alerts

Each frame is processed to completion before the next poll. Frames arriving
faster than the frame interval are dropped, and snapshot delivery to
listeners is throttled separately from detection.

Background timers (persistence, analytics refresh, break check) only read the
latest snapshot reference and never block the capture loop.
"""

import asyncio
import logging
import uuid
from enum import Enum
from typing import Callable, List, Optional, Set

from ..config import DEFAULT_CONFIG, EngineConfig
from ..core.alerts import AlertManager
from ..core.keypoints import Frame
from ..core.posture_classifier import Snapshot, evaluate_posture
from ..core.spatial_metrics import extract_posture_metrics
from ..core.wellness_estimator import WellnessEstimator, WellnessMetrics
from ..detectors.keypoint_source import DetectionUnavailable, KeypointSource, SourceLost
from ..storage.analytics import AnalyticsClient
from ..storage.session_store import SessionRecord, SessionStore
from ..utils.atomic_ref import AtomicReference
from ..utils.timing import Clock, Throttle, now_ms

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[Snapshot], None]


class MonitorState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"  # source lost; needs restart()


class PostureMonitor:
    """Live posture/wellness scoring for one user and one keypoint source."""

    def __init__(
        self,
        source: KeypointSource,
        config: EngineConfig = DEFAULT_CONFIG,
        uid: Optional[str] = None,
        store: Optional[SessionStore] = None,
        analytics: Optional[AnalyticsClient] = None,
        estimator: Optional[WellnessEstimator] = None,
        clock: Optional[Clock] = None
    ):
        self.source = source
        self.config = config
        self.uid = uid
        self.store = store
        self.analytics = analytics
        self.clock = clock or now_ms

        self.estimator = estimator or WellnessEstimator(config.wellness, clock=self.clock)
        self.alerts = AlertManager(config.alerts, clock=self.clock)
        self.latest: AtomicReference[Snapshot] = AtomicReference()

        self.state = MonitorState.IDLE
        self.session_id: Optional[str] = None
        self.detection_available = True
        self.last_error: Optional[str] = None
        self.wellness: Optional[WellnessMetrics] = None

        self._frame_throttle = Throttle(config.pipeline.FRAME_INTERVAL_MS)
        self._emit_throttle = Throttle(config.pipeline.EMIT_INTERVAL_MS, strict=True)
        self._listeners: List[SnapshotListener] = []
        self._tasks: List[asyncio.Task] = []
        self._pending_writes: Set[asyncio.Task] = set()
        self._persisted_version = 0
        self._time_offset = 0.0
        self._anchored = False
        self.frames_processed = 0

    # -------------------------------------------------------------------------
    # Session lifecycle
    # -------------------------------------------------------------------------

    def add_listener(self, listener: SnapshotListener):
        self._listeners.append(listener)

    def start_session(self, now: Optional[float] = None):
        """Reset all per-session state. Called by start() and restart()."""
        now = self.clock() if now is None else now
        self.session_id = uuid.uuid4().hex
        self.estimator.reset(now)
        self.alerts.start_session(now)
        self.latest.set(None)
        self._persisted_version = self.latest.get_versioned()[0]
        self.wellness = None
        self.detection_available = True
        self.last_error = None
        self.frames_processed = 0
        self._time_offset = 0.0
        self._anchored = False
        self._frame_throttle.reset()
        self._emit_throttle.reset()
        logger.info("Session %s started", self.session_id[:8])

    async def start(self):
        if self.state == MonitorState.RUNNING:
            raise RuntimeError("Monitor is already running")
        if self.state == MonitorState.STOPPED:
            raise RuntimeError("Monitor stopped after losing its source; call restart()")
        if self.source.closed:
            raise RuntimeError(f"Keypoint source {self.source.name} is closed; pass a new source to restart()")
        self.start_session()
        self.state = MonitorState.RUNNING
        pipeline = self.config.pipeline
        self._tasks = [asyncio.create_task(self._poll_loop(), name="posture-poll")]
        if self.store is not None and self.uid:
            self._tasks.append(asyncio.create_task(
                self._every(pipeline.PERSIST_INTERVAL_S, self.persist_latest, immediately=False),
                name="posture-persist"))
        if self.analytics is not None:
            self._tasks.append(asyncio.create_task(
                self._every(pipeline.ANALYTICS_INTERVAL_S, self.analytics.refresh, immediately=True),
                name="posture-analytics"))
        self._tasks.append(asyncio.create_task(
            self._every(pipeline.BREAK_CHECK_INTERVAL_S, self.check_break, immediately=False),
            name="posture-break"))

    async def restart(self, source: KeypointSource):
        """Leave the stopped state and start a new session on a fresh source."""
        await self.stop()
        self.source = source
        self.state = MonitorState.IDLE
        await self.start()

    async def stop(self):
        """Stop polling and close the source before returning. A closed source is not reused."""
        current = asyncio.current_task()
        tasks = [t for t in self._tasks if t is not current]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks = []
        self.source.close()
        if self.state == MonitorState.RUNNING:
            self.state = MonitorState.IDLE
            logger.info("Session %s stopped (%d frames scored, %d dropped)",
                        (self.session_id or "")[:8], self.frames_processed, self.frames_dropped)

    async def _lose_source(self, error: SourceLost):
        logger.error("Keypoint source %s lost: %s", self.source.name, error)
        self.last_error = str(error)
        self.detection_available = False
        self.state = MonitorState.STOPPED
        await self.stop()

    # -------------------------------------------------------------------------
    # Frame processing
    # -------------------------------------------------------------------------

    def session_now(self) -> float:
        """Current time on the session's time base (recorded frame time when replaying)."""
        return self.clock() - self._time_offset

    def _anchor(self, frame_time: float):
        """Align the session start with the first timestamped frame."""
        self._time_offset = self.clock() - frame_time
        self._anchored = True
        self.estimator.reset(frame_time)
        self.alerts.start_session(frame_time)

    def process_frame(self, frame: Frame, now: Optional[float] = None) -> Optional[Snapshot]:
        """
        Score one frame. Returns the new snapshot, or None when the frame was
        dropped by the rate ceiling or the posture could not be determined.

        Without an explicit `now` the frame's own timestamp is used; the first
        timestamped frame of a session re-anchors the session start to it.
        """
        if now is None:
            if frame.timestamp is not None:
                now = frame.timestamp
                if not self._anchored:
                    self._anchor(now)
            else:
                now = self.session_now()
        if not self._frame_throttle.allow(now):
            logger.debug("Dropped frame at %.0f (rate ceiling)", now)
            return None
        self.frames_processed += 1

        metrics = extract_posture_metrics(frame, self.config.posture)
        wellness = self.estimator.update(frame, now)
        if wellness is not None:
            self.wellness = wellness
        if metrics is None:
            return None

        evaluation = evaluate_posture(metrics, self.config.posture, self.config.baselines)
        snapshot = Snapshot.build(metrics, evaluation, timestamp=now, wellness=self.wellness)
        self.latest.set(snapshot)

        for alert in self.alerts.on_snapshot(snapshot, now):
            logger.info("Alert [%s] %s", alert.severity.value, alert.message)

        if self._emit_throttle.allow(now):
            self._emit(snapshot)
        return snapshot

    def _emit(self, snapshot: Snapshot):
        for listener in self._listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Snapshot listener failed")

    async def _poll_loop(self):
        idle = self.config.pipeline.POLL_IDLE_SECONDS
        while self.state == MonitorState.RUNNING:
            try:
                frame = await self.source.read()
            except SourceLost as e:
                await self._lose_source(e)
                return
            except DetectionUnavailable as e:
                if self.detection_available:
                    logger.warning("Detection unavailable: %s", e)
                self.detection_available = False
                self.last_error = str(e)
            else:
                if not self.detection_available:
                    logger.info("Detection available again")
                self.detection_available = True
                self.process_frame(frame)
            await asyncio.sleep(idle)

    # -------------------------------------------------------------------------
    # Timers
    # -------------------------------------------------------------------------

    @staticmethod
    async def _every(interval_s: float, action, immediately: bool):
        if not immediately:
            await asyncio.sleep(interval_s)
        while True:
            try:
                result = action()
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception("Periodic task %s failed", getattr(action, "__name__", action))
            await asyncio.sleep(interval_s)

    def persist_latest(self) -> Optional[asyncio.Task]:
        """Write the latest snapshot if it changed since the last write. Fire-and-forget."""
        if self.store is None or not self.uid:
            return None
        version, snapshot = self.latest.get_versioned()
        if snapshot is None or version == self._persisted_version:
            return None
        self._persisted_version = version
        record = SessionRecord(
            uid=self.uid,
            session_id=self.session_id,
            score=snapshot.score,
            status=snapshot.status.value,
            metrics=snapshot.metrics.to_dict(),
            client_timestamp=snapshot.timestamp,
        )
        task = asyncio.create_task(self._write(record))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)
        return task

    async def _write(self, record: SessionRecord):
        try:
            await self.store.write(record)
        except Exception:
            logger.exception("Failed to persist session record for %s", record.uid)

    async def drain_writes(self):
        """Wait for in-flight persistence writes."""
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    # -------------------------------------------------------------------------
    # Readers
    # -------------------------------------------------------------------------

    @property
    def snapshot(self) -> Optional[Snapshot]:
        return self.latest.get()

    @property
    def alert_feed(self) -> tuple:
        return self.alerts.alerts

    @property
    def break_due(self) -> bool:
        return self.alerts.break_due

    def check_break(self) -> bool:
        return self.alerts.check_break(self.session_now())

    def acknowledge_break(self):
        self.alerts.acknowledge_break(self.session_now())

    @property
    def frames_dropped(self) -> int:
        """Frames rejected by the rate ceiling this session."""
        return self._frame_throttle.rejected

    def is_stale(self, now: Optional[float] = None) -> bool:
        """True when stopped, when detection is down, or when the latest snapshot is too old."""
        if self.state == MonitorState.STOPPED or not self.detection_available:
            return True
        snapshot = self.latest.get()
        if snapshot is None:
            return True
        now = self.session_now() if now is None else now
        return now - snapshot.timestamp > self.config.pipeline.STALE_AFTER_MS
