"""
Alert Stream Manager

Turns snapshots into a short newest-first alert feed:
- a status alert each time posture moves into a new non-good status,
- an eye-rest reminder when the blink rate stays low (at most once per interval),
- a break-due flag once the session runs past the break interval.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..config import AlertConfig, DEFAULT_CONFIG
from ..utils.timing import Clock, now_ms
from .posture_classifier import PostureStatus, Snapshot


class AlertSeverity(Enum):
    WARNING = "warning"
    BAD = "bad"
    UNKNOWN = "unknown"
    INFO = "info"

    @classmethod
    def from_status(cls, status: PostureStatus) -> "AlertSeverity":
        return cls(status.value)


@dataclass(frozen=True)
class Alert:
    id: str
    message: str
    severity: AlertSeverity
    timestamp: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'message': self.message,
            'severity': self.severity.value,
            'timestamp': self.timestamp,
        }


class AlertManager:
    """Per-session alert state machine."""

    def __init__(self, config: AlertConfig = DEFAULT_CONFIG.alerts, clock: Optional[Clock] = None):
        self.config = config
        self.clock = clock or now_ms
        self.start_session()

    def start_session(self, now: Optional[float] = None):
        now = self.clock() if now is None else now
        self.last_status = PostureStatus.UNKNOWN
        self.last_wellness_alert_time = now
        self.break_due = False
        self.session_start_time = now
        self._alerts: List[Alert] = []

    @property
    def alerts(self) -> Tuple[Alert, ...]:
        """Newest first, at most `MAX_ALERTS` entries."""
        return tuple(self._alerts)

    def _push(self, alert: Alert):
        self._alerts.insert(0, alert)
        del self._alerts[self.config.MAX_ALERTS:]

    # -------------------------------------------------------------------------
    # Snapshot handling
    # -------------------------------------------------------------------------

    def on_snapshot(self, snapshot: Snapshot, now: Optional[float] = None) -> List[Alert]:
        """Evaluate one snapshot; returns the alerts it produced (possibly none)."""
        now = self.clock() if now is None else now
        produced = []

        status = snapshot.status
        if status != PostureStatus.GOOD and status != self.last_status:
            alert = Alert(
                id=f"{int(snapshot.timestamp)}-{status.value}",
                message=snapshot.issues[0] if snapshot.issues else self.config.DEFAULT_MESSAGE,
                severity=AlertSeverity.from_status(status),
                timestamp=snapshot.timestamp,
            )
            self._push(alert)
            produced.append(alert)
        self.last_status = status

        wellness = snapshot.wellness
        if (wellness is not None
                and wellness.blink_rate < self.config.LOW_BLINK_RATE
                and now - self.last_wellness_alert_time > self.config.WELLNESS_INTERVAL_MS):
            alert = Alert(
                id=f"{int(now)}-{AlertSeverity.INFO.value}",
                message=self.config.WELLNESS_MESSAGE,
                severity=AlertSeverity.INFO,
                timestamp=now,
            )
            self._push(alert)
            produced.append(alert)
            self.last_wellness_alert_time = now

        return produced

    # -------------------------------------------------------------------------
    # Break reminder
    # -------------------------------------------------------------------------

    def check_break(self, now: Optional[float] = None) -> bool:
        """Set the break-due flag once the session exceeds the break interval. Sticky until acknowledged."""
        now = self.clock() if now is None else now
        if now - self.session_start_time > self.config.BREAK_INTERVAL_MS:
            self.break_due = True
        return self.break_due

    def acknowledge_break(self, now: Optional[float] = None):
        now = self.clock() if now is None else now
        self.break_due = False
        self.session_start_time = now
