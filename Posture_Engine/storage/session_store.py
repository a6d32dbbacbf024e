"""
Session Persistence

Posture snapshots are periodically written as session records. A record
store implements two sides:
- `write(record)`: the persistence gateway used by the live pipeline,
- `samples(uid, since)`: the raw history read back for weekly analytics.

`JsonLinesSessionStore` appends one JSON document per line; the file is the
whole database. `InMemorySessionStore` keeps records in a list.
"""

import asyncio
import json
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from numbers import Real
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.weekly_aggregator import ScoreSample

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SessionRecord:
    """A persisted posture sample."""
    uid: str
    score: Any
    status: str
    metrics: Dict[str, Any]
    session_id: Optional[str] = None
    client_timestamp: Optional[float] = None
    created_at: datetime = field(default_factory=_utcnow)
    record_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def validate(self):
        """Reject records missing uid, numeric score, status or metrics."""
        score_ok = isinstance(self.score, Real) and not isinstance(self.score, bool)
        if not self.uid or not score_ok or not self.status or not self.metrics:
            raise ValueError("Missing required fields")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.record_id,
            'uid': self.uid,
            'session_id': self.session_id,
            'score': self.score,
            'status': self.status,
            'metrics': self.metrics,
            'client_timestamp': self.client_timestamp,
            'created_at': self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionRecord":
        created_at = datetime.fromisoformat(data['created_at'])
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return cls(
            uid=data.get('uid', ''),
            score=data.get('score'),
            status=data.get('status', ''),
            metrics=data.get('metrics') or {},
            session_id=data.get('session_id'),
            client_timestamp=data.get('client_timestamp'),
            created_at=created_at,
            record_id=data.get('id') or uuid.uuid4().hex,
        )

    def to_sample(self) -> ScoreSample:
        return ScoreSample(uid=self.uid, score=self.score, created_at=self.created_at)


# -----------------------------------------------------------------------------
# Stores
# -----------------------------------------------------------------------------

class SessionStore(ABC):

    @abstractmethod
    async def write(self, record: SessionRecord) -> None:
        """Persist one record. Raises ValueError for invalid records."""

    @abstractmethod
    async def samples(self, uid: str, since: datetime) -> List[ScoreSample]:
        """Samples for `uid` created at or after `since`, oldest first."""


class InMemorySessionStore(SessionStore):

    def __init__(self):
        self.records: List[SessionRecord] = []

    async def write(self, record: SessionRecord) -> None:
        record.validate()
        self.records.append(record)

    async def samples(self, uid: str, since: datetime) -> List[ScoreSample]:
        matching = [r for r in self.records if r.uid == uid and r.created_at >= since]
        matching.sort(key=lambda r: r.created_at)
        return [r.to_sample() for r in matching]


class JsonLinesSessionStore(SessionStore):
    """Append-only JSON-lines file. File I/O runs in a worker thread."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _append(self, record: SessionRecord):
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'a', encoding='utf-8') as f:
                f.write(json.dumps(record.to_dict()) + "\n")

    def _load(self) -> List[SessionRecord]:
        with self._lock:
            if not self.path.exists():
                return []
            lines = self.path.read_text(encoding='utf-8').splitlines()
        records = []
        for line_no, line in enumerate(lines, 1):
            if not line.strip():
                continue
            try:
                records.append(SessionRecord.from_dict(json.loads(line)))
            except (ValueError, KeyError, TypeError):
                logger.warning("Skipping unreadable record at %s:%d", self.path, line_no)
        return records

    async def write(self, record: SessionRecord) -> None:
        record.validate()
        await asyncio.to_thread(self._append, record)

    async def samples(self, uid: str, since: datetime) -> List[ScoreSample]:
        records = await asyncio.to_thread(self._load)
        matching = [r for r in records if r.uid == uid and r.created_at >= since]
        matching.sort(key=lambda r: r.created_at)
        return [r.to_sample() for r in matching]
