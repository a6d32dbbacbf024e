"""
Keypoint Source Interface

Pull-based source of keypoint frames. The capture loop awaits `read()` once
per iteration and never queues frames.

Two failure modes are distinguished:
- `DetectionUnavailable`: this read produced nothing usable; try again.
- `SourceLost`: the source is gone (camera unplugged, permission revoked).
  The pipeline stops and must be restarted explicitly.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Union

from ..core.keypoints import Frame


class KeypointSourceError(Exception):
    """Base class for keypoint source failures."""


class DetectionUnavailable(KeypointSourceError):
    """Transient: the detector could not produce a frame this time."""


class SourceLost(KeypointSourceError):
    """Terminal: the source can no longer produce frames."""


class KeypointSource(ABC):
    """A closed source cannot be reopened; start a new session with a new source."""

    closed: bool = False

    @abstractmethod
    async def read(self) -> Frame:
        """Return the next frame or raise a `KeypointSourceError`."""

    @abstractmethod
    def close(self) -> None:
        """Release the underlying device/model. Must be idempotent."""

    @property
    def name(self) -> str:
        return type(self).__name__

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class ReplayKeypointSource(KeypointSource):
    """
    Replays recorded frames, e.g. for tests or offline scoring.

    Items may be `Frame` objects or exceptions; exceptions are raised when
    reached so failure sequences can be scripted. Once exhausted the source
    reports `SourceLost`.
    """

    def __init__(self, items: Iterable[Union[Frame, Exception]], delay_s: float = 0.0):
        self._items: List[Union[Frame, Exception]] = list(items)
        self._index = 0
        self.delay_s = delay_s
        self.closed = False

    @classmethod
    def from_json(cls, path: Path, delay_s: float = 0.0) -> "ReplayKeypointSource":
        """
        Load a recording: a list of `{"timestamp": ms, "keypoints": [...]}` objects,
        keypoints as `{name, x, y, score}` dicts.
        """
        with open(path, encoding='utf-8') as f:
            data = json.load(f)
        frames = [
            Frame.from_dicts(entry.get('keypoints', []), timestamp=entry.get('timestamp'))
            for entry in data
        ]
        return cls(frames, delay_s=delay_s)

    async def read(self) -> Frame:
        if self.closed:
            raise SourceLost("replay source closed")
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self._index >= len(self._items):
            raise SourceLost("replay exhausted")
        item = self._items[self._index]
        self._index += 1
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def remaining(self) -> int:
        return len(self._items) - self._index

    def close(self) -> None:
        self.closed = True
