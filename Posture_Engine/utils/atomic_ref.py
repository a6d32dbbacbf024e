"""Single-writer / multiple-reader reference to an immutable value."""

import threading
from typing import Generic, Optional, TypeVar

T = TypeVar('T')


class AtomicReference(Generic[T]):
    """Holds one immutable value; readers always see a whole value, never a partial update."""

    def __init__(self, value: Optional[T] = None):
        self._lock = threading.Lock()
        self._value = value
        self._version = 0

    def get(self) -> Optional[T]:
        with self._lock:
            return self._value

    def get_versioned(self):
        """Return (version, value); the version increases on every set."""
        with self._lock:
            return self._version, self._value

    def set(self, value: Optional[T]):
        with self._lock:
            self._value = value
            self._version += 1
