"""Numeric, timing and concurrency helpers."""
from .numeric import round_half_up, clamp
from .timing import Clock, Throttle, now_ms
from .atomic_ref import AtomicReference
