"""Live capture session runner."""
from .monitor import PostureMonitor, MonitorState
