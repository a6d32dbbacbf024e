"""Session persistence and weekly analytics."""
from .session_store import SessionRecord, SessionStore, InMemorySessionStore, JsonLinesSessionStore
from .analytics import AnalyticsService, AnalyticsClient
