"""Entity stores."""
from .base import BaseRepository
from .session import SessionStore
from .message import MessageLog
from .context import ContextIndex
from .job import JobTracker

__all__ = [
    "BaseRepository",
    "SessionStore",
    "MessageLog",
    "ContextIndex",
    "JobTracker",
]
