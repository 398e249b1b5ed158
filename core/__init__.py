# core/__init__.py
from .models import (
    Intent,
    SessionContext,
    Candidate,
    ResolvedQuery,
    TaskOutcome,
    WorkerTask,
    AggregatedResult,
)
from .context_store import ContextStore
from .fusion import FusionError, fuse

__all__ = [
    "Intent",
    "SessionContext",
    "Candidate",
    "ResolvedQuery",
    "TaskOutcome",
    "WorkerTask",
    "AggregatedResult",
    "ContextStore",
    "FusionError",
    "fuse",
]
