"""Core business logic components."""

from .prompt_builder import compose, compose_contextual
from .task_poller import TaskPoller, AsyncioScheduler, PollResult
from .history_store import HistoryStore
from .fallback import DegradedFallback
from .orchestrator import RequestOrchestrator

__all__ = [
    "compose",
    "compose_contextual",
    "TaskPoller",
    "AsyncioScheduler",
    "PollResult",
    "HistoryStore",
    "DegradedFallback",
    "RequestOrchestrator",
]
