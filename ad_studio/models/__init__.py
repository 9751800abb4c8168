"""Data models and schemas for the ad studio generation service."""

from .schemas import (
    ReferenceAsset,
    Brief,
    GenerationRequest,
    TaskHandle,
    GeneratedMedia,
    Artifact,
    HistoryEntry,
    GenerationResult,
)
from .outcomes import (
    Immediate,
    Pending,
    Rejected,
    Outcome,
    Processing,
    Completed,
    Failed,
    TaskStatus,
)
from .enums import (
    MediaClass,
    ProcessStatus,
    PollState,
    ErrorKind,
)

__all__ = [
    "ReferenceAsset",
    "Brief",
    "GenerationRequest",
    "TaskHandle",
    "GeneratedMedia",
    "Artifact",
    "HistoryEntry",
    "GenerationResult",
    "Immediate",
    "Pending",
    "Rejected",
    "Outcome",
    "Processing",
    "Completed",
    "Failed",
    "TaskStatus",
    "MediaClass",
    "ProcessStatus",
    "PollState",
    "ErrorKind",
]
