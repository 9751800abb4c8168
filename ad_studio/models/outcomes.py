"""Normalized provider outcomes and task statuses."""

from typing import List, Optional, Union
from pydantic import BaseModel, Field

from .enums import ErrorKind
from .schemas import GeneratedMedia, TaskHandle


# ═══════════════════════════════════════════════════════════════
# SUBMIT OUTCOMES
# ═══════════════════════════════════════════════════════════════

class Immediate(BaseModel):
    """Provider answered synchronously with content."""
    media: List[GeneratedMedia]


class Pending(BaseModel):
    """Provider accepted a background task that must be polled."""
    handle: TaskHandle
    max_attempts: int
    poll_interval_seconds: float = 5.0
    initial_delay_seconds: float = 3.0
    # Applied to media produced by the task
    description: str = ""
    note: str = ""


class Rejected(BaseModel):
    """Provider refused the request."""
    error_kind: ErrorKind
    message: str
    status_code: Optional[int] = None


Outcome = Union[Immediate, Pending, Rejected]


# ═══════════════════════════════════════════════════════════════
# TASK STATUSES
# ═══════════════════════════════════════════════════════════════

class Processing(BaseModel):
    """Task is still running."""
    progress_hint: Optional[str] = None


class Completed(BaseModel):
    """Task finished with content."""
    media: List[GeneratedMedia] = Field(default_factory=list)


class Failed(BaseModel):
    """Task finished without content."""
    reason: str


TaskStatus = Union[Processing, Completed, Failed]
