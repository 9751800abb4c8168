"""Enumerations for the ad studio generation service."""

from enum import Enum


class MediaClass(str, Enum):
    """Kind of artifact a provider produces."""
    IMAGE = "image"
    VIDEO = "video"


class ProcessStatus(str, Enum):
    """Status of a finished generation call."""
    SUCCESS = "success"
    DEGRADED = "degraded"
    TIMEOUT = "timeout"
    SUPERSEDED = "superseded"


class PollState(str, Enum):
    """State of a task poller."""
    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class ErrorKind(str, Enum):
    """Classification of a provider rejection."""
    PERMISSION = "permission"
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    PROVIDER = "provider"
