"""Task poller: drives a provider background task to a terminal state."""

import asyncio
from typing import Callable, List, Optional

from pydantic import BaseModel, Field

from ..models.enums import PollState
from ..models.outcomes import Completed, Failed, Pending
from ..models.schemas import GeneratedMedia, TaskHandle
from ..utils.errors import TransportError
from ..utils.logger import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int], None]


class AsyncioScheduler:
    """Real-time scheduler backed by asyncio.sleep."""

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class PollResult(BaseModel):
    """Terminal outcome of a poller."""
    state: PollState
    handle: TaskHandle
    attempts: int
    max_attempts: int
    media: List[GeneratedMedia] = Field(default_factory=list)
    reason: Optional[str] = None


class TaskPoller:
    """
    Finite state machine over one TaskHandle.

    submitted -> polling -> completed | failed | timed_out

    The first poll happens after the initial delay, later polls after the
    poll interval. Processing statuses and transport failures both consume
    one attempt; reaching max_attempts ends in timed_out with the handle
    retained. Only a Failed status from the provider is a hard stop.
    """

    def __init__(
        self,
        adapter,
        handle: TaskHandle,
        api_key: str,
        max_attempts: int,
        poll_interval_seconds: float = 5.0,
        initial_delay_seconds: float = 3.0,
        scheduler=None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        """
        Initialize poller.

        Args:
            adapter: Provider adapter implementing poll_status()
            handle: Task to poll; owned by this poller
            api_key: Credential for status queries
            max_attempts: Poll budget (adapter-level configuration)
            poll_interval_seconds: Delay between polls
            initial_delay_seconds: Delay before the first poll
            scheduler: Object with an async sleep(seconds); defaults to asyncio
            on_progress: Called with (attempt, max_attempts) after each
                non-terminal poll
        """
        self.adapter = adapter
        self.handle = handle
        self.api_key = api_key
        self.max_attempts = max(1, max_attempts)
        self.poll_interval_seconds = poll_interval_seconds
        self.initial_delay_seconds = initial_delay_seconds
        self.scheduler = scheduler or AsyncioScheduler()
        self.on_progress = on_progress

        self.state = PollState.SUBMITTED
        self.attempt = 0
        self.polls_issued = 0

    @classmethod
    def from_pending(
        cls,
        adapter,
        pending: Pending,
        api_key: str,
        scheduler=None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> "TaskPoller":
        return cls(
            adapter=adapter,
            handle=pending.handle,
            api_key=api_key,
            max_attempts=pending.max_attempts,
            poll_interval_seconds=pending.poll_interval_seconds,
            initial_delay_seconds=pending.initial_delay_seconds,
            scheduler=scheduler,
            on_progress=on_progress,
        )

    @property
    def is_terminal(self) -> bool:
        return self.state in (PollState.COMPLETED, PollState.FAILED, PollState.TIMED_OUT)

    async def run(self) -> PollResult:
        """
        Poll until the task resolves, fails or the budget runs out.

        Returns:
            PollResult in a terminal state

        Raises:
            RuntimeError: If the poller was already started
        """
        if self.state != PollState.SUBMITTED:
            raise RuntimeError(f"Poller for task {self.handle.task_id} already started")

        self.state = PollState.POLLING
        delay = self.initial_delay_seconds

        logger.info(
            f"⏳ Polling task {self.handle.task_id}",
            extra={
                "provider": self.handle.provider,
                "task_id": self.handle.task_id,
                "max_attempts": self.max_attempts,
            }
        )

        while True:
            await self.scheduler.sleep(delay)
            delay = self.poll_interval_seconds
            self.polls_issued += 1

            try:
                status = await self.adapter.poll_status(self.handle, self.api_key)
            except TransportError as e:
                logger.warning(
                    "Status check failed, will retry",
                    extra={
                        "task_id": self.handle.task_id,
                        "attempt": self.attempt + 1,
                        "error": str(e),
                    }
                )
                status = None

            if isinstance(status, Completed):
                return self._finish(PollState.COMPLETED, media=status.media)

            if isinstance(status, Failed):
                return self._finish(PollState.FAILED, reason=status.reason)

            self.attempt += 1
            if self.on_progress:
                self.on_progress(self.attempt, self.max_attempts)

            if self.attempt >= self.max_attempts:
                return self._finish(
                    PollState.TIMED_OUT,
                    reason=f"Still processing after {self.attempt} attempts",
                )

    def _finish(
        self,
        state: PollState,
        media: Optional[List[GeneratedMedia]] = None,
        reason: Optional[str] = None,
    ) -> PollResult:
        self.state = state

        log = logger.info if state == PollState.COMPLETED else logger.warning
        log(
            f"Task {self.handle.task_id} {state.value}",
            extra={
                "provider": self.handle.provider,
                "task_id": self.handle.task_id,
                "attempts": self.attempt,
                "polls": self.polls_issued,
                "reason": reason,
            }
        )

        return PollResult(
            state=state,
            handle=self.handle,
            attempts=self.attempt,
            max_attempts=self.max_attempts,
            media=media or [],
            reason=reason,
        )
