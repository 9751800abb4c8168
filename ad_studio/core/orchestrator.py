"""Request orchestrator: validates briefs and drives providers to results."""

import time
from typing import Callable, Dict, List, Optional

from .fallback import DegradedFallback
from .history_store import HistoryStore
from .task_poller import TaskPoller
from ..models.enums import ErrorKind, MediaClass, PollState, ProcessStatus
from ..models.outcomes import Immediate, Pending, Rejected
from ..models.schemas import (
    Artifact,
    Brief,
    GeneratedMedia,
    GenerationRequest,
    GenerationResult,
    HistoryEntry,
)
from ..utils.credentials import CredentialProvider
from ..utils.errors import GenerationTimeoutError, ProviderError, ValidationError
from ..utils.ids import ArtifactIdGenerator
from ..utils.logger import get_logger

logger = get_logger(__name__)

SIMILAR_SUFFIX = " (Similar)"


class RequestOrchestrator:
    """
    Top-level entry point for generation requests.

    Every generate() call takes a new generation stamp for its media class.
    Results only touch the current result set and the history if their
    stamp is still the latest one when they arrive, so a superseded
    request's late result is dropped instead of overwriting a newer one.
    """

    def __init__(
        self,
        registry,
        credentials: CredentialProvider,
        history: HistoryStore,
        fallback: Optional[DegradedFallback] = None,
        scheduler=None,
        id_generator: Optional[Callable[[], str]] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            registry: AdapterRegistry resolving service ids to adapters
            credentials: Resolves API keys per provider family
            history: Persistent artifact history
            fallback: Degraded-mode handler for the primary provider
            scheduler: Scheduler handed to task pollers
            id_generator: Produces unique artifact ids
        """
        self.registry = registry
        self.credentials = credentials
        self.history = history
        self.fallback = fallback or DegradedFallback()
        self.scheduler = scheduler
        self.new_id = id_generator or ArtifactIdGenerator()

        self._generation: Dict[MediaClass, int] = {mc: 0 for mc in MediaClass}
        self._results: Dict[MediaClass, List[Artifact]] = {mc: [] for mc in MediaClass}
        self._progress: Dict[MediaClass, Optional[dict]] = {mc: None for mc in MediaClass}

    # ═══════════════════════════════════════════════════════════════
    # PUBLIC API
    # ═══════════════════════════════════════════════════════════════

    async def generate(self, brief: Brief) -> GenerationResult:
        """
        Generate artifacts for a brief, replacing the current result set.

        Raises:
            ValidationError: Brief is incomplete or service unknown
            ConfigurationError: Credential for the service is missing
            TransportError: Network failure on submit
            ProviderError: Provider rejected the request or the task failed
        """
        adapter = self.registry.get(brief.service_id)
        self._validate(adapter, brief)
        api_key = self.credentials.resolve(adapter.credential_family, brief.service_id)

        media_class = adapter.media_class
        self._generation[media_class] += 1
        stamp = self._generation[media_class]

        request = self._build_request(adapter, brief, brief.count)
        return await self._execute(adapter, request, api_key, stamp, replace=True)

    async def regenerate(self, artifact: Artifact) -> GenerationResult:
        """
        Generate one more artifact from a past artifact's brief.

        The service and credential come from the stored brief, not from
        whatever service is selected now. The result is prepended to the
        current result set.
        """
        brief = artifact.brief
        adapter = self.registry.get(brief.service_id)
        self._validate(adapter, brief)
        api_key = self.credentials.resolve(adapter.credential_family, brief.service_id)

        stamp = self._generation[adapter.media_class]
        request = self._build_request(adapter, brief, 1)

        logger.info(
            "Regenerating from stored brief",
            extra={"artifact_id": artifact.id, "service_id": brief.service_id}
        )
        return await self._execute(adapter, request, api_key, stamp, replace=False, similar=True)

    def current_results(self, media_class: MediaClass) -> List[Artifact]:
        return list(self._results[media_class])

    def progress(self, media_class: MediaClass) -> Optional[dict]:
        """Progress of the in-flight background task, if any."""
        return self._progress[media_class]

    def generation(self, media_class: MediaClass) -> int:
        return self._generation[media_class]

    def history_entries(self, media_class: MediaClass) -> List[HistoryEntry]:
        return self.history.load(media_class)

    def clear_history(self, media_class: MediaClass) -> None:
        self.history.clear(media_class)

    def find_artifact(self, artifact_id: str) -> Optional[Artifact]:
        """Look an artifact up in the current results, then in history."""
        for media_class in MediaClass:
            for artifact in self._results[media_class]:
                if artifact.id == artifact_id:
                    return artifact
            for entry in self.history.load(media_class):
                if entry.artifact.id == artifact_id:
                    return entry.artifact
        return None

    # ═══════════════════════════════════════════════════════════════
    # VALIDATION & REQUEST BUILDING
    # ═══════════════════════════════════════════════════════════════

    def _validate(self, adapter, brief: Brief) -> None:
        if adapter.requires_reference:
            asset = brief.reference_asset
            if asset is None or not asset.data or not asset.contextual_prompt.strip():
                raise ValidationError(
                    "A reference image and a description of how to incorporate it are required"
                )
            return

        if not brief.description.strip() and not brief.headline.strip():
            raise ValidationError("Please provide either a description or headline text")

    def _build_request(self, adapter, brief: Brief, count: int) -> GenerationRequest:
        capped = max(1, min(count, adapter.max_count))
        if capped != count:
            logger.info(
                f"Count capped to {capped} for {adapter.name}",
                extra={"requested": count, "capped": capped}
            )
        return GenerationRequest(
            brief=brief,
            count=capped,
            prompt=adapter.compose_prompt(brief),
        )

    # ═══════════════════════════════════════════════════════════════
    # EXECUTION
    # ═══════════════════════════════════════════════════════════════

    async def _execute(
        self,
        adapter,
        request: GenerationRequest,
        api_key: str,
        stamp: int,
        replace: bool,
        similar: bool = False,
    ) -> GenerationResult:
        media_class = adapter.media_class
        start = time.time()

        logger.info(
            f"🎨 Generation started with {adapter.name}",
            extra={
                "service_id": request.brief.service_id,
                "media_class": media_class.value,
                "count": request.count,
                "generation": stamp,
            }
        )

        outcome = await adapter.submit(request, api_key)

        if isinstance(outcome, Rejected):
            if outcome.error_kind == ErrorKind.PERMISSION and adapter.is_primary:
                media = await self.fallback.build(adapter, request, api_key, outcome)
                artifacts = self._materialize(
                    media_class, request, media, degraded=True, similar=similar,
                )
                return self._commit(
                    media_class, stamp, artifacts, ProcessStatus.DEGRADED, replace,
                    message="Primary provider unavailable; placeholder images generated",
                )

            raise ProviderError(
                adapter.name,
                outcome.message,
                outcome.status_code,
                outcome.error_kind.value,
            )

        if isinstance(outcome, Immediate):
            artifacts = self._materialize(media_class, request, outcome.media, similar=similar)
            result = self._commit(media_class, stamp, artifacts, ProcessStatus.SUCCESS, replace)
            self._log_done(adapter, result, start)
            return result

        return await self._await_task(adapter, request, api_key, outcome, stamp, replace, similar, start)

    async def _await_task(
        self,
        adapter,
        request: GenerationRequest,
        api_key: str,
        pending: Pending,
        stamp: int,
        replace: bool,
        similar: bool,
        start: float,
    ) -> GenerationResult:
        media_class = adapter.media_class
        handle = pending.handle

        def on_progress(attempt: int, max_attempts: int) -> None:
            if self._is_current(media_class, stamp):
                self._progress[media_class] = {
                    "task_id": handle.task_id,
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                }

        on_progress(0, pending.max_attempts)

        poller = TaskPoller.from_pending(
            adapter, pending, api_key,
            scheduler=self.scheduler,
            on_progress=on_progress,
        )
        try:
            result = await poller.run()
        finally:
            if self._is_current(media_class, stamp):
                self._progress[media_class] = None

        if result.state == PollState.COMPLETED:
            media = [
                GeneratedMedia(
                    content_ref=item.content_ref,
                    description=item.description or pending.description,
                    note=item.note or pending.note,
                )
                for item in result.media
            ]
            artifacts = self._materialize(
                media_class, request, media, task_id=handle.task_id, similar=similar,
            )
            committed = self._commit(media_class, stamp, artifacts, ProcessStatus.SUCCESS, replace)
            self._log_done(adapter, committed, start)
            return committed

        if result.state == PollState.FAILED:
            raise ProviderError(adapter.name, f"Generation failed: {result.reason}")

        timeout = GenerationTimeoutError(adapter.name, handle.task_id, result.attempts)
        logger.warning(
            f"⏱️ {timeout}",
            extra={"provider": adapter.name, "task_id": handle.task_id, "attempts": result.attempts}
        )

        return GenerationResult(
            status=ProcessStatus.TIMEOUT,
            media_class=media_class,
            task_handle=handle,
            message=(
                f"Generation is taking longer than expected. Task ID: {handle.task_id}"
            ),
            generation=stamp,
        )

    def _materialize(
        self,
        media_class: MediaClass,
        request: GenerationRequest,
        media: List[GeneratedMedia],
        degraded: bool = False,
        task_id: Optional[str] = None,
        similar: bool = False,
    ) -> List[Artifact]:
        if len(media) > request.count:
            logger.warning(
                f"Provider returned {len(media)} items for {request.count} requested, keeping {request.count}",
                extra={"service_id": request.brief.service_id, "returned": len(media)}
            )
        suffix = SIMILAR_SUFFIX if similar else ""
        return [
            Artifact(
                id=self.new_id(),
                media_class=media_class,
                content_ref=item.content_ref,
                brief=request.brief,
                prompt=request.prompt,
                description=item.description,
                note=item.note + suffix,
                degraded=degraded,
                task_id=task_id,
            )
            for item in media[:request.count]
        ]

    def _is_current(self, media_class: MediaClass, stamp: int) -> bool:
        return self._generation[media_class] == stamp

    def _commit(
        self,
        media_class: MediaClass,
        stamp: int,
        artifacts: List[Artifact],
        status: ProcessStatus,
        replace: bool,
        message: Optional[str] = None,
    ) -> GenerationResult:
        """Apply results to shared state if the stamp is still current."""
        if not self._is_current(media_class, stamp):
            logger.warning(
                "Dropping superseded result",
                extra={
                    "media_class": media_class.value,
                    "generation": stamp,
                    "current_generation": self._generation[media_class],
                }
            )
            return GenerationResult(
                status=ProcessStatus.SUPERSEDED,
                media_class=media_class,
                artifacts=artifacts,
                message="A newer request replaced this one",
                generation=stamp,
            )

        if replace:
            self._results[media_class] = list(artifacts)
        else:
            self._results[media_class] = list(artifacts) + self._results[media_class]

        self.history.append(media_class, artifacts)

        return GenerationResult(
            status=status,
            media_class=media_class,
            artifacts=artifacts,
            message=message,
            generation=stamp,
        )

    def _log_done(self, adapter, result: GenerationResult, start: float) -> None:
        logger.info(
            f"🎉 Generation finished: {result.status.value}",
            extra={
                "provider": adapter.name,
                "artifacts": len(result.artifacts),
                "generation": result.generation,
                "duration_seconds": round(time.time() - start, 2),
            }
        )
