"""Tests for the request orchestrator."""

import asyncio

import pytest

from ad_studio.core import DegradedFallback, RequestOrchestrator
from ad_studio.core.fallback import DEGRADED_NOTE
from ad_studio.models import (
    Artifact,
    Brief,
    ErrorKind,
    Failed,
    MediaClass,
    ProcessStatus,
    Processing,
    Rejected,
    ReferenceAsset,
)
from ad_studio.utils.credentials import CredentialProvider
from ad_studio.utils.errors import (
    ConfigurationError,
    ProviderError,
    TransportError,
    ValidationError,
)

from conftest import completed, immediate, pending


# ═══════════════════════════════════════════════════════════════
# VALIDATION
# ═══════════════════════════════════════════════════════════════

@pytest.mark.asyncio
async def test_requires_description_or_headline(orchestrator, primary_adapter):
    with pytest.raises(ValidationError):
        await orchestrator.generate(Brief(cta="Buy"))

    assert primary_adapter.submitted == []


@pytest.mark.asyncio
async def test_reference_provider_requires_asset_and_context(orchestrator, async_image_adapter):
    no_asset = Brief(headline="H", service_id="flux-kontext")
    no_context = Brief(
        headline="H",
        service_id="flux-kontext",
        reference_asset=ReferenceAsset(data=b"img", contextual_prompt="  "),
    )

    for brief in (no_asset, no_context):
        with pytest.raises(ValidationError):
            await orchestrator.generate(brief)

    assert async_image_adapter.submitted == []


@pytest.mark.asyncio
async def test_reference_provider_does_not_need_headline(orchestrator, reference_brief):
    brief = reference_brief.model_copy(update={"headline": ""})

    result = await orchestrator.generate(brief)

    assert result.status == ProcessStatus.SUCCESS


@pytest.mark.asyncio
async def test_unknown_service_is_rejected(orchestrator):
    with pytest.raises(ValidationError):
        await orchestrator.generate(Brief(headline="H", service_id="dall-e-9"))


@pytest.mark.asyncio
async def test_missing_credential_fails_before_network(orchestrator, alternate_adapter):
    orchestrator.credentials = CredentialProvider({"gemini": "gemini-key"})

    with pytest.raises(ConfigurationError):
        await orchestrator.generate(Brief(headline="H", service_id="openai-gpt-image"))

    assert alternate_adapter.submitted == []


# ═══════════════════════════════════════════════════════════════
# MAIN PATH
# ═══════════════════════════════════════════════════════════════

@pytest.mark.asyncio
async def test_immediate_result(orchestrator, primary_adapter, brief, history):
    result = await orchestrator.generate(brief.model_copy(update={"count": 2}))

    request, api_key = primary_adapter.submitted[0]
    assert api_key == "gemini-key"
    assert request.count == 2
    assert request.prompt.startswith("Image content: x. ")
    assert result.status == ProcessStatus.SUCCESS
    assert [a.id for a in result.artifacts] == ["art-1", "art-2"]
    assert all(a.brief == request.brief for a in result.artifacts)
    assert orchestrator.current_results(MediaClass.IMAGE) == result.artifacts
    assert [e.artifact.id for e in history.load(MediaClass.IMAGE)] == ["art-1", "art-2"]


@pytest.mark.asyncio
async def test_count_capped_to_adapter_limit(orchestrator, alternate_adapter):
    await orchestrator.generate(Brief(headline="H", service_id="openai-gpt-image", count=4))

    request, _ = alternate_adapter.submitted[0]
    assert request.count == 1
    assert request.brief.count == 4


@pytest.mark.asyncio
async def test_pending_task_completes(orchestrator, video_adapter, scheduler, history):
    brief = Brief(description="Drone shot", service_id="veo-3-fast", size="16:9")

    result = await orchestrator.generate(brief)

    assert result.status == ProcessStatus.SUCCESS
    artifact = result.artifacts[0]
    assert artifact.media_class == MediaClass.VIDEO
    assert artifact.task_id == "video-1"
    assert artifact.content_ref == "https://cdn.example.com/done.mp4"
    assert artifact.description == "Async ad"
    assert artifact.note == "Generated async"
    assert video_adapter.polls == 3
    assert scheduler.delays == [3.0, 5.0, 5.0]
    assert orchestrator.progress(MediaClass.VIDEO) is None
    assert len(history.load(MediaClass.VIDEO)) == 1
    assert history.load(MediaClass.IMAGE) == []


@pytest.mark.asyncio
async def test_pending_timeout_is_not_an_error(orchestrator, video_adapter, history):
    video_adapter.outcomes = [pending("slow-1", max_attempts=4)]
    video_adapter.statuses = [Processing()]

    result = await orchestrator.generate(Brief(headline="H", service_id="veo-3-fast"))

    assert result.status == ProcessStatus.TIMEOUT
    assert result.task_handle.task_id == "slow-1"
    assert "slow-1" in result.message
    assert result.artifacts == []
    assert video_adapter.polls == 4
    assert history.load(MediaClass.VIDEO) == []
    assert orchestrator.progress(MediaClass.VIDEO) is None


@pytest.mark.asyncio
async def test_progress_visible_while_polling(orchestrator, video_adapter):
    seen = []

    async def observe(handle, api_key):
        seen.append(orchestrator.progress(MediaClass.VIDEO))
        return completed() if len(seen) == 3 else Processing()

    video_adapter.poll_status = observe

    await orchestrator.generate(Brief(headline="H", service_id="veo-3-fast"))

    assert [p["attempt"] for p in seen] == [0, 1, 2]
    assert all(p["max_attempts"] == 60 and p["task_id"] == "video-1" for p in seen)


@pytest.mark.asyncio
async def test_failed_task_raises(orchestrator, video_adapter):
    video_adapter.statuses = [Failed(reason="moderation")]

    with pytest.raises(ProviderError, match="moderation"):
        await orchestrator.generate(Brief(headline="H", service_id="veo-3-fast"))


@pytest.mark.asyncio
async def test_transport_error_on_submit_is_fatal(orchestrator, primary_adapter, brief, history):
    primary_adapter.outcomes = [TransportError("primary", "connection refused")]

    with pytest.raises(TransportError):
        await orchestrator.generate(brief)

    assert history.load(MediaClass.IMAGE) == []


@pytest.mark.asyncio
async def test_non_permission_rejection_raises(orchestrator, primary_adapter, brief):
    primary_adapter.outcomes = [Rejected(error_kind=ErrorKind.RATE_LIMIT, message="slow down", status_code=429)]

    with pytest.raises(ProviderError) as exc_info:
        await orchestrator.generate(brief)

    assert exc_info.value.error_kind == "rate_limit"
    assert exc_info.value.status_code == 429
    assert primary_adapter.describe_calls == 0


@pytest.mark.asyncio
async def test_permission_rejection_on_secondary_provider_raises(orchestrator, alternate_adapter):
    alternate_adapter.outcomes = [Rejected(error_kind=ErrorKind.PERMISSION, message="permission denied")]

    with pytest.raises(ProviderError):
        await orchestrator.generate(Brief(headline="H", service_id="openai-gpt-image"))


@pytest.mark.asyncio
async def test_artifact_ids_unique_within_one_tick(registry, credentials, history, scheduler, primary_adapter):
    primary_adapter.outcomes = [immediate(4)]
    orchestrator = RequestOrchestrator(registry, credentials, history, scheduler=scheduler)

    result = await orchestrator.generate(Brief(headline="H", count=4))

    ids = [a.id for a in result.artifacts]
    assert len(set(ids)) == 4


# ═══════════════════════════════════════════════════════════════
# FALLBACK
# ═══════════════════════════════════════════════════════════════

@pytest.mark.asyncio
async def test_fallback_produces_degraded_artifacts(orchestrator, primary_adapter, brief, history):
    primary_adapter.outcomes = [
        Rejected(error_kind=ErrorKind.PERMISSION, message="Imagen API is not enabled", status_code=403),
    ]

    result = await orchestrator.generate(brief.model_copy(update={"count": 2}))

    assert result.status == ProcessStatus.DEGRADED
    assert len(result.artifacts) == 2
    assert primary_adapter.describe_calls == 1
    for artifact in result.artifacts:
        assert artifact.degraded is True
        assert artifact.description == "A vivid ad"
        assert artifact.note == DEGRADED_NOTE
        assert artifact.content_ref.startswith("https://picsum.photos/seed/")
        assert artifact.content_ref.endswith("/1024/1024")
        # Same schema as a regular artifact
        assert Artifact.model_validate(artifact.model_dump()) == artifact
    assert result.artifacts[0].content_ref != result.artifacts[1].content_ref
    assert len(history.load(MediaClass.IMAGE)) == 2


@pytest.mark.asyncio
async def test_fallback_placeholders_are_deterministic(orchestrator, primary_adapter, brief):
    primary_adapter.outcomes = [Rejected(error_kind=ErrorKind.PERMISSION, message="permission denied")]

    first = await orchestrator.generate(brief.model_copy(update={"count": 2}))
    second = await orchestrator.generate(brief.model_copy(update={"count": 2}))

    assert [a.content_ref for a in first.artifacts] == [a.content_ref for a in second.artifacts]


@pytest.mark.asyncio
async def test_fallback_tolerates_description_failure(orchestrator, primary_adapter, brief):
    primary_adapter.outcomes = [Rejected(error_kind=ErrorKind.PERMISSION, message="not enabled")]
    primary_adapter.description = ProviderError("gemini", "quota exceeded", 429)

    result = await orchestrator.generate(brief)

    assert result.status == ProcessStatus.DEGRADED
    assert result.artifacts[0].description.startswith("AI description unavailable")


@pytest.mark.asyncio
async def test_strict_fallback_propagates_description_failure(orchestrator, primary_adapter, brief, history):
    orchestrator.fallback = DegradedFallback(strict=True)
    primary_adapter.outcomes = [Rejected(error_kind=ErrorKind.PERMISSION, message="not enabled")]
    primary_adapter.description = TransportError("gemini", "timeout")

    with pytest.raises(TransportError):
        await orchestrator.generate(brief)

    assert history.load(MediaClass.IMAGE) == []


# ═══════════════════════════════════════════════════════════════
# REGENERATION
# ═══════════════════════════════════════════════════════════════

@pytest.mark.asyncio
async def test_regenerate_uses_snapshot_service(orchestrator, primary_adapter, alternate_adapter):
    first = await orchestrator.generate(Brief(headline="H", service_id="openai-gpt-image", count=3))
    # user switches to another provider afterwards
    await orchestrator.generate(Brief(headline="Other", service_id="google-gemini", count=2))
    primary_calls = len(primary_adapter.submitted)

    result = await orchestrator.regenerate(first.artifacts[0])

    request, api_key = alternate_adapter.submitted[-1]
    assert api_key == "openai-key"
    assert request.count == 1
    assert request.prompt == first.artifacts[0].prompt
    assert len(primary_adapter.submitted) == primary_calls
    assert result.artifacts[0].note.endswith("(Similar)")


@pytest.mark.asyncio
async def test_regenerate_forces_single_artifact(orchestrator, primary_adapter):
    first = await orchestrator.generate(Brief(headline="H", count=2))

    await orchestrator.regenerate(first.artifacts[1])

    request, api_key = primary_adapter.submitted[-1]
    assert request.count == 1
    assert api_key == "gemini-key"


@pytest.mark.asyncio
async def test_regenerate_prepends_to_results(orchestrator, primary_adapter, history):
    first = await orchestrator.generate(Brief(headline="H", count=2))
    primary_adapter.outcomes = [immediate(1)]

    again = await orchestrator.regenerate(first.artifacts[0])

    current = orchestrator.current_results(MediaClass.IMAGE)
    assert [a.id for a in current] == [again.artifacts[0].id] + [a.id for a in first.artifacts]
    assert len(history.load(MediaClass.IMAGE)) == 3


@pytest.mark.asyncio
async def test_regenerate_without_reference_binary_fails(orchestrator, reference_brief):
    first = await orchestrator.generate(reference_brief)
    restored = Artifact.model_validate(first.artifacts[0].model_dump(mode="json"))

    with pytest.raises(ValidationError):
        await orchestrator.regenerate(restored)


# ═══════════════════════════════════════════════════════════════
# STALE RESULT SUPPRESSION
# ═══════════════════════════════════════════════════════════════

@pytest.mark.asyncio
async def test_superseded_result_does_not_touch_state(
    orchestrator, async_image_adapter, primary_adapter, reference_brief, history,
):
    polling = asyncio.Event()
    release = asyncio.Event()

    async def slow_poll(handle, api_key):
        polling.set()
        await release.wait()
        return completed("https://cdn.example.com/stale.png")

    async_image_adapter.poll_status = slow_poll

    request_a = asyncio.create_task(orchestrator.generate(reference_brief))
    await polling.wait()

    result_b = await orchestrator.generate(Brief(headline="Newer"))
    release.set()
    result_a = await request_a

    assert result_b.status == ProcessStatus.SUCCESS
    assert result_a.status == ProcessStatus.SUPERSEDED
    assert orchestrator.current_results(MediaClass.IMAGE) == result_b.artifacts
    stored = [e.artifact.id for e in history.load(MediaClass.IMAGE)]
    assert stored == [a.id for a in result_b.artifacts]
    assert "https://cdn.example.com/stale.png" not in [
        e.artifact.content_ref for e in history.load(MediaClass.IMAGE)
    ]


@pytest.mark.asyncio
async def test_other_media_class_is_not_superseded(orchestrator, video_adapter, brief):
    release = asyncio.Event()
    polling = asyncio.Event()

    async def slow_poll(handle, api_key):
        polling.set()
        await release.wait()
        return completed()

    video_adapter.poll_status = slow_poll

    video_request = asyncio.create_task(
        orchestrator.generate(Brief(headline="H", service_id="veo-3-fast"))
    )
    await polling.wait()
    await orchestrator.generate(brief)
    release.set()

    video_result = await video_request
    assert video_result.status == ProcessStatus.SUCCESS
    assert len(orchestrator.current_results(MediaClass.VIDEO)) == 1


# ═══════════════════════════════════════════════════════════════
# PROVIDER OVER-DELIVERY & PROGRESS CLEANUP
# ═══════════════════════════════════════════════════════════════

@pytest.mark.asyncio
async def test_extra_provider_media_is_dropped(orchestrator, primary_adapter, history):
    primary_adapter.outcomes = [immediate(3)]

    result = await orchestrator.generate(Brief(headline="H", count=1))

    assert [a.content_ref for a in result.artifacts] == ["https://cdn.example.com/0.png"]
    assert len(history.load(MediaClass.IMAGE)) == 1


@pytest.mark.asyncio
async def test_regenerate_keeps_one_artifact_when_provider_returns_more(orchestrator, primary_adapter):
    first = await orchestrator.generate(Brief(headline="H", count=2))

    again = await orchestrator.regenerate(first.artifacts[0])

    assert len(again.artifacts) == 1
    assert len(orchestrator.current_results(MediaClass.IMAGE)) == 3


@pytest.mark.asyncio
async def test_progress_cleared_when_polling_raises(orchestrator, video_adapter):
    video_adapter.statuses = [RuntimeError("unexpected payload")]

    with pytest.raises(RuntimeError):
        await orchestrator.generate(Brief(headline="H", service_id="veo-3-fast"))

    assert orchestrator.progress(MediaClass.VIDEO) is None
