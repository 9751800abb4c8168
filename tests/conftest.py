"""Pytest configuration and shared fixtures."""

import asyncio
import itertools
from typing import List, Optional

import pytest

from ad_studio.core import DegradedFallback, HistoryStore, RequestOrchestrator
from ad_studio.models import (
    Brief,
    Completed,
    GeneratedMedia,
    Immediate,
    MediaClass,
    Pending,
    Processing,
    ReferenceAsset,
    TaskHandle,
)
from ad_studio.providers import AdapterRegistry
from ad_studio.providers.base import BaseProvider
from ad_studio.utils.credentials import CredentialProvider
from ad_studio.utils.errors import TransportError


class FakeScheduler:
    """Records requested delays and returns without waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def sleep(self, seconds: float) -> None:
        self.delays.append(seconds)
        await asyncio.sleep(0)


class ScriptedAdapter(BaseProvider):
    """Adapter returning pre-scripted outcomes and task statuses."""

    def __init__(
        self,
        name: str,
        service_ids,
        media_class: MediaClass = MediaClass.IMAGE,
        credential_family: str = "gemini",
        max_count: int = 4,
        is_primary: bool = False,
        requires_reference: bool = False,
        outcomes: Optional[list] = None,
        statuses: Optional[list] = None,
        description: str = "A vivid ad",
    ):
        super().__init__(base_url="https://fake.invalid")
        self.name = name
        self.service_ids = tuple(service_ids)
        self.media_class = media_class
        self.credential_family = credential_family
        self.max_count = max_count
        self.is_primary = is_primary
        self.requires_reference = requires_reference
        self.outcomes = list(outcomes or [])
        self.statuses = list(statuses or [])
        self.description = description
        self.submitted = []
        self.polls = 0
        self.describe_calls = 0

    def _auth_headers(self, api_key: str) -> dict:
        return {"Authorization": api_key}

    async def submit(self, request, api_key: str):
        self.submitted.append((request, api_key))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def poll_status(self, handle, api_key: str):
        self.polls += 1
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(status, Exception):
            raise status
        return status

    async def describe(self, prompt: str, api_key: str) -> str:
        self.describe_calls += 1
        if isinstance(self.description, Exception):
            raise self.description
        return self.description


def media(url: str = "https://cdn.example.com/a.png", note: str = "Generated") -> GeneratedMedia:
    return GeneratedMedia(content_ref=url, description="An ad", note=note)


def immediate(count: int = 1) -> Immediate:
    return Immediate(media=[media(f"https://cdn.example.com/{i}.png") for i in range(count)])


def pending(task_id: str = "task-1", max_attempts: int = 5, provider: str = "fake") -> Pending:
    return Pending(
        handle=TaskHandle(task_id=task_id, provider=provider),
        max_attempts=max_attempts,
        poll_interval_seconds=5.0,
        initial_delay_seconds=3.0,
        description="Async ad",
        note="Generated async",
    )


def completed(url: str = "https://cdn.example.com/done.mp4") -> Completed:
    return Completed(media=[GeneratedMedia(content_ref=url, description="", note="")])


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def credentials():
    return CredentialProvider({"gemini": "gemini-key", "openai": "openai-key", "kie": "kie-key"})


@pytest.fixture
def history(tmp_path):
    return HistoryStore(tmp_path / "history")


@pytest.fixture
def primary_adapter():
    return ScriptedAdapter(
        "primary", ["google-gemini"], is_primary=True, outcomes=[immediate(2)],
    )


@pytest.fixture
def alternate_adapter():
    return ScriptedAdapter(
        "alternate", ["openai-gpt-image"], credential_family="openai",
        max_count=1, outcomes=[immediate(1)],
    )


@pytest.fixture
def async_image_adapter():
    return ScriptedAdapter(
        "async-image", ["flux-kontext"], credential_family="kie", max_count=1,
        requires_reference=True, outcomes=[pending()],
        statuses=[Processing(), completed("https://cdn.example.com/kontext.png")],
    )


@pytest.fixture
def video_adapter():
    return ScriptedAdapter(
        "video", ["veo-3-fast"], media_class=MediaClass.VIDEO, credential_family="kie",
        max_count=1, outcomes=[pending("video-1", max_attempts=60)],
        statuses=[Processing(), Processing(), completed()],
    )


@pytest.fixture
def registry(primary_adapter, alternate_adapter, async_image_adapter, video_adapter):
    registry = AdapterRegistry()
    for adapter in (primary_adapter, alternate_adapter, async_image_adapter, video_adapter):
        registry.register(adapter)
    return registry


@pytest.fixture
def orchestrator(registry, credentials, history, scheduler):
    counter = itertools.count(1)
    return RequestOrchestrator(
        registry=registry,
        credentials=credentials,
        history=history,
        fallback=DegradedFallback(),
        scheduler=scheduler,
        id_generator=lambda: f"art-{next(counter)}",
    )


@pytest.fixture
def brief():
    return Brief(description="x", headline="H")


@pytest.fixture
def reference_brief():
    return Brief(
        headline="Summer Sale",
        service_id="flux-kontext",
        reference_asset=ReferenceAsset(
            data=b"\x89PNG fake",
            mime_type="image/png",
            filename="product.png",
            contextual_prompt="Place the product on a beach",
        ),
    )


@pytest.fixture
def transport_error():
    return TransportError("fake", "connection reset")
