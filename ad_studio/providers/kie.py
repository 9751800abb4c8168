"""Shared plumbing for kie.ai background-task providers."""

from typing import Any, Dict, Optional, Tuple

import httpx

from .base import BaseProvider
from ..models.outcomes import (
    Completed,
    Failed,
    Immediate,
    Outcome,
    Pending,
    Processing,
    TaskStatus,
)
from ..models.schemas import GeneratedMedia, TaskHandle
from ..utils.errors import TransportError
from ..utils.logger import get_logger

logger = get_logger(__name__)

PROCESSING_STATUSES = {"processing", "pending", "queued", "running", "generating"}
FAILED_STATUSES = {"failed", "error"}
# successFlag values kie.ai uses for failed generations
FAILED_FLAGS = (2, 3)


class KieTaskProvider(BaseProvider):
    """Base for kie.ai endpoints that answer with a task id and a record-info URL."""

    credential_family = "kie"
    # Path segment under /api/v1, e.g. "veo" or "flux/kontext"
    endpoint: str = ""
    # Keys that may carry the finished content URL
    result_keys: Tuple[str, ...] = ("url",)

    def __init__(
        self,
        max_attempts: int,
        poll_interval_seconds: float = 5.0,
        initial_delay_seconds: float = 3.0,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            base_url="https://api.kie.ai/api/v1",
            timeout=timeout,
            transport=transport,
        )
        self.max_attempts = max_attempts
        self.poll_interval_seconds = poll_interval_seconds
        self.initial_delay_seconds = initial_delay_seconds

    def _auth_headers(self, api_key: str) -> dict:
        return {"Authorization": f"Bearer {api_key}"}

    @staticmethod
    def _body(payload: Dict[str, Any]) -> Dict[str, Any]:
        """kie.ai wraps most answers in {"code", "msg", "data"}."""
        data = payload.get("data")
        if isinstance(data, dict):
            return {**payload, **data}
        return payload

    def _result_url(self, body: Dict[str, Any]) -> Optional[str]:
        result = body.get("result") if isinstance(body.get("result"), dict) else {}
        response = body.get("response") if isinstance(body.get("response"), dict) else {}

        for key in self.result_keys:
            if body.get(key):
                return body[key]
            if result.get(key):
                return result[key]

        urls = response.get("resultUrls") or []
        if urls:
            return urls[0]
        return response.get("resultImageUrl") or body.get("url")

    def _submit_task(
        self,
        response: httpx.Response,
        description: str,
        note: str,
    ) -> Outcome:
        """Classify a create-task response as Pending, Immediate or Rejected."""
        if response.status_code >= 400:
            return self._reject_response(response)

        payload = self._json(response)
        code = payload.get("code")
        if code is not None and code != 200:
            return self._classify_rejection(
                str(payload.get("msg") or payload.get("message") or f"code {code}"),
                code if isinstance(code, int) else None,
            )

        body = self._body(payload)
        task_id = body.get("taskId")

        if task_id:
            logger.info(
                f"✅ Task submitted: {task_id}",
                extra={"provider": self.name, "task_id": task_id}
            )
            return Pending(
                handle=TaskHandle(task_id=str(task_id), provider=self.name),
                max_attempts=self.max_attempts,
                poll_interval_seconds=self.poll_interval_seconds,
                initial_delay_seconds=self.initial_delay_seconds,
                description=description,
                note=note,
            )

        url = self._result_url(body)
        if url:
            return Immediate(media=[GeneratedMedia(
                content_ref=url, description=description, note=note,
            )])

        return self._classify_rejection("No task id or result in response", response.status_code)

    async def poll_status(self, handle: TaskHandle, api_key: str) -> TaskStatus:
        """
        Query a task's record.

        Raises:
            TransportError: On connectivity failure or a non-2xx status
                response; the poller retries these within its budget
        """
        response = await self._send(
            "GET",
            f"{self.base_url}/{self.endpoint}/record-info",
            api_key,
            params={"taskId": handle.task_id},
        )

        if response.status_code >= 400:
            raise TransportError(self.name, f"status check returned HTTP {response.status_code}")

        body = self._body(self._json(response))
        status = str(body.get("status") or "").lower()
        url = self._result_url(body)

        logger.info(
            f"📊 Task status: {status or 'unknown'}",
            extra={"provider": self.name, "task_id": handle.task_id, "status": status}
        )

        if status in FAILED_STATUSES or body.get("successFlag") in FAILED_FLAGS:
            return Failed(reason=str(body.get("error") or body.get("errorMessage") or "Unknown error"))

        if url:
            return Completed(media=[GeneratedMedia(content_ref=url, description="", note="")])

        if status == "completed":
            return Failed(reason="Task completed without a result URL")

        if status and status not in PROCESSING_STATUSES:
            logger.warning(
                f"Unrecognised task status '{status}', treating as processing",
                extra={"provider": self.name, "task_id": handle.task_id}
            )
        return Processing(progress_hint=status or None)
