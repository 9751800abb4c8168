"""Abstract base class for generation provider adapters."""

from abc import ABC, abstractmethod
import httpx
from typing import Any, Dict, Optional, Tuple

from ..core.prompt_builder import compose
from ..models.enums import ErrorKind, MediaClass
from ..models.outcomes import Outcome, Rejected, TaskStatus
from ..models.schemas import Brief, TaskHandle
from ..utils.errors import TransportError
from ..utils.logger import get_logger

logger = get_logger(__name__)

PERMISSION_PATTERNS = ("not enabled", "permission")


class BaseProvider(ABC):
    """Abstract base class for all provider adapters.

    An adapter maps a generation request to one provider's wire format,
    executes it and classifies the response as Immediate, Pending or
    Rejected. Credentials are passed per call.
    """

    name: str = "provider"
    service_ids: Tuple[str, ...] = ()
    media_class: MediaClass = MediaClass.IMAGE
    credential_family: str = ""
    max_count: int = 1
    is_primary: bool = False
    requires_reference: bool = False

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize provider.

        Args:
            base_url: Base URL for API endpoints
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.base_url = base_url
        self.timeout = timeout
        self.transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def initialize(self):
        """Initialize the HTTP client."""
        if self.client is None:
            self.client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self._get_default_headers(),
                transport=self.transport,
            )
            logger.info(
                f"{self.__class__.__name__} initialized",
                extra={"provider": self.name}
            )

    async def close(self):
        """Close the HTTP client."""
        if self.client:
            await self.client.aclose()
            self.client = None
            logger.info(
                f"{self.__class__.__name__} closed",
                extra={"provider": self.name}
            )

    def _get_default_headers(self) -> dict:
        """Get default headers for requests."""
        return {"Accept": "application/json"}

    @abstractmethod
    def _auth_headers(self, api_key: str) -> dict:
        """Get authentication headers for one call."""
        pass

    def _ensure_client(self):
        """Ensure client is initialized."""
        if self.client is None:
            raise RuntimeError(
                f"{self.__class__.__name__} not initialized. "
                "Call initialize() or use as async context manager."
            )

    # ═══════════════════════════════════════════════════════════════
    # CAPABILITIES
    # ═══════════════════════════════════════════════════════════════

    def compose_prompt(self, brief: Brief) -> str:
        """Prompt sent to this provider for a brief."""
        return compose(brief, self.media_class)

    @abstractmethod
    async def submit(self, request, api_key: str) -> Outcome:
        """Submit a generation request and classify the response."""
        pass

    async def poll_status(self, handle: TaskHandle, api_key: str) -> TaskStatus:
        """Query a pending task. Only asynchronous providers implement this."""
        raise NotImplementedError(f"{self.name} does not run background tasks")

    async def describe(self, prompt: str, api_key: str) -> str:
        """Synthesize a textual description of the intended image."""
        raise NotImplementedError(f"{self.name} cannot describe images")

    # ═══════════════════════════════════════════════════════════════
    # HTTP HELPERS
    # ═══════════════════════════════════════════════════════════════

    async def _send(self, method: str, url: str, api_key: str, **kwargs) -> httpx.Response:
        """Issue a request, mapping connectivity failures to TransportError."""
        self._ensure_client()

        headers = {**self._auth_headers(api_key), **kwargs.pop("headers", {})}
        try:
            return await self.client.request(method, url, headers=headers, **kwargs)
        except httpx.RequestError as e:
            logger.error(
                f"❌ {self.name} transport failure: {type(e).__name__}",
                extra={"provider": self.name, "url": url, "error": str(e)}
            )
            raise TransportError(self.name, str(e) or type(e).__name__)

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def _error_message(self, response: httpx.Response) -> str:
        """Pull the most specific error message out of a failed response."""
        data = self._json(response)
        error = data.get("error")

        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if data.get("message"):
            return str(data["message"])
        if data.get("msg"):
            return str(data["msg"])
        if isinstance(error, str) and error:
            return error
        return response.text or f"HTTP {response.status_code}"

    def _classify_rejection(
        self,
        message: str,
        status_code: Optional[int] = None,
    ) -> Rejected:
        """Map a failure to the rejection taxonomy."""
        lowered = message.lower()

        if any(pattern in lowered for pattern in PERMISSION_PATTERNS) or status_code == 403:
            kind = ErrorKind.PERMISSION
        elif status_code == 401:
            kind = ErrorKind.AUTHENTICATION
        elif status_code == 429:
            kind = ErrorKind.RATE_LIMIT
        else:
            kind = ErrorKind.PROVIDER

        logger.error(
            f"❌ {self.name} rejected request: {message}",
            extra={
                "provider": self.name,
                "status": status_code,
                "error_kind": kind.value,
            }
        )
        return Rejected(error_kind=kind, message=message, status_code=status_code)

    def _reject_response(self, response: httpx.Response) -> Rejected:
        return self._classify_rejection(self._error_message(response), response.status_code)
