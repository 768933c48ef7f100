"""
HTTP client for the contract service.

Single entry point for every call to the remote API: owns the base URL,
injects the bearer credential and correlation header, unwraps the
{success, data, message} envelope and normalizes failures into
NetworkError / RemoteError. Holds no business state.

Dependencies: httpx, pydantic, contract_workflow.core.exceptions
System role: Remote API gateway (boundary layer)
"""

import logging
from typing import Any, Callable

import httpx
from pydantic import ValidationError as PydanticValidationError

from contract_workflow.core.exceptions import NetworkError, RemoteError
from contract_workflow.models.common import ApiEnvelope
from contract_workflow.observability.correlation import get_correlation_id

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], str | None]


def _error_message(response: httpx.Response) -> str:
    """Pull a display message out of an error body, with a generic fallback."""
    fallback = f"Request failed with status {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value
    return fallback


class ApiGatewayClient:
    """
    Authenticated JSON client for the contract service.

    Use as an async context manager, or call ``aclose()`` when done.
    An ``httpx.AsyncClient`` or transport may be injected for tests.
    """

    def __init__(
        self,
        base_url: str,
        token_provider: TokenProvider | None = None,
        token: str | None = None,
        timeout_seconds: float = 30.0,
        correlation_header: str = "X-Correlation-ID",
        http_client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize gateway client.

        Args:
            base_url: Service base URL, e.g. http://localhost:5000/api
            token_provider: Returns the session's bearer token, if any
            token: Static bearer token used when the provider returns nothing
            timeout_seconds: Default per-request timeout
            correlation_header: Header name for the correlation ID
            http_client: Pre-built client (not closed by aclose)
            transport: Transport for the internally built client
        """
        self.base_url = base_url.rstrip("/")
        self._token_provider = token_provider
        self._static_token = token
        self._correlation_header = correlation_header
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "ApiGatewayClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self._token_provider() if self._token_provider else None
        token = token or self._static_token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        correlation_id = get_correlation_id()
        if correlation_id:
            headers[self._correlation_header] = correlation_id
        return headers

    async def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        *,
        params: dict[str, Any] | None = None,
        files: Any = None,
        data: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """
        Send one request and return the envelope's ``data``.

        Args:
            method: HTTP method
            path: Path relative to the base URL
            json: JSON body
            params: Query parameters
            files: Multipart files
            data: Multipart/form fields
            timeout: Per-call timeout override (seconds)

        Returns:
            Any: Decoded ``data`` field of the success envelope

        Raises:
            NetworkError: No response received (connect error, timeout)
            RemoteError: Non-2xx response, or envelope with success=false
        """
        url = path if path.startswith("/") else f"/{path}"
        extra: dict[str, Any] = {}
        if timeout is not None:
            extra["timeout"] = timeout

        logger.debug(f"{__name__}:request - {method} {url}")
        try:
            response = await self._client.request(
                method,
                url,
                json=json,
                params=params,
                files=files,
                data=data,
                headers=self._headers(),
                **extra,
            )
        except httpx.TransportError as e:
            logger.warning(f"{__name__}:request - {method} {url} unreachable: {e!r}")
            raise NetworkError(
                f"Could not reach contract service: {e.__class__.__name__}",
                method=method,
                path=url,
            ) from e

        if not response.is_success:
            message = _error_message(response)
            logger.warning(
                f"{__name__}:request - {method} {url} -> {response.status_code}: {message}"
            )
            raise RemoteError(response.status_code, message, {"path": url})

        if not response.content:
            return None

        try:
            envelope = ApiEnvelope.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise RemoteError(
                response.status_code,
                "Malformed response from contract service",
                {"path": url},
            ) from e

        if not envelope.success:
            message = envelope.message or envelope.error or (
                f"Request failed with status {response.status_code}"
            )
            raise RemoteError(response.status_code, message, {"path": url})

        return envelope.data

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, json: Any = None, **kwargs: Any) -> Any:
        return await self.request("POST", path, json, **kwargs)
