"""
Base classes for SitePilot integrations.

Integrations are the HTTP clients capabilities use to act on external
systems (the WordPress REST API today).

Error bodies are expected in the WordPress REST envelope:

    {"code": "rest_post_invalid_id", "message": "Invalid post ID.", "data": {"status": 404}}

and are mapped by HTTP status onto the IntegrationError family. Anything
else (HTML error pages, proxies) falls back to the raw response text.

Retry Policy:
    - Retryable: timeouts, connection errors, 429, 5xx
    - Not retryable: every other 4xx
    - Delay: retry_delay * 2**attempt with ±25% jitter, capped at 60s;
      a 429 Retry-After header wins
"""

from __future__ import annotations

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

MAX_RETRY_DELAY = 60.0


# =============================================================================
# Exceptions
# =============================================================================


class IntegrationError(Exception):
    """
    A request to an external system failed.

    Attributes:
        integration: Client name ("wordpress")
        status_code: HTTP status, when a response was received
        error_code: Machine-readable code from the error body (e.g. "rest_forbidden")
        response_body: Raw response text
        retryable: Whether repeating the request may succeed
    """

    retryable_default = False

    def __init__(
        self,
        message: str,
        integration: str,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
        response_body: str | None = None,
        retryable: bool | None = None,
    ):
        super().__init__(message)
        self.integration = integration
        self.status_code = status_code
        self.error_code = error_code
        self.response_body = response_body
        self.retryable = self.retryable_default if retryable is None else retryable

    def __str__(self) -> str:
        text = f"[{self.integration}] {self.args[0]}"
        if self.status_code:
            text += f" (status={self.status_code})"
        return text


class AuthenticationError(IntegrationError):
    """Credentials missing or rejected (401/403)."""


class NotFoundError(IntegrationError):
    """The addressed resource does not exist (404)."""


class ValidationError(IntegrationError):
    """The remote side rejected the request payload (400/422)."""


class RateLimitError(IntegrationError):
    """Too many requests (429)."""

    retryable_default = True

    def __init__(self, message: str, integration: str, *, retry_after: float | None = None, **kwargs):
        super().__init__(message, integration, **kwargs)
        self.retry_after = retry_after


STATUS_ERRORS: dict[int, type[IntegrationError]] = {
    400: ValidationError,
    401: AuthenticationError,
    403: AuthenticationError,
    404: NotFoundError,
    422: ValidationError,
    429: RateLimitError,
}


def _error_envelope(response: httpx.Response) -> tuple[str | None, str]:
    """(code, message) from a REST error body; the raw text when it has none."""
    try:
        body = response.json()
    except ValueError:
        return None, response.text
    if isinstance(body, dict) and body.get("message"):
        return body.get("code"), str(body["message"])
    return (body.get("code") if isinstance(body, dict) else None), response.text


def error_from_response(response: httpx.Response, integration: str) -> IntegrationError:
    """Build the exception for an unsuccessful response."""
    status = response.status_code
    code, message = _error_envelope(response)
    error_class = STATUS_ERRORS.get(status, IntegrationError)

    kwargs: dict[str, Any] = {
        "status_code": status,
        "error_code": code,
        "response_body": response.text,
    }
    if error_class is RateLimitError:
        retry_after = response.headers.get("Retry-After")
        kwargs["retry_after"] = float(retry_after) if retry_after else None
    elif error_class is IntegrationError:
        kwargs["retryable"] = status >= 500

    return error_class(message or f"HTTP {status}", integration, **kwargs)


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True, slots=True)
class IntegrationConfig:
    """Connection settings shared by integration clients."""

    base_url: str = ""
    timeout: float = 30.0
    max_retries: int = 3
    retry_delay: float = 1.0
    log_requests: bool = False

    def backoff(self, attempt: int, error: IntegrationError) -> float:
        """Seconds to wait before retry number ``attempt + 1``."""
        if isinstance(error, RateLimitError) and error.retry_after:
            return error.retry_after
        delay = self.retry_delay * (2**attempt)
        delay += delay * 0.25 * (2 * random.random() - 1)
        return min(delay, MAX_RETRY_DELAY)


# =============================================================================
# Base Client
# =============================================================================


class IntegrationClient(ABC):
    """
    Async JSON-over-HTTP client with error mapping and retries.

    Subclasses provide ``name`` and ``_get_auth_headers()``; they may
    override ``_base_url()`` when the API root is derived from other
    settings.
    """

    def __init__(
        self,
        config: IntegrationConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            config: Connection settings
            transport: httpx transport override (tests pass httpx.MockTransport)
        """
        self.config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Integration name used in errors and logs."""
        ...

    @abstractmethod
    def _get_auth_headers(self) -> dict[str, str]:
        ...

    def _base_url(self) -> str:
        return self.config.base_url

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url(),
                timeout=self.config.timeout,
                transport=self._transport,
                headers={"Accept": "application/json", **self._get_auth_headers()},
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Send a request, retrying retryable failures.

        Raises:
            IntegrationError: The first non-retryable failure, or the last
                failure once retries are used up
        """
        attempt = 0
        while True:
            try:
                return await self._send(method, path, params=params, json=json)
            except IntegrationError as e:
                if not e.retryable or attempt >= self.config.max_retries:
                    if e.retryable:
                        logger.warning(f"[{self.name}] Giving up on {method} {path} after {attempt + 1} attempts")
                    raise
                delay = self.config.backoff(attempt, e)
                attempt += 1
                logger.info(
                    f"[{self.name}] {method} {path} failed ({e}); "
                    f"retry {attempt}/{self.config.max_retries} in {delay:.2f}s"
                )
                await asyncio.sleep(delay)

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        client = await self._get_client()
        if self.config.log_requests:
            logger.debug(f"[{self.name}] {method} {path} params={params} body={json}")

        try:
            response = await client.request(method, path, params=params, json=json)
        except httpx.TimeoutException as e:
            raise IntegrationError(f"Request timed out: {e}", self.name, retryable=True) from e
        except httpx.TransportError as e:
            raise IntegrationError(f"Connection failed: {e}", self.name, retryable=True) from e

        if not response.is_success:
            raise error_from_response(response, self.name)
        return response

    async def __aenter__(self) -> IntegrationClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
