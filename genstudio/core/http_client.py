"""
HTTP client for the Replicate prediction API and for fetching result media
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional
from urllib.parse import urlparse

import httpx

from genstudio.core.config import Settings
from genstudio.core.exceptions import (
    ConfigurationError,
    JobNotFoundError,
    ProviderConnectionError,
    ProviderError,
)

logger = logging.getLogger(__name__)


class ReplicateClient:
    """Client for the upstream prediction API.

    Constructed once per process and passed to whatever needs it; it holds a
    single pooled ``httpx.AsyncClient`` that is opened lazily and closed by
    ``aclose()`` (or the async context manager).
    """

    def __init__(
        self,
        api_token: str,
        base_url: str = "https://api.replicate.com/v1",
        timeout: float = 60.0,
        user_agent: str = "GenStudio/1.0",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_token = api_token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ReplicateClient":
        return cls(
            api_token=settings.REPLICATE_API_TOKEN,
            base_url=settings.REPLICATE_BASE_URL,
            timeout=settings.REPLICATE_TIMEOUT,
            user_agent=settings.USER_AGENT,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def require_credentials(self) -> None:
        """Fail fast before any submission when the token is missing."""
        if not self.api_token:
            raise ConfigurationError("REPLICATE_API_TOKEN is not configured")

    def _auth_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
        }

    def _is_provider_url(self, url: str) -> bool:
        return urlparse(url).netloc == urlparse(self.base_url).netloc

    async def _request(
        self,
        method: str,
        endpoint: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        self.require_credentials()
        url = f"{self.base_url}/{endpoint.lstrip('/')}"

        try:
            response = await self.client.request(
                method, url, json=payload, headers=self._auth_headers()
            )
        except httpx.TransportError as e:
            logger.error(f"Request to provider failed: {method} {url}: {e}")
            raise ProviderConnectionError(f"Could not reach provider: {e}") from e

        if response.status_code == 404:
            raise JobNotFoundError("Prediction not found")

        if not response.is_success:
            raise ProviderError(
                f"Provider returned {response.status_code}: {self._error_detail(response)}",
                upstream_status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError("Provider returned a malformed response",
                                upstream_status=response.status_code) from e

        if not isinstance(data, dict):
            raise ProviderError("Provider returned a malformed response",
                                upstream_status=response.status_code)
        return data

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200] or response.reason_phrase
        if isinstance(body, dict):
            return str(body.get("detail") or body.get("error") or body.get("title") or body)
        return str(body)

    async def create_prediction(
        self,
        input: Dict[str, Any],
        model: Optional[str] = None,
        version: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Start a prediction, either against a model's latest version or a pinned one.

        ``model`` may also carry a pinned version as ``owner/name:version``.
        """
        if model and ":" in model:
            model, version = model.split(":", 1)

        if version:
            return await self._request("POST", "/predictions", {"version": version, "input": input})
        if not model:
            raise ValueError("Either model or version is required")
        return await self._request("POST", f"/models/{model}/predictions", {"input": input})

    async def get_prediction(self, prediction_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/predictions/{prediction_id}")

    async def open_stream(self, url: str, accept: Optional[str] = None) -> httpx.Response:
        """Start a streaming GET for a media URL.

        The caller owns the returned response and must ``aclose()`` it. Non-2xx
        responses are closed here and raised as ``ProviderError``.
        """
        headers = {}
        if accept:
            headers["Accept"] = accept
        if self.api_token and self._is_provider_url(url):
            headers["Authorization"] = f"Bearer {self.api_token}"

        request = self.client.build_request("GET", url, headers=headers)
        try:
            response = await self.client.send(request, stream=True)
        except httpx.TransportError as e:
            logger.error(f"Fetching media from {url} failed: {e}")
            raise ProviderConnectionError(f"Could not fetch media: {e}") from e

        if not response.is_success:
            await response.aclose()
            raise ProviderError(
                f"Failed to fetch media: {response.status_code} {response.reason_phrase}",
                upstream_status=response.status_code,
            )
        return response

    @asynccontextmanager
    async def stream(self, url: str, accept: Optional[str] = None) -> AsyncIterator[httpx.Response]:
        response = await self.open_stream(url, accept)
        try:
            yield response
        finally:
            await response.aclose()

    async def iter_bytes(self, url: str, chunk_size: int = 64 * 1024) -> AsyncIterator[bytes]:
        async with self.stream(url) as response:
            try:
                async for chunk in response.aiter_bytes(chunk_size):
                    yield chunk
            except httpx.TransportError as e:
                raise ProviderConnectionError(f"Media stream interrupted: {e}") from e
