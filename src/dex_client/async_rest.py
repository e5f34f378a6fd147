"""Async REST client for the Raydium public HTTP APIs.

Raydium wraps every response in ``{"id", "success", "data"}``; a payload with
``success: false`` is treated as an API error even when the HTTP status is 200.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
import ssl
from dataclasses import dataclass
from typing import Any, Mapping
from urllib.parse import urlencode

import aiohttp

LOGGER = logging.getLogger("mcap_bot.dex_client.async_rest")

TRANSIENT_STATUSES = frozenset({500, 502, 503, 504})
MAX_RETRY_AFTER_SEC = 10.0


@dataclass
class AsyncRestRequest:
    method: str
    path: str
    params: Mapping[str, Any] | None = None
    body: Mapping[str, Any] | None = None

    @property
    def verb(self) -> str:
        return self.method.upper()


class AsyncRestError(Exception):
    """Base exception for async REST client errors."""


class AsyncRateLimitError(AsyncRestError):
    """HTTP 429 from the API; ``retry_after`` is the server hint in seconds."""

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class AsyncTransientApiError(AsyncRestError):
    """Network failure, timeout or 5xx that may succeed on retry."""


class AsyncRestClient:
    """aiohttp client with jittered exponential backoff on 429/5xx/timeouts."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
        session: aiohttp.ClientSession | None = None,
        verify_ssl: bool = True,
        max_retry_after: float = MAX_RETRY_AFTER_SEC,
        ssl_context: ssl.SSLContext | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.max_retry_after = max_retry_after
        self._ssl_context = ssl_context
        if ssl_context is None:
            if verify_ssl:
                self._ssl_context = ssl.create_default_context()
            else:
                self._ssl_context = ssl._create_unverified_context()
                LOGGER.warning(
                    "SSL certificate verification is DISABLED for %s. "
                    "Quotes and transactions could be tampered with.",
                    self.base_url,
                )
        self._session = session
        self._owns_session = session is None

    def build_url(self, path: str, params: Mapping[str, Any] | None = None) -> str:
        url = f"{self.base_url}/{path.lstrip('/')}"
        if params:
            url = f"{url}?{urlencode(dict(params))}"
        return url

    async def send(self, request: AsyncRestRequest) -> dict[str, Any]:
        retries = 0
        while True:
            try:
                return await self._send_once(request)
            except AsyncRestError as exc:
                if not isinstance(exc, (AsyncRateLimitError, AsyncTransientApiError)):
                    raise
                retries += 1
                if retries > self.max_retries:
                    LOGGER.warning(
                        "%s %s failed after %d attempts: %s",
                        request.verb,
                        request.path,
                        retries,
                        exc,
                    )
                    raise
                delay = self._retry_delay(exc, retries)
                LOGGER.debug(
                    "Retrying %s %s in %.2fs (%s)", request.verb, request.path, delay, exc
                )
                await asyncio.sleep(delay)

    async def _send_once(self, request: AsyncRestRequest) -> dict[str, Any]:
        url = self.build_url(request.path, request.params)
        headers = {"Accept": "application/json"}
        data: bytes | None = None
        if request.verb != "GET" and request.body:
            data = json.dumps(dict(request.body)).encode("utf8")
            headers["Content-Type"] = "application/json"

        session = await self._ensure_session()
        try:
            async with session.request(
                request.verb,
                url,
                headers=headers,
                data=data,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                text = await response.text()
                self._raise_for_status(response.status, text, response.headers)
        except aiohttp.ClientError as exc:
            raise AsyncTransientApiError(f"Network error contacting {url}") from exc
        except asyncio.TimeoutError as exc:
            raise AsyncTransientApiError(
                f"Timed out after {self.timeout}s contacting {url}"
            ) from exc
        return self._decode(request.path, text)

    def _raise_for_status(
        self, status: int, text: str, headers: Mapping[str, str]
    ) -> None:
        if status == 429:
            raise AsyncRateLimitError(
                "Rate limit exceeded",
                retry_after=_parse_retry_after(headers.get("Retry-After")),
            )
        if status in TRANSIENT_STATUSES:
            raise AsyncTransientApiError(f"Transient HTTP error {status}")
        if status >= 400:
            detail = f": {text}" if text else ""
            raise AsyncRestError(f"HTTP error {status}{detail}")

    @staticmethod
    def _decode(path: str, text: str) -> dict[str, Any]:
        if not text:
            return {}
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise AsyncRestError(f"Invalid JSON from {path}") from exc
        if isinstance(payload, dict) and payload.get("success") is False:
            reason = next(
                (payload[key] for key in ("msg", "message", "error") if payload.get(key)),
                "request was not successful",
            )
            raise AsyncRestError(f"API error on {path}: {reason}")
        return payload

    def _retry_delay(self, exc: AsyncRestError, retries: int) -> float:
        if isinstance(exc, AsyncRateLimitError) and exc.retry_after:
            return min(exc.retry_after, self.max_retry_after)
        base = self.backoff_factor * (2 ** (retries - 1))
        return base + random.uniform(0, base)

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                connector=aiohttp.TCPConnector(ssl=self._ssl_context),
            )
        return self._session


def _parse_retry_after(header_value: str | None) -> float | None:
    if header_value is None:
        return None
    try:
        return float(header_value)
    except ValueError:
        return None
