"""Wrapper de httpx.

Estandariza timeouts, headers, reintentos y el mapeo de excepciones de httpx
a la taxonomía del Core (`core.domain.errors`). Para tests se inyecta un
`httpx.AsyncClient` con `httpx.MockTransport`.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
from typing import Any, Awaitable, Callable, TypeVar

import httpx

from core.config import AppSettings
from core.domain.errors import DecodeError, FetchTimeoutError, HttpStatusError, NetworkError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros (timeout, UA, redirects)."""

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/vnd.github+json, application/json;q=0.9, */*;q=0.8",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


def _backoff_seconds(attempt: int, base: float) -> float:
    if base <= 0:
        return 0.0
    return base * (2**attempt) + random.uniform(0.0, base * 0.3)


class HttpClient:
    """Cliente asíncrono que implementa `JsonSource` e `ImageSource`.

    Reglas:
    - Cada request lleva el timeout de `AppSettings.http_timeout_seconds`.
    - Solo `NetworkError` se reintenta (hasta `network_max_retries`, con backoff).
    - `HttpStatusError` y `DecodeError` se propagan al primer intento.
    """

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._client = client or build_async_client(self._settings)
        self.request_count = 0

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, url: str) -> httpx.Response:
        self.request_count += 1
        try:
            return await self._client.get(url)
        except httpx.TimeoutException as exc:
            raise FetchTimeoutError(f"timeout after {self._settings.http_timeout_seconds}s", url=url) from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"{type(exc).__name__}: {exc}", url=url) from exc
        except httpx.InvalidURL as exc:
            raise NetworkError(f"invalid url: {exc}", url=url) from exc

    async def _with_retries(self, url: str, call: Callable[[], Awaitable[T]]) -> T:
        max_retries = self._settings.network_max_retries
        attempt = 0
        while True:
            try:
                return await call()
            except NetworkError as exc:
                if attempt >= max_retries:
                    raise
                delay = _backoff_seconds(attempt, self._settings.retry_backoff_seconds)
                logger.warning(
                    "Network failure for %s (%s); retry %d/%d in %.2fs",
                    url,
                    exc.message,
                    attempt + 1,
                    max_retries,
                    delay,
                )
                await asyncio.sleep(delay)
                attempt += 1

    async def get_json(self, url: str) -> Any:
        async def call() -> Any:
            resp = await self._get(url)
            if not 200 <= resp.status_code < 300:
                raise HttpStatusError(resp.status_code, url=url)
            try:
                return resp.json()
            except (json.JSONDecodeError, UnicodeDecodeError) as exc:
                raise DecodeError(f"malformed JSON: {exc}", url=url) from exc

        return await self._with_retries(url, call)

    async def get_image_bytes(self, url: str) -> bytes:
        async def call() -> bytes:
            resp = await self._get(url)
            if resp.status_code != 200:
                raise HttpStatusError(resp.status_code, url=url)
            content_type = resp.headers.get("content-type", "")
            if not content_type.lower().startswith("image"):
                raise DecodeError(f"unexpected content-type {content_type!r}", url=url)
            return resp.content

        return await self._with_retries(url, call)
