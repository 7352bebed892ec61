"""Shared fixtures: isolated settings, in-memory PNGs and fake HTTP transports."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Callable

import httpx
import pytest
from PIL import Image

from adapters.http_client import HttpClient, build_async_client
from core.config import AppSettings


def make_png(width: int, height: int, color: tuple[int, int, int, int] = (200, 30, 30, 255)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    return AppSettings(
        _env_file=None,
        assets_dir=tmp_path / "assets",
        network_max_retries=0,
        retry_backoff_seconds=0.0,
        http_timeout_seconds=5.0,
    )


@pytest.fixture
def make_http(settings: AppSettings) -> Callable[[Callable[[httpx.Request], httpx.Response]], HttpClient]:
    """Build an HttpClient whose requests are answered by *handler*."""

    def factory(handler: Callable[[httpx.Request], httpx.Response], **overrides: object) -> HttpClient:
        effective = settings.model_copy(update=overrides) if overrides else settings
        client = build_async_client(effective, transport=httpx.MockTransport(handler))
        return HttpClient(effective, client=client)

    return factory


@pytest.fixture
def png() -> Callable[..., bytes]:
    return make_png
