"""Decodificación, resize y codificación PNG con Pillow.

Funciones puras y síncronas: `AssetFetcher` las ejecuta en threads de trabajo.
"""

from __future__ import annotations

import io

from PIL import Image, UnidentifiedImageError

from core.domain.errors import ConfigError, DecodeError
from core.domain.models import CachedAsset, ContentMode

_KEPT_MODES = ("RGB", "RGBA")


def fit_size(width: int, height: int, target_height: int, mode: ContentMode = ContentMode.ASPECT_FIT) -> tuple[int, int]:
    """Dimensiones destino preservando la relación de aspecto.

    `ASPECT_FIT` ancla la altura: ``height = target`` y ``width = target * r``
    con ``r = width / height`` (100x50 a 200 -> 400x200). Cualquier otro modo
    lanza `ConfigError`.
    """

    if mode is not ContentMode.ASPECT_FIT:
        raise ConfigError(f"unsupported content mode: {mode.value}")
    if width <= 0 or height <= 0:
        raise DecodeError(f"invalid image size {width}x{height}")
    if target_height < 1:
        raise ConfigError(f"target height must be >= 1, got {target_height}")

    ratio = width / height
    return max(1, round(target_height * ratio)), target_height


def from_image(img: Image.Image) -> CachedAsset:
    if img.mode not in _KEPT_MODES:
        img = img.convert("RGBA")
    return CachedAsset(width=img.width, height=img.height, mode=img.mode, pixels=img.tobytes())


def to_image(asset: CachedAsset) -> Image.Image:
    return Image.frombytes(asset.mode, asset.size, asset.pixels)


def decode_image(data: bytes, *, url: str | None = None) -> CachedAsset:
    """Bytes codificados (PNG/JPEG/GIF...) -> `CachedAsset`, o `DecodeError`."""

    if not data:
        raise DecodeError("empty image payload", url=url)
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return from_image(img)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise DecodeError(f"undecodable image: {exc}", url=url) from exc


def resize_asset(asset: CachedAsset, target_height: int, mode: ContentMode = ContentMode.ASPECT_FIT) -> CachedAsset:
    """Redimensiona a `target_height`; devuelve el mismo objeto si ya encaja."""

    size = fit_size(asset.width, asset.height, target_height, mode)
    if size == asset.size:
        return asset
    resized = to_image(asset).resize(size, Image.Resampling.LANCZOS)
    return from_image(resized)


def encode_png(asset: CachedAsset) -> bytes:
    buffer = io.BytesIO()
    to_image(asset).save(buffer, format="PNG")
    return buffer.getvalue()
