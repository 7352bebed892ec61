"""Resolución de assets para display: memoria -> disco -> red.

Flujo de `AssetFetcher.fetch`:
1. `AssetCache` por URL. Hit -> resize si la altura no coincide, sin I/O.
2. `AssetStore` por (folder, name). Hit -> decode, poblar memoria.
3. Red. OK (200 + `image/*` + decodificable) -> poblar memoria (original) y
   disco (PNG ya redimensionado). Cualquier fallo se propaga sin poblar cachés.

Los pasos 2 y 3 se ejecutan dentro de una única tarea por URL: peticiones
concurrentes para la misma URL comparten disco y descarga.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

from adapters.asset_store import AssetStore
from core.config import AppSettings
from core.domain.errors import AssetIOError, ConfigError, DecodeError, OctolensError
from core.domain.models import AssetKey, AssetRequest, CachedAsset, ContentMode
from core.interfaces.remote import ImageSource
from core.services import imaging
from core.services.asset_cache import AssetCache
from core.services.cache_stats import CacheStatsCollector

logger = logging.getLogger(__name__)


@dataclass
class FetchHooks:
    """Callbacks opcionales para la capa visual (indicador de actividad)."""

    on_start: Callable[[], None] | None = None
    on_end: Callable[[], None] | None = None


class DisplaySlot:
    """Destino reutilizable (p.ej. una celda de lista) con contador de generación.

    Cada petición reclama una generación nueva; un resultado solo se aplica si
    su generación sigue siendo la actual.
    """

    def __init__(self) -> None:
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def claim(self) -> int:
        self._generation += 1
        return self._generation

    def is_current(self, token: int) -> bool:
        return token == self._generation

    def recycle(self) -> None:
        """Invalida cualquier petición pendiente sobre este slot."""
        self._generation += 1


class AssetFetcher:
    def __init__(
        self,
        source: ImageSource,
        cache: AssetCache,
        store: AssetStore,
        *,
        stats: CacheStatsCollector | None = None,
    ) -> None:
        self._source = source
        self._cache = cache
        self._store = store
        self._stats = stats or CacheStatsCollector()
        # Solo se toca desde el event loop.
        self._in_flight: dict[str, asyncio.Task[CachedAsset]] = {}

    @classmethod
    def from_settings(cls, settings: AppSettings, source: ImageSource) -> "AssetFetcher":
        return cls(
            source,
            AssetCache(settings.memory_cache_capacity),
            AssetStore(
                settings.resolved_assets_dir(),
                max_files_per_folder=settings.disk_cache_max_files,
            ),
        )

    @property
    def cache(self) -> AssetCache:
        return self._cache

    @property
    def store(self) -> AssetStore:
        return self._store

    @property
    def stats(self) -> CacheStatsCollector:
        return self._stats

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    async def fetch(self, request: AssetRequest, hooks: FetchHooks | None = None) -> CachedAsset:
        """Devuelve el asset redimensionado a `request.target_height`."""

        if request.content_mode is not ContentMode.ASPECT_FIT:
            raise ConfigError(f"unsupported content mode: {request.content_mode.value}")

        hooks = hooks or FetchHooks()
        if hooks.on_start:
            hooks.on_start()
        try:
            return await self._resolve(request)
        finally:
            if hooks.on_end:
                hooks.on_end()

    async def load_into(
        self,
        slot: DisplaySlot,
        request: AssetRequest,
        apply: Callable[[CachedAsset], None],
        hooks: FetchHooks | None = None,
    ) -> bool:
        """Resuelve el asset y lo aplica al slot si nadie lo reclamó mientras tanto.

        Devuelve False cuando el resultado (o el fallo) llegó tarde y se descartó.
        """

        token = slot.claim()
        try:
            asset = await self.fetch(request, hooks)
        except OctolensError as exc:
            if not slot.is_current(token):
                logger.debug("Dropping stale failure for %s: %s", request.key.source_url, exc)
                return False
            raise
        if not slot.is_current(token):
            logger.debug("Dropping stale asset for %s", request.key.source_url)
            return False
        apply(asset)
        return True

    async def _resolve(self, request: AssetRequest) -> CachedAsset:
        url = request.key.source_url
        cached = self._cache.get(url)
        if cached is not None:
            self._stats.record_hit("memory")
            logger.debug("Memory hit: %s", url)
            return await self._fit(cached, request)
        self._stats.record_miss("memory")

        task = self._in_flight.get(url)
        if task is None:
            task = asyncio.create_task(self._load(request.key, request.target_height))
            self._in_flight[url] = task
            task.add_done_callback(lambda t, _url=url: self._forget(_url, t))
        else:
            logger.debug("Joining in-flight load: %s", url)

        # shield: cancelar a un waiter no cancela la descarga compartida.
        asset = await asyncio.shield(task)
        return await self._fit(asset, request)

    def _forget(self, url: str, task: asyncio.Task[CachedAsset]) -> None:
        if self._in_flight.get(url) is task:
            del self._in_flight[url]
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Load failed for %s: %s", url, task.exception())

    async def _fit(self, asset: CachedAsset, request: AssetRequest) -> CachedAsset:
        size = imaging.fit_size(asset.width, asset.height, request.target_height, request.content_mode)
        if size == asset.size:
            return asset
        return await asyncio.to_thread(imaging.resize_asset, asset, request.target_height, request.content_mode)

    async def _load(self, key: AssetKey, target_height: int) -> CachedAsset:
        stored = await asyncio.to_thread(self._read_disk, key)
        if stored is not None:
            self._stats.record_hit("disk")
            logger.debug("Disk hit: %s/%s", key.folder, key.name)
            self._cache.put(key.source_url, stored)
            return stored
        self._stats.record_miss("disk")

        logger.debug("Fetching %s", key.source_url)
        try:
            data = await self._source.get_image_bytes(key.source_url)
            original = await asyncio.to_thread(imaging.decode_image, data, url=key.source_url)
        except OctolensError:
            self._stats.record_fetch(ok=False)
            raise
        self._stats.record_fetch(ok=True)

        self._cache.put(key.source_url, original)
        await asyncio.to_thread(self._write_disk, key, original, target_height)
        return original

    def _read_disk(self, key: AssetKey) -> CachedAsset | None:
        data = self._store.get(key)
        if data is None:
            return None
        try:
            return imaging.decode_image(data, url=str(self._store.path_for(key)))
        except DecodeError as exc:
            logger.warning("Ignoring corrupt disk cache entry: %s", exc)
            return None

    def _write_disk(self, key: AssetKey, original: CachedAsset, target_height: int) -> None:
        try:
            resized = imaging.resize_asset(original, target_height)
            self._store.put(key, imaging.encode_png(resized))
        except AssetIOError as exc:
            # El asset ya está en memoria; el display no debe fallar por el disco.
            logger.warning("Disk cache write failed for %s: %s", key.source_url, exc)
