"""Caché LRU en memoria de assets decodificados, indexado por URL de origen."""

from __future__ import annotations

import threading
from collections import OrderedDict

from core.domain.models import CachedAsset


class AssetCache:
    """LRU acotado por número de entradas.

    Al superar *capacity* se expulsa la entrada accedida hace más tiempo.
    Todos los métodos públicos toman el lock: los completados de fetch pueden
    llegar desde threads de trabajo.
    """

    def __init__(self, capacity: int = 200) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._entries: OrderedDict[str, CachedAsset] = OrderedDict()
        self._capacity = capacity
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, url: str) -> CachedAsset | None:
        with self._lock:
            asset = self._entries.get(url)
            if asset is not None:
                self._entries.move_to_end(url)
            return asset

    def put(self, url: str, asset: CachedAsset) -> None:
        with self._lock:
            if url in self._entries:
                self._entries.move_to_end(url)
            elif len(self._entries) >= self._capacity:
                self._entries.popitem(last=False)
            self._entries[url] = asset

    def invalidate(self, url: str) -> None:
        with self._lock:
            self._entries.pop(url, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def memory_usage_bytes(self) -> int:
        with self._lock:
            return sum(len(asset.pixels) for asset in self._entries.values())
