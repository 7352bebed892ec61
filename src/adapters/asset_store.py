"""Caché en disco de assets binarios.

Layout (única interfaz durable, inspeccionable por herramientas de backup):

    <root>/<folder>/<name>.png

Reglas:
- La carpeta se crea de forma perezosa e idempotente antes de cada escritura.
- Una carpeta o archivo inexistente en lectura es un "miss", no un error.
- Sin TTL ni cifrado. El tope de archivos por carpeta es opcional
  (`AppSettings.disk_cache_max_files`); `None` significa crecimiento sin límite.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from core.domain.errors import AssetIOError
from core.domain.models import AssetKey

logger = logging.getLogger(__name__)


def _check_component(value: str, *, what: str) -> str:
    if not value or value in (".", "..") or Path(value).name != value:
        raise AssetIOError(f"invalid asset {what}: {value!r}")
    return value


class AssetStore:
    """Persistencia de bytes codificados, indexada por (folder, name)."""

    def __init__(self, root: Path, *, max_files_per_folder: int | None = None) -> None:
        self._root = root
        self._max_files = max_files_per_folder

    @property
    def root(self) -> Path:
        return self._root

    def folder_path(self, folder: str) -> Path:
        return self._root / _check_component(folder, what="folder")

    def path_for(self, key: AssetKey) -> Path:
        _check_component(key.name, what="name")
        return self.folder_path(key.folder) / key.filename

    def ensure_folder(self, folder: str) -> Path:
        path = self.folder_path(folder)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise AssetIOError(f"cannot create folder: {exc}", url=str(path)) from exc
        return path

    def get(self, key: AssetKey) -> bytes | None:
        """Bytes guardados o None. Cualquier fallo de lectura cuenta como miss."""

        try:
            return self.path_for(key).read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            # AssetIOError (nombre inválido) también es OSError.
            logger.warning("Disk cache read failed for %s/%s: %s", key.folder, key.name, exc)
            return None

    def put(self, key: AssetKey, data: bytes) -> Path:
        folder = self.ensure_folder(key.folder)
        path = self.path_for(key)
        tmp_name: str | None = None
        try:
            # Escritura atómica: un lector nunca ve un PNG a medias.
            with tempfile.NamedTemporaryFile(dir=folder, prefix=".tmp-", suffix=".png", delete=False) as tmp:
                tmp_name = tmp.name
                tmp.write(data)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as exc:
            raise AssetIOError(f"cannot write asset: {exc}", url=str(path)) from exc
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

        if self._max_files is not None:
            self._prune(folder, self._max_files, keep=path)
        return path

    def delete(self, key: AssetKey) -> bool:
        path = self.path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise AssetIOError(f"cannot delete asset: {exc}", url=str(path)) from exc
        return True

    def list_names(self, folder: str) -> list[str]:
        path = self.folder_path(folder)
        if not path.is_dir():
            return []
        return sorted(p.stem for p in path.glob("*.png") if not p.name.startswith(".tmp-"))

    def _prune(self, folder: Path, max_files: int, *, keep: Path) -> None:
        try:
            files = [p for p in folder.glob("*.png") if not p.name.startswith(".tmp-")]
            excess = len(files) - max_files
            if excess <= 0:
                return
            aged: list[tuple[int, Path]] = []
            for p in files:
                if p == keep:
                    continue
                try:
                    aged.append((p.stat().st_mtime_ns, p))
                except FileNotFoundError:
                    # Borrado por otro proceso: ya no cuenta.
                    excess -= 1
            aged.sort()
            for _, victim in aged[: max(excess, 0)]:
                logger.debug("Pruning disk cache entry %s", victim)
                victim.unlink(missing_ok=True)
        except OSError as exc:
            raise AssetIOError(f"cannot prune folder: {exc}", url=str(folder)) from exc
