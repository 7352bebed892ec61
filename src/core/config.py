"""Configuración del Core.

Centraliza variables de entorno (pydantic-settings) para que adaptadores
(HTTP/disco) y servicios lean la misma configuración.

Todas las variables usan el prefijo `OCTOLENS_` (p.ej. `OCTOLENS_ASSETS_DIR`).
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "octolens"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "octolens"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "octolens"
    return Path.home() / ".config" / "octolens"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def get_default_assets_dir() -> Path:
    """Raíz por defecto del caché en disco (una subcarpeta por folder lógico)."""

    return get_user_config_dir() / "assets"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str], *, env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# octolens user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación."""

    model_config = SettingsConfigDict(
        env_prefix="OCTOLENS_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout por request (segundos).",
    )
    user_agent: str = Field(
        default="octolens/0.1 (+https://local)",
        min_length=1,
        description="User-Agent para peticiones a la API.",
    )
    github_api_url: str = Field(
        default="https://api.github.com",
        min_length=8,
        description="Base URL de la API de GitHub.",
    )

    network_max_retries: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Reintentos máximos ante fallos de red (nunca ante status/decode).",
    )
    retry_backoff_seconds: float = Field(
        default=0.5,
        ge=0,
        description="Base del backoff exponencial entre reintentos (segundos).",
    )

    # Caché de assets
    assets_dir: Path | None = Field(
        default=None,
        description="Raíz del caché en disco. None -> directorio de usuario.",
    )
    memory_cache_capacity: int = Field(
        default=200,
        ge=1,
        description="Entradas máximas en el caché LRU en memoria.",
    )
    disk_cache_max_files: int | None = Field(
        default=None,
        ge=1,
        description="Archivos máximos por carpeta en disco. None -> sin límite.",
    )
    default_target_height: int = Field(
        default=200,
        ge=1,
        description="Altura destino cuando el llamador no conoce la suya.",
    )

    # Búsqueda incremental
    search_min_length: int = Field(
        default=3,
        ge=1,
        description="Longitud exacta del texto que dispara la búsqueda remota.",
    )
    search_debounce_seconds: float = Field(
        default=0.0,
        ge=0,
        description="Espera antes de emitir la búsqueda remota (0 = inmediata).",
    )

    def resolved_assets_dir(self) -> Path:
        return self.assets_dir or get_default_assets_dir()
