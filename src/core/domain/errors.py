"""Taxonomía de errores del Core.

Reglas de propagación:
- Lecturas de caché (memoria/disco) que fallan se degradan a "miss".
- `AssetFetcher` propaga el fallo terminal al llamador, sin reintentar
  errores de status/decode.
- Solo `NetworkError` (incluido `FetchTimeoutError`) es reintentable.
"""

from __future__ import annotations


class OctolensError(Exception):
    """Base de todos los errores propios."""

    retriable: bool = False

    def __init__(self, message: str, *, url: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.url = url

    def __str__(self) -> str:
        if self.url:
            return f"{self.message} ({self.url})"
        return self.message


class NetworkError(OctolensError):
    """Fallo de transporte (DNS, conexión, TLS, lectura)."""

    retriable = True


class FetchTimeoutError(NetworkError):
    """El request superó `http_timeout_seconds`."""


class HttpStatusError(OctolensError):
    """Respuesta con status distinto de 2xx."""

    def __init__(self, status_code: int, *, url: str | None = None) -> None:
        super().__init__(f"HTTP {status_code}", url=url)
        self.status_code = status_code


class DecodeError(OctolensError):
    """JSON malformado, payload con forma inesperada o bytes que no son imagen."""


class AssetIOError(OctolensError, OSError):
    """Fallo de lectura/escritura en el caché en disco."""


class ConfigError(OctolensError):
    """Configuración no soportada (p.ej. modo de resize)."""
