"""Contratos de los colaboradores remotos.

El Core solo necesita dos capacidades:
- "dada una URL, devolver el JSON decodificado o un fallo estructurado";
- "dada una URL, devolver los bytes de una imagen o un fallo estructurado".
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from core.domain.models import Record


@runtime_checkable
class JsonSource(Protocol):
    """Fuente de JSON remoto.

    Reglas:
    - Lanza `NetworkError`, `HttpStatusError` o `DecodeError`; nunca excepciones
      del cliente HTTP concreto.
    """

    async def get_json(self, url: str) -> Any:
        ...


@runtime_checkable
class ImageSource(Protocol):
    """Fuente de bytes de imagen (status 200 + content-type `image/*`)."""

    async def get_image_bytes(self, url: str) -> bytes:
        ...


@runtime_checkable
class UserSearchApi(Protocol):
    """Endpoints de GitHub que consume la capa de servicios."""

    async def search_users(self, term: str) -> list[Record]:
        ...

    async def fetch_user(self, url: str) -> Record:
        ...

    async def fetch_repos(self, url: str) -> list[Record]:
        ...
