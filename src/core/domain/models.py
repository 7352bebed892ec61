"""Modelos del dominio (Pydantic v2).

Notas:
- Los registros de la API (usuarios, repos) se tratan como mappings sueltos:
  cualquier campo puede faltar o venir con otro tipo.
- `CachedAsset` es inmutable para poder compartirse entre waiters y threads.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

Record = dict[str, Any]


def record_str(record: Mapping[str, Any], key: str) -> str | None:
    value = record.get(key)
    return value if isinstance(value, str) else None


def record_int(record: Mapping[str, Any], key: str) -> int | None:
    value = record.get(key)
    # bool es subclase de int; no es un contador válido.
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


class AssetKey(BaseModel):
    """Identifica un asset en memoria (por URL), en disco (folder/name) y en origen."""

    model_config = ConfigDict(frozen=True)

    source_url: str = Field(
        ...,
        min_length=1,
        description="URL remota de origen; clave del caché en memoria.",
    )
    folder: str = Field(
        ...,
        min_length=1,
        description="Carpeta lógica en disco (p.ej. 'userImages').",
    )
    name: str = Field(
        ...,
        min_length=1,
        description="Identificador estable del asset; el archivo es '{name}.png'.",
    )

    @property
    def filename(self) -> str:
        return f"{self.name}.png"


@dataclass(frozen=True)
class CachedAsset:
    """Imagen decodificada: píxeles crudos + dimensiones + modo de Pillow."""

    width: int
    height: int
    mode: str
    pixels: bytes

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)


class ContentMode(str, Enum):
    """Modos de ajuste de contenido. Solo `ASPECT_FIT` está implementado."""

    ASPECT_FIT = "aspect_fit"
    ASPECT_FILL = "aspect_fill"
    SCALE_TO_FILL = "scale_to_fill"


class AssetRequest(BaseModel):
    """Petición de display: qué asset y a qué altura."""

    model_config = ConfigDict(frozen=True)

    key: AssetKey
    target_height: int = Field(default=200, ge=1)
    content_mode: ContentMode = ContentMode.ASPECT_FIT

    @classmethod
    def build(
        cls,
        url: str,
        folder: str,
        name: str,
        target_height: int = 200,
        *,
        content_mode: ContentMode = ContentMode.ASPECT_FIT,
    ) -> "AssetRequest":
        return cls(
            key=AssetKey(source_url=url, folder=folder, name=name),
            target_height=target_height,
            content_mode=content_mode,
        )


def dedupe_records(records: Iterable[Any]) -> list[Record]:
    """Quita registros repetidos (mismo `id`) manteniendo la primera aparición.

    Los registros sin `id` se conservan tal cual; lo que no es un dict se descarta.
    """

    seen: set[Any] = set()
    out: list[Record] = []
    for record in records:
        if not isinstance(record, dict):
            continue
        record_id = record.get("id")
        if record_id is not None and not isinstance(record_id, (dict, list)):
            if record_id in seen:
                continue
            seen.add(record_id)
        out.append(record)
    return out


class SearchResultSet(BaseModel):
    """Lista ordenada de registros de usuario, únicos por `id`."""

    model_config = ConfigDict(frozen=True)

    query: str = Field(
        default="",
        description="Texto que produjo el resultado (remoto o filtro).",
    )
    records: tuple[Record, ...] = Field(
        default_factory=tuple,
        description="Registros en el orden de la API.",
    )
    remote: bool = Field(
        default=False,
        description="True si viene de una búsqueda remota (conjunto autoritativo).",
    )

    @classmethod
    def from_records(cls, records: Iterable[Any], *, query: str = "", remote: bool = False) -> "SearchResultSet":
        return cls(query=query, records=tuple(dedupe_records(records)), remote=remote)

    def __len__(self) -> int:
        return len(self.records)

    def logins(self) -> list[str]:
        return [login for login in (record_str(r, "login") for r in self.records) if login]


class SearchState(str, Enum):
    IDLE = "idle"
    FILTERING = "filtering"
    QUERYING = "querying"
    ERROR = "error"


class SearchOutcome(BaseModel):
    """Resultado de `SearchCoordinator.on_query_changed`."""

    query: str
    state: SearchState
    displayed: SearchResultSet | None = Field(
        default=None,
        description="Lista a mostrar tras el evento (None si aún no hay datos).",
    )
    remote_issued: bool = Field(
        default=False,
        description="True si el evento emitió un request remoto.",
    )
    stale: bool = Field(
        default=False,
        description="True si el resultado remoto se descartó por llegar tarde.",
    )
    error: str | None = None


class UserProfile(BaseModel):
    """Resumen tipado de un registro de usuario de GitHub (todos los campos opcionales)."""

    login: str | None = None
    id: int | None = None
    avatar_url: str | None = None
    url: str | None = None
    repos_url: str | None = None
    followers: int | None = None
    following: int | None = None
    public_repos: int | None = None
    email: str | None = None
    location: str | None = None
    created_at: str | None = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "UserProfile":
        return cls(
            login=record_str(record, "login"),
            id=record_int(record, "id"),
            avatar_url=record_str(record, "avatar_url"),
            url=record_str(record, "url"),
            repos_url=record_str(record, "repos_url"),
            followers=record_int(record, "followers"),
            following=record_int(record, "following"),
            public_repos=record_int(record, "public_repos"),
            email=record_str(record, "email"),
            location=record_str(record, "location"),
            created_at=record_str(record, "created_at"),
        )
