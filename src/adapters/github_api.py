"""Endpoints de GitHub consumidos por la app.

- `GET /search/users?q={term}` -> `{"items": [user, ...]}`
- `GET {user_url}`              -> user
- `GET {repos_url}`             -> [repo, ...]

Solo valida la *forma* del payload; los campos de cada registro siguen siendo
opcionales y se leen con `core.domain.models.record_*`.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from core.config import AppSettings
from core.domain.errors import DecodeError
from core.domain.models import Record
from core.interfaces.remote import JsonSource

logger = logging.getLogger(__name__)


def _as_record_list(data: Any, *, url: str) -> list[Record]:
    if not isinstance(data, list):
        raise DecodeError(f"expected a JSON array, got {type(data).__name__}", url=url)
    # Elementos que no son objetos se descartan en vez de romper la lista.
    return [item for item in data if isinstance(item, dict)]


class GitHubApi:
    """Implementa `UserSearchApi` sobre cualquier `JsonSource`."""

    def __init__(self, source: JsonSource, settings: AppSettings | None = None) -> None:
        self._source = source
        self._settings = settings or AppSettings()

    @property
    def base_url(self) -> str:
        return self._settings.github_api_url.rstrip("/")

    def search_url(self, term: str) -> str:
        return f"{self.base_url}/search/users?q={quote(term)}"

    def user_url(self, login: str) -> str:
        return f"{self.base_url}/users/{quote(login)}"

    async def search_users(self, term: str) -> list[Record]:
        url = self.search_url(term)
        logger.debug("Searching users: %s", url)
        data = await self._source.get_json(url)
        if not isinstance(data, dict):
            raise DecodeError("search response is not a JSON object", url=url)
        items = data.get("items")
        if items is None:
            raise DecodeError("search response has no 'items'", url=url)
        return _as_record_list(items, url=url)

    async def fetch_user(self, url: str) -> Record:
        data = await self._source.get_json(url)
        if not isinstance(data, dict):
            raise DecodeError("user response is not a JSON object", url=url)
        return data

    async def fetch_user_by_login(self, login: str) -> Record:
        return await self.fetch_user(self.user_url(login))

    async def fetch_repos(self, url: str) -> list[Record]:
        data = await self._source.get_json(url)
        return _as_record_list(data, url=url)
