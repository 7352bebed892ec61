"""Detalle de usuario: perfil completo + repositorios con filtro local."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from core.domain.errors import OctolensError
from core.domain.models import AssetRequest, Record, UserProfile, record_int, record_str
from core.interfaces.remote import UserSearchApi
from core.services.search_coordinator import filter_records

logger = logging.getLogger(__name__)

USER_IMAGES_FOLDER = "userImages"


def avatar_request(user: Mapping[str, Any], target_height: int) -> AssetRequest | None:
    """Petición de avatar: `avatar_url` en `userImages/{id}.png`. None si falta algún campo."""

    url = record_str(user, "avatar_url")
    user_id = record_int(user, "id")
    if not url or user_id is None:
        return None
    return AssetRequest.build(url, USER_IMAGES_FOLDER, str(user_id), target_height)


@dataclass
class LoadReport:
    """Resultado de `ProfileBrowser.load`; los errores son por request."""

    user_loaded: bool = False
    repos_loaded: bool = False
    errors: dict[str, str] = field(default_factory=dict)


class ProfileBrowser:
    """Estado de la pantalla de detalle de un usuario."""

    def __init__(self, api: UserSearchApi, user: Mapping[str, Any], *, min_filter_length: int = 3) -> None:
        self._api = api
        self._user: Record = dict(user)
        self._min_filter_length = min_filter_length
        self._repos: list[Record] = []
        self._displayed: list[Record] = []

    @property
    def user(self) -> Record:
        return self._user

    @property
    def profile(self) -> UserProfile:
        return UserProfile.from_record(self._user)

    @property
    def repos(self) -> list[Record]:
        return list(self._repos)

    @property
    def displayed_repos(self) -> list[Record]:
        return list(self._displayed)

    async def load(self) -> LoadReport:
        """Pide `url` y `repos_url` en paralelo. Un campo ausente se omite."""

        report = LoadReport()
        user_url = record_str(self._user, "url")
        repos_url = record_str(self._user, "repos_url")

        async def load_user() -> None:
            if not user_url:
                return
            try:
                fetched = await self._api.fetch_user(user_url)
            except OctolensError as exc:
                logger.warning("User detail request failed: %s", exc)
                report.errors["user"] = str(exc)
                return
            self._user = fetched
            report.user_loaded = True

        async def load_repos() -> None:
            if not repos_url:
                return
            try:
                repos = await self._api.fetch_repos(repos_url)
            except OctolensError as exc:
                logger.warning("Repos request failed: %s", exc)
                report.errors["repos"] = str(exc)
                return
            self._repos = repos
            self._displayed = list(repos)
            report.repos_loaded = True

        await asyncio.gather(load_user(), load_repos())
        return report

    def on_filter_changed(self, text: str) -> list[Record]:
        """0 -> lista completa; >= umbral -> filtro por `name`; resto sin cambios."""

        if len(text) == 0:
            self._displayed = list(self._repos)
        elif len(text) >= self._min_filter_length:
            self._displayed = filter_records(self._repos, text, field="name")
        return self.displayed_repos
